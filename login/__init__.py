"""
Login automator: per-protocol state machines that authenticate an open transport.
"""
import logging
from typing import Optional

from login.channel import LineChannel
from login.imap import ImapLogin
from login.machine import LoginMachine
from login.pop3 import Pop3Login
from login.smtp import SmtpLogin
from vault.records import Protocol, VaultRecord

logger = logging.getLogger("mailkey.login")

MACHINES: dict[Protocol, type[LoginMachine]] = {
    Protocol.IMAP: ImapLogin,
    Protocol.SMTP: SmtpLogin,
    Protocol.POP3: Pop3Login,
}


def build_machine(record: VaultRecord, fqdn: Optional[str] = None) -> LoginMachine:
    if record.protocol is Protocol.SMTP:
        return SmtpLogin(record, fqdn=fqdn)
    return MACHINES[record.protocol](record)


def authenticate(record: VaultRecord, transport, timeout: float, fqdn: Optional[str] = None) -> LineChannel:
    """
    Run the handshake for record over transport.
    Returns the channel, whose pending() bytes belong to the interactive session.
    """
    channel = LineChannel(transport, timeout)
    build_machine(record, fqdn=fqdn).run(channel)
    return channel

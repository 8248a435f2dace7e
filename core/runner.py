"""
Operation orchestration: list vault keys, add/update an account, connect and relay.
Also owns logging setup for a run.
"""
import logging
import sys
from typing import BinaryIO, Callable, Optional, TextIO

from core.context import Session
from core.errors import NotFoundError
from core.prompts import ask_passphrase
from core.utils import close_quietly, open_tls_transport
from vault.records import Protocol, VaultRecord
from vault.store import VaultFile

logger = logging.getLogger("mailkey")


def setup_logging(session: Session) -> None:
    """Configure root logging once per run: terse by default, named+leveled when verbose."""
    log_format = "%(name)s %(levelname)s %(message)s" if session.verbose else "%(message)s"
    log_level = logging.DEBUG if session.verbose else logging.INFO
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    file_error = None
    if session.log_file:
        try:
            fh = logging.FileHandler(session.log_file, encoding="utf-8")
            fh.setFormatter(logging.Formatter("%(asctime)s %(name)s %(levelname)s %(message)s"))
            handlers.append(fh)
        except OSError as e:
            file_error = e
    logging.basicConfig(level=log_level, format=log_format, handlers=handlers, force=True)
    if file_error is not None:
        logger.warning("Could not open log file %s: %s", session.log_file, file_error)


def list_accounts(session: Session, out: TextIO = sys.stdout) -> list[str]:
    """Print every composite key, one per line. Needs no passphrase."""
    keys = VaultFile(session).list_aliases()
    for key in keys:
        print(key, file=out)
    logger.debug("%d account(s) in %s", len(keys), session.vault_file)
    return keys


def _unlock(session: Session, prompt: Optional[Callable[[], str]]) -> None:
    if not session.unlocked:
        session.unlock((prompt or ask_passphrase)())


def add_account(
    session: Session,
    record: VaultRecord,
    passphrase_prompt: Optional[Callable[[], str]] = None,
) -> bool:
    """Insert or replace record in the vault. Returns True for a new entry."""
    record.validate(session.separator)
    _unlock(session, passphrase_prompt)
    created = VaultFile(session).upsert(record)
    logger.info("%s %s", "Added" if created else "Updated", record.key)
    return created


def resolve_protocol(session: Session, alias: str, protocol: Optional[Protocol]) -> Protocol:
    """Explicit protocol wins; otherwise the first vault key stored under alias decides."""
    if protocol is not None:
        return protocol
    guessed = VaultFile(session).guess_protocol(alias)
    if guessed is None:
        raise NotFoundError(f"no account named {alias!r} in {session.vault_file}")
    logger.debug("Protocol for %s guessed as %s", alias, guessed.value)
    return guessed


def connect(
    session: Session,
    alias: str,
    protocol: Optional[Protocol] = None,
    passphrase_prompt: Optional[Callable[[], str]] = None,
    transport_factory: Optional[Callable[[str, int], object]] = None,
    local_in: Optional[BinaryIO] = None,
    local_out: Optional[BinaryIO] = None,
    fqdn: Optional[str] = None,
) -> None:
    """Decrypt the account, log in, then hand the connection to the terminal relay."""
    from login import authenticate
    from relay import relay

    proto = resolve_protocol(session, alias, protocol)
    _unlock(session, passphrase_prompt)
    record = VaultFile(session).find(alias, proto)
    transport = (transport_factory or open_tls_transport)(record.server, record.port)
    try:
        channel = authenticate(record, transport, session.timeout, fqdn=fqdn)
        logger.info("Authenticated to %s as %s; relaying (end input to quit)", record.server, record.username)
        relay(
            transport,
            local_in if local_in is not None else sys.stdin.buffer,
            local_out if local_out is not None else sys.stdout.buffer,
            initial=channel.pending(),
        )
    finally:
        close_quietly(transport)

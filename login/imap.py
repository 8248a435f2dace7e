"""
IMAP login: greeting -> LOGIN -> tagged OK, or tagged NO/BAD -> LOGOUT.
"""
from enum import Enum, auto
import re

from core.constants import IMAP_TAG
from login.machine import LoginMachine, Rule, Transition
from vault.records import Protocol


class ImapState(Enum):
    GREETING = auto()
    LOGIN_SENT = auto()
    AUTHENTICATED = auto()
    FAILED = auto()
    TIMED_OUT = auto()


def _login(m: LoginMachine) -> str:
    return f"{IMAP_TAG} login {m.record.username} {m.record.password}"


def _logout(m: LoginMachine) -> str:
    return f"{IMAP_TAG} logout"


class ImapLogin(LoginMachine):
    protocol = Protocol.IMAP
    initial = ImapState.GREETING
    authenticated = ImapState.AUTHENTICATED
    failed = ImapState.FAILED
    timed_out = ImapState.TIMED_OUT

    rules = (
        Rule.of("greeting", r"^\* OK\b", re.IGNORECASE),
        # Tagged: anything but untagged (*) and continuation (+) responses
        Rule.of("tagged_no", r"^[^*+\s]\S*\s+(NO|BAD)\b", re.IGNORECASE),
        Rule.of("tagged_ok", r"^[^*+\s]\S*\s+OK\b", re.IGNORECASE),
    )

    transitions = {
        (ImapState.GREETING, "greeting"): Transition(_login, ImapState.LOGIN_SENT, secret=True),
        (ImapState.LOGIN_SENT, "tagged_no"): Transition(_logout, ImapState.FAILED),
        (ImapState.LOGIN_SENT, "tagged_ok"): Transition(None, ImapState.AUTHENTICATED),
    }

"""
SMTP submission login over implicit TLS.

220 greeting -> EHLO. An AUTH capability naming PLAIN sends AUTH PLAIN with the credentials
inline; failing that, one naming LOGIN starts AUTH LOGIN, whose 334 challenges get the
base64 username, then the base64 password, then QUIT. Any 5xx reply sends QUIT and fails.
235 means authenticated.
"""
import base64
from enum import Enum, auto
import re
from typing import Optional

from core.utils import local_fqdn
from login.machine import LoginMachine, Rule, Transition
from vault.records import Protocol, VaultRecord


class SmtpState(Enum):
    GREETING = auto()
    EHLO_SENT = auto()
    PLAIN_SENT = auto()
    LOGIN_SENT = auto()
    USER_SENT = auto()
    PASS_SENT = auto()
    AUTHENTICATED = auto()
    FAILED = auto()
    TIMED_OUT = auto()


def _b64(text: str) -> str:
    return base64.b64encode(text.encode("utf-8")).decode("ascii")


def plain_token(username: str, password: str) -> str:
    """RFC 4616 initial response: base64(authzid NUL authcid NUL passwd) with an empty authzid."""
    return _b64(f"\x00{username}\x00{password}")


def _ehlo(m: "SmtpLogin") -> str:
    return f"EHLO {m.fqdn}"


def _auth_plain(m: LoginMachine) -> str:
    return f"AUTH PLAIN {plain_token(m.record.username, m.record.password)}"


def _auth_login(m: LoginMachine) -> str:
    return "AUTH LOGIN"


def _login_user(m: LoginMachine) -> str:
    return _b64(m.record.username)


def _login_pass(m: LoginMachine) -> str:
    return _b64(m.record.password)


def _quit(m: LoginMachine) -> str:
    return "QUIT"


_ACTIVE = (
    SmtpState.GREETING,
    SmtpState.EHLO_SENT,
    SmtpState.PLAIN_SENT,
    SmtpState.LOGIN_SENT,
    SmtpState.USER_SENT,
    SmtpState.PASS_SENT,
)


class SmtpLogin(LoginMachine):
    protocol = Protocol.SMTP
    initial = SmtpState.GREETING
    authenticated = SmtpState.AUTHENTICATED
    failed = SmtpState.FAILED
    timed_out = SmtpState.TIMED_OUT

    rules = (
        Rule.of("greeting", r"^220"),
        Rule.of("auth_plain", r"^250[- ]AUTH[ =].*\bPLAIN\b", re.IGNORECASE),
        Rule.of("auth_login", r"^250[- ]AUTH[ =].*\bLOGIN\b", re.IGNORECASE),
        Rule.of("challenge", r"^334"),
        Rule.of("rejected", r"^5"),
        Rule.of("accepted", r"^235"),
    )

    transitions = {
        (SmtpState.GREETING, "greeting"): Transition(_ehlo, SmtpState.EHLO_SENT),
        (SmtpState.EHLO_SENT, "auth_plain"): Transition(_auth_plain, SmtpState.PLAIN_SENT, secret=True),
        (SmtpState.EHLO_SENT, "auth_login"): Transition(_auth_login, SmtpState.LOGIN_SENT),
        (SmtpState.LOGIN_SENT, "challenge"): Transition(_login_user, SmtpState.USER_SENT, secret=True),
        (SmtpState.USER_SENT, "challenge"): Transition(_login_pass, SmtpState.PASS_SENT, secret=True),
        (SmtpState.PASS_SENT, "challenge"): Transition(_quit, SmtpState.FAILED),
        (SmtpState.PLAIN_SENT, "accepted"): Transition(None, SmtpState.AUTHENTICATED),
        (SmtpState.PASS_SENT, "accepted"): Transition(None, SmtpState.AUTHENTICATED),
        **{(state, "rejected"): Transition(_quit, SmtpState.FAILED) for state in _ACTIVE},
    }

    def __init__(self, record: VaultRecord, fqdn: Optional[str] = None):
        super().__init__(record)
        self.fqdn = fqdn or local_fqdn()

"""
POP3 login: +OK greeting -> USER, +OK -> PASS, +OK -> done. Any -ERR -> QUIT.
"""
from enum import Enum, auto

from login.machine import LoginMachine, Rule, Transition
from vault.records import Protocol


class Pop3State(Enum):
    GREETING = auto()
    USER_SENT = auto()
    PASS_SENT = auto()
    AUTHENTICATED = auto()
    FAILED = auto()
    TIMED_OUT = auto()


def _user(m: LoginMachine) -> str:
    return f"USER {m.record.username}"


def _pass(m: LoginMachine) -> str:
    return f"PASS {m.record.password}"


def _quit(m: LoginMachine) -> str:
    return "QUIT"


class Pop3Login(LoginMachine):
    protocol = Protocol.POP3
    initial = Pop3State.GREETING
    authenticated = Pop3State.AUTHENTICATED
    failed = Pop3State.FAILED
    timed_out = Pop3State.TIMED_OUT

    rules = (
        Rule.of("ok", r"^\+OK"),
        Rule.of("err", r"^-ERR"),
    )

    transitions = {
        (Pop3State.GREETING, "ok"): Transition(_user, Pop3State.USER_SENT),
        (Pop3State.USER_SENT, "ok"): Transition(_pass, Pop3State.PASS_SENT, secret=True),
        (Pop3State.PASS_SENT, "ok"): Transition(None, Pop3State.AUTHENTICATED),
        (Pop3State.GREETING, "err"): Transition(_quit, Pop3State.FAILED),
        (Pop3State.USER_SENT, "err"): Transition(_quit, Pop3State.FAILED),
        (Pop3State.PASS_SENT, "err"): Transition(_quit, Pop3State.FAILED),
    }

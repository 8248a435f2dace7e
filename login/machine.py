"""
Finite-state login handshake engine.

Each protocol declares a state enum, an ordered rule list (name + pattern) and a transition
table keyed by (state, rule name) -> Transition(action, next state). For each response line
the first rule that matches and is armed in the current state fires; its action yields at
most one command. Lines no armed rule matches are discarded. Silence longer than the
channel timeout takes the timeout edge from whatever state the machine is in.
"""
from dataclasses import dataclass
from enum import Enum
import logging
import re
from typing import Callable, ClassVar, Optional

from core.errors import HandshakeTimeoutError, ProtocolError
from login.channel import LineChannel
from vault.records import Protocol, VaultRecord

logger = logging.getLogger("mailkey.login")


@dataclass(frozen=True)
class Rule:
    name: str
    pattern: re.Pattern

    @classmethod
    def of(cls, name: str, regex: str, flags: int = 0) -> "Rule":
        return cls(name, re.compile(regex, flags))


@dataclass(frozen=True)
class Transition:
    # Returns the command to send, or None to send nothing
    action: Optional[Callable[["LoginMachine"], Optional[str]]]
    target: Enum
    # Command carries credentials: never logged verbatim
    secret: bool = False


class LoginMachine:
    """Drives one handshake for one record. Subclasses supply the protocol tables."""

    protocol: ClassVar[Protocol]
    initial: ClassVar[Enum]
    authenticated: ClassVar[Enum]
    failed: ClassVar[Enum]
    timed_out: ClassVar[Enum]
    rules: ClassVar[tuple[Rule, ...]]
    transitions: ClassVar[dict[tuple[Enum, str], Transition]]

    def __init__(self, record: VaultRecord):
        self.record = record
        self.state = self.initial
        self.last_line: Optional[str] = None
        self.sent: list[str] = []

    @property
    def finished(self) -> bool:
        return self.state in (self.authenticated, self.failed, self.timed_out)

    def select(self, line: str) -> Optional[tuple[Rule, Transition]]:
        """First rule matching line that has a transition out of the current state."""
        for rule in self.rules:
            if not rule.pattern.search(line):
                continue
            transition = self.transitions.get((self.state, rule.name))
            if transition is not None:
                return rule, transition
        return None

    def feed(self, line: str) -> Optional[str]:
        """Advance on one response line; returns the command to send, if any."""
        self.last_line = line
        selected = self.select(line)
        if selected is None:
            logger.debug("%s S: %s (ignored in %s)", self.protocol.name, line, self.state.name)
            return None
        rule, transition = selected
        command = transition.action(self) if transition.action else None
        logger.debug(
            "%s S: %s [%s] %s -> %s",
            self.protocol.name, line, rule.name, self.state.name, transition.target.name,
        )
        if command is not None:
            logger.debug("%s C: %s", self.protocol.name, "<credentials hidden>" if transition.secret else command)
        self.state = transition.target
        return command

    def run(self, channel: LineChannel) -> None:
        """Consume lines until authenticated (return), rejected (ProtocolError) or silent (timeout)."""
        logger.info("Logging in to %s:%s as %s (%s)", self.record.server, self.record.port, self.record.username, self.protocol.name)
        while not self.finished:
            try:
                line = channel.read_line()
            except HandshakeTimeoutError:
                logger.debug("%s timeout in %s", self.protocol.name, self.state.name)
                self.state = self.timed_out
                raise
            command = self.feed(line)
            if command is not None:
                channel.send_line(command)
                self.sent.append(command)
        if self.state is self.failed:
            raise ProtocolError(f"{self.protocol.name} login failed: {self.last_line}")
        logger.info("%s login to %s succeeded", self.protocol.name, self.record.server)

"""
Vault record model: protocol kinds, composite keys, plaintext layout and its validation.
"""
from dataclasses import dataclass, field
from enum import Enum
import re
from typing import Optional

from core.constants import DEFAULT_SEPARATOR, IMAPS_PORT, POP3S_PORT, SMTPS_PORT

# 0x00-0x1F and 0xFF may never appear in a stored field
CONTROL_CHARS_RE = re.compile(r"[\x00-\x1f\xff]")


class Protocol(str, Enum):
    IMAP = "imap"
    SMTP = "smtp"
    POP3 = "pop3"

    @property
    def default_port(self) -> int:
        return DEFAULT_PORTS[self]

    @classmethod
    def parse(cls, value: str) -> "Protocol":
        """Case-insensitive lookup; raises ValueError for unknown names."""
        try:
            return cls(value.strip().lower())
        except ValueError:
            raise ValueError(f"unknown protocol {value!r} (expected imap, smtp or pop3)") from None


DEFAULT_PORTS = {
    Protocol.IMAP: IMAPS_PORT,
    Protocol.SMTP: SMTPS_PORT,
    Protocol.POP3: POP3S_PORT,
}

# Server name prefixes used to guess the protocol of a new record
SERVER_PREFIXES = (
    ("imap", Protocol.IMAP),
    ("pop", Protocol.POP3),
    ("smtp", Protocol.SMTP),
    ("mail", Protocol.SMTP),
)


def composite_key(alias: str, protocol: Protocol) -> str:
    return f"{alias}:{protocol.value}"


def split_key(key: str) -> tuple[str, Protocol]:
    """Inverse of composite_key. The alias may itself contain ':'; the protocol is after the last one."""
    alias, sep, proto = key.rpartition(":")
    if not sep or not alias:
        raise ValueError(f"malformed vault key {key!r}")
    return alias, Protocol.parse(proto)


def guess_protocol_for_server(server: str) -> Protocol:
    """Guess the protocol from a host name such as imap.example.com; IMAP when nothing matches."""
    host = server.strip().lower()
    for prefix, proto in SERVER_PREFIXES:
        if host.startswith(prefix):
            return proto
    return Protocol.IMAP


def guess_protocol_for_alias(keys: list[str], alias: str) -> Optional[Protocol]:
    """Protocol of the first vault key stored under alias, or None if the alias is unknown."""
    for key in keys:
        try:
            a, proto = split_key(key)
        except ValueError:
            continue
        if a == alias:
            return proto
    return None


@dataclass
class VaultRecord:
    """One account: where to connect and the credentials to log in with."""

    alias: str
    protocol: Protocol
    server: str
    port: int
    username: str
    password: str = field(repr=False)

    @property
    def key(self) -> str:
        return composite_key(self.alias, self.protocol)

    def validate(self, separator: str = DEFAULT_SEPARATOR) -> None:
        """Raise ValueError if any field would break the line or plaintext layout."""
        for name in ("alias", "server", "username", "password"):
            value = getattr(self, name)
            if not value:
                raise ValueError(f"{name} must not be empty")
            if separator in value:
                raise ValueError(f"{name} must not contain the separator {separator!r}")
            if CONTROL_CHARS_RE.search(value):
                raise ValueError(f"{name} must not contain control characters")
        if not 0 < int(self.port) < 65536:
            raise ValueError(f"port {self.port} out of range")

    def to_plaintext(self, separator: str = DEFAULT_SEPARATOR) -> str:
        return separator.join((f"{self.server}:{self.port}", self.username, self.password))

    @classmethod
    def from_plaintext(cls, key: str, plaintext: str, separator: str = DEFAULT_SEPARATOR) -> "VaultRecord":
        """
        Rebuild a record from its vault key and decrypted plaintext.
        Raises ValueError when the plaintext is not exactly three clean fields with a valid port;
        for data decrypted under the wrong key this is the expected outcome.
        """
        if CONTROL_CHARS_RE.search(plaintext):
            raise ValueError("control characters in plaintext")
        fields = plaintext.split(separator)
        if len(fields) != 3 or not all(fields):
            raise ValueError("plaintext does not have three fields")
        address, username, password = fields
        server, sep, port_str = address.rpartition(":")
        if not sep or not server or not port_str.isdigit():
            raise ValueError("malformed server:port field")
        port = int(port_str)
        if not 0 < port < 65536:
            raise ValueError("port out of range")
        alias, protocol = split_key(key)
        return cls(alias=alias, protocol=protocol, server=server, port=port, username=username, password=password)

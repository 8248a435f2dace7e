"""
Shared fixtures: unlocked sessions on a temporary vault, scripted mail servers on socket pairs.
"""
import socket

import pytest

from core.context import Session
from vault.records import Protocol, VaultRecord

PASSPHRASE = "correct horse battery staple"


@pytest.fixture
def vault_path(tmp_path):
    return str(tmp_path / "vault")


@pytest.fixture
def session(vault_path):
    """Session on an empty temporary vault, already unlocked."""
    s = Session(vault_file=vault_path, timeout=1.0)
    s.unlock(PASSPHRASE)
    return s


@pytest.fixture
def bob_imap():
    return VaultRecord(
        alias="work", protocol=Protocol.IMAP, server="imap.example.com",
        port=993, username="bob", password="secret",
    )


@pytest.fixture
def bob_smtp():
    return VaultRecord(
        alias="work", protocol=Protocol.SMTP, server="smtp.example.com",
        port=465, username="bob", password="secret",
    )


@pytest.fixture
def bob_pop3():
    return VaultRecord(
        alias="home", protocol=Protocol.POP3, server="pop.example.net",
        port=995, username="bob", password="secret",
    )


class ScriptedServer:
    """Server end of a socket pair: queue response lines up front, read back what the client sent."""

    def __init__(self):
        self.server, self.client = socket.socketpair()

    def say(self, *lines: str) -> None:
        for line in lines:
            self.server.sendall((line + "\r\n").encode("utf-8"))

    def received(self) -> list[str]:
        """Everything the client wrote, as lines. Closes the client's write side first."""
        try:
            self.client.shutdown(socket.SHUT_WR)
        except OSError:
            pass
        self.server.settimeout(2.0)
        data = b""
        while True:
            try:
                chunk = self.server.recv(4096)
            except OSError:
                break
            if not chunk:
                break
            data += chunk
        return data.decode("utf-8").splitlines()

    def close(self) -> None:
        for s in (self.server, self.client):
            try:
                s.close()
            except OSError:
                pass


@pytest.fixture
def server():
    s = ScriptedServer()
    yield s
    s.close()

"""
Line-oriented view of a transport for the login handshake.
Keeps whatever the server sent beyond the last consumed line so the relay can deliver it.
"""
import logging
import socket
import time

from core.errors import HandshakeTimeoutError, TransportError

logger = logging.getLogger("mailkey.login")

RECV_SIZE = 4096


class LineChannel:
    """Reads CRLF/LF-terminated response lines and writes CRLF-terminated commands."""

    def __init__(self, transport, timeout: float):
        self.transport = transport
        self.timeout = timeout
        self._buffer = bytearray()

    def read_line(self) -> str:
        """
        Next response line without its terminator.
        The inactivity timer restarts for every line, not for every chunk: HandshakeTimeoutError
        if no complete line arrives within `timeout` seconds, TransportError if the server closes.
        """
        deadline = time.monotonic() + self.timeout
        while b"\n" not in self._buffer:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise HandshakeTimeoutError(f"no response within {self.timeout:g}s")
            self.transport.settimeout(remaining)
            try:
                chunk = self.transport.recv(RECV_SIZE)
            except (socket.timeout, TimeoutError):
                raise HandshakeTimeoutError(f"no response within {self.timeout:g}s") from None
            except OSError as e:
                raise TransportError(f"connection lost: {e}") from e
            if not chunk:
                raise TransportError("connection closed by server")
            self._buffer.extend(chunk)
        raw, _, rest = bytes(self._buffer).partition(b"\n")
        self._buffer = bytearray(rest)
        return raw.rstrip(b"\r").decode("utf-8", errors="replace")

    def send_line(self, command: str) -> None:
        try:
            self.transport.sendall((command + "\r\n").encode("utf-8"))
        except OSError as e:
            raise TransportError(f"connection lost: {e}") from e

    def pending(self) -> bytes:
        """Unconsumed bytes already read from the transport; clears the buffer."""
        data = bytes(self._buffer)
        self._buffer.clear()
        return data

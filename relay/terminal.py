"""
Interactive relay: after login, copies bytes verbatim between the local terminal and the
server connection until either side reaches end-of-stream.

Two reader threads: local input -> transport, transport -> local output. The first EOF (or
failure) on either side ends the relay; the transport is then closed, which also unblocks
the transport reader.
"""
import logging
import threading
from typing import BinaryIO, Optional

from core.constants import RELAY_CHUNK_SIZE
from core.errors import TransportError
from core.utils import close_quietly

logger = logging.getLogger("mailkey.relay")

# Main thread wakes up this often so KeyboardInterrupt is delivered promptly
WAIT_SLICE = 0.2


def _read_chunk(stream: BinaryIO) -> bytes:
    read1 = getattr(stream, "read1", None)
    if read1 is not None:
        return read1(RELAY_CHUNK_SIZE)
    return stream.read(RELAY_CHUNK_SIZE)


class TerminalRelay:
    """Bridges local binary streams and a connected socket-like transport."""

    def __init__(self, transport, local_in: BinaryIO, local_out: BinaryIO, initial: bytes = b""):
        self.transport = transport
        self.local_in = local_in
        self.local_out = local_out
        self.initial = initial
        self._done = threading.Event()
        self._closing = False
        self._error: Optional[BaseException] = None
        self.ended_by: Optional[str] = None

    def _finish(self, side: str, error: Optional[BaseException] = None) -> None:
        if self._done.is_set():
            return
        self.ended_by = side
        if error is not None and not self._closing:
            self._error = error
        self._done.set()

    def _write_local(self, data: bytes) -> None:
        self.local_out.write(data)
        self.local_out.flush()

    def _local_to_remote(self) -> None:
        try:
            while not self._done.is_set():
                try:
                    data = _read_chunk(self.local_in)
                except OSError as e:
                    logger.debug("Local input failed: %s", e)
                    break
                if not data:
                    logger.debug("Local input closed")
                    break
                self.transport.sendall(data)
        except OSError as e:
            self._finish("local", TransportError(f"connection lost: {e}"))
            return
        self._finish("local")

    def _remote_to_local(self) -> None:
        try:
            while not self._done.is_set():
                data = self.transport.recv(RELAY_CHUNK_SIZE)
                if not data:
                    logger.debug("Server closed the connection")
                    break
                try:
                    self._write_local(data)
                except OSError as e:
                    # Terminal side went away (e.g. stdout pipe closed): a local end, not a lost connection
                    logger.debug("Local output closed: %s", e)
                    self._finish("local")
                    return
        except OSError as e:
            self._finish("remote", TransportError(f"connection lost: {e}"))
            return
        self._finish("remote")

    def run(self) -> None:
        """
        Relay until one side closes. Raises TransportError if the connection broke unexpectedly.
        The transport is closed on every way out, KeyboardInterrupt included.
        """
        # Blocking reads from here on; the inactivity timer only applies to the login phase
        self.transport.settimeout(None)
        readers = [
            threading.Thread(target=self._local_to_remote, name="relay-local", daemon=True),
            threading.Thread(target=self._remote_to_local, name="relay-remote", daemon=True),
        ]
        try:
            if self.initial:
                self._write_local(self.initial)
            for t in readers:
                t.start()
            while not self._done.wait(WAIT_SLICE):
                pass
        finally:
            self._closing = True
            self._done.set()
            close_quietly(self.transport)
            # The local reader may stay blocked on the terminal; it is a daemon thread
            if readers[1].is_alive():
                readers[1].join(timeout=1.0)
        logger.debug("Relay ended by %s side", self.ended_by)
        if self._error is not None:
            raise self._error


def relay(transport, local_in: BinaryIO, local_out: BinaryIO, initial: bytes = b"") -> None:
    TerminalRelay(transport, local_in, local_out, initial).run()

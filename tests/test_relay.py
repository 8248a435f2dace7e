"""
Terminal relay tests: byte-for-byte copying and termination on either side's EOF.
"""
import io
import os
import threading

import pytest

from core.errors import TransportError
from relay import TerminalRelay


@pytest.fixture
def idle_stdin():
    """A local input that never produces data until the test ends."""
    r, w = os.pipe()
    stream = os.fdopen(r, "rb")
    yield stream
    # Unblocks the relay reader thread; the stream is left to it
    os.close(w)


def test_remote_to_local_until_server_closes(server, idle_stdin):
    out = io.BytesIO()
    server.server.sendall(b"* 2 EXISTS\r\n\x00binary\xff")
    server.server.close()
    relay = TerminalRelay(server.client, idle_stdin, out, initial=b"* OK leftover\r\n")
    relay.run()
    assert out.getvalue() == b"* OK leftover\r\n* 2 EXISTS\r\n\x00binary\xff"
    assert relay.ended_by == "remote"


def test_local_to_remote_until_input_ends(server):
    out = io.BytesIO()
    relay = TerminalRelay(server.client, io.BytesIO(b"a1 select INBOX\r\na2 logout\r\n"), out)
    relay.run()
    assert relay.ended_by == "local"
    assert server.received() == ["a1 select INBOX", "a2 logout"]


def test_transport_closed_after_relay(server):
    relay = TerminalRelay(server.client, io.BytesIO(b""), io.BytesIO())
    relay.run()
    assert server.client.fileno() == -1


class BrokenTransport:
    def __init__(self):
        self.closed = False

    def settimeout(self, value):
        pass

    def recv(self, size):
        raise ConnectionResetError("reset by peer")

    def sendall(self, data):
        pass

    def shutdown(self, how):
        pass

    def close(self):
        self.closed = True


def test_connection_loss_is_transport_error(idle_stdin):
    transport = BrokenTransport()
    with pytest.raises(TransportError, match="reset"):
        TerminalRelay(transport, idle_stdin, io.BytesIO()).run()
    assert transport.closed


class InterruptedWait(threading.Event):
    """Event whose wait() behaves like Ctrl-C arriving in the main thread."""

    def wait(self, timeout=None):
        raise KeyboardInterrupt


def test_interrupt_closes_transport_and_propagates(server, idle_stdin):
    relay = TerminalRelay(server.client, idle_stdin, io.BytesIO())
    relay._done = InterruptedWait()
    with pytest.raises(KeyboardInterrupt):
        relay.run()
    assert server.client.fileno() == -1


class ClosedOutput(io.BytesIO):
    def write(self, data):
        raise BrokenPipeError("stdout closed")


def test_local_output_failure_is_not_connection_loss(server, idle_stdin):
    server.server.sendall(b"* 1 EXISTS\r\n")
    relay = TerminalRelay(server.client, idle_stdin, ClosedOutput())
    relay.run()
    assert relay.ended_by == "local"
    assert server.client.fileno() == -1

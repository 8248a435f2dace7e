"""
IMAP handshake tests against a scripted server.
"""
import threading
import time

import pytest

from core.errors import HandshakeTimeoutError, ProtocolError, TransportError
from login import authenticate
from login.imap import ImapLogin, ImapState


def test_greeting_then_ok(server, bob_imap):
    server.say("* OK ready", "a1 OK done")
    authenticate(bob_imap, server.client, timeout=1.0)
    assert server.received() == [". login bob secret"]


def test_no_sends_logout_and_fails(server, bob_imap):
    server.say("* OK ready", "a1 NO denied")
    with pytest.raises(ProtocolError, match="denied"):
        authenticate(bob_imap, server.client, timeout=1.0)
    assert server.received() == [". login bob secret", ". logout"]


def test_bad_is_a_failure_too(server, bob_imap):
    server.say("* OK ready", ". BAD syntax")
    with pytest.raises(ProtocolError):
        authenticate(bob_imap, server.client, timeout=1.0)


def test_untagged_lines_are_ignored(server, bob_imap):
    server.say(
        "* OK [CAPABILITY IMAP4rev1 AUTH=PLAIN] Dovecot ready.",
        "* CAPABILITY IMAP4rev1 IDLE",
        "* OK still here",
        ". OK Logged in",
    )
    authenticate(bob_imap, server.client, timeout=1.0)
    assert server.received() == [". login bob secret"]


def test_tagged_ok_before_greeting_is_ignored(bob_imap):
    m = ImapLogin(bob_imap)
    assert m.feed("a1 OK whatever") is None
    assert m.state is ImapState.GREETING


def test_timeout_after_login_sends_nothing_more(server, bob_imap):
    server.say("* OK ready")
    with pytest.raises(HandshakeTimeoutError):
        authenticate(bob_imap, server.client, timeout=0.2)
    assert server.received() == [". login bob secret"]


def test_server_closing_is_transport_error(server, bob_imap):
    server.say("* OK ready")
    server.server.shutdown(2)
    with pytest.raises(TransportError):
        authenticate(bob_imap, server.client, timeout=1.0)


def test_leftover_bytes_kept_for_relay(server, bob_imap):
    server.say("* OK ready", "a1 OK done", "* 3 EXISTS")
    channel = authenticate(bob_imap, server.client, timeout=1.0)
    # Give the extra line time to arrive in the same or a later recv; only check it is not lost
    pending = channel.pending()
    assert pending in (b"", b"* 3 EXISTS\r\n")


def test_trickled_partial_line_still_times_out(server, bob_imap):
    stop = threading.Event()

    def trickle():
        for byte in b"* OK slow greeting that never ends":
            if stop.wait(0.1):
                return
            try:
                server.server.sendall(bytes([byte]))
            except OSError:
                return

    feeder = threading.Thread(target=trickle, daemon=True)
    feeder.start()
    started = time.monotonic()
    try:
        with pytest.raises(HandshakeTimeoutError):
            authenticate(bob_imap, server.client, timeout=0.5)
    finally:
        stop.set()
        feeder.join(timeout=1.0)
    assert time.monotonic() - started < 2.0

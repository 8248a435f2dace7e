"""
Post-login interactive byte relay between the terminal and the server connection.
"""
from relay.terminal import TerminalRelay, relay

__all__ = ["TerminalRelay", "relay"]

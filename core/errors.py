"""
Error kinds raised by the vault, the login automator and the relay.
The CLI maps every MailKeyError to a one-line message and a non-zero exit.
"""


class MailKeyError(Exception):
    """Base class for all MailKey failures."""


class ConfigError(MailKeyError):
    """Vault file missing or unreadable, or invalid settings."""


class AuthenticationError(MailKeyError):
    """Decrypted vault content failed validation: wrong passphrase or corrupt vault."""


class NotFoundError(MailKeyError):
    """No vault record for the requested alias and protocol."""


class ProtocolError(MailKeyError):
    """Server signalled an explicit failure (NO, -ERR, 5xx)."""


class HandshakeTimeoutError(MailKeyError, TimeoutError):
    """No response line within the inactivity window."""


class TransportError(MailKeyError):
    """Connection could not be established or was lost unexpectedly."""

"""
Per-invocation session state.
Holds resolved settings and, once the passphrase has been entered, the derived vault key.
One Session lives exactly as long as one process run; nothing here is persisted.
"""
from dataclasses import dataclass, field
import logging
from typing import Optional

from core.constants import DEFAULT_SEPARATOR, LOGIN_TIMEOUT

logger = logging.getLogger("mailkey.context")


@dataclass
class Session:
    """Settings for one run plus the vault key derived from the master passphrase."""

    vault_file: str
    separator: str = DEFAULT_SEPARATOR
    timeout: float = LOGIN_TIMEOUT
    verbose: bool = False
    log_file: Optional[str] = None

    # Derived vault key; never printed by repr
    key: Optional[bytes] = field(default=None, repr=False)

    @property
    def unlocked(self) -> bool:
        return self.key is not None

    def unlock(self, passphrase: str) -> None:
        """Derive the vault key from the master passphrase. The passphrase itself is not kept."""
        from vault.crypto import derive_key

        self.key = derive_key(passphrase)
        logger.debug("Vault key derived for %s", self.vault_file)

    def require_key(self) -> bytes:
        if self.key is None:
            raise RuntimeError("session is locked: unlock() with the master passphrase first")
        return self.key

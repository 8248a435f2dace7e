"""
Vault file storage: one line per account, `<alias>:<protocol><SEP><base64 ciphertext>`.

Listing reads keys only and needs no passphrase. Loading decrypts every line and fails as a whole
if any line does not decrypt to a well-formed record. Upserting an existing key rewrites the file
(previous version kept as `<path>~`); a new key is appended.
No locking: the file belongs to a single process for the duration of an operation.
"""
import logging
import os
from typing import Optional

from core.constants import BACKUP_SUFFIX, VAULT_FILE_MODE
from core.context import Session
from core.errors import AuthenticationError, ConfigError, NotFoundError
from vault.crypto import DecryptionError, decrypt_b64, encrypt_b64
from vault.records import Protocol, VaultRecord, composite_key, guess_protocol_for_alias

logger = logging.getLogger("mailkey.vault")


class VaultFile:
    """Line-oriented encrypted account store at session.vault_file."""

    def __init__(self, session: Session):
        self.session = session
        self.path = session.vault_file
        self.separator = session.separator

    @property
    def backup_path(self) -> str:
        return self.path + BACKUP_SUFFIX

    def exists(self) -> bool:
        return os.path.isfile(self.path)

    def _read_lines(self) -> list[tuple[str, str]]:
        """(key, payload) per non-blank line, in file order."""
        try:
            with open(self.path, encoding="utf-8") as f:
                raw = f.read().splitlines()
        except FileNotFoundError:
            raise ConfigError(f"vault file {self.path} does not exist") from None
        except (OSError, UnicodeDecodeError) as e:
            raise ConfigError(f"cannot read vault file {self.path}: {e}") from e
        entries = []
        for line in raw:
            if not line.strip():
                continue
            key, _, payload = line.partition(self.separator)
            entries.append((key, payload))
        return entries

    def list_aliases(self) -> list[str]:
        """Composite keys in file order. No decryption."""
        return [key for key, _ in self._read_lines()]

    def load_accounts(self) -> list[VaultRecord]:
        """Decrypt and validate every record. Any bad line means wrong passphrase or corruption."""
        key = self.session.require_key()
        records = []
        for lineno, (name, payload) in enumerate(self._read_lines(), 1):
            try:
                plaintext = decrypt_b64(payload, key)
                records.append(VaultRecord.from_plaintext(name, plaintext, self.separator))
            except (DecryptionError, ValueError) as e:
                logger.debug("Vault line %d (%s) rejected: %s", lineno, name, e)
                raise AuthenticationError("wrong passphrase or corrupt vault") from None
        logger.debug("Loaded %d record(s) from %s", len(records), self.path)
        return records

    def find(self, alias: str, protocol: Protocol) -> VaultRecord:
        """First record stored under alias:protocol."""
        wanted = composite_key(alias, protocol)
        for record in self.load_accounts():
            if record.key == wanted:
                return record
        raise NotFoundError(f"no account {wanted} in {self.path}")

    def guess_protocol(self, alias: str) -> Optional[Protocol]:
        """Protocol of the first key stored under alias (no decryption needed)."""
        return guess_protocol_for_alias(self.list_aliases(), alias)

    def _line(self, record: VaultRecord) -> str:
        payload = encrypt_b64(record.to_plaintext(self.separator), self.session.require_key())
        return f"{record.key}{self.separator}{payload}\n"

    def _restrict(self, path: str) -> None:
        os.chmod(path, VAULT_FILE_MODE)

    def upsert(self, record: VaultRecord) -> bool:
        """
        Store record, replacing an existing entry with the same composite key in place.
        Returns True if the record was appended as new, False if it replaced an existing one.
        """
        record.validate(self.separator)
        self.session.require_key()
        keys = self.list_aliases() if self.exists() else []
        if record.key not in keys:
            self._append(record)
            return True
        self._rewrite(record)
        return False

    def _append(self, record: VaultRecord) -> None:
        line = self._line(record)
        fd = os.open(self.path, os.O_WRONLY | os.O_APPEND | os.O_CREAT, VAULT_FILE_MODE)
        with os.fdopen(fd, "a", encoding="utf-8") as f:
            f.write(line)
        self._restrict(self.path)
        logger.debug("Appended %s to %s", record.key, self.path)

    def _rewrite(self, record: VaultRecord) -> None:
        # Full decrypt first: validates the passphrase before anything is touched
        current = self.load_accounts()
        replaced = False
        lines = []
        for existing in current:
            if existing.key == record.key and not replaced:
                lines.append(self._line(record))
                replaced = True
            else:
                lines.append(self._line(existing))
        tmp_path = self.path + ".tmp"
        fd = os.open(tmp_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, VAULT_FILE_MODE)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.writelines(lines)
                f.flush()
                os.fsync(f.fileno())
            self._restrict(tmp_path)
            os.replace(self.path, self.backup_path)
            os.replace(tmp_path, self.path)
        except OSError:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise
        self._restrict(self.path)
        logger.debug("Rewrote %s in %s (previous version: %s)", record.key, self.path, self.backup_path)

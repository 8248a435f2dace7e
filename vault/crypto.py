"""
Vault crypto: passphrase-to-key, AES-CBC encryption of record plaintexts.

Security Note:
    The passphrase is used directly as key material: no salt, no key stretching.
    Detection of a wrong passphrase is structural (see VaultRecord.from_plaintext),
    not an integrity check. Never log plaintext, ciphertext or keys.
"""
import base64
import binascii
import logging
import os

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

logger = logging.getLogger("mailkey.vault")

KEY_LENGTH = 32  # AES-256
IV_SIZE = 16
BLOCK_BITS = 128


class DecryptionError(ValueError):
    """Ciphertext could not be turned back into text under the given key."""


def derive_key(passphrase: str) -> bytes:
    """
    Passphrase bytes, zero-padded to the AES-256 key length.
    Longer passphrases are refused rather than cut, so every byte entered is part of the key.
    """
    raw = passphrase.encode("utf-8")
    if len(raw) > KEY_LENGTH:
        raise ValueError(f"passphrase is {len(raw)} bytes; at most {KEY_LENGTH} bytes (UTF-8) are supported")
    return raw.ljust(KEY_LENGTH, b"\x00")


def encrypt(plaintext: str, key: bytes) -> bytes:
    """Encrypt text. Format: [iv 16B][AES-CBC ciphertext, PKCS7 padded]."""
    iv = os.urandom(IV_SIZE)
    padder = padding.PKCS7(BLOCK_BITS).padder()
    data = padder.update(plaintext.encode("utf-8")) + padder.finalize()
    encryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).encryptor()
    return iv + encryptor.update(data) + encryptor.finalize()


def decrypt(blob: bytes, key: bytes) -> str:
    """Inverse of encrypt. Raises DecryptionError on bad length, bad padding or non-UTF-8 output."""
    if len(blob) < 2 * IV_SIZE or len(blob) % IV_SIZE:
        raise DecryptionError("ciphertext has invalid length")
    iv, body = blob[:IV_SIZE], blob[IV_SIZE:]
    decryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).decryptor()
    data = decryptor.update(body) + decryptor.finalize()
    unpadder = padding.PKCS7(BLOCK_BITS).unpadder()
    try:
        data = unpadder.update(data) + unpadder.finalize()
        return data.decode("utf-8")
    except ValueError as e:
        # UnicodeDecodeError is a ValueError too
        raise DecryptionError(str(e)) from None


def encrypt_b64(plaintext: str, key: bytes) -> str:
    return base64.b64encode(encrypt(plaintext, key)).decode("ascii")


def decrypt_b64(text: str, key: bytes) -> str:
    try:
        blob = base64.b64decode(text.strip(), validate=True)
    except (binascii.Error, ValueError) as e:
        raise DecryptionError(f"invalid base64: {e}") from None
    return decrypt(blob, key)

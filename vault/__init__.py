"""
Encrypted account vault: record model, AES-CBC crypto and the line-oriented vault file.
"""
from vault.records import Protocol, VaultRecord
from vault.store import VaultFile

__all__ = ["Protocol", "VaultRecord", "VaultFile"]

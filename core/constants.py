"""
Shared constants for MailKey: protocol defaults, vault file layout, timeouts.
Use these instead of hardcoding ports, separators or timeouts across modules.
"""
VERSION = "1.2.0"

# Default ports for implicit-TLS mail services
IMAPS_PORT = 993
SMTPS_PORT = 465
POP3S_PORT = 995

# Login automator: seconds of silence tolerated between response lines
LOGIN_TIMEOUT = 5.0
# TCP connect + TLS handshake
CONNECT_TIMEOUT = 10.0

# Vault file
VAULT_FILENAME = ".mailkey"
DEFAULT_SEPARATOR = " "
BACKUP_SUFFIX = "~"
VAULT_FILE_MODE = 0o600

# IMAP command tag used by the automator
IMAP_TAG = "."

# Relay read size
RELAY_CHUNK_SIZE = 4096

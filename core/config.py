"""
Configuration: environment variables and optional config file (JSON).
CLI arguments override config file override env vars.
"""
import json
import logging
import os
from typing import Any

from core.constants import DEFAULT_SEPARATOR, LOGIN_TIMEOUT, VAULT_FILENAME
from core.errors import ConfigError

logger = logging.getLogger("mailkey.config")


def _env_bool(name: str, default: bool = False) -> bool:
    v = os.environ.get(name, "").strip().lower()
    if v in ("1", "true", "yes", "on"):
        return True
    if v in ("0", "false", "no", "off"):
        return False
    return default


def _env_float(name: str, default: float | None = None) -> float | None:
    v = os.environ.get(name, "").strip()
    if not v:
        return default
    try:
        return float(v)
    except ValueError:
        return default


def default_vault_path() -> str:
    """Vault file in the user's home directory ($HOME, falling back to ~ expansion)."""
    home = os.environ.get("HOME", "").strip() or os.path.expanduser("~")
    return os.path.join(home, VAULT_FILENAME)


def load_env_config() -> dict[str, Any]:
    """Load configuration from environment variables (MAILKEY_*)."""
    return {
        "vault_file": os.environ.get("MAILKEY_FILE", "").strip() or None,
        # Separator may legitimately be a space, so do not strip it
        "separator": os.environ.get("MAILKEY_SEPARATOR") or None,
        "timeout": _env_float("MAILKEY_TIMEOUT"),
        "verbose": _env_bool("MAILKEY_VERBOSE", False),
        "log_file": os.environ.get("MAILKEY_LOG_FILE", "").strip() or None,
    }


def load_file_config(path: str) -> dict[str, Any]:
    """Load configuration from a JSON file. Returns empty dict on error."""
    if not path or not os.path.isfile(path):
        return {}
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            return {}
        mapping = {
            "file": "vault_file",
            "vault": "vault_file",
            "vault_file": "vault_file",
            "separator": "separator",
            "timeout": "timeout",
            "verbose": "verbose",
            "log_file": "log_file",
        }
        out = {}
        for k, v in data.items():
            key = mapping.get(k)
            if key is None:
                logger.debug("Config key %s ignored", k)
            elif key == "verbose":
                out[key] = bool(v)
            elif key in ("vault_file", "log_file"):
                out[key] = str(v).strip() if v else None
            elif key == "separator":
                out[key] = str(v) if v else None
            elif key == "timeout":
                try:
                    out[key] = float(v) if v is not None else None
                except (TypeError, ValueError):
                    logger.warning("Config key %s has invalid value %r; skipping.", key, v)
        return out
    except (OSError, json.JSONDecodeError):
        return {}


def merge_config(env: dict[str, Any], file_cfg: dict[str, Any], cli: dict[str, Any]) -> dict[str, Any]:
    """Merge env (base), then file, then CLI. CLI overrides all."""
    out = dict(env)
    for k, v in file_cfg.items():
        if v is not None:
            out[k] = v
    for k, v in cli.items():
        if v is not None:
            out[k] = v
    if not out.get("vault_file"):
        out["vault_file"] = default_vault_path()
    if not out.get("separator"):
        out["separator"] = DEFAULT_SEPARATOR
    if not out.get("timeout"):
        out["timeout"] = LOGIN_TIMEOUT
    out["vault_file"] = os.path.expanduser(out["vault_file"])
    return out


def validate_separator(sep: str) -> str:
    """A separator is one printable character that cannot collide with the composite key."""
    if len(sep) != 1:
        raise ConfigError(f"separator must be a single character, got {sep!r}")
    if sep == ":" or ord(sep) < 0x20 or ord(sep) == 0xFF:
        raise ConfigError(f"separator {sep!r} is not allowed")
    return sep

"""
Configuration layering: env vars, JSON file, CLI overrides, defaults.
"""
import json
import os

import pytest

from core.config import (
    default_vault_path,
    load_env_config,
    load_file_config,
    merge_config,
    validate_separator,
)
from core.errors import ConfigError


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    for name in ("MAILKEY_FILE", "MAILKEY_SEPARATOR", "MAILKEY_TIMEOUT", "MAILKEY_VERBOSE", "MAILKEY_LOG_FILE"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("HOME", str(tmp_path))


def test_default_vault_path_uses_home(tmp_path):
    assert default_vault_path() == os.path.join(str(tmp_path), ".mailkey")


def test_defaults_when_nothing_set(tmp_path):
    merged = merge_config(load_env_config(), {}, {})
    assert merged["vault_file"] == os.path.join(str(tmp_path), ".mailkey")
    assert merged["separator"] == " "
    assert merged["timeout"] == 5.0
    assert merged["verbose"] is False


def test_env_values(monkeypatch):
    monkeypatch.setenv("MAILKEY_FILE", "/tmp/v")
    monkeypatch.setenv("MAILKEY_SEPARATOR", "|")
    monkeypatch.setenv("MAILKEY_TIMEOUT", "2.5")
    monkeypatch.setenv("MAILKEY_VERBOSE", "yes")
    env = load_env_config()
    assert env == {"vault_file": "/tmp/v", "separator": "|", "timeout": 2.5, "verbose": True, "log_file": None}


def test_env_bad_timeout_ignored(monkeypatch):
    monkeypatch.setenv("MAILKEY_TIMEOUT", "soon")
    assert load_env_config()["timeout"] is None


def test_file_config(tmp_path):
    path = tmp_path / "cfg.json"
    path.write_text(json.dumps({"vault": "~/x", "timeout": "3", "verbose": 1, "unknown": True}))
    cfg = load_file_config(str(path))
    assert cfg == {"vault_file": "~/x", "timeout": 3.0, "verbose": True}


def test_file_config_invalid_value_skipped(tmp_path):
    path = tmp_path / "cfg.json"
    path.write_text(json.dumps({"timeout": "later"}))
    assert load_file_config(str(path)) == {}


@pytest.mark.parametrize("content", ["not json", "[1, 2]"])
def test_file_config_unusable(tmp_path, content):
    path = tmp_path / "cfg.json"
    path.write_text(content)
    assert load_file_config(str(path)) == {}


def test_missing_file_config():
    assert load_file_config("/nonexistent/cfg.json") == {}


def test_precedence_cli_over_file_over_env(tmp_path):
    env = {"vault_file": "/env", "timeout": 1.0}
    file_cfg = {"vault_file": "/file", "timeout": 2.0}
    cli = {"timeout": 3.0}
    merged = merge_config(env, file_cfg, cli)
    assert merged["vault_file"] == "/file"
    assert merged["timeout"] == 3.0


def test_vault_path_expanded(tmp_path):
    merged = merge_config({}, {"vault_file": "~/vault"}, {})
    assert merged["vault_file"] == os.path.join(str(tmp_path), "vault")


@pytest.mark.parametrize("sep", [" ", "|", ";", ","])
def test_valid_separators(sep):
    assert validate_separator(sep) == sep


@pytest.mark.parametrize("sep", ["", "||", ":", "\t", "\n", "\xff"])
def test_invalid_separators(sep):
    with pytest.raises(ConfigError):
        validate_separator(sep)

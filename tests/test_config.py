"""Tests for environment-driven settings."""

import os

import pytest

from shirt_designer.config import load_settings
from shirt_designer.errors import ConfigError

_VARS = ("ASSET_ROOT", "UPLOADS_DIR", "EXPORTS_DIR", "FONT_DIR", "REMOTE_FETCH_TIMEOUT",
         "API_TOKENS", "CORS_ORIGINS", "LOG_LEVEL", "PORT")


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in _VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults():
    s = load_settings()
    assert s.asset_root == "."
    assert s.uploads_dir == os.path.join(".", "uploads")
    assert s.exports_dir == os.path.join(".", "exports")
    assert s.font_dir is None
    assert s.remote_fetch_timeout == 15.0
    assert s.api_tokens == {}
    assert s.cors_origins == ("*",)
    assert s.log_level == "INFO"
    assert s.port == 5000


def test_directories_follow_asset_root(monkeypatch):
    monkeypatch.setenv("ASSET_ROOT", "/srv/shirts")
    monkeypatch.setenv("EXPORTS_DIR", "/var/exports")
    s = load_settings()
    assert s.uploads_dir == os.path.join("/srv/shirts", "uploads")
    assert s.exports_dir == "/var/exports"


def test_tokens_and_origins(monkeypatch):
    monkeypatch.setenv("API_TOKENS", "abc:alice, def:bob ,")
    monkeypatch.setenv("CORS_ORIGINS", "http://localhost:3000, https://shirts.example")
    s = load_settings()
    assert s.api_tokens == {"abc": "alice", "def": "bob"}
    assert s.cors_origins == ("http://localhost:3000", "https://shirts.example")


@pytest.mark.parametrize("name, value", [
    ("REMOTE_FETCH_TIMEOUT", "soon"),
    ("REMOTE_FETCH_TIMEOUT", "0"),
    ("PORT", "eighty"),
    ("API_TOKENS", "just-a-token"),
])
def test_invalid_values(monkeypatch, name, value):
    monkeypatch.setenv(name, value)
    with pytest.raises(ConfigError):
        load_settings()

"""
Tests for environment-driven settings and logger setup.
"""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from mrcarwash.utils import config
from mrcarwash.utils.logger import setup_logger


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in (
        "MRCARWASH_API_URL",
        "MRCARWASH_API_TIMEOUT",
        "MRCARWASH_LOG_LEVEL",
        "MRCARWASH_LOG_FILE",
        "MRCARWASH_CURRENCY",
    ):
        monkeypatch.setenv(key, "")


def test_defaults() -> None:
    assert config.api_base_url() == config.DEFAULT_API_URL
    assert config.api_timeout() == 30.0
    assert config.log_level() == "INFO"
    assert config.log_file() is None
    assert config.currency_symbol() == "$"


def test_overrides(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("MRCARWASH_API_URL", "http://localhost:3000/api/")
    monkeypatch.setenv("MRCARWASH_API_TIMEOUT", "5")
    monkeypatch.setenv("MRCARWASH_LOG_LEVEL", "debug")
    monkeypatch.setenv("MRCARWASH_LOG_FILE", str(tmp_path / "app.log"))
    assert config.api_base_url() == "http://localhost:3000/api"
    assert config.api_timeout() == 5.0
    assert config.log_level() == "DEBUG"
    assert config.log_file() == tmp_path / "app.log"


@pytest.mark.parametrize("raw", ["soon", "0", "-3"])
def test_bad_timeout_falls_back(monkeypatch: pytest.MonkeyPatch, raw: str) -> None:
    monkeypatch.setenv("MRCARWASH_API_TIMEOUT", raw)
    assert config.api_timeout() == 30.0


def test_get_required_raises_when_missing(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("MRCARWASH_SOMETHING", "  ")
    with pytest.raises(ValueError, match="MRCARWASH_SOMETHING"):
        config.get_required("MRCARWASH_SOMETHING")


def test_setup_logger_accepts_level_names(tmp_path: Path) -> None:
    log = setup_logger("mrcarwash.test_config", level="debug", log_file=tmp_path / "logs" / "x.log")
    assert log.level == logging.DEBUG
    assert (tmp_path / "logs" / "x.log").exists()
    for h in list(log.handlers):
        h.close()
        log.removeHandler(h)

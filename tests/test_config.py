"""Tests for environment-driven settings."""

import pytest
from pydantic import ValidationError

from prom_traffic_demo import __version__
from prom_traffic_demo.config import load_settings


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    # no stray .env from the working tree
    monkeypatch.chdir(tmp_path)
    for name in ("DEMO_HOST", "DEMO_PORT", "APP_VERSION", "LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)


def test_defaults_bind_port_8080():
    settings = load_settings()
    assert settings.host == "0.0.0.0"
    assert settings.port == 8080
    assert settings.app_version == __version__
    assert settings.log_level == "INFO"


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("DEMO_PORT", "9090")
    monkeypatch.setenv("APP_VERSION", "2.0.0-rc1")
    settings = load_settings()
    assert settings.port == 9090
    assert settings.app_version == "2.0.0-rc1"


def test_bad_port_is_rejected(monkeypatch):
    monkeypatch.setenv("DEMO_PORT", "eighty")
    with pytest.raises(ValidationError):
        load_settings()

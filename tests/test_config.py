"""Tests for configuration defaults and overrides."""

from tusa_mcp.data.config import TransitConfig


def test_defaults():
    config = TransitConfig()
    assert config.refresh_interval_seconds == 30.0
    assert config.tick_interval_seconds == 1.0
    assert config.tusa_time_unit == "seconds"
    assert config.disruptions_city == "Badalona"


def test_env_override(monkeypatch):
    monkeypatch.setenv("REFRESH_INTERVAL", "15")
    monkeypatch.setenv("TUSA_TIME_UNIT", "minutes")

    config = TransitConfig()

    assert config.refresh_interval_seconds == 15.0
    assert config.tusa_time_unit == "minutes"


def test_tusa_url_joins_paths():
    config = TransitConfig(TUSA_API_URL="https://tusa.example.com/api")
    assert config.tusa_url("stops/1/") == "https://tusa.example.com/api/stops/1/"

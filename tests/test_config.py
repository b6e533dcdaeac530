"""Tests for settings loading."""

import structlog

from study_tracker.config import Settings, flatten_yaml_settings
from study_tracker.main import configure_logging


def test_flatten_yaml_settings():
    data = {
        "server": {"host": "127.0.0.1", "port": 9000},
        "storage": {"backend": "memory"},
        "supabase": {"url": "https://x.supabase.co"},
    }
    assert flatten_yaml_settings(data) == {
        "host": "127.0.0.1",
        "port": 9000,
        "store_backend": "memory",
        "supabase_url": "https://x.supabase.co",
    }


def test_flatten_ignores_unknown_sections():
    assert flatten_yaml_settings({"other": {"a": 1}}) == {}


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("PORT", "8123")
    monkeypatch.setenv("STORE_BACKEND", "memory")
    settings = Settings()
    assert settings.port == 8123
    assert settings.store_backend == "memory"


def test_supabase_configured():
    assert not Settings(supabase_url=None).supabase_configured
    settings = Settings(supabase_url="https://x.supabase.co", supabase_service_role_key="k")
    assert settings.supabase_configured


def test_store_path_under_data_dir(tmp_path):
    settings = Settings(data_dir=tmp_path / "data")
    assert settings.store_path == tmp_path / "data" / "kv_store.json"
    assert (tmp_path / "data").is_dir()


def test_is_production():
    assert Settings(env="production").is_production
    assert not Settings(env="development").is_production


def test_logging_follows_env_setting():
    try:
        configure_logging(Settings(env="production"))
        assert isinstance(structlog.get_config()["processors"][-1], structlog.processors.JSONRenderer)
    finally:
        configure_logging(Settings(env="development"))
    assert isinstance(structlog.get_config()["processors"][-1], structlog.dev.ConsoleRenderer)

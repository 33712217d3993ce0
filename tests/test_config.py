"""
Tests for settings loading and the CLI logging helpers.
"""

import pytest

from notecase import config
from notecase.logging_utils import log_verbose

ENV_VARS = ("SUPABASE_URL", "SUPABASE_KEY", "SUPABASE_SERVICE_ROLE_KEY", "NOTECASE_OWNER_ID")


@pytest.fixture
def clean_env(monkeypatch):
    """Clear the relevant variables and keep .env files out of the test."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr(config, "load_dotenv", lambda: False)
    return monkeypatch


def test_load_settings_reads_environment(clean_env) -> None:
    clean_env.setenv("SUPABASE_URL", "https://example.supabase.co")
    clean_env.setenv("SUPABASE_KEY", "anon-key")
    clean_env.setenv("NOTECASE_OWNER_ID", "owner-1")

    assert config.load_settings() == {
        "supabase_url": "https://example.supabase.co",
        "supabase_key": "anon-key",
        "owner_id": "owner-1",
    }


def test_explicit_owner_and_service_role_fallback(clean_env) -> None:
    clean_env.setenv("SUPABASE_URL", "https://example.supabase.co")
    clean_env.setenv("SUPABASE_SERVICE_ROLE_KEY", "service-key")
    clean_env.setenv("NOTECASE_OWNER_ID", "owner-1")

    settings = config.load_settings(owner_id="owner-2")

    assert settings["supabase_key"] == "service-key"
    assert settings["owner_id"] == "owner-2"


def test_missing_credentials_raise(clean_env) -> None:
    clean_env.setenv("SUPABASE_URL", "https://example.supabase.co")

    with pytest.raises(RuntimeError, match="Supabase credentials not found"):
        config.load_settings()


def test_log_verbose_only_prints_when_enabled(capsys) -> None:
    log_verbose("Reading archive...", verbose=False)
    assert capsys.readouterr().out == ""

    log_verbose("Reading archive...", verbose=True)
    assert capsys.readouterr().out == "Reading archive...\n"

from pathlib import Path

import pytest
import yaml

from agencyops.config import DEFAULT_AI_MODEL, ConfigError, load_settings, write_config


def test_missing_file_uses_environment(tmp_path: Path) -> None:
    settings = load_settings(
        tmp_path / "agencyops.yaml",
        environ={"SUPABASE_URL": "https://p.supabase.co", "SUPABASE_ANON_KEY": "anon", "OPENROUTER_API_KEY": "or"},
    )

    assert settings.store.url == "https://p.supabase.co"
    assert settings.store.key == "anon"
    assert settings.ai.api_key == "or"
    assert settings.ai.model == DEFAULT_AI_MODEL
    assert settings.billing_assignee == "Robert"
    assert settings.path is None


def test_environment_overrides_file(tmp_path: Path) -> None:
    path = tmp_path / "agencyops.yaml"
    path.write_text(
        "store:\n  url: https://file.supabase.co\n  key: filekey\n"
        "suggestions:\n  billing_assignee: Dana\n"
        "email:\n  app_url: https://app.test\n"
    )

    settings = load_settings(path, environ={"SUPABASE_URL": "https://env.supabase.co"})

    assert settings.store.url == "https://env.supabase.co"
    assert settings.store.key == "filekey"
    assert settings.billing_assignee == "Dana"
    assert settings.email.app_url == "https://app.test"
    assert settings.path == path


def test_missing_credentials_are_logged_not_raised(tmp_path: Path, caplog) -> None:
    settings = load_settings(tmp_path / "none.yaml", environ={})

    assert settings.store.url is None
    assert "Missing store credentials" in caplog.text


def test_malformed_section_raises(tmp_path: Path) -> None:
    path = tmp_path / "agencyops.yaml"
    path.write_text("store: just-a-string\n")

    with pytest.raises(ConfigError):
        load_settings(path, environ={})


def test_write_config_round_trips(tmp_path: Path) -> None:
    path = write_config(tmp_path / "cfg" / "agencyops.yaml", "https://p.supabase.co", "anon")

    data = yaml.safe_load(path.read_text())
    assert data["store"] == {"url": "https://p.supabase.co", "key": "anon"}
    settings = load_settings(path, environ={})
    assert settings.store.key == "anon"
    assert settings.ai.api_key is None

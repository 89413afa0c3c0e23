from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "agencyops.yaml"
DEFAULT_AI_MODEL = "anthropic/claude-sonnet-4"
DEFAULT_EVENTS_PATH = Path("data/events.ndjson")
DEFAULT_SESSION_PATH = Path("data/session.json")

ENV_OVERRIDES: dict[str, tuple[str, str]] = {
    "SUPABASE_URL": ("store", "url"),
    "SUPABASE_ANON_KEY": ("store", "key"),
    "OPENROUTER_API_KEY": ("ai", "api_key"),
    "APP_URL": ("email", "app_url"),
    "FROM_EMAIL": ("email", "from_address"),
}


@dataclass(frozen=True)
class StoreConfig:
    url: str | None
    key: str | None


@dataclass(frozen=True)
class AIConfig:
    api_key: str | None
    model: str = DEFAULT_AI_MODEL


@dataclass(frozen=True)
class EmailConfig:
    app_url: str | None
    from_address: str | None


@dataclass(frozen=True)
class Settings:
    store: StoreConfig
    ai: AIConfig
    email: EmailConfig
    billing_assignee: str = "Robert"
    events_path: Path = DEFAULT_EVENTS_PATH
    session_path: Path = DEFAULT_SESSION_PATH
    path: Path | None = None


class ConfigError(RuntimeError):
    pass


def config_path(directory: Path | None = None) -> Path:
    return (directory or Path.cwd()) / CONFIG_FILENAME


def load_settings(path: Path | None = None, environ: Mapping[str, str] | None = None) -> Settings:
    """Read the YAML config (if any) and apply environment overrides.

    Missing store credentials are logged, not raised: commands that never touch
    the store still work.
    """
    path = path or config_path()
    environ = os.environ if environ is None else environ
    data: dict[str, Any] = {}
    if path.exists():
        loaded = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        if not isinstance(loaded, dict):
            raise ConfigError(f"Config must be a mapping: {path}")
        data = loaded

    sections = {name: _section(data, name) for name in ("store", "ai", "email", "suggestions", "events", "session")}
    for env_name, (section, key) in ENV_OVERRIDES.items():
        if environ.get(env_name):
            sections[section][key] = environ[env_name]

    settings = Settings(
        store=StoreConfig(url=sections["store"].get("url"), key=sections["store"].get("key")),
        ai=AIConfig(
            api_key=sections["ai"].get("api_key"),
            model=sections["ai"].get("model") or DEFAULT_AI_MODEL,
        ),
        email=EmailConfig(
            app_url=sections["email"].get("app_url"),
            from_address=sections["email"].get("from_address"),
        ),
        billing_assignee=sections["suggestions"].get("billing_assignee") or "Robert",
        events_path=Path(sections["events"].get("path") or DEFAULT_EVENTS_PATH),
        session_path=Path(sections["session"].get("path") or DEFAULT_SESSION_PATH),
        path=path if path.exists() else None,
    )
    if not settings.store.url or not settings.store.key:
        logger.error("Missing store credentials: set SUPABASE_URL and SUPABASE_ANON_KEY or %s", CONFIG_FILENAME)
    return settings


def write_config(path: Path, store_url: str | None = None, store_key: str | None = None) -> Path:
    payload = {
        "store": {"url": store_url or "", "key": store_key or ""},
        "ai": {"api_key": "", "model": DEFAULT_AI_MODEL},
        "email": {"app_url": "", "from_address": ""},
        "suggestions": {"billing_assignee": "Robert"},
        "events": {"path": str(DEFAULT_EVENTS_PATH)},
        "session": {"path": str(DEFAULT_SESSION_PATH)},
    }
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(yaml.safe_dump(payload, sort_keys=False), encoding="utf-8")
    return path


def _section(data: Mapping[str, Any], name: str) -> dict[str, Any]:
    value = data.get(name)
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ConfigError(f"Invalid {name} configuration.")
    return {k: v for k, v in value.items() if v not in (None, "")}

"""Runtime configuration for the session engine.

Values are looked up in the secrets file first, then in the environment,
then fall back to defaults.
"""

import os
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Dict, Optional

import toml

DEFAULT_CONFIG_PATH = "secrets.toml"
DEFAULT_API_URL = "http://localhost:8080/"
DEFAULT_API_TIMEOUT = 30
DEFAULT_DB_PATH = "credentials.db"
DEFAULT_NAMESPACE = "auth_prefs"
DEFAULT_VALIDITY_DAYS = 30
DEFAULT_WARNING_DAYS = 3


@dataclass(frozen=True)
class Settings:
    api_url: str = DEFAULT_API_URL
    api_timeout: int = DEFAULT_API_TIMEOUT
    credential_db_path: str = DEFAULT_DB_PATH
    credential_namespace: str = DEFAULT_NAMESPACE
    validity_days: int = DEFAULT_VALIDITY_DAYS
    warning_days: int = DEFAULT_WARNING_DAYS
    log_level: str = "INFO"
    sentry_dsn: Optional[str] = None
    sentry_env: str = "development"

    @property
    def validity_window(self) -> timedelta:
        return timedelta(days=self.validity_days)

    @property
    def warning_window(self) -> timedelta:
        return timedelta(days=self.warning_days)


def _read_secrets(path: str) -> Dict[str, Any]:
    try:
        return toml.load(path)
    except FileNotFoundError:
        return {}


def get_secret(secrets: Dict[str, Any], key: str):
    value = secrets.get(key)
    if value is None or value == "":
        value = os.getenv(key)
    return value


def _as_int(value, default: int) -> int:
    if value is None or value == "":
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValueError(f"Expected an integer setting, got {value!r}")


def load_settings(path: Optional[str] = None) -> Settings:
    """Build settings from the secrets file and the environment."""
    path = path or os.getenv("SESSION_CONFIG", DEFAULT_CONFIG_PATH)
    secrets = _read_secrets(path)

    validity_days = _as_int(get_secret(secrets, "SESSION_VALIDITY_DAYS"), DEFAULT_VALIDITY_DAYS)
    warning_days = _as_int(get_secret(secrets, "SESSION_WARNING_DAYS"), DEFAULT_WARNING_DAYS)
    if validity_days <= 0:
        raise ValueError("SESSION_VALIDITY_DAYS must be positive")
    if warning_days < 0 or warning_days > validity_days:
        raise ValueError("SESSION_WARNING_DAYS must be between 0 and SESSION_VALIDITY_DAYS")

    return Settings(
        api_url=get_secret(secrets, "API_URL") or DEFAULT_API_URL,
        api_timeout=_as_int(get_secret(secrets, "API_TIMEOUT"), DEFAULT_API_TIMEOUT),
        credential_db_path=get_secret(secrets, "CREDENTIALS_DB") or DEFAULT_DB_PATH,
        credential_namespace=get_secret(secrets, "CREDENTIALS_NAMESPACE") or DEFAULT_NAMESPACE,
        validity_days=validity_days,
        warning_days=warning_days,
        log_level=str(get_secret(secrets, "LOG_LEVEL") or "INFO").upper(),
        sentry_dsn=get_secret(secrets, "SENTRY_DSN") or None,
        sentry_env=get_secret(secrets, "SENTRY_ENV") or "development",
    )

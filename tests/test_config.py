from datetime import timedelta
from unittest.mock import patch

import pytest

import config

CONFIG_KEYS = [
    "SESSION_CONFIG",
    "API_URL",
    "API_TIMEOUT",
    "CREDENTIALS_DB",
    "CREDENTIALS_NAMESPACE",
    "SESSION_VALIDITY_DAYS",
    "SESSION_WARNING_DAYS",
    "LOG_LEVEL",
    "SENTRY_DSN",
    "SENTRY_ENV",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in CONFIG_KEYS:
        monkeypatch.delenv(key, raising=False)


def test_defaults_without_file(tmp_path):
    settings = config.load_settings(str(tmp_path / "missing.toml"))

    assert settings == config.Settings()
    assert settings.validity_window == timedelta(days=30)
    assert settings.warning_window == timedelta(days=3)


def test_secrets_file_values(tmp_path):
    path = tmp_path / "secrets.toml"
    path.write_text(
        'API_URL = "https://auth.example.com/"\n'
        "API_TIMEOUT = 5\n"
        'CREDENTIALS_DB = "/var/lib/app/creds.db"\n'
        "SESSION_VALIDITY_DAYS = 14\n"
        "SESSION_WARNING_DAYS = 2\n"
        'LOG_LEVEL = "debug"\n'
    )

    settings = config.load_settings(str(path))

    assert settings.api_url == "https://auth.example.com/"
    assert settings.api_timeout == 5
    assert settings.credential_db_path == "/var/lib/app/creds.db"
    assert settings.validity_days == 14
    assert settings.warning_days == 2
    assert settings.log_level == "DEBUG"


def test_env_fills_in_missing_secrets(tmp_path, monkeypatch):
    path = tmp_path / "secrets.toml"
    path.write_text('API_URL = "https://from-file/"\n')
    monkeypatch.setenv("API_URL", "https://from-env/")
    monkeypatch.setenv("SENTRY_DSN", "https://key@sentry.example/1")

    settings = config.load_settings(str(path))

    assert settings.api_url == "https://from-file/"
    assert settings.sentry_dsn == "https://key@sentry.example/1"


def test_config_path_from_env(tmp_path, monkeypatch):
    path = tmp_path / "other.toml"
    path.write_text('CREDENTIALS_NAMESPACE = "kiosk"\n')
    monkeypatch.setenv("SESSION_CONFIG", str(path))

    assert config.load_settings().credential_namespace == "kiosk"


@pytest.mark.parametrize(
    "env",
    [
        {"SESSION_VALIDITY_DAYS": "0"},
        {"SESSION_WARNING_DAYS": "-1"},
        {"SESSION_VALIDITY_DAYS": "5", "SESSION_WARNING_DAYS": "6"},
        {"API_TIMEOUT": "soon"},
    ],
)
def test_invalid_values_raise(tmp_path, env):
    with patch.dict("os.environ", env):
        with pytest.raises(ValueError):
            config.load_settings(str(tmp_path / "missing.toml"))


def test_get_secret_prefers_file_over_env(monkeypatch):
    monkeypatch.setenv("API_URL", "env")

    assert config.get_secret({"API_URL": "file"}, "API_URL") == "file"
    assert config.get_secret({"API_URL": ""}, "API_URL") == "env"
    assert config.get_secret({}, "UNSET_KEY") is None

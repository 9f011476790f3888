import pytest

from src.config import ConfigurationError, load_settings

ENV_VARS = (
    "REMOVE_BG_API_KEY",
    "REPLICATE_API_TOKEN",
    "REPLICATE_API_KEY",
    "POLL_MAX_ATTEMPTS",
    "POLL_INTERVAL_SECONDS",
    "APP_ENV",
    "CORS_ORIGINS",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_missing_credentials_refuse_to_load():
    with pytest.raises(ConfigurationError) as exc_info:
        load_settings()

    assert "REMOVE_BG_API_KEY" in str(exc_info.value)
    assert "REPLICATE_API_TOKEN" in str(exc_info.value)


def test_one_missing_credential_refuses_to_load(monkeypatch):
    monkeypatch.setenv("REMOVE_BG_API_KEY", "rb")

    with pytest.raises(ConfigurationError):
        load_settings()


def test_defaults(monkeypatch):
    monkeypatch.setenv("REMOVE_BG_API_KEY", "rb")
    monkeypatch.setenv("REPLICATE_API_TOKEN", "rep")

    settings = load_settings()

    assert settings.remove_bg_api_key == "rb"
    assert settings.replicate_api_token == "rep"
    assert settings.poll_interval_seconds == 2.0
    assert settings.poll_max_attempts == 30
    assert settings.max_upload_bytes == 5 * 1024 * 1024
    assert settings.dev_mode is False
    assert settings.cors_origins == ("*",)
    assert settings.credentials_status == {"removeBg": True, "replicate": True}


def test_legacy_replicate_key_and_overrides(monkeypatch):
    monkeypatch.setenv("REMOVE_BG_API_KEY", "rb")
    monkeypatch.setenv("REPLICATE_API_KEY", "legacy")
    monkeypatch.setenv("POLL_MAX_ATTEMPTS", "5")
    monkeypatch.setenv("APP_ENV", "development")
    monkeypatch.setenv("CORS_ORIGINS", "https://a.example, https://b.example")

    settings = load_settings()

    assert settings.replicate_api_token == "legacy"
    assert settings.poll_max_attempts == 5
    assert settings.dev_mode is True
    assert settings.cors_origins == ("https://a.example", "https://b.example")


def test_malformed_number(monkeypatch):
    monkeypatch.setenv("REMOVE_BG_API_KEY", "rb")
    monkeypatch.setenv("REPLICATE_API_TOKEN", "rep")
    monkeypatch.setenv("POLL_INTERVAL_SECONDS", "soon")

    with pytest.raises(ConfigurationError):
        load_settings()

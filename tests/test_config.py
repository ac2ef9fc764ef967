"""Tests for configuration helpers."""

import pytest
from dynaconf import Dynaconf
from dex_operator import config


_ENV_KEYS = (
    "CREDENTIALS_FILE",
    "MANAGEMENT_CLUSTER_NAME",
    "MANAGEMENT_CLUSTER_BASE_DOMAIN",
    "MANAGEMENT_CLUSTER_ISSUER_ADDRESS",
    "SECRET_VALIDITY_MONTHS",
    "SELF_RENEWAL_STORE_PATH",
    "HTTP_TIMEOUT_SECONDS",
    "GRAPH_API_URL",
    "GRAPH_LOGIN_URL",
    "GITHUB_API_URL",
    "LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch):
    for name in _ENV_KEYS:
        monkeypatch.delenv(f"DEX_OPERATOR_{name}", raising=False)
    yield
    monkeypatch.undo()
    config.get_settings(refresh=True)


def test_settings_defaults() -> None:
    """Defaults point at the public Graph and GitHub endpoints."""

    settings = config.get_settings(refresh=True)

    assert settings.credentials_file == "/etc/dex-operator/credentials.yaml"
    assert settings.management_cluster_name is None
    assert settings.management_cluster_issuer_address == ""
    assert settings.secret_validity_months == 3
    assert settings.http_timeout_seconds == 30.0
    assert settings.graph_api_url == "https://graph.microsoft.com/v1.0"
    assert settings.github_api_url == "https://api.github.com"
    assert settings.log_level == "INFO"


def test_settings_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Environment variables override defaults and are normalised."""

    monkeypatch.setenv("DEX_OPERATOR_MANAGEMENT_CLUSTER_NAME", "mc")
    monkeypatch.setenv("DEX_OPERATOR_SECRET_VALIDITY_MONTHS", "6")
    monkeypatch.setenv("DEX_OPERATOR_GRAPH_API_URL", "https://graph.test/v1.0/")
    monkeypatch.setenv("DEX_OPERATOR_LOG_LEVEL", "debug")

    settings = config.get_settings(refresh=True)

    assert settings.management_cluster_name == "mc"
    assert settings.secret_validity_months == 6
    assert settings.graph_api_url == "https://graph.test/v1.0"
    assert settings.log_level == "DEBUG"


@pytest.mark.parametrize(
    ("name", "value"),
    [
        ("SECRET_VALIDITY_MONTHS", "0"),
        ("SECRET_VALIDITY_MONTHS", "many"),
        ("HTTP_TIMEOUT_SECONDS", "-1"),
        ("GITHUB_API_URL", "api.github.com"),
        ("LOG_LEVEL", "chatty"),
    ],
)
def test_settings_invalid_values(
    monkeypatch: pytest.MonkeyPatch, name: str, value: str
) -> None:
    """Invalid values fail fast with a ValueError."""

    monkeypatch.setenv(f"DEX_OPERATOR_{name}", value)

    with pytest.raises(ValueError, match=f"DEX_OPERATOR_{name}"):
        config.get_settings(refresh=True)


def test_normalize_empty_values_fall_back_to_defaults() -> None:
    """Explicit empty values use the defaults."""

    source = Dynaconf(settings_files=[], load_dotenv=False, environments=False)
    source.set("CREDENTIALS_FILE", "")
    source.set("MANAGEMENT_CLUSTER_BASE_DOMAIN", "")

    normalized = config._normalize_settings(source)

    assert normalized.credentials_file == "/etc/dex-operator/credentials.yaml"
    assert normalized.management_cluster_base_domain is None


def test_get_settings_refresh(monkeypatch: pytest.MonkeyPatch) -> None:
    """The refresh flag reloads cached values."""

    monkeypatch.setenv("DEX_OPERATOR_MANAGEMENT_CLUSTER_NAME", "first")
    assert config.get_settings(refresh=True).management_cluster_name == "first"

    monkeypatch.setenv("DEX_OPERATOR_MANAGEMENT_CLUSTER_NAME", "second")
    assert config.get_settings().management_cluster_name == "first"
    assert config.get_settings(refresh=True).management_cluster_name == "second"

"""Runtime configuration helpers for the dex operator."""

from __future__ import annotations
from functools import lru_cache
from dynaconf import Dynaconf


_DEFAULTS: dict[str, object] = {
    "CREDENTIALS_FILE": "/etc/dex-operator/credentials.yaml",
    "MANAGEMENT_CLUSTER_NAME": None,
    "MANAGEMENT_CLUSTER_BASE_DOMAIN": None,
    "MANAGEMENT_CLUSTER_ISSUER_ADDRESS": "",
    "SECRET_VALIDITY_MONTHS": 3,
    "SELF_RENEWAL_STORE_PATH": "/var/lib/dex-operator/renewal-credentials",
    "HTTP_TIMEOUT_SECONDS": 30.0,
    "GRAPH_API_URL": "https://graph.microsoft.com/v1.0",
    "GRAPH_LOGIN_URL": "https://login.microsoftonline.com",
    "GITHUB_API_URL": "https://api.github.com",
    "LOG_LEVEL": "INFO",
}

_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


def _build_loader() -> Dynaconf:
    """Create a Dynaconf loader wired to environment variables only."""
    return Dynaconf(
        envvar_prefix="DEX_OPERATOR",
        settings_files=[],
        load_dotenv=True,
        environments=False,
    )


def _positive_number(source: Dynaconf, key: str, cast: type[int] | type[float]):
    raw = source.get(key, _DEFAULTS[key])
    try:
        value = cast(raw)
    except (TypeError, ValueError) as exc:
        msg = f"DEX_OPERATOR_{key} must be a number."
        raise ValueError(msg) from exc
    if value <= 0:
        msg = f"DEX_OPERATOR_{key} must be greater than zero."
        raise ValueError(msg)
    return value


def _normalize_settings(source: Dynaconf) -> Dynaconf:
    """Validate and fill defaults on the raw Dynaconf settings."""
    normalized = Dynaconf(
        envvar_prefix="DEX_OPERATOR",
        settings_files=[],
        load_dotenv=False,
        environments=False,
    )

    credentials_file = source.get("CREDENTIALS_FILE") or _DEFAULTS["CREDENTIALS_FILE"]
    normalized.set("CREDENTIALS_FILE", str(credentials_file))

    store_path = (
        source.get("SELF_RENEWAL_STORE_PATH") or _DEFAULTS["SELF_RENEWAL_STORE_PATH"]
    )
    normalized.set("SELF_RENEWAL_STORE_PATH", str(store_path))

    for key in ("MANAGEMENT_CLUSTER_NAME", "MANAGEMENT_CLUSTER_BASE_DOMAIN"):
        value = source.get(key)
        normalized.set(key, str(value) if value else None)

    issuer_address = source.get("MANAGEMENT_CLUSTER_ISSUER_ADDRESS") or ""
    normalized.set("MANAGEMENT_CLUSTER_ISSUER_ADDRESS", str(issuer_address))

    normalized.set(
        "SECRET_VALIDITY_MONTHS",
        _positive_number(source, "SECRET_VALIDITY_MONTHS", int),
    )
    normalized.set(
        "HTTP_TIMEOUT_SECONDS",
        _positive_number(source, "HTTP_TIMEOUT_SECONDS", float),
    )

    for key in ("GRAPH_API_URL", "GRAPH_LOGIN_URL", "GITHUB_API_URL"):
        url = str(source.get(key) or _DEFAULTS[key]).rstrip("/")
        if not url.startswith(("https://", "http://")):
            msg = f"DEX_OPERATOR_{key} must be an absolute HTTP(S) URL."
            raise ValueError(msg)
        normalized.set(key, url)

    log_level = str(source.get("LOG_LEVEL") or _DEFAULTS["LOG_LEVEL"]).upper()
    if log_level not in _LOG_LEVELS:
        msg = f"DEX_OPERATOR_LOG_LEVEL must be one of {', '.join(sorted(_LOG_LEVELS))}."
        raise ValueError(msg)
    normalized.set("LOG_LEVEL", log_level)

    return normalized


@lru_cache(maxsize=1)
def _load_settings() -> Dynaconf:
    """Load settings once and cache the normalized Dynaconf instance."""
    return _normalize_settings(_build_loader())


def get_settings(*, refresh: bool = False) -> Dynaconf:
    """Return the cached Dynaconf settings, reloading them if requested."""
    if refresh:
        _load_settings.cache_clear()
    return _load_settings()


__all__ = ["get_settings"]

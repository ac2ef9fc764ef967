"""Lookup table from configured provider names to provider constructors."""

from __future__ import annotations
import logging
from collections.abc import Callable, Iterable
from pathlib import Path
from dex_operator.errors import InvalidConfigError
from dex_operator.models import ProviderCredential, load_credentials
from dex_operator.providers.azure import AzureProvider
from dex_operator.providers.base import (
    Provider,
    ProviderConfig,
    ensure_unique_connector_ids,
)
from dex_operator.providers.github import GitHubProvider
from dex_operator.providers.mock import MockProvider
from dex_operator.providers.simple import SimpleProvider
from dex_operator.providers.sso import SSOProvider


logger = logging.getLogger(__name__)

ProviderFactory = Callable[[ProviderConfig], Provider]

_PROVIDERS: dict[str, ProviderFactory] = {
    AzureProvider.provider_name: AzureProvider,
    GitHubProvider.provider_name: GitHubProvider,
    SSOProvider.provider_name: SSOProvider,
    SimpleProvider.provider_name: SimpleProvider,
    MockProvider.provider_name: MockProvider,
}

_CREDENTIAL_SUFFIXES = {".yaml", ".yml"}


def available_providers() -> list[str]:
    """Return the provider names that can appear in the credential file."""
    return list(_PROVIDERS)


def create_provider(config: ProviderConfig) -> Provider:
    """Instantiate the provider named by ``config.credential``."""
    factory = _PROVIDERS.get(config.credential.name)
    if factory is None:
        msg = (
            f"Provider {config.credential.name!r} is not supported. "
            f"Supported providers: {', '.join(_PROVIDERS)}"
        )
        raise InvalidConfigError(msg)
    provider = factory(config)
    logger.debug(
        "Created provider %s for owner %s", provider.provider_name, provider.owner
    )
    return provider


def build_providers(
    credentials: Iterable[ProviderCredential],
    *,
    management_cluster_name: str = "",
    http_timeout_seconds: float = 30.0,
    graph_api_url: str = "https://graph.microsoft.com/v1.0",
    graph_login_url: str = "https://login.microsoftonline.com",
    github_api_url: str = "https://api.github.com",
) -> list[Provider]:
    """Instantiate one provider per credential, keeping the credential order."""
    providers = [
        create_provider(
            ProviderConfig(
                credential=credential,
                management_cluster_name=management_cluster_name,
                http_timeout_seconds=http_timeout_seconds,
                graph_api_url=graph_api_url,
                graph_login_url=graph_login_url,
                github_api_url=github_api_url,
            )
        )
        for credential in credentials
    ]
    ensure_unique_connector_ids(providers)
    return providers


def read_credentials(path: str | Path) -> list[ProviderCredential]:
    """Load the provider credential list from a YAML file."""
    location = Path(path)
    if ".." in location.parts:
        msg = f"Credential path {path} must not contain '..'."
        raise InvalidConfigError(msg)
    if location.suffix not in _CREDENTIAL_SUFFIXES:
        msg = f"Credential file {path} must be a .yaml or .yml file."
        raise InvalidConfigError(msg)
    try:
        document = location.read_text(encoding="utf-8")
    except OSError as exc:
        msg = f"Failed to read credential file {path}: {exc}"
        raise InvalidConfigError(msg) from exc
    return load_credentials(document)


__all__ = [
    "ProviderFactory",
    "available_providers",
    "build_providers",
    "create_provider",
    "read_credentials",
]

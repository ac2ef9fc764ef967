"""Capability contract implemented by every identity provider backend."""

from __future__ import annotations
from abc import ABC, abstractmethod
from collections.abc import Iterable
from dataclasses import dataclass
from dex_operator.errors import InvalidConfigError
from dex_operator.models import (
    Connector,
    ProviderApp,
    ProviderCredential,
    TenantAppConfig,
)


@dataclass(slots=True)
class ProviderConfig:
    """Everything a provider constructor needs besides its credentials."""

    credential: ProviderCredential
    management_cluster_name: str = ""
    http_timeout_seconds: float = 30.0
    graph_api_url: str = "https://graph.microsoft.com/v1.0"
    graph_login_url: str = "https://login.microsoftonline.com"
    github_api_url: str = "https://api.github.com"


class Provider(ABC):
    """Abstract base class for identity provider reconcilers.

    ``create_or_update_app`` is the single idempotent reconcile entry point:
    calling it again with unchanged remote state must not issue any mutating
    remote call. Self renewal hooks default to "not supported"; the lifecycle
    manager never calls ``should_rotate_service_credentials`` or
    ``rotate_service_credentials`` on a provider that does not support it.
    """

    provider_name: str = ""
    display_name: str = ""

    def __init__(self, *, name: str, owner: str, type_: str, description: str) -> None:
        """Store the identity of the provider."""
        self._name = name
        self._owner = owner
        self._type = type_
        self._description = description

    @property
    def name(self) -> str:
        """Connector ID produced by this provider."""
        return self._name

    @property
    def owner(self) -> str:
        """Owner tier the provider's connectors belong to."""
        return self._owner

    @property
    def type(self) -> str:
        """Connector type of the produced connectors."""
        return self._type

    @property
    def description(self) -> str:
        """Display name of the produced connectors."""
        return self._description

    @abstractmethod
    async def create_or_update_app(
        self, config: TenantAppConfig, old_connector: Connector | None
    ) -> ProviderApp:
        """Reconcile the remote app for ``config`` and return its connector."""

    @abstractmethod
    async def delete_app(self, name: str) -> None:
        """Delete the remote app called ``name``; absence counts as success."""

    async def get_credentials_for_authenticated_app(
        self, config: TenantAppConfig
    ) -> dict[str, str]:
        """Issue credentials for the app the operator authenticates as."""
        return {}

    async def clean_credentials_for_authenticated_app(
        self, config: TenantAppConfig
    ) -> None:
        """Remove credentials issued by the setup flow."""
        return None

    async def delete_authenticated_app(self, config: TenantAppConfig) -> None:
        """Delete the app the operator authenticates as."""
        return None

    def supports_service_credential_renewal(self) -> bool:
        """Whether the provider can rotate the operator's own credentials."""
        return False

    async def should_rotate_service_credentials(
        self, config: TenantAppConfig
    ) -> bool:
        """Return True when the operator's own credentials are due."""
        return False

    async def rotate_service_credentials(
        self, config: TenantAppConfig
    ) -> dict[str, str]:
        """Rotate the operator's own credentials and return the changed keys."""
        return {}

    async def aclose(self) -> None:
        """Release network resources held by the provider."""
        return None

    def __repr__(self) -> str:
        """Return a debug representation without secrets."""
        return (
            f"{type(self).__name__}(name={self._name!r}, owner={self._owner!r}, "
            f"type={self._type!r})"
        )


def validate_identity(credential: ProviderCredential) -> None:
    """Fail fast when a credential lacks its name or owner."""
    if not credential.name:
        msg = "Credential name must not be empty."
        raise InvalidConfigError(msg)
    if not credential.owner:
        msg = "Credential owner must not be empty."
        raise InvalidConfigError(msg)


def require_credential(credential: ProviderCredential, field: str) -> str:
    """Return a mandatory credential value or raise ``InvalidConfigError``."""
    value = credential.credentials.get(field, "")
    if not value:
        msg = f"{field} must not be empty."
        raise InvalidConfigError(msg)
    return value


def ensure_unique_connector_ids(providers: Iterable[Provider]) -> None:
    """Raise ``InvalidConfigError`` when two providers emit the same connector ID."""
    seen: dict[str, Provider] = {}
    for provider in providers:
        other = seen.setdefault(provider.name, provider)
        if other is not provider:
            msg = (
                f"Providers {other.provider_name} and {provider.provider_name} "
                f"both produce connector {provider.name}."
            )
            raise InvalidConfigError(msg)


__all__ = [
    "Provider",
    "ProviderConfig",
    "ensure_unique_connector_ids",
    "require_credential",
    "validate_identity",
]

"""Deterministic provider used in tests and local setups."""

from __future__ import annotations
from dex_operator import key
from dex_operator.clock import add_months, utcnow
from dex_operator.models import (
    Connector,
    MockPasswordConfig,
    ProviderApp,
    TenantAppConfig,
)
from dex_operator.providers.base import Provider, ProviderConfig, validate_identity


CONNECTOR_TYPE = "mockCallback"
VALIDITY_MONTHS = 6


class MockProvider(Provider):
    """Provider that never talks to a remote service."""

    provider_name = "mock"
    display_name = "Mock"

    def __init__(self, config: ProviderConfig) -> None:
        """Create the provider for the credential's owner."""
        credential = config.credential
        validate_identity(credential)
        super().__init__(
            name=key.get_provider_name(credential.owner, self.provider_name),
            owner=credential.owner,
            type_=CONNECTOR_TYPE,
            description=credential.connector_description(self.display_name),
        )

    async def create_or_update_app(
        self, config: TenantAppConfig, old_connector: Connector | None
    ) -> ProviderApp:
        """Return a static mock connector."""
        connector_config = MockPasswordConfig(username="test", password="test")
        return ProviderApp(
            connector=Connector(
                type=self.type,
                id=self.name,
                name=self.description,
                config=connector_config.to_yaml(),
            ),
            secret_end_date_time=add_months(utcnow(), VALIDITY_MONTHS),
        )

    async def delete_app(self, name: str) -> None:
        """Nothing to delete."""
        return None

    async def get_credentials_for_authenticated_app(
        self, config: TenantAppConfig
    ) -> dict[str, str]:
        """Return fixed test credentials."""
        return {"client-id": "abc", "client-secret": "test"}


__all__ = ["CONNECTOR_TYPE", "MockProvider"]

"""Data shapes exchanged between providers and the gateway configuration."""

from __future__ import annotations
from datetime import datetime
from pydantic import ConfigDict, Field, field_validator
from dex_operator import key
from dex_operator.models.base import DexOperatorModel


class TenantAppConfig(DexOperatorModel):
    """Desired state of one tenant's app registration for a single pass."""

    model_config = ConfigDict(frozen=True)

    name: str
    redirect_uri: str
    identifier_uri: str = ""
    issuer_uri: str = ""
    secret_validity_months: int = Field(default=key.SECRET_VALIDITY_MONTHS, gt=0)


class ProviderCredential(DexOperatorModel):
    """Credentials of one configured provider as read from the credential store."""

    name: str = ""
    owner: str = ""
    credentials: dict[str, str] = Field(default_factory=dict)
    description: str = ""

    @field_validator("credentials", mode="before")
    @classmethod
    def _coerce_credentials(cls, value: object) -> object:
        if value is None:
            return {}
        return value

    def connector_description(self, provider_display_name: str) -> str:
        """Return the explicit description or the owner based default."""
        if self.description:
            return self.description
        return key.get_default_connector_description(provider_display_name, self.owner)


class Connector(DexOperatorModel):
    """One Dex connector entry; ``config`` is the connector's own YAML payload."""

    type: str = Field(alias="connectorType")
    name: str = Field(default="", alias="connectorName")
    id: str = Field(alias="id")
    config: str = Field(default="", alias="connectorConfig")


class ProviderSecret(DexOperatorModel):
    """Client credentials issued by an identity provider."""

    client_id: str
    client_secret: str
    end_date_time: datetime


class ProviderApp(DexOperatorModel):
    """Result of reconciling one provider for one tenant."""

    connector: Connector | None = None
    secret_end_date_time: datetime | None = None

    @classmethod
    def empty(cls) -> ProviderApp:
        """Return a result that contributes no connector."""
        return cls()

    @property
    def is_empty(self) -> bool:
        """Whether the provider produced no connector for this tenant."""
        return self.connector is None


__all__ = [
    "Connector",
    "ProviderApp",
    "ProviderCredential",
    "ProviderSecret",
    "TenantAppConfig",
]

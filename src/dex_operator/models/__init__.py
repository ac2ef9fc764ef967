"""Domain models representing connectors, credentials and Dex configuration."""

from dex_operator.models.base import DexOperatorModel, WireModel
from dex_operator.models.connector import (
    Connector,
    ProviderApp,
    ProviderCredential,
    ProviderSecret,
    TenantAppConfig,
)
from dex_operator.models.connectors import (
    CONNECTOR_TYPES_WITHOUT_REDIRECT_URI,
    DEX_CONNECTOR_TYPES,
    GitHubConfig,
    GitHubOrg,
    MicrosoftConfig,
    MockPasswordConfig,
    OIDCConfig,
)
from dex_operator.models.credentials import dump_credentials, load_credentials
from dex_operator.models.dex import DexConfig, DexOidc, DexOidcOwner


__all__ = [
    "CONNECTOR_TYPES_WITHOUT_REDIRECT_URI",
    "DEX_CONNECTOR_TYPES",
    "Connector",
    "DexConfig",
    "DexOidc",
    "DexOidcOwner",
    "DexOperatorModel",
    "GitHubConfig",
    "GitHubOrg",
    "MicrosoftConfig",
    "MockPasswordConfig",
    "OIDCConfig",
    "ProviderApp",
    "ProviderCredential",
    "ProviderSecret",
    "TenantAppConfig",
    "WireModel",
    "dump_credentials",
    "load_credentials",
]

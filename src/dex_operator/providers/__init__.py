"""Identity provider reconcilers and their registry."""

from dex_operator.providers.base import (
    Provider,
    ProviderConfig,
    ensure_unique_connector_ids,
)
from dex_operator.providers.registry import (
    available_providers,
    build_providers,
    create_provider,
    read_credentials,
)


__all__ = [
    "Provider",
    "ProviderConfig",
    "available_providers",
    "build_providers",
    "create_provider",
    "ensure_unique_connector_ids",
    "read_credentials",
]

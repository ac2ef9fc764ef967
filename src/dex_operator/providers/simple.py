"""Passthrough provider publishing an operator-supplied connector body."""

from __future__ import annotations
import logging
import re
import yaml
from dex_operator import key
from dex_operator.clock import add_months, utcnow
from dex_operator.errors import InvalidConfigError
from dex_operator.models import (
    CONNECTOR_TYPES_WITHOUT_REDIRECT_URI,
    DEX_CONNECTOR_TYPES,
    Connector,
    ProviderApp,
    TenantAppConfig,
)
from dex_operator.providers.base import (
    Provider,
    ProviderConfig,
    require_credential,
    validate_identity,
)


logger = logging.getLogger(__name__)

CONNECTOR_TYPE_KEY = "connectorType"
CONNECTOR_CONFIG_KEY = "connectorConfig"
VALIDITY_MONTHS = 6

_REDIRECT_URI_LINE = re.compile(r"^redirectURI:.*$", re.MULTILINE)


def uses_redirect_uri(connector_type: str) -> bool:
    """Return False for connector types that never redirect back to Dex."""
    return connector_type not in CONNECTOR_TYPES_WITHOUT_REDIRECT_URI


def _is_flow_mapping(config: str) -> bool:
    node = yaml.compose(config, Loader=yaml.SafeLoader)
    return isinstance(node, yaml.MappingNode) and bool(node.flow_style)


def inject_redirect_uri(connector_type: str, config: str, redirect_uri: str) -> str:
    """Set the top-level ``redirectURI`` key of a YAML body.

    Block style bodies keep every other line as written. Flow style bodies are
    re-dumped in block style since a key cannot be appended to them.
    """
    if not uses_redirect_uri(connector_type):
        return config
    if _is_flow_mapping(config):
        data = yaml.safe_load(config)
        data["redirectURI"] = redirect_uri
        return yaml.safe_dump(data, sort_keys=False)
    line = f"redirectURI: {redirect_uri}"
    if _REDIRECT_URI_LINE.search(config):
        return _REDIRECT_URI_LINE.sub(lambda _: line, config, count=1)
    body = config.rstrip("\n")
    return f"{body}\n{line}"


def validate_connector_config(connector_type: str, config: str) -> None:
    """Require a known Dex connector type and a YAML mapping body."""
    if connector_type not in DEX_CONNECTOR_TYPES:
        msg = f"Unknown connector type {connector_type!r}"
        raise InvalidConfigError(msg)
    try:
        data = yaml.safe_load(config)
    except yaml.YAMLError as exc:
        msg = f"Parse connector config: {exc}"
        raise InvalidConfigError(msg) from exc
    if data is not None and not isinstance(data, dict):
        msg = "Parse connector config: document must be a mapping"
        raise InvalidConfigError(msg)


class SimpleProvider(Provider):
    """Publish a static connector for IDPs the operator has no access to."""

    provider_name = "simple"
    display_name = "Simple Provider"

    def __init__(self, config: ProviderConfig) -> None:
        """Validate the connector type and body."""
        credential = config.credential
        validate_identity(credential)
        connector_type = require_credential(credential, CONNECTOR_TYPE_KEY)
        self._connector_config = require_credential(credential, CONNECTOR_CONFIG_KEY)
        validate_connector_config(connector_type, self._connector_config)
        super().__init__(
            name=key.get_provider_name(
                credential.owner, f"{self.provider_name}-{connector_type}"
            ),
            owner=credential.owner,
            type_=connector_type,
            description=credential.connector_description(self.display_name),
        )

    async def create_or_update_app(
        self, config: TenantAppConfig, old_connector: Connector | None
    ) -> ProviderApp:
        """Return the configured connector with the tenant's redirect URI."""
        connector_config = inject_redirect_uri(
            self.type, self._connector_config, config.redirect_uri
        )
        validate_connector_config(self.type, connector_config)
        return ProviderApp(
            connector=Connector(
                type=self.type,
                id=self.name,
                name=self.description,
                config=connector_config,
            ),
            secret_end_date_time=add_months(utcnow(), VALIDITY_MONTHS),
        )

    async def delete_app(self, name: str) -> None:
        """There is no remote app to delete."""
        return None

    async def get_credentials_for_authenticated_app(
        self, config: TenantAppConfig
    ) -> dict[str, str]:
        """The simple provider has no remote access and issues nothing."""
        logger.info(
            "No new credentials will be created for the %s provider because "
            "it does not allow dex-operator access.",
            self.provider_name,
        )
        return {}


__all__ = [
    "CONNECTOR_CONFIG_KEY",
    "CONNECTOR_TYPE_KEY",
    "SimpleProvider",
    "inject_redirect_uri",
    "uses_redirect_uri",
    "validate_connector_config",
]

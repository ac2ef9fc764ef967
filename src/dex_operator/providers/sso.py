"""OIDC connector pointing at the central Dex instance for cross-cluster SSO."""

from __future__ import annotations
import logging
from urllib.parse import urlparse
from dex_operator import key
from dex_operator.clock import add_months, utcnow
from dex_operator.errors import InvalidConfigError
from dex_operator.models import Connector, OIDCConfig, ProviderApp, TenantAppConfig
from dex_operator.providers.base import (
    Provider,
    ProviderConfig,
    require_credential,
    validate_identity,
)


logger = logging.getLogger(__name__)

CONNECTOR_TYPE = "oidc"
ISSUER_KEY = "issuer"
CLIENT_ID_KEY = "clientID"
CLIENT_SECRET_KEY = "clientSecret"
CENTRAL_CLUSTER_NAME_KEY = "centralClusterName"

SCOPES = ("openid", "profile", "email", "groups")
STATIC_VALIDITY_MONTHS = 12 * 10


def validate_issuer_url(issuer: str) -> None:
    """Require an HTTPS issuer URL with a host."""
    try:
        parsed = urlparse(issuer)
    except ValueError as exc:
        msg = f"issuer is not a valid URL: {exc}"
        raise InvalidConfigError(msg) from exc
    if parsed.scheme != "https":
        msg = f"issuer must use HTTPS scheme, got {parsed.scheme!r}"
        raise InvalidConfigError(msg)
    if not parsed.netloc:
        msg = "issuer must have a valid host"
        raise InvalidConfigError(msg)


class SSOProvider(Provider):
    """Let users of the central cluster log into this management cluster."""

    provider_name = "giantswarmsso"
    display_name = "Giant Swarm SSO"

    def __init__(self, config: ProviderConfig) -> None:
        """Validate the central Dex client registration."""
        credential = config.credential
        validate_identity(credential)
        self._issuer = require_credential(credential, ISSUER_KEY)
        validate_issuer_url(self._issuer)
        self._client_id = require_credential(credential, CLIENT_ID_KEY)
        self._client_secret = require_credential(credential, CLIENT_SECRET_KEY)
        self._central_cluster_name = require_credential(
            credential, CENTRAL_CLUSTER_NAME_KEY
        )
        self._management_cluster_name = config.management_cluster_name
        super().__init__(
            name=key.get_provider_name(credential.owner, self.provider_name),
            owner=credential.owner,
            type_=CONNECTOR_TYPE,
            description=credential.connector_description(self.display_name),
        )

    @property
    def is_central_cluster(self) -> bool:
        """Whether the operator runs on the central cluster itself."""
        return self._management_cluster_name == self._central_cluster_name

    async def create_or_update_app(
        self, config: TenantAppConfig, old_connector: Connector | None
    ) -> ProviderApp:
        """Return the static OIDC connector, or nothing on the central cluster."""
        if self.is_central_cluster:
            logger.info(
                "Skipping %s connector on central cluster %s",
                self.provider_name,
                self._central_cluster_name,
            )
            return ProviderApp.empty()
        connector_config = OIDCConfig(
            issuer=self._issuer,
            client_id=self._client_id,
            client_secret=self._client_secret,
            redirect_uri=config.redirect_uri,
            insecure_enable_groups=True,
            scopes=list(SCOPES),
        )
        return ProviderApp(
            connector=Connector(
                type=self.type,
                id=self.name,
                name=self.description,
                config=connector_config.to_yaml(),
            ),
            secret_end_date_time=add_months(utcnow(), STATIC_VALIDITY_MONTHS),
        )

    async def delete_app(self, name: str) -> None:
        """The client lives on the central cluster; nothing to delete here."""
        return None


__all__ = ["CONNECTOR_TYPE", "SCOPES", "SSOProvider", "validate_issuer_url"]

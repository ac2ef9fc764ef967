"""Azure AD provider reconciling app registrations through Microsoft Graph."""

from __future__ import annotations
import logging
from datetime import datetime
import httpx
from dex_operator import key
from dex_operator.clock import add_months, utcnow
from dex_operator.errors import NotFoundError, RenewalError
from dex_operator.models import (
    Connector,
    MicrosoftConfig,
    ProviderApp,
    ProviderSecret,
    TenantAppConfig,
)
from dex_operator.providers.azure.graph import (
    Application,
    GraphClient,
    PasswordCredential,
)
from dex_operator.providers.azure.patch import (
    TEMPLATE_APP_NAME,
    app_create_body,
    compute_app_update_patch,
    permissions_body,
)
from dex_operator.providers.azure.secret import (
    get_secret,
    get_secret_from_config,
    secret_changed,
    secret_expired,
    to_provider_secret,
)
from dex_operator.providers.base import (
    Provider,
    ProviderConfig,
    require_credential,
    validate_identity,
)


logger = logging.getLogger(__name__)

CONNECTOR_TYPE = "microsoft"
TENANT_ID_KEY = "tenant-id"
CLIENT_ID_KEY = "client-id"
CLIENT_SECRET_KEY = "client-secret"


class AzureProvider(Provider):
    """Manage one app registration and one named secret per tenant."""

    provider_name = "ad"
    display_name = "Azure AD"

    def __init__(
        self,
        config: ProviderConfig,
        *,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Validate the credentials and prepare the Graph client."""
        credential = config.credential
        validate_identity(credential)
        tenant_id = require_credential(credential, TENANT_ID_KEY)
        client_id = require_credential(credential, CLIENT_ID_KEY)
        client_secret = require_credential(credential, CLIENT_SECRET_KEY)
        super().__init__(
            name=key.get_provider_name(credential.owner, self.provider_name),
            owner=credential.owner,
            type_=CONNECTOR_TYPE,
            description=credential.connector_description(self.display_name),
        )
        self._tenant_id = tenant_id
        self._client_id = client_id
        self._graph = GraphClient(
            tenant_id=tenant_id,
            client_id=client_id,
            client_secret=client_secret,
            api_url=config.graph_api_url,
            login_url=config.graph_login_url,
            timeout=config.http_timeout_seconds,
            http_client=http_client,
        )

    @property
    def tenant_id(self) -> str:
        """Directory the provider's applications live in."""
        return self._tenant_id

    async def aclose(self) -> None:
        """Close the Graph client."""
        await self._graph.aclose()

    async def create_or_update_app(
        self, config: TenantAppConfig, old_connector: Connector | None
    ) -> ProviderApp:
        """Ensure the tenant application and its secret exist and are current."""
        old_secret = ""
        if old_connector is not None:
            old_secret = get_secret_from_config(old_connector.config)

        try:
            app = await self._graph.find_application(config.name)
        except NotFoundError:
            app = await self._create_app(config)
        else:
            await self._update_app(config, app)

        secret = await self._reconcile_secret(config, app, old_secret)
        connector_config = MicrosoftConfig(
            client_id=secret.client_id,
            client_secret=secret.client_secret,
            redirect_uri=config.redirect_uri,
            tenant=self._tenant_id,
        )
        return ProviderApp(
            connector=Connector(
                type=self.type,
                id=self.name,
                name=self.description,
                config=connector_config.to_yaml(),
            ),
            secret_end_date_time=secret.end_date_time,
        )

    async def _create_app(self, config: TenantAppConfig) -> Application:
        template = await self._graph.find_application(TEMPLATE_APP_NAME)
        app = await self._graph.create_application(app_create_body(config))
        await self._graph.update_application(app.id, permissions_body(template))
        logger.info(
            "Created %s app %s for %s", self.type, config.name, self.owner
        )
        return app

    async def _update_app(self, config: TenantAppConfig, app: Application) -> None:
        template = await self._graph.find_application(TEMPLATE_APP_NAME)
        needs_update, patch = compute_app_update_patch(config, app, template)
        if not needs_update:
            return
        await self._graph.update_application(app.id, patch)
        logger.info(
            "Updated %s app %s for %s: %s",
            self.type,
            config.name,
            self.owner,
            ", ".join(sorted(patch)),
        )

    def _secret_end_date(self, config: TenantAppConfig) -> datetime:
        return add_months(utcnow(), config.secret_validity_months)

    async def _create_secret(
        self, config: TenantAppConfig, app: Application
    ) -> ProviderSecret:
        created = await self._graph.add_password(
            app.id, config.name, self._secret_end_date(config)
        )
        if not created.secret_text:
            msg = f"Could not find client secret for app {config.name}."
            raise NotFoundError(msg)
        logger.info(
            "Created secret for %s app %s for %s", self.type, config.name, self.owner
        )
        return to_provider_secret(created, app, created.secret_text)

    async def _rotate_secret(
        self, config: TenantAppConfig, app: Application, secret: PasswordCredential
    ) -> ProviderSecret:
        if secret.key_id:
            await self._graph.remove_password(app.id, secret.key_id)
            logger.info(
                "Revoked secret for %s app %s for %s",
                self.type,
                config.name,
                self.owner,
            )
        return await self._create_secret(config, app)

    async def _reconcile_secret(
        self, config: TenantAppConfig, app: Application, old_secret: str
    ) -> ProviderSecret:
        try:
            secret = get_secret(app, config.name)
        except NotFoundError:
            return await self._create_secret(config, app)
        if secret_expired(secret):
            logger.info(
                "Secret for %s app %s for %s expires soon",
                self.type,
                config.name,
                self.owner,
            )
            return await self._rotate_secret(config, app, secret)
        if secret.secret_text:
            return to_provider_secret(secret, app, secret.secret_text)
        if not old_secret or secret_changed(secret, old_secret):
            logger.info(
                "Secret value for %s app %s for %s is unknown",
                self.type,
                config.name,
                self.owner,
            )
            return await self._rotate_secret(config, app, secret)
        return to_provider_secret(secret, app, old_secret)

    async def delete_app(self, name: str) -> None:
        """Delete the application called ``name`` if it exists."""
        try:
            app = await self._graph.find_application(name)
            await self._graph.delete_application(app.id)
        except NotFoundError:
            return
        logger.info("Deleted %s app %s for %s", self.type, name, self.owner)

    async def _authenticated_app(self) -> Application:
        return await self._graph.get_application_by_app_id(self._client_id)

    async def get_credentials_for_authenticated_app(
        self, config: TenantAppConfig
    ) -> dict[str, str]:
        """Issue a new secret for the app the operator authenticates as."""
        app = await self._authenticated_app()
        created = await self._graph.add_password(
            app.id, config.name, self._secret_end_date(config)
        )
        if not created.secret_text:
            msg = f"Could not find client secret for app {app.display_name}."
            raise NotFoundError(msg)
        return {
            TENANT_ID_KEY: self._tenant_id,
            CLIENT_ID_KEY: app.app_id,
            CLIENT_SECRET_KEY: created.secret_text,
        }

    async def clean_credentials_for_authenticated_app(
        self, config: TenantAppConfig
    ) -> None:
        """Revoke every secret on the operator app named after ``config``."""
        app = await self._authenticated_app()
        for credential in app.password_credentials:
            if credential.display_name == config.name and credential.key_id:
                await self._graph.remove_password(app.id, credential.key_id)

    async def delete_authenticated_app(self, config: TenantAppConfig) -> None:
        """Delete the app the operator authenticates as."""
        try:
            app = await self._authenticated_app()
            await self._graph.delete_application(app.id)
        except NotFoundError:
            return

    def supports_service_credential_renewal(self) -> bool:
        """Azure can rotate the operator's own client secret."""
        return True

    async def should_rotate_service_credentials(
        self, config: TenantAppConfig
    ) -> bool:
        """Return True when the operator's newest secret is close to expiry."""
        app = await self._authenticated_app()
        expiries = [
            credential.end_date_time
            for credential in app.password_credentials
            if credential.end_date_time is not None
        ]
        if not expiries:
            return True
        newest = max(expiries)
        return newest - utcnow() <= key.CREDENTIAL_RENEWAL_THRESHOLD

    async def rotate_service_credentials(
        self, config: TenantAppConfig
    ) -> dict[str, str]:
        """Add a new secret to the operator app and return it."""
        app = await self._authenticated_app()
        created = await self._graph.add_password(
            app.id, config.name, self._secret_end_date(config)
        )
        if not created.secret_text:
            msg = f"Graph returned no secret value for app {app.display_name}."
            raise RenewalError(msg)
        logger.info("Rotated service credentials of %s app %s", self.type, app.app_id)
        return {CLIENT_SECRET_KEY: created.secret_text, CLIENT_ID_KEY: app.app_id}


__all__ = [
    "CLIENT_ID_KEY",
    "CLIENT_SECRET_KEY",
    "CONNECTOR_TYPE",
    "TENANT_ID_KEY",
    "AzureProvider",
]

"""GitHub provider backed by a pre-registered GitHub App."""

from __future__ import annotations
import logging
import httpx
import yaml
from pydantic import ValidationError
from dex_operator import key
from dex_operator.clock import add_months
from dex_operator.errors import InvalidConfigError, MissingCallbackURIError
from dex_operator.models import (
    Connector,
    GitHubConfig,
    GitHubOrg,
    ProviderApp,
    ProviderSecret,
    TenantAppConfig,
)
from dex_operator.providers.base import (
    Provider,
    ProviderConfig,
    require_credential,
    validate_identity,
)
from dex_operator.providers.github.client import GitHubApp, GitHubAppClient


logger = logging.getLogger(__name__)

CONNECTOR_TYPE = "github"
ORGANIZATION_KEY = "organization"
TEAM_KEY = "team"
APP_ID_KEY = "app-id"
APP_SECRET_KEY = "app-secret"
CLIENT_ID_KEY = "client-id"
INSTALLATION_ID_KEY = "installation-id"
PRIVATE_KEY_KEY = "private-key"

SECRET_VALIDITY_MONTHS = 6
REQUIRED_PERMISSIONS = ("emails", "members")


def _require_int(value: str, field: str) -> int:
    try:
        return int(value)
    except ValueError as exc:
        msg = f"{value} is not a valid value for {field}: {exc}"
        raise InvalidConfigError(msg) from exc


def permissions_update_needed(app: GitHubApp) -> bool:
    """Return True when the app lacks a permission the connector relies on."""
    return any(not app.permissions.get(name) for name in REQUIRED_PERMISSIONS)


def get_secret_from_config(config: str) -> tuple[str, str]:
    """Return the client ID and secret stored in a previous connector config."""
    if not config:
        return "", ""
    try:
        data = yaml.safe_load(config)
        if not data:
            return "", ""
        previous = GitHubConfig.model_validate(data)
    except (yaml.YAMLError, ValidationError) as exc:
        msg = f"Previous connector configuration is malformed: {exc}"
        raise InvalidConfigError(msg) from exc
    return previous.client_id, previous.client_secret


class GitHubProvider(Provider):
    """Publish a connector for an existing GitHub App.

    The GitHub API can neither register callback URLs nor mint client secrets
    for an app, so the connector uses the configured app secret. Each pass
    verifies that the app is installed on the organisation and holds the
    permissions Dex needs to resolve emails and team membership.
    """

    provider_name = "github"
    display_name = "GitHub"

    def __init__(
        self,
        config: ProviderConfig,
        *,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Validate the app credentials and prepare the API client."""
        credential = config.credential
        validate_identity(credential)
        self._organization = require_credential(credential, ORGANIZATION_KEY)
        self._team = require_credential(credential, TEAM_KEY)
        self._secret = require_credential(credential, APP_SECRET_KEY)
        self._app_id = _require_int(
            require_credential(credential, APP_ID_KEY), APP_ID_KEY
        )
        self._installation_id = _require_int(
            require_credential(credential, INSTALLATION_ID_KEY), INSTALLATION_ID_KEY
        )
        private_key = require_credential(credential, PRIVATE_KEY_KEY)
        self._client_id = credential.credentials.get(CLIENT_ID_KEY, "")
        super().__init__(
            name=key.get_provider_name(credential.owner, self.provider_name),
            owner=credential.owner,
            type_=CONNECTOR_TYPE,
            description=credential.connector_description(self.display_name),
        )
        self._client = GitHubAppClient(
            app_id=self._app_id,
            private_key=private_key,
            api_url=config.github_api_url,
            timeout=config.http_timeout_seconds,
            http_client=http_client,
        )

    @property
    def organization(self) -> str:
        """Organisation whose team members may log in."""
        return self._organization

    async def aclose(self) -> None:
        """Close the GitHub client."""
        await self._client.aclose()

    async def create_or_update_app(
        self, config: TenantAppConfig, old_connector: Connector | None
    ) -> ProviderApp:
        """Check the app and return a connector using its credentials."""
        installation = await self._client.get_installation(self._installation_id)
        if installation.account.login.lower() != self._organization.lower():
            msg = (
                f"Installation {self._installation_id} belongs to "
                f"{installation.account.login}, not {self._organization}."
            )
            raise InvalidConfigError(msg)
        app = await self._client.get_app()
        if permissions_update_needed(app):
            logger.info(
                "Permissions of %s app %s for %s in github organization %s "
                "need update",
                self.type,
                app.slug,
                self.owner,
                self._organization,
            )
            msg = (
                f"{self.type} app {app.slug} for {self.owner} in github "
                f"organization {self._organization} needs update."
            )
            raise MissingCallbackURIError(msg)

        secret = self._get_secret(app, old_connector)
        connector_config = GitHubConfig(
            client_id=secret.client_id,
            client_secret=secret.client_secret,
            redirect_uri=config.redirect_uri,
            orgs=[GitHubOrg(name=self._organization, teams=[self._team])],
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

    def _get_secret(
        self, app: GitHubApp, old_connector: Connector | None
    ) -> ProviderSecret:
        client_id = self._client_id or app.client_id or str(self._app_id)
        old_id, old_secret = get_secret_from_config(
            old_connector.config if old_connector is not None else ""
        )
        if old_id and (old_id != client_id or old_secret != self._secret):
            logger.info(
                "Credentials of %s app %s for %s changed",
                self.type,
                app.slug,
                self.owner,
            )
        return ProviderSecret(
            client_id=client_id,
            client_secret=self._secret,
            end_date_time=add_months(app.created_at, SECRET_VALIDITY_MONTHS),
        )

    async def delete_app(self, name: str) -> None:
        """Nothing to delete; the app is shared and managed outside the operator."""
        logger.debug(
            "Keeping %s app for %s, %s has no app of its own",
            self.type,
            self.owner,
            name,
        )


__all__ = [
    "APP_ID_KEY",
    "APP_SECRET_KEY",
    "CONNECTOR_TYPE",
    "INSTALLATION_ID_KEY",
    "ORGANIZATION_KEY",
    "PRIVATE_KEY_KEY",
    "TEAM_KEY",
    "GitHubProvider",
    "permissions_update_needed",
]

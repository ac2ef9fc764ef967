"""Microsoft Graph application objects and a minimal async client for them."""

from __future__ import annotations
import asyncio
import logging
from collections.abc import Mapping
from datetime import datetime, timedelta
from typing import Any
from urllib.parse import quote
import httpx
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from dex_operator.clock import isoformat_z, utcnow
from dex_operator.errors import InvalidConfigError, NotFoundError, RequestFailedError


logger = logging.getLogger(__name__)

GRAPH_SCOPE = "https://graph.microsoft.com/.default"
_TOKEN_LEEWAY = timedelta(seconds=60)


class GraphModel(BaseModel):
    """Base for Graph resources; unknown attributes are kept for round trips."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="allow"
    )

    def to_graph(self) -> dict[str, Any]:
        """Return the camelCase payload understood by the Graph API."""
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class OptionalClaim(GraphModel):
    """A claim emitted into one token type."""

    name: str
    source: str | None = None
    essential: bool | None = None
    additional_properties: list[str] | None = None


class OptionalClaims(GraphModel):
    """Optional claims per token type."""

    access_token: list[OptionalClaim] = Field(default_factory=list)
    id_token: list[OptionalClaim] = Field(default_factory=list)
    saml2_token: list[OptionalClaim] = Field(default_factory=list)


class ResourceAccess(GraphModel):
    """A single delegated scope or application role."""

    id: str
    type: str


class RequiredResourceAccess(GraphModel):
    """Permissions the application requests on one resource."""

    resource_app_id: str
    resource_access: list[ResourceAccess] = Field(default_factory=list)


class WebApplication(GraphModel):
    """Web platform settings of an application."""

    redirect_uris: list[str] = Field(default_factory=list)


class PasswordCredential(GraphModel):
    """A client secret; ``secret_text`` is only present right after creation."""

    key_id: str | None = None
    display_name: str | None = None
    hint: str | None = None
    start_date_time: datetime | None = None
    end_date_time: datetime | None = None
    secret_text: str | None = None


class Application(GraphModel):
    """Application registration as returned by ``/applications``."""

    id: str = ""
    app_id: str = ""
    display_name: str = ""
    web: WebApplication | None = None
    optional_claims: OptionalClaims | None = None
    required_resource_access: list[RequiredResourceAccess] = Field(
        default_factory=list
    )
    password_credentials: list[PasswordCredential] = Field(default_factory=list)
    identifier_uris: list[str] = Field(default_factory=list)
    sign_in_audience: str | None = None


def _describe_error(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    error = payload.get("error") if isinstance(payload, Mapping) else None
    if isinstance(error, Mapping):
        return f"code: {error.get('code')} msg: {error.get('message')}"
    if isinstance(error, str):
        return f"{error}: {payload.get('error_description', '')}".rstrip(": ")
    return response.text


def _json_body(response: httpx.Response, context: str) -> dict[str, Any]:
    try:
        payload = response.json()
    except ValueError as exc:
        msg = f"{context} returned a body that is not JSON."
        raise RequestFailedError(msg, status_code=response.status_code) from exc
    if not isinstance(payload, dict):
        msg = f"{context} returned a JSON body that is not an object."
        raise RequestFailedError(msg, status_code=response.status_code)
    return payload


class GraphClient:
    """Thin async wrapper around the Graph application endpoints."""

    def __init__(
        self,
        *,
        tenant_id: str,
        client_id: str,
        client_secret: str,
        api_url: str = "https://graph.microsoft.com/v1.0",
        login_url: str = "https://login.microsoftonline.com",
        timeout: float = 30.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Create a client authenticating with the client credentials grant."""
        self._tenant_id = tenant_id
        self._client_id = client_id
        self._client_secret = client_secret
        self._api_url = api_url.rstrip("/")
        self._login_url = login_url.rstrip("/")
        self._http = http_client or httpx.AsyncClient(timeout=timeout)
        self._token: str | None = None
        self._token_expires_at: datetime | None = None
        self._token_lock = asyncio.Lock()

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self._http.aclose()

    async def _access_token(self) -> str:
        async with self._token_lock:
            now = utcnow()
            if (
                self._token is not None
                and self._token_expires_at is not None
                and now < self._token_expires_at
            ):
                return self._token
            url = f"{self._login_url}/{self._tenant_id}/oauth2/v2.0/token"
            try:
                response = await self._http.post(
                    url,
                    data={
                        "grant_type": "client_credentials",
                        "client_id": self._client_id,
                        "client_secret": self._client_secret,
                        "scope": GRAPH_SCOPE,
                    },
                )
            except httpx.HTTPError as exc:
                msg = f"Token request for tenant {self._tenant_id} failed: {exc}"
                raise RequestFailedError(msg) from exc
            if response.is_error:
                msg = (
                    f"Token request for tenant {self._tenant_id} failed: "
                    f"{_describe_error(response)}"
                )
                raise RequestFailedError(msg, status_code=response.status_code)
            context = f"Token request for tenant {self._tenant_id}"
            payload = _json_body(response, context)
            token = payload.get("access_token")
            if not token:
                msg = f"Token response for tenant {self._tenant_id} has no token."
                raise RequestFailedError(msg, status_code=response.status_code)
            try:
                expires_in = int(payload.get("expires_in", 3600))
            except (TypeError, ValueError) as exc:
                msg = f"Token response for tenant {self._tenant_id} has a bad expiry."
                raise RequestFailedError(msg, status_code=response.status_code) from exc
            self._token = token
            logger.debug("Fetched Graph token for tenant %s", self._tenant_id)
            self._token_expires_at = now + timedelta(seconds=expires_in) - _TOKEN_LEEWAY
            return token

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: Mapping[str, str] | None = None,
        json: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> dict[str, Any]:
        token = await self._access_token()
        request_headers = {"Authorization": f"Bearer {token}"}
        request_headers.update(headers or {})
        try:
            response = await self._http.request(
                method,
                f"{self._api_url}{path}",
                params=params,
                json=json,
                headers=request_headers,
            )
        except httpx.HTTPError as exc:
            msg = f"{method} {path} failed: {exc}"
            raise RequestFailedError(msg) from exc
        if response.status_code == httpx.codes.NOT_FOUND:
            msg = f"{method} {path} returned not found: {_describe_error(response)}"
            raise NotFoundError(msg)
        if response.is_error:
            msg = f"{method} {path} failed: {_describe_error(response)}"
            raise RequestFailedError(msg, status_code=response.status_code)
        if not response.content:
            return {}
        return _json_body(response, f"{method} {path}")

    async def find_application(self, display_name: str) -> Application:
        """Return the single application called ``display_name``."""
        escaped = display_name.replace("'", "''")
        payload = await self._request(
            "GET",
            "/applications",
            params={"$filter": f"displayName eq '{escaped}'", "$count": "true"},
            headers={"ConsistencyLevel": "eventual"},
        )
        applications = payload.get("value", [])
        count = payload.get("@odata.count", len(applications))
        if count == 0 or not applications:
            msg = f"No application with name {display_name} exists."
            raise NotFoundError(msg)
        if count != 1 or len(applications) != 1:
            msg = f"Expected 1 application {display_name}, got {count}."
            raise InvalidConfigError(msg)
        return Application.model_validate(applications[0])

    async def get_application_by_app_id(self, app_id: str) -> Application:
        """Return the application whose client ID is ``app_id``."""
        payload = await self._request(
            "GET", f"/applications(appId='{quote(app_id, safe='')}')"
        )
        return Application.model_validate(payload)

    async def create_application(self, body: Mapping[str, Any]) -> Application:
        """Create an application registration."""
        payload = await self._request("POST", "/applications", json=body)
        application = Application.model_validate(payload)
        if not application.id:
            msg = f"Could not find ID of app {body.get('displayName')}."
            raise NotFoundError(msg)
        return application

    async def update_application(
        self, object_id: str, patch: Mapping[str, Any]
    ) -> None:
        """Apply ``patch`` to the application with ``object_id``."""
        await self._request("PATCH", f"/applications/{object_id}", json=patch)

    async def delete_application(self, object_id: str) -> None:
        """Delete the application with ``object_id``."""
        await self._request("DELETE", f"/applications/{object_id}")

    async def add_password(
        self, object_id: str, display_name: str, end_date_time: datetime
    ) -> PasswordCredential:
        """Create a client secret on the application."""
        payload = await self._request(
            "POST",
            f"/applications/{object_id}/addPassword",
            json={
                "passwordCredential": {
                    "displayName": display_name,
                    "endDateTime": isoformat_z(end_date_time),
                }
            },
        )
        return PasswordCredential.model_validate(payload)

    async def remove_password(self, object_id: str, key_id: str) -> None:
        """Revoke the client secret with ``key_id``."""
        await self._request(
            "POST",
            f"/applications/{object_id}/removePassword",
            json={"keyId": key_id},
        )


__all__ = [
    "GRAPH_SCOPE",
    "Application",
    "GraphClient",
    "GraphModel",
    "OptionalClaim",
    "OptionalClaims",
    "PasswordCredential",
    "RequiredResourceAccess",
    "ResourceAccess",
    "WebApplication",
]

"""GitHub REST client authenticating as a GitHub App."""

from __future__ import annotations
import logging
from collections.abc import Mapping
from datetime import datetime, timedelta
from typing import Any
import httpx
import jwt
from pydantic import Field
from dex_operator.clock import utcnow
from dex_operator.errors import InvalidConfigError, NotFoundError, RequestFailedError
from dex_operator.models import DexOperatorModel


logger = logging.getLogger(__name__)

_JWT_BACKDATE = timedelta(seconds=60)
_JWT_LIFETIME = timedelta(minutes=9)
_API_VERSION = "2022-11-28"


class GitHubAccount(DexOperatorModel):
    """User or organisation owning an installation."""

    login: str = ""


class GitHubInstallation(DexOperatorModel):
    """Installation of the app on an account."""

    id: int
    account: GitHubAccount = Field(default_factory=GitHubAccount)


class GitHubApp(DexOperatorModel):
    """The authenticated GitHub App."""

    id: int
    slug: str = ""
    client_id: str = ""
    created_at: datetime
    permissions: dict[str, str] = Field(default_factory=dict)


def build_app_jwt(app_id: int, private_key: str, *, now: datetime | None = None) -> str:
    """Return a short-lived RS256 JWT identifying the app."""
    issued_at = (now or utcnow()) - _JWT_BACKDATE
    payload = {
        "iat": int(issued_at.timestamp()),
        "exp": int((issued_at + _JWT_LIFETIME).timestamp()),
        "iss": str(app_id),
    }
    try:
        return jwt.encode(payload, private_key, algorithm="RS256")
    except (ValueError, TypeError, jwt.PyJWTError) as exc:
        msg = f"private-key of GitHub app {app_id} is not a valid RSA key."
        raise InvalidConfigError(msg) from exc


class GitHubAppClient:
    """Read the app and installation endpoints of the GitHub REST API."""

    def __init__(
        self,
        *,
        app_id: int,
        private_key: str,
        api_url: str = "https://api.github.com",
        timeout: float = 30.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Create a client signing requests with the app's private key."""
        self._app_id = app_id
        self._private_key = private_key
        self._api_url = api_url.rstrip("/")
        self._http = http_client or httpx.AsyncClient(timeout=timeout)

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self._http.aclose()

    async def _get(self, path: str) -> Mapping[str, Any]:
        token = build_app_jwt(self._app_id, self._private_key)
        headers = {
            "Accept": "application/vnd.github+json",
            "Authorization": f"Bearer {token}",
            "X-GitHub-Api-Version": _API_VERSION,
        }
        try:
            response = await self._http.get(f"{self._api_url}{path}", headers=headers)
        except httpx.HTTPError as exc:
            msg = f"GET {path} failed: {exc}"
            raise RequestFailedError(msg) from exc
        if response.status_code == httpx.codes.NOT_FOUND:
            msg = f"GET {path} returned not found."
            raise NotFoundError(msg)
        if response.is_error:
            try:
                body = response.json()
            except ValueError:
                body = None
            detail = (
                body.get("message", response.text)
                if isinstance(body, Mapping)
                else response.text
            )
            msg = f"GET {path} failed: {detail}"
            raise RequestFailedError(msg, status_code=response.status_code)
        logger.debug("GET %s returned %s", path, response.status_code)
        try:
            payload = response.json()
        except ValueError as exc:
            msg = f"GET {path} returned a body that is not JSON."
            raise RequestFailedError(msg, status_code=response.status_code) from exc
        if not isinstance(payload, Mapping):
            msg = f"GET {path} returned a JSON body that is not an object."
            raise RequestFailedError(msg, status_code=response.status_code)
        return payload

    async def get_app(self) -> GitHubApp:
        """Return the app the private key belongs to."""
        return GitHubApp.model_validate(await self._get("/app"))

    async def get_installation(self, installation_id: int) -> GitHubInstallation:
        """Return one installation of the app."""
        payload = await self._get(f"/app/installations/{installation_id}")
        return GitHubInstallation.model_validate(payload)


__all__ = [
    "GitHubAccount",
    "GitHubApp",
    "GitHubAppClient",
    "GitHubInstallation",
    "build_app_jwt",
]

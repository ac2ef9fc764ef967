"""Expiry and reuse policy for application password credentials."""

from __future__ import annotations
from datetime import datetime, timedelta
import yaml
from pydantic import ValidationError
from dex_operator.clock import utcnow
from dex_operator.errors import InvalidConfigError, NotFoundError
from dex_operator.models import MicrosoftConfig, ProviderSecret
from dex_operator.providers.azure.graph import Application, PasswordCredential


SECRET_EXPIRY_WINDOW = timedelta(days=10)


def secret_expired(
    secret: PasswordCredential, *, now: datetime | None = None
) -> bool:
    """Return True when the secret expires within the look-ahead window."""
    if secret.end_date_time is None:
        return True
    moment = now or utcnow()
    return secret.end_date_time <= moment + SECRET_EXPIRY_WINDOW


def secret_changed(secret: PasswordCredential, old_secret: str) -> bool:
    """Return True when ``old_secret`` is not the value behind ``secret``."""
    if not secret.hint:
        return True
    return not old_secret.startswith(secret.hint)


def get_secret(app: Application, name: str) -> PasswordCredential:
    """Return the password credential called ``name``."""
    for credential in app.password_credentials:
        if credential.display_name == name:
            return credential
    msg = f"Did not find credential {name}."
    raise NotFoundError(msg)


def get_secret_from_config(config: str) -> str:
    """Return the client secret stored in a previous connector configuration."""
    if not config:
        return ""
    try:
        data = yaml.safe_load(config)
        if not data:
            return ""
        return MicrosoftConfig.model_validate(data).client_secret
    except (yaml.YAMLError, ValidationError) as exc:
        msg = f"Previous connector configuration is malformed: {exc}"
        raise InvalidConfigError(msg) from exc


def to_provider_secret(
    secret: PasswordCredential, app: Application, old_secret: str
) -> ProviderSecret:
    """Combine the remote credential with its known value."""
    if secret.secret_text:
        client_secret = secret.secret_text
    elif old_secret:
        client_secret = old_secret
    else:
        msg = (
            "Cannot retrieve secret value for existing secret "
            "and no old secret provided."
        )
        raise InvalidConfigError(msg)
    if not app.app_id:
        msg = "Could not find client ID for secret."
        raise NotFoundError(msg)
    if secret.end_date_time is None:
        msg = "Could not find expiry time for secret."
        raise NotFoundError(msg)
    return ProviderSecret(
        client_id=app.app_id,
        client_secret=client_secret,
        end_date_time=secret.end_date_time,
    )


__all__ = [
    "SECRET_EXPIRY_WINDOW",
    "get_secret",
    "get_secret_from_config",
    "secret_changed",
    "secret_expired",
    "to_provider_secret",
]

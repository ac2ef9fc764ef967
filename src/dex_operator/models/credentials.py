"""YAML codec for provider credential lists."""

from __future__ import annotations
from collections.abc import Iterable
import yaml
from pydantic import ValidationError
from dex_operator.errors import InvalidConfigError
from dex_operator.models.connector import ProviderCredential


def load_credentials(document: str | bytes) -> list[ProviderCredential]:
    """Parse an ordered credential list from YAML."""
    try:
        data = yaml.safe_load(document)
    except yaml.YAMLError as exc:
        msg = f"Credentials are not valid YAML: {exc}"
        raise InvalidConfigError(msg) from exc
    if data is None:
        return []
    if not isinstance(data, list):
        msg = "Credentials must be a list of providers."
        raise InvalidConfigError(msg)
    try:
        return [ProviderCredential.model_validate(entry) for entry in data]
    except ValidationError as exc:
        msg = f"Credentials are malformed: {exc}"
        raise InvalidConfigError(msg) from exc


def dump_credentials(credentials: Iterable[ProviderCredential]) -> str:
    """Serialise credentials to YAML, keeping their order."""
    payload = []
    for credential in credentials:
        entry: dict[str, object] = {
            "name": credential.name,
            "owner": credential.owner,
            "credentials": dict(credential.credentials),
        }
        if credential.description:
            entry["description"] = credential.description
        payload.append(entry)
    return yaml.safe_dump(payload, sort_keys=False)


__all__ = ["dump_credentials", "load_credentials"]

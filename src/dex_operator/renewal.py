"""Self renewal of the credentials the operator authenticates with."""

from __future__ import annotations
import json
import logging
import os
import tempfile
import threading
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from dex_operator import key
from dex_operator.clock import isoformat_z, utcnow
from dex_operator.errors import InvalidConfigError, RenewalError
from dex_operator.models import (
    ProviderCredential,
    TenantAppConfig,
    dump_credentials,
    load_credentials,
)
from dex_operator.providers.base import Provider


logger = logging.getLogger(__name__)


@dataclass(slots=True)
class StoredCredentials:
    """Secret-like document holding the operator's credential list."""

    data: dict[str, str] = field(default_factory=dict)
    annotations: dict[str, str] = field(default_factory=dict)

    def copy(self) -> StoredCredentials:
        """Return an independent copy."""
        return StoredCredentials(
            data=dict(self.data), annotations=dict(self.annotations)
        )


class CredentialStore:
    """Base class for persisted credential stores.

    Reads and writes are serialised by ``lock``; the renewal service holds it
    for the whole read-merge-write cycle.
    """

    def __init__(self) -> None:
        """Initialise the store lock."""
        self.lock = threading.Lock()

    def load(self) -> StoredCredentials:
        """Return the stored document or raise ``RenewalError`` when missing."""
        return self._read()

    def save(self, stored: StoredCredentials) -> None:
        """Replace the stored document."""
        self._write(stored)

    def _read(self) -> StoredCredentials:  # pragma: no cover
        raise NotImplementedError

    def _write(self, stored: StoredCredentials) -> None:  # pragma: no cover
        raise NotImplementedError


class InMemoryCredentialStore(CredentialStore):
    """Ephemeral store used in tests."""

    def __init__(self, stored: StoredCredentials | None = None) -> None:
        """Create a store, optionally pre-populated."""
        super().__init__()
        self._stored = stored.copy() if stored is not None else None
        self.writes = 0

    def _read(self) -> StoredCredentials:
        if self._stored is None:
            msg = "Self renewal credential store does not exist."
            raise RenewalError(msg)
        return self._stored.copy()

    def _write(self, stored: StoredCredentials) -> None:
        self._stored = stored.copy()
        self.writes += 1


class FileCredentialStore(CredentialStore):
    """Store keeping the credential YAML in a file and annotations beside it."""

    def __init__(self, path: str | Path) -> None:
        """Create a store rooted at ``path``."""
        super().__init__()
        self._path = Path(path).expanduser()

    @property
    def path(self) -> Path:
        """Location of the credential YAML document."""
        return self._path

    @property
    def annotations_path(self) -> Path:
        """Location of the JSON annotation sidecar."""
        return self._path.with_name(f"{self._path.name}.annotations.json")

    def _read(self) -> StoredCredentials:
        try:
            document = self._path.read_text(encoding="utf-8")
        except FileNotFoundError as exc:
            msg = f"Self renewal credential store {self._path} does not exist."
            raise RenewalError(msg) from exc
        annotations: dict[str, str] = {}
        if self.annotations_path.exists():
            try:
                annotations = json.loads(self.annotations_path.read_text("utf-8"))
            except json.JSONDecodeError as exc:
                msg = f"Annotations of {self._path} are not valid JSON."
                raise RenewalError(msg) from exc
        return StoredCredentials(
            data={key.CREDENTIALS_DATA_KEY: document}, annotations=annotations
        )

    def _replace(self, target: Path, content: str) -> None:
        target.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=target.parent, prefix=f".{target.name}.")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(content)
            os.replace(tmp_name, target)
        except OSError:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def _write(self, stored: StoredCredentials) -> None:
        document = stored.data.get(key.CREDENTIALS_DATA_KEY)
        if document is None:
            msg = f"Refusing to write {self._path} without credentials."
            raise RenewalError(msg)
        self._replace(self._path, document)
        self._replace(
            self.annotations_path, json.dumps(stored.annotations, sort_keys=True)
        )


@dataclass(slots=True)
class RenewalReport:
    """Summary of one self renewal pass."""

    rotated: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)
    rotated_at: datetime | None = None

    @property
    def persisted(self) -> bool:
        """Whether rotated credentials were written to the store."""
        return self.rotated_at is not None


def merge_rotated_credentials(
    credentials: Sequence[ProviderCredential],
    rotated: Mapping[tuple[str, str], Mapping[str, str]],
) -> list[ProviderCredential]:
    """Merge rotated keys into the matching ``(name, owner)`` entries."""
    remaining = dict(rotated)
    merged: list[ProviderCredential] = []
    for credential in credentials:
        identity = (credential.name, credential.owner)
        update = remaining.pop(identity, None)
        if update is None:
            merged.append(credential)
            continue
        merged.append(
            credential.model_copy(
                update={"credentials": {**credential.credentials, **update}}
            )
        )
    if remaining:
        missing = ", ".join(f"{name}/{owner}" for name, owner in sorted(remaining))
        msg = f"Rotated providers {missing} are not present in the credential store."
        raise RenewalError(msg)
    return merged


class SelfRenewalService:
    """Rotate the operator's own provider credentials when they run short."""

    def __init__(
        self,
        providers: Sequence[Provider],
        store: CredentialStore,
        *,
        management_cluster_name: str,
        issuer_address: str = "",
        secret_validity_months: int = key.SECRET_VALIDITY_MONTHS,
    ) -> None:
        """Create the service for the operator of ``management_cluster_name``."""
        if not management_cluster_name:
            msg = "no management cluster name given"
            raise InvalidConfigError(msg)
        self._providers = list(providers)
        self._store = store
        self._management_cluster_name = management_cluster_name
        self._issuer_address = issuer_address
        self._secret_validity_months = secret_validity_months

    def operator_app_config(self) -> TenantAppConfig:
        """Return the synthetic app config describing the operator itself."""
        name = key.get_dex_operator_name(self._management_cluster_name)
        return TenantAppConfig(
            name=name,
            redirect_uri=key.get_redirect_uri(self._issuer_address)
            if self._issuer_address
            else "",
            identifier_uri=key.get_identifier_uri(name),
            secret_validity_months=self._secret_validity_months,
        )

    async def _rotate_provider(
        self, provider: Provider, config: TenantAppConfig, report: RenewalReport
    ) -> dict[str, str] | None:
        try:
            due = await provider.should_rotate_service_credentials(config)
        except Exception as exc:
            logger.warning(
                "Failed to check self-renewal for provider %s: %s", provider.name, exc
            )
            report.failed[provider.name] = str(exc)
            return None
        if not due:
            logger.debug("No self-renewal needed for provider %s", provider.name)
            return None
        try:
            rotated = await provider.rotate_service_credentials(config)
        except Exception as exc:
            logger.warning(
                "Failed to rotate credentials of provider %s: %s", provider.name, exc
            )
            report.failed[provider.name] = str(exc)
            return None
        logger.info("Rotated credentials of provider %s", provider.name)
        return rotated

    async def check_and_rotate(self) -> RenewalReport:
        """Rotate due credentials and merge them into the credential store."""
        config = self.operator_app_config()
        report = RenewalReport()
        rotated: dict[tuple[str, str], dict[str, str]] = {}
        for provider in self._providers:
            if not provider.supports_service_credential_renewal():
                continue
            values = await self._rotate_provider(provider, config, report)
            if values:
                rotated[(provider.provider_name, provider.owner)] = values
                report.rotated.append(provider.name)

        if not rotated:
            logger.info("No self-renewal needed")
            return report

        with self._store.lock:
            stored = self._store.load()
            document = stored.data.get(key.CREDENTIALS_DATA_KEY)
            if document is None:
                msg = f"Credential store has no {key.CREDENTIALS_DATA_KEY!r} entry."
                raise RenewalError(msg)
            try:
                credentials = load_credentials(document)
            except InvalidConfigError as exc:
                msg = f"Credential store is unreadable: {exc}"
                raise RenewalError(msg) from exc
            merged = merge_rotated_credentials(credentials, rotated)
            rotated_at = utcnow()
            updated = stored.copy()
            updated.data[key.CREDENTIALS_DATA_KEY] = dump_credentials(merged)
            updated.annotations[key.SELF_RENEWAL_ANNOTATION] = isoformat_z(rotated_at)
            try:
                self._store.save(updated)
            except OSError as exc:
                msg = f"Failed to persist rotated credentials: {exc}"
                raise RenewalError(msg) from exc
        report.rotated_at = rotated_at
        logger.info("Persisted rotated credentials for %s", ", ".join(report.rotated))
        return report


__all__ = [
    "CredentialStore",
    "FileCredentialStore",
    "InMemoryCredentialStore",
    "RenewalReport",
    "SelfRenewalService",
    "StoredCredentials",
    "merge_rotated_credentials",
]

"""Assemble the two-tier Dex configuration from the configured providers."""

from __future__ import annotations
import asyncio
import logging
import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from pydantic import ValidationError
from dex_operator import key
from dex_operator.errors import DexOperatorError, InvalidConfigError
from dex_operator.metrics import AppInfoLabels, MetricsSink, NullMetricsSink
from dex_operator.models import (
    Connector,
    DexConfig,
    DexOidc,
    DexOidcOwner,
    ProviderApp,
    TenantAppConfig,
)
from dex_operator.providers.base import Provider, ensure_unique_connector_ids


logger = logging.getLogger(__name__)

_BASE_DOMAIN_PATTERN = re.compile(rf"({key.BASE_DOMAIN_KEY})(\s*:\s*)(\S+)")


@dataclass(slots=True)
class ProviderFailure:
    """A provider that could not be reconciled in this pass."""

    provider: str
    owner: str
    error: Exception

    @property
    def reason(self) -> str:
        """Return the error message."""
        return str(self.error)


@dataclass(slots=True)
class ReconcileResult:
    """Configuration assembled from one pass over all providers."""

    config: DexConfig
    failures: list[ProviderFailure] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        """Return True when every provider was reconciled."""
        return not self.failures


@dataclass(slots=True)
class ReconcileOutcome:
    """Result of reconciling one tenant against its stored configuration."""

    config: DexConfig
    needs_update: bool
    secret_data: dict[str, bytes] | None = None
    failures: list[ProviderFailure] = field(default_factory=list)

    @property
    def requeue(self) -> bool:
        """Whether the pass should be retried because a provider failed."""
        return bool(self.failures)


def get_connectors_from_config(config: DexConfig) -> dict[str, Connector]:
    """Index all connectors of ``config`` by their ID."""
    return {connector.id: connector for _, connector in config.iter_connectors()}


def _owner_needs_update(old: DexOidcOwner | None, new: DexOidcOwner | None) -> bool:
    if old is None or new is None:
        return (old is None) != (new is None)
    return [c.id for c in old.connectors] != [c.id for c in new.connectors]


def _connectors_need_update(
    old_connectors: Mapping[str, Connector], new_connectors: Mapping[str, Connector]
) -> bool:
    needs_update = False
    for connector_id, connector in new_connectors.items():
        previous = old_connectors.get(connector_id)
        if previous is None:
            needs_update = True
            logger.info("Created app %s of type %s.", connector.name, connector.type)
        elif previous != connector:
            needs_update = True
            logger.info("Updated app %s of type %s.", connector.name, connector.type)
    for connector_id, connector in old_connectors.items():
        if connector_id not in new_connectors:
            needs_update = True
            logger.info(
                "App %s of type %s was removed. "
                "Please check provider for possible leftovers",
                connector.name,
                connector.type,
            )
    return needs_update


def secret_data_needs_update(old: DexConfig, new: DexConfig) -> bool:
    """Return True when ``new`` differs from the stored ``old`` configuration."""
    if _owner_needs_update(old.oidc.giantswarm, new.oidc.giantswarm):
        return True
    if _owner_needs_update(old.oidc.customer, new.oidc.customer):
        return True
    return _connectors_need_update(
        get_connectors_from_config(old), get_connectors_from_config(new)
    )


def get_base_domain_from_cluster_values(values: str | None) -> str:
    """Extract the ``baseDomain`` value from a cluster values document."""
    if not values:
        return ""
    match = _BASE_DOMAIN_PATTERN.search(values)
    return match.group(3) if match else ""


def resolve_issuer_address(
    *,
    base_domain: str = "",
    management_cluster_issuer_address: str = "",
    management_cluster_base_domain: str = "",
) -> str:
    """Return the Dex issuer address of a tenant.

    The tenant's own base domain wins, then the management cluster's issuer
    address, then the vintage domain derived from the management cluster base
    domain.
    """
    if base_domain:
        return key.get_issuer_address(base_domain)
    if management_cluster_issuer_address:
        return management_cluster_issuer_address
    if not management_cluster_base_domain:
        msg = "no management cluster base domain given"
        raise InvalidConfigError(msg)
    return key.get_issuer_address(
        key.get_vintage_cluster_domain(management_cluster_base_domain)
    )


def build_app_config(
    *,
    name: str,
    namespace: str,
    management_cluster_name: str,
    issuer_address: str,
    secret_validity_months: int = key.SECRET_VALIDITY_MONTHS,
) -> TenantAppConfig:
    """Return the desired app registration for a Dex instance."""
    if not management_cluster_name:
        msg = "no management cluster name given"
        raise InvalidConfigError(msg)
    app_name = key.get_idp_app_name(management_cluster_name, namespace, name)
    return TenantAppConfig(
        name=app_name,
        redirect_uri=key.get_redirect_uri(issuer_address),
        identifier_uri=key.get_identifier_uri(app_name),
        issuer_uri=key.get_issuer_uri(issuer_address),
        secret_validity_months=secret_validity_months,
    )


def parse_secret_data(secret_data: Mapping[str, bytes | str] | None) -> DexConfig:
    """Parse the stored configuration, raising ``InvalidConfigError`` on garbage."""
    try:
        return DexConfig.from_secret_data(secret_data)
    except (ValidationError, ValueError) as exc:
        msg = f"Stored dex config is malformed: {exc}"
        raise InvalidConfigError(msg) from exc


class ReconcileService:
    """Reconcile every configured provider for one Dex instance."""

    def __init__(
        self,
        providers: Sequence[Provider],
        *,
        app_name: str,
        app_namespace: str,
        metrics: MetricsSink | None = None,
    ) -> None:
        """Validate provider owners and connector IDs, then store the collaborators."""
        for provider in providers:
            if provider.owner not in key.OWNERS:
                msg = f"Owner {provider.owner} is not known."
                raise InvalidConfigError(msg)
        ensure_unique_connector_ids(providers)
        self._providers = list(providers)
        self._app_name = app_name
        self._app_namespace = app_namespace
        self._metrics: MetricsSink = metrics or NullMetricsSink()

    @property
    def providers(self) -> list[Provider]:
        """Configured providers in reconcile order."""
        return list(self._providers)

    def _labels(self, provider: Provider, registration_name: str) -> AppInfoLabels:
        return AppInfoLabels(
            app_name=self._app_name,
            app_namespace=self._app_namespace,
            app_owner=provider.owner,
            provider_type=provider.type,
            provider_name=provider.name,
            app_registration_name=registration_name,
        )

    async def create_or_update_provider_apps(
        self, config: TenantAppConfig, old_connectors: Mapping[str, Connector]
    ) -> ReconcileResult:
        """Run every provider and group the resulting connectors by owner."""
        results = await asyncio.gather(
            *(
                provider.create_or_update_app(config, old_connectors.get(provider.name))
                for provider in self._providers
            ),
            return_exceptions=True,
        )
        tiers: dict[str, list[Connector]] = {owner: [] for owner in key.OWNERS}
        failures: list[ProviderFailure] = []
        for provider, result in zip(self._providers, results, strict=True):
            if isinstance(result, BaseException):
                if not isinstance(result, Exception):
                    raise result
                logger.warning(
                    "Failed to reconcile app %s of type %s for %s: %s",
                    provider.name,
                    provider.type,
                    provider.owner,
                    result,
                )
                failures.append(
                    ProviderFailure(
                        provider=provider.name, owner=provider.owner, error=result
                    )
                )
                previous = old_connectors.get(provider.name)
                if previous is not None:
                    tiers[provider.owner].append(previous)
                continue
            app: ProviderApp = result
            if app.is_empty:
                continue
            tiers[provider.owner].append(app.connector)
            if app.secret_end_date_time is not None:
                self._metrics.set_secret_expiry(
                    self._labels(provider, config.name), app.secret_end_date_time
                )

        oidc = DexOidc(
            giantswarm=DexOidcOwner(connectors=tiers[key.OWNER_GIANTSWARM])
            if tiers[key.OWNER_GIANTSWARM]
            else None,
            customer=DexOidcOwner(connectors=tiers[key.OWNER_CUSTOMER])
            if tiers[key.OWNER_CUSTOMER]
            else None,
        )
        return ReconcileResult(config=DexConfig(oidc=oidc), failures=failures)

    async def delete_provider_apps(self, app_name: str) -> None:
        """Delete the app registration on every provider."""
        errors: list[str] = []
        for provider in self._providers:
            try:
                await provider.delete_app(app_name)
            except DexOperatorError as exc:
                logger.warning(
                    "Failed to delete app %s of type %s for %s: %s",
                    provider.name,
                    provider.type,
                    provider.owner,
                    exc,
                )
                errors.append(f"{provider.name}: {exc}")
                continue
            logger.info(
                "Deleted app %s of type %s for %s.",
                provider.name,
                provider.type,
                provider.owner,
            )
            self._metrics.delete_secret_expiry(self._labels(provider, app_name))
        if errors:
            msg = f"Failed to delete app {app_name}: {'; '.join(errors)}"
            raise DexOperatorError(msg)

    async def reconcile(
        self,
        config: TenantAppConfig,
        secret_data: Mapping[str, bytes | str] | None = None,
    ) -> ReconcileOutcome:
        """Reconcile providers and decide whether the stored config must change."""
        old_config = parse_secret_data(secret_data)
        result = await self.create_or_update_provider_apps(
            config, get_connectors_from_config(old_config)
        )
        needs_update = secret_data_needs_update(old_config, result.config)
        return ReconcileOutcome(
            config=result.config,
            needs_update=needs_update,
            secret_data=result.config.to_secret_data() if needs_update else None,
            failures=result.failures,
        )

    async def aclose(self) -> None:
        """Close every provider."""
        await asyncio.gather(*(provider.aclose() for provider in self._providers))


__all__ = [
    "ProviderFailure",
    "ReconcileOutcome",
    "ReconcileResult",
    "ReconcileService",
    "build_app_config",
    "get_base_domain_from_cluster_values",
    "get_connectors_from_config",
    "parse_secret_data",
    "resolve_issuer_address",
    "secret_data_needs_update",
]

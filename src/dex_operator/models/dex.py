"""Two-tier Dex configuration persisted in the gateway config secret."""

from __future__ import annotations
import json
from collections.abc import Iterator, Mapping
from typing import Any
from pydantic import Field
from dex_operator import key
from dex_operator.models.base import DexOperatorModel
from dex_operator.models.connector import Connector


class DexOidcOwner(DexOperatorModel):
    """Ordered connectors belonging to one owner tier."""

    connectors: list[Connector] = Field(default_factory=list)


class DexOidc(DexOperatorModel):
    """Connectors split into the platform tier and the customer tier."""

    giantswarm: DexOidcOwner | None = None
    customer: DexOidcOwner | None = None

    def tier(self, owner: str) -> DexOidcOwner | None:
        """Return the tier for ``owner``."""
        if owner == key.OWNER_GIANTSWARM:
            return self.giantswarm
        if owner == key.OWNER_CUSTOMER:
            return self.customer
        msg = f"Owner {owner} is not known."
        raise ValueError(msg)


class DexConfig(DexOperatorModel):
    """Gateway configuration document."""

    oidc: DexOidc = Field(default_factory=DexOidc)

    def iter_connectors(self) -> Iterator[tuple[str, Connector]]:
        """Yield ``(owner, connector)`` pairs, platform tier first."""
        for owner in key.OWNERS:
            tier = self.oidc.tier(owner)
            if tier is None:
                continue
            for connector in tier.connectors:
                yield owner, connector

    def to_payload(self) -> dict[str, Any]:
        """Return the JSON-ready payload, omitting empty tiers."""
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")

    def to_json(self) -> str:
        """Serialise the configuration as compact JSON."""
        return json.dumps(self.to_payload(), separators=(",", ":"))

    def to_secret_data(self) -> dict[str, bytes]:
        """Return the secret data map holding this configuration."""
        return {key.DEX_CONFIG_DATA_KEY: self.to_json().encode("utf-8")}

    @classmethod
    def from_secret_data(cls, data: Mapping[str, bytes | str] | None) -> DexConfig:
        """Parse the configuration stored in a secret, empty when absent."""
        if not data:
            return cls()
        raw = data.get(key.DEX_CONFIG_DATA_KEY)
        if not raw:
            return cls()
        text = raw.decode("utf-8") if isinstance(raw, bytes) else raw
        return cls.model_validate_json(text)


__all__ = ["DexConfig", "DexOidc", "DexOidcOwner"]

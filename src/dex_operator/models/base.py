"""Base model shared by operator data shapes."""

from __future__ import annotations
from typing import Any
import yaml
from pydantic import BaseModel, ConfigDict


class DexOperatorModel(BaseModel):
    """Base model that accepts both field names and wire aliases."""

    model_config = ConfigDict(
        populate_by_name=True, extra="ignore", coerce_numbers_to_str=True
    )


class WireModel(DexOperatorModel):
    """Model serialised with its on-wire aliases, omitting unset optionals."""

    def to_wire(self) -> dict[str, Any]:
        """Return the aliased payload without default-valued optional fields."""
        return self.model_dump(by_alias=True, exclude_defaults=True, mode="json")

    def to_yaml(self) -> str:
        """Serialise the payload as a YAML document."""
        return yaml.safe_dump(self.to_wire(), sort_keys=False)

    @classmethod
    def from_yaml(cls, document: str):
        """Parse a YAML (or JSON) document into the model."""
        data = yaml.safe_load(document) if document else {}
        if not isinstance(data, dict):
            msg = f"{cls.__name__} document must be a mapping"
            raise ValueError(msg)
        return cls.model_validate(data)


__all__ = ["DexOperatorModel", "WireModel"]

"""Secret expiry metrics recorded by the reconciler."""

from __future__ import annotations
import threading
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Protocol


METRIC_NAME = "dex_operator_idp_secret_expiry_time"


@dataclass(frozen=True, slots=True)
class AppInfoLabels:
    """Label set identifying one app registration of one provider."""

    app_name: str
    app_namespace: str
    app_owner: str
    provider_type: str
    provider_name: str
    app_registration_name: str

    def as_dict(self) -> dict[str, str]:
        """Return the labels keyed by their exported names."""
        return {
            "app_name": self.app_name,
            "app_namespace": self.app_namespace,
            "app_owner": self.app_owner,
            "provider_type": self.provider_type,
            "provider_name": self.provider_name,
            "app_registration_name": self.app_registration_name,
        }


class MetricsSink(Protocol):
    """Destination for secret expiry timestamps."""

    def set_secret_expiry(self, labels: AppInfoLabels, expires_at: datetime) -> None:
        """Record the expiry of the secret identified by ``labels``."""

    def delete_secret_expiry(self, labels: AppInfoLabels) -> None:
        """Forget the expiry recorded for ``labels``."""


@dataclass(slots=True)
class GaugeSample:
    """Represents a single gauge datapoint."""

    labels: AppInfoLabels
    value: float
    recorded_at: datetime = field(default_factory=lambda: datetime.now(tz=UTC))


class SecretExpiryGauge:
    """In-memory gauge keyed by app registration labels."""

    def __init__(self) -> None:
        """Initialise an empty gauge."""
        self._samples: dict[AppInfoLabels, GaugeSample] = {}
        self._lock = threading.Lock()

    def set_secret_expiry(self, labels: AppInfoLabels, expires_at: datetime) -> None:
        """Store the expiry as a unix timestamp."""
        with self._lock:
            self._samples[labels] = GaugeSample(
                labels=labels, value=float(int(expires_at.timestamp()))
            )

    def delete_secret_expiry(self, labels: AppInfoLabels) -> None:
        """Remove the sample for ``labels`` if present."""
        with self._lock:
            self._samples.pop(labels, None)

    def get(self, labels: AppInfoLabels) -> float | None:
        """Return the recorded value for ``labels``."""
        with self._lock:
            sample = self._samples.get(labels)
        return None if sample is None else sample.value

    def snapshot(self) -> list[GaugeSample]:
        """Return all samples sorted by provider and registration name."""
        with self._lock:
            samples = list(self._samples.values())
        return sorted(
            samples,
            key=lambda sample: (
                sample.labels.provider_name,
                sample.labels.app_registration_name,
            ),
        )

    def clear(self) -> None:
        """Drop all samples (useful in tests)."""
        with self._lock:
            self._samples.clear()


class NullMetricsSink:
    """Sink that discards every sample."""

    def set_secret_expiry(self, labels: AppInfoLabels, expires_at: datetime) -> None:
        """Ignore the sample."""

    def delete_secret_expiry(self, labels: AppInfoLabels) -> None:
        """Ignore the deletion."""


__all__ = [
    "METRIC_NAME",
    "AppInfoLabels",
    "GaugeSample",
    "MetricsSink",
    "NullMetricsSink",
    "SecretExpiryGauge",
]

"""Tests for the secret expiry gauge."""

from datetime import UTC, datetime
from dex_operator.metrics import AppInfoLabels, NullMetricsSink, SecretExpiryGauge


def _labels(provider_name: str, registration: str = "mc-ns-dex") -> AppInfoLabels:
    return AppInfoLabels(
        app_name="dex",
        app_namespace="ns",
        app_owner="giantswarm",
        provider_type="microsoft",
        provider_name=provider_name,
        app_registration_name=registration,
    )


def test_gauge_records_unix_timestamp() -> None:
    """Expiry times are stored as whole unix seconds."""

    gauge = SecretExpiryGauge()
    expires_at = datetime(2030, 1, 1, 0, 0, 0, 900_000, tzinfo=UTC)

    gauge.set_secret_expiry(_labels("giantswarm-ad"), expires_at)

    assert gauge.get(_labels("giantswarm-ad")) == float(int(expires_at.timestamp()))
    assert gauge.get(_labels("customer-ad")) is None


def test_gauge_overwrites_and_deletes() -> None:
    """A label set holds one sample that can be removed again."""

    gauge = SecretExpiryGauge()
    labels = _labels("giantswarm-ad")
    gauge.set_secret_expiry(labels, datetime(2030, 1, 1, tzinfo=UTC))
    gauge.set_secret_expiry(labels, datetime(2031, 1, 1, tzinfo=UTC))

    assert len(gauge.snapshot()) == 1
    assert gauge.get(labels) == datetime(2031, 1, 1, tzinfo=UTC).timestamp()

    gauge.delete_secret_expiry(labels)
    gauge.delete_secret_expiry(labels)

    assert gauge.snapshot() == []


def test_snapshot_is_sorted() -> None:
    """Snapshots are ordered by provider and registration name."""

    gauge = SecretExpiryGauge()
    moment = datetime(2030, 1, 1, tzinfo=UTC)
    gauge.set_secret_expiry(_labels("giantswarm-ad", "b"), moment)
    gauge.set_secret_expiry(_labels("customer-github"), moment)
    gauge.set_secret_expiry(_labels("giantswarm-ad", "a"), moment)

    ordered = [
        (sample.labels.provider_name, sample.labels.app_registration_name)
        for sample in gauge.snapshot()
    ]

    assert ordered == [
        ("customer-github", "mc-ns-dex"),
        ("giantswarm-ad", "a"),
        ("giantswarm-ad", "b"),
    ]
    gauge.clear()
    assert gauge.snapshot() == []


def test_labels_as_dict() -> None:
    """Labels export under their metric label names."""

    assert _labels("giantswarm-ad").as_dict()["provider_name"] == "giantswarm-ad"


def test_null_sink_accepts_samples() -> None:
    """The null sink silently discards samples."""

    sink = NullMetricsSink()
    sink.set_secret_expiry(_labels("x"), datetime(2030, 1, 1, tzinfo=UTC))
    sink.delete_secret_expiry(_labels("x"))

"""Tests covering the dex-operator CLI."""

from __future__ import annotations
import json
import sys
from collections.abc import Iterator
from pathlib import Path
import pytest
from typer.testing import CliRunner
from dex_operator import config
from dex_operator.cli import app, run


CREDENTIALS = """\
- name: mock
  owner: customer
"""


@pytest.fixture()
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture()
def credentials_file(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> Iterator[Path]:
    path = tmp_path / "credentials.yaml"
    path.write_text(CREDENTIALS, encoding="utf-8")
    monkeypatch.setenv("DEX_OPERATOR_CREDENTIALS_FILE", str(path))
    monkeypatch.setenv("DEX_OPERATOR_MANAGEMENT_CLUSTER_NAME", "mc")
    monkeypatch.setenv("DEX_OPERATOR_MANAGEMENT_CLUSTER_BASE_DOMAIN", "example.io")
    monkeypatch.setenv(
        "DEX_OPERATOR_SELF_RENEWAL_STORE_PATH", str(tmp_path / "renewal.yaml")
    )
    monkeypatch.delenv("DEX_OPERATOR_MANAGEMENT_CLUSTER_ISSUER_ADDRESS", raising=False)
    monkeypatch.delenv("DEX_OPERATOR_LOG_LEVEL", raising=False)
    config.get_settings(refresh=True)
    yield path
    monkeypatch.undo()
    config.get_settings(refresh=True)


def test_credentials_lists_providers(
    runner: CliRunner, credentials_file: Path
) -> None:
    result = runner.invoke(app, ["credentials"])

    assert result.exit_code == 0
    assert "customer-mock" in result.stdout
    assert "mockCallback" in result.stdout


def test_credentials_without_providers(
    runner: CliRunner, credentials_file: Path
) -> None:
    credentials_file.write_text("", encoding="utf-8")

    result = runner.invoke(app, ["credentials"])

    assert result.exit_code == 0
    assert "No providers configured." in result.stdout


def test_credentials_reports_invalid_file(
    runner: CliRunner, credentials_file: Path
) -> None:
    credentials_file.write_text("- name: okta\n  owner: customer\n", encoding="utf-8")

    result = runner.invoke(app, ["credentials"])

    assert result.exit_code == 1
    assert "not supported" in result.stdout


def test_reconcile_writes_config_then_reports_up_to_date(
    runner: CliRunner, credentials_file: Path, tmp_path: Path
) -> None:
    output = tmp_path / "dex-config.json"
    values = tmp_path / "values.yaml"
    values.write_text("baseDomain: abc.example.io\n", encoding="utf-8")

    first = runner.invoke(
        app,
        [
            "reconcile",
            "--name",
            "dex",
            "--namespace",
            "ns",
            "--cluster-values",
            str(values),
            "--output",
            str(output),
        ],
    )

    assert first.exit_code == 0
    payload = json.loads(output.read_text(encoding="utf-8"))
    connector = payload["oidc"]["customer"]["connectors"][0]
    assert connector["id"] == "customer-mock"
    assert connector["connectorType"] == "mockCallback"
    assert "giantswarm" not in payload["oidc"]

    second = runner.invoke(
        app,
        ["reconcile", "--name", "dex", "--namespace", "ns", "--previous", str(output)],
    )

    assert second.exit_code == 0
    assert "Dex config is up to date." in second.stdout


def test_reconcile_requires_management_cluster_name(
    runner: CliRunner, credentials_file: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.delenv("DEX_OPERATOR_MANAGEMENT_CLUSTER_NAME")
    config.get_settings(refresh=True)

    result = runner.invoke(app, ["reconcile", "--name", "dex", "--namespace", "ns"])

    assert result.exit_code == 1
    assert "management cluster name" in result.stdout


def test_renew_without_renewable_providers(
    runner: CliRunner, credentials_file: Path
) -> None:
    result = runner.invoke(app, ["renew"])

    assert result.exit_code == 0
    assert "No self-renewal needed." in result.stdout


def test_invalid_settings_exit_early(
    runner: CliRunner, credentials_file: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv("DEX_OPERATOR_SECRET_VALIDITY_MONTHS", "0")
    config._load_settings.cache_clear()

    result = runner.invoke(app, ["credentials"])

    assert result.exit_code == 1
    assert "DEX_OPERATOR_SECRET_VALIDITY_MONTHS" in result.stdout


def test_run_reports_usage_errors(
    credentials_file: Path,
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
) -> None:
    monkeypatch.setattr(sys, "argv", ["dex-operator", "reconcile"])

    with pytest.raises(SystemExit) as exc:
        run()

    assert exc.value.code == 1
    assert "--help" in capsys.readouterr().out


def test_run_succeeds(
    credentials_file: Path,
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
) -> None:
    monkeypatch.setattr(sys, "argv", ["dex-operator", "credentials"])

    run()

    assert "customer-mock" in capsys.readouterr().out

"""Command line entry point for running single operator passes."""

from __future__ import annotations
import asyncio
import logging
import sys
from pathlib import Path
from typing import Annotated
import click
import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table
from dex_operator import key
from dex_operator.config import get_settings
from dex_operator.errors import DexOperatorError
from dex_operator.metrics import SecretExpiryGauge
from dex_operator.providers import Provider, build_providers, read_credentials
from dex_operator.reconcile import (
    ReconcileOutcome,
    ReconcileService,
    build_app_config,
    get_base_domain_from_cluster_values,
    resolve_issuer_address,
)
from dex_operator.renewal import (
    FileCredentialStore,
    RenewalReport,
    SelfRenewalService,
)


app = typer.Typer(help="Reconcile Dex connectors against identity providers.")
console = Console()


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


@app.callback()
def main() -> None:
    """Load settings and configure logging."""
    try:
        settings = get_settings()
    except ValueError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=1) from exc
    _configure_logging(settings.log_level)


def _load_providers() -> list[Provider]:
    settings = get_settings()
    credentials = read_credentials(settings.credentials_file)
    return build_providers(
        credentials,
        management_cluster_name=settings.management_cluster_name or "",
        http_timeout_seconds=settings.http_timeout_seconds,
        graph_api_url=settings.graph_api_url,
        graph_login_url=settings.graph_login_url,
        github_api_url=settings.github_api_url,
    )


async def _close(providers: list[Provider]) -> None:
    await asyncio.gather(*(provider.aclose() for provider in providers))


def _render_outcome(outcome: ReconcileOutcome, gauge: SecretExpiryGauge) -> None:
    table = Table(title="Connectors")
    for column in ("Owner", "ID", "Type", "Name"):
        table.add_column(column)
    for owner, connector in outcome.config.iter_connectors():
        table.add_row(owner, connector.id, connector.type, connector.name)
    console.print(table)
    for sample in gauge.snapshot():
        console.print(
            f"Secret of {sample.labels.provider_name} expires at "
            f"{int(sample.value)} (unix)."
        )
    for failure in outcome.failures:
        console.print(f"[red]{failure.provider}: {failure.reason}[/red]")


@app.command("reconcile")
def reconcile_command(
    name: Annotated[str, typer.Option("--name", help="Name of the Dex app.")],
    namespace: Annotated[
        str, typer.Option("--namespace", help="Namespace of the Dex app.")
    ],
    cluster_values: Annotated[
        Path | None,
        typer.Option("--cluster-values", help="Cluster values document to read."),
    ] = None,
    previous: Annotated[
        Path | None,
        typer.Option("--previous", help="Previously written Dex config JSON."),
    ] = None,
    output: Annotated[
        Path | None,
        typer.Option("--output", help="Write the new Dex config JSON here."),
    ] = None,
) -> None:
    """Run one reconciliation pass for a Dex app."""
    settings = get_settings()
    mc_issuer_address = settings.management_cluster_issuer_address
    mc_base_domain = settings.management_cluster_base_domain or ""
    try:
        values = cluster_values.read_text("utf-8") if cluster_values else ""
        issuer_address = resolve_issuer_address(
            base_domain=get_base_domain_from_cluster_values(values),
            management_cluster_issuer_address=mc_issuer_address,
            management_cluster_base_domain=mc_base_domain,
        )
        app_config = build_app_config(
            name=name,
            namespace=namespace,
            management_cluster_name=settings.management_cluster_name or "",
            issuer_address=issuer_address,
            secret_validity_months=settings.secret_validity_months,
        )
        secret_data = (
            {key.DEX_CONFIG_DATA_KEY: previous.read_bytes()} if previous else None
        )
        providers = _load_providers()
        gauge = SecretExpiryGauge()
        service = ReconcileService(
            providers, app_name=name, app_namespace=namespace, metrics=gauge
        )
    except (DexOperatorError, OSError) as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=1) from exc

    async def _run() -> ReconcileOutcome:
        try:
            return await service.reconcile(app_config, secret_data)
        finally:
            await service.aclose()

    try:
        outcome = asyncio.run(_run())
    except DexOperatorError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=1) from exc

    _render_outcome(outcome, gauge)
    if outcome.needs_update:
        payload = outcome.config.to_json()
        if output is not None:
            output.write_text(payload, encoding="utf-8")
            console.print(f"[green]Wrote Dex config to {output}.[/green]")
        else:
            console.print_json(payload)
    else:
        console.print("Dex config is up to date.")
    if outcome.requeue:
        raise typer.Exit(code=2)


def _render_report(report: RenewalReport) -> None:
    if report.persisted:
        console.print(
            f"[green]Rotated credentials of {', '.join(report.rotated)}.[/green]"
        )
    else:
        console.print("No self-renewal needed.")
    for provider, reason in report.failed.items():
        console.print(f"[yellow]{provider}: {reason}[/yellow]")


@app.command("renew")
def renew_command(
    store: Annotated[
        Path | None,
        typer.Option("--store", help="Self renewal credential store path."),
    ] = None,
) -> None:
    """Rotate the operator's own credentials when they are close to expiry."""
    settings = get_settings()
    try:
        providers = _load_providers()
        service = SelfRenewalService(
            providers,
            FileCredentialStore(store or settings.self_renewal_store_path),
            management_cluster_name=settings.management_cluster_name or "",
            issuer_address=settings.management_cluster_issuer_address,
            secret_validity_months=settings.secret_validity_months,
        )
    except DexOperatorError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=1) from exc

    async def _run() -> RenewalReport:
        try:
            return await service.check_and_rotate()
        finally:
            await _close(providers)

    try:
        report = asyncio.run(_run())
    except DexOperatorError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=1) from exc
    _render_report(report)


@app.command("credentials")
def credentials_command() -> None:
    """Validate the credential file and list the configured providers."""
    try:
        providers = _load_providers()
    except DexOperatorError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=1) from exc
    asyncio.run(_close(providers))

    if not providers:
        console.print("[yellow]No providers configured.[/yellow]")
        return
    table = Table(title="Providers")
    for column in ("Provider", "Owner", "Connector ID", "Type", "Self renewal"):
        table.add_column(column)
    for provider in providers:
        table.add_row(
            provider.provider_name,
            provider.owner,
            provider.name,
            provider.type,
            "yes" if provider.supports_service_credential_renewal() else "no",
        )
    console.print(table)


def run() -> None:
    """Entry point used by console scripts."""
    try:
        exit_code = app(standalone_mode=False)
    except click.UsageError as exc:
        console.print(f"[red]Error:[/red] {exc.message}")
        if exc.ctx and exc.ctx.command_path:
            help_cmd = f"{exc.ctx.command_path} --help"
            console.print(f"\nRun '[cyan]{help_cmd}[/cyan]' for usage information.")
        sys.exit(1)
    if isinstance(exit_code, int) and exit_code:
        sys.exit(exit_code)


__all__ = ["app", "run"]

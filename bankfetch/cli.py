"""Command-line interface for bankfetch."""

import asyncio
import sys

import click
import structlog

from bankfetch.config import ConfigError, settings, write_default_config
from bankfetch.core import Orchestrator
from bankfetch.log import configure_logging
from bankfetch.models import ExecutionContext, RelationshipStatus
from bankfetch.store import SqliteBalanceStore

logger = structlog.get_logger(__name__)

EXIT_CONFIG_ERROR = 1
EXIT_RELATIONSHIP_FAILED = 2

STATUS_MARKS = {
    RelationshipStatus.SUCCEEDED: "✓",
    RelationshipStatus.FAILED: "✗",
    RelationshipStatus.SKIPPED: "-",
}


@click.group()
@click.option("--config", "-c", help="Path to relationship configuration file")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
@click.pass_context
def cli(ctx, config, verbose):
    """bankfetch - aggregate account balances across institutions"""

    configure_logging("DEBUG" if verbose else settings.log_level, settings.log_format)

    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config or settings.config_path
    ctx.obj["verbose"] = verbose


def _orchestrator(ctx) -> Orchestrator:
    if "orchestrator" not in ctx.obj:
        ctx.obj["orchestrator"] = Orchestrator.from_settings(
            settings, config_path=ctx.obj["config_path"]
        )
    return ctx.obj["orchestrator"]


@cli.command()
@click.option("--force", is_flag=True, help="Overwrite an existing configuration file")
@click.pass_context
def init(ctx, force):
    """Write a starter configuration and initialise the data store"""

    config_path = ctx.obj["config_path"]
    try:
        write_default_config(config_path, overwrite=force)
        click.echo(f"✓ Configuration written: {config_path}")
    except ConfigError as e:
        click.echo(f"- {e} (use --force to overwrite)")

    try:
        asyncio.run(_orchestrator(ctx).init())
        click.echo(f"✓ Data store ready: {settings.data_store_path}")
    except Exception as e:
        click.echo(f"✗ Failed to initialise data store: {e}")
        sys.exit(1)


@cli.command()
@click.pass_context
def validate(ctx):
    """Validate the relationship configuration"""

    try:
        report = _orchestrator(ctx).validate_config()
    except ConfigError as e:
        click.echo(f"✗ Invalid configuration: {e}")
        sys.exit(EXIT_CONFIG_ERROR)

    click.echo(f"{len(report.relationships)} relationship(s) configured")
    for relationship in report.relationships:
        suffix = "" if relationship["enabled"] else " (disabled)"
        click.echo(f"  {relationship['name']} via {relationship['provider']}{suffix}")

    if not report.ok:
        click.echo(f"✗ Unknown provider for: {', '.join(report.unknown_providers)}")
        sys.exit(EXIT_CONFIG_ERROR)

    click.echo("✓ Configuration is valid")


@cli.command()
@click.option("--debug", is_flag=True, help="Show the browser and log every automation step")
@click.pass_context
def fetch(ctx, debug):
    """Fetch balances from every configured relationship"""

    if debug:
        configure_logging("DEBUG", settings.log_format)

    try:
        summary = asyncio.run(_orchestrator(ctx).fetch(ExecutionContext(debug=debug)))
    except ConfigError as e:
        click.echo(f"✗ Invalid configuration: {e}")
        sys.exit(EXIT_CONFIG_ERROR)
    except Exception as e:
        click.echo(f"✗ Fetch aborted: {e}")
        sys.exit(EXIT_CONFIG_ERROR)

    for result in summary.results:
        line = f"{STATUS_MARKS[result.status]} {result.name} ({result.provider})"
        if result.status is RelationshipStatus.FAILED:
            line += f": failed at {result.stage}: {result.error}"
        elif result.status is RelationshipStatus.SUCCEEDED:
            line += f": {result.balances} balance(s)"
            if result.documents:
                line += f", {result.documents} document(s)"
        click.echo(line)
        if result.documents_error:
            click.echo(f"    documents: {result.documents_error}")
        if result.logout_error:
            click.echo(f"    logout: {result.logout_error}")

    for balance in summary.balances:
        click.echo(
            f"  {balance.institution:<10} {balance.account_name:<30} "
            f"{balance.account_number:<16} {balance.balance:>14}"
        )

    click.echo(
        f"Balances written: {summary.balances_written}  "
        f"Succeeded: {summary.succeeded}  Failed: {summary.failed}  "
        f"Skipped: {summary.skipped}"
    )

    if summary.failed:
        sys.exit(EXIT_RELATIONSHIP_FAILED)


@cli.command()
@click.option("--limit", "-n", default=20, show_default=True, help="Number of records to show")
def balances(limit):
    """Show the most recently stored balances"""

    async def _read():
        store = SqliteBalanceStore(settings.data_store_path)
        await store.open()
        try:
            return await store.list_balances(limit=limit)
        finally:
            await store.close()

    try:
        rows = asyncio.run(_read())
    except Exception as e:
        click.echo(f"✗ Failed to read balances: {e}")
        sys.exit(1)

    if not rows:
        click.echo("No balances stored yet")
        return

    for row in rows:
        click.echo(
            f"{row['recorded_at'][:19]}  {row['institution']:<10} "
            f"{row['account_name']:<30} {row['account_number']:<16} {row['balance']:>14}"
        )


def main():
    cli(obj={})


if __name__ == "__main__":
    main()

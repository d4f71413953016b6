"""Main CLI entry point."""

import logging

import click

from schoolpay.cli.error_handling import handle_domain_error
from schoolpay.domain.errors import ConfigurationError
from schoolpay.storage.factories import BACKENDS, create_store

# Import and register all commands at module level
from schoolpay.cli.commands import (
    import_cmd,
    transactions,
    parents,
    students,
    classes,
    dashboard,
    serve,
)


@click.group()
@click.option(
    "--backend",
    type=click.Choice(BACKENDS, case_sensitive=False),
    help="Storage backend (overrides SCHOOLPAY_BACKEND environment variable)",
    envvar="SCHOOLPAY_BACKEND",
)
@click.option(
    "--db-url",
    help="SQLAlchemy database URL (overrides SCHOOLPAY_DB_URL environment variable)",
    envvar="SCHOOLPAY_DB_URL",
)
@click.option(
    "--blob-dir",
    type=click.Path(file_okay=False),
    help="Directory for JSON blobs (overrides SCHOOLPAY_BLOB_DIR environment variable)",
    envvar="SCHOOLPAY_BLOB_DIR",
)
@click.option(
    "--currency",
    default="EGP",
    show_default=True,
    help="Currency shown next to amounts",
    envvar="SCHOOLPAY_CURRENCY",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx, backend: str | None, db_url: str | None, blob_dir: str | None, currency: str, verbose: bool):
    """Schoolpay - School payments dashboard.

    Import parent, student and payment gateway spreadsheets, reconcile them
    into one directory and ledger, and serve the snapshots over HTTP.
    """
    ctx.ensure_object(dict)
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    ctx.obj.setdefault("currency", currency)

    # Connect to storage only when actually running a command (not for --help)
    if ctx.invoked_subcommand is not None and "store" not in ctx.obj:
        try:
            store = create_store(backend=backend, database_url=db_url, blob_dir=blob_dir)
        except ConfigurationError as e:
            handle_domain_error(ctx, e)
        ctx.obj["store"] = store
        ctx.call_on_close(store.close)


# Register all commands
import_cmd.register_commands(cli)
transactions.register_commands(cli)
parents.register_commands(cli)
students.register_commands(cli)
classes.register_commands(cli)
dashboard.register_commands(cli)
serve.register_commands(cli)


def main():
    """Main entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()

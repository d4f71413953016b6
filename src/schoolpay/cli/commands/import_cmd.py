"""Spreadsheet import commands."""

import click

from schoolpay.cli.error_handling import handle_domain_error
from schoolpay.domain.entities import ImportMode, ImportResult
from schoolpay.domain.errors import DomainError
from schoolpay.domain.school_import import SchoolImportService
from schoolpay.domain.transaction_import import TransactionImportService


@click.group()
def import_group():
    """Import spreadsheets (.xlsx, .xls, .csv)."""
    pass


def _echo_result(kind: str, result: ImportResult) -> None:
    click.echo("\nImport complete:")
    click.echo(f"  Read: {result.read} {kind}")
    click.echo(f"  New: {result.imported}")
    click.echo(f"  Updated: {result.updated}")
    if result.skipped:
        click.echo(f"  Skipped: {result.skipped}")
    click.echo(f"  Total stored: {result.total}")
    if result.updated_at:
        click.echo(f"  Saved at: {result.updated_at}")


@import_group.command("parents")
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.pass_context
def import_parents(ctx, file: str):
    """Import a parents list and merge it into the directory.

    Rows matching an existing parent (by code, secondary code or name) update
    it; values from the file win over stored ones.
    """
    service = SchoolImportService(ctx.obj["store"])
    try:
        _echo_result("parents", service.import_parents(file))
    except DomainError as e:
        handle_domain_error(ctx, e)


@import_group.command("students")
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.pass_context
def import_students(ctx, file: str):
    """Import a students list and merge it into the directory."""
    service = SchoolImportService(ctx.obj["store"])
    try:
        _echo_result("students", service.import_students(file))
    except DomainError as e:
        handle_domain_error(ctx, e)


@import_group.command("transactions")
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--replace",
    is_flag=True,
    help="Make this file the whole ledger instead of merging it into the stored one",
)
@click.pass_context
def import_transactions(ctx, file: str, replace: bool):
    """Import a payment gateway export.

    The header row is detected automatically; item columns may sit in a
    second header row below it.

    Examples:
        schoolpay import transactions export.xlsx
        schoolpay import transactions export.xlsx --replace
    """
    service = TransactionImportService(ctx.obj["store"])
    mode = ImportMode.REPLACE if replace else ImportMode.MERGE
    try:
        _echo_result("transactions", service.import_transactions(file, mode=mode))
    except DomainError as e:
        handle_domain_error(ctx, e)


def register_commands(cli):
    """Register import commands with main CLI."""
    cli.add_command(import_group, name="import")

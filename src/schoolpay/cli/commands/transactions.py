"""Transactions ledger commands."""

import click

from schoolpay.cli.date_filters import resolve_cli_date_range
from schoolpay.cli.error_handling import handle_domain_error
from schoolpay.domain.entities import StatusLabel
from schoolpay.domain.errors import DomainError
from schoolpay.domain.ledger import LedgerService, SearchField, compute_totals, parse_status
from schoolpay.utils.amount_parser import format_amount, parse_amount

SEARCH_FIELD_CHOICES = [field.value for field in SearchField]


def ledger_filters(func):
    """Attach the shared ledger filter options to a command."""
    options = [
        click.option("--from", "start_date", help="Start date (YYYY-MM-DD)"),
        click.option("--to", "end_date", help="End date (YYYY-MM-DD)"),
        click.option(
            "--status",
            "statuses",
            multiple=True,
            help="Status to include (successful, pending, failed, refunded, cancelled). "
            "Repeatable; list and summary default to successful, export to every status",
        ),
        click.option("--all-statuses", is_flag=True, help="Include every status"),
        click.option(
            "--search-field",
            type=click.Choice(SEARCH_FIELD_CHOICES),
            default=SearchField.TRANSACTION_ID.value,
            show_default=True,
            help="Field the --search text applies to",
        ),
        click.option("--search", "query", default="", help="Search text"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _filtered(
    ctx,
    start_date,
    end_date,
    statuses,
    all_statuses,
    search_field,
    query,
    default_statuses=(StatusLabel.SUCCESSFUL,),
):
    """Run the ledger query for a command.

    default_statuses applies when neither --status nor --all-statuses is
    given; None keeps every status.
    """
    start, end = resolve_cli_date_range(ctx, start_date=start_date, end_date=end_date)
    service = LedgerService(ctx.obj["store"])
    try:
        if all_statuses:
            selected = None
        elif statuses:
            selected = {parse_status(value) for value in statuses}
        else:
            selected = set(default_statuses) if default_statuses is not None else None
        return service, service.list_transactions(
            start_date=start,
            end_date=end,
            statuses=selected,
            search_field=SearchField(search_field),
            query=query,
        )
    except DomainError as e:
        handle_domain_error(ctx, e)


@click.group()
def transactions_group():
    """Browse the transactions ledger."""
    pass


@transactions_group.command("list")
@ledger_filters
@click.pass_context
def list_transactions(ctx, start_date, end_date, statuses, all_statuses, search_field, query):
    """List transactions in ledger order.

    Examples:
        schoolpay transactions list --from 2024-09-01 --to 2024-09-30
        schoolpay transactions list --all-statuses --search-field parent-code --search 1001
    """
    _, rows = _filtered(ctx, start_date, end_date, statuses, all_statuses, search_field, query)
    currency = ctx.obj["currency"]

    if not rows:
        click.echo("No transactions found.")
        return

    click.echo(f"\nFound {len(rows)} transaction(s):")
    click.echo("-" * 110)
    click.echo(f"{'Receipt':<14} {'Date':<12} {'Customer':<28} {'Parent':<10} {'Status':<12} {'Total':>16}")
    click.echo("-" * 110)
    for txn in rows:
        click.echo(
            f"{txn.id:<14} {txn.date:<12} {txn.customer[:28]:<28} {txn.parent_code:<10} "
            f"{txn.status[:12]:<12} {format_amount(parse_amount(txn.total), currency):>16}"
        )


@transactions_group.command("show")
@click.argument("transaction_id", metavar="RECEIPT_NO")
@click.pass_context
def show_transaction(ctx, transaction_id: str):
    """Show every field of one transaction."""
    service = LedgerService(ctx.obj["store"])
    try:
        txn = service.get_transaction(transaction_id)
    except DomainError as e:
        handle_domain_error(ctx, e)

    currency = ctx.obj["currency"]
    click.echo(f"\nReceipt: {txn.id}")
    click.echo(f"  Date: {txn.date or '-'}")
    click.echo(f"  Status: {txn.status or '-'}")
    click.echo(f"  Customer: {txn.customer or '-'}")
    if txn.customer_phone:
        click.echo(f"  Phone: {txn.customer_phone}")
    if txn.customer_email:
        click.echo(f"  Email: {txn.customer_email}")
    click.echo(f"  Parent: {txn.parent_name or '-'} ({txn.parent_code or '-'})")
    click.echo(f"  Student: {txn.student_name or '-'} ({txn.student_id or '-'})")
    if txn.grade_name:
        click.echo(f"  Grade: {txn.grade_name}")
    click.echo(f"  Item: {txn.item_name or '-'} x{txn.quantity} @ {format_amount(parse_amount(txn.item_amount), currency)}")
    click.echo(f"  Subtotal: {format_amount(parse_amount(txn.total_no_tax), currency)}")
    click.echo(f"  Discount: {format_amount(parse_amount(txn.discount), currency)}")
    click.echo(f"  Late fees: {format_amount(parse_amount(txn.fees), currency)}")
    click.echo(f"  Total: {format_amount(parse_amount(txn.total), currency)}")
    click.echo(f"  Method: {txn.method or '-'}")
    if txn.provider:
        click.echo(f"  Provider: {txn.provider}")
    if txn.branch:
        click.echo(f"  Branch: {txn.branch}")
    if txn.bank_reference_number:
        click.echo(f"  Bank reference: {txn.bank_reference_number}")
    if txn.merchant_order_id:
        click.echo(f"  Merchant order: {txn.merchant_order_id}")
    if txn.academic_year:
        click.echo(f"  Academic year: {txn.academic_year}")


@transactions_group.command("summary")
@ledger_filters
@click.pass_context
def summary(ctx, start_date, end_date, statuses, all_statuses, search_field, query):
    """Show count and totals for the filtered transactions."""
    _, rows = _filtered(ctx, start_date, end_date, statuses, all_statuses, search_field, query)
    totals = compute_totals(rows)
    currency = ctx.obj["currency"]

    click.echo(f"\nTransactions: {totals.count}")
    click.echo(f"Total amount: {format_amount(totals.total_amount, currency)}")
    click.echo(f"Successful: {totals.successful_count}")
    click.echo(f"Collected: {format_amount(totals.successful_amount, currency)}")


@transactions_group.command("export")
@click.argument("output", type=click.Path(dir_okay=False))
@ledger_filters
@click.pass_context
def export(ctx, output: str, start_date, end_date, statuses, all_statuses, search_field, query):
    """Export transactions to OUTPUT (.xlsx or .csv).

    The whole ledger is exported unless filter options narrow it.
    """
    service, rows = _filtered(
        ctx, start_date, end_date, statuses, all_statuses, search_field, query, default_statuses=None
    )
    try:
        path = service.export(rows, output)
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Exported {len(rows)} transaction(s) to {path}")


def register_commands(cli):
    """Register transaction commands with main CLI."""
    cli.add_command(transactions_group, name="transactions")

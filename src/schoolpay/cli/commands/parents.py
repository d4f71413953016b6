"""Parent directory commands."""

import click

from schoolpay.cli.error_handling import handle_domain_error
from schoolpay.domain.directory import DirectoryService
from schoolpay.domain.entities import Parent
from schoolpay.domain.errors import DomainError
from schoolpay.utils.amount_parser import format_amount, parse_amount

PARENT_OPTIONS = [
    ("name", "--name", "Parent full name"),
    ("code", "--code", "Parent code"),
    ("code2", "--code2", "Secondary parent code"),
    ("email", "--email", "Email address"),
    ("phone", "--phone", "Phone number"),
    ("secret_key", "--secret-key", "Portal secret key"),
]


def parent_options(func):
    """Attach one option per editable parent field."""
    for field, flag, help_text in reversed(PARENT_OPTIONS):
        func = click.option(flag, field, help=help_text)(func)
    return func


@click.group()
def parents_group():
    """Browse and edit parents."""
    pass


@parents_group.command("list")
@click.option("--search", "query", default="", help="Match name, codes, email or phone")
@click.pass_context
def list_parents(ctx, query: str):
    """List parents."""
    service = DirectoryService(ctx.obj["store"])
    try:
        parents = service.list_parents(query)
    except DomainError as e:
        handle_domain_error(ctx, e)

    if not parents:
        click.echo("No parents found.")
        return

    click.echo(f"\nFound {len(parents)} parent(s):")
    click.echo("-" * 100)
    click.echo(f"{'Code':<12} {'Code 2':<12} {'Name':<32} {'Phone':<16} {'Email':<28}")
    click.echo("-" * 100)
    for parent in parents:
        click.echo(
            f"{parent.code:<12} {parent.code2:<12} {parent.name[:32]:<32} "
            f"{parent.phone:<16} {parent.email[:28]:<28}"
        )


@parents_group.command("show")
@click.argument("key", metavar="PARENT")
@click.pass_context
def show_parent(ctx, key: str):
    """Show a parent with their children and payments.

    PARENT can be a parent code, secondary code or name.
    """
    service = DirectoryService(ctx.obj["store"])
    try:
        detail = service.parent_detail(key)
    except DomainError as e:
        handle_domain_error(ctx, e)

    currency = ctx.obj["currency"]
    parent = detail.parent
    click.echo(f"\n{parent.name or '-'}")
    click.echo(f"  Codes: {', '.join(c for c in (parent.code, parent.code2) if c) or '-'}")
    if parent.phone:
        click.echo(f"  Phone: {parent.phone}")
    if parent.email:
        click.echo(f"  Email: {parent.email}")
    click.echo(f"  Total paid: {format_amount(detail.total_paid, currency)}")
    click.echo(f"  Children with payments: {detail.paid_children_count} of {len(detail.children)}")

    if detail.children:
        click.echo("\nChildren:")
        click.echo("-" * 80)
        for child in detail.children:
            click.echo(
                f"{child.student_code:<12} {child.name[:32]:<32} {child.grade[:16]:<16} "
                f"{format_amount(child.paid_amount, currency):>16}"
            )

    if detail.transactions:
        click.echo(f"\nTransactions ({len(detail.transactions)}):")
        click.echo("-" * 80)
        for txn in detail.transactions:
            click.echo(
                f"{txn.id:<14} {txn.date:<12} {txn.item_name[:24]:<24} {txn.status[:12]:<12} "
                f"{format_amount(parse_amount(txn.total), currency):>16}"
            )


@parents_group.command("add")
@parent_options
@click.pass_context
def add_parent(ctx, **fields: str | None):
    """Add a parent (merged with an existing one sharing the same code).

    Examples:
        schoolpay parents add --name "Ahmed Ali" --code 1001 --phone 01000000000
    """
    service = DirectoryService(ctx.obj["store"])
    parent = Parent(**{field: (value or "").strip() for field, value in fields.items()})
    try:
        saved = service.add_parent(parent)
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Saved parent '{saved.name}' ({saved.code or '-'})")


@parents_group.command("edit")
@click.argument("key", metavar="PARENT")
@parent_options
@click.pass_context
def edit_parent(ctx, key: str, **fields: str | None):
    """Edit a parent's fields.

    PARENT can be a parent code, secondary code or name. Only the options
    given are changed.
    """
    changes = {field: value.strip() for field, value in fields.items() if value is not None}
    if not changes:
        click.echo("Error: Nothing to change. Pass at least one field option.", err=True)
        ctx.exit(1)

    service = DirectoryService(ctx.obj["store"])
    try:
        updated = service.edit_parent(key, **changes)
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Updated parent '{updated.name}' ({updated.code or '-'})")


def register_commands(cli):
    """Register parent commands with main CLI."""
    cli.add_command(parents_group, name="parents")

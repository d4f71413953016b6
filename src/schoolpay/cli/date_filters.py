"""CLI helpers for date range resolution."""

from datetime import date

import click

from schoolpay.utils.date_parser import parse_input_date


def resolve_cli_date_range(
    ctx, *, start_date: str | None, end_date: str | None
) -> tuple[date | None, date | None]:
    """Parse --from/--to options, exiting with an error on bad input."""
    start = None
    end = None

    if start_date:
        try:
            start = parse_input_date(start_date)
        except ValueError as e:
            click.echo(f"Error: Invalid start date: {e}", err=True)
            ctx.exit(1)

    if end_date:
        try:
            end = parse_input_date(end_date)
        except ValueError as e:
            click.echo(f"Error: Invalid end date: {e}", err=True)
            ctx.exit(1)

    if start and end and start > end:
        click.echo("Error: Start date must be on or before end date.", err=True)
        ctx.exit(1)

    return start, end

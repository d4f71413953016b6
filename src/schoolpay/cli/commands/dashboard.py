"""Dashboard KPI command."""

import click

from schoolpay.cli.error_handling import handle_domain_error
from schoolpay.domain.dashboard import DashboardService
from schoolpay.domain.errors import DomainError
from schoolpay.utils.amount_parser import format_amount


@click.command("dashboard")
@click.pass_context
def show_dashboard(ctx):
    """Show collection KPIs and breakdowns."""
    service = DashboardService(ctx.obj["store"])
    try:
        report = service.build_report()
    except DomainError as e:
        handle_domain_error(ctx, e)

    currency = ctx.obj["currency"]
    click.echo("\nOverview")
    click.echo("=" * 50)
    click.echo(f"  Total collected: {format_amount(report.total_collected, currency)}")
    click.echo(f"  Transactions:    {report.transaction_count}")
    click.echo(f"  Parents:         {report.parent_count}")
    click.echo(f"  Students:        {report.student_count}")
    click.echo(f"  Online:          {report.online_count}")
    click.echo(f"  Offline:         {report.offline_count}")

    if report.revenue_by_item:
        click.echo("\nRevenue by item")
        click.echo("-" * 50)
        for item, amount in report.revenue_by_item.items():
            click.echo(f"  {item[:30]:<30} {format_amount(amount, currency):>18}")

    if report.payment_methods:
        click.echo("\nPayment methods")
        click.echo("-" * 50)
        for method, count in report.payment_methods.items():
            click.echo(f"  {method[:30]:<30} {count:>18}")

    if report.monthly:
        click.echo("\nBy month")
        click.echo("-" * 50)
        for month, (amount, count) in report.monthly.items():
            click.echo(f"  {month:<10} {count:>8} {format_amount(amount, currency):>30}")


def register_commands(cli):
    """Register dashboard command with main CLI."""
    cli.add_command(show_dashboard)

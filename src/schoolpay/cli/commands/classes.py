"""Classes (students grouped by grade) command."""

import click

from schoolpay.cli.error_handling import handle_domain_error
from schoolpay.domain.directory import DirectoryService
from schoolpay.domain.errors import DomainError


@click.command("classes")
@click.option("--grade", help="Only show the class with this grade label")
@click.option("--members", is_flag=True, help="List the students of each class")
@click.pass_context
def list_classes(ctx, grade: str | None, members: bool):
    """Show students grouped by grade."""
    service = DirectoryService(ctx.obj["store"])
    try:
        groups = service.classes()
    except DomainError as e:
        handle_domain_error(ctx, e)

    if grade:
        groups = [group for group in groups if group.grade == grade.strip()]

    if not groups:
        click.echo("No classes found.")
        return

    click.echo(f"\n{'Grade':<30} {'Students':>8}")
    click.echo("-" * 40)
    for group in groups:
        click.echo(f"{group.grade[:30]:<30} {group.count:>8}")
        if members:
            for student in group.students:
                click.echo(f"    {student.student_code:<12} {student.name}")


def register_commands(cli):
    """Register classes command with main CLI."""
    cli.add_command(list_classes)

"""Student directory commands."""

import click

from schoolpay.cli.error_handling import handle_domain_error
from schoolpay.domain.directory import DirectoryService
from schoolpay.domain.entities import Student
from schoolpay.domain.errors import DomainError

STUDENT_OPTIONS = [
    ("name", "--name", "Student full name"),
    ("student_code", "--code", "Student code"),
    ("grade", "--grade", "Grade / class label"),
    ("parent_code", "--parent-code", "Code of the student's parent"),
    ("parent_name", "--parent-name", "Name of the student's parent"),
    ("external_id", "--external-id", "External system id"),
    ("birth_date", "--birth-date", "Birth date as written in the school records"),
    ("classification", "--classification", "Student classification"),
]


def student_options(func):
    """Attach one option per editable student field."""
    for field, flag, help_text in reversed(STUDENT_OPTIONS):
        func = click.option(flag, field, help=help_text)(func)
    return func


@click.group()
def students_group():
    """Browse and edit students."""
    pass


@students_group.command("list")
@click.option("--search", "query", default="", help="Match name, code, grade or parent code")
@click.pass_context
def list_students(ctx, query: str):
    """List students."""
    service = DirectoryService(ctx.obj["store"])
    try:
        students = service.list_students(query)
    except DomainError as e:
        handle_domain_error(ctx, e)

    if not students:
        click.echo("No students found.")
        return

    click.echo(f"\nFound {len(students)} student(s):")
    click.echo("-" * 100)
    click.echo(f"{'Code':<12} {'Name':<32} {'Grade':<20} {'Parent':<12} {'Parent name':<24}")
    click.echo("-" * 100)
    for student in students:
        click.echo(
            f"{student.student_code:<12} {student.name[:32]:<32} {student.grade[:20]:<20} "
            f"{student.parent_code:<12} {student.parent_name[:24]:<24}"
        )


@students_group.command("add")
@student_options
@click.pass_context
def add_student(ctx, **fields: str | None):
    """Add a student (merged with an existing one sharing the same code).

    Examples:
        schoolpay students add --name "Sara Ahmed" --code S-17 --grade "KG2" --parent-code 1001
    """
    service = DirectoryService(ctx.obj["store"])
    student = Student(**{field: (value or "").strip() for field, value in fields.items()})
    try:
        saved = service.add_student(student)
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Saved student '{saved.name}' ({saved.student_code or '-'})")


@students_group.command("edit")
@click.argument("key", metavar="STUDENT")
@student_options
@click.pass_context
def edit_student(ctx, key: str, **fields: str | None):
    """Edit a student's fields.

    STUDENT can be a student code or name. Only the options given are changed.
    """
    changes = {field: value.strip() for field, value in fields.items() if value is not None}
    if not changes:
        click.echo("Error: Nothing to change. Pass at least one field option.", err=True)
        ctx.exit(1)

    service = DirectoryService(ctx.obj["store"])
    try:
        updated = service.edit_student(key, **changes)
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Updated student '{updated.name}' ({updated.student_code or '-'})")


def register_commands(cli):
    """Register student commands with main CLI."""
    cli.add_command(students_group, name="students")

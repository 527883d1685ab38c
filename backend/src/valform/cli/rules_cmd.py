"""Rule library CLI commands."""

import click

from valform.rules import default_library


@click.group()
def rules():
    """Rule library commands."""
    pass


@rules.command("list")
def list_cmd():
    """List the built-in validation rules."""
    library = default_library()
    for name in library.list_registered():
        click.echo(name)

"""ValForm CLI entry point."""

import logging

import click


@click.group()
@click.option("--verbose", "-v", is_flag=True, default=False, help="Enable debug logging.")
def cli(verbose: bool):
    """ValForm declarative form validation CLI."""
    if verbose:
        logging.basicConfig(level=logging.DEBUG)


# Register subcommand groups
from valform.cli.form_cmd import form  # noqa: E402
from valform.cli.rules_cmd import rules  # noqa: E402

cli.add_command(form)
cli.add_command(rules)

"""Form CLI commands: check values against a form file, show its rules."""

import asyncio
from pathlib import Path
from typing import Any

import click
import yaml

from valform.config import ControllerSettings
from valform.errors import ValFormError
from valform.loader import FormDefinition, FormLoader
from valform.paths import get_path
from valform.types import FORM_ERROR, ValidationSummary

_MISSING = object()


def _load_definition(form_path: Path) -> FormDefinition:
    try:
        return FormLoader(form_path).load()
    except (ValueError, yaml.YAMLError) as e:
        click.echo(click.style(f"Error: {e}", fg="red"), err=True)
        raise SystemExit(2)


def _load_settings() -> ControllerSettings:
    try:
        return ControllerSettings.from_env()
    except ValueError as e:
        click.echo(click.style(f"Error: {e}", fg="red"), err=True)
        raise SystemExit(2)


def _load_values(values_path: Path | None) -> dict[str, Any]:
    if values_path is None:
        return {}
    with open(values_path) as f:
        data = yaml.safe_load(f)  # JSON is a YAML subset
    if data is None:
        return {}
    if not isinstance(data, dict):
        click.echo(click.style("Error: values file must contain a mapping", fg="red"), err=True)
        raise SystemExit(2)
    return data


async def _check(
    definition: FormDefinition,
    values: dict[str, Any],
    settings: ControllerSettings,
) -> tuple[ValidationSummary, dict[str, str]]:
    controller, fields = await definition.build(settings=settings)
    async with controller:
        for name, input_field in fields.items():
            value = get_path(values, name, _MISSING)
            if value is not _MISSING:
                await input_field.handle_change(value)

        summary = await controller.on_submit()

        messages: dict[str, str] = {}
        for name in summary.errors:
            if name == FORM_ERROR:
                messages[name] = "form-level rule failed"
                continue
            fallback = fields[name].error_message
            messages[name] = controller.get_error(name, fallback if isinstance(fallback, str) else None)
        return summary, messages


@click.group()
def form():
    """Form definition commands."""
    pass


@form.command()
@click.argument("form_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--values",
    "values_path",
    default=None,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="JSON or YAML mapping of field values (nested or dotted by field name).",
)
def check(form_path: Path, values_path: Path | None):
    """Submit VALUES to the form in FORM_PATH and report invalid fields."""
    definition = _load_definition(form_path)
    values = _load_values(values_path)
    settings = _load_settings()

    try:
        summary, messages = asyncio.run(_check(definition, values, settings))
    except ValFormError as e:
        click.echo(click.style(f"Error: {e}", fg="red"), err=True)
        raise SystemExit(2)

    if summary.is_valid:
        click.echo(click.style(f"✓ {definition.name} is valid", fg="green", bold=True))
        return

    for name, message in messages.items():
        click.echo(click.style(f"  ✗ {name}: {message}", fg="red"))
    click.echo(
        click.style(f"\n{len(summary.errors)} invalid field(s)", fg="red", bold=True)
    )
    raise SystemExit(1)


@form.command()
@click.argument("form_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
def show(form_path: Path):
    """List the fields of FORM_PATH and the rules each one runs."""
    definition = _load_definition(form_path)
    settings = _load_settings()

    async def _collect():
        controller, fields = await definition.build(settings=settings)
        async with controller:
            return {name: input_field.validations for name, input_field in fields.items()}

    try:
        compiled = asyncio.run(_collect())
    except ValFormError as e:
        click.echo(click.style(f"Error: {e}", fg="red"), err=True)
        raise SystemExit(2)

    click.echo(f"Form {definition.name} ({len(compiled)} fields):")
    for name, validations in compiled.items():
        if callable(validations):
            rule_names = "<custom function>"
        else:
            rule_names = ", ".join(validations) or "-"
        click.echo(f"  {name}: {rule_names}")

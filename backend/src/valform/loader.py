"""Load declarative form definitions from YAML.

A form file looks like:

    form: signup
    errorMessage: Please check this field
    model:
      age: 18
    fields:
      - name: email
        type: email
        required: true
        errorMessage:
          required: Email is required
      - name: age
        type: number
        min: 18
      - name: password
        validations:
          minlength: {value: 8, errorMessage: Too short}
      - name: confirm
        validations:
          match: password
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from valform.config import ControllerSettings
from valform.controller import FormController, FormOptions
from valform.fields import CheckboxField, InputField
from valform.rules import RuleLibrary


@dataclass
class FieldSpec:
    """One field entry of a form definition."""

    name: str
    type: str = "text"
    required: bool = False
    min: Any = None
    max: Any = None
    min_length: int | None = None
    max_length: int | None = None
    pattern: Any = None
    step: Any = None
    multiple: bool = False
    default: Any = None
    error_message: str | dict[str, str] | None = None
    validations: dict[str, Any] = field(default_factory=dict)

    def create(self, controller: FormController) -> InputField:
        kwargs: dict[str, Any] = {
            "type": self.type,
            "default_value": self.default,
            "validate": dict(self.validations),
            "error_message": self.error_message,
            "multiple": self.multiple,
            "required": self.required,
            "min": self.min,
            "max": self.max,
            "min_length": self.min_length,
            "max_length": self.max_length,
            "pattern": self.pattern,
            "step": self.step,
        }
        if self.type == "checkbox":
            return CheckboxField(self.name, controller, **kwargs)
        return InputField(self.name, controller, **kwargs)


@dataclass
class FormDefinition:
    """A parsed form file."""

    name: str
    fields: list[FieldSpec] = field(default_factory=list)
    error_message: str | dict[str, str] | None = None
    disabled: bool = False
    model: dict[str, Any] = field(default_factory=dict)

    def get_field(self, name: str) -> FieldSpec | None:
        for field_spec in self.fields:
            if field_spec.name == name:
                return field_spec
        return None

    async def build(
        self,
        *,
        library: RuleLibrary | None = None,
        settings: ControllerSettings | None = None,
        **options: Any,
    ) -> tuple[FormController, dict[str, InputField]]:
        """Create a controller and mount one field per entry.

        Keyword options override the FormOptions taken from the file
        (typically the submit callbacks).
        """
        form_options = FormOptions(
            disabled=self.disabled,
            model=dict(self.model),
            error_message=self.error_message,
        )
        for key, value in options.items():
            if not hasattr(form_options, key):
                raise TypeError(f"Unknown form option: {key}")
            setattr(form_options, key, value)

        controller = FormController(form_options, library=library, settings=settings)
        fields: dict[str, InputField] = {}
        for field_spec in self.fields:
            input_field = field_spec.create(controller)
            await input_field.mount()
            fields[field_spec.name] = input_field
        return controller, fields


class FormLoader:
    """Loads a form definition from a YAML file."""

    def __init__(self, path: Path | str):
        self.path = Path(path)

    def load(self) -> FormDefinition:
        with open(self.path) as f:
            data = yaml.safe_load(f)
        return resolve_form(data, source=str(self.path))


def load_form_string(text: str) -> FormDefinition:
    """Parse a form definition from a YAML string."""
    return resolve_form(yaml.safe_load(text))


def resolve_form(data: Any, source: str = "<string>") -> FormDefinition:
    """Convert parsed YAML into a FormDefinition.

    Raises:
        ValueError: The document is not a form definition, or a field has no name
    """
    if not isinstance(data, dict) or "form" not in data:
        raise ValueError(f"{source}: not a form definition (missing 'form' key)")

    fields = [_resolve_field(entry, source, index) for index, entry in enumerate(data.get("fields") or [])]

    return FormDefinition(
        name=str(data["form"]),
        fields=fields,
        error_message=data.get("errorMessage"),
        disabled=bool(data.get("disabled", False)),
        model=data.get("model") or {},
    )


def _resolve_field(data: Any, source: str, index: int) -> FieldSpec:
    if not isinstance(data, dict) or not data.get("name"):
        raise ValueError(f"{source}: field #{index + 1} has no name")

    return FieldSpec(
        name=str(data["name"]),
        type=data.get("type", "text"),
        required=bool(data.get("required", False)),
        min=data.get("min"),
        max=data.get("max"),
        min_length=data.get("minLength"),
        max_length=data.get("maxLength"),
        pattern=data.get("pattern"),
        step=data.get("step"),
        multiple=bool(data.get("multiple", False)),
        default=data.get("default"),
        error_message=data.get("errorMessage"),
        validations=data.get("validations") or {},
    )

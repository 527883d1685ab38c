"""Headless reference fields.

These implement the field side of the contract without any rendering:
they build their rule map from declarative attributes, register with a
controller, feed it change/blur events and re-derive a small display
state whenever the controller broadcasts. A UI layer wraps one of these
(or implements the same protocol) and renders ``display``.
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Mapping

if TYPE_CHECKING:
    from valform.controller import FormController

# Declarative attribute -> rule name
VALIDATION_ATTRS = {
    "required": "required",
    "min": "min",
    "max": "max",
    "min_length": "minlength",
    "max_length": "maxlength",
    "pattern": "pattern",
    "step": "step",
}

# Input type -> shorthand rule it implies
VALIDATION_TYPES = {
    "email": "email",
    "date": "date",
    "datetime": "date",
    "number": "number",
    "tel": "phone",
    "url": "url",
}


@dataclass(frozen=True)
class FieldDisplay:
    """What a renderer needs to show for a field."""

    error: bool = False
    error_text: str | None = None
    helper_text: str | None = None
    required: bool = False


class InputField:
    """A single-value input (text, number, email, date, ...).

    Errors are only displayed once the form has been submitted; before
    that the field tracks validity silently.
    """

    def __init__(
        self,
        name: str,
        controller: "FormController | None" = None,
        *,
        type: str = "text",
        value: Any = None,
        default_value: Any = None,
        validate: Mapping[str, Any] | Callable[..., Any] | None = None,
        error_message: str | Mapping[str, str] | None = None,
        helper_text: str = "",
        multiple: bool = False,
        value_parser: Callable[[Any], Any] | None = None,
        required: bool = False,
        min: Any = None,
        max: Any = None,
        min_length: int | None = None,
        max_length: int | None = None,
        pattern: Any = None,
        step: Any = None,
    ):
        self.name = name
        self.controller = controller
        self.type = type
        self.multiple = multiple
        self.initial_value = value
        self.default_value = default_value
        self.validate_rules = validate
        self.error_message = error_message
        self.helper_text = helper_text
        self.value_parser = value_parser
        self.attrs: dict[str, Any] = {
            "required": required,
            "min": min,
            "max": max,
            "min_length": min_length,
            "max_length": max_length,
            "pattern": pattern,
            "step": step,
        }
        self.value: Any = [] if multiple else ""
        self.validations: Mapping[str, Any] | Callable[..., Any] = {}
        self.display = FieldDisplay()
        self.update_count = 0
        self.build_validations()

    # -------------------------------------------------------------------------
    # Rules
    # -------------------------------------------------------------------------

    def build_validations(self) -> None:
        """Derive the rule map from ``validate``, the input type and attributes."""
        if callable(self.validate_rules):
            self.validations = self.validate_rules
            return

        validations = dict(self.validate_rules or {})

        implied = VALIDATION_TYPES.get(self.type)
        if implied:
            validations.setdefault(implied, True)

        for attr, rule_name in VALIDATION_ATTRS.items():
            attr_value = self.attrs.get(attr)
            if attr_value is None or attr_value is False:
                continue
            validations.setdefault(rule_name, {"value": attr_value})

        self.validations = validations

    def is_required(self) -> bool:
        if self.attrs.get("required"):
            return True
        if not isinstance(self.validations, Mapping):
            return False
        declared = self.validations.get("required")
        if isinstance(declared, Mapping):
            return bool(declared.get("value", True)) and declared.get("enabled", True) is not False
        return bool(declared)

    # -------------------------------------------------------------------------
    # Values
    # -------------------------------------------------------------------------

    def get_default_value(self) -> Any:
        if self.default_value is not None:
            return self.default_value
        if self.controller is not None:
            model_value = self.controller.get_default_value(self.name)
            if model_value is not None:
                return model_value
        return [] if self.multiple else ""

    def get_value(self) -> Any:
        """Return the semantic value (raw value through ``value_parser``)."""
        if self.value_parser is None:
            return self.value
        try:
            return self.value_parser(self.value)
        except (TypeError, ValueError):
            return None

    def _refresh_bad(self) -> None:
        if self.value_parser is None or self.controller is None:
            return
        try:
            self.value_parser(self.value)
        except (TypeError, ValueError):
            self.controller.set_bad(self.name)
        else:
            self.controller.set_bad(self.name, False)

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def mount(self, controller: "FormController | None" = None) -> None:
        """Take the initial value, register and validate."""
        if controller is not None:
            self.controller = controller
        if self.controller is None:
            raise RuntimeError(f"Field '{self.name}' has no controller to mount on")
        if self.initial_value is not None and self.initial_value != "":
            self.value = self.initial_value
        else:
            self.value = self.get_default_value()
        self.controller.register_input(self)
        self._refresh_bad()
        await self.validate()

    def unmount(self) -> None:
        if self.controller is not None:
            self.controller.unregister_input(self)

    async def rename(self, new_name: str) -> None:
        """Move this field to a new name; the old registration is dropped."""
        await self.set_props(name=new_name)

    async def set_props(self, **changes: Any) -> None:
        """Apply changed declarative props, re-register and revalidate."""
        for key, new_value in changes.items():
            if key in self.attrs:
                self.attrs[key] = new_value
            elif key == "validate":
                self.validate_rules = new_value
            elif key == "multiple" and new_value != self.multiple:
                self.multiple = new_value
                self.value = [] if new_value else ""
            elif key == "value":
                self.value = new_value
            elif hasattr(self, key):
                setattr(self, key, new_value)
            else:
                raise TypeError(f"Unknown field prop: {key}")
        self.build_validations()
        if self.controller is not None:
            self.controller.register_input(self)
            await self.validate()

    async def validate(self) -> bool:
        return await self.controller.validate_input(self.name)

    # -------------------------------------------------------------------------
    # Events
    # -------------------------------------------------------------------------

    async def handle_change(self, value: Any) -> None:
        self.value = value
        self._refresh_bad()
        await self.controller.handle_change(self.name)

    def handle_blur(self) -> None:
        self.controller.handle_blur(self.name)

    def update(self, delta: dict[str, Any]) -> None:
        """Broadcast receiver: re-read shared state into ``display``."""
        self.update_count += 1
        controller = self.controller
        error = bool(controller.submitted and controller.has_error(self.name))
        fallback = self.error_message if isinstance(self.error_message, str) else None
        error_text = controller.get_error(self.name, fallback) if error else None
        self.display = FieldDisplay(
            error=error,
            error_text=error_text,
            helper_text=error_text or self.helper_text or None,
            required=self.is_required(),
        )


class CheckboxField(InputField):
    """A single checkbox, or a group of checkboxes when ``multiple`` is set.

    A single box holds ``true_value`` or ``false_value``; a group holds the
    list of checked options, which the ``minchecked``/``maxchecked`` rules
    (and ``min``/``max`` on a group) count.
    """

    def __init__(
        self,
        name: str,
        controller: "FormController | None" = None,
        *,
        true_value: Any = True,
        false_value: Any = False,
        checked: bool | None = None,
        **kwargs: Any,
    ):
        kwargs.setdefault("type", "checkbox")
        self.true_value = true_value
        self.false_value = false_value
        self.checked = checked
        super().__init__(name, controller, **kwargs)
        if not self.multiple:
            self.value = false_value

    def get_default_value(self) -> Any:
        if self.multiple:
            default = super().get_default_value()
            return list(default) if isinstance(default, (list, tuple)) else []
        if self.checked is not None:
            return self.true_value if self.checked else self.false_value
        default = super().get_default_value()
        return self.true_value if default == self.true_value else self.false_value

    async def handle_toggle(self, checked: bool, option: Any = None) -> None:
        """Check or uncheck the box (or ``option`` of a group)."""
        if self.multiple:
            selected = [item for item in self.value if item != option]
            if checked:
                selected.append(option)
            value = selected
        else:
            value = self.true_value if checked else self.false_value
        await self.handle_change(value)

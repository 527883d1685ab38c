"""Core types for the ValForm engine.

This module defines the shapes shared by every layer:
- Constraint: normalized configuration for one rule on one field
- Rule variants: LiteralRule, ConstraintRule, CustomRule
- RuleOutcome / ValidationSummary: results of field and form validation
- Field: the adapter contract a concrete input implements
"""

from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Mapping, Protocol, Union

# A rule resolves to True (valid), False (invalid, no message) or a message.
RuleResult = Union[bool, str]

# Receives an empty delta whenever shared form state changes.
Updater = Callable[[dict[str, Any]], Any]

# Compiled per-field validator: (value, context) -> True | False | message
FieldValidator = Callable[[Any, Mapping[str, Any]], Awaitable[RuleResult]]

FORM_ERROR = "*"
DEFAULT_ERROR_MESSAGE = "Field is invalid"

_CONSTRAINT_KEYS = {"value", "errorMessage", "error_message", "enabled"}


@dataclass
class Constraint:
    """Configuration supplied to a rule for one field.

    Attributes:
        value: The rule argument (bound, pattern, other field name, flag)
        error_message: Message returned by the rule when it fails
        enabled: False disables the rule without removing it
        params: Any other keys from the declaration (format, pattern, ...)
    """

    value: Any = True
    error_message: str | None = None
    enabled: bool = True
    params: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_raw(cls, raw: Any) -> "Constraint":
        """Create a Constraint from a declaration value.

        Accepts a mapping ({"value": 18, "errorMessage": "..."}), a bare
        literal (True, 18, "^a+$") or None.
        """
        if isinstance(raw, Constraint):
            return raw
        if raw is None:
            return cls()
        if isinstance(raw, Mapping):
            message = raw.get("errorMessage", raw.get("error_message"))
            return cls(
                value=raw.get("value", True),
                error_message=message if message else None,
                enabled=raw.get("enabled", True) is not False,
                params={k: v for k, v in raw.items() if k not in _CONSTRAINT_KEYS},
            )
        return cls(value=raw)

    def get(self, key: str, default: Any = None) -> Any:
        return self.params.get(key, default)


@dataclass(frozen=True)
class LiteralRule:
    """Shorthand declaration such as ``email: true`` or ``min: 18``."""

    value: Any

    @property
    def constraint(self) -> Constraint:
        return Constraint.from_raw(self.value)


@dataclass(frozen=True)
class ConstraintRule:
    """Full declaration: ``{value, errorMessage?, enabled?}``."""

    constraint: Constraint


@dataclass(frozen=True)
class CustomRule:
    """Inline predicate: ``(value, context, field, callback) -> result``."""

    predicate: Callable[..., Any]


RuleDeclaration = Union[LiteralRule, ConstraintRule, CustomRule]


def normalize_rule(raw: Any) -> RuleDeclaration:
    """Normalize one declarative rule value into a tagged variant."""
    if isinstance(raw, (LiteralRule, ConstraintRule, CustomRule)):
        return raw
    if callable(raw):
        return CustomRule(raw)
    if isinstance(raw, (Mapping, Constraint)):
        return ConstraintRule(Constraint.from_raw(raw))
    return LiteralRule(raw)


@dataclass(frozen=True)
class RuleOutcome:
    """A single settled rule result."""

    value: Any
    rule: str

    @property
    def passed(self) -> bool:
        return self.value is True


@dataclass
class ValidationSummary:
    """Result of validating every registered field plus form-level rules.

    Attributes:
        is_valid: True if no field and no form-level rule failed
        errors: Names of invalid fields in registration order; "*" marks
            a failed form-level rule
    """

    is_valid: bool
    errors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"isValid": self.is_valid, "errors": list(self.errors)}


class Field(Protocol):
    """Protocol a concrete input implements to take part in a form.

    Only ``name`` and ``get_value`` are required. ``validations`` may be a
    rule map or a single custom function; ``error_message`` may be a string
    or a per-rule mapping of override messages.
    """

    name: str

    def get_value(self) -> Any:
        """Return the field's current semantic value."""
        ...

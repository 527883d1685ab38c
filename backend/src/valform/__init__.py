"""ValForm: declarative field-level form validation.

The engine is organised in layers:
- Rules: a library of named predicates (required, email, min, ...)
- Compiler: a field's rule map turned into one async validator
- Registry: live fields by name, their updaters and validators
- State: dirty / touched / bad / error per field
- Broadcaster: throttled fan-out of state changes to fields
- Controller: registration, validation and submission in one object

Usage:
    from valform import FormController, FormOptions, InputField

    form = FormController(FormOptions(on_valid_submit=save))
    email = InputField("email", form, type="email", required=True)
    await email.mount()
    await email.handle_change("someone@example.com")
    summary = await form.on_submit()
"""

from valform.broadcast import Throttle, UpdateBroadcaster
from valform.compiler import call_rule, compile_rules, reduce_outcomes
from valform.config import ControllerSettings
from valform.controller import FormController, FormOptions
from valform.errors import (
    DuplicateNameError,
    MissingNameError,
    UnknownRuleError,
    ValFormError,
)
from valform.fields import CheckboxField, FieldDisplay, InputField
from valform.loader import FieldSpec, FormDefinition, FormLoader, load_form_string
from valform.paths import get_path, set_path, split_path
from valform.registry import DuplicatePolicy, FieldRegistry
from valform.rules import RuleLibrary, default_library, register_builtin_rules, rule
from valform.state import StateTracker
from valform.types import (
    DEFAULT_ERROR_MESSAGE,
    FORM_ERROR,
    Constraint,
    ConstraintRule,
    CustomRule,
    Field,
    LiteralRule,
    RuleOutcome,
    ValidationSummary,
    normalize_rule,
)

__all__ = [
    # Types
    "Constraint",
    "ConstraintRule",
    "CustomRule",
    "DEFAULT_ERROR_MESSAGE",
    "FORM_ERROR",
    "Field",
    "LiteralRule",
    "RuleOutcome",
    "ValidationSummary",
    "normalize_rule",
    # Errors
    "DuplicateNameError",
    "MissingNameError",
    "UnknownRuleError",
    "ValFormError",
    # Rules
    "RuleLibrary",
    "default_library",
    "register_builtin_rules",
    "rule",
    # Engine
    "ControllerSettings",
    "DuplicatePolicy",
    "FieldRegistry",
    "FormController",
    "FormOptions",
    "StateTracker",
    "Throttle",
    "UpdateBroadcaster",
    "call_rule",
    "compile_rules",
    "reduce_outcomes",
    # Paths
    "get_path",
    "set_path",
    "split_path",
    # Fields and definitions
    "CheckboxField",
    "FieldDisplay",
    "FieldSpec",
    "FormDefinition",
    "FormLoader",
    "InputField",
    "load_form_string",
]

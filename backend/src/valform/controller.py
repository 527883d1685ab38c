"""Form controller: the object every field talks to.

The controller ties the layers together:
1. Registry: which fields exist and how to reach them
2. Compiler: their declarative rules turned into async validators
3. State tracker: dirty/touched/bad/error per field
4. Broadcaster: throttled notification of fields after state changes

Fields receive the controller explicitly and call register_input() on
mount, unregister_input() on unmount, and handle_change()/handle_blur()
as the user interacts with them. Submitting runs every validator in
registration order and reports the outcome through the form callbacks.
"""

import inspect
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Sequence

from valform.broadcast import UpdateBroadcaster
from valform.compiler import compile_rules
from valform.config import ControllerSettings
from valform.errors import DuplicateNameError
from valform.paths import get_path
from valform.registry import FieldRegistry, field_name
from valform.rules import RuleLibrary, default_library
from valform.state import Names, StateTracker
from valform.types import FORM_ERROR, FieldValidator, Updater, ValidationSummary

logger = logging.getLogger(__name__)

FormRule = Callable[[Mapping[str, Any]], Any]


@dataclass
class FormOptions:
    """Consumer-facing configuration of one form.

    Attributes:
        disabled: When True, submitting does nothing at all
        model: Default values, looked up by dotted field name
        error_message: Form-wide fallback message (string or per-rule map)
        validate: One or more form-level rules over the full value context
        on_submit: ``(event, error_names, values)``, fired before the outcome
        on_valid_submit: ``(event, values)``
        on_invalid_submit: ``(event, error_names, values)``
    """

    disabled: bool = False
    model: dict[str, Any] = field(default_factory=dict)
    error_message: Any = None
    validate: FormRule | Sequence[FormRule] | None = None
    on_submit: Callable[..., Any] | None = None
    on_valid_submit: Callable[..., Any] | None = None
    on_invalid_submit: Callable[..., Any] | None = None


async def _resolve(result: Any) -> Any:
    if inspect.isawaitable(result):
        return await result
    return result


async def _invoke(callback: Callable[..., Any] | None, *args: Any) -> None:
    if callback is None:
        return
    await _resolve(callback(*args))


class FormController:
    """Tracks a dynamic set of fields and their validity.

    Example:
        async with FormController(FormOptions(on_valid_submit=save)) as form:
            email = InputField("email", form, type="email", required=True)
            await email.mount()
            await email.handle_change("a@b.com")
            await form.on_submit()
    """

    def __init__(
        self,
        options: FormOptions | None = None,
        *,
        library: RuleLibrary | None = None,
        settings: ControllerSettings | None = None,
    ):
        self.options = options or FormOptions()
        self.settings = settings or ControllerSettings()
        self.library = library if library is not None else default_library()
        self.registry = FieldRegistry(self._compile, self.settings.duplicate_policy)
        self.state = StateTracker(on_change=self.update_inputs)
        self.broadcaster = UpdateBroadcaster(self.registry, self.settings.throttle_wait)
        self.submitted = False

    # -------------------------------------------------------------------------
    # Registration
    # -------------------------------------------------------------------------

    def register_input(self, field: Any, updater: Updater | None = None) -> str:
        """Register a field (or re-register it after a rename or props change)."""
        name = field_name(field)
        old_name = self.registry.find_name(field)
        self.registry.register(field, updater)
        if old_name is not None and old_name != name and self.settings.clear_state_on_unregister:
            self.state.forget(old_name)
        return name

    def unregister_input(self, field: Any) -> None:
        """Remove a field and its validator; keeps its state unless configured otherwise."""
        name = field_name(field)
        removed = self.registry.unregister(field)
        if removed and self.settings.clear_state_on_unregister:
            self.state.forget(name)

    def is_input_registered(self, field: Any) -> str | None:
        """Return the name this exact field instance is registered under, if any."""
        return self.registry.find_name(field)

    def _compile(self, field: Any, rules: Mapping[str, Any]) -> FieldValidator:
        return compile_rules(
            field,
            rules,
            self.library,
            is_bad=self.state.is_bad,
            form_error_message=lambda: self.options.error_message,
        )

    # -------------------------------------------------------------------------
    # Values
    # -------------------------------------------------------------------------

    def get_default_value(self, name: str) -> Any:
        return get_path(self.options.model, name)

    def get_value(self, name: str) -> Any:
        return self.registry.get_value(name)

    def get_values(self) -> dict[str, Any]:
        return self.registry.get_values()

    # -------------------------------------------------------------------------
    # State (delegated to the tracker)
    # -------------------------------------------------------------------------

    def set_dirty(self, names: Names, dirty: bool = True, update: bool = True) -> bool:
        return self.state.set_dirty(names, dirty, update)

    def set_touched(self, names: Names, touched: bool = True, update: bool = True) -> bool:
        return self.state.set_touched(names, touched, update)

    def set_bad(self, names: Names, bad: bool = True, update: bool = True) -> bool:
        return self.state.set_bad(names, bad, update)

    def set_error(self, name: str, error: Any = True, message: Any = None, update: bool = True) -> bool:
        return self.state.set_error(name, error, message, update)

    def is_dirty(self, name: str | None = None) -> bool:
        return self.state.is_dirty(name)

    def is_touched(self, name: str | None = None) -> bool:
        return self.state.is_touched(name)

    def is_bad(self, name: str | None = None) -> bool:
        return self.state.is_bad(name)

    def has_error(self, name: str | None = None) -> bool:
        return self.state.has_error(name)

    def get_error(self, name: str, fallback: str | None = None) -> str:
        return self.state.get_error(name, fallback or self.settings.default_error_message)

    # -------------------------------------------------------------------------
    # Field events
    # -------------------------------------------------------------------------

    async def handle_change(self, name: str) -> None:
        """Record a user-driven value change; revalidates once the form was submitted."""
        self.set_dirty(name)
        self.set_touched(name)
        if self.submitted:
            await self.validate_input(name)

    def handle_blur(self, name: str) -> None:
        self.set_touched(name)

    # -------------------------------------------------------------------------
    # Validation
    # -------------------------------------------------------------------------

    async def validate_input(self, name: str) -> bool:
        """Validate one field against the current values of the whole form."""
        return await self.validate_one(name, self.get_values())

    async def validate_one(
        self,
        name: str,
        context: Mapping[str, Any],
        update: bool = True,
    ) -> bool:
        """Validate a single field and record the outcome in the error map.

        Args:
            name: Field name (also the dotted path of its value in ``context``)
            context: Full value context
            update: Broadcast the state change

        Returns:
            True if the field is valid. Unknown names are valid.
        """
        field = self.registry.get(name)
        if field is None:
            return True
        if isinstance(field, (list, tuple)):
            raise DuplicateNameError(name)

        value = get_path(context, name)
        validations = getattr(field, "validations", None)

        if isinstance(validations, Mapping):
            validator = self.registry.get_validator(name) or self._compile(field, validations)
            result = await validator(value, context)
        elif callable(validations):
            try:
                result = await _resolve(validations(value, context, field))
            except Exception:
                logger.exception("Validation function of field '%s' raised", name)
                result = False
        else:
            result = True

        is_valid = result is True
        if self.registry.get(name) is not field:
            # Unregistered or replaced while validating
            logger.debug("Discarding validation result for departed field '%s'", name)
            return is_valid

        message = result if isinstance(result, str) and result else None
        self.state.set_error(name, not is_valid, message, update)
        return is_valid

    async def validate_all(
        self,
        context: Mapping[str, Any],
        update: bool = True,
    ) -> ValidationSummary:
        """Validate every registered field in registration order, then form rules.

        Fields are awaited one after the other; the rules within each field
        run concurrently. A failing form-level rule adds "*" to the errors.
        """
        errors: list[str] = []
        is_valid = True

        for name in self.registry.names():
            if name not in self.registry:
                continue
            if not await self.validate_one(name, context, update):
                is_valid = False
                errors.append(name)

        form_rules = self.options.validate
        if form_rules:
            if callable(form_rules):
                form_rules = [form_rules]
            for form_rule in form_rules:
                try:
                    passed = await _resolve(form_rule(context))
                except Exception:
                    logger.exception("Form-level validation rule raised")
                    passed = False
                if not passed:
                    is_valid = False
                    errors.append(FORM_ERROR)
                    break

        return ValidationSummary(is_valid=is_valid, errors=errors)

    # -------------------------------------------------------------------------
    # Submission
    # -------------------------------------------------------------------------

    async def on_submit(self, event: Any = None) -> ValidationSummary | None:
        """Handle a submit event.

        Prevents the event's default action, validates everything with
        broadcasting suspended, marks all fields touched, broadcasts once,
        then calls on_submit followed by exactly one of on_valid_submit /
        on_invalid_submit. Returns None when the form is disabled.
        """
        prevent_default = getattr(event, "prevent_default", None)
        if callable(prevent_default):
            prevent_default()

        if self.options.disabled:
            return None

        values = self.get_values()
        summary = await self.validate_all(values, update=False)

        self.state.set_touched(self.registry.names(), True, update=False)
        self.submitted = True
        self.broadcaster.flush()

        await _invoke(self.options.on_submit, event, summary.errors, values)
        if summary.is_valid:
            await _invoke(self.options.on_valid_submit, event, values)
        else:
            await _invoke(self.options.on_invalid_submit, event, summary.errors, values)

        return summary

    # -------------------------------------------------------------------------
    # Broadcasting and lifecycle
    # -------------------------------------------------------------------------

    def update_inputs(self) -> None:
        """Ask every field to refresh its display (throttled)."""
        self.broadcaster.notify()

    def close(self) -> None:
        """Cancel a pending broadcast. The controller is not used afterwards."""
        self.broadcaster.close()

    async def __aenter__(self) -> "FormController":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        self.close()

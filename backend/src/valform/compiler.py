"""Validation rule compiler.

Turns a field's declarative rule map into one async validator. All rules
of a field run concurrently; their results are reduced in declaration
order so the first declared failing rule always supplies the message,
whatever order the rules settle in.
"""

import asyncio
import inspect
import logging
from typing import Any, Callable, Mapping

from valform.errors import UnknownRuleError
from valform.rules.library import RuleLibrary
from valform.types import (
    CustomRule,
    FieldValidator,
    RuleOutcome,
    RuleResult,
    normalize_rule,
)

logger = logging.getLogger(__name__)


async def call_rule(fn: Callable[..., Any], *args: Any) -> Any:
    """Invoke a rule and wait for its result, whatever its calling convention.

    A rule may return its result, return an awaitable, or return None and
    report through the trailing ``callback`` argument later. The first
    result reported wins. A rule that returns None and never calls back
    never settles; no timeout is imposed.
    """
    loop = asyncio.get_running_loop()
    settled: asyncio.Future = loop.create_future()

    def callback(result: Any = None) -> None:
        if not settled.done():
            settled.set_result(result)

    returned = fn(*args, callback)
    if inspect.isawaitable(returned):
        callback(await returned)
    elif returned is not None:
        callback(returned)

    return await settled


async def _settle(rule: str, field_name: str, fn: Callable[..., Any], *args: Any) -> RuleOutcome:
    try:
        value = await call_rule(fn, *args)
    except Exception:
        logger.exception("Validation rule '%s' on field '%s' raised", rule, field_name)
        value = False
    return RuleOutcome(value=value, rule=rule)


async def _passed(rule: str) -> RuleOutcome:
    return RuleOutcome(value=True, rule=rule)


def resolve_error_message(source: Any, rule: str) -> Any:
    """Pick the override message for ``rule`` from a string or per-rule mapping."""
    if isinstance(source, Mapping):
        return source.get(rule)
    return source


def reduce_outcomes(
    outcomes: list[RuleOutcome],
    field: Any,
    form_error_message: Any = None,
) -> RuleResult:
    """Reduce rule outcomes (in declaration order) to one field result.

    The first outcome that is not exactly True decides. Its own message is
    used when it returned a non-empty string; otherwise the field's
    ``error_message`` for that rule, then the form's, then False.
    """
    for outcome in outcomes:
        if outcome.passed:
            continue
        if isinstance(outcome.value, str) and outcome.value:
            return outcome.value
        return (
            resolve_error_message(getattr(field, "error_message", None), outcome.rule)
            or resolve_error_message(form_error_message, outcome.rule)
            or False
        )
    return True


def compile_rules(
    field: Any,
    rules: Mapping[str, Any],
    library: RuleLibrary,
    *,
    is_bad: Callable[[str], bool],
    form_error_message: Any = None,
) -> FieldValidator:
    """Compile a declarative rule map into a single async field validator.

    Args:
        field: The field owning the rules (passed through to every rule)
        rules: Rule name -> constraint dict, literal shorthand or custom function
        library: Where named rules are looked up, at validation time
        is_bad: Predicate telling whether a field name is currently marked bad
        form_error_message: Form-wide fallback message (string or per-rule map),
            or a zero-argument callable returning one

    Returns:
        ``async validate(value, context) -> True | False | message``. Raises
        UnknownRuleError when a rule name is not in the library.
    """
    declarations = [(name, normalize_rule(raw)) for name, raw in rules.items()]

    async def validate(value: Any, context: Mapping[str, Any]) -> RuleResult:
        field_name = getattr(field, "name", "")
        if is_bad(field_name):
            return False

        # Resolve every rule before starting any, so an unknown rule leaves
        # no half-started coroutines behind.
        resolved: list[tuple[str, Callable[..., Any] | None, tuple]] = []
        for rule_name, declaration in declarations:
            if isinstance(declaration, CustomRule):
                resolved.append((rule_name, declaration.predicate, (value, context, field)))
                continue
            try:
                rule_fn = library.get(rule_name)
            except UnknownRuleError:
                raise UnknownRuleError(rule_name, field_name) from None
            constraint = declaration.constraint
            if not constraint.enabled:
                resolved.append((rule_name, None, ()))
            else:
                resolved.append((rule_name, rule_fn, (value, context, constraint, field)))

        outcomes = await asyncio.gather(*(
            _settle(rule_name, field_name, fn, *args) if fn is not None else _passed(rule_name)
            for rule_name, fn, args in resolved
        ))
        form_message = form_error_message() if callable(form_error_message) else form_error_message
        return reduce_outcomes(list(outcomes), field, form_message)

    return validate

"""Tests for the validation rule compiler."""

import asyncio
import random

import pytest

from valform.compiler import call_rule, compile_rules, reduce_outcomes, resolve_error_message
from valform.errors import UnknownRuleError
from valform.rules import RuleLibrary, default_library
from valform.types import RuleOutcome


class FakeField:
    def __init__(self, name="field", error_message=None):
        self.name = name
        self.error_message = error_message


def make_validator(rules, field=None, library=None, bad=(), form_error_message=None):
    return compile_rules(
        field or FakeField(),
        rules,
        library if library is not None else default_library(),
        is_bad=lambda name: name in bad,
        form_error_message=form_error_message,
    )


def delayed(result, delay):
    async def rule_fn(value, context, constraint, field, callback):
        await asyncio.sleep(delay)
        return result

    return rule_fn


# =============================================================================
# call_rule normalization
# =============================================================================


class TestCallRule:
    @pytest.mark.asyncio
    async def test_plain_return(self):
        assert await call_rule(lambda value, cb: value == 1, 1) is True

    @pytest.mark.asyncio
    async def test_awaitable_return(self):
        async def rule_fn(value, cb):
            return "async message"

        assert await call_rule(rule_fn, 1) == "async message"

    @pytest.mark.asyncio
    async def test_callback_later(self):
        def rule_fn(value, cb):
            asyncio.get_running_loop().call_later(0.01, cb, "from callback")

        assert await call_rule(rule_fn, 1) == "from callback"

    @pytest.mark.asyncio
    async def test_first_result_wins(self):
        def rule_fn(value, cb):
            cb(True)
            return "ignored"

        assert await call_rule(rule_fn, 1) is True


# =============================================================================
# Compiled validators
# =============================================================================


class TestCompiledValidator:
    @pytest.mark.asyncio
    async def test_empty_rules_are_valid(self):
        validate = make_validator({})
        assert await validate("anything", {}) is True

    @pytest.mark.asyncio
    async def test_required_message(self):
        validate = make_validator({"required": {"value": True, "errorMessage": "req"}})
        assert await validate("", {}) == "req"
        assert await validate("x", {}) is True

    @pytest.mark.asyncio
    async def test_literal_shorthand(self):
        validate = make_validator({"min": 18})
        assert await validate(15, {}) is False
        assert await validate(21, {}) is True

    @pytest.mark.asyncio
    async def test_disabled_rule_is_satisfied(self):
        validate = make_validator({"required": {"value": True, "enabled": False}})
        assert await validate("", {}) is True

    @pytest.mark.asyncio
    async def test_bad_field_short_circuits(self):
        calls = []

        def spy(value, context, field, callback):
            calls.append(value)
            return True

        validate = make_validator({"custom": spy}, bad={"field"})
        assert await validate("x", {}) is False
        assert calls == []

    @pytest.mark.asyncio
    async def test_custom_predicate_signature(self):
        seen = {}

        def custom(value, context, field, callback):
            seen.update(value=value, context=context, field=field)
            callback("custom says no")

        field = FakeField()
        validate = make_validator({"custom": custom}, field=field)
        assert await validate("v", {"a": 1}) == "custom says no"
        assert seen == {"value": "v", "context": {"a": 1}, "field": field}

    @pytest.mark.asyncio
    async def test_unknown_rule_rejects(self):
        validate = make_validator({"required": True, "doesNotExist": True}, field=FakeField("email"))
        with pytest.raises(UnknownRuleError) as exc_info:
            await validate("x", {})
        assert exc_info.value.rule == "doesNotExist"
        assert exc_info.value.field == "email"

    @pytest.mark.asyncio
    async def test_rules_registered_after_compile_are_found(self):
        library = RuleLibrary()
        validate = make_validator({"late": True}, library=library)
        library.register("late", lambda value, context, constraint, field, cb: "late rule")
        assert await validate("x", {}) == "late rule"

    @pytest.mark.asyncio
    async def test_raising_rule_fails_generically(self):
        def broken(value, context, field, callback):
            raise RuntimeError("boom")

        validate = make_validator({"broken": broken, "required": True})
        assert await validate("x", {}) is False

    @pytest.mark.asyncio
    async def test_rules_run_concurrently(self):
        library = RuleLibrary()
        library.register("slowA", delayed(True, 0.05))
        library.register("slowB", delayed(True, 0.05))
        validate = make_validator({"slowA": True, "slowB": True}, library=library)

        loop = asyncio.get_running_loop()
        started = loop.time()
        assert await validate("x", {}) is True
        assert loop.time() - started < 0.095


class TestDeclarationOrder:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("seed", range(5))
    async def test_first_declared_failure_wins(self, seed):
        rng = random.Random(seed)
        library = RuleLibrary()
        library.register("a", delayed("A", rng.uniform(0, 0.02)))
        library.register("b", delayed("B", rng.uniform(0, 0.02)))
        validate = make_validator({"a": True, "b": True}, library=library)
        assert await validate("x", {}) == "A"

    @pytest.mark.asyncio
    async def test_passing_rule_before_failure_is_skipped(self):
        library = RuleLibrary()
        library.register("ok", delayed(True, 0.02))
        library.register("fail", delayed("F", 0))
        validate = make_validator({"ok": True, "fail": True}, library=library)
        assert await validate("x", {}) == "F"


class TestMessageFallback:
    @pytest.mark.asyncio
    async def test_field_message_string(self):
        validate = make_validator({"required": True}, field=FakeField(error_message="Field message"))
        assert await validate("", {}) == "Field message"

    @pytest.mark.asyncio
    async def test_field_message_per_rule(self):
        field = FakeField(error_message={"min": "Too small"})
        validate = make_validator({"required": True, "min": 5}, field=field)
        assert await validate(3, {}) == "Too small"
        assert await validate("", {}) is False

    @pytest.mark.asyncio
    async def test_form_message_fallback(self):
        validate = make_validator({"required": True}, form_error_message={"required": "Form says required"})
        assert await validate("", {}) == "Form says required"

    @pytest.mark.asyncio
    async def test_form_message_callable(self):
        messages = {"current": "first"}
        validate = make_validator({"required": True}, form_error_message=lambda: messages["current"])
        messages["current"] = "second"
        assert await validate("", {}) == "second"

    def test_reduce_uses_string_result_verbatim(self):
        outcomes = [RuleOutcome(True, "a"), RuleOutcome("msg", "b"), RuleOutcome("other", "c")]
        assert reduce_outcomes(outcomes, FakeField(error_message="fallback")) == "msg"

    def test_reduce_empty_string_falls_back(self):
        outcomes = [RuleOutcome("", "a")]
        assert reduce_outcomes(outcomes, FakeField(error_message="fallback")) == "fallback"

    def test_resolve_error_message(self):
        assert resolve_error_message("text", "any") == "text"
        assert resolve_error_message({"min": "m"}, "min") == "m"
        assert resolve_error_message({"min": "m"}, "max") is None
        assert resolve_error_message(None, "min") is None

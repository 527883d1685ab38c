"""Rule library for ValForm.

Maps rule names to predicates. Declarative rule maps on fields reference
rules by name; the compiler resolves the name here at validation time, so
rules registered after a field compiled its validator are still found.
"""

from typing import Any, Callable, Iterator

from valform.errors import UnknownRuleError

# Rule predicate: (value, context, constraint, field, callback) -> result
RuleFn = Callable[..., Any]


class RuleLibrary:
    """Registry of named validation rules.

    Each controller owns one library. Built-in rules are installed by
    register_builtin_rules(); applications add their own at startup.

    Example:
        library = default_library()
        library.register("zip", lambda value, context, constraint, field, cb: ...)

        rule = library.get("zip")
    """

    def __init__(self, rules: dict[str, RuleFn] | None = None):
        self._rules: dict[str, RuleFn] = dict(rules or {})

    def register(self, name: str, rule_fn: RuleFn) -> None:
        """Register a rule by name.

        Idempotent - re-registering an existing name is a no-op. Use
        replace() to override a built-in deliberately.

        Args:
            name: Rule name as used in declarative rule maps
            rule_fn: Predicate (sync, async or callback-style)
        """
        if name in self._rules:
            return  # Already registered, no-op
        self._rules[name] = rule_fn

    def replace(self, name: str, rule_fn: RuleFn) -> None:
        """Register a rule, overriding any existing one with the same name."""
        self._rules[name] = rule_fn

    def get(self, name: str) -> RuleFn:
        """Get a rule by name.

        Raises:
            UnknownRuleError: If no rule is registered under ``name``
        """
        try:
            return self._rules[name]
        except KeyError:
            raise UnknownRuleError(name) from None

    def is_registered(self, name: str) -> bool:
        """Check if a rule is registered."""
        return name in self._rules

    def list_registered(self) -> list[str]:
        """List all registered rule names."""
        return sorted(self._rules)

    def copy(self) -> "RuleLibrary":
        return RuleLibrary(self._rules)

    def clear(self) -> None:
        """Remove all rules. Primarily for testing."""
        self._rules.clear()

    def __contains__(self, name: object) -> bool:
        return name in self._rules

    def __iter__(self) -> Iterator[str]:
        return iter(self.list_registered())

    def __len__(self) -> int:
        return len(self._rules)


def rule(library: RuleLibrary, name: str) -> Callable[[RuleFn], RuleFn]:
    """Decorator to register a rule function.

    Usage:
        @rule(library, "zip")
        def zip_code(value, context, constraint, field, callback):
            ...
    """

    def decorator(fn: RuleFn) -> RuleFn:
        library.register(name, fn)
        return fn

    return decorator

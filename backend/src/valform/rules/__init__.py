"""Rule library and built-in rules for ValForm."""

from valform.rules.builtins import (
    BUILTIN_RULES,
    default_library,
    is_empty,
    parse_date,
    register_builtin_rules,
    to_number,
)
from valform.rules.library import RuleFn, RuleLibrary, rule

__all__ = [
    "BUILTIN_RULES",
    "RuleFn",
    "RuleLibrary",
    "default_library",
    "is_empty",
    "parse_date",
    "register_builtin_rules",
    "rule",
    "to_number",
]

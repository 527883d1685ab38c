"""Built-in validation rules.

Every rule has the signature ``(value, context, constraint, field, callback)``
and returns True when the value passes, otherwise the constraint's error
message or False. Apart from ``required``, every rule lets empty values
through; emptiness is the required rule's business.
"""

import math
import re
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping

from valform.paths import get_path
from valform.rules.library import RuleLibrary
from valform.types import Constraint


# =============================================================================
# Patterns and formats
# =============================================================================

EMAIL_PATTERN = re.compile(
    r"^[a-z0-9!#$%&'*+=?^_`{|}~-]+(?:\.[a-z0-9!#$%&'*+=?^_`{|}~-]+)*"
    r"@(?:[a-z0-9](?:[a-z0-9-]*[a-z0-9])?\.)+[a-z0-9](?:[a-z0-9-]*[a-z0-9])?$",
    re.IGNORECASE,
)

# North American Numbering Plan
PHONE_PATTERN = re.compile(
    r"^(\+?1[.\-\s]?)?\(?[2-9]\d{2}[).\-\s]?\s?[2-9]\d{2}[.\-\s]?\d{4}$"
)

URL_PATTERN = re.compile(r"^https?://[^\s/$.?#].[^\s]*$", re.IGNORECASE)

# "/body/flags" string form of a regular expression
_REGEX_LITERAL = re.compile(r"^/(.*)/([gimsuy]*)$")

ISO_DATE_FORMAT = "YYYY-MM-DD"
DEFAULT_DATE_FORMAT = "MM/DD/YYYY"

_DATE_TOKENS = [
    ("YYYY", "%Y"),
    ("YY", "%y"),
    ("MM", "%m"),
    ("DD", "%d"),
    ("HH", "%H"),
    ("mm", "%M"),
    ("ss", "%S"),
]


# =============================================================================
# Helpers
# =============================================================================


def is_empty(value: Any) -> bool:
    """Check if a value counts as "no value" for validation purposes."""
    if value is None or value is False:
        return True
    if isinstance(value, str) and value.strip() == "":
        return True
    if isinstance(value, (list, tuple, set, frozenset, dict)) and len(value) == 0:
        return True
    return False


def to_number(value: Any) -> float:
    """Loosely convert a value to a float; NaN when it is not numeric."""
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float, Decimal)):
        return float(value)
    if isinstance(value, str):
        text = value.strip()
        if text == "":
            return 0.0
        try:
            return float(text)
        except ValueError:
            return math.nan
    return math.nan


def _length(value: Any) -> int:
    return len(value) if hasattr(value, "__len__") else len(str(value))


def _fail(constraint: Constraint) -> str | bool:
    return constraint.error_message or False


def _to_strptime(fmt: str) -> str:
    if "%" in fmt:
        return fmt
    for token, directive in _DATE_TOKENS:
        fmt = fmt.replace(token, directive)
    return fmt


def parse_date(value: Any, fmt: str = DEFAULT_DATE_FORMAT) -> date | None:
    """Parse a date strictly against ISO format or ``fmt``; None when unparseable."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None
    for candidate in (ISO_DATE_FORMAT, fmt):
        try:
            return datetime.strptime(value.strip(), _to_strptime(candidate)).date()
        except ValueError:
            continue
    return None


def _is_date_field(field: Any) -> bool:
    validations = getattr(field, "validations", None)
    if isinstance(validations, Mapping) and "date" in validations:
        return True
    field_type = getattr(field, "type", None)
    return isinstance(field_type, str) and field_type.lower() == "date"


def _raw_value(field: Any, value: Any) -> Any:
    return getattr(field, "value", value)


def _as_regex(pattern: Any) -> re.Pattern:
    if isinstance(pattern, re.Pattern):
        return pattern
    text = str(pattern)
    literal = _REGEX_LITERAL.match(text)
    if literal:
        flags = 0
        if "i" in literal.group(2):
            flags |= re.IGNORECASE
        if "m" in literal.group(2):
            flags |= re.MULTILINE
        if "s" in literal.group(2):
            flags |= re.DOTALL
        return re.compile(literal.group(1), flags)
    return re.compile(text)


# =============================================================================
# Rules
# =============================================================================


def required(value, context, constraint, field=None, callback=None):
    if not constraint.value:
        return True
    return (not is_empty(value)) or _fail(constraint)


def pattern(value, context, constraint, field=None, callback=None):
    """Test the value against one or more patterns; any match passes."""
    if is_empty(value):
        return True
    expressions = constraint.value if isinstance(constraint.value, (list, tuple)) else [constraint.value]
    text = str(value)
    if any(_as_regex(expression).search(text) for expression in expressions):
        return True
    return _fail(constraint)


def email(value, context, constraint, field=None, callback=None):
    expression = constraint.get("pattern", EMAIL_PATTERN)
    return pattern(value, context, Constraint(value=expression, error_message=constraint.error_message))


def phone(value, context, constraint, field=None, callback=None):
    expression = constraint.get("pattern", PHONE_PATTERN)
    return pattern(value, context, Constraint(value=expression, error_message=constraint.error_message))


def url(value, context, constraint, field=None, callback=None):
    expression = constraint.get("pattern", URL_PATTERN)
    return pattern(value, context, Constraint(value=expression, error_message=constraint.error_message))


def match(value, context, constraint, field=None, callback=None):
    """The value must equal the value of another field (by dotted name)."""
    if is_empty(value):
        return True
    return value == get_path(context, str(constraint.value)) or _fail(constraint)


def number(value, context, constraint, field=None, callback=None):
    if is_empty(value):
        return True
    return (not math.isnan(to_number(value))) or _fail(constraint)


def minlength(value, context, constraint, field=None, callback=None):
    if is_empty(value):
        return True
    return _length(value) >= to_number(constraint.value) or _fail(constraint)


def maxlength(value, context, constraint, field=None, callback=None):
    if is_empty(value):
        return True
    return _length(value) <= to_number(constraint.value) or _fail(constraint)


def _checked_count_ok(field: Any, value: Any, constraint: Constraint, compare) -> bool | str:
    selected = _raw_value(field, value)
    if is_empty(selected):
        return True
    limit = to_number(constraint.value)
    if math.isfinite(limit) and limit.is_integer() and compare(limit, len(selected)):
        return True
    return _fail(constraint)


def minchecked(value, context, constraint, field=None, callback=None):
    """At least ``constraint.value`` options must be selected."""
    return _checked_count_ok(field, value, constraint, lambda limit, count: limit <= count)


def maxchecked(value, context, constraint, field=None, callback=None):
    """At most ``constraint.value`` options may be selected."""
    return _checked_count_ok(field, value, constraint, lambda limit, count: limit >= count)


def _bound(value, constraint, field, date_compare, number_compare):
    if is_empty(value):
        return True

    if _is_date_field(field):
        parsed = parse_date(value, constraint.get("format", DEFAULT_DATE_FORMAT))
        limit = parse_date(constraint.value)
        if parsed is not None and limit is not None and date_compare(parsed, limit):
            return True
        return _fail(constraint)

    num = to_number(value)
    bound = to_number(constraint.value)
    if math.isfinite(num) and not math.isnan(bound) and number_compare(num, bound):
        return True
    return _fail(constraint)


def min_(value, context, constraint, field=None, callback=None):
    """Numeric lower bound, or earliest date for date fields."""
    if isinstance(_raw_value(field, value), list):
        return minchecked(value, context, constraint, field, callback)
    return _bound(value, constraint, field, lambda d, lim: d >= lim, lambda n, lim: n >= lim)


def max_(value, context, constraint, field=None, callback=None):
    """Numeric upper bound, or latest date for date fields."""
    if isinstance(_raw_value(field, value), list):
        return maxchecked(value, context, constraint, field, callback)
    return _bound(value, constraint, field, lambda d, lim: d <= lim, lambda n, lim: n <= lim)


def step(value, context, constraint, field=None, callback=None):
    if is_empty(value):
        return True
    try:
        remainder = Decimal(str(value).strip()) % Decimal(str(constraint.value))
    except (InvalidOperation, ArithmeticError):
        return _fail(constraint)
    return remainder == 0 or _fail(constraint)


def date_(value, context, constraint, field=None, callback=None):
    if is_empty(value):
        return True
    fmt = constraint.get("format", DEFAULT_DATE_FORMAT)
    if parse_date(value, fmt) is not None:
        return True
    return constraint.error_message or f"Format needs to be {fmt}"


BUILTIN_RULES = {
    "date": date_,
    "email": email,
    "match": match,
    "max": max_,
    "maxchecked": maxchecked,
    "maxlength": maxlength,
    "min": min_,
    "minchecked": minchecked,
    "minlength": minlength,
    "number": number,
    "pattern": pattern,
    "phone": phone,
    "required": required,
    "step": step,
    "url": url,
}


def register_builtin_rules(library: RuleLibrary) -> None:
    """Install all built-in rules. Called at controller construction."""
    for name, rule_fn in BUILTIN_RULES.items():
        library.register(name, rule_fn)


def default_library() -> RuleLibrary:
    """Create a fresh library holding the built-in rules."""
    library = RuleLibrary()
    register_builtin_rules(library)
    return library

"""Error types raised by the ValForm engine.

Validation failures are never raised; they travel through the state
tracker as values. The exceptions here signal programmer errors: a field
without a name, two field instances fighting over one name, or a
declarative rule that the rule library does not know.
"""


class ValFormError(Exception):
    """Base class for all engine errors."""
    pass


class MissingNameError(ValFormError):
    """A field tried to register (or unregister) without a name."""

    def __init__(self, field: object):
        self.field = field
        super().__init__(f'Input {field!r} has no "name" prop')


class DuplicateNameError(ValFormError):
    """More than one field instance claims the same name."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f'Multiple inputs cannot use the same name: "{name}"')


class UnknownRuleError(ValFormError):
    """A declarative rule map references a rule that is not registered."""

    def __init__(self, rule: str, field: str | None = None):
        self.rule = rule
        self.field = field
        message = f'Invalid input validation rule: "{rule}"'
        if field:
            message += f' (field "{field}")'
        super().__init__(message)

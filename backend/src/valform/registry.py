"""Field registry for ValForm.

Maps field names to live field references, their updaters and their
compiled validators. The registry holds references only; fields are
created and owned by whatever renders them and must unregister when they
go away.
"""

import logging
from enum import Enum
from typing import Any, Callable, Mapping

from valform.errors import DuplicateNameError, MissingNameError
from valform.paths import set_path
from valform.types import FieldValidator, Updater

logger = logging.getLogger(__name__)


class DuplicatePolicy(Enum):
    """What to do when a different field instance claims a taken name."""

    REPLACE = "replace"  # Newer registration wins, older one is dropped
    REJECT = "reject"  # Raise DuplicateNameError


def field_name(field: Any) -> str:
    """Return the field's name, raising MissingNameError when it has none."""
    name = getattr(field, "name", None) if field is not None else None
    if not name or not isinstance(name, str):
        raise MissingNameError(field)
    return name


class FieldRegistry:
    """Registry of live fields keyed by name.

    Registration order is preserved; validate_all walks fields in that
    order. A field instance re-registering under a new name replaces its
    old entry (rename in place), so one instance never owns two names.
    """

    def __init__(
        self,
        compile_validator: Callable[[Any, Mapping[str, Any]], FieldValidator],
        duplicate_policy: DuplicatePolicy = DuplicatePolicy.REPLACE,
    ):
        self.compile_validator = compile_validator
        self.duplicate_policy = duplicate_policy
        self._fields: dict[str, Any] = {}
        self._updaters: dict[str, Updater | None] = {}
        self._validators: dict[str, FieldValidator] = {}

    def register(self, field: Any, updater: Updater | None = None) -> str:
        """Register (or re-register) a field.

        Args:
            field: Object satisfying the Field protocol
            updater: Called with an empty delta on state broadcasts; defaults
                to the field's ``update`` method when it has one

        Returns:
            The name the field is registered under

        Raises:
            MissingNameError: The field has no name
            DuplicateNameError: Another instance holds the name and the
                policy is REJECT
        """
        name = field_name(field)
        if updater is None:
            updater = getattr(field, "update", None)

        existing = self._fields.get(name)
        duplicate = existing is not None and existing is not field
        if duplicate and self.duplicate_policy is DuplicatePolicy.REJECT:
            # Nothing changes, not even a pending rename
            raise DuplicateNameError(name)

        old_name = self.find_name(field)
        if old_name is not None and old_name != name:
            logger.debug("Field renamed from '%s' to '%s'", old_name, name)
            self._remove(old_name)

        if duplicate:
            logger.warning("Field '%s' registered twice; replacing the earlier instance", name)

        self._fields[name] = field
        self._updaters[name] = updater

        validations = getattr(field, "validations", None)
        if isinstance(validations, Mapping):
            self._validators[name] = self.compile_validator(field, validations)
        else:
            self._validators.pop(name, None)

        return name

    def unregister(self, field: Any) -> bool:
        """Remove the entry for ``field.name``. Unknown names are a no-op."""
        name = field_name(field)
        if name not in self._fields:
            return False
        self._remove(name)
        return True

    def find_name(self, field: Any) -> str | None:
        """Return the name ``field`` (this exact instance) is registered under."""
        for name, registered in self._fields.items():
            if registered is field:
                return name
        return None

    def is_registered(self, field: Any) -> bool:
        return self.find_name(field) is not None

    def get(self, name: str) -> Any:
        return self._fields.get(name)

    def get_updater(self, name: str) -> Updater | None:
        return self._updaters.get(name)

    def get_validator(self, name: str) -> FieldValidator | None:
        return self._validators.get(name)

    def names(self) -> list[str]:
        """Registered names in registration order."""
        return list(self._fields)

    def get_value(self, name: str) -> Any:
        """Return the current value of the field registered under ``name``.

        Returns None when nothing is registered under ``name``.

        Raises:
            DuplicateNameError: Storage holds more than one field for the name
        """
        field = self._fields.get(name)
        if field is None:
            return None
        if isinstance(field, (list, tuple)):
            raise DuplicateNameError(name)
        return field.get_value()

    def get_values(self) -> dict[str, Any]:
        """Collect every field's value into a nested dict keyed by dotted name."""
        values: dict[str, Any] = {}
        for name in self.names():
            set_path(values, name, self.get_value(name))
        return values

    def _remove(self, name: str) -> None:
        self._fields.pop(name, None)
        self._updaters.pop(name, None)
        self._validators.pop(name, None)

    def __contains__(self, name: object) -> bool:
        return name in self._fields

    def __len__(self) -> int:
        return len(self._fields)

"""Per-field state tracking: dirty, touched, bad and error.

Every setter replaces the affected container instead of mutating it, so a
snapshot taken by an observer never changes underneath it. Setters that
would not change anything return without notifying.
"""

import logging
from typing import Any, Callable, Iterable

from valform.types import DEFAULT_ERROR_MESSAGE

logger = logging.getLogger(__name__)

Names = str | Iterable[str]


def _as_names(names: Names) -> list[str]:
    if isinstance(names, str):
        return [names]
    return list(names)


class StateTracker:
    """Holds the four independent state maps of one form.

    Attributes:
        dirty: Names of fields that have had a user-driven value
        touched: Names of fields that were focused/blurred or edited
        bad: Names of fields whose own value extraction is unusable
        errors: Field name -> True (generic error) or message
    """

    def __init__(self, on_change: Callable[[], Any] | None = None):
        self.on_change = on_change
        self.dirty: frozenset[str] = frozenset()
        self.touched: frozenset[str] = frozenset()
        self.bad: frozenset[str] = frozenset()
        self.errors: dict[str, bool | str] = {}

    # -------------------------------------------------------------------------
    # Setters
    # -------------------------------------------------------------------------

    def set_dirty(self, names: Names, dirty: bool = True, update: bool = True) -> bool:
        """Mark field(s) dirty (they had/have a value) or clear the flag."""
        return self._set_flag("dirty", names, dirty, update)

    def set_touched(self, names: Names, touched: bool = True, update: bool = True) -> bool:
        """Mark field(s) touched (focused and blurred, or edited) or clear the flag."""
        return self._set_flag("touched", names, touched, update)

    def set_bad(self, names: Names, bad: bool = True, update: bool = True) -> bool:
        """Mark field(s) as unable to produce a usable value."""
        return self._set_flag("bad", names, bad, update)

    def set_error(
        self,
        name: str,
        error: Any = True,
        message: Any = None,
        update: bool = True,
    ) -> bool:
        """Set or clear the error of one field.

        Args:
            name: Field name
            error: Truthy to flag an error, falsy to clear it
            message: Message to store; defaults to ``error`` itself. Values
                that are neither strings nor booleans are converted with str()
            update: Notify observers when the state changed

        Returns:
            True if the state changed
        """
        text = error if message is None else message
        if error and not isinstance(text, (str, bool)) and text is not None:
            text = str(text)

        stored = self.errors.get(name)
        wanted = (text or True) if error else None
        if stored == wanted and type(stored) is type(wanted):
            return False

        errors = dict(self.errors)
        if error:
            errors[name] = wanted
        else:
            errors.pop(name, None)
        self.errors = errors

        self._changed(update)
        return True

    def forget(self, name: str, update: bool = True) -> bool:
        """Drop every piece of state recorded for ``name``."""
        changed = False
        for attr in ("dirty", "touched", "bad"):
            current = getattr(self, attr)
            if name in current:
                setattr(self, attr, current - {name})
                changed = True
        if name in self.errors:
            errors = dict(self.errors)
            del errors[name]
            self.errors = errors
            changed = True
        if changed:
            self._changed(update)
        return changed

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def is_dirty(self, name: str | None = None) -> bool:
        """Check one field, or with no name whether any field is dirty."""
        return name in self.dirty if name else bool(self.dirty)

    def is_touched(self, name: str | None = None) -> bool:
        return name in self.touched if name else bool(self.touched)

    def is_bad(self, name: str | None = None) -> bool:
        return name in self.bad if name else bool(self.bad)

    def has_error(self, name: str | None = None) -> bool:
        return bool(self.errors.get(name)) if name else bool(self.errors)

    def get_error(self, name: str, fallback: str = DEFAULT_ERROR_MESSAGE) -> str:
        """Return the stored message for ``name``, or ``fallback`` if none is stored."""
        error = self.errors.get(name)
        return error if isinstance(error, str) else fallback

    def snapshot(self) -> dict[str, Any]:
        return {
            "dirty": sorted(self.dirty),
            "touched": sorted(self.touched),
            "bad": sorted(self.bad),
            "errors": dict(self.errors),
        }

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _set_flag(self, attr: str, names: Names, flag: bool, update: bool) -> bool:
        current: frozenset[str] = getattr(self, attr)
        requested = set(_as_names(names))
        updated = current | requested if flag else current - requested
        if updated == current:
            return False
        setattr(self, attr, frozenset(updated))
        self._changed(update)
        return True

    def _changed(self, update: bool) -> None:
        if update and self.on_change is not None:
            self.on_change()

"""Throttled re-broadcast of form state to registered fields.

State changes arrive in bursts (a submit touches every field, a keystroke
sets dirty, touched and error). Fields only need to re-read shared state
once per burst, so notifications are coalesced by a trailing-edge
throttle: the first notification in a window schedules one fan-out at the
end of the window, and later notifications in the same window ride on it.
"""

import asyncio
import logging
from typing import TYPE_CHECKING, Any, Callable

if TYPE_CHECKING:
    from valform.registry import FieldRegistry

logger = logging.getLogger(__name__)

DEFAULT_WAIT = 0.25


class Throttle:
    """Trailing-edge throttle on the running asyncio loop.

    Calling the throttle schedules ``fn`` to run ``wait`` seconds later
    unless a call is already pending. Coalescing needs a running event
    loop: without one (plain synchronous use) every call runs ``fn``
    immediately.
    """

    def __init__(self, fn: Callable[[], Any], wait: float = DEFAULT_WAIT):
        self.fn = fn
        self.wait = wait
        self._handle: asyncio.TimerHandle | None = None

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def __call__(self) -> None:
        if self._handle is not None:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self.fn()
            return
        self._handle = loop.call_later(self.wait, self._fire)

    def flush(self) -> None:
        """Run ``fn`` now, dropping any pending call."""
        self.cancel()
        self.fn()

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _fire(self) -> None:
        self._handle = None
        self.fn()


class UpdateBroadcaster:
    """Fans state changes out to every registered field's updater.

    The throttle is created on first use and reused for the lifetime of the
    broadcaster; close() cancels a pending fan-out.
    """

    def __init__(self, registry: "FieldRegistry", wait: float = DEFAULT_WAIT):
        self.registry = registry
        self.wait = wait
        self._throttle: Throttle | None = None
        self.fan_out_count = 0

    def notify(self) -> None:
        """Request a (coalesced) fan-out."""
        if self._throttle is None:
            self._throttle = Throttle(self.fan_out, self.wait)
        self._throttle()

    def flush(self) -> None:
        """Fan out immediately, absorbing any pending notification."""
        if self._throttle is not None:
            self._throttle.cancel()
        self.fan_out()

    @property
    def pending(self) -> bool:
        return self._throttle is not None and self._throttle.pending

    def fan_out(self) -> None:
        """Call every registered updater with an empty delta."""
        self.fan_out_count += 1
        for name in self.registry.names():
            updater = self.registry.get_updater(name)
            if updater is None or self.registry.get(name) is None:
                continue
            try:
                updater({})
            except Exception:
                logger.exception("Updater for field '%s' failed", name)

    def close(self) -> None:
        if self._throttle is not None:
            self._throttle.cancel()

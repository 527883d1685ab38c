"""Controller settings."""

from __future__ import annotations

import os
from dataclasses import dataclass

from valform.broadcast import DEFAULT_WAIT
from valform.registry import DuplicatePolicy
from valform.types import DEFAULT_ERROR_MESSAGE

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off", ""}


@dataclass
class ControllerSettings:
    """Engine-wide knobs for a FormController.

    Attributes:
        throttle_wait: Broadcast throttle window in seconds
        duplicate_policy: What happens when two instances claim one name
        clear_state_on_unregister: Drop dirty/touched/bad/error state of a
            field when it unregisters
        default_error_message: Fallback shown for errors without a message
    """

    throttle_wait: float = DEFAULT_WAIT
    duplicate_policy: DuplicatePolicy = DuplicatePolicy.REPLACE
    clear_state_on_unregister: bool = False
    default_error_message: str = DEFAULT_ERROR_MESSAGE

    @classmethod
    def from_env(cls) -> ControllerSettings:
        """Create settings from environment variables.

        Recognized variables:
        - VALFORM_THROTTLE_MS: throttle window in milliseconds
        - VALFORM_DUPLICATE_POLICY: "replace" or "reject"
        - VALFORM_CLEAR_STATE_ON_UNREGISTER: boolean flag
        - VALFORM_DEFAULT_ERROR_MESSAGE: fallback error text

        Raises:
            ValueError: For values that cannot be parsed
        """
        settings = cls()

        throttle_ms = os.environ.get("VALFORM_THROTTLE_MS")
        if throttle_ms:
            wait = float(throttle_ms) / 1000
            if wait < 0:
                raise ValueError(f"VALFORM_THROTTLE_MS must not be negative: {throttle_ms}")
            settings.throttle_wait = wait

        policy = os.environ.get("VALFORM_DUPLICATE_POLICY")
        if policy:
            settings.duplicate_policy = DuplicatePolicy(policy.strip().lower())

        clear = os.environ.get("VALFORM_CLEAR_STATE_ON_UNREGISTER")
        if clear is not None:
            settings.clear_state_on_unregister = _parse_bool(
                "VALFORM_CLEAR_STATE_ON_UNREGISTER", clear
            )

        message = os.environ.get("VALFORM_DEFAULT_ERROR_MESSAGE")
        if message:
            settings.default_error_message = message

        return settings


def _parse_bool(name: str, raw: str) -> bool:
    value = raw.strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise ValueError(f"{name} must be a boolean, got {raw!r}")

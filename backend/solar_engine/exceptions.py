"""Exceptions raised by the recommendation engine."""

from __future__ import annotations


class MalformedPayloadError(ValueError):
    """An inference payload is not a JSON object or lacks required fields."""


class EngineInvariantViolation(RuntimeError):
    """The engine computed a result outside the residential plausibility band.

    This is a defect, never a valid output: callers must not clamp the
    value further or hand it to a user.
    """

    def __init__(self, quantity: str, value: float, bounds: tuple[float, float]):
        self.quantity = quantity
        self.value = value
        self.bounds = bounds
        lo, hi = bounds
        super().__init__(
            f"{quantity}={value:g} outside plausible range [{lo:g}, {hi:g}]"
        )

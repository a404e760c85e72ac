"""Overflow-safe counters for read and UMI tallies."""

from __future__ import annotations

from typing import Tuple

import numpy as np

from scdemux.logging_utils import get_logger

logger = get_logger(__name__)

UINT64_MAX = int(np.iinfo(np.uint64).max)


def _clamped_add(accumulator: int, increment: int, max_value: int) -> Tuple[int, bool]:
    """Return the saturated sum and whether it was clamped."""
    if increment < 0:
        raise ValueError(f"increment must be non-negative, got {increment}")
    if increment > 0 and (max_value - increment) < accumulator:
        logger.error(
            "Counter overflow: %d + %d exceeds %d, clamping to maximum.",
            accumulator,
            increment,
            max_value,
        )
        return max_value, True
    return accumulator + increment, False


def saturating_add(accumulator: int, increment: int, max_value: int = UINT64_MAX) -> int:
    """Add ``increment`` to ``accumulator``, clamping at ``max_value``.

    Overflow is detected before adding. The clamped value is returned and an
    error is logged, so one saturated counter does not stop a long run.
    """
    return _clamped_add(accumulator, increment, max_value)[0]


class SaturatingCounter:
    """Fixed-width unsigned counter that clamps instead of wrapping."""

    __slots__ = ("value", "max_value", "overflowed")

    def __init__(self, value: int = 0, max_value: int = UINT64_MAX):
        if value < 0 or value > max_value:
            raise ValueError(f"initial value {value} outside [0, {max_value}]")
        self.value = value
        self.max_value = max_value
        self.overflowed = False

    def add(self, increment: int = 1) -> int:
        self.value, clamped = _clamped_add(self.value, increment, self.max_value)
        if clamped:
            self.overflowed = True
        return self.value

    def __int__(self) -> int:
        return self.value

    def __repr__(self) -> str:
        return f"SaturatingCounter({self.value})"

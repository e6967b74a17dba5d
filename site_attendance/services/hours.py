"""
Hours formula codec.

Site registers record worked time as ``X * 8 + Y``: X whole 8-hour shifts
plus a remainder Y of 0-7 hours. Every path that stores an entry goes
through :func:`normalise_entry`, so Y is clamped when written, never when
read.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from site_attendance.core.exceptions import InvalidInputError

HOURS_PER_SHIFT = 8
MAX_REMAINDER = HOURS_PER_SHIFT - 1
# Largest magnitude accepted for X, Y or an hours total on input
MAX_INPUT_VALUE = 10_000


@dataclass(frozen=True)
class NormalisedEntry:
    is_present: bool
    formula_x: int
    formula_y: int
    hours_worked: int


def clamp_shifts(x: float | None) -> int:
    """Floor X and keep it non-negative."""
    if x is None:
        return 0
    return max(0, math.floor(x))


def clamp_remainder(y: float | None) -> int:
    """Floor Y and bound it to ``[0, MAX_REMAINDER]``."""
    if y is None:
        return 0
    return min(MAX_REMAINDER, max(0, math.floor(y)))


def encode_hours(hours: int) -> tuple[int, int]:
    """Split total hours into ``(X, Y)``."""
    if hours < 0:
        raise InvalidInputError("Hours worked cannot be negative")
    return divmod(int(hours), HOURS_PER_SHIFT)


def decode_hours(x: float | None, y: float | None) -> int:
    """Total hours for ``(X, Y)``, with Y clamped before multiplying."""
    return clamp_shifts(x) * HOURS_PER_SHIFT + clamp_remainder(y)


def normalise_entry(
    is_present: bool,
    formula_x: float | None = None,
    formula_y: float | None = None,
    hours_worked: float | None = None,
) -> NormalisedEntry:
    """Canonical stored form of one worker's hours.

    Missing X/Y are derived from ``hours_worked``. Absent workers carry
    zeros since their hours have no meaning.
    """
    if not is_present:
        return NormalisedEntry(False, 0, 0, 0)

    if formula_x is None or formula_y is None:
        derived_x, derived_y = encode_hours(clamp_shifts(hours_worked))
        if formula_x is None:
            formula_x = derived_x
        if formula_y is None:
            formula_y = derived_y

    x = clamp_shifts(formula_x)
    y = clamp_remainder(formula_y)
    return NormalisedEntry(True, x, y, decode_hours(x, y))

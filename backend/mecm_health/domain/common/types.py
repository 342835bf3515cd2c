"""Shared value types used across domain sub-packages.

These are thin wrappers that make function signatures self-documenting
and prevent primitive obsession (passing raw ints/floats everywhere).
"""

from __future__ import annotations

from typing import NewType

# Percentages are always 0-100 floats rounded to one decimal
Percent = NewType("Percent", float)

# Device / package / deployment counts, never negative
Count = NewType("Count", int)

# Overall health score, 0-100 integer
Score = NewType("Score", int)

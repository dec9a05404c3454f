"""
Validation outcomes.

Every validator returns exactly one of these per cell:

- ``Unchanged``: value is acceptable as is
- ``Normalized(value)``: value is acceptable once rewritten to ``value``
- ``Invalid(reason)``: value is rejected; the cell gets cleared
- ``NeedsClarification``: value can't be decided without an operator choice
"""

from dataclasses import dataclass
from typing import Any, Tuple, Union


@dataclass(frozen=True)
class Unchanged:
    pass


@dataclass(frozen=True)
class Normalized:
    value: Any


@dataclass(frozen=True)
class Invalid:
    reason: str


@dataclass(frozen=True)
class NeedsClarification:
    candidates: Tuple[str, ...]


Outcome = Union[Unchanged, Normalized, Invalid, NeedsClarification]

UNCHANGED = Unchanged()


def is_empty(value: Any) -> bool:
    """Empty cells are skipped by every validator."""
    return value is None or (isinstance(value, str) and value == "")


def cell_text(value: Any) -> str:
    """Render a cell the way the sheet displays it (integral floats lose '.0')."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)

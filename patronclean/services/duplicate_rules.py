"""
Duplicate Detection & Resolution

Duplicates are keyed by (type, value): the string "1" and the number 1 are
different values, and two numbers compare by value whether stored as int or
float. Empty and boolean cells never take part. The first occurrence of a key
is kept; every later occurrence is a duplicate.

Resolution is batched: cell clears first, then row deletions from the bottom
up so pending row numbers stay valid.
"""

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Set, Tuple

from patronclean.services.outcomes import cell_text, is_empty
from patronclean.services.table import cell_address


class DuplicatePolicy(str, Enum):
    INTERACTIVE = "interactive"
    REMOVE_ROW = "remove_row"
    CLEAR_CELL = "clear_cell"


class DuplicateAction(str, Enum):
    REMOVE_ROW = "Remove Row"
    CLEAR_CELL = "Clear Cell"
    SKIP = "Skip"


INTERACTIVE_CHOICES = tuple(a.value for a in DuplicateAction)

DuplicateKey = Tuple[str, Any]


@dataclass(frozen=True)
class DuplicateOccurrence:
    column: str
    row: int
    value: Any
    first_occurrence: str

    @property
    def address(self) -> str:
        return cell_address(self.column, self.row)


@dataclass
class DuplicatePlan:
    """Collected actions for one scan, applied in a single batch."""
    cells_to_clear: List[str] = field(default_factory=list)
    rows_to_delete: Set[int] = field(default_factory=set)
    handled: List[Tuple[DuplicateOccurrence, DuplicateAction]] = field(default_factory=list)
    skipped: List[DuplicateOccurrence] = field(default_factory=list)

    def add(self, occurrence: DuplicateOccurrence, action: DuplicateAction) -> None:
        if action is DuplicateAction.REMOVE_ROW:
            self.rows_to_delete.add(occurrence.row)
        elif action is DuplicateAction.CLEAR_CELL:
            self.cells_to_clear.append(occurrence.address)
        else:
            self.skipped.append(occurrence)
            return
        self.handled.append((occurrence, action))

    def deletion_order(self) -> List[int]:
        """Rows to delete, highest first."""
        return sorted(self.rows_to_delete, reverse=True)


# ============================================================================
# HELPER FUNCTIONS
# ============================================================================

def type_tag(value: Any) -> Optional[str]:
    """Type part of the duplicate key; None for cells that are never compared."""
    if is_empty(value) or isinstance(value, bool):
        return None
    if isinstance(value, str):
        return "string"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, date):
        return "date"
    return type(value).__name__


def duplicate_key(value: Any) -> Optional[DuplicateKey]:
    tag = type_tag(value)
    if tag is None:
        return None
    return (tag, value)


def find_duplicates(values: Sequence[Any], column: str) -> List[DuplicateOccurrence]:
    """
    Scan one column snapshot (values[0] is the header) top to bottom and
    return every occurrence after the first for each key.
    """
    first_seen: Dict[DuplicateKey, str] = {}
    duplicates = []

    for i in range(1, len(values)):
        key = duplicate_key(values[i])
        if key is None:
            continue

        row = i + 1
        if key not in first_seen:
            first_seen[key] = cell_address(column, row)
        else:
            duplicates.append(DuplicateOccurrence(
                column=column,
                row=row,
                value=values[i],
                first_occurrence=first_seen[key],
            ))

    return duplicates


def action_for_policy(policy: DuplicatePolicy) -> DuplicateAction:
    if policy is DuplicatePolicy.REMOVE_ROW:
        return DuplicateAction.REMOVE_ROW
    if policy is DuplicatePolicy.CLEAR_CELL:
        return DuplicateAction.CLEAR_CELL
    raise ValueError(f"Policy {policy.value} is decided per duplicate")


def interactive_prompt(occurrence: DuplicateOccurrence) -> str:
    return (
        f'Value: "{cell_text(occurrence.value)}" at {occurrence.address}\n'
        f"First seen at {occurrence.first_occurrence}"
    )


def describe_action(occurrence: DuplicateOccurrence, action: DuplicateAction) -> str:
    verb = "Removed duplicate row" if action is DuplicateAction.REMOVE_ROW else "Cleared duplicate cell"
    return (
        f"{verb}. Value was '{cell_text(occurrence.value)}', "
        f"first seen at {occurrence.first_occurrence}."
    )

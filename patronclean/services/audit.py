"""
Audit trail.

One entry per mutated cell so any cleared or rewritten value can be traced
back to the rule that touched it. Entries are immutable and append-only.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Protocol

from patronclean.models.action_log import ActionLog


# Action categories
VALIDATION = "Validation"
DATA_CLEANUP = "Data Cleanup"
DATA_TRANSFORMATION = "Data Transformation"


@dataclass(frozen=True)
class AuditEntry:
    action_type: str
    target: str
    cell_reference: str
    details: str
    timestamp: datetime = field(default_factory=datetime.utcnow)


def make_entry(action_type: str, target: str, sheet: str, reference: str, details: str) -> AuditEntry:
    """Build an entry whose cell reference is qualified with the sheet name."""
    return AuditEntry(
        action_type=action_type,
        target=target,
        cell_reference=f"{sheet}!{reference}",
        details=details,
    )


class AuditSink(Protocol):
    def append(self, entry: AuditEntry) -> None: ...


class InMemoryAuditSink:
    def __init__(self):
        self.entries: List[AuditEntry] = []

    def append(self, entry: AuditEntry) -> None:
        self.entries.append(entry)

    def for_target(self, target: str) -> List[AuditEntry]:
        return [e for e in self.entries if e.target == target]


class DatabaseAuditSink:
    """Writes entries as ``ActionLog`` rows on the caller's session."""

    def __init__(self, db, table_id: Optional[str] = None):
        self.db = db
        self.table_id = table_id

    def append(self, entry: AuditEntry) -> None:
        self.db.add(ActionLog(
            table_id=self.table_id,
            action_type=entry.action_type,
            target=entry.target,
            cell_reference=entry.cell_reference,
            details=entry.details,
            timestamp=entry.timestamp,
        ))

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel

from patronclean.services.duplicate_rules import DuplicatePolicy


class TableUpload(BaseModel):
    name: Optional[str] = None
    rows: list[list[Any]]          # rows[0] is the header


class TableResponse(BaseModel):
    table_id: str
    name: str
    rows: list[list[Any]]


class ColumnRequest(BaseModel):
    column: str


class DuplicateRequest(BaseModel):
    columns: str                   # "A, C"
    policy: DuplicatePolicy
    decisions: dict[str, str] = {}  # cell address -> Remove Row | Clear Cell | Skip


class DuplicateScanRequest(BaseModel):
    columns: str


class RangeCleanupRequest(BaseModel):
    range: str                     # "A2:C50"


class PopulationRequest(BaseModel):
    source_column: str
    condition: str
    target_column: str
    value: str
    header: Optional[str] = None


class ResolveRequest(BaseModel):
    choice: str


class OperationResponse(BaseModel):
    operation: str
    column: Optional[str]
    changes_made: int
    rows_flagged: int
    pending_operations: list[str]
    details: dict[str, Any]

    model_config = {"from_attributes": True}


class ActionLogEntry(BaseModel):
    id: int
    table_id: Optional[str]
    action_type: str
    target: str
    cell_reference: Optional[str]
    details: str
    timestamp: datetime

    model_config = {"from_attributes": True}

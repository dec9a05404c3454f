"""
Suspended operations.

An operation waiting on an operator choice is captured as one of these values
and handed to a ``PendingStore``; a later, independent call loads it back and
finishes the work. Each ambiguous date gets its own request, so any number of
them can be outstanding and resolved in any order.
"""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, List, Literal, Union
from uuid import uuid4

from pydantic import BaseModel, Field, TypeAdapter

INVALID_OPTION = "INVALID"


def _new_operation_id() -> str:
    return uuid4().hex


class DateClarificationRequest(BaseModel):
    kind: Literal["date_clarification"] = "date_clarification"
    operation_id: str = Field(default_factory=_new_operation_id)
    table_id: str = ""
    column: str
    row: int
    original_value: str
    candidates: List[str]
    created_at: datetime = Field(default_factory=datetime.utcnow)

    @property
    def address(self) -> str:
        return f"{self.column}{self.row}"

    @property
    def options(self) -> List[str]:
        return [*self.candidates, INVALID_OPTION]


class PendingDuplicateScan(BaseModel):
    kind: Literal["duplicate_scan"] = "duplicate_scan"
    operation_id: str = Field(default_factory=_new_operation_id)
    table_id: str = ""
    columns: List[str]
    created_at: datetime = Field(default_factory=datetime.utcnow)


PendingOperation = Annotated[
    Union[DateClarificationRequest, PendingDuplicateScan],
    Field(discriminator="kind"),
]

pending_operation_adapter = TypeAdapter(PendingOperation)


def dump_pending(operation: PendingOperation) -> str:
    return operation.model_dump_json()


def load_pending(raw: str) -> PendingOperation:
    return pending_operation_adapter.validate_json(raw)

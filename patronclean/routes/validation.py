from __future__ import annotations

from typing import Callable

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from patronclean.database import get_db
from patronclean.exceptions import (
    DomainLookupError,
    InvalidChoiceError,
    InvalidReferenceError,
    PendingOperationNotFound,
    StaleOperationError,
    TableNotFound,
)
from patronclean.models.action_log import ActionLog
from patronclean.schemas.pending import DateClarificationRequest
from patronclean.schemas.validation import (
    ActionLogEntry,
    ColumnRequest,
    DuplicateRequest,
    DuplicateScanRequest,
    OperationResponse,
    PopulationRequest,
    RangeCleanupRequest,
    ResolveRequest,
    TableResponse,
    TableUpload,
)
from patronclean.services.audit import DatabaseAuditSink
from patronclean.services.cache import cache_table, get_cached_table, get_redis
from patronclean.services.confirmation import MappingConfirmation
from patronclean.services.domain_cache import DnsOverHttpsLookup
from patronclean.services.duplicate_rules import DuplicatePolicy
from patronclean.services.patron_rules import OperationResult, PatronRules
from patronclean.services.pending import RedisPendingStore
from patronclean.services.table import DataFrameTable

router = APIRouter(prefix="/tables", tags=["validation"])
pending_router = APIRouter(prefix="/pending", tags=["validation"])

VALIDATORS = {
    "mobile": "validate_mobile_numbers",
    "email": "validate_emails",
    "aadhaar": "validate_aadhaar_numbers",
    "dates": "validate_dates",
}


def get_mx_lookup():
    lookup = DnsOverHttpsLookup()
    try:
        yield lookup
    finally:
        lookup.client.close()


def _get_table_or_404(table_id: str, client) -> DataFrameTable:
    try:
        return get_cached_table(table_id, client=client)
    except TableNotFound:
        raise HTTPException(status_code=404, detail="Table not found")


def _run(
    table_id: str,
    table: DataFrameTable,
    db: Session,
    client,
    action: Callable[[PatronRules], OperationResult],
    mx_lookup=None,
) -> OperationResult:
    """Run one pass, then persist the table and audit trail together."""
    rules = PatronRules(
        table,
        DatabaseAuditSink(db, table_id=table_id),
        pending_store=RedisPendingStore(client),
        mx_lookup=mx_lookup,
        table_id=table_id,
    )
    try:
        result = action(rules)
    except (InvalidReferenceError, InvalidChoiceError, DomainLookupError) as exc:
        db.rollback()
        raise HTTPException(status_code=400, detail=str(exc))
    except PendingOperationNotFound as exc:
        db.rollback()
        raise HTTPException(status_code=404, detail=str(exc))
    except StaleOperationError as exc:
        db.rollback()
        raise HTTPException(status_code=409, detail=str(exc))

    # Audit rows first; the cached table only moves once they are stored
    db.commit()
    cache_table(table_id, table, client=client)
    return result


# ─────────────────────────────────────────────────────────────────────────────
# Tables
# ─────────────────────────────────────────────────────────────────────────────

@router.put("/{table_id}", response_model=TableResponse)
def upload_table(table_id: str, body: TableUpload, client=Depends(get_redis)):
    try:
        table = DataFrameTable.from_rows(body.rows, name=body.name)
    except InvalidReferenceError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    cache_table(table_id, table, client=client)
    return TableResponse(table_id=table_id, name=table.name, rows=table.to_rows())


@router.get("/{table_id}", response_model=TableResponse)
def read_table(table_id: str, client=Depends(get_redis)):
    table = _get_table_or_404(table_id, client)
    return TableResponse(table_id=table_id, name=table.name, rows=table.to_rows())


# ─────────────────────────────────────────────────────────────────────────────
# Validation
# ─────────────────────────────────────────────────────────────────────────────

@router.post("/{table_id}/validate/{kind}", response_model=OperationResponse)
def validate_column(
    table_id: str,
    kind: str,
    body: ColumnRequest,
    db: Session = Depends(get_db),
    client=Depends(get_redis),
    mx_lookup=Depends(get_mx_lookup),
):
    method = VALIDATORS.get(kind)
    if method is None:
        raise HTTPException(status_code=404, detail=f"Unknown validator '{kind}'")
    table = _get_table_or_404(table_id, client)
    return _run(
        table_id, table, db, client,
        lambda rules: getattr(rules, method)(body.column),
        mx_lookup=mx_lookup if kind == "email" else None,
    )


@router.post("/{table_id}/duplicates", response_model=OperationResponse)
def handle_duplicates(
    table_id: str,
    body: DuplicateRequest,
    db: Session = Depends(get_db),
    client=Depends(get_redis),
):
    table = _get_table_or_404(table_id, client)
    channel = MappingConfirmation(body.decisions) if body.policy is DuplicatePolicy.INTERACTIVE else None
    return _run(
        table_id, table, db, client,
        lambda rules: rules.find_and_handle_duplicates(body.columns, body.policy, channel=channel),
    )


@router.post("/{table_id}/duplicates/scan")
def request_duplicate_scan(
    table_id: str,
    body: DuplicateScanRequest,
    db: Session = Depends(get_db),
    client=Depends(get_redis),
):
    """Park the columns to scan; finish with POST /pending/{id}/resolve and a policy."""
    table = _get_table_or_404(table_id, client)
    rules = PatronRules(
        table,
        DatabaseAuditSink(db, table_id=table_id),
        pending_store=RedisPendingStore(client),
        table_id=table_id,
    )
    try:
        scan = rules.request_duplicate_scan(body.columns)
    except InvalidReferenceError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return scan.model_dump(mode="json")


# ─────────────────────────────────────────────────────────────────────────────
# Cleanup & transformation
# ─────────────────────────────────────────────────────────────────────────────

@router.post("/{table_id}/cleanup/column", response_model=OperationResponse)
def cleanup_column(
    table_id: str,
    body: ColumnRequest,
    db: Session = Depends(get_db),
    client=Depends(get_redis),
):
    table = _get_table_or_404(table_id, client)
    return _run(table_id, table, db, client, lambda rules: rules.remove_line_breaks(body.column))


@router.post("/{table_id}/cleanup/range", response_model=OperationResponse)
def cleanup_range(
    table_id: str,
    body: RangeCleanupRequest,
    db: Session = Depends(get_db),
    client=Depends(get_redis),
):
    table = _get_table_or_404(table_id, client)
    return _run(table_id, table, db, client, lambda rules: rules.advanced_cleanup(body.range))


@router.post("/{table_id}/populate", response_model=OperationResponse)
def populate(
    table_id: str,
    body: PopulationRequest,
    db: Session = Depends(get_db),
    client=Depends(get_redis),
):
    table = _get_table_or_404(table_id, client)
    return _run(
        table_id, table, db, client,
        lambda rules: rules.conditional_population(
            body.source_column, body.condition, body.target_column, body.value, header=body.header,
        ),
    )


# ─────────────────────────────────────────────────────────────────────────────
# Pending operations & audit trail
# ─────────────────────────────────────────────────────────────────────────────

@router.get("/{table_id}/pending")
def list_pending(table_id: str, client=Depends(get_redis)):
    return [op.model_dump(mode="json") for op in RedisPendingStore(client).list_for_table(table_id)]


@router.get("/{table_id}/audit-trail", response_model=list[ActionLogEntry])
def audit_trail(
    table_id: str,
    limit: int = 100,
    offset: int = 0,
    db: Session = Depends(get_db),
):
    logs = (
        db.query(ActionLog)
        .filter(ActionLog.table_id == table_id)
        .order_by(ActionLog.timestamp, ActionLog.id)
        .offset(offset)
        .limit(limit)
        .all()
    )
    return logs


@pending_router.post("/{operation_id}/resolve", response_model=OperationResponse)
def resolve_pending(
    operation_id: str,
    body: ResolveRequest,
    db: Session = Depends(get_db),
    client=Depends(get_redis),
):
    """Answer a suspended operation: a date candidate / INVALID, or a duplicate policy."""
    try:
        operation = RedisPendingStore(client).get(operation_id)
    except PendingOperationNotFound:
        raise HTTPException(status_code=404, detail="Pending operation not found")

    table = _get_table_or_404(operation.table_id, client)
    if isinstance(operation, DateClarificationRequest):
        action = lambda rules: rules.resolve_date_clarification(operation_id, body.choice)
    else:
        try:
            policy = DuplicatePolicy(body.choice)
        except ValueError:
            raise HTTPException(status_code=400, detail=f"Unknown duplicate policy '{body.choice}'")
        if policy is DuplicatePolicy.INTERACTIVE:
            raise HTTPException(status_code=400, detail="Use POST /tables/{id}/duplicates with decisions")
        action = lambda rules: rules.process_pending_duplicates(operation_id, policy)

    return _run(operation.table_id, table, db, client, action)

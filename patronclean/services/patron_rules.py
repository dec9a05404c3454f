"""
Patron Data Rules: column passes over a tabular data source.

Each public method is one operator action: it reads a column (or columns) once,
decides every cell against that snapshot, then writes the changed cells in a
single batch and appends one audit entry per changed cell. Nothing is written
or logged if the pass is aborted before that point.

Validation passes:
- validate_mobile_numbers: 10-digit Indian mobiles
- validate_emails: syntax + MX reachability
- validate_aadhaar_numbers: 12 digits + Verhoeff checksum
- validate_dates: ISO YYYY-MM-DD; 2-digit years become pending clarifications
- find_and_handle_duplicates: per column, first occurrence wins

Cleanup/transformation passes:
- remove_line_breaks, advanced_cleanup, conditional_population
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

import structlog

from patronclean.config import settings
from patronclean.exceptions import (
    InvalidChoiceError,
    InvalidReferenceError,
    OperationCancelled,
    PendingOperationNotFound,
    StaleOperationError,
)
from patronclean.schemas.pending import (
    INVALID_OPTION,
    DateClarificationRequest,
    PendingDuplicateScan,
)
from patronclean.services.audit import (
    DATA_CLEANUP,
    DATA_TRANSFORMATION,
    VALIDATION,
    AuditEntry,
    AuditSink,
    make_entry,
)
from patronclean.services.confirmation import CANCELLED, ConfirmationChannel
from patronclean.services.contact_rules import check_email, normalize_mobile
from patronclean.services.date_rules import classify_date, parse_clarified_date
from patronclean.services.domain_cache import (
    DnsOverHttpsLookup,
    DomainReachabilityCache,
    LookupFailurePolicy,
    MxLookup,
)
from patronclean.services.duplicate_rules import (
    INTERACTIVE_CHOICES,
    DuplicateAction,
    DuplicatePlan,
    DuplicatePolicy,
    action_for_policy,
    describe_action,
    find_duplicates,
    interactive_prompt,
)
from patronclean.services.identity_rules import validate_aadhaar
from patronclean.services.outcomes import (
    UNCHANGED,
    Invalid,
    NeedsClarification,
    Normalized,
    Outcome,
    cell_text,
)
from patronclean.services.pending import InMemoryPendingStore, PendingStore
from patronclean.services import text_rules
from patronclean.services.table import (
    TabularDataSource,
    cell_address,
    column_letter_to_index,
    index_to_column_letter,
    normalize_column_letter,
    parse_column_list,
    parse_range,
)

logger = structlog.get_logger(__name__)


# Audit targets
MOBILE_VALIDATION = "Mobile Validation"
EMAIL_VALIDATION = "Email Validation"
AADHAAR_VALIDATION = "Aadhaar Validation"
DATE_VALIDATION = "Date Validation"
DATE_VALIDATION_MANUAL = "Date Validation (Manual)"
DUPLICATE_REMOVAL = "Duplicate Removal"
COLUMN_CLEANUP = "Column Cleanup"
RANGE_CLEANUP = "Range Cleanup"
CONDITIONAL_POPULATION = "Conditional Population"


# ============================================================================
# DATA CLASSES
# ============================================================================

@dataclass
class OperationResult:
    """Summary of one operator action."""
    operation: str
    column: Optional[str] = None
    changes_made: int = 0
    rows_flagged: int = 0
    pending_operations: List[str] = field(default_factory=list)
    details: Dict[str, Any] = field(default_factory=dict)


def _text_outcome(cleaned: Optional[str]) -> Outcome:
    return UNCHANGED if cleaned is None else Normalized(cleaned)


# ============================================================================
# MAIN RULES CLASS
# ============================================================================

class PatronRules:
    """
    Validation and cleanup passes over one table.

    ``audit`` receives the per-cell trail, ``pending_store`` keeps suspended
    date clarifications and duplicate scans, ``mx_lookup`` answers email
    domain queries (a DNS-over-HTTPS client is built on first use when omitted).
    ``should_cancel`` is polled once per row; returning True aborts the pass
    before anything is written.
    """

    def __init__(
        self,
        table: TabularDataSource,
        audit: AuditSink,
        pending_store: Optional[PendingStore] = None,
        mx_lookup: Optional[MxLookup] = None,
        table_id: str = "",
        lookup_failure_policy: Union[LookupFailurePolicy, str, None] = None,
        always_reachable_domains: Optional[Sequence[str]] = None,
        should_cancel: Optional[Callable[[], bool]] = None,
    ):
        self.table = table
        self.audit = audit
        self.pending_store = pending_store if pending_store is not None else InMemoryPendingStore()
        self.mx_lookup = mx_lookup
        self.table_id = table_id
        self.lookup_failure_policy = LookupFailurePolicy(
            lookup_failure_policy or settings.LOOKUP_FAILURE_POLICY
        )
        self.always_reachable_domains = always_reachable_domains
        self.should_cancel = should_cancel

    # ------------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------------

    def _check_cancelled(self) -> None:
        if self.should_cancel is not None and self.should_cancel():
            raise OperationCancelled("Operation cancelled before write")

    def _entry(self, action_type: str, target: str, reference: str, details: str) -> AuditEntry:
        return make_entry(action_type, target, self.table.name, reference, details)

    def _append_all(self, entries: List[AuditEntry]) -> None:
        for entry in entries:
            self.audit.append(entry)

    def _validate_column(
        self,
        column: str,
        operation: str,
        target: str,
        validate: Callable[[Any], Outcome],
        label: str,
        action_type: str = VALIDATION,
    ) -> OperationResult:
        """Apply ``validate`` to every data row of one column and batch the result."""
        letter = normalize_column_letter(column)
        values = self.table.get_column(letter)
        result = OperationResult(operation=operation, column=letter)

        new_values = list(values)
        entries: List[AuditEntry] = []
        clarifications: List[DateClarificationRequest] = []
        invalid_count = 0

        for i in range(1, len(values)):
            self._check_cancelled()
            original = values[i]
            address = cell_address(letter, i + 1)
            outcome = validate(original)

            if isinstance(outcome, Normalized):
                new_values[i] = outcome.value
                entries.append(self._entry(
                    action_type, target, address,
                    f"Formatted '{cell_text(original)}' to '{outcome.value}'.",
                ))
            elif isinstance(outcome, Invalid):
                new_values[i] = ""
                invalid_count += 1
                entries.append(self._entry(
                    action_type, target, address,
                    f"Removed invalid {label} ({outcome.reason}): '{cell_text(original)}'.",
                ))
            elif isinstance(outcome, NeedsClarification):
                clarifications.append(DateClarificationRequest(
                    table_id=self.table_id,
                    column=letter,
                    row=i + 1,
                    original_value=cell_text(original),
                    candidates=list(outcome.candidates),
                ))

        # Commit: one column write, then the trail, then the suspended cells
        if entries:
            self.table.set_column(letter, new_values)
        self._append_all(entries)
        for request in clarifications:
            self.pending_store.save(request)

        result.changes_made = len(entries)
        result.rows_flagged = invalid_count + len(clarifications)
        result.pending_operations = [r.operation_id for r in clarifications]
        result.details["invalid_removed"] = invalid_count
        result.details["normalized"] = len(entries) - invalid_count

        logger.info(
            "Column pass complete",
            operation=operation,
            column=letter,
            changes=result.changes_made,
            pending=len(clarifications),
        )
        return result

    def _write_cell(self, address: str, value: Any) -> None:
        self.table.set_range(address, [[value]])

    def _check_still_ambiguous(self, request: DateClarificationRequest) -> None:
        """Drop the request and raise if its cell no longer holds the queued value."""
        try:
            current = self.table.get_range(request.address)[0][0]
        except InvalidReferenceError:
            current = None

        if current is None or cell_text(current) != request.original_value:
            self.pending_store.delete(request.operation_id)
            logger.warning(
                "Stale date clarification dropped",
                cell=request.address,
                expected=request.original_value,
                found=None if current is None else cell_text(current),
            )
            raise StaleOperationError(
                f"Cell {request.address} no longer holds '{request.original_value}'; "
                f"re-run the date pass on column {request.column}"
            )

    # ========================================================================
    # VALIDATION PASSES
    # ========================================================================

    def validate_mobile_numbers(self, column: str) -> OperationResult:
        """Format valid mobiles as 10 digits; clear everything else."""
        return self._validate_column(
            column, "validate_mobile_numbers", MOBILE_VALIDATION, normalize_mobile, "number",
        )

    def validate_emails(self, column: str) -> OperationResult:
        """Clear emails with bad syntax or a domain without MX records."""
        if self.mx_lookup is None:
            self.mx_lookup = DnsOverHttpsLookup()

        # Fresh cache per pass: reachability is never reused across calls
        cache = DomainReachabilityCache(
            self.mx_lookup,
            always_reachable=self.always_reachable_domains,
            on_failure=self.lookup_failure_policy,
        )
        result = self._validate_column(
            column, "validate_emails", EMAIL_VALIDATION,
            lambda value: check_email(value, cache), "email",
        )
        result.details["domain_lookups"] = cache.lookups_performed
        return result

    def validate_aadhaar_numbers(self, column: str) -> OperationResult:
        """Keep 12-digit numbers with a valid Verhoeff checksum; clear the rest."""
        return self._validate_column(
            column, "validate_aadhaar_numbers", AADHAAR_VALIDATION, validate_aadhaar, "Aadhaar",
        )

    def validate_dates(self, column: str, channel: Optional[ConfirmationChannel] = None) -> OperationResult:
        """
        Format dates as YYYY-MM-DD. Two-digit years are stored as pending
        clarifications; with a ``channel`` each one is asked straight away
        after the batch write, and cancelled answers stay pending.
        """
        result = self._validate_column(
            column, "validate_dates", DATE_VALIDATION, classify_date, "date value",
        )
        if channel is None:
            return result

        still_pending = []
        for operation_id in result.pending_operations:
            request = self.pending_store.get(operation_id)
            answer = channel.choose(
                "Clarification Needed: Ambiguous Year",
                f"Ambiguous year: {request.original_value} at cell {request.address}. "
                f"Please choose the correct century.",
                request.options,
                key=request.address,
            )
            if answer == CANCELLED:
                still_pending.append(operation_id)
                continue
            try:
                self.resolve_date_clarification(operation_id, answer)
            except InvalidChoiceError:
                logger.warning("Unrecognised clarification answer", cell=request.address, answer=answer)
                still_pending.append(operation_id)
                continue
            result.changes_made += 1

        result.pending_operations = still_pending
        return result

    def resolve_date_clarification(self, operation_id: str, choice: str) -> OperationResult:
        """Finish one suspended two-digit-year cell with the operator's choice."""
        request = self.pending_store.get(operation_id)
        if not isinstance(request, DateClarificationRequest):
            raise PendingOperationNotFound(f"Operation {operation_id} is not a date clarification")

        result = OperationResult(operation="resolve_date_clarification", column=request.column)
        if choice == CANCELLED:
            result.pending_operations = [operation_id]
            return result

        choice = choice.strip()
        if choice.upper() == INVALID_OPTION:
            choice = INVALID_OPTION
        elif choice not in request.candidates:
            raise InvalidChoiceError(
                f"'{choice}' is not one of {', '.join(request.options)}"
            )

        address = request.address
        self._check_still_ambiguous(request)
        if choice == INVALID_OPTION:
            self.table.clear_cells([address])
            details = f"User marked ambiguous year date '{request.original_value}' as invalid."
        else:
            outcome = parse_clarified_date(choice)
            if isinstance(outcome, Normalized):
                self._write_cell(address, outcome.value)
                details = f"User clarified ambiguous year '{request.original_value}' as '{outcome.value}'."
                result.details["value"] = outcome.value
            else:
                self.table.clear_cells([address])
                details = f"User-clarified date '{choice}' was still invalid and was removed."

        self.audit.append(self._entry(VALIDATION, DATE_VALIDATION_MANUAL, address, details))
        self.pending_store.delete(operation_id)

        result.changes_made = 1
        logger.info("Date clarification resolved", column=request.column, row=request.row, choice=choice)
        return result

    # ========================================================================
    # DUPLICATES
    # ========================================================================

    def find_and_handle_duplicates(
        self,
        columns: Union[str, Sequence[str]],
        policy: Union[DuplicatePolicy, str],
        channel: Optional[ConfirmationChannel] = None,
    ) -> OperationResult:
        """
        Resolve later occurrences of repeated values in each column.

        ``INTERACTIVE`` asks ``channel`` once per duplicate (remove row / clear
        cell / skip); cancelling counts as skip.
        """
        letters = parse_column_list(columns) if isinstance(columns, str) else [
            normalize_column_letter(c) for c in columns
        ]
        if not letters:
            raise InvalidReferenceError("No column letters given")
        policy = DuplicatePolicy(policy)
        if policy is DuplicatePolicy.INTERACTIVE and channel is None:
            raise InvalidChoiceError("Interactive duplicate handling needs a confirmation channel")

        snapshots = {letter: self.table.get_column(letter) for letter in letters}

        plan = DuplicatePlan()
        found = 0
        for letter in letters:
            for occurrence in find_duplicates(snapshots[letter], letter):
                self._check_cancelled()
                found += 1
                if policy is DuplicatePolicy.INTERACTIVE:
                    answer = channel.choose(
                        "Duplicate Found!",
                        interactive_prompt(occurrence),
                        INTERACTIVE_CHOICES,
                        key=occurrence.address,
                    )
                    action = DuplicateAction(answer) if answer in INTERACTIVE_CHOICES else DuplicateAction.SKIP
                else:
                    action = action_for_policy(policy)
                plan.add(occurrence, action)

        # Clears first, then deletions bottom-up so row numbers stay valid
        if plan.cells_to_clear:
            self.table.clear_cells(plan.cells_to_clear)
        rows_deleted = plan.deletion_order()
        for row in rows_deleted:
            self.table.delete_row(row)

        self._append_all([
            self._entry(VALIDATION, DUPLICATE_REMOVAL, occurrence.address, describe_action(occurrence, action))
            for occurrence, action in plan.handled
        ])

        result = OperationResult(
            operation="find_and_handle_duplicates",
            column=", ".join(letters),
            changes_made=len(plan.handled),
            rows_flagged=found,
        )
        result.details["policy"] = policy.value
        result.details["cells_cleared"] = list(plan.cells_to_clear)
        result.details["rows_deleted"] = rows_deleted
        result.details["skipped"] = [o.address for o in plan.skipped]

        logger.info(
            "Duplicate pass complete",
            columns=letters,
            policy=policy.value,
            duplicates=found,
            handled=len(plan.handled),
        )
        return result

    def request_duplicate_scan(self, columns: Union[str, Sequence[str]]) -> PendingDuplicateScan:
        """Record the columns to scan while the operator picks a policy."""
        letters = parse_column_list(columns) if isinstance(columns, str) else [
            normalize_column_letter(c) for c in columns
        ]
        scan = PendingDuplicateScan(table_id=self.table_id, columns=letters)
        self.pending_store.save(scan)
        return scan

    def process_pending_duplicates(
        self,
        operation_id: str,
        policy: Union[DuplicatePolicy, str],
        channel: Optional[ConfirmationChannel] = None,
    ) -> OperationResult:
        """Run a stored duplicate scan with the chosen policy; CANCELLED drops it."""
        scan = self.pending_store.get(operation_id)
        if not isinstance(scan, PendingDuplicateScan):
            raise PendingOperationNotFound(f"Operation {operation_id} is not a duplicate scan")

        if policy == CANCELLED:
            self.pending_store.delete(operation_id)
            return OperationResult(operation="find_and_handle_duplicates", column=", ".join(scan.columns))

        result = self.find_and_handle_duplicates(scan.columns, policy, channel=channel)
        self.pending_store.delete(operation_id)
        return result

    # ========================================================================
    # CLEANUP & TRANSFORMATION
    # ========================================================================

    def remove_line_breaks(self, column: str) -> OperationResult:
        """Replace line breaks with spaces and collapse whitespace in a column."""
        return self._validate_column(
            column, "remove_line_breaks", COLUMN_CLEANUP,
            lambda value: _text_outcome(text_rules.remove_line_breaks(value)),
            "text", action_type=DATA_CLEANUP,
        )

    def advanced_cleanup(self, a1_range: str) -> OperationResult:
        """Punctuation spacing, line breaks and trimming over a cell range (header excluded)."""
        col1, row1, col2, row2 = parse_range(a1_range)
        first_row = max(row1, 2)
        result = OperationResult(operation="advanced_cleanup", column=a1_range)
        if first_row > row2:
            return result

        reference = (
            f"{index_to_column_letter(col1)}{first_row}:"
            f"{index_to_column_letter(col2)}{row2}"
        )
        grid = self.table.get_range(reference)
        entries = []
        for r, row_values in enumerate(grid):
            for c, original in enumerate(row_values):
                self._check_cancelled()
                cleaned = text_rules.advanced_cleanup(original)
                if cleaned is None:
                    continue
                grid[r][c] = cleaned
                address = cell_address(index_to_column_letter(col1 + c), first_row + r)
                entries.append(self._entry(
                    DATA_CLEANUP, RANGE_CLEANUP, address,
                    f"Formatted '{original}' to '{cleaned}'.",
                ))

        if entries:
            self.table.set_range(reference, grid)
        self._append_all(entries)

        result.changes_made = len(entries)
        logger.info("Range cleanup complete", range=reference, changes=len(entries))
        return result

    def conditional_population(
        self,
        source_column: str,
        condition: str,
        target_column: str,
        value: Any,
        header: Optional[str] = None,
    ) -> OperationResult:
        """
        Set ``target_column`` to ``value`` on every row whose ``source_column``
        reads ``condition``. A target just past the last column is created,
        using ``header`` as its title.
        """
        source = normalize_column_letter(source_column)
        target = normalize_column_letter(target_column)
        source_values = self.table.get_column(source)

        target_index = column_letter_to_index(target)
        creating = target_index >= self.table.column_count
        if creating and target_index != self.table.column_count:
            raise InvalidReferenceError(
                f"Column {target} is not adjacent to the table; the next new column is "
                f"{index_to_column_letter(self.table.column_count)}"
            )

        if creating:
            target_values = [header or ""] + [""] * (len(source_values) - 1)
        else:
            target_values = self.table.get_column(target)

        new_values = list(target_values)
        entries = []
        matched = 0
        for i in range(1, len(source_values)):
            self._check_cancelled()
            if cell_text(source_values[i]) != condition:
                continue
            matched += 1
            if target_values[i] == value:
                continue
            new_values[i] = value
            entries.append(self._entry(
                DATA_TRANSFORMATION, CONDITIONAL_POPULATION, cell_address(target, i + 1),
                f"Populated with '{value}' where column {source} was '{condition}' "
                f"(was '{cell_text(target_values[i])}').",
            ))

        result = OperationResult(operation="conditional_population", column=target, rows_flagged=matched)
        if entries:
            if creating:
                self.table.add_column(header or "")
            self.table.set_column(target, new_values)
        self._append_all(entries)

        result.changes_made = len(entries)
        logger.info(
            "Conditional population complete",
            source=source, target=target, matched=matched, changes=len(entries),
        )
        return result

"""
Date Rules

Cells are formatted as ISO ``YYYY-MM-DD``. Resolution order per cell:

1. Two-digit year (``05/06/20``): ambiguous century, needs an operator choice
2. ``D[D]/M[M]/YYYY``: read day-first (Indian convention), never month-first
3. Anything else: ISO year-first, Excel serial numbers, then dateutil

Cells already holding a date object are left as they are.
"""

import re
from datetime import date, datetime, timedelta
from typing import Any, Optional

from dateutil import parser as dateutil_parser

from patronclean.services.outcomes import (
    UNCHANGED,
    Invalid,
    NeedsClarification,
    Normalized,
    Outcome,
    is_empty,
)


# ============================================================================
# DATE FORMAT PATTERNS
# ============================================================================

TWO_DIGIT_YEAR_PATTERN = re.compile(r'^(\d{1,2}[-/]\d{1,2}[-/])(\d{2})$')
DAY_MONTH_YEAR_PATTERN = re.compile(r'^(\d{1,2})[-/](\d{1,2})[-/](\d{4})$')
ISO_DATE_PATTERN = re.compile(r'^(\d{4})[-/](\d{1,2})[-/](\d{1,2})$')

CENTURIES = ("19", "20")
INVALID_CHOICE = "INVALID"

OUTPUT_FORMAT = "%Y-%m-%d"

# Excel serial date epoch (December 30, 1899)
EXCEL_EPOCH = datetime(1899, 12, 30)
EXCEL_SERIAL_MIN = 1  # Jan 1, 1900
EXCEL_SERIAL_MAX = 2958465  # Dec 31, 9999


# ============================================================================
# HELPER FUNCTIONS
# ============================================================================

def century_candidates(text: str) -> Optional[tuple]:
    """'05/06/20' -> ('05/06/1920', '05/06/2020'); None when not a 2-digit year."""
    match = TWO_DIGIT_YEAR_PATTERN.match(text)
    if not match:
        return None
    prefix, year = match.groups()
    return tuple(f"{prefix}{century}{year}" for century in CENTURIES)


def build_date(year: int, month: int, day: int) -> Optional[date]:
    try:
        return date(year, month, day)
    except ValueError:
        return None


def parse_excel_serial(value: Any) -> Optional[date]:
    """Excel stores dates as days since Dec 30, 1899."""
    try:
        serial = float(value)
    except (TypeError, ValueError):
        return None
    if EXCEL_SERIAL_MIN <= serial <= EXCEL_SERIAL_MAX:
        return (EXCEL_EPOCH + timedelta(days=int(serial))).date()
    return None


def parse_date_text(text: str) -> Optional[date]:
    """Parse a textual date; day-first wherever the order is ambiguous."""
    match = DAY_MONTH_YEAR_PATTERN.match(text)
    if match:
        day, month, year = (int(g) for g in match.groups())
        return build_date(year, month, day)

    match = ISO_DATE_PATTERN.match(text)
    if match:
        year, month, day = (int(g) for g in match.groups())
        return build_date(year, month, day)

    # Missing parts default to January 1st of the current year
    default = datetime(datetime.now().year, 1, 1)
    try:
        return dateutil_parser.parse(text, dayfirst=True, default=default).date()
    except (ValueError, TypeError, OverflowError):
        return None


def format_date(value: date) -> str:
    return value.strftime(OUTPUT_FORMAT)


def _outcome_for(original: Any, parsed: Optional[date]) -> Outcome:
    if parsed is None:
        return Invalid("unparseable date")
    formatted = format_date(parsed)
    if str(original) == formatted:
        return UNCHANGED
    return Normalized(formatted)


# ============================================================================
# VALIDATORS
# ============================================================================

def classify_date(value: Any) -> Outcome:
    """Decide what a single date cell becomes."""
    if is_empty(value) or isinstance(value, (date, datetime)):
        return UNCHANGED

    if isinstance(value, bool):
        return Invalid("unparseable date")

    if isinstance(value, (int, float)):
        return _outcome_for(value, parse_excel_serial(value))

    text = str(value).strip()
    candidates = century_candidates(text)
    if candidates:
        return NeedsClarification(candidates)

    if not text:
        return Invalid("unparseable date")
    return _outcome_for(value, parse_date_text(text))


def parse_clarified_date(choice: str) -> Outcome:
    """Re-run day-first/fallback parsing on an operator-chosen candidate."""
    parsed = parse_date_text(choice.strip())
    if parsed is None:
        return Invalid("unparseable date")
    return Normalized(format_date(parsed))

"""
Identity Number Rules: Aadhaar

Aadhaar numbers are 12 digits whose last digit is a Verhoeff check digit.
Only structural validity is checked; nothing here asks whether a number was
actually issued.
"""

import re
from typing import Any

from patronclean.services.outcomes import (
    UNCHANGED,
    Invalid,
    Normalized,
    Outcome,
    cell_text,
    is_empty,
)

AADHAAR_LENGTH = 12

NON_DIGIT_PATTERN = re.compile(r'\D')


# ============================================================================
# VERHOEFF TABLES
# ============================================================================

# Multiplication table of the dihedral group D5
VERHOEFF_D = (
    (0, 1, 2, 3, 4, 5, 6, 7, 8, 9),
    (1, 2, 3, 4, 0, 6, 7, 8, 9, 5),
    (2, 3, 4, 0, 1, 7, 8, 9, 5, 6),
    (3, 4, 0, 1, 2, 8, 9, 5, 6, 7),
    (4, 0, 1, 2, 3, 9, 5, 6, 7, 8),
    (5, 9, 8, 7, 6, 0, 4, 3, 2, 1),
    (6, 5, 9, 8, 7, 1, 0, 4, 3, 2),
    (7, 6, 5, 9, 8, 2, 1, 0, 4, 3),
    (8, 7, 6, 5, 9, 3, 2, 1, 0, 4),
    (9, 8, 7, 6, 5, 4, 3, 2, 1, 0),
)

# Position-dependent permutations, cycling every 8 digits
VERHOEFF_P = (
    (0, 1, 2, 3, 4, 5, 6, 7, 8, 9),
    (1, 5, 7, 6, 2, 8, 3, 0, 9, 4),
    (5, 8, 0, 3, 7, 9, 6, 1, 4, 2),
    (8, 9, 1, 6, 0, 4, 3, 5, 2, 7),
    (9, 4, 5, 3, 1, 2, 6, 8, 7, 0),
    (4, 2, 8, 6, 5, 7, 3, 9, 0, 1),
    (2, 7, 9, 3, 8, 0, 6, 4, 1, 5),
    (7, 0, 4, 6, 9, 1, 3, 2, 5, 8),
)

VERHOEFF_INV = (0, 4, 3, 2, 1, 5, 6, 7, 8, 9)


# ============================================================================
# CHECKSUM
# ============================================================================

def verhoeff_validate(digits: str) -> bool:
    """True when ``digits`` (check digit last) passes the Verhoeff check."""
    c = 0
    for i, ch in enumerate(reversed(digits)):
        c = VERHOEFF_D[c][VERHOEFF_P[i % 8][int(ch)]]
    return c == 0


def verhoeff_check_digit(digits: str) -> str:
    """Check digit to append to ``digits``."""
    c = 0
    for i, ch in enumerate(reversed(digits)):
        c = VERHOEFF_D[c][VERHOEFF_P[(i + 1) % 8][int(ch)]]
    return str(VERHOEFF_INV[c])


# ============================================================================
# VALIDATOR
# ============================================================================

def validate_aadhaar(value: Any) -> Outcome:
    """Normalise an Aadhaar cell to 12 bare digits, rejecting bad checksums."""
    if is_empty(value):
        return UNCHANGED

    cleaned = NON_DIGIT_PATTERN.sub('', cell_text(value))
    if not cleaned:
        return UNCHANGED
    if len(cleaned) != AADHAAR_LENGTH:
        return Invalid("not 12 digits")
    if not verhoeff_validate(cleaned):
        return Invalid("failed checksum")

    if cell_text(value) == cleaned:
        return UNCHANGED
    return Normalized(cleaned)

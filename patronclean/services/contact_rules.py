"""
Contact Validation Rules

- Mobile numbers: Indian 10-digit mobiles, with or without +91 / leading 0
- Email addresses: syntax check, then MX reachability of the domain

Both validators only judge or normalise a single cell; column passes and the
audit trail live in ``patron_rules.PatronRules``.
"""

import re
from typing import Any

from patronclean.services.domain_cache import DomainReachabilityCache
from patronclean.services.outcomes import (
    UNCHANGED,
    Invalid,
    Normalized,
    Outcome,
    cell_text,
    is_empty,
)


# ============================================================================
# MOBILE CONSTANTS
# ============================================================================

NON_DIGIT_PATTERN = re.compile(r'\D')

COUNTRY_CODE = "91"
TRUNK_PREFIX = "0"
MOBILE_LENGTH = 10
MOBILE_LEADING_DIGITS = {"6", "7", "8", "9"}


# ============================================================================
# EMAIL CONSTANTS
# ============================================================================

# local-part @ domain . suffix of 2+ chars, no whitespace, single @
EMAIL_PATTERN = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]{2,}$', re.IGNORECASE)


# ============================================================================
# HELPER FUNCTIONS: MOBILE
# ============================================================================

def extract_digits(value: Any) -> str:
    """Keep digits only."""
    return NON_DIGIT_PATTERN.sub('', cell_text(value))


def strip_mobile_prefix(digits: str) -> str:
    """Drop a +91 country code (12 digits) or a 0 trunk prefix (11 digits)."""
    if len(digits) == 12 and digits.startswith(COUNTRY_CODE):
        return digits[len(COUNTRY_CODE):]
    if len(digits) == 11 and digits.startswith(TRUNK_PREFIX):
        return digits[len(TRUNK_PREFIX):]
    return digits


def is_valid_mobile(digits: str) -> bool:
    return len(digits) == MOBILE_LENGTH and digits[0] in MOBILE_LEADING_DIGITS


def normalize_mobile(value: Any) -> Outcome:
    """Normalise a mobile number cell to its bare 10 digits."""
    if is_empty(value):
        return UNCHANGED

    cleaned = strip_mobile_prefix(extract_digits(value))
    if not is_valid_mobile(cleaned):
        return Invalid("invalid mobile number")

    if cell_text(value) == cleaned:
        return UNCHANGED
    return Normalized(cleaned)


# ============================================================================
# HELPER FUNCTIONS: EMAIL
# ============================================================================

def validate_email_format(email: str) -> bool:
    return bool(EMAIL_PATTERN.match(email))


def extract_domain(email: str) -> str:
    """Lowercased text after the last '@'."""
    return email[email.rfind('@') + 1:].lower()


def check_email(value: Any, cache: DomainReachabilityCache) -> Outcome:
    """
    Judge an email cell. Never rewrites the value: a syntactically valid
    address on a reachable domain stays as typed.
    """
    if not isinstance(value, str) or not value.strip():
        return UNCHANGED

    email = value.strip()
    if not validate_email_format(email):
        return Invalid("invalid syntax")

    if not cache.is_reachable(extract_domain(email)):
        return Invalid("invalid domain (no MX record)")

    return UNCHANGED

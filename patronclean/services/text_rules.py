"""
Text Cleanup Rules

Whitespace and punctuation-spacing fixes for free-text patron fields. Only
string cells are touched.
"""

import re
from typing import Any, Optional

LINE_BREAK_PATTERN = re.compile(r'(\r\n|\n|\r)')
MULTI_SPACE_PATTERN = re.compile(r'\s{2,}')

PUNCTUATION = r",.?!:;)\}\]/"
SPACE_BEFORE_PUNCT_PATTERN = re.compile(rf"\s+([{PUNCTUATION}])")
MISSING_SPACE_AFTER_PUNCT_PATTERN = re.compile(rf"([{PUNCTUATION}])(?!\s|[{PUNCTUATION}]|$)")


def remove_line_breaks(value: Any) -> Optional[str]:
    """Line breaks become spaces and runs of whitespace collapse. None if unchanged."""
    if not isinstance(value, str):
        return None
    cleaned = MULTI_SPACE_PATTERN.sub(' ', LINE_BREAK_PATTERN.sub(' ', value))
    return cleaned if cleaned != value else None


def advanced_cleanup(value: Any) -> Optional[str]:
    """
    Fix spacing around punctuation, drop line breaks and trim. Text containing
    '@' keeps its punctuation spacing so email addresses survive. None if
    unchanged.
    """
    if not isinstance(value, str):
        return None

    cleaned = value
    if '@' not in cleaned:
        cleaned = SPACE_BEFORE_PUNCT_PATTERN.sub(r'\1', cleaned)
        cleaned = MISSING_SPACE_AFTER_PUNCT_PATTERN.sub(r'\1 ', cleaned)

    cleaned = LINE_BREAK_PATTERN.sub(' ', cleaned)
    cleaned = MULTI_SPACE_PATTERN.sub(' ', cleaned)
    cleaned = cleaned.strip()

    return cleaned if cleaned != value else None

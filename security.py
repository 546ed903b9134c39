"""
Security module for the Concurso Study Tracker.
Provides identifier allowlisting and input validation/sanitization helpers.
"""

import re
import html
from typing import Optional, Any, Set

# ============ TABLE NAME ALLOWLIST ============
# Only these table names are allowed in dynamic SQL (PRAGMA) queries
ALLOWED_TABLES: Set[str] = frozenset({
    "kv_store",
    "_migrations",
})


def validate_table_name(table: str) -> str:
    """
    Validate table name against allowlist.

    Returns:
        The normalized table name

    Raises:
        ValueError: If table name is not in allowlist
    """
    if not table or not isinstance(table, str):
        raise ValueError("Table name must be a non-empty string")

    table_clean = table.strip().lower()

    if table_clean not in ALLOWED_TABLES:
        raise ValueError(f"Invalid table name: {table}")

    return table_clean


# ============ INPUT SANITIZATION ============

def sanitize_string(value: str, max_length: int = 1000, allow_newlines: bool = False) -> str:
    """
    Sanitize a string input by stripping whitespace and limiting length.

    Args:
        value: String to sanitize
        max_length: Maximum allowed length (default 1000)
        allow_newlines: If False, replace newlines with spaces

    Returns:
        Sanitized string ("" for non-strings)
    """
    if not isinstance(value, str):
        return ""

    result = value.strip()

    if not allow_newlines:
        result = re.sub(r'[\r\n]+', ' ', result)

    if len(result) > max_length:
        result = result[:max_length].rstrip()

    return result


def sanitize_html(value: str) -> str:
    """
    Escape HTML special characters to prevent XSS.
    Use when displaying user input in HTML context.
    """
    if not isinstance(value, str):
        return ""
    return html.escape(value)


def validate_numeric_range(value: Any, min_val: Optional[float] = None,
                           max_val: Optional[float] = None,
                           allow_none: bool = False) -> bool:
    """
    Validate that a numeric value is within expected range.

    Args:
        value: Value to validate
        min_val: Minimum allowed value (inclusive)
        max_val: Maximum allowed value (inclusive)
        allow_none: If True, None values are valid

    Returns:
        True if valid, False otherwise
    """
    if value is None:
        return allow_none

    if isinstance(value, bool):
        return False

    try:
        num = float(value)
    except (TypeError, ValueError):
        return False

    if num != num:  # NaN
        return False
    if min_val is not None and num < min_val:
        return False
    if max_val is not None and num > max_val:
        return False

    return True

"""
Text handling: store-time sanitization, render-time escaping and date checks.
"""

import html
import re
from datetime import datetime
from typing import Any

_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")
DATE_FORMAT = "%Y-%m-%d"


def sanitize_input(value: Any) -> str:
    """Neutralize markup in user text before it is stored.

    Non-string input becomes an empty string. Only ``&``, ``<`` and ``>`` are
    replaced, which is what assigning text to a DOM node and reading back its
    markup produces.
    """
    if not isinstance(value, str):
        return ""
    return html.escape(value, quote=False)


def escape_html(value: Any) -> str:
    """Escape text immediately before it is displayed."""
    if value is None:
        return ""
    return html.escape(str(value), quote=True)


def is_valid_date(value: Any) -> bool:
    """Check for a strict ``YYYY-MM-DD`` calendar date."""
    if not value or not isinstance(value, str):
        return False
    if not _DATE_PATTERN.match(value):
        return False
    try:
        parsed = datetime.strptime(value, DATE_FORMAT)
    except ValueError:
        return False
    return parsed.strftime(DATE_FORMAT) == value

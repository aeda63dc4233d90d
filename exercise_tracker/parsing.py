"""Input coercion shared by the repositories.

Values arrive from JSON bodies, form bodies and query strings, so most
helpers accept either native types or strings.
"""

import math
import re
from datetime import datetime
from typing import Any, Optional

_ID_RE = re.compile(r"[0-9a-f]{32}")
_LEADING_INT_RE = re.compile(r"\s*([+-]?\d+)")

DATE_DISPLAY_FORMAT = "%a %b %d %Y"

# largest value a signed 64-bit store integer holds
MAX_STORE_INT = 2**63 - 1


def is_valid_id(value: Any) -> bool:
    return isinstance(value, str) and _ID_RE.fullmatch(value) is not None


def clean_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def parse_int(value: Any) -> Optional[int]:
    """Leading integer of ``value`` ("30", "30.5" and "30min" all give 30).

    Returns None when nothing integer-like can be read.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else None
    match = _LEADING_INT_RE.match(str(value))
    if match is None:
        return None
    return int(match.group(1))


def parse_date(value: Any) -> datetime:
    """Parse an ISO-8601 date or date-time into a naive datetime.

    Aware values are converted to server local time, the same base as
    datetime.now() defaults. Raises ValueError.
    """
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = datetime.fromisoformat(clean_text(value))
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed


def format_date(value: datetime) -> str:
    # e.g. "Wed May 10 2023"
    return value.strftime(DATE_DISPLAY_FORMAT)

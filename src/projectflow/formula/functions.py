"""Built-in formula functions: aggregates and date arithmetic."""

import logging
import math
import re
from datetime import date, datetime, timezone
from typing import Any, Optional, Sequence, Union

from ..sheets.models import Column, Row
from .references import cell_value

logger = logging.getLogger(__name__)

Number = Union[int, float]

MS_PER_DAY = 86_400_000

# Leading numeric prefix, the way "12.5kg" reads as 12.5
NUMERIC_PREFIX = re.compile(r"\s*[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")

# ISO 8601 extended format as Date.parse reads it: YYYY-MM-DD with an optional
# time, fraction and Z or numeric offset. Compact and week forms are rejected.
ISO_DATE_PATTERN = re.compile(
    r"(?P<date>\d{4}-\d{2}-\d{2})"
    r"(?:[T ](?P<time>\d{2}:\d{2}(?::\d{2})?)(?:\.(?P<fraction>\d+))?)?"
    r"(?P<offset>Z|[+-]\d{2}:?\d{2})?",
    re.IGNORECASE,
)

# Non-ISO date layouts accepted in addition to ISO 8601
DATE_FORMATS = (
    "%Y/%m/%d",
    "%m/%d/%Y",
    "%b %d, %Y",
    "%B %d, %Y",
    "%d %b %Y",
    "%d %B %Y",
)


def parse_float_prefix(value: Any) -> Number:
    """
    Coerce a cell value to a number for SUM/AVG, the way parseFloat reads it.

    Ints and floats pass through. Strings are read up to the first
    non-numeric character. Booleans, blanks and anything unparseable are 0.
    """
    if isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, str):
        match = NUMERIC_PREFIX.match(value)
        if not match:
            return 0
        text = match.group(0).strip()
        if re.fullmatch(r"[+-]?\d+", text):
            try:
                return int(text)
            except ValueError:
                # Past the int string conversion limit
                pass
        return float(text)
    return 0


def aggregate_sum(rows: Sequence[Row], column: Column) -> Number:
    """Sum a column across all rows."""
    return sum(parse_float_prefix(cell_value(row, column)) for row in rows)


def aggregate_count(rows: Sequence[Row], column: Column) -> int:
    """Count rows whose cell for the column is present and not blank."""
    return sum(1 for row in rows if cell_value(row, column) not in (None, ""))


def aggregate_avg(rows: Sequence[Row], column: Column) -> Number:
    """Average a column across all rows, 0 for an empty sheet."""
    if not rows:
        return 0
    return aggregate_sum(rows, column) / len(rows)


AGGREGATES = {
    "SUM": aggregate_sum,
    "COUNT": aggregate_count,
    "AVG": aggregate_avg,
}


def parse_date(value: Any) -> Optional[datetime]:
    """
    Parse a cell value as a UTC datetime.

    Date-only values are midnight UTC and naive date-times are read as UTC.

    Returns:
        An aware datetime, or None if the value is not a valid date
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, str) and value.strip():
        parsed = _parse_date_string(value.strip())
        if parsed is None:
            return None
    else:
        return None

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _parse_iso(match: re.Match) -> Optional[datetime]:
    # Rebuild a string fromisoformat accepts on every supported Python
    iso = match.group("date")
    if match.group("time"):
        iso += "T" + match.group("time")
        if match.group("fraction"):
            iso += "." + match.group("fraction")[:6].ljust(6, "0")
    offset = match.group("offset")
    if offset:
        if offset.upper() == "Z":
            offset = "+00:00"
        elif ":" not in offset:
            offset = offset[:3] + ":" + offset[3:]
        iso += offset

    try:
        return datetime.fromisoformat(iso)
    except ValueError:
        return None


def _parse_date_string(text: str) -> Optional[datetime]:
    match = ISO_DATE_PATTERN.fullmatch(text)
    if match:
        return _parse_iso(match)
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    return None


def date_diff(row: Row, column_a: Column, column_b: Column) -> int:
    """
    Whole days from column_b's date to column_a's date in the current row.

    Partial days round up. Returns 0 if either cell is not a valid date.
    """
    first = parse_date(cell_value(row, column_a))
    second = parse_date(cell_value(row, column_b))
    if first is None or second is None:
        logger.debug(
            f"DATEDIFF on unparseable dates: {cell_value(row, column_a)!r}, "
            f"{cell_value(row, column_b)!r}"
        )
        return 0

    elapsed_ms = (first - second).total_seconds() * 1000
    return math.ceil(elapsed_ms / MS_PER_DAY)

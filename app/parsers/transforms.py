"""
app/parsers/transforms.py

Per-column text-to-type transforms applied before row validation.

parse_date / parse_number return None instead of raising when the value
cannot be converted.
"""

from __future__ import annotations

import math
import re
from datetime import date, datetime, time
from typing import Any

from dateutil import parser as date_parser

from app.domain.spreadsheet import Transform

# Tried in order; the generic parser is the last resort.
DATE_FORMATS: tuple[str, ...] = (
    "%m/%d/%Y",
    "%d/%m/%Y",
    "%Y-%m-%d",
    "%b %d, %Y",
    "%B %d, %Y",
    "%d-%b-%Y",
    "%Y/%m/%d",
    "%d.%m.%Y",
)

_NUMBER_NOISE = re.compile(r"[$€£¥%,\s]")


def parse_date(value: Any) -> datetime | None:
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime.combine(value, time.min)
    if value is None or isinstance(value, bool):
        return None

    raw = str(value).strip()
    if not raw:
        return None

    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(raw, fmt)
        except ValueError:
            continue

    try:
        return date_parser.parse(raw)
    except (ValueError, OverflowError):
        return None


def parse_number(value: Any) -> float | int | None:
    """
    Parse a number, ignoring currency symbols, percent signs and thousands separators.

    >>> parse_number("$1,234.50")
    1234.5
    """

    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return value if math.isfinite(value) else None
    if value is None:
        return None

    cleaned = _NUMBER_NOISE.sub("", str(value))
    if not cleaned:
        return None
    try:
        number = float(cleaned)
    except ValueError:
        return None
    return number if math.isfinite(number) else None


def apply_transform(value: Any, transform: str | None) -> Any:
    """
    Apply one named transform to a raw cell value; unknown names pass through.
    """

    if transform is None:
        return value
    if transform == Transform.LOWERCASE:
        return str(value).lower()
    if transform == Transform.UPPERCASE:
        return str(value).upper()
    if transform == Transform.TRIM:
        return str(value).strip()
    if transform == Transform.PARSE_DATE:
        return parse_date(value)
    if transform == Transform.PARSE_NUMBER:
        return parse_number(value)
    return value

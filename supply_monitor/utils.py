from __future__ import annotations

import math
import re
from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

from supply_monitor.errors import InvalidNumericValue

SPREADSHEET_URL = "https://docs.google.com/spreadsheets/d/{sheet_id}"

_CELL_RE = re.compile(r"^[A-Z]+[1-9][0-9]*$")


def is_valid_cell_address(cell: str) -> bool:
    """Check for single-cell A1 notation like A1, B7, AA10."""
    return isinstance(cell, str) and bool(_CELL_RE.match(cell))


def parse_numeric_value(value: str | int | float) -> float | int:
    """
    Parse a cell value that may contain commas as thousands separators.
    Native numbers are returned unchanged.
    """
    # bool is an int subclass but never a supply count
    if isinstance(value, bool):
        raise InvalidNumericValue(
            f"Invalid value type: expected string or number, got {type(value).__name__}"
        )
    if isinstance(value, (int, float)):
        if not math.isfinite(value):
            raise InvalidNumericValue(f'Invalid numeric value: "{value}"')
        return value
    if not isinstance(value, str):
        raise InvalidNumericValue(
            f"Invalid value type: expected string or number, got {type(value).__name__}"
        )

    cleaned = value.replace(",", "").strip()
    try:
        parsed = float(cleaned)
    except ValueError:
        raise InvalidNumericValue(f'Invalid numeric value: "{value}"') from None

    # also rejects "inf" and overflowing literals like "1e400"
    if not math.isfinite(parsed):
        raise InvalidNumericValue(f'Invalid numeric value: "{value}"')
    return parsed


def format_number(value: float | int) -> str:
    """Render 90.0 as "90" and 12.5 as "12.5"."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def ordinal(day: int) -> str:
    if 10 <= day % 100 <= 20:
        suffix = "th"
    else:
        suffix = {1: "st", 2: "nd", 3: "rd"}.get(day % 10, "th")
    return f"{day}{suffix}"


def format_day(moment: datetime, tz: str = "America/New_York") -> str:
    """Format as "Friday, October 17th" in the given timezone."""
    local = moment.astimezone(ZoneInfo(tz))
    return f"{local:%A, %B} {ordinal(local.day)}"


def zero_date(now: datetime, days_remaining: int, tz: str = "America/New_York") -> str:
    """Date on which supplies run out, counting whole days from now."""
    return format_day(now + timedelta(days=days_remaining), tz)


def spreadsheet_url(sheet_id: str) -> str:
    return SPREADSHEET_URL.format(sheet_id=sheet_id)

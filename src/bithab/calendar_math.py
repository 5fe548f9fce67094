# src/bithab/calendar_math.py
import calendar
from datetime import date, timedelta
from pydantic import BaseModel

from .errors import InvalidDateKey

GRID_CELLS = 42  # 6 weeks keeps every month the same height
# a full grid stays inside date.min..date.max only for these months
FIRST_MONTH = (1, 1)
LAST_MONTH = (9999, 10)
WEEKDAY_NAMES = ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]


class DayCell(BaseModel):
    date_key: str
    day: int
    in_current_month: bool


# -------------------------------
# MONTH ARITHMETIC
# -------------------------------
def normalize_month(year: int, month: int) -> tuple[int, int]:
    """Fold an out-of-range 0-based month into (year, 0..11)."""
    extra_years, month = divmod(month, 12)
    return year + extra_years, month


def clamp_month(year: int, month: int) -> tuple[int, int]:
    """Normalize, then pin the month to the range a grid can be drawn for."""
    return min(max(normalize_month(year, month), FIRST_MONTH), LAST_MONTH)


def shift_month(year: int, month: int, delta: int) -> tuple[int, int]:
    return clamp_month(year, month + delta)


def days_in_month(year: int, month: int) -> int:
    year, month = normalize_month(year, month)
    return calendar.monthrange(year, month + 1)[1]


def first_weekday(year: int, month: int) -> int:
    """Weekday of day 1, with 0 = Sunday."""
    year, month = normalize_month(year, month)
    # date.weekday() has Monday = 0
    return (date(year, month + 1, 1).weekday() + 1) % 7


def month_title(year: int, month: int) -> str:
    year, month = normalize_month(year, month)
    return f"{calendar.month_name[month + 1]} {year}"


# -------------------------------
# DATE KEYS
# -------------------------------
def key_for(day: date) -> str:
    return day.isoformat()


def parse_date_key(key: str) -> date:
    """Parse a canonical or legacy (unpadded) YYYY-M-D key."""
    parts = str(key).strip().split("-")
    if len(parts) != 3:
        raise InvalidDateKey(f"Not a date key: {key!r}")
    try:
        year, month, day = (int(p) for p in parts)
        return date(year, month, day)
    except ValueError as e:
        raise InvalidDateKey(f"Not a date key: {key!r}") from e


def normalize_date_key(key: str) -> str:
    return parse_date_key(key).isoformat()


# -------------------------------
# GRID
# -------------------------------
def month_grid(year: int, month: int) -> list[DayCell]:
    """
    Six full weeks starting on the Sunday on or before day 1.
    Padding cells carry the real dates of the neighboring months. Months
    outside FIRST_MONTH..LAST_MONTH get the grid of the nearest one.
    """
    year, month = clamp_month(year, month)
    lead = first_weekday(year, month)
    length = days_in_month(year, month)
    start = date(year, month + 1, 1) - timedelta(days=lead)
    cells = []
    for offset in range(GRID_CELLS):
        current = start + timedelta(days=offset)
        cells.append(DayCell(
            date_key=key_for(current),
            day=current.day,
            in_current_month=lead <= offset < lead + length,
        ))
    return cells

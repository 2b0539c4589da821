from dataclasses import dataclass
from datetime import date
from typing import Optional, Union

MONTH_ABBREVIATIONS = (
    "Jan",
    "Feb",
    "Mar",
    "Apr",
    "May",
    "Jun",
    "Jul",
    "Aug",
    "Sep",
    "Oct",
    "Nov",
    "Dec",
)


@dataclass(frozen=True)
class Period:
    slug: str
    start: date
    end: date

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end


def month_key(value: Union[str, date]) -> str:
    """Bucket key ``YYYY-MM`` taken from the first 7 characters of an ISO date."""
    if isinstance(value, date):
        value = value.isoformat()
    return value[:7]


def parse_month_key(key: str) -> tuple[int, int]:
    year, month = key.split("-")[:2]
    return int(year), int(month)


def format_month_key(year: int, month: int) -> str:
    return f"{year:04d}-{month:02d}"


def add_months(year: int, month: int, count: int) -> tuple[int, int]:
    month_index = (year * 12) + (month - 1) + count
    return month_index // 12, (month_index % 12) + 1


def month_range(start_key: str, end_key: str) -> list[str]:
    """Every month key from ``start_key`` to ``end_key``, both inclusive."""
    year, month = parse_month_key(start_key)
    end = parse_month_key(end_key)
    keys: list[str] = []
    while (year, month) <= end:
        keys.append(format_month_key(year, month))
        year, month = add_months(year, month, 1)
    return keys


def previous_month_key(today: date) -> str:
    return format_month_key(*add_months(today.year, today.month, -1))


def month_label(key: str) -> str:
    year, month = parse_month_key(key)
    return f"{MONTH_ABBREVIATIONS[month - 1]} {year}"


def resolve_period(
    period: Optional[str],
    start: Optional[str],
    end: Optional[str],
    *,
    today: Optional[date] = None,
) -> Period:
    today = today or date.today()
    if period == "custom" or (not period and (start or end)):
        start_date = date.fromisoformat(start) if start else date.min
        end_date = date.fromisoformat(end) if end else date.max
        if start_date > end_date:
            raise ValueError("Start date must be before end date")
        return Period("custom", start_date, end_date)
    if not period or period == "all":
        return Period("all", date.min, date.max)
    if period == "last_month":
        first_this = today.replace(day=1)
        last_month_end = first_this - date.resolution
        last_month_start = last_month_end.replace(day=1)
        return Period("last_month", last_month_start, last_month_end)
    if period != "this_month":
        raise ValueError(f"Unknown period: {period}")

    first = today.replace(day=1)
    year, month = add_months(first.year, first.month, 1)
    end_this = date(year, month, 1) - date.resolution
    return Period("this_month", first, end_this)

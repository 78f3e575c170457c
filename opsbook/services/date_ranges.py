"""Calendar month bounds used to filter every report and list query."""

from __future__ import annotations

import calendar
import re
from dataclasses import dataclass
from datetime import date

from fastapi import HTTPException, status

MONTH_TOKEN_RE = re.compile(r"^(\d{4})-(\d{2})$")


@dataclass(frozen=True, slots=True)
class MonthDateRange:
    start_date: date
    end_date: date

    @property
    def month(self) -> str:
        return month_token(self.start_date)

    def as_dict(self) -> dict[str, str]:
        return {
            "start_date": self.start_date.isoformat(),
            "end_date": self.end_date.isoformat(),
        }


def parse_month_token(token: str) -> date:
    """Parse ``YYYY-MM`` into the first day of that month."""

    match = MONTH_TOKEN_RE.match(token.strip()) if token else None
    if match is None:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="month must use YYYY-MM format.",
        )
    year, month = int(match.group(1)), int(match.group(2))
    if not 1 <= month <= 12 or year < 1:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="month must reference a valid calendar month.",
        )
    return date(year, month, 1)


def month_token(value: date) -> str:
    return f"{value.year:04d}-{value.month:02d}"


def month_range_for_date(value: date) -> MonthDateRange:
    """Start-of-month and end-of-month bounds for the month containing ``value``."""

    last_day = calendar.monthrange(value.year, value.month)[1]
    return MonthDateRange(
        start_date=date(value.year, value.month, 1),
        end_date=date(value.year, value.month, last_day),
    )


def month_date_range(token: str) -> MonthDateRange:
    """Bounds of the calendar month named by a ``YYYY-MM`` token."""

    return month_range_for_date(parse_month_token(token))


def shift_month(value: date, offset: int) -> date:
    index = value.year * 12 + (value.month - 1) + offset
    return date(index // 12, index % 12 + 1, 1)


def trailing_month_tokens(anchor: str | date, count: int) -> list[str]:
    """``count`` month tokens ending with ``anchor``, oldest first."""

    anchor_month = parse_month_token(anchor) if isinstance(anchor, str) else date(anchor.year, anchor.month, 1)
    return [month_token(shift_month(anchor_month, offset)) for offset in range(-(count - 1), 1)]


def current_month_token(today: date | None = None) -> str:
    return month_token(today or date.today())

"""Inclusive date range filter."""

import calendar
import re
from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, model_validator

_DATE_RE = re.compile(r'^(\d{4})(?:-(\d{1,2})(?:-(\d{1,2}))?)?$')


def _period_bounds(text: str) -> tuple[date, date]:
    """Return the first and last day of ``YYYY``, ``YYYY-MM`` or ``YYYY-MM-DD``."""
    m = _DATE_RE.match(text.strip())
    if not m:
        raise ValueError(f"Invalid date {text!r}: expected YYYY, YYYY-MM or YYYY-MM-DD")
    year = int(m.group(1))
    if m.group(2) is None:
        return date(year, 1, 1), date(year, 12, 31)
    month = int(m.group(2))
    if not 1 <= month <= 12:
        raise ValueError(f"Invalid month in {text!r}")
    if m.group(3) is None:
        return date(year, month, 1), date(year, month, calendar.monthrange(year, month)[1])
    day = date(year, month, int(m.group(3)))
    return day, day


class DateRange(BaseModel):
    """Dates between ``after`` and ``before``, both bounds included.

    An unset range accepts everything. A set range never accepts an asset
    without a date.
    """

    model_config = ConfigDict(extra='forbid', frozen=True)

    after: Optional[date] = None
    before: Optional[date] = None

    @model_validator(mode='after')
    def check_order(self) -> "DateRange":
        if self.after and self.before and self.after > self.before:
            raise ValueError(f"Date range start {self.after} is after its end {self.before}")
        return self

    @classmethod
    def parse(cls, text: Optional[str]) -> "DateRange":
        """Parse ``"2023"``, ``"2023-08"``, ``"2023-08-01"`` or ``"2023-01,2023-06-15"``."""
        if text is None or not text.strip():
            return cls()
        parts = [p.strip() for p in text.split(',')]
        if len(parts) == 1:
            after, before = _period_bounds(parts[0])
            return cls(after=after, before=before)
        if len(parts) == 2:
            after = _period_bounds(parts[0])[0] if parts[0] else None
            before = _period_bounds(parts[1])[1] if parts[1] else None
            return cls(after=after, before=before)
        raise ValueError(f"Invalid date range {text!r}: expected at most one comma")

    def is_set(self) -> bool:
        return self.after is not None or self.before is not None

    def in_range(self, when: Optional[datetime | date]) -> bool:
        if not self.is_set():
            return True
        if when is None:
            return False
        day = when.date() if isinstance(when, datetime) else when
        if self.after is not None and day < self.after:
            return False
        if self.before is not None and day > self.before:
            return False
        return True

    def __str__(self) -> str:
        if not self.is_set():
            return ""
        return f"{self.after or ''},{self.before or ''}"

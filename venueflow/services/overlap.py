"""
Interval overlap engine.

Windows are half-open in practice: two windows conflict only when they share
some instant strictly inside both. A window ending exactly when another starts
does not overlap it, so back-to-back scheduling is legal.

``overlaps`` and ``overlap_clause`` are the Python and SQL forms of the same
predicate; every conflict check in the service goes through one of them.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import and_
from sqlalchemy.sql.elements import ColumnElement


def overlaps(
    a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime
) -> bool:
    return a_start < b_end and a_end > b_start


def normalize_instant(value: datetime) -> datetime:
    """Return ``value`` as a naive UTC datetime; naive input is taken as UTC."""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


@dataclass(frozen=True)
class TimeWindow:
    start: datetime
    end: datetime

    @classmethod
    def of(cls, obj: Any) -> "TimeWindow":
        """Window of anything with ``start_time``/``end_time`` attributes."""
        return cls(obj.start_time, obj.end_time)

    def overlaps(self, other: "TimeWindow") -> bool:
        return overlaps(self.start, self.end, other.start, other.end)

    def intersection(self, other: "TimeWindow") -> Optional["TimeWindow"]:
        if not self.overlaps(other):
            return None
        return TimeWindow(max(self.start, other.start), min(self.end, other.end))


def overlap_clause(
    start_col: ColumnElement[Any], end_col: ColumnElement[Any], window: TimeWindow
) -> ColumnElement[bool]:
    """SQL form of :func:`overlaps` for rows spanning ``start_col``..``end_col``."""
    return and_(start_col < window.end, end_col > window.start)

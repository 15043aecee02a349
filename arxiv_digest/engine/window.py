"""Inclusive UTC day-range filtering."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timezone
from typing import Iterable

from .records import Paper


def to_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def utc_midnight(value: datetime) -> datetime:
    """Truncate to 00:00 UTC of the publication day."""

    return to_utc(value).replace(hour=0, minute=0, second=0, microsecond=0)


@dataclass(frozen=True, slots=True)
class DateWindow:
    """Concrete UTC day window ``[start 00:00, end 23:59:59.999999]``."""

    start: date
    end: date

    def __post_init__(self) -> None:
        if isinstance(self.start, datetime):
            object.__setattr__(self, "start", to_utc(self.start).date())
        if isinstance(self.end, datetime):
            object.__setattr__(self, "end", to_utc(self.end).date())
        if self.end < self.start:
            raise ValueError("DateWindow end must not precede start")

    @property
    def start_of_day(self) -> datetime:
        return datetime.combine(self.start, time.min, tzinfo=timezone.utc)

    @property
    def end_of_day(self) -> datetime:
        return datetime.combine(self.end, time.max, tzinfo=timezone.utc)

    def contains(self, value: datetime) -> bool:
        moment = to_utc(value)
        return self.start_of_day <= moment <= self.end_of_day

    def filter(self, papers: Iterable[Paper]) -> list[Paper]:
        return [paper for paper in papers if self.contains(paper.published)]

    def submitted_range(self) -> tuple[str, str]:
        """Bounds for the search API ``submittedDate`` filter."""

        return (
            f"{self.start.strftime('%Y%m%d')}0000",
            f"{self.end.strftime('%Y%m%d')}2359",
        )

    def as_tuple(self) -> tuple[datetime, datetime]:
        return self.start_of_day, self.end_of_day


__all__ = ["DateWindow", "to_utc", "utc_midnight"]

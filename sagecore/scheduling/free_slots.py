"""Free-time computation over a day's busy calendar blocks."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, tzinfo
from typing import Iterable

from sagecore.config.settings import settings


@dataclass(frozen=True, slots=True)
class BusyEvent:
    start: datetime
    end: datetime
    all_day: bool = False
    title: str | None = None


@dataclass(frozen=True, slots=True)
class FreeInterval:
    start: datetime
    end: datetime

    def __post_init__(self) -> None:
        if not self.start < self.end:
            raise ValueError(f"free interval must have start < end: {self.start} >= {self.end}")

    @property
    def duration(self) -> timedelta:
        return self.end - self.start


def _as_timedelta(value: timedelta | float | int) -> timedelta:
    if isinstance(value, timedelta):
        return value
    return timedelta(seconds=float(value))


def merge_intervals(intervals: list[tuple[datetime, datetime]]) -> list[tuple[datetime, datetime]]:
    """Merge start-sorted intervals; touching intervals merge as well."""
    merged: list[tuple[datetime, datetime]] = []
    for start, end in intervals:
        if merged and start <= merged[-1][1]:
            last_start, last_end = merged[-1]
            if end > last_end:
                merged[-1] = (last_start, end)
        else:
            merged.append((start, end))
    return merged


def find_free_slots(
    busy_events: Iterable[BusyEvent],
    window_start: datetime,
    window_end: datetime,
    min_duration: timedelta | float | int,
) -> list[FreeInterval]:
    """Return the gaps in ``[window_start, window_end)`` at least ``min_duration`` long.

    All-day events are ignored, everything else is clipped to the window, then
    overlapping or touching blocks are merged before gaps are collected. A
    non-positive ``min_duration`` accepts every gap of positive width.
    """
    if not window_start < window_end:
        return []
    minimum = _as_timedelta(min_duration)

    busy: list[tuple[datetime, datetime]] = []
    for event in busy_events:
        if event.all_day:
            continue
        if event.end <= window_start or event.start >= window_end:
            continue
        start = max(event.start, window_start)
        end = min(event.end, window_end)
        if start < end:
            busy.append((start, end))
    busy.sort(key=lambda item: item[0])

    def long_enough(gap_start: datetime, gap_end: datetime) -> bool:
        return gap_start < gap_end and (gap_end - gap_start) >= minimum

    free: list[FreeInterval] = []
    cursor = window_start
    for block_start, block_end in merge_intervals(busy):
        if long_enough(cursor, block_start):
            free.append(FreeInterval(cursor, block_start))
        cursor = max(cursor, block_end)

    if long_enough(cursor, window_end):
        free.append(FreeInterval(cursor, window_end))
    return free


def day_window(
    day: date,
    start_hour: int | None = None,
    end_hour: int | None = None,
    tz: tzinfo | None = None,
) -> tuple[datetime, datetime]:
    """Scheduling window on ``day``; ``end_hour=24`` means the following midnight."""
    start_hour = settings.schedule_start_hour if start_hour is None else start_hour
    end_hour = settings.schedule_end_hour if end_hour is None else end_hour
    midnight = datetime.combine(day, time(0, 0), tzinfo=tz)
    return midnight + timedelta(hours=start_hour), midnight + timedelta(hours=end_hour)

"""
Calendar span generation.

This module cuts an overall ``[start, end)`` range into calendar-aligned
partitions and extends each one backwards by a warm-up duration so the
compute engine has enough history before the scored window begins.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum

LOGGER = logging.getLogger(__name__)


class BatchSize(str, Enum):
    """Partition granularity."""

    MONTH = "1 month"
    QUARTER = "1 quarter"
    YEAR = "1 year"

    @property
    def months(self) -> int:
        return _MONTHS_PER_PARTITION[self]

    @classmethod
    def parse(cls, value: BatchSize | str | None) -> BatchSize:
        """
        Resolve a configured batch size.

        Absent or unrecognised values fall back to monthly partitions.
        """
        if isinstance(value, BatchSize):
            return value

        if value is not None:
            normalized = str(value).strip().lower()
            for member in cls:
                if member.value == normalized:
                    return member

            LOGGER.warning(
                "Unknown batch size; using monthly partitions",
                extra={"batch_size": value},
            )

        return cls.MONTH


_MONTHS_PER_PARTITION = {
    BatchSize.MONTH: 1,
    BatchSize.QUARTER: 3,
    BatchSize.YEAR: 12,
}


@dataclass(frozen=True, slots=True)
class DateSpan:
    """
    One partition of the overall range.

    ``from_ts`` is the nominal start minus the warm-up; ``to_ts`` is the
    nominal end (exclusive).
    """

    from_ts: datetime
    to_ts: datetime
    nominal_from: datetime

    def __post_init__(self) -> None:
        if self.from_ts >= self.to_ts:
            raise ValueError("DateSpan requires from_ts < to_ts")

    @property
    def warmup(self) -> timedelta:
        return self.nominal_from - self.from_ts

    @property
    def from_iso(self) -> str:
        return _iso(self.from_ts)

    @property
    def to_iso(self) -> str:
        return _iso(self.to_ts)

    def to_daterange(self) -> dict[str, str]:
        """Render the span the way the engine expects ``backtest.daterange``."""
        return {"from": self.from_iso, "to": self.to_iso}


def warmup_duration(history_size: float, candle_size: float) -> timedelta:
    """Warm-up lead time: ``history_size`` candles of ``candle_size`` minutes."""
    return timedelta(minutes=history_size * candle_size)


def generate_spans(
    batch_size: BatchSize | str | None,
    warmup: timedelta,
    *,
    start: datetime,
    end: datetime,
    anchor_day: int = 1,
) -> list[DateSpan]:
    """
    Split ``[start, end)`` into consecutive calendar partitions.

    Boundaries fall on ``anchor_day`` at 00:00 UTC: every month for
    monthly partitions, January/April/July/October for quarterly ones and
    January for yearly ones. The first partition begins at the first
    boundary on or after ``start``; partitions are emitted while their
    nominal end does not pass ``end``. A range shorter than one partition
    yields an empty list.
    """

    if warmup < timedelta(0):
        raise ValueError("warmup must be non-negative")

    if not 1 <= anchor_day <= 28:
        raise ValueError("anchor_day must be within 1..28")

    size = BatchSize.parse(batch_size)
    step = size.months

    start = _as_utc(start)
    end = _as_utc(end)

    spans: list[DateSpan] = []

    if start >= end:
        return spans

    boundary = _first_boundary(start, step=step, anchor_day=anchor_day)

    while True:
        next_boundary = _add_months(boundary, step)
        if next_boundary > end:
            break

        spans.append(
            DateSpan(
                from_ts=boundary - warmup,
                to_ts=next_boundary,
                nominal_from=boundary,
            )
        )
        boundary = next_boundary

    return spans


# ---------------------------------------------------------------------------
# Calendar helpers
# ---------------------------------------------------------------------------

def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _iso(value: datetime) -> str:
    return _as_utc(value).strftime("%Y-%m-%dT%H:%M:%SZ")


def _add_months(value: datetime, months: int) -> datetime:
    # anchor_day <= 28 keeps the day valid in every month
    index = value.year * 12 + (value.month - 1) + months
    return value.replace(year=index // 12, month=index % 12 + 1)


def _first_boundary(start: datetime, *, step: int, anchor_day: int) -> datetime:
    """Return the first aligned boundary on or after ``start``."""
    # Boundary months are 1, 1 + step, 1 + 2*step, ... within a year
    month = ((start.month - 1) // step) * step + 1
    candidate = datetime(start.year, month, anchor_day, tzinfo=timezone.utc)

    while candidate < start:
        candidate = _add_months(candidate, step)

    return candidate

"""
Bucketed diffing of cumulative TC stats.

A series holds cumulative ``points / multiplied_points / units`` values ordered
by timestamp. ``bucket_deltas`` turns it into one delta per hour, day or month:

- the earliest entry is the base and is emitted first with a zero delta; it may
  share its bucket start with the first delta row, every later row has its own
  increasing bucket start
- within a bucket, the entry with the highest cumulative points represents it
- each bucket's delta is measured against the previous representative
- negative deltas (provider-side counter resets) are clamped to zero
- buckets with no observations are omitted unless ``fill_gaps`` is set
"""

from bisect import bisect_left, bisect_right
from datetime import datetime, timedelta
from itertools import groupby
from typing import Callable, Dict, Iterable, List, Optional, Protocol, Sequence

from tcapi.schemas.historic import Granularity, HistoricStats
from tcapi.utils.date_utils import truncate_to_day, truncate_to_hour, truncate_to_month


class CumulativeStats(Protocol):
    timestamp: datetime
    points: int
    multiplied_points: int
    units: int


_TRUNCATORS: Dict[Granularity, Callable[[datetime], datetime]] = {
    Granularity.HOUR: truncate_to_hour,
    Granularity.DAY: truncate_to_day,
    Granularity.MONTH: truncate_to_month,
}


def bucket_start(timestamp: datetime, granularity: Granularity) -> datetime:
    return _TRUNCATORS[granularity](timestamp)


def next_bucket(start: datetime, granularity: Granularity) -> datetime:
    if granularity == Granularity.HOUR:
        return start + timedelta(hours=1)
    if granularity == Granularity.DAY:
        return start + timedelta(days=1)
    if start.month == 12:
        return start.replace(year=start.year + 1, month=1)
    return start.replace(month=start.month + 1)


class StatsSeries:
    """Timestamp-ordered, append-only series with binary-search window lookups."""

    def __init__(self, entries: Iterable[CumulativeStats] = ()):
        self._timestamps: List[datetime] = []
        self._entries: List[CumulativeStats] = []
        for entry in entries:
            self.append(entry)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self):
        return iter(self._entries)

    def append(self, entry: CumulativeStats) -> None:
        if not self._timestamps or entry.timestamp >= self._timestamps[-1]:
            self._timestamps.append(entry.timestamp)
            self._entries.append(entry)
            return

        # Late arrival: placed after entries with the same timestamp
        index = bisect_right(self._timestamps, entry.timestamp)
        self._timestamps.insert(index, entry.timestamp)
        self._entries.insert(index, entry)

    def latest_before(self, timestamp: datetime) -> Optional[CumulativeStats]:
        index = bisect_left(self._timestamps, timestamp)
        if index == 0:
            return None
        return self._entries[index - 1]

    def between(self, start: datetime, end: datetime) -> List[CumulativeStats]:
        """Entries with ``start <= timestamp < end``."""
        low = bisect_left(self._timestamps, start)
        high = bisect_left(self._timestamps, end)
        return self._entries[low:high]

    def window(self, start: datetime, end: datetime) -> List[CumulativeStats]:
        """Entries in ``[start, end)`` preceded by the last entry before ``start``, if any."""
        entries = self.between(start, end)
        if not entries:
            return []
        base = self.latest_before(start)
        if base is None:
            return entries
        return [base, *entries]


def _delta(current: CumulativeStats, previous: CumulativeStats, start: datetime) -> HistoricStats:
    return HistoricStats(
        bucket_start=start,
        points=max(0, current.points - previous.points),
        multiplied_points=max(0, current.multiplied_points - previous.multiplied_points),
        units=max(0, current.units - previous.units),
    )


def _representative(group: Iterable[CumulativeStats]) -> CumulativeStats:
    return max(group, key=lambda entry: (entry.points, entry.multiplied_points, entry.units))


def bucket_deltas(
    series: Sequence[CumulativeStats],
    granularity: Granularity,
    fill_gaps: bool = False,
) -> List[HistoricStats]:
    if not series:
        return []

    ordered = sorted(series, key=lambda entry: entry.timestamp)
    base = ordered[0]
    results = [HistoricStats(bucket_start=bucket_start(base.timestamp, granularity))]

    previous = base
    for start, group in groupby(ordered[1:], key=lambda entry: bucket_start(entry.timestamp, granularity)):
        # The base keeps its own zero row even when later entries share its bucket
        representative = _representative(group)
        results.append(_delta(representative, previous, start))
        previous = representative

    if fill_gaps:
        return fill_bucket_gaps(results, granularity)
    return results


def fill_bucket_gaps(buckets: List[HistoricStats], granularity: Granularity) -> List[HistoricStats]:
    """Insert zero rows for empty buckets between the first and last row."""
    if not buckets:
        return []

    filled = [buckets[0]]
    for bucket in buckets[1:]:
        gap = next_bucket(filled[-1].bucket_start, granularity)
        while gap < bucket.bucket_start:
            filled.append(HistoricStats(bucket_start=gap))
            gap = next_bucket(gap, granularity)
        filled.append(bucket)
    return filled


def merge_bucket_deltas(per_subject: Iterable[List[HistoricStats]]) -> List[HistoricStats]:
    """Sum several subjects' ``bucket_deltas`` output (team = sum of its users).

    The result has the same shape as a single subject's: one zero base row at
    the earliest base bucket, then the summed deltas per bucket start.
    """
    base_start: Optional[datetime] = None
    merged: Dict[datetime, HistoricStats] = {}
    for buckets in per_subject:
        if not buckets:
            continue
        base, deltas = buckets[0], buckets[1:]
        if base_start is None or base.bucket_start < base_start:
            base_start = base.bucket_start

        for bucket in deltas:
            existing = merged.get(bucket.bucket_start)
            if existing is None:
                merged[bucket.bucket_start] = bucket.model_copy()
                continue
            merged[bucket.bucket_start] = HistoricStats(
                bucket_start=bucket.bucket_start,
                points=existing.points + bucket.points,
                multiplied_points=existing.multiplied_points + bucket.multiplied_points,
                units=existing.units + bucket.units,
            )

    if base_start is None:
        return []
    return [HistoricStats(bucket_start=base_start), *(merged[start] for start in sorted(merged))]

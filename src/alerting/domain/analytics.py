"""
SLA & Trend Analytics
=====================

Read-side projections over alert event history. Every function here is
pure: it takes plain sequences of events and never touches a store or
mutates an event.
"""

import math
from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Optional, Sequence

from config import TrendGroupBy, VALID_SEVERITIES, VALID_TREND_GROUPS
from core import InvalidWindowException, ValidationException
from alerting.domain.entities import AlertEvent
from alerting.domain.value_objects import SLAMetrics, SLASummary, TrendBucket, ensure_utc
from alerting.domain.windows import start_of_day


class SLACalculator:
    """
    Pure functions for SLA calculations.

    An event counts as escalated while it is unacknowledged.
    """

    @staticmethod
    def percentile(values: Sequence[float], p: float) -> Optional[float]:
        """
        Nearest-rank percentile.

        Sorts ascending and picks index ``ceil(p/100 * n) - 1``, clamped to
        the valid range.

        Returns:
            The percentile value, or None for an empty input
        """
        if not values:
            return None
        ordered = sorted(values)
        index = math.ceil(p / 100 * len(ordered)) - 1
        index = max(0, min(index, len(ordered) - 1))
        return ordered[index]

    @staticmethod
    def time_to_acknowledge(events: Iterable[AlertEvent]) -> List[float]:
        """TTA in seconds for every acknowledged event."""
        return [
            event.time_to_acknowledge_seconds
            for event in events
            if event.acknowledged_at is not None
        ]

    @staticmethod
    def summarize(events: Sequence[AlertEvent]) -> SLASummary:
        """Statistics for one flat set of events."""
        total = len(events)
        ttas = SLACalculator.time_to_acknowledge(events)
        acknowledged = len(ttas)
        unacknowledged = total - acknowledged

        return SLASummary(
            total=total,
            acknowledged=acknowledged,
            unacknowledged=unacknowledged,
            mtta_mean=sum(ttas) / acknowledged if acknowledged else None,
            mtta_median=SLACalculator.percentile(ttas, 50),
            mtta_95th=SLACalculator.percentile(ttas, 95),
            acknowledged_rate=acknowledged / total if total else 0.0,
            escalation_rate=unacknowledged / total if total else 0.0,
        )

    @staticmethod
    def compute(events: Sequence[AlertEvent]) -> SLAMetrics:
        """
        Compute SLA metrics with a zero-filled per-severity breakdown.

        Callers filter events to their reporting window first.
        """
        events = list(events)
        overall = SLACalculator.summarize(events)
        by_severity = {
            severity: SLACalculator.summarize(
                [event for event in events if event.severity == severity]
            )
            for severity in VALID_SEVERITIES
        }
        return SLAMetrics(
            total=overall.total,
            acknowledged=overall.acknowledged,
            unacknowledged=overall.unacknowledged,
            mtta_mean=overall.mtta_mean,
            mtta_median=overall.mtta_median,
            mtta_95th=overall.mtta_95th,
            acknowledged_rate=overall.acknowledged_rate,
            escalation_rate=overall.escalation_rate,
            by_severity=by_severity,
        )


class TrendAggregator:
    """Gap-filled day/week bucketing of alert events for charting."""

    @staticmethod
    def bucket_start(timestamp: datetime, group_by: str) -> datetime:
        """Start of the day, or of the ISO week (Monday), holding ``timestamp``."""
        day = start_of_day(timestamp)
        if group_by == TrendGroupBy.WEEK:
            return day - timedelta(days=day.weekday())
        return day

    @staticmethod
    def trends(
        events: Iterable[AlertEvent],
        from_: datetime,
        to: datetime,
        group_by: str = TrendGroupBy.DAY,
        severity: Optional[str] = None,
    ) -> List[TrendBucket]:
        """
        Bucket events triggered within ``[from_, to]``.

        Buckets are contiguous and cover the whole range even when empty.
        They align to UTC midnight (day) or Monday midnight (week), so the
        first bucket starts at or before ``from_`` and the last one ends at
        or after ``to``: a day range from 10:00 to 10:00 two days later
        yields three buckets. Events are still only counted within
        ``[from_, to]``; an event exactly at ``to`` lands in the last bucket.

        Raises:
            ValidationException: Unknown ``group_by`` or ``severity``
            InvalidWindowException: ``from_`` after ``to``
        """
        if group_by not in VALID_TREND_GROUPS:
            raise ValidationException(
                f"group_by must be one of {VALID_TREND_GROUPS}",
                {"group_by": group_by}
            )
        if severity is not None and severity not in VALID_SEVERITIES:
            raise ValidationException(
                f"severity must be one of {VALID_SEVERITIES}",
                {"severity": severity}
            )

        from_, to = ensure_utc(from_), ensure_utc(to)
        if from_ > to:
            raise InvalidWindowException(
                "Trend range start must not be after its end",
                {"from": from_.isoformat(), "to": to.isoformat()}
            )

        step = timedelta(days=7 if group_by == TrendGroupBy.WEEK else 1)
        starts: List[datetime] = []
        cursor = TrendAggregator.bucket_start(from_, group_by)
        while cursor < to:
            starts.append(cursor)
            cursor += step

        counts: List[Dict[str, int]] = [
            {sev: 0 for sev in VALID_SEVERITIES} for _ in starts
        ]

        for event in events:
            if severity is not None and event.severity != severity:
                continue
            triggered_at = ensure_utc(event.triggered_at)
            if not (from_ <= triggered_at <= to) or not starts:
                continue
            index = min(int((triggered_at - starts[0]) // step), len(starts) - 1)
            counts[index][event.severity] += 1

        return [
            TrendBucket(
                start=start,
                end=start + step,
                total=sum(by_severity.values()),
                by_severity=by_severity,
            )
            for start, by_severity in zip(starts, counts)
        ]

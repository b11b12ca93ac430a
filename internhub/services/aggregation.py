# internhub/services/aggregation.py
"""
Aggregation helpers for dashboard rollups.

Everything here is pure: rows in, counts/rates/buckets out. Month buckets and
date windows are computed in UTC.
"""
import math
from datetime import date, datetime, timedelta, timezone
from typing import Any, Callable, Dict, Hashable, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from internhub.models.analytics import TrendBucket

Timestamp = Union[str, datetime, date, None]


def parse_timestamp(value: Timestamp) -> Optional[datetime]:
    """ISO strings, dates and datetimes to an aware UTC datetime. None if unparseable."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, date):
        dt = datetime(value.year, value.month, value.day)
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(text)
        except ValueError:
            return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _shift_month(year: int, month: int, delta: int) -> Tuple[int, int]:
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1


def month_key(dt: datetime) -> str:
    return f"{dt.year}-{dt.month:02d}"


def monthly_trend(
    rows: Iterable[Mapping[str, Any]],
    date_field: str = "created_at",
    window_months: int = 6,
    now: Optional[datetime] = None,
) -> List[TrendBucket]:
    """
    Dense month buckets ending at the current month, oldest first.

    Every month in the window appears, with ``count=0`` when nothing matched.
    Rows with no parseable ``date_field`` or outside the window are ignored.
    """
    now = parse_timestamp(now) or _utcnow()
    buckets: Dict[str, TrendBucket] = {}
    for offset in range(window_months - 1, -1, -1):
        year, month = _shift_month(now.year, now.month, -offset)
        first = datetime(year, month, 1, tzinfo=timezone.utc)
        buckets[month_key(first)] = TrendBucket(month=month_key(first), label=first.strftime("%b"), count=0)

    for row in rows:
        ts = parse_timestamp(row.get(date_field))
        if ts is None:
            continue
        bucket = buckets.get(month_key(ts))
        if bucket is not None:
            bucket.count += 1

    return list(buckets.values())


def distribution_by(rows: Iterable[Any], key_fn: Callable[[Any], Optional[Hashable]]) -> Dict[Hashable, int]:
    """Count rows per key, in first-encountered key order. ``None`` keys are skipped."""
    counts: Dict[Hashable, int] = {}
    for row in rows:
        key = key_fn(row)
        if key is None:
            continue
        counts[key] = counts.get(key, 0) + 1
    return counts


def top_n(items: Union[Mapping[Hashable, int], Sequence[Any]], n: int = 10, count: Callable[[Any], int] = None):
    """
    Highest counts first; ties keep first-encountered order.

    A mapping yields ``(key, count)`` pairs; a sequence is ranked by ``count(item)``.
    """
    if isinstance(items, Mapping):
        ranked = sorted(items.items(), key=lambda kv: kv[1], reverse=True)
    else:
        ranked = sorted(items, key=count, reverse=True)
    return ranked[:n]


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def rate(numerator: float, denominator: float) -> int:
    """Whole-number percentage. 0 when the denominator is 0."""
    if not denominator:
        return 0
    return round_half_up(numerator / denominator * 100)


def duration_hours(start: Timestamp, end: Timestamp) -> Optional[float]:
    start_dt, end_dt = parse_timestamp(start), parse_timestamp(end)
    if start_dt is None or end_dt is None:
        return None
    return (end_dt - start_dt).total_seconds() / 3600


def average_duration(pairs: Iterable[Tuple[Timestamp, Timestamp]]) -> float:
    """
    Mean of ``end - start`` in hours.

    Pairs with a missing side or with ``end <= start`` are data errors and
    are skipped rather than clamped. Returns 0.0 when no pair is usable.
    """
    hours = [h for h in (duration_hours(s, e) for s, e in pairs) if h is not None and h > 0]
    if not hours:
        return 0.0
    return sum(hours) / len(hours)


def growth_percentage(trend: Sequence[TrendBucket]) -> int:
    """Change of the last bucket against the one before it."""
    last = trend[-1].count if len(trend) >= 1 else 0
    previous = trend[-2].count if len(trend) >= 2 else 0
    if previous <= 0:
        return 0
    return round_half_up((last - previous) / previous * 100)


DATE_RANGES = ("7days", "30days", "6months", "1year", "all")


def date_range_start(range_key: str = "6months", now: Optional[datetime] = None) -> Optional[str]:
    """ISO lower bound for a dashboard range filter; None for ``all``."""
    now = parse_timestamp(now) or _utcnow()
    if range_key == "7days":
        start = now - timedelta(days=7)
    elif range_key == "30days":
        start = now - timedelta(days=30)
    elif range_key in ("6months", "1year"):
        months = 6 if range_key == "6months" else 12
        year, month = _shift_month(now.year, now.month, -months)
        # clamp the day so e.g. Aug 31 - 6 months lands on Feb 28/29
        day = min(now.day, _days_in_month(year, month))
        start = now.replace(year=year, month=month, day=day)
    else:
        return None
    return start.isoformat()


def _days_in_month(year: int, month: int) -> int:
    ny, nm = _shift_month(year, month, 1)
    return (date(ny, nm, 1) - timedelta(days=1)).day

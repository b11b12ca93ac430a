"""
Pure aggregation helpers.
"""
from datetime import datetime, timezone

import pytest

from internhub.models.analytics import TrendBucket
from internhub.services.aggregation import (
    average_duration,
    date_range_start,
    distribution_by,
    growth_percentage,
    monthly_trend,
    parse_timestamp,
    rate,
    top_n,
)

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


def test_empty_trend_is_dense():
    trend = monthly_trend([], now=NOW)

    assert [b.month for b in trend] == ["2026-05", "2026-06", "2026-07", "2026-08", "2026-09", "2026-10"]
    assert [b.label for b in trend] == ["May", "Jun", "Jul", "Aug", "Sep", "Oct"]
    assert all(b.count == 0 for b in trend)


def test_trend_crosses_year_boundary():
    trend = monthly_trend([], now=datetime(2026, 2, 10, tzinfo=timezone.utc))
    assert [b.month for b in trend] == ["2025-09", "2025-10", "2025-11", "2025-12", "2026-01", "2026-02"]


def test_trend_buckets_rows():
    rows = [
        {"created_at": "2026-10-01T00:00:00Z"},
        {"created_at": "2026-10-18T23:59:59+00:00"},
        {"created_at": datetime(2026, 7, 4, tzinfo=timezone.utc)},
        {"created_at": "2026-04-30T23:00:00Z"},   # before the window
        {"created_at": "not a date"},
        {"created_at": None},
    ]
    counts = {b.month: b.count for b in monthly_trend(rows, now=NOW)}
    assert counts == {"2026-05": 0, "2026-06": 0, "2026-07": 1, "2026-08": 0, "2026-09": 0, "2026-10": 2}


def test_trend_custom_field_and_window():
    rows = [{"applied_at": "2026-09-15T10:00:00Z"}]
    trend = monthly_trend(rows, "applied_at", window_months=2, now=NOW)
    assert [(b.month, b.count) for b in trend] == [("2026-09", 1), ("2026-10", 0)]


def test_distribution_by_skips_missing_keys():
    rows = [{"role": "student"}, {"role": "admin"}, {"role": None}, {}, {"role": "student"}]
    counts = distribution_by(rows, lambda r: r.get("role"))
    assert counts == {"student": 2, "admin": 1}
    assert list(counts) == ["student", "admin"]


def test_top_n_is_stable_on_ties():
    counts = {"a": 2, "b": 3, "c": 2, "d": 1}
    assert top_n(counts, 3) == [("b", 3), ("a", 2), ("c", 2)]

    items = [("x", 1), ("y", 5), ("z", 1)]
    assert top_n(items, 2, count=lambda i: i[1]) == [("y", 5), ("x", 1)]


@pytest.mark.parametrize("numerator,denominator,expected", [
    (0, 0, 0),
    (5, 0, 0),
    (1, 8, 13),
    (1, 3, 33),
    (2, 3, 67),
    (1, 2, 50),
    (4, 4, 100),
])
def test_rate(numerator, denominator, expected):
    assert rate(numerator, denominator) == expected


def test_average_duration_skips_bad_pairs():
    pairs = [
        ("2026-10-01T00:00:00Z", "2026-10-01T10:00:00Z"),
        ("2026-10-01T00:00:00Z", "2026-10-02T06:00:00Z"),
        ("2026-10-01T00:00:00Z", "2026-10-01T00:00:00Z"),
        ("2026-10-02T00:00:00Z", "2026-10-01T00:00:00Z"),
        (None, "2026-10-01T00:00:00Z"),
    ]
    assert average_duration(pairs) == pytest.approx(20.0)


def test_average_duration_of_nothing_usable():
    assert average_duration([]) == 0.0
    assert average_duration([("2026-10-01T00:00:00Z", "2026-10-01T00:00:00Z")]) == 0.0


def _trend(*counts):
    return [TrendBucket(month=f"2026-{i + 1:02d}", label="", count=c) for i, c in enumerate(counts)]


def test_growth_percentage():
    assert growth_percentage(_trend(1, 4, 5)) == 25
    assert growth_percentage(_trend(2, 1)) == -50
    assert growth_percentage(_trend(0, 7)) == 0
    assert growth_percentage(_trend(3)) == 0
    assert growth_percentage([]) == 0


def test_date_range_start():
    assert parse_timestamp(date_range_start("7days", NOW)) == datetime(2026, 10, 12, 12, 0, tzinfo=timezone.utc)
    assert parse_timestamp(date_range_start("30days", NOW)) == datetime(2026, 9, 19, 12, 0, tzinfo=timezone.utc)
    assert parse_timestamp(date_range_start("6months", NOW)) == datetime(2026, 4, 19, 12, 0, tzinfo=timezone.utc)
    assert parse_timestamp(date_range_start("1year", NOW)) == datetime(2025, 10, 19, 12, 0, tzinfo=timezone.utc)
    assert date_range_start("all", NOW) is None


def test_date_range_start_clamps_day():
    end_of_august = datetime(2026, 8, 31, tzinfo=timezone.utc)
    assert date_range_start("6months", end_of_august).startswith("2026-02-28")
    leap_day = datetime(2024, 2, 29, tzinfo=timezone.utc)
    assert date_range_start("1year", leap_day).startswith("2023-02-28")

from __future__ import annotations

from datetime import date

import pytest

from law_trends.features.growth import compute_growth, growth_rate
from law_trends.preprocess.time import BucketWindow, DateWindow
from law_trends.taxonomy import Snapshot, parse_snapshot


def _snapshot(granularity_key: str, counts: dict[str, int]) -> Snapshot:
    timeline = {key: {"count": value} for key, value in counts.items()}
    return parse_snapshot({"privacy": {"news": {granularity_key: timeline}}})


def test_growth_rate_basic_change() -> None:
    assert growth_rate(15, 10) == 50.0
    assert growth_rate(0, 10) == -100.0


def test_growth_rate_below_baseline_floor_is_zero() -> None:
    assert growth_rate(10, 3) == 0.0
    assert growth_rate(10, 0) == 0.0


def test_growth_rate_is_clamped() -> None:
    assert growth_rate(100, 5) == 500.0
    assert growth_rate(100, 5, clamp_pct=200.0) == 200.0


def test_compute_growth_compares_equal_length_preceding_window() -> None:
    snapshot = _snapshot(
        "daily_timeline",
        {"2024-01-01": 5, "2024-01-02": 5, "2024-01-03": 20, "2024-01-04": 10},
    )
    window = DateWindow(start=date(2024, 1, 3), end=date(2024, 1, 4))

    result = compute_growth(snapshot, "privacy", "news", "daily", window)

    assert (result.current, result.previous) == (30, 10)
    assert result.rate == 200.0


def test_compute_growth_without_range_uses_last_two_buckets() -> None:
    snapshot = _snapshot(
        "daily_timeline",
        {"2024-01-01": 5, "2024-01-02": 5, "2024-01-03": 20, "2024-01-04": 10},
    )

    result = compute_growth(snapshot, "privacy", "news", "daily")

    assert (result.current, result.previous) == (10, 20)
    assert result.rate == -50.0


def test_compute_growth_single_bucket_or_missing_domain_is_zero() -> None:
    snapshot = _snapshot("daily_timeline", {"2024-01-01": 8})

    assert compute_growth(snapshot, "privacy", "news", "daily").rate == 0.0
    assert compute_growth(snapshot, "privacy", "news", "daily").current == 8
    assert compute_growth(snapshot, "safety", "news", "daily").to_dict() == {
        "current": 0,
        "previous": 0,
        "rate": 0.0,
    }


def test_compute_growth_small_previous_window_reports_zero(snapshot: Snapshot) -> None:
    window = DateWindow(start=date(2024, 1, 3), end=date(2024, 1, 3))

    result = compute_growth(snapshot, "privacy", "news", "daily", window)

    assert (result.current, result.previous) == (5, 3)
    assert result.rate == 0.0


@pytest.mark.parametrize(
    "window",
    [
        DateWindow(start=date(2024, 1, 15), end=date(2024, 1, 21)),
        BucketWindow(granularity="weekly", start="2024-W03", end="2024-W03"),
    ],
)
def test_compute_growth_weekly_uses_preceding_buckets(window) -> None:
    snapshot = _snapshot("weekly_timeline", {"2024-W01": 10, "2024-W02": 10, "2024-W03": 30})

    result = compute_growth(snapshot, "privacy", "news", "weekly", window)

    assert (result.current, result.previous) == (30, 10)
    assert result.rate == 200.0

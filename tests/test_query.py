from __future__ import annotations

from datetime import date

import pytest
from pydantic import ValidationError

from law_trends.preprocess.time import BucketWindow, DateWindow
from law_trends.query import ViewQuery


def test_view_query_defaults_are_unbounded() -> None:
    query = ViewQuery()

    assert query.granularity == "daily"
    assert query.metric == "news"
    assert query.domains is None
    assert query.window() is None


def test_view_query_parses_iso_dates_into_daily_window() -> None:
    query = ViewQuery.model_validate({"start_date": "2024-01-02", "end_date": "2024-01-05"})

    assert query.window() == DateWindow(start=date(2024, 1, 2), end=date(2024, 1, 5))


def test_view_query_converts_bounds_for_coarser_granularities() -> None:
    weekly = ViewQuery(
        granularity="weekly", start_date=date(2024, 1, 3), end_date=date(2024, 1, 31)
    )
    monthly = ViewQuery(granularity="monthly", start_date=date(2024, 2, 10))

    assert weekly.window() == BucketWindow(granularity="weekly", start="2024-W01", end="2024-W05")
    assert monthly.window() == BucketWindow(granularity="monthly", start="2024-02", end=None)


def test_view_query_rejects_inverted_range_and_unknown_fields() -> None:
    with pytest.raises(ValidationError):
        ViewQuery(start_date=date(2024, 2, 1), end_date=date(2024, 1, 1))
    with pytest.raises(ValidationError):
        ViewQuery.model_validate({"granularity": "hourly"})
    with pytest.raises(ValidationError):
        ViewQuery.model_validate({"metric": "news", "timezone": "UTC"})

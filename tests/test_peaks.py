from __future__ import annotations

import pandas as pd

from law_trends.features.peaks import PeakRecord, find_peak, representative_detail
from law_trends.features.time_series import DATE_COLUMN, combined_trend
from law_trends.taxonomy import Bucket, Incident, Snapshot, Theme


def test_find_peak_returns_first_maximum() -> None:
    series = pd.DataFrame({DATE_COLUMN: ["d1", "d2", "d3"], "value": [1, 5, 5]})

    peak = find_peak(series, "value")

    assert peak.date == "d2"
    assert peak.value == 5
    assert peak.representative_detail is None


def test_find_peak_sums_multiple_metric_columns() -> None:
    series = pd.DataFrame(
        {DATE_COLUMN: ["d1", "d2"], "a": [4, 1], "b": [0, 4], "ignored": [100, 0]}
    )

    assert find_peak(series, ["a", "b"]).date == "d2"


def test_find_peak_empty_or_missing_metric_returns_default() -> None:
    empty = pd.DataFrame(
        {DATE_COLUMN: pd.Series(dtype="object"), "value": pd.Series(dtype="int64")}
    )
    series = pd.DataFrame({DATE_COLUMN: ["d1"], "value": [3]})

    assert find_peak(empty, "value") == PeakRecord()
    assert find_peak(series, "other") == PeakRecord()
    assert PeakRecord().to_dict() == {"date": None, "value": 0, "representative_detail": None}


def test_find_peak_attaches_dominant_theme_and_incident(snapshot: Snapshot) -> None:
    series = combined_trend(snapshot, None, "news", "daily")

    peak = find_peak(series, ["privacy", "child"], snapshot=snapshot, metric="news")

    assert peak.to_dict() == {
        "date": "2024-01-03",
        "value": 9,
        "representative_detail": {
            "theme": "cctv",
            "incident": "cctv_school",
            "count": 5,
            "item": {"title": "School CCTV"},
        },
    }


def test_representative_detail_merges_labels_across_buckets() -> None:
    buckets = [
        Bucket(
            key="2024-01-01",
            themes=(
                Theme(label="leak", incidents=(Incident(label="bank", count=3),)),
                Theme(label="cctv", incidents=(Incident(label="school", count=4),)),
            ),
        ),
        Bucket(
            key="2024-01-01",
            themes=(Theme(label="leak", incidents=(Incident(label="shop", count=2),)),),
        ),
    ]

    detail = representative_detail(buckets)

    assert detail is not None
    assert (detail.theme, detail.incident, detail.count) == ("leak", "bank", 3)


def test_representative_detail_theme_without_incidents() -> None:
    detail = representative_detail([Bucket(key="k", themes=(Theme(label="solo", stored_count=7),))])

    assert detail is not None
    assert detail.to_dict() == {"theme": "solo", "incident": None, "count": 7, "item": None}
    assert representative_detail([]) is None

from __future__ import annotations

from datetime import date

from law_trends.features.volume import (
    BY_THEME_COLUMNS,
    aggregate_volume,
    bucket_totals,
    resolve_domains,
)
from law_trends.preprocess.time import DateWindow
from law_trends.taxonomy import Snapshot, parse_snapshot


def test_aggregate_volume_sums_across_domains_and_buckets(snapshot: Snapshot) -> None:
    summary = aggregate_volume(snapshot, None, "news", "daily")

    assert summary.total == 15
    assert summary.by_domain.to_dict(orient="records") == [
        {"domain": "privacy", "total": 10},
        {"domain": "child", "total": 5},
    ]
    assert summary.by_theme.to_dict(orient="records") == [
        {"domain": "privacy", "theme": "leak", "total": 4},
        {"domain": "privacy", "theme": "cctv", "total": 6},
        {"domain": "child", "theme": "abuse", "total": 5},
    ]
    assert summary.by_bucket["total"].sum() == summary.total
    assert summary.by_incident["total"].sum() == summary.total


def test_aggregate_volume_respects_window_and_domain_selection(snapshot: Snapshot) -> None:
    window = DateWindow(start=date(2024, 1, 2), end=date(2024, 1, 3))

    both = aggregate_volume(snapshot, None, "news", "daily", window)
    privacy = aggregate_volume(snapshot, ["privacy"], "news", "daily", window)

    assert both.total == 12
    assert privacy.total == 8
    assert privacy.by_domain["domain"].tolist() == ["privacy"]


def test_aggregate_volume_returns_zero_shapes_for_empty_range(snapshot: Snapshot) -> None:
    window = DateWindow(start=date(2030, 1, 1), end=date(2030, 1, 31))

    summary = aggregate_volume(snapshot, ["privacy", "safety"], "news", "daily", window)

    assert summary.total == 0
    assert summary.by_domain.to_dict(orient="records") == [
        {"domain": "privacy", "total": 0},
        {"domain": "safety", "total": 0},
    ]
    assert summary.by_theme.empty
    assert list(summary.by_theme.columns) == BY_THEME_COLUMNS


def test_aggregate_volume_is_idempotent(snapshot: Snapshot) -> None:
    first = aggregate_volume(snapshot, None, "social", "daily").to_dict()
    second = aggregate_volume(snapshot, None, "social", "daily").to_dict()

    assert first == second
    assert first["total"] == 12


def test_bucket_totals_reports_missing_keys_as_zero(snapshot: Snapshot) -> None:
    totals = bucket_totals(
        snapshot, "privacy", "news", "daily", ["2024-01-01", "2024-01-03", "2024-02-01"]
    )

    assert totals == {"2024-01-01": 2, "2024-01-03": 5, "2024-02-01": 0}


def test_resolve_domains_deduplicates_and_defaults_to_snapshot(snapshot: Snapshot) -> None:
    assert resolve_domains(snapshot, None) == ["privacy", "child"]
    assert resolve_domains(snapshot, ["child", "privacy", "child"]) == ["child", "privacy"]


def test_aggregate_volume_reads_direct_favor_oppose_bucket_counts() -> None:
    raw = {
        "privacy": {
            "social": {
                "daily_timeline": {
                    "2024-01-01": {"찬성": 3, "반대": 2},
                    "2024-01-02": {"counts": {"찬성": 1, "반대": 1}},
                    "2024-01-03": {"찬성": {"개정강화": {"count": 9}}, "반대": 4},
                }
            }
        }
    }

    snapshot = parse_snapshot(raw)
    summary = aggregate_volume(snapshot, ["privacy"], "social", "daily")

    assert summary.by_bucket.set_index("bucket")["total"].to_dict() == {
        "2024-01-01": 5,
        "2024-01-02": 2,
        "2024-01-03": 4,
    }
    assert summary.total == 11
    assert snapshot.diagnostics.malformed_fields == 0

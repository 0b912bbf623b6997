from __future__ import annotations

from typing import Iterable, Mapping

import pandas as pd

from law_trends.features.volume import bucket_totals, resolve_domains, select_keys
from law_trends.preprocess.time import Granularity, Window, filter_bucket_keys, sort_bucket_keys
from law_trends.taxonomy import Snapshot

DATE_COLUMN = "date"


def build_time_series(
    metrics: Mapping[str, Mapping[str, float]],
    granularity: Granularity = "daily",
) -> pd.DataFrame:
    """Merge named per-bucket metrics into one chronologically ordered frame.

    The output covers the union of every metric's keys; a metric missing at a
    key reads as 0 there.
    """
    names = [str(name) for name in metrics]
    keys: set[str] = set()
    for values in metrics.values():
        keys.update(str(key) for key in values)
    ordered = sort_bucket_keys(keys, granularity)
    if not ordered:
        return pd.DataFrame(
            {
                DATE_COLUMN: pd.Series(dtype="object"),
                **{name: pd.Series(dtype="int64") for name in names},
            }
        )

    frame = pd.DataFrame({DATE_COLUMN: ordered})
    for name, values in zip(names, metrics.values()):
        lookup = {str(key): value for key, value in values.items()}
        column = pd.to_numeric(
            pd.Series([lookup.get(key, 0) for key in ordered], dtype="object"),
            errors="coerce",
        ).fillna(0)
        if (column % 1 == 0).all():
            column = column.astype("int64")
        frame[name] = column
    return frame


def domain_trend(
    snapshot: Snapshot,
    domain: str,
    granularity: Granularity,
    window: Window = None,
) -> pd.DataFrame:
    """News and social bucket totals for one domain on a shared date axis."""
    metrics = {}
    for metric in ("news", "social"):
        keys = filter_bucket_keys(
            snapshot.buckets(domain, metric, granularity).keys(),
            granularity,
            window,
        )
        metrics[metric] = bucket_totals(snapshot, domain, metric, granularity, keys)
    return build_time_series(metrics, granularity)


def combined_trend(
    snapshot: Snapshot,
    domains: Iterable[str] | None,
    metric: str,
    granularity: Granularity,
    window: Window = None,
) -> pd.DataFrame:
    """One column per domain for a single metric."""
    metrics = {}
    for domain in resolve_domains(snapshot, domains):
        keys = filter_bucket_keys(
            snapshot.buckets(domain, metric, granularity).keys(),
            granularity,
            window,
        )
        metrics[domain] = bucket_totals(snapshot, domain, metric, granularity, keys)
    return build_time_series(metrics, granularity)


def incident_mention_trend(
    snapshot: Snapshot,
    incident_label: str,
    granularity: Granularity,
    window: Window = None,
    domains: Iterable[str] | None = None,
) -> pd.DataFrame:
    """News and social mentions of one incident label summed across domains."""
    metrics: dict[str, dict[str, int]] = {}
    for metric in ("news", "social"):
        keys_by_domain = select_keys(snapshot, domains, metric, granularity, window)
        per_bucket: dict[str, int] = {}
        for record in snapshot.iter_incidents(keys_by_domain, metric, granularity):
            if record.incident.label != incident_label:
                continue
            per_bucket[record.bucket] = per_bucket.get(record.bucket, 0) + record.incident.count
        metrics[metric] = per_bucket
    return build_time_series(metrics, granularity)

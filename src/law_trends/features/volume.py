from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable

import pandas as pd

from law_trends.preprocess.time import Granularity, Window, filter_bucket_keys
from law_trends.taxonomy import Snapshot

BY_DOMAIN_COLUMNS = ["domain", "total"]
BY_THEME_COLUMNS = ["domain", "theme", "total"]
BY_INCIDENT_COLUMNS = ["domain", "theme", "incident", "total"]
BY_BUCKET_COLUMNS = ["domain", "bucket", "total"]


@dataclass(frozen=True)
class VolumeSummary:
    total: int
    by_domain: pd.DataFrame
    by_theme: pd.DataFrame
    by_incident: pd.DataFrame
    by_bucket: pd.DataFrame

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": int(self.total),
            "by_domain": self.by_domain.to_dict(orient="records"),
            "by_theme": self.by_theme.to_dict(orient="records"),
            "by_incident": self.by_incident.to_dict(orient="records"),
            "by_bucket": self.by_bucket.to_dict(orient="records"),
        }


def resolve_domains(snapshot: Snapshot, domains: Iterable[str] | None) -> list[str]:
    if domains is None:
        return snapshot.domains()
    seen: list[str] = []
    for domain in domains:
        if domain not in seen:
            seen.append(domain)
    return seen


def select_keys(
    snapshot: Snapshot,
    domains: Iterable[str] | None,
    metric: str,
    granularity: Granularity,
    window: Window = None,
) -> dict[str, list[str]]:
    return {
        domain: filter_bucket_keys(
            snapshot.buckets(domain, metric, granularity).keys(),
            granularity,
            window,
        )
        for domain in resolve_domains(snapshot, domains)
    }


def bucket_totals(
    snapshot: Snapshot,
    domain: str,
    metric: str,
    granularity: Granularity,
    keys: Iterable[str] | None = None,
) -> dict[str, int]:
    """Bottom-up total per bucket key; keys absent from the snapshot count as zero."""
    buckets = snapshot.buckets(domain, metric, granularity)
    selected = snapshot.bucket_keys(domain, metric, granularity) if keys is None else keys
    totals: dict[str, int] = {}
    for key in selected:
        bucket = buckets.get(key)
        totals[key] = 0 if bucket is None else int(bucket.count)
    return totals


def _summed(rows: list[tuple], columns: list[str]) -> pd.DataFrame:
    if not rows:
        return pd.DataFrame(
            {
                column: pd.Series(dtype="int64" if column == "total" else "object")
                for column in columns
            }
        )
    frame = pd.DataFrame(rows, columns=columns)
    keys = columns[:-1]
    return (
        frame.groupby(keys, sort=False, dropna=False)["total"]
        .sum()
        .astype("int64")
        .reset_index()
    )


def aggregate_volume(
    snapshot: Snapshot,
    domains: Iterable[str] | None,
    metric: str,
    granularity: Granularity,
    window: Window = None,
) -> VolumeSummary:
    keys_by_domain = select_keys(snapshot, domains, metric, granularity, window)

    domain_rows: list[tuple] = []
    theme_rows: list[tuple] = []
    incident_rows: list[tuple] = []
    bucket_rows: list[tuple] = []
    grand_total = 0
    for domain, keys in keys_by_domain.items():
        buckets = snapshot.buckets(domain, metric, granularity)
        domain_total = 0
        for key in keys:
            bucket = buckets[key]
            bucket_total = 0
            for theme in bucket.themes:
                theme_total = 0
                for incident in theme.incidents:
                    incident_rows.append((domain, theme.label, incident.label, incident.count))
                    theme_total += incident.count
                if not theme.incidents:
                    theme_total = theme.stored_count
                theme_rows.append((domain, theme.label, theme_total))
                bucket_total += theme_total
            if not bucket.themes:
                bucket_total = bucket.stored_count
            bucket_rows.append((domain, key, bucket_total))
            domain_total += bucket_total
        domain_rows.append((domain, domain_total))
        grand_total += domain_total

    return VolumeSummary(
        total=int(grand_total),
        by_domain=_summed(domain_rows, BY_DOMAIN_COLUMNS),
        by_theme=_summed(theme_rows, BY_THEME_COLUMNS),
        by_incident=_summed(incident_rows, BY_INCIDENT_COLUMNS),
        by_bucket=_summed(bucket_rows, BY_BUCKET_COLUMNS),
    )

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Sequence

import numpy as np
import pandas as pd

from law_trends.features.ranking import rank_top_n
from law_trends.features.time_series import DATE_COLUMN
from law_trends.features.volume import resolve_domains
from law_trends.preprocess.time import Granularity
from law_trends.taxonomy import Bucket, Snapshot


@dataclass(frozen=True)
class RepresentativeDetail:
    theme: str
    incident: str | None
    count: int
    item: Any = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "theme": self.theme,
            "incident": self.incident,
            "count": int(self.count),
            "item": self.item,
        }


@dataclass(frozen=True)
class PeakRecord:
    date: str | None = None
    value: float = 0
    representative_detail: RepresentativeDetail | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.date,
            "value": self.value,
            "representative_detail": (
                None
                if self.representative_detail is None
                else self.representative_detail.to_dict()
            ),
        }


def representative_detail(buckets: Iterable[Bucket]) -> RepresentativeDetail | None:
    """Dominant theme at a bucket, then that theme's dominant incident.

    Themes (and incidents) sharing a label across the given buckets are merged;
    ties go to whichever was encountered first.
    """
    themes = [theme for bucket in buckets for theme in bucket.themes]
    best_theme = rank_top_n(
        themes,
        key=lambda theme: theme.label,
        metric=lambda theme: theme.count,
        n=1,
        include_non_positive=True,
    )
    if best_theme.empty:
        return None
    theme_label = str(best_theme.loc[0, "label"])
    theme_total = int(best_theme.loc[0, "total"])

    incidents = [
        incident
        for theme in themes
        if theme.label == theme_label
        for incident in theme.incidents
    ]
    best_incident = rank_top_n(
        incidents,
        key=lambda incident: incident.label,
        metric=lambda incident: incident.count,
        n=1,
        include_non_positive=True,
    )
    if best_incident.empty:
        return RepresentativeDetail(theme=theme_label, incident=None, count=theme_total)

    incident_label = str(best_incident.loc[0, "label"])
    item = next(
        (
            incident.representative_item
            for incident in incidents
            if incident.label == incident_label and incident.representative_item is not None
        ),
        None,
    )
    return RepresentativeDetail(
        theme=theme_label,
        incident=incident_label,
        count=int(best_incident.loc[0, "total"]),
        item=item,
    )


def _plain_number(value: Any) -> float | int:
    number = float(value)
    return int(number) if number.is_integer() else number


def find_peak(
    series: pd.DataFrame,
    metrics: str | Sequence[str],
    snapshot: Snapshot | None = None,
    domains: Iterable[str] | None = None,
    metric: str = "news",
    granularity: Granularity = "daily",
) -> PeakRecord:
    """Locate the bucket with the largest (summed) metric value.

    With a snapshot, the peak also carries the dominant theme/incident of the
    given ``metric`` at that bucket for drill-down.
    """
    names = [metrics] if isinstance(metrics, str) else list(metrics)
    if series.empty or DATE_COLUMN not in series.columns:
        return PeakRecord()

    present = [name for name in names if name in series.columns]
    if not present:
        return PeakRecord()
    values = (
        series[present]
        .apply(pd.to_numeric, errors="coerce")
        .fillna(0)
        .sum(axis=1)
        .to_numpy(dtype=float)
    )
    position = int(np.argmax(values))
    date = str(series[DATE_COLUMN].iloc[position])

    detail = None
    if snapshot is not None:
        buckets = []
        for domain in resolve_domains(snapshot, domains):
            bucket = snapshot.buckets(domain, metric, granularity).get(date)
            if bucket is not None:
                buckets.append(bucket)
        detail = representative_detail(buckets)

    return PeakRecord(
        date=date,
        value=_plain_number(values[position]),
        representative_detail=detail,
    )

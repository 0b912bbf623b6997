from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping


@dataclass(frozen=True)
class RawKeys:
    """Key spellings observed in upstream dataset producers, preferred spelling first."""

    themes: tuple[str, ...] = ("중분류목록", "themes")
    incidents: tuple[str, ...] = ("소분류목록", "incidents")
    count: tuple[str, ...] = ("count",)
    counts_summary: tuple[str, ...] = ("counts",)
    statute: tuple[str, ...] = ("관련법", "statute", "statute_label", "law")
    representative: tuple[str, ...] = ("대표뉴스", "representative", "representative_item")
    articles: tuple[str, ...] = ("articles", "기사목록")
    sample_items: tuple[str, ...] = ("소셜목록", "items", "samples")
    favor: tuple[str, ...] = ("찬성", "favor", "agree")
    oppose: tuple[str, ...] = ("반대", "oppose", "disagree")
    stance: tuple[str, ...] = ("stance", "stances")


RAW_KEYS = RawKeys()

METRIC_SOURCES = {
    "news": ("news",),
    # addsocial carries incident-level stance detail; plain social only bucket counts.
    "social": ("addsocial", "social"),
}

GRANULARITY_KEYS = {
    "daily": ("daily", "daily_timeline"),
    "weekly": ("weekly", "weekly_timeline"),
    "monthly": ("monthly", "monthly_timeline"),
}


def first_present(mapping: Any, keys: tuple[str, ...]) -> Any:
    if not isinstance(mapping, Mapping):
        return None
    for key in keys:
        if key in mapping and mapping[key] is not None:
            return mapping[key]
    return None


def mapping_or_empty(value: Any) -> Mapping[str, Any]:
    return value if isinstance(value, Mapping) else {}


def select_timeline(domain_entry: Any, metric: str, granularity: str) -> Mapping[str, Any]:
    """Return the bucket-key -> entry mapping for one domain/metric/granularity."""
    domain_map = mapping_or_empty(domain_entry)
    for source in METRIC_SOURCES.get(metric, ()):
        metric_map = domain_map.get(source)
        if not isinstance(metric_map, Mapping):
            continue
        timeline = first_present(metric_map, GRANULARITY_KEYS.get(granularity, ()))
        if isinstance(timeline, Mapping) and timeline:
            return timeline
    return {}

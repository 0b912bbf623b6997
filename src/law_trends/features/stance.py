from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Iterable

import pandas as pd

from law_trends.features.ranking import empty_ranking, rank_top_n
from law_trends.features.volume import resolve_domains, select_keys
from law_trends.preprocess.stance import KNOWN_STANCES
from law_trends.preprocess.time import Granularity, Window
from law_trends.ratio_stats import safe_pct
from law_trends.taxonomy import Incident, IncidentRecord, Snapshot

STANCE_SUMMARY_FIELDS = [
    "strengthen",
    "weaken",
    "oppose",
    "total",
    "strengthen_pct",
    "weaken_pct",
    "oppose_pct",
    "unknown",
    "favor_unsplit",
]
STANCE_MATRIX_COLUMNS = ["domain", "theme", "favor", "oppose", "total", "favor_ratio"]


@dataclass(frozen=True)
class StanceSummary:
    strengthen: int = 0
    weaken: int = 0
    oppose: int = 0
    total: int = 0
    strengthen_pct: float = 0.0
    weaken_pct: float = 0.0
    oppose_pct: float = 0.0
    unknown: int = 0
    favor_unsplit: int = 0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def summarize_stance_counts(
    strengthen: int,
    weaken: int,
    oppose: int,
    unknown: int = 0,
    favor_unsplit: int = 0,
) -> StanceSummary:
    """Percentages cover the split stances only; an unsplit favor total is reported beside them."""
    strengthen, weaken, oppose = (max(int(value), 0) for value in (strengthen, weaken, oppose))
    total = strengthen + weaken + oppose
    return StanceSummary(
        strengthen=strengthen,
        weaken=weaken,
        oppose=oppose,
        total=total,
        strengthen_pct=safe_pct(strengthen, total),
        weaken_pct=safe_pct(weaken, total),
        oppose_pct=safe_pct(oppose, total),
        unknown=max(int(unknown), 0),
        favor_unsplit=max(int(favor_unsplit), 0),
    )


def aggregate_stance(incidents: Iterable[Incident | IncidentRecord]) -> StanceSummary:
    strengthen = weaken = oppose = unknown = favor_unsplit = 0
    for item in incidents:
        incident = item.incident if isinstance(item, IncidentRecord) else item
        strengthen += incident.stance.strengthen
        weaken += incident.stance.weaken
        oppose += incident.stance.oppose
        unknown += incident.stance.unknown
        favor_unsplit += incident.stance.favor_unsplit
    return summarize_stance_counts(strengthen, weaken, oppose, unknown, favor_unsplit)


def collect_incidents(
    snapshot: Snapshot,
    domains: Iterable[str] | None,
    granularity: Granularity,
    window: Window = None,
    metric: str = "social",
) -> list[IncidentRecord]:
    keys_by_domain = select_keys(snapshot, domains, metric, granularity, window)
    return list(snapshot.iter_incidents(keys_by_domain, metric, granularity))


def stance_by_domain(
    snapshot: Snapshot,
    domains: Iterable[str] | None,
    granularity: Granularity,
    window: Window = None,
) -> pd.DataFrame:
    records = collect_incidents(snapshot, domains, granularity, window)
    rows = []
    for domain in resolve_domains(snapshot, domains):
        summary = aggregate_stance(record for record in records if record.domain == domain)
        rows.append({"domain": domain, **summary.to_dict()})
    return pd.DataFrame(rows, columns=["domain", *STANCE_SUMMARY_FIELDS])


def stance_matrix(
    snapshot: Snapshot,
    domains: Iterable[str] | None,
    granularity: Granularity,
    window: Window = None,
) -> pd.DataFrame:
    """Favor (strengthen + weaken + unsplit favor) versus oppose for every domain x theme cell."""
    resolved = resolve_domains(snapshot, domains)
    records = collect_incidents(snapshot, resolved, granularity, window)
    themes: list[str] = []
    cells: dict[tuple[str, str], list[int]] = {}
    for record in records:
        if record.theme not in themes:
            themes.append(record.theme)
        cell = cells.setdefault((record.domain, record.theme), [0, 0])
        cell[0] += record.incident.stance.favor
        cell[1] += record.incident.stance.oppose

    rows = []
    for domain in resolved:
        for theme in themes:
            favor, oppose = cells.get((domain, theme), (0, 0))
            total = favor + oppose
            rows.append(
                (domain, theme, favor, oppose, total, favor / total if total > 0 else 0.0)
            )
    return pd.DataFrame(rows, columns=STANCE_MATRIX_COLUMNS)


def stance_rankings(
    snapshot: Snapshot,
    domains: Iterable[str] | None,
    granularity: Granularity,
    window: Window = None,
    n: int = 4,
    sparkline_points: int = 7,
    include_non_positive: bool = False,
) -> dict[str, pd.DataFrame]:
    """Top domains per stance, each with a trailing sparkline of per-bucket stance volume."""
    keys_by_domain = select_keys(snapshot, domains, "social", granularity, window)
    records = list(snapshot.iter_incidents(keys_by_domain, "social", granularity))

    trends: dict[str, list[int]] = {}
    for domain, keys in keys_by_domain.items():
        per_bucket = {key: 0 for key in keys}
        for record in records:
            if record.domain == domain:
                per_bucket[record.bucket] += record.incident.stance.total
        trends[domain] = list(per_bucket.values())[-sparkline_points:]

    rankings: dict[str, pd.DataFrame] = {}
    for stance in KNOWN_STANCES:
        ranked = rank_top_n(
            records,
            key=lambda record: record.domain,
            metric=lambda record, stance=stance: record.incident.stance.count_for(stance),
            n=n,
            include_non_positive=include_non_positive,
        )
        if ranked.empty:
            rankings[stance.value] = empty_ranking(["trend"])
            continue
        ranked["trend"] = [trends.get(label, []) for label in ranked["label"]]
        rankings[stance.value] = ranked
    return rankings

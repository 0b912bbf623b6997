from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import numpy as np
import pandas as pd

from law_trends.config import AppConfig
from law_trends.features.graph import RelationGraph, build_relation_graph, representative_node
from law_trends.features.growth import compute_growth
from law_trends.features.peaks import PeakRecord, find_peak
from law_trends.features.ranking import rising_articles, top_incidents, top_laws
from law_trends.features.stance import (
    aggregate_stance,
    collect_incidents,
    stance_by_domain,
    stance_matrix,
    stance_rankings,
)
from law_trends.features.time_series import (
    DATE_COLUMN,
    build_time_series,
    combined_trend,
    domain_trend,
)
from law_trends.features.volume import aggregate_volume, bucket_totals
from law_trends.preprocess.time import filter_bucket_keys
from law_trends.query import ViewQuery
from law_trends.ratio_stats import round1, safe_pct
from law_trends.taxonomy import Snapshot


@dataclass(frozen=True)
class KpiCard:
    domain: str
    value: int = 0
    growth_rate: float = 0.0
    social_total: int = 0
    trend: tuple[int, ...] = field(default_factory=tuple)
    social_trend: tuple[int, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict[str, Any]:
        return {
            "domain": self.domain,
            "value": int(self.value),
            "growth_rate": float(self.growth_rate),
            "social_total": int(self.social_total),
            "trend": list(self.trend),
            "social_trend": list(self.social_trend),
        }


AMPLIFICATION_DRIVERS = ((0.9, "social_led"), (0.6, "social_leaning"), (0.4, "mixed"))
MOMENTUM_SPAN = 3


@dataclass(frozen=True)
class Insights:
    total_volume: int = 0
    top_domain: str | None = None
    share_pct: float = 0.0
    favor_pct: float = 0.0
    lean: str = "mixed"
    top_growth_domain: str | None = None
    top_growth_rate: float = 0.0
    top_amplified_domain: str | None = None
    amplification: float = 0.0
    driver: str = "press_led"
    top_polarized_domain: str | None = None
    polarity: float = 0.0
    news_peak: PeakRecord = field(default_factory=PeakRecord)
    social_peak: PeakRecord = field(default_factory=PeakRecord)
    volatility_pct: float = 0.0
    momentum: float = 0.0
    risk_score: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_volume": int(self.total_volume),
            "top_domain": self.top_domain,
            "share_pct": float(self.share_pct),
            "favor_pct": float(self.favor_pct),
            "lean": self.lean,
            "top_growth_domain": self.top_growth_domain,
            "top_growth_rate": float(self.top_growth_rate),
            "top_amplified_domain": self.top_amplified_domain,
            "amplification": float(self.amplification),
            "driver": self.driver,
            "top_polarized_domain": self.top_polarized_domain,
            "polarity": float(self.polarity),
            "news_peak": self.news_peak.to_dict(),
            "social_peak": self.social_peak.to_dict(),
            "volatility_pct": float(self.volatility_pct),
            "momentum": float(self.momentum),
            "risk_score": int(self.risk_score),
        }


def frame_records(frame: pd.DataFrame) -> list[dict[str, Any]]:
    return frame.to_dict(orient="records")


def query_domains(query: ViewQuery, config: AppConfig) -> list[str]:
    return list(query.domains) if query.domains else list(config.input.domains)


def compute_kpis(
    snapshot: Snapshot,
    query: ViewQuery,
    config: AppConfig | None = None,
) -> list[KpiCard]:
    """One card per domain: selected-range total, growth, social total and sparklines."""
    cfg = config or AppConfig()
    window = query.window()
    granularity = query.granularity
    cards = []
    for domain in query_domains(query, cfg):
        per_metric = {}
        for metric in ("news", "social"):
            keys = filter_bucket_keys(
                snapshot.buckets(domain, metric, granularity).keys(),
                granularity,
                window,
            )
            per_metric[metric] = bucket_totals(snapshot, domain, metric, granularity, keys)
        if not any(per_metric.values()):
            cards.append(KpiCard(domain=domain))
            continue

        series = build_time_series(
            {"value": per_metric[query.metric], "social": per_metric["social"]},
            granularity,
        )
        growth = compute_growth(
            snapshot,
            domain,
            query.metric,
            granularity,
            window,
            min_baseline=cfg.growth.min_baseline,
            clamp_pct=cfg.growth.clamp_pct,
        )
        cards.append(
            KpiCard(
                domain=domain,
                value=int(sum(per_metric[query.metric].values())),
                growth_rate=growth.rate,
                social_total=int(sum(per_metric["social"].values())),
                trend=tuple(int(value) for value in series["value"]),
                social_trend=tuple(int(value) for value in series["social"]),
            )
        )
    return cards


def volume_view(snapshot: Snapshot, query: ViewQuery, config: AppConfig | None = None) -> dict:
    cfg = config or AppConfig()
    summary = aggregate_volume(
        snapshot,
        query_domains(query, cfg),
        query.metric,
        query.granularity,
        query.window(),
    )
    return summary.to_dict()


def stance_view(snapshot: Snapshot, query: ViewQuery, config: AppConfig | None = None) -> dict:
    cfg = config or AppConfig()
    domains = query_domains(query, cfg)
    window = query.window()
    records = collect_incidents(snapshot, domains, query.granularity, window)
    return {
        "summary": aggregate_stance(records).to_dict(),
        "by_domain": frame_records(
            stance_by_domain(snapshot, domains, query.granularity, window)
        ),
        "matrix": frame_records(stance_matrix(snapshot, domains, query.granularity, window)),
        "unknown_labels": dict(snapshot.diagnostics.unknown_stance_labels),
    }


def ranking_view(snapshot: Snapshot, query: ViewQuery, config: AppConfig | None = None) -> dict:
    cfg = config or AppConfig()
    domains = query_domains(query, cfg)
    window = query.window()
    ranking = cfg.ranking
    by_stance = stance_rankings(
        snapshot,
        domains,
        query.granularity,
        window,
        n=ranking.stance_top_n,
        sparkline_points=ranking.sparkline_points,
        include_non_positive=ranking.include_non_positive,
    )
    return {
        "laws": frame_records(
            top_laws(
                snapshot,
                domains,
                query.granularity,
                window,
                n=ranking.top_n,
                include_non_positive=ranking.include_non_positive,
            )
        ),
        "incidents": frame_records(
            top_incidents(
                snapshot,
                domains,
                query.metric,
                query.granularity,
                window,
                n=ranking.top_n,
                include_non_positive=ranking.include_non_positive,
            )
        ),
        "by_stance": {stance: frame_records(frame) for stance, frame in by_stance.items()},
    }


def rising_view(
    snapshot: Snapshot,
    query: ViewQuery,
    config: AppConfig | None = None,
) -> list[dict[str, Any]]:
    cfg = config or AppConfig()
    return frame_records(
        rising_articles(
            snapshot,
            query_domains(query, cfg),
            query.date_window(),
            n=cfg.ranking.top_n,
            days=cfg.ranking.rising_days,
        )
    )


def trend_view(
    snapshot: Snapshot,
    query: ViewQuery,
    config: AppConfig | None = None,
) -> pd.DataFrame:
    cfg = config or AppConfig()
    return combined_trend(
        snapshot,
        query_domains(query, cfg),
        query.metric,
        query.granularity,
        query.window(),
    )


def peak_view(
    snapshot: Snapshot,
    query: ViewQuery,
    config: AppConfig | None = None,
) -> PeakRecord:
    cfg = config or AppConfig()
    domains = query_domains(query, cfg)
    series = trend_view(snapshot, query, cfg)
    metric_columns = [column for column in series.columns if column != DATE_COLUMN]
    return find_peak(
        series,
        metric_columns,
        snapshot=snapshot,
        domains=domains,
        metric=query.metric,
        granularity=query.granularity,
    )


def graph_view(
    snapshot: Snapshot,
    query: ViewQuery,
    config: AppConfig | None = None,
) -> tuple[RelationGraph, dict[str, Any] | None]:
    cfg = config or AppConfig()
    records = collect_incidents(
        snapshot,
        query_domains(query, cfg),
        query.granularity,
        query.window(),
        metric="social",
    )
    graph = build_relation_graph(
        records,
        max_laws=cfg.graph.max_laws,
        max_incidents=cfg.graph.max_incidents_per_law,
        group_by=cfg.graph.group_by,
        sample_limit=cfg.input.sample_limit,
    )
    selected = representative_node(graph)
    return graph, None if selected is None else selected.to_dict()


def amplification_driver(amplification: float) -> str:
    for threshold, label in AMPLIFICATION_DRIVERS:
        if amplification >= threshold:
            return label
    return "press_leaning" if amplification > 0 else "press_led"


def _mean(values: list[float]) -> float:
    return float(np.mean(values)) if values else 0.0


def volatility_pct(values: list[float]) -> float:
    """Coefficient of variation in percent; the mean is floored at 1."""
    mean = _mean(values)
    if not mean or len(values) <= 1:
        return 0.0
    return float(np.std(values)) / max(1.0, mean) * 100.0


def momentum(values: list[float], span: int = MOMENTUM_SPAN) -> float:
    """Mean of the last ``span`` points minus the mean of the ``span`` before them."""
    return _mean(values[-span:]) - _mean(values[-2 * span : -span])


def _series_peak(
    snapshot: Snapshot,
    domains: list[str],
    metric: str,
    query: ViewQuery,
) -> PeakRecord:
    series = combined_trend(snapshot, domains, metric, query.granularity, query.window())
    columns = [column for column in series.columns if column != DATE_COLUMN]
    peak = find_peak(
        series,
        columns,
        snapshot=snapshot,
        domains=domains,
        metric=metric,
        granularity=query.granularity,
    )
    return peak if peak.value > 0 else PeakRecord()


def insights_view(
    snapshot: Snapshot,
    query: ViewQuery,
    config: AppConfig | None = None,
) -> Insights:
    """Headline insights over the KPI cards of the selected domains.

    The risk score weighs volume share of the busiest domain (30), growth
    of the fastest grower (25), social amplification (25) and stance
    polarity (20), each relative to the largest value seen (floored at 1).
    """
    cfg = config or AppConfig()
    domains = query_domains(query, cfg)
    cards = compute_kpis(snapshot, query, cfg)
    if not any(card.value or card.social_total for card in cards):
        return Insights()

    stance = stance_by_domain(snapshot, domains, query.granularity, query.window())
    sides: dict[str, tuple[int, int]] = {}
    for row in stance.itertuples(index=False):
        sides[row.domain] = (int(row.strengthen + row.weaken + row.favor_unsplit), int(row.oppose))

    amplification = {card.domain: card.social_total / max(1, card.value) for card in cards}
    polarity = {}
    for card in cards:
        favor, oppose = sides.get(card.domain, (0, 0))
        polarity[card.domain] = abs(favor - oppose) / (favor + oppose) if favor + oppose else 0.0

    total_volume = sum(card.value for card in cards)
    top_volume = max(cards, key=lambda card: card.value)
    top_growth = max(cards, key=lambda card: card.growth_rate)
    top_amplified = max(cards, key=lambda card: amplification[card.domain])
    top_polarized = max(cards, key=lambda card: polarity[card.domain])

    favor, oppose = sides.get(top_volume.domain, (0, 0))
    if favor > oppose:
        lean = "favor"
    elif oppose > favor:
        lean = "oppose"
    else:
        lean = "mixed"

    trend = domain_trend(snapshot, top_volume.domain, query.granularity, query.window())
    totals = [float(value) for value in (trend["news"] + trend["social"]).tolist()]

    max_value = max([card.value for card in cards] + [1])
    max_growth = max([card.growth_rate for card in cards] + [1])
    max_amplification = max(list(amplification.values()) + [1])
    score = (
        top_volume.value / max_value * 30
        + top_growth.growth_rate / max_growth * 25
        + amplification[top_amplified.domain] / max_amplification * 25
        + polarity[top_polarized.domain] * 20
    )

    return Insights(
        total_volume=int(total_volume),
        top_domain=top_volume.domain,
        share_pct=safe_pct(top_volume.value, total_volume),
        favor_pct=safe_pct(favor, favor + oppose),
        lean=lean,
        top_growth_domain=top_growth.domain,
        top_growth_rate=top_growth.growth_rate,
        top_amplified_domain=top_amplified.domain,
        amplification=round(amplification[top_amplified.domain], 3),
        driver=amplification_driver(amplification[top_amplified.domain]),
        top_polarized_domain=top_polarized.domain,
        polarity=round(polarity[top_polarized.domain], 3),
        news_peak=_series_peak(snapshot, domains, "news", query),
        social_peak=_series_peak(snapshot, domains, "social", query),
        volatility_pct=round1(volatility_pct(totals)),
        momentum=round1(momentum(totals)),
        risk_score=int(np.floor(score + 0.5)),
    )

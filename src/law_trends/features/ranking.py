from __future__ import annotations

from datetime import date, timedelta
from typing import Any, Callable, Iterable, Mapping, TypeVar

import pandas as pd

from law_trends.features.volume import resolve_domains, select_keys
from law_trends.preprocess.time import DateWindow, Granularity, Window, parse_daily_key
from law_trends.taxonomy import IncidentRecord, Snapshot

T = TypeVar("T")

RANKING_COLUMNS = ["label", "total"]
LAW_RANKING_COLUMNS = ["rank", "label", "total", "strengthen", "weaken", "oppose", "news_count"]
UNLABELLED_STATUTE = "(unlabelled statute)"
RISING_ARTICLE_COLUMNS = [
    "rank",
    "title",
    "url",
    "date",
    "comments",
    "statute",
    "domain",
    "theme",
    "incident",
]


def empty_ranking(extra_columns: Iterable[str] = ()) -> pd.DataFrame:
    columns = RANKING_COLUMNS + list(extra_columns)
    return pd.DataFrame(
        {
            column: pd.Series(dtype="int64" if column == "total" else "object")
            for column in columns
        }
    )


def rank_top_n(
    records: Iterable[T],
    key: Callable[[T], Any],
    metric: Callable[[T], Any],
    n: int,
    include_non_positive: bool = False,
) -> pd.DataFrame:
    """Group records, sum the metric per group and keep the top ``n`` groups.

    Ties keep the order in which their group was first encountered, so a
    fixed input ordering always yields the same ranking.
    """
    rows = [(key(record), metric(record)) for record in records]
    if n <= 0 or not rows:
        return empty_ranking()

    frame = pd.DataFrame(rows, columns=RANKING_COLUMNS)
    frame["total"] = pd.to_numeric(frame["total"], errors="coerce").fillna(0)
    grouped = frame.groupby("label", sort=False, dropna=False)["total"].sum().reset_index()
    if not include_non_positive:
        grouped = grouped.loc[grouped["total"] > 0]
    return (
        grouped.sort_values("total", ascending=False, kind="mergesort")
        .head(int(n))
        .reset_index(drop=True)
    )


def statute_of(record: IncidentRecord) -> str:
    return record.incident.statute_label or UNLABELLED_STATUTE


def top_incidents(
    snapshot: Snapshot,
    domains: Iterable[str] | None,
    metric: str,
    granularity: Granularity,
    window: Window = None,
    n: int = 5,
    include_non_positive: bool = False,
) -> pd.DataFrame:
    keys_by_domain = select_keys(snapshot, domains, metric, granularity, window)
    records = list(snapshot.iter_incidents(keys_by_domain, metric, granularity))
    ranked = rank_top_n(
        records,
        key=lambda record: record.incident.label,
        metric=lambda record: record.incident.count,
        n=n,
        include_non_positive=include_non_positive,
    )
    extra = ["domain", "theme", "statute", "representative_item"]
    if ranked.empty:
        return empty_ranking(extra)

    first_seen: dict[str, IncidentRecord] = {}
    for record in records:
        first_seen.setdefault(record.incident.label, record)
    ranked["domain"] = [first_seen[label].domain for label in ranked["label"]]
    ranked["theme"] = [first_seen[label].theme for label in ranked["label"]]
    ranked["statute"] = [first_seen[label].incident.statute_label for label in ranked["label"]]
    ranked["representative_item"] = [
        first_seen[label].incident.representative_item for label in ranked["label"]
    ]
    return ranked


def top_laws(
    snapshot: Snapshot,
    domains: Iterable[str] | None,
    granularity: Granularity,
    window: Window = None,
    n: int = 5,
    include_non_positive: bool = False,
) -> pd.DataFrame:
    """Statutes ranked by social mention total, with stance split and related news volume."""
    social_keys = select_keys(snapshot, domains, "social", granularity, window)
    social = list(snapshot.iter_incidents(social_keys, "social", granularity))
    ranked = rank_top_n(
        social,
        key=statute_of,
        metric=lambda record: record.incident.count,
        n=n,
        include_non_positive=include_non_positive,
    )
    if ranked.empty:
        return empty_ranking(["strengthen", "weaken", "oppose", "news_count"]).reindex(
            columns=LAW_RANKING_COLUMNS
        )

    stance_totals: dict[str, list[int]] = {label: [0, 0, 0] for label in ranked["label"]}
    for record in social:
        totals = stance_totals.get(statute_of(record))
        if totals is None:
            continue
        totals[0] += record.incident.stance.strengthen
        totals[1] += record.incident.stance.weaken
        totals[2] += record.incident.stance.oppose

    news_keys = select_keys(snapshot, domains, "news", granularity, window)
    news_counts = {label: 0 for label in ranked["label"]}
    for record in snapshot.iter_incidents(news_keys, "news", granularity):
        label = statute_of(record)
        if label in news_counts:
            news_counts[label] += record.incident.count

    ranked.insert(0, "rank", range(1, len(ranked) + 1))
    ranked["strengthen"] = [stance_totals[label][0] for label in ranked["label"]]
    ranked["weaken"] = [stance_totals[label][1] for label in ranked["label"]]
    ranked["oppose"] = [stance_totals[label][2] for label in ranked["label"]]
    ranked["news_count"] = [news_counts[label] for label in ranked["label"]]
    return ranked


def latest_news_date(snapshot: Snapshot, domains: Iterable[str] | None = None) -> date | None:
    latest = None
    for domain in resolve_domains(snapshot, domains):
        for key in snapshot.bucket_keys(domain, "news", "daily"):
            day = parse_daily_key(key)
            if day is not None and (latest is None or day > latest):
                latest = day
    return latest


def _comment_count(snapshot: Snapshot, record: IncidentRecord) -> int:
    bucket = snapshot.buckets(record.domain, "social", "daily").get(record.bucket)
    theme = None if bucket is None else bucket.theme(record.theme)
    social = None if theme is None else theme.incident(record.incident.label)
    return 0 if social is None else social.stance.total


def _empty_rising() -> pd.DataFrame:
    return pd.DataFrame(
        {
            column: pd.Series(dtype="int64" if column in {"rank", "comments"} else "object")
            for column in RISING_ARTICLE_COLUMNS
        }
    )


def _article_fields(article: Any) -> tuple[Any, Any]:
    if isinstance(article, Mapping):
        return article.get("title"), article.get("url")
    return article, None


def rising_articles(
    snapshot: Snapshot,
    domains: Iterable[str] | None = None,
    window: DateWindow | None = None,
    n: int = 5,
    days: int = 7,
) -> pd.DataFrame:
    """Daily news articles ranked by the social comment volume of their incident.

    Each article inherits the stance total of the social incident with the
    same domain, day, theme and label. Without a complete ``window`` the
    last ``days`` days up to the newest news day are used. Ties go to the
    newer day, then to the order the articles were read in.
    """
    if window is None or not window.is_complete:
        latest = latest_news_date(snapshot, domains)
        if latest is None:
            return _empty_rising()
        window = DateWindow(start=latest - timedelta(days=max(1, int(days)) - 1), end=latest)

    keys_by_domain = select_keys(snapshot, domains, "news", "daily", window)
    rows = []
    for record in snapshot.iter_incidents(keys_by_domain, "news", "daily"):
        if not record.incident.articles:
            continue
        comments = _comment_count(snapshot, record)
        statute = record.incident.statute_label or record.theme
        for article in record.incident.articles:
            title, url = _article_fields(article)
            rows.append(
                (
                    title,
                    url,
                    record.bucket,
                    comments,
                    statute,
                    record.domain,
                    record.theme,
                    record.incident.label,
                )
            )
    if n <= 0 or not rows:
        return _empty_rising()

    frame = pd.DataFrame(rows, columns=RISING_ARTICLE_COLUMNS[1:])
    frame = frame.sort_values("date", ascending=False, kind="mergesort")
    frame = frame.sort_values("comments", ascending=False, kind="mergesort")
    frame = frame.head(int(n)).reset_index(drop=True)
    frame.insert(0, "rank", range(1, len(frame) + 1))
    return frame

from __future__ import annotations

from datetime import date

from law_trends.features.ranking import (
    LAW_RANKING_COLUMNS,
    RISING_ARTICLE_COLUMNS,
    UNLABELLED_STATUTE,
    latest_news_date,
    rank_top_n,
    rising_articles,
    top_incidents,
    top_laws,
)
from law_trends.preprocess.time import DateWindow
from law_trends.taxonomy import Snapshot, parse_snapshot


def _by_label(rows: list[tuple[str, int]]):
    return rank_top_n(rows, key=lambda row: row[0], metric=lambda row: row[1], n=10)


def test_rank_top_n_sums_groups_and_sorts_descending() -> None:
    ranked = rank_top_n(
        [("a", 1), ("b", 4), ("a", 5), ("c", 2)],
        key=lambda row: row[0],
        metric=lambda row: row[1],
        n=2,
    )

    assert ranked.to_dict(orient="records") == [
        {"label": "a", "total": 6},
        {"label": "b", "total": 4},
    ]


def test_rank_top_n_breaks_ties_by_first_encounter() -> None:
    ranked = _by_label([("late", 0), ("x", 3), ("y", 3), ("late", 3), ("z", 1)])

    assert ranked["label"].tolist() == ["late", "x", "y", "z"]


def test_rank_top_n_excludes_non_positive_unless_asked() -> None:
    rows = [("a", 2), ("b", 0), ("c", -1)]

    assert _by_label(rows)["label"].tolist() == ["a"]
    included = rank_top_n(
        rows,
        key=lambda row: row[0],
        metric=lambda row: row[1],
        n=10,
        include_non_positive=True,
    )
    assert included["label"].tolist() == ["a", "b", "c"]


def test_rank_top_n_handles_empty_and_zero_n() -> None:
    assert rank_top_n([], key=str, metric=len, n=5).empty
    assert rank_top_n([("a", 1)], key=lambda row: row[0], metric=lambda row: row[1], n=0).empty


def test_rank_top_n_never_exceeds_n_and_is_non_increasing() -> None:
    rows = [(f"label-{index % 7}", (index * 37) % 11) for index in range(60)]

    ranked = rank_top_n(rows, key=lambda row: row[0], metric=lambda row: row[1], n=4)
    totals = ranked["total"].tolist()

    assert len(ranked) <= 4
    assert totals == sorted(totals, reverse=True)


def test_top_incidents_attach_context_of_first_occurrence(snapshot: Snapshot) -> None:
    frame = top_incidents(snapshot, None, "news", "daily", n=2)

    assert frame["label"].tolist() == ["cctv_school", "abuse_school"]
    assert frame["total"].tolist() == [6, 5]
    first = frame.iloc[0]
    assert (first["domain"], first["theme"], first["statute"]) == ("privacy", "cctv", "정보통신망법")


def test_top_laws_splits_stance_and_counts_related_news(snapshot: Snapshot) -> None:
    frame = top_laws(snapshot, None, "daily", n=5)

    assert list(frame.columns) == LAW_RANKING_COLUMNS
    assert frame.to_dict(orient="records") == [
        {
            "rank": 1,
            "label": "개인정보보호법",
            "total": 10,
            "strengthen": 3,
            "weaken": 2,
            "oppose": 5,
            "news_count": 4,
        },
        {
            "rank": 2,
            "label": "아동복지법",
            "total": 2,
            "strengthen": 1,
            "weaken": 0,
            "oppose": 1,
            "news_count": 0,
        },
    ]


def test_top_laws_include_non_positive_keeps_silent_statutes(snapshot: Snapshot) -> None:
    laws = top_laws(snapshot, None, "daily", n=5, include_non_positive=True)

    assert laws["label"].tolist() == ["개인정보보호법", "아동복지법", "정보통신망법"]
    assert laws["rank"].tolist() == [1, 2, 3]


def test_top_laws_groups_missing_statutes_under_placeholder() -> None:
    snapshot = parse_snapshot(
        {
            "child": {
                "addsocial": {
                    "daily_timeline": {
                        "2024-01-01": {
                            "중분류목록": {
                                "abuse": {
                                    "소분류목록": {
                                        "abuse_home": {"count": 3},
                                        "abuse_school": {"count": 2, "관련법": " "},
                                    }
                                }
                            }
                        }
                    }
                }
            }
        }
    )

    laws = top_laws(snapshot, None, "daily")
    incidents = top_incidents(snapshot, None, "social", "daily")

    assert laws[["label", "total"]].to_dict(orient="records") == [
        {"label": UNLABELLED_STATUTE, "total": 5}
    ]
    assert incidents["statute"].tolist() == [None, None]


def test_top_laws_empty_range_keeps_columns(snapshot: Snapshot) -> None:
    window = DateWindow(start=date(2030, 1, 1), end=date(2030, 1, 2))

    frame = top_laws(snapshot, None, "daily", window)

    assert frame.empty
    assert list(frame.columns) == LAW_RANKING_COLUMNS


def _incident_day(theme: str, label: str, entry: dict) -> dict:
    return {"중분류목록": {theme: {"소분류목록": {label: entry}}}}


def _rising_dataset() -> dict:
    return {
        "privacy": {
            "news": {
                "daily_timeline": {
                    "2024-01-01": _incident_day(
                        "leak", "leak_bank", {"articles": [{"title": "Old leak", "url": "u0"}]}
                    ),
                    "2024-01-05": _incident_day(
                        "leak",
                        "leak_bank",
                        {
                            "관련법": "개인정보보호법",
                            "articles": [
                                {"title": "Bank A", "url": "u1"},
                                {"title": "Bank B", "url": "u2"},
                            ],
                        },
                    ),
                    "2024-01-06": _incident_day(
                        "cctv", "cctv_school", {"articles": ["Plain title"]}
                    ),
                    "2024-01-09": _incident_day(
                        "leak", "leak_bank", {"articles": [{"title": "Bank C", "url": "u3"}]}
                    ),
                }
            },
            "addsocial": {
                "daily_timeline": {
                    "2024-01-05": _incident_day(
                        "leak",
                        "leak_bank",
                        {"찬성": {"개정강화": {"count": 2}, "폐지약화": {"count": 1}}, "반대": 1},
                    ),
                    "2024-01-06": _incident_day("cctv", "cctv_school", {"반대": {"count": 4}}),
                    "2024-01-09": _incident_day(
                        "leak", "leak_bank", {"찬성": {"개정강화": {"count": 1}}}
                    ),
                }
            },
        },
        "child": {
            "news": {
                "daily_timeline": {
                    "2024-01-10": _incident_day(
                        "abuse", "abuse_school", {"articles": [{"title": "Child A"}]}
                    ),
                }
            }
        },
    }


def test_rising_articles_ranks_recent_articles_by_comment_volume() -> None:
    snapshot = parse_snapshot(_rising_dataset())

    frame = rising_articles(snapshot)

    assert latest_news_date(snapshot) == date(2024, 1, 10)
    assert list(frame.columns) == RISING_ARTICLE_COLUMNS
    assert frame["title"].tolist() == ["Plain title", "Bank A", "Bank B", "Bank C", "Child A"]
    assert frame["comments"].tolist() == [4, 4, 4, 1, 0]
    assert frame["rank"].tolist() == [1, 2, 3, 4, 5]
    first = frame.iloc[0]
    assert (first["date"], first["statute"], first["url"]) == ("2024-01-06", "cctv", None)
    assert frame.iloc[1]["statute"] == "개인정보보호법"


def test_rising_articles_honours_window_limit_and_day_span() -> None:
    snapshot = parse_snapshot(_rising_dataset())

    windowed = rising_articles(
        snapshot,
        ["privacy"],
        window=DateWindow(start=date(2024, 1, 1), end=date(2024, 1, 5)),
        n=2,
    )
    last_day = rising_articles(snapshot, days=1)

    assert windowed["title"].tolist() == ["Bank A", "Bank B"]
    assert windowed["url"].tolist() == ["u1", "u2"]
    assert last_day["title"].tolist() == ["Child A"]


def test_rising_articles_without_news_returns_typed_empty_frame() -> None:
    frame = rising_articles(parse_snapshot({}))

    assert frame.empty
    assert list(frame.columns) == RISING_ARTICLE_COLUMNS
    assert str(frame["comments"].dtype) == "int64"

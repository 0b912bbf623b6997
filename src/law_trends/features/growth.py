from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any

from law_trends.features.volume import bucket_totals
from law_trends.preprocess.time import (
    BucketWindow,
    DateWindow,
    Granularity,
    Window,
    filter_bucket_keys,
    parse_daily_key,
    preceding_date_window,
    preceding_keys,
)
from law_trends.ratio_stats import clamp
from law_trends.taxonomy import Snapshot

DEFAULT_MIN_BASELINE = 5.0
DEFAULT_CLAMP_PCT = 500.0


@dataclass(frozen=True)
class GrowthResult:
    current: int = 0
    previous: int = 0
    rate: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def growth_rate(
    current: float,
    previous: float,
    min_baseline: float = DEFAULT_MIN_BASELINE,
    clamp_pct: float = DEFAULT_CLAMP_PCT,
) -> float:
    """Period-over-period change in percent.

    A baseline below ``min_baseline`` reports 0 instead of a noisy swing, and
    the result is bounded to ``[-clamp_pct, clamp_pct]``.
    """
    if previous < min_baseline or previous <= 0:
        return 0.0
    return clamp((float(current) - float(previous)) / float(previous) * 100.0, clamp_pct)


def _as_complete_dates(window: Window) -> DateWindow | None:
    if isinstance(window, DateWindow):
        return window if window.is_complete else None
    if isinstance(window, BucketWindow) and window.granularity == "daily":
        start = parse_daily_key(window.start) if window.start else None
        end = parse_daily_key(window.end) if window.end else None
        if start is not None and end is not None:
            return DateWindow(start=start, end=end)
    return None


def _is_complete(window: Window) -> bool:
    if isinstance(window, DateWindow):
        return window.is_complete
    if isinstance(window, BucketWindow):
        return bool(window.start) and bool(window.end)
    return False


def compute_growth(
    snapshot: Snapshot,
    domain: str,
    metric: str,
    granularity: Granularity,
    window: Window = None,
    min_baseline: float = DEFAULT_MIN_BASELINE,
    clamp_pct: float = DEFAULT_CLAMP_PCT,
) -> GrowthResult:
    all_keys = snapshot.bucket_keys(domain, metric, granularity)
    totals = bucket_totals(snapshot, domain, metric, granularity, all_keys)

    if _is_complete(window):
        dates = _as_complete_dates(window)
        if granularity == "daily" and dates is not None:
            current_keys = filter_bucket_keys(all_keys, granularity, dates)
            previous_keys = filter_bucket_keys(
                all_keys, granularity, preceding_date_window(dates)
            )
        else:
            if isinstance(window, DateWindow):
                window = window.to_bucket_window(granularity)
            current_keys = filter_bucket_keys(all_keys, granularity, window)
            previous_keys = preceding_keys(all_keys, current_keys, granularity)
        current = sum(totals[key] for key in current_keys)
        previous = sum(totals[key] for key in previous_keys)
        return GrowthResult(
            current=current,
            previous=previous,
            rate=growth_rate(current, previous, min_baseline, clamp_pct),
        )

    if isinstance(window, DateWindow) and granularity != "daily":
        window = window.to_bucket_window(granularity)
    selected = filter_bucket_keys(all_keys, granularity, window)
    if not selected:
        return GrowthResult()
    current = totals[selected[-1]]
    if len(selected) < 2:
        return GrowthResult(current=current)
    previous = totals[selected[-2]]
    return GrowthResult(
        current=current,
        previous=previous,
        rate=growth_rate(current, previous, min_baseline, clamp_pct),
    )

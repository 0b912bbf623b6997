from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Iterable, Literal

Granularity = Literal["daily", "weekly", "monthly"]
GRANULARITIES: tuple[Granularity, ...] = ("daily", "weekly", "monthly")

_DAILY_KEY = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")
_WEEKLY_KEY = re.compile(r"^(\d{4})-?[Ww](\d{1,2})$")
_MONTHLY_KEY = re.compile(r"^(\d{4})-(\d{1,2})$")


class GranularityMismatchError(TypeError):
    """Raised when a window's bound format does not match the bucket keys it filters."""


def parse_daily_key(key: str) -> date | None:
    match = _DAILY_KEY.match(str(key).strip())
    if match is None:
        return None
    try:
        return date(int(match.group(1)), int(match.group(2)), int(match.group(3)))
    except ValueError:
        return None


def parse_bucket_key(key: str, granularity: Granularity) -> tuple[int, int, int] | None:
    if granularity == "daily":
        parsed = parse_daily_key(key)
        return None if parsed is None else (parsed.year, parsed.month, parsed.day)

    text = str(key).strip()
    if granularity == "weekly":
        match = _WEEKLY_KEY.match(text)
        if match is None:
            return None
        week = int(match.group(2))
        return (int(match.group(1)), week, 0) if 1 <= week <= 53 else None

    if granularity == "monthly":
        match = _MONTHLY_KEY.match(text)
        if match is None:
            return None
        month = int(match.group(2))
        return (int(match.group(1)), month, 0) if 1 <= month <= 12 else None

    raise ValueError(f"Unsupported granularity: {granularity}")


def bucket_sort_key(key: str, granularity: Granularity) -> tuple[int, tuple[int, int, int], str]:
    # Parsed keys sort chronologically; anything unparseable trails, lexicographically.
    parsed = parse_bucket_key(key, granularity)
    if parsed is None:
        return (1, (0, 0, 0), str(key))
    return (0, parsed, str(key))


def sort_bucket_keys(keys: Iterable[str], granularity: Granularity) -> list[str]:
    return sorted(set(keys), key=lambda key: bucket_sort_key(key, granularity))


def format_bucket_key(day: date, granularity: Granularity) -> str:
    if granularity == "daily":
        return day.isoformat()
    if granularity == "weekly":
        iso_year, iso_week, _ = day.isocalendar()
        return f"{iso_year}-W{iso_week:02d}"
    if granularity == "monthly":
        return f"{day.year:04d}-{day.month:02d}"
    raise ValueError(f"Unsupported granularity: {granularity}")


@dataclass(frozen=True)
class BucketWindow:
    """Bounds already expressed in one granularity's bucket-key format."""

    granularity: Granularity
    start: str | None = None
    end: str | None = None

    @property
    def is_bounded(self) -> bool:
        return bool(self.start) or bool(self.end)


@dataclass(frozen=True)
class DateWindow:
    """Inclusive calendar-date bounds. Only comparable with daily bucket keys."""

    start: date | None = None
    end: date | None = None

    def __post_init__(self) -> None:
        if self.start is not None and self.end is not None and self.start > self.end:
            raise ValueError(f"Window start {self.start} is after end {self.end}")

    @property
    def is_bounded(self) -> bool:
        return self.start is not None or self.end is not None

    @property
    def is_complete(self) -> bool:
        return self.start is not None and self.end is not None

    @property
    def length_days(self) -> int:
        if self.start is None or self.end is None:
            raise ValueError("length_days requires both window bounds")
        return (self.end - self.start).days + 1

    def to_bucket_window(self, granularity: Granularity) -> BucketWindow:
        return BucketWindow(
            granularity=granularity,
            start=None if self.start is None else format_bucket_key(self.start, granularity),
            end=None if self.end is None else format_bucket_key(self.end, granularity),
        )


Window = DateWindow | BucketWindow | None


def preceding_date_window(window: DateWindow) -> DateWindow:
    """The equal-length window ending the day before ``window.start``."""
    length = window.length_days
    previous_end = window.start - timedelta(days=1)  # type: ignore[operator]
    return DateWindow(start=previous_end - timedelta(days=length - 1), end=previous_end)


def _filter_daily(keys: list[str], start: date | None, end: date | None) -> list[str]:
    kept = []
    for key in keys:
        parsed = parse_daily_key(key)
        if parsed is None:
            continue
        if start is not None and parsed < start:
            continue
        if end is not None and parsed > end:
            continue
        kept.append(key)
    return kept


def _filter_ordinal(keys: list[str], window: BucketWindow) -> list[str]:
    granularity = window.granularity
    bounds = []
    for bound in (window.start, window.end):
        if not bound:
            bounds.append(None)
            continue
        parsed = parse_bucket_key(bound, granularity)
        if parsed is None:
            raise GranularityMismatchError(
                f"Bound {bound!r} is not a {granularity} bucket key"
            )
        bounds.append(parsed)
    start, end = bounds

    kept = []
    for key in keys:
        parsed = parse_bucket_key(key, granularity)
        if parsed is None:
            continue
        if start is not None and parsed < start:
            continue
        if end is not None and parsed > end:
            continue
        kept.append(key)
    return kept


def filter_bucket_keys(
    keys: Iterable[str],
    granularity: Granularity,
    window: DateWindow | BucketWindow | None = None,
) -> list[str]:
    ordered = sort_bucket_keys(keys, granularity)
    if window is None or not window.is_bounded:
        return ordered

    if isinstance(window, DateWindow):
        if granularity != "daily":
            raise GranularityMismatchError(
                f"Calendar-date bounds cannot filter {granularity} keys; "
                "convert with DateWindow.to_bucket_window first"
            )
        return _filter_daily(ordered, window.start, window.end)

    if window.granularity != granularity:
        raise GranularityMismatchError(
            f"{window.granularity} window cannot filter {granularity} keys"
        )
    if granularity == "daily":
        bounds = []
        for bound in (window.start, window.end):
            parsed = parse_daily_key(bound) if bound else None
            if bound and parsed is None:
                raise GranularityMismatchError(f"Bound {bound!r} is not a daily bucket key")
            bounds.append(parsed)
        return _filter_daily(ordered, bounds[0], bounds[1])
    return _filter_ordinal(ordered, window)


def preceding_keys(
    all_keys: Iterable[str],
    selected: list[str],
    granularity: Granularity,
) -> list[str]:
    """The ``len(selected)`` keys immediately before the first selected key."""
    if not selected:
        return []
    ordered = sort_bucket_keys(all_keys, granularity)
    first = bucket_sort_key(selected[0], granularity)
    earlier = [key for key in ordered if bucket_sort_key(key, granularity) < first]
    return earlier[-len(selected):]

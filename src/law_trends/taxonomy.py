from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Iterable, Iterator, Mapping

from law_trends.io.schema import (
    METRIC_SOURCES,
    RAW_KEYS,
    first_present,
    mapping_or_empty,
    select_timeline,
)
from law_trends.preprocess.stance import KNOWN_STANCES, CanonicalStance, normalize_stance
from law_trends.preprocess.time import GRANULARITIES, Granularity, sort_bucket_keys
from law_trends.ratio_stats import coerce_count, is_count_like

LOGGER = logging.getLogger(__name__)

METRICS = ("news", "social")
COMBINED_LAYOUT_KEY = "all"
COMBINED_CATEGORY_KEY = "대분류목록"
_STANCE_META_KEYS = frozenset(
    RAW_KEYS.count + RAW_KEYS.counts_summary + RAW_KEYS.sample_items
)


@dataclass(frozen=True)
class StanceBreakdown:
    strengthen: int = 0
    weaken: int = 0
    oppose: int = 0
    unknown: int = 0
    # Favor reported only as a bare total, without a strengthen/weaken split.
    favor_unsplit: int = 0
    samples: Mapping[str, tuple[Any, ...]] = field(default_factory=dict)

    @property
    def favor(self) -> int:
        return self.strengthen + self.weaken + self.favor_unsplit

    @property
    def total(self) -> int:
        return self.favor + self.oppose

    @property
    def has_counts(self) -> bool:
        return (self.total + self.unknown) > 0

    def count_for(self, stance: CanonicalStance) -> int:
        return int(getattr(self, stance.value))

    def samples_for(self, stance: CanonicalStance) -> tuple[Any, ...]:
        return tuple(self.samples.get(stance.value, ()))


@dataclass(frozen=True)
class Incident:
    label: str
    count: int
    statute_label: str | None = None
    representative_item: Any = None
    stance: StanceBreakdown = field(default_factory=StanceBreakdown)
    articles: tuple[Any, ...] = ()


@dataclass(frozen=True)
class Theme:
    label: str
    stored_count: int = 0
    incidents: tuple[Incident, ...] = ()

    @property
    def count(self) -> int:
        # Stored parent counts are advisory; children win whenever present.
        if self.incidents:
            return sum(incident.count for incident in self.incidents)
        return self.stored_count

    def incident(self, label: str) -> Incident | None:
        for incident in self.incidents:
            if incident.label == label:
                return incident
        return None


@dataclass(frozen=True)
class Bucket:
    key: str
    themes: tuple[Theme, ...] = ()
    stored_count: int = 0

    @property
    def count(self) -> int:
        if self.themes:
            return sum(theme.count for theme in self.themes)
        return self.stored_count

    def theme(self, label: str) -> Theme | None:
        for theme in self.themes:
            if theme.label == label:
                return theme
        return None


@dataclass(frozen=True)
class TaxonomyDiagnostics:
    unknown_stance_labels: Mapping[str, int] = field(default_factory=dict)
    malformed_fields: int = 0

    @property
    def unknown_stance_total(self) -> int:
        return int(sum(self.unknown_stance_labels.values()))


@dataclass(frozen=True)
class IncidentRecord:
    domain: str
    bucket: str
    theme: str
    incident: Incident


@dataclass(frozen=True)
class Snapshot:
    timelines: Mapping[tuple[str, str, str], Mapping[str, Bucket]] = field(default_factory=dict)
    domain_names: tuple[str, ...] = ()
    diagnostics: TaxonomyDiagnostics = field(default_factory=TaxonomyDiagnostics)

    def domains(self) -> list[str]:
        return list(self.domain_names)

    def buckets(self, domain: str, metric: str, granularity: Granularity) -> Mapping[str, Bucket]:
        return self.timelines.get((domain, metric, granularity), {})

    def bucket_keys(self, domain: str, metric: str, granularity: Granularity) -> list[str]:
        return sort_bucket_keys(self.buckets(domain, metric, granularity), granularity)

    def iter_incidents(
        self,
        keys_by_domain: Mapping[str, Iterable[str]],
        metric: str,
        granularity: Granularity,
    ) -> Iterator[IncidentRecord]:
        for domain, keys in keys_by_domain.items():
            buckets = self.buckets(domain, metric, granularity)
            for key in keys:
                bucket = buckets.get(key)
                if bucket is None:
                    continue
                for theme in bucket.themes:
                    for incident in theme.incidents:
                        yield IncidentRecord(
                            domain=domain,
                            bucket=key,
                            theme=theme.label,
                            incident=incident,
                        )


class _ParseState:
    def __init__(self, sample_limit: int) -> None:
        self.sample_limit = max(0, int(sample_limit))
        self.unknown_labels: Counter[str] = Counter()
        self.malformed = 0

    def count(self, value: Any) -> int:
        if value is None or is_count_like(value):
            return coerce_count(value)
        self.malformed += 1
        return coerce_count(value)


def _summary_total(value: Any, state: _ParseState) -> int | None:
    """Favor + oppose from a ``counts`` summary block, or None when absent."""
    if value is None:
        return None
    if not isinstance(value, Mapping):
        return state.count(value)
    favor = first_present(value, RAW_KEYS.favor)
    oppose = first_present(value, RAW_KEYS.oppose)
    return state.count(favor) + state.count(oppose)


def _direct_total(entry: Mapping[str, Any]) -> int | None:
    """Favor + oppose written straight on the entry as plain numbers."""
    values = [first_present(entry, RAW_KEYS.favor), first_present(entry, RAW_KEYS.oppose)]
    numbers = [value for value in values if is_count_like(value)]
    if not numbers:
        return None
    return sum(coerce_count(value) for value in numbers)


def _block_count(block: Any, state: _ParseState) -> tuple[int, tuple[Any, ...]]:
    if isinstance(block, (list, tuple)):
        items = tuple(block)
        return len(items), items[: state.sample_limit]
    if not isinstance(block, Mapping):
        return state.count(block), ()
    items = first_present(block, RAW_KEYS.sample_items)
    items = tuple(items) if isinstance(items, (list, tuple)) else ()
    explicit = first_present(block, RAW_KEYS.count)
    if explicit is not None:
        return state.count(explicit), items[: state.sample_limit]
    return len(items), items[: state.sample_limit]


def _stance_blocks(entry: Mapping[str, Any]) -> list[tuple[str, Any]]:
    blocks: list[tuple[str, Any]] = []
    container = first_present(entry, RAW_KEYS.stance)
    for label, block in mapping_or_empty(container).items():
        blocks.append((str(label), block))

    for favor_key in RAW_KEYS.favor:
        if favor_key not in entry:
            continue
        favor = entry[favor_key]
        if isinstance(favor, Mapping):
            for label, block in favor.items():
                if label in _STANCE_META_KEYS:
                    continue
                blocks.append((str(label), block))
        elif favor is not None:
            blocks.append((favor_key, favor))
        break

    for oppose_key in RAW_KEYS.oppose:
        if oppose_key in entry and entry[oppose_key] is not None:
            blocks.append((oppose_key, entry[oppose_key]))
            break
    return blocks


def _parse_stance(entry: Mapping[str, Any], state: _ParseState) -> StanceBreakdown:
    totals = {stance.value: 0 for stance in CanonicalStance}
    samples: dict[str, list[Any]] = {stance.value: [] for stance in KNOWN_STANCES}
    favor_unsplit = 0
    for label, block in _stance_blocks(entry):
        if label in RAW_KEYS.favor:
            # A bare favor total cannot be split into strengthen/weaken.
            favor_unsplit += _block_count(block, state)[0]
            continue
        stance = normalize_stance(label)
        count, items = _block_count(block, state)
        totals[stance.value] += count
        if stance is CanonicalStance.UNKNOWN:
            state.unknown_labels[label] += 1
            continue
        room = state.sample_limit - len(samples[stance.value])
        if room > 0:
            samples[stance.value].extend(items[:room])
    return StanceBreakdown(
        strengthen=totals["strengthen"],
        weaken=totals["weaken"],
        oppose=totals["oppose"],
        unknown=totals["unknown"],
        favor_unsplit=favor_unsplit,
        samples={key: tuple(values) for key, values in samples.items() if values},
    )


def _clean_label(value: Any) -> str | None:
    if not isinstance(value, str):
        return None
    text = value.strip()
    return text or None


def _parse_incident(label: str, entry: Any, state: _ParseState) -> Incident:
    if not isinstance(entry, Mapping):
        return Incident(label=label, count=state.count(entry))

    stance = _parse_stance(entry, state)
    articles = first_present(entry, RAW_KEYS.articles)
    articles = list(articles) if isinstance(articles, (list, tuple)) else []

    explicit = first_present(entry, RAW_KEYS.count)
    summary = _summary_total(first_present(entry, RAW_KEYS.counts_summary), state)
    if explicit is not None:
        count = state.count(explicit)
    elif summary is not None:
        count = summary
    elif stance.has_counts:
        count = stance.total
    else:
        count = len(articles)

    representative = first_present(entry, RAW_KEYS.representative)
    if representative is None and articles:
        representative = articles[0]
    if representative is None:
        for stance_name in KNOWN_STANCES:
            stance_samples = stance.samples_for(stance_name)
            if stance_samples:
                representative = stance_samples[0]
                break

    return Incident(
        label=label,
        count=count,
        statute_label=_clean_label(first_present(entry, RAW_KEYS.statute)),
        representative_item=representative,
        stance=stance,
        articles=tuple(articles),
    )


def _parse_theme(label: str, entry: Any, state: _ParseState) -> Theme:
    if not isinstance(entry, Mapping):
        return Theme(label=label, stored_count=state.count(entry))
    incidents = mapping_or_empty(first_present(entry, RAW_KEYS.incidents))
    return Theme(
        label=label,
        stored_count=state.count(first_present(entry, RAW_KEYS.count)),
        incidents=tuple(
            _parse_incident(str(name), value, state) for name, value in incidents.items()
        ),
    )


def _parse_bucket(key: str, entry: Any, state: _ParseState) -> Bucket:
    if not isinstance(entry, Mapping):
        return Bucket(key=key, stored_count=state.count(entry))
    themes = mapping_or_empty(first_present(entry, RAW_KEYS.themes))
    explicit = first_present(entry, RAW_KEYS.count)
    if explicit is not None:
        stored = state.count(explicit)
    else:
        summary = _summary_total(first_present(entry, RAW_KEYS.counts_summary), state)
        if summary is None:
            summary = _direct_total(entry)
        stored = summary or 0
    return Bucket(
        key=key,
        themes=tuple(_parse_theme(str(name), value, state) for name, value in themes.items()),
        stored_count=stored,
    )


def _unwrap_combined_layout(raw: Mapping[str, Any]) -> Mapping[str, Any]:
    """Pivot ``all > metric > period > key > 대분류목록 > domain`` into per-domain form."""
    combined = raw.get(COMBINED_LAYOUT_KEY)
    if not isinstance(combined, Mapping):
        return raw

    pivoted: dict[str, dict[str, dict[str, dict[str, Any]]]] = {}
    for metric_key, metric_map in combined.items():
        for period_key, timeline in mapping_or_empty(metric_map).items():
            for bucket_key, bucket_entry in mapping_or_empty(timeline).items():
                categories = mapping_or_empty(
                    mapping_or_empty(bucket_entry).get(COMBINED_CATEGORY_KEY)
                )
                for domain, domain_entry in categories.items():
                    (
                        pivoted.setdefault(str(domain), {})
                        .setdefault(metric_key, {})
                        .setdefault(period_key, {})
                    )[bucket_key] = domain_entry
    merged: dict[str, Any] = {
        key: value for key, value in raw.items() if key != COMBINED_LAYOUT_KEY
    }
    for domain, metrics in pivoted.items():
        merged.setdefault(domain, metrics)
    return merged


def _looks_like_domain(entry: Any) -> bool:
    if not isinstance(entry, Mapping):
        return False
    sources = {source for names in METRIC_SOURCES.values() for source in names}
    return any(source in entry for source in sources)


def parse_snapshot(raw: Any, sample_limit: int = 2) -> Snapshot:
    """Build an immutable typed view over the raw nested dataset.

    The raw mapping is only read. Malformed numbers coerce to zero and
    unrecognised stance labels are tallied in ``Snapshot.diagnostics``.
    """
    state = _ParseState(sample_limit=sample_limit)
    if not isinstance(raw, Mapping):
        if raw is not None:
            state.malformed += 1
        return Snapshot(diagnostics=TaxonomyDiagnostics(malformed_fields=state.malformed))

    source = _unwrap_combined_layout(raw)
    timelines: dict[tuple[str, str, str], dict[str, Bucket]] = {}
    domain_names: list[str] = []
    for domain, domain_entry in source.items():
        if not _looks_like_domain(domain_entry):
            continue
        domain_names.append(str(domain))
        for metric in METRICS:
            for granularity in GRANULARITIES:
                timeline = select_timeline(domain_entry, metric, granularity)
                if not timeline:
                    continue
                timelines[(str(domain), metric, granularity)] = {
                    str(key): _parse_bucket(str(key), entry, state)
                    for key, entry in timeline.items()
                }

    diagnostics = TaxonomyDiagnostics(
        unknown_stance_labels=dict(sorted(state.unknown_labels.items())),
        malformed_fields=state.malformed,
    )
    if diagnostics.unknown_stance_total:
        LOGGER.warning(
            "Routed %s stance block(s) with unrecognised labels to 'unknown': %s",
            diagnostics.unknown_stance_total,
            ", ".join(diagnostics.unknown_stance_labels),
        )
    if diagnostics.malformed_fields:
        LOGGER.warning("Coerced %s malformed count field(s) to zero", diagnostics.malformed_fields)
    return Snapshot(
        timelines=timelines,
        domain_names=tuple(domain_names),
        diagnostics=diagnostics,
    )


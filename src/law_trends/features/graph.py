from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Literal, Mapping

from law_trends.features.ranking import rank_top_n, statute_of
from law_trends.preprocess.stance import KNOWN_STANCES
from law_trends.taxonomy import IncidentRecord

NodeType = Literal["law", "incident"]
GroupBy = Literal["statute", "theme"]


@dataclass(frozen=True)
class GraphNode:
    id: str
    type: NodeType
    label: str
    weight: int
    theme: str | None = None
    law: str | None = None
    samples: Mapping[str, tuple[Any, ...]] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "id": self.id,
            "type": self.type,
            "label": self.label,
            "weight": int(self.weight),
        }
        if self.type == "incident":
            payload["theme"] = self.theme
            payload["law"] = self.law
            payload["samples"] = {key: list(values) for key, values in self.samples.items()}
        return payload


@dataclass(frozen=True)
class GraphEdge:
    source: str
    target: str
    weight: int

    def to_dict(self) -> dict[str, Any]:
        return {"source": self.source, "target": self.target, "weight": int(self.weight)}


@dataclass(frozen=True)
class RelationGraph:
    nodes: tuple[GraphNode, ...] = ()
    edges: tuple[GraphEdge, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.nodes

    def to_dict(self) -> dict[str, Any]:
        return {
            "nodes": [node.to_dict() for node in self.nodes],
            "edges": [edge.to_dict() for edge in self.edges],
        }


def _law_key(group_by: GroupBy) -> Callable[[IncidentRecord], str]:
    if group_by == "theme":
        return lambda record: record.theme
    return statute_of


def _incident_id(law: str, record: IncidentRecord) -> str:
    return f"{law}::{record.theme}::{record.incident.label}"


def _display_label(record: IncidentRecord) -> str:
    prefix = f"{record.theme}_"
    label = record.incident.label
    return label[len(prefix):] if label.startswith(prefix) and len(label) > len(prefix) else label


def _merge_samples(records: list[IncidentRecord], limit: int) -> dict[str, tuple[Any, ...]]:
    merged: dict[str, tuple[Any, ...]] = {}
    for stance in KNOWN_STANCES:
        items: list[Any] = []
        for record in records:
            items.extend(record.incident.stance.samples_for(stance))
            if len(items) >= limit:
                break
        if items[:limit]:
            merged[stance.value] = tuple(items[:limit])
    return merged


def build_relation_graph(
    records: Iterable[IncidentRecord],
    max_laws: int = 5,
    max_incidents: int = 10,
    group_by: GroupBy = "statute",
    sample_limit: int = 2,
) -> RelationGraph:
    """Weighted law <-> incident bipartite graph.

    Laws are ranked by the summed count of all their incidents; each kept law
    links to at most ``max_incidents`` of its heaviest incidents.
    """
    incidents = list(records)
    law_of = _law_key(group_by)
    laws = rank_top_n(
        incidents,
        key=law_of,
        metric=lambda record: record.incident.count,
        n=max_laws,
    )
    if laws.empty:
        return RelationGraph()

    nodes: list[GraphNode] = []
    edges: list[GraphEdge] = []
    for law, law_total in zip(laws["label"], laws["total"]):
        law = str(law)
        members = [record for record in incidents if law_of(record) == law]
        nodes.append(GraphNode(id=law, type="law", label=law, weight=int(law_total)))

        top = rank_top_n(
            members,
            key=lambda record, law=law: _incident_id(law, record),
            metric=lambda record: record.incident.count,
            n=max_incidents,
        )
        for node_id, weight in zip(top["label"], top["total"]):
            occurrences = [
                record for record in members if _incident_id(law, record) == node_id
            ]
            first = occurrences[0]
            nodes.append(
                GraphNode(
                    id=str(node_id),
                    type="incident",
                    label=_display_label(first),
                    weight=int(weight),
                    theme=first.theme,
                    law=law,
                    samples=_merge_samples(occurrences, sample_limit),
                )
            )
            edges.append(GraphEdge(source=law, target=str(node_id), weight=int(weight)))
    return RelationGraph(nodes=tuple(nodes), edges=tuple(edges))


def representative_node(graph: RelationGraph) -> GraphNode | None:
    """Heaviest incident node (first wins on ties), else the first law node."""
    best: GraphNode | None = None
    for node in graph.nodes:
        if node.type != "incident":
            continue
        if best is None or node.weight > best.weight:
            best = node
    if best is not None:
        return best
    return graph.nodes[0] if graph.nodes else None


def sqrt_size_scale(
    values: Iterable[float],
    out_min: float = 8.0,
    out_max: float = 36.0,
) -> Callable[[float], float]:
    """Map weights to node radii on a square-root scale spanning ``[out_min, out_max]``."""
    observed = [max(float(value), 0.0) for value in values]
    low = math.sqrt(min(observed)) if observed else 1.0
    high = math.sqrt(max(observed)) if observed else math.sqrt(50.0)
    span = (high - low) or 1.0

    def scale(value: float) -> float:
        position = (math.sqrt(max(float(value), 0.0)) - low) / span
        return out_min + position * (out_max - out_min)

    return scale

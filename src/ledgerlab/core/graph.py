"""
Relationship graph for the legend: sources, types and categories.

Actual edges carry the absolute value of the signed aggregate for the current
mode; dated bars obey the year window, undated bars always count. Planned
edges are presence-only and ignore the year window.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum

from .aggregates import iter_filtered_bars
from .keys import clean_key, pair_key, split_pair
from .model import Model
from .selection import FilterState

__all__ = ["EdgeKind", "GraphEdge", "GraphNode", "LegendGraph", "build_legend_graph"]


class EdgeKind(Enum):
    SOURCE_TYPE = "source_type"
    TYPE_CATEGORY = "type_category"
    SOURCE_CATEGORY = "source_category"


@dataclass(frozen=True, slots=True)
class GraphNode:
    id: str
    label: str
    active: bool = True


@dataclass(frozen=True, slots=True)
class GraphEdge:
    kind: EdgeKind
    left: str
    right: str
    weight: float | None = None

    @property
    def planned(self) -> bool:
        return self.weight is None


@dataclass(slots=True)
class LegendGraph:
    """
    Node and edge description of the current selection.

    Weight and planned mappings are keyed by ``"left||right"``. Categories
    disabled by the user stay in ``categories`` as inactive nodes when they
    have a planned relation; they never get edges.
    """

    sources: list[GraphNode] = field(default_factory=list)
    types: list[str] = field(default_factory=list)
    categories: list[GraphNode] = field(default_factory=list)
    source_type_weight: dict[str, float] = field(default_factory=dict)
    type_category_weight: dict[str, float] = field(default_factory=dict)
    source_category_weight: dict[str, float] = field(default_factory=dict)
    source_type_planned: dict[str, int] = field(default_factory=dict)
    type_category_planned: dict[str, int] = field(default_factory=dict)
    source_category_planned: dict[str, int] = field(default_factory=dict)

    def category(self, category: str) -> GraphNode | None:
        for node in self.categories:
            if node.id == category:
                return node
        return None

    def edges(self) -> list[GraphEdge]:
        """Flat edge list: actual edges first, then planned ones."""
        out: list[GraphEdge] = []
        weighted = (
            (EdgeKind.SOURCE_TYPE, self.source_type_weight),
            (EdgeKind.TYPE_CATEGORY, self.type_category_weight),
            (EdgeKind.SOURCE_CATEGORY, self.source_category_weight),
        )
        for kind, weights in weighted:
            for key, w in weights.items():
                left, right = split_pair(key)
                out.append(GraphEdge(kind, left, right, w))
        planned = (
            (EdgeKind.SOURCE_TYPE, self.source_type_planned),
            (EdgeKind.TYPE_CATEGORY, self.type_category_planned),
            (EdgeKind.SOURCE_CATEGORY, self.source_category_planned),
        )
        for kind, keys in planned:
            for key in keys:
                left, right = split_pair(key)
                out.append(GraphEdge(kind, left, right))
        return out


def _add(target: dict, key: str, value: float = 1) -> None:
    target[key] = target.get(key, 0) + value


def build_legend_graph(
    selected: Iterable[tuple[str, Model]],
    state: FilterState,
    *,
    enabled_types: Iterable[str],
    enabled_categories: Iterable[str],
    legend_categories: Iterable[str],
    merged: Model,
    labels: Mapping[str, str] | None = None,
) -> LegendGraph:
    """
    Build the legend graph.

    Args:
        selected: ``(source_id, model)`` pairs of the enabled sources
        state: Repaired filter state (mode and year window)
        enabled_types: Canonical enabled types
        enabled_categories: Categories of the current view
        legend_categories: Universe categories minus the disabled ones
        merged: Merge of the selected sources (planned relations)
        labels: Source id -> display label
    """
    selected = list(selected)
    labels = labels or {}
    type_list = list(dict.fromkeys(enabled_types))
    type_set = set(type_list)
    category_set = set(enabled_categories)
    legend_set = set(legend_categories)
    source_set = {sid for sid, _ in selected}

    graph = LegendGraph(
        sources=[GraphNode(sid, labels.get(sid) or sid) for sid, _ in selected],
        types=type_list,
    )

    filtered = iter_filtered_bars(selected, state, include_undated=True)
    for source_id, type_key, bar in filtered:
        if bar.category not in category_set or type_key not in type_set:
            continue
        v = bar.value(state.mode)
        if not math.isfinite(v) or v == 0:
            continue
        w = abs(v)
        _add(graph.source_type_weight, pair_key(source_id, type_key), w)
        _add(graph.type_category_weight, pair_key(type_key, bar.category), w)
        _add(graph.source_category_weight, pair_key(source_id, bar.category), w)

    planned_categories: set[str] = set()
    for key in merged.planned_source_type:
        sid, typ = split_pair(key)
        t = clean_key(typ)
        if sid in source_set and t in type_set:
            _add(graph.source_type_planned, pair_key(sid, t))

    for key in merged.planned_source_category:
        sid, cat = split_pair(key)
        if not sid or not cat or sid not in source_set:
            continue
        planned_categories.add(cat)
        if cat in legend_set:
            _add(graph.source_category_planned, pair_key(sid, cat))

    for key in merged.planned_type_category:
        typ, cat = split_pair(key)
        t = clean_key(typ)
        if not t or not cat or t not in type_set:
            continue
        planned_categories.add(cat)
        if cat in legend_set:
            _add(graph.type_category_planned, pair_key(t, cat))

    # A disabled category survives only as an inactive planned-relation node;
    # plain disabled categories are toggled from the options universe instead.
    nodes: dict[str, GraphNode] = {}
    for cat in merged.categories:
        if cat in category_set or (cat in legend_set and cat in planned_categories):
            nodes[cat] = GraphNode(cat, cat)
        elif cat in planned_categories:
            nodes[cat] = GraphNode(cat, cat, active=False)
    graph.categories = list(nodes.values())
    return graph

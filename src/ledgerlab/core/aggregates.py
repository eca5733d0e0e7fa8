"""
Flat aggregation: the single numeric source of truth for bars and totals.

Works directly on the per-source bars (tagged with their source id) instead of
on an already filtered model, so the totals never depend on how the view was
cut. One pass applies the source, type, year-window and category filters.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Mapping

from .derivations import in_window
from .keys import clean_key, locale_sort_key
from .model import Bar, Model
from .selection import FilterState, Mode

__all__ = ["AggregateBar", "Aggregates", "aggregate", "iter_filtered_bars"]


@dataclass(slots=True)
class AggregateBar:
    """Bar summed over all selected sources."""

    year_key: str
    year: int | None
    type: str
    category: str
    cost: float = 0.0
    quantity: float = 0.0

    def value(self, mode: Mode) -> float:
        return self.quantity if mode is Mode.QUANTITY else self.cost


@dataclass(frozen=True, slots=True)
class Aggregates:
    """
    Result of :func:`aggregate`.

    Totals are signed and refer to ``mode``. The ``visible_*`` lists describe
    the (year x source x type) slice and ignore the disabled categories, so a
    disabled category can always be re-enabled.
    """

    mode: Mode
    bars: tuple[AggregateBar, ...] = ()
    totals_by_category: Mapping[str, float] = field(default_factory=dict)
    totals_by_source: Mapping[str, float] = field(default_factory=dict)
    totals_by_type: Mapping[str, float] = field(default_factory=dict)
    totals_by_year: Mapping[str, float] = field(default_factory=dict)
    visible_categories: tuple[str, ...] = ()
    visible_types: tuple[str, ...] = ()
    visible_sources: tuple[str, ...] = ()
    has_any: bool = False

    def __post_init__(self):
        for name in (
            "totals_by_category",
            "totals_by_source",
            "totals_by_type",
            "totals_by_year",
        ):
            value = getattr(self, name)
            if not isinstance(value, MappingProxyType):
                object.__setattr__(self, name, MappingProxyType(dict(value)))

    @classmethod
    def empty(cls, mode: Mode = Mode.COST) -> Aggregates:
        return cls(mode=mode)

    @property
    def net(self) -> float:
        return sum(self.totals_by_category.values())


def iter_filtered_bars(
    sources: Iterable[tuple[str, Model]],
    state: FilterState,
    *,
    include_undated: bool | None = None,
) -> Iterator[tuple[str, str, Bar]]:
    """
    Yield ``(source_id, type_key, bar)`` for bars passing source, type and year.

    Undated bars follow ``state.include_undated`` unless ``include_undated``
    overrides it. Disabled categories are not applied here; callers decide how
    to treat them.
    """
    if include_undated is not None:
        state = replace(state, include_undated=include_undated)
    for source_id, model in sources:
        if not state.sources.contains(source_id):
            continue
        for bar in model.bars:
            if not in_window(bar, state):
                continue
            type_key = clean_key(bar.type)
            if not type_key or not state.types.contains(type_key):
                continue
            yield source_id, type_key, bar


def _bar_order(bar: AggregateBar):
    # Undated bucket sorts after every dated year
    year_rank = (1, 0) if bar.year is None else (0, bar.year)
    return (year_rank, locale_sort_key(bar.type), locale_sort_key(bar.category))


def aggregate(
    sources: Iterable[tuple[str, Model]], state: FilterState
) -> Aggregates:
    """
    Bars and per-dimension totals for the current filter state.

    Args:
        sources: ``(source_id, model)`` pairs of every loaded source
        state: Filter state (year window already repaired)

    Returns:
        Aggregates; zero values never count as data for ``has_any``
    """
    mode = state.mode
    visible_sources: dict[str, None] = {}
    visible_types: dict[str, None] = {}
    visible_categories: dict[str, None] = {}

    totals_by_category: dict[str, float] = {}
    totals_by_source: dict[str, float] = {}
    totals_by_type: dict[str, float] = {}
    totals_by_year: dict[str, float] = {}
    bars: dict[tuple[str, str, str], AggregateBar] = {}
    has_any = False

    for source_id, type_key, bar in iter_filtered_bars(sources, state):
        category = bar.category
        visible_sources.setdefault(source_id, None)
        visible_types.setdefault(type_key, None)
        visible_categories.setdefault(category, None)

        if category in state.disabled_categories:
            continue

        cost = bar.cost if math.isfinite(bar.cost) else None
        quantity = bar.quantity if math.isfinite(bar.quantity) else None
        if cost is None and quantity is None:
            continue

        key = (bar.year_key, type_key, category)
        acc = bars.get(key)
        if acc is None:
            acc = bars[key] = AggregateBar(
                year_key=bar.year_key, year=bar.year, type=type_key, category=category
            )
        if cost is not None:
            acc.cost += cost
        if quantity is not None:
            acc.quantity += quantity

        v = quantity if mode is Mode.QUANTITY else cost
        if v is None or v == 0:
            continue

        has_any = True
        totals_by_category[category] = totals_by_category.get(category, 0.0) + v
        totals_by_source[source_id] = totals_by_source.get(source_id, 0.0) + v
        totals_by_type[type_key] = totals_by_type.get(type_key, 0.0) + v
        totals_by_year[bar.year_key] = totals_by_year.get(bar.year_key, 0.0) + v

    return Aggregates(
        mode=mode,
        bars=tuple(sorted(bars.values(), key=_bar_order)),
        totals_by_category=totals_by_category,
        totals_by_source=totals_by_source,
        totals_by_type=totals_by_type,
        totals_by_year=totals_by_year,
        visible_categories=tuple(visible_categories),
        visible_types=tuple(visible_types),
        visible_sources=tuple(visible_sources),
        has_any=has_any,
    )

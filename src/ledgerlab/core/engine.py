"""
Derivation engine: loaded sources + filter state -> derived view.

One call per redraw. Every step is a pure computation over the loaded models;
the only state touched is the explicit :class:`~ledgerlab.core.cache.MergeCache`.
The caller's :class:`~ledgerlab.core.selection.FilterState` is never mutated;
the repaired state is returned as ``DerivedView.state``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace

from .aggregates import Aggregates, aggregate
from .cache import MergeCache
from .derivations import (
    YearDomain,
    in_range_universes,
    make_visible_model,
    require_year_domain,
    visible_categories,
)
from .errors import StructuralError
from .graph import LegendGraph, build_legend_graph
from .keys import clean_key, dedupe_stable
from .model import Model
from .selection import FilterState, clamp_disabled, clamp_selection
from .sources import SourceSet

logger = logging.getLogger(__name__)

__all__ = ["DerivedView", "Options", "YearBounds", "compute_derived"]


@dataclass(frozen=True, slots=True)
class YearBounds:
    """Visible (repaired) year window, inclusive."""

    year_from: int
    year_to: int


@dataclass(frozen=True, slots=True)
class Options:
    """
    Dropdown and slider universes.

    Attributes:
        year_domain: Full year domain over every loaded source
        year_bounds: Repaired visible year window
        sources: Loaded source ids, load order
        universe_types: Canonical types over every loaded source
        universe_categories: Category identities over every loaded source
        in_range_types: Types of dated bars in the window (selected sources)
        in_range_categories: Categories of dated bars in the window
    """

    year_domain: YearDomain
    year_bounds: YearBounds
    sources: tuple[str, ...]
    universe_types: tuple[str, ...]
    universe_categories: tuple[str, ...]
    in_range_types: tuple[str, ...]
    in_range_categories: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class DerivedView:
    """
    Output of one derivation pass.

    ``view`` and ``graph`` are None when the selection is empty; that is a
    "no data" result, not an error.
    """

    options: Options
    view: Model | None
    aggregates: Aggregates
    graph: LegendGraph | None
    state: FilterState

    @property
    def has_data(self) -> bool:
        return self.view is not None and self.aggregates.has_any


def _selection_signature(source_ids) -> str:
    return "|".join(sorted(source_ids))


def compute_derived(
    sources: SourceSet,
    state: FilterState | None = None,
    cache: MergeCache | None = None,
) -> DerivedView:
    """
    Run the derivation pipeline.

    Args:
        sources: Loaded per-source models
        state: Filter state (defaults to "everything enabled")
        cache: Merge cache; a private one is used when omitted

    Returns:
        DerivedView with the repaired filter state

    Raises:
        StructuralError: If no source is loaded, the year domain is empty or
            invalid, or the type/category universe is empty
    """
    if not isinstance(sources, SourceSet):
        raise StructuralError("sources must be a SourceSet")
    if not len(sources):
        raise StructuralError("No sources loaded")
    state = state or FilterState()
    if cache is None:
        cache = MergeCache()
    token = sources.token
    cache.bind(token)

    # 1) base: all loaded sources, unfiltered
    base = cache.merge(token, "base:*", sources.models())
    if base is None:
        raise StructuralError("Base model could not be built")
    domain = require_year_domain(base)

    universe_types = tuple(dedupe_stable(clean_key(t) for t in base.types if t))
    if not universe_types:
        raise StructuralError("Type universe is empty")
    universe_categories = tuple(dedupe_stable(base.categories))
    if not universe_categories:
        raise StructuralError("Category universe is empty")

    # 2) repair the filter state
    state = state.repaired(domain.min_year, domain.max_year)
    state = replace(
        state,
        sources=clamp_selection(state.sources, sources.ids()),
        types=clamp_selection(state.types, universe_types),
        disabled_categories=clamp_disabled(
            state.disabled_categories, universe_categories
        ),
    )
    bounds = YearBounds(state.year_from, state.year_to)

    def options(in_types=(), in_categories=()) -> Options:
        return Options(
            year_domain=domain,
            year_bounds=bounds,
            sources=tuple(sources.ids()),
            universe_types=universe_types,
            universe_categories=universe_categories,
            in_range_types=tuple(in_types) or universe_types,
            in_range_categories=tuple(in_categories) or universe_categories,
        )

    # 3) source selection
    enabled_sources = state.sources.resolve(sources.ids())
    if not enabled_sources:
        logger.debug("Derivation (token %s): no source selected", token)
        return DerivedView(
            options=options(),
            view=None,
            aggregates=Aggregates.empty(state.mode),
            graph=None,
            state=state,
        )

    if len(enabled_sources) == len(sources):
        merged = base
    else:
        signature = _selection_signature(enabled_sources)
        merged = cache.merge(
            token,
            f"selected:{signature}",
            [sources.get(sid) for sid in enabled_sources],
        )

    # 4) type selection + year window
    enabled_types = state.types.resolve(universe_types)
    in_types, in_categories = in_range_universes(merged, state)
    opts = options(in_types, in_categories)
    type_filtered = make_visible_model(merged, state, enabled_types=enabled_types)

    # 5) category selection
    enabled_categories = [
        c
        for c in visible_categories(type_filtered, state)
        if c not in state.disabled_categories
    ]
    view = make_visible_model(
        type_filtered, state, enabled_categories=enabled_categories
    )

    # 6) flat aggregation over every loaded source
    aggregates = aggregate(sources.items(), state)

    # 7) graph
    legend_categories = [
        c for c in universe_categories if c not in state.disabled_categories
    ]
    graph = build_legend_graph(
        [(sid, sources.get(sid)) for sid in enabled_sources],
        state,
        enabled_types=enabled_types,
        enabled_categories=enabled_categories,
        legend_categories=legend_categories,
        merged=merged,
        labels=sources.labels(),
    )

    logger.debug(
        "Derivation (token %s, sources %s): %d view bar(s), %d aggregate bar(s)",
        token,
        _selection_signature(enabled_sources),
        len(view.bars),
        len(aggregates.bars),
    )
    return DerivedView(
        options=opts,
        view=view,
        aggregates=aggregates,
        graph=graph,
        state=state,
    )

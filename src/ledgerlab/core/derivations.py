"""
Pure view derivations over a model and a filter state.

No I/O and no mutation: every function returns new values, so repeated calls
with unchanged inputs give identical results.
"""

from __future__ import annotations

import math
from collections.abc import Iterable
from dataclasses import dataclass

from .errors import StructuralError
from .keys import clean_key, dedupe_stable, locale_sorted
from .model import Bar, Model
from .selection import FilterState, Mode

EPS = 1e-9


@dataclass(frozen=True, slots=True)
class YearDomain:
    """Universe year domain (independent of the filter state)."""

    min_year: int
    max_year: int


@dataclass(frozen=True, slots=True)
class NetInfo:
    """Net sum of the visible totals."""

    net: float
    year_from: int
    year_to: int
    mode: Mode


def year_domain(model: Model) -> YearDomain | None:
    """Min/max over the model's numeric years; None when there are none."""
    years = [y for y in model.years if isinstance(y, int)]
    if not years:
        return None
    return YearDomain(min_year=min(years), max_year=max(years))


def require_year_domain(model: Model) -> YearDomain:
    """
    Year domain or a structural error.

    Raises:
        StructuralError: If the domain is empty, non-finite or inverted
    """
    domain = year_domain(model)
    if domain is None:
        raise StructuralError("Year domain is empty (no dated rows in any source)")
    if not all(math.isfinite(v) for v in (domain.min_year, domain.max_year)):
        raise StructuralError("Year domain is not finite")
    if domain.min_year > domain.max_year:
        raise StructuralError("Year domain is inverted")
    return domain


def in_window(bar: Bar, state: FilterState) -> bool:
    """Dated bars must lie in the window; undated bars only when opted in."""
    if bar.year is None:
        return state.include_undated
    if state.year_from is not None and bar.year < state.year_from:
        return False
    if state.year_to is not None and bar.year > state.year_to:
        return False
    return True


def in_range_universes(model: Model, state: FilterState) -> tuple[list[str], list[str]]:
    """
    Types and categories present in the year window, from dated bars only.

    Independent of the enabled types and disabled categories, so dropdowns
    never starve: a de-selected entry can always be re-enabled.
    """
    types: set[str] = set()
    categories: set[str] = set()
    for b in model.bars:
        if b.year is None or not in_window(b, state):
            continue
        types.add(clean_key(b.type))
        categories.add(b.category)
    return locale_sorted(types), locale_sorted(categories)


def make_visible_model(
    model: Model,
    state: FilterState,
    *,
    enabled_types: Iterable[str] | None = None,
    enabled_categories: Iterable[str] | None = None,
) -> Model:
    """
    Cut the bars to (year window x enabled types x enabled categories).

    ``years`` is rebuilt from the remaining dated bars. When
    ``enabled_categories`` is given, ``categories`` becomes that list.
    """
    types = None if enabled_types is None else set(enabled_types)
    cats = None if enabled_categories is None else dedupe_stable(enabled_categories)
    cat_set = None if cats is None else set(cats)

    bars = [
        b
        for b in model.bars
        if in_window(b, state)
        and (types is None or clean_key(b.type) in types)
        and (cat_set is None or b.category in cat_set)
    ]
    # undated metadata survives even when the window drops those bars
    if cats is None:
        return model.with_bars(bars, has_undated=model.has_undated)
    return model.with_bars(bars, categories=tuple(cats), has_undated=model.has_undated)


def visible_categories(model: Model, state: FilterState) -> list[str]:
    """
    Categories present in the model's window, in universe order.

    Falls back to the model's full category list when nothing is visible.
    """
    present = {b.category for b in model.bars if in_window(b, state)}
    ordered = [c for c in model.categories if c in present]
    ordered.extend(locale_sorted(present - set(ordered)))
    return ordered if ordered else list(model.categories)


def compute_totals(model: Model, state: FilterState) -> tuple[dict[str, float], bool]:
    """Per-category signed totals of the model's visible bars for the current mode."""
    totals: dict[str, float] = {}
    has_any = False
    for b in model.bars:
        if not in_window(b, state):
            continue
        value = b.value(state.mode)
        if not math.isfinite(value):
            continue
        has_any = True
        totals[b.category] = totals.get(b.category, 0.0) + value
    return totals, has_any


def compute_net_info(view: Model, state: FilterState) -> NetInfo | None:
    """Net of the view's totals; None when the state has no year window."""
    if state.year_from is None or state.year_to is None:
        return None
    totals, _ = compute_totals(view, state)
    net = sum(v for v in totals.values() if math.isfinite(v))
    return NetInfo(
        net=net, year_from=state.year_from, year_to=state.year_to, mode=state.mode
    )


def money_tone(value: object, eps: float = EPS) -> str:
    """Classify a signed amount as ``"pos"``, ``"neg"`` or ``"zero"``."""
    try:
        n = float(value)
    except (TypeError, ValueError):
        return "zero"
    if not math.isfinite(n) or abs(n) <= eps:
        return "zero"
    return "pos" if n > 0 else "neg"


def category_year_span(
    models: Iterable[tuple[str, Model]], state: FilterState
) -> dict[str, tuple[int, int]]:
    """
    First and last dated year per category over enabled sources and types.

    The year window is deliberately ignored.
    """
    span: dict[str, tuple[int, int]] = {}
    for source_id, model in models:
        if not state.sources.contains(source_id):
            continue
        for b in model.bars:
            if b.year is None or not state.types.contains(clean_key(b.type)):
                continue
            lo, hi = span.get(b.category, (b.year, b.year))
            span[b.category] = (min(lo, b.year), max(hi, b.year))
    return span

"""
Merge engine: N per-source models -> one logical model.

Pure function of its inputs. Category strings keep their identity; merge order
decides display order (first seen wins) but never membership.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence

from .keys import UNDATED_LABEL, clean_key, clean_text, is_valid_year
from .model import Bar, DetailRecord, Model

logger = logging.getLogger(__name__)

__all__ = ["merge_models"]


def _resolve_undated_label(models: Sequence[Model]) -> str:
    """First non-default label wins, otherwise the built-in label."""
    for m in models:
        label = clean_text(m.undated_label)
        if label and label != UNDATED_LABEL:
            return label
    return UNDATED_LABEL


def _year_from_key(year_key: str) -> int | None:
    """Numeric year encoded in a year key, if any."""
    text = clean_text(year_key)
    if text.isdigit():
        year = int(text)
        return year if is_valid_year(year) else None
    return None


def _add_unique(out: dict[str, None], values) -> None:
    for v in values:
        if v and v not in out:
            out[v] = None


def merge_models(models: Sequence[Model]) -> Model:
    """
    Combine per-source models.

    - ``years``: union of numeric years only, ascending
    - ``categories`` / ``types``: union in first-seen order
    - ``bars``: refolded by ``(year_key, category, type)``; a concrete year
      beats ``None`` when sources disagree
    - ``details_by_key``: concatenated per key, source order preserved
    - planned relations: union with set semantics
    - ``unit_by_category``: first writer wins

    Args:
        models: Per-source models in merge order

    Returns:
        Merged model; an empty model for an empty input
    """
    models = [m for m in models if m is not None]
    undated_label = _resolve_undated_label(models)

    years: set[int] = set()
    categories: dict[str, None] = {}
    types: dict[str, None] = {}
    unit_by_category: dict[str, str] = {}
    acc: dict[tuple[str, str, str], list] = {}
    details: dict[str, list[DetailRecord]] = {}
    planned_source_category: dict[str, None] = {}
    planned_source_type: dict[str, None] = {}
    planned_type_category: dict[str, None] = {}

    for m in models:
        years.update(y for y in m.years if is_valid_year(y))
        _add_unique(categories, m.categories)
        _add_unique(types, (clean_key(t) for t in m.types))

        for category, unit in m.unit_by_category.items():
            if category and unit and category not in unit_by_category:
                unit_by_category[category] = unit

        for b in m.bars:
            year = b.year if is_valid_year(b.year) else _year_from_key(b.year_key)
            if year is None:
                year_key = undated_label
            else:
                year_key = b.year_key or str(year)
                years.add(year)
            key = (year_key, b.category, clean_key(b.type))
            slot = acc.setdefault(key, [year, 0.0, 0.0])
            if slot[0] is None and year is not None:
                slot[0] = year
            if math.isfinite(b.cost):
                slot[1] += b.cost
            if math.isfinite(b.quantity):
                slot[2] += b.quantity

        for key, rows in m.details_by_key.items():
            if rows:
                details.setdefault(key, []).extend(rows)

        _add_unique(planned_source_category, m.planned_source_category)
        _add_unique(planned_source_type, m.planned_source_type)
        _add_unique(planned_type_category, m.planned_type_category)

    bars = tuple(
        Bar(
            year_key=year_key,
            year=year,
            category=category,
            type=type_key,
            cost=cost,
            quantity=quantity,
        )
        for (year_key, category, type_key), (year, cost, quantity) in acc.items()
    )
    has_undated = any(b.year is None or b.year_key == undated_label for b in bars)

    logger.debug("Merged %d model(s) into %d bar(s)", len(models), len(bars))

    return Model(
        years=tuple(sorted(years)),
        categories=tuple(categories),
        types=tuple(types),
        bars=bars,
        unit_by_category=unit_by_category,
        details_by_key={k: tuple(v) for k, v in details.items()},
        planned_source_category=tuple(planned_source_category),
        planned_source_type=tuple(planned_source_type),
        planned_type_category=tuple(planned_type_category),
        has_undated=has_undated,
        undated_label=undated_label,
    )

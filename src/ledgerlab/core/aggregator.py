"""
Per-source aggregator: canonical records -> :class:`Model`.

Contract:
    * Universes (years, categories, types) include planned rows, so a category
      that only ever appears in a planned relation still shows up in filters.
    * Actual rows are folded into bars keyed by ``(year_key, category, type)``.
    * Planned rows only produce relation keys (no amounts).
    * Only chartable rows (dated or explicitly undated) take part.
"""

from __future__ import annotations

import math
from collections.abc import Iterable

from .errors import StructuralError
from .keys import (
    UNDATED_LABEL,
    clean_key,
    clean_text,
    dedupe_stable,
    detail_key,
    locale_sorted,
    pair_key,
)
from .model import Bar, DetailRecord, Model
from .parser import parse_source
from .records import Record

__all__ = ["DEFAULT_DETAIL_LIMIT", "build_aggregates", "build_model", "year_key_of"]

DEFAULT_DETAIL_LIMIT = 50


def year_key_of(record: Record, undated_label: str = UNDATED_LABEL) -> str:
    """Bucket key of a chartable record."""
    return undated_label if record.year is None else str(record.year)


def _require_source_id(source_id: str | None) -> str:
    sid = clean_text(source_id)
    if not sid:
        raise StructuralError("source_id is required (detail provenance)")
    return sid


def build_aggregates(
    records: Iterable[Record],
    source_id: str,
    *,
    universe_records: Iterable[Record] | None = None,
    detail_limit: int = DEFAULT_DETAIL_LIMIT,
) -> Model:
    """
    Fold one source's records into a model.

    Args:
        records: Records that feed bars, relations and details
        source_id: Owning source (required)
        universe_records: Records that feed the universes (defaults to ``records``)
        detail_limit: Maximum retained detail rows per bucket (oldest first)

    Raises:
        StructuralError: If there are no records or the source id is missing
    """
    sid = _require_source_id(source_id)
    rows = list(records)
    universe_rows = rows if universe_records is None else list(universe_records)
    if not universe_rows:
        raise StructuralError(f"No usable rows in source '{sid}'")
    if detail_limit < 1:
        raise StructuralError("detail_limit must be >= 1")

    chartable = [r for r in rows if r.is_chartable]
    universe_chartable = [r for r in universe_rows if r.is_chartable]

    years = tuple(sorted({r.year for r in universe_chartable if r.year is not None}))
    categories = tuple(locale_sorted(r.category for r in universe_chartable))
    types = tuple(locale_sorted(clean_key(r.type) for r in universe_chartable))

    # First non-empty unit per category wins
    unit_by_category: dict[str, str] = {}
    for r in universe_chartable:
        if r.unit and r.category not in unit_by_category:
            unit_by_category[r.category] = r.unit

    planned_source_category: list[str] = []
    planned_source_type: list[str] = []
    planned_type_category: list[str] = []

    # (year_key, category, type) -> [year, cost, quantity]
    acc: dict[tuple[str, str, str], list] = {}
    details: dict[str, list[DetailRecord]] = {}

    for r in chartable:
        category = r.category
        type_key = clean_key(r.type)
        if not category or not type_key:
            continue

        year_key = year_key_of(r)
        bucket = details.setdefault(detail_key(year_key, category, type_key), [])
        if len(bucket) < detail_limit:
            bucket.append(
                DetailRecord(
                    source_id=sid,
                    category=category,
                    type=type_key,
                    status=r.status.value,
                    memo=r.memo,
                    is_undated=r.is_undated,
                    raw_fields=r.raw_fields,
                )
            )

        if r.is_planned:
            planned_source_category.append(pair_key(sid, category))
            planned_source_type.append(pair_key(sid, type_key))
            planned_type_category.append(pair_key(type_key, category))
            continue

        slot = acc.setdefault((year_key, category, type_key), [r.year, 0.0, 0.0])
        if math.isfinite(r.amount):
            slot[1] += r.amount
        if math.isfinite(r.quantity):
            slot[2] += r.quantity

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

    return Model(
        years=years,
        categories=categories,
        types=types,
        bars=bars,
        unit_by_category=unit_by_category,
        details_by_key={k: tuple(v) for k, v in details.items()},
        planned_source_category=tuple(dedupe_stable(planned_source_category)),
        planned_source_type=tuple(dedupe_stable(planned_source_type)),
        planned_type_category=tuple(dedupe_stable(planned_type_category)),
        has_undated=any(b.year is None for b in bars),
        undated_label=UNDATED_LABEL,
    )


def build_model(
    text: str,
    delimiter: str = ";",
    *,
    source_id: str,
    type_filter: str | None = None,
    detail_limit: int = DEFAULT_DETAIL_LIMIT,
) -> Model:
    """
    Parse and aggregate one source.

    Pipeline: text -> lines -> header mapping -> records -> (optional type
    filter) -> model. The universes are always built from every chartable
    row, so a type filter never hides dropdown entries.

    Args:
        text: Raw delimited text
        delimiter: Cell delimiter
        source_id: Source identifier (required)
        type_filter: Only fold rows of this booking type (canonicalized)
        detail_limit: Maximum retained detail rows per bucket

    Raises:
        StructuralError: On a missing source id, a malformed header or no usable rows
    """
    sid = _require_source_id(source_id)
    parsed = parse_source(text, delimiter)
    if not parsed.records:
        raise StructuralError(
            f"No usable rows in source '{sid}'. "
            "Check amount column, delimiter and header."
        )

    wanted = clean_key(type_filter)
    rows = (
        [r for r in parsed.records if clean_key(r.type) == wanted]
        if wanted
        else parsed.records
    )
    return build_aggregates(
        rows,
        sid,
        universe_records=parsed.records,
        detail_limit=detail_limit,
    )

"""
Detail lookup: the raw rows behind a category (optionally one year and type).
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass

from .keys import clean_key, locale_sort_key, split_detail_key
from .model import DetailRecord, Model
from .parser import COLUMN_ALIASES, parse_number
from .selection import FilterState

__all__ = ["DETAIL_ROW_LIMIT", "DetailRow", "DetailSlice", "collect_details"]

DETAIL_ROW_LIMIT = 500


@dataclass(frozen=True, slots=True)
class DetailRow:
    """One retained raw row, annotated for display."""

    record: DetailRecord
    source_label: str
    slice_year_key: str
    is_current_year: bool = False

    @property
    def source_id(self) -> str:
        return self.record.source_id

    def cell(self, column: str) -> str:
        """Raw cell of a semantic column (``"amount"``, ``"year"``...), or ``""``."""
        aliases = COLUMN_ALIASES.get(column, (column,))
        for name, value in self.record.raw_fields.items():
            if name.lower() in aliases:
                return value
        return ""

    @property
    def amount(self) -> float:
        return parse_number(self.cell("amount"))

    def as_row(self) -> dict[str, str]:
        row = self.record.as_row()
        row["source_label"] = self.source_label
        row["year_key"] = self.slice_year_key
        return row


@dataclass(frozen=True, slots=True)
class DetailSlice:
    """
    Result of :func:`collect_details`.

    ``rows`` is capped; ``total`` is the uncapped number of matching rows.
    """

    category: str
    rows: tuple[DetailRow, ...] = ()
    total: int = 0
    year_key: str | None = None
    type_key: str | None = None
    columns: tuple[str, ...] = ()

    @property
    def truncated(self) -> bool:
        return self.total > len(self.rows)


def _sort_key(row: DetailRow):
    amount = row.amount
    amount_rank = (0, -amount) if math.isfinite(amount) else (1, 0.0)
    return (
        locale_sort_key(row.source_label or row.source_id),
        locale_sort_key(row.cell("year")),
        amount_rank,
    )


def _parse_year(year_key: str) -> int | None:
    try:
        return int(year_key)
    except ValueError:
        return None


def _in_window(year: int | None, state: FilterState) -> bool:
    if year is None:
        return True
    if state.year_from is not None and year < state.year_from:
        return False
    if state.year_to is not None and year > state.year_to:
        return False
    return True


def collect_details(
    view: Model | None,
    state: FilterState,
    category: str,
    year_key: str | None = None,
    type_key: str | None = None,
    include_previous_years: bool = True,
    labels: Mapping[str, str] | None = None,
    limit: int = DETAIL_ROW_LIMIT,
) -> DetailSlice:
    """
    Collect the detail rows of one category.

    Args:
        view: Model whose detail index is searched (the derived view)
        state: Repaired filter state (sources, types, year window)
        category: Category identity, matched exactly
        year_key: Targeted year bucket; None means every bucket in the window
        type_key: Restrict to one booking type
        include_previous_years: With ``year_key``, also include earlier years
            and undated buckets
        labels: Source id -> display label
        limit: Maximum number of returned rows

    Returns:
        DetailSlice sorted by source label, year cell and amount (descending)
    """
    target_key = None if year_key is None or str(year_key) == "" else str(year_key)
    if type_key is not None:
        type_key = clean_key(type_key) or None
    empty = DetailSlice(category=category, year_key=target_key, type_key=type_key)
    if view is None:
        return empty

    labels = labels or {}
    undated_label = view.undated_label
    target_year = None if target_key is None else _parse_year(target_key)

    if target_year is not None and not _in_window(target_year, state):
        return empty

    out: list[DetailRow] = []
    for key, records in view.details_by_key.items():
        k_year, k_category, k_type = split_detail_key(key)
        if k_category != category:
            continue
        if type_key is not None and k_type != type_key:
            continue
        if not state.types.contains(k_type):
            continue

        is_undated = k_year == undated_label
        if target_key is not None and not include_previous_years:
            if k_year != target_key:
                continue
        elif not is_undated:
            y = _parse_year(k_year)
            if target_key is not None:
                if target_year is None or y is None:
                    if k_year != target_key:
                        continue
                elif y > target_year:
                    continue
            if not _in_window(y, state):
                continue

        for record in records:
            if not state.sources.contains(record.source_id):
                continue
            out.append(
                DetailRow(
                    record=record,
                    source_label=labels.get(record.source_id) or record.source_id,
                    slice_year_key=k_year,
                    is_current_year=target_key is not None and k_year == target_key,
                )
            )

    out.sort(key=_sort_key)
    columns: list[str] = ["source", "source_label"]
    if out:
        columns.extend(c for c in out[0].record.raw_fields if c not in columns)
    return DetailSlice(
        category=category,
        rows=tuple(out[: max(0, int(limit))]),
        total=len(out),
        year_key=target_key,
        type_key=type_key,
        columns=tuple(columns),
    )

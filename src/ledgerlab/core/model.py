"""
Model structures shared by the aggregator, the merge engine and the derivation engine.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Mapping

from .keys import UNDATED_LABEL


@dataclass(frozen=True, slots=True)
class Bar:
    """
    One aggregated (year-or-undated x category x type) tuple.

    Unique per ``(year_key, category, type)`` within one model. ``year_key`` is
    the literal year as a string, or the undated label.
    """

    year_key: str
    year: int | None
    category: str
    type: str
    cost: float = 0.0
    quantity: float = 0.0

    @property
    def key(self) -> tuple[str, str, str]:
        return (self.year_key, self.category, self.type)

    @property
    def is_undated(self) -> bool:
        return self.year is None

    def value(self, mode) -> float:
        """Signed value for the given :class:`~ledgerlab.core.selection.Mode`."""
        if getattr(mode, "value", mode) == "quantity":
            return self.quantity
        return self.cost


@dataclass(frozen=True, slots=True)
class DetailRecord:
    """A retained raw row, used by detail lookups."""

    source_id: str
    category: str
    type: str
    status: str
    memo: str
    is_undated: bool
    raw_fields: Mapping[str, str] = field(default_factory=dict)

    def as_row(self) -> dict[str, str]:
        """Flat row: source, raw cells, then status and memo."""
        row = {"source": self.source_id}
        row.update(self.raw_fields)
        row["status"] = self.status
        row["memo"] = self.memo
        return row


@dataclass(frozen=True, slots=True)
class Model:
    """
    Per-source or merged model.

    Attributes:
        years: Numeric years, ascending (undated never appears here)
        categories: Category identities, first-seen order
        types: Canonical booking types, first-seen order
        bars: Actual-only aggregates
        unit_by_category: First non-empty unit per category
        details_by_key: ``"yearKey||category||type"`` -> retained detail rows
        planned_source_category: ``"source||category"`` relation keys
        planned_source_type: ``"source||type"`` relation keys
        planned_type_category: ``"type||category"`` relation keys
        has_undated: True if any bar is undated
        undated_label: Label of the undated bucket
    """

    years: tuple[int, ...] = ()
    categories: tuple[str, ...] = ()
    types: tuple[str, ...] = ()
    bars: tuple[Bar, ...] = ()
    unit_by_category: Mapping[str, str] = field(default_factory=dict)
    details_by_key: Mapping[str, tuple[DetailRecord, ...]] = field(
        default_factory=dict
    )
    planned_source_category: tuple[str, ...] = ()
    planned_source_type: tuple[str, ...] = ()
    planned_type_category: tuple[str, ...] = ()
    has_undated: bool = False
    undated_label: str = UNDATED_LABEL

    def __post_init__(self):
        for name in ("unit_by_category", "details_by_key"):
            value = getattr(self, name)
            if not isinstance(value, MappingProxyType):
                object.__setattr__(self, name, MappingProxyType(dict(value)))

    def with_bars(self, bars, **changes) -> Model:
        """Copy with a different bar list; the years are rebuilt from dated bars."""
        bars = tuple(bars)
        years = tuple(sorted({b.year for b in bars if b.year is not None}))
        has_undated = any(b.year is None for b in bars)
        changes.setdefault("years", years)
        changes.setdefault("has_undated", has_undated)
        return replace(self, bars=bars, **changes)

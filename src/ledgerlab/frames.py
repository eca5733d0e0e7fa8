"""
Tidy pandas exports of derived results.

All functions return a fresh DataFrame with a fixed column set, also when
there is nothing to export, so callers can rely on the schema.
"""

from __future__ import annotations

import numpy as np
import pandas as pd

from .core.aggregates import Aggregates
from .core.inspector import DetailSlice
from .core.model import Model

BAR_COLUMNS = ["year_key", "year", "type", "category", "cost", "quantity"]
TOTAL_COLUMNS = ["dimension", "key", "value"]
VIEW_COLUMNS = ["year_key", "year", "category", "type", "cost", "quantity"]


def _year_series(values) -> pd.Series:
    return pd.Series(
        [np.nan if y is None else float(y) for y in values], dtype="float64"
    )


def bars_frame(aggregates: Aggregates) -> pd.DataFrame:
    """Aggregate bars; ``year`` is NaN for the undated bucket."""
    if not aggregates.bars:
        return pd.DataFrame(columns=BAR_COLUMNS)
    df = pd.DataFrame(
        {
            "year_key": [b.year_key for b in aggregates.bars],
            "type": [b.type for b in aggregates.bars],
            "category": [b.category for b in aggregates.bars],
            "cost": [b.cost for b in aggregates.bars],
            "quantity": [b.quantity for b in aggregates.bars],
        }
    )
    df.insert(1, "year", _year_series(b.year for b in aggregates.bars))
    return df


def totals_frame(aggregates: Aggregates) -> pd.DataFrame:
    """Every totals mapping in long form (``dimension``, ``key``, ``value``)."""
    records = []
    for dimension, totals in (
        ("category", aggregates.totals_by_category),
        ("source", aggregates.totals_by_source),
        ("type", aggregates.totals_by_type),
        ("year", aggregates.totals_by_year),
    ):
        records.extend(
            {"dimension": dimension, "key": key, "value": value}
            for key, value in totals.items()
        )
    if not records:
        return pd.DataFrame(columns=TOTAL_COLUMNS)
    return pd.DataFrame.from_records(records, columns=TOTAL_COLUMNS)


def view_frame(view: Model | None) -> pd.DataFrame:
    """Bars of a (view) model."""
    if view is None or not view.bars:
        return pd.DataFrame(columns=VIEW_COLUMNS)
    df = pd.DataFrame(
        {
            "year_key": [b.year_key for b in view.bars],
            "category": [b.category for b in view.bars],
            "type": [b.type for b in view.bars],
            "cost": [b.cost for b in view.bars],
            "quantity": [b.quantity for b in view.bars],
        }
    )
    df.insert(1, "year", _year_series(b.year for b in view.bars))
    return df


def details_frame(detail_slice: DetailSlice) -> pd.DataFrame:
    """One row per detail record: source, label, raw cells, status, memo."""
    rows = [row.as_row() for row in detail_slice.rows]
    if not rows:
        return pd.DataFrame(columns=list(detail_slice.columns))
    df = pd.DataFrame.from_records(rows)
    df["is_current_year"] = [row.is_current_year for row in detail_slice.rows]
    return df

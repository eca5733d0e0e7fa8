"""
Chart functions for derived ledger views.

All chart functions return (figure, tidy_dataframe_used) for consistency.
"""

from __future__ import annotations

import numpy as np
import pandas as pd
import plotly.express as px
import plotly.graph_objects as go

from .core.engine import DerivedView
from .core.selection import Mode
from .frames import view_frame

EDGE_COLUMNS = ["kind", "left", "right", "weight", "planned"]

_COLUMN_X = {"source": 0.0, "type": 1.0, "category": 2.0}


def _empty_figure(title: str) -> go.Figure:
    fig = go.Figure()
    fig.update_layout(
        title=title,
        annotations=[
            {
                "text": "No data for current filter",
                "showarrow": False,
                "xref": "paper",
                "yref": "paper",
                "x": 0.5,
                "y": 0.5,
            }
        ],
    )
    return fig


def _value_label(mode: Mode) -> str:
    return "Quantity" if mode is Mode.QUANTITY else "Cost"


def grouped_year_chart(derived: DerivedView) -> tuple[go.Figure, pd.DataFrame]:
    """
    Grouped bars per year bucket and category for the current mode.

    The undated bucket is plotted after the last dated year.

    Args:
        derived: Result of :func:`~ledgerlab.core.engine.compute_derived`

    Returns:
        Tuple of (plotly_figure, tidy_dataframe_used) with columns
        ``year_key``, ``year``, ``category``, ``value``
    """
    mode = derived.state.mode
    title = f"{_value_label(mode)} by Year and Category"
    bars = view_frame(derived.view)
    if bars.empty:
        return _empty_figure(title), pd.DataFrame(
            columns=["year_key", "year", "category", "value"]
        )

    tidy = (
        bars.assign(value=bars[mode.value])
        .groupby(["year_key", "category"], as_index=False, sort=False)
        .agg(year=("year", "first"), value=("value", "sum"))
    )
    # NaN years (undated) go last
    tidy["_order"] = tidy["year"].fillna(np.inf)
    tidy = tidy.sort_values(["_order", "year_key"], kind="stable").drop(
        columns="_order"
    )
    tidy = tidy[["year_key", "year", "category", "value"]].reset_index(drop=True)

    year_order = list(dict.fromkeys(tidy["year_key"]))
    category_order = [c for c in derived.view.categories if c in set(tidy["category"])]
    fig = px.bar(
        tidy,
        x="year_key",
        y="value",
        color="category",
        barmode="group",
        title=title,
        category_orders={"year_key": year_order, "category": category_order},
        labels={
            "year_key": "Year",
            "value": _value_label(mode),
            "category": "Category",
        },
    )
    fig.update_layout(hovermode="x unified", legend_title="Category")
    return fig, tidy


def _edges_frame(derived: DerivedView) -> pd.DataFrame:
    if derived.graph is None:
        return pd.DataFrame(columns=EDGE_COLUMNS)
    records = [
        {
            "kind": edge.kind.value,
            "left": edge.left,
            "right": edge.right,
            "weight": np.nan if edge.weight is None else edge.weight,
            "planned": edge.planned,
        }
        for edge in derived.graph.edges()
    ]
    if not records:
        return pd.DataFrame(columns=EDGE_COLUMNS)
    return pd.DataFrame.from_records(records, columns=EDGE_COLUMNS)


def _positions(labels: list[str], column: str) -> dict[str, tuple[float, float]]:
    ys = np.linspace(1.0, 0.0, num=len(labels)) if len(labels) > 1 else [0.5]
    x = _COLUMN_X[column]
    return {label: (x, float(y)) for label, y in zip(labels, ys)}


def relationship_chart(derived: DerivedView) -> tuple[go.Figure, pd.DataFrame]:
    """
    Source / type / category network in three columns.

    Actual edges are solid with a width scaled by weight; planned edges are
    dashed. Inactive category nodes are drawn greyed out without edges.

    Returns:
        Tuple of (plotly_figure, edges_dataframe_used)
    """
    title = "Sources, Types and Categories"
    edges = _edges_frame(derived)
    graph = derived.graph
    if graph is None:
        return _empty_figure(title), edges

    pos: dict[tuple[str, str], tuple[float, float]] = {}
    for column, labels in (
        ("source", [n.id for n in graph.sources]),
        ("type", list(graph.types)),
        ("category", [n.id for n in graph.categories]),
    ):
        for label, xy in _positions(labels, column).items():
            pos[(column, label)] = xy

    endpoints = {
        "source_type": ("source", "type"),
        "type_category": ("type", "category"),
        "source_category": ("source", "category"),
    }
    max_weight = edges["weight"].max(skipna=True) if not edges.empty else np.nan
    fig = go.Figure()
    for edge in edges.itertuples(index=False):
        left_col, right_col = endpoints[edge.kind]
        a = pos.get((left_col, edge.left))
        b = pos.get((right_col, edge.right))
        if a is None or b is None:
            continue
        if edge.planned or not np.isfinite(max_weight) or max_weight <= 0:
            width = 1.0
        else:
            width = 1.0 + 7.0 * float(edge.weight) / float(max_weight)
        fig.add_trace(
            go.Scatter(
                x=[a[0], b[0]],
                y=[a[1], b[1]],
                mode="lines",
                line={"width": width, "dash": "dash" if edge.planned else "solid"},
                hoverinfo="text",
                text=f"{edge.left} -> {edge.right}",
                showlegend=False,
            )
        )

    source_labels = {n.id: n.label for n in graph.sources}
    for column in ("source", "type", "category"):
        keys = [k for k in pos if k[0] == column]
        colors = [
            "lightgrey"
            if column == "category" and not graph.category(label).active
            else "steelblue"
            for _, label in keys
        ]
        fig.add_trace(
            go.Scatter(
                x=[pos[k][0] for k in keys],
                y=[pos[k][1] for k in keys],
                mode="markers+text",
                marker={"size": 14, "color": colors},
                text=[
                    source_labels.get(label, label) if column == "source" else label
                    for _, label in keys
                ],
                textposition="middle right" if column != "category" else "middle left",
                name=column.title(),
                showlegend=False,
            )
        )

    fig.update_layout(
        title=title,
        xaxis={"visible": False, "range": [-0.5, 2.5]},
        yaxis={"visible": False, "range": [-0.1, 1.1]},
    )
    return fig, edges


def save_chart(fig: go.Figure, filename: str, format: str = "html") -> None:
    """
    Save chart to file.

    Args:
        fig: Plotly figure
        filename: Output filename
        format: Output format ('html', 'json')
    """
    if format == "html":
        fig.write_html(filename)
    elif format == "json":
        fig.write_json(filename)
    else:
        raise ValueError(f"Unsupported format: {format}")

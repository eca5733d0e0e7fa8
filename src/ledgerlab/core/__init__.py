"""
Core module for LedgerLab.

This module contains the ledger engine: row parsing, per-source aggregation,
merging, filter derivation, the legend graph and detail lookups. Everything
here is pure in-memory computation; loading and presentation live one level
up.
"""

from .aggregates import AggregateBar, Aggregates, aggregate, iter_filtered_bars
from .aggregator import DEFAULT_DETAIL_LIMIT, build_aggregates, build_model
from .cache import MergeCache
from .derivations import (
    NetInfo,
    YearDomain,
    category_year_span,
    compute_net_info,
    compute_totals,
    in_range_universes,
    make_visible_model,
    money_tone,
    visible_categories,
    year_domain,
)
from .engine import DerivedView, Options, YearBounds, compute_derived
from .errors import ConfigError, StructuralError
from .exceptions import SourceLoadError
from .graph import EdgeKind, GraphEdge, GraphNode, LegendGraph, build_legend_graph
from .inspector import DetailRow, DetailSlice, collect_details
from .keys import UNDATED_LABEL, UNKNOWN
from .merge import merge_models
from .model import Bar, DetailRecord, Model
from .parser import ParseResult, parse_number, parse_source
from .records import Record, Status
from .selection import (
    AllOf,
    ExactlyOf,
    FilterState,
    Mode,
    Selection,
    selection_from_ids,
)
from .sources import SourceSet

__all__ = [
    # Errors
    "ConfigError",
    "SourceLoadError",
    "StructuralError",
    # Records and models
    "Bar",
    "DetailRecord",
    "Model",
    "Record",
    "Status",
    "UNDATED_LABEL",
    "UNKNOWN",
    # Parsing and aggregation
    "DEFAULT_DETAIL_LIMIT",
    "ParseResult",
    "build_aggregates",
    "build_model",
    "parse_number",
    "parse_source",
    # Merge
    "MergeCache",
    "SourceSet",
    "merge_models",
    # Filter state
    "AllOf",
    "ExactlyOf",
    "FilterState",
    "Mode",
    "Selection",
    "selection_from_ids",
    # Derivations
    "NetInfo",
    "YearDomain",
    "category_year_span",
    "compute_net_info",
    "compute_totals",
    "in_range_universes",
    "make_visible_model",
    "money_tone",
    "visible_categories",
    "year_domain",
    # Engine
    "AggregateBar",
    "Aggregates",
    "DerivedView",
    "Options",
    "YearBounds",
    "aggregate",
    "compute_derived",
    "iter_filtered_bars",
    # Graph and details
    "EdgeKind",
    "GraphEdge",
    "GraphNode",
    "LegendGraph",
    "build_legend_graph",
    "DetailRow",
    "DetailSlice",
    "collect_details",
]

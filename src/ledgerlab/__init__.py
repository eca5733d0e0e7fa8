"""
LedgerLab - Aggregation, merge and filtering of ledger CSV sources

LedgerLab turns one or more delimited ledger files (bookings with category,
booking type, year or date range, amount, quantity and a planned/actual
status) into per-source models, merges them, and derives filtered views,
totals and a source/type/category relationship graph for charting.

Key Features:
- **Tolerant parsing**: German or English headers, comma or period decimals,
  year cells or date ranges, explicit undated rows
- **Identity categories**: category strings are never case-folded or
  normalized beyond trimming
- **Explicit selections**: ``AllOf`` / ``ExactlyOf`` instead of "empty means all"
- **Single source of truth**: totals come from one filtered pass over the
  per-source bars
- **Planned relations**: presence-only edges for planned bookings
- **Exports**: tidy pandas frames and Plotly charts

Quick Start:
    ```python
    from ledgerlab import FilterState, compute_derived, load_config, load_sources

    config = load_config("ledgerlab.yaml")
    report = load_sources(config)
    derived = compute_derived(report.sources, FilterState.create(mode="cost"))
    print(dict(derived.aggregates.totals_by_category))
    ```
"""

# Version information
__version__ = "0.1.0"
__author__ = "LedgerLab Team"
__description__ = "Aggregation, merge and filtering of ledger CSV sources"

from .config import LedgerConfig, SourceConfig, load_config
from .core import (
    AllOf,
    ConfigError,
    DerivedView,
    ExactlyOf,
    FilterState,
    MergeCache,
    Mode,
    Model,
    SourceLoadError,
    SourceSet,
    StructuralError,
    build_model,
    collect_details,
    compute_derived,
    merge_models,
)
from .loader import LoadReport, load_sources

__all__ = [
    # Configuration and loading
    "LedgerConfig",
    "SourceConfig",
    "load_config",
    "LoadReport",
    "load_sources",
    # Errors
    "ConfigError",
    "SourceLoadError",
    "StructuralError",
    # Engine
    "AllOf",
    "DerivedView",
    "ExactlyOf",
    "FilterState",
    "MergeCache",
    "Mode",
    "Model",
    "SourceSet",
    "build_model",
    "collect_details",
    "compute_derived",
    "merge_models",
]

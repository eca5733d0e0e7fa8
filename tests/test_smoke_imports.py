"""
Smoke tests to verify basic imports and functionality.
"""

import pytest


def test_import_ledgerlab():
    """Test that we can import the main package."""
    import ledgerlab

    assert hasattr(ledgerlab, "__version__")
    assert ledgerlab.__version__ == "0.1.0"


def test_import_core_components():
    """Test that core components can be imported."""
    from ledgerlab import (
        FilterState,
        SourceSet,
        StructuralError,
        build_model,
        compute_derived,
        merge_models,
    )

    assert FilterState is not None
    assert SourceSet is not None
    assert issubclass(StructuralError, ValueError)
    assert build_model is not None
    assert compute_derived is not None
    assert merge_models is not None


def test_import_outer_modules():
    """Test that config, loader, frames and charts can be imported."""
    from ledgerlab import charts, cli, config, frames, loader

    for module in (charts, cli, config, frames, loader):
        assert module is not None


def test_basic_derivation():
    """Test that we can derive a view from one small source."""
    from ledgerlab import FilterState, SourceSet, build_model, compute_derived

    sources = SourceSet()
    sources.add(
        "energy",
        build_model(
            "Kategorie;Jahr;Betrag\nStrom;2024;-10,50\nGas;2024;-4\n",
            source_id="energy",
        ),
    )

    derived = compute_derived(sources, FilterState())

    assert derived.has_data
    assert derived.aggregates.net == pytest.approx(-14.5)
    assert derived.options.universe_types == ("?",)

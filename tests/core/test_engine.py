"""
Tests for the derivation pipeline.
"""

from __future__ import annotations

import pytest
from ledgerlab.core.aggregator import build_model
from ledgerlab.core.cache import MergeCache
from ledgerlab.core.engine import compute_derived
from ledgerlab.core.errors import StructuralError
from ledgerlab.core.keys import UNDATED_LABEL
from ledgerlab.core.merge import merge_models
from ledgerlab.core.selection import AllOf, ExactlyOf, FilterState, Mode
from ledgerlab.core.sources import SourceSet


def test_options_describe_universes(source_set):
    derived = compute_derived(source_set, FilterState())
    options = derived.options

    assert (options.year_domain.min_year, options.year_domain.max_year) == (
        2020,
        2022,
    )
    assert options.sources == ("A", "B")
    assert options.universe_categories == (
        "Dach",
        "Miete",
        "Strom",
        "Wasser",
        "Versicherung",
    )
    assert options.universe_types == ("Betrieb", "Einnahmen", "Invest", "Fix")


def test_state_is_repaired_not_mutated(source_set):
    state = FilterState(year_from=1990, year_to=None)

    derived = compute_derived(source_set, state)

    assert (derived.state.year_from, derived.state.year_to) == (2020, 2022)
    bounds = derived.options.year_bounds
    assert (bounds.year_from, bounds.year_to) == (2020, 2022)
    assert state.year_from == 1990
    assert state.year_to is None


def test_inverted_window_is_swapped(source_set):
    derived = compute_derived(source_set, FilterState(year_from=2022, year_to=2021))
    assert (derived.state.year_from, derived.state.year_to) == (2021, 2022)


def test_totals_for_all_sources(source_set):
    aggregates = compute_derived(source_set, FilterState()).aggregates

    assert aggregates.has_any
    assert dict(aggregates.totals_by_category) == {
        "Strom": -300.0,
        "Miete": 1000.0,
        "Versicherung": -300.0,
    }
    assert dict(aggregates.totals_by_source) == {"A": 880.0, "B": -380.0}
    assert dict(aggregates.totals_by_year) == {
        "2020": -180.0,
        "2021": 880.0,
        "2022": -300.0,
    }
    assert aggregates.net == pytest.approx(400.0)


def test_aggregate_bars_are_merged_and_sorted(source_set):
    bars = compute_derived(source_set, FilterState()).aggregates.bars

    assert [(b.year_key, b.type, b.category) for b in bars] == [
        ("2020", "Betrieb", "Strom"),
        ("2021", "Betrieb", "Strom"),
        ("2021", "Einnahmen", "Miete"),
        ("2022", "Fix", "Versicherung"),
    ]
    assert bars[0].cost == -180.0
    assert bars[0].quantity == 90.0


def test_quantity_mode(source_set):
    derived = compute_derived(source_set, FilterState(mode=Mode.QUANTITY))
    assert dict(derived.aggregates.totals_by_category) == {"Strom": 150.0}


def test_year_window_limits_bars(source_set):
    derived = compute_derived(source_set, FilterState(year_from=2021, year_to=2021))

    assert set(derived.aggregates.totals_by_category) == {"Strom", "Miete"}
    assert derived.view.years == (2021,)
    assert all(b.year == 2021 for b in derived.view.bars)
    # undated metadata is kept even though its bars are cut
    assert derived.view.has_undated is True
    assert derived.view.undated_label == UNDATED_LABEL
    assert derived.options.in_range_types == ("Betrieb", "Einnahmen")
    assert derived.options.in_range_categories == ("Miete", "Strom")


def test_undated_amounts_stay_out_of_windowed_totals():
    sources = SourceSet()
    sources.add(
        "A",
        build_model(
            "Kategorie;Buchungstyp;Jahr;Betrag;Status\n"
            "Strom;Betrieb;2020;-100;\n"
            "Strom;Betrieb;;-7;ist\n"
            "Wasser;Betrieb;;-30;ist\n",
            source_id="A",
        ),
    )

    derived = compute_derived(sources, FilterState(year_from=2020, year_to=2020))

    assert dict(derived.aggregates.totals_by_category) == {"Strom": -100.0}
    assert dict(derived.aggregates.totals_by_year) == {"2020": -100.0}
    assert [b.year_key for b in derived.view.bars] == ["2020"]
    # the legend graph still counts undated amounts of visible categories
    assert derived.graph.type_category_weight["Betrieb||Strom"] == 107.0
    assert "Betrieb||Wasser" not in derived.graph.type_category_weight


def test_undated_bucket_is_opt_in(source_set):
    derived = compute_derived(source_set, FilterState(include_undated=True))

    assert derived.aggregates.totals_by_year[UNDATED_LABEL] == -30.0
    assert derived.aggregates.totals_by_category["Wasser"] == -30.0
    assert derived.aggregates.net == pytest.approx(370.0)
    assert "Wasser" in derived.view.categories
    assert derived.aggregates.bars[-1].year_key == UNDATED_LABEL


def test_type_selection(source_set):
    derived = compute_derived(source_set, FilterState.create(types=["Fix"]))

    assert [b.category for b in derived.view.bars] == ["Versicherung"]
    assert dict(derived.aggregates.totals_by_type) == {"Fix": -300.0}
    # dropdown universes never starve
    assert "Betrieb" in derived.options.in_range_types


def test_source_selection(source_set):
    derived = compute_derived(source_set, FilterState.create(sources=["B"]))

    assert dict(derived.aggregates.totals_by_source) == {"B": -380.0}
    assert derived.view.categories == ("Strom", "Versicherung")
    assert [n.id for n in derived.graph.sources] == ["B"]
    # domain still comes from every loaded source
    assert derived.options.year_domain.min_year == 2020


def test_disabled_category_is_filtered_but_kept_in_universe(source_set):
    state = FilterState(disabled_categories=frozenset({"Strom"}))

    derived = compute_derived(source_set, state)

    assert "Strom" not in derived.view.categories
    assert "Strom" not in derived.aggregates.totals_by_category
    assert "Strom" in derived.options.universe_categories
    assert "Strom" in derived.aggregates.visible_categories
    assert derived.state.disabled_categories == frozenset({"Strom"})


def test_disabled_planned_category_stays_in_graph(source_set):
    state = FilterState(disabled_categories=frozenset({"Dach"}))

    derived = compute_derived(source_set, state)

    node = derived.graph.category("Dach")
    assert node is not None
    assert node.active is False
    assert "Dach" in derived.options.universe_categories
    assert all(edge.right != "Dach" for edge in derived.graph.edges())


def test_stale_disabled_categories_are_dropped(source_set):
    state = FilterState(disabled_categories=frozenset({"Strom", "Alt"}))
    derived = compute_derived(source_set, state)
    assert derived.state.disabled_categories == frozenset({"Strom"})


def test_empty_selection_yields_empty_view(source_set):
    derived = compute_derived(source_set, FilterState(sources=ExactlyOf()))

    assert derived.view is None
    assert derived.graph is None
    assert derived.aggregates.has_any is False
    assert not derived.has_data
    assert derived.options.in_range_categories == derived.options.universe_categories


def test_unknown_sources_are_clamped_to_empty(source_set):
    derived = compute_derived(source_set, FilterState.create(sources=["gone"]))
    assert derived.state.sources == ExactlyOf()
    assert derived.view is None


def test_derivation_is_idempotent(source_set):
    state = FilterState(disabled_categories=frozenset({"Dach"}))
    cache = MergeCache()

    first = compute_derived(source_set, state, cache)
    second = compute_derived(source_set, state, cache)

    assert first == second
    assert first == compute_derived(source_set, state)


def test_merge_results_are_cached_per_token(source_set):
    cache = MergeCache()

    compute_derived(source_set, FilterState(), cache)
    compute_derived(source_set, FilterState(), cache)
    assert (cache.hits, cache.misses) == (1, 1)

    source_set.add(
        "C",
        build_model("Kategorie;Jahr;Betrag\nGas;2023;-10\n", source_id="C"),
    )
    derived = compute_derived(source_set, FilterState(), cache)
    assert cache.misses == 2
    assert cache.token == source_set.token
    assert derived.options.year_domain.max_year == 2023


def test_subset_selection_uses_selection_signature():
    sources = SourceSet()
    for sid in ("a", "b", "c"):
        sources.add(
            sid,
            build_model("Kategorie;Jahr;Betrag\nGas;2020;-10\n", source_id=sid),
        )
    cache = MergeCache()
    state = FilterState.create(sources=["c", "a"])

    derived = compute_derived(sources, state, cache)
    compute_derived(sources, state, cache)

    assert dict(derived.aggregates.totals_by_source) == {"a": -10.0, "c": -10.0}
    assert derived.view.bars[0].cost == -20.0
    assert cache.hits == 2  # base and "selected:a|c"


def test_no_sources_is_structural_error():
    with pytest.raises(StructuralError, match="No sources"):
        compute_derived(SourceSet(), FilterState())


def test_undated_only_sources_have_no_domain():
    sources = SourceSet()
    sources.add(
        "u", build_model("Kategorie;Jahr;Betrag;Status\nGas;;-10;ist\n", source_id="u")
    )
    with pytest.raises(StructuralError, match="Year domain"):
        compute_derived(sources, FilterState())


def test_default_state():
    sources = SourceSet()
    sources.add(
        "a", build_model("Kategorie;Jahr;Betrag\nGas;2020;-10\n", source_id="a")
    )
    derived = compute_derived(sources)
    assert derived.state.sources == AllOf()
    assert derived.has_data


def test_empty_caller_cache_is_reused(source_set):
    calls = []

    def counting_merge(models):
        calls.append(len(models))
        return merge_models(models)

    cache = MergeCache(counting_merge)
    assert len(cache) == 0

    for _ in range(3):
        compute_derived(source_set, FilterState(), cache)

    assert calls == [2]
    assert len(cache) == 1
    assert cache.token == source_set.token

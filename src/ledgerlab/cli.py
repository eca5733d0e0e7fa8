"""
Command-line interface for LedgerLab.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys

import yaml

from . import __version__
from .config import load_config
from .core.derivations import category_year_span, compute_net_info, money_tone
from .core.engine import compute_derived
from .core.exceptions import SourceLoadError
from .core.inspector import collect_details
from .core.selection import FilterState
from .frames import details_frame
from .loader import load_sources

logger = logging.getLogger(__name__)

EXAMPLE_CONFIG = {
    "delimiter": ";",
    "detail_limit": 50,
    "sources": [
        {"id": "house", "label": "House", "path": "house.csv"},
        {"id": "flat", "label": "Flat", "path": "flat.csv"},
    ],
}

EXAMPLE_CSV = """\
Gegenpartei;Kostenart;Kategorie;Buchungstyp;Von;Bis;Jahr;Betrag;Menge;Einheit;Status;Memo
Stadtwerke;Betrieb;Strom;Nebenkosten;;;2023;-640,50;2100;kWh;ist;Jahresabrechnung
Stadtwerke;Betrieb;Strom;Nebenkosten;01.01.2024;31.12.2024;;-702,10;2250;kWh;ist;
Versicherung AG;Fix;Versicherung;Fixkosten;;;2024;-310,00;;;ist;Gebaeude
Mieter;Einnahme;Miete;Einnahmen;;;2024;9.600,00;;;ist;
Handwerker;Invest;Dach;Instandhaltung;;;;-15.000,00;;;geplant;Angebot einholen
"""


def _configure_logging(verbosity: int) -> None:
    if verbosity >= 2:
        level = logging.DEBUG
    elif verbosity == 1:
        level = logging.INFO
    else:
        level = logging.WARNING
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


def _load(config_path: str):
    """Load config and sources; failed sources are reported on stderr."""
    config = load_config(config_path)
    report = load_sources(config)
    for error in report.failures.values():
        print(f"Warning: {error}", file=sys.stderr)
    return config, report


def _state_from_args(args) -> FilterState:
    return FilterState.create(
        sources=getattr(args, "source", None),
        types=getattr(args, "type", None),
        disabled_categories=getattr(args, "disable_category", None) or (),
        year_from=getattr(args, "year_from", None),
        year_to=getattr(args, "year_to", None),
        mode=getattr(args, "mode", "cost"),
        include_undated=getattr(args, "include_undated", False),
    )


def _dump_json(data) -> None:
    json.dump(data, sys.stdout, indent=2, ensure_ascii=False)
    sys.stdout.write("\n")


def _span_suffix(span) -> str:
    """First and last dated year of a category, ignoring the year window."""
    if span is None:
        return ""
    first, last = span
    return f" ({first})" if first == last else f" ({first}-{last})"


def cmd_summary(args) -> int:
    """Print totals for the current filter."""
    try:
        _, report = _load(args.config)
        derived = compute_derived(report.sources, _state_from_args(args))
        state = derived.state
        aggregates = derived.aggregates
        net = compute_net_info(derived.view, state) if derived.view else None
        spans = category_year_span(report.sources.items(), state)

        if args.json:
            _dump_json(
                {
                    "year_from": state.year_from,
                    "year_to": state.year_to,
                    "mode": state.mode.value,
                    "has_data": derived.has_data,
                    "net": net.net if net else 0.0,
                    "tone": money_tone(net.net if net else 0.0),
                    "totals_by_category": dict(aggregates.totals_by_category),
                    "totals_by_source": dict(aggregates.totals_by_source),
                    "totals_by_type": dict(aggregates.totals_by_type),
                    "totals_by_year": dict(aggregates.totals_by_year),
                    "category_years": {
                        c: list(spans[c])
                        for c in aggregates.totals_by_category
                        if c in spans
                    },
                    "sources": list(derived.options.sources),
                    "failed_sources": list(report.failures),
                }
            )
            return 0

        if not derived.has_data:
            print("No data for current filter")
            return 0

        labels = ", ".join(report.sources.label(s) for s in derived.options.sources)
        print(
            f"Years {state.year_from}-{state.year_to}, "
            f"mode: {state.mode.value}, sources: {labels}"
        )
        print("By category:")
        for category, value in aggregates.totals_by_category.items():
            print(f"  {category}: {value:,.2f}{_span_suffix(spans.get(category))}")
        print("By year:")
        for year_key, value in aggregates.totals_by_year.items():
            print(f"  {year_key}: {value:,.2f}")
        if net is not None:
            print(f"Net: {net.net:,.2f} ({money_tone(net.net)})")
        return 0

    except Exception as e:
        print(f"Error computing summary: {e}", file=sys.stderr)
        return 1


def cmd_details(args) -> int:
    """Print the detail rows of one category."""
    try:
        _, report = _load(args.config)
        derived = compute_derived(report.sources, _state_from_args(args))
        detail_slice = collect_details(
            derived.view,
            derived.state,
            args.category,
            year_key=args.year_key,
            type_key=args.detail_type,
            include_previous_years=not args.only_year,
            labels=report.sources.labels(),
        )
        frame = details_frame(detail_slice)

        if args.json:
            _dump_json(
                {
                    "category": detail_slice.category,
                    "year_key": detail_slice.year_key,
                    "type": detail_slice.type_key,
                    "total": detail_slice.total,
                    "rows": frame.to_dict("records"),
                }
            )
            return 0

        if not detail_slice.rows:
            print(f"No detail rows for category '{args.category}'")
            return 0
        print(frame.to_string(index=False))
        if detail_slice.truncated:
            print(f"... {detail_slice.total - len(detail_slice.rows)} more row(s)")
        return 0

    except Exception as e:
        print(f"Error collecting details: {e}", file=sys.stderr)
        return 1


def cmd_validate(args) -> int:
    """Parse every configured source and report the outcome."""
    try:
        config = load_config(args.config)
        try:
            report = load_sources(config)
            loaded, failures = report.loaded, report.failures
        except SourceLoadError as e:
            loaded, failures = {}, {e.source_id: e}

        results = []
        for entry in config.sources:
            if entry.id in loaded:
                item = loaded[entry.id]
                results.append(
                    {
                        "id": entry.id,
                        "label": entry.label,
                        "ok": True,
                        "rows": item.rows,
                        "skipped": item.skipped,
                        "bars": len(item.model.bars),
                    }
                )
            else:
                results.append(
                    {
                        "id": entry.id,
                        "label": entry.label,
                        "ok": False,
                        "error": str(failures[entry.id]),
                    }
                )

        if args.json:
            _dump_json({"is_valid": not failures, "sources": results})
        else:
            for item in results:
                if item["ok"]:
                    print(
                        f"OK    {item['id']}: {item['rows']} row(s), "
                        f"{item['skipped']} skipped, {item['bars']} bar(s)"
                    )
                else:
                    print(f"FAIL  {item['id']}: {item['error']}")
        return 1 if failures else 0

    except Exception as e:
        print(f"Validation failed: {e}", file=sys.stderr)
        return 1


def cmd_example(_) -> int:
    """Print an example configuration and source file."""
    print("# ledgerlab.yaml")
    sys.stdout.write(yaml.safe_dump(EXAMPLE_CONFIG, sort_keys=False))
    print()
    print("# house.csv")
    sys.stdout.write(EXAMPLE_CSV)
    return 0


def _add_filter_arguments(
    parser: argparse.ArgumentParser, *, with_types: bool = True
) -> None:
    parser.add_argument("--from", dest="year_from", type=int, help="First year")
    parser.add_argument("--to", dest="year_to", type=int, help="Last year")
    parser.add_argument(
        "--mode", choices=["cost", "quantity"], default="cost", help="Value channel"
    )
    parser.add_argument(
        "--source", nargs="*", help="Enabled source ids (default: all)"
    )
    if with_types:
        parser.add_argument(
            "--type", nargs="*", help="Enabled booking types (default: all)"
        )
    parser.add_argument(
        "--disable-category", nargs="*", default=[], help="Categories to disable"
    )
    parser.add_argument(
        "--include-undated",
        action="store_true",
        help="Count the undated bucket in view and totals",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ledgerlab", description="LedgerLab - ledger aggregation and filtering"
    )
    parser.add_argument(
        "--version", action="version", version=f"LedgerLab {__version__}"
    )
    parser.add_argument(
        "-v", "--verbose", action="count", default=0, help="More logging (-vv: debug)"
    )

    subparsers = parser.add_subparsers(
        dest="cmd", required=True, help="Available commands"
    )

    # Summary command
    summary_parser = subparsers.add_parser(
        "summary", help="Print totals for the current filter"
    )
    summary_parser.add_argument(
        "-c", "--config", required=True, help="Configuration file (YAML/JSON)"
    )
    _add_filter_arguments(summary_parser)
    summary_parser.add_argument(
        "--json", action="store_true", help="Output in JSON format"
    )
    summary_parser.set_defaults(func=cmd_summary)

    # Details command
    details_parser = subparsers.add_parser(
        "details", help="Print the detail rows of a category"
    )
    details_parser.add_argument(
        "-c", "--config", required=True, help="Configuration file (YAML/JSON)"
    )
    details_parser.add_argument("--category", required=True, help="Category")
    details_parser.add_argument("--year-key", help="Year bucket (or undated label)")
    details_parser.add_argument(
        "--type", dest="detail_type", help="Restrict to one booking type"
    )
    details_parser.add_argument(
        "--only-year",
        action="store_true",
        help="Only the given year bucket (no earlier years)",
    )
    _add_filter_arguments(details_parser, with_types=False)
    details_parser.add_argument(
        "--json", action="store_true", help="Output in JSON format"
    )
    details_parser.set_defaults(func=cmd_details)

    # Validate command
    validate_parser = subparsers.add_parser(
        "validate", help="Parse every source and report problems"
    )
    validate_parser.add_argument(
        "-c", "--config", required=True, help="Configuration file (YAML/JSON)"
    )
    validate_parser.add_argument(
        "--json", action="store_true", help="Output in JSON format"
    )
    validate_parser.set_defaults(func=cmd_validate)

    # Example command
    example_parser = subparsers.add_parser(
        "example", help="Print an example configuration and CSV"
    )
    example_parser.set_defaults(func=cmd_example)

    return parser


def main(argv: list[str] | None = None) -> None:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)
    sys.exit(args.func(args))


if __name__ == "__main__":
    main()

"""
Shared ledger fixtures.

Source ``A`` (label "House"):
    Strom/Betrieb 2020 -100 (qty 50), Strom/Betrieb 2021 -120 (qty 60),
    Miete/Einnahmen 2021 +1000, Wasser/Betrieb undated actual -30,
    Dach/Invest undated planned.
Source ``B`` (label "Flat"):
    Strom/Betrieb 2020 -80 (qty 40), Versicherung/Fix 2022 -300.
"""

from __future__ import annotations

from pathlib import Path

import pytest
from ledgerlab.core.aggregator import build_model
from ledgerlab.core.sources import SourceSet

SOURCE_A = """\
Kategorie;Buchungstyp;Jahr;Betrag;Menge;Status;Memo
Strom;Betrieb;2020;-100;50;;Abschlag
Strom;Betrieb;2021;-120;60;;Abschlag
Miete;Einnahmen;2021;1000;;;Mieter
Wasser;Betrieb;;-30;;ist;ohne Jahr
Dach;Invest;;-5000;;;Angebot
"""

SOURCE_B = """\
Kategorie;Buchungstyp;Jahr;Betrag;Menge;Status;Memo
Strom;Betrieb;2020;-80;40;;
Versicherung;Fix;2022;-300;;;Police
"""


@pytest.fixture
def source_set() -> SourceSet:
    sources = SourceSet()
    sources.add("A", build_model(SOURCE_A, source_id="A"), label="House")
    sources.add("B", build_model(SOURCE_B, source_id="B"), label="Flat")
    return sources


@pytest.fixture
def ledger_config(tmp_path: Path) -> Path:
    """Config file plus both source files on disk."""
    (tmp_path / "a.csv").write_text(SOURCE_A, encoding="utf-8")
    (tmp_path / "b.csv").write_text(SOURCE_B, encoding="utf-8")
    config = tmp_path / "ledgerlab.yaml"
    config.write_text(
        "delimiter: ';'\n"
        "sources:\n"
        "  - {id: A, label: House, path: a.csv}\n"
        "  - {id: B, label: Flat, path: b.csv}\n",
        encoding="utf-8",
    )
    return config

"""
Row parser: delimited source text -> canonical records.

Expected header (any order, case-insensitive; German or English names)::

    Gegenpartei;Kostenart;Kategorie;Buchungstyp;Von;Bis;Jahr;Betrag;Menge;Einheit;Status;Memo

Only ``Kategorie`` and ``Betrag`` are required.

Year contract:
    * A ``Jahr`` cell holding a valid year (1900-2100) is authoritative and is
      never overridden by the ``Von``/``Bis`` cells.
    * Otherwise the year is derived from ``Bis``, then ``Von``.
    * A row is undated iff ``Jahr``, ``Von`` and ``Bis`` are all empty.
      A present but invalid ``Jahr`` cell falls back to the date cells.
"""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass

from .errors import StructuralError
from .keys import (
    category_id,
    clean_key,
    clean_text,
    dim_or_unknown,
    is_valid_year,
)
from .records import Record, Status

logger = logging.getLogger(__name__)

__all__ = [
    "COLUMN_ALIASES",
    "ColumnIndex",
    "ParseResult",
    "header_index",
    "parse_number",
    "parse_rows",
    "parse_source",
    "resolve_year",
    "split_line",
    "split_lines",
    "year_from_date",
]

# Semantic column -> accepted header names (lower-case)
COLUMN_ALIASES: dict[str, tuple[str, ...]] = {
    "counterparty": ("gegenpartei", "counterparty"),
    "cost_account_type": ("kostenart", "cost_account_type", "cost-account-type"),
    "category": ("kategorie", "category"),
    "type": ("buchungstyp", "type", "booking_type", "booking-type"),
    "date_from": ("von", "from", "from_date", "from-date"),
    "date_to": ("bis", "to", "to_date", "to-date"),
    "year": ("jahr", "year"),
    "amount": ("betrag", "amount"),
    "quantity": ("menge", "quantity"),
    "unit": ("einheit", "unit"),
    "status": ("status",),
    "memo": ("memo",),
}

_LINE_RE = re.compile(r"\r?\n")
_ISO_DATE_RE = re.compile(r"^(\d{4})[-/](\d{1,2})[-/](\d{1,2})(?:[ T].*)?$")
_DMY_DATE_RE = re.compile(r"^(\d{1,2})[./](\d{1,2})[./](\d{4})(?:\s.*)?$")
_INT_PREFIX_RE = re.compile(r"^[+-]?\d+")
_NUMBER_RE = re.compile(r"^[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?$")
_MINUS_VARIANTS = str.maketrans({"\u2212": "-", "\u2013": "-"})


@dataclass(frozen=True, slots=True)
class ColumnIndex:
    """Position of every semantic column in the header (-1 when absent)."""

    header: tuple[str, ...]
    positions: dict[str, int]

    def __getitem__(self, name: str) -> int:
        return self.positions.get(name, -1)

    def has(self, name: str) -> bool:
        return self[name] >= 0


@dataclass(frozen=True, slots=True)
class ParseResult:
    """Parsed records plus the header mapping (consumed by the aggregator)."""

    records: list[Record]
    columns: ColumnIndex
    skipped: int = 0


def split_lines(text: str) -> list[str]:
    """Split into trimmed, non-empty lines."""
    lines = (clean_text(line) for line in _LINE_RE.split(str(text or "")))
    return [line for line in lines if line]


def split_line(line: str, delimiter: str) -> list[str]:
    """Split one line positionally; empty cells are kept so positions stay stable."""
    return [clean_text(part) for part in clean_text(line).split(delimiter)]


def parse_number(raw: str) -> float:
    """
    Parse a decimal cell; returns NaN when the cell is empty or malformed.

    Comma and period are both accepted as decimal separator. When both appear,
    the right-most one is the decimal separator and the other is a thousands
    separator.
    """
    t = clean_text(raw).translate(_MINUS_VARIANTS)
    t = t.replace("\u00a0", "").replace(" ", "")
    if not t:
        return math.nan

    if "," in t and "." in t:
        if t.rfind(",") > t.rfind("."):
            t = t.replace(".", "").replace(",", ".")
        else:
            t = t.replace(",", "")
    elif "," in t:
        if t.count(",") > 1:
            return math.nan
        t = t.replace(",", ".")

    if not _NUMBER_RE.match(t):
        return math.nan
    value = float(t)
    return value if math.isfinite(value) else math.nan


def _parse_int_prefix(raw: str) -> int | None:
    m = _INT_PREFIX_RE.match(clean_text(raw))
    return int(m.group(0)) if m else None


def year_from_date(raw: str) -> int | None:
    """
    Extract a year from common date formats.

    Supports ``YYYY-MM-DD``, ``YYYY/MM/DD`` (optionally with a time suffix),
    ``DD.MM.YYYY`` and ``DD/MM/YYYY``.
    """
    t = clean_text(raw)
    if not t:
        return None

    m = _ISO_DATE_RE.match(t)
    if m:
        y = int(m.group(1))
        return y if is_valid_year(y) else None

    m = _DMY_DATE_RE.match(t)
    if m:
        y = int(m.group(3))
        return y if is_valid_year(y) else None

    return None


def resolve_year(year_raw: str, to_raw: str, from_raw: str) -> int | None:
    """Resolve a row's year: valid year cell, else ``to`` date, else ``from`` date."""
    if clean_text(year_raw):
        y = _parse_int_prefix(year_raw)
        if y is not None and is_valid_year(y):
            return y
    derived = year_from_date(to_raw)
    if derived is None:
        derived = year_from_date(from_raw)
    return derived


def header_index(header_parts: list[str]) -> ColumnIndex:
    """
    Map header cells to semantic columns.

    Raises:
        StructuralError: If the category or amount column is missing
    """
    lowered = [clean_text(h).lower() for h in header_parts]
    positions: dict[str, int] = {}
    for name, aliases in COLUMN_ALIASES.items():
        for alias in aliases:
            if alias in lowered:
                positions[name] = lowered.index(alias)
                break

    if "category" not in positions or "amount" not in positions:
        raise StructuralError(
            "Incomplete CSV header. Required: Kategorie, Betrag. Header: "
            + " | ".join(header_parts)
        )
    header = tuple(clean_text(h) for h in header_parts)
    return ColumnIndex(header=header, positions=positions)


def _cell(parts: list[str], idx: int) -> str:
    return parts[idx] if 0 <= idx < len(parts) else ""


def _column(parts: list[str], columns: ColumnIndex, name: str) -> str:
    return _cell(parts, columns[name])


def parse_rows(
    lines: list[str], delimiter: str, columns: ColumnIndex
) -> tuple[list[Record], int]:
    """
    Parse data lines (``lines[1:]``) into records.

    Rows whose amount does not parse are skipped. Returns the records and the
    number of skipped rows.
    """
    records: list[Record] = []
    skipped = 0

    for line in lines[1:]:
        parts = split_line(line, delimiter)
        amount = parse_number(_column(parts, columns, "amount"))
        if math.isnan(amount):
            skipped += 1
            continue

        quantity = (
            parse_number(_column(parts, columns, "quantity"))
            if columns.has("quantity")
            else math.nan
        )

        year_raw = _column(parts, columns, "year")
        from_raw = _column(parts, columns, "date_from")
        to_raw = _column(parts, columns, "date_to")
        is_undated = not (year_raw or from_raw or to_raw)
        year = None if is_undated else resolve_year(year_raw, to_raw, from_raw)

        raw_fields = {
            name: _cell(parts, idx)
            for idx, name in enumerate(columns.header)
            if name
        }

        records.append(
            Record(
                year=year,
                is_undated=is_undated,
                category=category_id(_column(parts, columns, "category")),
                type=dim_or_unknown(_column(parts, columns, "type")),
                cost_account_type=dim_or_unknown(
                    _column(parts, columns, "cost_account_type")
                ),
                amount=amount,
                quantity=quantity,
                unit=clean_text(_column(parts, columns, "unit")),
                status=Status.resolve(
                    clean_key(_column(parts, columns, "status")), is_undated
                ),
                memo=clean_text(_column(parts, columns, "memo")),
                raw_fields=raw_fields,
            )
        )

    return records, skipped


def parse_source(text: str, delimiter: str = ";") -> ParseResult:
    """
    Parse one source's raw text.

    Raises:
        StructuralError: If there are no data lines or the header is incomplete
    """
    if not delimiter:
        raise StructuralError("Delimiter must be a non-empty string")

    lines = split_lines(text)
    if len(lines) < 2:
        raise StructuralError("CSV is empty or has no data lines")

    columns = header_index(split_line(lines[0], delimiter))
    records, skipped = parse_rows(lines, delimiter, columns)
    if skipped:
        logger.debug("Skipped %d row(s) with unparseable amount", skipped)
    return ParseResult(records=records, columns=columns, skipped=skipped)

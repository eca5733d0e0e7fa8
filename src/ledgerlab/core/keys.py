"""
Canonicalization helpers shared by every pipeline stage.

Two kinds of string fields flow through LedgerLab:

* **Identity fields** (categories) are only trimmed; an empty value becomes
  ``"?"``. They are never case-folded, Unicode-normalized or otherwise
  transformed, and are used as exact-match keys everywhere.
* **Canonical fields** (booking type, cost-account type) are normalized with
  :func:`clean_key` so filters and keys stay stable across sources.
"""

from __future__ import annotations

import re
import unicodedata

UNKNOWN = "?"
UNDATED_LABEL = "Undatiert"
KEY_SEP = "||"

MIN_YEAR = 1900
MAX_YEAR = 2100

_WS_RE = re.compile(r"\s+")


def clean_text(value: object) -> str:
    """Strip a leading BOM and surrounding whitespace."""
    if value is None:
        return ""
    return str(value).lstrip("\ufeff").strip()


def clean_key(value: object) -> str:
    """Canonicalize a type-like value: NBSP to space, collapse whitespace, trim."""
    if value is None:
        return ""
    s = str(value).replace("\u00a0", " ")
    return _WS_RE.sub(" ", s).strip()


def dim_or_unknown(value: object) -> str:
    """Canonical dimension value; empty becomes ``"?"``."""
    return clean_key(value) or UNKNOWN


def category_id(value: object) -> str:
    """
    Category identity: trim only, empty becomes ``"?"``.

    This is the one and only normalization a category ever receives.
    """
    return clean_text(value) or UNKNOWN


def is_valid_year(year: object) -> bool:
    """Check that ``year`` is an integer inside the supported range."""
    return (
        isinstance(year, int)
        and not isinstance(year, bool)
        and MIN_YEAR <= year <= MAX_YEAR
    )


def pair_key(left: str, right: str) -> str:
    """Relation key ``"left||right"`` (literal strings, no normalization)."""
    return f"{left}{KEY_SEP}{right}"


def split_pair(key: str) -> tuple[str, str]:
    """Inverse of :func:`pair_key`; splits on the first separator only."""
    left, _, right = str(key).partition(KEY_SEP)
    return left, right


def detail_key(year_key: str, category: str, type_key: str) -> str:
    """Detail index key ``"yearKey||category||type"``."""
    return f"{year_key}{KEY_SEP}{category}{KEY_SEP}{type_key}"


def split_detail_key(key: str) -> tuple[str, str, str]:
    """
    Inverse of :func:`detail_key`.

    The year key never contains the separator, and the type is canonical, so
    the category is everything between the first and the last separator.
    """
    s = str(key)
    year_key, _, rest = s.partition(KEY_SEP)
    category, _, type_key = rest.rpartition(KEY_SEP)
    return year_key, category, type_key


def locale_sort_key(value: str) -> tuple[str, str]:
    """
    Sort key approximating a German collation.

    Accents are folded and case is ignored for the primary comparison; the raw
    string breaks ties so distinct identities never compare equal.
    """
    decomposed = unicodedata.normalize("NFKD", value)
    base = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return base.casefold(), value


def locale_sorted(values) -> list[str]:
    """Unique values sorted with :func:`locale_sort_key` (empty strings dropped)."""
    return sorted({v for v in values if v}, key=locale_sort_key)


def dedupe_stable(values) -> list:
    """De-duplicate while keeping first-seen order; values are not modified."""
    seen: set = set()
    out: list = []
    for v in values:
        if v in seen:
            continue
        seen.add(v)
        out.append(v)
    return out

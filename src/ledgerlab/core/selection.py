"""
Filter state and explicit selections.

Enabled sets use a tagged choice instead of overloading emptiness:
:class:`AllOf` selects every member of the universe, :class:`ExactlyOf`
selects exactly the listed members (possibly none). The disabled-category set
has no "all" meaning; an empty set simply disables nothing.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field, replace
from enum import Enum

from .keys import clean_key, clean_text

__all__ = [
    "AllOf",
    "ExactlyOf",
    "FilterState",
    "Mode",
    "Selection",
    "clamp_disabled",
    "clamp_selection",
    "selection_from_ids",
]


class Mode(Enum):
    """Which channel feeds totals and graph weights."""

    COST = "cost"
    QUANTITY = "quantity"

    @classmethod
    def parse(cls, value: object) -> Mode:
        """Lenient parse; anything that is not quantity means cost."""
        if isinstance(value, Mode):
            return value
        token = str(value or "").strip().lower()
        return cls.QUANTITY if token in {"quantity", "menge"} else cls.COST


@dataclass(frozen=True, slots=True)
class AllOf:
    """Every member of the universe is selected."""

    def contains(self, value: str) -> bool:
        return True

    def resolve(self, universe: Iterable[str]) -> list[str]:
        return list(universe)

    def signature(self) -> str:
        return "*"


@dataclass(frozen=True, slots=True)
class ExactlyOf:
    """Exactly the listed members are selected (an empty set selects nothing)."""

    members: frozenset[str] = frozenset()

    def __init__(self, members: Iterable[str] = ()):
        object.__setattr__(self, "members", frozenset(members))

    def contains(self, value: str) -> bool:
        return value in self.members

    def resolve(self, universe: Iterable[str]) -> list[str]:
        """Universe members that are selected, in universe order."""
        return [v for v in universe if v in self.members]

    def signature(self) -> str:
        return "|".join(sorted(self.members))


Selection = AllOf | ExactlyOf


def selection_from_ids(ids: Iterable[str] | None) -> Selection:
    """
    Map the legacy convention (``None`` or empty -> all) to a tagged selection.
    """
    members = [clean_text(i) for i in (ids or ())]
    members = [m for m in members if m]
    return ExactlyOf(members) if members else AllOf()


def clamp_selection(selection: Selection, universe: Iterable[str]) -> Selection:
    """``selection`` intersected with ``universe``; :class:`AllOf` stays as is."""
    if isinstance(selection, AllOf):
        return selection
    u = set(universe)
    return ExactlyOf(m for m in selection.members if m in u)


def clamp_disabled(disabled: Iterable[str], universe: Iterable[str]) -> frozenset[str]:
    """
    Disabled categories intersected with the category universe.

    Clamped against the stable universe (never against the current view), so a
    user's de-selection survives other filter changes but stale entries for
    categories that no longer exist are dropped.
    """
    u = set(universe)
    return frozenset(c for c in disabled if c in u)


@dataclass(frozen=True, slots=True)
class FilterState:
    """
    User filter state.

    Attributes:
        sources: Enabled source ids
        types: Enabled canonical booking types
        disabled_categories: Explicitly disabled category identities
        year_from: Inclusive lower bound (None -> seeded from the domain)
        year_to: Inclusive upper bound (None -> seeded from the domain)
        mode: Cost or quantity
        include_undated: Opt in to undated bars in the view and totals; the
            legend graph always counts them
    """

    sources: Selection = field(default_factory=AllOf)
    types: Selection = field(default_factory=AllOf)
    disabled_categories: frozenset[str] = frozenset()
    year_from: int | None = None
    year_to: int | None = None
    mode: Mode = Mode.COST
    include_undated: bool = False

    @classmethod
    def create(
        cls,
        *,
        sources: Iterable[str] | None = None,
        types: Iterable[str] | None = None,
        disabled_categories: Iterable[str] = (),
        year_from: int | None = None,
        year_to: int | None = None,
        mode: Mode | str = Mode.COST,
        include_undated: bool = False,
    ) -> FilterState:
        """Build a state from plain collections (empty enabled sets mean all)."""
        return cls(
            sources=selection_from_ids(sources),
            types=selection_from_ids(clean_key(t) for t in (types or ())),
            disabled_categories=frozenset(disabled_categories),
            year_from=year_from,
            year_to=year_to,
            mode=Mode.parse(mode),
            include_undated=include_undated,
        )

    def toggle_category(self, category: str, enabled: bool) -> FilterState:
        """Enable or disable one category (identity string, unmodified)."""
        disabled = set(self.disabled_categories)
        if enabled:
            disabled.discard(category)
        else:
            disabled.add(category)
        return replace(self, disabled_categories=frozenset(disabled))

    def repaired(self, min_year: int, max_year: int) -> FilterState:
        """
        Seed missing bounds from the domain, clamp into it and swap if inverted.
        """
        yf = min_year if self.year_from is None else int(self.year_from)
        yt = max_year if self.year_to is None else int(self.year_to)
        yf = max(min_year, min(max_year, yf))
        yt = max(min_year, min(max_year, yt))
        if yf > yt:
            yf, yt = yt, yf
        return replace(self, year_from=yf, year_to=yt)

"""
Canonical record produced by the row parser.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Mapping


class Status(Enum):
    """Planned rows only feed relation sets; actual rows feed bars and totals."""

    PLANNED = "planned"
    ACTUAL = "actual"

    @classmethod
    def resolve(cls, raw: str, is_undated: bool) -> Status:
        """
        Resolve an explicit status cell, falling back to the dating rule.

        ``planned``/``geplant`` and ``actual``/``ist`` are recognized
        (case-insensitive); anything else defaults to planned for undated rows
        and actual otherwise.
        """
        token = (raw or "").strip().lower()
        if token in {"planned", "geplant"}:
            return cls.PLANNED
        if token in {"actual", "ist"}:
            return cls.ACTUAL
        return cls.PLANNED if is_undated else cls.ACTUAL


@dataclass(frozen=True, slots=True)
class Record:
    """
    One parsed input line.

    Attributes:
        year: Resolved year, or None when undated or unresolvable
        is_undated: True iff the year, from and to cells were all empty
        category: Category identity (trimmed, empty -> "?")
        type: Canonical booking type
        cost_account_type: Canonical cost-account type
        amount: Signed amount
        quantity: Quantity, NaN when absent
        unit: Unit label (may be empty)
        status: Planned or actual
        memo: Free text
        raw_fields: Original column name -> original cell text
    """

    year: int | None
    is_undated: bool
    category: str
    type: str
    cost_account_type: str
    amount: float
    quantity: float = math.nan
    unit: str = ""
    status: Status = Status.ACTUAL
    memo: str = ""
    raw_fields: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self):
        if not isinstance(self.raw_fields, MappingProxyType):
            object.__setattr__(
                self, "raw_fields", MappingProxyType(dict(self.raw_fields))
            )

    @property
    def is_planned(self) -> bool:
        return self.status is Status.PLANNED

    @property
    def is_chartable(self) -> bool:
        """Validly dated or explicitly undated."""
        return self.year is not None or self.is_undated

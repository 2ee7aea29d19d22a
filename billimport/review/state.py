"""Import session states.

Each phase is its own frozen dataclass carrying only the data valid in
that phase; ImportState is the union of them. Sessions replace the state
object wholesale on every transition.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Sequence, Union

from billimport.categorize.matcher import Category
from billimport.parsers.base import BillSource, Direction, ParsedRecord


@dataclass(frozen=True)
class Idle:
    pass


@dataclass(frozen=True)
class Parsing:
    filename: str = ""


@dataclass(frozen=True)
class Preview:
    records: tuple[ParsedRecord, ...]
    source: BillSource
    categories: tuple[Category, ...]
    skipped_count: int = 0

    @property
    def stats(self) -> ImportStats:
        return compute_stats(self.records)


@dataclass(frozen=True)
class Importing:
    selected_count: int = 0


@dataclass(frozen=True)
class Success:
    imported_count: int
    total_amount: Decimal
    excluded_count: int = 0


@dataclass(frozen=True)
class Error:
    message: str


ImportState = Union[Idle, Parsing, Preview, Importing, Success, Error]


@dataclass(frozen=True)
class ImportStats:
    total_records: int
    selected_records: int
    total_inbound: Decimal
    total_outbound: Decimal


def compute_stats(records: Sequence[ParsedRecord]) -> ImportStats:
    """Recompute stats from scratch; totals cover selected records only."""
    selected = [r for r in records if r.is_selected]
    return ImportStats(
        total_records=len(records),
        selected_records=len(selected),
        total_inbound=sum(
            (r.amount for r in selected if r.direction is Direction.INBOUND), Decimal("0")
        ),
        total_outbound=sum(
            (r.amount for r in selected if r.direction is Direction.OUTBOUND), Decimal("0")
        ),
    )

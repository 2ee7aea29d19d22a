"""Interfaces of the host-app services the import session talks to."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, Sequence

if TYPE_CHECKING:
    from billimport.categorize.matcher import Category
    from billimport.commit import LedgerTransaction
    from billimport.parsers.base import Direction


class CategoryRepository(Protocol):
    def get_categories(self, direction: Direction) -> Sequence[Category]:
        """Categories configured for one direction (enabled or not)."""

    def ensure_uncategorized(self, direction: Direction) -> None:
        """Create the "uncategorized" category for direction if missing.

        Must be idempotent.
        """


class LedgerStore(Protocol):
    def insert_all(self, transactions: Sequence[LedgerTransaction]) -> None:
        """Persist a batch. Treated as all-or-nothing by the session."""

"""Keyword category matching: suggests a category for each parsed record.

Rules are declarative data (see defaults/categories.yaml): an ordered list
of (keywords, category name) per direction. Matching happens in two
separate steps:
  1. Keyword match: the first rule whose keyword appears in
     "counterparty item note" (case-folded) wins.
  2. Name resolution: the rule's category name is looked up among the
     enabled categories of the record's direction.

If step 2 misses, no further rules are tried; the fallback chain runs:
  other-for-direction → other → uncategorized → None
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Sequence

from billimport.parsers.base import Direction, ParsedRecord

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CategoryRule:
    keywords: tuple[str, ...]
    category_name: str


@dataclass(frozen=True)
class Category:
    """A ledger category owned by the host app's category repository."""
    id: int
    name: str
    direction: Direction
    enabled: bool = True


@dataclass(frozen=True)
class FallbackNames:
    other_expense: str = "其他支出"
    other_income: str = "其他收入"
    other: str = "其他"
    uncategorized: str = "未分类"


@dataclass(frozen=True)
class RuleTables:
    expense: tuple[CategoryRule, ...]
    income: tuple[CategoryRule, ...]
    fallbacks: FallbackNames = FallbackNames()

    def for_direction(self, direction: Direction) -> tuple[CategoryRule, ...]:
        return self.income if direction is Direction.INBOUND else self.expense


def search_key(record: ParsedRecord) -> str:
    return f"{record.counterparty} {record.item} {record.note}".casefold()


def find_rule(key: str, rules: Sequence[CategoryRule]) -> CategoryRule | None:
    """First rule with a keyword contained in key, in definition order."""
    for rule in rules:
        if any(keyword.casefold() in key for keyword in rule.keywords):
            return rule
    return None


def _find_by_name(name: str, categories: Sequence[Category]) -> Category | None:
    for category in categories:
        if category.name == name:
            return category
    return None


def match_category(
    record: ParsedRecord,
    tables: RuleTables,
    categories: Sequence[Category],
) -> int | None:
    """Return the suggested category id for record, or None.

    Pure: the same inputs always give the same answer.
    """
    candidates = [
        c for c in categories if c.enabled and c.direction == record.direction
    ]

    rule = find_rule(search_key(record), tables.for_direction(record.direction))
    if rule is not None:
        category = _find_by_name(rule.category_name, candidates)
        if category is not None:
            return category.id
        logger.debug(
            "Rule category '%s' is not an enabled category; using fallback",
            rule.category_name,
        )

    fallbacks = tables.fallbacks
    direction_other = (
        fallbacks.other_income
        if record.direction is Direction.INBOUND
        else fallbacks.other_expense
    )
    for name in (direction_other, fallbacks.other, fallbacks.uncategorized):
        category = _find_by_name(name, candidates)
        if category is not None:
            return category.id
    return None


def match_categories(
    records: Sequence[ParsedRecord],
    tables: RuleTables,
    categories: Sequence[Category],
) -> list[ParsedRecord]:
    """Return copies of records with suggested_category_id filled in."""
    return [
        replace(r, suggested_category_id=match_category(r, tables, categories))
        for r in records
    ]

"""Commit mapping: selected ParsedRecords → host ledger transactions.

A record whose timestamp cannot be parsed is excluded on its own; the
rest of the batch still commits.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Sequence

from billimport.parsers.base import BillSource, Direction, ParsedRecord

logger = logging.getLogger(__name__)

# Tried in order; first match wins.
DATETIME_FORMATS = (
    "%Y-%m-%d %H:%M:%S",
    "%Y/%m/%d %H:%M:%S",
    "%Y-%m-%d %H:%M",
    "%Y/%m/%d %H:%M",
    "%Y年%m月%d日 %H:%M:%S",
    "%Y年%m月%d日 %H:%M",
)
# Date-only fallbacks, applied to the text before the first space.
DATE_FORMATS = ("%Y-%m-%d", "%Y/%m/%d", "%Y年%m月%d日")

SOURCE_TAGS = {
    BillSource.WECHAT: "[微信导入]",
    BillSource.ALIPAY: "[支付宝导入]",
}
DEFAULT_SOURCE_TAG = "[导入]"
NOTE_SEPARATOR = " - "

TYPE_INCOME = "INCOME"
TYPE_EXPENSE = "EXPENSE"
SOURCE_IMPORT = "IMPORT"


@dataclass(frozen=True)
class LedgerTransaction:
    """Shape accepted by the host ledger's batch insert."""
    type: str
    amount: Decimal
    category_id: int | None
    date: date
    time: str  # HH:MM
    note: str
    source: str = SOURCE_IMPORT


@dataclass
class CommitBatch:
    transactions: list[LedgerTransaction] = field(default_factory=list)
    excluded: list[ParsedRecord] = field(default_factory=list)

    @property
    def total_amount(self) -> Decimal:
        return sum((t.amount for t in self.transactions), Decimal("0"))


def parse_timestamp(text: str) -> datetime | None:
    """Parse a bill timestamp; date-only values map to midnight.

    Returns None if no known format matches.
    """
    text = text.strip()
    for fmt in DATETIME_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue

    date_part = text.split(" ")[0] if text else text
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(date_part, fmt)
        except ValueError:
            continue
    return None


def build_note(record: ParsedRecord) -> str:
    """'[微信导入] counterparty - item - note', skipping blanks and repeats."""
    parts: list[str] = []
    if record.counterparty.strip():
        parts.append(record.counterparty.strip())
    if record.item.strip() and record.item.strip() != record.counterparty.strip():
        parts.append(record.item.strip())
    if record.note.strip():
        parts.append(record.note.strip())

    tag = SOURCE_TAGS.get(record.source, DEFAULT_SOURCE_TAG)
    body = NOTE_SEPARATOR.join(parts)
    return f"{tag} {body}" if body else tag


def to_ledger_transaction(record: ParsedRecord) -> LedgerTransaction | None:
    """Map one record, or None when its timestamp is unparsable."""
    when = parse_timestamp(record.timestamp_text)
    if when is None:
        return None
    return LedgerTransaction(
        type=TYPE_INCOME if record.direction is Direction.INBOUND else TYPE_EXPENSE,
        amount=record.amount,
        category_id=record.suggested_category_id,
        date=when.date(),
        time=when.strftime("%H:%M"),
        note=build_note(record),
    )


def build_batch(records: Sequence[ParsedRecord]) -> CommitBatch:
    """Map selected records; unparsable timestamps go to batch.excluded."""
    batch = CommitBatch()
    for record in records:
        if not record.is_selected:
            continue
        txn = to_ledger_transaction(record)
        if txn is None:
            batch.excluded.append(record)
        else:
            batch.transactions.append(txn)

    if batch.excluded:
        logger.warning(
            "Excluded %d record(s) with unparsable timestamps, e.g. '%s'",
            len(batch.excluded), batch.excluded[0].timestamp_text,
        )
    return batch

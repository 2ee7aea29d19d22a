"""Base parser: shared interface, data structures, and utility functions."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from enum import Enum

logger = logging.getLogger(__name__)


class BillSource(str, Enum):
    WECHAT = "wechat"
    ALIPAY = "alipay"
    UNKNOWN = "unknown"


class Direction(str, Enum):
    INBOUND = "inbound"    # 收入
    OUTBOUND = "outbound"  # 支出


@dataclass(frozen=True)
class ParsedRecord:
    """Canonical transaction extracted from a bill export.

    Only built once amount and direction resolved; amount is always > 0.
    """
    timestamp_text: str
    direction: Direction
    counterparty: str
    item: str
    amount: Decimal
    source: BillSource
    payment_channel: str = ""
    raw_status: str = ""
    order_id: str = ""
    merchant_order_id: str = ""
    note: str = ""
    suggested_category_id: int | None = None
    is_selected: bool = True


@dataclass
class ExtractionResult:
    """Records and aggregates produced by one extractor run."""
    records: list[ParsedRecord]
    source: BillSource
    total_inbound: Decimal
    total_outbound: Decimal
    skipped_count: int = 0


# ── Errors ───────────────────────────────────────────────


class BillParseError(Exception):
    """Base for failures that abort a parse. The message is user-facing."""


class UnreadableFileError(BillParseError):
    """The file could not be opened or its container is corrupt."""


class UnsupportedFormatError(BillParseError):
    """The container format is known but deliberately not supported."""


class EmptyFileError(BillParseError):
    """The file decoded to no content."""


class UnrecognizedSourceError(BillParseError):
    """Neither platform's signature was found in the file."""


class HeaderNotFoundError(BillParseError):
    """No data header row (or a required column) was located."""


class NoValidRecordsError(BillParseError):
    """Extraction finished but produced zero usable records."""


# ── Extractor interface ──────────────────────────────────


class BaseBillParser(ABC):
    """Abstract base for bill extractors.

    Subclasses locate the header row, map columns to record fields and
    emit ParsedRecord objects. The quoting rules, amount parsing, skip
    lists and direction resolution are shared here.

    Attributes:
        skipped_count: Rows dropped by the status/type skip lists during
            the last parse(). Rows dropped for a bad amount or an
            ambiguous direction are not counted.
    """

    source: BillSource = BillSource.UNKNOWN

    def __init__(
        self,
        skip_statuses: tuple[str, ...] | list[str] = (),
        skip_types: tuple[str, ...] | list[str] = (),
    ):
        self.skip_statuses = tuple(skip_statuses)
        self.skip_types = tuple(skip_types)
        self.skipped_count: int = 0

    @abstractmethod
    def find_header(self, lines: list[str]) -> int:
        """Return the index of the header line, or -1."""

    @abstractmethod
    def parse_lines(self, header: str, rows: list[str]) -> list[ParsedRecord]:
        """Turn data lines after the header into records.

        Implementations increment self.skipped_count for skip-list hits.
        """

    @property
    @abstractmethod
    def header_missing_message(self) -> str:
        """User-facing message when no header row is found."""

    def parse(self, text: str) -> ExtractionResult:
        """Extract records from normalized comma-separated text.

        Raises:
            HeaderNotFoundError: No header row in the text.
            NoValidRecordsError: Every data line was skipped or dropped.
        """
        self.skipped_count = 0  # Reset for each parse
        lines = text.splitlines()

        header_index = self.find_header(lines)
        if header_index == -1:
            raise HeaderNotFoundError(self.header_missing_message)

        records = self.parse_lines(lines[header_index], lines[header_index + 1:])
        if not records:
            raise NoValidRecordsError(
                "No valid transactions found in the bill "
                f"({self.skipped_count} skipped)"
            )

        total_inbound = sum(
            (r.amount for r in records if r.direction is Direction.INBOUND), Decimal("0")
        )
        total_outbound = sum(
            (r.amount for r in records if r.direction is Direction.OUTBOUND), Decimal("0")
        )
        if self.skipped_count > 0:
            logger.info(
                "Skipped %d refund/transfer row(s) in %s bill",
                self.skipped_count, self.source.value,
            )
        return ExtractionResult(
            records=records,
            source=self.source,
            total_inbound=total_inbound,
            total_outbound=total_outbound,
            skipped_count=self.skipped_count,
        )

    def should_skip(self, status: str, *type_texts: str) -> bool:
        if any(s in status for s in self.skip_statuses):
            return True
        return any(t in text for text in type_texts for t in self.skip_types)


# ── Shared helpers ───────────────────────────────────────


def split_line(line: str, sep: str = ",") -> list[str]:
    """Split one delimited line, honouring double quotes.

    A quote toggles quoted mode, in which the separator is literal. A
    doubled quote inside a quoted field yields one literal quote. An
    unbalanced quote swallows the rest of the line into one field.
    """
    fields: list[str] = []
    current: list[str] = []
    in_quotes = False
    i = 0
    n = len(line)
    while i < n:
        ch = line[i]
        if ch == '"':
            if in_quotes and i + 1 < n and line[i + 1] == '"':
                current.append('"')
                i += 2
                continue
            in_quotes = not in_quotes
        elif ch == sep and not in_quotes:
            fields.append("".join(current))
            current = []
        else:
            current.append(ch)
        i += 1
    fields.append("".join(current))
    return fields


_AMOUNT_NOISE = ("¥", "￥", ",", "，", " ", "\t", "\u00a0")


def parse_amount(text: str) -> Decimal | None:
    """'¥1,234.56' → Decimal('1234.56').

    Returns None if the text is not a finite positive number.
    """
    cleaned = text.strip()
    for noise in _AMOUNT_NOISE:
        cleaned = cleaned.replace(noise, "")
    if not cleaned:
        return None
    try:
        amount = Decimal(cleaned)
    except InvalidOperation:
        return None
    if not amount.is_finite() or amount <= 0:
        return None
    return amount


def parse_direction(text: str) -> Direction | None:
    """'收入' → INBOUND, '支出' → OUTBOUND, anything else → None."""
    if "收入" in text:
        return Direction.INBOUND
    if "支出" in text:
        return Direction.OUTBOUND
    return None


def field_at(fields: list[str], index: int) -> str:
    """Stripped field at index, or '' when the column is absent."""
    if 0 <= index < len(fields):
        return fields[index].strip()
    return ""

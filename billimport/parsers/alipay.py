"""Alipay bill parser.

Alipay has shipped several export layouts, e.g.
  交易号,商家订单号,交易创建时间,付款时间,最近修改时间,交易来源地,类型,交易对方,商品名称,金额（元）,收/支,交易状态,...
  交易时间,交易分类,交易对方,对方账号,商品说明,收/支,金额,收/付款方式,交易状态,交易订单号,商家订单号,备注

so column positions are resolved from the header text instead of being
fixed. Only time, amount and direction are required; every other column
reads as blank when missing.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from .base import (
    BaseBillParser,
    BillSource,
    HeaderNotFoundError,
    ParsedRecord,
    field_at,
    parse_amount,
    parse_direction,
    split_line,
)

logger = logging.getLogger(__name__)

MIN_FIELDS = 5


def _find_column(header: list[str], *labels: str) -> int:
    """Index of the first header cell containing any label, or -1."""
    for i, cell in enumerate(header):
        cell = cell.strip()
        if any(label in cell for label in labels):
            return i
    return -1


@dataclass(frozen=True)
class AlipayColumns:
    """Column indices resolved from an Alipay header row (-1 = absent)."""
    time: int
    amount: int
    direction: int
    counterparty: int = -1
    item: int = -1
    status: int = -1
    order: int = -1
    merchant_order: int = -1
    channel: int = -1
    txn_type: int = -1
    note: int = -1

    @classmethod
    def from_header(cls, header: list[str]) -> AlipayColumns:
        columns = cls(
            time=_find_column(header, "时间"),
            amount=_find_column(header, "金额"),
            direction=_find_column(header, "收/支"),
            counterparty=_find_column(header, "交易对方", "对方"),
            item=_find_column(header, "商品", "名称"),
            status=_find_column(header, "状态"),
            order=_find_column(header, "交易订单号", "交易号"),
            merchant_order=_find_column(header, "商家订单号", "商户订单号"),
            channel=_find_column(header, "收/付款方式"),
            txn_type=_find_column(header, "交易分类", "交易类型"),
            note=_find_column(header, "备注"),
        )
        missing = [
            label for label, index in (
                ("时间", columns.time),
                ("金额", columns.amount),
                ("收/支", columns.direction),
            ) if index < 0
        ]
        if missing:
            raise HeaderNotFoundError(
                "Alipay bill header is missing required column(s): " + ", ".join(missing)
            )
        return columns


class AlipayBillParser(BaseBillParser):
    """Parse Alipay bill exports (CSV or flattened xlsx/docx)."""

    source = BillSource.ALIPAY

    @property
    def header_missing_message(self) -> str:
        return "Could not find the Alipay bill header row (交易时间 ... 金额)"

    def find_header(self, lines: list[str]) -> int:
        for i, line in enumerate(lines):
            if ("交易创建时间" in line or "交易时间" in line) and "金额" in line:
                return i
        return -1

    def parse_lines(self, header: str, rows: list[str]) -> list[ParsedRecord]:
        columns = AlipayColumns.from_header(split_line(header.lstrip("\ufeff")))
        records: list[ParsedRecord] = []
        for line in rows:
            line = line.strip()
            # Footer separators and summary lines
            if not line or line.startswith("-") or line.startswith("="):
                continue
            fields = split_line(line)
            if len(fields) < MIN_FIELDS:
                continue
            record = self._parse_row(fields, columns)
            if record is not None:
                records.append(record)
        return records

    def _parse_row(self, fields: list[str], cols: AlipayColumns) -> ParsedRecord | None:
        timestamp = field_at(fields, cols.time)
        if not timestamp:
            return None
        item = field_at(fields, cols.item)
        status = field_at(fields, cols.status)
        txn_type = field_at(fields, cols.txn_type)

        if self.should_skip(status, item, txn_type):
            self.skipped_count += 1
            return None

        amount = parse_amount(field_at(fields, cols.amount))
        if amount is None:
            return None

        direction = parse_direction(field_at(fields, cols.direction))
        if direction is None:
            # 不计收支 and blank refund rows are excluded
            return None

        return ParsedRecord(
            timestamp_text=timestamp,
            direction=direction,
            counterparty=field_at(fields, cols.counterparty),
            item=item,
            amount=amount,
            source=self.source,
            payment_channel=field_at(fields, cols.channel),
            raw_status=status,
            order_id=field_at(fields, cols.order),
            merchant_order_id=field_at(fields, cols.merchant_order),
            note=field_at(fields, cols.note),
        )

"""WeChat Pay bill parser.

WeChat exports open with ~16 lines of summary text, then a fixed header:
  交易时间,交易类型,交易对方,商品,收/支,金额(元),支付方式,当前状态,交易单号,商户单号,备注

Columns are read by position. Amounts look like "¥25.00".
"""

from __future__ import annotations

import logging

from .base import (
    BaseBillParser,
    BillSource,
    ParsedRecord,
    field_at,
    parse_amount,
    parse_direction,
    split_line,
)

logger = logging.getLogger(__name__)

# Fixed column positions in the WeChat export
COL_TIME = 0
COL_TYPE = 1
COL_COUNTERPARTY = 2
COL_ITEM = 3
COL_DIRECTION = 4
COL_AMOUNT = 5
COL_CHANNEL = 6
COL_STATUS = 7
COL_ORDER = 8
COL_MERCHANT_ORDER = 9
COL_NOTE = 10

MIN_FIELDS = 8

# WeChat writes "/" for empty cells
EMPTY_MARKER = "/"


def _text(fields: list[str], index: int) -> str:
    value = field_at(fields, index)
    return "" if value == EMPTY_MARKER else value


class WechatBillParser(BaseBillParser):
    """Parse WeChat Pay bill exports (CSV or flattened xlsx/docx)."""

    source = BillSource.WECHAT

    @property
    def header_missing_message(self) -> str:
        return "Could not find the WeChat Pay bill header row (交易时间 ... 金额)"

    def find_header(self, lines: list[str]) -> int:
        for i, line in enumerate(lines):
            stripped = line.lstrip("\ufeff").strip()
            if stripped.startswith("交易时间") and "金额" in stripped:
                return i
        return -1

    def parse_lines(self, header: str, rows: list[str]) -> list[ParsedRecord]:
        records: list[ParsedRecord] = []
        for line in rows:
            line = line.strip()
            if not line:
                continue
            fields = split_line(line)
            if len(fields) < MIN_FIELDS:
                continue
            record = self._parse_row(fields)
            if record is not None:
                records.append(record)
        return records

    def _parse_row(self, fields: list[str]) -> ParsedRecord | None:
        timestamp = field_at(fields, COL_TIME)
        if not timestamp:
            return None
        txn_type = field_at(fields, COL_TYPE)
        status = field_at(fields, COL_STATUS)

        if self.should_skip(status, txn_type):
            self.skipped_count += 1
            return None

        amount = parse_amount(field_at(fields, COL_AMOUNT))
        if amount is None:
            return None

        direction = parse_direction(field_at(fields, COL_DIRECTION))
        if direction is None:
            # "/" rows (neither income nor expense) are never guessed
            return None

        return ParsedRecord(
            timestamp_text=timestamp,
            direction=direction,
            counterparty=_text(fields, COL_COUNTERPARTY),
            item=_text(fields, COL_ITEM) or txn_type,
            amount=amount,
            source=self.source,
            payment_channel=_text(fields, COL_CHANNEL),
            raw_status=status,
            order_id=_text(fields, COL_ORDER),
            merchant_order_id=_text(fields, COL_MERCHANT_ORDER),
            note=_text(fields, COL_NOTE),
        )

"""Tests for parsers.alipay: header-resolved Alipay extraction."""

from decimal import Decimal

import pytest

from billimport.config import Config
from billimport.parsers.alipay import AlipayBillParser, AlipayColumns
from billimport.parsers.base import (
    BillSource,
    Direction,
    HeaderNotFoundError,
    split_line,
)
from tests.conftest import ALIPAY_HEADER, DEFAULT_CONFIG_DIR, alipay_bill, alipay_row

# Layout used by newer Alipay exports
NEW_HEADER = "交易时间,交易分类,交易对方,对方账号,商品说明,收/支,金额,收/付款方式,交易状态,交易订单号,商家订单号,备注\n"


@pytest.fixture
def parser():
    config = Config(DEFAULT_CONFIG_DIR)
    return AlipayBillParser(skip_statuses=config.skip_statuses, skip_types=config.skip_types)


class TestAlipayColumns:
    def test_classic_layout(self):
        cols = AlipayColumns.from_header(split_line(ALIPAY_HEADER.strip()))
        assert cols.time == 2
        assert cols.amount == 9
        assert cols.direction == 10
        assert cols.counterparty == 7
        assert cols.item == 8
        assert cols.status == 11
        assert cols.order == 0
        assert cols.merchant_order == 1
        assert cols.channel == -1
        assert cols.note == 14

    def test_new_layout(self):
        cols = AlipayColumns.from_header(split_line(NEW_HEADER.strip()))
        assert (cols.time, cols.txn_type, cols.counterparty) == (0, 1, 2)
        assert (cols.item, cols.direction, cols.amount) == (4, 5, 6)
        assert (cols.channel, cols.status, cols.order) == (7, 8, 9)
        assert (cols.merchant_order, cols.note) == (10, 11)

    def test_missing_required_column(self):
        with pytest.raises(HeaderNotFoundError, match="收/支"):
            AlipayColumns.from_header(["交易创建时间", "交易对方", "金额（元）"])


class TestAlipayParser:
    def test_classic_export(self, parser):
        result = parser.parse(alipay_bill(
            alipay_row(),
            alipay_row(trade_no="2", counterparty="公司", item="工资", amount="5000.00",
                       direction="收入"),
        ))
        assert result.source is BillSource.ALIPAY
        assert len(result.records) == 2
        assert result.total_outbound == Decimal("18.50")
        assert result.total_inbound == Decimal("5000.00")

    def test_record_fields(self, parser):
        record = parser.parse(alipay_bill(alipay_row(note="加班"))).records[0]
        assert record.timestamp_text == "2024-01-05 09:15:00"
        assert record.direction is Direction.OUTBOUND
        assert record.counterparty == "滴滴出行"
        assert record.item == "快车订单"
        assert record.amount == Decimal("18.50")
        assert record.raw_status == "交易成功"
        assert record.order_id == "2024010522001"
        assert record.merchant_order_id == "T200P123"
        assert record.note == "加班"
        assert record.payment_channel == ""

    def test_footer_lines_ignored(self, parser):
        text = alipay_bill(alipay_row()) + "==========\n-----\n"
        assert len(parser.parse(text).records) == 1

    def test_closed_trade_skipped(self, parser):
        result = parser.parse(alipay_bill(alipay_row(), alipay_row(trade_no="2", status="交易关闭")))
        assert len(result.records) == 1
        assert result.skipped_count == 1

    def test_skip_type_matched_in_item(self, parser):
        result = parser.parse(alipay_bill(alipay_row(), alipay_row(trade_no="2", item="信用卡还款")))
        assert result.skipped_count == 1

    def test_neutral_direction_dropped(self, parser):
        result = parser.parse(alipay_bill(alipay_row(), alipay_row(trade_no="2", direction="不计收支")))
        assert len(result.records) == 1
        assert result.skipped_count == 0

    def test_new_layout_export(self, parser):
        row = "2024-02-01 08:00:00,餐饮美食,早餐店,a***@x.com,豆浆油条,支出,12.00,余额宝,交易成功,9001,8001,\n"
        record = parser.parse(NEW_HEADER + row).records[0]
        assert record.item == "豆浆油条"
        assert record.payment_channel == "余额宝"
        assert record.order_id == "9001"
        assert record.amount == Decimal("12.00")

    def test_missing_optional_columns_read_blank(self, parser):
        text = "交易创建时间,金额（元）,收/支,服务费（元）,成功退款（元）\n2024-01-05 09:15:00,9.90,支出,0.00,0.00\n"
        record = parser.parse(text).records[0]
        assert record.counterparty == ""
        assert record.item == ""
        assert record.order_id == ""
        assert record.amount == Decimal("9.90")

    def test_header_missing(self, parser):
        with pytest.raises(HeaderNotFoundError, match="Alipay bill header"):
            parser.parse("支付宝交易记录明细查询\n" + alipay_row())

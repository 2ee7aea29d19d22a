"""Shared test fixtures and synthetic bill builders."""

from pathlib import Path

from billimport.categorize.matcher import Category
from billimport.parsers.base import Direction

# Packaged default config (skip lists, rule tables)
DEFAULT_CONFIG_DIR = Path(__file__).parent.parent / "billimport" / "defaults"

WECHAT_PREAMBLE = (
    "微信支付账单明细\n"
    "微信昵称：[测试用户]\n"
    "起始时间：[2024-01-01 00:00:00] 终止时间：[2024-01-31 23:59:59]\n"
    "导出类型：[全部]\n"
    "导出时间：[2024-02-01 10:00:00]\n"
    "\n"
    "共3笔记录\n"
    "----------------------微信支付账单明细列表--------------------\n"
)
WECHAT_HEADER = "交易时间,交易类型,交易对方,商品,收/支,金额(元),支付方式,当前状态,交易单号,商户单号,备注\n"

ALIPAY_PREAMBLE = (
    "支付宝交易记录明细查询\n"
    "账号:[test@example.com]\n"
    "起始日期:[2024-01-01 00:00:00]    终止日期:[2024-02-01 00:00:00]\n"
    "---------------------------------交易记录明细列表------------------------------------\n"
)
ALIPAY_HEADER = (
    "交易号,商家订单号,交易创建时间,付款时间,最近修改时间,交易来源地,类型,"
    "交易对方,商品名称,金额（元）,收/支,交易状态,服务费（元）,成功退款（元）,备注,资金状态\n"
)
ALIPAY_FOOTER = (
    "------------------------------------------------------------------------------------\n"
    "共2笔记录\n"
)


def wechat_row(
    time="2024-01-05 12:30:00",
    txn_type="商户消费",
    counterparty="瑞幸咖啡",
    item="生椰拿铁",
    direction="支出",
    amount="¥25.00",
    channel="零钱",
    status="支付成功",
    order="420000123",
    merchant="10001",
    note="/",
) -> str:
    return ",".join([
        time, txn_type, counterparty, item, direction, amount,
        channel, status, order, merchant, note,
    ]) + "\n"


def wechat_bill(*rows: str) -> str:
    return WECHAT_PREAMBLE + WECHAT_HEADER + "".join(rows)


def alipay_row(
    trade_no="2024010522001",
    merchant_no="T200P123",
    created="2024-01-05 09:15:00",
    counterparty="滴滴出行",
    item="快车订单",
    amount="18.50",
    direction="支出",
    status="交易成功",
    note="",
) -> str:
    return ",".join([
        trade_no, merchant_no, created, created, created, "支付宝网站", "即时到账交易",
        counterparty, item, amount, direction, status, "0.00", "0.00", note, "已支出",
    ]) + "\n"


def alipay_bill(*rows: str) -> str:
    return ALIPAY_PREAMBLE + ALIPAY_HEADER + "".join(rows) + ALIPAY_FOOTER


def categories() -> list[Category]:
    """A small host category list covering both directions."""
    return [
        Category(id=1, name="餐饮美食", direction=Direction.OUTBOUND),
        Category(id=2, name="交通出行", direction=Direction.OUTBOUND),
        Category(id=3, name="其他支出", direction=Direction.OUTBOUND),
        Category(id=4, name="未分类", direction=Direction.OUTBOUND),
        Category(id=11, name="工资薪酬", direction=Direction.INBOUND),
        Category(id=12, name="红包收入", direction=Direction.INBOUND),
        Category(id=13, name="未分类", direction=Direction.INBOUND),
    ]


def split_cells(line: str) -> list[str]:
    """One builder line as spreadsheet cells."""
    return line.rstrip("\n").split(",")

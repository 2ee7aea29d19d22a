"""Bill source detection from header keywords.

Only the first few lines are inspected: both platforms put their title
and column header near the top, and scanning the whole file would let a
counterparty name such as "支付宝" in a WeChat row flip the result.
"""

from __future__ import annotations

import logging

from .alipay import AlipayBillParser
from .base import BaseBillParser, BillSource, UnrecognizedSourceError
from .wechat import WechatBillParser

logger = logging.getLogger(__name__)

DEFAULT_SCAN_LINES = 30

WECHAT_TITLE = "微信支付账单"
WECHAT_HEADERS = ("交易时间", "交易类型", "交易对方", "商品", "收/支", "金额(元)")

ALIPAY_TITLES = ("支付宝", "账单明细")
ALIPAY_HEADERS = ("交易创建时间", "交易对方", "商品名称", "金额（元）", "收/支")
ALIPAY_MIN_HEADER_MATCHES = 3

UNRECOGNIZED_MESSAGE = (
    "Unrecognized bill format: make sure the file is a bill exported "
    "from WeChat Pay or Alipay"
)


def detect_source(text: str, scan_lines: int = DEFAULT_SCAN_LINES) -> BillSource:
    """Classify normalized bill text by its leading lines.

    WeChat needs its title or every expected header; Alipay needs a title
    keyword or at least three expected headers, since its exports vary.
    """
    head = "\n".join(text.splitlines()[:scan_lines])

    if WECHAT_TITLE in head or all(h in head for h in WECHAT_HEADERS):
        return BillSource.WECHAT

    if any(t in head for t in ALIPAY_TITLES):
        return BillSource.ALIPAY
    if sum(1 for h in ALIPAY_HEADERS if h in head) >= ALIPAY_MIN_HEADER_MATCHES:
        return BillSource.ALIPAY

    return BillSource.UNKNOWN


def parser_for(
    source: BillSource,
    skip_statuses: tuple[str, ...] = (),
    skip_types: tuple[str, ...] = (),
) -> BaseBillParser:
    """Instantiate the extractor for a detected source.

    Raises:
        UnrecognizedSourceError: If source is UNKNOWN.
    """
    if source is BillSource.WECHAT:
        return WechatBillParser(skip_statuses=skip_statuses, skip_types=skip_types)
    if source is BillSource.ALIPAY:
        return AlipayBillParser(skip_statuses=skip_statuses, skip_types=skip_types)
    raise UnrecognizedSourceError(UNRECOGNIZED_MESSAGE)

"""Multi-encoding text decoding for bill exports.

Platform exports are UTF-8 (recent WeChat) or one of the GB family
(Alipay, older WeChat). A double-byte decode of the wrong encoding can be
syntactically valid but semantically garbage, so each attempt is checked
for expected header words before it is accepted.
"""

from __future__ import annotations

import codecs
import logging
from dataclasses import dataclass

logger = logging.getLogger(__name__)

MAX_INPUT_BYTES = 10 * 1024 * 1024

# Priority order; the last entry is the unconditional fallback.
ENCODINGS: tuple[str, ...] = ("utf-8", "gbk", "gb2312", "gb18030")

# At least one must appear in correctly decoded bill text.
SENTINELS: tuple[str, ...] = ("交易", "时间", "金额")

_REPLACEMENT = "\ufffd"


@dataclass(frozen=True)
class DecodedText:
    text: str
    encoding: str


def _decode(data: bytes, encoding: str, final: bool) -> str:
    # A non-final decode drops a multibyte sequence split by truncation
    # instead of turning it into a replacement character.
    decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
    text = decoder.decode(data, final=final)
    return text[1:] if text.startswith("\ufeff") else text


def looks_like_bill(text: str) -> bool:
    """True if text decoded cleanly and contains a header sentinel."""
    return _REPLACEMENT not in text and any(s in text for s in SENTINELS)


def decode_bytes(data: bytes, max_bytes: int = MAX_INPUT_BYTES) -> DecodedText:
    """Decode bill bytes, trying each encoding in priority order.

    Input beyond max_bytes is truncated, not rejected. Never fails: when
    no encoding validates, the last one is used with replacement.
    """
    truncated = len(data) > max_bytes
    if truncated:
        logger.warning(
            "Input is %d bytes; decoding only the first %d", len(data), max_bytes
        )
        data = data[:max_bytes]

    for encoding in ENCODINGS:
        text = _decode(data, encoding, final=not truncated)
        if looks_like_bill(text):
            logger.debug("Decoded bill text as %s", encoding)
            return DecodedText(text=text, encoding=encoding)

    fallback = ENCODINGS[-1]
    logger.warning("No encoding produced recognizable text; falling back to %s", fallback)
    return DecodedText(text=_decode(data, fallback, final=not truncated), encoding=fallback)

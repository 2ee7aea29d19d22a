"""Parse orchestration: route → normalize → detect → extract.

This is the unit of work the review session runs off the interactive
thread. It either returns an ExtractionResult or raises a BillParseError
whose message is shown to the user as-is.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .base import BillSource, ExtractionResult, UnrecognizedSourceError
from .detect import UNRECOGNIZED_MESSAGE, detect_source, parser_for
from .formats import RawDocument, normalize_document

if TYPE_CHECKING:
    from billimport.config import Config

logger = logging.getLogger(__name__)


class BillParser:
    """Turn a selected file into canonical records.

    Args:
        config: Supplies skip lists and processing limits.
    """

    def __init__(self, config: Config):
        self.config = config

    def parse(self, document: RawDocument) -> ExtractionResult:
        """Run the full parse for one document.

        Raises:
            BillParseError: Any fatal condition (unsupported/unreadable
                container, unknown source, missing header, no records).
        """
        normalized = normalize_document(
            document,
            max_bytes=self.config.max_input_bytes,
            max_rows=self.config.max_rows,
        )

        source = detect_source(normalized.text, scan_lines=self.config.detect_scan_lines)
        if source is BillSource.UNKNOWN:
            logger.warning(
                "Unrecognized bill format in %s (container=%s, encoding=%s)",
                document.filename, normalized.container.value, normalized.encoding,
            )
            raise UnrecognizedSourceError(UNRECOGNIZED_MESSAGE)

        parser = parser_for(
            source,
            skip_statuses=self.config.skip_statuses,
            skip_types=self.config.skip_types,
        )
        result = parser.parse(normalized.text)
        logger.info(
            "Parsed %d %s record(s) from %s (skipped=%d, in=%s, out=%s)",
            len(result.records), source.value, document.filename,
            result.skipped_count, result.total_inbound, result.total_outbound,
        )
        return result

"""Review session: the state machine driving one bill import.

    Idle ──select_file──▶ Parsing ──ok──▶ Preview ──commit──▶ Importing ──ok──▶ Success
                             │              │  ▲                  │
                             └──fail──▶ Error  └─toggle/change─┘  └──fail──▶ Error

Parsing and committing run on a worker thread. Every transition swaps the
whole state object under a lock, so observers never see a half-built
Preview. Each run carries a generation number; reset() bumps it, and a
worker finishing with an old generation has its result dropped.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import replace
from typing import TYPE_CHECKING, Callable

from billimport.categorize.matcher import Category, match_categories
from billimport.commit import build_batch
from billimport.parsers.base import BillParseError, BillSource, Direction, ParsedRecord
from billimport.parsers.bill_parser import BillParser
from billimport.review.state import (
    Error,
    Idle,
    Importing,
    ImportState,
    ImportStats,
    Parsing,
    Preview,
    Success,
    compute_stats,
)

if TYPE_CHECKING:
    from billimport.collaborators import CategoryRepository, LedgerStore
    from billimport.config import Config
    from billimport.parsers.formats import RawDocument

logger = logging.getLogger(__name__)

SELECT_AT_LEAST_ONE = "Select at least one record to import"
NO_DATED_RECORDS = "None of the selected records has a readable date"

Listener = Callable[[ImportState], None]


class ImportSession:
    """Owns the state and the staged record list for one import flow.

    Args:
        config: Application config (skip lists, limits, category rules).
        category_repo: Source of the host's categories.
        ledger: Receives the committed batch.
        executor: Worker for parse/commit. A private single-thread pool
            is created when omitted.
        parser: Override the BillParser (tests).
    """

    def __init__(
        self,
        config: Config,
        category_repo: CategoryRepository,
        ledger: LedgerStore,
        executor: ThreadPoolExecutor | None = None,
        parser: BillParser | None = None,
    ):
        self.config = config
        self.category_repo = category_repo
        self.ledger = ledger
        self.parser = parser or BillParser(config)
        self.rule_tables = config.rule_tables

        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="billimport",
        )
        self._lock = threading.RLock()
        self._state: ImportState = Idle()
        self._generation = 0
        self._future: Future | None = None
        self._listeners: list[Listener] = []

        for direction in Direction:
            try:
                category_repo.ensure_uncategorized(direction)
            except Exception as e:
                logger.warning("Could not ensure uncategorized %s category: %s", direction.value, e)

    # ── Read side ────────────────────────────────────────

    @property
    def state(self) -> ImportState:
        with self._lock:
            return self._state

    @property
    def records(self) -> tuple[ParsedRecord, ...]:
        state = self.state
        return state.records if isinstance(state, Preview) else ()

    @property
    def source(self) -> BillSource:
        state = self.state
        return state.source if isinstance(state, Preview) else BillSource.UNKNOWN

    @property
    def stats(self) -> ImportStats:
        return compute_stats(self.records)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call listener with every new state. Returns an unsubscribe function."""
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def _publish(self, state: ImportState, generation: int | None = None) -> bool:
        with self._lock:
            if generation is not None and generation != self._generation:
                return False
            self._state = state
            for listener in list(self._listeners):
                try:
                    listener(state)
                except Exception:
                    logger.exception("Import state listener failed")
        return True

    # ── Parsing ──────────────────────────────────────────

    def select_file(self, document: RawDocument) -> Future | None:
        """Start parsing document in the background.

        Rejected (returns None) while a parse or commit is in flight; the
        running job is left alone. Also returns None, in Error, when the
        executor will not take the job.
        """
        with self._lock:
            if isinstance(self._state, (Parsing, Importing)):
                logger.warning(
                    "Ignoring selection of %s: an import is already %s",
                    document.filename, type(self._state).__name__.lower(),
                )
                return None
            self._generation += 1
            generation = self._generation
            self._publish(Parsing(filename=document.filename))
            try:
                self._future = self._executor.submit(self._run_parse, document, generation)
            except RuntimeError as e:
                logger.error("Could not schedule parse of %s: %s", document.filename, e)
                self._publish(Error(f"Failed to parse bill: {e}"))
                return None
            return self._future

    def _run_parse(self, document: RawDocument, generation: int) -> ImportState:
        try:
            result = self.parser.parse(document)
            categories = self._load_categories()
            records = match_categories(result.records, self.rule_tables, categories)
            state: ImportState = Preview(
                records=tuple(records),
                source=result.source,
                categories=tuple(categories),
                skipped_count=result.skipped_count,
            )
        except BillParseError as e:
            logger.warning("Could not parse %s: %s", document.filename, e)
            state = Error(str(e))
        except Exception as e:
            logger.exception("Unexpected error parsing %s", document.filename)
            state = Error(f"Failed to parse bill: {e}")

        if not self._publish(state, generation):
            logger.info("Discarding parse result for %s (import was reset)", document.filename)
        return state

    def _load_categories(self) -> list[Category]:
        categories: list[Category] = []
        for direction in (Direction.INBOUND, Direction.OUTBOUND):
            categories.extend(self.category_repo.get_categories(direction))
        return categories

    # ── Review edits ─────────────────────────────────────

    def toggle_record(self, index: int) -> None:
        def edit(records: list[ParsedRecord]) -> None:
            records[index] = replace(records[index], is_selected=not records[index].is_selected)

        self._edit(index, edit)

    def toggle_all(self) -> None:
        """Deselect everything if all are selected, otherwise select all."""
        def edit(records: list[ParsedRecord]) -> None:
            select = not all(r.is_selected for r in records)
            records[:] = [replace(r, is_selected=select) for r in records]

        self._edit(None, edit)

    def change_category(self, index: int, category_id: int | None) -> None:
        def edit(records: list[ParsedRecord]) -> None:
            records[index] = replace(records[index], suggested_category_id=category_id)

        self._edit(index, edit)

    def _edit(self, index: int | None, edit: Callable[[list[ParsedRecord]], None]) -> None:
        with self._lock:
            state = self._state
            if not isinstance(state, Preview):
                logger.debug("Ignoring record edit outside preview")
                return
            if index is not None and not 0 <= index < len(state.records):
                logger.debug("Ignoring edit of record %d (of %d)", index, len(state.records))
                return
            records = list(state.records)
            edit(records)
            self._publish(replace(state, records=tuple(records)))

    # ── Commit ───────────────────────────────────────────

    def commit(self) -> Future | None:
        """Submit the selected records to the ledger in the background.

        With nothing selected the session moves straight to Error and the
        ledger is never called; returns None in that case.
        """
        with self._lock:
            state = self._state
            if not isinstance(state, Preview):
                logger.warning("commit() called outside preview (%s)", type(state).__name__)
                return None
            selected = [r for r in state.records if r.is_selected]
            if not selected:
                self._publish(Error(SELECT_AT_LEAST_ONE))
                return None
            self._generation += 1
            generation = self._generation
            self._publish(Importing(selected_count=len(selected)))
            try:
                self._future = self._executor.submit(self._run_commit, selected, generation)
            except RuntimeError as e:
                logger.error("Could not schedule import: %s", e)
                self._publish(Error(f"Import failed: {e}"))
                return None
            return self._future

    def _run_commit(self, records: list[ParsedRecord], generation: int) -> ImportState:
        try:
            batch = build_batch(records)
            if not batch.transactions:
                state: ImportState = Error(NO_DATED_RECORDS)
            else:
                self.ledger.insert_all(batch.transactions)
                state = Success(
                    imported_count=len(batch.transactions),
                    total_amount=batch.total_amount,
                    excluded_count=len(batch.excluded),
                )
                logger.info(
                    "Imported %d transaction(s), total %s (%d excluded)",
                    state.imported_count, state.total_amount, state.excluded_count,
                )
        except Exception as e:
            logger.exception("Import failed")
            state = Error(f"Import failed: {e}")

        self._publish(state, generation)
        return state

    # ── Lifecycle ────────────────────────────────────────

    def reset(self) -> bool:
        """Return to Idle, dropping records and any in-flight parse.

        Refused (returns False) while Importing: a ledger write cannot be
        taken back.
        """
        with self._lock:
            if isinstance(self._state, Importing):
                logger.warning("Cannot reset while importing")
                return False
            if isinstance(self._state, Parsing) and self._future is not None:
                self._future.cancel()
                logger.info("Cancelled parse of %s", self._state.filename)
            self._generation += 1
            self._future = None
            self._publish(Idle())
            return True

    def clear_error(self) -> None:
        with self._lock:
            if isinstance(self._state, Error):
                self._publish(Idle())

    def close(self) -> None:
        self.reset()
        if self._owns_executor:
            self._executor.shutdown(wait=False, cancel_futures=True)

    def __enter__(self) -> ImportSession:
        return self

    def __exit__(self, *exc) -> None:
        self.close()

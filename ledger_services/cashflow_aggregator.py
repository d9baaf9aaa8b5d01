"""
ledger_services.cashflow_aggregator -- Unified cashflow feed over every source.

Responsibility:
    Fetch each source collection concurrently, normalize what arrives,
    remove cross-source duplicates, filter to the requested date range and
    sort.  A failing, slow or cancelled source is reported and left out; it
    never aborts the feed.

Architecture position:
    Services -- imperative shell over the pure engines.  This is the only
    component that runs anything concurrently: a bounded
    ``ThreadPoolExecutor`` fans out the fetch callables and the results are
    joined back in source order on the calling thread.

Invariants enforced:
    - Side-effect free: every call builds a new AggregationResult; nothing
      is accumulated across calls.
    - Source order is preserved when concatenating, so dedup keeps the
      entry from the earlier source.
    - Date filter is inclusive on calendar days and skipped when the range
      is unbounded.
    - No retries at this layer.

Failure modes:
    - A fetch that raises, outlives the timeout or is cancelled becomes a
      SourceFetchError in ``AggregationResult.failed_sources``.
    - Bad records become SkippedRecord values.
    - Programming errors in the engines propagate.

Usage:
    from ledger_services.cashflow_aggregator import CashflowAggregator
    from ledger_kernel.domain.ledger_types import SourceFetch, SourceType

    aggregator = CashflowAggregator(clock=SystemClock())
    result = aggregator.aggregate([
        SourceFetch(SourceType.PAYMENT, payments_repo.all),
        SourceFetch(SourceType.BANK_TRANSACTION, bank_repo.all),
    ])
    for entry in result.entries:
        ...
"""

from __future__ import annotations

import time
from collections.abc import Mapping, Sequence
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from typing import Any

from ledger_config.schema import EngineConfig
from ledger_engines.chrono import ChronoSorter
from ledger_engines.dedup import Deduplicator
from ledger_engines.normalizer import TransactionNormalizer
from ledger_kernel.domain.clock import Clock
from ledger_kernel.domain.ledger_types import (
    AggregationResult,
    CancellationToken,
    DateRange,
    LedgerEntry,
    SkippedRecord,
    SortOrder,
    SourceFetch,
)
from ledger_kernel.exceptions import SourceFetchError
from ledger_kernel.logging_config import LogContext, get_logger

logger = get_logger("services.cashflow_aggregator")

# How often the join loop re-checks the cancellation token.
_POLL_SECONDS = 0.05


def _fetch_records(source: SourceFetch, cancel_token: CancellationToken) -> list[Mapping[str, Any]]:
    with LogContext.bind(source_name=source.name):
        t0 = time.monotonic()
        records = source.run(cancel_token)
        logger.debug("source_fetched", extra={
            "source_type": source.source_type.value,
            "record_count": len(records),
            "duration_ms": round((time.monotonic() - t0) * 1000, 2),
        })
        return records


class CashflowAggregator:
    """
    Build the unified cashflow feed.

    Contract:
        ``aggregate`` returns an AggregationResult whose ``entries`` are
        deduplicated, within the date range and sorted; every source that
        contributed nothing because it failed is named in
        ``failed_sources``.
    Non-goals:
        - Does not compute balances (see AccountLedgerService).
        - Does not retry failed sources.
    """

    def __init__(
        self,
        normalizer: TransactionNormalizer | None = None,
        *,
        config: EngineConfig | None = None,
        clock: Clock | None = None,
        deduplicator: Deduplicator | None = None,
        sorter: ChronoSorter | None = None,
    ) -> None:
        self._config = config or EngineConfig.default()
        self._normalizer = normalizer or TransactionNormalizer(
            clock=clock,
            default_payment_method=self._config.default_payment_method,
        )
        self._deduplicator = deduplicator or Deduplicator()
        self._sorter = sorter or ChronoSorter()

    @property
    def config(self) -> EngineConfig:
        return self._config

    def aggregate(
        self,
        sources: Sequence[SourceFetch],
        date_range: DateRange | None = None,
        sort_order: SortOrder | str | None = None,
        *,
        timeout: float | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> AggregationResult:
        """
        Fetch, normalize, dedupe, filter and sort.

        Args:
            sources: Fetch callables in priority order.
            date_range: Inclusive window; defaults to the configured range.
            sort_order: Defaults to the configured order.
            timeout: Seconds to wait for all fetches; defaults to the
                configured ``fetch_timeout_seconds``.
            cancel_token: Stops waiting when cancelled; sources that have
                not finished are reported as failed.  Fetch callables that
                take a ``cancel_token`` are told to stop, on timeout too.
        """
        date_range = date_range if date_range is not None else self._config.date_range
        order = SortOrder(sort_order) if sort_order is not None else self._config.sort_order
        timeout = timeout if timeout is not None else self._config.fetch_timeout_seconds

        included = [s for s in sources if self._config.includes(s.source_type)]
        for source in sources:
            if not self._config.includes(source.source_type):
                logger.debug("source_excluded", extra={"source_name": source.name})

        logger.info("aggregation_started", extra={
            "source_count": len(included),
            "sort_order": order.value,
            "date_from": date_range.start,
            "date_to": date_range.end,
        })
        t0 = time.monotonic()

        fetched, failed = self._fetch_all(included, timeout, cancel_token)

        entries: list[LedgerEntry] = []
        skipped: list[SkippedRecord] = []
        loaded: list[str] = []
        for index, source in enumerate(included):
            if index not in fetched:
                continue
            batch = self._normalizer.normalize_batch(
                fetched[index], source.source_type, source_name=source.name
            )
            entries.extend(batch.entries)
            skipped.extend(batch.skipped)
            loaded.append(source.name)

        unique = self._deduplicator.dedupe(entries)
        duplicates_removed = len(entries) - len(unique)
        if not date_range.is_unbounded:
            unique = [e for e in unique if date_range.contains(e.date)]
        ordered = self._sorter.sort(unique, order)

        result = AggregationResult(
            entries=tuple(ordered),
            failed_sources=tuple(failed),
            skipped_records=tuple(skipped),
            duplicates_removed=duplicates_removed,
            sources_loaded=tuple(loaded),
        )

        logger.info("aggregation_completed", extra={
            "entry_count": len(result.entries),
            "failed_source_count": len(result.failed_sources),
            "skipped_record_count": len(result.skipped_records),
            "duplicates_removed": result.duplicates_removed,
            "duration_ms": round((time.monotonic() - t0) * 1000, 2),
        })
        return result

    # -----------------------------------------------------------------
    # Internals
    # -----------------------------------------------------------------

    def _fetch_all(
        self,
        sources: Sequence[SourceFetch],
        timeout: float,
        cancel_token: CancellationToken | None,
    ) -> tuple[dict[int, list[Mapping[str, Any]]], list[SourceFetchError]]:
        """Fetch every source; results are keyed by position in ``sources``."""
        fetched: dict[int, list[Mapping[str, Any]]] = {}
        failures: dict[int, SourceFetchError] = {}
        if not sources:
            return fetched, []

        # set once the join loop stops waiting, for any reason
        run_token = CancellationToken()
        executor = ThreadPoolExecutor(
            max_workers=min(self._config.max_workers, len(sources)),
            thread_name_prefix="ledger-fetch",
        )
        try:
            futures: dict[Future, int] = {
                executor.submit(_fetch_records, source, run_token): index
                for index, source in enumerate(sources)
            }
            pending = set(futures)
            deadline = time.monotonic() + timeout
            stop_reason = "timed out"

            while pending:
                if cancel_token is not None and cancel_token.cancelled:
                    stop_reason = "cancelled"
                    break
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    break
                done, pending = wait(
                    pending,
                    timeout=min(remaining, _POLL_SECONDS),
                    return_when=FIRST_COMPLETED,
                )
                for future in done:
                    index = futures[future]
                    try:
                        fetched[index] = future.result()
                    except Exception as exc:
                        reason = str(exc) or type(exc).__name__
                        failures[index] = self._failure(sources[index], reason, exc)

            for future in pending:
                future.cancel()
                index = futures[future]
                failures[index] = self._failure(sources[index], stop_reason, None)
        finally:
            run_token.cancel()
            executor.shutdown(wait=False, cancel_futures=True)

        # report failures in source order
        ordered = [failures[i] for i in sorted(failures)]
        return fetched, ordered

    @staticmethod
    def _failure(
        source: SourceFetch,
        reason: str,
        cause: BaseException | None,
    ) -> SourceFetchError:
        logger.warning("source_fetch_failed", extra={
            "source_name": source.name,
            "source_type": source.source_type.value,
            "reason": reason,
            "error_type": type(cause).__name__ if cause else None,
        })
        return SourceFetchError(source.name, reason, cause=cause)

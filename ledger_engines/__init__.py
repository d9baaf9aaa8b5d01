"""
Module: ledger_engines
Responsibility:
    Package entrypoint that re-exports the public symbols of the pure
    ledger engines.  This is the import surface for ledger_services and
    the CLI.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import ledger_kernel (and sibling engine modules).
    MUST NOT import ledger_services, ledger_config or ledger_ingestion.

Invariants enforced:
    - Purity: engines never read the wall clock; "today" comes from an
      injected Clock.
    - Decimal-only arithmetic for every monetary amount.
    - Determinism: identical inputs always produce identical outputs.

Audit relevance:
    Engine entry points are wrapped by ``@traced_engine`` (see
    ``ledger_engines.tracer``), emitting LEDGER_ENGINE_TRACE records.

Usage:
    from ledger_engines import TransactionNormalizer, Deduplicator, ChronoSorter
    from ledger_engines import RunningBalanceCalculator, PaymentStatusResolver
"""

from ledger_kernel.logging_config import get_logger

logger = get_logger("engines")

from ledger_engines.cashflow_summary import (
    ActivityTotals,
    CashflowSummarizer,
    CashflowSummary,
    DailyCashflow,
    classify_activity,
)
from ledger_engines.chrono import ChronoSorter
from ledger_engines.dedup import Deduplicator, DuplicateGroup
from ledger_engines.normalizer import (
    NormalizationResult,
    TransactionNormalizer,
    coerce_source_type,
)
from ledger_engines.payment_status import PaymentStatusResolver, StatusSummary
from ledger_engines.running_balance import RunningBalanceCalculator
from ledger_engines.tracer import compute_input_fingerprint, traced_engine
from ledger_engines.waive_off import WaiveOffPlanner, WaiverAllocation

__all__ = [
    "ActivityTotals",
    "CashflowSummarizer",
    "CashflowSummary",
    "ChronoSorter",
    "DailyCashflow",
    "Deduplicator",
    "DuplicateGroup",
    "NormalizationResult",
    "PaymentStatusResolver",
    "RunningBalanceCalculator",
    "StatusSummary",
    "TransactionNormalizer",
    "WaiveOffPlanner",
    "WaiverAllocation",
    "classify_activity",
    "coerce_source_type",
    "compute_input_fingerprint",
    "traced_engine",
]

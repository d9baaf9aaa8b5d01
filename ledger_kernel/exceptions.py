"""
Typed Exception Hierarchy for the Ledger Engine.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Reconciliation runs over thousands of records pulled from many sources.
Callers must be able to tell "one record was bad" from "one source was down"
from "the caller passed entries in the wrong order" without parsing message
strings:
  1. Every error has a TYPED exception class (catch by type, not message)
  2. Every exception has a CODE attribute (machine-readable, API-safe)
  3. Exceptions carry structured DATA (not just a message string)

Example - recovering a single bad record:
    try:
        entry = normalizer.normalize(record, SourceType.PAYMENT)
    except RecordError as e:
        skipped.append(SkippedRecord("payments", e.record_id, e.code, str(e)))

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    LedgerEngineError (base)
    |
    +-- RecordError
    |   +-- ValidationError
    |   +-- MalformedDateError
    |   +-- UnknownSourceTypeError
    |
    +-- SourceError
    |   +-- SourceFetchError
    |   +-- FetchCancelledError
    |
    +-- LedgerOrderError
    |   +-- OrderingError
    |
    +-- WaiveOffError
    |   +-- InvalidWaiveOffError
    |   +-- WaiveOffExceedsOutstandingError
    |
    +-- ConfigError
        +-- InvalidConfigError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category   | Code                          | When Raised
-----------|-------------------------------|----------------------------------------
Record     | VALIDATION_ERROR              | Amount absent/negative after coercion
           | MALFORMED_DATE                | Date in neither ISO nor DD/MM/YYYY
           | UNKNOWN_SOURCE_TYPE           | Source type has no normalizer mapping
-----------|-------------------------------|----------------------------------------
Source     | SOURCE_FETCH_FAILED           | Fetch raised, timed out or cancelled
           | FETCH_CANCELLED               | Cooperative fetch saw its token cancelled
-----------|-------------------------------|----------------------------------------
Ordering   | ENTRIES_NOT_NEWEST_FIRST      | Running balance given oldest-first input
-----------|-------------------------------|----------------------------------------
Waive-off  | INVALID_WAIVE_OFF             | Waiver amount is zero or negative
           | WAIVE_OFF_EXCEEDS_OUTSTANDING | Waiver larger than the outstanding due
-----------|-------------------------------|----------------------------------------
Config     | INVALID_CONFIG                | Engine YAML has an unusable value

===============================================================================
HANDLING PATTERNS
===============================================================================

1. Per-record errors (RecordError) are recovered where the batch is
   processed: the record is dropped and a warning is logged.

2. SourceFetchError is usually not raised to the host at all: the
   aggregator returns it inside AggregationResult.failed_sources so the
   host can render a non-fatal notice next to the partial ledger.

3. OrderingError and WaiveOffError signal caller mistakes and propagate.
"""


class LedgerEngineError(Exception):
    """
    Base exception for all ledger engine errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "LEDGER_ENGINE_ERROR"


# Record-level exceptions


class RecordError(LedgerEngineError):
    """Base exception for a single source record that cannot be normalized."""

    code: str = "RECORD_ERROR"

    record_id: str | None = None


class ValidationError(RecordError):
    """A required numeric field is absent or invalid after coercion."""

    code: str = "VALIDATION_ERROR"

    def __init__(
        self,
        field: str,
        reason: str,
        record_id: str | None = None,
        source_type: str | None = None,
    ):
        self.field = field
        self.reason = reason
        self.record_id = record_id
        self.source_type = source_type
        where = f" on {source_type} record {record_id}" if record_id else ""
        super().__init__(f"Invalid {field}{where}: {reason}")


class MalformedDateError(RecordError):
    """A date string matches neither supported format."""

    code: str = "MALFORMED_DATE"

    def __init__(
        self,
        value: object,
        field: str = "date",
        record_id: str | None = None,
    ):
        self.value = value
        self.field = field
        self.record_id = record_id
        super().__init__(
            f"Cannot parse {field} {value!r}: expected YYYY-MM-DD or DD/MM/YYYY"
        )


class UnknownSourceTypeError(RecordError):
    """The source type has no normalization mapping."""

    code: str = "UNKNOWN_SOURCE_TYPE"

    def __init__(self, source_type: str):
        self.source_type = source_type
        super().__init__(f"Unknown source type: {source_type}")


# Source-level exceptions


class SourceError(LedgerEngineError):
    """Base exception for source collection errors."""

    code: str = "SOURCE_ERROR"


class SourceFetchError(SourceError):
    """
    A source collection failed to load.

    The aggregator converts fetch failures into instances of this class and
    reports them instead of raising.  ``cause`` holds the original exception
    when there was one (None for timeouts and cancellations).
    """

    code: str = "SOURCE_FETCH_FAILED"

    def __init__(
        self,
        source_name: str,
        reason: str,
        cause: BaseException | None = None,
    ):
        self.source_name = source_name
        self.reason = reason
        self.cause = cause
        super().__init__(f"Source {source_name} failed: {reason}")


class FetchCancelledError(SourceError):
    """
    A cooperative fetch noticed its cancellation token and stopped early.

    Raised inside the worker thread; the aggregator has already reported
    the source as cancelled or timed out by then.
    """

    code: str = "FETCH_CANCELLED"

    def __init__(self, source_name: str | None = None):
        self.source_name = source_name
        super().__init__(f"Fetch of {source_name or 'source'} was cancelled")


# Ledger ordering exceptions


class LedgerOrderError(LedgerEngineError):
    """Base exception for entry ordering contract violations."""

    code: str = "LEDGER_ORDER_ERROR"


class OrderingError(LedgerOrderError):
    """
    Entries passed to the running balance calculator are not newest-first.

    Historical balances can only be derived backward from the current
    balance; oldest-first input must be reversed by the caller.
    """

    code: str = "ENTRIES_NOT_NEWEST_FIRST"

    def __init__(self, position: int, previous_date: str, current_date: str):
        self.position = position
        self.previous_date = previous_date
        self.current_date = current_date
        super().__init__(
            f"Entries must be newest-first: entry {position} dated "
            f"{current_date} follows {previous_date}"
        )


# Waive-off exceptions


class WaiveOffError(LedgerEngineError):
    """Base exception for waive-off errors."""

    code: str = "WAIVE_OFF_ERROR"


class InvalidWaiveOffError(WaiveOffError):
    """Waiver amount is zero or negative."""

    code: str = "INVALID_WAIVE_OFF"

    def __init__(self, amount: str):
        self.amount = amount
        super().__init__(f"Waived amount must be greater than 0, got {amount}")


class WaiveOffExceedsOutstandingError(WaiveOffError):
    """Waiver is larger than the amount still outstanding."""

    code: str = "WAIVE_OFF_EXCEEDS_OUTSTANDING"

    def __init__(self, amount: str, outstanding: str):
        self.amount = amount
        self.outstanding = outstanding
        super().__init__(
            f"Cannot waive {amount}. Outstanding amount is only {outstanding}"
        )


# Configuration exceptions


class ConfigError(LedgerEngineError):
    """Base exception for configuration errors."""

    code: str = "CONFIG_ERROR"


class InvalidConfigError(ConfigError):
    """A configuration key holds an unusable value."""

    code: str = "INVALID_CONFIG"

    def __init__(self, key: str, value: object, reason: str):
        self.key = key
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid config {key}={value!r}: {reason}")

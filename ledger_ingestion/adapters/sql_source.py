"""
SQL table source.

Reads one upstream table (payments, bank_transactions, ...) with SQLAlchemy
Core and returns each row as a plain dict.  The table is reflected, so no
ORM model is needed.  An inclusive calendar-day range is pushed down into
the WHERE clause when a date column is named.

Failure modes:
    - ``sqlalchemy.exc.NoSuchTableError`` for a missing table.
    - ``KeyError`` for a date column the table does not have.
    - Any ``SQLAlchemyError`` from the driver.
    All propagate; the aggregator turns them into SourceFetchError values.
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta
from typing import Any

from sqlalchemy import Date, DateTime, MetaData, Table, select
from sqlalchemy.engine import Engine

from ledger_kernel.domain.ledger_types import CancellationToken, DateRange
from ledger_kernel.logging_config import get_logger

logger = get_logger("ingestion.sql_source")


def _bounds(column: Any, start: date | None, end: date | None) -> tuple[Any, Any]:
    """Lower bound (inclusive) and upper bound (exclusive) in the column's own type."""
    upper = end + timedelta(days=1) if end is not None else None
    if isinstance(column.type, DateTime):
        lo = datetime.combine(start, time.min) if start is not None else None
        hi = datetime.combine(upper, time.min) if upper is not None else None
        return lo, hi
    if isinstance(column.type, Date):
        return start, upper
    # text columns holding ISO dates
    return (
        start.isoformat() if start is not None else None,
        upper.isoformat() if upper is not None else None,
    )


class SqlTableSource:
    """
    Callable fetch over one table, usable directly as ``SourceFetch.fetch``.

    Each call opens a connection from the engine's pool, so one instance can
    be shared across aggregations.  Rows are fetched ``batch_size`` at a
    time and a cancelled token is checked between batches.
    """

    def __init__(
        self,
        engine: Engine,
        table_name: str,
        date_column: str | None = None,
        date_range: DateRange | None = None,
        schema: str | None = None,
        batch_size: int = 500,
    ) -> None:
        self._engine = engine
        self._table_name = table_name
        self._date_column = date_column
        self._date_range = date_range or DateRange.all()
        self._schema = schema
        self._batch_size = batch_size

    @property
    def table_name(self) -> str:
        return self._table_name

    def __call__(self, cancel_token: CancellationToken | None = None) -> list[dict[str, Any]]:
        if cancel_token is not None:
            cancel_token.raise_if_cancelled(self._table_name)
        table = Table(
            self._table_name, MetaData(), autoload_with=self._engine, schema=self._schema
        )
        stmt = select(table)

        if self._date_column and not self._date_range.is_unbounded:
            column = table.c[self._date_column]
            lo, hi = _bounds(column, self._date_range.start, self._date_range.end)
            if lo is not None:
                stmt = stmt.where(column >= lo)
            if hi is not None:
                stmt = stmt.where(column < hi)

        rows: list[dict[str, Any]] = []
        with self._engine.connect() as conn:
            result = conn.execution_options(yield_per=self._batch_size).execute(stmt)
            for batch in result.mappings().partitions(self._batch_size):
                if cancel_token is not None:
                    cancel_token.raise_if_cancelled(self._table_name)
                rows.extend(dict(row) for row in batch)

        logger.debug("sql_source_read", extra={
            "table": self._table_name,
            "row_count": len(rows),
        })
        return rows

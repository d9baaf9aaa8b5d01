"""
EngineConfig schema.

The reviewable, version-controlled settings for one deployment of the
ledger engine.  YAML files are parsed into this type by
``ledger_config.loader``; services read it, engines never do.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from ledger_kernel.domain.ledger_types import DateRange, SortOrder, SourceType

DEFAULT_CURRENCY = "INR"
DEFAULT_PAYMENT_METHOD = "cash"
DEFAULT_FETCH_TIMEOUT_SECONDS = 30.0
DEFAULT_MAX_WORKERS = 8


@dataclass(frozen=True)
class EngineConfig:
    """Settings consumed by the aggregator, services and CLI."""

    currency: str = DEFAULT_CURRENCY
    default_payment_method: str = DEFAULT_PAYMENT_METHOD
    sort_order: SortOrder = SortOrder.DESCENDING
    date_range: DateRange = field(default_factory=DateRange.all)
    include_sources: tuple[SourceType, ...] = tuple(SourceType)
    fetch_timeout_seconds: float = DEFAULT_FETCH_TIMEOUT_SECONDS
    max_workers: int = DEFAULT_MAX_WORKERS

    @classmethod
    def default(cls) -> EngineConfig:
        return cls()

    def includes(self, source_type: SourceType) -> bool:
        return source_type in self.include_sources

    def to_dict(self) -> dict[str, Any]:
        """Plain-data form, in the same shape the YAML file uses."""
        return {
            "currency": self.currency,
            "default_payment_method": self.default_payment_method,
            "sort_order": self.sort_order.value,
            "date_range": {
                "from": self.date_range.start.isoformat() if self.date_range.start else "all",
                "to": self.date_range.end.isoformat() if self.date_range.end else "all",
            },
            "include_sources": [s.value for s in self.include_sources],
            "fetch_timeout_seconds": self.fetch_timeout_seconds,
            "max_workers": self.max_workers,
        }

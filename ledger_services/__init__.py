"""
Ledger services -- imperative shells around the pure ledger engines.

Services own the concurrency (source fan-out) and compose engines into
account-level views.  Engines never import from here.
"""

from ledger_services.account_ledger import AccountLedgerService, DaySheet
from ledger_services.cashflow_aggregator import CancellationToken, CashflowAggregator

__all__ = [
    "AccountLedgerService",
    "CancellationToken",
    "CashflowAggregator",
    "DaySheet",
]

#!/usr/bin/env python3
"""
Print the unified cashflow feed and summary for a set of exported sources.

Usage:
  python3 scripts/cashflow_report.py --source payment=exports/payments.csv \
      --source bank_transaction=exports/bank.json
  python3 scripts/cashflow_report.py --config engine.yaml \
      --source payment=payments.csv --from 2024-01-01 --to 2024-01-31 \
      --order ascending --current-balance 5000

Each --source is SOURCE_TYPE=PATH; the adapter is picked from the file suffix
(.csv, .json, .jsonl, .xlsx).  With --current-balance the feed is printed
newest-first with the balance before and after every entry; --account
narrows it to one bank account.

Exit codes: 0 success, 1 when any source failed to load, 2 on usage error.
"""

from __future__ import annotations

import argparse
import logging
import sys
from decimal import Decimal
from pathlib import Path

_project_root = Path(__file__).resolve().parent.parent
if str(_project_root) not in sys.path:
    sys.path.insert(0, str(_project_root))

from ledger_config import EngineConfig, load_engine_config
from ledger_engines.cashflow_summary import CashflowSummarizer, CashflowSummary
from ledger_ingestion.sources import file_source
from ledger_kernel.domain.amounts import coerce_amount
from ledger_kernel.domain.clock import SystemClock
from ledger_kernel.domain.ledger_types import (
    ALL,
    AccountLedgerView,
    AggregationResult,
    DateRange,
    SortOrder,
    SourceFetch,
    SourceType,
)
from ledger_kernel.exceptions import ConfigError, MalformedDateError
from ledger_kernel.logging_config import configure_logging
from ledger_services.account_ledger import AccountLedgerService
from ledger_services.cashflow_aggregator import CashflowAggregator

EXIT_OK = 0
EXIT_SOURCE_FAILED = 1
EXIT_USAGE = 2


def _parse_source(value: str) -> tuple[SourceType, Path]:
    source_type, sep, path = value.partition("=")
    if not sep or not path:
        raise argparse.ArgumentTypeError(f"expected SOURCE_TYPE=PATH, got {value!r}")
    try:
        return SourceType(source_type.strip()), Path(path.strip())
    except ValueError:
        valid = ", ".join(s.value for s in SourceType)
        raise argparse.ArgumentTypeError(
            f"unknown source type {source_type!r} (expected one of: {valid})"
        ) from None


def _parse_balance(value: str) -> Decimal:
    amount = coerce_amount(value)
    if amount is None:
        raise argparse.ArgumentTypeError(f"not a number: {value!r}")
    return amount


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Print the unified cashflow feed and summary for exported sources."
    )
    parser.add_argument("--config", type=Path, default=None, help="Engine YAML config")
    parser.add_argument(
        "--source",
        action="append",
        type=_parse_source,
        default=[],
        metavar="TYPE=PATH",
        help="Source file, repeatable (e.g. payment=payments.csv)",
    )
    parser.add_argument("--from", dest="date_from", default=None, help="First day (inclusive)")
    parser.add_argument("--to", dest="date_to", default=None, help="Last day (inclusive)")
    parser.add_argument(
        "--order",
        choices=[o.value for o in SortOrder],
        default=None,
        help="Sort order (default: from config, else descending)",
    )
    parser.add_argument(
        "--current-balance",
        type=_parse_balance,
        default=None,
        help="Account balance today, after every entry on record; enables running balances",
    )
    parser.add_argument(
        "--account",
        default=None,
        help="Only entries booked to this bank account id (needs --current-balance)",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Structured log level on stderr",
    )
    return parser


def _format_amount(value: Decimal, currency: str) -> str:
    return f"{currency} {value:,.2f}"


def _print_feed(
    result: AggregationResult,
    view: AccountLedgerView | None,
    currency: str,
) -> None:
    if view is not None:
        print(f"{'Date':<10}  {'Category':<18} {'Amount':>16} {'Before':>16} {'After':>16}  Description")
        for line in view.lines:
            e = line.entry
            sign = "+" if e.is_income else "-"
            print(
                f"{e.date.isoformat():<10}  {e.category.value:<18} "
                f"{sign + _format_amount(e.amount, currency):>16} "
                f"{_format_amount(line.balance_before, currency):>16} "
                f"{_format_amount(line.balance_after, currency):>16}  {e.description}"
            )
        return

    print(f"{'Date':<10}  {'Category':<18} {'Amount':>16}  Description")
    for e in result.entries:
        sign = "+" if e.is_income else "-"
        print(
            f"{e.date.isoformat():<10}  {e.category.value:<18} "
            f"{sign + _format_amount(e.amount, currency):>16}  {e.description}"
        )


def _print_summary(summary: CashflowSummary, currency: str) -> None:
    print()
    print(f"Entries:        {summary.entry_count}")
    print(f"Total inflows:  {_format_amount(summary.total_inflows, currency)}")
    print(f"Total outflows: {_format_amount(summary.total_outflows, currency)}")
    print(f"Net cash flow:  {_format_amount(summary.net_cash_flow, currency)}")
    for activity, totals in summary.by_activity.items():
        print(
            f"  {activity.value.capitalize():<10} receipts {_format_amount(totals.receipts, currency)}"
            f"  payments {_format_amount(totals.payments, currency)}"
            f"  net {_format_amount(totals.net, currency)}"
        )
    if summary.by_payment_method:
        print("By payment method:")
        for method, amount in sorted(summary.by_payment_method.items()):
            print(f"  {method:<14} {_format_amount(amount, currency)}")


def _print_warnings(result: AggregationResult) -> None:
    for failure in result.failed_sources:
        print(f"Warning: source {failure.source_name} failed: {failure.reason}", file=sys.stderr)
    for skipped in result.skipped_records:
        print(
            f"Warning: skipped {skipped.source_name} record {skipped.record_id or '?'}: "
            f"{skipped.reason}",
            file=sys.stderr,
        )
    if result.duplicates_removed:
        print(f"Note: {result.duplicates_removed} duplicate entries removed", file=sys.stderr)


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.source:
        parser.error("at least one --source is required")
    if args.account is not None and args.current_balance is None:
        parser.error("--account needs --current-balance")

    configure_logging(level=getattr(logging, args.log_level), stream=sys.stderr)

    try:
        config = load_engine_config(args.config) if args.config else EngineConfig.default()
    except FileNotFoundError:
        print(f"Error: config file not found: {args.config}", file=sys.stderr)
        return EXIT_USAGE
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_USAGE

    try:
        date_range = config.date_range
        if args.date_from is not None or args.date_to is not None:
            date_range = DateRange.parse(
                args.date_from if args.date_from is not None else (date_range.start or ALL),
                args.date_to if args.date_to is not None else (date_range.end or ALL),
            )
    except (MalformedDateError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_USAGE

    sources: list[SourceFetch] = []
    for source_type, path in args.source:
        try:
            sources.append(file_source(source_type, path, name=f"{source_type.value}:{path.name}"))
        except ValueError as e:
            print(f"Error: {e}", file=sys.stderr)
            return EXIT_USAGE

    aggregator = CashflowAggregator(config=config, clock=SystemClock())

    view: AccountLedgerView | None = None
    if args.current_balance is not None:
        view, result = AccountLedgerService(aggregator).ledger_for(
            args.current_balance, sources, date_range, account_id=args.account
        )
    else:
        result = aggregator.aggregate(sources, date_range, args.order)

    _print_feed(result, view, config.currency)
    opening = view.opening_balance if view is not None else Decimal("0")
    _print_summary(CashflowSummarizer().summarize(result.entries, opening), config.currency)
    _print_warnings(result)

    return EXIT_SOURCE_FAILED if result.failed_sources else EXIT_OK


if __name__ == "__main__":
    sys.exit(main())

"""Source adapters: exported files and database tables read into record dicts."""

from ledger_ingestion.adapters.base import SourceAdapter, SourceProbe
from ledger_ingestion.adapters.csv_adapter import CsvSourceAdapter
from ledger_ingestion.adapters.json_adapter import JsonSourceAdapter
from ledger_ingestion.adapters.sql_source import SqlTableSource
from ledger_ingestion.adapters.xlsx_adapter import XlsxSourceAdapter

__all__ = [
    "SourceAdapter",
    "SourceProbe",
    "CsvSourceAdapter",
    "JsonSourceAdapter",
    "SqlTableSource",
    "XlsxSourceAdapter",
]

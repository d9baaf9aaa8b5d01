"""
Ledger ingestion: read upstream collections from exported files or database
tables and present them to the aggregator as ``SourceFetch`` callables.

Adapters do I/O only; normalization happens in ledger_engines.
"""

from ledger_ingestion.sources import adapter_for, file_source, rename_fields, sql_source

__all__ = ["adapter_for", "file_source", "rename_fields", "sql_source"]

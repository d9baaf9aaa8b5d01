"""
Ledger engine configuration.

Usage:
    from ledger_config import load_engine_config

    config = load_engine_config("engine.yaml")
    config.sort_order        # SortOrder.DESCENDING
    config.include_sources   # every SourceType unless narrowed
"""

from ledger_config.loader import (
    compute_checksum,
    load_engine_config,
    load_yaml_file,
    parse_engine_config,
)
from ledger_config.schema import EngineConfig

__all__ = [
    "EngineConfig",
    "compute_checksum",
    "load_engine_config",
    "load_yaml_file",
    "parse_engine_config",
]

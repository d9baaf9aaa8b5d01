"""
Configuration Loader (``ledger_config.loader``).

Responsibility
--------------
Loads the engine YAML file and parses it into a frozen
``ledger_config.schema.EngineConfig``.

Architecture position
---------------------
**Config layer** -- infrastructure tooling.  Consumed by services and the
CLI.  Depends on the kernel domain types only.

Invariants enforced
-------------------
* Missing keys take the documented defaults; present keys are validated.
* Every parse error raises ``InvalidConfigError`` naming the key.
* ``compute_checksum`` produces a deterministic SHA-256 hash for
  configuration identity and change detection.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Unknown source type, bad sort order, non-positive worker count or
  timeout, unparseable date  -> ``InvalidConfigError``.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any

import yaml

from ledger_config.schema import (
    DEFAULT_CURRENCY,
    DEFAULT_FETCH_TIMEOUT_SECONDS,
    DEFAULT_MAX_WORKERS,
    DEFAULT_PAYMENT_METHOD,
    EngineConfig,
)
from ledger_kernel.domain.ledger_types import ALL, DateRange, SortOrder, SourceType
from ledger_kernel.exceptions import InvalidConfigError, MalformedDateError
from ledger_kernel.logging_config import get_logger

logger = get_logger("config.loader")


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path, encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def load_engine_config(path: Path | str) -> EngineConfig:
    """Load and validate an engine config file."""
    path = Path(path)
    data = load_yaml_file(path)
    config = parse_engine_config(data)
    logger.info("engine_config_loaded", extra={
        "path": str(path),
        "checksum": compute_checksum(config),
    })
    return config


def parse_engine_config(data: dict[str, Any]) -> EngineConfig:
    """
    Parse an ``engine:`` mapping (or a document containing one).

    Postconditions:
        - Returns a frozen EngineConfig; absent keys hold their defaults.
    Raises:
        InvalidConfigError: for any unusable value.
    """
    if not isinstance(data, dict):
        raise InvalidConfigError("engine", data, "expected a mapping")
    section = data.get("engine", data)
    if section is None:
        section = {}
    if not isinstance(section, dict):
        raise InvalidConfigError("engine", section, "expected a mapping")

    return EngineConfig(
        currency=_parse_str(section, "currency", DEFAULT_CURRENCY),
        default_payment_method=_parse_str(
            section, "default_payment_method", DEFAULT_PAYMENT_METHOD
        ),
        sort_order=_parse_sort_order(section.get("sort_order", SortOrder.DESCENDING.value)),
        date_range=_parse_date_range(section.get("date_range")),
        include_sources=_parse_sources(section.get("include_sources")),
        fetch_timeout_seconds=_parse_positive(
            section, "fetch_timeout_seconds", DEFAULT_FETCH_TIMEOUT_SECONDS, float
        ),
        max_workers=_parse_positive(section, "max_workers", DEFAULT_MAX_WORKERS, int),
    )


def compute_checksum(config: EngineConfig | dict[str, Any]) -> str:
    """
    SHA-256 of the canonical JSON form of a config.

    Identical settings always produce identical checksums.
    """
    data = config.to_dict() if isinstance(config, EngineConfig) else config
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


# ---------------------------------------------------------------------------
# Field parsers
# ---------------------------------------------------------------------------


def _parse_str(section: dict[str, Any], key: str, default: str) -> str:
    value = section.get(key, default)
    if not isinstance(value, str) or not value.strip():
        raise InvalidConfigError(key, value, "expected a non-empty string")
    return value.strip()


def _parse_sort_order(value: Any) -> SortOrder:
    try:
        return SortOrder(str(value).lower())
    except ValueError as exc:
        raise InvalidConfigError(
            "sort_order", value, "expected ascending or descending"
        ) from exc


def _parse_date_range(value: Any) -> DateRange:
    if value is None:
        return DateRange.all()
    if not isinstance(value, dict):
        raise InvalidConfigError("date_range", value, "expected a mapping with from/to")
    try:
        return DateRange.parse(value.get("from", ALL), value.get("to", ALL))
    except MalformedDateError as exc:
        raise InvalidConfigError(f"date_range.{exc.field}", exc.value, str(exc)) from exc
    except ValueError as exc:
        raise InvalidConfigError("date_range", value, str(exc)) from exc


def _parse_sources(value: Any) -> tuple[SourceType, ...]:
    if value is None:
        return tuple(SourceType)
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list):
        raise InvalidConfigError("include_sources", value, "expected a list")

    sources: list[SourceType] = []
    for item in value:
        if isinstance(item, str) and item.lower() == ALL:
            return tuple(SourceType)
        try:
            source = SourceType(item)
        except ValueError as exc:
            raise InvalidConfigError(
                "include_sources", item, "unknown source type"
            ) from exc
        if source not in sources:
            sources.append(source)
    return tuple(sources)


def _parse_positive(section: dict[str, Any], key: str, default: Any, kind: type) -> Any:
    value = section.get(key, default)
    if isinstance(value, bool):
        raise InvalidConfigError(key, value, "expected a positive number")
    try:
        parsed = kind(value)
    except (TypeError, ValueError) as exc:
        raise InvalidConfigError(key, value, "expected a positive number") from exc
    if parsed <= 0:
        raise InvalidConfigError(key, value, "must be positive")
    return parsed

"""
Tests for the engine YAML config.

Covers:
- Defaults when keys are absent
- Parsing of every key from a YAML file
- InvalidConfigError naming the offending key
- Deterministic checksums
"""

from datetime import date
from pathlib import Path

import pytest
import yaml

from ledger_config import (
    EngineConfig,
    compute_checksum,
    load_engine_config,
    parse_engine_config,
)
from ledger_kernel.domain.ledger_types import DateRange, SortOrder, SourceType
from ledger_kernel.exceptions import InvalidConfigError

ENGINE_YAML = """\
engine:
  currency: INR
  default_payment_method: bank_transfer
  sort_order: ascending
  date_range:
    from: 2024-04-01
    to: 31/03/2025
  include_sources:
    - payment
    - bank_transaction
    - payment
  fetch_timeout_seconds: 12.5
  max_workers: 4
"""


class TestDefaults:
    """Absent keys take their defaults."""

    def test_default_config(self):
        config = EngineConfig.default()

        assert config.currency == "INR"
        assert config.default_payment_method == "cash"
        assert config.sort_order == SortOrder.DESCENDING
        assert config.date_range.is_unbounded
        assert config.include_sources == tuple(SourceType)
        assert config.fetch_timeout_seconds == 30.0
        assert config.max_workers == 8

    def test_empty_document(self):
        assert parse_engine_config({}) == EngineConfig.default()

    def test_empty_engine_section(self):
        assert parse_engine_config({"engine": None}) == EngineConfig.default()

    def test_includes(self):
        config = EngineConfig(include_sources=(SourceType.PAYMENT,))

        assert config.includes(SourceType.PAYMENT)
        assert not config.includes(SourceType.EXPENSE)


class TestLoadEngineConfig:
    """Full YAML round through the loader."""

    def test_load_from_file(self, tmp_path):
        path = tmp_path / "engine.yaml"
        path.write_text(ENGINE_YAML, encoding="utf-8")

        config = load_engine_config(path)

        assert config.default_payment_method == "bank_transfer"
        assert config.sort_order == SortOrder.ASCENDING
        assert config.date_range == DateRange(date(2024, 4, 1), date(2025, 3, 31))
        assert config.include_sources == (SourceType.PAYMENT, SourceType.BANK_TRANSACTION)
        assert config.fetch_timeout_seconds == 12.5
        assert config.max_workers == 4

    def test_load_logs_checksum(self, tmp_path, captured_logs):
        path = tmp_path / "engine.yaml"
        path.write_text(ENGINE_YAML, encoding="utf-8")

        config = load_engine_config(path)

        loaded = [r for r in captured_logs() if r["message"] == "engine_config_loaded"]
        assert loaded[0]["checksum"] == compute_checksum(config)

    def test_shipped_file_matches_defaults(self):
        shipped = Path(__file__).resolve().parents[2] / "engine.yaml"

        assert load_engine_config(shipped) == EngineConfig.default()

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_engine_config(tmp_path / "absent.yaml")

    def test_malformed_yaml(self, tmp_path):
        path = tmp_path / "engine.yaml"
        path.write_text("engine: [unclosed\n", encoding="utf-8")

        with pytest.raises(yaml.YAMLError):
            load_engine_config(path)

    def test_top_level_keys_without_engine_section(self):
        config = parse_engine_config({"sort_order": "ASCENDING", "include_sources": "all"})

        assert config.sort_order == SortOrder.ASCENDING
        assert config.include_sources == tuple(SourceType)

    def test_open_ended_range(self):
        config = parse_engine_config({"date_range": {"from": "2024-01-01", "to": "all"}})

        assert config.date_range == DateRange(date(2024, 1, 1), None)


class TestInvalidValues:
    """Every unusable value names its key."""

    @pytest.mark.parametrize(
        "data, key",
        [
            ({"sort_order": "sideways"}, "sort_order"),
            ({"include_sources": ["payment", "invoices"]}, "include_sources"),
            ({"include_sources": {"payment": True}}, "include_sources"),
            ({"max_workers": 0}, "max_workers"),
            ({"max_workers": True}, "max_workers"),
            ({"fetch_timeout_seconds": "soon"}, "fetch_timeout_seconds"),
            ({"fetch_timeout_seconds": -1}, "fetch_timeout_seconds"),
            ({"currency": ""}, "currency"),
            ({"date_range": "march"}, "date_range"),
            ({"date_range": {"from": "2024-13-01"}}, "date_range.from"),
            ({"date_range": {"from": "2024-03-02", "to": "2024-03-01"}}, "date_range"),
            ({"engine": ["not", "a", "mapping"]}, "engine"),
        ],
    )
    def test_rejected(self, data, key):
        with pytest.raises(InvalidConfigError) as exc_info:
            parse_engine_config(data)

        assert exc_info.value.key == key
        assert exc_info.value.code == "INVALID_CONFIG"


class TestChecksum:
    """Configuration identity."""

    def test_same_settings_same_checksum(self):
        a = parse_engine_config({"max_workers": 4})
        b = EngineConfig(max_workers=4)

        assert compute_checksum(a) == compute_checksum(b)
        assert len(compute_checksum(a)) == 64

    def test_any_change_changes_checksum(self):
        assert compute_checksum(EngineConfig()) != compute_checksum(
            EngineConfig(default_payment_method="upi")
        )

    def test_dict_and_config_agree(self):
        config = EngineConfig()

        assert compute_checksum(config) == compute_checksum(config.to_dict())

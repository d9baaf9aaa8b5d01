"""
Tests for @traced_engine and input fingerprints.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal

import pytest

from ledger_engines.tracer import compute_input_fingerprint, traced_engine
from ledger_kernel.domain.ledger_types import SortOrder


@dataclass(frozen=True)
class _Due:
    amount: Decimal
    due_on: date


@traced_engine("sample", "2.1", fingerprint_fields=("entries", "order"))
def _sample_engine(entries, order=SortOrder.DESCENDING):
    return list(entries)


@traced_engine("exploding", "1.0", fingerprint_fields=("amount",))
def _exploding_engine(amount):
    raise ValueError(f"cannot use {amount}")


class TestFingerprint:

    def test_stable_for_equal_inputs(self):
        a = compute_input_fingerprint(("dues",), {"dues": [_Due(Decimal("10.00"), date(2024, 1, 1))]})
        b = compute_input_fingerprint(("dues",), {"dues": (_Due(Decimal("10.00"), date(2024, 1, 1)),)})

        assert a == b
        assert len(a) == 16

    def test_mapping_key_order_ignored(self):
        assert compute_input_fingerprint(("m",), {"m": {"a": 1, "b": 2}}) == \
            compute_input_fingerprint(("m",), {"m": {"b": 2, "a": 1}})

    def test_decimal_scale_matters(self):
        assert compute_input_fingerprint(("x",), {"x": Decimal("10")}) != \
            compute_input_fingerprint(("x",), {"x": Decimal("10.00")})

    def test_missing_argument_counts_as_null(self):
        assert compute_input_fingerprint(("x",), {}) == \
            compute_input_fingerprint(("x",), {"x": None})


class TestTracedEngine:

    def test_trace_logged_with_output_count(self, captured_logs):
        result = _sample_engine([1, 2, 3])

        assert result == [1, 2, 3]
        (trace,) = [r for r in captured_logs() if r["message"] == "LEDGER_ENGINE_TRACE"]
        assert trace["engine_name"] == "sample"
        assert trace["engine_version"] == "2.1"
        assert trace["output_count"] == 3
        assert trace["duration_ms"] >= 0

    def test_positional_and_keyword_calls_fingerprint_alike(self, captured_logs):
        _sample_engine([1], SortOrder.ASCENDING)
        _sample_engine(entries=[1], order=SortOrder.ASCENDING)

        first, second = [r for r in captured_logs() if r["message"] == "LEDGER_ENGINE_TRACE"]
        assert first["input_fingerprint"] == second["input_fingerprint"]

    def test_failure_logged_and_reraised(self, captured_logs):
        with pytest.raises(ValueError, match="cannot use 5"):
            _exploding_engine(5)

        logs = captured_logs()
        (failure,) = [r for r in logs if r["message"] == "LEDGER_ENGINE_FAILED"]
        assert failure["level"] == "WARNING"
        assert failure["error_type"] == "ValueError"
        assert not [r for r in logs if r["message"] == "LEDGER_ENGINE_TRACE"]

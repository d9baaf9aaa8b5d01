"""
ledger_engines.tracer -- ``@traced_engine``, one LEDGER_ENGINE_TRACE per call.

Each decorated engine method logs which engine ran, at which version, over
which inputs, for how long, and how many items it returned.  Inputs are
identified by a short fingerprint rather than logged in full, so two runs
over the same ledger can be matched without leaking amounts into logs.

Architecture position:
    Engines.  Reads arguments and writes a log record; never changes either
    the arguments or the return value.

Fingerprints:
    Named parameters are reduced to a canonical text form (sorted mapping
    keys, dataclass fields in declaration order, Decimal and dates via
    ``str``/``isoformat``), joined, and hashed with SHA-256.  The first 16
    hex characters are kept.  A parameter the call did not supply counts as
    ``null``.

Failures:
    An exception from the engine is logged as ``LEDGER_ENGINE_FAILED`` with
    the same fingerprint and re-raised unchanged.

Usage:
    @traced_engine("chrono", "1.0", fingerprint_fields=("order",))
    def sort(self, entries, order=SortOrder.DESCENDING):
        ...
"""

from __future__ import annotations

import functools
import hashlib
import inspect
import time
from collections.abc import Callable, Mapping, Sized
from dataclasses import fields, is_dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from ledger_kernel.logging_config import get_logger

_logger = get_logger("engines.tracer")

TRACE_MESSAGE = "LEDGER_ENGINE_TRACE"
FAILURE_MESSAGE = "LEDGER_ENGINE_FAILED"


def _canonical(value: Any) -> str:
    match value:
        case None:
            return "null"
        case Enum():
            return str(value.value)
        case str():
            return value
        case bool() | int() | float() | Decimal():
            return str(value)
        case datetime() | date():
            return value.isoformat()
        case Mapping():
            pairs = sorted((str(k), _canonical(v)) for k, v in value.items())
            return "{" + ",".join(f"{k}:{v}" for k, v in pairs) + "}"
        case list() | tuple():
            return "[" + ",".join(_canonical(v) for v in value) + "]"
    if is_dataclass(value) and not isinstance(value, type):
        body = ",".join(f"{f.name}:{_canonical(getattr(value, f.name))}" for f in fields(value))
        return f"{type(value).__name__}{{{body}}}"
    return str(value)


def compute_input_fingerprint(
    fingerprint_fields: tuple[str, ...],
    arguments: Mapping[str, Any],
) -> str:
    """16-hex-char SHA-256 over the named arguments, in the order named."""
    text = "|".join(f"{name}={_canonical(arguments.get(name))}" for name in fingerprint_fields)
    return hashlib.sha256(text.encode("utf-8")).hexdigest()[:16]


def traced_engine(
    engine_name: str,
    engine_version: str,
    fingerprint_fields: tuple[str, ...] = (),
) -> Callable:
    """
    Decorate an engine method with trace logging.

    ``fingerprint_fields`` name parameters of the wrapped function; they are
    bound against its signature, so positional and keyword calls fingerprint
    identically.
    """

    def decorator(func: Callable) -> Callable:
        signature = inspect.signature(func)

        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            fingerprint = ""
            if fingerprint_fields:
                arguments = signature.bind_partial(*args, **kwargs).arguments
                fingerprint = compute_input_fingerprint(fingerprint_fields, arguments)
            trace = {
                "trace_type": TRACE_MESSAGE,
                "engine_name": engine_name,
                "engine_version": engine_version,
                "input_fingerprint": fingerprint,
                "function": func.__qualname__,
            }

            started = time.monotonic()
            try:
                result = func(*args, **kwargs)
            except Exception as exc:
                trace["duration_ms"] = round((time.monotonic() - started) * 1000, 2)
                trace["error_type"] = type(exc).__name__
                _logger.warning(FAILURE_MESSAGE, extra=trace)
                raise
            trace["duration_ms"] = round((time.monotonic() - started) * 1000, 2)

            if isinstance(result, Sized) and not isinstance(result, (str, Mapping)):
                trace["output_count"] = len(result)
            _logger.info(TRACE_MESSAGE, extra=trace)
            return result

        return wrapper

    return decorator

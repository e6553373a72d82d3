"""
guard_engines.tracer -- GUARD_ENGINE_TRACE records for engine calls.

Responsibility:
    ``@traced_engine`` wraps a pure engine method and, after it returns,
    logs one GUARD_ENGINE_TRACE record naming the engine, its version,
    a fingerprint of the chosen inputs and the call duration.

Architecture position:
    Engines -- support code for the calculation layer. Emits a log
    record and nothing else; engines stay free of database access.

Invariants enforced:
    - The same inputs always give the same fingerprint (first 16 hex
      characters of a SHA-256 over a canonical text form).
    - Arguments are read through the wrapped signature, so positional
      and keyword calls fingerprint identically.
    - Inputs are never mutated.

Failure modes:
    - A fingerprint field the call did not supply is hashed as "null".
    - Exceptions from the engine propagate and no trace is written.
"""

from __future__ import annotations

import functools
import hashlib
import inspect
import time
from collections.abc import Callable, Mapping
from typing import Any

from guard_kernel.logging_config import get_logger

logger = get_logger("engines.tracer")

TRACE_EVENT = "GUARD_ENGINE_TRACE"


def _canonical(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, Mapping):
        pairs = sorted((str(k), _canonical(v)) for k, v in value.items())
        return "{" + ",".join(f"{k}:{v}" for k, v in pairs) + "}"
    if isinstance(value, (list, tuple)):
        return "[" + ",".join(map(_canonical, value)) + "]"
    return str(value)


def compute_input_fingerprint(
    fingerprint_fields: tuple[str, ...],
    arguments: Mapping[str, Any],
) -> str:
    """Hash the named arguments into a 16-character hex fingerprint."""
    text = "|".join(f"{name}={_canonical(arguments.get(name))}" for name in fingerprint_fields)
    return hashlib.sha256(text.encode("utf-8")).hexdigest()[:16]


def traced_engine(
    engine_name: str,
    engine_version: str,
    fingerprint_fields: tuple[str, ...] = (),
) -> Callable:
    """Decorate an engine entry point so each call emits GUARD_ENGINE_TRACE."""

    def decorator(func: Callable) -> Callable:
        signature = inspect.signature(func)

        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            fingerprint = ""
            if fingerprint_fields:
                bound = signature.bind_partial(*args, **kwargs)
                fingerprint = compute_input_fingerprint(fingerprint_fields, bound.arguments)

            started = time.monotonic()
            result = func(*args, **kwargs)
            elapsed_ms = round((time.monotonic() - started) * 1000, 2)

            logger.info(TRACE_EVENT, extra={
                "trace_type": TRACE_EVENT,
                "engine_name": engine_name,
                "engine_version": engine_version,
                "input_fingerprint": fingerprint,
                "duration_ms": elapsed_ms,
                "function": func.__qualname__,
            })
            return result

        return wrapper

    return decorator

"""Sandbox for routing expressions authored as data.

Flows loaded from JSON cannot carry Python callables, so their routing rules
may use short expressions such as ``python: output['action'] == 'create'``.
Those expressions are compiled with RestrictedPython and evaluated against a
read-only view of ``output``, ``outputs`` and ``context``.
"""

from __future__ import annotations

import re as _re
import time
from functools import lru_cache
from types import CodeType, MappingProxyType
from typing import Any, Dict, Iterable, Iterator, Optional

from loguru import logger
from RestrictedPython import compile_restricted_eval
from RestrictedPython.Eval import default_guarded_getitem, default_guarded_getiter
from RestrictedPython.Guards import safe_builtins as _safe_builtins, safer_getattr

from .config import settings
from .errors import EvaluatorTimeoutError, SecurityError

_ALLOWED_BUILTINS = {
    "len": len,
    "min": min,
    "max": max,
    "sum": sum,
    "sorted": sorted,
    "any": any,
    "all": all,
}

_ALLOWED_MODULES = {
    "re": _re,
}

_builtins: Dict[str, Any] = dict(_safe_builtins)  # type: ignore[arg-type]
_builtins.update(_ALLOWED_BUILTINS)

_PREFIX = "python:"

# Deadline is checked once per this many iterations.
_CHECK_EVERY = 256


def strip_prefix(source: str) -> str:
    """Remove an optional ``python:`` prefix and surrounding whitespace."""

    source = source.strip()
    if source.lower().startswith(_PREFIX):
        source = source[len(_PREFIX):].strip()
    return source


@lru_cache(maxsize=512)
def compile_expression(source: str) -> CodeType:
    """Compile *source* as a restricted expression. Statements are rejected."""

    result = compile_restricted_eval(strip_prefix(source))
    if result.errors:
        raise SecurityError(f"Rejected routing expression {source!r}: {'; '.join(result.errors)}")
    return result.code


def _read_only(value: Any) -> Any:
    if isinstance(value, dict):
        return MappingProxyType(value)
    return value


def _within(iterable: Iterable[Any], deadline: float, source: str) -> Iterator[Any]:
    """Yield from *iterable*, raising once the evaluation deadline has passed."""

    for count, item in enumerate(iterable):
        if count % _CHECK_EVERY == 0 and time.monotonic() > deadline:
            logger.warning("Routing expression exceeded its time budget: {}", source)
            raise EvaluatorTimeoutError(f"Routing expression timed out: {source}")
        yield item


def secure_eval_python(
    source: str,
    names: Dict[str, Any],
    timeout_ms: Optional[int] = None,
) -> Any:
    """Safely evaluate *source* inside RestrictedPython.

    The evaluation runs on the caller's thread. Every iteration the expression
    performs (comprehensions, ``range``, builtins consuming them) goes through
    a guard that checks the deadline, so runaway loops raise
    :class:`EvaluatorTimeoutError` instead of blocking the engine.

    Parameters
    ----------
    source : str
        The expression to evaluate, with or without a ``python:`` prefix.
    names : Dict[str, Any]
        Values exposed as globals inside the sandbox. Top-level dicts are
        wrapped read-only.
    timeout_ms : int | None
        Time budget in milliseconds (defaults to
        ``settings.predicate_timeout_ms``).
    """

    timeout_ms = timeout_ms or settings.predicate_timeout_ms
    code = compile_expression(source)
    deadline = time.monotonic() + timeout_ms / 1000.0

    def guarded_iter(ob: Any) -> Iterator[Any]:
        return _within(default_guarded_getiter(ob), deadline, source)

    def guarded_range(*args: int) -> Iterator[int]:
        return _within(range(*args), deadline, source)

    builtins = dict(_builtins, range=guarded_range)
    globals_dict = {
        "__builtins__": builtins,
        "_getattr_": safer_getattr,
        "_getitem_": default_guarded_getitem,
        "_getiter_": guarded_iter,
        **_ALLOWED_MODULES,
        **{k: _read_only(v) for k, v in names.items()},
    }
    return eval(code, globals_dict)  # pylint: disable=eval-used

"""Routing predicates.

A routing rule's predicate is one of three variants:

* ``Always`` matches unconditionally (authored as ``True`` or ``"always"``).
* ``Predicate(fn)`` wraps a pure callable ``fn(output, outputs, context)``.
* ``Expression(source)`` holds a sandboxed expression for flows authored as data.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Union

from .security import compile_expression, secure_eval_python

PredicateFn = Callable[[Any, Mapping[str, Any], Mapping[str, Any]], Any]


@dataclass(frozen=True)
class Always:
    def matches(self, output: Any, outputs: Mapping[str, Any], context: Mapping[str, Any]) -> bool:
        return True

    def describe(self) -> str:
        return "always"


@dataclass(frozen=True)
class Predicate:
    fn: PredicateFn

    def matches(self, output: Any, outputs: Mapping[str, Any], context: Mapping[str, Any]) -> bool:
        return bool(self.fn(output, outputs, context))

    def describe(self) -> str:
        return getattr(self.fn, "__name__", repr(self.fn))


@dataclass(frozen=True)
class Expression:
    source: str

    def __post_init__(self) -> None:
        # Fail at authoring time rather than on first evaluation.
        compile_expression(self.source)

    def matches(self, output: Any, outputs: Mapping[str, Any], context: Mapping[str, Any]) -> bool:
        names: Dict[str, Any] = {"output": output, "outputs": outputs, "context": context}
        return bool(secure_eval_python(self.source, names))

    def describe(self) -> str:
        return self.source


RoutingPredicate = Union[Always, Predicate, Expression]

ALWAYS = Always()


def coerce_predicate(value: Any) -> RoutingPredicate:
    """Turn an authored ``when`` value into one of the predicate variants."""

    if isinstance(value, (Always, Predicate, Expression)):
        return value
    if value is True:
        return ALWAYS
    if isinstance(value, str):
        if value.strip().lower() == "always":
            return ALWAYS
        return Expression(value)
    if callable(value):
        return Predicate(value)
    raise TypeError(f"Unsupported routing predicate: {value!r}")

"""Flow Navigator custom exceptions for structured error handling."""
from __future__ import annotations


class FlowError(Exception):
    """Base class for all engine errors reported to callers."""


class ConfigurationError(FlowError):
    """Raised when a flow references a node id that does not exist."""


class RoutingPredicateError(FlowError):
    """Raised when a routing predicate fails while being evaluated."""


class StaleGenerationError(FlowError):
    """Reported when a call targets a flow instance that has been replaced or closed."""


class EvaluatorTimeoutError(FlowError, TimeoutError):
    """Raised when a sandboxed predicate exceeds its timeout."""


class SecurityError(FlowError):
    """Raised when sandbox violations occur."""

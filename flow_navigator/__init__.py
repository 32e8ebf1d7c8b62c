"""Flow Navigator: layered multi-step flow engine."""

from .engine import CompletionOutcome, FlowEngine, FlowResult, StepBinding, Surface, TerminationReason
from .errors import ConfigurationError, FlowError, RoutingPredicateError, StaleGenerationError
from .history import BackOutcome
from .models import FlowDefinition, NodeDefinition, RoutingRule
from .predicates import ALWAYS, Always, Expression, Predicate
from .registry import FlowRegistry, StepHandler, StepRegistry, validate_definition
from .state import FlowInstance
from .transitions import TransitionKind

__all__ = [
    "ALWAYS",
    "Always",
    "BackOutcome",
    "CompletionOutcome",
    "ConfigurationError",
    "Expression",
    "FlowDefinition",
    "FlowEngine",
    "FlowError",
    "FlowInstance",
    "FlowRegistry",
    "FlowResult",
    "NodeDefinition",
    "Predicate",
    "RoutingPredicateError",
    "RoutingRule",
    "StaleGenerationError",
    "StepBinding",
    "StepHandler",
    "StepRegistry",
    "Surface",
    "TerminationReason",
    "TransitionKind",
    "validate_definition",
]

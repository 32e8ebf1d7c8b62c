"""Flow instance lifecycle – public entry-point used by presentation adapters and tests.

A :class:`FlowEngine` owns at most one open :class:`FlowInstance` at a time.
Every mutation goes through ``start``, ``complete_node``, ``go_back``,
``close_depth`` or ``update_context``. None of them raise: anomalies are
logged, counted and handed to the ``on_error`` callback, and the instance is
left in its last valid state.
"""

from __future__ import annotations

import itertools
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional

from loguru import logger

from .config import Settings, settings as default_settings
from .errors import ConfigurationError, FlowError, RoutingPredicateError, StaleGenerationError
from .history import BackOutcome, close_depth as _close_depth, go_back as _go_back
from .logging import (
    CONFIG_ERRORS_TOTAL,
    FLOW_STARTS_TOTAL,
    FLOW_TERMINATIONS_TOTAL,
    NODE_COMPLETIONS_TOTAL,
    STALE_CALLS_TOTAL,
    timed,
)
from .models import FlowDefinition, NodeDefinition
from .router import resolve_next
from .state import FlowInstance
from .transitions import apply_transition

# Process-wide so a late callback can never match an instance started afterwards,
# even one started by a different engine.
_generations = itertools.count(1)


class CompletionOutcome(str, Enum):
    DEEPER = "deeper"
    SAME = "same"
    SHALLOWER = "shallower"
    TERMINATED = "terminated"
    REJECTED = "rejected"
    DISCARDED = "discarded"


class TerminationReason(str, Enum):
    NO_ROUTE = "no_route"
    BACK = "back"
    CLOSED = "closed"


@dataclass(frozen=True)
class FlowResult:
    flow_name: str
    generation: int
    reason: TerminationReason
    outputs: Dict[str, Any]


@dataclass(frozen=True)
class StepBinding:
    """Everything a step handler needs to run one node at one depth."""

    flow_name: str
    node_id: str
    depth: int
    generation: int
    input: Dict[str, Any]
    context: Mapping[str, Any]
    can_go_back: bool
    complete: Callable[[Any], CompletionOutcome]
    back: Callable[[], BackOutcome]
    close: Callable[[], bool]
    update_context: Callable[[Mapping[str, Any]], None]


@dataclass(frozen=True)
class Surface:
    """One rendered layer; adapters draw surfaces in list order (lowest depth first)."""

    depth: int
    title: str
    node: NodeDefinition
    binding: StepBinding


CompletionCallback = Callable[[FlowResult], None]
ErrorCallback = Callable[[FlowError], None]


class FlowEngine:
    def __init__(
        self,
        on_complete: Optional[CompletionCallback] = None,
        on_error: Optional[ErrorCallback] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self._on_complete = on_complete
        self._on_error = on_error
        self._settings = settings or default_settings
        self._definition: Optional[FlowDefinition] = None
        self._instance: Optional[FlowInstance] = None

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def instance(self) -> Optional[FlowInstance]:
        return self._instance

    @property
    def definition(self) -> Optional[FlowDefinition]:
        return self._definition

    @property
    def is_open(self) -> bool:
        return self._instance is not None and self._instance.is_open

    # ------------------------------------------------------------------
    # Lifecycle operations
    # ------------------------------------------------------------------

    @timed("start")
    def start(
        self,
        definition: FlowDefinition,
        start_node_id: Optional[str] = None,
        initial_params: Optional[Mapping[str, Any]] = None,
        initial_context: Optional[Mapping[str, Any]] = None,
    ) -> Optional[FlowInstance]:
        """Open a new instance of *definition*, discarding any current one.

        *start_node_id* deep-links into the flow; the chosen node is always
        placed at depth 0 whatever its declared depth.
        """

        start_id = definition.start_node_id if start_node_id is None else start_node_id
        if not definition.has_node(start_id):
            self._report(ConfigurationError(f"Flow '{definition.name}' has no start node '{start_id}'"))
            return None

        params = dict(initial_params or {})
        if self._instance is not None:
            logger.info("Replacing open flow {} (generation {})", self._instance.flow_name, self._instance.generation)

        self._definition = definition
        self._instance = FlowInstance(
            flow_name=definition.name,
            generation=next(_generations),
            active_node_by_depth={0: start_id},
            history_by_depth={0: [start_id]},
            accumulated_outputs=dict(params),
            shared_context={**(initial_context or {}), "flowName": definition.name, **params},
        )
        FLOW_STARTS_TOTAL.labels(flow=definition.name).inc()
        logger.info(
            "Flow started {} at {} | generation={} deepLink={}",
            definition.name, start_id, self._instance.generation, start_node_id is not None,
        )
        return self._instance

    @timed("complete_node")
    def complete_node(self, depth: int, output: Any, generation: Optional[int] = None) -> CompletionOutcome:
        instance = self._live_instance("completeNode", generation)
        if instance is None:
            return CompletionOutcome.DISCARDED
        definition = self._definition
        assert definition is not None

        node_id = instance.active_node(depth)
        node = definition.get_node(node_id) if node_id is not None else None
        if node is None:
            self._report(ConfigurationError(f"No active node at depth {depth} in flow '{definition.name}'"))
            return self._rejected(definition)

        # Routing sees the new output, but nothing is committed until the target is known.
        outputs = {**instance.accumulated_outputs, node_id: output}
        try:
            next_id = resolve_next(node.routing_rules, output, outputs, instance.shared_context)
        except RoutingPredicateError as exc:
            self._report(exc)
            return self._rejected(definition)

        if next_id is None:
            instance.accumulated_outputs = outputs
            logger.info("Flow {} finished at {}: no routing rule matched", definition.name, node_id)
            self._terminate(TerminationReason.NO_ROUTE)
            NODE_COMPLETIONS_TOTAL.labels(flow=definition.name, outcome=CompletionOutcome.TERMINATED.value).inc()
            return CompletionOutcome.TERMINATED

        next_node = definition.get_node(next_id)
        if next_node is None:
            self._report(ConfigurationError(f"Node '{node_id}' routes to unknown node '{next_id}'"))
            return self._rejected(definition)

        instance.accumulated_outputs = outputs
        kind = apply_transition(instance, depth, next_id, next_node.depth, self._settings.max_history)
        outcome = CompletionOutcome(kind.value)
        NODE_COMPLETIONS_TOTAL.labels(flow=definition.name, outcome=outcome.value).inc()
        logger.info("Node {} completed → {} ({})", node_id, next_id, outcome.value)
        return outcome

    @timed("go_back")
    def go_back(self, depth: int, generation: Optional[int] = None) -> BackOutcome:
        instance = self._live_instance("goBack", generation)
        if instance is None:
            return BackOutcome.DISCARDED

        outcome = _go_back(instance, depth)
        if outcome is BackOutcome.TERMINATED:
            self._terminate(TerminationReason.BACK)
        logger.debug("goBack({}) → {}", depth, outcome.value)
        return outcome

    @timed("close_depth")
    def close_depth(self, depth: int, generation: Optional[int] = None) -> bool:
        instance = self._live_instance("closeDepth", generation)
        if instance is None:
            return False
        if depth < 0:
            logger.warning("closeDepth ignored: depth {} is negative", depth)
            return False

        closed = _close_depth(instance, depth)
        if not instance.is_open:
            self._terminate(TerminationReason.CLOSED)
        return bool(closed)

    def update_context(self, updates: Mapping[str, Any], generation: Optional[int] = None) -> None:
        instance = self._live_instance("updateContext", generation)
        if instance is None or not updates:
            return
        instance.shared_context.update(updates)
        logger.debug("Context updated with keys {}", sorted(updates))

    def teardown(self) -> None:
        """Discard the current instance without reporting a result."""

        if self._instance is not None:
            logger.info("Flow {} torn down (generation {})", self._instance.flow_name, self._instance.generation)
            FLOW_TERMINATIONS_TOTAL.labels(flow=self._instance.flow_name, reason="teardown").inc()
        self._instance = None
        self._definition = None

    # ------------------------------------------------------------------
    # Presentation helpers
    # ------------------------------------------------------------------

    def binding(self, depth: int) -> Optional[StepBinding]:
        instance, definition = self._instance, self._definition
        if instance is None or definition is None:
            return None
        node_id = instance.active_node(depth)
        node = definition.get_node(node_id) if node_id is not None else None
        if node is None:
            return None

        generation = instance.generation
        return StepBinding(
            flow_name=definition.name,
            node_id=node.id,
            depth=depth,
            generation=generation,
            input={**node.default_input, **instance.accumulated_outputs},
            context=dict(instance.shared_context),
            can_go_back=instance.can_go_back(depth),
            complete=lambda output: self.complete_node(depth, output, generation=generation),
            back=lambda: self.go_back(depth, generation=generation),
            close=lambda: self.close_depth(depth, generation=generation),
            update_context=lambda updates: self.update_context(updates, generation=generation),
        )

    def surfaces(self) -> List[Surface]:
        """Return one surface per open depth, ascending."""

        if self._instance is None or self._definition is None:
            return []
        surfaces = []
        for depth in self._instance.open_depths():
            binding = self.binding(depth)
            if binding is None:
                continue
            node = self._definition.nodes[binding.node_id]
            surfaces.append(Surface(depth=depth, title=self._definition.title, node=node, binding=binding))
        return surfaces

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _live_instance(self, operation: str, generation: Optional[int]) -> Optional[FlowInstance]:
        instance = self._instance
        if instance is None:
            self._discard(operation, generation, "no open flow")
            return None
        if generation is not None and generation != instance.generation:
            self._discard(operation, generation, f"current generation is {instance.generation}")
            return None
        return instance

    def _discard(self, operation: str, generation: Optional[int], why: str) -> None:
        STALE_CALLS_TOTAL.inc()
        self._report(StaleGenerationError(f"{operation} (generation {generation}) discarded: {why}"))

    def _rejected(self, definition: FlowDefinition) -> CompletionOutcome:
        NODE_COMPLETIONS_TOTAL.labels(flow=definition.name, outcome=CompletionOutcome.REJECTED.value).inc()
        return CompletionOutcome.REJECTED

    def _terminate(self, reason: TerminationReason) -> None:
        instance = self._instance
        assert instance is not None
        result = FlowResult(
            flow_name=instance.flow_name,
            generation=instance.generation,
            reason=reason,
            outputs=dict(instance.accumulated_outputs),
        )
        instance.active_node_by_depth.clear()
        instance.history_by_depth.clear()
        self._instance = None
        self._definition = None
        FLOW_TERMINATIONS_TOTAL.labels(flow=result.flow_name, reason=reason.value).inc()
        logger.info("Flow {} closed ({}) with outputs for {}", result.flow_name, reason.value, sorted(result.outputs))
        if self._on_complete is not None:
            self._on_complete(result)

    def _report(self, error: FlowError) -> None:
        if isinstance(error, ConfigurationError):
            CONFIG_ERRORS_TOTAL.inc()
        logger.warning("{}: {}", error.__class__.__name__, error)
        if self._on_error is not None:
            self._on_error(error)

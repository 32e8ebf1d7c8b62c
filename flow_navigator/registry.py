"""Flow and step-handler registries with authoring-time validation."""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from loguru import logger

from .errors import ConfigurationError
from .models import FlowDefinition


def definition_problems(definition: FlowDefinition) -> List[str]:
    """Return every structural problem found in *definition* (empty when valid)."""

    problems: List[str] = []
    if not definition.has_node(definition.start_node_id):
        problems.append(f"start node '{definition.start_node_id}' is not defined")

    for key, node in definition.nodes.items():
        if node.id != key:
            problems.append(f"node '{key}' declares id '{node.id}'")
        for index, rule in enumerate(node.routing_rules):
            if not definition.has_node(rule.target_node_id):
                problems.append(f"node '{key}' rule #{index} targets unknown node '{rule.target_node_id}'")
    return problems


def validate_definition(definition: FlowDefinition) -> FlowDefinition:
    problems = definition_problems(definition)
    if problems:
        raise ConfigurationError(f"Invalid flow '{definition.name}': " + "; ".join(problems))
    return definition


class StepHandler(ABC):
    """A concrete step implementation, looked up by a node's ``handler_ref``."""

    @abstractmethod
    def render(self, binding: Any) -> Dict[str, Any]:
        """Describe what the step shows for *binding* (a ``StepBinding``)."""


class StepRegistry:
    def __init__(self) -> None:
        self._handlers: Dict[str, StepHandler] = {}

    def register(self, handler_ref: str, handler: StepHandler) -> StepHandler:
        if handler_ref in self._handlers:
            raise ConfigurationError(f"Step handler '{handler_ref}' already registered")
        self._handlers[handler_ref] = handler
        return handler

    def get(self, handler_ref: str) -> Optional[StepHandler]:
        return self._handlers.get(handler_ref)

    def check(self, definition: FlowDefinition) -> List[str]:
        """Handler refs used by *definition* that have no registered handler."""

        refs = {node.handler_ref for node in definition.nodes.values()}
        return sorted(ref for ref in refs if ref not in self._handlers)


class FlowRegistry:
    def __init__(self) -> None:
        self._flows: Dict[str, FlowDefinition] = {}

    def register(self, definition: FlowDefinition) -> FlowDefinition:
        if definition.name in self._flows:
            raise ConfigurationError(f"Flow '{definition.name}' already registered")
        validate_definition(definition)
        self._flows[definition.name] = definition
        logger.info("Registered flow {} ({} nodes)", definition.name, len(definition.nodes))
        return definition

    def get(self, name: str) -> Optional[FlowDefinition]:
        return self._flows.get(name)

    def names(self) -> List[str]:
        return sorted(self._flows)

    def __contains__(self, name: object) -> bool:
        return name in self._flows

    def __iter__(self):
        return iter(self._flows[name] for name in self.names())

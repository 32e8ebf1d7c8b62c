"""Pydantic contracts for authored flows.

Flow definitions are static values shared across every instance of a flow.
They can be built in Python (predicates as callables) or loaded from JSON
(predicates as ``"always"`` or ``"python: ..."`` expressions).
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .predicates import ALWAYS, RoutingPredicate, coerce_predicate


class RoutingRule(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True, populate_by_name=True)

    predicate: RoutingPredicate = Field(default=ALWAYS, alias="when")
    target_node_id: str = Field(..., alias="goto")

    @field_validator("predicate", mode="plain")
    @classmethod
    def _coerce(cls, value: Any) -> RoutingPredicate:
        return coerce_predicate(value)


class NodeDefinition(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    handler_ref: str = Field(..., alias="handler")
    default_input: Dict[str, Any] = Field(default_factory=dict, alias="input")
    depth: int = Field(default=0, ge=0)
    routing_rules: List[RoutingRule] = Field(default_factory=list, alias="next")
    presentation_options: Dict[str, Any] = Field(default_factory=dict, alias="presentation")


class FlowDefinition(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str
    title: str = ""
    start_node_id: str = Field(..., alias="startAt")
    nodes: Dict[str, NodeDefinition]
    presentation_options: Dict[str, Any] = Field(default_factory=dict, alias="presentation")

    @model_validator(mode="before")
    @classmethod
    def _inject_node_ids(cls, data: Any) -> Any:
        """Allow node ids to be omitted in the ``nodes`` map; the key is the id."""

        if isinstance(data, dict) and isinstance(data.get("nodes"), dict):
            nodes = {}
            for key, node in data["nodes"].items():
                if isinstance(node, dict) and "id" not in node:
                    node = {**node, "id": key}
                nodes[key] = node
            data = {**data, "nodes": nodes}
        return data

    def get_node(self, node_id: str) -> Optional[NodeDefinition]:
        return self.nodes.get(node_id)

    def has_node(self, node_id: str) -> bool:
        return node_id in self.nodes

"""Shared fixtures for Flow Navigator tests."""
from __future__ import annotations

from typing import List

import pytest

from flow_navigator import FlowDefinition, FlowEngine, FlowError, FlowResult, NodeDefinition, RoutingRule


class Recorder:
    """Captures completion results and reported errors from an engine."""

    def __init__(self) -> None:
        self.results: List[FlowResult] = []
        self.errors: List[FlowError] = []

    def on_complete(self, result: FlowResult) -> None:
        self.results.append(result)

    def on_error(self, error: FlowError) -> None:
        self.errors.append(error)


def _x_is_one(output, outputs, context):
    return output.get("x") == 1


def _again(output, outputs, context):
    return output.get("again") is True


@pytest.fixture
def abc_flow() -> FlowDefinition:
    """A(depth 0) -> B(depth 0) when x == 1, otherwise C(depth 1)."""

    return FlowDefinition(
        name="abc",
        title="ABC",
        start_node_id="A",
        nodes={
            "A": NodeDefinition(
                id="A",
                handler_ref="StepA",
                default_input={"greeting": "hi"},
                routing_rules=[
                    RoutingRule(predicate=_x_is_one, target_node_id="B"),
                    RoutingRule(predicate=True, target_node_id="C"),
                ],
            ),
            "B": NodeDefinition(
                id="B",
                handler_ref="StepB",
                routing_rules=[RoutingRule(predicate=_again, target_node_id="A")],
            ),
            "C": NodeDefinition(
                id="C",
                handler_ref="StepC",
                depth=1,
                routing_rules=[RoutingRule(predicate=_again, target_node_id="D")],
            ),
            "D": NodeDefinition(
                id="D",
                handler_ref="StepD",
                depth=2,
                routing_rules=[
                    RoutingRule(predicate="python: output.get('to') == 'root'", target_node_id="A"),
                    RoutingRule(predicate="python: output.get('to') == 'C'", target_node_id="C"),
                ],
            ),
        },
    )


@pytest.fixture
def recorder() -> Recorder:
    return Recorder()


@pytest.fixture
def engine(recorder: Recorder) -> FlowEngine:
    return FlowEngine(on_complete=recorder.on_complete, on_error=recorder.on_error)

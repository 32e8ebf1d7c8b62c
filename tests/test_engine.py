"""Lifecycle tests: start, completeNode, goBack, closeDepth, updateContext."""
from __future__ import annotations

import pytest

from flow_navigator import (
    BackOutcome,
    CompletionOutcome,
    ConfigurationError,
    FlowDefinition,
    FlowEngine,
    NodeDefinition,
    RoutingPredicateError,
    RoutingRule,
    StaleGenerationError,
    TerminationReason,
)
from flow_navigator.config import Settings


def _state(engine: FlowEngine):
    instance = engine.instance
    return dict(instance.active_node_by_depth), {d: list(h) for d, h in instance.history_by_depth.items()}


# =============================================================================
# Navigation
# =============================================================================


class TestNavigation:
    def test_start_opens_depth_zero(self, engine, abc_flow) -> None:
        instance = engine.start(abc_flow)

        assert instance is not None
        assert _state(engine) == ({0: "A"}, {0: ["A"]})
        assert instance.shared_context == {"flowName": "abc"}
        instance.check_invariants()

    def test_same_depth_transition(self, engine, abc_flow) -> None:
        """x == 1 routes A -> B on depth 0."""
        engine.start(abc_flow)

        outcome = engine.complete_node(0, {"x": 1})

        assert outcome is CompletionOutcome.SAME
        assert _state(engine) == ({0: "B"}, {0: ["A", "B"]})
        engine.instance.check_invariants()

    def test_fallback_rule_opens_deeper_layer(self, engine, abc_flow) -> None:
        """the always rule routes A -> C on depth 1."""
        engine.start(abc_flow)

        outcome = engine.complete_node(0, {"x": 2})

        assert outcome is CompletionOutcome.DEEPER
        assert _state(engine) == ({0: "A", 1: "C"}, {0: ["A"], 1: ["C"]})
        engine.instance.check_invariants()

    def test_back_on_single_entry_layer_closes_it(self, engine, abc_flow) -> None:
        """goBack(1) with one entry cascade-closes depth 1."""
        engine.start(abc_flow)
        engine.complete_node(0, {"x": 2})

        outcome = engine.go_back(1)

        assert outcome is BackOutcome.CASCADE_CLOSED
        assert _state(engine) == ({0: "A"}, {0: ["A"]})
        assert engine.is_open

    def test_no_matching_rule_terminates(self, engine, recorder, abc_flow) -> None:
        """B has no matching rule, so the flow completes."""
        engine.start(abc_flow)
        engine.complete_node(0, {"x": 1})

        outcome = engine.complete_node(0, {"done": True})

        assert outcome is CompletionOutcome.TERMINATED
        assert engine.instance is None
        assert len(recorder.results) == 1
        result = recorder.results[0]
        assert result.reason is TerminationReason.NO_ROUTE
        assert result.outputs == {"A": {"x": 1}, "B": {"done": True}}

    def test_deep_link_forces_depth_zero(self, engine, abc_flow) -> None:
        """C declares depth 1 but a deep link puts it at depth 0."""
        instance = engine.start(abc_flow, start_node_id="C", initial_params={"foo": 1})

        assert _state(engine) == ({0: "C"}, {0: ["C"]})
        assert instance.shared_context["foo"] == 1
        assert instance.shared_context["flowName"] == "abc"
        assert instance.accumulated_outputs == {"foo": 1}


# =============================================================================
# Properties
# =============================================================================


class TestProperties:
    def test_start_then_back_closes_without_handlers(self, engine, recorder, abc_flow) -> None:
        engine.start(abc_flow)

        assert engine.go_back(0) is BackOutcome.TERMINATED
        assert not engine.is_open
        assert recorder.results[0].reason is TerminationReason.BACK
        assert recorder.results[0].outputs == {}

    def test_update_context_with_empty_mapping_is_noop(self, engine, abc_flow) -> None:
        engine.start(abc_flow, initial_context={"user": "u1"})
        before = dict(engine.instance.shared_context)

        engine.update_context({})

        assert engine.instance.shared_context == before

    def test_update_context_is_visible_to_routing(self, engine, abc_flow) -> None:
        flow = FlowDefinition(
            name="ctx",
            start_node_id="one",
            nodes={
                "one": NodeDefinition(
                    id="one",
                    handler_ref="One",
                    routing_rules=[RoutingRule(predicate="python: context.get('vip')", target_node_id="two")],
                ),
                "two": NodeDefinition(id="two", handler_ref="Two"),
            },
        )
        engine.start(flow)
        engine.update_context({"vip": True})

        assert engine.complete_node(0, {}) is CompletionOutcome.SAME
        assert engine.instance.active_node(0) == "two"

    def test_identical_inputs_give_identical_state(self, abc_flow) -> None:
        def run():
            engine = FlowEngine()
            engine.start(abc_flow, initial_context={"k": "v"})
            engine.complete_node(0, {"x": 2})
            engine.complete_node(1, {"again": True})
            engine.go_back(2)
            engine.complete_node(0, {"x": 1})
            snapshot = engine.instance.snapshot()
            snapshot.pop("generation")
            return snapshot

        assert run() == run()

    def test_invariants_hold_along_a_long_walk(self, engine, abc_flow) -> None:
        engine.start(abc_flow)
        steps = [
            ("complete", 0, {"x": 2}),
            ("complete", 1, {"again": True}),
            ("complete", 2, {"to": "C"}),
            ("back", 1, None),
            ("complete", 0, {"x": 1}),
            ("complete", 0, {"again": True}),
            ("back", 0, None),
            ("complete", 0, {"again": True}),
            ("complete", 0, {"x": 2}),
            ("complete", 1, {"again": True}),
            ("complete", 2, {"to": "root"}),
        ]
        for kind, depth, output in steps:
            if kind == "complete":
                engine.complete_node(depth, output)
            else:
                engine.go_back(depth)
            engine.instance.check_invariants()
            assert engine.is_open

    def test_outputs_keep_only_latest_value(self, engine, abc_flow) -> None:
        engine.start(abc_flow)
        engine.complete_node(0, {"x": 1})
        engine.complete_node(0, {"again": True})
        engine.complete_node(0, {"x": 1, "n": 2})

        assert engine.instance.accumulated_outputs["A"] == {"x": 1, "n": 2}
        assert engine.instance.history_by_depth[0] == ["A", "B", "A", "B"]


# =============================================================================
# Depth handling
# =============================================================================


class TestDepths:
    def test_shallower_transition_closes_every_layer_above_target(self, engine, abc_flow) -> None:
        engine.start(abc_flow)
        engine.complete_node(0, {"x": 2})
        engine.complete_node(1, {"again": True})
        assert engine.instance.open_depths() == [0, 1, 2]

        outcome = engine.complete_node(2, {"to": "root"})

        assert outcome is CompletionOutcome.SHALLOWER
        assert _state(engine) == ({0: "A"}, {0: ["A"]})

    def test_shallower_transition_to_intermediate_depth(self, engine, abc_flow) -> None:
        engine.start(abc_flow)
        engine.complete_node(0, {"x": 2})
        engine.complete_node(1, {"again": True})

        engine.complete_node(2, {"to": "C"})

        assert _state(engine) == ({0: "A", 1: "C"}, {0: ["A"], 1: ["C"]})

    def test_deeper_transition_from_lower_layer_closes_abandoned_layers(self, engine, abc_flow) -> None:
        engine.start(abc_flow)
        engine.complete_node(0, {"x": 2})
        engine.complete_node(1, {"again": True})
        assert engine.instance.open_depths() == [0, 1, 2]

        outcome = engine.complete_node(0, {"x": 2})

        assert outcome is CompletionOutcome.DEEPER
        assert _state(engine) == ({0: "A", 1: "C"}, {0: ["A"], 1: ["C"]})
        assert [surface.node.id for surface in engine.surfaces()] == ["A", "C"]
        engine.instance.check_invariants()

    def test_back_pops_only_its_own_depth(self, engine, abc_flow) -> None:
        engine.start(abc_flow)
        engine.complete_node(0, {"x": 1})
        engine.complete_node(0, {"again": True})
        engine.complete_node(0, {"x": 2})
        assert engine.instance.open_depths() == [0, 1]

        assert engine.go_back(0) is BackOutcome.POPPED

        assert _state(engine) == ({0: "B", 1: "C"}, {0: ["A", "B"], 1: ["C"]})

    def test_close_depth_cascades(self, engine, abc_flow) -> None:
        engine.start(abc_flow)
        engine.complete_node(0, {"x": 2})
        engine.complete_node(1, {"again": True})

        assert engine.close_depth(1) is True

        assert _state(engine) == ({0: "A"}, {0: ["A"]})

    def test_close_negative_depth_is_ignored(self, engine, recorder, abc_flow) -> None:
        engine.start(abc_flow)

        assert engine.close_depth(-1) is False

        assert engine.is_open
        assert _state(engine) == ({0: "A"}, {0: ["A"]})
        assert recorder.results == []

    def test_close_depth_zero_completes_flow(self, engine, recorder, abc_flow) -> None:
        engine.start(abc_flow)
        engine.complete_node(0, {"x": 2})

        engine.close_depth(0)

        assert engine.instance is None
        assert recorder.results[0].reason is TerminationReason.CLOSED
        assert recorder.results[0].outputs == {"A": {"x": 2}}

    def test_history_is_clamped(self, recorder) -> None:
        loop = FlowDefinition(
            name="loop",
            start_node_id="ping",
            nodes={
                "ping": NodeDefinition(id="ping", handler_ref="P", routing_rules=[RoutingRule(goto="pong")]),
                "pong": NodeDefinition(id="pong", handler_ref="P", routing_rules=[RoutingRule(goto="ping")]),
            },
        )
        engine = FlowEngine(on_error=recorder.on_error, settings=Settings(max_history=5))
        engine.start(loop)

        for _ in range(20):
            engine.complete_node(0, {})

        history = engine.instance.history_by_depth[0]
        assert len(history) == 5
        assert history[-1] == engine.instance.active_node(0)
        engine.instance.check_invariants()


# =============================================================================
# Errors and stale calls
# =============================================================================


class TestErrors:
    def test_unknown_start_override_is_reported(self, engine, recorder, abc_flow) -> None:
        assert engine.start(abc_flow, start_node_id="nope") is None

        assert engine.instance is None
        assert isinstance(recorder.errors[0], ConfigurationError)

    def test_empty_start_override_is_not_replaced_by_default(self, engine, recorder, abc_flow) -> None:
        assert engine.start(abc_flow, start_node_id="") is None

        assert engine.instance is None
        assert isinstance(recorder.errors[0], ConfigurationError)

    def test_unknown_start_override_keeps_current_instance(self, engine, recorder, abc_flow) -> None:
        first = engine.start(abc_flow)

        engine.start(abc_flow, start_node_id="nope")

        assert engine.instance is first
        assert engine.is_open

    def test_unknown_target_rejects_without_mutation(self, engine, recorder) -> None:
        broken = FlowDefinition(
            name="broken",
            start_node_id="a",
            nodes={"a": NodeDefinition(id="a", handler_ref="A", routing_rules=[RoutingRule(goto="ghost")])},
        )
        engine.start(broken)
        before = engine.instance.snapshot()

        outcome = engine.complete_node(0, {"v": 1})

        assert outcome is CompletionOutcome.REJECTED
        assert engine.instance.snapshot() == before
        assert isinstance(recorder.errors[0], ConfigurationError)

    def test_no_active_node_at_depth_is_reported(self, engine, recorder, abc_flow) -> None:
        engine.start(abc_flow)

        assert engine.complete_node(3, {}) is CompletionOutcome.REJECTED
        assert isinstance(recorder.errors[0], ConfigurationError)
        assert _state(engine) == ({0: "A"}, {0: ["A"]})

    def test_failing_predicate_rejects_without_mutation(self, engine, recorder, abc_flow) -> None:
        engine.start(abc_flow)
        before = engine.instance.snapshot()

        # _x_is_one calls output.get, which a list does not have
        outcome = engine.complete_node(0, ["not", "a", "dict"])

        assert outcome is CompletionOutcome.REJECTED
        assert engine.instance.snapshot() == before
        assert isinstance(recorder.errors[0], RoutingPredicateError)

    def test_stale_generation_is_discarded(self, engine, recorder, abc_flow) -> None:
        old = engine.start(abc_flow)
        old_generation = old.generation
        engine.start(abc_flow)

        assert engine.complete_node(0, {"x": 2}, generation=old_generation) is CompletionOutcome.DISCARDED
        assert engine.go_back(0, generation=old_generation) is BackOutcome.DISCARDED
        assert engine.close_depth(0, generation=old_generation) is False

        assert _state(engine) == ({0: "A"}, {0: ["A"]})
        assert all(isinstance(e, StaleGenerationError) for e in recorder.errors)
        assert recorder.results == []

    def test_generations_increase_across_engines(self, abc_flow) -> None:
        first = FlowEngine().start(abc_flow)
        second = FlowEngine().start(abc_flow)

        assert second.generation > first.generation

    def test_calls_after_close_are_discarded(self, engine, recorder, abc_flow) -> None:
        engine.start(abc_flow)
        binding = engine.binding(0)
        engine.go_back(0)

        assert binding.complete({"x": 1}) is CompletionOutcome.DISCARDED
        assert len(recorder.results) == 1

    def test_teardown_does_not_report_result(self, engine, recorder, abc_flow) -> None:
        engine.start(abc_flow)

        engine.teardown()

        assert engine.instance is None
        assert recorder.results == []


# =============================================================================
# Step bindings and surfaces
# =============================================================================


class TestBindings:
    def test_binding_merges_default_input_with_outputs(self, engine, abc_flow) -> None:
        engine.start(abc_flow, initial_context={"user": "u1"})
        engine.complete_node(0, {"x": 2})

        binding = engine.binding(1)

        assert binding.node_id == "C"
        assert binding.input == {"A": {"x": 2}}
        assert binding.context["user"] == "u1"
        assert binding.can_go_back is False

        root = engine.binding(0)
        assert root.input == {"greeting": "hi", "A": {"x": 2}}

    def test_binding_callbacks_target_their_depth(self, engine, abc_flow) -> None:
        engine.start(abc_flow)
        engine.binding(0).complete({"x": 1})

        binding = engine.binding(0)
        assert binding.can_go_back is True
        assert binding.back() is BackOutcome.POPPED
        assert engine.instance.active_node(0) == "A"

    def test_surfaces_are_ascending(self, engine, abc_flow) -> None:
        engine.start(abc_flow)
        engine.complete_node(0, {"x": 2})
        engine.complete_node(1, {"again": True})

        surfaces = engine.surfaces()

        assert [s.depth for s in surfaces] == [0, 1, 2]
        assert [s.node.id for s in surfaces] == ["A", "C", "D"]
        assert all(s.title == "ABC" for s in surfaces)

    def test_no_surfaces_when_closed(self, engine) -> None:
        assert engine.surfaces() == []
        assert engine.binding(0) is None


@pytest.mark.parametrize("depth", [1, 5])
def test_back_on_unopened_depth_is_ignored(engine, abc_flow, depth) -> None:
    engine.start(abc_flow)

    assert engine.go_back(depth) is BackOutcome.IGNORED
    assert _state(engine) == ({0: "A"}, {0: ["A"]})

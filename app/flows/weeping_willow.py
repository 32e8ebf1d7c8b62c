"""Weeping Willow "Help Wanted" board.

list -> respond, list -> create -> list. ``viewPost`` aliases ``respond`` for
notification deep links.
"""
from flow_navigator import FlowDefinition, NodeDefinition, RoutingRule


def _action(name: str):
    def predicate(output, outputs, context):
        return isinstance(output, dict) and output.get("action") == name

    predicate.__name__ = f"action_is_{name}"
    return predicate


_BACK_TO_LIST = [RoutingRule(predicate=_action("back"), target_node_id="weepingWillow:list")]

weeping_willow_flow = FlowDefinition(
    name="weepingWillow",
    title="Help Wanted",
    start_node_id="weepingWillow:list",
    nodes={
        "weepingWillow:list": NodeDefinition(
            id="weepingWillow:list",
            handler_ref="PostsList",
            routing_rules=[
                RoutingRule(predicate=_action("create"), target_node_id="weepingWillow:create"),
                RoutingRule(predicate=_action("viewPost"), target_node_id="weepingWillow:respond"),
            ],
        ),
        "weepingWillow:create": NodeDefinition(
            id="weepingWillow:create",
            handler_ref="CreateWeepingWillowPost",
            routing_rules=[
                RoutingRule(predicate=_action("back"), target_node_id="weepingWillow:list"),
                RoutingRule(predicate=_action("submitted"), target_node_id="weepingWillow:list"),
            ],
        ),
        "weepingWillow:respond": NodeDefinition(
            id="weepingWillow:respond",
            handler_ref="RespondToPost",
            routing_rules=_BACK_TO_LIST,
            presentation_options={"backLabel": "Help Board"},
        ),
        "weepingWillow:viewPost": NodeDefinition(
            id="weepingWillow:viewPost",
            handler_ref="RespondToPost",
            routing_rules=_BACK_TO_LIST,
            presentation_options={"backLabel": "Help Board"},
        ),
    },
)

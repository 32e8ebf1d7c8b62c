"""Heart bank: a single terminal node."""
from flow_navigator import FlowDefinition, NodeDefinition

hearts_flow = FlowDefinition(
    name="hearts",
    title="HEART BANK",
    start_node_id="hearts:bank",
    nodes={
        "hearts:bank": NodeDefinition(id="hearts:bank", handler_ref="BankDrop"),
    },
)

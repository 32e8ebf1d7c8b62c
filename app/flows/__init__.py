"""Product flows, registered once at import time."""
from flow_navigator import FlowRegistry

from .hearts import hearts_flow
from .weeping_willow import weeping_willow_flow
from .wishing_well import wishing_well_flow
from .workbook import workbook_flow

flow_registry = FlowRegistry()
for _flow in (hearts_flow, wishing_well_flow, weeping_willow_flow, workbook_flow):
    flow_registry.register(_flow)

__all__ = ["flow_registry", "hearts_flow", "weeping_willow_flow", "wishing_well_flow", "workbook_flow"]

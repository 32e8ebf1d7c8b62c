"""Step handlers for the product flows.

Each node's ``handler_ref`` names a client component. The server does not
draw anything; a handler describes what the client should mount for a
binding, and the registry is built once at import time.
"""
from __future__ import annotations

from typing import Any, Dict, Optional

from flow_navigator import StepBinding, StepHandler, StepRegistry


class ComponentHandler(StepHandler):
    """Mounts a named client component with the node's merged input."""

    def __init__(self, component: str, props: Optional[Dict[str, Any]] = None) -> None:
        self.component = component
        self.props = props or {}

    def render(self, binding: StepBinding) -> Dict[str, Any]:
        return {
            "component": self.component,
            "props": {**self.props, **binding.input},
            "canGoBack": binding.can_go_back,
        }


class ViewPostHandler(ComponentHandler):
    """Deep-link entry for a single post; the post id arrives through the context."""

    def render(self, binding: StepBinding) -> Dict[str, Any]:
        view = super().render(binding)
        view["props"]["postId"] = binding.context.get("postId")
        return view


step_registry = StepRegistry()
for _ref, _handler in {
    "BankDrop": ComponentHandler("BankDrop"),
    "PositivityBoard": ComponentHandler("PositivityBoard"),
    "ViewPost": ViewPostHandler("ViewPost"),
    "PostsList": ComponentHandler("PostsList", {"order": "unresponded"}),
    "CreateWeepingWillowPost": ComponentHandler("CreateWeepingWillowPost"),
    "RespondToPost": ViewPostHandler("RespondToPost"),
    "WorkbookLanding": ComponentHandler("WorkbookLanding"),
    "WorkbookActivity": ComponentHandler("WorkbookActivity"),
}.items():
    step_registry.register(_ref, _handler)

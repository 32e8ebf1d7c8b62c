from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, status
from pydantic import BaseModel, Field

from flow_navigator import FlowError

from app.flows import flow_registry
from app.services.sessions import session_store
from .errors import flow_conflict, not_found

router = APIRouter()


class StartFlowRequest(BaseModel):
    startNodeId: Optional[str] = Field(default=None, description="Deep-link entry node; placed at depth 0")
    initialParams: Dict[str, Any] = Field(default_factory=dict)
    initialContext: Dict[str, Any] = Field(default_factory=dict)


@router.get("/flows")
def list_flows():
    return {
        "flows": [
            {"name": flow.name, "title": flow.title, "startNodeId": flow.start_node_id}
            for flow in flow_registry
        ]
    }


@router.post("/flows/{flow_name}/sessions", status_code=status.HTTP_201_CREATED)
def start_flow(flow_name: str, payload: StartFlowRequest):
    """Start a new session of *flow_name*, optionally deep-linked."""

    definition = flow_registry.get(flow_name)
    if definition is None:
        not_found(f"Flow '{flow_name}'")
    try:
        session = session_store.create(
            definition,
            start_node_id=payload.startNodeId,
            initial_params=payload.initialParams,
            initial_context=payload.initialContext,
        )
    except FlowError as exc:
        flow_conflict(exc)
    return session.view()

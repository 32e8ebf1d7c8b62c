from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter
from pydantic import BaseModel, Field

from app.services.sessions import Session, session_store
from .errors import not_found, raise_reported

router = APIRouter()


class DepthRequest(BaseModel):
    depth: int = Field(default=0, ge=0)
    generation: Optional[int] = Field(default=None, description="Generation the client last rendered")


class CompleteRequest(DepthRequest):
    output: Any = None


class ContextRequest(BaseModel):
    updates: Dict[str, Any] = Field(default_factory=dict)
    generation: Optional[int] = None


def _session(session_id: str) -> Session:
    session = session_store.get(session_id)
    if session is None:
        not_found(f"Session '{session_id}'")
    return session


@router.get("/sessions/{session_id}")
def get_session(session_id: str):
    session = _session(session_id)
    with session.lock:
        return session.view()


@router.post("/sessions/{session_id}/complete")
def complete_node(session_id: str, payload: CompleteRequest):
    session = _session(session_id)
    with session.operation() as errors:
        outcome = session.engine.complete_node(payload.depth, payload.output, generation=payload.generation)
        raise_reported(errors)
        return {"outcome": outcome.value, **session.view()}


@router.post("/sessions/{session_id}/back")
def go_back(session_id: str, payload: DepthRequest):
    session = _session(session_id)
    with session.operation() as errors:
        outcome = session.engine.go_back(payload.depth, generation=payload.generation)
        raise_reported(errors)
        return {"outcome": outcome.value, **session.view()}


@router.post("/sessions/{session_id}/close")
def close_depth(session_id: str, payload: DepthRequest):
    session = _session(session_id)
    with session.operation() as errors:
        closed = session.engine.close_depth(payload.depth, generation=payload.generation)
        raise_reported(errors)
        return {"closed": closed, **session.view()}


@router.patch("/sessions/{session_id}/context")
def update_context(session_id: str, payload: ContextRequest):
    session = _session(session_id)
    with session.operation() as errors:
        session.engine.update_context(payload.updates, generation=payload.generation)
        raise_reported(errors)
        return session.view()


@router.delete("/sessions/{session_id}")
def delete_session(session_id: str):
    if session_store.remove(session_id) is None:
        not_found(f"Session '{session_id}'")
    return {"sessionId": session_id, "deleted": True}

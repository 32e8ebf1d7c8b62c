"""In-memory flow sessions for the HTTP service.

Each session wraps one :class:`FlowEngine` owned by a single client. Sync
endpoints run in FastAPI's thread pool, so every session operation holds the
session lock.
"""
from __future__ import annotations

import threading
import uuid
from collections import OrderedDict
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Mapping, Optional

from loguru import logger

from flow_navigator import FlowDefinition, FlowEngine, FlowError, FlowResult

from .step_handlers import step_registry

_MAX_SESSIONS = 1000


class Session:
    def __init__(self, session_id: str) -> None:
        self.session_id = session_id
        self.lock = threading.Lock()
        self.result: Optional[FlowResult] = None
        self.errors: List[FlowError] = []
        self.engine = FlowEngine(on_complete=self._on_complete, on_error=self.errors.append)

    def _on_complete(self, result: FlowResult) -> None:
        self.result = result

    @contextmanager
    def operation(self) -> Iterator[List[FlowError]]:
        """Hold the lock and collect the errors reported during one call."""

        with self.lock:
            self.errors.clear()
            yield self.errors

    def view(self) -> Dict[str, Any]:
        instance = self.engine.instance
        surfaces = []
        for surface in self.engine.surfaces():
            handler = step_registry.get(surface.node.handler_ref)
            surfaces.append(
                {
                    "depth": surface.depth,
                    "title": surface.title,
                    "nodeId": surface.node.id,
                    "canGoBack": surface.binding.can_go_back,
                    "input": surface.binding.input,
                    "presentation": surface.node.presentation_options,
                    "view": handler.render(surface.binding) if handler else None,
                }
            )
        return {
            "sessionId": self.session_id,
            "open": self.engine.is_open,
            "generation": instance.generation if instance else None,
            "context": dict(instance.shared_context) if instance else {},
            "surfaces": surfaces,
            "result": None if self.result is None else {
                "flowName": self.result.flow_name,
                "generation": self.result.generation,
                "reason": self.result.reason.value,
                "outputs": self.result.outputs,
            },
        }


class SessionStore:
    def __init__(self, max_sessions: int = _MAX_SESSIONS) -> None:
        self._sessions: "OrderedDict[str, Session]" = OrderedDict()
        self._lock = threading.Lock()
        self._max_sessions = max_sessions

    def create(
        self,
        definition: FlowDefinition,
        start_node_id: Optional[str] = None,
        initial_params: Optional[Mapping[str, Any]] = None,
        initial_context: Optional[Mapping[str, Any]] = None,
    ) -> Session:
        session = Session(uuid.uuid4().hex)
        with session.operation() as errors:
            session.engine.start(definition, start_node_id, initial_params, initial_context)
            if errors:
                raise errors[0]

        evicted: List[Session] = []
        with self._lock:
            self._sessions[session.session_id] = session
            while len(self._sessions) > self._max_sessions:
                evicted.append(self._sessions.popitem(last=False)[1])
        for old in evicted:
            with old.lock:
                old.engine.teardown()
            logger.info("Evicted session {}", old.session_id)
        return session

    def get(self, session_id: str) -> Optional[Session]:
        with self._lock:
            return self._sessions.get(session_id)

    def remove(self, session_id: str) -> Optional[Session]:
        with self._lock:
            session = self._sessions.pop(session_id, None)
        if session is not None:
            with session.lock:
                session.engine.teardown()
        return session

    def __len__(self) -> int:
        return len(self._sessions)


session_store = SessionStore()

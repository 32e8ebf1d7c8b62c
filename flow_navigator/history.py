"""Per-depth back navigation and depth cascade closing."""
from __future__ import annotations

from enum import Enum
from typing import List

from loguru import logger

from .state import FlowInstance


class BackOutcome(str, Enum):
    POPPED = "popped"
    CASCADE_CLOSED = "cascade_closed"
    TERMINATED = "terminated"
    IGNORED = "ignored"
    DISCARDED = "discarded"


def close_depth(instance: FlowInstance, depth: int) -> List[int]:
    """Remove *depth* and every depth above it. ``close_depth(0)`` closes the flow."""

    closed = instance.drop_depths_from(depth)
    logger.debug("Closed depths {} | remaining={}", closed, instance.open_depths())
    return closed


def go_back(instance: FlowInstance, depth: int) -> BackOutcome:
    history = instance.history_by_depth.get(depth)
    if not history:
        logger.warning("goBack ignored: depth {} is not open", depth)
        return BackOutcome.IGNORED

    if len(history) > 1:
        instance.set_depth(depth, history[:-1])
        return BackOutcome.POPPED

    if depth > 0:
        close_depth(instance, depth)
        return BackOutcome.CASCADE_CLOSED

    close_depth(instance, 0)
    return BackOutcome.TERMINATED

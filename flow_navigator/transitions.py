"""Depth transition resolver.

Moves a flow instance from the node that just completed at ``from_depth`` to
the next node, whose declared depth is ``to_depth``:

* deeper  (``to > from``): close every depth above ``from`` and open ``to``
  with a fresh history; depths ``<= from`` are untouched.
* same    (``to == from``): push onto the current depth's history.
* shallower (``to < from``): close every depth above ``to`` and restart
  ``to`` with a fresh history.
"""
from __future__ import annotations

from enum import Enum
from typing import List

from loguru import logger

from .state import FlowInstance


class TransitionKind(str, Enum):
    DEEPER = "deeper"
    SAME = "same"
    SHALLOWER = "shallower"


def classify(from_depth: int, to_depth: int) -> TransitionKind:
    if to_depth > from_depth:
        return TransitionKind.DEEPER
    if to_depth < from_depth:
        return TransitionKind.SHALLOWER
    return TransitionKind.SAME


def _clamp(history: List[str], max_history: int) -> List[str]:
    if len(history) > max_history:
        logger.warning("History clamped from {} to {} entries", len(history), max_history)
        return history[-max_history:]
    return history


def apply_transition(
    instance: FlowInstance,
    from_depth: int,
    next_node_id: str,
    to_depth: int,
    max_history: int,
) -> TransitionKind:
    """Apply the transition in place and return its kind."""

    kind = classify(from_depth, to_depth)

    if kind is TransitionKind.DEEPER:
        # Layers stacked above the completing node are abandoned.
        closed = instance.drop_depths_from(from_depth + 1)
        instance.set_depth(to_depth, [next_node_id])
        if closed:
            logger.debug("Deeper transition closed depths {}", closed)
    elif kind is TransitionKind.SAME:
        history = instance.history_by_depth[from_depth] + [next_node_id]
        instance.set_depth(from_depth, _clamp(history, max_history))
    else:
        # Everything above the new leaf goes, including depths between to and from.
        closed = instance.drop_depths_from(to_depth + 1)
        instance.set_depth(to_depth, [next_node_id])
        logger.debug("Shallower transition closed depths {}", closed)

    logger.debug(
        "Transition {} {}→{} | active={}",
        kind.value, from_depth, to_depth, instance.active_node_by_depth,
    )
    return kind

"""Router: pick the next node from a node's ordered routing rules."""
from __future__ import annotations

from typing import Any, Mapping, Optional, Sequence

from loguru import logger

from .errors import RoutingPredicateError
from .models import RoutingRule


def resolve_next(
    routing_rules: Sequence[RoutingRule],
    output: Any,
    accumulated_outputs: Mapping[str, Any],
    shared_context: Mapping[str, Any],
) -> Optional[str]:
    """Return the target of the first matching rule, or ``None`` when none match.

    ``None`` is the termination signal, not an error. A predicate that raises
    is wrapped in :class:`RoutingPredicateError` so the caller can reject the
    transition without touching instance state.
    """

    for index, rule in enumerate(routing_rules):
        try:
            matched = rule.predicate.matches(output, accumulated_outputs, shared_context)
        except Exception as exc:
            logger.warning("Routing rule #{} ({}) errored: {}", index, rule.predicate.describe(), exc)
            raise RoutingPredicateError(f"Routing rule #{index} failed: {exc!r}") from exc

        if matched:
            logger.debug("Routing rule #{} matched → {}", index, rule.target_node_id)
            return rule.target_node_id

    logger.debug("No routing rule matched ({} evaluated)", len(routing_rules))
    return None

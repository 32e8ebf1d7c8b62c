"""Runtime state of one flow instance."""
from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class FlowInstance:
    """Mutable state owned by exactly one caller.

    ``active_node_by_depth`` and ``history_by_depth`` always share the same
    keys, and each history ends with the depth's active node. The instance is
    open exactly while depth 0 is present.
    """

    flow_name: str
    generation: int
    active_node_by_depth: Dict[int, str] = field(default_factory=dict)
    history_by_depth: Dict[int, List[str]] = field(default_factory=dict)
    accumulated_outputs: Dict[str, Any] = field(default_factory=dict)
    shared_context: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_open(self) -> bool:
        return 0 in self.active_node_by_depth

    def open_depths(self) -> List[int]:
        return sorted(self.active_node_by_depth)

    def active_node(self, depth: int) -> Optional[str]:
        return self.active_node_by_depth.get(depth)

    def can_go_back(self, depth: int) -> bool:
        return len(self.history_by_depth.get(depth, ())) > 1

    def set_depth(self, depth: int, history: List[str]) -> None:
        self.history_by_depth[depth] = history
        self.active_node_by_depth[depth] = history[-1]

    def drop_depths_from(self, depth: int) -> List[int]:
        """Remove every depth ``>= depth`` and return the removed depths."""

        removed = [d for d in self.open_depths() if d >= depth]
        for d in removed:
            del self.active_node_by_depth[d]
            del self.history_by_depth[d]
        return removed

    def check_invariants(self) -> None:
        """Raise ``AssertionError`` if the depth maps are inconsistent."""

        assert set(self.active_node_by_depth) == set(self.history_by_depth), "depth keys differ"
        for depth, history in self.history_by_depth.items():
            assert history, f"empty history at depth {depth}"
            assert history[-1] == self.active_node_by_depth[depth], f"depth {depth} active node is not last in history"
        if self.active_node_by_depth:
            assert 0 in self.active_node_by_depth, "open instance without depth 0"

    def snapshot(self) -> Dict[str, Any]:
        return {
            "flowName": self.flow_name,
            "generation": self.generation,
            "activeNodeByDepth": dict(self.active_node_by_depth),
            "historyByDepth": {d: list(h) for d, h in self.history_by_depth.items()},
            "accumulatedOutputs": copy.deepcopy(self.accumulated_outputs),
            "sharedContext": copy.deepcopy(self.shared_context),
        }

from __future__ import annotations
from dataclasses import dataclass
from typing import Tuple

import orjson

from ..models import EdgeView, NodeView

@dataclass(frozen=True)
class GraphSnapshot:
    nodes: Tuple[NodeView, ...] = ()
    edges: Tuple[EdgeView, ...] = ()

    def to_wire(self) -> dict:
        return {
            "nodes": [n.to_wire() for n in self.nodes],
            "links": [e.to_wire() for e in self.edges],
        }

    def dumps(self) -> bytes:
        return orjson.dumps(self.to_wire())

    def is_empty(self) -> bool:
        return not self.nodes and not self.edges

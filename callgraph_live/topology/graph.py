from __future__ import annotations
import logging
import re
import threading
from typing import Dict, Optional, Sequence

from ..errors import FilterConfigError
from ..models import ConnectionState, EdgeView, FilterConfig, MethodIdentity, NodeView
from .snapshot import GraphSnapshot

log = logging.getLogger(__name__)

class GraphEdge:
    __slots__ = ("target", "weight", "is_new")

    def __init__(self, target: "GraphNode"):
        self.target = target
        self.weight = 0
        self.is_new = True

class GraphNode:
    __slots__ = ("id", "identity", "visit_count", "is_new", "edges")

    def __init__(self, node_id: int, identity: MethodIdentity):
        self.id = node_id
        self.identity = identity
        self.visit_count = 0
        self.is_new = True
        self.edges: Dict[MethodIdentity, GraphEdge] = {}

class CallGraph:
    """Weighted call graph shared between the sampler and the request handlers.

    Every public method takes the same lock, so a snapshot never sees half an
    append. Edges point from a frame to the frame directly outside it in the
    same sample, i.e. from callee to caller.
    """

    def __init__(self, filters: Optional[FilterConfig] = None):
        self.lock = threading.Lock()
        self._nodes: Dict[MethodIdentity, GraphNode] = {}
        self._filters = filters or FilterConfig()
        self._connection = ConnectionState()

    # --- filters ---

    @property
    def filters(self) -> FilterConfig:
        with self.lock:
            return self._filters

    def set_white_list(self, pattern: str) -> None:
        self._set_filters(white=pattern)

    def set_black_list(self, pattern: str) -> None:
        self._set_filters(black=pattern)

    def _set_filters(self, white: Optional[str] = None, black: Optional[str] = None) -> None:
        with self.lock:
            cur = self._filters
            try:
                self._filters = FilterConfig.build(
                    cur.white_list if white is None else white.strip(),
                    cur.black_list if black is None else black.strip(),
                )
            except re.error as exc:
                raise FilterConfigError(f"invalid pattern: {exc}") from exc
            # nodes parsed under the old filters must not outlive them
            self._nodes = {}
            log.info("filters white=%r black=%r", self._filters.white_list, self._filters.black_list)

    # --- connection ---

    @property
    def connection(self) -> ConnectionState:
        with self.lock:
            return self._connection

    def set_connection(self, pid: Optional[int], connected: bool) -> None:
        with self.lock:
            self._connection = ConnectionState(active_process_id=pid, connected=connected)

    # --- graph ---

    def reset(self) -> None:
        with self.lock:
            self._nodes = {}

    def append(self, frames: Sequence[MethodIdentity], filters: Optional[FilterConfig] = None) -> bool:
        """Add one sample, innermost frame first.

        ``filters`` is the config the frames were parsed under; when it is no
        longer the active one the sample is dropped and False is returned.
        """
        with self.lock:
            if filters is not None and filters is not self._filters:
                return False
            prev: Optional[GraphNode] = None
            for identity in frames:
                node = self._node(identity)
                node.visit_count += 1
                if prev is not None:
                    edge = prev.edges.get(identity)
                    if edge is None:
                        edge = prev.edges[identity] = GraphEdge(node)
                    edge.weight += 1
                prev = node
            return True

    def _node(self, identity: MethodIdentity) -> GraphNode:
        node = self._nodes.get(identity)
        if node is None:
            node = self._nodes[identity] = GraphNode(len(self._nodes), identity)
        return node

    def snapshot(self) -> GraphSnapshot:
        """Copy out the graph and consume the freshness flags."""
        with self.lock:
            nodes = []
            edges = []
            for node in self._nodes.values():
                nodes.append(NodeView(node.id, node.identity, node.visit_count, node.is_new))
                node.is_new = False
                for edge in node.edges.values():
                    edges.append(EdgeView(node.id, edge.target.id, edge.weight, edge.is_new))
                    edge.is_new = False
            return GraphSnapshot(tuple(nodes), tuple(edges))

    def __len__(self) -> int:
        with self.lock:
            return len(self._nodes)

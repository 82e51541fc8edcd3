from .graph import CallGraph, GraphEdge, GraphNode
from .snapshot import GraphSnapshot

__all__ = ["CallGraph", "GraphEdge", "GraphNode", "GraphSnapshot"]

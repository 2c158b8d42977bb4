"""Knowledge-graph construction from code-intelligence service answers."""

from .graph import Graph, GraphBuilder
from .merging import DescriptionMerger
from .parser import LspGraphParser
from .storage import load_graph, save_graph
from .updater import GraphUpdater

__all__ = [
    "DescriptionMerger",
    "Graph",
    "GraphBuilder",
    "GraphUpdater",
    "LspGraphParser",
    "load_graph",
    "save_graph",
]

"""Layout module for delegating node placement to Graphviz.

This module provides:
- DOT serialization of NetworkX graphs (dot_writer)
- Deadlock-free engine subprocess exchange (process_runner)
- Position recovery from engine output (dot_parser)
- Layout engine abstraction and the Graphviz engine (engines)
"""

from src.layout.engines.base import LayoutEngine
from src.layout.engines.graphviz import GraphvizLayoutEngine, layout_graph
from src.layout.errors import (
    EngineExitError,
    EngineIOError,
    EngineTimeoutError,
    GraphModelError,
    LaunchError,
    LayoutError,
)

__all__ = [
    "LayoutEngine",
    "GraphvizLayoutEngine",
    "layout_graph",
    "LayoutError",
    "GraphModelError",
    "LaunchError",
    "EngineIOError",
    "EngineTimeoutError",
    "EngineExitError",
]

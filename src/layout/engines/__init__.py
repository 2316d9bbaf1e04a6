"""Layout engines registry.

Available engines:
- graphviz: Graphviz executables (dot, neato, fdp, sfdp, circo, twopi)
"""

from src.layout.engines.base import LayoutEngine
from src.layout.engines.graphviz import GraphvizLayoutEngine, layout_graph

# Engine registry
ENGINES = {
    "graphviz": GraphvizLayoutEngine,
}


def get_engine(name: str) -> type:
    """Get layout engine class by name.

    Args:
        name: Engine name ('graphviz')

    Returns:
        Layout engine class

    Raises:
        ValueError: If engine not found
    """
    if name not in ENGINES:
        raise ValueError(f"Unknown layout engine: {name}. Available: {list(ENGINES.keys())}")
    return ENGINES[name]


__all__ = [
    "LayoutEngine",
    "GraphvizLayoutEngine",
    "layout_graph",
    "ENGINES",
    "get_engine",
]

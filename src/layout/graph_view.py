"""Read/write view of the host graph used by the layout pass.

The host owns a NetworkX graph. A layout pass only reads node identifiers,
labels, positions, edge direction and edge weight, and writes node positions
back as the ``pos`` attribute (``[x, y]``).
"""

import logging
from typing import Any, Dict, Hashable, Iterator, Optional, Tuple

import networkx as nx

from src.layout.errors import GraphModelError

logger = logging.getLogger(__name__)

DEFAULT_EDGE_WEIGHT = 1.0


def node_identifier(node: Hashable) -> int:
    """Map a node key to its integer identifier.

    Integer keys are used as-is; strings of decimal digits (with an optional
    sign) are converted.

    Raises:
        GraphModelError: If the key has no integer identifier
    """
    if isinstance(node, bool):
        raise GraphModelError(f"Node key {node!r} is not an integer identifier")
    if isinstance(node, int):
        return node
    if isinstance(node, str):
        try:
            return int(node.strip(), 10)
        except ValueError:
            pass
    raise GraphModelError(f"Node key {node!r} is not an integer identifier")


def build_node_index(graph: nx.Graph) -> Dict[int, Hashable]:
    """Build the identifier -> node key index for one layout pass.

    Args:
        graph: Host graph

    Returns:
        Dictionary of integer identifier -> node key

    Raises:
        GraphModelError: If a key is not an identifier or two keys collide
    """
    index: Dict[int, Hashable] = {}
    for node in graph.nodes:
        identifier = node_identifier(node)
        if identifier in index:
            raise GraphModelError(
                f"Nodes {index[identifier]!r} and {node!r} share identifier {identifier}"
            )
        index[identifier] = node
    return index


def node_label(graph: nx.Graph, node: Hashable) -> str:
    label = graph.nodes[node].get("label")
    if label is None:
        return str(node_identifier(node))
    return str(label)


def get_node_position(graph: nx.Graph, node: Hashable) -> Optional[Tuple[float, float]]:
    """Return the node's current position, or None if it has none."""
    pos = graph.nodes[node].get("pos")
    if pos is None:
        return None
    if len(pos) != 2:
        logger.warning(f"Ignoring pos {pos!r} of node {node!r}: expected [x, y]")
        return None
    return float(pos[0]), float(pos[1])


def set_node_position(graph: nx.Graph, node: Hashable, x: float, y: float) -> None:
    """Overwrite the node's position."""
    graph.nodes[node]["pos"] = [x, y]


def iter_edges(graph: nx.Graph) -> Iterator[Tuple[Hashable, Hashable, Dict[str, Any]]]:
    """Yield (source, target, attrs) for every edge, multigraph keys dropped."""
    for source, target, attrs in graph.edges(data=True):
        yield source, target, attrs


def edge_is_directed(graph: nx.Graph, attrs: Dict[str, Any]) -> bool:
    """Edge direction: the ``directed`` attribute, else the graph's kind."""
    directed = attrs.get("directed")
    if directed is None:
        return graph.is_directed()
    return bool(directed)


def edge_weight(attrs: Dict[str, Any]) -> float:
    weight = attrs.get("weight")
    if weight is None:
        return DEFAULT_EDGE_WEIGHT
    return float(weight)


__all__ = [
    "DEFAULT_EDGE_WEIGHT",
    "node_identifier",
    "build_node_index",
    "node_label",
    "get_node_position",
    "set_node_position",
    "iter_edges",
    "edge_is_directed",
    "edge_weight",
]

"""Serialize a NetworkX graph into a Graphviz DOT document.

The document carries the graph-level layout options, one statement per node
(identifier, current position as a hint, label) and one statement per edge
(endpoints, arrow, weight):

    digraph g {
    layout = "dot";
    rankdir = "LR";
    overlap = "false";
    1 [pos="0.0,0.0", label="Feed"];
    1->2 [weight=1];
    }

Every quoted value is escaped, so labels containing quotes, backslashes or
newlines cannot break the statement list.
"""

import logging
import math
import re
from typing import Any, List

import networkx as nx

from src.layout.errors import GraphModelError
from src.layout.graph_view import (
    build_node_index,
    edge_is_directed,
    edge_weight,
    get_node_position,
    iter_edges,
    node_identifier,
    node_label,
)
from src.models.layout_config import LayoutConfig

logger = logging.getLogger(__name__)

# Control characters other than tab and newline have no DOT spelling.
_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b-\x1f\x7f]")


def quote(value: Any) -> str:
    """Render a value as a DOT double-quoted string.

    Backslashes and double quotes are escaped, newlines become the ``\\n``
    escape and other control characters are dropped.
    """
    text = str(value)
    text = text.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n")
    text = _CONTROL_CHARS.sub("", text)
    return f'"{text}"'


def format_number(value: float) -> str:
    """Format a float so that parsing it back gives the same value."""
    return repr(float(value))


def format_weight(value: float) -> str:
    """Format an edge weight; integral weights drop the fraction (dot needs ints)."""
    if not math.isfinite(value):
        raise GraphModelError(f"Edge weight {value!r} is not a finite number")
    if float(value).is_integer():
        return str(int(value))
    return format_number(value)


def _node_statement(graph: nx.Graph, node: Any) -> str:
    attributes: List[str] = []

    position = get_node_position(graph, node)
    if position is not None and all(math.isfinite(c) for c in position):
        x, y = position
        attributes.append(f'pos="{format_number(x)},{format_number(y)}"')
    elif position is not None:
        logger.warning(f"Not sending non-finite position {position!r} of node {node!r}")

    attributes.append(f"label={quote(node_label(graph, node))}")
    return f"{node_identifier(node)} [{', '.join(attributes)}];"


def serialize_graph(graph: nx.Graph, config: LayoutConfig) -> str:
    """Build the DOT document sent to the layout engine.

    Args:
        graph: Host graph (integer-identified nodes)
        config: Layout options written as graph attributes

    Returns:
        DOT statement list, newline terminated

    Raises:
        GraphModelError: If a node key is not an integer identifier
    """
    # Validates identifiers and rejects collisions before anything is written.
    build_node_index(graph)

    edges = [
        (source, target, attrs, edge_is_directed(graph, attrs))
        for source, target, attrs in iter_edges(graph)
    ]
    use_digraph = graph.is_directed() or any(directed for *_, directed in edges)

    lines = ["digraph g {" if use_digraph else "graph g {"]
    for name, value in config.graph_attributes().items():
        lines.append(f"{name} = {quote(value)};")
    if config.concentrate:
        lines.append("concentrate=true;")

    for node in graph.nodes:
        lines.append(_node_statement(graph, node))

    for source, target, attrs, directed in edges:
        edge_attributes = [f"weight={format_weight(edge_weight(attrs))}"]
        if directed:
            arrow = "->"
        elif use_digraph:
            # Graphviz rejects "--" inside a digraph.
            arrow = "->"
            edge_attributes.append("dir=none")
        else:
            arrow = "--"
        lines.append(
            f"{node_identifier(source)}{arrow}{node_identifier(target)} "
            f"[{', '.join(edge_attributes)}];"
        )

    lines.append("}")
    document = "\n".join(lines) + "\n"
    logger.debug(
        f"Serialized {graph.number_of_nodes()} nodes and {len(edges)} edges "
        f"({len(document)} chars)"
    )
    return document


__all__ = ["quote", "format_number", "format_weight", "serialize_graph"]

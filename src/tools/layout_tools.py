"""MCP tools for Graphviz layout computation.

Provides tools to:
- Compute a layout for a graph sent by the client
- Report whether the configured Graphviz executable is usable

Graph payload format (``graph`` argument of ``layout_compute``):
    {
        "directed": true,
        "nodes": [{"id": 1, "label": "Feed", "pos": [0, 0]}, ...],
        "edges": [{"source": 1, "target": 2, "weight": 1.0, "directed": true}, ...]
    }
"""

import logging
from typing import Any, Dict, List, Optional

import networkx as nx
from mcp import Tool
from pydantic import ValidationError

from ..layout.engines.graphviz import GraphvizLayoutEngine
from ..layout.errors import (
    EngineExitError,
    EngineIOError,
    EngineTimeoutError,
    GraphModelError,
    LaunchError,
    LayoutError,
)
from ..layout.graph_view import node_identifier
from ..models.layout_config import LayoutConfig
from ..utils.response import error_response, success_response

logger = logging.getLogger(__name__)

# LayoutConfig fields a client may set per call. The executable stays server-side.
CLIENT_OPTIONS = (
    "algorithm",
    "rank_dir",
    "overlap",
    "concentrate",
    "timeout",
    "strict_exit_code",
)


def graph_from_payload(payload: Dict[str, Any]) -> nx.Graph:
    """Build a NetworkX multigraph from a tool graph payload.

    Args:
        payload: Dict with ``nodes``, ``edges`` and optional ``directed``

    Returns:
        MultiDiGraph (directed, the default) or MultiGraph

    Raises:
        GraphModelError: If a node has no integer id or an edge names an unknown node
    """
    if not isinstance(payload, dict):
        raise GraphModelError("Graph payload must be an object with 'nodes' and 'edges'")

    graph = nx.MultiDiGraph() if payload.get("directed", True) else nx.MultiGraph()

    for entry in payload.get("nodes", []):
        if "id" not in entry:
            raise GraphModelError(f"Node entry without 'id': {entry!r}")
        identifier = node_identifier(entry["id"])
        attrs = {key: value for key, value in entry.items() if key != "id"}
        graph.add_node(identifier, **attrs)

    for entry in payload.get("edges", []):
        try:
            source = node_identifier(entry["source"])
            target = node_identifier(entry["target"])
        except KeyError as e:
            raise GraphModelError(f"Edge entry without {e}: {entry!r}") from e
        for endpoint in (source, target):
            if endpoint not in graph:
                raise GraphModelError(f"Edge {source}->{target} references unknown node {endpoint}")
        attrs = {key: value for key, value in entry.items() if key not in ("source", "target")}
        graph.add_edge(source, target, **attrs)

    return graph


class LayoutTools:
    """Provides Graphviz layout tools."""

    def __init__(self, engine: Optional[GraphvizLayoutEngine] = None):
        """Initialize with an optional engine (created lazily if not provided)."""
        self._engine = engine

    @property
    def engine(self) -> GraphvizLayoutEngine:
        """Lazy initialization of Graphviz engine."""
        if self._engine is None:
            self._engine = GraphvizLayoutEngine()
        return self._engine

    def _option_schema(self) -> Dict[str, Any]:
        properties = LayoutConfig.model_json_schema()["properties"]
        return {name: properties[name] for name in CLIENT_OPTIONS}

    def get_tools(self) -> List[Tool]:
        """Return layout MCP tools."""
        return [
            Tool(
                name="layout_compute",
                description=(
                    "Compute node positions for a graph with Graphviz (dot, neato, fdp, ...). "
                    "Returns the new position of every node the engine placed."
                ),
                inputSchema={
                    "type": "object",
                    "properties": {
                        "graph": {
                            "type": "object",
                            "description": "Graph with integer node ids",
                            "properties": {
                                "directed": {"type": "boolean", "default": True},
                                "nodes": {
                                    "type": "array",
                                    "items": {
                                        "type": "object",
                                        "properties": {
                                            "id": {"type": "integer"},
                                            "label": {"type": "string"},
                                            "pos": {
                                                "type": "array",
                                                "items": {"type": "number"},
                                                "minItems": 2,
                                                "maxItems": 2,
                                            },
                                        },
                                        "required": ["id"],
                                    },
                                },
                                "edges": {
                                    "type": "array",
                                    "items": {
                                        "type": "object",
                                        "properties": {
                                            "source": {"type": "integer"},
                                            "target": {"type": "integer"},
                                            "weight": {"type": "number"},
                                            "directed": {"type": "boolean"},
                                        },
                                        "required": ["source", "target"],
                                    },
                                },
                            },
                            "required": ["nodes"],
                        },
                        "options": {
                            "type": "object",
                            "description": "Layout options",
                            "properties": self._option_schema(),
                        },
                    },
                    "required": ["graph"],
                },
            ),
            Tool(
                name="layout_engine_status",
                description="Report the configured Graphviz executable and whether it runs",
                inputSchema={"type": "object", "properties": {}},
            ),
        ]

    async def handle_tool(self, name: str, arguments: dict) -> dict:
        """Route tool call to appropriate handler.

        Args:
            name: Tool name
            arguments: Tool arguments

        Returns:
            Standardized response
        """
        handlers = {
            "layout_compute": self._compute_layout,
            "layout_engine_status": self._engine_status,
        }

        handler = handlers.get(name)
        if not handler:
            return error_response(f"Unknown layout tool: {name}", code="UNKNOWN_TOOL")

        try:
            return await handler(arguments)
        except Exception as e:
            logger.error(f"Error in {name}: {e}", exc_info=True)
            return error_response(str(e), code="TOOL_ERROR")

    async def _compute_layout(self, args: dict) -> dict:
        """Compute layout for a graph payload."""
        try:
            graph = graph_from_payload(args.get("graph"))
        except GraphModelError as e:
            return error_response(str(e), code="INVALID_GRAPH")

        options = args.get("options") or {}
        unknown = sorted(set(options) - set(CLIENT_OPTIONS))
        if unknown:
            return error_response(
                f"Unknown layout options: {unknown}. Available: {list(CLIENT_OPTIONS)}",
                code="INVALID_OPTIONS",
            )
        try:
            config = self.engine.config.with_options(**options)
        except ValidationError as e:
            return error_response(f"Invalid layout options: {e}", code="INVALID_OPTIONS")

        try:
            result = await self.engine.layout(graph, config)
        except LaunchError as e:
            return error_response(str(e), code="ENGINE_NOT_FOUND")
        except EngineTimeoutError as e:
            return error_response(str(e), code="ENGINE_TIMEOUT", details={"timeout": e.timeout})
        except EngineIOError as e:
            return error_response(
                str(e),
                code="ENGINE_IO_ERROR",
                details={"updated_count": e.updated_count, "diagnostics": e.diagnostics},
            )
        except EngineExitError as e:
            return error_response(
                str(e),
                code="ENGINE_EXIT_ERROR",
                details={"returncode": e.returncode, "diagnostics": e.diagnostics},
            )
        except GraphModelError as e:
            return error_response(str(e), code="INVALID_GRAPH")
        except LayoutError as e:
            return error_response(str(e), code="LAYOUT_ERROR")

        data = result.to_dict()
        data["node_count"] = graph.number_of_nodes()
        data["edge_count"] = graph.number_of_edges()
        warnings = [skip.message for skip in result.skips]
        return success_response(data, warnings=warnings or None)

    async def _engine_status(self, args: dict) -> dict:
        """Report engine availability."""
        config = self.engine.config
        available = await self.engine.is_available()
        return success_response({
            "engine": self.engine.name,
            "binary": config.binary,
            "algorithm": config.algorithm,
            "available": available,
        })


__all__ = ["CLIENT_OPTIONS", "LayoutTools", "graph_from_payload"]

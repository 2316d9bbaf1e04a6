"""Tests for layout_tools.py and the MCP server routing."""

import json

import networkx as nx
import pytest
from mcp import types

from src.layout.engines.graphviz import GraphvizLayoutEngine
from src.layout.errors import GraphModelError
from src.models.layout_config import LayoutConfig
from src.server import GraphvizLayoutMCPServer
from src.tools.layout_tools import CLIENT_OPTIONS, LayoutTools, graph_from_payload
from src.utils.response import is_success

GRAPH_PAYLOAD = {
    "nodes": [
        {"id": 1, "label": "Feed", "pos": [0, 0]},
        {"id": 2, "label": "Pump", "pos": [5, 5]},
        {"id": 3, "label": "Tank"},
    ],
    "edges": [
        {"source": 1, "target": 2, "weight": 2},
        {"source": 2, "target": 3, "directed": False},
    ],
}

SLEEPING_ENGINE = """
    import time
    time.sleep(60)
"""


@pytest.fixture
def echo_tools(echo_engine):
    """LayoutTools backed by an identity engine."""
    return LayoutTools(GraphvizLayoutEngine(LayoutConfig(binary=echo_engine)))


@pytest.fixture
def missing_tools(tmp_path):
    """LayoutTools whose executable does not exist."""
    return LayoutTools(GraphvizLayoutEngine(LayoutConfig(binary=str(tmp_path / "dot"))))


# ========== graph_from_payload Tests ==========

def test_payload_directed_by_default():
    """Test payloads build a directed multigraph unless told otherwise."""
    graph = graph_from_payload(GRAPH_PAYLOAD)

    assert isinstance(graph, nx.MultiDiGraph)
    assert sorted(graph.nodes) == [1, 2, 3]
    assert graph.nodes[1] == {"label": "Feed", "pos": [0, 0]}
    assert graph.number_of_edges() == 2
    assert graph.edges[1, 2, 0]["weight"] == 2
    assert graph.edges[2, 3, 0]["directed"] is False


def test_payload_undirected():
    """Test directed=false builds an undirected multigraph."""
    graph = graph_from_payload({"directed": False, "nodes": [{"id": 1}, {"id": 2}],
                                "edges": [{"source": 1, "target": 2}]})
    assert isinstance(graph, nx.MultiGraph)
    assert not graph.is_directed()


def test_payload_string_ids():
    """Test digit-string ids are converted to integers."""
    graph = graph_from_payload({"nodes": [{"id": "7"}], "edges": []})
    assert list(graph.nodes) == [7]


@pytest.mark.parametrize("payload", [
    None,
    {"nodes": [{"label": "no id"}]},
    {"nodes": [{"id": "pump"}]},
    {"nodes": [{"id": 1}], "edges": [{"source": 1}]},
    {"nodes": [{"id": 1}], "edges": [{"source": 1, "target": 2}]},
])
def test_payload_invalid(payload):
    """Test malformed payloads raise GraphModelError."""
    with pytest.raises(GraphModelError):
        graph_from_payload(payload)


# ========== Tool listing Tests ==========

def test_tool_names(echo_tools):
    """Test the exposed tools."""
    names = [tool.name for tool in echo_tools.get_tools()]
    assert names == ["layout_compute", "layout_engine_status"]


def test_options_schema_excludes_binary(echo_tools):
    """Test clients cannot choose the executable."""
    compute = echo_tools.get_tools()[0]
    options = compute.inputSchema["properties"]["options"]["properties"]

    assert set(options) == set(CLIENT_OPTIONS)
    assert "binary" not in options


@pytest.mark.asyncio
async def test_unknown_tool(echo_tools):
    """Test unknown tool names return an error envelope."""
    result = await echo_tools.handle_tool("layout_missing", {})

    assert not is_success(result)
    assert result["error"]["code"] == "UNKNOWN_TOOL"


# ========== layout_compute Tests ==========

@pytest.mark.asyncio
async def test_compute_identity(echo_tools):
    """Test positions come back for nodes that had them."""
    result = await echo_tools.handle_tool("layout_compute", {"graph": GRAPH_PAYLOAD})

    assert is_success(result)
    data = result["data"]
    assert data["updated_count"] == 2
    assert data["positions"] == {"1": [0.0, 0.0], "2": [5.0, 5.0]}
    assert data["node_count"] == 3
    assert data["edge_count"] == 2
    assert data["algorithm"] == "dot"
    assert data["bounding_box"]["width"] == 5.0
    assert "warnings" not in result


@pytest.mark.asyncio
async def test_compute_with_options(echo_tools):
    """Test per-call options reach the pass without changing the default."""
    args = {"graph": GRAPH_PAYLOAD, "options": {"algorithm": "neato", "concentrate": True}}

    result = await echo_tools.handle_tool("layout_compute", args)

    assert is_success(result)
    assert result["data"]["algorithm"] == "neato"
    assert echo_tools.engine.config.algorithm == "dot"


@pytest.mark.asyncio
async def test_compute_skips_become_warnings(make_engine):
    """Test skipped records are reported as warnings."""
    engine = make_engine(
        "import sys\nsys.stdin.read()\nprint('1 [pos=\"1,1\"];')\nprint('42 [pos=\"2,2\"];')\n"
    )
    tools = LayoutTools(GraphvizLayoutEngine(LayoutConfig(binary=engine)))

    result = await tools.handle_tool("layout_compute", {"graph": GRAPH_PAYLOAD})

    assert is_success(result)
    assert result["warnings"] == ["line 2: no node with identifier 42"]
    assert result["data"]["skipped"][0]["reason"] == "unknown_node"


@pytest.mark.asyncio
async def test_compute_unknown_option(echo_tools):
    """Test options outside the client set are rejected."""
    args = {"graph": GRAPH_PAYLOAD, "options": {"binary": "/bin/sh"}}

    result = await echo_tools.handle_tool("layout_compute", args)

    assert not is_success(result)
    assert result["error"]["code"] == "INVALID_OPTIONS"


@pytest.mark.asyncio
async def test_compute_invalid_option_value(echo_tools):
    """Test option values are validated."""
    args = {"graph": GRAPH_PAYLOAD, "options": {"timeout": -5}}

    result = await echo_tools.handle_tool("layout_compute", args)

    assert result["error"]["code"] == "INVALID_OPTIONS"


@pytest.mark.asyncio
async def test_compute_invalid_graph(echo_tools):
    """Test a bad graph payload is reported as INVALID_GRAPH."""
    args = {"graph": {"nodes": [{"id": 1}], "edges": [{"source": 1, "target": 9}]}}

    result = await echo_tools.handle_tool("layout_compute", args)

    assert result["error"]["code"] == "INVALID_GRAPH"
    assert "9" in result["error"]["message"]


@pytest.mark.asyncio
async def test_compute_engine_missing(missing_tools):
    """Test a missing executable is reported as ENGINE_NOT_FOUND."""
    result = await missing_tools.handle_tool("layout_compute", {"graph": GRAPH_PAYLOAD})
    assert result["error"]["code"] == "ENGINE_NOT_FOUND"


@pytest.mark.asyncio
async def test_compute_timeout(make_engine):
    """Test a hanging engine is reported as ENGINE_TIMEOUT."""
    tools = LayoutTools(GraphvizLayoutEngine(LayoutConfig(binary=make_engine(SLEEPING_ENGINE))))
    args = {"graph": GRAPH_PAYLOAD, "options": {"timeout": 0.5}}

    result = await tools.handle_tool("layout_compute", args)

    assert result["error"]["code"] == "ENGINE_TIMEOUT"
    assert result["error"]["details"]["timeout"] == 0.5


@pytest.mark.asyncio
async def test_compute_exit_error(make_engine):
    """Test a failing engine is reported with its exit status."""
    engine = make_engine("import sys\nsys.stdin.read()\nsys.stderr.write('Error: bad')\nsys.exit(1)\n")
    tools = LayoutTools(GraphvizLayoutEngine(LayoutConfig(binary=engine)))

    result = await tools.handle_tool("layout_compute", {"graph": GRAPH_PAYLOAD})

    assert result["error"]["code"] == "ENGINE_EXIT_ERROR"
    assert result["error"]["details"]["returncode"] == 1


# ========== layout_engine_status Tests ==========

@pytest.mark.asyncio
async def test_engine_status(echo_tools, echo_engine):
    """Test status reports the configured executable."""
    result = await echo_tools.handle_tool("layout_engine_status", {})

    assert is_success(result)
    assert result["data"] == {
        "engine": "graphviz",
        "binary": echo_engine,
        "algorithm": "dot",
        "available": True,
    }


@pytest.mark.asyncio
async def test_engine_status_missing(missing_tools):
    """Test a missing executable is reported unavailable."""
    result = await missing_tools.handle_tool("layout_engine_status", {})
    assert result["data"]["available"] is False


# ========== Server Tests ==========

@pytest.mark.asyncio
async def test_server_lists_tools(echo_tools):
    """Test the server advertises the layout tools."""
    server = GraphvizLayoutMCPServer(layout_tools=echo_tools)
    handler = server.server.request_handlers[types.ListToolsRequest]

    response = await handler(types.ListToolsRequest(method="tools/list"))

    assert [tool.name for tool in response.root.tools] == [
        "layout_compute",
        "layout_engine_status",
    ]


@pytest.mark.asyncio
async def test_server_routes_calls(echo_tools):
    """Test tool calls come back as JSON text content."""
    server = GraphvizLayoutMCPServer(layout_tools=echo_tools)
    handler = server.server.request_handlers[types.CallToolRequest]
    request = types.CallToolRequest(
        method="tools/call",
        params=types.CallToolRequestParams(name="layout_compute", arguments={"graph": GRAPH_PAYLOAD}),
    )

    response = await handler(request)

    payload = json.loads(response.root.content[0].text)
    assert payload["ok"] is True
    assert payload["data"]["updated_count"] == 2

#!/usr/bin/env python3
"""
Simple Layout Example
Lays out a small process flow with Graphviz, directly and through the MCP tools.
"""

import asyncio
from pathlib import Path
import sys
sys.path.append(str(Path(__file__).parent.parent))

import networkx as nx

from src.layout import LayoutError, layout_graph
from src.models.layout_config import LayoutConfig
from src.tools.layout_tools import LayoutTools


def build_process_graph() -> nx.DiGraph:
    """Feed tank, pump, reactor and separator with a recycle stream."""
    graph = nx.DiGraph()
    graph.add_node(1, label="TK-101 Feed Tank")
    graph.add_node(2, label="P-101 Pump")
    graph.add_node(3, label="R-101 Reactor")
    graph.add_node(4, label="V-101 Separator")
    graph.add_node(5, label="Product")
    graph.add_edge(1, 2)
    graph.add_edge(2, 3, weight=2)
    graph.add_edge(3, 4, weight=2)
    graph.add_edge(4, 5)
    graph.add_edge(4, 2, weight=0.5)
    return graph


async def run_example():
    """Run one direct pass and one pass through the tool interface."""
    print("Graphviz Layout Example")
    print("=" * 50)

    graph = build_process_graph()

    print("\n1. Direct layout (dot, left to right)")
    try:
        result = layout_graph(graph, LayoutConfig(algorithm="dot", rank_dir="LR"))
    except LayoutError as e:
        print(f"   ❌ {e}")
        return
    for node, data in graph.nodes(data=True):
        x, y = data["pos"]
        print(f"   {node}: {data['label']:<20} ({x:8.1f}, {y:8.1f})")
    box = result.bounding_box
    print(f"   ✅ {result.updated_count} nodes placed, {box.width:.0f} x {box.height:.0f}")

    print("\n2. Tool call (neato, positions from step 1 as hints)")
    tools = LayoutTools()
    payload = {
        "nodes": [
            {"id": node, "label": data["label"], "pos": data["pos"]}
            for node, data in graph.nodes(data=True)
        ],
        "edges": [
            {"source": source, "target": target, **attrs}
            for source, target, attrs in graph.edges(data=True)
        ],
    }
    response = await tools.handle_tool("layout_compute", {
        "graph": payload,
        "options": {"algorithm": "neato", "overlap": "scale"},
    })
    if not response.get("ok"):
        print(f"   ❌ {response['error']['message']}")
        return
    for node_id, (x, y) in response["data"]["positions"].items():
        print(f"   {node_id}: ({x:8.1f}, {y:8.1f})")
    print(f"   ✅ Layout finished in {response['data']['elapsed']}s")


if __name__ == "__main__":
    asyncio.run(run_example())

"""
Shared test fixtures.

Sample graph: a small process flow with 5 nodes and 5 directed edges, one
label that needs escaping, and positions in plain and exponent notation.
Fake engines: tiny Python scripts that stand in for a Graphviz executable.
"""

import shutil
import sys
import textwrap
from pathlib import Path

import networkx as nx
import pytest


# ── Node definitions ─────────────────────────────────────────────
_NODES = [
    (1, dict(label="Feed", pos=[0.0, 0.0])),
    (2, dict(label="Pump P-101", pos=[120.5, -40.25])),
    (3, dict(label='Reactor "R-1"', pos=[2.5e3, 1e-7])),
    (4, dict(label="Separator", pos=[-310.0, 75.0])),
    (5, dict(label="Product", pos=[400.0, 400.0])),
]

# ── Edge definitions (all DIRECTED) ──────────────────────────────
_EDGES = [
    (1, 2, dict(weight=1.0)),
    (2, 3, dict(weight=2.0)),
    (3, 4, dict(weight=0.5)),
    (4, 5, dict(weight=1.0)),
    (4, 2, dict(weight=3.0)),
]

ECHO_ENGINE = """
    import sys
    sys.stdout.write(sys.stdin.read())
"""


@pytest.fixture
def process_graph():
    """Directed sample graph with positions on every node."""
    graph = nx.DiGraph()
    for node_id, attrs in _NODES:
        graph.add_node(node_id, **attrs)
    for source, target, attrs in _EDGES:
        graph.add_edge(source, target, **attrs)
    return graph


@pytest.fixture
def make_engine(tmp_path):
    """Factory writing an executable Python script that acts as a layout engine.

    The body is dedented and run with the current interpreter; it sees the
    ``-T<format>`` argument in sys.argv and the DOT document on stdin.
    """
    if sys.platform == "win32":
        pytest.skip("Script engines rely on shebang execution")

    def _make(body: str, name: str = "fake_dot") -> str:
        path = Path(tmp_path) / name
        path.write_text(f"#!{sys.executable}\n" + textwrap.dedent(body))
        path.chmod(0o755)
        return str(path)

    return _make


@pytest.fixture
def echo_engine(make_engine):
    """Engine that answers with the document it was sent (a no-op layout)."""
    return make_engine(ECHO_ENGINE, name="echo_dot")


@pytest.fixture
def graphviz_binary():
    """Path to a real Graphviz ``dot``, or skip."""
    binary = shutil.which("dot")
    if binary is None:
        pytest.skip("Graphviz not installed")
    return binary

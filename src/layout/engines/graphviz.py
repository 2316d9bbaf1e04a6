"""Graphviz layout engine.

Runs one Graphviz process per layout pass: the graph is serialized to DOT,
piped through ``<binary> -Tdot`` and the ``pos`` attributes of the answer are
written back onto the host graph.

Usage:
    engine = GraphvizLayoutEngine()
    result = engine.run(graph, LayoutConfig(algorithm="neato"))
    result.updated_count

    # or from async code
    result = await engine.layout(graph)
"""

import asyncio
import logging
import subprocess
from typing import Optional

import networkx as nx

from src.config.settings import load_layout_config
from src.layout.dot_parser import apply_positions
from src.layout.dot_writer import serialize_graph
from src.layout.engines.base import LayoutEngine
from src.layout.errors import EngineExitError, EngineIOError
from src.layout.process_runner import run_engine
from src.models.layout_config import LayoutConfig
from src.models.layout_metadata import LayoutResult

logger = logging.getLogger(__name__)

_PROBE_TIMEOUT = 5


class GraphvizLayoutEngine(LayoutEngine):
    """Layout engine backed by a Graphviz executable.

    The engine holds a default config only; every call may pass its own
    LayoutConfig. No state survives between passes.
    """

    def __init__(self, config: Optional[LayoutConfig] = None):
        """Initialize Graphviz layout engine.

        Args:
            config: Default options (environment defaults if None)
        """
        self._config = config or load_layout_config()

    @property
    def name(self) -> str:
        return "graphviz"

    @property
    def config(self) -> LayoutConfig:
        return self._config

    def run(self, graph: nx.Graph, config: Optional[LayoutConfig] = None) -> LayoutResult:
        """Run one blocking layout pass and write positions into the graph.

        Args:
            graph: Host graph with integer node identifiers
            config: Options for this pass (engine default if None)

        Returns:
            LayoutResult with updated positions, skips and diagnostics

        Raises:
            GraphModelError: If node keys are not integer identifiers
            LaunchError: If the executable cannot be started (graph untouched)
            EngineTimeoutError: If the engine was killed at the deadline (graph untouched)
            EngineIOError: If a pipe failed (partial output already applied)
            EngineExitError: If the exit status is treated as fatal (graph untouched)
        """
        config = config or self._config
        document = serialize_graph(graph, config)

        try:
            output = run_engine(
                config.binary,
                document,
                output_format=config.output_format,
                timeout=config.timeout,
            )
        except EngineIOError as e:
            if e.partial_output:
                report = apply_positions(graph, e.partial_output)
                e.updated_count = report.updated_count
                logger.warning(
                    f"Applied {report.updated_count} positions from partial engine output"
                )
            raise

        diagnostics = output.diagnostic_lines
        for line in diagnostics:
            logger.warning(f"{config.binary}: {line}")

        if output.returncode != 0:
            if config.strict_exit_code or not output.stdout.strip():
                raise EngineExitError(output.command, output.returncode, output.stderr)
            diagnostics.append(
                f"engine exited with status {output.returncode}; "
                f"using the output it produced"
            )

        report = apply_positions(graph, output.stdout)
        logger.info(
            f"Graphviz {config.algorithm} layout updated {report.updated_count}/"
            f"{graph.number_of_nodes()} nodes in {output.elapsed:.2f}s"
        )

        return LayoutResult(
            algorithm=config.algorithm,
            updated_count=report.updated_count,
            positions=report.positions,
            skips=report.skips,
            diagnostics=diagnostics,
            returncode=output.returncode,
            elapsed=output.elapsed,
        )

    async def layout(
        self,
        graph: nx.Graph,
        config: Optional[LayoutConfig] = None,
    ) -> LayoutResult:
        """Compute layout using Graphviz without blocking the event loop.

        Args:
            graph: Host graph with integer node identifiers
            config: Options for this pass (engine default if None)

        Returns:
            LayoutResult with updated positions
        """
        # Run in executor to not block event loop
        loop = asyncio.get_event_loop()
        return await loop.run_in_executor(None, self.run, graph, config)

    def probe_version(self) -> Optional[str]:
        """Return the engine's version banner, or None if it cannot run."""
        try:
            result = subprocess.run(
                [self._config.binary, "-V"],
                stdin=subprocess.DEVNULL,
                capture_output=True,
                text=True,
                timeout=_PROBE_TIMEOUT,
            )
        except (subprocess.SubprocessError, OSError) as e:
            logger.warning(f"Graphviz availability check failed: {e}")
            return None

        if result.returncode != 0:
            return None
        # dot prints its version on stderr
        banner = (result.stderr or result.stdout).strip()
        return banner or "unknown"

    async def is_available(self) -> bool:
        """Check if the configured Graphviz executable runs."""
        loop = asyncio.get_event_loop()
        version = await loop.run_in_executor(None, self.probe_version)
        return version is not None


def layout_graph(graph: nx.Graph, config: Optional[LayoutConfig] = None) -> LayoutResult:
    """Lay out a graph with Graphviz in one call.

    Args:
        graph: Host graph; node ``pos`` attributes are overwritten
        config: Layout options (environment defaults if None)

    Returns:
        LayoutResult for the pass

    Raises:
        LayoutError: If the pass fails
    """
    return GraphvizLayoutEngine(config).run(graph)


__all__ = ["GraphvizLayoutEngine", "layout_graph"]

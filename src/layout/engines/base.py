"""Base layout engine protocol.

Defines the interface that all layout engines must implement.
"""

from abc import ABC, abstractmethod
from typing import Optional

import networkx as nx

from src.models.layout_config import LayoutConfig
from src.models.layout_metadata import LayoutResult


class LayoutEngine(ABC):
    """Abstract base class for layout engines.

    Layout engines compute node coordinates for a host graph and write them
    back as the ``pos`` node attribute.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Engine name (e.g., 'graphviz')."""
        ...

    @abstractmethod
    async def layout(
        self,
        graph: nx.Graph,
        config: Optional[LayoutConfig] = None,
    ) -> LayoutResult:
        """Compute layout for a graph and apply it in place.

        Args:
            graph: Graph to layout (NetworkX graph with integer node keys)
            config: Layout options (engine default if None)

        Returns:
            LayoutResult with the positions written

        Raises:
            LayoutError: If the pass fails
        """
        ...

    @abstractmethod
    async def is_available(self) -> bool:
        """Check if engine is available (executable installed).

        Returns:
            True if engine can be used
        """
        ...

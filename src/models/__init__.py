"""Pydantic models for Graphviz layout passes.

This module provides validation schemas for layout configuration and for the
results recovered from engine output. The host graph itself stays a NetworkX
graph; these models only describe what goes into and comes out of a pass.
"""

from .layout_config import LayoutConfig
from .layout_metadata import (
    ApplyReport,
    BoundingBox,
    LayoutResult,
    NodePosition,
    ParseSkip,
    PositionRecord,
    SkipReason,
)

__all__ = [
    # Configuration
    "LayoutConfig",

    # Results
    "ApplyReport",
    "BoundingBox",
    "LayoutResult",
    "NodePosition",
    "ParseSkip",
    "PositionRecord",
    "SkipReason",
]

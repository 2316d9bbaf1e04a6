"""Layout results recovered from Graphviz output.

This module provides schemas for:
- Node positions (x, y coordinates)
- Position records parsed from engine output
- Parse skips (records that could not be applied)
- Per-pass apply reports and layout results

Position records are transient: the parser yields them and the applier writes
them straight into the host graph. Only the summary types are kept around.
"""

from enum import Enum
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, Field


class NodePosition(BaseModel):
    """Position of a single node in 2D layout space.

    Attributes:
        x: Horizontal coordinate
        y: Vertical coordinate
    """

    x: float = Field(..., description="Horizontal coordinate")
    y: float = Field(..., description="Vertical coordinate")

    @classmethod
    def from_list(cls, pos: List[float]) -> "NodePosition":
        """Create NodePosition from [x, y] list.

        Args:
            pos: Position as [x, y]

        Returns:
            NodePosition instance

        Raises:
            ValueError: If pos doesn't have exactly 2 elements
        """
        if len(pos) != 2:
            raise ValueError(f"Position must be [x, y], got {len(pos)} elements")
        return cls(x=pos[0], y=pos[1])

    def to_list(self) -> List[float]:
        """Convert to list format [x, y]."""
        return [self.x, self.y]


class BoundingBox(BaseModel):
    """Bounding box of the positioned nodes.

    Attributes:
        min_x: Minimum x coordinate
        max_x: Maximum x coordinate
        min_y: Minimum y coordinate
        max_y: Maximum y coordinate
    """

    min_x: float = Field(..., description="Minimum x coordinate")
    max_x: float = Field(..., description="Maximum x coordinate")
    min_y: float = Field(..., description="Minimum y coordinate")
    max_y: float = Field(..., description="Maximum y coordinate")

    @property
    def width(self) -> float:
        """Computed width of bounding box."""
        return self.max_x - self.min_x

    @property
    def height(self) -> float:
        """Computed height of bounding box."""
        return self.max_y - self.min_y

    @property
    def center(self) -> Tuple[float, float]:
        """Computed center point of bounding box."""
        return (
            (self.min_x + self.max_x) / 2,
            (self.min_y + self.max_y) / 2
        )

    @classmethod
    def from_positions(cls, positions: Dict[int, NodePosition]) -> "BoundingBox":
        """Compute bounding box from node positions.

        Args:
            positions: Dictionary of node_id -> NodePosition

        Returns:
            BoundingBox encompassing all positions

        Raises:
            ValueError: If positions is empty
        """
        if not positions:
            raise ValueError("Cannot compute bounding box from empty positions")

        x_coords = [pos.x for pos in positions.values()]
        y_coords = [pos.y for pos in positions.values()]

        return cls(
            min_x=min(x_coords),
            max_x=max(x_coords),
            min_y=min(y_coords),
            max_y=max(y_coords)
        )

    def to_dict(self) -> Dict[str, float]:
        """Export including the computed width and height."""
        return {
            "min_x": self.min_x,
            "max_x": self.max_x,
            "min_y": self.min_y,
            "max_y": self.max_y,
            "width": self.width,
            "height": self.height,
        }


class PositionRecord(BaseModel):
    """A node position recovered from engine output."""

    node_id: int = Field(..., description="Integer node identifier")
    x: float = Field(..., description="Horizontal coordinate")
    y: float = Field(..., description="Vertical coordinate")
    line: int = Field(default=0, description="1-based line where the record starts")


class SkipReason(str, Enum):
    """Why a candidate record was not applied."""

    UNKNOWN_NODE = "unknown_node"
    MALFORMED_POS = "malformed_pos"
    NON_INTEGER_ID = "non_integer_id"


class ParseSkip(BaseModel):
    """A candidate position record that was skipped.

    Skips are diagnostics, not errors: the pass carries on after each one.
    """

    reason: SkipReason = Field(..., description="Skip category")
    node_id: str = Field(..., description="Identifier text as it appeared")
    value: Optional[str] = Field(default=None, description="Raw pos value, if any")
    line: int = Field(default=0, description="1-based line where the record starts")

    @property
    def message(self) -> str:
        """Human-readable description of the skip."""
        if self.reason == SkipReason.UNKNOWN_NODE:
            return f"line {self.line}: no node with identifier {self.node_id}"
        if self.reason == SkipReason.MALFORMED_POS:
            return f"line {self.line}: node {self.node_id} has malformed pos {self.value!r}"
        return f"line {self.line}: identifier {self.node_id!r} is not an integer"


class ApplyReport(BaseModel):
    """Outcome of applying one engine output to a graph."""

    updated_count: int = Field(default=0, description="Distinct nodes updated")
    record_count: int = Field(default=0, description="Records applied, duplicates included")
    positions: Dict[int, NodePosition] = Field(
        default_factory=dict, description="Final position per updated node"
    )
    skips: List[ParseSkip] = Field(default_factory=list, description="Skipped records")

    @property
    def skipped_count(self) -> int:
        """Number of skipped records."""
        return len(self.skips)


class LayoutResult(BaseModel):
    """Result of a complete layout pass.

    Attributes:
        algorithm: Layout algorithm requested
        updated_count: Distinct nodes whose position was written
        positions: Final position per updated node
        skips: Records that were recognised but not applied
        diagnostics: Engine stderr lines and pass warnings
        returncode: Engine exit status
        elapsed: Seconds spent in the engine exchange
        bounding_box: Bounding box of the updated positions (auto-computed)
    """

    algorithm: str = Field(..., description="Layout algorithm requested")
    updated_count: int = Field(default=0, description="Distinct nodes updated")
    positions: Dict[int, NodePosition] = Field(
        default_factory=dict, description="Final position per updated node"
    )
    skips: List[ParseSkip] = Field(default_factory=list, description="Skipped records")
    diagnostics: List[str] = Field(
        default_factory=list, description="Engine stderr lines and pass warnings"
    )
    returncode: Optional[int] = Field(default=None, description="Engine exit status")
    elapsed: float = Field(default=0.0, description="Seconds spent in the engine exchange")
    bounding_box: Optional[BoundingBox] = Field(
        default=None, description="Bounding box (auto-computed if not provided)"
    )

    def model_post_init(self, __context) -> None:
        """Compute bounding box if not provided."""
        if self.bounding_box is None and self.positions:
            object.__setattr__(
                self, "bounding_box", BoundingBox.from_positions(self.positions)
            )

    @property
    def skipped_count(self) -> int:
        """Number of skipped records."""
        return len(self.skips)

    def to_dict(self) -> Dict[str, object]:
        """Export to a JSON-friendly dict with string node keys."""
        return {
            "algorithm": self.algorithm,
            "updated_count": self.updated_count,
            "positions": {
                str(node_id): position.to_list()
                for node_id, position in sorted(self.positions.items())
            },
            "skipped": [
                {"reason": skip.reason.value, "node_id": skip.node_id, "message": skip.message}
                for skip in self.skips
            ],
            "diagnostics": list(self.diagnostics),
            "returncode": self.returncode,
            "elapsed": round(self.elapsed, 3),
            "bounding_box": self.bounding_box.to_dict() if self.bounding_box else None,
        }


__all__ = [
    "NodePosition",
    "BoundingBox",
    "PositionRecord",
    "SkipReason",
    "ParseSkip",
    "ApplyReport",
    "LayoutResult",
]

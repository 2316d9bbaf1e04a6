"""Configuration for a Graphviz layout pass.

A ``LayoutConfig`` is an immutable value passed into every layout call. To
change an option, derive a new config with ``with_options`` instead of
mutating a shared engine instance.

Graphviz attribute reference: http://www.graphviz.org/doc/info/attrs.html
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class LayoutConfig(BaseModel):
    """Options for one layout pass.

    Attributes:
        algorithm: Graphviz layout algorithm written as the ``layout`` graph attribute
        binary: Executable to run (name on PATH or absolute path)
        rank_dir: Preferred flow direction (``rankdir``)
        overlap: Node overlap policy (``overlap``)
        concentrate: Merge parallel edges (``concentrate=true``)
        output_format: Engine output format passed as ``-T<format>``
        timeout: Seconds before the engine is killed (None waits forever)
        strict_exit_code: Treat any non-zero engine exit status as fatal
    """

    model_config = ConfigDict(frozen=True)

    algorithm: str = Field(
        default="dot",
        description="Layout algorithm (dot, neato, fdp, sfdp, circo, twopi)",
    )
    binary: str = Field(
        default="dot",
        description="Graphviz executable used to run the layout",
    )
    rank_dir: str = Field(
        default="LR",
        description="Rank direction hint (TB, LR, BT, RL)",
    )
    overlap: str = Field(
        default="false",
        description="Node overlap handling (false, true, scale, prism, ...)",
    )
    concentrate: bool = Field(
        default=False,
        description="Merge parallel edges into shared segments",
    )
    output_format: str = Field(
        default="dot",
        description="Native engine output format requested with -T",
    )
    timeout: Optional[float] = Field(
        default=60.0,
        gt=0,
        description="Seconds before the engine process is killed",
    )
    strict_exit_code: bool = Field(
        default=False,
        description="Fail the pass on any non-zero engine exit status",
    )

    def with_options(self, **changes: Any) -> "LayoutConfig":
        """Return a copy of this config with some options replaced.

        Args:
            **changes: Field values to override

        Returns:
            New validated LayoutConfig

        Raises:
            pydantic.ValidationError: If a value has the wrong type
        """
        data = self.model_dump()
        data.update(changes)
        return LayoutConfig(**data)

    def graph_attributes(self) -> Dict[str, str]:
        """Graph-level attributes written at the top of the document."""
        return {
            "layout": self.algorithm,
            "rankdir": self.rank_dir,
            "overlap": self.overlap,
        }


__all__ = ["LayoutConfig"]

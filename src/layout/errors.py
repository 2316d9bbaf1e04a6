"""Exceptions raised by a Graphviz layout pass.

Launch, stream, timeout and exit failures abort the pass and reach the caller
as a single ``LayoutError`` with the underlying cause chained. Per-record parse
problems are never raised; they are reported as ``ParseSkip`` entries.
"""

from typing import List, Optional, Sequence


class LayoutError(Exception):
    """Base class for failures of a layout pass."""

    def __init__(self, message: str, command: Optional[Sequence[str]] = None):
        self.command: List[str] = list(command or [])
        super().__init__(message)


class GraphModelError(LayoutError, ValueError):
    """Raised when the host graph cannot be mapped to integer identifiers."""


class LaunchError(LayoutError):
    """Raised when the layout engine executable cannot be started."""

    def __init__(self, command: Sequence[str], cause: OSError):
        self.cause = cause
        super().__init__(
            f"Could not start layout engine '{command[0]}': {cause}",
            command,
        )


class EngineIOError(LayoutError):
    """Raised when writing input to or reading output from the engine fails.

    The output collected before the failure is kept on the exception so the
    caller can still apply it.
    """

    def __init__(
        self,
        command: Sequence[str],
        cause: BaseException,
        partial_output: str = "",
        diagnostics: str = "",
    ):
        self.cause = cause
        self.partial_output = partial_output
        self.diagnostics = diagnostics
        self.updated_count = 0
        super().__init__(f"Layout engine stream failed: {cause}", command)


class EngineTimeoutError(LayoutError, TimeoutError):
    """Raised when the engine does not finish before the deadline."""

    def __init__(self, command: Sequence[str], timeout: float, diagnostics: str = ""):
        self.timeout = timeout
        self.diagnostics = diagnostics
        super().__init__(
            f"Layout engine '{command[0]}' timed out after {timeout}s and was killed",
            command,
        )


class EngineExitError(LayoutError):
    """Raised when a non-zero exit status is treated as fatal."""

    def __init__(self, command: Sequence[str], returncode: int, diagnostics: str = ""):
        self.returncode = returncode
        self.diagnostics = diagnostics
        detail = diagnostics.strip().splitlines()[-1] if diagnostics.strip() else "no diagnostics"
        super().__init__(
            f"Layout engine '{command[0]}' exited with status {returncode} ({detail})",
            command,
        )


__all__ = [
    "LayoutError",
    "GraphModelError",
    "LaunchError",
    "EngineIOError",
    "EngineTimeoutError",
    "EngineExitError",
]

"""Run a layout engine over pipes without deadlocking.

The engine reads the document on stdin and writes results on stdout and
diagnostics on stderr. Any of the three pipes can fill up while the others are
blocked, so feeding stdin and draining both output pipes happen on three
threads that are joined before the exchange returns.

Usage:
    from src.layout.process_runner import run_engine

    output = run_engine("dot", document, timeout=30)
    print(output.stdout)
"""

import logging
import subprocess
import threading
import time
from dataclasses import dataclass, field
from typing import IO, List, Optional, Sequence

from src.layout.errors import EngineIOError, EngineTimeoutError, LaunchError

logger = logging.getLogger(__name__)

DEFAULT_OUTPUT_FORMAT = "dot"

_CHUNK_SIZE = 64 * 1024

# Seconds to wait for pump threads after the engine has been killed.
_REAP_GRACE = 5.0


@dataclass
class EngineOutput:
    """Decoded streams and exit status of one engine run."""

    stdout: str
    stderr: str
    returncode: int
    command: List[str] = field(default_factory=list)
    elapsed: float = 0.0

    @property
    def diagnostic_lines(self) -> List[str]:
        """Non-blank stderr lines."""
        return [line for line in self.stderr.splitlines() if line.strip()]


class ProcessGuard:
    """Owns an engine process and its three pipes for the length of a ``with`` block.

    On leaving the block, whatever the reason, a still-running process is
    killed, stdin/stdout/stderr are closed and the child is reaped.

    Example:
        with ProcessGuard(["dot", "-Tdot"]) as guard:
            guard.process.stdin.write(data)
    """

    def __init__(self, command: Sequence[str]):
        self.command = list(command)
        self.process: Optional[subprocess.Popen] = None

    def __enter__(self) -> "ProcessGuard":
        try:
            self.process = subprocess.Popen(
                self.command,
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
            )
        except OSError as e:
            raise LaunchError(self.command, e) from e
        logger.debug(f"Started layout engine {self.command} (PID: {self.process.pid})")
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        self.release()
        return False

    def kill(self) -> None:
        """Kill the process if it is still running."""
        if self.process is not None and self.process.poll() is None:
            logger.warning(f"Killing layout engine (PID: {self.process.pid})")
            self.process.kill()

    def release(self) -> None:
        """Kill, close all pipes and reap. Safe to call more than once."""
        process = self.process
        if process is None:
            return
        self.kill()
        for stream in (process.stdin, process.stdout, process.stderr):
            if stream is None:
                continue
            try:
                stream.close()
            except OSError as e:
                # stdin flush can fail once the engine has gone away
                logger.debug(f"Error closing engine pipe: {e}")
        process.wait()
        self.process = None


def _feed(stream: IO[bytes], payload: bytes, errors: List[BaseException]) -> None:
    try:
        stream.write(payload)
        stream.flush()
    except (OSError, ValueError) as e:
        errors.append(e)
    finally:
        try:
            stream.close()
        except OSError as e:
            if not errors:
                errors.append(e)


def _drain(stream: IO[bytes], chunks: List[bytes], errors: List[BaseException]) -> None:
    try:
        while True:
            chunk = stream.read(_CHUNK_SIZE)
            if not chunk:
                break
            chunks.append(chunk)
    except (OSError, ValueError) as e:
        errors.append(e)


def _remaining(deadline: Optional[float]) -> Optional[float]:
    if deadline is None:
        return None
    return max(0.0, deadline - time.monotonic())


def _decode(chunks: List[bytes]) -> str:
    return b"".join(chunks).decode("utf-8", errors="replace")


def run_engine(
    executable: str,
    document: str,
    args: Optional[Sequence[str]] = None,
    output_format: str = DEFAULT_OUTPUT_FORMAT,
    timeout: Optional[float] = None,
) -> EngineOutput:
    """Feed a document to a layout engine and collect both output streams.

    Args:
        executable: Engine executable (name on PATH or path)
        document: Text written to the engine's stdin
        args: Arguments after the executable (default ``-T<output_format>``)
        output_format: Native output format requested when args is None
        timeout: Seconds allowed for the whole exchange (None waits forever)

    Returns:
        EngineOutput with decoded stdout/stderr and the exit status.
        A non-zero exit status is returned, not raised.

    Raises:
        LaunchError: If the executable cannot be started
        EngineIOError: If a pipe fails mid-stream (partial output attached)
        EngineTimeoutError: If the deadline passes; the engine is killed
    """
    if args is None:
        args = [f"-T{output_format}"]
    command = [executable, *args]
    payload = document.encode("utf-8")
    started = time.monotonic()
    deadline = None if timeout is None else started + timeout

    stdout_chunks: List[bytes] = []
    stderr_chunks: List[bytes] = []
    errors: List[BaseException] = []

    with ProcessGuard(command) as guard:
        process = guard.process
        pumps = [
            threading.Thread(
                target=_feed, args=(process.stdin, payload, errors),
                name="engine-stdin", daemon=True,
            ),
            threading.Thread(
                target=_drain, args=(process.stdout, stdout_chunks, errors),
                name="engine-stdout", daemon=True,
            ),
            threading.Thread(
                target=_drain, args=(process.stderr, stderr_chunks, errors),
                name="engine-stderr", daemon=True,
            ),
        ]
        for pump in pumps:
            pump.start()
        for pump in pumps:
            pump.join(_remaining(deadline))

        if any(pump.is_alive() for pump in pumps):
            guard.kill()
            for pump in pumps:
                pump.join(_REAP_GRACE)
            raise EngineTimeoutError(command, timeout, _decode(stderr_chunks))

        try:
            returncode = process.wait(timeout=_remaining(deadline))
        except subprocess.TimeoutExpired:
            guard.kill()
            raise EngineTimeoutError(command, timeout, _decode(stderr_chunks))

    elapsed = time.monotonic() - started
    stdout = _decode(stdout_chunks)
    stderr = _decode(stderr_chunks)

    if errors:
        raise EngineIOError(
            command, errors[0], partial_output=stdout, diagnostics=stderr
        ) from errors[0]

    if returncode != 0:
        logger.warning(f"Layout engine {command} exited with status {returncode}")

    logger.debug(
        f"Layout engine finished in {elapsed:.3f}s "
        f"({len(stdout)} chars out, {len(stderr)} chars diagnostics)"
    )
    return EngineOutput(
        stdout=stdout,
        stderr=stderr,
        returncode=returncode,
        command=command,
        elapsed=elapsed,
    )


__all__ = ["DEFAULT_OUTPUT_FORMAT", "EngineOutput", "ProcessGuard", "run_engine"]

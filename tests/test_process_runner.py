"""Tests for the engine subprocess exchange."""

import os
import sys
import textwrap
import time

import pytest

from src.layout.errors import EngineIOError, EngineTimeoutError, LaunchError
from src.layout.process_runner import EngineOutput, ProcessGuard, run_engine


def _python(script: str, document: str = "", timeout: float = 30):
    return run_engine(
        sys.executable,
        document,
        args=["-c", textwrap.dedent(script)],
        timeout=timeout,
    )


class TestExchange:
    """Normal runs."""

    def test_echo(self):
        """Test stdin reaches the engine and stdout comes back."""
        output = _python("import sys; sys.stdout.write(sys.stdin.read().upper())", "abc")

        assert isinstance(output, EngineOutput)
        assert output.stdout == "ABC"
        assert output.stderr == ""
        assert output.returncode == 0
        assert output.command[0] == sys.executable
        assert output.elapsed >= 0

    def test_default_arguments(self, make_engine):
        """Test the output format flag is passed when no args are given."""
        engine = make_engine("import sys\nsys.stdin.read()\nprint(sys.argv[1:])\n")

        output = run_engine(engine, "", output_format="plain", timeout=30)
        assert output.stdout.strip() == "['-Tplain']"

    def test_large_output_before_reading_input(self):
        """Test an engine that fills both output pipes before reading stdin."""
        script = """
            import sys
            sys.stdout.write("o" * 300000)
            sys.stdout.flush()
            sys.stderr.write("e" * 300000)
            sys.stderr.flush()
            data = sys.stdin.read()
            sys.stdout.write(str(len(data)))
        """
        document = "x" * 200000

        output = _python(script, document)

        assert output.returncode == 0
        assert output.stdout == "o" * 300000 + "200000"
        assert output.stderr == "e" * 300000

    def test_diagnostic_lines(self):
        """Test stderr is split into non-blank lines."""
        script = """
            import sys
            sys.stdin.read()
            sys.stderr.write("Warning: one\\n\\n  \\nWarning: two\\n")
        """
        output = _python(script)
        assert output.diagnostic_lines == ["Warning: one", "Warning: two"]

    def test_non_utf8_output_replaced(self):
        """Test undecodable bytes do not fail the run."""
        script = """
            import sys
            sys.stdin.read()
            sys.stdout.buffer.write(b"ok \\xff")
        """
        output = _python(script)
        assert output.stdout.startswith("ok ")

    def test_nonzero_exit_is_returned(self):
        """Test a failing exit status is reported, not raised."""
        script = """
            import sys
            sys.stdin.read()
            sys.stdout.write("partial")
            sys.stderr.write("Error: syntax error in line 1")
            sys.exit(3)
        """
        output = _python(script)

        assert output.returncode == 3
        assert output.stdout == "partial"
        assert "syntax error" in output.stderr


class TestFailures:
    """Launch, pipe and deadline failures."""

    def test_missing_executable(self, tmp_path):
        """Test a missing binary raises LaunchError with the command attached."""
        missing = str(tmp_path / "no-such-dot")

        with pytest.raises(LaunchError) as exc_info:
            run_engine(missing, "graph {}")

        assert exc_info.value.command == [missing, "-Tdot"]
        assert isinstance(exc_info.value.__cause__, OSError)

    @pytest.mark.skipif(sys.platform == "win32", reason="POSIX permissions")
    def test_not_executable(self, tmp_path):
        """Test a file without the execute bit raises LaunchError."""
        path = tmp_path / "dot"
        path.write_text("#!/bin/sh\n")
        path.chmod(0o644)

        with pytest.raises(LaunchError):
            run_engine(str(path), "graph {}")

    def test_engine_exits_without_reading(self):
        """Test a broken stdin pipe raises EngineIOError with partial output."""
        script = """
            import sys
            sys.stdout.write("1 [pos=\\"1,2\\"];")
            sys.stdout.flush()
            sys.stdin.close()
        """
        document = "x" * (4 * 1024 * 1024)

        with pytest.raises(EngineIOError) as exc_info:
            _python(script, document)

        error = exc_info.value
        assert error.partial_output == '1 [pos="1,2"];'
        assert isinstance(error.__cause__, (OSError, ValueError))

    def test_timeout_kills_engine(self):
        """Test a hanging engine is killed at the deadline."""
        script = """
            import time
            time.sleep(60)
        """
        started = time.monotonic()

        with pytest.raises(EngineTimeoutError) as exc_info:
            _python(script, timeout=0.5)

        assert time.monotonic() - started < 30
        assert exc_info.value.timeout == 0.5
        assert isinstance(exc_info.value, TimeoutError)

    def test_timeout_keeps_diagnostics(self):
        """Test stderr written before the deadline is attached to the error."""
        script = """
            import sys, time
            sys.stderr.write("Warning: still working")
            sys.stderr.flush()
            time.sleep(60)
        """
        with pytest.raises(EngineTimeoutError) as exc_info:
            _python(script, timeout=1.0)

        assert "still working" in exc_info.value.diagnostics


class TestProcessGuard:
    """Process ownership."""

    def test_release_reaps_and_closes(self):
        """Test leaving the block kills the process and closes its pipes."""
        with ProcessGuard([sys.executable, "-c", "import time; time.sleep(60)"]) as guard:
            process = guard.process
            assert process.poll() is None

        assert guard.process is None
        assert process.returncode is not None
        assert process.stdin.closed
        assert process.stdout.closed
        assert process.stderr.closed

    def test_release_on_exception(self):
        """Test the process is reaped when the block raises."""
        with pytest.raises(RuntimeError):
            with ProcessGuard([sys.executable, "-c", "import time; time.sleep(60)"]) as guard:
                process = guard.process
                raise RuntimeError("boom")

        assert process.returncode is not None

    def test_release_twice(self):
        """Test release is idempotent."""
        guard = ProcessGuard([sys.executable, "-c", "pass"])
        with guard:
            pass
        guard.release()
        assert guard.process is None

    def test_launch_error(self):
        """Test entering the guard with a bad command raises LaunchError."""
        command = [os.path.join(os.sep, "nonexistent", "dot")]
        with pytest.raises(LaunchError):
            with ProcessGuard(command):
                pass

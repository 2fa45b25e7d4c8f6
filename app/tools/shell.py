"""Shell execution for validated commands.

Every command runs through ``bash -c`` in the run's working directory with the
ambient environment. Stdout and stderr are captured combined. Every command is
logged with cwd, exit code, and output length.
"""

from __future__ import annotations

import subprocess
from dataclasses import dataclass
from pathlib import Path

from app.core.config import get_settings
from app.core.logging import get_logger

logger = get_logger("tools.shell")


@dataclass(frozen=True)
class CommandResult:
    """Outcome of one command execution."""

    command: str
    output: str
    exit_code: int | None = None
    error: str = ""
    timed_out: bool = False

    @property
    def ok(self) -> bool:
        return self.exit_code == 0 and not self.error and not self.timed_out

    def describe_failure(self) -> str:
        """Human-readable failure report including the captured output."""
        if self.timed_out:
            detail = "Timed out"
        elif self.exit_code is None:
            detail = f"Could not start command: {self.error}"
        else:
            detail = f"Exit code: {self.exit_code}"
        report = f"Command execution failed: {self.command}\n{detail}"
        if self.output.strip():
            report += f"\nOutput: {self.output.strip()}"
        return report


def _truncate(text: str) -> str:
    limit = get_settings().max_output_chars
    if len(text) > limit:
        half = limit // 2
        return text[:half] + f"\n\n... [truncated {len(text) - limit} chars] ...\n\n" + text[-half:]
    return text


def run_command(command: str, working_dir: str, timeout: float | None = None) -> CommandResult:
    """Execute *command* with bash inside *working_dir*.

    Never raises for command-level problems: spawn errors, timeouts and
    non-zero exits all come back as a failed ``CommandResult``.
    """
    settings = get_settings()
    timeout = settings.shell_timeout_seconds if timeout is None else timeout
    cwd = Path(working_dir or ".").resolve()

    if not cwd.is_dir():
        msg = f"working directory does not exist: {cwd}"
        logger.error("run_command | %s", msg)
        return CommandResult(command=command, output="", error=msg)

    logger.info("run_command | cwd=%s | cmd=%s", cwd, command)

    try:
        # subprocess.run reaps the child on every path, including timeout.
        result = subprocess.run(
            ["bash", "-c", command],
            cwd=str(cwd),
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            errors="replace",
            timeout=timeout,
        )
    except subprocess.TimeoutExpired as exc:
        partial = exc.output or ""
        if isinstance(partial, bytes):
            partial = partial.decode("utf-8", errors="replace")
        logger.error("run_command | TIMEOUT after %ss: %s", timeout, command)
        return CommandResult(
            command=command,
            output=_truncate(partial + f"\nTIMEOUT after {timeout}s"),
            timed_out=True,
        )
    except OSError as exc:
        logger.error("run_command | spawn failed: %s", exc)
        return CommandResult(command=command, output="", error=str(exc))

    output = _truncate(result.stdout or "")
    logger.info("run_command | exit=%d | output_len=%d", result.returncode, len(output))
    return CommandResult(command=command, output=output, exit_code=result.returncode)

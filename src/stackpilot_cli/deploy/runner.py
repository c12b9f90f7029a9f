"""Command runner for the container engine's command interface.

Every probe and action in the deploy package goes through CommandRunner,
which keeps stdout and stderr on separate channels so that probes can
tell "produced nothing" apart from "produced an error".
"""

from __future__ import annotations

import os
import shutil
import subprocess
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path

from ..errors import ExternalCommandError
from ..shared.logging import get_logger

logger = get_logger(__name__)

# Exit status reported when the executable itself cannot be found
COMMAND_NOT_FOUND = 127


@dataclass
class CommandResult:
    """Result of a single external command."""

    stdout: str = ""
    stderr: str = ""
    returncode: int = 0

    @property
    def success(self) -> bool:
        """Whether the command exited cleanly."""
        return self.returncode == 0

    @property
    def clean(self) -> bool:
        """Whether the command exited cleanly without writing to stderr."""
        return self.success and not self.stderr.strip()


class CommandRunner:
    """Spawn one external process per call and normalize its result."""

    def __init__(self, cwd: Path | None = None) -> None:
        """Initialize the runner.

        Args:
            cwd: Working directory for commands (default: current directory)
        """
        self.cwd = cwd

    def which(self, command: str) -> str | None:
        """Resolve an executable on PATH."""
        return shutil.which(command)

    def run(
        self,
        cmd: Sequence[str],
        *,
        check: bool = True,
        env: Mapping[str, str] | None = None,
        capture_output: bool = True,
    ) -> CommandResult:
        """Execute a command and return its separated output.

        Args:
            cmd: Command and arguments
            check: Raise ExternalCommandError when the command fails.
                   Pass False for probes that interpret failure themselves.
            env: Extra variables for this command only, layered over a copy
                 of the current environment
            capture_output: Capture stdout/stderr. When False the output goes
                 straight to the terminal and only the exit status is known.

        Returns:
            CommandResult with stdout, stderr and exit status

        Raises:
            ExternalCommandError: If check=True and the command failed
        """
        args = [str(token) for token in cmd]
        run_env = None
        if env:
            run_env = os.environ.copy()
            run_env.update({str(key): str(value) for key, value in env.items()})

        logger.debug("command_start", command=args, check=check)
        try:
            completed = subprocess.run(
                args,
                cwd=self.cwd,
                env=run_env,
                capture_output=capture_output,
                text=True,
            )
            result = CommandResult(
                stdout=completed.stdout or "",
                stderr=completed.stderr or "",
                returncode=completed.returncode,
            )
        except FileNotFoundError as e:
            result = CommandResult(stderr=str(e), returncode=COMMAND_NOT_FOUND)

        logger.debug("command_done", command=args, returncode=result.returncode)

        if check and not result.success:
            raise ExternalCommandError.from_command(args, result.stderr, result.returncode)
        return result

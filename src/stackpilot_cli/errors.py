"""Error types for stackpilot-cli.

Every error the CLI reports derives from StackpilotError, which the
command layer maps to a non-zero exit status.
"""

from dataclasses import dataclass, field


@dataclass
class StackpilotError(Exception):
    """Base error class for stackpilot errors."""

    message: str

    def __str__(self) -> str:
        return self.message


@dataclass
class ConfigurationError(StackpilotError):
    """Project configuration is missing or invalid."""

    message: str = "Invalid project configuration"


@dataclass
class ExternalCommandError(StackpilotError):
    """An external command failed and the caller did not suppress it."""

    message: str = "External command failed"
    command: list[str] = field(default_factory=list)
    stderr: str = ""
    returncode: int | None = None

    @classmethod
    def from_command(
        cls, command: list[str], stderr: str, returncode: int | None
    ) -> "ExternalCommandError":
        """Build an error with a readable message for a failed command."""
        detail = stderr.strip() or f"exit status {returncode}"
        return cls(
            message=f"Command failed: {' '.join(command)}: {detail}",
            command=list(command),
            stderr=stderr,
            returncode=returncode,
        )


@dataclass
class PollTimeoutError(StackpilotError):
    """A bounded wait ran out of attempts or time."""

    message: str = "Timed out waiting"
    activity: str = ""
    attempts: int = 0
    elapsed_seconds: float = 0.0


@dataclass
class OperatorDeclinedError(StackpilotError):
    """An action needed operator approval that the policy refused."""

    message: str = "Operator declined the required action"

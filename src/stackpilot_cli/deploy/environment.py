"""Deploy-time environment overrides and secrets.

Environment overrides come from a KEY=VALUE file and are handed to the
deploy command only. Secrets come from a directory, one secret per file.
"""

from __future__ import annotations

import re
from pathlib import Path

from ..shared.logging import get_logger
from .probe import ENGINE_COMMAND
from .runner import CommandRunner

logger = get_logger(__name__)

ENV_FILE = ".env"
SECRETS_DIR = "secrets"

ENV_LINE_PATTERN = re.compile(r"^[A-Z_]+=.+$")


def load_env_overrides(path: Path) -> dict[str, str]:
    """Read KEY=VALUE overrides.

    Only lines matching ^[A-Z_]+=.+$ are used; everything else (comments,
    blank lines, lowercase keys) is ignored.

    Args:
        path: Environment file path

    Returns:
        Dictionary of overrides, empty if the file does not exist
    """
    overrides: dict[str, str] = {}
    if not path.is_file():
        return overrides

    for line in path.read_text(encoding="utf-8").splitlines():
        if not ENV_LINE_PATTERN.match(line):
            continue
        key, value = line.split("=", 1)
        overrides[key] = value

    logger.info("env_overrides_loaded", path=str(path), keys=sorted(overrides))
    return overrides


class SecretSynchronizer:
    """Register every file of a directory as an engine secret."""

    def __init__(self, runner: CommandRunner):
        self.runner = runner

    def sync(self, secrets_dir: Path) -> list[str]:
        """Remove and recreate one secret per file.

        Secrets are overwritten unconditionally; their content is never
        compared with what the engine already holds.

        Returns:
            Names of the secrets created.
        """
        if not secrets_dir.is_dir():
            return []

        created = []
        for secret_file in sorted(secrets_dir.iterdir()):
            if not secret_file.is_file():
                continue
            name = secret_file.name
            # Absent on first deploy
            self.runner.run([ENGINE_COMMAND, "secret", "rm", name], check=False)
            self.runner.run([ENGINE_COMMAND, "secret", "create", name, str(secret_file)])
            created.append(name)
            logger.info("secret_synced", name=name)
        return created

"""Deployment manifest generation.

Writes the compose structure from the project configuration to the file
that `docker stack deploy -c` reads.
"""

from __future__ import annotations

from pathlib import Path

import yaml

from ..config import ComposeFileSpec
from ..shared.logging import get_logger

logger = get_logger(__name__)


class ManifestWriter:
    """Serialize compose file content to YAML."""

    def path_for(self, project_path: Path, compose_file: ComposeFileSpec) -> Path:
        return project_path / compose_file.name

    def write(self, project_path: Path, compose_file: ComposeFileSpec) -> Path:
        """Write the manifest into the project directory.

        Args:
            project_path: Project directory.
            compose_file: File name and content to write.

        Returns:
            Path to the written manifest.
        """
        manifest_path = self.path_for(project_path, compose_file)
        manifest_path.parent.mkdir(parents=True, exist_ok=True)

        with open(manifest_path, "w") as f:
            yaml.dump(compose_file.content, f, default_flow_style=False, sort_keys=False)

        logger.info("manifest_written", path=str(manifest_path))
        return manifest_path

    def ensure(
        self,
        project_path: Path,
        compose_file: ComposeFileSpec,
        keep_existing: bool = False,
    ) -> tuple[Path, bool]:
        """Write the manifest unless an existing one should be kept.

        Returns:
            Tuple of (manifest path, whether it was written).
        """
        manifest_path = self.path_for(project_path, compose_file)
        if keep_existing and manifest_path.exists():
            logger.info("manifest_kept", path=str(manifest_path))
            return manifest_path, False
        return self.write(project_path, compose_file), True

"""Image id resolution for the stack's package."""

from __future__ import annotations

from ..config import RegistryAddress
from ..shared.logging import get_logger
from .probe import ENGINE_COMMAND
from .runner import CommandRunner

logger = get_logger(__name__)


def registry_reference(registry: RegistryAddress, package: str) -> str:
    """Image reference of the package in the registry (host:port/package)."""
    return f"{registry.address}/{package}"


class ImageResolver:
    """Resolve local and registry-tagged image ids."""

    def __init__(self, runner: CommandRunner):
        self.runner = runner

    def resolve_local(self, package: str) -> str | None:
        """Return the id of the locally built image, or None."""
        return self._resolve(package)

    def resolve_registry(self, registry: RegistryAddress, package: str) -> str | None:
        """Return the id of the registry-tagged image, or None."""
        return self._resolve(registry_reference(registry, package))

    def _resolve(self, reference: str) -> str | None:
        result = self.runner.run([ENGINE_COMMAND, "images", "-q", reference], check=False)
        if not result.success:
            return None

        ids: list[str] = []
        for line in result.stdout.splitlines():
            image_id = line.strip()
            if image_id and image_id not in ids:
                ids.append(image_id)

        if not ids:
            return None
        if len(ids) > 1:
            logger.warning("multiple_images", reference=reference, ids=ids)
        return ids[0]

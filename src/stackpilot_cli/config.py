"""Project configuration for stackpilot deployments.

A project directory carries stackpilot.json and, optionally,
stackpilot.local.json. The local file overrides the shared one property by
property, which lets a developer point at a different registry without
touching the committed config.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .errors import ConfigurationError

CONFIG_FILE = "stackpilot.json"
LOCAL_CONFIG_FILE = "stackpilot.local.json"

# Stack names accepted by the orchestrator
DNS_NAME_PATTERN = re.compile(r"^[a-z0-9][a-z0-9-]*$")


@dataclass(frozen=True)
class StackIdentity:
    """Name and optional owner of the deployed stack/image pair."""

    name: str
    owner: str | None = None

    @property
    def package(self) -> str:
        """Image repository name: owner/name, or name without an owner."""
        if self.owner:
            return f"{self.owner}/{self.name}"
        return self.name

    @property
    def dns_name(self) -> str:
        """Stack name with dots replaced by hyphens."""
        return self.name.replace(".", "-")


@dataclass(frozen=True)
class RegistryAddress:
    """Image registry the stack's image is published to."""

    name: str
    hostname: str
    port: str

    @property
    def address(self) -> str:
        return f"{self.hostname}:{self.port}"


@dataclass(frozen=True)
class ComposeFileSpec:
    """Deployment manifest: file name and the structure to serialize."""

    name: str
    content: dict[str, Any] = field(default_factory=dict)


@dataclass
class ProjectConfig:
    """Merged project configuration."""

    identity: StackIdentity
    compose_file: ComposeFileSpec
    registry: RegistryAddress | None = None
    raw: dict[str, Any] = field(default_factory=dict)


def merge_configs(*sources: dict[str, Any]) -> dict[str, Any]:
    """Merge config dicts; later sources win per top-level property."""
    merged: dict[str, Any] = {}
    for source in sources:
        merged.update(source)
    return merged


def _read_json(path: Path) -> dict[str, Any]:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"{path}: invalid JSON ({e})") from e
    if not isinstance(data, dict):
        raise ConfigurationError(f"{path}: expected a JSON object")
    return data


def parse_config(data: dict[str, Any]) -> ProjectConfig:
    """Validate merged configuration data and build a ProjectConfig.

    Raises:
        ConfigurationError: If name or composeFile.name is missing, or the
            derived stack name is not DNS-safe
    """
    name = data.get("name")
    if not name or not isinstance(name, str):
        raise ConfigurationError("Configuration is missing required field 'name'")

    compose = data.get("composeFile") or {}
    if not isinstance(compose, dict) or not compose.get("name"):
        raise ConfigurationError("Configuration is missing required field 'composeFile.name'")

    identity = StackIdentity(name=name, owner=data.get("owner") or None)
    if not DNS_NAME_PATTERN.match(identity.dns_name):
        raise ConfigurationError(
            f"Stack name '{identity.dns_name}' (from '{name}') must be lowercase "
            "letters, digits and hyphens"
        )

    registry = None
    registry_data = data.get("registryAddress")
    if registry_data:
        if not isinstance(registry_data, dict):
            raise ConfigurationError("registryAddress must be an object")
        missing = [key for key in ("name", "hostname", "port") if not registry_data.get(key)]
        if missing:
            raise ConfigurationError(
                f"registryAddress is missing field(s): {', '.join(missing)}"
            )
        if not str(registry_data["port"]).isdigit():
            raise ConfigurationError(
                f"registryAddress.port must be a number, got '{registry_data['port']}'"
            )
        registry = RegistryAddress(
            name=str(registry_data["name"]),
            hostname=str(registry_data["hostname"]),
            port=str(registry_data["port"]),
        )

    return ProjectConfig(
        identity=identity,
        compose_file=ComposeFileSpec(
            name=str(compose["name"]),
            content=compose.get("content") or {},
        ),
        registry=registry,
        raw=data,
    )


def load_project_config(project_path: Path) -> ProjectConfig:
    """Load and merge the project's configuration files.

    Precedence (highest to lowest):
    1. stackpilot.local.json
    2. stackpilot.json

    Args:
        project_path: Project directory

    Returns:
        ProjectConfig built from the merged data

    Raises:
        ConfigurationError: If stackpilot.json is absent or the merged
            configuration is invalid
    """
    config_path = project_path / CONFIG_FILE
    if not config_path.exists():
        raise ConfigurationError(f"No {CONFIG_FILE} found in {project_path}")

    sources = [_read_json(config_path)]
    local_path = project_path / LOCAL_CONFIG_FILE
    if local_path.exists():
        sources.append(_read_json(local_path))

    return parse_config(merge_configs(*sources))

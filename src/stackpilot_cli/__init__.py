"""Stackpilot CLI - build, publish and deploy a Docker swarm stack."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("stackpilot-cli")
except PackageNotFoundError:
    __version__ = "0.0.0.dev0"  # Fallback for source checkouts without metadata

__all__ = ["__version__"]

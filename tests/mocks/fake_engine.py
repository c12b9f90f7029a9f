"""Scripted Docker engine for orchestration tests.

FakeEngine stands in for CommandRunner: it records every command and
answers from an in-memory model of images, containers, stacks, secrets
and swarm membership.
"""

from __future__ import annotations

import hashlib
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field

from stackpilot_cli.deploy.runner import CommandResult
from stackpilot_cli.errors import ExternalCommandError

STACK_LABEL_PREFIX = "label=com.docker.stack.namespace="


def image_id_for(reference: str) -> str:
    """Deterministic 12-char image id for a build of reference."""
    return hashlib.sha256(reference.encode()).hexdigest()[:12]


@dataclass
class FakeEngineState:
    """State for FakeEngine; tests set it up and inspect it afterwards."""

    installed: bool = True
    running: bool = True
    swarm_active: bool = False
    swarm_query_supported: bool = True
    images: dict[str, str] = field(default_factory=dict)
    # name -> {"id": str, "running": bool}
    containers: dict[str, dict] = field(default_factory=dict)
    stacks: set[str] = field(default_factory=set)
    # stack name -> ps checks left until its containers are gone
    tearing_down: dict[str, int] = field(default_factory=dict)
    teardown_checks: int = 2
    secrets: dict[str, str] = field(default_factory=dict)
    pushed: list[str] = field(default_factory=list)
    deploy_env: dict[str, str] = field(default_factory=dict)
    # Commands starting with these tokens fail with the given stderr
    failures: dict[tuple[str, ...], str] = field(default_factory=dict)


class FakeEngine:
    """In-memory docker CLI implementing the CommandRunner interface."""

    def __init__(self, state: FakeEngineState | None = None):
        self.state = state or FakeEngineState()
        self.commands: list[list[str]] = []

    # CommandRunner interface

    def which(self, command: str) -> str | None:
        if command == "docker" and self.state.installed:
            return "/usr/bin/docker"
        return None

    def run(
        self,
        cmd: Sequence[str],
        *,
        check: bool = True,
        env: Mapping[str, str] | None = None,
        capture_output: bool = True,
    ) -> CommandResult:
        args = [str(token) for token in cmd]
        self.commands.append(args)
        result = self._dispatch(args, env or {})
        if check and not result.success:
            raise ExternalCommandError.from_command(args, result.stderr, result.returncode)
        return result

    # Inspection helpers

    def count(self, *prefix: str) -> int:
        """Number of recorded commands starting with prefix."""
        return sum(1 for c in self.commands if tuple(c[: len(prefix)]) == prefix)

    def registry_reachable(self, name: str) -> bool:
        container = self.state.containers.get(name)
        return bool(container and container["running"])

    # Dispatch

    def _dispatch(self, args: list[str], env: Mapping[str, str]) -> CommandResult:
        for prefix, stderr in self.state.failures.items():
            if tuple(args[: len(prefix)]) == prefix:
                return CommandResult(stderr=stderr, returncode=1)

        if args[0] == "pgrep":
            if self.state.running:
                return CommandResult(stdout="4242\n")
            return CommandResult(returncode=1)

        if args[0] != "docker":
            return CommandResult()

        if not self.state.installed:
            return CommandResult(stderr="docker: command not found", returncode=127)
        if not self.state.running:
            return CommandResult(
                stderr="Cannot connect to the Docker daemon at unix:///var/run/docker.sock.",
                returncode=1,
            )

        sub = args[1:]
        if sub == ["ps"]:
            return CommandResult(stdout="CONTAINER ID   IMAGE\n")
        if sub[:2] == ["ps", "-q"]:
            return self._stack_ps(sub[-1][len(STACK_LABEL_PREFIX) :])
        if sub[:3] == ["ps", "-a", "-q"]:
            name = sub[-1][len("name=^/") : -1]
            container = self.state.containers.get(name)
            return CommandResult(stdout=f"{container['id']}\n" if container else "")
        if sub[0] == "info":
            if not self.state.swarm_query_supported:
                return CommandResult(stdout="\n")
            return CommandResult(stdout="active\n" if self.state.swarm_active else "inactive\n")
        if sub[:2] == ["swarm", "init"]:
            if self.state.swarm_active:
                return CommandResult(
                    stderr="Error response from daemon: This node is already part of a swarm.",
                    returncode=1,
                )
            self.state.swarm_active = True
            return CommandResult(stdout="Swarm initialized\n")
        if sub[:2] == ["swarm", "leave"]:
            self.state.swarm_active = False
            return CommandResult(stdout="Node left the swarm.\n")
        if sub[:2] == ["images", "-q"]:
            image_id = self.state.images.get(sub[2])
            return CommandResult(stdout=f"{image_id}\n" if image_id else "")
        if sub[:2] == ["rmi", "-f"]:
            return self._rmi(sub[2])
        if sub[0] == "build":
            reference = sub[2]
            self.state.images[reference] = image_id_for(reference)
            return CommandResult()
        if sub[0] == "tag":
            source, target = sub[1], sub[2]
            if source not in self.state.images:
                return CommandResult(stderr=f"No such image: {source}", returncode=1)
            self.state.images[target] = self.state.images[source]
            return CommandResult()
        if sub[0] == "push":
            self.state.pushed.append(sub[1])
            return CommandResult()
        if sub[:2] == ["secret", "rm"]:
            if self.state.secrets.pop(sub[2], None) is None:
                return CommandResult(stderr=f"Error: No such secret: {sub[2]}", returncode=1)
            return CommandResult(stdout=f"{sub[2]}\n")
        if sub[:2] == ["secret", "create"]:
            if sub[2] in self.state.secrets:
                return CommandResult(stderr="secret already exists", returncode=1)
            self.state.secrets[sub[2]] = sub[3]
            return CommandResult(stdout="secretid\n")
        if sub[:2] == ["stack", "rm"]:
            name = sub[2]
            if name in self.state.stacks:
                self.state.stacks.discard(name)
                self.state.tearing_down[name] = self.state.teardown_checks
            return CommandResult()
        if sub[:2] == ["stack", "deploy"]:
            if not self.state.swarm_active:
                return CommandResult(
                    stderr="this node is not a swarm manager.", returncode=1
                )
            self.state.stacks.add(sub[-1])
            self.state.deploy_env = dict(env)
            return CommandResult()
        if sub[0] == "start":
            for container in self.state.containers.values():
                if container["id"] == sub[1]:
                    container["running"] = True
                    return CommandResult(stdout=f"{sub[1]}\n")
            return CommandResult(stderr=f"No such container: {sub[1]}", returncode=1)
        if sub[0] == "run":
            name = sub[sub.index("--name") + 1]
            self.state.containers[name] = {"id": image_id_for(name), "running": True}
            return CommandResult(stdout=f"{image_id_for(name)}\n")

        return CommandResult(stderr=f"unknown command: {' '.join(args)}", returncode=1)

    def _stack_ps(self, name: str) -> CommandResult:
        if name in self.state.stacks:
            return CommandResult(stdout="0123456789ab\n")
        left = self.state.tearing_down.get(name, 0)
        if left > 0:
            self.state.tearing_down[name] = left - 1
            return CommandResult(stdout="0123456789ab\n")
        return CommandResult()

    def _rmi(self, image_id: str) -> CommandResult:
        references = [ref for ref, value in self.state.images.items() if value == image_id]
        if not references:
            return CommandResult(stderr=f"Error: No such image: {image_id}", returncode=1)
        for reference in references:
            del self.state.images[reference]
        return CommandResult(stdout=f"Deleted: sha256:{image_id}\n")

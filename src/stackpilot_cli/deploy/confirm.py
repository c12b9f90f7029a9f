"""Operator confirmation policies.

The lifecycle controller asks before installing or starting anything. In
a terminal the operator answers; in automation a fixed policy answers for
them.
"""

from __future__ import annotations

from typing import Protocol

import questionary

from ..errors import OperatorDeclinedError

POLICY_INTERACTIVE = "interactive"
POLICY_ALWAYS_YES = "always-yes"
POLICY_ALWAYS_NO = "always-no"
POLICY_FAIL_FAST = "fail-fast"

POLICIES = (POLICY_INTERACTIVE, POLICY_ALWAYS_YES, POLICY_ALWAYS_NO, POLICY_FAIL_FAST)


class Confirmer(Protocol):
    """Source of answers for yes/no prompts and manual-intervention pauses."""

    def confirm(self, message: str, default: bool = True) -> bool: ...

    def wait_for_operator(self, message: str) -> None: ...


class InteractiveConfirmer:
    """Ask the operator in the terminal.

    Uses questionary so that prompts behave the same as the rest of the CLI.
    """

    def confirm(self, message: str, default: bool = True) -> bool:
        answer = questionary.confirm(message, default=default).ask()
        if answer is None:
            raise KeyboardInterrupt("Deployment cancelled by user")
        return answer

    def wait_for_operator(self, message: str) -> None:
        answer = questionary.press_any_key_to_continue(
            f"{message} Press any key to check again..."
        ).ask()
        if answer is None:
            raise KeyboardInterrupt("Deployment cancelled by user")


class PolicyConfirmer:
    """Answer every confirmation the same way.

    Nobody is around to fix things by hand, so a manual-intervention pause
    ends the run.
    """

    def __init__(self, answer: bool):
        self.answer = answer

    def confirm(self, message: str, default: bool = True) -> bool:
        return self.answer

    def wait_for_operator(self, message: str) -> None:
        raise OperatorDeclinedError(f"Manual intervention required: {message}")


class FailFastConfirmer:
    """Refuse to proceed whenever a decision is needed."""

    def confirm(self, message: str, default: bool = True) -> bool:
        raise OperatorDeclinedError(f"Confirmation required: {message}")

    def wait_for_operator(self, message: str) -> None:
        raise OperatorDeclinedError(f"Manual intervention required: {message}")


def make_confirmer(policy: str) -> Confirmer:
    """Build a confirmer for a --policy choice."""
    if policy == POLICY_INTERACTIVE:
        return InteractiveConfirmer()
    if policy == POLICY_ALWAYS_YES:
        return PolicyConfirmer(True)
    if policy == POLICY_ALWAYS_NO:
        return PolicyConfirmer(False)
    if policy == POLICY_FAIL_FAST:
        return FailFastConfirmer()
    raise ValueError(f"Unknown confirmation policy: {policy}")

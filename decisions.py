#!/usr/bin/env python3
"""User decisions, kept apart from the stages that act on them.

Stages ask a :class:`Prompter` and receive an enumerated answer; whether
that answer comes from the console or from command line flags is decided
once, in :func:`build_prompter`.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum
from typing import Dict, Optional, TypeVar

from config import RunOptions

T = TypeVar("T")


class Decision(Enum):
    PROCEED = "proceed"
    SKIP = "skip"
    ABORT = "abort"


class LocalChangesResolution(Enum):
    """What to do with local clones holding uncommitted or unpushed work."""
    PUSH = "push"
    PROCEED = "proceed"
    ABORT = "abort"


class Prompter(ABC):
    """Source of decisions."""

    interactive = False

    @abstractmethod
    def confirm(self, question: str, expected: str = "yes") -> Decision:
        raise NotImplementedError

    @abstractmethod
    def choose(self, question: str, choices: Dict[str, T], default: T) -> T:
        raise NotImplementedError

    @abstractmethod
    def ask_text(self, question: str, default: str) -> str:
        raise NotImplementedError


class ConsolePrompter(Prompter):
    """Asks on the terminal.

    ``confirm`` proceeds only on the exact expected answer; ``skip`` and
    ``no`` skip, ``quit`` aborts the run.
    """

    interactive = True

    def __init__(self, input_func=input) -> None:
        self._input = input_func

    def confirm(self, question: str, expected: str = "yes") -> Decision:
        hint = f"type '{expected}' to continue" if expected != "yes" else "yes/no"
        answer = self._input(f"{question} ({hint}): ").strip()
        if answer == expected:
            return Decision.PROCEED
        if answer.lower() in ("q", "quit", "abort"):
            return Decision.ABORT
        return Decision.SKIP

    def choose(self, question: str, choices: Dict[str, T], default: T) -> T:
        keys = "/".join(choices)
        answer = self._input(f"{question} [{keys}]: ").strip()
        return choices.get(answer, default)

    def ask_text(self, question: str, default: str) -> str:
        answer = self._input(f"{question} [{default}]: ").strip()
        return answer or default


class PresetPrompter(Prompter):
    """Answers every question the same way, for unattended runs."""

    def __init__(self, decision: Decision, choice: Optional[Enum] = None) -> None:
        self.decision = decision
        self.choice = choice

    def confirm(self, question: str, expected: str = "yes") -> Decision:
        return self.decision

    def choose(self, question: str, choices: Dict[str, T], default: T) -> T:
        if self.choice is not None and self.choice in choices.values():
            return self.choice  # type: ignore[return-value]
        return default

    def ask_text(self, question: str, default: str) -> str:
        return default


def build_prompter(options: RunOptions) -> Prompter:
    if options.force or options.auto_commit or not options.interactive:
        choice = LocalChangesResolution.PROCEED if options.force else None
        return PresetPrompter(Decision.PROCEED, choice)
    return ConsolePrompter()

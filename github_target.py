#!/usr/bin/env python3
"""GitHub side of the migration, driven through the official ``gh`` CLI."""

from __future__ import annotations

import subprocess
from typing import List, Optional

from config import DestinationConfig, Visibility
from errors import DestinationError
from logging_utils import Logger
from security import SecurityValidator

# Markers printed by `gh repo view` when the repository does not exist
_NOT_FOUND_MARKERS = ("could not resolve to a repository", "not found", "http 404")


class GitHubTarget:
    """Wrapper around the ``gh`` CLI to inspect and create repositories."""

    def __init__(self, config: DestinationConfig, executable: str = "gh") -> None:
        self.config = config
        self.executable = executable

    def _run(self, args: List[str]) -> subprocess.CompletedProcess:
        command = [self.executable, *args]
        Logger.debug(f"running: {' '.join(command)}")
        try:
            return subprocess.run(command, capture_output=True, text=True)
        except OSError as e:
            raise DestinationError(f"failed to run {self.executable}: {e}") from e

    @staticmethod
    def _output(result: subprocess.CompletedProcess) -> str:
        return SecurityValidator.sanitize_for_logging(
            (result.stderr or result.stdout or "").strip()
        )

    def _slug(self, name: str) -> str:
        return f"{self.config.user}/{name}"

    def authenticated_login(self) -> Optional[str]:
        """Login of the account the CLI is authenticated as, if any."""
        result = self._run(["api", "user", "--jq", ".login"])
        login = (result.stdout or "").strip()
        if result.returncode != 0 or not login or login == "null":
            Logger.debug(f"gh api user failed: {self._output(result)}")
            return None
        return login

    def repo_exists(self, name: str) -> bool:
        result = self._run(["repo", "view", self._slug(name), "--json", "name"])
        if result.returncode == 0:
            return True
        output = self._output(result)
        if any(marker in output.lower() for marker in _NOT_FOUND_MARKERS):
            return False
        raise DestinationError(
            f"could not check repository {self._slug(name)}: {output}"
        )

    def create_repo(self, name: str, visibility: Visibility, description: str) -> None:
        target_visibility = visibility.for_destination()
        args = ["repo", "create", self._slug(name), f"--{target_visibility.value}"]
        if description:
            args.append(f"--description={description}")
        result = self._run(args)
        if result.returncode != 0:
            raise DestinationError(
                f"failed to create repository {self._slug(name)}: {self._output(result)}"
            )
        Logger.info(f"created repo: {self._slug(name)} ({target_visibility.value})")

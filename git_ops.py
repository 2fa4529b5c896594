#!/usr/bin/env python3
"""Thin wrapper around the git command line."""

from __future__ import annotations

import os
import subprocess
from typing import Optional, Sequence, Tuple

from errors import GitCommandError
from logging_utils import Logger
from security import SecurityValidator
from utils import StepResult

MAIN_BRANCHES = ("main", "master")


class Git:
    """Runs git as a subprocess; failures raise :class:`GitCommandError`."""

    def __init__(self, executable: str = "git") -> None:
        self.executable = executable

    def run(
        self,
        args: Sequence[str],
        cwd: Optional[str] = None,
        check: bool = True,
    ) -> subprocess.CompletedProcess:
        command = [self.executable, *args]
        Logger.debug(f"running: {' '.join(command)}" + (f" (in {cwd})" if cwd else ""))
        env = os.environ.copy()
        env["GIT_TERMINAL_PROMPT"] = "0"
        result = subprocess.run(
            command,
            cwd=cwd,
            capture_output=True,
            text=True,
            env=env,
        )
        if check and result.returncode != 0:
            output = SecurityValidator.sanitize_for_logging(
                (result.stderr or result.stdout or "").strip()
            )
            raise GitCommandError(command, result.returncode, output)
        return result

    # Mirror transfer

    def clone_mirror(self, url: str, dest: str) -> None:
        self.run(["clone", "--mirror", url, dest])

    def push_mirror(self, repo_dir: str, url: str) -> None:
        self.run(["push", "--mirror", url], cwd=repo_dir)

    def count_refs(self, repo_dir: str) -> Tuple[int, int, int]:
        """Return (branches, tags, commits) of a repository."""
        branches = self.run(
            ["for-each-ref", "--format=%(refname)", "refs/heads"], cwd=repo_dir
        ).stdout.split()
        tags = self.run(["tag"], cwd=repo_dir).stdout.split()
        commits = self.run(["rev-list", "--all", "--count"], cwd=repo_dir).stdout
        return len(branches), len(tags), int(commits.strip() or 0)

    # Working copies

    @staticmethod
    def is_work_tree(path: str) -> bool:
        return os.path.isdir(os.path.join(path, ".git"))

    def clone(self, url: str, dest: str) -> None:
        self.run(["clone", url, dest])

    def current_branch(self, repo_dir: str) -> str:
        return self.run(["branch", "--show-current"], cwd=repo_dir).stdout.strip()

    def checkout_main(self, repo_dir: str) -> Optional[str]:
        """Check out ``main`` or else ``master``; None when neither exists."""
        for branch in MAIN_BRANCHES:
            if self.run(["checkout", branch], cwd=repo_dir, check=False).returncode == 0:
                return branch
        return None

    def fetch(self, repo_dir: str, remote: str = "origin") -> None:
        self.run(["fetch", remote], cwd=repo_dir)

    def pull(self, repo_dir: str) -> StepResult:
        result = self.run(["pull", "origin", "HEAD"], cwd=repo_dir, check=False)
        if result.returncode != 0:
            return StepResult.failed((result.stderr or "").strip())
        return StepResult.done()

    def status_porcelain(self, repo_dir: str) -> str:
        return self.run(["status", "--porcelain"], cwd=repo_dir).stdout

    def unpushed_count(self, repo_dir: str) -> Optional[int]:
        """Commits ahead of the upstream; None when no upstream is configured."""
        result = self.run(
            ["rev-list", "@{u}..HEAD", "--count"], cwd=repo_dir, check=False
        )
        if result.returncode != 0:
            return None
        return int(result.stdout.strip() or 0)

    def diff(self, repo_dir: str) -> str:
        return self.run(["diff", "--stat"], cwd=repo_dir).stdout

    def add(self, repo_dir: str, *paths: str) -> None:
        self.run(["add", *(paths or ("-A",))], cwd=repo_dir)

    def commit(self, repo_dir: str, message: str) -> bool:
        """Commit staged changes; False when there was nothing to commit."""
        if not self.run(
            ["diff", "--cached", "--quiet"], cwd=repo_dir, check=False
        ).returncode:
            return False
        self.run(["commit", "-m", message], cwd=repo_dir)
        return True

    def push(self, repo_dir: str, remote: str = "origin", ref: str = "HEAD") -> None:
        self.run(["push", remote, ref], cwd=repo_dir)

    def push_set_upstream(self, repo_dir: str, branch: str, remote: str = "origin") -> None:
        self.run(["push", "-u", remote, branch], cwd=repo_dir)

    # Remotes

    def get_remote_url(self, repo_dir: str, name: str) -> Optional[str]:
        result = self.run(["remote", "get-url", name], cwd=repo_dir, check=False)
        if result.returncode != 0:
            return None
        return result.stdout.strip() or None

    def rename_remote(self, repo_dir: str, old: str, new: str) -> None:
        self.run(["remote", "rename", old, new], cwd=repo_dir)

    def remove_remote(self, repo_dir: str, name: str) -> None:
        self.run(["remote", "remove", name], cwd=repo_dir)

    def add_remote(self, repo_dir: str, name: str, url: str) -> None:
        self.run(["remote", "add", name, url], cwd=repo_dir)

    def set_upstream(self, repo_dir: str, branch: str, remote: str = "origin") -> StepResult:
        if not branch:
            return StepResult.not_applicable("detached HEAD")
        result = self.run(
            ["branch", f"--set-upstream-to={remote}/{branch}", branch],
            cwd=repo_dir,
            check=False,
        )
        if result.returncode != 0:
            return StepResult.failed((result.stderr or "").strip())
        return StepResult.done(f"{remote}/{branch}")

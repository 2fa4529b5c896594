#!/usr/bin/env python3
"""Checks that run before any repository is touched."""

from __future__ import annotations

import os
import shutil
import subprocess
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence

from config import Config, RunOptions
from decisions import LocalChangesResolution, Prompter
from errors import (ExodusError, GitCommandError, PreflightError, RunAborted,
                    SourceApiError)
from git_ops import Git
from github_target import GitHubTarget
from gitlab_source import GitLabSource
from logging_utils import Logger
from registry import LocalRepoEntry
from utils import free_disk_space_mb

REQUIRED_TOOLS = ("git", "gh", "ssh")
GITLAB_SSH_GREETING = "welcome to gitlab"
GITHUB_SSH_GREETING = "successfully authenticated"
DEFAULT_COMMIT_MESSAGE = "Pre-migration commit"


class PreflightChecker:
    """Validates tools, credentials and disk space; raises PreflightError."""

    def __init__(
        self,
        config: Config,
        options: RunOptions,
        source: GitLabSource,
        target: GitHubTarget,
        which: Callable[[str], Optional[str]] = shutil.which,
    ) -> None:
        self.config = config
        self.options = options
        self.source = source
        self.target = target
        self.which = which

    def run(self, tools: Sequence[str] = REQUIRED_TOOLS, ssh_probes: bool = True) -> None:
        Logger.section("Pre-flight checks")
        if self.options.dry_run:
            Logger.warn("running in DRY-RUN mode - no changes will be made")

        failures: List[str] = []
        failures += self._check_tools(tools)
        failures += self._check_gitlab_api()
        if "gh" in tools:
            failures += self._check_github_cli()
        if ssh_probes:
            failures += self._check_gitlab_ssh()
            self._check_github_ssh()
        failures += self._check_disk_space()

        if failures:
            for failure in failures:
                Logger.error(failure)
            raise PreflightError(failures)

        self._prepare_work_dir()
        Logger.success("all pre-flight checks passed")

    def _check_tools(self, tools: Sequence[str]) -> List[str]:
        missing = []
        for tool in tools:
            if self.which(tool):
                Logger.success(f"{tool} found")
            else:
                missing.append(f"required command not found: {tool}")
        return missing

    def _check_gitlab_api(self) -> List[str]:
        try:
            username = self.source.connect()
        except SourceApiError as e:
            return [str(e)]
        Logger.success(f"authenticated to GitLab API as {username}")
        return []

    def _check_github_cli(self) -> List[str]:
        login = self.target.authenticated_login()
        expected = self.config.destination.user
        if login is None:
            return ["GitHub CLI not authenticated or token expired (run: gh auth login)"]
        if login != expected:
            return [
                f"GitHub CLI authenticated as {login} but expected {expected} "
                "(run: gh auth logout && gh auth login)"
            ]
        Logger.success(f"authenticated to GitHub as {login}")
        return []

    def _ssh_probe(self, host: str) -> str:
        timeout = self.config.options.ssh_timeout or None
        command = ["ssh", "-T", "-o", "BatchMode=yes", f"git@{host}"]
        try:
            result = subprocess.run(
                command, capture_output=True, text=True, timeout=timeout
            )
        except subprocess.TimeoutExpired:
            Logger.debug(f"ssh probe to {host} timed out after {timeout}s")
            return ""
        except OSError as e:
            Logger.debug(f"ssh probe to {host} failed: {e}")
            return ""
        return f"{result.stdout}\n{result.stderr}"

    def _check_gitlab_ssh(self) -> List[str]:
        output = self._ssh_probe(self.config.source.host)
        if GITLAB_SSH_GREETING in output.lower():
            Logger.success("GitLab SSH access verified")
            return []
        return [f"cannot connect to GitLab via SSH: git@{self.config.source.host}"]

    def _check_github_ssh(self) -> None:
        output = self._ssh_probe(self.config.destination.host)
        if (
            self.config.destination.user in output
            or GITHUB_SSH_GREETING in output.lower()
        ):
            Logger.success("GitHub SSH access verified")
        else:
            Logger.warn(
                "could not verify GitHub SSH access in pre-flight; "
                "will attempt to use SSH during migration"
            )

    def _check_disk_space(self) -> List[str]:
        available = free_disk_space_mb(self.config.paths.work_dir)
        required = self.config.options.min_disk_space_mb
        if available <= required:
            return [f"low disk space: {available}MB available, {required}MB required"]
        Logger.success(f"sufficient disk space available: {available}MB")
        return []

    def _prepare_work_dir(self) -> None:
        work_dir = self.config.paths.work_dir
        if self.options.dry_run:
            Logger.info(f"[DRY-RUN] would create working directory: {work_dir}")
            return
        os.makedirs(work_dir, exist_ok=True)
        Logger.info(f"working directory: {work_dir}")


@dataclass
class LocalRepoStatus:
    entry: LocalRepoEntry
    uncommitted: bool
    unpushed: int

    @property
    def dirty(self) -> bool:
        return self.uncommitted or self.unpushed > 0


class LocalChangesCheck:
    """Finds local clones with work that would not make it into the mirror."""

    def __init__(
        self,
        entries: Sequence[LocalRepoEntry],
        git: Git,
        prompter: Prompter,
        options: RunOptions,
    ) -> None:
        self.entries = list(entries)
        self.git = git
        self.prompter = prompter
        self.options = options

    def scan(self) -> List[LocalRepoStatus]:
        statuses = []
        for entry in self.entries:
            if not os.path.isdir(entry.path):
                Logger.warn(f"directory not found: {entry.path} (skipping)")
                continue
            if not self.git.is_work_tree(entry.path):
                Logger.warn(f"not a git repository: {entry.path} (skipping)")
                continue
            try:
                uncommitted = bool(self.git.status_porcelain(entry.path).strip())
            except GitCommandError as e:
                Logger.warn(f"could not read status of {entry.name}: {e}")
                continue
            unpushed = self.git.unpushed_count(entry.path) or 0
            status = LocalRepoStatus(entry, uncommitted, unpushed)
            if status.dirty:
                Logger.error(f"{entry.name} ({entry.path})")
                if uncommitted:
                    Logger.warn("    has uncommitted changes")
                if unpushed:
                    Logger.warn(f"    has {unpushed} unpushed commit(s)")
            else:
                Logger.success(f"{entry.name} - clean")
            statuses.append(status)
        return statuses

    def run(self) -> Optional[LocalChangesResolution]:
        """Scan, then resolve; returns None when nothing needed resolving."""
        Logger.section("Checking local repositories")
        if not self.entries:
            Logger.info("no local repositories configured - skipping local repo check")
            return None

        dirty = [status for status in self.scan() if status.dirty]
        if not dirty:
            Logger.success("all local repositories are clean")
            return None

        Logger.warn(
            f"found {len(dirty)} repository(ies) with uncommitted or unpushed "
            "changes; these will NOT be migrated unless pushed to GitLab first"
        )
        if self.options.dry_run:
            Logger.info("[DRY-RUN] would ask how to handle these changes")
            return None

        resolution = self.prompter.choose(
            "1) commit and push all changes now, "
            "2) continue without these changes, 3) abort",
            {
                "1": LocalChangesResolution.PUSH,
                "2": LocalChangesResolution.PROCEED,
                "3": LocalChangesResolution.ABORT,
            },
            LocalChangesResolution.ABORT,
        )

        if resolution is LocalChangesResolution.PUSH:
            self.push_all(dirty)
        elif resolution is LocalChangesResolution.PROCEED:
            Logger.warn("continuing without local changes - these will NOT be migrated")
        else:
            for status in dirty:
                Logger.info(
                    f"  cd {status.entry.path} && git add -A && "
                    f"git commit -m '{DEFAULT_COMMIT_MESSAGE}' && git push"
                )
            raise RunAborted("migration aborted to handle local changes manually")
        return resolution

    def push_all(self, statuses: Sequence[LocalRepoStatus]) -> None:
        Logger.section("Committing and pushing local changes")
        for status in statuses:
            path = status.entry.path
            name = status.entry.name
            Logger.info(f"processing: {name}")
            try:
                if status.uncommitted:
                    self.git.add(path)
                    message = self.prompter.ask_text(
                        f"commit message for {name}", DEFAULT_COMMIT_MESSAGE
                    )
                    if self.git.commit(path, message):
                        Logger.success(f"  committed changes in {name}")
                self._push(path, name)
            except ExodusError as e:
                Logger.error(f"  failed to commit or push {name}: {e}")

    def _push(self, path: str, name: str) -> None:
        try:
            self.git.push(path)
            Logger.success(f"  pushed {name} to GitLab")
        except GitCommandError:
            branch = self.git.current_branch(path)
            self.git.push_set_upstream(path, branch)
            Logger.success(f"  pushed {name} to GitLab (set upstream)")

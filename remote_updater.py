#!/usr/bin/env python3
"""Points existing local clones at the destination host."""

from __future__ import annotations

import os
from typing import Optional, Sequence

from config import Config, RunOptions
from decisions import Decision, Prompter
from errors import GitCommandError, RunAborted
from git_ops import Git
from logging_utils import Logger
from registry import LocalRepoEntry, destination_ssh_url
from report import MigrationResult, Outcome, RunSummary

ORIGIN = "origin"
BACKUP_REMOTE = "gitlab-backup"


class RemoteUpdater:
    """Moves ``origin`` to the destination and keeps the source as a backup remote."""

    def __init__(
        self,
        cfg: Config,
        options: RunOptions,
        entries: Sequence[LocalRepoEntry],
        prompter: Prompter,
        git: Optional[Git] = None,
    ) -> None:
        self.cfg = cfg
        self.options = options
        self.entries = list(entries)
        self.prompter = prompter
        self.git = git or Git()
        self.summary = RunSummary("Remote update")

    def run(self) -> int:
        if not self.entries:
            Logger.warn("no local repositories configured in [local_repos]")
            return self.summary.exit_code()

        Logger.section("Local repositories to update")
        for entry in self.entries:
            Logger.info(f"  - {entry.name} ({entry.path})")

        if not self.options.dry_run:
            decision = self.prompter.confirm(
                f"Update remotes so '{ORIGIN}' points to {self.cfg.destination.host}?"
            )
            if decision is not Decision.PROCEED:
                raise RunAborted("remote update cancelled by user")

        for entry in self.entries:
            self.summary.add(self.update_repository(entry))

        self.summary.log()
        if self.summary.count(Outcome.SUCCESS):
            Logger.info(
                f"the old remote is kept as '{BACKUP_REMOTE}'; remove it with: "
                f"git remote remove {BACKUP_REMOTE}"
            )
        return self.summary.exit_code()

    def update_repository(self, entry: LocalRepoEntry) -> MigrationResult:
        Logger.section(f"Updating: {entry.name}")
        result = MigrationResult(entry.name)

        if not os.path.isdir(entry.path):
            return self._fail(result, f"directory not found: {entry.path}")
        if not self.git.is_work_tree(entry.path):
            return self._fail(result, f"not a git repository: {entry.path}")

        current_url = self.git.get_remote_url(entry.path, ORIGIN)
        if not current_url:
            return self._fail(result, f"no '{ORIGIN}' remote in {entry.path}")
        Logger.info(f"current origin: {current_url}")

        new_url = destination_ssh_url(self.cfg, entry.name)
        backup_exists = self.git.get_remote_url(entry.path, BACKUP_REMOTE) is not None

        if self.options.dry_run:
            if backup_exists:
                Logger.info(f"[DRY-RUN] would run: git remote remove {ORIGIN}")
            else:
                Logger.info(f"[DRY-RUN] would run: git remote rename {ORIGIN} {BACKUP_REMOTE}")
            Logger.info(f"[DRY-RUN] would run: git remote add {ORIGIN} {new_url}")
            Logger.info(f"[DRY-RUN] would run: git fetch {ORIGIN}")
            result.note(f"[DRY-RUN] {ORIGIN} -> {new_url}")
            return result.finish(Outcome.SKIPPED)

        try:
            if self.git.status_porcelain(entry.path).strip():
                Logger.warn(f"{entry.name} has uncommitted changes")
        except GitCommandError as e:
            Logger.warn(f"could not read status of {entry.name}: {e}")

        try:
            if backup_exists:
                Logger.warn(f"'{BACKUP_REMOTE}' already exists, removing old {ORIGIN}")
                self.git.remove_remote(entry.path, ORIGIN)
            else:
                self.git.rename_remote(entry.path, ORIGIN, BACKUP_REMOTE)
                result.note(f"renamed {ORIGIN} to {BACKUP_REMOTE}")
            self.git.add_remote(entry.path, ORIGIN, new_url)
            result.note(f"added {ORIGIN}: {new_url}")
            self.git.fetch(entry.path, ORIGIN)
        except GitCommandError as e:
            return self._fail(result, f"failed to update remotes of {entry.name}: {e}")

        branch = ""
        try:
            branch = self.git.current_branch(entry.path)
        except GitCommandError as e:
            Logger.debug(str(e))
        upstream = self.git.set_upstream(entry.path, branch, ORIGIN)
        if upstream.ok:
            Logger.info(f"upstream set to {upstream.message}")
        else:
            Logger.warn(f"could not set upstream: {upstream.message or upstream.status.value}")

        Logger.success(f"{entry.name} now tracks {new_url}")
        return result.finish(Outcome.SUCCESS)

    @staticmethod
    def _fail(result: MigrationResult, reason: str) -> MigrationResult:
        Logger.error(reason)
        return result.fail(reason)

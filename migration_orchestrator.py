#!/usr/bin/env python3
"""Main orchestrator for mirroring the registry from GitLab to GitHub."""

from __future__ import annotations

import os
import time
from typing import Optional, Sequence

from config import Config, RunOptions
from decisions import Decision, Prompter
from errors import DestinationError, ExodusError, GitCommandError, RunAborted
from git_ops import Git
from github_target import GitHubTarget
from logging_utils import Logger
from preflight import LocalChangesCheck, PreflightChecker
from registry import LocalRepoEntry, RepositoryRecord
from report import (MigrationResult, Outcome, RunSummary,
                    render_markdown_report, write_report)
from utils import remove_tree

# Seconds to give the destination before the verification lookup
VERIFY_DELAY_S = 2.0


class RepositoryMigrationFailed(ExodusError):
    """Aborts the state machine of a single repository."""


class MigrationOrchestrator:
    def __init__(
        self,
        cfg: Config,
        options: RunOptions,
        repositories: Sequence[RepositoryRecord],
        local_repos: Sequence[LocalRepoEntry],
        prompter: Prompter,
        preflight: PreflightChecker,
        gh: Optional[GitHubTarget] = None,
        git: Optional[Git] = None,
        verify_delay_s: float = VERIFY_DELAY_S,
    ) -> None:
        self.cfg = cfg
        self.options = options
        self.repositories = list(repositories)
        self.local_repos = list(local_repos)
        self.prompter = prompter
        self.preflight = preflight
        self.gh = gh or GitHubTarget(cfg.destination)
        self.git = git or Git()
        self.verify_delay_s = verify_delay_s
        self.summary = RunSummary("Migration")

    def run(self) -> int:
        Logger.info(
            f"migrating {self.cfg.source.host}/{self.cfg.source.user} -> "
            f"{self.cfg.destination.host}/{self.cfg.destination.user}"
        )
        Logger.info(f"total repositories to migrate: {len(self.repositories)}")

        self.preflight.run()
        LocalChangesCheck(
            self.local_repos, self.git, self.prompter, self.options
        ).run()

        self._show_plan()
        if not self.options.dry_run:
            decision = self.prompter.confirm(
                "This will migrate all repositories from GitLab to GitHub. Proceed?"
            )
            if decision is not Decision.PROCEED:
                raise RunAborted("migration cancelled by user")

        Logger.section("Starting migration")
        total = len(self.repositories)
        for idx, record in enumerate(self.repositories, start=1):
            self.summary.add(self.migrate_repository(record, idx, total))

        if self.options.dry_run:
            Logger.info("skipping report generation in dry-run mode")
        else:
            write_report(self.cfg.report_file, render_markdown_report(self.summary, self.cfg))

        self.summary.log()
        if not self.options.dry_run:
            Logger.info(f"log file: {self.cfg.log_file}")
            Logger.info(f"report: {self.cfg.report_file}")
        if self.summary.exit_code() == 0:
            Logger.success("all repositories migrated successfully")
        return self.summary.exit_code()

    def _show_plan(self) -> None:
        Logger.section("Migration plan")
        for idx, record in enumerate(self.repositories, start=1):
            Logger.info(f"  {idx}. {record.name} ({record.visibility.value})")
        mode = "DRY-RUN (no changes)" if self.options.dry_run else "LIVE MIGRATION"
        Logger.info(f"total: {len(self.repositories)} repositories, mode: {mode}")

    def temp_dir_for(self, record: RepositoryRecord) -> str:
        return os.path.join(self.cfg.paths.work_dir, record.name)

    def migrate_repository(
        self, record: RepositoryRecord, idx: int, total: int
    ) -> MigrationResult:
        """Run clone, inspect, check, create, push, verify and cleanup for one entry."""
        Logger.section(f"[{idx}/{total}] Migrating: {record.name}")
        result = MigrationResult(record.name)

        if self.options.dry_run:
            return self._dry_run(record, result)

        temp_dir = self.temp_dir_for(record)
        cloned = False
        try:
            self._clone(record, temp_dir, result)
            cloned = True
            self._inspect(temp_dir, result)
            self._check_collision(record, result)
            self._create(record, result)
            self._push(record, temp_dir, result)
            self._verify(record, result)
        except RepositoryMigrationFailed as e:
            self._step(result, Logger.error, str(e))
            return result.fail(str(e))
        finally:
            if cloned:
                self._cleanup(temp_dir, result)

        self._step(result, Logger.success, f"migration completed: {record.name}")
        return result.finish(Outcome.SUCCESS)

    @staticmethod
    def _step(result: MigrationResult, log, message: str) -> None:
        log(message)
        result.note(message)

    def _dry_run(self, record: RepositoryRecord, result: MigrationResult) -> MigrationResult:
        destination = f"{self.cfg.destination.user}/{record.name}"
        visibility = record.visibility.for_destination().value
        for message in (
            f"[DRY-RUN] would run: git clone --mirror {record.source_url} "
            f"{self.temp_dir_for(record)}",
            "[DRY-RUN] would extract repository metadata",
            f"[DRY-RUN] would check if {destination} exists",
            f"[DRY-RUN] would create {destination} (--{visibility})",
            f"[DRY-RUN] would run: git push --mirror {record.destination_url(self.cfg)}",
            "[DRY-RUN] would verify migration",
            f"[DRY-RUN] would clean up: {self.temp_dir_for(record)}",
        ):
            self._step(result, Logger.info, message)
        return result.finish(Outcome.SKIPPED)

    def _clone(self, record: RepositoryRecord, temp_dir: str, result: MigrationResult) -> None:
        if os.path.exists(temp_dir):
            raise RepositoryMigrationFailed(
                f"temporary directory already exists: {temp_dir} "
                "(run 'gitlab-exodus cleanup' first)"
            )
        self._step(result, Logger.info, "cloning from GitLab (mirror)...")
        try:
            self.git.clone_mirror(record.source_url, temp_dir)
        except GitCommandError as e:
            # A partial clone is not ours to keep
            remove_tree(temp_dir)
            raise RepositoryMigrationFailed(
                f"failed to clone from GitLab: {record.source_url}: {e}"
            ) from e
        self._step(result, Logger.success, "cloned from GitLab")

    def _inspect(self, temp_dir: str, result: MigrationResult) -> None:
        try:
            branches, tags, commits = self.git.count_refs(temp_dir)
        except (GitCommandError, ValueError) as e:
            self._step(result, Logger.warn, f"could not read repository metadata: {e}")
            return
        self._step(
            result,
            Logger.info,
            f"metadata: {branches} branches, {tags} tags, {commits} commits",
        )

    def _check_collision(self, record: RepositoryRecord, result: MigrationResult) -> None:
        slug = f"{self.cfg.destination.user}/{record.name}"
        self._step(result, Logger.info, "checking if repository exists on GitHub...")
        try:
            exists = self.gh.repo_exists(record.name)
        except DestinationError as e:
            raise RepositoryMigrationFailed(str(e)) from e
        if exists:
            raise RepositoryMigrationFailed(f"repository already exists on GitHub: {slug}")

    def _create(self, record: RepositoryRecord, result: MigrationResult) -> None:
        self._step(result, Logger.info, "creating repository on GitHub...")
        try:
            self.gh.create_repo(record.name, record.visibility, record.description)
        except DestinationError as e:
            raise RepositoryMigrationFailed(str(e)) from e
        self._step(result, Logger.success, "created repository on GitHub")

    def _push(self, record: RepositoryRecord, temp_dir: str, result: MigrationResult) -> None:
        url = record.destination_url(self.cfg)
        self._step(result, Logger.info, "pushing to GitHub (mirror)...")
        try:
            self.git.push_mirror(temp_dir, url)
        except GitCommandError as e:
            raise RepositoryMigrationFailed(f"failed to push to GitHub: {url}: {e}") from e
        self._step(result, Logger.success, f"pushed mirror to {url}")

    def _verify(self, record: RepositoryRecord, result: MigrationResult) -> None:
        slug = f"{self.cfg.destination.user}/{record.name}"
        self._step(result, Logger.info, "verifying migration...")
        if self.verify_delay_s:
            time.sleep(self.verify_delay_s)
        try:
            verified = self.gh.repo_exists(record.name)
        except DestinationError as e:
            Logger.debug(str(e))
            verified = False
        if verified:
            self._step(result, Logger.success, f"verification passed: {slug}")
        else:
            self._step(result, Logger.warn, f"verification inconclusive: {slug}")

    def _cleanup(self, temp_dir: str, result: MigrationResult) -> None:
        if remove_tree(temp_dir):
            result.note(f"cleaned up {temp_dir}")
        else:
            self._step(result, Logger.warn, f"could not remove {temp_dir}")

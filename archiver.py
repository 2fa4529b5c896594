#!/usr/bin/env python3
"""Archives migrated projects on the source host and leaves a pointer behind."""

from __future__ import annotations

from typing import Optional, Sequence

from config import Config, RunOptions
from decisions import Decision, Prompter
from errors import RunAborted, SourceApiError
from gitlab_source import GitLabSource
from logging_utils import Logger
from registry import RepositoryRecord, destination_web_url
from report import MigrationResult, Outcome, RunSummary

CONFIRMATION_WORD = "ARCHIVE"


def migration_notice(config: Config, name: str, current_description: str = "") -> str:
    """Description set on an archived project, keeping the old one below."""
    notice = f"⚠️ MIGRATED TO GITHUB → {destination_web_url(config, name)}"
    if current_description:
        notice = f"{notice}\n\nOriginal description: {current_description}"
    return notice


class Archiver:
    def __init__(
        self,
        cfg: Config,
        options: RunOptions,
        repositories: Sequence[RepositoryRecord],
        prompter: Prompter,
        source: Optional[GitLabSource] = None,
    ) -> None:
        self.cfg = cfg
        self.options = options
        self.repositories = list(repositories)
        self.prompter = prompter
        self.source = source or GitLabSource(cfg.source)
        self.summary = RunSummary("Archive")

    def run(self) -> int:
        Logger.section("Checking GitLab API access")
        username = self.source.current_username()
        if not username:
            raise SourceApiError("GitLab API authentication failed (check source.api_token)")
        Logger.success(f"authenticated as: {username}")

        Logger.section("Repositories to archive")
        for record in self.repositories:
            Logger.info(f"  - {record.name}")

        if self.options.dry_run:
            Logger.warn("running in DRY-RUN mode - no changes will be made")
        else:
            Logger.warn(
                "this will archive the repositories above on GitLab; they become "
                "read-only and their descriptions are rewritten"
            )
            decision = self.prompter.confirm(
                "Archive these repositories?", expected=CONFIRMATION_WORD
            )
            if decision is not Decision.PROCEED:
                raise RunAborted("archiving cancelled by user")

        for record in self.repositories:
            self.summary.add(self.archive_repository(record))

        self.summary.log()
        if self.summary.count(Outcome.SUCCESS):
            Logger.info(
                "to unarchive a project: POST "
                f"{self.cfg.source.api_url}/projects/<ID>/unarchive"
            )
        return self.summary.exit_code()

    def archive_repository(self, record: RepositoryRecord) -> MigrationResult:
        Logger.section(f"Archiving: {record.name}")
        result = MigrationResult(record.name)
        try:
            project_id = self.source.resolve_project_id(record.name)
            Logger.info(f"project id: {project_id}")
            project = self.source.get_project(project_id)
            if project.get("archived") is True:
                Logger.warn("repository is already archived")

            description = migration_notice(
                self.cfg, record.name, project.get("description") or ""
            )
            if self.options.dry_run:
                Logger.info("[DRY-RUN] would archive repository")
                Logger.info(f"[DRY-RUN] new description: {description}")
                result.note("[DRY-RUN] would archive")
                return result.finish(Outcome.SKIPPED)

            self.source.archive(record.name, project_id)
            Logger.success("repository archived")
            result.note("archived")
        except SourceApiError as e:
            Logger.error(str(e))
            return result.fail(str(e))

        Logger.info("updating description...")
        updated = self.source.update_description(project_id, description)
        if updated.ok:
            Logger.success("description updated")
        else:
            Logger.warn(
                f"failed to update description ({updated.message}); "
                "repository is still archived"
            )
        return result.finish(Outcome.SUCCESS)

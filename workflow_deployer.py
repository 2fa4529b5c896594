#!/usr/bin/env python3
"""Adds the security workflow to every migrated repository."""

from __future__ import annotations

import filecmp
import os
import shutil
from typing import Optional, Sequence

from config import Config, RunOptions
from decisions import Decision, Prompter
from errors import GitCommandError, RunAborted, TemplateMissing
from git_ops import Git
from logging_utils import Logger
from registry import RepositoryRecord, destination_ssh_url
from report import MigrationResult, Outcome, RunSummary

WORKFLOW_PATH = os.path.join(".github", "workflows", "security.yml")
TEMPLATES_REPO_NAME = "github-templates"
COMMIT_MESSAGE = (
    "Add GitHub Actions security workflow\n\n"
    "- Gitleaks secret scanning (full git history)\n"
    "- ShellCheck linting for shell scripts\n"
    "- Dependency review for pull requests\n"
    "- Weekly scheduled security scans"
)


class WorkflowDeployer:
    def __init__(
        self,
        cfg: Config,
        options: RunOptions,
        repositories: Sequence[RepositoryRecord],
        prompter: Prompter,
        git: Optional[Git] = None,
    ) -> None:
        self.cfg = cfg
        self.options = options
        self.repositories = list(repositories)
        self.prompter = prompter
        self.git = git or Git()
        self.template = cfg.paths.workflow_template
        self.summary = RunSummary("Workflow deployment")

    def ensure_template(self) -> str:
        """Return the template path, cloning the templates repository if needed."""
        templates_dir = os.path.abspath(self.cfg.templates_repo_dir)
        in_templates_repo = os.path.abspath(self.template).startswith(templates_dir + os.sep)
        if (
            in_templates_repo
            and not os.path.isfile(self.template)
            and not os.path.isdir(templates_dir)
        ):
            Logger.warn(f"{TEMPLATES_REPO_NAME} repository not found: {templates_dir}")
            Logger.info("cloning from GitHub...")
            try:
                self.git.clone(
                    destination_ssh_url(self.cfg, TEMPLATES_REPO_NAME), templates_dir
                )
            except GitCommandError as e:
                Logger.error(f"failed to clone {TEMPLATES_REPO_NAME}: {e}")
                raise TemplateMissing(self.template) from e
            Logger.success(f"cloned {TEMPLATES_REPO_NAME} repository")

        if not os.path.isfile(self.template):
            raise TemplateMissing(self.template)
        Logger.success(f"template file found: {self.template}")
        return self.template

    def run(self) -> int:
        if self.options.dry_run:
            Logger.warn("running in DRY-RUN mode - no changes will be made")
        self.ensure_template()

        Logger.section("Repositories to process")
        for record in self.repositories:
            Logger.info(f"  - {record.name}")

        if not self.options.dry_run:
            decision = self.prompter.confirm("Deploy the security workflow to these repositories?")
            if decision is not Decision.PROCEED:
                raise RunAborted("workflow deployment cancelled by user")

        for record in self.repositories:
            self.summary.add(self.deploy(record))

        self.summary.log()
        return self.summary.exit_code()

    def _fail(self, result: MigrationResult, reason: str) -> MigrationResult:
        Logger.error(reason)
        return result.fail(reason)

    def deploy(self, record: RepositoryRecord) -> MigrationResult:
        Logger.section(f"Processing: {record.name}")
        result = MigrationResult(record.name)
        repo_dir = os.path.join(self.cfg.paths.local_repo_root, record.name)

        if not os.path.isdir(repo_dir):
            Logger.warn(f"repository not found locally: {repo_dir}")
            if self.options.dry_run:
                Logger.info("[DRY-RUN] would clone from GitHub and add the workflow")
                return result.finish(Outcome.SKIPPED)
            try:
                self.git.clone(destination_ssh_url(self.cfg, record.name), repo_dir)
            except GitCommandError as e:
                return self._fail(result, f"failed to clone {record.name}: {e}")
            Logger.success("cloned successfully")

        if not self.git.is_work_tree(repo_dir):
            return self._fail(result, f"not a valid git repository: {repo_dir}")

        if not self.options.dry_run:
            try:
                self.git.fetch(repo_dir)
            except GitCommandError as e:
                Logger.warn(f"fetch failed: {e}")
            if self.git.checkout_main(repo_dir) is None:
                return self._fail(result, "could not checkout main/master branch")
            pulled = self.git.pull(repo_dir)
            if not pulled.ok:
                Logger.warn(f"pull failed: {pulled.message}")

        target = os.path.join(repo_dir, WORKFLOW_PATH)
        if os.path.isfile(target):
            Logger.info("security workflow already exists")
            if filecmp.cmp(self.template, target, shallow=False):
                Logger.success("workflow is up to date")
                result.note("up to date")
                return result.finish(Outcome.SKIPPED)
            Logger.warn("workflow exists but differs from template")
            if self.options.dry_run:
                Logger.info("[DRY-RUN] would ask to overwrite the workflow")
                return result.finish(Outcome.SKIPPED)
            decision = self.prompter.confirm("Overwrite the existing workflow?")
            if decision is Decision.ABORT:
                raise RunAborted("workflow deployment aborted by user")
            if decision is not Decision.PROCEED:
                Logger.info("skipped updating workflow")
                return result.finish(Outcome.SKIPPED)
        elif self.options.dry_run:
            Logger.info(f"[DRY-RUN] would create {WORKFLOW_PATH} and commit it")
            return result.finish(Outcome.SKIPPED)

        try:
            os.makedirs(os.path.dirname(target), exist_ok=True)
            shutil.copyfile(self.template, target)
        except OSError as e:
            return self._fail(result, f"failed to write {WORKFLOW_PATH} in {record.name}: {e}")
        Logger.success("security workflow added")
        return self._commit_and_push(record, repo_dir, result)

    def _commit_and_push(
        self, record: RepositoryRecord, repo_dir: str, result: MigrationResult
    ) -> MigrationResult:
        try:
            if self.prompter.confirm("Commit the workflow?") is not Decision.PROCEED:
                Logger.info("workflow copied but not committed")
                return result.finish(Outcome.SKIPPED)
            self.git.add(repo_dir, WORKFLOW_PATH)
            if not self.git.commit(repo_dir, COMMIT_MESSAGE):
                Logger.warn("nothing to commit")
                return result.finish(Outcome.SKIPPED)
            Logger.success("changes committed")

            if self.prompter.confirm("Push to GitHub?") is not Decision.PROCEED:
                Logger.info("changes committed but not pushed")
                result.note("committed, not pushed")
                return result.finish(Outcome.SKIPPED)
            self.git.push(repo_dir)
        except GitCommandError as e:
            return self._fail(result, f"failed to commit or push {record.name}: {e}")

        Logger.success("changes pushed to GitHub")
        return result.finish(Outcome.SUCCESS)

#!/usr/bin/env python3
"""Rewrites GitLab URLs to their GitHub equivalents inside working copies."""

from __future__ import annotations

import os
import re
import shutil
import tempfile
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from config import DOCUMENTATION_EXTENSIONS, Config, RewriteConfig, RunOptions
from decisions import Decision, Prompter
from errors import GitCommandError, RunAborted
from git_ops import Git
from logging_utils import Logger
from registry import RepositoryRecord, destination_ssh_url, destination_web_url
from report import MigrationResult, Outcome, RunSummary

COMMIT_MESSAGE = (
    "chore: update repository URLs after migration to GitHub\n\n"
    "Replaced GitLab URLs with GitHub URLs across the codebase."
)
DOCS_COMMIT_MESSAGE = "docs: update repository URLs after migration to GitHub"
PREVIEW_LINES = 5


@dataclass(frozen=True)
class UrlMatch:
    kind: str  # "https", "ssh" or "bare"
    start: int
    end: int
    line: int


class UrlPatterns:
    """The three shapes a source URL can take, matched in one pass.

    ``https://H/U/``, ``git@H:U/`` and a bare ``H/U/``. The alternatives are
    tried left to right at every position, so the bare shape can never
    match inside a span already taken by an https URL.
    """

    def __init__(self, source_host: str, source_user: str, dest_host: str, dest_user: str) -> None:
        host = re.escape(source_host)
        user = re.escape(source_user)
        self.source_host = source_host
        self._regex = re.compile(
            rf"(?P<https>https://{host}/{user}/)"
            rf"|(?P<ssh>git@{host}:{user}/)"
            rf"|(?P<bare>{host}/{user}/)"
        )
        self._replacements = {
            "https": f"https://{dest_host}/{dest_user}/",
            "ssh": f"git@{dest_host}:{dest_user}/",
            "bare": f"{dest_host}/{dest_user}/",
        }

    @classmethod
    def from_config(cls, config: Config) -> "UrlPatterns":
        return cls(
            config.source.host,
            config.source.user,
            config.destination.host,
            config.destination.user,
        )

    def find_matches(self, text: str) -> List[UrlMatch]:
        matches = []
        for match in self._regex.finditer(text):
            kind = match.lastgroup or "bare"
            line = text.count("\n", 0, match.start()) + 1
            matches.append(UrlMatch(kind, match.start(), match.end(), line))
        return matches

    def rewrite(self, text: str) -> Tuple[str, int]:
        """Return the rewritten text and the number of replacements."""
        count = 0

        def _replace(match: "re.Match[str]") -> str:
            nonlocal count
            count += 1
            return self._replacements[match.lastgroup or "bare"]

        return self._regex.sub(_replace, text), count


def _is_allowed(name: str, extensions: Sequence[str], filenames: Sequence[str]) -> bool:
    if name in filenames:
        return True
    return any(name.endswith(f".{ext}") for ext in extensions)


def find_text_files(root: str, rewrite: RewriteConfig, docs_only: bool = False) -> List[str]:
    """Allow-listed files under ``root``, never inside ``.git``, sorted."""
    extensions = DOCUMENTATION_EXTENSIONS if docs_only else rewrite.extensions
    filenames: Sequence[str] = () if docs_only else rewrite.filenames
    found = []
    for dirpath, dirnames, files in os.walk(root):
        dirnames[:] = sorted(d for d in dirnames if d != ".git")
        for name in sorted(files):
            path = os.path.join(dirpath, name)
            if os.path.islink(path):
                continue
            if _is_allowed(name, extensions, filenames):
                found.append(path)
    return found


def _read_text(path: str) -> Optional[str]:
    try:
        with open(path, encoding="utf-8", newline="") as handle:
            return handle.read()
    except (UnicodeDecodeError, OSError) as e:
        Logger.debug(f"skipping unreadable file {path}: {e}")
        return None


def rewrite_file(path: str, patterns: UrlPatterns, dry_run: bool = False) -> int:
    """Rewrite one file in place and return the replacement count.

    In dry-run mode nothing is written. Otherwise the new content goes to a
    temporary sibling that replaces the original only if the text changed.
    """
    text = _read_text(path)
    if text is None:
        return 0
    new_text, count = patterns.rewrite(text)
    if dry_run or count == 0:
        return count
    if new_text == text:
        return 0

    directory = os.path.dirname(path) or "."
    fd, temp_path = tempfile.mkstemp(
        prefix=f".{os.path.basename(path)}.", suffix=".tmp", dir=directory
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as handle:
            handle.write(new_text)
        shutil.copymode(path, temp_path)
        os.replace(temp_path, path)
    except BaseException:
        if os.path.exists(temp_path):
            os.unlink(temp_path)
        raise
    return count


class UrlRewriter:
    """Stage that updates source URLs in every registry repository."""

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
        self.patterns = UrlPatterns.from_config(cfg)
        self.clone_dir = (
            cfg.paths.doc_update_dir if options.docs_only else cfg.paths.work_dir
        )
        self.commit_message = DOCS_COMMIT_MESSAGE if options.docs_only else COMMIT_MESSAGE
        self.summary = RunSummary("URL update")
        self.files_updated = 0
        self.replacements = 0
        self.pushed: List[str] = []

    def run(self) -> int:
        if self.options.dry_run:
            Logger.warn("running in DRY-RUN mode - no changes will be made")
        if self.options.auto_commit:
            Logger.warn("AUTO-COMMIT enabled - changes will be committed automatically")
        if not self.options.dry_run:
            os.makedirs(self.clone_dir, exist_ok=True)
            Logger.info(f"working directory: {self.clone_dir}")

        Logger.section("Repositories to process")
        for record in self.repositories:
            Logger.info(f"  - {record.name}")

        if not self.options.dry_run and not self.options.auto_commit:
            decision = self.prompter.confirm(
                "Scan all text files for GitLab URLs and update them?"
            )
            if decision is not Decision.PROCEED:
                raise RunAborted("URL update cancelled by user")

        for record in self.repositories:
            self.summary.add(self.process_repository(record))

        self.summary.log()
        Logger.info(f"files updated: {self.files_updated}")
        Logger.info(f"total URL replacements: {self.replacements}")
        Logger.info(f"repositories committed & pushed: {len(self.pushed)}")
        for name in self.pushed:
            Logger.success(f"  {destination_web_url(self.cfg, name)}")
        return self.summary.exit_code()

    def _ensure_working_copy(self, name: str, result: MigrationResult) -> Optional[str]:
        repo_dir = os.path.join(self.clone_dir, name)
        if self.git.is_work_tree(repo_dir):
            Logger.info(f"using existing clone: {name}")
            if not self.options.dry_run and self.git.checkout_main(repo_dir) is None:
                Logger.warn("neither main nor master could be checked out")
            return repo_dir
        if os.path.exists(repo_dir):
            result.fail(f"{repo_dir} exists but is not a working copy")
            return None
        if self.options.dry_run:
            result.note(f"[DRY-RUN] would clone {name} from GitHub")
            Logger.info(f"[DRY-RUN] would clone {name} from GitHub")
            result.finish(Outcome.SKIPPED)
            return None
        Logger.info(f"cloning {name} from GitHub...")
        try:
            self.git.clone(destination_ssh_url(self.cfg, name), repo_dir)
        except GitCommandError as e:
            result.fail(f"failed to clone {name}: {e}")
            return None
        Logger.success("cloned successfully")
        return repo_dir

    def scan(self, repo_dir: str) -> Dict[str, int]:
        """Files holding source URLs, with the replacement count of each."""
        counts: Dict[str, int] = {}
        for path in find_text_files(repo_dir, self.cfg.rewrite, self.options.docs_only):
            text = _read_text(path)
            if text is None or self.patterns.source_host not in text:
                continue
            matches = self.patterns.find_matches(text)
            if not matches:
                continue
            counts[path] = len(matches)
            rel_path = os.path.relpath(path, repo_dir)
            Logger.info(f"found GitLab URLs in: {rel_path}")
            lines = text.splitlines()
            for line_no in sorted({m.line for m in matches})[:PREVIEW_LINES]:
                Logger.info(f"  {line_no}: {lines[line_no - 1].strip()}")
        return counts

    def process_repository(self, record: RepositoryRecord) -> MigrationResult:
        Logger.section(f"Processing: {record.name}")
        result = MigrationResult(record.name)

        repo_dir = self._ensure_working_copy(record.name, result)
        if repo_dir is None:
            if result.outcome is Outcome.FAILED:
                Logger.error(result.reason)
            return result

        counts = self.scan(repo_dir)
        if not counts:
            Logger.success("no GitLab URLs found - repository is clean")
            result.note("no GitLab URLs found")
            return result.finish(Outcome.SKIPPED)

        if self.options.dry_run:
            for path, count in counts.items():
                Logger.info(
                    f"[DRY-RUN] would update {os.path.relpath(path, repo_dir)} "
                    f"({count} replacement(s))"
                )
            self.replacements += sum(counts.values())
            result.note(f"[DRY-RUN] {sum(counts.values())} replacement(s) pending")
            return result.finish(Outcome.SKIPPED)

        decision = self.prompter.confirm(f"Update {len(counts)} file(s) in {record.name}?")
        if decision is Decision.ABORT:
            raise RunAborted("URL update aborted by user")
        if decision is not Decision.PROCEED:
            Logger.warn(f"skipped {record.name}")
            return result.finish(Outcome.SKIPPED)

        repo_changes = 0
        for path in counts:
            changes = rewrite_file(path, self.patterns)
            if changes:
                Logger.success(
                    f"updated: {os.path.relpath(path, repo_dir)} ({changes} replacement(s))"
                )
                repo_changes += changes
                self.files_updated += 1
        self.replacements += repo_changes
        result.note(f"{repo_changes} replacement(s)")

        if repo_changes == 0:
            Logger.info("no changes needed")
            return result.finish(Outcome.SKIPPED)

        return self._commit_and_push(record, repo_dir, result)

    def _commit_and_push(
        self, record: RepositoryRecord, repo_dir: str, result: MigrationResult
    ) -> MigrationResult:
        try:
            if self.prompter.interactive:
                Logger.info("changes made:")
                Logger.info(self.git.diff(repo_dir))
            if self.prompter.confirm("Commit these changes?") is not Decision.PROCEED:
                Logger.warn("changes not committed (review with: git diff)")
                return result.finish(Outcome.SKIPPED)

            self.git.add(repo_dir)
            if not self.git.commit(repo_dir, self.commit_message):
                Logger.warn("nothing to commit")
                return result.finish(Outcome.SKIPPED)
            Logger.success("changes committed")

            if self.prompter.confirm("Push changes to GitHub?") is not Decision.PROCEED:
                Logger.info("changes committed but not pushed")
                result.note("committed, not pushed")
                return result.finish(Outcome.SKIPPED)

            self.git.push(repo_dir)
        except GitCommandError as e:
            Logger.error(f"failed to commit or push {record.name}: {e}")
            return result.fail(str(e))

        Logger.success("changes pushed to GitHub")
        self.pushed.append(record.name)
        return result.finish(Outcome.SUCCESS)

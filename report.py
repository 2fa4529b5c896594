#!/usr/bin/env python3
"""Per-repository results, run summaries and the Markdown report."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List

from config import Config
from logging_utils import Logger
from registry import destination_web_url

EXIT_SUCCESS = 0
EXIT_FAILURE = 1


class Outcome(Enum):
    SUCCESS = "success"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass
class MigrationResult:
    """What happened to one repository during one stage."""
    name: str
    outcome: Outcome = Outcome.SUCCESS
    timestamp: datetime = field(default_factory=datetime.now)
    log_lines: List[str] = field(default_factory=list)
    reason: str = ""

    def note(self, message: str) -> None:
        self.log_lines.append(message)

    def finish(self, outcome: Outcome) -> "MigrationResult":
        self.outcome = outcome
        self.timestamp = datetime.now()
        return self

    def fail(self, reason: str) -> "MigrationResult":
        self.reason = reason
        return self.finish(Outcome.FAILED)


@dataclass
class RunSummary:
    title: str
    results: List[MigrationResult] = field(default_factory=list)

    def add(self, result: MigrationResult) -> None:
        self.results.append(result)

    def names(self, outcome: Outcome) -> List[str]:
        return [r.name for r in self.results if r.outcome is outcome]

    def count(self, outcome: Outcome) -> int:
        return len(self.names(outcome))

    @property
    def total(self) -> int:
        return len(self.results)

    def exit_code(self) -> int:
        return EXIT_FAILURE if self.count(Outcome.FAILED) else EXIT_SUCCESS

    def log(self) -> None:
        Logger.section(f"{self.title} summary")
        Logger.info(f"total repositories: {self.total}")
        Logger.success(f"successful: {self.count(Outcome.SUCCESS)}")
        Logger.warn(f"skipped: {self.count(Outcome.SKIPPED)}")
        failed = self.names(Outcome.FAILED)
        if failed:
            Logger.error(f"failed: {len(failed)}")
            for name in failed:
                Logger.error(f"  x {name}")
        else:
            Logger.info("failed: 0")


def render_markdown_report(summary: RunSummary, config: Config) -> str:
    source = f"{config.source.host}/{config.source.user}"
    target = f"{config.destination.host}/{config.destination.user}"
    lines = [
        "# GitLab to GitHub Migration Report",
        "",
        f"**Date:** {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}  ",
        f"**Source:** {source}  ",
        f"**Target:** {target}  ",
        f"**Total Repositories:** {summary.total}  ",
        f"**Successful:** {summary.count(Outcome.SUCCESS)}  ",
        f"**Failed:** {summary.count(Outcome.FAILED)}  ",
        f"**Skipped:** {summary.count(Outcome.SKIPPED)}",
        "",
        "---",
        "",
        "## Successfully Migrated Repositories",
        "",
    ]
    for name in summary.names(Outcome.SUCCESS):
        lines.append(f"- ✓ [{name}]({destination_web_url(config, name)})")

    failed = [r for r in summary.results if r.outcome is Outcome.FAILED]
    if failed:
        lines += ["", "---", "", "## Failed Migrations", ""]
        for result in failed:
            reason = result.reason or "unknown error"
            lines.append(f"- ✗ {result.name}: {reason}")

    lines += [
        "",
        "---",
        "",
        "## Next Steps",
        "",
        "1. **Verify Repositories**: Check each migrated repository on GitHub",
        "2. **Update URLs**: `gitlab-exodus update-urls`",
        "3. **Update Local Repos**: `gitlab-exodus update-remotes`",
        "4. **Archive GitLab Repos**: `gitlab-exodus archive`",
        "5. **Deploy Security Workflow**: `gitlab-exodus deploy-workflow`",
        "",
        "---",
        "",
        "## Migration Log",
        "",
        f"See detailed log at: `{config.log_file}`",
        "",
    ]
    return "\n".join(lines)


def write_report(path: str, text: str) -> None:
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    with open(path, "w", encoding="utf-8") as handle:
        handle.write(text)
    Logger.info(f"report generated: {path}")

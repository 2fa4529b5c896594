#!/usr/bin/env python3
"""Writes repos.ini from the projects the source user owns."""

from __future__ import annotations

import os
from typing import Dict, List, Optional

from config import Config, Visibility
from errors import RegistryFormatError
from gitlab_source import GitLabSource
from logging_utils import Logger
from registry import EXCLUSION_MARKER, REGISTRY_SECTION
from security import SecurityValidator

REGISTRY_HEADER = """\
# Repository List Configuration
# Generated by gitlab-exodus generate
#
# Format: name|visibility|description
# - name: Repository slug (used for both local path and remote URL)
# - visibility: public, private, or internal
# - description: Repository description (optional)
#
# Lines starting with "# EXCLUDED:" were deselected during generation
# To include an excluded repo, remove the "# EXCLUDED: " prefix
#
# Local path is derived from: <local_repo_root>/<name>
# GitLab SSH URL is derived from: git@<source.host>:<source.user>/<name>.git
# GitHub SSH URL is derived from: git@<destination.host>:<destination.user>/<name>.git
#
"""


def sanitize_description(description: Optional[str]) -> str:
    """Registry fields are ``|``-separated and one line each."""
    text = (description or "").replace("|", "-")
    text = text.replace("\r", " ").replace("\n", " ")
    return text.rstrip()


def registry_line(name: str, visibility: str, description: str, excluded: bool = False) -> str:
    line = f"{name}|{visibility}|{sanitize_description(description)}"
    return f"{EXCLUSION_MARKER} {line}" if excluded else line


class RegistryGenerator:
    def __init__(self, cfg: Config, source: Optional[GitLabSource] = None) -> None:
        self.cfg = cfg
        self.source = source or GitLabSource(cfg.source)

    def generate(
        self,
        output: str,
        include_forks: bool = False,
        include_archived: bool = False,
        exclude: Optional[str] = None,
    ) -> Dict[str, int]:
        """Write the registry to ``output`` and return the visibility counts."""
        Logger.section("Generating repository registry")
        projects = self.source.list_projects(include_forks, include_archived)
        if not projects:
            Logger.warn(f"no repositories found for {self.cfg.source.user}")

        lines: List[str] = [REGISTRY_HEADER, f"[{REGISTRY_SECTION}]"]
        counts = {visibility.value: 0 for visibility in Visibility}
        counts["excluded"] = 0

        for project in projects:
            name = getattr(project, "path", "")
            visibility = getattr(project, "visibility", Visibility.PRIVATE.value)
            description = getattr(project, "description", "") or ""
            try:
                SecurityValidator.validate_repo_name(name)
            except ValueError as e:
                raise RegistryFormatError(output, len(lines), str(e)) from e
            if visibility not in counts:
                visibility = Visibility.PRIVATE.value

            excluded = bool(exclude) and exclude in name
            if excluded:
                Logger.warn(f"excluding: {name}")
                counts["excluded"] += 1
            else:
                Logger.info(f"adding: {name} ({visibility})")
                counts[visibility] += 1
            lines.append(registry_line(name, visibility, description, excluded))

        directory = os.path.dirname(output)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(output, "w", encoding="utf-8") as handle:
            handle.write("\n".join(lines) + "\n")

        Logger.success(f"generated: {output}")
        self._log_summary(counts)
        return counts

    @staticmethod
    def _log_summary(counts: Dict[str, int]) -> None:
        total = sum(v for k, v in counts.items() if k != "excluded")
        Logger.info(f"total repositories: {total}")
        for visibility in Visibility:
            Logger.info(f"  {visibility.value}: {counts[visibility.value]}")
        if counts["excluded"]:
            Logger.info(f"  excluded: {counts['excluded']}")
        Logger.info("next step: gitlab-exodus migrate")

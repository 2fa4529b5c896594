#!/usr/bin/env python3
"""Repository registry (repos.ini) and local clone list."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import List, Set

from config import Config, Visibility
from config_store import ConfigStore
from errors import RegistryFormatError, RegistryMissing
from logging_utils import Logger
from security import SecurityValidator

REGISTRY_SECTION = "repositories"
EXCLUSION_MARKER = "# EXCLUDED:"
LOCAL_REPOS_SECTION = "local_repos"
LOCAL_REPOS_KEY = "repos"


def source_ssh_url(config: Config, name: str) -> str:
    return f"git@{config.source.host}:{config.source.user}/{name}.git"


def destination_ssh_url(config: Config, name: str) -> str:
    return f"git@{config.destination.host}:{config.destination.user}/{name}.git"


def destination_web_url(config: Config, name: str) -> str:
    return f"https://{config.destination.host}/{config.destination.user}/{name}"


@dataclass(frozen=True)
class RepositoryRecord:
    """One active line of the registry."""
    name: str
    visibility: Visibility
    description: str
    source_url: str

    def destination_url(self, config: Config) -> str:
        return destination_ssh_url(config, self.name)

    def web_url(self, config: Config) -> str:
        return destination_web_url(config, self.name)


@dataclass(frozen=True)
class LocalRepoEntry:
    """A pre-existing local clone whose remotes should follow the move."""
    name: str
    path: str


def _parse_record(config: Config, path: str, line_no: int, line: str) -> RepositoryRecord:
    fields = line.split("|", 2)
    if len(fields) < 2:
        raise RegistryFormatError(
            path, line_no, "expected name|visibility|description"
        )
    name = fields[0].strip()
    visibility_value = fields[1].strip().lower()
    description = fields[2].strip() if len(fields) == 3 else ""

    try:
        SecurityValidator.validate_repo_name(name)
    except ValueError as e:
        raise RegistryFormatError(path, line_no, str(e)) from e

    try:
        visibility = Visibility(visibility_value)
    except ValueError as e:
        raise RegistryFormatError(
            path, line_no, f"unknown visibility '{visibility_value}'"
        ) from e

    return RepositoryRecord(
        name=name,
        visibility=visibility,
        description=description,
        source_url=source_ssh_url(config, name),
    )


def load_repositories(config: Config, path: str = "") -> List[RepositoryRecord]:
    """Read the active repositories from the registry file.

    Blank lines, comments (including lines carrying the exclusion marker)
    and section headers are skipped. Entries in sections other than
    ``[repositories]`` are ignored.
    """
    path = path or config.paths.registry_file
    if not os.path.isfile(path):
        raise RegistryMissing(path)

    records: List[RepositoryRecord] = []
    seen: Set[str] = set()
    in_registry = True
    excluded = 0

    with open(path, encoding="utf-8") as handle:
        for line_no, raw_line in enumerate(handle, start=1):
            line = raw_line.strip()
            if not line:
                continue
            if line.startswith(EXCLUSION_MARKER):
                excluded += 1
                continue
            if line.startswith("#"):
                continue
            if line.startswith("["):
                in_registry = line.strip("[]").strip().lower() == REGISTRY_SECTION
                continue
            if not in_registry:
                continue

            record = _parse_record(config, path, line_no, line)
            if record.name in seen:
                raise RegistryFormatError(
                    path, line_no, f"duplicate repository '{record.name}'"
                )
            seen.add(record.name)
            records.append(record)

    Logger.debug(
        f"registry {path}: {len(records)} active, {excluded} excluded"
    )
    return records


def load_local_repositories(store: ConfigStore, config: Config) -> List[LocalRepoEntry]:
    """Read ``[local_repos] repos``: ``name`` or ``name|/custom/path`` per line."""
    entries: List[LocalRepoEntry] = []
    for value in store.get_array(LOCAL_REPOS_SECTION, LOCAL_REPOS_KEY):
        if "|" in value:
            name, custom_path = (part.strip() for part in value.split("|", 1))
            path = os.path.expanduser(custom_path)
        else:
            name = value
            path = os.path.join(config.paths.local_repo_root, name)
        if not name:
            continue
        entries.append(LocalRepoEntry(name=name, path=path))
    return entries

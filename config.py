#!/usr/bin/env python3
"""Configuration dataclasses for gitlab-exodus."""

from __future__ import annotations

import os
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

LOG_FILE_NAME = "migration.log"
REPORT_FILE_NAME = "MIGRATION-REPORT.md"

# Files scanned by the URL rewriter when the config does not override them.
DEFAULT_REWRITE_EXTENSIONS: Tuple[str, ...] = (
    "md", "txt", "rst", "adoc",
    "sh", "bash", "zsh", "fish",
    "py", "rb", "pl", "php",
    "js", "ts", "jsx", "tsx", "mjs", "cjs",
    "java", "kt", "scala", "groovy",
    "c", "cpp", "h", "hpp", "cc",
    "go", "rs", "swift",
    "cs", "fs", "vb",
    "json", "yaml", "yml", "toml", "ini", "conf",
    "xml", "html", "htm", "css", "scss", "sass",
    "sql", "graphql",
    "tf", "hcl",
    "nix",
    "vim", "lua",
    "gitignore", "gitattributes", "gitmodules",
    "env", "env.example", "env.sample",
)
DEFAULT_REWRITE_FILENAMES: Tuple[str, ...] = (
    "Makefile",
    "CMakeLists.txt",
    "Dockerfile",
    "docker-compose.yml",
    "Jenkinsfile",
    "Vagrantfile",
    ".gitmodules",
)
DOCUMENTATION_EXTENSIONS: Tuple[str, ...] = ("md", "rst", "adoc", "txt")


class Visibility(Enum):
    """Enumeration for repository visibility levels."""
    PRIVATE = "private"
    PUBLIC = "public"
    INTERNAL = "internal"

    def for_destination(self) -> "Visibility":
        """The destination has no internal level; it becomes private."""
        if self is Visibility.INTERNAL:
            return Visibility.PRIVATE
        return self


@dataclass(frozen=True)
class SourceConfig:
    """Source (GitLab) host configuration."""
    host: str
    user: str
    api_token: str

    @property
    def api_url(self) -> str:
        return f"https://{self.host}/api/v4"


@dataclass(frozen=True)
class DestinationConfig:
    """Destination (GitHub) host configuration."""
    host: str
    user: str


@dataclass(frozen=True)
class PathsConfig:
    """Filesystem locations used by the stages."""
    work_dir: str
    doc_update_dir: str
    local_repo_root: str
    registry_file: str
    workflow_template: str


@dataclass(frozen=True)
class OptionsConfig:
    """Tunable options."""
    min_disk_space_mb: int
    ssh_timeout: int
    verbose: bool


@dataclass(frozen=True)
class RewriteConfig:
    """File allow-list for the URL rewriter."""
    extensions: Tuple[str, ...] = DEFAULT_REWRITE_EXTENSIONS
    filenames: Tuple[str, ...] = DEFAULT_REWRITE_FILENAMES


@dataclass(frozen=True)
class Config:
    """Main configuration, built once from config.ini."""
    source: SourceConfig
    destination: DestinationConfig
    paths: PathsConfig
    options: OptionsConfig
    rewrite: RewriteConfig = RewriteConfig()

    @property
    def log_file(self) -> str:
        return os.path.join(self.paths.work_dir, LOG_FILE_NAME)

    @property
    def report_file(self) -> str:
        return os.path.join(self.paths.work_dir, REPORT_FILE_NAME)

    @property
    def templates_repo_dir(self) -> str:
        return os.path.join(self.paths.local_repo_root, "github-templates")


@dataclass(frozen=True)
class RunOptions:
    """Command line flags shared by the stages."""
    dry_run: bool = False
    interactive: bool = True
    force: bool = False
    auto_commit: bool = False
    docs_only: bool = False
    output: Optional[str] = None
    include_forks: bool = False
    include_archived: bool = False
    exclude: Optional[str] = None

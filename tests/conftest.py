"""Shared fixtures."""

from __future__ import annotations

from pathlib import Path

import pytest

from config import (Config, DestinationConfig, OptionsConfig, PathsConfig,
                    SourceConfig)
from logging_utils import Logger


@pytest.fixture(autouse=True)
def _reset_logger():
    yield
    Logger.configure(log_file=None, verbose=False)


@pytest.fixture
def cfg(tmp_path: Path) -> Config:
    local_root = tmp_path / 'src'
    return Config(
        source=SourceConfig(
            host='git.example.com',
            user='alice',
            api_token='glpat-secret',
        ),
        destination=DestinationConfig(host='github.com', user='alice'),
        paths=PathsConfig(
            work_dir=str(tmp_path / 'work'),
            doc_update_dir=str(tmp_path / 'docs'),
            local_repo_root=str(local_root),
            registry_file=str(tmp_path / 'repos.ini'),
            workflow_template=str(
                local_root / 'github-templates' / 'workflows' / 'security.yml'
            ),
        ),
        options=OptionsConfig(min_disk_space_mb=100, ssh_timeout=5, verbose=False),
    )

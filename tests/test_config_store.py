"""Tests for ConfigStore parsing and validation."""

from __future__ import annotations

from pathlib import Path

import pytest

from config_store import ConfigStore
from errors import (ConfigNotFound, InvalidConfigValue, MissingRequiredKey)

CONFIG_TEXT = """\
[source]
host = git.example.com   # self-hosted
user = alice
api_token = glpat-abc123

[destination]
host = github.com
user = alice-gh

[paths]
work_dir = {root}/work
doc_update_dir = {root}/docs   # docs-only clones
local_repo_root = {root}/src

[options]
min_disk_space_mb = 500
ssh_timeout = 10
verbose = false

[local_repos]
repos =
    tool-a
    # retired
    tool-b|{root}/elsewhere/tool-b   # custom path
"""


def _write(tmp_path: Path, text: str) -> str:
    path = tmp_path / 'config.ini'
    path.write_text(text.format(root=tmp_path), encoding='utf-8')
    return str(path)


def test_load_strips_comments_and_whitespace(tmp_path: Path) -> None:
    """Every field should match the file text without inline comments."""
    cfg = ConfigStore(_write(tmp_path, CONFIG_TEXT)).load()

    assert cfg.source.host == 'git.example.com'
    assert cfg.source.user == 'alice'
    assert cfg.source.api_token == 'glpat-abc123'
    assert cfg.source.api_url == 'https://git.example.com/api/v4'
    assert cfg.destination.host == 'github.com'
    assert cfg.destination.user == 'alice-gh'
    assert cfg.paths.doc_update_dir == str(tmp_path / 'docs')
    assert cfg.options.min_disk_space_mb == 500
    assert cfg.options.ssh_timeout == 10
    assert cfg.options.verbose is False
    assert cfg.log_file == str(tmp_path / 'work' / 'migration.log')
    assert cfg.report_file == str(tmp_path / 'work' / 'MIGRATION-REPORT.md')


def test_optional_paths_have_defaults(tmp_path: Path) -> None:
    cfg = ConfigStore(_write(tmp_path, CONFIG_TEXT)).load()

    assert cfg.paths.registry_file == str(tmp_path / 'repos.ini')
    assert cfg.paths.workflow_template == str(
        tmp_path / 'src' / 'github-templates' / 'workflows' / 'security.yml'
    )


def test_missing_file_raises(tmp_path: Path) -> None:
    with pytest.raises(ConfigNotFound):
        ConfigStore(str(tmp_path / 'absent.ini')).load()


def test_missing_required_key_names_it(tmp_path: Path) -> None:
    text = CONFIG_TEXT.replace('api_token = glpat-abc123\n', '')
    with pytest.raises(MissingRequiredKey) as excinfo:
        ConfigStore(_write(tmp_path, text)).load()

    assert excinfo.value.name == 'source.api_token'
    assert str(excinfo.value) == 'source.api_token not configured'


def test_value_that_is_only_a_comment_counts_as_missing(tmp_path: Path) -> None:
    text = CONFIG_TEXT.replace('user = alice-gh', 'user =   # fill me in')
    with pytest.raises(MissingRequiredKey) as excinfo:
        ConfigStore(_write(tmp_path, text)).load()

    assert excinfo.value.name == 'destination.user'


def test_non_numeric_option_is_rejected(tmp_path: Path) -> None:
    text = CONFIG_TEXT.replace('ssh_timeout = 10', 'ssh_timeout = soon')
    with pytest.raises(InvalidConfigValue):
        ConfigStore(_write(tmp_path, text)).load()


def test_host_with_scheme_is_rejected(tmp_path: Path) -> None:
    text = CONFIG_TEXT.replace('host = github.com', 'host = https://github.com')
    with pytest.raises(InvalidConfigValue):
        ConfigStore(_write(tmp_path, text)).load()


def test_get_array_reads_continuation_lines(tmp_path: Path) -> None:
    store = ConfigStore(_write(tmp_path, CONFIG_TEXT))

    assert store.get_array('local_repos', 'repos') == [
        'tool-a',
        f'tool-b|{tmp_path}/elsewhere/tool-b',
    ]
    assert store.get_array('local_repos', 'missing') == []
    assert store.get('nowhere', 'nothing') == ''


def test_duplicate_key_later_wins(tmp_path: Path) -> None:
    text = CONFIG_TEXT + '\n[options]\nssh_timeout = 30\n'
    cfg = ConfigStore(_write(tmp_path, text)).load()

    assert cfg.options.ssh_timeout == 30
    assert cfg.options.min_disk_space_mb == 500


def test_url_rewrite_allow_list_override(tmp_path: Path) -> None:
    text = CONFIG_TEXT + '\n[url_rewrite]\nextensions =\n    .md\n    yml\n'
    cfg = ConfigStore(_write(tmp_path, text)).load()

    assert cfg.rewrite.extensions == ('md', 'yml')
    assert 'Makefile' in cfg.rewrite.filenames

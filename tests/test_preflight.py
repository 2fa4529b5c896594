"""Tests for pre-flight checks and the local changes check."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from config import RunOptions
from decisions import Decision, LocalChangesResolution, PresetPrompter
from errors import GitCommandError, PreflightError, RunAborted, SourceApiError
from preflight import (DEFAULT_COMMIT_MESSAGE, LocalChangesCheck,
                       PreflightChecker)
from registry import LocalRepoEntry


def _checker(cfg, options=None, which=lambda tool: f'/usr/bin/{tool}') -> PreflightChecker:
    source = MagicMock()
    source.connect.return_value = 'alice'
    target = MagicMock()
    target.authenticated_login.return_value = 'alice'
    return PreflightChecker(cfg, options or RunOptions(), source, target, which=which)


@patch('preflight.free_disk_space_mb', return_value=10_000)
@patch.object(PreflightChecker, '_ssh_probe', return_value='Welcome to GitLab, @alice!')
def test_all_checks_pass_and_work_dir_created(_probe, _disk, cfg) -> None:
    _checker(cfg).run()

    assert Path(cfg.paths.work_dir).is_dir()


@patch('preflight.free_disk_space_mb', return_value=10_000)
@patch.object(PreflightChecker, '_ssh_probe', return_value='Welcome to GitLab, @alice!')
def test_dry_run_does_not_create_work_dir(_probe, _disk, cfg) -> None:
    _checker(cfg, RunOptions(dry_run=True)).run()

    assert not Path(cfg.paths.work_dir).exists()


@patch('preflight.free_disk_space_mb', return_value=10)
@patch.object(PreflightChecker, '_ssh_probe', return_value='')
def test_failures_are_collected(_probe, _disk, cfg) -> None:
    checker = _checker(cfg, which=lambda tool: None if tool == 'gh' else '/usr/bin/x')
    checker.source.connect.side_effect = SourceApiError('authentication error (gitlab): 401')
    checker.target.authenticated_login.return_value = 'someone-else'

    with pytest.raises(PreflightError) as excinfo:
        checker.run()

    failures = ' | '.join(excinfo.value.failures)
    assert 'required command not found: gh' in failures
    assert '401' in failures
    assert 'expected alice' in failures
    assert 'cannot connect to GitLab via SSH' in failures
    assert 'low disk space' in failures
    assert not Path(cfg.paths.work_dir).exists()


def _dirty_repo(tmp_path: Path, name: str = 'tool') -> LocalRepoEntry:
    path = tmp_path / name
    (path / '.git').mkdir(parents=True)
    return LocalRepoEntry(name, str(path))


def _git(uncommitted: str = ' M README.md\n', unpushed: int = 0) -> MagicMock:
    git = MagicMock()
    git.is_work_tree.side_effect = lambda path: (Path(path) / '.git').is_dir()
    git.status_porcelain.return_value = uncommitted
    git.unpushed_count.return_value = unpushed
    git.commit.return_value = True
    git.current_branch.return_value = 'main'
    return git


def test_clean_repositories_need_no_decision(tmp_path: Path) -> None:
    git = _git(uncommitted='')
    check = LocalChangesCheck([_dirty_repo(tmp_path)], git, MagicMock(), RunOptions())

    assert check.run() is None


def test_unattended_run_aborts_on_dirty_clone(tmp_path: Path) -> None:
    prompter = PresetPrompter(Decision.PROCEED)
    check = LocalChangesCheck([_dirty_repo(tmp_path)], _git(), prompter, RunOptions(interactive=False))

    with pytest.raises(RunAborted):
        check.run()


def test_force_continues_past_dirty_clone(tmp_path: Path) -> None:
    prompter = PresetPrompter(Decision.PROCEED, LocalChangesResolution.PROCEED)
    git = _git(unpushed=2)
    check = LocalChangesCheck([_dirty_repo(tmp_path)], git, prompter, RunOptions(force=True))

    assert check.run() is LocalChangesResolution.PROCEED
    git.push.assert_not_called()


def test_push_choice_commits_and_falls_back_to_set_upstream(tmp_path: Path) -> None:
    entry = _dirty_repo(tmp_path)
    git = _git()
    git.push.side_effect = GitCommandError(['git', 'push', 'origin', 'HEAD'], 1, 'no upstream')
    prompter = PresetPrompter(Decision.PROCEED, LocalChangesResolution.PUSH)
    check = LocalChangesCheck([entry], git, prompter, RunOptions())

    assert check.run() is LocalChangesResolution.PUSH

    git.add.assert_called_once_with(entry.path)
    git.commit.assert_called_once_with(entry.path, DEFAULT_COMMIT_MESSAGE)
    git.push_set_upstream.assert_called_once_with(entry.path, 'main')


def test_missing_and_non_git_entries_are_skipped(tmp_path: Path) -> None:
    plain = tmp_path / 'plain'
    plain.mkdir()
    entries = [LocalRepoEntry('gone', str(tmp_path / 'gone')), LocalRepoEntry('plain', str(plain))]
    check = LocalChangesCheck(entries, _git(), MagicMock(), RunOptions())

    assert check.scan() == []

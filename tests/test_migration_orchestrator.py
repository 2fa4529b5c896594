"""Tests for the per-repository migration state machine."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock

import pytest

from config import RunOptions, Visibility
from decisions import ConsolePrompter, Decision, PresetPrompter
from errors import DestinationError, PreflightError, RunAborted
from migration_orchestrator import MigrationOrchestrator
from registry import RepositoryRecord
from report import Outcome


def _records(*names: str):
    return [
        RepositoryRecord(
            name, Visibility.PRIVATE, f'{name} description',
            f'git@git.example.com:alice/{name}.git',
        )
        for name in names
    ]


def _github(fail_create=()):
    """A destination that remembers what it created."""
    created = set()
    gh = MagicMock()

    def create_repo(name, visibility, description):
        if name in fail_create:
            raise DestinationError(f'failed to create repository alice/{name}: HTTP 422')
        created.add(name)

    gh.repo_exists.side_effect = lambda name: name in created
    gh.create_repo.side_effect = create_repo
    return gh


def _orchestrator(cfg, records, gh, git=None, options=None, prompter=None):
    git = git or MagicMock()
    git.count_refs.return_value = (2, 1, 10)
    return MigrationOrchestrator(
        cfg,
        options or RunOptions(),
        records,
        [],
        prompter or PresetPrompter(Decision.PROCEED),
        MagicMock(),
        gh=gh,
        git=git,
        verify_delay_s=0,
    )


def test_failed_create_does_not_stop_the_run(cfg) -> None:
    """Repository K failing leaves K+1..N to be migrated."""
    records = _records('one', 'two', 'three', 'four')
    gh = _github(fail_create={'two'})
    orchestrator = _orchestrator(cfg, records, gh)

    exit_code = orchestrator.run()

    assert exit_code == 1
    assert orchestrator.summary.count(Outcome.FAILED) == 1
    assert orchestrator.summary.count(Outcome.SUCCESS) == 3
    assert orchestrator.summary.names(Outcome.FAILED) == ['two']
    assert [c.args[0] for c in gh.create_repo.call_args_list] == [
        'one', 'two', 'three', 'four'
    ]
    assert orchestrator.git.push_mirror.call_count == 3


def test_clone_and_push_urls(cfg) -> None:
    orchestrator = _orchestrator(cfg, _records('myrepo'), _github())

    assert orchestrator.run() == 0

    temp_dir = str(Path(cfg.paths.work_dir) / 'myrepo')
    orchestrator.git.clone_mirror.assert_called_once_with(
        'git@git.example.com:alice/myrepo.git', temp_dir
    )
    orchestrator.git.push_mirror.assert_called_once_with(
        temp_dir, 'git@github.com:alice/myrepo.git'
    )
    orchestrator.gh.create_repo.assert_called_once_with(
        'myrepo', Visibility.PRIVATE, 'myrepo description'
    )


def test_report_is_written_after_live_run(cfg) -> None:
    orchestrator = _orchestrator(cfg, _records('myrepo'), _github(fail_create={'myrepo'}))

    orchestrator.run()

    report = Path(cfg.report_file).read_text(encoding='utf-8')
    assert '## Failed Migrations' in report
    assert 'myrepo: failed to create repository alice/myrepo' in report


def test_existing_destination_is_a_collision(cfg) -> None:
    gh = MagicMock()
    gh.repo_exists.return_value = True
    orchestrator = _orchestrator(cfg, _records('taken'), gh)

    result = orchestrator.migrate_repository(orchestrator.repositories[0], 1, 1)

    assert result.outcome is Outcome.FAILED
    assert 'already exists' in result.reason
    gh.create_repo.assert_not_called()


def test_leftover_temp_dir_fails_without_cloning(cfg) -> None:
    leftover = Path(cfg.paths.work_dir) / 'stale'
    leftover.mkdir(parents=True)
    orchestrator = _orchestrator(cfg, _records('stale'), _github())

    result = orchestrator.migrate_repository(orchestrator.repositories[0], 1, 1)

    assert result.outcome is Outcome.FAILED
    orchestrator.git.clone_mirror.assert_not_called()
    assert leftover.is_dir()


def test_temp_dir_removed_after_failure(cfg) -> None:
    git = MagicMock()

    def clone_mirror(url, dest):
        Path(dest).mkdir(parents=True)
        (Path(dest) / 'HEAD').write_text('ref: refs/heads/main\n', encoding='utf-8')

    git.clone_mirror.side_effect = clone_mirror
    orchestrator = _orchestrator(cfg, _records('broken'), _github(fail_create={'broken'}), git=git)

    result = orchestrator.migrate_repository(orchestrator.repositories[0], 1, 1)

    assert result.outcome is Outcome.FAILED
    assert not (Path(cfg.paths.work_dir) / 'broken').exists()


def test_dry_run_touches_nothing(cfg) -> None:
    gh = _github()
    orchestrator = _orchestrator(cfg, _records('one', 'two'), gh, options=RunOptions(dry_run=True))

    assert orchestrator.run() == 0

    assert orchestrator.summary.count(Outcome.SKIPPED) == 2
    orchestrator.git.clone_mirror.assert_not_called()
    gh.create_repo.assert_not_called()
    assert not Path(cfg.report_file).exists()


def test_preflight_failure_stops_before_any_repository(cfg) -> None:
    orchestrator = _orchestrator(cfg, _records('one'), _github())
    orchestrator.preflight.run.side_effect = PreflightError(['gh not found'])

    with pytest.raises(PreflightError):
        orchestrator.run()

    orchestrator.git.clone_mirror.assert_not_called()


def test_declined_plan_aborts(cfg) -> None:
    prompter = ConsolePrompter(input_func=lambda _prompt: 'no')
    orchestrator = _orchestrator(cfg, _records('one'), _github(), prompter=prompter)

    with pytest.raises(RunAborted):
        orchestrator.run()

    orchestrator.git.clone_mirror.assert_not_called()

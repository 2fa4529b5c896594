"""Tests for archiving the source projects."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from archiver import Archiver, migration_notice
from config import RunOptions, Visibility
from decisions import ConsolePrompter, Decision, PresetPrompter
from errors import ProjectNotFound, RunAborted, SourceApiError
from registry import RepositoryRecord
from report import Outcome
from utils import StepResult


def _records(*names: str):
    return [
        RepositoryRecord(name, Visibility.PUBLIC, '', f'git@git.example.com:alice/{name}.git')
        for name in names
    ]


def _source() -> MagicMock:
    source = MagicMock()
    source.current_username.return_value = 'alice'
    source.resolve_project_id.return_value = 42
    source.get_project.return_value = {'id': 42, 'description': 'A tool', 'archived': False}
    source.archive.return_value = {'id': 42, 'archived': True}
    source.update_description.return_value = StepResult.done()
    return source


def test_notice_keeps_original_description(cfg) -> None:
    assert migration_notice(cfg, 'myrepo', 'A tool') == (
        '⚠️ MIGRATED TO GITHUB → https://github.com/alice/myrepo'
        '\n\nOriginal description: A tool'
    )
    assert migration_notice(cfg, 'myrepo') == (
        '⚠️ MIGRATED TO GITHUB → https://github.com/alice/myrepo'
    )


def test_archive_then_update_description(cfg) -> None:
    source = _source()
    archiver = Archiver(cfg, RunOptions(), _records('myrepo'), PresetPrompter(Decision.PROCEED), source)

    assert archiver.run() == 0

    source.archive.assert_called_once_with('myrepo', 42)
    source.update_description.assert_called_once_with(
        42, migration_notice(cfg, 'myrepo', 'A tool')
    )


def test_description_failure_is_only_a_warning(cfg) -> None:
    source = _source()
    source.update_description.return_value = StepResult.failed('HTTP 403')
    archiver = Archiver(cfg, RunOptions(), _records('myrepo'), PresetPrompter(Decision.PROCEED), source)

    assert archiver.run() == 0
    assert archiver.summary.count(Outcome.SUCCESS) == 1


def test_unknown_project_fails_and_run_continues(cfg) -> None:
    source = _source()
    source.resolve_project_id.side_effect = [ProjectNotFound('gone'), 7]
    archiver = Archiver(
        cfg, RunOptions(), _records('gone', 'kept'), PresetPrompter(Decision.PROCEED), source
    )

    assert archiver.run() == 1

    assert archiver.summary.names(Outcome.FAILED) == ['gone']
    assert archiver.summary.names(Outcome.SUCCESS) == ['kept']
    source.archive.assert_called_once_with('kept', 7)


def test_confirmation_requires_typed_word(cfg) -> None:
    source = _source()
    prompter = ConsolePrompter(input_func=lambda _prompt: 'yes')
    archiver = Archiver(cfg, RunOptions(), _records('myrepo'), prompter, source)

    with pytest.raises(RunAborted):
        archiver.run()
    source.archive.assert_not_called()

    prompter = ConsolePrompter(input_func=lambda _prompt: 'ARCHIVE')
    assert Archiver(cfg, RunOptions(), _records('myrepo'), prompter, source).run() == 0
    source.archive.assert_called_once()


def test_dry_run_does_not_archive(cfg) -> None:
    source = _source()
    archiver = Archiver(
        cfg, RunOptions(dry_run=True), _records('myrepo'), PresetPrompter(Decision.PROCEED), source
    )

    assert archiver.run() == 0

    source.archive.assert_not_called()
    source.update_description.assert_not_called()


def test_unauthenticated_token_is_fatal(cfg) -> None:
    source = _source()
    source.current_username.return_value = None
    archiver = Archiver(cfg, RunOptions(), _records('myrepo'), PresetPrompter(Decision.PROCEED), source)

    with pytest.raises(SourceApiError):
        archiver.run()

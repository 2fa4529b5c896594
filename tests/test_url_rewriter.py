"""Tests for URL rewriting."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock

from config import RewriteConfig, RunOptions, Visibility
from decisions import ConsolePrompter, Decision, PresetPrompter
from registry import RepositoryRecord
from report import Outcome
from url_rewriter import (COMMIT_MESSAGE, UrlPatterns, UrlRewriter,
                          find_text_files, rewrite_file)

FIXTURE = (
    '# Project\n'
    'Clone with https://git.example.com/alice/tool.git\n'
    'or git@git.example.com:alice/tool.git\n'
    'go get git.example.com/alice/tool/cmd\n'
    'Unrelated: https://git.example.com/bob/other.git\n'
    'Fork at https://git.example.com/alice2/tool\n'
)

EXPECTED = (
    '# Project\n'
    'Clone with https://github.com/alice/tool.git\n'
    'or git@github.com:alice/tool.git\n'
    'go get github.com/alice/tool/cmd\n'
    'Unrelated: https://git.example.com/bob/other.git\n'
    'Fork at https://git.example.com/alice2/tool\n'
)


def _patterns() -> UrlPatterns:
    return UrlPatterns('git.example.com', 'alice', 'github.com', 'alice')


def _record(name: str = 'myrepo') -> RepositoryRecord:
    return RepositoryRecord(
        name, Visibility.PUBLIC, 'A tool', f'git@git.example.com:alice/{name}.git'
    )


def test_matches_each_shape_at_its_line() -> None:
    matches = _patterns().find_matches(FIXTURE)

    assert [(m.kind, m.line) for m in matches] == [
        ('https', 2),
        ('ssh', 3),
        ('bare', 4),
    ]


def test_bare_shape_not_counted_inside_https_url() -> None:
    text = 'see https://git.example.com/alice/a and git.example.com/alice/b\n'
    new_text, count = _patterns().rewrite(text)

    assert count == 2
    assert new_text == 'see https://github.com/alice/a and github.com/alice/b\n'


def test_bare_shape_matches_after_longer_host_names() -> None:
    text = 'a https://www.git.example.com/alice/x\nb notgit.example.com/alice/y\n'
    patterns = _patterns()

    assert [m.kind for m in patterns.find_matches(text)] == ['bare', 'bare']
    new_text, count = patterns.rewrite(text)
    assert count == 2
    assert new_text == 'a https://www.github.com/alice/x\nb notgithub.com/alice/y\n'


def test_rewrite_replaces_all_shapes() -> None:
    new_text, count = _patterns().rewrite(FIXTURE)

    assert count == 3
    assert new_text == EXPECTED


def test_rewrite_file_is_idempotent(tmp_path: Path) -> None:
    path = tmp_path / 'README.md'
    path.write_text(FIXTURE, encoding='utf-8')

    assert rewrite_file(str(path), _patterns()) == 3
    assert path.read_text(encoding='utf-8') == EXPECTED

    assert rewrite_file(str(path), _patterns()) == 0
    assert path.read_text(encoding='utf-8') == EXPECTED
    assert [p.name for p in tmp_path.iterdir()] == ['README.md']


def test_dry_run_counts_like_live_mode_without_writing(tmp_path: Path) -> None:
    path = tmp_path / 'README.md'
    path.write_text(FIXTURE, encoding='utf-8')

    assert rewrite_file(str(path), _patterns(), dry_run=True) == 3
    assert path.read_text(encoding='utf-8') == FIXTURE


def test_rewrite_file_keeps_line_endings(tmp_path: Path) -> None:
    path = tmp_path / 'setup.cfg.ini'
    path.write_bytes(b'url = https://git.example.com/alice/x\r\n')

    assert rewrite_file(str(path), _patterns()) == 1
    assert path.read_bytes() == b'url = https://github.com/alice/x\r\n'


def test_find_text_files_uses_allow_list(tmp_path: Path) -> None:
    (tmp_path / '.git').mkdir()
    (tmp_path / '.git' / 'config').write_text('url = x', encoding='utf-8')
    (tmp_path / '.git' / 'notes.md').write_text('x', encoding='utf-8')
    (tmp_path / 'docs').mkdir()
    (tmp_path / 'docs' / 'guide.md').write_text('x', encoding='utf-8')
    (tmp_path / 'Makefile').write_text('x', encoding='utf-8')
    (tmp_path / 'logo.png').write_bytes(b'\x89PNG')
    (tmp_path / 'main.go').write_text('x', encoding='utf-8')

    found = find_text_files(str(tmp_path), RewriteConfig())
    names = sorted(Path(p).name for p in found)
    assert names == ['Makefile', 'guide.md', 'main.go']

    docs = find_text_files(str(tmp_path), RewriteConfig(), docs_only=True)
    assert [Path(p).name for p in docs] == ['guide.md']


def _working_copy(root: str, name: str = 'myrepo') -> Path:
    repo = Path(root) / name
    (repo / '.git').mkdir(parents=True)
    (repo / 'README.md').write_text(FIXTURE, encoding='utf-8')
    return repo


def _git() -> MagicMock:
    git = MagicMock()
    git.is_work_tree.side_effect = lambda path: (Path(path) / '.git').is_dir()
    git.checkout_main.return_value = 'main'
    git.commit.return_value = True
    git.diff.return_value = ' README.md | 6 +++---'
    return git


def test_repository_is_rewritten_committed_and_pushed(cfg) -> None:
    repo = _working_copy(cfg.paths.work_dir)
    git = _git()
    rewriter = UrlRewriter(
        cfg, RunOptions(auto_commit=True), [_record()], PresetPrompter(Decision.PROCEED), git=git
    )

    result = rewriter.process_repository(_record())

    assert result.outcome is Outcome.SUCCESS
    assert (repo / 'README.md').read_text(encoding='utf-8') == EXPECTED
    git.add.assert_called_once_with(str(repo))
    git.commit.assert_called_once_with(str(repo), COMMIT_MESSAGE)
    git.push.assert_called_once_with(str(repo))
    assert rewriter.replacements == 3
    assert rewriter.pushed == ['myrepo']


def test_declined_commit_counts_as_skipped(cfg) -> None:
    repo = _working_copy(cfg.paths.work_dir)
    git = _git()
    answers = iter(['yes', 'no'])
    prompter = ConsolePrompter(input_func=lambda _prompt: next(answers))
    rewriter = UrlRewriter(cfg, RunOptions(), [_record()], prompter, git=git)

    result = rewriter.process_repository(_record())

    assert result.outcome is Outcome.SKIPPED
    assert (repo / 'README.md').read_text(encoding='utf-8') == EXPECTED
    git.commit.assert_not_called()
    git.push.assert_not_called()


def test_dry_run_reports_without_touching_files(cfg) -> None:
    repo = _working_copy(cfg.paths.work_dir)
    git = _git()
    rewriter = UrlRewriter(
        cfg, RunOptions(dry_run=True), [_record()], PresetPrompter(Decision.PROCEED), git=git
    )

    assert rewriter.run() == 0

    assert (repo / 'README.md').read_text(encoding='utf-8') == FIXTURE
    assert rewriter.replacements == 3
    assert rewriter.summary.count(Outcome.SKIPPED) == 1
    git.checkout_main.assert_not_called()
    git.commit.assert_not_called()


def test_missing_clone_is_fetched_from_destination(cfg) -> None:
    git = _git()
    rewriter = UrlRewriter(
        cfg, RunOptions(auto_commit=True), [_record()], PresetPrompter(Decision.PROCEED), git=git
    )

    result = rewriter.process_repository(_record())

    git.clone.assert_called_once_with(
        'git@github.com:alice/myrepo.git', str(Path(cfg.paths.work_dir) / 'myrepo')
    )
    assert result.outcome is Outcome.SKIPPED


def test_docs_only_works_in_doc_update_dir(cfg) -> None:
    repo = _working_copy(cfg.paths.doc_update_dir)
    (repo / 'build.sh').write_text(FIXTURE, encoding='utf-8')
    git = _git()
    rewriter = UrlRewriter(
        cfg,
        RunOptions(auto_commit=True, docs_only=True),
        [_record()],
        PresetPrompter(Decision.PROCEED),
        git=git,
    )

    result = rewriter.process_repository(_record())

    assert result.outcome is Outcome.SUCCESS
    assert (repo / 'README.md').read_text(encoding='utf-8') == EXPECTED
    assert (repo / 'build.sh').read_text(encoding='utf-8') == FIXTURE

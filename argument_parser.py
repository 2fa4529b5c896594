#!/usr/bin/env python3
"""Command line argument parsing."""

from __future__ import annotations

import argparse
from typing import List, Optional

from config import RunOptions
from config_store import DEFAULT_CONFIG_FILE
from errors import InvalidConfigValue
from logging_utils import Logger
from security import SecurityValidator

COMMANDS = (
    "generate",
    "migrate",
    "update-urls",
    "update-remotes",
    "archive",
    "deploy-workflow",
    "cleanup",
)
MAX_EXCLUDE_LENGTH = 100


def _create_argument_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser."""
    parser = argparse.ArgumentParser(
        prog="gitlab-exodus",
        description="Move a personal GitLab account's repositories to GitHub",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s generate --exclude sandbox
  %(prog)s migrate --dry-run
  %(prog)s update-urls --auto-commit
  %(prog)s update-urls --docs-only
  %(prog)s update-remotes
  %(prog)s archive --config ~/exodus/config.ini
  %(prog)s deploy-workflow
  %(prog)s cleanup --force
        """,
    )
    return parser


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    """Flags every stage accepts."""
    parser.add_argument(
        "--config",
        dest="config",
        default=DEFAULT_CONFIG_FILE,
        help=f"Path to the configuration file (default: {DEFAULT_CONFIG_FILE})",
    )
    parser.add_argument(
        "--registry",
        dest="registry",
        help="Path to the repository registry (default: paths.registry_file)",
    )
    parser.add_argument(
        "-d",
        "--dry-run",
        action="store_true",
        dest="dry_run",
        help="List actions without doing them",
    )
    parser.add_argument(
        "--no-interactive",
        action="store_false",
        dest="interactive",
        help="Never prompt; confirmations are answered with yes",
    )
    parser.add_argument(
        "-f",
        "--force",
        action="store_true",
        dest="force",
        help="Skip confirmations and continue past dirty local clones",
    )


def _add_generate_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-o",
        "--output",
        dest="output",
        help="Registry file to write (default: paths.registry_file)",
    )
    parser.add_argument(
        "--include-forks",
        action="store_true",
        dest="include_forks",
        help="Include projects forked from other repositories",
    )
    parser.add_argument(
        "--archived",
        action="store_true",
        dest="include_archived",
        help="Include archived GitLab projects",
    )
    parser.add_argument(
        "-e",
        "--exclude",
        dest="exclude",
        help="Write projects whose name contains PATTERN as excluded entries",
    )


def _add_update_urls_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--auto-commit",
        action="store_true",
        dest="auto_commit",
        help="Commit and push without asking",
    )
    parser.add_argument(
        "--docs-only",
        action="store_true",
        dest="docs_only",
        help="Only rewrite documentation files, in paths.doc_update_dir",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = _create_argument_parser()
    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")
    subparsers.required = True

    help_texts = {
        "generate": "Write repos.ini from the projects on GitLab",
        "migrate": "Mirror every registry repository to GitHub",
        "update-urls": "Rewrite GitLab URLs inside the migrated repositories",
        "update-remotes": "Point local clones at GitHub",
        "archive": "Archive the migrated projects on GitLab",
        "deploy-workflow": "Add the security workflow to every repository",
        "cleanup": "Remove temporary clones, logs and reports",
    }
    for command in COMMANDS:
        subparser = subparsers.add_parser(command, help=help_texts[command])
        _add_common_arguments(subparser)
        if command == "generate":
            _add_generate_arguments(subparser)
        elif command == "update-urls":
            _add_update_urls_arguments(subparser)
    return parser


def _validate_parsed_arguments(args: argparse.Namespace) -> None:
    """Validate and sanitize parsed arguments for security."""
    try:
        args.config = SecurityValidator.validate_file_path(args.config)
        if args.registry:
            args.registry = SecurityValidator.validate_file_path(args.registry)
        if getattr(args, "output", None):
            args.output = SecurityValidator.validate_file_path(args.output)
        exclude = getattr(args, "exclude", None)
        if exclude and len(exclude) > MAX_EXCLUDE_LENGTH:
            raise ValueError(
                f"exclude pattern too long (max {MAX_EXCLUDE_LENGTH} characters)"
            )
    except ValueError as e:
        Logger.security_event(
            "ARGUMENT_VALIDATION_FAILED", f"argument validation failed: {e}"
        )
        raise InvalidConfigValue("arguments", "", str(e)) from e


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse and validate the command line."""
    args = build_parser().parse_args(argv)
    _validate_parsed_arguments(args)
    return args


def run_options(args: argparse.Namespace) -> RunOptions:
    return RunOptions(
        dry_run=args.dry_run,
        interactive=args.interactive,
        force=args.force,
        auto_commit=getattr(args, "auto_commit", False),
        docs_only=getattr(args, "docs_only", False),
        output=getattr(args, "output", None),
        include_forks=getattr(args, "include_forks", False),
        include_archived=getattr(args, "include_archived", False),
        exclude=getattr(args, "exclude", None),
    )

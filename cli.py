#!/usr/bin/env python3
"""Command dispatch for the gitlab-exodus stages."""

from __future__ import annotations

import argparse
from typing import Callable, Dict, List, Optional

from archiver import Archiver
from argument_parser import parse_arguments, run_options
from cleanup import Cleanup
from config import Config, RunOptions
from config_store import ConfigStore
from decisions import Prompter, build_prompter
from errors import ExodusError, RunAborted
from github_target import GitHubTarget
from gitlab_source import GitLabSource
from logging_utils import Logger
from migration_orchestrator import MigrationOrchestrator
from preflight import PreflightChecker
from registry import load_local_repositories, load_repositories
from registry_generator import RegistryGenerator
from remote_updater import RemoteUpdater
from report import EXIT_FAILURE, EXIT_SUCCESS
from url_rewriter import UrlRewriter
from workflow_deployer import WorkflowDeployer


class Context:
    """Everything a stage needs, built once per invocation."""

    def __init__(
        self,
        args: argparse.Namespace,
        store: ConfigStore,
        cfg: Config,
        options: RunOptions,
        prompter: Prompter,
    ) -> None:
        self.args = args
        self.store = store
        self.cfg = cfg
        self.options = options
        self.prompter = prompter

    def repositories(self):
        return load_repositories(self.cfg, self.args.registry or "")

    def local_repositories(self):
        return load_local_repositories(self.store, self.cfg)


def _generate(ctx: Context) -> int:
    output = ctx.options.output or ctx.args.registry or ctx.cfg.paths.registry_file
    RegistryGenerator(ctx.cfg).generate(
        output,
        include_forks=ctx.options.include_forks,
        include_archived=ctx.options.include_archived,
        exclude=ctx.options.exclude,
    )
    return EXIT_SUCCESS


def _migrate(ctx: Context) -> int:
    target = GitHubTarget(ctx.cfg.destination)
    preflight = PreflightChecker(ctx.cfg, ctx.options, GitLabSource(ctx.cfg.source), target)
    return MigrationOrchestrator(
        ctx.cfg,
        ctx.options,
        ctx.repositories(),
        ctx.local_repositories(),
        ctx.prompter,
        preflight,
        gh=target,
    ).run()


def _update_urls(ctx: Context) -> int:
    return UrlRewriter(ctx.cfg, ctx.options, ctx.repositories(), ctx.prompter).run()


def _update_remotes(ctx: Context) -> int:
    return RemoteUpdater(
        ctx.cfg, ctx.options, ctx.local_repositories(), ctx.prompter
    ).run()


def _archive(ctx: Context) -> int:
    return Archiver(ctx.cfg, ctx.options, ctx.repositories(), ctx.prompter).run()


def _deploy_workflow(ctx: Context) -> int:
    return WorkflowDeployer(ctx.cfg, ctx.options, ctx.repositories(), ctx.prompter).run()


def _cleanup(ctx: Context) -> int:
    return Cleanup(ctx.cfg, ctx.options, ctx.prompter).run()


COMMAND_HANDLERS: Dict[str, Callable[[Context], int]] = {
    "generate": _generate,
    "migrate": _migrate,
    "update-urls": _update_urls,
    "update-remotes": _update_remotes,
    "archive": _archive,
    "deploy-workflow": _deploy_workflow,
    "cleanup": _cleanup,
}


def main(argv: Optional[List[str]] = None) -> int:
    try:
        args = parse_arguments(argv)
        options = run_options(args)
        store = ConfigStore(args.config)
        cfg = store.load()

        # No log file for cleanup or dry runs
        log_file = None
        if args.command != "cleanup" and not options.dry_run:
            log_file = cfg.log_file
        Logger.configure(log_file=log_file, verbose=cfg.options.verbose)
        Logger.debug(f"command: {args.command}, options: {options}")

        ctx = Context(args, store, cfg, options, build_prompter(options))
        return COMMAND_HANDLERS[args.command](ctx)
    except RunAborted as e:
        Logger.warn(str(e))
        return EXIT_FAILURE
    except ExodusError as e:
        Logger.error(f"error: {e}")
        return EXIT_FAILURE
    except KeyboardInterrupt:
        Logger.warn("interrupted by user")
        return EXIT_FAILURE

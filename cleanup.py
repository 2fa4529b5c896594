#!/usr/bin/env python3
"""Removes temporary clones and run artifacts."""

from __future__ import annotations

import os
from typing import List, Sequence

from config import Config, RunOptions
from decisions import Decision, Prompter
from logging_utils import Logger
from report import EXIT_FAILURE, EXIT_SUCCESS
from utils import directory_size, human_size, remove_tree


class Cleanup:
    def __init__(self, cfg: Config, options: RunOptions, prompter: Prompter) -> None:
        self.cfg = cfg
        self.options = options
        self.prompter = prompter

    def directories(self) -> List[str]:
        found: List[str] = []
        for path in (self.cfg.paths.work_dir, self.cfg.paths.doc_update_dir):
            path = os.path.abspath(path)
            if os.path.isdir(path) and path not in found:
                found.append(path)
        return found

    def artifacts(self) -> List[str]:
        return [
            os.path.abspath(path)
            for path in (self.cfg.log_file, self.cfg.report_file)
            if os.path.isfile(path)
        ]

    def run(self) -> int:
        Logger.section("Cleanup")
        directories = self.directories()
        artifacts = self.artifacts()

        for path in directories:
            entries = len(os.listdir(path))
            Logger.info(f"  - {path} ({human_size(directory_size(path))}, {entries} entries)")
        for path in artifacts:
            Logger.info(f"  - {path}")

        if not directories and not artifacts:
            Logger.info("no temporary directories found to clean up")
            return EXIT_SUCCESS

        if self.options.dry_run:
            Logger.info("[DRY-RUN] would remove the paths listed above")
            return EXIT_SUCCESS

        if not self.options.force:
            decision = self.prompter.confirm("Remove these temporary directories?")
            if decision is not Decision.PROCEED:
                Logger.warn("cleanup cancelled")
                return EXIT_SUCCESS

        remove_artifacts = self.options.force or (
            bool(artifacts)
            and self.prompter.confirm("Also remove log and report files?") is Decision.PROCEED
        )
        keep = [] if remove_artifacts else artifacts

        ok = True
        for path in directories:
            Logger.info(f"removing: {path}")
            if self._remove_directory(path, keep):
                Logger.success(f"removed: {path}")
            else:
                Logger.error(f"failed to remove: {path}")
                ok = False

        if remove_artifacts:
            for path in artifacts:
                if self._remove_file(path):
                    Logger.success(f"removed: {path}")
                else:
                    ok = False

        Logger.success("cleanup complete")
        return EXIT_SUCCESS if ok else EXIT_FAILURE

    @staticmethod
    def _remove_directory(path: str, keep: Sequence[str]) -> bool:
        """Remove ``path``; files listed in ``keep`` survive with their parents."""
        kept_inside = [k for k in keep if k.startswith(path + os.sep)]
        if not kept_inside:
            return remove_tree(path)
        ok = True
        for name in os.listdir(path):
            child = os.path.join(path, name)
            if any(k == child or k.startswith(child + os.sep) for k in kept_inside):
                continue
            if os.path.isdir(child) and not os.path.islink(child):
                ok = remove_tree(child) and ok
            else:
                ok = Cleanup._remove_file(child) and ok
        return ok

    @staticmethod
    def _remove_file(path: str) -> bool:
        try:
            if os.path.lexists(path):
                os.remove(path)
        except OSError as e:
            Logger.error(f"failed to remove {path}: {e}")
            return False
        return True

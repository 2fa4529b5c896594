#!/usr/bin/env python3
"""Utility functions for gitlab-exodus."""

import os
import shutil
import time
from dataclasses import dataclass
from enum import Enum
from typing import List

from logging_utils import Logger


class RateLimiter:
    """Rate limiter to respect source API limits."""

    def __init__(self, max_requests_per_minute: int = 60):
        self.max_requests = max_requests_per_minute
        self.requests: List[float] = []

    def wait_if_needed(self, operation_type: str = "API") -> None:
        """Wait if necessary to respect rate limits."""
        current_time = time.time()
        self._clean_old_requests(current_time)
        if len(self.requests) >= self.max_requests:
            wait_time = 60 - (current_time - self.requests[0])
            if wait_time > 0:
                Logger.security_event(
                    "RATE_LIMIT_HIT",
                    f"rate limit reached for {operation_type}, "
                    f"waiting {wait_time:.2f}s",
                )
                time.sleep(wait_time)
                current_time = time.time()
                self._clean_old_requests(current_time)
        self.requests.append(current_time)

    def _clean_old_requests(self, current_time: float) -> None:
        """Remove requests older than 1 minute."""
        cutoff_time = current_time - 60
        self.requests = [
            req_time for req_time in self.requests if req_time > cutoff_time
        ]


class StepStatus(Enum):
    """Outcome of a best-effort step."""
    OK = "ok"
    NOT_APPLICABLE = "not-applicable"
    FAILED = "failed"


@dataclass(frozen=True)
class StepResult:
    status: StepStatus
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.status is StepStatus.OK

    @classmethod
    def done(cls, message: str = "") -> "StepResult":
        return cls(StepStatus.OK, message)

    @classmethod
    def not_applicable(cls, message: str = "") -> "StepResult":
        return cls(StepStatus.NOT_APPLICABLE, message)

    @classmethod
    def failed(cls, message: str = "") -> "StepResult":
        return cls(StepStatus.FAILED, message)


def remove_tree(path: str) -> bool:
    """Remove a clone directory, including read-only git objects.

    Returns False when the directory could not be removed.
    """
    if not path or not os.path.exists(path):
        return True
    try:
        # Git marks pack files read-only
        for root, dirs, files in os.walk(path):
            for d in dirs:
                os.chmod(os.path.join(root, d), 0o700)
            for f in files:
                os.chmod(os.path.join(root, f), 0o600)
        shutil.rmtree(path)
        Logger.debug(f"removed directory: {path}")
        return True
    except OSError as e:
        Logger.warn(f"failed to remove directory {path}: {e}")
        return False


def free_disk_space_mb(path: str) -> int:
    """Free space on the filesystem that holds ``path`` (or its nearest parent)."""
    probe = os.path.abspath(path)
    while not os.path.exists(probe):
        parent = os.path.dirname(probe)
        if parent == probe:
            break
        probe = parent
    return shutil.disk_usage(probe).free // (1024 * 1024)


def directory_size(path: str) -> int:
    total = 0
    for root, _dirs, files in os.walk(path):
        for name in files:
            file_path = os.path.join(root, name)
            if not os.path.islink(file_path):
                try:
                    total += os.path.getsize(file_path)
                except OSError:
                    continue
    return total


def human_size(num_bytes: int) -> str:
    size = float(num_bytes)
    for unit in ("B", "KB", "MB", "GB"):
        if size < 1024:
            return f"{size:.1f}{unit}" if unit != "B" else f"{int(size)}B"
        size /= 1024
    return f"{size:.1f}TB"

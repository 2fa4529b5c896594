#!/usr/bin/env python3
"""Exception hierarchy for gitlab-exodus."""

from __future__ import annotations

from typing import Optional, Sequence


class ExodusError(Exception):
    """Base class for every error raised by gitlab-exodus."""


# Fatal errors: raised before any repository is touched.


class ConfigNotFound(ExodusError):
    def __init__(self, path: str) -> None:
        super().__init__(f"configuration file not found: {path}")
        self.path = path


class MissingRequiredKey(ExodusError):
    def __init__(self, name: str) -> None:
        super().__init__(f"{name} not configured")
        self.name = name


class ConfigSyntaxError(ExodusError):
    """config.ini could not be parsed at all."""


class InvalidConfigValue(ExodusError):
    def __init__(self, name: str, value: str, reason: str) -> None:
        super().__init__(f"invalid value for {name}: {value!r} ({reason})")
        self.name = name
        self.value = value


class RegistryMissing(ExodusError):
    def __init__(self, path: str) -> None:
        super().__init__(
            f"registry file not found: {path} "
            "(run 'gitlab-exodus generate' first)"
        )
        self.path = path


class RegistryFormatError(ExodusError):
    def __init__(self, path: str, line_no: int, reason: str) -> None:
        super().__init__(f"{path}:{line_no}: {reason}")
        self.path = path
        self.line_no = line_no


class PreflightError(ExodusError):
    def __init__(self, failures: Sequence[str]) -> None:
        super().__init__("pre-flight checks failed: " + "; ".join(failures))
        self.failures = list(failures)


class TemplateMissing(ExodusError):
    def __init__(self, path: str) -> None:
        super().__init__(f"workflow template not found: {path}")
        self.path = path


class RunAborted(ExodusError):
    """The user chose to stop the whole run."""


# Per-repository errors: the repository is marked failed and the run goes on.


class GitCommandError(ExodusError):
    def __init__(
        self, args: Sequence[str], returncode: int, output: Optional[str] = None
    ) -> None:
        command = " ".join(args)
        message = f"git command failed ({returncode}): {command}"
        if output:
            message = f"{message}: {output.strip()}"
        super().__init__(message)
        self.args_list = list(args)
        self.returncode = returncode
        self.output = output or ""


class DestinationError(ExodusError):
    """The destination host CLI returned an unexpected failure."""


class SourceApiError(ExodusError):
    """The source host REST API could not be reached or answered badly."""


class ProjectNotFound(SourceApiError):
    def __init__(self, name: str) -> None:
        super().__init__(f"could not find project id for {name}")
        self.name = name


class ArchiveFailed(SourceApiError):
    def __init__(self, name: str, detail: str = "") -> None:
        message = f"failed to archive {name}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)
        self.name = name

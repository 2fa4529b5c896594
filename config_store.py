#!/usr/bin/env python3
"""Reads config.ini into an immutable :class:`config.Config`."""

from __future__ import annotations

import configparser
import os
from typing import List, Optional, Tuple

from config import (Config, DestinationConfig, OptionsConfig, PathsConfig,
                    RewriteConfig, SourceConfig)
from errors import (ConfigNotFound, ConfigSyntaxError, InvalidConfigValue,
                    MissingRequiredKey)
from logging_utils import Logger
from security import SecurityValidator

DEFAULT_CONFIG_FILE = "config.ini"
DEFAULT_REGISTRY_FILE_NAME = "repos.ini"

REQUIRED_KEYS: Tuple[Tuple[str, str], ...] = (
    ("source", "host"),
    ("source", "user"),
    ("source", "api_token"),
    ("destination", "host"),
    ("destination", "user"),
    ("paths", "work_dir"),
    ("paths", "doc_update_dir"),
    ("paths", "local_repo_root"),
    ("options", "min_disk_space_mb"),
    ("options", "ssh_timeout"),
    ("options", "verbose"),
)


def _strip_comment(value: str) -> str:
    return value.split("#", 1)[0].strip()


class ConfigStore:
    """Section-scoped access to a key/value configuration file.

    Values may carry trailing ``# comments``; they are stripped together
    with surrounding whitespace. A key with an empty value followed by
    indented lines is an array, see :meth:`get_array`. Repeated sections are
    merged and a later assignment of the same key wins.
    """

    def __init__(self, path: str = DEFAULT_CONFIG_FILE) -> None:
        self.path = path
        self._parser: Optional[configparser.ConfigParser] = None

    def read(self) -> "ConfigStore":
        if not os.path.isfile(self.path):
            raise ConfigNotFound(self.path)

        parser = configparser.ConfigParser(
            delimiters=("=",),
            comment_prefixes=("#", ";"),
            interpolation=None,
            strict=False,
        )
        try:
            with open(self.path, encoding="utf-8") as handle:
                parser.read_file(handle, source=self.path)
        except configparser.Error as e:
            raise ConfigSyntaxError(f"{self.path}: {e}") from e
        self._parser = parser
        return self

    def _raw(self, section: str, key: str) -> Optional[str]:
        if self._parser is None:
            self.read()
        assert self._parser is not None
        if not self._parser.has_option(section, key):
            return None
        return self._parser.get(section, key, raw=True)

    def get(self, section: str, key: str) -> str:
        """Return the single-line value of ``section.key`` or ``""``."""
        raw = self._raw(section, key)
        if raw is None:
            return ""
        return _strip_comment(raw.split("\n", 1)[0])

    def get_array(self, section: str, key: str) -> List[str]:
        """Return the value and its indented continuation lines, in order."""
        raw = self._raw(section, key)
        if raw is None:
            return []
        values = []
        for line in raw.splitlines():
            value = _strip_comment(line)
            if value:
                values.append(value)
        return values

    def load(self) -> Config:
        """Build and validate the run configuration."""
        self.read()

        for section, key in REQUIRED_KEYS:
            if not self.get(section, key):
                raise MissingRequiredKey(f"{section}.{key}")

        source = SourceConfig(
            host=self._validated("source", "host", SecurityValidator.validate_host),
            user=self._validated("source", "user", SecurityValidator.validate_username),
            api_token=self.get("source", "api_token"),
        )
        destination = DestinationConfig(
            host=self._validated("destination", "host", SecurityValidator.validate_host),
            user=self._validated(
                "destination", "user", SecurityValidator.validate_username
            ),
        )

        local_repo_root = self._path("local_repo_root")
        registry_file = self.get("paths", "registry_file") or os.path.join(
            os.path.dirname(os.path.abspath(self.path)), DEFAULT_REGISTRY_FILE_NAME
        )
        workflow_template = self.get("paths", "workflow_template") or os.path.join(
            local_repo_root, "github-templates", "workflows", "security.yml"
        )
        paths = PathsConfig(
            work_dir=self._path("work_dir"),
            doc_update_dir=self._path("doc_update_dir"),
            local_repo_root=local_repo_root,
            registry_file=SecurityValidator.validate_file_path(registry_file),
            workflow_template=SecurityValidator.validate_file_path(workflow_template),
        )

        options = OptionsConfig(
            min_disk_space_mb=self._int("min_disk_space_mb"),
            ssh_timeout=self._int("ssh_timeout"),
            verbose=self._bool("verbose"),
        )

        rewrite = RewriteConfig()
        extensions = self.get_array("url_rewrite", "extensions")
        filenames = self.get_array("url_rewrite", "filenames")
        if extensions or filenames:
            rewrite = RewriteConfig(
                extensions=tuple(ext.lstrip(".") for ext in extensions)
                or rewrite.extensions,
                filenames=tuple(filenames) or rewrite.filenames,
            )

        Logger.debug(f"loaded configuration from {self.path}")
        return Config(
            source=source,
            destination=destination,
            paths=paths,
            options=options,
            rewrite=rewrite,
        )

    def _validated(self, section: str, key: str, validator) -> str:
        value = self.get(section, key)
        try:
            return validator(value)
        except ValueError as e:
            raise InvalidConfigValue(f"{section}.{key}", value, str(e)) from e

    def _path(self, key: str) -> str:
        return self._validated("paths", key, SecurityValidator.validate_file_path)

    def _int(self, key: str) -> int:
        value = self.get("options", key)
        try:
            number = int(value)
        except ValueError as e:
            raise InvalidConfigValue(f"options.{key}", value, "not an integer") from e
        if number < 0:
            raise InvalidConfigValue(f"options.{key}", value, "must not be negative")
        return number

    def _bool(self, key: str) -> bool:
        value = self.get("options", key).lower()
        if value not in configparser.ConfigParser.BOOLEAN_STATES:
            raise InvalidConfigValue(f"options.{key}", value, "not a boolean")
        return configparser.ConfigParser.BOOLEAN_STATES[value]

#!/usr/bin/env python3
"""Security validation utilities for gitlab-exodus."""

import os
import re


class SecurityValidator:
    """Security validation utilities for input sanitization and validation."""

    # Maximum lengths to prevent buffer overflow attacks
    MAX_REPO_NAME_LENGTH = 100
    MAX_HOST_LENGTH = 253
    MAX_USERNAME_LENGTH = 100
    MAX_PATH_LENGTH = 500

    # Allowed characters for various inputs
    SAFE_REPO_NAME_PATTERN = re.compile(r"^[A-Za-z0-9._-]+$")
    SAFE_USERNAME_PATTERN = re.compile(r"^[A-Za-z0-9._-]+$")
    SAFE_HOST_PATTERN = re.compile(r"^[A-Za-z0-9.-]+(:[0-9]{1,5})?$")

    @classmethod
    def validate_repo_name(cls, name: str) -> str:
        """Validate a registry repository name.

        Unlike a sanitizer this never rewrites the name: the name is used
        verbatim as local directory and remote slug, so anything unsafe is
        rejected.
        """
        if not name or not isinstance(name, str):
            raise ValueError("repository name must be a non-empty string")

        if len(name) > cls.MAX_REPO_NAME_LENGTH:
            raise ValueError(
                f"repository name exceeds maximum length of {cls.MAX_REPO_NAME_LENGTH}"
            )

        # Check for path traversal attempts
        if ".." in name or "/" in name or "\\" in name:
            raise ValueError("repository name contains invalid path characters")

        if not cls.SAFE_REPO_NAME_PATTERN.match(name):
            raise ValueError(f"repository name contains invalid characters: {name}")

        return name

    @classmethod
    def validate_host(cls, host: str) -> str:
        """Validate a bare host name (optionally with port)."""
        if not host or not isinstance(host, str):
            raise ValueError("host must be a non-empty string")

        if len(host) > cls.MAX_HOST_LENGTH:
            raise ValueError(f"host exceeds maximum length of {cls.MAX_HOST_LENGTH}")

        if "://" in host or "/" in host:
            raise ValueError("host must not contain a scheme or path")

        if not cls.SAFE_HOST_PATTERN.match(host):
            raise ValueError("host contains invalid characters")

        return host.lower()

    @classmethod
    def validate_username(cls, username: str) -> str:
        """Validate username for security."""
        if not username or not isinstance(username, str):
            raise ValueError("username must be a non-empty string")

        if len(username) > cls.MAX_USERNAME_LENGTH:
            raise ValueError(
                f"username exceeds maximum length of {cls.MAX_USERNAME_LENGTH}"
            )

        if not cls.SAFE_USERNAME_PATTERN.match(username):
            raise ValueError("username contains invalid characters")

        return username

    @classmethod
    def validate_file_path(cls, path: str) -> str:
        """Validate file path and expand the user's home directory."""
        if not path or not isinstance(path, str):
            raise ValueError("file path must be a non-empty string")

        if len(path) > cls.MAX_PATH_LENGTH:
            raise ValueError(
                f"file path exceeds maximum length of {cls.MAX_PATH_LENGTH}"
            )

        # Check for null bytes
        if "\x00" in path:
            raise ValueError("file path contains null bytes")

        return os.path.normpath(os.path.expanduser(path))

    @classmethod
    def sanitize_for_logging(cls, message: str) -> str:
        """Sanitize message for safe logging by removing potential credentials."""
        if not message:
            return message

        # Patterns to redact
        patterns = [
            (r"https://[^:/@\s]+:[^@\s]+@", "https://[REDACTED]@"),  # URLs with credentials
            (r"token\s*[=:]\s*[^\s]+", "token=[REDACTED]"),  # Token assignments and headers
            (r"password\s*[=:]\s*[^\s]+", "password=[REDACTED]"),  # Password assignments
            (r"glpat-[A-Za-z0-9_-]+", "[GITLAB_TOKEN_REDACTED]"),  # GitLab tokens
            (r"gh[pousr]_[A-Za-z0-9_]+", "[GITHUB_TOKEN_REDACTED]"),  # GitHub tokens
        ]

        sanitized = message
        for pattern, replacement in patterns:
            sanitized = re.sub(pattern, replacement, sanitized, flags=re.IGNORECASE)

        return sanitized

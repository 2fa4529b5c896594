#!/usr/bin/env python3
"""Logging utilities for gitlab-exodus."""

import os
import sys
import time
from typing import Optional

import colorama

from security import SecurityValidator

# Initialize colorama for cross-platform colored output
colorama.init(autoreset=True)


class Logger:
    """Handles formatted console output with colors and security-aware logging.

    Every line can also be appended to a plain-text log file, see
    :meth:`configure`.
    """

    PROCESS_NAME = "gitlab-exodus"

    _log_file: Optional[str] = None
    _verbose: bool = False

    @classmethod
    def configure(cls, log_file: Optional[str] = None, verbose: bool = False) -> None:
        cls._log_file = log_file
        cls._verbose = verbose
        if log_file:
            directory = os.path.dirname(log_file)
            if directory:
                os.makedirs(directory, exist_ok=True)

    @classmethod
    def debug(cls, *messages: str) -> None:
        sanitized_messages = cls._sanitize(messages)
        cls._append_to_file("DEBUG", *sanitized_messages)
        if cls._verbose:
            cls._write_stdout(colorama.Fore.LIGHTBLACK_EX, *sanitized_messages)

    @classmethod
    def info(cls, *messages: str) -> None:
        sanitized_messages = cls._sanitize(messages)
        cls._append_to_file("INFO", *sanitized_messages)
        cls._write_stdout(colorama.Fore.CYAN, *sanitized_messages)

    @classmethod
    def success(cls, *messages: str) -> None:
        sanitized_messages = cls._sanitize(messages)
        cls._append_to_file("INFO", *sanitized_messages)
        cls._write_stdout(colorama.Fore.GREEN, *sanitized_messages)

    @classmethod
    def warn(cls, *messages: str) -> None:
        sanitized_messages = cls._sanitize(messages)
        cls._append_to_file("WARNING", *sanitized_messages)
        cls._write_stdout(colorama.Fore.YELLOW, *sanitized_messages)

    @classmethod
    def error(cls, *messages: str) -> None:
        sanitized_messages = cls._sanitize(messages)
        cls._append_to_file("ERROR", *sanitized_messages)
        cls._write_stderr(colorama.Fore.RED, *sanitized_messages)

    @classmethod
    def section(cls, title: str) -> None:
        cls._append_to_file("INFO", f"--- {title} ---")
        sys.stdout.write(
            f"\n{colorama.Style.BRIGHT}{colorama.Fore.BLUE}--- {title} ---"
            f"{colorama.Style.RESET_ALL}\n"
        )

    @classmethod
    def security_event(cls, event_type: str, details: str) -> None:
        """Log security events with appropriate sanitization."""
        sanitized_details = SecurityValidator.sanitize_for_logging(details)
        timestamp = time.strftime("%Y-%m-%d %H:%M:%S")
        line = f"[SECURITY:{event_type}] {timestamp}: {sanitized_details}"
        cls._append_to_file("SECURITY", line)
        cls._write_stderr(colorama.Fore.MAGENTA, line)

    @classmethod
    def _sanitize(cls, messages) -> list:
        return [SecurityValidator.sanitize_for_logging(str(msg)) for msg in messages]

    @classmethod
    def _append_to_file(cls, level: str, *messages: str) -> None:
        if not cls._log_file:
            return
        timestamp = time.strftime("%Y-%m-%d %H:%M:%S")
        message = " ".join(str(m) for m in messages)
        with open(cls._log_file, "a", encoding="utf-8") as handle:
            handle.write(f"[{timestamp}] [{level}] {message}\n")

    @classmethod
    def _write_stdout(cls, color: str, *messages: str) -> None:
        sys.stdout.write(cls._format_line(color, *messages) + "\n")

    @classmethod
    def _write_stderr(cls, color: str, *messages: str) -> None:
        sys.stderr.write(cls._format_line(color, *messages) + "\n")

    @classmethod
    def _get_header(cls) -> str:
        return f"[{cls.PROCESS_NAME}:{os.getpid()}]"

    @classmethod
    def _format_line(cls, color: str, *messages: str) -> str:
        header = cls._get_header()
        message = " ".join(str(m) for m in messages)
        return f"{color}{header}{colorama.Style.RESET_ALL} {message}"

#!/usr/bin/env python3
"""
GitLab Exodus - Move every repository of a personal GitLab account to GitHub.

The stages run independently and in order: generate the registry, mirror
the repositories, rewrite URLs inside them, repoint local clones, archive
the GitLab originals, deploy a security workflow and clean up.
"""

from __future__ import annotations

import sys
from typing import NoReturn

from cli import main as run

# Exit codes
EXIT_EXECUTION_ERROR = 1


def main() -> NoReturn:
    if __name__ != "__main__":
        sys.exit(EXIT_EXECUTION_ERROR)

    sys.exit(run(sys.argv[1:]))


if __name__ == "__main__":
    main()

"""Source-control information recorded alongside baseline snapshots."""

from __future__ import annotations

import logging
import subprocess
from typing import Protocol

logger = logging.getLogger(__name__)

UNKNOWN = "unknown"


class GitInfoProvider(Protocol):
    def branch(self) -> str: ...

    def commit(self) -> str: ...


def _git(*args: str, cwd: str | None = None) -> str:
    try:
        result = subprocess.run(
            ["git", *args],
            cwd=cwd,
            capture_output=True,
            text=True,
            timeout=10,
            check=True,
        )
    except (OSError, subprocess.SubprocessError) as e:
        logger.debug("git %s failed: %s", " ".join(args), e)
        return UNKNOWN
    return result.stdout.strip() or UNKNOWN


class SubprocessGitInfo:
    """Reads the branch and revision by shelling out to git."""

    def __init__(self, cwd: str | None = None):
        self.cwd = cwd

    def branch(self) -> str:
        return _git("branch", "--show-current", cwd=self.cwd)

    def commit(self) -> str:
        return _git("rev-parse", "HEAD", cwd=self.cwd)

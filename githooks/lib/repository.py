"""Thin wrapper around the git command line.

Only what dispatch needs: locating the git dir, listing configuration and
answering ancestry queries for reference classification. Anything richer
(commit metadata, diffs) belongs to plugins.
"""

from __future__ import annotations

import logging
import os
import subprocess
from functools import cached_property
from pathlib import Path

logger = logging.getLogger(__name__)


class GitCommandError(RuntimeError):
    """A git subcommand exited non-zero."""

    def __init__(self, args: list[str], returncode: int, stderr: str):
        self.args_ = args
        self.returncode = returncode
        self.stderr = stderr
        super().__init__(f"git {' '.join(args)} failed ({returncode}): {stderr.strip()}")


class GitRepository:
    def __init__(self, git_dir: str | Path | None = None, cwd: str | Path | None = None):
        self._git_dir = Path(git_dir) if git_dir else None
        self.cwd = Path(cwd) if cwd else None

    def _env(self) -> dict[str, str]:
        env = os.environ.copy()
        if self._git_dir is not None:
            env["GIT_DIR"] = str(self._git_dir)
        return env

    def command(self, *args: str) -> str:
        """Run ``git <args>`` and return its stdout.

        Raises:
            GitCommandError: If git exits non-zero.
        """
        argv = list(args)
        logger.debug("git %s", " ".join(argv))
        result = subprocess.run(
            ["git", *argv],
            cwd=self.cwd,
            env=self._env(),
            capture_output=True,
            text=True,
        )
        if result.returncode != 0:
            raise GitCommandError(argv, result.returncode, result.stderr)
        return result.stdout

    @cached_property
    def git_dir(self) -> Path:
        """Absolute path of the repository's git dir."""
        if self._git_dir is not None:
            return self._git_dir.resolve()
        out = self.command("rev-parse", "--git-dir").strip()
        path = Path(out)
        if not path.is_absolute():
            path = (self.cwd or Path.cwd()) / path
        return path.resolve()

    def config_entries(self) -> list[tuple[str, str]]:
        """All configuration entries in ``git config --list`` order.

        Git lists system, global and local scopes in that order, so later
        entries override earlier ones. A key given without ``=value`` is an
        implicit boolean true.
        """
        try:
            out = self.command("config", "--null", "--list")
        except GitCommandError as e:
            # No config files at all is not an error for us
            logger.debug("git config --list failed: %s", e)
            return []

        entries = []
        for record in out.split("\0"):
            if not record:
                continue
            key, sep, value = record.partition("\n")
            entries.append((key, value if sep else "true"))
        return entries

    def merge_base(self, a: str, b: str) -> str | None:
        """Best common ancestor of two commits, or None if they share none."""
        try:
            return self.command("merge-base", a, b).strip() or None
        except GitCommandError:
            return None

    def is_ancestor(self, old: str, new: str) -> bool:
        """True if ``old`` is reachable from ``new`` (a fast-forward)."""
        return self.merge_base(old, new) == old

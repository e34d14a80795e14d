"""
Git client implementation for mobilectl.

This module wraps the Git commands required by the changelog engine:
reading the commit log for a range, listing tags and resolving the
remote URL. All subprocess calls go through :meth:`GitClient._run` so
that unit tests can mock a single seam.
"""

from __future__ import annotations

import logging
import re
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional


logger = logging.getLogger(__name__)
# Attach a null handler to avoid logging errors when the root logger is not
# configured. Logs will propagate to the root when configured by the CLI.
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


# Field and record separators used in ``git log --format``. Commit
# subjects and bodies never contain NUL or the ASCII record separator.
FIELD_SEP = "\x00"
RECORD_SEP = "\x1e"
LOG_FORMAT = "%H%x00%h%x00%an%x00%aI%x00%s%x00%b%x1e"


@dataclass
class LogEntry:
    """Raw fields of one commit as reported by ``git log``."""

    hash: str
    short_hash: str
    author: str
    date: str
    subject: str
    body: str


class GitError(Exception):
    """Raised when a Git command fails."""

    pass


class GitClient:
    """Client for interacting with a Git repository."""

    def __init__(self, repo_root: Path) -> None:
        self.repo_root = repo_root

    # ------------------------------------------------------------------
    # Static helpers
    # ------------------------------------------------------------------
    @staticmethod
    def find_repo_root(start: Path) -> Optional[Path]:
        """Find the root of the Git repository starting from ``start``.

        Walk upwards until a ``.git`` directory is found or the filesystem
        root is reached.
        """
        current = start.resolve()
        while True:
            if (current / ".git").exists():
                return current
            if current.parent == current:
                return None
            current = current.parent

    # ------------------------------------------------------------------
    # Basic Git commands
    # ------------------------------------------------------------------
    def _run(self, args: List[str], check: bool = True) -> subprocess.CompletedProcess:
        """Run a Git command in the repository root.

        Raises
        ------
        GitError
            If the command exits with a non-zero status when ``check`` is
            True, or if the ``git`` executable cannot be found.
        """
        full_cmd = ["git"] + args
        logger.debug("Executing Git command: %s", " ".join(full_cmd))
        try:
            result = subprocess.run(
                full_cmd,
                cwd=self.repo_root,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                encoding="utf-8",
                errors="replace",
            )
        except FileNotFoundError as e:
            raise GitError("git executable not found on PATH") from e

        if check and result.returncode != 0:
            logger.error(
                "Git command failed: %s\nSTDOUT: %s\nSTDERR: %s",
                " ".join(full_cmd),
                result.stdout,
                result.stderr,
            )
            raise GitError(result.stderr.strip() or result.stdout.strip())
        return result

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------
    def log(self, revision_range: str) -> List[LogEntry]:
        """Return the commits of ``revision_range``, newest first.

        Parameters
        ----------
        revision_range : str
            Any range understood by ``git log`` (``HEAD``, ``v1.0..HEAD``,
            ``abc123..HEAD``).

        Raises
        ------
        GitError
            If the range cannot be resolved.
        """
        result = self._run(["log", f"--format={LOG_FORMAT}", revision_range], check=True)
        entries: List[LogEntry] = []
        for record in result.stdout.split(RECORD_SEP):
            record = record.strip("\n")
            if not record.strip():
                continue
            fields = record.split(FIELD_SEP)
            if len(fields) < 6:
                logger.debug("Skipping malformed log record: %r", record)
                continue
            entries.append(LogEntry(
                hash=fields[0].strip(),
                short_hash=fields[1].strip(),
                author=fields[2].strip(),
                date=fields[3].strip(),
                subject=fields[4].strip(),
                body=fields[5].strip(),
            ))
        return entries

    def has_commits(self) -> bool:
        """Return True if HEAD points at a commit."""
        result = self._run(["rev-parse", "--verify", "--quiet", "HEAD"], check=False)
        return result.returncode == 0

    # ------------------------------------------------------------------
    # Tags
    # ------------------------------------------------------------------
    def latest_tag(self) -> Optional[str]:
        """Return the most recent tag reachable from HEAD, if any."""
        result = self._run(["describe", "--tags", "--abbrev=0"], check=False)
        if result.returncode != 0:
            return None
        tag = result.stdout.strip()
        return tag or None

    def head_tag(self) -> Optional[str]:
        """Return the tag pointing exactly at HEAD, if any."""
        result = self._run(["describe", "--tags", "--exact-match", "HEAD"], check=False)
        if result.returncode != 0:
            return None
        tag = result.stdout.strip()
        return tag or None

    def list_tags(self) -> List[str]:
        """Return all tags sorted by version, newest first."""
        result = self._run(["tag", "-l", "--sort=-version:refname"], check=True)
        return [line.strip() for line in result.stdout.splitlines() if line.strip()]

    def tag_date(self, tag: str) -> Optional[str]:
        """Return the ISO-8601 author date of the commit ``tag`` points at."""
        result = self._run(["log", "-1", "--format=%aI", tag], check=False)
        if result.returncode != 0:
            return None
        return result.stdout.strip() or None

    # ------------------------------------------------------------------
    # Remotes
    # ------------------------------------------------------------------
    def remote_url(self, remote: str = "origin") -> Optional[str]:
        """Return the configured URL of ``remote`` or None."""
        result = self._run(["config", "--get", f"remote.{remote}.url"], check=False)
        url = result.stdout.strip()
        return url or None

    def web_url(self, remote: str = "origin") -> Optional[str]:
        """Return the https URL of the repository on its hosting service.

        SSH remotes (``git@host:owner/repo.git``) are converted to
        ``https://host/owner/repo``; a trailing ``.git`` is removed.
        """
        url = self.remote_url(remote)
        if not url:
            return None
        if url.startswith("git@"):
            url = re.sub(r"^git@([^:]+):", r"https://\1/", url)
        elif url.startswith("ssh://"):
            url = re.sub(r"^ssh://(?:[^@/]+@)?([^/:]+)(?::\d+)?/", r"https://\1/", url)
        url = re.sub(r"\.git$", "", url)
        return url.rstrip("/")

"""
Conventional commit parsing.

:class:`CommitParser` is the narrow interface the orchestrator depends
on; :class:`GitCommitParser` implements it on top of
:class:`~mobilectl.vcs.git_client.GitClient`. Tests substitute an
in-memory parser.

Commit subjects are expected in the form ``type(scope): message`` with
an optional scope. Subjects that do not follow this grammar are skipped.
A commit is breaking when its body contains a ``BREAKING CHANGE:``
footer, whatever its type.
"""

from __future__ import annotations

import datetime
import logging
import re
from abc import ABC, abstractmethod
from typing import List, Optional

from mobilectl.changelog.models import Commit
from mobilectl.config.models import CommitType
from mobilectl.vcs.git_client import GitClient, LogEntry


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


SUBJECT_PATTERN = re.compile(r"^(?P<type>\w+)(?:\((?P<scope>[\w.-]+)\))?:\s*(?P<message>.+)$")
BREAKING_PATTERN = re.compile(r"^BREAKING[ -]CHANGE:", re.MULTILINE)


def is_breaking(body: Optional[str]) -> bool:
    """Return True if ``body`` contains a breaking-change footer."""
    return bool(body) and BREAKING_PATTERN.search(body) is not None


def parse_commit_message(message: str, commit_types: List[CommitType]) -> Optional[Commit]:
    """Parse a full commit message into a :class:`Commit`.

    The first line is the subject, the remaining lines form the body.
    If the type matches a configured commit type case-insensitively, the
    configured spelling is used. Hash, author and date are left empty;
    :class:`GitCommitParser` fills them in from ``git log``.

    Returns
    -------
    Commit or None
        None when the subject does not follow the ``type(scope): message``
        grammar.
    """
    subject, _, body = message.strip("\n").partition("\n")
    match = SUBJECT_PATTERN.match(subject.strip())
    if match is None:
        return None

    commit_type = match.group("type")
    for configured in commit_types:
        if configured.key.lower() == commit_type.lower():
            commit_type = configured.key
            break

    body = body.strip()
    return Commit(
        hash="",
        short_hash="",
        type=commit_type,
        scope=match.group("scope"),
        message=match.group("message").strip(),
        body=body or None,
        breaking=is_breaking(body),
    )


class CommitParser(ABC):
    """Source of parsed commits and tag information."""

    @abstractmethod
    def parse_commits(self, from_tag: Optional[str] = None, to_tag: Optional[str] = None) -> List[Commit]:
        """Return the conventional commits in ``from_tag..to_tag``, newest first.

        Either bound may be omitted: no ``from_tag`` means full history,
        no ``to_tag`` means ``HEAD``.
        """

    @abstractmethod
    def parse_commits_since_hash(self, commit_hash: str) -> List[Commit]:
        """Return the commits made after ``commit_hash`` (exclusive), newest first."""

    @abstractmethod
    def get_latest_tag(self) -> Optional[str]:
        """Return the most recent tag reachable from HEAD."""

    @abstractmethod
    def get_head_tag(self) -> Optional[str]:
        """Return the tag on the newest commit, or None if HEAD is untagged."""

    @abstractmethod
    def get_all_tags(self) -> List[str]:
        """Return all tags, newest version first."""

    @abstractmethod
    def get_tag_date(self, tag: str) -> Optional[datetime.date]:
        """Return the date of the commit ``tag`` points at."""

    @abstractmethod
    def parse_commit_message(self, message: str, commit_types: List[CommitType]) -> Optional[Commit]:
        """Parse one commit message; None if it is not a conventional commit."""

    @abstractmethod
    def get_compare_url(self, from_tag: str, to_tag: str) -> str:
        """Return a web URL comparing two tags, or an empty string."""


class GitCommitParser(CommitParser):
    """:class:`CommitParser` backed by the ``git`` command line."""

    def __init__(self, client: GitClient, commit_types: Optional[List[CommitType]] = None) -> None:
        self.client = client
        self.commit_types = list(commit_types or [])

    def parse_commits(self, from_tag: Optional[str] = None, to_tag: Optional[str] = None) -> List[Commit]:
        if from_tag and to_tag:
            revision_range = f"{from_tag}..{to_tag}"
        elif from_tag:
            revision_range = f"{from_tag}..HEAD"
        elif to_tag:
            revision_range = to_tag
        else:
            # A repository without commits has no HEAD to log.
            if not self.client.has_commits():
                return []
            revision_range = "HEAD"
        return self._parse_range(revision_range)

    def parse_commits_since_hash(self, commit_hash: str) -> List[Commit]:
        return self._parse_range(f"{commit_hash}..HEAD")

    def get_latest_tag(self) -> Optional[str]:
        return self.client.latest_tag()

    def get_head_tag(self) -> Optional[str]:
        return self.client.head_tag()

    def get_all_tags(self) -> List[str]:
        return self.client.list_tags()

    def get_tag_date(self, tag: str) -> Optional[datetime.date]:
        return _parse_date(self.client.tag_date(tag))

    def parse_commit_message(self, message: str, commit_types: List[CommitType]) -> Optional[Commit]:
        return parse_commit_message(message, commit_types)

    def get_compare_url(self, from_tag: str, to_tag: str) -> str:
        base = self.client.web_url()
        if not base:
            return ""
        return f"{base}/compare/{from_tag}...{to_tag}"

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _parse_range(self, revision_range: str) -> List[Commit]:
        entries = self.client.log(revision_range)
        commits = [c for c in (self._to_commit(e) for e in entries) if c is not None]
        skipped = len(entries) - len(commits)
        if skipped:
            logger.debug("Skipped %d non-conventional commit(s) in %s", skipped, revision_range)
        logger.debug("Parsed %d commit(s) from %s", len(commits), revision_range)
        return commits

    def _to_commit(self, entry: LogEntry) -> Optional[Commit]:
        message = entry.subject if not entry.body else f"{entry.subject}\n\n{entry.body}"
        parsed = parse_commit_message(message, self.commit_types)
        if parsed is None:
            return None
        return Commit(
            hash=entry.hash,
            short_hash=entry.short_hash,
            type=parsed.type,
            scope=parsed.scope,
            message=parsed.message,
            body=parsed.body,
            author=entry.author or None,
            date=_parse_date(entry.date),
            breaking=parsed.breaking,
        )


def _parse_date(value: Optional[str]) -> Optional[datetime.date]:
    if not value:
        return None
    try:
        return datetime.date.fromisoformat(value[:10])
    except ValueError:
        logger.debug("Unparseable commit date: %r", value)
        return None

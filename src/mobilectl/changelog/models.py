"""
Data models shared by the changelog engine.

:class:`Commit` is the parsed form of a single version-control commit,
:class:`BackupInfo` describes one snapshot of a changelog file,
:class:`ChangelogState` is the persisted marker of what has already
been included, and :class:`GenerationResult` is what the orchestrator
returns to its caller. :class:`Result` carries the outcome of fallible
backup operations without raising.
"""

from __future__ import annotations

import datetime
from dataclasses import asdict, dataclass, fields
from typing import Any, Dict, Generic, Optional, TypeVar


T = TypeVar("T")


@dataclass(frozen=True)
class Commit:
    """A parsed commit.

    Attributes
    ----------
    hash : str
        Full commit hash.
    short_hash : str
        Abbreviated hash as reported by Git.
    type : str
        Conventional Commit type taken from the subject. Not guaranteed
        to match a configured :class:`~mobilectl.config.models.CommitType`.
    scope : str, optional
        Scope in parentheses after the type.
    message : str
        Free text after the colon, kept verbatim.
    body : str, optional
        Commit body.
    author : str, optional
        Author name.
    date : date, optional
        Author date.
    breaking : bool
        True if the commit declares a breaking change.
    """

    hash: str
    short_hash: str
    type: str
    message: str
    scope: Optional[str] = None
    body: Optional[str] = None
    author: Optional[str] = None
    date: Optional[datetime.date] = None
    breaking: bool = False


@dataclass(frozen=True)
class BackupInfo:
    """One snapshot of a changelog file in the backup directory."""

    id: str
    timestamp: datetime.datetime
    file_path: str
    size: int


@dataclass
class ChangelogState:
    """Marker of the last commit already written to the changelog."""

    last_commit_hash: Optional[str] = None
    last_tag: Optional[str] = None
    last_generated_at: Optional[str] = None
    last_range: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return not self.last_commit_hash

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ChangelogState":
        """Build a state from ``data``.

        Unknown keys and values that are not strings are ignored, so a
        hand-edited file degrades to a partial or empty state.
        """
        known = {f.name for f in fields(cls)}
        return cls(**{
            key: value for key, value in data.items()
            if key in known and isinstance(value, str)
        })


@dataclass
class GenerationResult:
    """Outcome of :meth:`ChangelogOrchestrator.generate`."""

    success: bool
    content: Optional[str] = None
    commit_count: int = 0
    error: Optional[str] = None
    changelog_path: Optional[str] = None
    version: Optional[str] = None


@dataclass
class Result(Generic[T]):
    """Explicit success/failure value for fallible operations.

    Call sites branch on :attr:`success` rather than catching
    exceptions.
    """

    success: bool
    value: Optional[T] = None
    error: Optional[str] = None

    @classmethod
    def ok(cls, value: Optional[T] = None) -> "Result[T]":
        return cls(success=True, value=value)

    @classmethod
    def fail(cls, error: str) -> "Result[T]":
        return cls(success=False, error=error)

    @property
    def failed(self) -> bool:
        return not self.success

"""
Data models for the changelog section of the project configuration.

The models mirror the ``changelog:`` block of ``mobileops.yaml``. They
are plain dataclasses so that tests can build them directly without a
configuration file on disk.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional


SUPPORTED_FORMATS = ("markdown",)


@dataclass
class CommitType:
    """A changelog-worthy commit category.

    Attributes
    ----------
    key : str
        The Conventional Commit type (``feat``, ``fix``, ...).
    label : str
        Section title used in the rendered changelog.
    emoji : str
        Emoji prefix for the section title.
    """

    key: str
    label: str
    emoji: str = ""


@dataclass
class ReleaseNotes:
    """Manually authored notes merged into a version section."""

    highlights: Optional[str] = None
    breaking_changes: List[str] = field(default_factory=list)
    contributors: List[str] = field(default_factory=list)


def default_commit_types() -> List[CommitType]:
    return [
        CommitType("feat", "Features", "✨"),
        CommitType("fix", "Bug Fixes", "🐛"),
        CommitType("docs", "Documentation", "📚"),
        CommitType("perf", "Performance", "⚡"),
        CommitType("test", "Tests", "✅"),
        CommitType("chore", "Chores", "🔧"),
    ]


@dataclass
class ChangelogConfig:
    """Settings consumed by the changelog orchestrator.

    The order of ``commit_types`` defines the order of the rendered
    sections. Commit types not listed here never appear in the output.
    """

    enabled: bool = False
    format: str = "markdown"
    output_file: str = "CHANGELOG.md"
    from_tag: Optional[str] = None
    append: bool = True
    use_last_state: bool = True
    include_contributors: bool = True
    include_stats: bool = True
    include_compare_links: bool = True
    commit_types: List[CommitType] = field(default_factory=default_commit_types)
    releases: Dict[str, ReleaseNotes] = field(default_factory=dict)

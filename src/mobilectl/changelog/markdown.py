"""
Markdown rendering of changelog sections.

A generation run renders one version section::

    ## [1.5.0] - 2024-05-01

    ### 📢 Highlights
    ### ✨ Features
    ### 🐛 Bug Fixes
    ### ⚠ BREAKING CHANGES
    [View all changes](...)
    ### 👥 Contributors
    ### 📊 Stats

Commit-type sections follow the order of the configured commit types.
Commits of unconfigured types are left out of those sections, but a
breaking commit always appears under ``BREAKING CHANGES``.
"""

from __future__ import annotations

import datetime
from collections import Counter
from typing import Dict, List, Optional

from mobilectl.changelog.models import Commit
from mobilectl.config.models import ChangelogConfig, CommitType, ReleaseNotes


CHANGELOG_HEADER = "# Changelog"
BREAKING_HEADER = "### ⚠ BREAKING CHANGES"
HIGHLIGHTS_HEADER = "### 📢 Highlights"
CONTRIBUTORS_HEADER = "### 👥 Contributors"
STATS_HEADER = "### 📊 Stats"
UNRELEASED = "Unreleased"
MAX_CONTRIBUTORS = 10


def group_commits(commits: List[Commit], commit_types: List[CommitType]) -> Dict[str, List[Commit]]:
    """Group ``commits`` by configured type, in configured order.

    Types without commits and commits without a configured type are
    omitted. Commit order inside a group is preserved.
    """
    groups: Dict[str, List[Commit]] = {}
    for commit_type in commit_types:
        matching = [c for c in commits if c.type == commit_type.key]
        if matching:
            groups[commit_type.key] = matching
    return groups


def format_entry(commit: Commit) -> str:
    scope = f"**{commit.scope}:** " if commit.scope else ""
    refs = [ref for ref in (commit.short_hash, commit.author) if ref]
    suffix = f" ({', '.join(refs)})" if refs else ""
    return f"- {scope}{commit.message}{suffix}"


def breaking_note(commit: Commit) -> Optional[str]:
    """Return the text of the ``BREAKING CHANGE:`` footer of ``commit``."""
    for line in (commit.body or "").splitlines():
        for marker in ("BREAKING CHANGE:", "BREAKING-CHANGE:"):
            if line.startswith(marker):
                return line[len(marker):].strip() or None
    return None


def render_section(
    commits: List[Commit],
    config: ChangelogConfig,
    version: Optional[str] = None,
    version_date: Optional[datetime.date] = None,
    compare_url: Optional[str] = None,
) -> str:
    """Render the version section for ``commits``.

    Parameters
    ----------
    commits : List[Commit]
        Commits of this run, newest first.
    config : ChangelogConfig
        Commit types, release notes and optional-section toggles.
    version : str, optional
        Version label without a ``v`` prefix; ``Unreleased`` if omitted.
    version_date : date, optional
        Date appended to the version header.
    compare_url : str, optional
        Link to the full diff, rendered when compare links are enabled.
    """
    label = version or UNRELEASED
    notes = config.releases.get(label, ReleaseNotes())
    header = f"## [{label}]"
    if version_date is not None:
        header += f" - {version_date.isoformat()}"
    lines: List[str] = [header, ""]

    if notes.highlights:
        lines += [HIGHLIGHTS_HEADER, "", notes.highlights, ""]

    groups = group_commits(commits, config.commit_types)
    for commit_type in config.commit_types:
        if commit_type.key not in groups:
            continue
        title = f"{commit_type.emoji} {commit_type.label}" if commit_type.emoji else commit_type.label
        lines += [f"### {title}", ""]
        lines += [format_entry(c) for c in groups[commit_type.key]]
        lines.append("")

    breaking = [c for c in commits if c.breaking]
    if breaking or notes.breaking_changes:
        lines += [BREAKING_HEADER, ""]
        lines += [f"- {item}" for item in notes.breaking_changes]
        for commit in breaking:
            lines.append(format_entry(commit))
            note = breaking_note(commit)
            if note:
                lines.append(f"  - {note}")
        lines.append("")

    if config.include_compare_links and compare_url:
        lines += [f"[View all changes]({compare_url})", ""]

    if config.include_contributors:
        contributors = _contributor_lines(commits, notes)
        if contributors:
            lines += [CONTRIBUTORS_HEADER, ""] + contributors + [""]

    if config.include_stats:
        lines += [STATS_HEADER, ""] + _stats_lines(commits) + [""]

    return "\n".join(lines).rstrip("\n") + "\n"


def render_document(section: str) -> str:
    """Return a complete changelog containing only ``section``."""
    return f"{CHANGELOG_HEADER}\n\n{section}"


def merge_section(section: str, existing: Optional[str]) -> str:
    """Insert ``section`` above the version sections of ``existing``.

    Text before the first ``## `` heading (the title and any manual
    introduction) stays on top; everything from the first version
    section on is kept verbatim below the new section. A changelog
    without a top-level title gets one.
    """
    if not existing or not existing.strip():
        return render_document(section)

    lines = existing.splitlines(keepends=True)
    first_version = next((i for i, line in enumerate(lines) if line.startswith("## ")), len(lines))
    preamble = "".join(lines[:first_version]).rstrip("\n")
    rest = "".join(lines[first_version:])

    if not any(line.startswith("# ") for line in lines[:first_version]):
        preamble = f"{CHANGELOG_HEADER}\n\n{preamble}".rstrip("\n")

    body = section.rstrip("\n")
    merged = f"{preamble}\n\n{body}\n"
    if rest:
        merged += f"\n{rest}"
    return merged


def _contributor_lines(commits: List[Commit], notes: ReleaseNotes) -> List[str]:
    counts = Counter(c.author or "Unknown" for c in commits)
    ranked = sorted(counts.items(), key=lambda item: (-item[1], item[0]))[:MAX_CONTRIBUTORS]
    lines = [f"- {author} ({count} commit{'s' if count != 1 else ''})" for author, count in ranked]
    lines += [f"- {name}" for name in notes.contributors if name not in counts]
    return lines


def _stats_lines(commits: List[Commit]) -> List[str]:
    authors = {c.author or "Unknown" for c in commits}
    lines = [
        f"- Total commits: {len(commits)}",
        f"- Contributors: {len(authors)}",
    ]
    breaking = sum(1 for c in commits if c.breaking)
    if breaking:
        lines.append(f"- Breaking changes: {breaking}")
    return lines

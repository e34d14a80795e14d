"""
Changelog generation.

:class:`ChangelogOrchestrator` ties the collaborators together. One call
to :meth:`ChangelogOrchestrator.generate`:

1. resolves the commit range (explicit tag, saved state, configured tag
   or full history) and asks the parser for the commits in it;
2. fails if the range holds no commits, since that usually points at a
   misconfigured range;
3. renders a Markdown version section and, in append mode, inserts it
   above the existing changelog;
4. stops there on a dry run, otherwise writes the file through the
   writer and records the newest commit in the state.

Collaborator errors never escape; they are reported through
:class:`~mobilectl.changelog.models.GenerationResult`.
"""

from __future__ import annotations

import copy
import datetime
import logging
from pathlib import Path
from typing import Callable, List, Optional, Tuple

from mobilectl.changelog.backup_manager import FileSystemBackupManager
from mobilectl.changelog.commit_parser import CommitParser, GitCommitParser
from mobilectl.changelog.markdown import UNRELEASED, merge_section, render_document, render_section
from mobilectl.changelog.models import ChangelogState, Commit, GenerationResult
from mobilectl.changelog.state import JsonStateManager, StateManager
from mobilectl.changelog.writer import ChangelogWriter, SafeChangelogWriter
from mobilectl.config.models import ChangelogConfig
from mobilectl.vcs.git_client import GitClient


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


class ChangelogOrchestrator:
    """Generate changelog sections from commit history.

    Parameters
    ----------
    parser : CommitParser
        Source of commits and tags.
    writer : ChangelogWriter
        Reads and replaces the changelog file.
    state_manager : StateManager
        Stores the last processed commit.
    config : ChangelogConfig
        Copied on construction; the caller's object is never modified.
    output_path : str, optional
        Location of the changelog file. Defaults to ``config.output_file``.
    clock : callable, optional
        Returns the current time; injectable for tests.
    """

    def __init__(
        self,
        parser: CommitParser,
        writer: ChangelogWriter,
        state_manager: StateManager,
        config: ChangelogConfig,
        output_path: Optional[str] = None,
        clock: Optional[Callable[[], datetime.datetime]] = None,
    ) -> None:
        self.parser = parser
        self.writer = writer
        self.state_manager = state_manager
        self.config = copy.deepcopy(config)
        self.output_path = output_path or self.config.output_file
        self._clock = clock or datetime.datetime.now

    def generate(
        self,
        from_tag: Optional[str] = None,
        dry_run: bool = False,
        append: Optional[bool] = None,
        use_last_state: Optional[bool] = None,
        version: Optional[str] = None,
    ) -> GenerationResult:
        """Generate the changelog for the resolved commit range.

        Parameters
        ----------
        from_tag : str, optional
            Start of the range (exclusive). Takes precedence over the
            saved state and ``config.from_tag``.
        dry_run : bool
            Render only; no backup, file write or state update happens.
        append : bool, optional
            Insert the new section above the existing changelog instead
            of replacing the file. Defaults to ``config.append``.
        use_last_state : bool, optional
            Start after the last processed commit if a state exists.
            Defaults to ``config.use_last_state``.
        version : str, optional
            Version label of the new section. Defaults to the tag on HEAD
            without its ``v`` prefix, or ``Unreleased``.

        Returns
        -------
        GenerationResult
            ``content`` holds the full changelog that is (or, on a dry
            run, would be) written.
        """
        if append is None:
            append = self.config.append
        if use_last_state is None:
            use_last_state = self.config.use_last_state

        try:
            commits, range_desc = self._resolve_commits(from_tag, use_last_state)
            if not commits:
                logger.info("No commits found in %s", range_desc)
                return GenerationResult(
                    success=False,
                    error=f"No commits found ({range_desc})",
                    changelog_path=self.output_path,
                )

            label, tag = self._resolve_version(version)
            section = render_section(
                commits,
                self.config,
                version=label,
                version_date=self.parser.get_tag_date(tag) if tag else None,
                compare_url=self._compare_url(tag),
            )

            if append:
                content = merge_section(section, self.writer.read(self.output_path))
            else:
                content = render_document(section)

            result = GenerationResult(
                success=True,
                content=content,
                commit_count=len(commits),
                changelog_path=self.output_path,
                version=label,
            )
            if dry_run:
                logger.debug("Dry run: %d commit(s) rendered, nothing written", len(commits))
                return result

            if not self.writer.write(content, self.output_path):
                error = getattr(self.writer, "last_error", None)
                result.success = False
                result.error = error or f"Failed to write changelog to {self.output_path}"
                return result

            self._save_state(commits[0], tag, range_desc)
            return result
        except Exception as exc:
            logger.debug("Changelog generation failed", exc_info=True)
            return GenerationResult(success=False, error=str(exc) or exc.__class__.__name__)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _resolve_commits(self, from_tag: Optional[str], use_last_state: bool) -> Tuple[List[Commit], str]:
        if from_tag:
            return self.parser.parse_commits(from_tag, None), f"{from_tag}..HEAD"

        if use_last_state:
            state = self.state_manager.get_state()
            if not state.is_empty:
                since = state.last_commit_hash
                logger.debug("Generating changes since %s", since)
                return self.parser.parse_commits_since_hash(since), f"{since[:7]}..HEAD"

        if self.config.from_tag:
            return self.parser.parse_commits(self.config.from_tag, None), f"{self.config.from_tag}..HEAD"

        return self.parser.parse_commits(None, None), "full history"

    def _resolve_version(self, version: Optional[str]) -> Tuple[str, Optional[str]]:
        """Return the version label and the tag it corresponds to, if any.

        Without an explicit version, a tag names the section only when it
        sits on HEAD. Commits made after the latest tag are unreleased.
        """
        if version:
            label = _strip_v(version)
            tags = self.parser.get_all_tags()
            tag = next((t for t in (version, label, f"v{label}") if t in tags), None)
            return label, tag

        tag = self.parser.get_head_tag()
        if tag:
            return _strip_v(tag), tag
        return UNRELEASED, None

    def _compare_url(self, tag: Optional[str]) -> Optional[str]:
        if not self.config.include_compare_links:
            return None
        if tag is None:
            latest = self.parser.get_latest_tag()
            return (self.parser.get_compare_url(latest, "HEAD") or None) if latest else None
        tags = self.parser.get_all_tags()
        if tag not in tags:
            return None
        index = tags.index(tag)
        if index + 1 >= len(tags):
            return None
        return self.parser.get_compare_url(tags[index + 1], tag) or None

    def _save_state(self, newest: Commit, tag: Optional[str], range_desc: str) -> None:
        previous = self.state_manager.get_state()
        state = ChangelogState(
            last_commit_hash=newest.hash,
            last_tag=tag,
            last_generated_at=self._next_timestamp(previous.last_generated_at),
            last_range=range_desc,
        )
        if not self.state_manager.save_state(state):
            logger.warning("Changelog written but state could not be saved")

    def _next_timestamp(self, previous: Optional[str]) -> str:
        """Return the current time, kept strictly after ``previous``."""
        now = self._clock()
        if previous:
            try:
                last = datetime.datetime.fromisoformat(previous)
            except ValueError:
                last = None
            if last is not None and last.tzinfo == now.tzinfo and now <= last:
                now = last + datetime.timedelta(microseconds=1)
        return now.isoformat(timespec="microseconds")


def _strip_v(tag: str) -> str:
    return tag[1:] if tag[:1] in ("v", "V") and tag[1:2].isdigit() else tag


def create_orchestrator(project_root: Path, config: ChangelogConfig) -> ChangelogOrchestrator:
    """Wire the Git, file-system and JSON collaborators for ``project_root``.

    Backups and state live under ``<project_root>/.mobilectl``; a relative
    ``config.output_file`` is resolved against ``project_root``.
    """
    root = Path(project_root)
    output = Path(config.output_file)
    if not output.is_absolute():
        output = root / output
    return ChangelogOrchestrator(
        parser=GitCommitParser(GitClient(root), config.commit_types),
        writer=SafeChangelogWriter(FileSystemBackupManager.for_project(root)),
        state_manager=JsonStateManager.for_project(root),
        config=config,
        output_path=str(output),
    )

"""
Persistence of the changelog generation state.

The state records the newest commit already written to the changelog
so that the next run only renders the commits made since. It is stored
as a small JSON file, ``<project>/.mobilectl/changelog-state.json``.
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path

from mobilectl.changelog.backup_manager import STATE_DIRNAME
from mobilectl.changelog.models import ChangelogState


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


STATE_FILENAME = "changelog-state.json"


class StateManager(ABC):
    """Loads and stores the :class:`ChangelogState`."""

    @abstractmethod
    def get_state(self) -> ChangelogState:
        """Return the saved state, or an empty one if none was saved."""

    @abstractmethod
    def save_state(self, state: ChangelogState) -> bool:
        """Persist ``state``; return True on success."""


class JsonStateManager(StateManager):
    """:class:`StateManager` backed by a JSON file."""

    def __init__(self, state_file: Path) -> None:
        self.state_file = Path(state_file)

    @classmethod
    def for_project(cls, project_root: Path) -> "JsonStateManager":
        return cls(Path(project_root) / STATE_DIRNAME / STATE_FILENAME)

    def get_state(self) -> ChangelogState:
        if not self.state_file.exists():
            return ChangelogState()
        try:
            data = json.loads(self.state_file.read_text(encoding="utf-8"))
        # ValueError covers both invalid JSON and undecodable bytes.
        except (OSError, ValueError) as exc:
            logger.warning("Ignoring unreadable changelog state %s: %s", self.state_file, exc)
            return ChangelogState()
        if not isinstance(data, dict):
            logger.warning("Ignoring malformed changelog state %s", self.state_file)
            return ChangelogState()
        return ChangelogState.from_dict(data)

    def save_state(self, state: ChangelogState) -> bool:
        try:
            self.state_file.parent.mkdir(parents=True, exist_ok=True)
            self.state_file.write_text(
                json.dumps(state.to_dict(), indent=2, sort_keys=True) + "\n",
                encoding="utf-8",
            )
        except OSError as exc:
            logger.error("Failed to save changelog state to %s: %s", self.state_file, exc)
            return False
        logger.debug("Saved changelog state: %s", state)
        return True

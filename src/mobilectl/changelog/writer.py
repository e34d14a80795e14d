"""
Reading and writing the changelog file.

:class:`SafeChangelogWriter` never changes a byte of an existing
changelog before a backup of it exists. The new content replaces the
whole file through a temporary sibling and an atomic rename, so readers
never see a half-written changelog.
"""

from __future__ import annotations

import logging
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

from mobilectl.changelog.backup_manager import DEFAULT_KEEP_COUNT, BackupManager
from mobilectl.changelog.models import BackupInfo


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


class ChangelogWriter(ABC):
    """Reads and replaces changelog files."""

    @abstractmethod
    def write(self, content: str, file_path: str) -> bool:
        """Replace ``file_path`` with ``content``; return True on success."""

    @abstractmethod
    def read(self, file_path: str) -> Optional[str]:
        """Return the content of ``file_path`` or None if it does not exist."""


class SafeChangelogWriter(ChangelogWriter):
    """Changelog writer that backs up the target before replacing it.

    Parameters
    ----------
    backup_manager : BackupManager
        Snapshot store consulted before every overwrite.
    keep_count : int, optional
        Number of snapshots kept after a successful write. ``None``
        disables pruning.
    """

    def __init__(self, backup_manager: BackupManager, keep_count: Optional[int] = DEFAULT_KEEP_COUNT) -> None:
        self.backup_manager = backup_manager
        self.keep_count = keep_count
        self.last_error: Optional[str] = None

    def write(self, content: str, file_path: str) -> bool:
        self.last_error = None
        target = Path(file_path)

        backup = None
        if target.exists():
            result = self.backup_manager.create_backup(str(target))
            if result.failed:
                # Without a snapshot the existing changelog could be lost.
                return self._fail(f"Refusing to overwrite {target}: {result.error}")
            backup = result.value

        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            _replace_file(target, content)
        except OSError as exc:
            self._restore(backup, target)
            return self._fail(f"Failed to write {target}: {exc}")

        if self.read(str(target)) != content:
            self._restore(backup, target)
            return self._fail(f"Write verification failed for {target}")

        if self.keep_count is not None:
            pruned = self.backup_manager.delete_old_backups(self.keep_count)
            if pruned.failed:
                logger.warning("Could not prune old backups: %s", pruned.error)

        logger.debug("Wrote %d characters to %s", len(content), target)
        return True

    def read(self, file_path: str) -> Optional[str]:
        path = Path(file_path)
        if not path.exists():
            return None
        with open(path, "r", encoding="utf-8", newline="") as f:
            return f.read()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _fail(self, message: str) -> bool:
        logger.error(message)
        self.last_error = message
        return False

    def _restore(self, backup: Optional[BackupInfo], target: Path) -> None:
        if backup is None:
            return
        restored = self.backup_manager.restore_backup(backup.id, str(target))
        if restored.success:
            logger.warning("Restored %s from backup %s", target, backup.id)
        else:
            logger.error("Could not restore %s from backup %s: %s", target, backup.id, restored.error)


def _replace_file(target: Path, content: str) -> None:
    """Write ``content`` to a temporary sibling of ``target`` and rename it."""
    fd, tmp_name = tempfile.mkstemp(dir=target.parent, prefix=f".{target.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
            f.write(content)
        os.replace(tmp_name, target)
    finally:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)

"""
Snapshots of changelog files.

Before the changelog is overwritten, :class:`FileSystemBackupManager`
copies its current bytes into a dedicated backup directory, by default
``<project>/.mobilectl/changelog-backups/``. Each snapshot is stored as
``<stem>@<YYYY-MM-DD_HH-MM-SS-mmm><suffix>`` and its id is the file name
without the suffix, so ids sort lexically by creation time.

All operations return a :class:`~mobilectl.changelog.models.Result`
rather than raising.
"""

from __future__ import annotations

import datetime
import logging
import os
import re
import shutil
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Optional, Tuple

from mobilectl.changelog.models import BackupInfo, Result


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


STATE_DIRNAME = ".mobilectl"
BACKUP_DIRNAME = "changelog-backups"
ID_SEPARATOR = "@"
TIMESTAMP_FORMAT = "%Y-%m-%d_%H-%M-%S"
TIMESTAMP_PATTERN = r"\d{4}-\d{2}-\d{2}_\d{2}-\d{2}-\d{2}-\d{3}"
DEFAULT_KEEP_COUNT = 10


def format_timestamp(moment: datetime.datetime) -> str:
    """Format ``moment`` with millisecond precision for a backup id."""
    return f"{moment.strftime(TIMESTAMP_FORMAT)}-{moment.microsecond // 1000:03d}"


def parse_timestamp(text: str) -> datetime.datetime:
    """Inverse of :func:`format_timestamp`."""
    stamp, _, millis = text.rpartition("-")
    moment = datetime.datetime.strptime(stamp, TIMESTAMP_FORMAT)
    return moment.replace(microsecond=int(millis) * 1000)


class BackupManager(ABC):
    """Creates, lists, restores and prunes changelog snapshots."""

    @abstractmethod
    def create_backup(self, file_path: str) -> Result[BackupInfo]:
        """Snapshot ``file_path``. Succeeds with no value if the file is absent."""

    @abstractmethod
    def list_backups(self, file_path: str) -> List[BackupInfo]:
        """Return the snapshots of ``file_path``, newest first."""

    @abstractmethod
    def restore_backup(self, backup_id: str, target_path: str) -> Result[bool]:
        """Copy snapshot ``backup_id`` over ``target_path``."""

    @abstractmethod
    def delete_backup(self, backup_id: str) -> Result[bool]:
        """Remove snapshot ``backup_id``."""

    @abstractmethod
    def delete_old_backups(self, keep_count: int = DEFAULT_KEEP_COUNT) -> Result[int]:
        """Keep the ``keep_count`` newest snapshots and delete the rest."""


class FileSystemBackupManager(BackupManager):
    """:class:`BackupManager` storing full copies in a flat directory.

    Parameters
    ----------
    backup_dir : Path
        Directory holding the snapshots of every tracked file. It is
        created on the first backup.
    """

    def __init__(self, backup_dir: Path) -> None:
        self.backup_dir = Path(backup_dir)

    @classmethod
    def for_project(cls, project_root: Path) -> "FileSystemBackupManager":
        """Return a manager using ``<project_root>/.mobilectl/changelog-backups``."""
        return cls(Path(project_root) / STATE_DIRNAME / BACKUP_DIRNAME)

    # ------------------------------------------------------------------
    # BackupManager interface
    # ------------------------------------------------------------------
    def create_backup(self, file_path: str) -> Result[BackupInfo]:
        source = Path(file_path)
        if not source.exists():
            logger.debug("Nothing to back up; %s does not exist", source)
            return Result.ok(None)

        try:
            self.backup_dir.mkdir(parents=True, exist_ok=True)
            backup_id, timestamp, backup_path = self._allocate(source)
            # Copy to a temporary file first so a failed copy never leaves a
            # truncated snapshot that looks valid.
            fd, tmp_name = tempfile.mkstemp(dir=self.backup_dir, prefix=".tmp-", suffix=source.suffix)
            os.close(fd)
            try:
                shutil.copyfile(source, tmp_name)
                os.replace(tmp_name, backup_path)
            finally:
                if os.path.exists(tmp_name):
                    os.unlink(tmp_name)
            info = self._info(backup_path, backup_id, timestamp)
        except OSError as exc:
            logger.error("Failed to back up %s: %s", source, exc)
            return Result.fail(f"Failed to create backup of {source}: {exc}")

        logger.debug("Created backup %s (%d bytes)", info.id, info.size)
        return Result.ok(info)

    def list_backups(self, file_path: str) -> List[BackupInfo]:
        stem = Path(file_path).stem
        pattern = re.compile(rf"^{re.escape(stem)}{ID_SEPARATOR}({TIMESTAMP_PATTERN})$")
        backups = []
        for path, backup_id, timestamp in self._scan():
            if pattern.match(backup_id):
                backups.append(self._info(path, backup_id, timestamp))
        return sorted(backups, key=lambda b: b.timestamp, reverse=True)

    def restore_backup(self, backup_id: str, target_path: str) -> Result[bool]:
        backup_path = self._find(backup_id)
        if backup_path is None:
            return Result.fail(f"Backup '{backup_id}' not found")

        target = Path(target_path)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=target.parent, prefix=f".{target.name}.", suffix=".tmp")
            os.close(fd)
            try:
                shutil.copyfile(backup_path, tmp_name)
                os.replace(tmp_name, target)
            finally:
                if os.path.exists(tmp_name):
                    os.unlink(tmp_name)
        except OSError as exc:
            logger.error("Failed to restore %s: %s", backup_id, exc)
            return Result.fail(f"Failed to restore backup '{backup_id}': {exc}")

        if target.stat().st_size != backup_path.stat().st_size:
            return Result.fail("Restore verification failed")

        logger.info("Restored backup %s to %s", backup_id, target)
        return Result.ok(True)

    def delete_backup(self, backup_id: str) -> Result[bool]:
        backup_path = self._find(backup_id)
        if backup_path is None:
            return Result.fail(f"Backup '{backup_id}' not found")
        try:
            backup_path.unlink()
        except OSError as exc:
            logger.error("Failed to delete backup %s: %s", backup_id, exc)
            return Result.fail(f"Failed to delete backup '{backup_id}': {exc}")
        logger.debug("Deleted backup %s", backup_id)
        return Result.ok(True)

    def delete_old_backups(self, keep_count: int = DEFAULT_KEEP_COUNT) -> Result[int]:
        if keep_count < 0:
            return Result.fail("keep_count must not be negative")

        try:
            backups = sorted(self._scan(), key=lambda entry: entry[2], reverse=True)
        except OSError as exc:
            return Result.fail(f"Failed to list backups: {exc}")

        deleted = 0
        for path, backup_id, _ in backups[keep_count:]:
            try:
                path.unlink()
                deleted += 1
            except OSError as exc:
                logger.warning("Could not delete old backup %s: %s", backup_id, exc)
        if deleted:
            logger.debug("Pruned %d old backup(s), kept %d", deleted, keep_count)
        return Result.ok(deleted)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _allocate(self, source: Path) -> Tuple[str, datetime.datetime, Path]:
        """Pick an unused id for a new snapshot of ``source``.

        Retention orders snapshots of all files by timestamp, so no two
        snapshots in the directory may share one. A timestamp already in
        use is advanced by a millisecond until it is free.
        """
        taken = {timestamp for _, _, timestamp in self._scan()}
        timestamp = datetime.datetime.now()
        timestamp = timestamp.replace(microsecond=(timestamp.microsecond // 1000) * 1000)
        while timestamp in taken:
            timestamp += datetime.timedelta(milliseconds=1)
        backup_id = f"{source.stem}{ID_SEPARATOR}{format_timestamp(timestamp)}"
        return backup_id, timestamp, self.backup_dir / f"{backup_id}{source.suffix}"

    def _scan(self) -> List[Tuple[Path, str, datetime.datetime]]:
        """Return ``(path, id, timestamp)`` for every snapshot in the directory."""
        if not self.backup_dir.is_dir():
            return []
        entries = []
        for path in self.backup_dir.iterdir():
            if not path.is_file() or path.name.startswith("."):
                continue
            backup_id = _strip_suffix(path.name)
            _, sep, stamp = backup_id.rpartition(ID_SEPARATOR)
            if not sep or not re.fullmatch(TIMESTAMP_PATTERN, stamp):
                continue
            try:
                timestamp = parse_timestamp(stamp)
            except ValueError:
                continue
            entries.append((path, backup_id, timestamp))
        return entries

    def _find(self, backup_id: str) -> Optional[Path]:
        for path, candidate, _ in self._scan():
            if candidate == backup_id:
                return path
        return None

    @staticmethod
    def _info(path: Path, backup_id: str, timestamp: datetime.datetime) -> BackupInfo:
        return BackupInfo(
            id=backup_id,
            timestamp=timestamp,
            file_path=str(path.resolve()),
            size=path.stat().st_size,
        )


def _strip_suffix(name: str) -> str:
    """Drop the extension after the timestamp, keeping dots in the stem."""
    match = re.match(rf"^(.*{ID_SEPARATOR}{TIMESTAMP_PATTERN})(\..*)?$", name)
    return match.group(1) if match else name

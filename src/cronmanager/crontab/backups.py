"""Timestamped crontab backups with retention.

Backups are plain copies of the crontab text named
``crontab-<timestamp>.bak`` in a single directory.
"""

import logging
from datetime import datetime, timedelta
from pathlib import Path

from cronmanager.crontab.errors import BackupNotFoundError, InvalidBackupPathError
from cronmanager.crontab.types import BackupInfo

logger = logging.getLogger(__name__)

BACKUP_PREFIX = "crontab-"
BACKUP_SUFFIX = ".bak"


class BackupStore:
    """File-based store for crontab backups.

    Example:
        store = BackupStore("~/.cron-manager/backups")
        store.create(current_text)
        for backup in store.list_backups():
            print(backup.filename)
    """

    def __init__(self, directory: str | Path) -> None:
        """Initialize the backup store.

        Args:
            directory: Directory holding the backup files.
        """
        self._directory = Path(directory).expanduser()

    @property
    def directory(self) -> Path:
        """Get the backup directory."""
        return self._directory

    def create(self, content: str, now: datetime | None = None) -> Path | None:
        """Save a backup of crontab content.

        Args:
            content: Crontab text.
            now: Timestamp for the file name (defaults to local now).

        Returns:
            Path of the new backup, or None when there was nothing to save.
        """
        if not content:
            return None

        now = now or datetime.now()
        self._directory.mkdir(parents=True, exist_ok=True)

        path = self._directory / f"{BACKUP_PREFIX}{now:%Y-%m-%dT%H-%M-%S-%f}{BACKUP_SUFFIX}"
        path.write_text(content, encoding="utf-8")
        logger.info(f"Created crontab backup: {path.name}")
        return path

    def list_backups(self) -> list[BackupInfo]:
        """List backups, most recent first.

        Returns:
            Backup descriptions ordered by modification time.
        """
        if not self._directory.is_dir():
            return []

        backups = []
        for path in self._directory.glob(f"{BACKUP_PREFIX}*{BACKUP_SUFFIX}"):
            stat = path.stat()
            backups.append(BackupInfo(
                filename=path.name,
                path=path,
                timestamp=datetime.fromtimestamp(stat.st_mtime).astimezone(),
                size=stat.st_size,
            ))

        return sorted(backups, key=lambda b: b.timestamp, reverse=True)

    def cleanup(
        self,
        max_backups: int,
        max_backup_days: int,
        now: datetime | None = None,
    ) -> int:
        """Delete old backups.

        A backup is deleted only if it is not among the ``max_backups``
        most recent ones AND is older than ``max_backup_days``.

        Args:
            max_backups: Number of recent backups always kept.
            max_backup_days: Age in days after which extra backups go.
            now: Current time (defaults to local now).

        Returns:
            Number of backups deleted.
        """
        now = (now or datetime.now()).astimezone()
        cutoff = now - timedelta(days=max_backup_days)
        removed = 0

        for backup in self.list_backups()[max(max_backups, 0):]:
            if backup.timestamp < cutoff:
                try:
                    backup.path.unlink()
                    removed += 1
                except OSError as e:
                    logger.warning(f"Could not delete backup {backup.filename}: {e}")

        if removed:
            logger.info(f"Removed {removed} old crontab backups")
        return removed

    def resolve(self, path: str | Path) -> Path:
        """Resolve a backup path or file name inside the backup directory.

        Args:
            path: Absolute path, or a file name relative to the directory.

        Returns:
            Resolved path.

        Raises:
            InvalidBackupPathError: If the path points outside the directory.
        """
        candidate = Path(path).expanduser()
        if not candidate.is_absolute():
            candidate = self._directory / candidate

        resolved = candidate.resolve()
        if not resolved.is_relative_to(self._directory.resolve()):
            raise InvalidBackupPathError(f"Invalid backup path: {path}")
        return resolved

    def read(self, path: str | Path) -> str:
        """Read a backup's content.

        Args:
            path: Backup path or file name.

        Returns:
            The backed-up crontab text.

        Raises:
            InvalidBackupPathError: If the path points outside the directory.
            BackupNotFoundError: If the backup does not exist.
        """
        resolved = self.resolve(path)
        if not resolved.is_file():
            raise BackupNotFoundError(f"Backup file not found: {path}")
        return resolved.read_text(encoding="utf-8")

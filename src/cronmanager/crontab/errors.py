"""Exceptions raised by the crontab service layer.

The document parser and schedule engine never raise on bad input; these
exceptions belong to the parts that talk to the system or guard service
operations.
"""


class CronManagerError(Exception):
    """Base class for cron manager errors."""


class CrontabCommandError(CronManagerError):
    """The system crontab command failed."""

    def __init__(self, message: str, returncode: int | None = None) -> None:
        super().__init__(message)
        self.returncode = returncode


class InvalidScheduleError(CronManagerError, ValueError):
    """A job was submitted with a schedule that fails validation."""

    def __init__(self, schedule: str, reason: str | None) -> None:
        self.schedule = schedule
        self.reason = reason or "Invalid schedule"
        super().__init__(f"Invalid schedule '{schedule}': {self.reason}")


class BackupError(CronManagerError):
    """Base class for backup store errors."""


class BackupNotFoundError(BackupError):
    """The requested backup file does not exist."""


class InvalidBackupPathError(BackupError, ValueError):
    """The requested path lies outside the backup directory."""

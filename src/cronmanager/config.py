"""Configuration management for Cron Manager."""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Cron manager data directory (backups, lock file, user .env)
CRON_MANAGER_DIR = Path.home() / ".cron-manager"
CRON_MANAGER_ENV_FILE = CRON_MANAGER_DIR / ".env"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="CRON_MANAGER_",
        # Later files override earlier ones
        env_file=(str(CRON_MANAGER_ENV_FILE), ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    data_dir: Path = Field(
        default=CRON_MANAGER_DIR,
        description="Directory for backups and the lock file",
    )

    # System crontab
    crontab_command: str = Field(
        default="crontab",
        description="crontab binary used to read and install the crontab",
    )

    # Backup settings
    backup_enabled: bool = Field(
        default=True,
        description="Back up the crontab before every change",
    )
    backup_dir: Path | None = Field(
        default=None,
        description="Backup directory (default: <data_dir>/backups)",
    )
    max_backups: int = Field(
        default=10,
        description="Number of most recent backups always kept",
    )
    max_backup_days: int = Field(
        default=7,
        description="Backups beyond max_backups are deleted once older than this many days",
    )

    # Job settings
    run_timeout_seconds: int = Field(
        default=300,
        description="Timeout for running a job on demand",
    )
    next_runs_count: int = Field(
        default=5,
        description="Number of upcoming runs shown by default",
    )

    def get_backup_dir(self) -> Path:
        """Get the backup directory, using default if not set."""
        if self.backup_dir:
            return self.backup_dir.expanduser()
        return self.data_dir.expanduser() / "backups"

    def get_lock_path(self) -> Path:
        """Get the path of the lock file guarding crontab updates."""
        return self.data_dir.expanduser() / "crontab.lock"


# Global settings instance
settings = Settings()

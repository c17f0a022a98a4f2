"""Shared fixtures for crontab service tests."""

import pytest

from cronmanager.config import Settings
from cronmanager.crontab.backups import BackupStore
from cronmanager.crontab.service import CrontabService


class FakeCrontab:
    """In-memory stand-in for the system crontab."""

    def __init__(self, content: str = "") -> None:
        self.content = content
        self.writes: list[str] = []

    def read(self) -> str:
        return self.content

    def write(self, content: str) -> None:
        self.content = content
        self.writes.append(content)


@pytest.fixture
def test_settings(tmp_path) -> Settings:
    return Settings(_env_file=None, data_dir=tmp_path / "data", max_backups=10, max_backup_days=7)


@pytest.fixture
def fake_crontab() -> FakeCrontab:
    return FakeCrontab()


@pytest.fixture
def service(fake_crontab, test_settings) -> CrontabService:
    return CrontabService(
        crontab=fake_crontab,
        backups=BackupStore(test_settings.get_backup_dir()),
        config=test_settings,
    )

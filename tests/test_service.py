"""Tests for the crontab service."""

import logging
from unittest.mock import AsyncMock

import pytest

from cronmanager.crontab.document import parse_crontab
from cronmanager.crontab.errors import (
    BackupNotFoundError,
    CrontabCommandError,
    InvalidBackupPathError,
    InvalidScheduleError,
)
from cronmanager.crontab.executor import ExecutionResult
from cronmanager.crontab.service import CrontabService
from cronmanager.crontab.types import CronJobCreate, CronJobUpdate, DiffKind

HAND_WRITTEN = (
    "MAILTO=ops@example.com\n"
    "\n"
    "# CRON-MANAGER:ID:keep-me\n"
    "# CRON-MANAGER:NAME:Existing\n"
    "0 3 * * * /usr/bin/existing.sh\n"
)


class TestReading:
    """Tests for listing and getting jobs."""

    def test_empty_crontab(self, service):
        assert service.list_jobs() == []
        assert service.get_global_env() == {}

    def test_list_jobs_fills_next_run(self, service, fake_crontab):
        fake_crontab.content = HAND_WRITTEN + "\n#0 4 * * * /usr/bin/off.sh\n"

        jobs = service.list_jobs()

        assert jobs[0].next_run is not None
        assert jobs[0].next_run.hour == 3
        assert jobs[1].enabled is False
        assert jobs[1].next_run is None

    def test_get_job(self, service, fake_crontab):
        fake_crontab.content = HAND_WRITTEN

        assert service.get_job("keep-me").name == "Existing"
        assert service.get_job("missing") is None

    def test_next_runs(self, service, fake_crontab):
        fake_crontab.content = HAND_WRITTEN

        runs = service.next_runs("keep-me", 3)

        assert len(runs) == 3
        assert all(run.hour == 3 and run.minute == 0 for run in runs)
        assert service.next_runs("missing") is None

    def test_next_runs_default_count(self, service, fake_crontab):
        fake_crontab.content = HAND_WRITTEN

        assert len(service.next_runs("keep-me")) == 5

    def test_check_permission(self, service, fake_crontab, monkeypatch):
        assert service.check_permission() == (True, None)

        def fail():
            raise CrontabCommandError("not allowed")

        monkeypatch.setattr(fake_crontab, "read", fail)
        assert service.check_permission() == (False, "not allowed")


class TestAddJob:
    """Tests for add_job and add_jobs."""

    def test_add_job(self, service, fake_crontab):
        job = service.add_job(CronJobCreate(
            name="Report",
            schedule="0 9 * * 1-5",
            command="python3 ~/report.py",
            tags=["work"],
        ))

        document = parse_crontab(fake_crontab.content)
        assert len(document.jobs) == 1
        assert document.jobs[0].id == job.id
        assert document.jobs[0].name == "Report"
        assert document.jobs[0].tags == ["work"]

    def test_derived_name(self, service):
        job = service.add_job(CronJobCreate(schedule="* * * * *", command="node /srv/bots/ping.js"))

        assert job.name == "srv/bots/ping"

    def test_appends_and_preserves_existing(self, service, fake_crontab):
        fake_crontab.content = HAND_WRITTEN

        service.add_job(CronJobCreate(schedule="*/5 * * * *", command="poll.sh"))

        document = parse_crontab(fake_crontab.content)
        assert document.global_env == {"MAILTO": "ops@example.com"}
        assert [job.id for job in document.jobs][0] == "keep-me"
        assert len(document.jobs) == 2

    def test_invalid_schedule(self, service, fake_crontab):
        with pytest.raises(InvalidScheduleError) as exc_info:
            service.add_job(CronJobCreate(schedule="61 * * * *", command="x"))

        assert exc_info.value.schedule == "61 * * * *"
        assert isinstance(exc_info.value, ValueError)
        assert fake_crontab.writes == []

    def test_invalid_env_name(self, service, fake_crontab):
        with pytest.raises(ValueError):
            service.add_job(CronJobCreate(schedule="* * * * *", command="x", env={"BAD-NAME": "1"}))

        assert fake_crontab.writes == []

    def test_multi_line_values_rejected(self, service, fake_crontab):
        create = CronJobCreate.model_construct(
            schedule="0 0 * * *",
            command="true",
            working_dir="/tmp\n* * * * * touch /tmp/injected",
        )

        with pytest.raises(ValueError):
            service.add_job(create)

        assert fake_crontab.writes == []

    def test_add_jobs_single_write(self, service, fake_crontab):
        jobs = service.add_jobs([
            CronJobCreate(schedule="0 1 * * *", command="a.sh"),
            CronJobCreate(schedule="0 2 * * *", command="b.sh"),
        ])

        assert len(fake_crontab.writes) == 1
        assert len({job.id for job in jobs}) == 2

    def test_add_jobs_replace_keeps_global_env(self, service, fake_crontab):
        fake_crontab.content = HAND_WRITTEN

        service.add_jobs([CronJobCreate(schedule="0 1 * * *", command="a.sh")], replace=True)

        document = parse_crontab(fake_crontab.content)
        assert [job.command for job in document.jobs] == ["a.sh"]
        assert document.global_env == {"MAILTO": "ops@example.com"}


class TestUpdateJob:
    """Tests for update_job and friends."""

    def test_update_only_set_fields(self, service, fake_crontab):
        job = service.add_job(CronJobCreate(
            name="Sync",
            description="Copy files",
            schedule="0 * * * *",
            command="sync.sh",
        ))

        updated = service.update_job(job.id, CronJobUpdate(schedule="*/30 * * * *"))

        assert updated.schedule == "*/30 * * * *"
        assert updated.description == "Copy files"
        assert parse_crontab(fake_crontab.content).jobs[0].schedule == "*/30 * * * *"

    def test_explicit_none_clears_optional_field(self, service):
        job = service.add_job(CronJobCreate(
            schedule="0 * * * *",
            command="sync.sh",
            description="Copy files",
            log_file="/tmp/sync.log",
        ))

        updated = service.update_job(job.id, CronJobUpdate(description=None, log_file=None))

        assert updated.description is None
        assert updated.log_file is None
        assert service.get_job(job.id).description is None

    def test_explicit_none_for_required_field_is_ignored(self, service):
        job = service.add_job(CronJobCreate(name="Keep", schedule="0 * * * *", command="x"))

        updated = service.update_job(job.id, CronJobUpdate(name=None))

        assert updated.name == "Keep"

    def test_update_invalid_schedule(self, service):
        job = service.add_job(CronJobCreate(schedule="0 * * * *", command="x"))

        with pytest.raises(InvalidScheduleError):
            service.update_job(job.id, CronJobUpdate(schedule="* * *"))

    def test_update_rejects_multi_line_values(self, service, fake_crontab):
        job = service.add_job(CronJobCreate(schedule="0 * * * *", command="x"))
        update = CronJobUpdate.model_construct(log_file="/tmp/a.log\n* * * * * evil")

        with pytest.raises(ValueError):
            service.update_job(job.id, update)

        assert len(fake_crontab.writes) == 1
        assert len(parse_crontab(fake_crontab.content).jobs) == 1

    def test_update_missing(self, service, fake_crontab):
        assert service.update_job("missing", CronJobUpdate(name="x")) is None
        assert fake_crontab.writes == []

    def test_delete(self, service, fake_crontab):
        fake_crontab.content = HAND_WRITTEN

        assert service.delete_job("keep-me") is True
        assert service.delete_job("keep-me") is False
        assert parse_crontab(fake_crontab.content).jobs == []
        assert parse_crontab(fake_crontab.content).global_env == {"MAILTO": "ops@example.com"}

    def test_toggle(self, service, fake_crontab):
        fake_crontab.content = HAND_WRITTEN

        job = service.toggle_job("keep-me")

        assert job.enabled is False
        assert "#0 3 * * * /usr/bin/existing.sh" in fake_crontab.content.splitlines()
        assert service.toggle_job("keep-me").enabled is True
        assert service.toggle_job("missing") is None

    def test_enable_disable(self, service, fake_crontab):
        fake_crontab.content = HAND_WRITTEN

        assert service.disable_job("keep-me") is True
        assert service.get_job("keep-me").enabled is False
        assert service.enable_job("keep-me") is True
        assert service.get_job("keep-me").enabled is True
        assert service.enable_job("missing") is False

    def test_enable_already_enabled_does_not_write(self, service, fake_crontab):
        fake_crontab.content = HAND_WRITTEN

        assert service.enable_job("keep-me") is True
        assert fake_crontab.writes == []

    def test_reorder(self, service, fake_crontab):
        jobs = service.add_jobs([
            CronJobCreate(name=name, schedule="0 * * * *", command=f"{name}.sh")
            for name in ["a", "b", "c", "d"]
        ])
        ids = [job.id for job in jobs]

        result = service.reorder_jobs([ids[2], "unknown", ids[0]])

        expected = [ids[2], ids[0], ids[1], ids[3]]
        assert [job.id for job in result] == expected
        assert [job.id for job in parse_crontab(fake_crontab.content).jobs] == expected

    def test_dropped_lines_are_logged(self, service, fake_crontab, caplog):
        fake_crontab.content = HAND_WRITTEN + "\n@reboot /usr/bin/startup.sh\n"

        with caplog.at_level(logging.WARNING, logger="cronmanager.crontab.service"):
            service.delete_job("keep-me")

        assert "@reboot /usr/bin/startup.sh" in caplog.text
        assert "@reboot" not in fake_crontab.content


class TestGlobalEnv:
    """Tests for global environment management."""

    def test_set_and_delete(self, service, fake_crontab):
        fake_crontab.content = HAND_WRITTEN

        service.set_global_env_var("PATH", "/usr/local/bin:/usr/bin")
        assert service.get_global_env() == {
            "MAILTO": "ops@example.com",
            "PATH": "/usr/local/bin:/usr/bin",
        }

        assert service.delete_global_env_var("MAILTO") is True
        assert service.delete_global_env_var("MAILTO") is False
        assert service.get_global_env() == {"PATH": "/usr/local/bin:/usr/bin"}
        assert service.get_job("keep-me") is not None

    def test_replace_all(self, service, fake_crontab):
        fake_crontab.content = HAND_WRITTEN

        service.set_global_env({"SHELL": "/bin/bash"})

        assert service.get_global_env() == {"SHELL": "/bin/bash"}

    @pytest.mark.parametrize("name", ["1ABC", "WITH-DASH", "has space", ""])
    def test_invalid_names(self, service, name):
        with pytest.raises(ValueError):
            service.set_global_env_var(name, "x")

    def test_multi_line_value_rejected(self, service, fake_crontab):
        with pytest.raises(ValueError):
            service.set_global_env_var("X", "1\n* * * * * evil")

        assert fake_crontab.writes == []


class TestBackups:
    """Backups are taken before every write."""

    def test_backup_before_write(self, service, fake_crontab):
        fake_crontab.content = HAND_WRITTEN

        service.add_job(CronJobCreate(schedule="0 * * * *", command="x"))

        backups = service.list_backups()
        assert len(backups) == 1
        assert backups[0].path.read_text() == HAND_WRITTEN

    def test_empty_crontab_not_backed_up(self, service):
        service.add_job(CronJobCreate(schedule="0 * * * *", command="x"))

        assert service.list_backups() == []

    def test_backups_disabled(self, fake_crontab, test_settings):
        test_settings.backup_enabled = False
        service = CrontabService(crontab=fake_crontab, config=test_settings)
        fake_crontab.content = HAND_WRITTEN

        service.delete_job("keep-me")

        assert service.list_backups() == []

    def test_diff_with_backup(self, service, fake_crontab):
        fake_crontab.content = HAND_WRITTEN
        service.set_global_env_var("MAILTO", "dev@example.com")

        backup = service.list_backups()[0]
        diff = service.diff_with_backup(backup.filename)

        removed = [d.line for d in diff if d.type == DiffKind.REMOVE]
        added = [d.line for d in diff if d.type == DiffKind.ADD]
        assert removed == ["MAILTO=ops@example.com"]
        assert added == ["MAILTO=dev@example.com"]

    def test_restore(self, service, fake_crontab):
        fake_crontab.content = HAND_WRITTEN
        service.delete_job("keep-me")
        backup = service.list_backups()[0]

        document = service.restore_backup(backup.filename)

        assert fake_crontab.content == HAND_WRITTEN
        assert [job.id for job in document.jobs] == ["keep-me"]
        assert len(service.list_backups()) == 2

    def test_restore_rejects_outside_paths(self, service, fake_crontab):
        with pytest.raises(InvalidBackupPathError):
            service.restore_backup("../../etc/passwd")
        with pytest.raises(BackupNotFoundError):
            service.restore_backup("crontab-none.bak")
        assert fake_crontab.writes == []


class TestRunJob:
    """Tests for run_job."""

    @pytest.mark.asyncio
    async def test_run_job_passes_global_env(self, fake_crontab, test_settings):
        executor = AsyncMock()
        executor.execute.return_value = ExecutionResult(success=True, exit_code=0)
        service = CrontabService(crontab=fake_crontab, executor=executor, config=test_settings)
        fake_crontab.content = HAND_WRITTEN

        result = await service.run_job("keep-me")

        assert result.success is True
        job, global_env = executor.execute.call_args.args
        assert job.id == "keep-me"
        assert global_env == {"MAILTO": "ops@example.com"}

    @pytest.mark.asyncio
    async def test_run_missing_job(self, service):
        assert await service.run_job("missing") is None

"""Crontab service for managing jobs in the user's crontab.

This module provides the CrontabService class. Every change is a
read-parse-mutate-serialize-write cycle against the installed crontab,
done under an inter-process file lock, with the previous content backed up
before the new content is installed.
"""

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, TypeVar

from filelock import FileLock

from cronmanager.config import Settings, settings
from cronmanager.crontab.backups import BackupStore
from cronmanager.crontab.diff import diff_lines
from cronmanager.crontab.document import ENV_NAME_RE, parse_crontab, serialize_document
from cronmanager.crontab.errors import CrontabCommandError, InvalidScheduleError
from cronmanager.crontab.executor import ExecutionResult, JobExecutor
from cronmanager.crontab.ids import generate_job_id
from cronmanager.crontab.naming import extract_job_name
from cronmanager.crontab.schedule import get_next_run, get_next_runs, validate_schedule
from cronmanager.crontab.system import SystemCrontab
from cronmanager.crontab.types import (
    BackupInfo,
    CronJob,
    CronJobCreate,
    CronJobUpdate,
    CrontabDocument,
    DiffLine,
    GlobalEnv,
    has_line_break,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Fields a job cannot be without; an explicit None in an update is ignored
_REQUIRED_FIELDS = ("name", "schedule", "command", "enabled")


def _check_schedule(schedule: str) -> None:
    validation = validate_schedule(schedule)
    if not validation.valid:
        raise InvalidScheduleError(schedule, validation.error or "invalid expression")


def _check_env(env: dict[str, str] | None) -> None:
    for name, value in (env or {}).items():
        if not ENV_NAME_RE.match(name):
            raise ValueError(f"Invalid environment variable name: {name!r}")
        if has_line_break(value):
            raise ValueError(f"Environment variable {name} must not contain line breaks")


class CrontabService:
    """Service for managing the jobs stored in the user's crontab.

    The CrontabService handles:
    - Job creation, modification, deletion and reordering
    - Global environment variables at the top of the crontab
    - Backups before every change, restore and diff
    - Next-run previews and running a job on demand

    Example:
        service = CrontabService()

        job = service.add_job(CronJobCreate(
            name="Nightly backup",
            schedule="0 2 * * *",
            command="~/bin/backup.sh",
        ))

        for job in service.list_jobs():
            print(job.name, job.next_run)
    """

    def __init__(
        self,
        crontab: SystemCrontab | None = None,
        backups: BackupStore | None = None,
        lock_path: str | Path | None = None,
        executor: JobExecutor | None = None,
        config: Settings | None = None,
    ) -> None:
        """Initialize the crontab service.

        Args:
            crontab: Accessor for the installed crontab.
            backups: Backup store (default: the configured backup directory).
            lock_path: Lock file guarding read-modify-write cycles.
            executor: Executor used by run_job.
            config: Settings to use instead of the global settings.
        """
        config = config or settings

        self._crontab = crontab or SystemCrontab(config.crontab_command)
        self._backups = backups or BackupStore(config.get_backup_dir())
        self._executor = executor or JobExecutor(timeout=config.run_timeout_seconds)

        self._backup_enabled = config.backup_enabled
        self._max_backups = config.max_backups
        self._max_backup_days = config.max_backup_days
        self._next_runs_count = config.next_runs_count

        self._lock_path = Path(lock_path or config.get_lock_path()).expanduser()
        self._lock_path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = FileLock(str(self._lock_path))

    @property
    def backups(self) -> BackupStore:
        """Get the backup store."""
        return self._backups

    @property
    def lock_path(self) -> Path:
        """Get the lock file path."""
        return self._lock_path

    # -- reading ----------------------------------------------------------

    def load(self) -> CrontabDocument:
        """Read and parse the installed crontab.

        Returns:
            The parsed crontab document.
        """
        return parse_crontab(self._crontab.read())

    def read_raw(self) -> str:
        """Read the installed crontab text unchanged."""
        return self._crontab.read()

    def list_jobs(self) -> list[CronJob]:
        """List all jobs in crontab order.

        Returns:
            Jobs with next_run filled in for enabled jobs.
        """
        jobs = self.load().jobs
        for job in jobs:
            job.next_run = get_next_run(job.schedule) if job.enabled else None
        return jobs

    def get_job(self, job_id: str) -> CronJob | None:
        """Get a job by ID.

        Args:
            job_id: The job ID.

        Returns:
            The job if found.
        """
        job = self.load().get_job(job_id)
        if job is not None and job.enabled:
            job.next_run = get_next_run(job.schedule)
        return job

    def next_runs(self, job_id: str, count: int | None = None) -> list[datetime] | None:
        """Compute upcoming runs of a job.

        Args:
            job_id: The job ID.
            count: Number of runs (default from settings).

        Returns:
            Upcoming run times, or None if the job does not exist.
        """
        job = self.load().get_job(job_id)
        if job is None:
            return None
        return get_next_runs(job.schedule, count or self._next_runs_count)

    def get_global_env(self) -> GlobalEnv:
        """Get the global environment variables."""
        return self.load().global_env

    def check_permission(self) -> tuple[bool, str | None]:
        """Check whether the crontab can be read.

        Returns:
            Tuple of (allowed, error message).
        """
        try:
            self._crontab.read()
        except CrontabCommandError as e:
            return False, str(e)
        return True, None

    # -- writing ----------------------------------------------------------

    def _install(self, previous: str, content: str, force_backup: bool = False) -> None:
        """Back up the previous crontab text and install new content."""
        if self._backup_enabled or force_backup:
            self._backups.create(previous)
            self._backups.cleanup(self._max_backups, self._max_backup_days)
        self._crontab.write(content)

    def _modify(self, mutate: Callable[[CrontabDocument], T]) -> T:
        """Apply a change to the crontab under the file lock.

        ``mutate`` edits the document in place. The crontab is rewritten
        unless it returns None or False.
        """
        with self._lock:
            previous = self._crontab.read()
            document = parse_crontab(previous)
            result = mutate(document)
            if result is not None and result is not False:
                if document.skipped_lines:
                    logger.warning(
                        f"Dropping {len(document.skipped_lines)} unmanaged crontab line(s): "
                        f"{document.skipped_lines}"
                    )
                self._install(previous, serialize_document(document))
            return result

    def add_job(self, create: CronJobCreate) -> CronJob:
        """Add a new job at the end of the crontab.

        Args:
            create: Job creation parameters.

        Returns:
            The created job.

        Raises:
            InvalidScheduleError: If the schedule is not a valid expression.
            ValueError: If an environment variable name or value is invalid.
        """
        return self.add_jobs([create])[0]

    def add_jobs(self, creates: list[CronJobCreate], replace: bool = False) -> list[CronJob]:
        """Add several jobs with a single crontab write.

        Args:
            creates: Job creation parameters, in order.
            replace: Remove all existing jobs first (global env is kept).

        Returns:
            The created jobs.

        Raises:
            InvalidScheduleError: If any schedule is invalid (nothing is added).
            ValueError: If an environment variable name or value is invalid.
        """
        for create in creates:
            _check_schedule(create.schedule)
            _check_env(create.env)

        def mutate(document: CrontabDocument) -> list[CronJob]:
            if replace:
                logger.info(f"Removing {len(document.jobs)} existing cron jobs")
                document.jobs = []
            existing = {job.id for job in document.jobs}
            created = []
            for create in creates:
                job_id = generate_job_id()
                while job_id in existing:
                    job_id = generate_job_id()
                existing.add(job_id)

                job = CronJob(
                    id=job_id,
                    name=create.name or extract_job_name(create.command),
                    **create.model_dump(exclude={"name"}),
                )
                document.jobs.append(job)
                created.append(job)
            return created

        jobs = self._modify(mutate)
        for job in jobs:
            logger.info(f"Added cron job: {job.name} ({job.id})")
        return jobs

    def update_job(self, job_id: str, update: CronJobUpdate) -> CronJob | None:
        """Update a job.

        Args:
            job_id: The job ID.
            update: Update parameters; only explicitly set fields apply.

        Returns:
            The updated job, or None if not found.

        Raises:
            InvalidScheduleError: If the new schedule is invalid.
            ValueError: If an environment variable name or value is invalid.
        """
        changes = update.model_dump(exclude_unset=True)
        for field in _REQUIRED_FIELDS:
            if changes.get(field, True) is None:
                del changes[field]

        if "schedule" in changes:
            _check_schedule(changes["schedule"])
        _check_env(changes.get("env"))

        def mutate(document: CrontabDocument) -> CronJob | None:
            for index, job in enumerate(document.jobs):
                if job.id == job_id:
                    updated = CronJob.model_validate({
                        **job.model_dump(),
                        **changes,
                        "updated_at": datetime.now(timezone.utc),
                    })
                    document.jobs[index] = updated
                    return updated
            return None

        job = self._modify(mutate)
        if job is not None:
            logger.info(f"Updated cron job: {job.name} ({job.id})")
        return job

    def delete_job(self, job_id: str) -> bool:
        """Delete a job.

        Args:
            job_id: The job ID.

        Returns:
            True if the job was deleted.
        """
        def mutate(document: CrontabDocument) -> bool:
            job = document.get_job(job_id)
            if job is None:
                return False
            document.jobs.remove(job)
            logger.info(f"Deleted cron job: {job.name} ({job_id})")
            return True

        return self._modify(mutate)

    def _set_enabled(self, job_id: str, enabled: bool | None) -> CronJob | None:
        """Set or flip (``enabled=None``) a job's enabled state."""
        found: list[CronJob] = []

        def mutate(document: CrontabDocument) -> bool:
            job = document.get_job(job_id)
            if job is None:
                return False
            found.append(job)
            target = not job.enabled if enabled is None else enabled
            if job.enabled == target:
                return False
            job.enabled = target
            job.updated_at = datetime.now(timezone.utc)
            logger.info(f"{'Enabled' if target else 'Disabled'} cron job: {job.name} ({job_id})")
            return True

        self._modify(mutate)
        return found[0] if found else None

    def toggle_job(self, job_id: str) -> CronJob | None:
        """Flip a job between enabled and disabled.

        Args:
            job_id: The job ID.

        Returns:
            The job in its new state, or None if not found.
        """
        return self._set_enabled(job_id, None)

    def enable_job(self, job_id: str) -> bool:
        """Enable a job.

        Args:
            job_id: The job ID.

        Returns:
            True if the job exists (enabled now).
        """
        return self._set_enabled(job_id, True) is not None

    def disable_job(self, job_id: str) -> bool:
        """Disable a job.

        Args:
            job_id: The job ID.

        Returns:
            True if the job exists (disabled now).
        """
        return self._set_enabled(job_id, False) is not None

    def reorder_jobs(self, job_ids: list[str]) -> list[CronJob]:
        """Reorder jobs.

        Listed jobs move to the front in the given order; the others follow
        in their current order. Unknown IDs are ignored.

        Args:
            job_ids: Job IDs in the desired order.

        Returns:
            All jobs in their new order.
        """
        def mutate(document: CrontabDocument) -> list[CronJob]:
            by_id = {job.id: job for job in document.jobs}
            ordered = []
            for job_id in job_ids:
                job = by_id.pop(job_id, None)
                if job is not None:
                    ordered.append(job)
            ordered.extend(job for job in document.jobs if job.id in by_id)
            document.jobs = ordered
            return ordered

        jobs = self._modify(mutate)
        logger.info(f"Reordered {len(jobs)} cron jobs")
        return jobs

    def set_global_env(self, env: GlobalEnv) -> GlobalEnv:
        """Replace all global environment variables.

        Args:
            env: New variables.

        Returns:
            The variables as installed.

        Raises:
            ValueError: If a variable name or value is invalid.
        """
        _check_env(env)

        def mutate(document: CrontabDocument) -> GlobalEnv:
            document.global_env = dict(env)
            return document.global_env

        result = self._modify(mutate)
        logger.info(f"Set {len(result)} global environment variables")
        return result

    def set_global_env_var(self, name: str, value: str) -> None:
        """Set one global environment variable.

        Raises:
            ValueError: If the name or value is invalid.
        """
        _check_env({name: value})

        def mutate(document: CrontabDocument) -> bool:
            document.global_env[name] = value
            return True

        self._modify(mutate)
        logger.info(f"Set global environment variable {name}")

    def delete_global_env_var(self, name: str) -> bool:
        """Delete one global environment variable.

        Returns:
            True if the variable existed.

        Raises:
            ValueError: If the name is invalid.
        """
        _check_env({name: ""})

        def mutate(document: CrontabDocument) -> bool:
            return document.global_env.pop(name, None) is not None

        removed = self._modify(mutate)
        if removed:
            logger.info(f"Deleted global environment variable {name}")
        return removed

    # -- backups ----------------------------------------------------------

    def list_backups(self) -> list[BackupInfo]:
        """List backups, most recent first."""
        return self._backups.list_backups()

    def restore_backup(self, path: str | Path) -> CrontabDocument:
        """Install a backup as the current crontab.

        The current crontab is backed up first, even when automatic
        backups are disabled.

        Args:
            path: Backup path or file name.

        Returns:
            The restored document.

        Raises:
            InvalidBackupPathError: If the path is outside the backup directory.
            BackupNotFoundError: If the backup does not exist.
        """
        with self._lock:
            content = self._backups.read(path)
            previous = self._crontab.read()
            self._install(previous, content, force_backup=True)

        logger.info(f"Restored crontab from backup {Path(path).name}")
        return parse_crontab(content)

    def diff_with_backup(self, path: str | Path) -> list[DiffLine]:
        """Compare a backup (old) with the current crontab (new).

        Raises:
            InvalidBackupPathError: If the path is outside the backup directory.
            BackupNotFoundError: If the backup does not exist.
        """
        return diff_lines(self._backups.read(path), self._crontab.read())

    def cleanup_backups(self) -> int:
        """Apply backup retention now.

        Returns:
            Number of backups deleted.
        """
        return self._backups.cleanup(self._max_backups, self._max_backup_days)

    # -- execution --------------------------------------------------------

    async def run_job(self, job_id: str) -> ExecutionResult | None:
        """Run a job immediately.

        Args:
            job_id: The job ID.

        Returns:
            Execution result, or None if job not found.
        """
        document = self.load()
        job = document.get_job(job_id)
        if job is None:
            return None

        return await self._executor.execute(job, document.global_env)

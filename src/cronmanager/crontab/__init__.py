"""Crontab management with metadata stored in the crontab itself.

This package provides:
- Parsing and serializing crontab text, including a global environment
  header and ``# CRON-MANAGER:`` metadata comments for each job
- Schedule validation, next-run computation, human-readable descriptions,
  natural-language parsing and presets
- Backups, diffs and restore of the installed crontab
- A service for job CRUD and running jobs on demand

Example:
    from cronmanager.crontab import CrontabService, CronJobCreate

    service = CrontabService()

    job = service.add_job(CronJobCreate(
        schedule="0 9 * * 1-5",
        command="python3 ~/scripts/report.py",
    ))
"""

from cronmanager.crontab.backups import BackupStore
from cronmanager.crontab.diff import diff_lines
from cronmanager.crontab.document import (
    build_command,
    parse_crontab,
    serialize_crontab,
    serialize_document,
)
from cronmanager.crontab.errors import (
    BackupError,
    BackupNotFoundError,
    CronManagerError,
    CrontabCommandError,
    InvalidBackupPathError,
    InvalidScheduleError,
)
from cronmanager.crontab.executor import ExecutionResult, JobExecutor
from cronmanager.crontab.ids import generate_job_id
from cronmanager.crontab.naming import extract_job_name, extract_log_files, extract_script_path
from cronmanager.crontab.schedule import (
    from_natural_language,
    get_next_run,
    get_next_runs,
    get_presets,
    is_valid_schedule,
    to_human_readable,
    validate_schedule,
)
from cronmanager.crontab.service import CrontabService
from cronmanager.crontab.system import SystemCrontab
from cronmanager.crontab.types import (
    BackupInfo,
    CronJob,
    CronJobCreate,
    CronJobUpdate,
    CrontabDocument,
    DiffKind,
    DiffLine,
    GlobalEnv,
    NaturalLanguageResult,
    SchedulePreset,
    ScheduleValidation,
)

__all__ = [
    # Service
    "CrontabService",
    # Types
    "CronJob",
    "CronJobCreate",
    "CronJobUpdate",
    "CrontabDocument",
    "GlobalEnv",
    "ScheduleValidation",
    "NaturalLanguageResult",
    "SchedulePreset",
    "DiffKind",
    "DiffLine",
    "BackupInfo",
    # Document
    "parse_crontab",
    "serialize_crontab",
    "serialize_document",
    "build_command",
    # Schedule utilities
    "validate_schedule",
    "is_valid_schedule",
    "get_next_runs",
    "get_next_run",
    "to_human_readable",
    "from_natural_language",
    "get_presets",
    # Jobs
    "generate_job_id",
    "extract_job_name",
    "extract_script_path",
    "extract_log_files",
    # Collaborators
    "SystemCrontab",
    "BackupStore",
    "JobExecutor",
    "ExecutionResult",
    "diff_lines",
    # Errors
    "CronManagerError",
    "CrontabCommandError",
    "InvalidScheduleError",
    "BackupError",
    "BackupNotFoundError",
    "InvalidBackupPathError",
]

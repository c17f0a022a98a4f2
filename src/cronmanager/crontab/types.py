"""Type definitions for the crontab manager.

This module defines the Pydantic models used for crontab jobs, parsed
documents, and the results returned by the schedule and backup helpers.
"""

from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Annotated, Any

from pydantic import AfterValidator, BaseModel, Field, field_validator

# Variables set at the top of the crontab, applied to every job.
GlobalEnv = dict[str, str]


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _normalize_schedule(value: str) -> str:
    return " ".join(value.split())


def has_line_break(value: str) -> bool:
    return "\n" in value or "\r" in value


def _single_line(value: str) -> str:
    # Values are written on one crontab line; a line break would start a new entry
    if has_line_break(value):
        raise ValueError("must not contain line breaks")
    return value.strip()


def _flatten(value: str) -> str:
    return " ".join(value.splitlines()).strip()


def _clean_tags(value: list[str]) -> list[str]:
    tags = []
    for tag in value:
        tag = _single_line(tag)
        if "," in tag:
            raise ValueError(f"tag {tag!r} must not contain a comma")
        if tag:
            tags.append(tag)
    return tags


def _check_env(value: dict[str, str]) -> dict[str, str]:
    for key, item in value.items():
        if has_line_break(key) or has_line_break(item):
            raise ValueError(f"environment variable {key!r} must not contain line breaks")
    return value


# Stripped, single-line text (commands, paths, IDs)
LineStr = Annotated[str, AfterValidator(_single_line)]
# Free text; line breaks become spaces
TextStr = Annotated[str, AfterValidator(_flatten)]
Tags = Annotated[list[str], AfterValidator(_clean_tags)]
JobEnv = Annotated[dict[str, str], AfterValidator(_check_env)]


class CronJob(BaseModel):
    """A managed crontab entry.

    Everything except the timestamps and ``next_run`` is stored in the
    crontab file itself, either on the schedule line or in the metadata
    comments directly above it.

    Attributes:
        id: Unique job identifier.
        name: Human-readable job name.
        description: Optional job description.
        schedule: Five-field cron expression.
        command: The command as entered, without generated wrappers.
        enabled: Whether the job is active (disabled jobs are commented out).
        env: Environment variables applied to this job only.
        working_dir: Directory to run the command in.
        log_file: File receiving stdout (and stderr unless log_stderr is set).
        log_stderr: File receiving stderr.
        tags: Short labels.
        created_at: Creation timestamp (not persisted).
        updated_at: Last modification timestamp (not persisted).
        next_run: Next scheduled execution, computed on demand.
    """

    id: LineStr = Field(..., description="Unique job identifier")
    name: TextStr = Field(..., description="Human-readable job name")
    description: TextStr | None = Field(
        default=None,
        description="Optional job description"
    )
    schedule: str = Field(..., description="Cron expression (e.g., '0 9 * * *')")
    command: LineStr = Field(..., description="Command to execute")
    enabled: bool = Field(
        default=True,
        description="Whether the job is active"
    )
    env: JobEnv | None = Field(
        default=None,
        description="Job-level environment variables"
    )
    working_dir: LineStr | None = Field(
        default=None,
        description="Working directory for the command"
    )
    log_file: LineStr | None = Field(
        default=None,
        description="Log file for stdout"
    )
    log_stderr: LineStr | None = Field(
        default=None,
        description="Log file for stderr"
    )
    tags: Tags | None = Field(
        default=None,
        description="Job tags"
    )
    created_at: datetime = Field(
        default_factory=_now,
        description="Job creation timestamp"
    )
    updated_at: datetime = Field(
        default_factory=_now,
        description="Last modification timestamp"
    )
    next_run: datetime | None = Field(
        default=None,
        description="Next scheduled execution time (derived)"
    )

    @field_validator("schedule")
    @classmethod
    def _schedule_whitespace(cls, value: str) -> str:
        return _normalize_schedule(value)

    @field_validator("description", "env", "working_dir", "log_file", "log_stderr", "tags")
    @classmethod
    def _empty_as_none(cls, value: Any) -> Any:
        return value or None


class CronJobCreate(BaseModel):
    """Input model for creating a new job.

    When ``name`` is omitted, one is derived from the command.
    """

    name: TextStr | None = Field(default=None, description="Human-readable job name")
    description: TextStr | None = Field(default=None, description="Optional description")
    schedule: str = Field(..., description="Cron expression")
    command: LineStr = Field(..., description="Command to execute")
    enabled: bool = Field(default=True, description="Whether to start enabled")
    env: JobEnv | None = Field(default=None, description="Job environment")
    working_dir: LineStr | None = Field(default=None, description="Working directory")
    log_file: LineStr | None = Field(default=None, description="Log file for stdout")
    log_stderr: LineStr | None = Field(default=None, description="Log file for stderr")
    tags: Tags | None = Field(default=None, description="Job tags")

    @field_validator("schedule")
    @classmethod
    def _schedule_whitespace(cls, value: str) -> str:
        return _normalize_schedule(value)


class CronJobUpdate(BaseModel):
    """Input model for updating a job.

    All fields are optional; only fields that were explicitly set are
    applied, so passing ``description=None`` clears the description.
    """

    name: TextStr | None = Field(default=None, description="New job name")
    description: TextStr | None = Field(default=None, description="New description")
    schedule: str | None = Field(default=None, description="New cron expression")
    command: LineStr | None = Field(default=None, description="New command")
    enabled: bool | None = Field(default=None, description="New enabled state")
    env: JobEnv | None = Field(default=None, description="New environment")
    working_dir: LineStr | None = Field(default=None, description="New working directory")
    log_file: LineStr | None = Field(default=None, description="New stdout log file")
    log_stderr: LineStr | None = Field(default=None, description="New stderr log file")
    tags: Tags | None = Field(default=None, description="New tags")


class CrontabDocument(BaseModel):
    """A parsed crontab: global environment header plus ordered jobs."""

    global_env: GlobalEnv = Field(default_factory=dict, description="Global environment")
    jobs: list[CronJob] = Field(default_factory=list, description="Jobs in file order")
    skipped_lines: list[str] = Field(
        default_factory=list,
        description="Lines that were neither env, metadata nor jobs (not written back)"
    )

    def get_job(self, job_id: str) -> CronJob | None:
        for job in self.jobs:
            if job.id == job_id:
                return job
        return None


class ScheduleValidation(BaseModel):
    """Result of validating a cron expression."""

    valid: bool
    error: str | None = None


class NaturalLanguageResult(BaseModel):
    """Cron expression recognized from a natural-language phrase.

    ``schedule`` is None and ``confidence`` is 0 when nothing matched.
    """

    schedule: str | None = None
    confidence: float = 0.0


class SchedulePreset(BaseModel):
    """A named, commonly used schedule."""

    id: str
    name: str
    description: str
    schedule: str


class DiffKind(str, Enum):
    """Kind of a line in a positional diff."""

    ADD = "add"
    REMOVE = "remove"
    SAME = "same"


class DiffLine(BaseModel):
    """One line of a positional diff."""

    type: DiffKind
    line: str
    line_number: int


class BackupInfo(BaseModel):
    """A stored crontab backup."""

    filename: str
    path: Path
    timestamp: datetime
    size: int

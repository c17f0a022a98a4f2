"""Conversion between crontab text and job models.

A managed crontab looks like this::

    MAILTO=me@example.com
    PATH="/usr/local/bin:/usr/bin /opt/bin"

    # CRON-MANAGER:ID:20240215-163045-a1b2c3
    # CRON-MANAGER:NAME:Sync photos
    # CRON-MANAGER:LOG:~/logs/sync.log
    */15 * * * * mkdir -p ~/'logs' && rsync -a ~/Photos nas:/photos >> ~/'logs/sync.log' 2>&1

    # CRON-MANAGER:ID:20240215-170012-k9x8z7
    # CRON-MANAGER:NAME:Weekly report
    #0 9 * * 1 python3 /opt/reports/weekly.py

Global variables come first, then one block per job: metadata comments, the
schedule line (commented out when the job is disabled) and a blank line.
Parsing never raises; lines it does not understand are skipped.
"""

import logging
import re
from typing import Any

from cronmanager.crontab.ids import generate_job_id
from cronmanager.crontab.metadata import MetadataAccumulator, encode_metadata
from cronmanager.crontab.naming import extract_job_name
from cronmanager.crontab.quoting import shell_escape, shell_escape_path
from cronmanager.crontab.types import CronJob, CrontabDocument, GlobalEnv

logger = logging.getLogger(__name__)

ENV_NAME_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
_ENV_LINE_RE = re.compile(r"^([A-Za-z_][A-Za-z0-9_]*)=(.*)$")

# Minute, hour and day-of-month are numeric; month and day-of-week may use
# names (JAN, MON-FRI). Prose comments therefore don't read as disabled jobs.
_NUMERIC_FIELD = r"[0-9*/,\-]+"
_NAMED_FIELD = r"[0-9A-Za-z*/,\-]+"
_JOB_LINE_RE = re.compile(
    rf"^({_NUMERIC_FIELD})\s+({_NUMERIC_FIELD})\s+({_NUMERIC_FIELD})"
    rf"\s+({_NAMED_FIELD})\s+({_NAMED_FIELD})\s+(.+)$"
)

_STDOUT_REDIRECT_RE = re.compile(r"(?:^|\s)[1&]?>>?(?!&)")


def has_stdout_redirect(command: str) -> bool:
    """Check whether a command already redirects its standard output."""
    return bool(_STDOUT_REDIRECT_RE.search(command))


def _strip_quotes(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
        return value[1:-1]
    return value


def _quote_env_value(value: str) -> str:
    if any(char.isspace() for char in value):
        return f'"{value}"'
    return value


def _log_dir(log_file: str) -> str:
    # Never empty, so a wrapped command always starts with the mkdir prefix
    head, sep, _ = log_file.rpartition("/")
    if not sep:
        return "."
    return head or "/"


# -- command wrappers -----------------------------------------------------

def _log_wrapper(log_file: str, log_stderr: str | None) -> tuple[str, str]:
    log_dir = _log_dir(log_file)
    prefix = f"mkdir -p {shell_escape_path(log_dir)} && "
    suffix = f" >> {shell_escape_path(log_file)}"
    if log_stderr:
        suffix += f" 2>> {shell_escape_path(log_stderr)}"
    else:
        suffix += " 2>&1"
    return prefix, suffix


def _command_prefix(working_dir: str | None, env: dict[str, str] | None) -> str:
    prefix = ""
    if working_dir:
        prefix += f"cd {shell_escape_path(working_dir)} && "
    if env:
        prefix += " ".join(f"{key}={shell_escape(value)}" for key, value in env.items()) + " "
    return prefix


def build_command(job: CronJob) -> str:
    """Build the full command written on a job's schedule line.

    The result is ``[mkdir -p LOGDIR && ][cd DIR && ][K='v' ...] COMMAND``
    followed by ``>> LOG 2>&1`` (or ``>> LOG 2>> ERR``). Log handling is
    skipped when the command already redirects stdout.

    Args:
        job: The job.

    Returns:
        Shell command line.
    """
    prefix = ""
    suffix = ""

    if job.log_file and not has_stdout_redirect(job.command):
        prefix, suffix = _log_wrapper(job.log_file, job.log_stderr)

    prefix += _command_prefix(job.working_dir, job.env)
    return f"{prefix}{job.command}{suffix}"


def _strip_prefix(command: str, fields: dict[str, Any]) -> str:
    prefix = _command_prefix(fields.get("working_dir"), fields.get("env"))
    if prefix and command.startswith(prefix):
        return command[len(prefix):]
    return command


def unwrap_command(full_command: str, fields: dict[str, Any]) -> str:
    """Remove the wrappers :func:`build_command` adds.

    Only wrappers that exactly match the job's metadata are removed, so a
    hand-edited line keeps its command unchanged.

    Args:
        full_command: Command part of a schedule line.
        fields: Decoded metadata for the job.

    Returns:
        The bare command.
    """
    command = full_command
    stripped_log = False

    log_file = fields.get("log_file")
    if log_file:
        prefix, suffix = _log_wrapper(log_file, fields.get("log_stderr"))
        if (
            len(command) > len(prefix) + len(suffix)
            and command.startswith(prefix)
            and command.endswith(suffix)
        ):
            command = command[len(prefix):-len(suffix)]
            stripped_log = True

    inner = _strip_prefix(command, fields)

    # The log wrapper is only ever added around commands without their own
    # redirection; if one is left, the suffix belonged to the command.
    if stripped_log and has_stdout_redirect(inner):
        inner = _strip_prefix(full_command, fields)

    return inner


# -- parsing --------------------------------------------------------------

def _build_job(line: str, fields: dict[str, Any], enabled: bool) -> CronJob | None:
    match = _JOB_LINE_RE.match(line)
    if not match:
        return None

    schedule = " ".join(match.group(1, 2, 3, 4, 5))
    command = unwrap_command(match.group(6), fields)

    return CronJob(
        id=fields.get("id") or generate_job_id(),
        name=fields.get("name") or extract_job_name(command),
        description=fields.get("description") or None,
        schedule=schedule,
        command=command,
        enabled=enabled,
        env=fields.get("env"),
        working_dir=fields.get("working_dir") or None,
        log_file=fields.get("log_file") or None,
        log_stderr=fields.get("log_stderr") or None,
        tags=fields.get("tags"),
    )


def parse_crontab(content: str) -> CrontabDocument:
    """Parse crontab text into global environment and jobs.

    Never raises: lines that are neither environment assignments (in the
    header), metadata comments nor schedule lines are collected in
    ``skipped_lines`` and otherwise ignored.

    Args:
        content: Raw crontab text.

    Returns:
        The parsed document. Jobs keep file order.
    """
    global_env: GlobalEnv = {}
    jobs: list[CronJob] = []
    seen_ids: set[str] = set()
    skipped: list[str] = []
    metadata = MetadataAccumulator()
    in_global_env = True

    for raw_line in content.splitlines():
        line = raw_line.strip()

        if in_global_env:
            if not line:
                continue
            env_match = _ENV_LINE_RE.match(line)
            if env_match:
                global_env[env_match.group(1)] = _strip_quotes(env_match.group(2))
                continue
            # Anything else ends the header and is handled below
            in_global_env = False

        if not line:
            metadata.reset()
            continue

        if metadata.feed(line):
            continue

        if line.startswith("#"):
            job = _build_job(line[1:].strip(), metadata.fields, enabled=False)
        else:
            job = _build_job(line, metadata.fields, enabled=True)

        if job is None:
            skipped.append(line)
            continue

        if job.id in seen_ids:
            new_id = generate_job_id()
            logger.warning(f"Duplicate job id {job.id} in crontab, reassigned to {new_id}")
            job.id = new_id
        seen_ids.add(job.id)

        jobs.append(job)
        metadata.reset()

    logger.debug(f"Parsed crontab: {len(global_env)} global vars, {len(jobs)} jobs")
    return CrontabDocument(global_env=global_env, jobs=jobs, skipped_lines=skipped)


# -- serialization --------------------------------------------------------

def serialize_crontab(jobs: list[CronJob], global_env: GlobalEnv | None = None) -> str:
    """Serialize jobs (and optional global environment) to crontab text.

    Output is deterministic: global variables sorted by name, then jobs in
    the given order, each followed by a blank line.

    Args:
        jobs: Jobs in the order they should appear.
        global_env: Variables written at the top of the file.

    Returns:
        Crontab text, newline-terminated unless empty.
    """
    lines: list[str] = []

    if global_env:
        for key in sorted(global_env):
            lines.append(f"{key}={_quote_env_value(global_env[key])}")
        lines.append("")

    for job in jobs:
        lines.extend(encode_metadata(job))
        cron_line = f"{job.schedule} {build_command(job)}"
        lines.append(cron_line if job.enabled else f"#{cron_line}")
        lines.append("")

    return "\n".join(lines)


def serialize_document(document: CrontabDocument) -> str:
    """Serialize a parsed document back to crontab text."""
    return serialize_crontab(document.jobs, document.global_env)

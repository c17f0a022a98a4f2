"""Job metadata stored as comment lines in the crontab.

Each attribute that does not fit on a cron line is written as a comment
directly above the job::

    # CRON-MANAGER:ID:20240215-163045-a1b2c3
    # CRON-MANAGER:NAME:Nightly backup
    # CRON-MANAGER:ENV:{"TARGET":"s3"}
    0 2 * * * /usr/local/bin/backup.sh

The prefix is shared with every crontab written by earlier versions, so it
must never change.
"""

import json
import logging
from typing import Any

from cronmanager.crontab.types import CronJob

logger = logging.getLogger(__name__)

METADATA_PREFIX = "# CRON-MANAGER:"

# Emission order; also the set of keys the decoder understands.
METADATA_KEYS = ("ID", "NAME", "DESC", "ENV", "TAGS", "LOG", "LOGERR", "WORKDIR")


def is_metadata_line(line: str) -> bool:
    """Check whether a (stripped) line is a metadata comment."""
    return line.startswith(METADATA_PREFIX)


def _single_line(value: str) -> str:
    return " ".join(value.splitlines())


def encode_metadata(job: CronJob) -> list[str]:
    """Encode a job's auxiliary attributes as metadata comment lines.

    Only attributes that are present are emitted, always in the order of
    :data:`METADATA_KEYS`.

    Args:
        job: The job to encode.

    Returns:
        Comment lines, without trailing newlines.
    """
    entries: list[tuple[str, str]] = []

    if job.id:
        entries.append(("ID", job.id))
    if job.name:
        entries.append(("NAME", _single_line(job.name)))
    if job.description:
        entries.append(("DESC", _single_line(job.description)))
    if job.env:
        entries.append(("ENV", json.dumps(job.env, ensure_ascii=False, separators=(",", ":"))))
    if job.tags:
        entries.append(("TAGS", ",".join(job.tags)))
    if job.log_file:
        entries.append(("LOG", job.log_file))
    if job.log_stderr:
        entries.append(("LOGERR", job.log_stderr))
    if job.working_dir:
        entries.append(("WORKDIR", job.working_dir))

    return [f"{METADATA_PREFIX}{key}:{value}" for key, value in entries]


def _decode_env(payload: str) -> dict[str, str] | None:
    try:
        data = json.loads(payload)
    except json.JSONDecodeError:
        logger.debug(f"Ignoring malformed ENV metadata: {payload!r}")
        return None

    if not isinstance(data, dict):
        logger.debug(f"Ignoring non-object ENV metadata: {payload!r}")
        return None

    env = {str(key): value if isinstance(value, str) else json.dumps(value)
           for key, value in data.items()}

    # Values end up on the schedule line
    if any("\n" in value or "\r" in value for value in env.values()):
        logger.debug(f"Ignoring multi-line ENV metadata: {payload!r}")
        return None

    return env


class MetadataAccumulator:
    """Collects metadata lines until the job line they belong to.

    The document parser feeds every metadata line here and takes
    :attr:`fields` when it reaches a job line, then calls :meth:`reset`.
    A blank line also resets, so metadata never crosses a blank line.
    """

    def __init__(self) -> None:
        self._fields: dict[str, Any] = {}

    @property
    def fields(self) -> dict[str, Any]:
        """Partial job attributes accumulated so far."""
        return dict(self._fields)

    @property
    def has_data(self) -> bool:
        return bool(self._fields)

    def reset(self) -> None:
        self._fields = {}

    def feed(self, line: str) -> bool:
        """Consume one line.

        Args:
            line: A stripped crontab line.

        Returns:
            True if the line was a metadata line (even one that was ignored
            because its key is unknown or its value malformed).
        """
        if not is_metadata_line(line):
            return False

        body = line[len(METADATA_PREFIX):].strip()
        key, sep, value = body.partition(":")
        if not sep:
            logger.debug(f"Ignoring metadata line without key: {line!r}")
            return True

        key = key.strip().upper()
        value = value.strip()

        if key == "ID":
            self._fields["id"] = value
        elif key == "NAME":
            self._fields["name"] = value
        elif key == "DESC":
            self._fields["description"] = value
        elif key == "ENV":
            env = _decode_env(value)
            if env is not None:
                self._fields["env"] = env
            else:
                self._fields.pop("env", None)
        elif key == "TAGS":
            tags = [tag.strip() for tag in value.split(",")]
            self._fields["tags"] = [tag for tag in tags if tag]
        elif key == "LOG":
            self._fields["log_file"] = value
        elif key == "LOGERR":
            self._fields["log_stderr"] = value
        elif key == "WORKDIR":
            self._fields["working_dir"] = value
        else:
            logger.debug(f"Ignoring unknown metadata key: {key}")

        return True


def decode_metadata(lines: list[str]) -> dict[str, Any]:
    """Decode a block of metadata lines into partial job attributes.

    Non-metadata lines are skipped.

    Args:
        lines: Metadata comment lines.

    Returns:
        Dict keyed by :class:`CronJob` field names.
    """
    accumulator = MetadataAccumulator()
    for line in lines:
        accumulator.feed(line.strip())
    return accumulator.fields

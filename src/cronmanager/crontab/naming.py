"""Heuristics for reading job commands.

Used to derive a display name for jobs that carry no NAME metadata (for
example, lines added to the crontab by hand) and to find the files a
command logs to.
"""

import re

from cronmanager.crontab.quoting import shell_unescape

MAX_FALLBACK_NAME_LENGTH = 50

# The interpreter must be a whole word or the last part of a path, so
# "backup.sh --all" is not read as "sh" running "--all".
_INTERPRETER_RE = re.compile(r"(?:^|[\s/])(?:node|python3?|bash|sh|php|ruby|perl)\s+(\S+)")
_FIRST_TOKEN_RE = re.compile(r"^(\S+)")
_SCRIPT_EXTENSION_RE = re.compile(r"\.(?:js|ts|py|sh|php|rb|pl)$")
_REDIRECTION_RE = re.compile(r"(?:2>>|2>|&>|>>|>)\s*([^\s;&|]+)")


def extract_script_path(command: str) -> str | None:
    """Find the script a command runs.

    Prefers the argument of a known interpreter (``python3 /x/run.py``),
    then falls back to the first token.

    Args:
        command: Shell command.

    Returns:
        The script path with quotes removed, or None.
    """
    match = _INTERPRETER_RE.search(command) or _FIRST_TOKEN_RE.search(command.strip())
    if not match:
        return None
    return match.group(1).replace("'", "").replace('"', "")


def extract_job_name(command: str) -> str:
    """Derive a short display name from a command.

    Uses the last two directories plus the file name of the script path,
    without the extension: ``python3 /home/me/tools/sync/run.py`` becomes
    ``tools/sync/run``.

    Args:
        command: Shell command.

    Returns:
        A display name; the first 50 characters of the command when no
        path can be found.
    """
    command = command.strip()
    script_path = extract_script_path(command)
    if not script_path:
        return command[:MAX_FALLBACK_NAME_LENGTH]

    parts = [part for part in script_path.split("/") if part]
    if not parts:
        return command[:MAX_FALLBACK_NAME_LENGTH]

    name = "/".join(parts[-3:])
    return _SCRIPT_EXTENSION_RE.sub("", name)


def extract_log_files(command: str) -> list[str]:
    """List the files a command redirects output to.

    Handles ``>``, ``>>``, ``2>``, ``2>>`` and ``&>``, unquotes the paths,
    skips ``/dev/*`` targets and removes duplicates while keeping order.

    Args:
        command: Shell command.

    Returns:
        Redirection target paths.
    """
    files: list[str] = []
    for match in _REDIRECTION_RE.finditer(command):
        path = shell_unescape(match.group(1).strip())
        if path.startswith("/dev/"):
            continue
        if path not in files:
            files.append(path)
    return files

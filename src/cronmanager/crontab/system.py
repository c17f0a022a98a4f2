"""Access to the current user's crontab through the ``crontab`` command."""

import logging
import os
import shutil
import subprocess
import tempfile
from pathlib import Path

from cronmanager.crontab.errors import CrontabCommandError

logger = logging.getLogger(__name__)


class SystemCrontab:
    """Reads and installs the user's crontab.

    Example:
        crontab = SystemCrontab()
        content = crontab.read()
        crontab.write(content)
    """

    def __init__(self, command: str = "crontab") -> None:
        """Initialize the crontab accessor.

        Args:
            command: Name or path of the crontab binary.
        """
        self._command = command

    @property
    def command(self) -> str:
        return self._command

    def read(self) -> str:
        """Read the installed crontab.

        Returns:
            Crontab text; empty when the user has no crontab yet.

        Raises:
            CrontabCommandError: If the crontab command fails.
        """
        try:
            result = subprocess.run(
                [self._command, "-l"],
                capture_output=True,
                text=True,
                check=False,
            )
        except OSError as e:
            raise CrontabCommandError(f"Failed to run {self._command}: {e}") from e

        if result.returncode != 0:
            if "no crontab" in result.stderr.lower():
                logger.debug("No crontab installed for current user")
                return ""
            raise CrontabCommandError(
                result.stderr.strip() or f"{self._command} -l exited with {result.returncode}",
                returncode=result.returncode,
            )

        return result.stdout

    def write(self, content: str) -> None:
        """Install new crontab content.

        The content goes through a file readable only by the current user in
        a private temporary directory, which is removed afterwards.

        Args:
            content: Full crontab text.

        Raises:
            CrontabCommandError: If the crontab command rejects the content.
        """
        tmp_dir = Path(tempfile.mkdtemp(prefix="crontab-"))
        tmp_file = tmp_dir / "crontab.tmp"

        try:
            fd = os.open(tmp_file, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600)
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(content)

            try:
                result = subprocess.run(
                    [self._command, str(tmp_file)],
                    capture_output=True,
                    text=True,
                    check=False,
                )
            except OSError as e:
                raise CrontabCommandError(f"Failed to run {self._command}: {e}") from e

            if result.returncode != 0:
                raise CrontabCommandError(
                    result.stderr.strip() or f"{self._command} exited with {result.returncode}",
                    returncode=result.returncode,
                )

            logger.info(f"Installed crontab ({len(content.splitlines())} lines)")
        finally:
            shutil.rmtree(tmp_dir, ignore_errors=True)

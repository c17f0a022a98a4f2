"""On-demand execution of crontab jobs.

Runs a job's command the way cron would, outside of cron: through the
shell, with a minimal environment plus the crontab's global variables and
the job's own variables, in the job's working directory.
"""

import asyncio
import logging
import os
from dataclasses import dataclass
from datetime import datetime, timezone

from cronmanager.crontab.types import CronJob, GlobalEnv

logger = logging.getLogger(__name__)

DEFAULT_PATH = "/usr/bin:/bin"


@dataclass
class ExecutionResult:
    """Result of running a job.

    Attributes:
        success: Whether the command exited with status 0.
        exit_code: Process exit status (None if it never finished).
        stdout: Captured standard output.
        stderr: Captured standard error.
        error: Error message on failure.
        duration_ms: Execution duration in milliseconds.
    """

    success: bool
    exit_code: int | None = None
    stdout: str = ""
    stderr: str = ""
    error: str | None = None
    duration_ms: float = 0


def build_environment(job: CronJob, global_env: GlobalEnv | None = None) -> dict[str, str]:
    """Merge the environment a job runs with.

    Priority, lowest first: ``PATH`` of the current process, the crontab's
    global variables, the job's variables.

    Args:
        job: The job.
        global_env: Global crontab variables.

    Returns:
        Environment mapping.
    """
    env = {"PATH": os.environ.get("PATH", DEFAULT_PATH)}
    if "HOME" in os.environ:
        env["HOME"] = os.environ["HOME"]
    env.update(global_env or {})
    env.update(job.env or {})
    return env


class JobExecutor:
    """Executor for crontab job commands.

    Example:
        executor = JobExecutor(timeout=60)
        result = await executor.execute(job, global_env)
        if not result.success:
            print(result.stderr)
    """

    def __init__(self, timeout: float = 300) -> None:
        """Initialize the executor.

        Args:
            timeout: Seconds before a running command is killed.
        """
        self._timeout = timeout

    async def execute(self, job: CronJob, global_env: GlobalEnv | None = None) -> ExecutionResult:
        """Run a job's command once.

        Args:
            job: The job to run.
            global_env: Global crontab variables.

        Returns:
            Execution result.
        """
        start_time = datetime.now(timezone.utc)
        cwd = os.path.expanduser(job.working_dir) if job.working_dir else None

        logger.info(f"Running job: {job.name} ({job.id})")

        try:
            process = await asyncio.create_subprocess_shell(
                job.command,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=build_environment(job, global_env),
                cwd=cwd,
            )
        except OSError as e:
            logger.error(f"Could not start job {job.name} ({job.id}): {e}")
            return ExecutionResult(success=False, error=str(e))

        try:
            stdout, stderr = await asyncio.wait_for(
                process.communicate(),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError:
            process.kill()
            await process.wait()
            logger.error(f"Job timeout: {job.name} ({job.id})")
            return ExecutionResult(
                success=False,
                exit_code=process.returncode,
                error=f"Job timed out after {self._timeout} seconds",
                duration_ms=self._timeout * 1000,
            )

        duration_ms = (datetime.now(timezone.utc) - start_time).total_seconds() * 1000
        exit_code = process.returncode
        result = ExecutionResult(
            success=exit_code == 0,
            exit_code=exit_code,
            stdout=stdout.decode("utf-8", errors="replace"),
            stderr=stderr.decode("utf-8", errors="replace"),
            duration_ms=duration_ms,
        )

        if result.success:
            logger.info(f"Job completed: {job.name} ({job.id}) in {duration_ms:.0f}ms")
        else:
            result.error = f"Command exited with status {exit_code}"
            logger.warning(f"Job failed: {job.name} ({job.id}) - {result.error}")

        return result

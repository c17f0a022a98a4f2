"""Command-line interface for Cron Manager.

Cron Manager keeps names, descriptions, tags, environment variables, log
files and working directories for your cron jobs inside the crontab itself.

CONCEPTS:
---------
- JOB:        One crontab line plus the metadata comments above it.
              Disabled jobs stay in the crontab, commented out.

- SCHEDULE:   A five-field cron expression (minute hour day month weekday).
              Schedules can also be given as a preset or a short phrase
              such as "every 15 minutes" or "at 9am".

- GLOBAL ENV: Variables at the top of the crontab that apply to every job.

- BACKUP:     A copy of the crontab saved before every change.
"""

import argparse
import asyncio
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, NoReturn

import yaml
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.markdown import Markdown
from rich.panel import Panel
from rich.table import Table

from cronmanager import __version__
from cronmanager.config import settings
from cronmanager.crontab import (
    CronJob,
    CronJobCreate,
    CronJobUpdate,
    CronManagerError,
    CrontabService,
    DiffKind,
    build_command,
    from_natural_language,
    get_next_runs,
    get_presets,
    serialize_document,
    to_human_readable,
    validate_schedule,
)

console = Console()

# Help text shown when no command is given
WELCOME_TEXT = f"""
# Cron Manager v{__version__}

Manage your crontab with names, tags and metadata.

## Quick Start

```bash
cronman list                                      # Show all jobs
cronman add -s "0 9 * * 1-5" "~/bin/report.sh"    # Add a job
cronman add --when "every 15 minutes" "sync.sh"   # Schedule from a phrase
cronman describe "*/5 * * * *"                    # Explain a schedule
cronman backup list                               # Show crontab backups
```

Use `cronman --help` to see all commands.
"""

# Import file fields that map directly onto job fields
IMPORT_FIELDS = ("name", "description", "command", "enabled", "env", "tags",
                 "log_file", "log_stderr", "working_dir")


def setup_logging(verbose: bool = False) -> None:
    """Configure logging."""
    level = logging.DEBUG if verbose else logging.WARNING
    fmt = "%(name)s: %(message)s" if verbose else "%(message)s"
    logging.basicConfig(
        level=level,
        format=fmt,
        handlers=[RichHandler(rich_tracebacks=True, console=console, show_path=verbose)],
    )


def _get_service() -> CrontabService:
    return CrontabService()


def _fail(message: str) -> NoReturn:
    console.print(message)
    sys.exit(1)


def _format_time(value: datetime | None) -> str:
    return value.strftime("%Y-%m-%d %H:%M") if value else "-"


def _parse_env_pairs(pairs: list[str] | None) -> dict[str, str]:
    """Parse KEY=VALUE arguments."""
    env = {}
    for pair in pairs or []:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            _fail(f"[red]Invalid variable:[/red] {pair} (use KEY=VALUE)")
        env[key] = value
    return env


def _parse_tags(values: list[str] | None) -> list[str]:
    tags = []
    for value in values or []:
        tags.extend(tag.strip() for tag in value.split(",") if tag.strip())
    return tags


def _resolve_schedule(args: argparse.Namespace) -> str | None:
    """Get the schedule from --schedule, --preset or --when."""
    if args.schedule:
        return args.schedule

    if args.preset:
        for preset in get_presets():
            if preset.id == args.preset:
                return preset.schedule
        _fail(f"[red]Unknown preset:[/red] {args.preset} (see 'cronman presets')")

    if args.when:
        result = from_natural_language(args.when)
        if result.schedule is None:
            _fail(f"[red]Could not understand schedule:[/red] {args.when}")
        console.print(f"[dim]Schedule: {result.schedule} ({to_human_readable(result.schedule)})[/dim]")
        return result.schedule

    return None


def _get_job_or_exit(service: CrontabService, job_id: str) -> CronJob:
    job = service.get_job(job_id)
    if job is None:
        _fail(f"[red]Job not found:[/red] {job_id}")
    return job


def _print_next_runs(runs: list[datetime]) -> None:
    if not runs:
        console.print("[yellow]No upcoming runs.[/yellow]")
        return
    for index, run in enumerate(runs, start=1):
        console.print(f"  {index}. {run.strftime('%a %Y-%m-%d %H:%M')}")


# Job commands
def cmd_list(args: argparse.Namespace) -> None:
    """List all jobs."""
    service = _get_service()
    jobs = service.list_jobs()

    if args.tag:
        jobs = [job for job in jobs if job.tags and args.tag in job.tags]
    if args.enabled:
        jobs = [job for job in jobs if job.enabled]

    if not jobs:
        console.print("[yellow]No cron jobs.[/yellow]")
        return

    table = Table(title="Cron Jobs")
    table.add_column("ID", style="cyan")
    table.add_column("Name", style="white")
    table.add_column("Schedule", style="yellow")
    table.add_column("When", style="white")
    table.add_column("Enabled", style="green")
    table.add_column("Next Run", style="blue")
    table.add_column("Tags", style="magenta")

    for job in jobs:
        table.add_row(
            job.id,
            job.name,
            job.schedule,
            to_human_readable(job.schedule),
            "Yes" if job.enabled else "No",
            _format_time(job.next_run),
            ", ".join(job.tags or []),
        )

    console.print(table)


def cmd_show(args: argparse.Namespace) -> None:
    """Show the details of a job."""
    service = _get_service()
    job = _get_job_or_exit(service, args.job_id)

    lines = [
        f"[bold]ID:[/bold] {job.id}",
        f"[bold]Schedule:[/bold] {job.schedule} ({to_human_readable(job.schedule)})",
        f"[bold]Command:[/bold] {job.command}",
        f"[bold]Enabled:[/bold] {'Yes' if job.enabled else 'No'}",
    ]
    if job.description:
        lines.append(f"[bold]Description:[/bold] {job.description}")
    if job.working_dir:
        lines.append(f"[bold]Working dir:[/bold] {job.working_dir}")
    if job.log_file:
        lines.append(f"[bold]Log:[/bold] {job.log_file}")
    if job.log_stderr:
        lines.append(f"[bold]Error log:[/bold] {job.log_stderr}")
    if job.env:
        env = ", ".join(f"{key}={value}" for key, value in job.env.items())
        lines.append(f"[bold]Environment:[/bold] {env}")
    if job.tags:
        lines.append(f"[bold]Tags:[/bold] {', '.join(job.tags)}")
    lines.append(f"[bold]Crontab line:[/bold] {job.schedule} {build_command(job)}")

    console.print(Panel("\n".join(lines), title=job.name, expand=False))

    if job.enabled:
        console.print("\n[bold]Next runs:[/bold]")
        _print_next_runs(service.next_runs(job.id) or [])


def cmd_add(args: argparse.Namespace) -> None:
    """Add a new job."""
    schedule = _resolve_schedule(args)
    if schedule is None:
        _fail("[red]Error:[/red] Specify --schedule, --preset or --when")

    service = _get_service()
    job = service.add_job(CronJobCreate(
        name=args.name,
        description=args.description,
        schedule=schedule,
        command=args.job_command,
        enabled=not args.disabled,
        env=_parse_env_pairs(args.env) or None,
        working_dir=args.workdir,
        log_file=args.log,
        log_stderr=args.log_stderr,
        tags=_parse_tags(args.tag) or None,
    ))

    console.print(f"[green]Added job:[/green] {job.name}")
    console.print(f"  ID: {job.id}")
    console.print(f"  Schedule: {job.schedule} ({to_human_readable(job.schedule)})")


def cmd_edit(args: argparse.Namespace) -> None:
    """Edit an existing job."""
    changes: dict[str, Any] = {}

    schedule = _resolve_schedule(args)
    if schedule is not None:
        changes["schedule"] = schedule
    if args.name is not None:
        changes["name"] = args.name
    if args.description is not None:
        changes["description"] = args.description
    if args.job_command is not None:
        changes["command"] = args.job_command
    if args.workdir is not None:
        changes["working_dir"] = args.workdir
    if args.log is not None:
        changes["log_file"] = args.log
    if args.log_stderr is not None:
        changes["log_stderr"] = args.log_stderr
    if args.env:
        changes["env"] = _parse_env_pairs(args.env)
    if args.tag:
        changes["tags"] = _parse_tags(args.tag)

    for field in args.clear or []:
        changes[field] = None

    if not changes:
        _fail("[yellow]Nothing to change.[/yellow]")

    service = _get_service()
    job = service.update_job(args.job_id, CronJobUpdate(**changes))
    if job is None:
        _fail(f"[red]Job not found:[/red] {args.job_id}")

    console.print(f"[green]Updated:[/green] {job.name}")


def cmd_remove(args: argparse.Namespace) -> None:
    """Remove a job."""
    service = _get_service()
    job = _get_job_or_exit(service, args.job_id)

    if service.delete_job(args.job_id):
        console.print(f"[green]Removed:[/green] {job.name}")
    else:
        _fail(f"[red]Failed to remove:[/red] {args.job_id}")


def cmd_enable(args: argparse.Namespace) -> None:
    """Enable a job."""
    service = _get_service()

    if service.enable_job(args.job_id):
        console.print(f"[green]Enabled:[/green] {args.job_id}")
    else:
        _fail(f"[red]Job not found:[/red] {args.job_id}")


def cmd_disable(args: argparse.Namespace) -> None:
    """Disable a job."""
    service = _get_service()

    if service.disable_job(args.job_id):
        console.print(f"[yellow]Disabled:[/yellow] {args.job_id}")
    else:
        _fail(f"[red]Job not found:[/red] {args.job_id}")


def cmd_toggle(args: argparse.Namespace) -> None:
    """Flip a job between enabled and disabled."""
    service = _get_service()

    job = service.toggle_job(args.job_id)
    if job is None:
        _fail(f"[red]Job not found:[/red] {args.job_id}")

    if job.enabled:
        console.print(f"[green]Enabled:[/green] {job.name}")
    else:
        console.print(f"[yellow]Disabled:[/yellow] {job.name}")


def cmd_move(args: argparse.Namespace) -> None:
    """Move jobs to the top of the crontab, in the given order."""
    service = _get_service()
    jobs = service.reorder_jobs(args.job_ids)

    for index, job in enumerate(jobs, start=1):
        console.print(f"  {index}. {job.name} [dim]({job.id})[/dim]")


def cmd_run(args: argparse.Namespace) -> None:
    """Run a job immediately."""
    service = _get_service()
    job = _get_job_or_exit(service, args.job_id)

    console.print(f"Running: {job.name}")
    result = asyncio.run(service.run_job(args.job_id))
    if result is None:
        _fail(f"[red]Job not found:[/red] {args.job_id}")

    if result.stdout:
        console.print(result.stdout.rstrip(), markup=False, highlight=False)
    if result.stderr:
        console.print(f"[dim]{result.stderr.rstrip()}[/dim]", highlight=False)

    if result.success:
        console.print(f"[green]Completed[/green] in {result.duration_ms:.0f}ms")
    else:
        _fail(f"[red]Failed:[/red] {result.error}")


# Schedule commands
def cmd_next(args: argparse.Namespace) -> None:
    """Show upcoming runs of a schedule or a job."""
    count = args.count or settings.next_runs_count

    # Schedules always contain spaces; job IDs never do
    if " " in args.target.strip():
        validation = validate_schedule(args.target)
        if not validation.valid:
            _fail(f"[red]Invalid schedule:[/red] {validation.error}")
        console.print(f"[bold]{to_human_readable(args.target)}[/bold]")
        _print_next_runs(get_next_runs(args.target, count))
        return

    service = _get_service()
    runs = service.next_runs(args.target, count)
    if runs is None:
        _fail(f"[red]Job not found:[/red] {args.target}")
    _print_next_runs(runs)


def cmd_describe(args: argparse.Namespace) -> None:
    """Describe a schedule in words."""
    validation = validate_schedule(args.expression)
    if not validation.valid:
        _fail(f"[red]Invalid schedule:[/red] {validation.error}")
    console.print(to_human_readable(args.expression))


def cmd_parse(args: argparse.Namespace) -> None:
    """Turn a phrase into a cron expression."""
    text = " ".join(args.text)
    result = from_natural_language(text)
    if result.schedule is None:
        _fail(f"[red]Could not understand:[/red] {text}")

    console.print(f"[green]{result.schedule}[/green]  {to_human_readable(result.schedule)}")
    console.print(f"[dim]Confidence: {result.confidence:.0%}[/dim]")


def cmd_presets(args: argparse.Namespace) -> None:
    """List schedule presets."""
    table = Table(title="Schedule Presets")
    table.add_column("ID", style="cyan")
    table.add_column("Name", style="white")
    table.add_column("Schedule", style="yellow")
    table.add_column("Description", style="dim")

    for preset in get_presets():
        table.add_row(preset.id, preset.name, preset.schedule, preset.description)

    console.print(table)


def cmd_validate(args: argparse.Namespace) -> None:
    """Validate a schedule."""
    validation = validate_schedule(args.expression)
    if validation.valid:
        console.print(f"[green]Valid:[/green] {to_human_readable(args.expression)}")
    else:
        _fail(f"[red]Invalid:[/red] {validation.error}")


# Global environment commands
def cmd_env_list(args: argparse.Namespace) -> None:
    """List global environment variables."""
    env = _get_service().get_global_env()
    if not env:
        console.print("[yellow]No global environment variables.[/yellow]")
        return

    table = Table(title="Global Environment")
    table.add_column("Name", style="cyan")
    table.add_column("Value", style="white")
    for key in sorted(env):
        table.add_row(key, env[key])
    console.print(table)


def cmd_env_set(args: argparse.Namespace) -> None:
    """Set a global environment variable."""
    _get_service().set_global_env_var(args.name, args.value)
    console.print(f"[green]Set:[/green] {args.name}")


def cmd_env_unset(args: argparse.Namespace) -> None:
    """Remove a global environment variable."""
    if _get_service().delete_global_env_var(args.name):
        console.print(f"[green]Removed:[/green] {args.name}")
    else:
        _fail(f"[red]Variable not set:[/red] {args.name}")


# Backup commands
def cmd_backup_list(args: argparse.Namespace) -> None:
    """List crontab backups."""
    backups = _get_service().list_backups()
    if not backups:
        console.print("[yellow]No backups.[/yellow]")
        return

    table = Table(title="Crontab Backups")
    table.add_column("File", style="cyan")
    table.add_column("Date", style="white")
    table.add_column("Size", style="dim", justify="right")
    for backup in backups:
        table.add_row(
            backup.filename,
            backup.timestamp.strftime("%Y-%m-%d %H:%M:%S"),
            f"{backup.size} B",
        )
    console.print(table)


def cmd_backup_diff(args: argparse.Namespace) -> None:
    """Compare a backup with the current crontab."""
    diff = _get_service().diff_with_backup(args.backup)

    styles = {DiffKind.ADD: ("green", "+"), DiffKind.REMOVE: ("red", "-"), DiffKind.SAME: ("dim", " ")}
    for entry in diff:
        if entry.type == DiffKind.SAME and not args.all:
            continue
        style, marker = styles[entry.type]
        console.print(f"[{style}]{entry.line_number:>4} {marker} {entry.line}[/{style}]", highlight=False)

    if not args.all and all(entry.type == DiffKind.SAME for entry in diff):
        console.print("[green]No differences.[/green]")


def cmd_backup_restore(args: argparse.Namespace) -> None:
    """Restore the crontab from a backup."""
    document = _get_service().restore_backup(args.backup)
    console.print(f"[green]Restored:[/green] {Path(args.backup).name} ({len(document.jobs)} jobs)")


def cmd_backup_cleanup(args: argparse.Namespace) -> None:
    """Delete old backups."""
    removed = _get_service().cleanup_backups()
    console.print(f"[green]Removed {removed} old backups[/green]")


# Import/export
def _import_entry(entry: dict[str, Any]) -> CronJobCreate:
    """Build a job from one entry of an import file."""
    schedule = entry.get("schedule") or entry.get("cron")
    if not schedule and entry.get("when"):
        schedule = from_natural_language(str(entry["when"])).schedule
    if not schedule:
        raise ValueError("no schedule (schedule, cron or when)")

    fields = {key: entry[key] for key in IMPORT_FIELDS if key in entry}
    if "log" in entry:
        fields.setdefault("log_file", entry["log"])
    if "workdir" in entry:
        fields.setdefault("working_dir", entry["workdir"])
    if isinstance(fields.get("tags"), str):
        fields["tags"] = _parse_tags([fields["tags"]])
    if fields.get("env"):
        fields["env"] = {str(key): str(value) for key, value in fields["env"].items()}

    return CronJobCreate(schedule=str(schedule), **fields)


def cmd_import(args: argparse.Namespace) -> None:
    """Import jobs from a YAML file."""
    config_path = Path(args.file)

    if not config_path.exists():
        _fail(f"[red]File not found:[/red] {config_path}")

    try:
        with open(config_path) as f:
            config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        _fail(f"[red]Invalid YAML:[/red] {e}")

    if not config:
        _fail("[red]Empty configuration file[/red]")

    jobs_config = config.get("jobs", []) if isinstance(config, dict) else config
    if not jobs_config:
        console.print("[yellow]No jobs defined in configuration[/yellow]")
        return

    creates = []
    for index, entry in enumerate(jobs_config, start=1):
        if not isinstance(entry, dict):
            console.print(f"[red]Skipping #{index}:[/red] not a mapping")
            continue
        label = entry.get("name") or f"#{index}"
        try:
            create = _import_entry(entry)
        except (ValueError, ValidationError) as e:
            console.print(f"[red]Skipping {label}:[/red] {e}")
            continue

        validation = validate_schedule(create.schedule)
        if not validation.valid:
            console.print(f"[red]Skipping {label}:[/red] {validation.error}")
            continue
        creates.append(create)

    if not creates:
        _fail("[red]No valid jobs to import[/red]")

    service = _get_service()
    console.print(f"\n[bold]Importing {len(creates)} jobs from {config_path.name}[/bold]\n")
    jobs = service.add_jobs(creates, replace=args.replace)

    for job in jobs:
        status = "[green]✓[/green]" if job.enabled else "[yellow]○[/yellow]"
        console.print(f"  {status} {job.name} ({job.schedule})")

    console.print(f"\n[green]Imported {len(jobs)} jobs[/green]")


def cmd_export(args: argparse.Namespace) -> None:
    """Print the crontab as Cron Manager would write it."""
    service = _get_service()
    content = service.read_raw() if args.raw else serialize_document(service.load())

    if args.output:
        Path(args.output).write_text(content, encoding="utf-8")
        console.print(f"[green]Exported to[/green] {args.output}")
    else:
        sys.stdout.write(content)


def cmd_version(args: argparse.Namespace) -> None:
    """Show version and configuration information."""
    console.print(f"[bold]Cron Manager[/bold] v{__version__}")
    console.print(f"crontab command: {settings.crontab_command}")
    console.print(f"Data directory: {settings.data_dir}")
    console.print(f"Backups: {settings.get_backup_dir()} "
                  f"({'enabled' if settings.backup_enabled else 'disabled'})")


def _add_job_options(parser: argparse.ArgumentParser) -> None:
    """Options shared by add and edit."""
    schedule = parser.add_mutually_exclusive_group()
    schedule.add_argument("-s", "--schedule", help="Cron expression (e.g., '0 9 * * *')")
    schedule.add_argument("--preset", help="Schedule preset ID (see 'cronman presets')")
    schedule.add_argument("--when", help="Schedule phrase (e.g., 'every 15 minutes', 'at 9am')")
    parser.add_argument("--name", help="Job name")
    parser.add_argument("--description", help="Job description")
    parser.add_argument("--env", action="append", metavar="KEY=VALUE",
                        help="Environment variable for this job (repeatable)")
    parser.add_argument("--tag", action="append", help="Tag (repeatable, or comma-separated)")
    parser.add_argument("--log", help="Log file for stdout (and stderr unless --log-stderr)")
    parser.add_argument("--log-stderr", help="Log file for stderr")
    parser.add_argument("--workdir", help="Working directory")


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="cronman",
        description="Cron Manager - manage your crontab with names, tags and metadata",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Show detailed output")

    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")

    # ==========================================================================
    # JOB COMMANDS
    # ==========================================================================

    list_parser = subparsers.add_parser("list", help="List jobs")
    list_parser.add_argument("--tag", help="Only jobs with this tag")
    list_parser.add_argument("--enabled", action="store_true", help="Only enabled jobs")
    list_parser.set_defaults(func=cmd_list)

    show_parser = subparsers.add_parser("show", help="Show job details and next runs")
    show_parser.add_argument("job_id", help="Job ID")
    show_parser.set_defaults(func=cmd_show)

    add_parser = subparsers.add_parser(
        "add",
        help="Add a job",
        epilog="""Examples:
  cronman add -s "0 2 * * *" --name "Nightly backup" "~/bin/backup.sh"
  cronman add --preset every-15-minutes --log ~/logs/sync.log "sync.sh"
  cronman add --when "at 6pm" --env API_KEY=abc "python3 ~/report.py"
""",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    add_parser.add_argument("job_command", metavar="COMMAND", help="Command to run")
    _add_job_options(add_parser)
    add_parser.add_argument("--disabled", action="store_true", help="Create in disabled state")
    add_parser.set_defaults(func=cmd_add)

    edit_parser = subparsers.add_parser("edit", help="Edit a job")
    edit_parser.add_argument("job_id", help="Job ID")
    edit_parser.add_argument("--command", dest="job_command", help="New command")
    _add_job_options(edit_parser)
    edit_parser.add_argument(
        "--clear",
        action="append",
        choices=["description", "env", "tags", "log_file", "log_stderr", "working_dir"],
        help="Clear a field (repeatable)",
    )
    edit_parser.set_defaults(func=cmd_edit)

    remove_parser = subparsers.add_parser("remove", help="Remove a job")
    remove_parser.add_argument("job_id", help="Job ID")
    remove_parser.set_defaults(func=cmd_remove)

    enable_parser = subparsers.add_parser("enable", help="Enable a job")
    enable_parser.add_argument("job_id", help="Job ID")
    enable_parser.set_defaults(func=cmd_enable)

    disable_parser = subparsers.add_parser("disable", help="Disable a job")
    disable_parser.add_argument("job_id", help="Job ID")
    disable_parser.set_defaults(func=cmd_disable)

    toggle_parser = subparsers.add_parser("toggle", help="Enable or disable a job")
    toggle_parser.add_argument("job_id", help="Job ID")
    toggle_parser.set_defaults(func=cmd_toggle)

    move_parser = subparsers.add_parser(
        "move",
        help="Reorder jobs",
        description="Move the given jobs to the top of the crontab in the given "
                    "order. Other jobs keep their relative order.",
    )
    move_parser.add_argument("job_ids", nargs="+", help="Job IDs in the desired order")
    move_parser.set_defaults(func=cmd_move)

    run_parser = subparsers.add_parser("run", help="Run a job now")
    run_parser.add_argument("job_id", help="Job ID")
    run_parser.set_defaults(func=cmd_run)

    # ==========================================================================
    # SCHEDULE COMMANDS
    # ==========================================================================

    next_parser = subparsers.add_parser("next", help="Show upcoming runs of a schedule or job")
    next_parser.add_argument("target", help="Cron expression or job ID")
    next_parser.add_argument("-n", "--count", type=int, help="Number of runs to show")
    next_parser.set_defaults(func=cmd_next)

    describe_parser = subparsers.add_parser("describe", help="Describe a schedule in words")
    describe_parser.add_argument("expression", help="Cron expression")
    describe_parser.set_defaults(func=cmd_describe)

    parse_parser = subparsers.add_parser("parse", help="Turn a phrase into a cron expression")
    parse_parser.add_argument("text", nargs="+", help="Phrase, e.g. 'every 2 hours'")
    parse_parser.set_defaults(func=cmd_parse)

    presets_parser = subparsers.add_parser("presets", help="List schedule presets")
    presets_parser.set_defaults(func=cmd_presets)

    validate_parser = subparsers.add_parser("validate", help="Validate a cron expression")
    validate_parser.add_argument("expression", help="Cron expression")
    validate_parser.set_defaults(func=cmd_validate)

    # ==========================================================================
    # GLOBAL ENVIRONMENT
    # ==========================================================================

    env_parser = subparsers.add_parser("env", help="Manage global environment variables")
    env_subparsers = env_parser.add_subparsers(dest="env_command", metavar="SUBCOMMAND")

    env_list = env_subparsers.add_parser("list", help="List variables")
    env_list.set_defaults(func=cmd_env_list)

    env_set = env_subparsers.add_parser("set", help="Set a variable")
    env_set.add_argument("name", help="Variable name")
    env_set.add_argument("value", help="Variable value")
    env_set.set_defaults(func=cmd_env_set)

    env_unset = env_subparsers.add_parser("unset", help="Remove a variable")
    env_unset.add_argument("name", help="Variable name")
    env_unset.set_defaults(func=cmd_env_unset)

    # ==========================================================================
    # BACKUPS
    # ==========================================================================

    backup_parser = subparsers.add_parser("backup", help="Manage crontab backups")
    backup_subparsers = backup_parser.add_subparsers(dest="backup_command", metavar="SUBCOMMAND")

    backup_list = backup_subparsers.add_parser("list", help="List backups")
    backup_list.set_defaults(func=cmd_backup_list)

    backup_diff = backup_subparsers.add_parser("diff", help="Compare a backup with the current crontab")
    backup_diff.add_argument("backup", help="Backup file name or path")
    backup_diff.add_argument("--all", action="store_true", help="Show unchanged lines too")
    backup_diff.set_defaults(func=cmd_backup_diff)

    backup_restore = backup_subparsers.add_parser("restore", help="Restore a backup")
    backup_restore.add_argument("backup", help="Backup file name or path")
    backup_restore.set_defaults(func=cmd_backup_restore)

    backup_cleanup = backup_subparsers.add_parser("cleanup", help="Delete old backups")
    backup_cleanup.set_defaults(func=cmd_backup_cleanup)

    # ==========================================================================
    # IMPORT / EXPORT
    # ==========================================================================

    import_parser = subparsers.add_parser(
        "import",
        help="Import jobs from a YAML file",
        epilog="""YAML file format:
  jobs:
    - name: "Nightly backup"
      schedule: "0 2 * * *"
      command: "~/bin/backup.sh"
      log: "~/logs/backup.log"
      tags: [backup]

    - name: "Sync"
      when: "every 15 minutes"
      command: "rsync -a ~/docs/ server:docs/"
      env:
        RSYNC_RSH: "ssh -i ~/.ssh/sync"
      enabled: false""",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    import_parser.add_argument("file", help="Path to YAML file")
    import_parser.add_argument("--replace", action="store_true",
                               help="Remove all existing jobs first")
    import_parser.set_defaults(func=cmd_import)

    export_parser = subparsers.add_parser("export", help="Print the crontab")
    export_parser.add_argument("-o", "--output", help="Write to a file instead of stdout")
    export_parser.add_argument("--raw", action="store_true",
                               help="Installed text as-is instead of normalized")
    export_parser.set_defaults(func=cmd_export)

    version_parser = subparsers.add_parser("version", help="Show version information")
    version_parser.set_defaults(func=cmd_version)

    return parser


def main(argv: list[str] | None = None) -> NoReturn:
    """Main entry point for the Cron Manager CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.verbose)

    # No command given - show welcome
    if args.command is None:
        console.print(Markdown(WELCOME_TEXT))
        sys.exit(0)

    # Command groups without a subcommand
    if args.command == "env" and args.env_command is None:
        cmd_env_list(args)
        sys.exit(0)
    if args.command == "backup" and args.backup_command is None:
        cmd_backup_list(args)
        sys.exit(0)

    try:
        args.func(args)
    except CronManagerError as e:
        _fail(f"[red]Error:[/red] {e}")
    except ValueError as e:
        _fail(f"[red]Invalid value:[/red] {e}")
    sys.exit(0)


if __name__ == "__main__":
    main()

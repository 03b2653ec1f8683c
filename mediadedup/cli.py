"""CLI interface for mediadedup."""

import logging
import sqlite3
import sys
from datetime import datetime
from pathlib import Path

import click

from mediadedup.config import Config
from mediadedup.containers import ContainerResolver, DeviceInfoError
from mediadedup.database import Container, Database, ScanSession
from mediadedup.executor import TaskExecutor
from mediadedup.extractor import (
    ExiftoolNotFoundError,
    ExiftoolRunner,
    FfprobeNotFoundError,
    FfprobeRunner,
    Fingerprinter,
)
from mediadedup.planner import DedupPlanner, summarize
from mediadedup.scanner import Scanner

database_option = click.option(
    "--db",
    "-d",
    "database",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Path to database file",
)


def setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        stream=sys.stderr,
    )


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """Find duplicate photos and videos across drives and collapse them."""
    setup_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj["config"] = Config()


@cli.command()
@click.argument("directory", type=click.Path(path_type=Path))
@database_option
@click.option("--force-restart", "-f", is_flag=True, help="Discard an interrupted scan")
@click.option("--batch-size", type=int, default=None, help="Files committed per batch")
@click.pass_context
def scan(
    ctx: click.Context,
    directory: Path,
    database: Path | None,
    force_restart: bool,
    batch_size: int | None,
) -> None:
    """Scan DIRECTORY and record its media files."""
    config: Config = ctx.obj["config"]
    db_path = database or config.database_path

    if not directory.is_dir():
        click.echo(f"Error: Directory not found: {directory}", err=True)
        sys.exit(1)

    try:
        fingerprinter = Fingerprinter(
            exiftool=ExiftoolRunner(),
            ffprobe=FfprobeRunner(timeout=config.fingerprint.probe_timeout),
            header_bytes=config.fingerprint.header_bytes,
        )
        with Database(db_path) as db:
            scanner = Scanner(
                db,
                resolver=ContainerResolver(),
                fingerprinter=fingerprinter,
                batch_size=batch_size or config.scanner.batch_size,
                progress_interval=config.scanner.progress_interval,
                max_path_length=config.scanner.max_path_length,
            )
            scanner.scan(directory, force_restart=force_restart, confirm_resume=_confirm_resume)
    except (ExiftoolNotFoundError, FfprobeNotFoundError, DeviceInfoError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    except (OSError, sqlite3.Error) as e:
        click.echo(f"Error: scan failed: {e}", err=True)
        sys.exit(1)
    except KeyboardInterrupt:
        click.echo("Error: scan interrupted. Run the same scan again to resume.", err=True)
        sys.exit(1)


def _confirm_resume(session: ScanSession) -> bool:
    processed = session.files_processed
    total = session.files_total if session.files_total is not None else "?"
    return click.confirm(
        f"Found an interrupted scan (session #{session.id}, started "
        f"{_format_time(session.started_at)}, {processed}/{total} files). Resume it?",
        default=True,
    )


@cli.command()
@database_option
@click.pass_context
def summary(ctx: click.Context, database: Path | None) -> None:
    """Show inventory and duplicate statistics."""
    db_path = _existing_database(ctx, database)

    try:
        with Database(db_path) as db:
            report = summarize(db)
    except sqlite3.Error as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    click.echo("Database Summary:")
    click.echo(f"  Files: {report.total_files:,}")
    click.echo(f"  Containers: {report.containers:,}")
    for status, count in report.sessions_by_status.items():
        click.echo(f"  Scan sessions ({status}): {count:,}")
    for operation, count in report.pending_tasks.items():
        click.echo(f"  Pending {operation} tasks: {count:,}")

    duplicates = report.duplicates
    click.echo()
    click.echo("Duplicates (same size and metadata timestamp):")
    click.echo(f"  Groups: {duplicates.groups:,}")
    click.echo(f"  Files: {duplicates.duplicate_files:,}")
    click.echo(f"  Unique size: {_format_bytes(duplicates.unique_size)}")
    click.echo(f"  Total size: {_format_bytes(duplicates.total_size)}")
    click.echo(f"  Wasted space: {_format_bytes(duplicates.wasted_space)}")


@cli.command()
@database_option
@click.pass_context
def prepare(ctx: click.Context, database: Path | None) -> None:
    """Plan deduplication tasks for all duplicate groups."""
    db_path = _existing_database(ctx, database)

    try:
        with Database(db_path) as db:
            stats = DedupPlanner(db).plan()
    except sqlite3.Error as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    click.echo("Planning Complete:")
    click.echo(f"  Duplicate groups: {stats.groups:,}")
    click.echo(f"  Files in groups: {stats.duplicate_files:,}")
    click.echo(f"  Adjust tasks: {stats.adjust_tasks:,}")
    click.echo(f"  Delete tasks: {stats.delete_tasks:,}")
    click.echo(f"  Total tasks: {stats.tasks_created:,}")


@cli.command()
@database_option
@click.pass_context
def deduplicate(ctx: click.Context, database: Path | None) -> None:
    """Apply pending tasks on every attached container."""
    db_path = _existing_database(ctx, database)

    try:
        with Database(db_path) as db:
            executor = TaskExecutor(db, resolver=ContainerResolver())
            pending = executor.pending_task_count()
            if pending == 0:
                click.echo("No tasks found. Run 'mediadedup prepare' first.")
                return

            click.echo(f"Found {pending:,} pending tasks")
            stats = executor.run(confirm_reconnect=_confirm_reconnect)
    except (ExiftoolNotFoundError, DeviceInfoError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    except sqlite3.Error as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    for outcome in stats.outcomes:
        if outcome.status == "failed":
            click.echo(f"  Task {outcome.task_id} failed: {outcome.message}", err=True)

    click.echo()
    click.echo("Deduplication Complete:")
    click.echo(f"  Containers processed: {stats.containers_processed:,}")
    click.echo(f"  Containers skipped: {stats.containers_skipped:,}")
    click.echo(f"  Tasks applied: {stats.tasks_applied:,}")
    click.echo(f"  Tasks failed: {stats.tasks_failed:,}")
    click.echo(f"  Tasks skipped: {stats.tasks_skipped:,}")


def _confirm_reconnect(container: Container) -> bool:
    return click.confirm(
        f"Device partition={container.partition_id or '-'}, disk={container.disk_id} "
        "is not connected. Connect it and continue?",
        default=True,
    )


def _existing_database(ctx: click.Context, database: Path | None) -> Path:
    config: Config = ctx.obj["config"]
    db_path = database or config.database_path

    if not db_path.exists():
        click.echo(f"Error: No database found at {db_path}. Run 'mediadedup scan' first.", err=True)
        sys.exit(1)
    return db_path


def _format_time(unix_timestamp: int | None) -> str:
    if not unix_timestamp:
        return "unknown"
    return datetime.fromtimestamp(unix_timestamp).strftime("%Y-%m-%d %H:%M")


def _format_bytes(size: int | None) -> str:
    if size is None:
        return "0 B"
    size_f = float(size)
    for unit in ["B", "KB", "MB", "GB", "TB"]:
        if size_f < 1024:
            return f"{size_f:.1f} {unit}"
        size_f /= 1024
    return f"{size_f:.1f} PB"


def main() -> None:
    """Entry point for the CLI."""
    cli(standalone_mode=True)  # pylint: disable=no-value-for-parameter


if __name__ == "__main__":
    main()

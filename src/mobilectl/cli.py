"""
Command line interface for mobilectl.

This module defines the ``main`` click group used as the entry point of
the ``mobilectl`` command. The ``changelog`` subcommands load the
project configuration, validate it, and drive the changelog engine in
:mod:`mobilectl.changelog`. Exit codes are listed below.
"""

from __future__ import annotations

import datetime
import logging
import time
from pathlib import Path
from typing import List, Optional

import click

from mobilectl import __version__
from mobilectl.changelog.backup_manager import FileSystemBackupManager
from mobilectl.changelog.orchestrator import create_orchestrator
from mobilectl.config.loader import ConfigError, load_config
from mobilectl.config.models import ChangelogConfig
from mobilectl.config.validator import (
    ValidationError,
    ValidationSeverity,
    has_errors,
    validate_changelog_config,
)
from mobilectl.vcs.git_client import GitClient

# Module-level logger with a null handler and no propagation, so nothing
# is emitted until the CLI configures logging for an invocation.
logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


# ---------------------------------------------------------------------------
# Exit codes
# ---------------------------------------------------------------------------
EXIT_SUCCESS = 0
EXIT_GENERIC_ERROR = 1
EXIT_INVALID_USAGE = 2
EXIT_NO_REPO = 3
EXIT_NO_COMMITS = 4
EXIT_CONFIG_ERROR = 5
EXIT_BACKUP_NOT_FOUND = 6


# ---------------------------------------------------------------------------
# Progress and status display utilities
# ---------------------------------------------------------------------------

class ProgressIndicator:
    """Simple progress indicator for user feedback."""

    def __init__(self, message: str):
        self.message = message
        self.start_time = None

    def __enter__(self):
        self.start_time = time.time()
        click.echo(f"→ {self.message}...")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        elapsed = time.time() - self.start_time
        if exc_type is None:
            click.echo(f"  ✓ Done ({elapsed:.1f}s)")
        return False


def print_section(title: str):
    click.echo(f"\n{'='*60}")
    click.echo(title)
    click.echo(f"{'='*60}")


def print_detail(label: str, value: str, indent: int = 1):
    prefix = "  " * indent
    click.echo(f"{prefix}{label}: {value}")


def print_info(message: str, indent: int = 0):
    """Print an info message."""
    prefix = "  " * indent
    click.echo(f"{prefix}ℹ {message}")


def print_success(message: str, indent: int = 0):
    """Print a success message."""
    prefix = "  " * indent
    click.echo(f"{prefix}✓ {message}")


def print_warning(message: str, indent: int = 0):
    """Print a warning message."""
    prefix = "  " * indent
    click.echo(f"{prefix}⚠ {message}")


def print_error(message: str, indent: int = 0):
    """Print an error message."""
    prefix = "  " * indent
    click.echo(f"{prefix}✗ {message}", err=True)


# ---------------------------------------------------------------------------
# Shared helpers
# ---------------------------------------------------------------------------

def configure_logging(verbose: bool) -> None:
    # force=True so repeated invocations (tests) reconfigure handlers.
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(levelname)s: %(message)s",
        force=True,
    )
    # Package loggers start detached from the root logger; attach them now
    # that the root has a handler.
    for name, candidate in logging.root.manager.loggerDict.items():
        if name.startswith("mobilectl") and isinstance(candidate, logging.Logger):
            candidate.propagate = True


def find_project_root(start: Path, require_repo: bool = True) -> Path:
    """Return the Git repository root containing ``start``.

    Raises
    ------
    click.exceptions.Exit
        With EXIT_NO_REPO if ``require_repo`` is set and no repository
        is found. Without ``require_repo``, ``start`` is returned.
    """
    root = GitClient.find_repo_root(start)
    if root is not None:
        return root
    if require_repo:
        print_error("No Git repository found in current directory or parent directories.")
        raise click.exceptions.Exit(EXIT_NO_REPO)
    return start


def load_changelog_config(project_root: Path) -> ChangelogConfig:
    """Load and validate the configuration, exiting on errors."""
    try:
        config = load_config(project_root)
    except ConfigError as exc:
        print_error(f"Configuration error: {exc}")
        raise click.exceptions.Exit(EXIT_CONFIG_ERROR)

    problems = validate_changelog_config(config)
    report_validation(problems)
    if has_errors(problems):
        raise click.exceptions.Exit(EXIT_CONFIG_ERROR)
    return config


def report_validation(problems: List[ValidationError]) -> None:
    errors = [p for p in problems if p.severity is ValidationSeverity.ERROR]
    warnings = [p for p in problems if p.severity is ValidationSeverity.WARNING]
    if errors:
        print_error("Configuration errors:")
        for problem in errors:
            click.echo(f"   {problem}", err=True)
    if warnings:
        print_warning("Configuration warnings:")
        for problem in warnings:
            click.echo(f"   {problem}")


def resolve_output(project_root: Path, config: ChangelogConfig) -> Path:
    output = Path(config.output_file)
    return output if output.is_absolute() else project_root / output


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

@click.group()
@click.version_option(version=__version__, prog_name="mobilectl")
def main() -> None:
    """📱 Release tooling for mobile projects."""


@main.group()
def changelog() -> None:
    """Generate and manage the project changelog."""


@changelog.command()
@click.option("--from-tag", help="Generate from a specific tag, ignoring the saved state.")
@click.option("--dry-run", is_flag=True, help="Print the changelog without writing any file.")
@click.option("--append/--replace", "append", default=None,
              help="Insert above the existing changelog or replace it (default from config).")
@click.option("--fresh", is_flag=True, help="Ignore the saved state and start from the beginning.")
@click.option("--version", "version", help="Version label for the new section.")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose (debug) output.")
def generate(from_tag: Optional[str], dry_run: bool, append: Optional[bool], fresh: bool,
             version: Optional[str], verbose: bool) -> None:
    """Generate a changelog section from the commit history."""
    configure_logging(verbose)
    root = find_project_root(Path.cwd())
    config = load_changelog_config(root)

    print_section("📝 Generating Changelog")
    print_detail("Output", config.output_file)
    if from_tag:
        print_detail("From tag", from_tag)
    if dry_run:
        print_detail("Mode", "dry run")

    try:
        orchestrator = create_orchestrator(root, config)
        with ProgressIndicator("Collecting commits and rendering"):
            result = orchestrator.generate(
                from_tag=from_tag,
                dry_run=dry_run,
                append=append,
                use_last_state=False if fresh else None,
                version=version,
            )
    except Exception as exc:
        logging.exception("Unhandled error: %s", exc)
        print_error(f"Unexpected error: {exc}")
        raise click.exceptions.Exit(EXIT_GENERIC_ERROR)

    if not result.success:
        print_error(result.error or "Generation failed")
        if result.error and result.error.startswith("No commits"):
            raise click.exceptions.Exit(EXIT_NO_COMMITS)
        raise click.exceptions.Exit(EXIT_GENERIC_ERROR)

    print_success(f"Processed {result.commit_count} commit{'s' if result.commit_count != 1 else ''}")
    print_detail("Version", result.version or "Unreleased")
    if dry_run:
        click.echo("")
        click.echo(result.content)
    else:
        print_success(f"Saved to {result.changelog_path}")


@changelog.command()
@click.option("--verbose", "-v", is_flag=True, help="Show file details.")
def show(verbose: bool) -> None:
    """Print the current changelog."""
    configure_logging(verbose)
    root = find_project_root(Path.cwd(), require_repo=False)
    config = load_changelog_config(root)
    if not config.enabled:
        print_warning("Changelog is disabled in config")
        return

    path = resolve_output(root, config)
    if not path.exists():
        print_info(f"Changelog not found at: {config.output_file}")
        print_info("Generate one with: mobilectl changelog generate", indent=1)
        return

    click.echo(f"📄 Changelog: {config.output_file}\n")
    click.echo(path.read_text(encoding="utf-8"))

    if verbose:
        stat = path.stat()
        click.echo("\n📊 Details:")
        print_detail("Format", config.format)
        print_detail("File size", f"{stat.st_size} bytes")
        modified = datetime.datetime.fromtimestamp(stat.st_mtime).isoformat(timespec="seconds")
        print_detail("Last modified", modified)


@changelog.command()
@click.option("--verbose", "-v", is_flag=True, help="Print the updated changelog.")
def update(verbose: bool) -> None:
    """Append the commits made since the last generation."""
    configure_logging(verbose)
    root = find_project_root(Path.cwd())
    config = load_changelog_config(root)
    if not config.enabled:
        print_warning("Changelog is disabled in config")
        return

    if not resolve_output(root, config).exists():
        print_warning("No existing changelog found")
        print_info("Generate one with: mobilectl changelog generate", indent=1)
        return

    print_section("🔄 Updating Changelog")
    print_detail("File", config.output_file)

    orchestrator = create_orchestrator(root, config)
    with ProgressIndicator("Collecting new commits"):
        result = orchestrator.generate(dry_run=False, append=True)

    if not result.success:
        print_error(result.error or "Update failed")
        if result.error and result.error.startswith("No commits"):
            raise click.exceptions.Exit(EXIT_NO_COMMITS)
        raise click.exceptions.Exit(EXIT_GENERIC_ERROR)

    print_success("Changelog updated")
    print_detail("Commits", f"{result.commit_count} processed")
    if verbose and result.content:
        click.echo(f"\n{result.content}")


@changelog.command()
@click.argument("backup_id", required=False)
@click.option("--verbose", "-v", is_flag=True, help="Show backup dates and sizes.")
def restore(backup_id: Optional[str], verbose: bool) -> None:
    """Restore the changelog from a backup, or list backups."""
    configure_logging(verbose)
    root = find_project_root(Path.cwd(), require_repo=False)
    config = load_changelog_config(root)
    manager = FileSystemBackupManager.for_project(root)
    output = resolve_output(root, config)

    if backup_id is None:
        backups = manager.list_backups(str(output))
        if not backups:
            print_warning("No backups found")
            return
        click.echo("📦 Available backups:")
        for backup in backups:
            click.echo(f"   • {backup.id}")
            if verbose:
                click.echo(f"     Date: {backup.timestamp.isoformat(sep=' ', timespec='seconds')}")
                click.echo(f"     Size: {backup.size} bytes")
        click.echo("\nRestore with: mobilectl changelog restore <backup-id>")
        return

    result = manager.restore_backup(backup_id, str(output))
    if result.failed:
        print_error(result.error or f"Could not restore {backup_id}")
        raise click.exceptions.Exit(EXIT_BACKUP_NOT_FOUND)
    print_success(f"Restored backup: {backup_id}")


@changelog.command()
@click.option("--delete", "delete_id", metavar="BACKUP_ID", help="Delete a single backup.")
@click.option("--prune", type=click.IntRange(min=0), metavar="N",
              help="Keep only the N most recent backups of all files.")
def backups(delete_id: Optional[str], prune: Optional[int]) -> None:
    """List, delete or prune changelog backups."""
    configure_logging(False)
    root = find_project_root(Path.cwd(), require_repo=False)
    manager = FileSystemBackupManager.for_project(root)

    if delete_id is not None:
        result = manager.delete_backup(delete_id)
        if result.failed:
            print_error(result.error or f"Could not delete {delete_id}")
            raise click.exceptions.Exit(EXIT_BACKUP_NOT_FOUND)
        print_success(f"Deleted backup: {delete_id}")

    if prune is not None:
        result = manager.delete_old_backups(prune)
        if result.failed:
            print_error(result.error or "Could not prune backups")
            raise click.exceptions.Exit(EXIT_GENERIC_ERROR)
        print_success(f"Deleted {result.value} old backup{'s' if result.value != 1 else ''}")

    if delete_id is None and prune is None:
        config = load_changelog_config(root)
        entries = manager.list_backups(str(resolve_output(root, config)))
        if not entries:
            print_info("No backups found")
            return
        for backup in entries:
            click.echo(f"   • {backup.id}  ({backup.size} bytes)")

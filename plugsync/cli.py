"""CLI interface for plugsync."""

import logging
import os
from pathlib import Path
from typing import Any, Optional

import click

from . import __version__
from .api import PlugClient
from .auth import API_KEY_ENV_VAR, delete_api_key, require_api_key, save_api_key
from .config import SyncSettings, config
from .exceptions import ConfigError, PlugSyncError
from .output import OutputFormatter
from .sync import ChangeTracker, CycleResult, CycleSummary, DirectoryScanner, SyncEngine
from .sync.scheduler import SyncScheduler
from .utils import format_duration, format_timestamp, normalize_extension

logger = logging.getLogger(__name__)


def _load_settings(ctx: Any, out: OutputFormatter, **overrides: Any) -> SyncSettings:
    """Load settings and apply command line overrides, exiting on errors."""
    config_path: Optional[str] = ctx.obj.get("config_path")
    try:
        settings = config.load_settings(Path(config_path) if config_path else None)
    except ConfigError as e:
        out.error(str(e))
        ctx.exit(1)

    for key, value in overrides.items():
        if value is None or value == ():
            continue
        if key == "directories":
            settings.directories = list(value)
        elif key == "file_types":
            settings.file_types = [normalize_extension(ext) for ext in value]
        else:
            setattr(settings, key, value)
    return settings


def _require_key(ctx: Any, out: OutputFormatter) -> str:
    try:
        return require_api_key(ctx.obj.get("api_key"))
    except ConfigError as e:
        out.error(str(e))
        ctx.exit(1)


def _print_summary(out: OutputFormatter, summary: CycleSummary) -> None:
    if out.json_output:
        out.output_json(summary.to_dict())
        return

    if summary.cycle_error:
        out.error(f"Cycle failed: {summary.cycle_error}")
        return

    rows = [[path, "created"] for path in sorted(summary.created)]
    rows += [[path, "updated"] for path in sorted(summary.updated)]
    rows += [[path, f"failed: {msg}"] for path, msg in sorted(summary.failed.items())]
    rows += [[path, f"skipped: {msg}"] for path, msg in sorted(summary.vanished.items())]
    rows += [[path, "pending"] for path in sorted(summary.pending)]
    if rows:
        out.table("Sync cycle", ["File", "Result"], rows)

    message = (
        f"{summary.scanned} scanned, {len(summary.created)} created, "
        f"{len(summary.updated)} updated, {summary.unchanged} unchanged, "
        f"{len(summary.failed)} failed ({format_duration(summary.duration)})"
    )
    if summary.failed:
        out.warning(message)
    else:
        out.success(message)


@click.group()
@click.option(
    "--api-key", "-k", envvar="PLUGSYNC_API_KEY", help="CodeGPT API key"
)
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(dir_okay=False),
    help="Settings file (default: ./config.toml or $PLUGSYNC_CONFIG)",
)
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output")
@click.option("--json", is_flag=True, help="Output in JSON format")
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose/debug logging output",
)
@click.version_option(version=__version__)
@click.pass_context
def main(
    ctx: Any,
    api_key: Optional[str],
    config_path: Optional[str],
    quiet: bool,
    json: bool,
    verbose: bool,
) -> None:
    """plugsync - push changed source files to CodeGPT agent plugs."""
    ctx.ensure_object(dict)
    ctx.obj["api_key"] = api_key
    ctx.obj["config_path"] = config_path
    ctx.obj["out"] = OutputFormatter(json_output=json, quiet=quiet)

    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%H:%M:%S",
        )
        logging.getLogger("plugsync").setLevel(logging.DEBUG)
    else:
        logging.basicConfig(
            level=logging.WARNING,
            format="%(asctime)s - %(levelname)s - %(message)s",
            datefmt="%H:%M:%S",
        )


@main.command()
@click.option(
    "--api-key",
    "-k",
    prompt="Enter your CodeGPT API key",
    hide_input=True,
    help="CodeGPT API key",
)
@click.pass_context
def init(ctx: Any, api_key: str) -> None:
    """Store the API key in the system keyring."""
    out: OutputFormatter = ctx.obj["out"]

    if not api_key.strip():
        out.error("API key must not be empty")
        ctx.exit(1)

    try:
        save_api_key(api_key.strip())
    except ConfigError as e:
        out.error(str(e))
        ctx.exit(1)

    out.success("✓ API key stored in system keyring")


@main.command()
@click.pass_context
def logout(ctx: Any) -> None:
    """Remove the API key from the system keyring."""
    out: OutputFormatter = ctx.obj["out"]

    try:
        removed = delete_api_key()
    except ConfigError as e:
        out.error(str(e))
        ctx.exit(1)

    if removed:
        out.success("✓ API key removed from system keyring")
    else:
        out.info("No API key stored in system keyring")
    if os.environ.get(API_KEY_ENV_VAR):
        out.warning(f"{API_KEY_ENV_VAR} is still set in the environment")


@main.command()
@click.option(
    "--directory",
    "-d",
    "directories",
    multiple=True,
    help="Directory to watch (overrides settings, repeatable)",
)
@click.option(
    "--type",
    "-t",
    "file_types",
    multiple=True,
    help="Accepted extension (overrides settings, repeatable)",
)
@click.option(
    "--max-depth",
    type=click.IntRange(min=0),
    help="Maximum directory depth below each root (overrides settings)",
)
@click.pass_context
def scan(
    ctx: Any,
    directories: tuple[str, ...],
    file_types: tuple[str, ...],
    max_depth: Optional[int],
) -> None:
    """List the files that would be considered for syncing."""
    out: OutputFormatter = ctx.obj["out"]
    settings = _load_settings(
        ctx,
        out,
        directories=directories,
        file_types=file_types,
        max_depth=max_depth,
    )

    try:
        scanner = DirectoryScanner(settings.file_types, max_depth=settings.max_depth)
        paths = sorted(scanner.scan(settings.directories))
    except PlugSyncError as e:
        out.error(str(e))
        ctx.exit(1)

    if out.json_output:
        out.output_json({"files": paths})
        return

    for path in paths:
        out.print(path)
    out.info(f"{len(paths)} file(s)")


@main.command()
@click.option("--dry-run", is_flag=True, help="Only list dirty files")
@click.option("--workers", "-w", type=click.IntRange(min=1), help="Parallel uploads")
@click.pass_context
def once(ctx: Any, dry_run: bool, workers: Optional[int]) -> None:
    """Run a single sync cycle.

    Since no sync history survives between runs, every matching file is
    considered new and will be uploaded.
    """
    out: OutputFormatter = ctx.obj["out"]
    settings = _load_settings(ctx, out, max_workers=workers)
    api_key = _require_key(ctx, out)

    with PlugClient(
        api_key=api_key,
        api_url=settings.api_url,
        max_retries=settings.max_retries,
        retry_delay=settings.retry_delay,
        timeout=settings.timeout,
    ) as client:
        engine = SyncEngine(
            client,
            ChangeTracker(),
            max_workers=settings.max_workers,
            show_progress=not (out.quiet or out.json_output),
            max_depth=settings.max_depth,
        )
        summary = CycleSummary()
        try:
            summary = engine.run_cycle(
                settings.directories, settings.file_types, dry_run=dry_run
            )
        except PlugSyncError as e:
            summary.cycle_error = str(e)

    _print_summary(out, summary)
    if summary.is_cycle_failure:
        ctx.exit(1)


@main.command()
@click.option(
    "--interval", type=click.FloatRange(min=0, min_open=True), help="Seconds between cycles"
)
@click.option(
    "--retry-interval",
    type=click.FloatRange(min=0, min_open=True),
    help="Seconds to wait after a failed cycle",
)
@click.option("--workers", "-w", type=click.IntRange(min=1), help="Parallel uploads")
@click.option(
    "--max-cycles", type=click.IntRange(min=1), help="Stop after this many cycles"
)
@click.pass_context
def run(
    ctx: Any,
    interval: Optional[float],
    retry_interval: Optional[float],
    workers: Optional[int],
    max_cycles: Optional[int],
) -> None:
    """Watch the configured directories and sync changes until interrupted."""
    out: OutputFormatter = ctx.obj["out"]
    settings = _load_settings(
        ctx,
        out,
        interval=interval,
        retry_interval=retry_interval,
        max_workers=workers,
    )
    # Fail fast: never enter the loop without a credential
    _require_key(ctx, out)

    def credential_provider() -> str:
        return require_api_key(ctx.obj.get("api_key"))

    def report(result: CycleResult) -> None:
        summary = result.summary
        if out.json_output:
            out.output_json({"cycle": result.cycle, **summary.to_dict()})
        elif summary.synced or summary.failed or summary.cycle_error:
            _print_summary(out, summary)
        logger.debug(
            f"Cycle {result.cycle} finished at "
            f"{format_timestamp(summary.started_at + summary.duration)}"
        )

    scheduler = SyncScheduler(
        settings,
        credential_provider,
        tracker=ChangeTracker(),
        on_cycle=report,
    )

    out.info(
        f"Watching {', '.join(settings.directories)} "
        f"for .{', .'.join(settings.file_types)} files "
        f"(every {settings.interval:.0f}s)"
    )
    try:
        scheduler.run(max_cycles=max_cycles)
    except KeyboardInterrupt:
        scheduler.stop()
        out.info("Stopped.")


@main.command("settings")
@click.pass_context
def show_settings(ctx: Any) -> None:
    """Show the effective settings."""
    out: OutputFormatter = ctx.obj["out"]
    current = _load_settings(ctx, out)

    if out.json_output:
        out.output_json(current.to_dict())
        return

    for key, value in current.to_dict().items():
        if isinstance(value, list):
            value = ", ".join(value)
        out.print(f"{key}: {value}")


if __name__ == "__main__":
    main()

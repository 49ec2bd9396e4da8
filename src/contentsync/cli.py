"""CLI interface for the contentsync daemon."""

from __future__ import annotations

import asyncio
import json
import signal
from collections import deque
from pathlib import Path

import typer
from rich.console import Console

from contentsync.config import AppConfig, get_base_dir, load_config

app = typer.Typer(
    name="contentsync",
    help="Periodically sync Salesforce Marketing Cloud content blocks to storage.",
    add_completion=False,
)
console = Console()

ConfigOption = typer.Option(None, "--config", "-c", help="Path to config.toml (default: ~/.contentsync/config.toml)")


def main() -> None:
    """Entry point that wraps ``app()`` with a clean KeyboardInterrupt handler."""
    try:
        app()
    except KeyboardInterrupt:
        console.print("Interrupted.")
        raise SystemExit(130) from None


# ---------------------------------------------------------------------------
# Wiring
# ---------------------------------------------------------------------------


def _read(config_path: Path | None) -> AppConfig:
    try:
        return load_config(config_path)
    except ValueError as exc:
        console.print(f"[red]Invalid configuration:[/red] {exc}")
        raise typer.Exit(1) from exc


def _load(config_path: Path | None) -> AppConfig:
    cfg = _read(config_path)
    if not cfg.is_salesforce_configured():
        console.print(
            "[red]Salesforce is not configured.[/red]  Set [bold]salesforce.auth_url[/bold], "
            "[bold]client_id[/bold] and [bold]client_secret[/bold] in the config file "
            "or via CONTENTSYNC_SALESFORCE__* environment variables.",
        )
        raise typer.Exit(1)
    return cfg


def _build_engine(cfg: AppConfig):
    from contentsync.storage import create_uploader
    from contentsync.sync.engine import SyncEngine

    return SyncEngine(cfg, create_uploader(cfg))


async def _serve(cfg: AppConfig) -> None:
    """Run the scheduler until SIGINT/SIGTERM; SIGUSR1 triggers a sync."""
    from contentsync.sync.scheduler import SyncScheduler

    engine = _build_engine(cfg)
    scheduler = SyncScheduler(
        engine,
        interval_minutes=cfg.sync.interval_minutes,
        run_on_start=cfg.sync.run_on_start,
    )

    shutdown = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, shutdown.set)
    loop.add_signal_handler(signal.SIGUSR1, scheduler.trigger_now)

    await scheduler.start()
    await shutdown.wait()

    console.print("Shutting down...")
    await scheduler.stop()


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@app.command()
def run(config_path: Path | None = ConfigOption) -> None:
    """Run the sync scheduler in the foreground until interrupted."""
    from contentsync.logging import setup_logging

    cfg = _load(config_path)
    setup_logging(cfg.daemon.log_level, cfg.log_dir, console=True)
    console.print(f"[green]Scheduler running[/green] (every {cfg.sync.interval_minutes} min). Ctrl+C to stop.")
    asyncio.run(_serve(cfg))


@app.command()
def sync(config_path: Path | None = ConfigOption) -> None:
    """Run one sync immediately and print its summary."""
    from contentsync.logging import setup_logging

    cfg = _load(config_path)
    setup_logging(cfg.daemon.log_level, console=True)
    engine = _build_engine(cfg)

    try:
        run_record = asyncio.run(engine.run_sync())
    except Exception as exc:
        console.print(f"[red]Sync failed:[/red] {exc}")
        raise typer.Exit(1) from exc

    color = "green" if run_record.status == "completed" else "yellow"
    console.print(f"[{color}]Sync {run_record.status}[/{color}]: {run_record.blocks} blocks from {run_record.pages} pages")
    if run_record.failed_pages:
        console.print(f"  failed pages: {', '.join(str(p) for p in run_record.failed_pages)}")


@app.command("config")
def show_config(config_path: Path | None = ConfigOption) -> None:
    """Print the effective configuration (secrets masked)."""
    cfg = _read(config_path)
    console.print_json(json.dumps(cfg.model_dump(mode="json")))


@app.command()
def logs(
    tail_lines: int = typer.Option(50, "--lines", "-n", help="Number of lines to show"),
    sync_log: bool = typer.Option(False, "--sync", help="Show sync.log (JSON) instead of contentsync.log"),
) -> None:
    """Show recent log output."""
    filename = "sync.log" if sync_log else "contentsync.log"
    log_file = get_base_dir() / "logs" / filename
    if not log_file.exists():
        console.print(f"[yellow]Log file not found:[/yellow] {log_file}")
        raise typer.Exit(1)

    with open(log_file, encoding="utf-8") as fh:
        # Bounded deque keeps only the last N lines in memory.
        last_lines = deque(fh, maxlen=tail_lines)

    if not last_lines:
        console.print("[dim]Log file is empty.[/dim]")
        return

    for line in last_lines:
        console.print(line.rstrip("\n"), markup=False, highlight=False)

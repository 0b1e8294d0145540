"""CLI entry point for the visual regression tool."""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from pathlib import Path

import click
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from vrt.baseline.selector import auto_select
from vrt.baseline.store import BaselineStore
from vrt.errors import VRTError
from vrt.models.config import CaptureOptions, CompareOptions, MonitorConfig, ToolConfig
from vrt.models.interaction import parse_interactions
from vrt.monitor import Monitor
from vrt.orchestrator import Orchestrator, parse_batch

console = Console()

DEFAULT_CONFIG = "vrt-config.json"


def setup_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )


def _load_config(path: str) -> ToolConfig:
    """Load the config file when present, otherwise fall back to defaults."""
    if Path(path).exists():
        return ToolConfig.load(path)
    if path != DEFAULT_CONFIG:
        console.print(f"[red]Config file not found: {path}[/red]")
        sys.exit(1)
    return ToolConfig()


def _fail(message: str) -> None:
    console.print(f"[red]Error:[/red] {message}")
    sys.exit(1)


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def cli(verbose: bool) -> None:
    """Visual regression testing: capture, compare and manage baselines."""
    setup_logging(verbose)


@cli.command()
@click.option("--base-url", "-u", prompt="Base URL", help="Site to capture")
def init(base_url: str) -> None:
    """Create a default configuration file."""
    config_path = Path(DEFAULT_CONFIG)
    if config_path.exists():
        if not click.confirm(f"{DEFAULT_CONFIG} already exists. Overwrite?"):
            return

    ToolConfig(base_url=base_url).save(config_path)
    console.print(f"[green]Created {config_path}[/green]")
    console.print("\nYou can now capture screenshots with:")
    console.print("  [blue]vrt capture /[/blue]")


@cli.command()
@click.argument("source")
@click.option("--browser", "-b", "browsers", multiple=True, help="Engine (chromium, chrome, edge, firefox, webkit, safari, all)")
@click.option("--output", "-o", default=None, help="Sub-directory for this capture")
@click.option("--device", "-d", "devices", multiple=True, help="Playwright device preset")
@click.option("--devices-only", is_flag=True, help="Skip the configured viewports")
@click.option("--full-page", is_flag=True, help="Capture the whole scrollable page")
@click.option("--wait-for", default=None, help="Selector to wait for before capturing")
@click.option("--delay", default=2000, show_default=True, help="Settle delay in ms")
@click.option("--interact", "interact_file", default=None, type=click.Path(exists=True), help="JSON file of interaction steps")
@click.option("--analyze", is_flag=True, help="Run AI analysis on each screenshot")
@click.option("--parallel", is_flag=True, help="Capture viewports concurrently")
@click.option("--config", "-c", default=DEFAULT_CONFIG, help="Config file path")
def capture(
    source: str,
    browsers: tuple[str, ...],
    output: str | None,
    devices: tuple[str, ...],
    devices_only: bool,
    full_page: bool,
    wait_for: str | None,
    delay: int,
    interact_file: str | None,
    analyze: bool,
    parallel: bool,
    config: str,
) -> None:
    """Capture screenshots of SOURCE (URL or path under the base URL)."""
    cfg = _load_config(config)
    if parallel:
        cfg.parallel = True

    try:
        interact = []
        if interact_file:
            with open(interact_file) as f:
                interact = parse_interactions(json.load(f))
        options = CaptureOptions(
            engines=list(browsers) or None,
            output_dir=output,
            devices=list(devices) or None,
            devices_only=devices_only,
            full_page=full_page,
            wait_for=wait_for,
            delay_ms=delay,
            interact=interact,
            analyze=analyze,
        )
        artifacts = Orchestrator(cfg).run_capture(source, options)
    except (VRTError, ValidationError, ValueError) as e:
        _fail(str(e))
        return

    table = Table(title=f"Captured {len(artifacts)} screenshots")
    table.add_column("Engine", style="bold")
    table.add_column("Target")
    table.add_column("File")
    for artifact in artifacts:
        table.add_row(artifact.engine, artifact.device or artifact.viewport or "", artifact.path)
    console.print(table)


@cli.command()
@click.argument("before", type=click.Path(exists=True, file_okay=False))
@click.argument("after", type=click.Path(exists=True, file_okay=False))
@click.option("--threshold", "-t", default=None, type=float, help="Allowed changed-pixel ratio")
@click.option("--output", "-o", default=None, help="Directory for diff images and reports")
@click.option("--ai", "ai_analysis", is_flag=True, help="Analyze failing pairs with AI")
@click.option("--suggest-fixes", is_flag=True, help="Ask AI for CSS fixes")
@click.option("--report", "generate_report", is_flag=True, help="Write HTML/JSON reports")
@click.option("--label", "engine_label", default="", help="Browser label shown in the HTML report title")
@click.option("--config", "-c", default=DEFAULT_CONFIG, help="Config file path")
def compare(
    before: str,
    after: str,
    threshold: float | None,
    output: str | None,
    ai_analysis: bool,
    suggest_fixes: bool,
    generate_report: bool,
    engine_label: str,
    config: str,
) -> None:
    """Compare the screenshots in BEFORE and AFTER."""
    cfg = _load_config(config)
    options = CompareOptions(
        threshold=cfg.diff_threshold if threshold is None else threshold,
        output_dir=output,
        ai_analysis=ai_analysis,
        suggest_fixes=suggest_fixes,
        generate_report=generate_report,
        engine_label=engine_label or None,
    )
    report = Orchestrator(cfg).run_compare(before, after, options)

    table = Table(title="Comparison")
    table.add_column("File", style="bold")
    table.add_column("Changed")
    table.add_column("Result")
    for entry in report.report:
        status = "[green]pass[/green]" if entry.passed else "[red]fail[/red]"
        table.add_row(entry.file, f"{entry.difference:.2%}", status)
    console.print(table)

    for name in report.only_in_before:
        console.print(f"[yellow]Only in before:[/yellow] {name}")
    for name in report.only_in_after:
        console.print(f"[yellow]Only in after:[/yellow] {name}")

    if report.passed:
        console.print(f"[green]All {report.total_images} screenshots match[/green]")
    else:
        console.print(f"[red]{len(report.differences)} of {report.total_images} screenshots differ[/red]")
        sys.exit(1)


@cli.command()
@click.argument("batch_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--parallel", "-p", default=None, type=int, help="Run items in chunks of this size")
@click.option("--config", "-c", default=DEFAULT_CONFIG, help="Config file path")
def batch(batch_file: str, parallel: int | None, config: str) -> None:
    """Run capture/compare items from a JSON file ({"tests": [...]})."""
    cfg = _load_config(config)
    if parallel:
        cfg.parallel = True
        cfg.max_parallel = parallel

    with open(batch_file) as f:
        data = json.load(f)
    try:
        items = parse_batch(data.get("tests", []) if isinstance(data, dict) else data)
        results = Orchestrator(cfg).run_batch(items)
    except (VRTError, ValidationError, ValueError, FileNotFoundError) as e:
        _fail(str(e))
        return
    console.print(f"[green]Batch complete:[/green] {len(results)} items processed")


@cli.command()
@click.argument("url")
@click.option("--interval", "-i", default=300, show_default=True, type=float, help="Seconds between checks")
@click.option("--threshold", "-t", default=0.1, show_default=True, type=float)
@click.option("--ai-alerts", is_flag=True, help="Analyze detected changes with AI")
@click.option("--config", "-c", default=DEFAULT_CONFIG, help="Config file path")
def monitor(url: str, interval: float, threshold: float, ai_alerts: bool, config: str) -> None:
    """Watch URL for visual changes until interrupted."""
    cfg = _load_config(config)
    monitor_config = MonitorConfig(url=url, interval_seconds=interval, threshold=threshold, ai_alerts=ai_alerts)

    def _alert(report) -> None:
        files = ", ".join(d.file for d in report.differences)
        console.print(f"[red]Visual change detected:[/red] {files}")

    watcher = Monitor(Orchestrator(cfg), monitor_config, on_difference=_alert)

    async def _run() -> None:
        watcher.install_signal_handlers()
        await watcher.start()

    asyncio.run(_run())
    console.print(f"[green]Monitor stopped after {watcher.check_count} checks[/green]")


@cli.group()
def baseline() -> None:
    """Manage versioned baselines."""
    pass


def _store(config: str) -> BaselineStore:
    return BaselineStore(_load_config(config).baseline_dir)


@baseline.command("update")
@click.option("--source", "-s", default=None, help="Capture directory (default: latest-capture)")
@click.option("--no-backup", is_flag=True, help="Skip backing up the current baseline")
@click.option("--file", "-f", "files", multiple=True, help="Only update these files")
@click.option("--config", "-c", default=DEFAULT_CONFIG, help="Config file path")
def baseline_update(source: str | None, no_backup: bool, files: tuple[str, ...], config: str) -> None:
    """Copy fresh screenshots into the current baseline."""
    try:
        updated = _store(config).update_baseline(
            backup=not no_backup, selective=bool(files), files=files, source_dir=source,
        )
    except FileNotFoundError as e:
        _fail(str(e))
        return
    console.print(f"[green]Updated {len(updated)} baseline files[/green]")


@baseline.command("version")
@click.argument("name")
@click.option("--description", "-d", default="", help="Version description")
@click.option("--config", "-c", default=DEFAULT_CONFIG, help="Config file path")
def baseline_version(name: str, description: str, config: str) -> None:
    """Snapshot the current baseline as version NAME."""
    version = _store(config).create_version(name, description)
    console.print(f"[green]Created version[/green] {version.name} ({version.id})")


@baseline.command("branch")
@click.argument("name")
@click.option("--config", "-c", default=DEFAULT_CONFIG, help="Config file path")
def baseline_branch(name: str, config: str) -> None:
    """Snapshot the current baseline into branch NAME."""
    branch = _store(config).create_branch(name)
    console.print(f"[green]Created branch[/green] {branch.name}")


@baseline.command("switch")
@click.argument("name")
@click.option("--config", "-c", default=DEFAULT_CONFIG, help="Config file path")
def baseline_switch(name: str, config: str) -> None:
    """Make branch NAME the current baseline."""
    try:
        branch = _store(config).switch_branch(name)
    except VRTError as e:
        _fail(str(e))
        return
    console.print(f"[green]Switched to branch[/green] {branch.name}")


@baseline.command("rollback")
@click.argument("version_id")
@click.option("--config", "-c", default=DEFAULT_CONFIG, help="Config file path")
def baseline_rollback(version_id: str, config: str) -> None:
    """Restore version VERSION_ID into the current baseline."""
    try:
        record = _store(config).rollback(version_id)
    except VRTError as e:
        _fail(str(e))
        return
    console.print(f"[green]Rolled back[/green] {record.from_} -> {record.to}")


@baseline.command("auto-select")
@click.argument("capture_dir", type=click.Path(exists=True, file_okay=False))
@click.option("--threshold", "-t", default=0.8, show_default=True, type=float)
@click.option("--config", "-c", default=DEFAULT_CONFIG, help="Config file path")
def baseline_auto_select(capture_dir: str, threshold: float, config: str) -> None:
    """Pick the baseline that best matches CAPTURE_DIR."""
    candidate = auto_select(_store(config), capture_dir, threshold)
    console.print(
        f"[green]Selected[/green] {candidate.name} "
        f"(similarity {candidate.score:.1%}) -> [blue]{candidate.directory}[/blue]"
    )


@baseline.command("history")
@click.option("--config", "-c", default=DEFAULT_CONFIG, help="Config file path")
def baseline_history(config: str) -> None:
    """Show versions, branches and the current pointer."""
    history = _store(config).get_history()

    console.print(f"Current: [bold]{history['current']}[/bold]")
    if history["lastUpdate"]:
        console.print(f"Last update: {history['lastUpdate']}")
    if history["lastRollback"]:
        rb = history["lastRollback"]
        console.print(f"Last rollback: {rb.from_} -> {rb.to} at {rb.timestamp}")

    table = Table(title="Versions")
    table.add_column("ID", style="bold")
    table.add_column("Name")
    table.add_column("Created")
    table.add_column("Git")
    for version in history["versions"]:
        table.add_row(version.id, version.name, version.timestamp, f"{version.git_branch}@{version.git_commit[:8]}")
    console.print(table)

    if history["branches"]:
        table = Table(title="Branches")
        table.add_column("Name", style="bold")
        table.add_column("Created")
        table.add_column("Parent")
        for name, branch in history["branches"].items():
            table.add_row(name, branch.created, branch.parent)
        console.print(table)


@baseline.command("cleanup")
@click.option("--days", default=30, show_default=True, type=int, help="Keep versions newer than this")
@click.option("--config", "-c", default=DEFAULT_CONFIG, help="Config file path")
def baseline_cleanup(days: int, config: str) -> None:
    """Delete old baseline versions."""
    removed = _store(config).cleanup_old_versions(days)
    console.print(f"[green]Removed {removed} old versions[/green]")


if __name__ == "__main__":
    cli()

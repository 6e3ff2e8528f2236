"""CLI entry point for envdiff."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from envdiff.errors import ConfigurationError, MissingArtifactError
from envdiff.imaging.differencer import diff, write_diff_image
from envdiff.imaging.normalizer import image_size, normalize
from envdiff.models.comparison import (
    ERRORED,
    FAILED,
    CaptureErrorOutcome,
    RunSummary,
    SimilarityOutcome,
)
from envdiff.models.config import ComparisonConfig, EnvironmentConfig, RunConfig
from envdiff.pipeline.orchestrator import ComparisonOrchestrator
from envdiff.reporter.reporter import Reporter

console = Console()

DEFAULT_CONFIG = "envdiff-config.json"

_STATUS_STYLE = {"passed": "green", "failed": "red", "errored": "yellow"}


def setup_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )


def _describe(entry) -> str:
    outcome = entry.result.outcome
    if isinstance(outcome, SimilarityOutcome):
        return f"{outcome.percentage:.2f}% ({outcome.mismatched_pixels} px differ)"
    if isinstance(outcome, CaptureErrorOutcome):
        return outcome.message
    return "Size mismatch"


def print_summary(summary: RunSummary) -> None:
    table = Table(title=f"Comparison {summary.run_id}")
    table.add_column("Page", style="bold")
    table.add_column("Status")
    table.add_column("Result")
    table.add_column("Diff")
    for entry in summary.results:
        style = _STATUS_STYLE.get(entry.status, "white")
        diff_path = entry.result.diff_image_path if isinstance(entry.result.outcome, SimilarityOutcome) else ""
        table.add_row(
            entry.result.page.path or "/",
            f"[{style}]{entry.status}[/{style}]",
            _describe(entry),
            diff_path,
        )
    console.print(table)
    console.print(
        f"[green]{summary.passed} passed[/green], [red]{summary.failed} failed[/red], "
        f"[yellow]{summary.errored} errored[/yellow] in {summary.duration_seconds}s"
    )


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def cli(verbose: bool) -> None:
    """Visual regression comparison between two deployments of a website."""
    setup_logging(verbose)


@cli.command()
@click.option("--config", "-c", default=DEFAULT_CONFIG, help="Config file path")
@click.option("--headed", is_flag=True, help="Show the browser window")
def run(config: str, headed: bool) -> None:
    """Capture, diff and classify every configured page."""
    try:
        cfg = RunConfig.load(config)
    except FileNotFoundError:
        console.print(f"[red]Config file not found: {config}[/red]")
        console.print("Run 'envdiff init' to create a default config.")
        sys.exit(1)

    if headed:
        cfg.headless = False

    orchestrator = ComparisonOrchestrator(cfg)
    try:
        summary = orchestrator.run_sync()
    except ConfigurationError as e:
        console.print(f"[red]{e}[/red]")
        console.print("Add pages with 'envdiff paths add /some/path'.")
        sys.exit(1)

    print_summary(summary)
    reports = Reporter(cfg).generate_reports(summary)
    for fmt, path in reports.items():
        console.print(f"  {fmt.upper()} report: [blue]{path}[/blue]")

    if any(entry.status in (FAILED, ERRORED) for entry in summary.results):
        sys.exit(1)


@cli.command()
@click.option("--reference", "-r", prompt="Reference (staging) base URL", help="Reference base URL")
@click.option("--candidate", "-p", prompt="Candidate (prod) base URL", help="Candidate base URL")
@click.option("--config", "-c", default=DEFAULT_CONFIG, help="Config file path")
def init(reference: str, candidate: str, config: str) -> None:
    """Create a default configuration file."""
    config_path = Path(config)
    if config_path.exists():
        if not click.confirm(f"{config_path} already exists. Overwrite?"):
            return

    cfg = RunConfig(
        reference=EnvironmentConfig(name="staging", base_url=reference),
        candidate=EnvironmentConfig(name="prod", base_url=candidate),
        paths=["/"],
    )
    cfg.save(config_path)
    console.print(f"[green]Created {config_path}[/green]")
    console.print("\nAdd pages to compare, then run:")
    console.print("  [blue]envdiff paths add /about[/blue]")
    console.print("  [blue]envdiff run[/blue]")


@cli.command("diff")
@click.argument("image_a", type=click.Path(dir_okay=False))
@click.argument("image_b", type=click.Path(dir_okay=False))
@click.option("--output", "-o", default="diff.png", help="Where to write the diff image")
@click.option("--width", type=int, default=None, help="Canonical width (defaults to IMAGE_A's)")
@click.option("--height", type=int, default=None, help="Canonical height (defaults to IMAGE_A's)")
@click.option("--threshold", type=float, default=0.1, show_default=True, help="Per-pixel colour threshold")
def diff_images(
    image_a: str, image_b: str, output: str,
    width: int | None, height: int | None, threshold: float,
) -> None:
    """Compare two existing screenshots."""
    try:
        if width is None or height is None:
            first_width, first_height = image_size(image_a)
            width = width or first_width
            height = height or first_height
        a = normalize(image_a, width, height)
        b = normalize(image_b, width, height)
    except MissingArtifactError as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(1)
    except (OSError, ValueError) as e:
        console.print(f"[red]Cannot read image: {e}[/red]")
        sys.exit(1)

    result = diff(a, b, ComparisonConfig(pixel_threshold=threshold))
    write_diff_image(result, output)
    console.print(
        f"Similarity: [bold]{result.similarity:.2f}%[/bold] "
        f"({result.mismatched_pixels} of {result.total_pixels} pixels differ)"
    )
    console.print(f"Diff image: [blue]{output}[/blue]")


@cli.group()
def paths() -> None:
    """Manage the page paths to compare."""
    pass


@paths.command("add")
@click.argument("path")
@click.option("--config", "-c", default=DEFAULT_CONFIG, help="Config file path")
def paths_add(path: str, config: str) -> None:
    """Add a page path to the configuration."""
    cfg = RunConfig.load(config)
    if path.lstrip("/") in {p.lstrip("/") for p in cfg.paths}:
        console.print(f"[yellow]Already configured:[/yellow] {path}")
        return
    cfg.paths.append(path)
    cfg.save(config)
    console.print(f"[green]Added path:[/green] {path}")


@paths.command("list")
@click.option("--config", "-c", default=DEFAULT_CONFIG, help="Config file path")
def paths_list(config: str) -> None:
    """List all configured page paths."""
    cfg = RunConfig.load(config)
    if not cfg.paths:
        console.print("[yellow]No paths configured[/yellow]")
        return
    for i, p in enumerate(cfg.paths, 1):
        console.print(f"  {i}. {p}")


@paths.command("clear")
@click.option("--config", "-c", default=DEFAULT_CONFIG, help="Config file path")
def paths_clear(config: str) -> None:
    """Remove all page paths."""
    cfg = RunConfig.load(config)
    cfg.paths = []
    cfg.save(config)
    console.print("[green]All paths cleared[/green]")


if __name__ == "__main__":
    cli()

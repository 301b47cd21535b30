"""CLI entry point for the visual baseline manager."""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path

import click
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from src.errors import BrowserUnavailableError
from src.models.config import ToolConfig
from src.tools.dispatch import create_registry, run_tool

# Logs go to stderr so stdout carries exactly one JSON object per invocation.
console = Console(stderr=True)
out = Console()

DEFAULT_CONFIG = "vbm-config.json"


def setup_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )


def emit(result: dict) -> None:
    click.echo(json.dumps(result, indent=2, default=str))


def load_config(path: str) -> ToolConfig:
    return ToolConfig.load_or_default(path)


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.option("--config", "-c", default=DEFAULT_CONFIG, help="Config file path")
@click.pass_context
def cli(ctx: click.Context, verbose: bool, config: str) -> None:
    """Visual baseline manager: capture, store, and compare page snapshots."""
    setup_logging(verbose)
    ctx.obj = {"config_path": config}


@cli.command()
@click.argument("tool")
@click.argument("args_json", required=False, default="{}")
@click.pass_context
def call(ctx: click.Context, tool: str, args_json: str) -> None:
    """Run TOOL with a JSON object of arguments and print the result as JSON."""
    try:
        args = json.loads(args_json)
    except json.JSONDecodeError as e:
        emit({"success": False, "error": f"Invalid JSON arguments: {e}"})
        sys.exit(1)
    if not isinstance(args, dict):
        emit({"success": False, "error": "Arguments must be a JSON object"})
        sys.exit(1)

    try:
        config = load_config(ctx.obj["config_path"])
    except (ValueError, ValidationError) as e:
        emit({"success": False, "error": f"Invalid config: {e}"})
        sys.exit(1)

    try:
        result = run_tool(tool, args, config)
    except BrowserUnavailableError as e:
        emit({"success": False, "error": str(e), "errorType": "BrowserUnavailableError"})
        sys.exit(2)

    emit(result)
    if "error" in result:
        sys.exit(1)


@cli.command()
def tools() -> None:
    """List available tools and their arguments."""
    table = Table(title="Tools")
    table.add_column("Tool", style="bold", no_wrap=True)
    table.add_column("Description")
    table.add_column("Arguments")
    for t in create_registry().tools():
        props = t.input_schema().get("properties", {})
        table.add_row(t.name, t.description, ", ".join(props) or "-")
    out.print(table)


@cli.command()
@click.pass_context
def baselines(ctx: click.Context) -> None:
    """Show stored baselines."""
    config = load_config(ctx.obj["config_path"])
    result = run_tool("list_baselines", {}, config)
    if not result.get("success"):
        out.print(f"[red]{result.get('error')}[/red]")
        sys.exit(1)
    if not result["baselines"]:
        out.print("[yellow]No baselines stored[/yellow]")
        return
    table = Table(title=f"Baselines in {config.baselines_dir}")
    table.add_column("Name", style="bold")
    table.add_column("Viewport")
    table.add_column("Size")
    table.add_column("Captured")
    for b in result["baselines"]:
        table.add_row(b["name"], b["viewport"], f"{b['width']}x{b['height']}", b["capturedAt"])
    out.print(table)


@cli.command()
@click.option("--site", "-s", prompt="Page path or URL", help="Page to capture")
@click.pass_context
def init(ctx: click.Context, site: str) -> None:
    """Create a default configuration file."""
    config_path = Path(ctx.obj["config_path"])
    if config_path.exists():
        if not click.confirm(f"{config_path} already exists. Overwrite?"):
            return

    cfg = ToolConfig(site_url=site)
    cfg.save(config_path)
    out.print(f"[green]Created {config_path}[/green]")
    out.print("\nCapture a first baseline with:")
    out.print("  [blue]vbm call save_baseline '{\"name\": \"home\"}'[/blue]")


if __name__ == "__main__":
    cli()

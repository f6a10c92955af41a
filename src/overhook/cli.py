"""overhook CLI for inspecting extensions and response overrides - Tyro implementation."""

import json
import logging
import sys
from builtins import print as builtin_print
from pathlib import Path
from typing import Annotated, Any

import attrs
import tyro
from rich import print
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from overhook.config import OverhookConfig, get_config, set_config_instance
from overhook.extension.chain import get_registry
from overhook.loader import LoadReport, bootstrap
from overhook.respond.registry import get_override_registry


# Subcommand definitions using attrs
@attrs.define
class Show:
    """Load extensions and show extension chains and response overrides."""

    json: Annotated[bool, tyro.conf.arg(aliases=["-j"])] = False
    """Output as JSON."""


@attrs.define
class Check:
    """Load extensions and report overrides that can never fire.

    Exit codes: 0 = clean, 1 = unresolved overrides or failed extensions.
    """


@attrs.define
class Styles:
    """Show configured attachment styles."""


# Type alias for all subcommands
Command = (
    Annotated[Show, tyro.conf.subcommand(name="show")]
    | Annotated[Check, tyro.conf.subcommand(name="check")]
    | Annotated[Styles, tyro.conf.subcommand(name="styles")]
)


def setup_logging(debug: bool = False) -> None:
    """Configure logging with 100-character text width."""
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(asctime)s - %(name)-20s - %(levelname)-8s - %(message).100s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def load_config(config_dir: Path | None) -> OverhookConfig:
    """Load config from an explicit directory, or by discovery."""
    if config_dir is None:
        return get_config()
    config = OverhookConfig.from_yaml(config_dir / "overhook.yaml")
    set_config_instance(config)
    return config


def collect_registrations() -> dict[str, Any]:
    """Snapshot of both registries as plain data."""
    chains = {}
    for target, chain in get_registry().get_all_chains().items():
        chains[target.__qualname__] = {
            "units": chain.units,
            "methods": {name: [link.unit for link in chain.links(name)] for name in chain.method_names()},
            "class_methods": {
                name: [link.unit for link in chain.links(name, class_level=True)] for name in chain.class_method_names()
            },
        }

    overrides = []
    registry = get_override_registry()
    for target in registry.targets():
        for key, override in registry.overrides_for(target).items():
            overrides.append(
                {
                    "target": target.__qualname__,
                    "action": key.action,
                    "format": key.format,
                    "outcome": key.outcome.value,
                    "handler": getattr(override.handler, "__qualname__", repr(override.handler)),
                    "source": override.source,
                }
            )
    return {"chains": chains, "overrides": overrides}


def show_registrations(report: LoadReport, as_json: bool = False) -> None:
    data = collect_registrations()

    if as_json:
        data["failed"] = [{"entry": entry, "error": error} for entry, error in report.failed]
        builtin_print(json.dumps(data, indent=2))
        return

    console = Console()
    console.print(Panel("[bold cyan]Extensions[/bold cyan]", expand=False))

    chain_table = Table(show_header=True, header_style="bold")
    chain_table.add_column("Target", style="cyan")
    chain_table.add_column("Method", style="green")
    chain_table.add_column("Level")
    chain_table.add_column("Chain (oldest → newest)", style="yellow")
    for target, chain in data["chains"].items():
        for name, units in chain["methods"].items():
            chain_table.add_row(target, name, "instance", " → ".join(units))
        for name, units in chain["class_methods"].items():
            chain_table.add_row(target, name, "class", " → ".join(units))
    console.print(chain_table)

    console.print("\n[bold]Response Overrides:[/bold]")
    override_table = Table(show_header=True, header_style="bold")
    override_table.add_column("Target", style="cyan")
    override_table.add_column("Action", style="green")
    override_table.add_column("Format")
    override_table.add_column("Outcome")
    override_table.add_column("Handler", style="yellow")
    override_table.add_column("Source", style="magenta")
    for row in data["overrides"]:
        override_table.add_row(
            row["target"], row["action"], row["format"], row["outcome"], row["handler"], row["source"] or "-"
        )
    console.print(override_table)

    for entry, error in report.failed:
        console.print(f"[red]Failed:[/red] {entry}: {error}")


def check_registrations(report: LoadReport) -> int:
    """Print validation results and return the exit code."""
    for entry, error in report.failed:
        print(f"[red]Failed extension:[/red] {entry}: {error}")
    for warning in report.unresolved:
        print(f"[yellow]Unresolved:[/yellow] {warning}")

    if report.failed or report.unresolved:
        return 1
    print("[green]All extensions loaded and all overrides resolve to actions[/green]")
    return 0


def show_styles(config: OverhookConfig) -> None:
    table = Table(show_header=True, header_style="bold")
    table.add_column("Style", style="cyan")
    table.add_column("Geometry", style="green")
    for name, geometry in config.attachment_styles.items():
        table.add_row(name, geometry)
    Console().print(table)


def main(
    cmd: Annotated[Command, tyro.conf.arg(name="")],
    *,
    config_dir: Annotated[Path | None, tyro.conf.arg(help="Configuration directory")] = None,
) -> None:
    """overhook - response overrides and extension chains.

    Inspect the extensions configured in overhook.yaml and the response
    overrides they register.
    """
    config = load_config(config_dir)
    setup_logging(config.debug)

    if isinstance(cmd, Styles):
        show_styles(config)
        return

    # Strict failures surface as the check's exit code instead
    report = bootstrap(config.model_copy(update={"strict": False}))

    if isinstance(cmd, Show):
        show_registrations(report, as_json=cmd.json)

    elif isinstance(cmd, Check):
        sys.exit(check_registrations(report))


def entry_point() -> None:
    """Entry point for the overhook command."""
    tyro.cli(main)


if __name__ == "__main__":
    entry_point()

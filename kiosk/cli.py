# Program: Kiosk CLI
# Version: 0.1.0
# Author: Dr. Zulfiyor Bakhtiyorov
# Affiliations: University of Cambridge; Xinjiang Institute of Ecology and Geography; National Academy of Sciences of Tajikistan
# Year: 2025
# License: MIT License

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Optional

import typer
import uvicorn
from rich.console import Console
from rich.table import Table

from .api import Orchestrator, create_app
from .config import configure_logging, load_config
from .readiness import ReadinessState
from .storage import KeyValueStore, KioskSettings

app = typer.Typer(add_completion=False)
console = Console()


def _orchestrator(config: Optional[Path]) -> Orchestrator:
    cfg = load_config(config)
    configure_logging(cfg.log_level)
    return Orchestrator(cfg)


def readiness_table(state: ReadinessState) -> Table:
    table = Table(title="Device readiness")
    table.add_column("Device")
    table.add_column("Status")
    table.add_column("Detail")
    for device, ok, label in (
        ("Camera", state.camera_ok, state.camera_label),
        ("Printer", state.printer_ok, state.printer_label),
    ):
        table.add_row(device, "[green]OK[/]" if ok else "[red]NOT FOUND[/]", label)
    return table


@app.command()
def serve(
    config: Optional[Path] = typer.Option(None, help="YAML config file"),
    host: str = typer.Option("127.0.0.1", help="Bind address"),
    port: int = typer.Option(8100, help="Bind port"),
):
    """Run the kiosk API with the background readiness monitor."""

    orchestrator = _orchestrator(config)
    console.print(f"[green]Kiosk API:[/] http://{host}:{port}")
    uvicorn.run(create_app(orchestrator), host=host, port=port, log_config=None)


@app.command()
def status(config: Optional[Path] = typer.Option(None, help="YAML config file")):
    """Probe camera and printer once and print the result."""

    orchestrator = _orchestrator(config)

    async def probe() -> ReadinessState:
        try:
            await orchestrator.monitor.poll_once()
            return orchestrator.monitor.state
        finally:
            await orchestrator.stop()

    state = asyncio.run(probe())
    console.print(readiness_table(state))
    raise typer.Exit(code=0 if state.ready else 1)


@app.command()
def reset(
    config: Optional[Path] = typer.Option(None, help="YAML config file"),
    yes: bool = typer.Option(False, "--yes", help="Skip confirmation"),
):
    """Format reset: forget selected devices and print calibration."""

    if not yes and not typer.confirm("Clear camera, printer, and paper settings?"):
        raise typer.Abort()
    cfg = load_config(config)
    configure_logging(cfg.log_level)
    KioskSettings(KeyValueStore(cfg.state_path)).format_reset()
    console.print(f"[green]Settings cleared:[/] {cfg.state_path}")


def main() -> int:
    app()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

# Created by Dr. Z. Bakhtiyorov

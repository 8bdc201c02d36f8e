from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

import typer

from .client import GridScout
from .config import DEFAULT_RPM
from .core.contracts import GeoBounds
from .core.errors import InvalidSessionInput
from .export import DiscoveryExport

app = typer.Typer(help="gridscout: grid-search substation discovery")


def _bounds(north: float, south: float, east: float, west: float) -> GeoBounds:
    return GeoBounds(north=north, south=south, east=east, west=west)


@app.command("partition")
def partition_cmd(
    north: float = typer.Option(..., help="Northern edge (deg)"),
    south: float = typer.Option(..., help="Southern edge (deg)"),
    east: float = typer.Option(..., help="Eastern edge (deg)"),
    west: float = typer.Option(..., help="Western edge (deg)"),
    cell_size_km: float = typer.Option(25.0, help="Nominal cell size in km"),
):
    """Print the grid cells for a region, one tab-separated line per cell."""
    try:
        cells = GridScout.partition(_bounds(north, south, east, west), cell_size_km)
    except InvalidSessionInput as e:
        typer.echo(f"error: {e}", err=True)
        raise typer.Exit(code=2)
    for c in cells:
        b = c.bounds
        typer.echo(
            f"{c.id}\t{b.south:.6f}\t{b.west:.6f}\t{b.north:.6f}\t{b.east:.6f}"
            f"\t{c.center.lat:.6f}\t{c.center.lng:.6f}"
        )


@app.command("search")
def search_cmd(
    north: float = typer.Option(..., help="Northern edge (deg)"),
    south: float = typer.Option(..., help="Southern edge (deg)"),
    east: float = typer.Option(..., help="Eastern edge (deg)"),
    west: float = typer.Option(..., help="Western edge (deg)"),
    cell_size_km: float = typer.Option(25.0, help="Nominal cell size in km"),
    analyze: bool = typer.Option(
        False, help="Run capacity analysis on every discovery afterwards"
    ),
    workers: int = typer.Option(1, help="Concurrent discovery calls"),
    retries: int = typer.Option(0, help="Retries per failing cell"),
    rpm: int = typer.Option(DEFAULT_RPM, help="Requests per minute pacing"),
    out: Optional[Path] = typer.Option(
        None, help="Append discoveries as JSONL to this file"
    ),
    debug: bool = typer.Option(False, help="Verbose diagnostics on stderr"),
):
    """Run a grid search against the configured services; prints stats JSON."""
    gs = GridScout(
        rpm=rpm, workers=workers, max_cell_retries=retries, debug=debug
    )
    try:
        session = gs.new_session(_bounds(north, south, east, west), cell_size_km)
    except InvalidSessionInput as e:
        typer.echo(f"error: {e}", err=True)
        raise typer.Exit(code=2)

    for ev in gs.search(session):
        typer.echo(
            f"[search] {ev.cells_processed}/{ev.total_cells} "
            f"({ev.percent:.0f}%) found={len(session.discovered)} "
            f"errors={ev.error_count}",
            err=True,
        )
    if analyze:
        for aev in gs.analyze(session):
            typer.echo(
                f"[analysis] {aev.processed}/{aev.total} {aev.substation_id} "
                f"{aev.status.value} failures={aev.failures}",
                err=True,
            )

    if out is not None:
        n = DiscoveryExport(out).write(
            session.discovered.values(), stats=session.stats
        )
        typer.echo(f"[export] {n} records -> {out}", err=True)

    payload = session.stats.as_dict()
    payload["errors"] = len(session.errors)
    typer.echo(json.dumps(payload))


def main() -> None:
    app()


if __name__ == "__main__":
    app()

"""
Command-Line Interface

CLI commands for GeoFusion KG operations.

Commands:
    geofusion-kg import  - Import GeoJSON / JSON records into a knowledge base
    geofusion-kg enrich  - Run one enrichment batch
    geofusion-kg info    - Display knowledge base information
    geofusion-kg show    - Show a record with its edges and fused view

Usage:
    # Import records
    geofusion-kg import records.geojson --kb ./my_kb

    # Enrich the 50 most recent GOVERNMENT records within 25 km
    geofusion-kg enrich --kb ./my_kb --category GOVERNMENT --limit 50 --radius-km 25

    # Show stats
    geofusion-kg info --kb ./my_kb
"""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Optional

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

__all__ = ["main", "app"]

app = typer.Typer(
    name="geofusion-kg",
    help="Record fusion and relationship-graph engine for geotagged public data",
    no_args_is_help=True,
)
console = Console()


def _load_config(config_path: Optional[Path], **overrides):
    from geofusion_kg.config import FusionConfig

    config = FusionConfig.from_file(config_path) if config_path else FusionConfig()
    overrides = {k: v for k, v in overrides.items() if v is not None}
    return config.with_overrides(**overrides) if overrides else config


@app.callback()
def _main(
    verbose: bool = typer.Option(
        False,
        "--verbose", "-v",
        help="Enable debug logging",
    ),
) -> None:
    """Configure logging for all commands."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


@app.command("import")
def import_(
    path: Path = typer.Argument(
        ...,
        help="GeoJSON FeatureCollection or JSON list of records",
        exists=True,
        dir_okay=False,
    ),
    kb: Path = typer.Option(
        Path("./kb"),
        "--kb", "-k",
        help="Knowledge base directory",
    ),
) -> None:
    """Import records into a knowledge base."""

    async def _run() -> None:
        from geofusion_kg.api.engine import FusionEngine

        engine = FusionEngine(kb, config=_load_config(None))

        try:
            with Progress(
                SpinnerColumn(),
                TextColumn("[progress.description]{task.description}"),
                console=console,
            ) as progress:
                task = progress.add_task(f"Importing {path.name}...")
                written = await engine.import_records(path)
                progress.update(task, completed=True)

            stats = await engine.stats()
            console.print()
            console.print(Panel(
                f"[green]Imported {written} records from {path.name}[/]\n\n"
                f"  Records in store: {stats['records']}",
                title="Import Complete",
            ))
        finally:
            await engine.close()

    try:
        asyncio.run(_run())
    except ValueError as e:
        console.print(f"[red]Import failed: {e}[/]")
        raise typer.Exit(code=1)


@app.command()
def enrich(
    kb: Path = typer.Option(
        Path("./kb"),
        "--kb", "-k",
        help="Knowledge base directory",
        exists=True,
    ),
    record_id: Optional[list[str]] = typer.Option(
        None,
        "--record-id", "-r",
        help="Record to enrich (repeatable; wins over --category)",
    ),
    category: Optional[str] = typer.Option(
        None,
        "--category", "-c",
        help="Only enrich records of this category",
    ),
    limit: Optional[int] = typer.Option(
        None,
        "--limit", "-n",
        help="Max records in the batch",
    ),
    radius_km: Optional[float] = typer.Option(
        None,
        "--radius-km",
        help="Proximity radius in kilometres",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="Batch deadline in seconds",
    ),
    config_path: Optional[Path] = typer.Option(
        None,
        "--config",
        help="TOML configuration file",
        exists=True,
    ),
    as_json: bool = typer.Option(
        False,
        "--json",
        help="Print the raw response payload",
    ),
) -> None:
    """Run one enrichment batch."""

    async def _run():
        from geofusion_kg.api.engine import FusionEngine

        config = _load_config(config_path, batch_timeout_seconds=timeout)
        engine = FusionEngine(kb, config=config, create=False)

        try:
            if as_json:
                return await engine.enrich(
                    record_ids=record_id or None,
                    category=category,
                    limit=limit,
                    radius_km=radius_km,
                )
            with Progress(
                SpinnerColumn(),
                TextColumn("[progress.description]{task.description}"),
                console=console,
            ) as progress:
                task = progress.add_task("Enriching...")
                response = await engine.enrich(
                    record_ids=record_id or None,
                    category=category,
                    limit=limit,
                    radius_km=radius_km,
                )
                progress.update(task, completed=True)
            return response
        finally:
            await engine.close()

    response = asyncio.run(_run())

    if as_json:
        console.print_json(json.dumps(response.to_payload()))
        if not response.success:
            raise typer.Exit(code=1)
        return

    if not response.success:
        console.print(f"[red]Enrichment failed ({response.status_code}): {response.error}[/]")
        raise typer.Exit(code=1)

    table = Table(title=f"Enrichment: {kb}")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right", style="green")

    table.add_row("Records processed", str(response.records_processed))
    table.add_row("Records enriched", str(response.enriched_count))
    table.add_row("Relationships created", str(response.relationships_created))
    table.add_row("Knowledge edges", str(response.knowledge_edges))
    table.add_row("Fused records", str(response.fused_records))
    if response.abandoned:
        table.add_row("Abandoned", str(response.abandoned))
    table.add_row("Time", f"{response.processing_time_ms}ms")

    console.print(table)

    if response.ai_insight:
        console.print(Panel(response.ai_insight, title="Insight", border_style="blue"))

    if response.errors:
        console.print(f"[yellow]{len(response.errors)} warnings:[/]")
        for error in response.errors[:10]:
            console.print(f"  - {error}")


@app.command()
def info(
    kb: Path = typer.Option(
        Path("./kb"),
        "--kb", "-k",
        help="Knowledge base directory",
        exists=True,
    ),
) -> None:
    """Display knowledge base information."""

    async def _run() -> None:
        from geofusion_kg.api.engine import FusionEngine

        engine = FusionEngine(kb, config=_load_config(None), create=False)

        try:
            stats = await engine.stats()
            daily = await engine.get_daily_stats()

            table = Table(title=f"Knowledge Base: {kb}")
            table.add_column("Metric", style="cyan")
            table.add_column("Count", justify="right", style="green")

            table.add_row("Records", str(stats["records"]))
            table.add_row("Relationships", str(stats["relationships"]))
            table.add_row("Knowledge edges", str(stats["knowledge_edges"]))
            table.add_row("Fused records", str(stats["fused_records"]))

            console.print(table)

            if daily:
                rollup = Table(title="Daily Enrichment")
                rollup.add_column("Date", style="cyan")
                rollup.add_column("Category")
                rollup.add_column("Enriched", justify="right")
                rollup.add_column("Relationships", justify="right")
                rollup.add_column("Fusions", justify="right")
                rollup.add_column("Avg ms", justify="right")
                for stat in daily[:20]:
                    rollup.add_row(
                        stat.date,
                        stat.category.value,
                        str(stat.records_enriched),
                        str(stat.relationships_created),
                        str(stat.fusion_operations),
                        f"{stat.avg_enrichment_time_ms:.1f}",
                    )
                console.print(rollup)

        finally:
            await engine.close()

    asyncio.run(_run())


@app.command()
def show(
    record_id: str = typer.Argument(
        ...,
        help="Record id",
    ),
    kb: Path = typer.Option(
        Path("./kb"),
        "--kb", "-k",
        help="Knowledge base directory",
        exists=True,
    ),
) -> None:
    """Show a record with its relationships, knowledge edges and fused view."""

    async def _run() -> bool:
        from geofusion_kg.api.engine import FusionEngine

        engine = FusionEngine(kb, config=_load_config(None), create=False)

        try:
            record = await engine.get_record(record_id)
            if record is None:
                console.print(f"[red]Record not found: {record_id}[/]")
                return False

            console.print(Panel(
                f"Category: {record.category.value}\n"
                f"Source: {record.source_id}\n"
                f"Collected: {record.collected_at}\n"
                f"Geometry: {record.geometry.type if record.geometry else 'none'}",
                title=record.name or record.id,
            ))

            relationships = await engine.get_relationships(record_id)
            if relationships:
                table = Table(title="Relationships")
                table.add_column("Source", style="cyan")
                table.add_column("Type")
                table.add_column("Target", style="cyan")
                table.add_column("Distance (m)", justify="right")
                table.add_column("Confidence", justify="right", style="green")
                for edge in relationships:
                    table.add_row(
                        edge.source_record_id,
                        edge.relationship_type.value,
                        edge.target_record_id,
                        f"{edge.distance_meters:,.0f}",
                        f"{edge.confidence:.2f}",
                    )
                console.print(table)

            edges = await engine.get_knowledge_edges(record_id)
            if edges:
                table = Table(title="Knowledge Edges")
                table.add_column("Predicate", style="cyan")
                table.add_column("Object")
                table.add_column("Weight", justify="right")
                table.add_column("Evidence", justify="right", style="dim")
                for kedge in edges:
                    table.add_row(
                        kedge.predicate,
                        f"{kedge.object_type}:{kedge.object_id}",
                        f"{kedge.weight:.1f}",
                        str(len(kedge.evidence)),
                    )
                console.print(table)

            fused = await engine.get_fused_record(record_id)
            if fused is not None:
                console.print(Panel(
                    json.dumps(fused.properties, indent=2, default=str),
                    title=f"Fused ({', '.join(fused.sources)}; passes: {fused.enrichment_count})",
                    border_style="green",
                ))
            return True
        finally:
            await engine.close()

    if not asyncio.run(_run()):
        raise typer.Exit(code=1)


def main() -> None:
    """Entry point for the CLI."""
    load_dotenv()
    app()

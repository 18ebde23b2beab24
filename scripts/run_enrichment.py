#!/usr/bin/env python3
"""
Run Enrichment Script

Thin wrapper around FusionEngine import + enrichment APIs. Without an input
file, seeds a small synthetic dataset around Baltimore so the whole pipeline
can be exercised end to end.

Usage:
    python scripts/run_enrichment.py
    python scripts/run_enrichment.py records.geojson --output ./my_kb
    python scripts/run_enrichment.py --category GOVERNMENT --radius-km 25
    python scripts/run_enrichment.py --seed-count 400 --strategy scan
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import random
import shutil
import time
from pathlib import Path

from dotenv import load_dotenv

from geofusion_kg.api.engine import FusionEngine
from geofusion_kg.config import FusionConfig
from geofusion_kg.types import Category, Geometry, Record

PROJECT_ROOT = Path(__file__).resolve().parent.parent
load_dotenv(PROJECT_ROOT / ".env")

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("openai").setLevel(logging.WARNING)

BALTIMORE = (39.30, -76.61)


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Import records and run one enrichment batch"
    )
    parser.add_argument(
        "input",
        type=Path,
        nargs="?",
        default=None,
        help="GeoJSON FeatureCollection or JSON list of records (default: synthetic seed)",
    )
    parser.add_argument(
        "--output",
        type=Path,
        default=Path("./test_kb"),
        help="Output directory for knowledge base (default: ./test_kb)",
    )
    parser.add_argument("--category", type=str, default=None, help="Category filter")
    parser.add_argument("--limit", type=int, default=None, help="Max records in the batch")
    parser.add_argument("--radius-km", type=float, default=None, help="Proximity radius")
    parser.add_argument(
        "--strategy",
        choices=("grid", "scan"),
        default=None,
        help="Proximity strategy (default: from FusionConfig)",
    )
    parser.add_argument(
        "--seed-count",
        type=int,
        default=60,
        help="Synthetic records to generate when no input is given (default: 60)",
    )
    parser.add_argument(
        "--clean",
        action=argparse.BooleanOptionalAction,
        default=True,
        help="Clean output directory before building (default: true)",
    )
    return parser.parse_args()


def synthetic_records(count: int, rng: random.Random) -> list[Record]:
    """Records scattered within ~80 km of Baltimore across every category."""
    categories = list(Category)
    records = []
    for i in range(count):
        category = categories[i % len(categories)]
        lat = BALTIMORE[0] + rng.uniform(-0.7, 0.7)
        lon = BALTIMORE[1] + rng.uniform(-0.9, 0.9)
        records.append(
            Record(
                id=f"seed-{i:04d}",
                category=category,
                name=f"{category.value.title()} record {i}",
                geometry=Geometry.point(round(lat, 6), round(lon, 6)),
                properties={"value": round(rng.uniform(0, 1000), 2), "trend": rng.choice(["up", "down"])},
                source_id=f"synthetic-{category.value.lower()}",
                collected_at=f"2024-06-{1 + i % 28:02d}T12:00:00+00:00",
            )
        )
    return records


async def main() -> None:
    args = parse_args()

    if args.input is not None and not args.input.exists():
        raise FileNotFoundError(f"Input file not found: {args.input}")

    if args.clean and args.output.exists():
        shutil.rmtree(args.output)

    config = FusionConfig(proximity_strategy=args.strategy) if args.strategy else FusionConfig()

    start = time.time()
    async with FusionEngine(args.output, config=config) as engine:
        if args.input is None:
            print(f"Seeding {args.seed_count} synthetic records...")
            written = await engine.write_records(synthetic_records(args.seed_count, random.Random(7)))
        else:
            print(f"Importing {args.input}...")
            written = await engine.import_records(args.input)
        print(f"  Records written: {written}")

        response = await engine.enrich(
            category=args.category,
            limit=args.limit,
            radius_km=args.radius_km,
        )
        stats = await engine.stats()

    total = time.time() - start
    if not response.success:
        print(f"\nEnrichment failed ({response.status_code}): {response.error}")
        return

    print("\nEnrichment complete")
    print(f"  Records processed: {response.records_processed}")
    print(f"  Records enriched: {response.enriched_count}")
    print(f"  Relationships created: {response.relationships_created}")
    print(f"  Knowledge edges: {response.knowledge_edges}")
    print(f"  Fused records: {response.fused_records}")
    print(f"  Phase timing: {response.timing}")
    print(f"  Store totals: {stats}")
    print(f"  Total script duration: {total:.2f}s")
    if response.ai_insight:
        print(f"  Insight: {response.ai_insight}")
    if response.errors:
        print("  Warnings:")
        for err in response.errors:
            print(f"    - {err}")


if __name__ == "__main__":
    asyncio.run(main())

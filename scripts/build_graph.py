#!/usr/bin/env python3
"""
Build a routable H3 graph from a GeoJSON file of line features.

Features are grouped into square degree tiles by their first coordinate; each
tile becomes one parallel assembly pass. The built graph is written in the
versioned hexgraph envelope.

Usage:
    python build_graph.py --input roads.geojson --output roads.hxgr
    python build_graph.py --input roads.geojson --output roads.hxgr --resolution 8 --workers 8
    python build_graph.py --config /path/to/config/.env --input roads.geojson --output roads.hxgr --edges-csv edges.csv
"""

import sys
import argparse
import json
import math
from collections import defaultdict
from pathlib import Path
from typing import Dict, List

from hexgraph.common import config, load_config, get_logger, setup_logging, TimedLogger
from hexgraph.ingest import LineFeature, build_graph_from_tiles
from hexgraph.io import save_graph
from hexgraph.transform import edges_to_dataframe

logger = get_logger("build_graph")


def parse_arguments():
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Build a routable H3 graph from GeoJSON line features",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )

    parser.add_argument(
        "--input", type=str, required=True, help="GeoJSON FeatureCollection of LineStrings"
    )

    parser.add_argument(
        "--output", type=str, required=True, help="Path of the serialized graph"
    )

    parser.add_argument(
        "--resolution",
        type=int,
        default=None,
        help="H3 resolution level (0-15), defaults to HEXGRAPH_RESOLUTION",
    )

    parser.add_argument(
        "--workers",
        type=int,
        default=None,
        help="Assembly worker threads, defaults to HEXGRAPH_ASSEMBLY_WORKERS",
    )

    parser.add_argument(
        "--tile-degrees", type=float, default=1.0, help="Tile edge length in degrees"
    )

    parser.add_argument(
        "--default-speed",
        type=float,
        default=50.0,
        help="Speed in km/h for features without a speed_kph property",
    )

    parser.add_argument("--config", type=str, help="Path to .env configuration file")

    parser.add_argument("--edges-csv", type=str, help="Also save edges to CSV file")

    parser.add_argument("--verbose", action="store_true", help="Enable verbose logging")

    return parser.parse_args()


def tile_name(feature: LineFeature, tile_degrees: float) -> str:
    """Name of the tile holding the first coordinate of a feature."""
    lng, lat = feature.geometry.coords[0][:2]
    return f"{math.floor(lat / tile_degrees)}_{math.floor(lng / tile_degrees)}"


def load_tiles(
    input_file: str, tile_degrees: float, default_speed_kph: float
) -> Dict[str, List[LineFeature]]:
    """Read line features and group them into tiles."""

    with TimedLogger(logger, f"load_tiles: {input_file}"):
        with open(input_file, "r", encoding="utf-8") as f:
            collection = json.load(f)

        tiles: Dict[str, List[LineFeature]] = defaultdict(list)
        skipped = 0
        for feature in collection.get("features", []):
            if (feature.get("geometry") or {}).get("type") != "LineString":
                skipped += 1
                continue
            line = LineFeature.from_geojson(feature, default_speed_kph=default_speed_kph)
            if line.geometry.is_empty:
                skipped += 1
                continue
            tiles[tile_name(line, tile_degrees)].append(line)

        logger.info(
            f"Loaded {sum(len(v) for v in tiles.values())} line features in {len(tiles)} tiles",
            extra={"tiles": len(tiles), "skipped_features": skipped},
        )
        return dict(tiles)


def main():
    """Main execution function."""

    try:
        args = parse_arguments()

        if args.config:
            from dotenv import load_dotenv

            load_dotenv(args.config, override=True)
            logger.info(f"Loaded configuration from {args.config}")

        settings = load_config() if args.config else config
        setup_logging(
            level="DEBUG" if args.verbose else settings.logging.level,
            structured=settings.logging.enable_structured_logging,
        )

        if args.tile_degrees <= 0:
            raise ValueError(f"--tile-degrees must be positive, got {args.tile_degrees}")

        resolution = args.resolution if args.resolution is not None else settings.graph.resolution
        workers = args.workers or settings.graph.assembly_workers

        tiles = load_tiles(args.input, args.tile_degrees, args.default_speed)

        with TimedLogger(logger, "build_graph", resolution=resolution, workers=workers):
            graph = build_graph_from_tiles(tiles, resolution=resolution, max_workers=workers)

        output_path = Path(args.output)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        size = save_graph(
            graph, output_path, compression_level=settings.persistence.compression_level
        )

        if args.edges_csv:
            edges_path = Path(args.edges_csv)
            edges_path.parent.mkdir(parents=True, exist_ok=True)
            edges_to_dataframe(graph).to_csv(edges_path, index=False)
            logger.info(f"Edges saved to {edges_path}")

        stats = graph.stats()
        print(f"\n✅ SUCCESS: Wrote {output_path} ({size:,} bytes)")
        print(f"\n📊 Graph Statistics:")
        print(f"   Resolution: {stats.resolution}")
        print(f"   Nodes: {stats.num_nodes:,}")
        print(f"   Edges: {stats.num_edges:,}")
        if stats.min_weight is not None:
            print(
                f"   Weight (s): min {stats.min_weight:.2f}, mean {stats.mean_weight:.2f}, max {stats.max_weight:.2f}"
            )

        logger.info("Graph build completed successfully")

    except KeyboardInterrupt:
        print("\n⚠️  Operation cancelled by user")
        sys.exit(1)
    except Exception as e:
        logger.error(f"Graph build failed: {e}")
        print(f"\n❌ ERROR: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()

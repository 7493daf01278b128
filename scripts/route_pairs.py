#!/usr/bin/env python3
"""
Route a CSV of coordinate pairs over a serialized hexgraph.

Both coordinates of every row are snapped to the nearest graph node with the
configured spatial index backend and routed on a worker pool. Rows with
missing or out-of-range coordinates are written with status "failed".

Input columns: origin_lat, origin_lng, destination_lat, destination_lng

Usage:
    python route_pairs.py --graph roads.hxgr --pairs pairs.csv --output routes.csv
    python route_pairs.py --graph roads.hxgr --pairs pairs.csv --output routes.csv --backend static-packed-bvh --workers 8
    python route_pairs.py --graph roads.hxgr --pairs pairs.csv --output routes.csv --time-limit 60
"""

import sys
import argparse
import threading
from pathlib import Path

import pandas as pd

from hexgraph.common import config, load_config, get_logger, setup_logging
from hexgraph.io import load_graph
from hexgraph.routing import BatchRouter, RouteStatus
from hexgraph.spatial import build_index_for_graph
from hexgraph.transform import batch_results_to_dataframe

logger = get_logger("route_pairs")

REQUIRED_COLUMNS = ["origin_lat", "origin_lng", "destination_lat", "destination_lng"]


def parse_arguments():
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Route coordinate pairs over a serialized hexgraph",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )

    parser.add_argument("--graph", type=str, required=True, help="Serialized graph file")

    parser.add_argument(
        "--pairs", type=str, required=True, help="CSV file of coordinate pairs"
    )

    parser.add_argument("--output", type=str, required=True, help="Output CSV file")

    parser.add_argument(
        "--backend",
        type=str,
        choices=["balanced-tree", "dynamic-bvh-tree", "static-packed-bvh"],
        default=None,
        help="Spatial index backend, defaults to HEXGRAPH_SPATIAL_BACKEND",
    )

    parser.add_argument(
        "--heuristic",
        type=str,
        choices=["none", "grid", "great_circle"],
        default=None,
        help="Search heuristic, defaults to HEXGRAPH_HEURISTIC",
    )

    parser.add_argument(
        "--workers",
        type=int,
        default=None,
        help="Batch worker threads, defaults to HEXGRAPH_BATCH_WORKERS",
    )

    parser.add_argument(
        "--time-limit",
        type=float,
        default=None,
        help="Seconds after which pairs not yet started are cancelled",
    )

    parser.add_argument("--config", type=str, help="Path to .env configuration file")

    parser.add_argument("--verbose", action="store_true", help="Enable verbose logging")

    return parser.parse_args()


def read_pairs(pairs_file: str) -> pd.DataFrame:
    """Read and validate the coordinate pair CSV."""
    pairs_df = pd.read_csv(pairs_file)
    missing = [column for column in REQUIRED_COLUMNS if column not in pairs_df.columns]
    if missing:
        raise ValueError(f"Missing columns in {pairs_file}: {', '.join(missing)}")
    return pairs_df


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

        graph = load_graph(args.graph)
        pairs_df = read_pairs(args.pairs)

        backend = args.backend or settings.spatial_index.backend
        index = build_index_for_graph(graph, backend)

        # rows that cannot be snapped come back FAILED
        pairs = [
            (
                (row.origin_lat, row.origin_lng),
                (row.destination_lat, row.destination_lng),
            )
            for row in pairs_df.itertuples(index=False)
        ]

        router = BatchRouter(
            graph,
            max_workers=args.workers or settings.search.batch_workers,
            heuristic=args.heuristic or settings.search.heuristic,
        )

        cancel_event = threading.Event()
        timer = None
        if args.time_limit is not None:
            timer = threading.Timer(args.time_limit, cancel_event.set)
            timer.start()
        try:
            results = router.route_coordinate_pairs(index, pairs, cancel_event=cancel_event)
        finally:
            if timer is not None:
                timer.cancel()

        results_df = batch_results_to_dataframe(results)
        output_df = pd.concat(
            [pairs_df[REQUIRED_COLUMNS].reset_index(drop=True), results_df], axis=1
        )

        output_path = Path(args.output)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_df.to_csv(output_path, index=False)

        counts = {status: 0 for status in RouteStatus}
        for result in results:
            counts[result.status] += 1

        print(f"\n✅ SUCCESS: Routed {len(results)} pairs to {output_path}")
        print(f"\n📊 Routing Statistics:")
        print(f"   Found: {counts[RouteStatus.FOUND]:,}")
        print(f"   No route: {counts[RouteStatus.NO_ROUTE]:,}")
        print(f"   Failed: {counts[RouteStatus.FAILED]:,}")
        print(f"   Cancelled: {counts[RouteStatus.CANCELLED]:,}")

        logger.info("Pair routing completed successfully")

    except KeyboardInterrupt:
        print("\n⚠️  Operation cancelled by user")
        sys.exit(1)
    except Exception as e:
        logger.error(f"Pair routing failed: {e}")
        print(f"\n❌ ERROR: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()

#!/usr/bin/env python3
"""Preview marker clusters for a single static viewport.

Loads a point file, runs one clustering cycle against a headless map host,
and exports the resulting clusters to JSON.

Usage:
    python run_cluster_preview.py --input points.csv --bbox -77.6 37.4 -77.3 37.7 --zoom 11

    # S2 cells, centroid centering, custom config
    python run_cluster_preview.py --input points.jsonl --bbox -78 37 -77 38 --zoom 9 \
        --grid s2 --strategy centroid --config clustering_config.json
"""

import argparse
import logging
import os
import sys

from viewport_clustering import (
    Bounds,
    ClusterOptions,
    StaticMapHost,
    add_clustered_layer,
    clusters_to_records,
    load_config,
    load_points_df,
    points_from_dataframe,
    write_clusters_json,
)


def main() -> None:
    """Cluster a point file for one viewport and export the clusters.

    Raises:
        SystemExit: If data loading or configuration fails.
    """
    parser = argparse.ArgumentParser(
        description="Preview marker clusters for a static map viewport"
    )
    parser.add_argument(
        "--input",
        required=True,
        help="Path to input data file (JSONL, JSON or CSV with lat/lng columns)"
    )
    parser.add_argument(
        "--bbox",
        type=float,
        nargs=4,
        metavar=("WEST", "SOUTH", "EAST", "NORTH"),
        default=[-180.0, -85.0, 180.0, 85.0],
        help="Viewport bounds in degrees (default: whole world)"
    )
    parser.add_argument(
        "--zoom",
        type=float,
        default=10.0,
        help="Map zoom level (default: 10)"
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Optional JSON configuration file"
    )
    parser.add_argument(
        "--grid",
        choices=["h3", "s2"],
        default=None,
        help="Grid backend (overrides config)"
    )
    parser.add_argument(
        "--strategy",
        choices=["centroid", "cell-center", "smart"],
        default=None,
        help="Centering strategy (overrides config)"
    )
    parser.add_argument(
        "--bucketing",
        choices=["grid", "pixel"],
        default=None,
        help="Bucketing mode (overrides config)"
    )
    parser.add_argument(
        "--omit-clustering",
        action="store_true",
        help="Emit one cluster per point"
    )
    parser.add_argument(
        "--out",
        default="clusters_out/clusters.json",
        help="Output JSON path (default: clusters_out/clusters.json)"
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging"
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    overrides = {}
    if args.grid:
        overrides["grid"] = args.grid
    if args.strategy:
        overrides["centering_strategy"] = args.strategy
    if args.bucketing:
        overrides["bucketing"] = args.bucketing
    if args.omit_clustering:
        overrides["omit_clustering"] = True

    try:
        options = ClusterOptions.from_config(load_config(args.config), **overrides)
    except ValueError as e:
        print(f"[ERROR] Invalid configuration: {e}")
        sys.exit(1)

    print(f"[INFO] Loading data from {args.input}...")
    try:
        df = load_points_df(args.input)
        print(f"[INFO] Loaded {len(df)} points")
    except (OSError, ValueError) as e:
        print(f"[ERROR] Failed to load data: {e}")
        sys.exit(1)

    host = StaticMapHost(Bounds(*args.bbox), zoom=args.zoom)
    print(f"[INFO] Clustering with grid={options.grid}, strategy={options.centering_strategy}, zoom={args.zoom}...")
    layer = add_clustered_layer(host, points_from_dataframe(df), options)
    layer.detach()

    keys = {cluster.id: key for key, cluster in layer.clusters_by_key.items()}
    items = clusters_to_records(layer.clusters, keys)
    print(f"[INFO] Found {len(items)} clusters (resolution={layer.resolution})")

    print(f"[INFO] Exporting clusters to {args.out}...")
    write_clusters_json(items, args.out)
    print(f"[OK] Exported {len(items)} clusters to {os.path.abspath(args.out)}")


if __name__ == "__main__":
    main()

#!/usr/bin/env python3
"""Group map markers at one or more zoom levels and export the visible lists.

Loads point data, builds a grouping overlay, draws it once per zoom level with
a Web Mercator projection centred on the data, and writes the resulting
visible list (individual markers and group markers) to JSON.

Usage:
    # Run with defaults
    python run_marker_grouping.py --input points.csv

    # Or with custom arguments
    python run_marker_grouping.py --input points.jsonl --zoom 8 10 12 --plot
"""

import argparse
import os
import sys
from typing import List, Optional

import matplotlib
matplotlib.use("Agg")  # Use non-interactive backend
import matplotlib.pyplot as plt

from grouping import (
    GeoPoint,
    GroupOverlay,
    ListItemSource,
    MercatorProjection,
    gdf_to_points_json,
    load_config,
    load_points_df,
    make_overlay,
    visible_to_gdf,
)


def plot_visible(overlay: GroupOverlay, originals: list, out_path: str, zoom: int) -> None:
    """Save a preview scatter of original points against the visible list.

    Args:
        overlay: Overlay after a grouping pass.
        originals: Original items (drawn faint in the background).
        out_path: Output PNG path.
        zoom: Zoom level used for the pass (plot title only).
    """
    visible = overlay.items()
    groups = [i for i in visible if overlay.group_marker is not None and i.marker is overlay.group_marker]
    singles = [i for i in visible if i not in groups]

    plt.figure(figsize=(10, 8))
    plt.scatter(
        [i.point.longitude for i in originals],
        [i.point.latitude for i in originals],
        s=6, color="lightgray", label="original"
    )
    plt.scatter(
        [i.point.longitude for i in singles],
        [i.point.latitude for i in singles],
        s=18, color="tab:blue", label="individual"
    )
    plt.scatter(
        [i.point.longitude for i in groups],
        [i.point.latitude for i in groups],
        s=90, color="tab:red", marker="s", label="group"
    )
    plt.xlabel("Longitude", fontsize=12)
    plt.ylabel("Latitude", fontsize=12)
    plt.title(f"Visible markers at zoom {zoom}", fontsize=14, fontweight="bold")
    plt.legend()
    plt.grid(True, alpha=0.3)
    plt.tight_layout()
    plt.savefig(out_path, dpi=150, bbox_inches="tight")
    plt.close()


def main(argv: Optional[List[str]] = None) -> None:
    """Group markers and export visible lists.

    Raises:
        SystemExit: If data or configuration loading fails.
    """
    parser = argparse.ArgumentParser(
        description="Group nearby map markers per zoom level and export visible lists"
    )
    parser.add_argument(
        "--input",
        default="data/points.csv",
        help="Path to input data file (JSONL, JSON or CSV with lon/lat columns) (default: data/points.csv)"
    )
    parser.add_argument(
        "--out",
        default="grouping_out",
        help="Output directory (default: grouping_out)"
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to grouping config JSON (default: built-in defaults)"
    )
    parser.add_argument(
        "--zoom",
        type=int,
        nargs="+",
        default=None,
        help="Zoom level(s) to group at (default: view.zoom from config)"
    )
    parser.add_argument("--center-lat", type=float, default=None, help="View center latitude (default: data mean)")
    parser.add_argument("--center-lon", type=float, default=None, help="View center longitude (default: data mean)")
    parser.add_argument("--width", type=int, default=None, help="Viewport width in pixels (default: from config)")
    parser.add_argument("--height", type=int, default=None, help="Viewport height in pixels (default: from config)")
    parser.add_argument(
        "--min-per-group",
        type=int,
        default=None,
        help="Smallest group replaced by a group marker (default: from config)"
    )
    parser.add_argument("--plot", action="store_true", help="Also save a PNG preview per zoom level")
    args = parser.parse_args(argv)

    try:
        cfg = load_config(args.config)
    except (ValueError, OSError) as e:
        print(f"[ERROR] Failed to load config: {e}")
        sys.exit(1)

    if args.min_per_group is not None:
        cfg["grouping"]["min_per_group"] = args.min_per_group
    view = cfg["view"]
    width = args.width if args.width is not None else view["width"]
    height = args.height if args.height is not None else view["height"]
    zooms = args.zoom if args.zoom else [view["zoom"]]
    x_col, y_col = cfg["input"]["x_col"], cfg["input"]["y_col"]

    os.makedirs(args.out, exist_ok=True)

    print(f"[INFO] Loading data from {args.input}...")
    try:
        df = load_points_df(args.input, x_col=x_col, y_col=y_col)
        print(f"[INFO] Loaded {len(df)} points")
    except Exception as e:
        print(f"[ERROR] Failed to load data: {e}")
        sys.exit(1)

    source = ListItemSource.from_dataframe(df, x_col, y_col, cfg["input"]["title_col"])
    try:
        overlay = make_overlay(source, cfg)
    except ValueError as e:
        print(f"[ERROR] Invalid grouping settings: {e}")
        sys.exit(1)
    if not overlay.grouping_enabled:
        print("[WARN] No group marker configured, visible list mirrors the input")

    if len(df) == 0:
        print("[WARN] No valid points, exporting empty visible lists")
        center_lat, center_lon = 0.0, 0.0
    else:
        center_lat = args.center_lat if args.center_lat is not None else float(df[y_col].mean())
        center_lon = args.center_lon if args.center_lon is not None else float(df[x_col].mean())
    center = GeoPoint.from_degrees(center_lat, center_lon)

    originals = source.items()
    for zoom in zooms:
        projection = MercatorProjection(zoom, center, width, height, view["tile_size"])
        overlay.draw(zoom, projection)
        info = overlay.info()
        print(
            f"[INFO] Zoom {zoom}: {overlay.size()} visible markers "
            f"({info['n_aggregated'] or 0} groups, {info['n_dissolved'] or 0} dissolved)"
        )

        json_path = os.path.join(args.out, f"visible_z{zoom}.json")
        gdf_to_points_json(visible_to_gdf(overlay.items(), overlay.group_marker), json_path)
        print(f"[OK] Exported {overlay.size()} markers to {json_path}")

        if args.plot:
            png_path = os.path.join(args.out, f"visible_z{zoom}.png")
            plot_visible(overlay, originals, png_path, zoom)
            print(f"[OK] Saved preview plot: {png_path}")

    print("[DONE] Marker grouping complete.")


if __name__ == "__main__":
    main()

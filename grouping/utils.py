"""Utility functions for marker grouping.

Provides helper functions for coordinate validation, point file loading,
conversion between DataFrames and overlay items, export of visible lists, and
parameter hashing.
"""

import json
import hashlib
import os
import warnings
from typing import Any, Dict, List, Optional

import numpy as np
import pandas as pd
import geopandas as gpd
from shapely.geometry import Point

from grouping.base import E6, GeoPoint, Marker, OverlayItem


def validate_coordinates(
    df: pd.DataFrame,
    x_col: str = "lon",
    y_col: str = "lat"
) -> pd.DataFrame:
    """Validate and clean coordinate data.

    Args:
        df: DataFrame with coordinate columns.
        x_col: Name of longitude column.
        y_col: Name of latitude column.

    Returns:
        Cleaned DataFrame with invalid coordinates removed.
    """
    df = df.copy()
    df = df.dropna(subset=[x_col, y_col])
    df = df[
        (df[x_col] >= -180) & (df[x_col] <= 180) &
        (df[y_col] >= -90) & (df[y_col] <= 90)
    ]

    return df.reset_index(drop=True)


def _read_json_records(path: str) -> List[Dict[str, Any]]:
    """Read a JSON array or JSON Lines file into a list of dicts."""
    with open(path, "r", encoding="utf-8") as f:
        content = f.read().strip()

    if not content:
        return []
    if content.startswith("["):
        return json.loads(content)

    records = []
    for line in content.splitlines():
        line = line.strip()
        if line:
            records.append(json.loads(line))
    return records


def load_points_df(path: str, x_col: str = "lon", y_col: str = "lat") -> pd.DataFrame:
    """Load point records from JSONL/JSON/CSV with coordinate validation.

    Records lacking flat coordinate fields fall back to a nested
    ``location: {"lat": ..., "lon": ...}`` object. Rows with missing or
    out-of-range coordinates are dropped with a warning.

    Args:
        path: Path to input file (.jsonl, .json, or .csv).
        x_col: Name of longitude/x column (default: "lon").
        y_col: Name of latitude/y column (default: "lat").

    Returns:
        DataFrame with validated coordinate columns.

    Raises:
        FileNotFoundError: If input file doesn't exist.
        ValueError: If required columns are missing or file format is unsupported.
    """
    if not os.path.exists(path):
        raise FileNotFoundError(f"Input file not found: {path}")

    ext = os.path.splitext(path)[1].lower()
    if ext in (".jsonl", ".json"):
        records = _read_json_records(path)
        for record in records:
            location = record.get("location")
            if isinstance(location, dict):
                if record.get(x_col) is None and "lon" in location:
                    record[x_col] = location["lon"]
                if record.get(y_col) is None and "lat" in location:
                    record[y_col] = location["lat"]
        df = pd.DataFrame(records)
    elif ext == ".csv":
        df = pd.read_csv(path)
    else:
        raise ValueError(f"Unsupported file format: {ext} (use .jsonl, .json, or .csv)")

    missing = {x_col, y_col} - set(df.columns)
    if missing:
        raise ValueError(
            f"Missing required columns: {sorted(missing)}. "
            f"Available columns: {sorted(df.columns.tolist())}"
        )

    cleaned = validate_coordinates(df, x_col, y_col)
    dropped = len(df) - len(cleaned)
    if dropped:
        warnings.warn(f"Dropped {dropped} rows with missing or invalid coordinates from {path}")
    return cleaned


def items_from_df(
    df: pd.DataFrame,
    x_col: str = "lon",
    y_col: str = "lat",
    title_col: Optional[str] = None,
) -> List[OverlayItem]:
    """Build overlay items from a DataFrame of decimal-degree coordinates.

    Args:
        df: DataFrame with coordinate columns (already validated).
        x_col: Name of longitude column.
        y_col: Name of latitude column.
        title_col: Optional column used as item title. Defaults to the row index.

    Returns:
        One OverlayItem per row, in row order.
    """
    lat_e6 = np.rint(df[y_col].to_numpy(dtype=float) * E6).astype(np.int64)
    lon_e6 = np.rint(df[x_col].to_numpy(dtype=float) * E6).astype(np.int64)
    if title_col is not None:
        titles = df[title_col].astype(str).tolist()
    else:
        titles = [str(idx) for idx in df.index]

    return [
        OverlayItem(GeoPoint(int(lat), int(lon)), title=title)
        for lat, lon, title in zip(lat_e6, lon_e6, titles)
    ]


VISIBLE_COLUMNS = ["title", "marker", "is_group", "lat_e6", "lon_e6"]


def visible_to_gdf(
    items: List[OverlayItem],
    group_marker: Optional[Marker] = None
) -> gpd.GeoDataFrame:
    """Convert a visible item list to a GeoDataFrame in EPSG:4326.

    Args:
        items: Visible items (originals and synthetic group items).
        group_marker: Marker identifying synthetic group items.

    Returns:
        GeoDataFrame with Point geometries and columns title, marker,
        is_group, lat_e6, lon_e6.
    """
    if not items:
        return gpd.GeoDataFrame(columns=VISIBLE_COLUMNS, geometry=[], crs="EPSG:4326")

    data = {
        "title": [item.title for item in items],
        # object dtype keeps None for unmarked items instead of NaN
        "marker": pd.Series(
            [item.marker.name if item.marker is not None else None for item in items],
            dtype=object,
        ),
        "is_group": [group_marker is not None and item.marker is group_marker for item in items],
        "lat_e6": [item.point.lat_e6 for item in items],
        "lon_e6": [item.point.lon_e6 for item in items],
    }
    geometries = [Point(item.point.longitude, item.point.latitude) for item in items]

    return gpd.GeoDataFrame(data, geometry=geometries, crs="EPSG:4326")


def gdf_to_points_json(gdf: gpd.GeoDataFrame, out_path: str) -> None:
    """Export a visible-list GeoDataFrame to a JSON array of point objects.

    Args:
        gdf: GeoDataFrame from :func:`visible_to_gdf`.
        out_path: Output file path for JSON file.

    JSON Format:
        Array of objects: [{"lon": ..., "lat": ..., "title": ..., "marker": ..., "is_group": ...}, ...]
    """
    out_dir = os.path.dirname(out_path)
    if out_dir:
        os.makedirs(out_dir, exist_ok=True)

    points = []
    for _, row in gdf.iterrows():
        geom = row.geometry
        marker = row["marker"]
        points.append({
            "lon": float(geom.x),
            "lat": float(geom.y),
            "title": str(row["title"]),
            "marker": None if pd.isna(marker) else str(marker),
            "is_group": bool(row["is_group"]),
        })

    with open(out_path, "w", encoding="utf-8") as f:
        json.dump(points, f, ensure_ascii=False, indent=2)


def canonical_params_json(method: str, params: Dict[str, Any]) -> str:
    """Create canonical JSON representation of grouping parameters.

    Args:
        method: Grouping method name (e.g., "proximity").
        params: Dictionary of parameters.

    Returns:
        Canonical JSON string (sorted keys, compact separators), always
        including ``__method__``.
    """
    filtered = dict(params)
    filtered["__method__"] = method
    return json.dumps(filtered, sort_keys=True, separators=(",", ":"))


def param_hash_from_json(params_json: str) -> str:
    """Generate deterministic SHA-1 hash from parameter JSON.

    Args:
        params_json: Canonical JSON string of parameters.

    Returns:
        10-character hex digest of SHA-1 hash.
    """
    return hashlib.sha1(params_json.encode()).hexdigest()[:10]

"""Zoom-aware proximity grouping for map marker overlays.

Replaces dense sets of overlapping point markers with synthetic group markers
at their centroid, recomputing only when the zoom level changes or a refresh
is requested.
"""
from __future__ import annotations

from grouping.base import (
    E6,
    to_e6,
    from_e6,
    GeoPoint,
    PixelPoint,
    Marker,
    OverlayItem,
    ItemSource,
    Projection,
)
from grouping.proximity import PixelBox, marker_box, markers_overlap, group_items
from grouping.aggregate import calc_avg_geo, aggregate_groups
from grouping.overlay import GroupOverlay, MIN_PER_GROUP, default_group_item
from grouping.sources import ListItemSource
from grouping.projection import MercatorProjection
from grouping.config import load_config, default_config, markers_from_config
from grouping.utils import (
    validate_coordinates,
    load_points_df,
    items_from_df,
    visible_to_gdf,
    gdf_to_points_json,
    canonical_params_json,
    param_hash_from_json,
)


def make_overlay(source: ItemSource, cfg: dict | None = None, **kwargs) -> GroupOverlay:
    """Factory function to create an overlay from configuration.

    Args:
        source: Supplier of the original items.
        cfg: Configuration dictionary (default: :func:`load_config` defaults).
        **kwargs: Overrides passed to :class:`GroupOverlay` (e.g. on_tapped,
            create_group_item, min_per_group).

    Returns:
        GroupOverlay instance.

    Examples:
        >>> overlay = make_overlay(ListItemSource(items))
        >>> overlay = make_overlay(source, load_config("grouping.json"), on_tapped=print)
    """
    cfg = cfg or load_config()
    default_marker, group_marker = markers_from_config(cfg)
    options = {
        "default_marker": default_marker,
        "group_marker": group_marker,
        "min_per_group": cfg["grouping"]["min_per_group"],
    }
    options.update(kwargs)
    return GroupOverlay(source, **options)


__all__ = [
    "GeoPoint",
    "PixelPoint",
    "Marker",
    "OverlayItem",
    "ItemSource",
    "Projection",
    "PixelBox",
    "marker_box",
    "markers_overlap",
    "group_items",
    "calc_avg_geo",
    "aggregate_groups",
    "GroupOverlay",
    "MIN_PER_GROUP",
    "default_group_item",
    "ListItemSource",
    "MercatorProjection",
    "load_config",
    "default_config",
    "markers_from_config",
    "make_overlay",
    "E6",
    "to_e6",
    "from_e6",
    "validate_coordinates",
    "load_points_df",
    "items_from_df",
    "visible_to_gdf",
    "gdf_to_points_json",
    "canonical_params_json",
    "param_hash_from_json",
]

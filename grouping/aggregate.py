"""Aggregation of proximity groups into renderable items.

Turns the output of :func:`grouping.proximity.group_items` into the flat list
the renderer draws: large groups collapse into one synthetic item at their
centroid, small groups fall apart into their members.
"""

from typing import Callable, Iterable, List, Optional, Sequence

from grouping.base import GeoPoint, Marker, OverlayItem


def _trunc_div(total: int, n: int) -> int:
    """Integer division rounding toward zero."""
    q = abs(total) // n
    return q if total >= 0 else -q


def calc_avg_geo(items: Sequence[OverlayItem]) -> GeoPoint:
    """Calculate the average position of a collection of items.

    Latitude and longitude are averaged separately in microdegrees and the
    sums are divided with truncation toward zero, so the result is always a
    whole microdegree.

    Args:
        items: Items to average.

    Returns:
        GeoPoint at the mean latitude and longitude.

    Raises:
        ValueError: If ``items`` is empty.

    Example:
        >>> pts = [OverlayItem(GeoPoint(10, 20)), OverlayItem(GeoPoint(10, 22)),
        ...        OverlayItem(GeoPoint(10, 24))]
        >>> calc_avg_geo(pts)
        GeoPoint(lat_e6=10, lon_e6=22)
    """
    if not items:
        raise ValueError("Cannot average an empty group")

    latsum = 0
    lonsum = 0
    for item in items:
        latsum += item.point.lat_e6
        lonsum += item.point.lon_e6
    return GeoPoint(_trunc_div(latsum, len(items)), _trunc_div(lonsum, len(items)))


def aggregate_groups(
    groups: Iterable[List[OverlayItem]],
    singles: Iterable[OverlayItem],
    min_per_group: int,
    group_marker: Optional[Marker],
    create_group_item: Callable[[GeoPoint], OverlayItem],
) -> List[OverlayItem]:
    """Materialize groups and singles into one visible item list.

    Args:
        groups: Proximity groups in creation order.
        singles: Ungrouped items in pool order.
        min_per_group: Smallest group that is replaced by a synthetic item.
        group_marker: Marker assigned to every synthetic item.
        create_group_item: Factory building the synthetic item for a centroid.

    Returns:
        List starting with the singles, followed by each group's result in
        group order: either its members (group too small) or one synthetic
        item.
    """
    visible = list(singles)
    for group in groups:
        if len(group) < min_per_group:
            visible.extend(group)
        else:
            group_item = create_group_item(calc_avg_geo(group))
            group_item.marker = group_marker
            visible.append(group_item)
    return visible

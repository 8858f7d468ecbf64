"""Proximity grouping of projected map markers.

Partitions items into groups of mutually close markers and a pool of single
items. Closeness is decided in screen space: each item gets a box the size of
its marker centred on its projected pixel, and two items are close when their
boxes overlap.

The pass is greedy and order dependent. An item joins the first group that
has a close member; failing that it pairs up with the first close single;
failing that it becomes a single itself. There is no search for the best or
nearest group, so the same input order always produces the same partition.
"""

from typing import Callable, List, NamedTuple, Optional, Tuple

from grouping.base import Marker, OverlayItem, PixelPoint, Projection


CloseFn = Callable[[OverlayItem, OverlayItem, Optional[Projection]], bool]


class PixelBox(NamedTuple):
    """Axis-aligned pixel rectangle (left, top, right, bottom)."""

    left: int
    top: int
    right: int
    bottom: int

    def intersects(self, other: "PixelBox") -> bool:
        """Return True if the interiors of the two boxes overlap.

        Boxes that only share an edge do not intersect, and two empty (zero
        width or height) boxes never intersect each other. An empty box lying
        inside a larger box does intersect it.
        """
        return (
            self.left < other.right
            and other.left < self.right
            and self.top < other.bottom
            and other.top < self.bottom
        )


def marker_box(pixel: PixelPoint, marker: Marker) -> PixelBox:
    """Build the proximity box for a marker drawn at ``pixel``.

    Half extents use integer division, so odd sizes lose one pixel.
    """
    half_w = marker.width // 2
    half_h = marker.height // 2
    return PixelBox(
        pixel.x - half_w,
        pixel.y - half_h,
        pixel.x + half_w,
        pixel.y + half_h,
    )


def markers_overlap(
    item_one: OverlayItem,
    item_two: OverlayItem,
    projection: Optional[Projection],
    marker: Optional[Marker],
) -> bool:
    """Decide whether two items are close on screen.

    Args:
        item_one: First item.
        item_two: Second item.
        projection: Projection for the current view, or None if unavailable.
        marker: Marker whose intrinsic size sets the proximity box.

    Returns:
        True if both items project and their marker boxes overlap. Any missing
        input (projection, marker or a pixel position) yields False.
    """
    if projection is None or marker is None:
        return False

    pnt = projection.to_pixels(item_one.point)
    ppnt = projection.to_pixels(item_two.point)
    if pnt is None or ppnt is None:
        return False

    return marker_box(pnt, marker).intersects(marker_box(ppnt, marker))


def group_items(
    items: List[OverlayItem],
    projection: Optional[Projection],
    is_close: CloseFn,
) -> Tuple[List[List[OverlayItem]], List[OverlayItem]]:
    """Partition items into proximity groups and singles.

    Args:
        items: Items in source order. Not modified.
        projection: Projection passed through to ``is_close``.
        is_close: Pairwise closeness test ``(item, other, projection) -> bool``.

    Returns:
        Tuple of (groups, singles). Groups are in creation order with members
        in insertion order; every group has at least two members. Singles are
        in the order they entered the pool. Every input item appears exactly
        once across both.
    """
    groups: List[List[OverlayItem]] = []
    # Slots are cleared (set to None) when a single is promoted into a group,
    # so the pool is never resized while it is being scanned.
    singles: List[Optional[OverlayItem]] = []

    for item in items:
        if _join_group(item, groups, projection, is_close):
            continue

        for pos, single in enumerate(singles):
            if single is not None and is_close(item, single, projection):
                singles[pos] = None
                groups.append([item, single])
                break
        else:
            singles.append(item)

    return groups, [single for single in singles if single is not None]


def _join_group(
    item: OverlayItem,
    groups: List[List[OverlayItem]],
    projection: Optional[Projection],
    is_close: CloseFn,
) -> bool:
    """Append ``item`` to the first group holding a close member."""
    for group in groups:
        for member in group:
            if is_close(item, member, projection):
                group.append(item)
                return True
    return False

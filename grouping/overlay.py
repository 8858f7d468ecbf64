"""Zoom-aware grouping overlay.

:class:`GroupOverlay` sits between an item source and a renderer. Once per
frame the host calls :meth:`GroupOverlay.draw` with the current zoom level and
projection; when the zoom changed (or a refresh was requested) the overlay
regroups the original items and swaps in a new visible list. The renderer then
reads the visible list by index with :meth:`GroupOverlay.size` and
:meth:`GroupOverlay.item_at`, and forwards taps with :meth:`GroupOverlay.on_tap`.

A single re-entrant lock guards the trigger state, the whole grouping pass and
every read of the visible list, so readers only ever see a complete list.
"""

import threading
from datetime import datetime
from typing import Any, Callable, Dict, Hashable, List, Optional

from grouping.aggregate import aggregate_groups
from grouping.base import GeoPoint, ItemSource, Marker, OverlayItem, Projection
from grouping.proximity import group_items, markers_overlap
from grouping.utils import canonical_params_json, param_hash_from_json


MIN_PER_GROUP = 3


def default_group_item(point: GeoPoint) -> OverlayItem:
    """Build a plain synthetic item for a group centroid."""
    return OverlayItem(point, title="group")


class GroupOverlay:
    """Visible item list with zoom-triggered proximity grouping.

    Args:
        source: Supplier of the original items. Never mutated by the overlay
            except through :meth:`add_original_item`.
        default_marker: Marker for original items; its size sets the
            proximity box. None disables proximity (nothing is ever close).
        group_marker: Marker for synthetic group items. None disables grouping
            and the visible list mirrors the source.
        min_per_group: Smallest group replaced by a synthetic item (default: 3).
        create_group_item: Factory building a synthetic item for a centroid.
        on_tapped: Callback receiving the tapped visible item.

    Raises:
        ValueError: If min_per_group is less than 1.
    """

    def __init__(
        self,
        source: ItemSource,
        default_marker: Optional[Marker],
        group_marker: Optional[Marker] = None,
        min_per_group: int = MIN_PER_GROUP,
        create_group_item: Optional[Callable[[GeoPoint], OverlayItem]] = None,
        on_tapped: Optional[Callable[[OverlayItem], Any]] = None,
    ):
        if min_per_group < 1:
            raise ValueError(f"min_per_group must be at least 1, got {min_per_group}")

        self.source = source
        self._default_marker = default_marker
        self._group_marker = group_marker
        self._min_per_group = min_per_group
        self.create_group_item = create_group_item or default_group_item
        self.on_tapped = on_tapped

        self._lock = threading.RLock()
        self._zoom_level: Optional[Hashable] = None
        self._refresh = False
        self._visible: List[OverlayItem] = []
        self._last_focused_index = -1
        self._stats: Dict[str, Optional[int]] = {
            "n_original": None,
            "n_visible": None,
            "n_groups": None,
            "n_aggregated": None,
            "n_dissolved": None,
            "n_singles": None,
        }

    @property
    def default_marker(self) -> Optional[Marker]:
        return self._default_marker

    @property
    def group_marker(self) -> Optional[Marker]:
        return self._group_marker

    @property
    def min_per_group(self) -> int:
        return self._min_per_group

    @property
    def grouping_enabled(self) -> bool:
        return self._group_marker is not None

    @property
    def zoom_level(self) -> Optional[Hashable]:
        """Zoom level of the last grouping pass (None before the first)."""
        with self._lock:
            return self._zoom_level

    @property
    def last_focused_index(self) -> int:
        """Index of the last tapped visible item, -1 after every regroup."""
        with self._lock:
            return self._last_focused_index

    def refresh(self) -> None:
        """Force a regroup on the next :meth:`draw`, whatever the zoom."""
        with self._lock:
            self._refresh = True

    def draw(self, zoom_level: Hashable, projection: Optional[Projection]) -> bool:
        """Display-pass hook: regroup if the zoom changed or a refresh is pending.

        Args:
            zoom_level: Current zoom identifier of the view. Must not be None:
                None marks the zoom as unset, so a first draw with None never
                regroups.
            projection: Projection for the current view state (None if the
                view is not laid out yet).

        Returns:
            True if a grouping pass ran, False if the visible list was reused.
        """
        with self._lock:
            if not self.grouping_enabled:
                return False
            if zoom_level == self._zoom_level and not self._refresh:
                return False
            self._refresh = False
            self._zoom_level = zoom_level
            self.group_markers(projection)
            return True

    def is_close(
        self,
        item_one: OverlayItem,
        item_two: OverlayItem,
        projection: Optional[Projection]
    ) -> bool:
        """Proximity test using the default marker's size."""
        return markers_overlap(item_one, item_two, projection, self._default_marker)

    def group_markers(self, projection: Optional[Projection]) -> None:
        """Run a full grouping pass and replace the visible list.

        Args:
            projection: Projection for the current view state.
        """
        with self._lock:
            originals = self.source.items()
            groups, singles = group_items(originals, projection, self.is_close)
            visible = aggregate_groups(
                groups,
                singles,
                self._min_per_group,
                self._group_marker,
                self.create_group_item,
            )

            n_aggregated = sum(1 for g in groups if len(g) >= self._min_per_group)
            self._visible = visible
            self._last_focused_index = -1
            self._stats = {
                "n_original": len(originals),
                "n_visible": len(visible),
                "n_groups": len(groups),
                "n_aggregated": n_aggregated,
                "n_dissolved": len(groups) - n_aggregated,
                "n_singles": len(singles),
            }

    def size(self) -> int:
        """Number of items in the visible list."""
        with self._lock:
            if not self.grouping_enabled:
                return self.source.count()
            return len(self._visible)

    def __len__(self) -> int:
        return self.size()

    def item_at(self, index: int) -> OverlayItem:
        """Visible item at ``index``.

        Raises:
            IndexError: If index is out of range.
        """
        with self._lock:
            if not self.grouping_enabled:
                if not 0 <= index < self.source.count():
                    raise IndexError(f"Visible index out of range: {index}")
                return self.source.item_at(index)
            if not 0 <= index < len(self._visible):
                raise IndexError(f"Visible index out of range: {index}")
            return self._visible[index]

    create_item = item_at

    def items(self) -> List[OverlayItem]:
        """Snapshot of the visible list."""
        with self._lock:
            if not self.grouping_enabled:
                return self.source.items()
            return list(self._visible)

    def on_tap(self, index: int) -> bool:
        """Forward a tap on visible item ``index`` to the tap callback.

        Returns:
            True if a tap callback handled the item, False if none is set.

        Raises:
            IndexError: If index is out of range.
        """
        with self._lock:
            item = self.item_at(index)
            self._last_focused_index = index
        if self.on_tapped is None:
            return False
        self.on_tapped(item)
        return True

    def add_original_item(self, item: OverlayItem) -> None:
        """Append an item to the source and schedule a regroup.

        Raises:
            TypeError: If the source does not support adding items.
        """
        add_item = getattr(self.source, "add_item", None)
        if add_item is None:
            raise TypeError(f"{type(self.source).__name__} does not support add_item()")
        with self._lock:
            add_item(item)
            self._refresh = True

    def info(self) -> Dict[str, Any]:
        """Return overlay information.

        Returns:
            Dictionary with method name, params, params_json, params_hash,
            zoom_level, counts from the last pass (None before the first
            pass) and timestamp.
        """
        params = {
            "min_per_group": self._min_per_group,
            "default_marker": _marker_params(self._default_marker),
            "group_marker": _marker_params(self._group_marker),
        }
        params_json = canonical_params_json("proximity", params)

        with self._lock:
            stats = dict(self._stats)
            zoom_level = self._zoom_level

        return {
            "method": "proximity",
            "params": params,
            "params_json": params_json,
            "params_hash": param_hash_from_json(params_json),
            "zoom_level": zoom_level,
            **stats,
            "timestamp": datetime.now().isoformat(),
        }


def _marker_params(marker: Optional[Marker]) -> Optional[Dict[str, Any]]:
    if marker is None:
        return None
    return {"name": marker.name, "width": marker.width, "height": marker.height}

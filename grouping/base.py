"""Core data model and capability interfaces for marker grouping.

Defines the point types, the marker descriptor and the overlay item that flow
through a grouping pass, plus the two abstract capabilities the host
application plugs in: an item source (the original, ungrouped markers) and a
projection (geographic position to screen pixel for the current view).
"""

from abc import ABC, abstractmethod
from typing import List, NamedTuple, Optional


E6 = 1_000_000


def to_e6(degrees: float) -> int:
    """Convert decimal degrees to integer microdegrees (nearest)."""
    return int(round(degrees * E6))


def from_e6(value: int) -> float:
    """Convert integer microdegrees to decimal degrees."""
    return value / E6


class GeoPoint(NamedTuple):
    """Geographic position in integer microdegrees (degrees * 1e6).

    Attributes:
        lat_e6: Latitude in microdegrees.
        lon_e6: Longitude in microdegrees.
    """

    lat_e6: int
    lon_e6: int

    @classmethod
    def from_degrees(cls, lat: float, lon: float) -> "GeoPoint":
        """Build a point from decimal degrees, rounding to the nearest microdegree."""
        return cls(to_e6(lat), to_e6(lon))

    @property
    def latitude(self) -> float:
        return from_e6(self.lat_e6)

    @property
    def longitude(self) -> float:
        return from_e6(self.lon_e6)


class PixelPoint(NamedTuple):
    """Screen position in integer pixels."""

    x: int
    y: int


class Marker:
    """Visual marker descriptor.

    Only the intrinsic size matters to grouping: it sets the proximity box
    drawn around each projected item.

    Args:
        name: Marker name (icon key for the renderer).
        width: Intrinsic width in pixels.
        height: Intrinsic height in pixels.

    Raises:
        ValueError: If width or height is negative.
    """

    def __init__(self, name: str, width: int, height: int):
        if width < 0 or height < 0:
            raise ValueError(f"Marker size must be non-negative, got {width}x{height}")
        self.name = name
        self.width = int(width)
        self.height = int(height)

    def __repr__(self) -> str:
        return f"<Marker {self.name!r} {self.width}x{self.height}>"


class OverlayItem:
    """A point marker shown on the map.

    Original items come from an :class:`ItemSource`; synthetic group items are
    created by the overlay's group item factory and keep no reference to the
    items they replace. Items compare by identity.

    Args:
        point: Geographic position of the item.
        title: Short label.
        snippet: Longer description.
        marker: Marker override (None means the overlay default).
    """

    def __init__(
        self,
        point: GeoPoint,
        title: str = "",
        snippet: str = "",
        marker: Optional[Marker] = None,
    ):
        self.point = point
        self.title = title
        self.snippet = snippet
        self.marker = marker

    def __repr__(self) -> str:
        return (
            f"<OverlayItem {self.title!r} at "
            f"({self.point.lat_e6}, {self.point.lon_e6})>"
        )


class ItemSource(ABC):
    """Supplier of the original (ungrouped) items.

    Must stay stable for the duration of one grouping pass. The overlay never
    mutates the items it reads from here.
    """

    @abstractmethod
    def count(self) -> int:
        """Return the number of original items."""
        pass

    @abstractmethod
    def item_at(self, index: int) -> OverlayItem:
        """Return the original item at ``index``."""
        pass

    def items(self) -> List[OverlayItem]:
        """Snapshot the original items in source order."""
        return [self.item_at(i) for i in range(self.count())]


class Projection(ABC):
    """Maps geographic positions to screen pixels for one view state."""

    @abstractmethod
    def to_pixels(self, point: GeoPoint) -> Optional[PixelPoint]:
        """Project ``point`` to pixels.

        Returns:
            Pixel coordinate, or None when no valid projection exists
            (for example before the view is laid out).
        """
        pass

"""Pytest fixtures for marker grouping unit tests.

This module provides shared fixtures and fake projections for testing
grouping functions in isolation.
"""

import pytest
from typing import List, Optional

from grouping.base import GeoPoint, Marker, OverlayItem, PixelPoint, Projection
from grouping.sources import ListItemSource


class GridProjection(Projection):
    """Identity projection: x = lon_e6, y = lat_e6 (pixels == microdegrees)."""

    def __init__(self):
        self.calls = 0

    def to_pixels(self, point: GeoPoint) -> Optional[PixelPoint]:
        self.calls += 1
        return PixelPoint(point.lon_e6, point.lat_e6)


class BlindProjection(Projection):
    """Projection that cannot place any point (view not laid out)."""

    def to_pixels(self, point: GeoPoint) -> Optional[PixelPoint]:
        return None


def make_item(lat_e6: int, lon_e6: int, title: str = "") -> OverlayItem:
    """Build an original item at the given microdegree position."""
    return OverlayItem(GeoPoint(lat_e6, lon_e6), title=title or f"{lat_e6},{lon_e6}")


@pytest.fixture
def grid_projection():
    """Identity projection in microdegrees."""
    return GridProjection()


@pytest.fixture
def blind_projection():
    """Projection returning no pixel position for any point."""
    return BlindProjection()


@pytest.fixture
def default_marker():
    """10x10 pixel marker: items closer than 10 px on both axes are close."""
    return Marker("default", 10, 10)


@pytest.fixture
def group_marker():
    """Marker assigned to synthetic group items."""
    return Marker("group", 30, 30)


@pytest.fixture
def dense_items() -> List[OverlayItem]:
    """Three mutually close items and two far-away isolated items."""
    return [
        make_item(0, 0, "a"),
        make_item(0, 4, "b"),
        make_item(4, 2, "c"),
        make_item(1000, 1000, "far-1"),
        make_item(-1000, 5000, "far-2"),
    ]


@pytest.fixture
def dense_source(dense_items):
    """List source over dense_items."""
    return ListItemSource(dense_items)

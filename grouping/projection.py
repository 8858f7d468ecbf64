"""Web Mercator screen projection.

Projects geographic points to screen pixels for a slippy-map style view: the
world is a square of ``tile_size * 2**zoom`` pixels in EPSG:3857, and the view
is a ``width x height`` window centred on a geographic point.
"""

import math
from functools import lru_cache
from typing import Optional, Tuple

from pyproj import Transformer

from grouping.base import GeoPoint, PixelPoint, Projection


# Half the EPSG:3857 world extent in meters.
ORIGIN_SHIFT = 20037508.342789244


@lru_cache(maxsize=1)
def transformer_4326_to_3857() -> Transformer:
    return Transformer.from_crs("EPSG:4326", "EPSG:3857", always_xy=True)


class MercatorProjection(Projection):
    """Projection for one view state (zoom, centre, viewport size).

    Args:
        zoom: Zoom level (0 shows the whole world in one tile).
        center: Geographic point at the centre of the view.
        width: Viewport width in pixels.
        height: Viewport height in pixels.
        tile_size: Tile edge in pixels (default: 256).

    Raises:
        ValueError: If zoom is negative, tile_size is not positive, or the
            centre has no finite Mercator position.
    """

    def __init__(
        self,
        zoom: int,
        center: GeoPoint,
        width: int,
        height: int,
        tile_size: int = 256
    ):
        if zoom < 0:
            raise ValueError(f"Zoom must be non-negative, got {zoom}")
        if tile_size <= 0:
            raise ValueError(f"Tile size must be positive, got {tile_size}")

        self.zoom = zoom
        self.center = center
        self.width = width
        self.height = height
        self.tile_size = tile_size
        self.world_size = tile_size * (2 ** zoom)

        center_px = self._world_pixels(center)
        if center_px is None:
            raise ValueError(f"Cannot project view center {center}")
        self._origin = (center_px[0] - width / 2.0, center_px[1] - height / 2.0)

    def _world_pixels(self, point: GeoPoint) -> Optional[Tuple[float, float]]:
        """Project to pixels on the full world square (origin top-left)."""
        mx, my = transformer_4326_to_3857().transform(point.longitude, point.latitude)
        if not (math.isfinite(mx) and math.isfinite(my)):
            return None
        px = (mx + ORIGIN_SHIFT) / (2 * ORIGIN_SHIFT) * self.world_size
        py = (ORIGIN_SHIFT - my) / (2 * ORIGIN_SHIFT) * self.world_size
        return px, py

    def to_pixels(self, point: GeoPoint) -> Optional[PixelPoint]:
        """Project ``point`` to viewport pixels.

        Returns:
            Rounded pixel position, or None if the viewport has no size yet
            or the point has no finite Mercator position (the poles).
        """
        if self.width <= 0 or self.height <= 0:
            return None

        world = self._world_pixels(point)
        if world is None:
            return None
        return PixelPoint(
            int(round(world[0] - self._origin[0])),
            int(round(world[1] - self._origin[1])),
        )

    def __repr__(self) -> str:
        return (
            f"<MercatorProjection zoom={self.zoom} center=({self.center.latitude:.6f}, "
            f"{self.center.longitude:.6f}) {self.width}x{self.height}>"
        )

"""Local metric projection for regional geometry work.

Offsetting is done in kilometres, never by adding degrees.  Rings are
projected to an azimuthal equidistant frame centred on the polygon
centroid, processed, and projected back to WGS 84.  Distances from the
centre are exact and distortion stays small across regional extents.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence

    from coverage_grid.models.geometry import Ring

logger = logging.getLogger("coverage_grid.utils.projection")

XY = tuple[float, float]


def ring_centroid(ring: Ring) -> tuple[float, float]:
    """Return the area centroid of *ring* as ``(lon, lat)``.

    Falls back to the vertex mean for zero-area rings, where shapely
    yields an empty centroid.
    """
    from shapely.geometry import Polygon

    poly = Polygon(ring.lonlat())
    if not poly.is_empty and poly.area > 0:
        centroid = poly.centroid
        return (centroid.x, centroid.y)

    vertices = ring.vertices
    lon = sum(p.lon for p in vertices) / len(vertices)
    lat = sum(p.lat for p in vertices) / len(vertices)
    return (lon, lat)


class LocalProjection:
    """Azimuthal equidistant frame (kilometres) centred on a WGS 84 point.

    Attributes:
        centre: Projection centre as ``(lon, lat)``.
    """

    def __init__(self, centre_lon: float, centre_lat: float) -> None:
        from pyproj import CRS, Transformer

        self.centre = (centre_lon, centre_lat)
        crs = CRS.from_proj4(
            f"+proj=aeqd +lat_0={centre_lat} +lon_0={centre_lon} "
            "+datum=WGS84 +units=km +no_defs"
        )
        self._forward = Transformer.from_crs("EPSG:4326", crs, always_xy=True)
        self._inverse = Transformer.from_crs(crs, "EPSG:4326", always_xy=True)

    @classmethod
    def centred_on(cls, ring: Ring) -> LocalProjection:
        """Build a projection centred on the centroid of *ring*."""
        lon, lat = ring_centroid(ring)
        logger.debug("Local projection centred at (%.6f, %.6f)", lon, lat)
        return cls(lon, lat)

    def forward(self, lonlat: Sequence[tuple[float, float]]) -> list[XY]:
        """Project ``(lon, lat)`` pairs to ``(x, y)`` kilometres."""
        if not lonlat:
            return []
        lons = [c[0] for c in lonlat]
        lats = [c[1] for c in lonlat]
        xs, ys = self._forward.transform(lons, lats)
        return [(float(x), float(y)) for x, y in zip(xs, ys)]

    def inverse(self, xy: Sequence[XY]) -> list[tuple[float, float]]:
        """Unproject ``(x, y)`` kilometres to ``(lon, lat)`` pairs."""
        if not xy:
            return []
        xs = [c[0] for c in xy]
        ys = [c[1] for c in xy]
        lons, lats = self._inverse.transform(xs, ys)
        return [(float(lon), float(lat)) for lon, lat in zip(lons, lats)]

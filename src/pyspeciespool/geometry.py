"""
Geometry providers for neighbourhood discs around target plots.

Two capabilities are available, selected by the geodesic flag of a run:

- PlanarGeometry: projected coordinates, Euclidean distance.
- GeodesicGeometry: longitude/latitude degrees on the WGS84 ellipsoid, radius
  in metres. Distances are true geodesic distances (pyproj.Geod), so discs
  that straddle the antimeridian or reach a pole are handled exactly.

Membership is decided by distance alone, so selecting neighbours never needs
the polygon ring; buffer() builds it only for callers that draw or export
the disc.

Usage:
    geometry = get_geometry(geodesic=True)
    inside = geometry.contains(179.95, 10.0, 20000, lons, lats)
    disc = geometry.buffer(179.95, 10.0, 20000)
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict

import numpy as np
from pyproj import Geod

__all__ = [
    'Buffer',
    'GeometryProvider',
    'PlanarGeometry',
    'GeodesicGeometry',
    'get_geometry',
]

# Vertices used to represent a buffer as a polygon ring
RING_VERTICES = 64


@dataclass(frozen=True)
class Buffer:
    """Disc of a given radius around a centre point.

    Attributes:
        x: Centre x (longitude when geodesic)
        y: Centre y (latitude when geodesic)
        radius: Radius in CRS units (metres when geodesic)
        ring: Closed polygon ring approximating the disc, shape (n + 1, 2).
            Geodesic rings are unwrapped around the centre longitude so they
            never jump across the antimeridian.
    """
    x: float
    y: float
    radius: float
    ring: np.ndarray


class GeometryProvider(ABC):
    """Builds buffers and tests point membership."""

    geodesic: bool = False

    @abstractmethod
    def distance(self, x: float, y: float, xs: np.ndarray, ys: np.ndarray) -> np.ndarray:
        """Distances from one point to many, in CRS units."""

    @abstractmethod
    def _ring(self, x: float, y: float, radius: float) -> np.ndarray:
        """Polygon ring of the disc."""

    def buffer(self, x: float, y: float, radius: float) -> Buffer:
        """Build the disc of ``radius`` around (x, y)."""
        return Buffer(x=float(x), y=float(y), radius=float(radius),
                      ring=self._ring(float(x), float(y), float(radius)))

    def contains(self, x: float, y: float, radius: float,
                 xs: np.ndarray, ys: np.ndarray) -> np.ndarray:
        """Boolean mask of points within ``radius`` of (x, y), boundary inclusive."""
        xs = np.asarray(xs, dtype=float)
        ys = np.asarray(ys, dtype=float)
        return self.distance(float(x), float(y), xs, ys) <= radius


class PlanarGeometry(GeometryProvider):
    """Euclidean geometry for projected coordinates."""

    geodesic = False

    def distance(self, x, y, xs, ys):
        return np.hypot(np.asarray(xs, dtype=float) - x, np.asarray(ys, dtype=float) - y)

    def _ring(self, x, y, radius):
        theta = np.linspace(0.0, 2.0 * np.pi, RING_VERTICES + 1)
        return np.column_stack([x + radius * np.cos(theta), y + radius * np.sin(theta)])


class GeodesicGeometry(GeometryProvider):
    """Geodesic geometry for longitude/latitude coordinates.

    Args:
        ellps: Ellipsoid name understood by pyproj (default WGS84)
    """

    geodesic = True

    def __init__(self, ellps: str = 'WGS84'):
        self.ellps = ellps
        self._geod = Geod(ellps=ellps)

    def distance(self, x, y, xs, ys):
        xs = np.atleast_1d(np.asarray(xs, dtype=float))
        ys = np.atleast_1d(np.asarray(ys, dtype=float))
        if xs.size == 0:
            return np.empty(0)
        _, _, dist = self._geod.inv(np.full_like(xs, x), np.full_like(ys, y), xs, ys)
        return np.asarray(dist, dtype=float)

    def _ring(self, x, y, radius):
        azimuths = np.linspace(0.0, 360.0, RING_VERTICES + 1)
        lons, lats, _ = self._geod.fwd(
            np.full_like(azimuths, x), np.full_like(azimuths, y),
            azimuths, np.full_like(azimuths, radius),
        )
        lons = np.asarray(lons, dtype=float)
        lons = x + (lons - x + 180.0) % 360.0 - 180.0
        return np.column_stack([lons, np.asarray(lats, dtype=float)])

    def __getstate__(self):
        return {'ellps': self.ellps}

    def __setstate__(self, state):
        self.__init__(state['ellps'])


_providers: Dict[bool, GeometryProvider] = {}


def get_geometry(geodesic: bool) -> GeometryProvider:
    """Get the shared geometry provider for the given coordinate type."""
    if geodesic not in _providers:
        _providers[geodesic] = GeodesicGeometry() if geodesic else PlanarGeometry()
    return _providers[geodesic]

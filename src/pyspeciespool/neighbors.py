"""
Neighbour selection around a target plot.

- select_neighbors: every plot inside the radius disc of the target.
- subsample_neighbors: bounds a neighbour set to twice the minimum plot count,
  always keeping the target.
"""
from typing import Optional

import numpy as np

from .data import SurveyData
from .geometry import GeometryProvider, get_geometry

__all__ = ['select_neighbors', 'subsample_neighbors']


def select_neighbors(
    data: SurveyData,
    target: int,
    radius: float,
    geometry: Optional[GeometryProvider] = None,
) -> np.ndarray:
    """Row indices of all plots within ``radius`` of the target plot.

    The boundary is inclusive and the target is always part of the result.

    Args:
        data: Survey data
        target: Row index of the target plot
        radius: Disc radius in CRS units
        geometry: Provider to use; chosen from ``data.geodesic`` when omitted

    Returns:
        Sorted array of row indices
    """
    if geometry is None:
        geometry = get_geometry(data.geodesic)
    inside = geometry.contains(data.x[target], data.y[target], radius, data.x, data.y)
    inside[target] = True
    return np.flatnonzero(inside)


def subsample_neighbors(
    rows: np.ndarray,
    target: int,
    size: int,
    rng: np.random.Generator,
) -> np.ndarray:
    """Draw a bounded subset of a neighbour set.

    When ``rows`` holds at least ``size`` plots, ``size - 1`` plots other than
    the target are drawn uniformly without replacement and the target is added
    back. Smaller sets are returned unchanged.

    Args:
        rows: Row indices of the neighbour set, including the target
        target: Row index of the target plot
        size: Size of the subsample
        rng: Random stream of this target

    Returns:
        Sorted array of row indices
    """
    rows = np.asarray(rows)
    if len(rows) < size:
        return np.sort(rows)
    others = rows[rows != target]
    drawn = rng.choice(others, size=size - 1, replace=False)
    return np.sort(np.append(drawn, target))

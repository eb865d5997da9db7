"""
Coordinate quantization for cache keys.

Snaps (lat, lng, radius) onto a grid whose cell size grows with the search
radius, so nearby queries collapse onto the same cache entry. A tighter
radius is more location-sensitive and therefore gets a finer grid.
"""
from __future__ import annotations

import math

from domain.models import QuantizedQuery

METERS_PER_DEGREE = 111111.0
COORD_PRECISION = 5

# (radius upper bound in meters, cell size in degrees)
CELL_STEPS = (
    (100, 0.0001),  # ~11m
    (500, 0.0005),  # ~55m
    (1000, 0.001),  # ~111m
    (5000, 0.002),  # ~222m
)
MAX_CELL_DEG = 0.01  # ~1.1km, bounds key fan-out for very large radii

RADIUS_BASE_STEP = 50
# Keeps longitude cells finite near the poles.
MIN_COS_LAT = 0.01


def coordinate_cell_size(radius_m: float) -> float:
    """Latitude cell size in degrees for a search radius. Monotonic in radius."""
    for upper_bound, cell in CELL_STEPS:
        if radius_m < upper_bound:
            return cell
    return min(max(radius_m / METERS_PER_DEGREE, CELL_STEPS[-1][1]), MAX_CELL_DEG)


def longitude_cell_size(lat_cell_deg: float, lat: float) -> float:
    """Widen the cell by 1/cos(lat) so cells keep roughly the same ground size."""
    cos_lat = max(math.cos(math.radians(lat)), MIN_COS_LAT)
    return lat_cell_deg / cos_lat


def radius_step(radius_m: float) -> int:
    """Doubling buckets: 50, 100, 200, 400, ..."""
    if radius_m <= RADIUS_BASE_STEP:
        return RADIUS_BASE_STEP
    return int(2 ** math.floor(math.log2(radius_m / RADIUS_BASE_STEP)) * RADIUS_BASE_STEP)


def round_radius(radius_m: float) -> int:
    """Round a radius up to its bucket step. Never rounds down."""
    step = radius_step(radius_m)
    return int(math.ceil(radius_m / step) * step)


def _snap(value: float, cell: float, limit: float) -> float:
    snapped = min(max(round(value / cell) * cell, -limit), limit)
    # + 0.0 folds -0.0 into 0.0 so key formatting stays stable
    return round(snapped, COORD_PRECISION) + 0.0


def quantize(lat: float, lng: float, radius_m: float) -> QuantizedQuery:
    """Map a query onto its grid cell. Pure and many-to-one."""
    lat_cell = coordinate_cell_size(radius_m)
    grid_lat = _snap(lat, lat_cell, 90.0)
    # Taken on the snapped latitude so a whole latitude band shares one width.
    lng_cell = longitude_cell_size(lat_cell, grid_lat)
    grid_lng = _snap(lng, lng_cell, 180.0)
    return QuantizedQuery(
        grid_lat=grid_lat,
        grid_lng=grid_lng,
        grid_radius=round_radius(radius_m),
        lat_cell_deg=lat_cell,
        lng_cell_deg=lng_cell,
    )

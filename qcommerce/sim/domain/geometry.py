"""
Geometry helpers. Haversine, point-in-polygon, random sampling inside the service region.
Randomness always comes from an explicit numpy Generator.
"""

import logging
import math
from typing import List, Sequence

import numpy as np

from qcommerce.sim.domain.models import LatLng, ServiceRegion

logger = logging.getLogger(__name__)

_EARTH_RADIUS_KM = 6371.0
MAX_SAMPLING_ATTEMPTS = 200


def distance_km(a: LatLng, b: LatLng) -> float:
    """Great-circle distance in km between two (lat, lng) points."""
    lat1_r = math.radians(a[0])
    lat2_r = math.radians(b[0])
    dlat = math.radians(b[0] - a[0])
    dlon = math.radians(b[1] - a[1])
    h = math.sin(dlat / 2) ** 2 + math.cos(lat1_r) * math.cos(lat2_r) * math.sin(dlon / 2) ** 2
    c = 2 * math.asin(min(1.0, math.sqrt(h)))
    return _EARTH_RADIUS_KM * c


def point_in_polygon(point: LatLng, ring: Sequence[LatLng]) -> bool:
    """Ray casting on a single ring. x = lng, y = lat."""
    x, y = point[1], point[0]
    inside = False
    n = len(ring)
    j = n - 1
    for i in range(n):
        yi, xi = ring[i]
        yj, xj = ring[j]
        if (yi > y) != (yj > y):
            x_cross = (xj - xi) * (y - yi) / (yj - yi) + xi
            if x < x_cross:
                inside = not inside
        j = i
    return inside


def bounding_box(ring: Sequence[LatLng]) -> tuple[float, float, float, float]:
    """(south, west, north, east)."""
    lats = [p[0] for p in ring]
    lngs = [p[1] for p in ring]
    return min(lats), min(lngs), max(lats), max(lngs)


def random_point_in_region(region: ServiceRegion, rng: np.random.Generator) -> LatLng:
    """
    Rejection sampling in the bounding box. After MAX_SAMPLING_ATTEMPTS misses
    returns region.fallback_point instead of looping forever.
    """
    south, west, north, east = bounding_box(region.ring)
    for _ in range(MAX_SAMPLING_ATTEMPTS):
        point = (
            float(rng.uniform(south, north)),
            float(rng.uniform(west, east)),
        )
        if point_in_polygon(point, region.ring):
            return point
    logger.warning(
        "Region sampling exhausted after %d attempts, using fallback %s",
        MAX_SAMPLING_ATTEMPTS,
        region.fallback_point,
    )
    return region.fallback_point


def random_point_near_hotspot(
    center: LatLng,
    radius_km: float,
    region: ServiceRegion,
    rng: np.random.Generator,
) -> LatLng:
    """
    Area-uniform point in a disk around center (angle uniform, radius * sqrt(u)).
    Falls back to random_point_in_region when the draw lands outside the region.
    """
    rd = radius_km / _EARTH_RADIUS_KM
    w = rd * math.sqrt(float(rng.random()))
    t = 2 * math.pi * float(rng.random())
    dx = w * math.cos(t)
    dy = w * math.sin(t)
    dx_lng = dx / math.cos(math.radians(center[0]))
    point = (
        center[0] + math.degrees(dy),
        center[1] + math.degrees(dx_lng),
    )
    if not point_in_polygon(point, region.ring):
        return random_point_in_region(region, rng)
    return point


def interpolate(a: LatLng, b: LatLng, t: float) -> LatLng:
    return (a[0] + (b[0] - a[0]) * t, a[1] + (b[1] - a[1]) * t)


def generate_waypoints(start: LatLng, end: LatLng, num_waypoints: int = 2) -> List[LatLng]:
    """[start, num_waypoints evenly spaced points, end]."""
    inner = [interpolate(start, end, i / (num_waypoints + 1)) for i in range(1, num_waypoints + 1)]
    return [tuple(start), *inner, tuple(end)]


def nearest_store_index(point: LatLng, stores: Sequence[LatLng]) -> int:
    """
    Index of the store closest to point (haversine). First wins on ties.
    Dispatch and movement both resolve the serving store through this function.
    """
    if not stores:
        raise ValueError("no dark stores")
    best_idx = 0
    best_d = math.inf
    for i, s in enumerate(stores):
        d = distance_km(s, point)
        if d < best_d:
            best_d = d
            best_idx = i
    return best_idx


# Local tangent plane, same convention as the placement engine.
M_PER_DEG_LAT = 111320.0


def to_local_meters(points: Sequence[LatLng], origin: LatLng) -> np.ndarray:
    """(N, 2) array of (north_m, east_m) relative to origin."""
    cos_lat = math.cos(math.radians(origin[0]))
    arr = np.asarray(points, dtype=float).reshape(-1, 2)
    y_m = (arr[:, 0] - origin[0]) * M_PER_DEG_LAT
    x_m = (arr[:, 1] - origin[1]) * M_PER_DEG_LAT * cos_lat
    return np.column_stack([y_m, x_m])


def from_local_meters(xy: np.ndarray, origin: LatLng) -> List[LatLng]:
    cos_lat = math.cos(math.radians(origin[0]))
    out: List[LatLng] = []
    for y_m, x_m in np.asarray(xy, dtype=float).reshape(-1, 2):
        out.append((origin[0] + y_m / M_PER_DEG_LAT, origin[1] + x_m / (M_PER_DEG_LAT * cos_lat)))
    return out

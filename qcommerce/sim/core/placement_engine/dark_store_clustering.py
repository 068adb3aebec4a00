"""
Dark-store placement. Synthetic demand (uniform background + hotspot clusters), KMeans on a
local metric projection, one store per cluster centre with distance statistics.
"""

import logging
from typing import List, Sequence

import numpy as np
from sklearn.cluster import KMeans

from qcommerce.sim.domain.errors import ConfigurationError
from qcommerce.sim.domain.geometry import (
    distance_km,
    from_local_meters,
    random_point_in_region,
    random_point_near_hotspot,
    to_local_meters,
)
from qcommerce.sim.domain.models import DarkStore, LatLng, PlacementResult, ServiceRegion

logger = logging.getLogger(__name__)


def generate_demand_points(
    region: ServiceRegion,
    hotspot_centers: Sequence[LatLng],
    num_background: int,
    num_hotspot: int,
    hotspot_radius_km: float,
    rng: np.random.Generator,
) -> List[LatLng]:
    """Background points anywhere in the region, hotspot points round-robin over the centres."""
    points = [random_point_in_region(region, rng) for _ in range(num_background)]
    if hotspot_centers:
        for i in range(num_hotspot):
            center = hotspot_centers[i % len(hotspot_centers)]
            points.append(random_point_near_hotspot(center, hotspot_radius_km, region, rng))
    return points


def _sample_std(values: Sequence[float], mean: float) -> float:
    if len(values) < 2:
        return 0.0
    return float(np.sqrt(sum((v - mean) ** 2 for v in values) / (len(values) - 1)))


def place_dark_stores(
    demand_points: Sequence[LatLng],
    k: int,
    random_state: int = 42,
) -> PlacementResult:
    if k <= 0:
        raise ConfigurationError("number of dark stores must be >= 1")
    if not demand_points:
        raise ConfigurationError("no demand points to cluster")
    k = min(k, len(demand_points))

    origin = (
        float(np.mean([p[0] for p in demand_points])),
        float(np.mean([p[1] for p in demand_points])),
    )
    X = to_local_meters(demand_points, origin)
    km = KMeans(n_clusters=k, n_init=10, random_state=random_state)
    labels = km.fit_predict(X)
    centers = from_local_meters(km.cluster_centers_, origin)

    stores: List[DarkStore] = []
    avg_by_store: List[float] = []
    std_by_store: List[float] = []
    all_distances: List[float] = []
    for idx, (lat, lng) in enumerate(centers):
        members = [demand_points[i] for i in range(len(demand_points)) if labels[i] == idx]
        store = DarkStore(
            name=f"DS {idx + 1}",
            lat=float(lat),
            lng=float(lng),
            assigned_orders=len(members),
            points=list(members),
        )
        distances = [distance_km(store.coords, p) for p in members]
        mean = sum(distances) / len(distances) if distances else 0.0
        stores.append(store)
        avg_by_store.append(mean)
        std_by_store.append(_sample_std(distances, mean))
        all_distances.extend(distances)

    overall = sum(all_distances) / len(all_distances) if all_distances else 0.0
    logger.info("Placed %d dark stores over %d demand points, mean %.2f km", k, len(demand_points), overall)
    return PlacementResult(
        dark_stores=stores,
        demand_points=list(demand_points),
        avg_distance_by_store=avg_by_store,
        std_distance_by_store=std_by_store,
        overall_avg_distance_km=overall,
    )

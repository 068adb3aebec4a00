"""
Dark-store placement use case. Synthetic CCR demand -> KMeans stores. No FastAPI.
"""

from typing import Optional

import numpy as np

from qcommerce.sim.application.config import CCR_REGION, HOTSPOT_CENTERS, HOTSPOT_PLACEMENT_RADIUS_KM
from qcommerce.sim.core.placement_engine.dark_store_clustering import generate_demand_points, place_dark_stores
from qcommerce.sim.domain.errors import ConfigurationError
from qcommerce.sim.domain.models import PlacementResult


def plan_dark_stores(
    num_stores: int,
    num_background: int = 700,
    num_hotspot: int = 300,
    seed: Optional[int] = None,
) -> PlacementResult:
    if num_background < 0 or num_hotspot < 0:
        raise ConfigurationError("demand point counts must be >= 0")
    rng = np.random.default_rng(seed)
    points = generate_demand_points(
        CCR_REGION,
        HOTSPOT_CENTERS,
        num_background,
        num_hotspot,
        HOTSPOT_PLACEMENT_RADIUS_KM,
        rng,
    )
    return place_dark_stores(points, num_stores)

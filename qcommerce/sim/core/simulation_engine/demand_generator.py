"""
Demand generator. Turns a demand profile into new pending orders for one step.
Counts are drawn per zone (rate in [min, max] orders/hour), fractions resolved
by a Bernoulli trial so low rates still produce orders over time.
"""

import logging
import math
from typing import List, Mapping, Optional

import numpy as np

from qcommerce.sim.domain.geometry import (
    interpolate,
    random_point_in_region,
    random_point_near_hotspot,
)
from qcommerce.sim.domain.models import (
    DemandProfile,
    DemandZone,
    LatLng,
    Order,
    ServiceRegion,
    SimulationState,
    ZoneType,
)

logger = logging.getLogger(__name__)

SECTOR_RADIUS_KM = 1.5


def stochastic_round(expected: float, rng: np.random.Generator) -> int:
    """floor(expected) plus one more with probability equal to the fractional part."""
    if expected <= 0:
        return 0
    whole = math.floor(expected)
    frac = expected - whole
    if frac > 0 and rng.random() < frac:
        whole += 1
    return int(whole)


def zone_is_active(zone: DemandZone, minute_of_day: float) -> bool:
    """Inclusive hour window. start > end wraps midnight (e.g. 22 -> 2)."""
    start = zone.start_hour * 60.0
    end = zone.end_hour * 60.0
    if start <= end:
        return start <= minute_of_day <= end
    return minute_of_day >= start or minute_of_day <= end


def minute_of_day(clock_min: float, day_start_hour: float = 0.0) -> float:
    return (day_start_hour * 60.0 + clock_min) % 1440.0


def place_in_zone(
    zone: DemandZone,
    region: ServiceRegion,
    rng: np.random.Generator,
    sector_coords: Mapping[str, LatLng],
) -> LatLng:
    match zone.zone_type:
        case ZoneType.UNIFORM:
            return random_point_in_region(region, rng)
        case ZoneType.HOTSPOT:
            return random_point_near_hotspot(zone.center, zone.radius_km, region, rng)
        case ZoneType.SECTOR:
            name = zone.sectors[int(rng.integers(len(zone.sectors)))]
            return random_point_near_hotspot(sector_coords[name], SECTOR_RADIUS_KM, region, rng)
        case ZoneType.ROUTE:
            path = zone.route_path
            seg = int(rng.integers(len(path) - 1))
            on_route = interpolate(path[seg], path[seg + 1], float(rng.random()))
            return random_point_near_hotspot(on_route, zone.buffer_km, region, rng)
    raise ValueError(f"unknown zone type {zone.zone_type!r}")


def _new_order(state: SimulationState, point: LatLng) -> Order:
    state.order_id_counter += 1
    return Order(
        order_id=f"O{state.order_id_counter}",
        lat=float(point[0]),
        lng=float(point[1]),
        time_placed=state.clock_min,
    )


def generate_orders(
    state: SimulationState,
    profile: DemandProfile,
    region: ServiceRegion,
    rng: np.random.Generator,
    step_minutes: float,
    sector_coords: Mapping[str, LatLng],
    day_start_hour: float = 0.0,
    focus_center: Optional[LatLng] = None,
    focus_radius_km: Optional[float] = None,
) -> List[Order]:
    """
    Append this step's new orders to state.orders and return them.

    Built-in profiles (no zones) use base_orders_per_hour. Their orders go anywhere in the
    region, or within focus_radius_km of focus_center when both are given.
    focus_center/focus_radius_km passed explicitly override the profile's own focus.
    """
    points: List[LatLng] = []
    if profile.is_builtin:
        count = stochastic_round(profile.base_orders_per_hour * step_minutes / 60.0, rng)
        radius = focus_radius_km if focus_radius_km is not None else profile.focus_radius_km
        for _ in range(count):
            if radius is not None and focus_center is not None:
                points.append(random_point_near_hotspot(focus_center, radius, region, rng))
            else:
                points.append(random_point_in_region(region, rng))
    else:
        mod = minute_of_day(state.clock_min, day_start_hour)
        for zone in profile.zones:
            if not zone_is_active(zone, mod):
                continue
            rate = float(rng.uniform(zone.min_orders, zone.max_orders))
            count = stochastic_round(rate * step_minutes / 60.0, rng)
            for _ in range(count):
                if focus_radius_km is not None and focus_center is not None:
                    points.append(random_point_near_hotspot(focus_center, focus_radius_km, region, rng))
                else:
                    points.append(place_in_zone(zone, region, rng, sector_coords))

    new_orders = [_new_order(state, p) for p in points]
    state.orders.extend(new_orders)
    state.total_orders_generated += len(new_orders)
    for o in new_orders:
        logger.debug("Order %s placed at (%.5f, %.5f) t=%.1f", o.order_id, o.lat, o.lng, o.time_placed)
    return new_orders

"""
Configuration validation. Raises ConfigurationError with a message the caller can show as-is.
"""

import math
from typing import Collection, Sequence

from qcommerce.sim.domain.errors import ConfigurationError
from qcommerce.sim.domain.models import DarkStore, DemandProfile, DemandZone, SimulationParams, ZoneType


def _finite(*values: float) -> bool:
    return all(math.isfinite(v) for v in values)


def validate_zone(zone: DemandZone, known_sectors: Collection[str]) -> None:
    label = f"zone '{zone.zone_id}'"
    if not _finite(zone.min_orders, zone.max_orders):
        raise ConfigurationError(f"{label}: order counts must be finite numbers")
    if zone.min_orders < 0 or zone.max_orders < 0:
        raise ConfigurationError(f"{label}: order counts must be >= 0")
    if zone.min_orders > zone.max_orders:
        raise ConfigurationError(
            f"{label}: min_orders ({zone.min_orders}) > max_orders ({zone.max_orders})"
        )
    for name, hour in (("start_hour", zone.start_hour), ("end_hour", zone.end_hour)):
        if not 0 <= hour <= 24:
            raise ConfigurationError(f"{label}: {name} must be within 0..24, got {hour}")

    if zone.zone_type == ZoneType.UNIFORM:
        return
    if zone.zone_type == ZoneType.HOTSPOT:
        if zone.center is None:
            raise ConfigurationError(f"{label}: hotspot zone needs a center")
        if not _finite(*zone.center):
            raise ConfigurationError(f"{label}: hotspot center must be finite coordinates")
        if zone.radius_km is None or not _finite(zone.radius_km) or zone.radius_km <= 0:
            raise ConfigurationError(f"{label}: hotspot zone needs a finite radius_km > 0")
        return
    if zone.zone_type == ZoneType.SECTOR:
        if not zone.sectors:
            raise ConfigurationError(f"{label}: sector zone needs at least one sector")
        unknown = [s for s in zone.sectors if s not in known_sectors]
        if unknown:
            raise ConfigurationError(f"{label}: unknown sectors {unknown}")
        return
    if zone.zone_type == ZoneType.ROUTE:
        if len(zone.route_path) < 2:
            raise ConfigurationError(f"{label}: route zone needs at least 2 path points")
        if not all(_finite(*point) for point in zone.route_path):
            raise ConfigurationError(f"{label}: route points must be finite coordinates")
        if zone.buffer_km is None or not _finite(zone.buffer_km) or zone.buffer_km <= 0:
            raise ConfigurationError(f"{label}: route zone needs a finite buffer_km > 0")
        return
    raise ConfigurationError(f"{label}: unknown zone type {zone.zone_type!r}")


def validate_profile(profile: DemandProfile, known_sectors: Collection[str]) -> None:
    if profile.is_builtin:
        if profile.base_orders_per_hour < 0:
            raise ConfigurationError(f"profile '{profile.profile_id}': base rate must be >= 0")
        return
    if not profile.zones:
        raise ConfigurationError(f"profile '{profile.profile_id}' has no zones")
    seen: set[str] = set()
    for zone in profile.zones:
        if zone.zone_id in seen:
            raise ConfigurationError(
                f"profile '{profile.profile_id}': duplicate zone id '{zone.zone_id}'"
            )
        seen.add(zone.zone_id)
        validate_zone(zone, known_sectors)


def validate_params(params: SimulationParams, dark_stores: Sequence[DarkStore]) -> None:
    if params.num_agents <= 0:
        raise ConfigurationError("num_agents must be >= 1")
    if not dark_stores:
        raise ConfigurationError("at least one dark store is required")
    if not _finite(params.agent_speed_kmph) or params.agent_speed_kmph <= 0:
        raise ConfigurationError("agent_speed_kmph must be a finite number > 0")
    if not _finite(params.base_traffic_factor) or params.base_traffic_factor <= 0:
        raise ConfigurationError("base_traffic_factor must be a finite number > 0")
    if not 0 <= params.day_start_hour < 24:
        raise ConfigurationError("day_start_hour must be within 0..24")


def validate_sweep_range(
    min_agents: int, max_agents: int, runs: int, horizon_min: float, step_minutes: float = 5.0
) -> None:
    if min_agents <= 0:
        raise ConfigurationError("min_agents must be >= 1")
    if max_agents < min_agents:
        raise ConfigurationError(f"max_agents ({max_agents}) < min_agents ({min_agents})")
    if runs <= 0:
        raise ConfigurationError("runs per agent count must be >= 1")
    if not _finite(horizon_min) or horizon_min < step_minutes:
        raise ConfigurationError(
            f"horizon must be a finite number of minutes >= one step ({step_minutes}), got {horizon_min}"
        )

"""
Record mapping. Raw dict <-> domain DemandProfile / Scenario. Records are flat, JSON safe,
and use the same camelCase keys a browser client stores.
"""

from typing import Any, Iterable, List, Optional

from qcommerce.sim.domain.errors import ConfigurationError
from qcommerce.sim.domain.models import (
    DemandProfile,
    DemandZone,
    LatLng,
    Scenario,
    SimulationParams,
    SimulationStats,
    ZoneType,
)


def _point(value: Any) -> Optional[LatLng]:
    if value is None:
        return None
    try:
        lat, lng = value
        return (float(lat), float(lng))
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"expected [lat, lng], got {value!r}") from e


def zone_to_record(zone: DemandZone) -> dict:
    record: dict = {
        "id": zone.zone_id,
        "type": zone.zone_type.value,
        "minOrders": zone.min_orders,
        "maxOrders": zone.max_orders,
        "startTime": zone.start_hour,
        "endTime": zone.end_hour,
        "description": zone.description,
    }
    match zone.zone_type:
        case ZoneType.HOTSPOT:
            record["center"] = list(zone.center) if zone.center else None
            record["radius"] = zone.radius_km
        case ZoneType.SECTOR:
            record["sectors"] = list(zone.sectors)
        case ZoneType.ROUTE:
            record["routePath"] = [list(p) for p in zone.route_path]
            record["bufferKm"] = zone.buffer_km
    return record


def zone_from_record(raw: dict) -> DemandZone:
    try:
        zone_type = ZoneType(str(raw.get("type", "")).lower())
    except ValueError as e:
        raise ConfigurationError(f"unknown zone type {raw.get('type')!r}") from e
    try:
        return DemandZone(
            zone_id=str(raw.get("id", "")),
            zone_type=zone_type,
            min_orders=float(raw.get("minOrders", 0)),
            max_orders=float(raw.get("maxOrders", 0)),
            start_hour=float(raw.get("startTime", 0)),
            end_hour=float(raw.get("endTime", 24)),
            description=str(raw.get("description", "")),
            center=_point(raw.get("center")),
            radius_km=float(raw["radius"]) if raw.get("radius") is not None else None,
            sectors=tuple(str(s) for s in raw.get("sectors") or ()),
            route_path=tuple(_point(p) for p in raw.get("routePath") or ()),
            buffer_km=float(raw["bufferKm"]) if raw.get("bufferKm") is not None else None,
        )
    except ConfigurationError:
        raise
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"invalid zone record {raw.get('id')!r}: {e}") from e


def profile_to_record(profile: DemandProfile) -> dict:
    return {
        "id": profile.profile_id,
        "name": profile.name,
        "zones": [zone_to_record(z) for z in profile.zones],
    }


def profile_from_record(raw: dict) -> DemandProfile:
    profile_id = str(raw.get("id") or "").strip()
    if not profile_id:
        raise ConfigurationError("profile record needs an id")
    return DemandProfile(
        profile_id=profile_id,
        name=str(raw.get("name") or profile_id),
        zones=tuple(zone_from_record(z) for z in raw.get("zones") or ()),
    )


def profiles_to_records(profiles: Iterable[DemandProfile]) -> List[dict]:
    """Custom profiles only; built-ins are code, not data."""
    return [profile_to_record(p) for p in profiles if not p.is_builtin]


def profiles_from_records(raws: Iterable[dict]) -> List[DemandProfile]:
    return [profile_from_record(r) for r in raws]


def params_to_record(params: SimulationParams, duration_min: float = 0.0) -> dict:
    return {
        "numAgents": params.num_agents,
        "agentSpeed": params.agent_speed_kmph,
        "orderGenerationProfile": params.profile_id,
        "baseTrafficFactor": params.base_traffic_factor,
        "enableDynamicTraffic": params.enable_dynamic_traffic,
        "enableHeatmap": params.enable_heatmap,
        "dayStartHour": params.day_start_hour,
        "simulationDurationRun": duration_min,
    }


def params_from_record(raw: dict) -> SimulationParams:
    defaults = SimulationParams()
    return SimulationParams(
        num_agents=int(raw.get("numAgents", defaults.num_agents)),
        agent_speed_kmph=float(raw.get("agentSpeed", defaults.agent_speed_kmph)),
        profile_id=str(raw.get("orderGenerationProfile", defaults.profile_id)),
        base_traffic_factor=float(raw.get("baseTrafficFactor", defaults.base_traffic_factor)),
        enable_dynamic_traffic=bool(raw.get("enableDynamicTraffic", defaults.enable_dynamic_traffic)),
        enable_heatmap=bool(raw.get("enableHeatmap", defaults.enable_heatmap)),
        day_start_hour=float(raw.get("dayStartHour", defaults.day_start_hour)),
    )


def stats_to_record(stats: SimulationStats) -> dict:
    return {
        "totalOrdersGenerated": stats.total_orders_generated,
        "totalOrdersDelivered": stats.total_orders_delivered,
        "averageDeliveryTimeMin": stats.average_delivery_time_min,
        "totalAgentTravelDistanceKm": stats.total_agent_travel_distance_km,
        "averageAgentUtilizationPercent": stats.average_agent_utilization_percent,
    }


def stats_from_record(raw: dict, duration_min: float = 0.0) -> SimulationStats:
    return SimulationStats(
        total_orders_generated=int(raw.get("totalOrdersGenerated", 0)),
        total_orders_delivered=int(raw.get("totalOrdersDelivered", 0)),
        average_delivery_time_min=float(raw.get("averageDeliveryTimeMin", 0.0)),
        total_agent_travel_distance_km=float(raw.get("totalAgentTravelDistanceKm", 0.0)),
        average_agent_utilization_percent=float(raw.get("averageAgentUtilizationPercent", 0.0)),
        simulation_duration_min=duration_min,
    )


def scenario_to_record(scenario: Scenario) -> dict:
    return {
        "id": scenario.scenario_id,
        "name": scenario.name,
        "timestamp": scenario.timestamp,
        "parameters": params_to_record(scenario.parameters, scenario.statistics.simulation_duration_min),
        "statistics": stats_to_record(scenario.statistics),
    }


def scenario_from_record(raw: dict) -> Scenario:
    params_raw = raw.get("parameters") or {}
    duration = float(params_raw.get("simulationDurationRun", 0.0))
    return Scenario(
        scenario_id=str(raw.get("id", "")),
        name=str(raw.get("name", "")),
        timestamp=str(raw.get("timestamp", "")),
        parameters=params_from_record(params_raw),
        statistics=stats_from_record(raw.get("statistics") or {}, duration),
    )

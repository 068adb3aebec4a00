"""
Simulation stepper. One function advances the world by one step in a fixed order:
clock, traffic, demand, dispatch, movement, fatigue, KPIs.

The interactive simulation and the workforce sweep both call run_step; EngineConfig.fidelity
switches the sweep's simplifications on (no fatigue, single store, FIFO dispatch).
"""

import logging
from typing import Mapping, Optional, Sequence

import numpy as np

from qcommerce.sim.core.simulation_engine.demand_generator import generate_orders
from qcommerce.sim.core.simulation_engine.dispatch import assign_pending_orders
from qcommerce.sim.core.simulation_engine.fatigue import update_fatigue
from qcommerce.sim.core.simulation_engine.movement import move_agents
from qcommerce.sim.domain.constraints import EngineConfig
from qcommerce.sim.domain.models import (
    Agent,
    AgentStatus,
    DarkStore,
    DemandProfile,
    Fidelity,
    HeatmapCell,
    LatLng,
    OrderStatus,
    ServiceRegion,
    SimulationState,
    SimulationStats,
    StepReport,
    TickSample,
)

logger = logging.getLogger(__name__)


def create_initial_state(
    num_agents: int,
    dark_stores: Sequence[DarkStore],
    rng: np.random.Generator,
    jitter_deg: float = 0.0,
    traffic_factor: float = 1.0,
) -> SimulationState:
    """Agents A1..An start at the primary store, optionally scattered by +/- jitter_deg/2."""
    primary = dark_stores[0]
    agents = []
    for i in range(num_agents):
        dlat = float(rng.uniform(-0.5, 0.5)) * jitter_deg if jitter_deg else 0.0
        dlng = float(rng.uniform(-0.5, 0.5)) * jitter_deg if jitter_deg else 0.0
        agents.append(Agent(agent_id=f"A{i + 1}", lat=primary.lat + dlat, lng=primary.lng + dlng))
    return SimulationState(
        agents=agents,
        dark_stores=list(dark_stores),
        traffic_factor=traffic_factor,
    )


def _refresh_traffic(state: SimulationState, config: EngineConfig, rng: np.random.Generator) -> bool:
    if not config.enable_dynamic_traffic:
        state.traffic_factor = config.base_traffic_factor
        return False
    if state.tick_index % config.traffic.update_interval_ticks != 0:
        return False
    state.traffic_factor = float(rng.uniform(config.traffic.min_factor, config.traffic.max_factor))
    logger.info("Traffic factor now %.2f at t=%.0f", state.traffic_factor, state.clock_min)
    return True


def _record_heatmap(state: SimulationState, report: StepReport) -> None:
    for order in report.delivered_orders:
        key = (round(order.lat, 4), round(order.lng, 4))
        cell = state.heatmap.get(key)
        if cell is None:
            cell = HeatmapCell(lat=key[0], lng=key[1], count=0)
            state.heatmap[key] = cell
        cell.count += 1
        state.heatmap_max = max(state.heatmap_max, cell.count)


def run_step(
    state: SimulationState,
    profile: DemandProfile,
    region: ServiceRegion,
    rng: np.random.Generator,
    config: EngineConfig,
    sector_coords: Mapping[str, LatLng],
) -> StepReport:
    state.clock_min += config.step_minutes
    state.tick_index += 1
    report = StepReport(clock_min=state.clock_min)

    report.traffic_refreshed = _refresh_traffic(state, config, rng)

    focus_center: Optional[LatLng] = state.dark_stores[0].coords if state.dark_stores else None
    focus_radius = config.reduced_demand_radius_km if config.fidelity == Fidelity.REDUCED else None
    report.new_orders = generate_orders(
        state,
        profile,
        region,
        rng,
        config.step_minutes,
        sector_coords,
        day_start_hour=config.day_start_hour,
        focus_center=focus_center,
        focus_radius_km=focus_radius,
    )

    report.assigned_order_ids = assign_pending_orders(state, config)
    move_agents(state, config, report)
    if config.fidelity == Fidelity.FULL:
        update_fatigue(state.agents, config.fatigue)

    state.total_orders_delivered += len(report.delivered_orders)
    state.total_delivery_time += report.delivery_time_sum
    state.total_distance_km += report.distance_km
    if config.enable_heatmap:
        _record_heatmap(state, report)
    state.history.append(
        TickSample(
            clock_min=state.clock_min,
            pending_orders=count_pending(state),
            active_agents=count_active(state),
        )
    )
    return report


def count_pending(state: SimulationState) -> int:
    return sum(1 for o in state.orders if o.status == OrderStatus.PENDING)


def count_active(state: SimulationState) -> int:
    return sum(1 for a in state.agents if a.status != AgentStatus.AVAILABLE)


def utilization_percent(state: SimulationState) -> float:
    if not state.agents or state.clock_min <= 0:
        return 0.0
    active = sum(a.active_time_min for a in state.agents)
    return active / (len(state.agents) * state.clock_min) * 100.0


def compute_stats(state: SimulationState) -> SimulationStats:
    delivered = state.total_orders_delivered
    return SimulationStats(
        total_orders_generated=state.total_orders_generated,
        total_orders_delivered=delivered,
        average_delivery_time_min=state.total_delivery_time / delivered if delivered else 0.0,
        total_agent_travel_distance_km=state.total_distance_km,
        average_agent_utilization_percent=utilization_percent(state),
        simulation_duration_min=state.clock_min,
    )

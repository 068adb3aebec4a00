"""
Dispatch assigner. Greedy: pending orders in placement order, each to the available
agent with the lowest ETA (FULL) or the longest-waiting agent (REDUCED).
"""

import logging
import math
from typing import List, Optional

from qcommerce.sim.domain.constraints import EngineConfig
from qcommerce.sim.domain.geometry import distance_km, generate_waypoints, nearest_store_index
from qcommerce.sim.domain.models import (
    Agent,
    AgentStatus,
    DarkStore,
    Fidelity,
    Order,
    OrderStatus,
    SimulationState,
)

logger = logging.getLogger(__name__)


def effective_speed_kmph(agent: Agent, config: EngineConfig, traffic_factor: float) -> float:
    return config.agent_speed_kmph * agent.fatigue_factor * traffic_factor


def travel_minutes(dist_km: float, speed_kmph: float) -> float:
    if speed_kmph <= 0:
        return math.inf
    return dist_km / speed_kmph * 60.0


def serving_store_index(order: Order, stores: List[DarkStore], config: EngineConfig) -> int:
    if config.fidelity == Fidelity.REDUCED:
        return 0
    return nearest_store_index(order.coords, [s.coords for s in stores])


def estimate_eta(
    agent: Agent,
    store: DarkStore,
    order: Order,
    config: EngineConfig,
    traffic_factor: float,
) -> float:
    """Minutes: agent -> store, handling, store -> customer, at the agent's current effective speed."""
    v = effective_speed_kmph(agent, config, traffic_factor)
    return (
        travel_minutes(distance_km(agent.coords, store.coords), v)
        + config.dispatch.handling_time_min
        + travel_minutes(distance_km(store.coords, order.coords), v)
    )


def _best_by_eta(
    pool: List[Agent],
    store: DarkStore,
    order: Order,
    config: EngineConfig,
    traffic_factor: float,
) -> Optional[Agent]:
    best: Optional[Agent] = None
    best_eta = math.inf
    for agent in pool:
        if effective_speed_kmph(agent, config, traffic_factor) <= config.dispatch.min_assign_speed_kmph:
            continue
        eta = estimate_eta(agent, store, order, config, traffic_factor)
        if eta < best_eta:
            best_eta = eta
            best = agent
    return best


def _longest_waiting(pool: List[Agent]) -> Optional[Agent]:
    best: Optional[Agent] = None
    for agent in pool:
        if best is None or agent.available_since < best.available_since:
            best = agent
    return best


def assign_agent(agent: Agent, order: Order, store_idx: int, store: DarkStore, config: EngineConfig) -> None:
    n = config.dispatch.waypoints_per_segment
    to_store = generate_waypoints(agent.coords, store.coords, n)
    to_customer = generate_waypoints(store.coords, order.coords, n)
    order.status = OrderStatus.ASSIGNED
    order.assigned_agent_id = agent.agent_id
    agent.status = AgentStatus.TO_STORE
    agent.current_order = order.order_id
    agent.serving_store = store_idx
    agent.route_path = to_store + to_customer[1:]
    agent.current_leg_index = 0
    agent.leg_progress = 0.0


def assign_pending_orders(state: SimulationState, config: EngineConfig) -> List[str]:
    """
    Assign as many pending orders as there are available agents. Returns assigned order ids.
    Orders with no suitable agent stay pending for the next step.
    """
    pool = [a for a in state.agents if a.status == AgentStatus.AVAILABLE]
    assigned: List[str] = []
    if not pool or not state.dark_stores:
        return assigned

    for order in state.orders:
        if not pool:
            break
        if order.status != OrderStatus.PENDING:
            continue
        store_idx = serving_store_index(order, state.dark_stores, config)
        store = state.dark_stores[store_idx]
        if config.fidelity == Fidelity.REDUCED:
            agent = _longest_waiting(pool)
        else:
            agent = _best_by_eta(pool, store, order, config, state.traffic_factor)
        if agent is None:
            continue
        assign_agent(agent, order, store_idx, store, config)
        pool.remove(agent)
        assigned.append(order.order_id)
        logger.debug("Order %s -> agent %s via %s", order.order_id, agent.agent_id, store.name)
    return assigned

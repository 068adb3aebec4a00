"""
Movement engine. Advances every agent by one step: idle time, at-store handling,
and travel along route legs with a km budget of effective speed * step.
"""

import logging

from qcommerce.sim.core.simulation_engine.dispatch import effective_speed_kmph
from qcommerce.sim.domain.constraints import EngineConfig
from qcommerce.sim.domain.geometry import distance_km, interpolate
from qcommerce.sim.domain.models import (
    Agent,
    AgentStatus,
    Fidelity,
    Order,
    OrderStatus,
    SimulationState,
    StepReport,
)

logger = logging.getLogger(__name__)


def release_agent(agent: Agent, now: float) -> None:
    agent.status = AgentStatus.AVAILABLE
    agent.current_order = None
    agent.route_path = []
    agent.current_leg_index = 0
    agent.leg_progress = 0.0
    agent.serving_store = None
    agent.time_continuously_active = 0.0
    agent.available_since = now


def _arrive_at_store(agent: Agent, order: Order, state: SimulationState, store_wp: int) -> None:
    store = state.dark_stores[agent.serving_store or 0]
    agent.lat, agent.lng = store.lat, store.lng
    agent.status = AgentStatus.AT_STORE
    agent.route_path = agent.route_path[store_wp:]
    agent.current_leg_index = 0
    agent.leg_progress = 0.0
    if order.store_arrival_time is None:
        order.store_arrival_time = state.clock_min
    logger.debug("Agent %s at %s for %s", agent.agent_id, store.name, order.order_id)


def _deliver(agent: Agent, order: Order, state: SimulationState, config: EngineConfig, report: StepReport) -> None:
    now = state.clock_min
    order.status = OrderStatus.DELIVERED
    order.customer_arrival_time = now
    order.delivery_time = now - order.time_placed
    agent.deliveries_completed += 1
    agent.consecutive_deliveries_since_rest += 1
    if config.fidelity == Fidelity.REDUCED:
        store = state.dark_stores[0]
        agent.lat, agent.lng = store.lat, store.lng
    else:
        agent.lat, agent.lng = order.lat, order.lng
    release_agent(agent, now)
    report.delivered_orders.append(order)
    logger.debug("Order %s delivered by %s in %.1f min", order.order_id, agent.agent_id, order.delivery_time)


def _travel(agent: Agent, order: Order, state: SimulationState, config: EngineConfig, report: StepReport) -> None:
    v = effective_speed_kmph(agent, config, state.traffic_factor)
    if v <= config.dispatch.min_move_speed_kmph:
        logger.warning(
            "Agent %s effective speed %.4f km/h, not moving this step", agent.agent_id, v
        )
        report.stalled_agent_ids.append(agent.agent_id)
        return

    budget = v * config.step_minutes / 60.0
    consumed = 0.0
    store_wp = config.dispatch.waypoints_per_segment + 1
    route = agent.route_path

    while budget > 0 and agent.current_leg_index < len(route) - 1:
        a = route[agent.current_leg_index]
        b = route[agent.current_leg_index + 1]
        leg_len = distance_km(a, b)
        if leg_len >= config.dispatch.min_leg_km:
            remaining = leg_len * (1.0 - agent.leg_progress)
            if budget < remaining:
                agent.leg_progress += budget / leg_len
                consumed += budget
                budget = 0.0
                agent.lat, agent.lng = interpolate(a, b, agent.leg_progress)
                break
            budget -= remaining
            consumed += remaining

        agent.current_leg_index += 1
        agent.leg_progress = 0.0
        agent.lat, agent.lng = b
        if agent.status == AgentStatus.TO_STORE and agent.current_leg_index == store_wp:
            _arrive_at_store(agent, order, state, store_wp)
            break
        if agent.status == AgentStatus.TO_CUSTOMER and agent.current_leg_index == len(route) - 1:
            _deliver(agent, order, state, config, report)
            break

    if consumed > 0:
        agent.total_distance_km += consumed
        report.distance_by_agent[agent.agent_id] = report.distance_by_agent.get(agent.agent_id, 0.0) + consumed


def move_agents(state: SimulationState, config: EngineConfig, report: StepReport) -> None:
    step = config.step_minutes
    for agent in state.agents:
        if agent.status == AgentStatus.AVAILABLE:
            agent.time_idle_min += step
            agent.idle_streak_min += step
            continue

        order = state.order_by_id(agent.current_order) if agent.current_order else None
        if order is None or order.status == OrderStatus.CANCELLED:
            logger.debug("Agent %s released, order %s gone", agent.agent_id, agent.current_order)
            release_agent(agent, state.clock_min)
            agent.time_idle_min += step
            agent.idle_streak_min += step
            continue

        agent.time_continuously_active += step
        if agent.status == AgentStatus.AT_STORE:
            agent.time_at_store_min += step
            agent.leg_progress += step
            if agent.leg_progress >= config.dispatch.handling_time_min:
                order.status = OrderStatus.PICKED_UP
                agent.status = AgentStatus.TO_CUSTOMER
                agent.current_leg_index = 0
                agent.leg_progress = 0.0
                logger.debug("Agent %s picked up %s", agent.agent_id, order.order_id)
            continue

        agent.time_delivering_min += step
        _travel(agent, order, state, config, report)

import logging

import pytest

from qcommerce.sim.core.simulation_engine.dispatch import assign_agent
from qcommerce.sim.core.simulation_engine.movement import move_agents
from qcommerce.sim.domain.constraints import EngineConfig
from qcommerce.sim.domain.geometry import distance_km
from qcommerce.sim.domain.models import AgentStatus, OrderStatus, StepReport

from sim_helpers import make_order, make_state

CONFIG = EngineConfig()


def _assigned(store, agent_pos, customer, time_placed=0.0, clock_min=5.0):
    order = make_order("O1", customer, time_placed=time_placed)
    state = make_state([agent_pos], [store], orders=[order], clock_min=clock_min)
    assign_agent(state.agents[0], order, 0, store, CONFIG)
    return state, state.agents[0], order


def _tick(state, config=CONFIG):
    state.clock_min += config.step_minutes
    report = StepReport(clock_min=state.clock_min)
    move_agents(state, config, report)
    return report


def test_available_agent_accumulates_idle_time(store):
    state = make_state([store.coords], [store])
    _tick(state)
    _tick(state)
    agent = state.agents[0]
    assert agent.time_idle_min == 10.0
    assert agent.idle_streak_min == 10.0
    assert agent.total_distance_km == 0.0


def test_partial_travel_uses_speed_budget(store):
    far = (store.lat + 0.09, store.lng)
    state, agent, _ = _assigned(store, far, (store.lat - 0.01, store.lng))
    report = _tick(state)
    assert agent.status == AgentStatus.TO_STORE
    assert agent.total_distance_km == pytest.approx(25.0 * 5 / 60, rel=1e-6)
    assert report.distance_by_agent["A1"] == pytest.approx(agent.total_distance_km)
    assert distance_km(far, agent.coords) == pytest.approx(agent.total_distance_km, rel=1e-3)
    assert agent.time_delivering_min == 5.0


def test_arrival_at_store_trims_route(store):
    start = (store.lat + 0.004, store.lng)
    customer = (store.lat - 0.01, store.lng)
    state, agent, order = _assigned(store, start, customer)
    _tick(state)
    assert agent.status == AgentStatus.AT_STORE
    assert agent.coords == store.coords
    assert agent.route_path[0] == store.coords
    assert agent.route_path[-1] == customer
    assert len(agent.route_path) == 4
    assert order.store_arrival_time == state.clock_min
    assert order.status == OrderStatus.ASSIGNED
    assert agent.total_distance_km == pytest.approx(distance_km(start, store.coords), rel=1e-6)


def test_handling_then_pickup_then_delivery(store):
    customer = (store.lat - 0.01, store.lng)
    state, agent, order = _assigned(store, (store.lat + 0.004, store.lng), customer, time_placed=5.0)
    _tick(state)  # reach store
    _tick(state)  # handling
    assert agent.status == AgentStatus.TO_CUSTOMER
    assert order.status == OrderStatus.PICKED_UP
    assert agent.time_at_store_min == 5.0

    report = _tick(state)
    assert order.status == OrderStatus.DELIVERED
    assert report.delivered_orders == [order]
    assert order.customer_arrival_time == state.clock_min
    assert order.delivery_time == order.customer_arrival_time - order.time_placed
    assert order.time_placed <= order.store_arrival_time <= order.customer_arrival_time

    assert agent.status == AgentStatus.AVAILABLE
    assert agent.current_order is None
    assert agent.route_path == []
    assert agent.coords == customer
    assert agent.deliveries_completed == 1
    assert agent.consecutive_deliveries_since_rest == 1
    assert agent.available_since == state.clock_min


def test_stalled_agent_does_not_move(store, caplog):
    start = (store.lat + 0.02, store.lng)
    state, agent, _ = _assigned(store, start, (store.lat - 0.01, store.lng))
    state.traffic_factor = 0.0
    with caplog.at_level(logging.WARNING):
        report = _tick(state)
    assert report.stalled_agent_ids == ["A1"]
    assert agent.coords == start
    assert agent.total_distance_km == 0.0
    assert "not moving" in caplog.text


def test_cancelled_order_releases_agent(store):
    state, agent, order = _assigned(store, (store.lat + 0.02, store.lng), (store.lat - 0.01, store.lng))
    agent.time_continuously_active = 40.0
    order.status = OrderStatus.CANCELLED
    _tick(state)
    assert agent.status == AgentStatus.AVAILABLE
    assert agent.current_order is None
    assert agent.route_path == []
    assert agent.time_continuously_active == 0.0
    assert agent.time_idle_min == 5.0


def test_order_at_store_location_skips_zero_legs(store):
    state, agent, order = _assigned(store, store.coords, store.coords)
    _tick(state)
    assert agent.status == AgentStatus.AT_STORE
    _tick(state)
    _tick(state)
    assert order.status == OrderStatus.DELIVERED
    assert order.delivery_time == 20.0
    assert agent.total_distance_km == 0.0

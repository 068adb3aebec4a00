import numpy as np
import pytest

from qcommerce.sim.application.config import SECTOR_COORDS
from qcommerce.sim.core.simulation_engine.stepper import (
    compute_stats,
    count_active,
    count_pending,
    create_initial_state,
    run_step,
    utilization_percent,
)
from qcommerce.sim.domain.constraints import EngineConfig
from qcommerce.sim.domain.geometry import distance_km
from qcommerce.sim.domain.models import AgentStatus, Fidelity, OrderStatus


def _run(profile, region, store, ticks=12, seed=42, num_agents=10, **config_kw):
    rng = np.random.default_rng(seed)
    config = EngineConfig(agent_speed_kmph=25.0, **config_kw)
    state = create_initial_state(num_agents, [store], rng, jitter_deg=0.002)
    reports = [run_step(state, profile, region, rng, config, SECTOR_COORDS) for _ in range(ticks)]
    return state, reports


def _check_invariants(state):
    for agent in state.agents:
        idle = agent.status == AgentStatus.AVAILABLE
        assert idle == (agent.current_order is None) == (agent.route_path == [])
        assert 0.5 <= agent.fatigue_factor <= 1.0
    for order in state.orders:
        stamps = [t for t in (order.time_placed, order.store_arrival_time, order.customer_arrival_time) if t is not None]
        assert stamps == sorted(stamps)
        if order.status == OrderStatus.DELIVERED:
            assert order.delivery_time == order.customer_arrival_time - order.time_placed


def test_one_hour_scenario(busy_uniform_profile, region, store):
    rng = np.random.default_rng(42)
    config = EngineConfig(agent_speed_kmph=25.0)
    state = create_initial_state(10, [store], rng, jitter_deg=0.002)
    per_agent = {a.agent_id: 0.0 for a in state.agents}
    for _ in range(12):
        report = run_step(state, busy_uniform_profile, region, rng, config, SECTOR_COORDS)
        for agent_id, km in report.distance_by_agent.items():
            per_agent[agent_id] += km
        _check_invariants(state)

    assert state.clock_min == 60.0
    assert state.total_orders_generated > 0
    assert state.total_orders_delivered <= state.total_orders_generated
    delivered = [o for o in state.orders if o.status == OrderStatus.DELIVERED]
    assert len(delivered) == state.total_orders_delivered
    assert all(o.delivery_time > 0 for o in delivered)
    for agent in state.agents:
        assert agent.total_distance_km == pytest.approx(per_agent[agent.agent_id])
    assert state.total_distance_km == pytest.approx(sum(a.total_distance_km for a in state.agents))


def test_agents_start_near_primary_store(store):
    state = create_initial_state(20, [store], np.random.default_rng(0), jitter_deg=0.002)
    assert [a.agent_id for a in state.agents] == [f"A{i}" for i in range(1, 21)]
    for a in state.agents:
        assert abs(a.lat - store.lat) <= 0.001
        assert abs(a.lng - store.lng) <= 0.001
        assert a.status == AgentStatus.AVAILABLE


def test_same_seed_same_run(busy_uniform_profile, region, store):
    a, _ = _run(busy_uniform_profile, region, store, seed=9)
    b, _ = _run(busy_uniform_profile, region, store, seed=9)
    assert compute_stats(a) == compute_stats(b)
    assert [(o.lat, o.lng, o.status) for o in a.orders] == [(o.lat, o.lng, o.status) for o in b.orders]


def test_static_traffic_uses_base_factor(busy_uniform_profile, region, store):
    state, reports = _run(busy_uniform_profile, region, store, ticks=13, base_traffic_factor=1.2)
    assert state.traffic_factor == 1.2
    assert not any(r.traffic_refreshed for r in reports)


def test_dynamic_traffic_refreshes_every_twelve_ticks(busy_uniform_profile, region, store):
    state, reports = _run(busy_uniform_profile, region, store, ticks=25, enable_dynamic_traffic=True)
    refreshed = [i + 1 for i, r in enumerate(reports) if r.traffic_refreshed]
    assert refreshed == [12, 24]
    assert 0.6 <= state.traffic_factor <= 1.4


def test_heatmap_counts_deliveries(busy_uniform_profile, region, store):
    state, _ = _run(busy_uniform_profile, region, store, ticks=24, enable_heatmap=True)
    counts = [c.count for c in state.heatmap.values()]
    assert sum(counts) == state.total_orders_delivered
    assert state.heatmap_max == max(counts, default=0)


def test_heatmap_off_by_default(busy_uniform_profile, region, store):
    state, _ = _run(busy_uniform_profile, region, store)
    assert state.heatmap == {}


def test_history_has_one_sample_per_tick(busy_uniform_profile, region, store):
    state, _ = _run(busy_uniform_profile, region, store, ticks=7)
    assert [s.clock_min for s in state.history] == [5.0 * i for i in range(1, 8)]
    last = state.history[-1]
    assert last.pending_orders == count_pending(state)
    assert last.active_agents == count_active(state)


def test_reduced_fidelity_keeps_orders_near_store_and_skips_fatigue(busy_uniform_profile, region, store):
    state, _ = _run(busy_uniform_profile, region, store, ticks=36, fidelity=Fidelity.REDUCED, num_agents=2)
    assert all(distance_km(store.coords, o.coords) <= 5.0 * 1.01 for o in state.orders)
    assert all(a.fatigue_factor == 1.0 for a in state.agents)
    for agent in state.agents:
        if agent.status == AgentStatus.AVAILABLE and agent.deliveries_completed:
            assert agent.coords == store.coords


def test_stats_on_fresh_state(store):
    state = create_initial_state(3, [store], np.random.default_rng(0))
    stats = compute_stats(state)
    assert stats.total_orders_generated == 0
    assert stats.average_delivery_time_min == 0.0
    assert utilization_percent(state) == 0.0


def test_utilization_is_active_share(store):
    state = create_initial_state(2, [store], np.random.default_rng(0))
    state.clock_min = 60.0
    state.agents[0].time_delivering_min = 30.0
    state.agents[1].time_at_store_min = 15.0
    assert utilization_percent(state) == pytest.approx(37.5)

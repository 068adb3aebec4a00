import numpy as np
import pytest

from qcommerce.sim.application.config import SECTOR_COORDS
from qcommerce.sim.core.simulation_engine.demand_generator import (
    generate_orders,
    minute_of_day,
    stochastic_round,
    zone_is_active,
)
from qcommerce.sim.domain.geometry import distance_km
from qcommerce.sim.domain.models import DemandProfile, DemandZone, OrderStatus, ZoneType

from sim_helpers import make_state


def _zone(zone_type=ZoneType.UNIFORM, lo=60.0, hi=60.0, start=0.0, end=24.0, **kw):
    return DemandZone(
        zone_id="z", zone_type=zone_type, min_orders=lo, max_orders=hi, start_hour=start, end_hour=end, **kw
    )


def _profile(*zones):
    return DemandProfile(profile_id="p", name="p", zones=tuple(zones))


def test_stochastic_round_whole_numbers_are_exact(rng):
    assert stochastic_round(0.0, rng) == 0
    assert stochastic_round(-1.0, rng) == 0
    assert all(stochastic_round(2.0, rng) == 2 for _ in range(50))


def test_stochastic_round_fraction_is_bernoulli():
    rng = np.random.default_rng(11)
    draws = [stochastic_round(0.15, rng) for _ in range(4000)]
    assert set(draws) <= {0, 1}
    assert np.mean(draws) == pytest.approx(0.15, abs=0.03)


def test_zone_window_is_inclusive():
    z = _zone(start=8, end=10)
    assert zone_is_active(z, 480)
    assert zone_is_active(z, 600)
    assert not zone_is_active(z, 605)
    assert not zone_is_active(z, 475)


def test_zone_window_wraps_midnight():
    z = _zone(start=22, end=2)
    assert zone_is_active(z, 23 * 60)
    assert zone_is_active(z, 60)
    assert not zone_is_active(z, 12 * 60)


def test_minute_of_day_uses_day_start():
    assert minute_of_day(30, day_start_hour=8) == 510
    assert minute_of_day(24 * 60 + 5, day_start_hour=0) == 5


def test_new_orders_are_pending_with_unique_ids(region, store, rng):
    state = make_state([], [store], clock_min=35.0)
    profile = _profile(_zone(lo=120, hi=120))
    orders = generate_orders(state, profile, region, rng, 5.0, SECTOR_COORDS)
    assert len(orders) == 10
    assert [o.order_id for o in orders] == [f"O{i}" for i in range(1, 11)]
    assert state.total_orders_generated == 10
    for o in orders:
        assert o.status == OrderStatus.PENDING
        assert o.time_placed == 35.0
        assert o.assigned_agent_id is None
        assert o.store_arrival_time is None
        assert o.customer_arrival_time is None
        assert o.delivery_time is None


def test_inactive_zone_generates_nothing(region, store, rng):
    state = make_state([], [store], clock_min=60.0)
    profile = _profile(_zone(lo=600, hi=600, start=10, end=12))
    assert generate_orders(state, profile, region, rng, 5.0, SECTOR_COORDS) == []


def test_hotspot_zone_places_near_center(region, store, rng):
    center = (30.705, 76.715)
    state = make_state([], [store])
    profile = _profile(_zone(ZoneType.HOTSPOT, lo=240, hi=240, center=center, radius_km=1.0))
    orders = generate_orders(state, profile, region, rng, 5.0, SECTOR_COORDS)
    assert len(orders) == 20
    assert all(distance_km(center, o.coords) <= 1.01 for o in orders)


def test_sector_zone_places_near_named_sector(region, store, rng):
    state = make_state([], [store])
    profile = _profile(_zone(ZoneType.SECTOR, lo=240, hi=240, sectors=("Manimajra",)))
    orders = generate_orders(state, profile, region, rng, 5.0, SECTOR_COORDS)
    assert all(distance_km(SECTOR_COORDS["Manimajra"], o.coords) <= 1.5 * 1.01 for o in orders)


def test_route_zone_places_along_path(region, store, rng):
    path = ((30.70, 76.70), (30.75, 76.80))
    state = make_state([], [store])
    profile = _profile(_zone(ZoneType.ROUTE, lo=240, hi=240, route_path=path, buffer_km=1.0))
    orders = generate_orders(state, profile, region, rng, 5.0, SECTOR_COORDS)
    for o in orders:
        assert 30.70 - 0.02 <= o.lat <= 30.75 + 0.02
        assert 76.70 - 0.02 <= o.lng <= 76.80 + 0.02


def test_builtin_focused_profile_stays_near_primary_store(region, store, rng):
    profile = DemandProfile("focused", "Focused", base_orders_per_hour=240.0, focus_radius_km=5.0)
    state = make_state([], [store])
    orders = generate_orders(state, profile, region, rng, 5.0, SECTOR_COORDS, focus_center=store.coords)
    assert len(orders) == 20
    assert all(distance_km(store.coords, o.coords) <= 5.0 * 1.01 for o in orders)


def test_builtin_low_rate_produces_orders_over_time(region, store):
    rng = np.random.default_rng(5)
    profile = DemandProfile("uniform", "Uniform", base_orders_per_hour=1.8)
    state = make_state([], [store])
    for _ in range(200):
        generate_orders(state, profile, region, rng, 5.0, SECTOR_COORDS)
    # 0.15 per step
    assert 15 <= state.total_orders_generated <= 50

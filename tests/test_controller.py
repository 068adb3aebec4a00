import time
from dataclasses import replace

import pytest

from qcommerce.sim.application.simulation_controller import SimulationController
from qcommerce.sim.application.tick_driver import TickDriver
from qcommerce.sim.domain.errors import ConfigurationError, SimulationStateError
from qcommerce.sim.domain.models import (
    AgentStatus,
    DarkStore,
    DemandProfile,
    DemandZone,
    OrderStatus,
    RunStatus,
    SimulationParams,
    ZoneType,
)


@pytest.fixture
def controller(busy_uniform_profile):
    ctl = SimulationController(seed=7)
    ctl.save_profile(busy_uniform_profile)
    ctl.configure(SimulationParams(num_agents=5, profile_id=busy_uniform_profile.profile_id))
    return ctl


def test_defaults():
    ctl = SimulationController(seed=1)
    assert ctl.status == RunStatus.STOPPED
    assert len(ctl.state.agents) == 15
    assert ctl.params.profile_id == "default_uniform_ccr"
    assert [s.name for s in ctl.dark_stores] == ["Central Store"]


def test_status_machine(controller):
    assert controller.start() == RunStatus.RUNNING
    assert controller.start() == RunStatus.RUNNING
    assert controller.pause() == RunStatus.PAUSED
    with pytest.raises(SimulationStateError):
        controller.pause()
    assert controller.start() == RunStatus.RUNNING
    assert controller.reset() == RunStatus.STOPPED
    assert controller.state.clock_min == 0.0


def test_pause_when_stopped_fails(controller):
    with pytest.raises(SimulationStateError):
        controller.pause()


def test_tick_only_advances_when_running(controller):
    assert controller.tick() is None
    assert controller.state.clock_min == 0.0
    controller.start()
    report = controller.tick()
    assert report is not None and report.clock_min == 5.0


def test_step_advances_regardless_of_status(controller):
    controller.step()
    controller.step()
    assert controller.state.clock_min == 10.0
    assert controller.status == RunStatus.STOPPED


def test_reset_replays_same_seed(controller):
    for _ in range(6):
        controller.step()
    first = controller.stats()
    controller.reset()
    for _ in range(6):
        controller.step()
    assert controller.stats() == first


def test_configure_while_running_rejected(controller):
    controller.start()
    with pytest.raises(SimulationStateError):
        controller.configure(SimulationParams(num_agents=3))


def test_configure_rejects_invalid_params(controller):
    with pytest.raises(ConfigurationError):
        controller.configure(SimulationParams(num_agents=0))
    with pytest.raises(ConfigurationError):
        controller.configure(dark_stores=[])
    with pytest.raises(ConfigurationError, match="unknown demand profile"):
        controller.configure(SimulationParams(profile_id="nope"))
    assert len(controller.state.agents) == 5


def test_configure_with_multiple_stores(controller):
    stores = [DarkStore("A", 30.73, 76.78), DarkStore("B", 30.69, 76.85)]
    controller.configure(SimulationParams(num_agents=4), dark_stores=stores)
    assert len(controller.state.dark_stores) == 2
    assert len(controller.state.agents) == 4


def test_profile_catalog(controller, busy_uniform_profile):
    ids = [p.profile_id for p in controller.profiles()]
    assert ids[:4] == [
        "default_uniform_ccr",
        "default_focused_ccr",
        "default_opt_uniform_ccr",
        "default_opt_peak_ccr",
    ]
    assert busy_uniform_profile.profile_id in ids
    with pytest.raises(ConfigurationError, match="built-in"):
        controller.save_profile(DemandProfile("default_uniform_ccr", "x", base_orders_per_hour=1))
    with pytest.raises(ConfigurationError, match="built-in"):
        controller.delete_profile("default_uniform_ccr")
    with pytest.raises(KeyError):
        controller.delete_profile("missing")


def test_invalid_profile_not_saved(controller):
    bad = DemandProfile(
        "bad",
        "Bad",
        zones=(DemandZone("z", ZoneType.HOTSPOT, 1, 2, 0, 24),),
    )
    with pytest.raises(ConfigurationError):
        controller.save_profile(bad)
    assert "bad" not in [p.profile_id for p in controller.profiles()]


def test_profile_in_use_cannot_be_deleted_while_running(controller, busy_uniform_profile):
    controller.start()
    with pytest.raises(SimulationStateError):
        controller.delete_profile(busy_uniform_profile.profile_id)
    controller.pause()
    controller.delete_profile(busy_uniform_profile.profile_id)


def test_profile_in_use_cannot_be_replaced_while_running(controller, busy_uniform_profile):
    quiet = replace(
        busy_uniform_profile,
        zones=(replace(busy_uniform_profile.zones[0], min_orders=0, max_orders=0),),
    )
    controller.start()
    with pytest.raises(SimulationStateError, match="in use"):
        controller.save_profile(quiet)
    assert controller.get_profile(busy_uniform_profile.profile_id).zones[0].max_orders == 40

    controller.pause()
    controller.save_profile(quiet)
    assert controller.get_profile(busy_uniform_profile.profile_id).zones[0].max_orders == 0


def test_cancel_assigned_order_releases_agent(controller):
    while not any(o.status == OrderStatus.ASSIGNED for o in controller.state.orders):
        controller.step()
    order = next(o for o in controller.state.orders if o.status == OrderStatus.ASSIGNED)
    agent = controller.state.agent_by_id(order.assigned_agent_id)
    agent.time_continuously_active = 40.0

    cancelled = controller.cancel_order(order.order_id)
    assert cancelled.status == OrderStatus.CANCELLED
    assert agent.status == AgentStatus.AVAILABLE
    assert agent.current_order is None
    assert agent.time_continuously_active == 0.0
    assert controller.cancel_order(order.order_id) is cancelled


def test_cancel_unknown_or_delivered_order(controller):
    with pytest.raises(KeyError):
        controller.cancel_order("O999")
    while controller.state.total_orders_delivered == 0:
        controller.step()
    delivered = next(o for o in controller.state.orders if o.status == OrderStatus.DELIVERED)
    with pytest.raises(SimulationStateError):
        controller.cancel_order(delivered.order_id)


def test_tick_driver_advances_running_controller(controller):
    driver = TickDriver(controller, interval_ms=5)
    controller.start()
    driver.start()
    try:
        deadline = time.monotonic() + 5.0
        while driver.ticks < 3 and time.monotonic() < deadline:
            time.sleep(0.01)
    finally:
        driver.stop()
    assert driver.ticks >= 3
    assert not driver.is_alive()
    assert controller.state.clock_min >= 15.0

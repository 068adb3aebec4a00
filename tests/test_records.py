import pytest

from qcommerce.sim.application.config import BUILTIN_PROFILES
from qcommerce.sim.domain.errors import ConfigurationError
from qcommerce.sim.domain.models import (
    DemandProfile,
    DemandZone,
    OptimizationIterationResult,
    OrderStatus,
    SimulationParams,
    SimulationStats,
    ZoneType,
)
from qcommerce.sim.infrastructure.export_rows import ORDER_FIELDS, optimization_rows, order_rows
from qcommerce.sim.infrastructure.profile_loader import (
    profile_from_record,
    profile_to_record,
    profiles_to_records,
    scenario_from_record,
    scenario_to_record,
    zone_from_record,
)
from qcommerce.sim.infrastructure.scenario_store import ScenarioStore

from sim_helpers import make_order

STATS = SimulationStats(
    total_orders_generated=40,
    total_orders_delivered=31,
    average_delivery_time_min=18.4567,
    total_agent_travel_distance_km=123.456,
    average_agent_utilization_percent=64.04,
    simulation_duration_min=120.0,
)

MIXED_PROFILE = DemandProfile(
    "evening",
    "Evening rush",
    zones=(
        DemandZone("z1", ZoneType.UNIFORM, 10, 20, 17, 21, description="background"),
        DemandZone("z2", ZoneType.HOTSPOT, 5, 10, 18, 20, center=(30.74, 76.778), radius_km=1.5),
        DemandZone("z3", ZoneType.SECTOR, 2, 4, 22, 2, sectors=("Manimajra", "Sector 22 (ISBT)")),
        DemandZone("z4", ZoneType.ROUTE, 1, 3, 8, 10, route_path=((30.70, 76.70), (30.75, 76.80)), buffer_km=0.5),
    ),
)


def test_profile_record_round_trip():
    record = profile_to_record(MIXED_PROFILE)
    assert record["zones"][1]["center"] == [30.74, 76.778]
    assert record["zones"][3]["routePath"] == [[30.70, 76.70], [30.75, 76.80]]
    assert "center" not in record["zones"][0]
    assert profile_from_record(record) == MIXED_PROFILE


def test_zone_record_accepts_browser_style_types():
    zone = zone_from_record({"id": "a", "type": "HOTSPOT", "minOrders": "3", "maxOrders": 6,
                             "startTime": 9, "endTime": 11, "center": [30.7, 76.7], "radius": 2})
    assert zone.zone_type == ZoneType.HOTSPOT
    assert zone.min_orders == 3.0
    assert zone.center == (30.7, 76.7)


@pytest.mark.parametrize(
    "raw",
    [
        {"id": "a", "type": "circle"},
        {"id": "a", "type": "hotspot", "center": "nowhere"},
        {"id": "a", "type": "uniform", "minOrders": "lots"},
    ],
)
def test_bad_zone_records(raw):
    with pytest.raises(ConfigurationError):
        zone_from_record(raw)


def test_profile_record_needs_id():
    with pytest.raises(ConfigurationError):
        profile_from_record({"name": "x", "zones": []})


def test_builtins_are_not_exported():
    records = profiles_to_records([*BUILTIN_PROFILES.values(), MIXED_PROFILE])
    assert [r["id"] for r in records] == ["evening"]


def test_scenario_store_snapshot_and_records():
    store = ScenarioStore()
    params = SimulationParams(num_agents=12, enable_dynamic_traffic=True)
    scenario = store.save("  Peak test  ", params, STATS)
    assert scenario.name == "Peak test"
    assert scenario.scenario_id.startswith("scenario_")
    assert scenario.statistics.average_delivery_time_min == 18.5
    assert scenario.statistics.total_agent_travel_distance_km == 123.5
    assert store.list() == [scenario]

    record = scenario_to_record(scenario)
    assert record["parameters"]["simulationDurationRun"] == 120.0
    assert record["parameters"]["numAgents"] == 12
    assert scenario_from_record(record) == scenario


def test_scenario_store_rejects_blank_name_and_missing_ids():
    store = ScenarioStore()
    with pytest.raises(ConfigurationError):
        store.save("   ", SimulationParams(), STATS)
    with pytest.raises(KeyError):
        store.get("nope")
    with pytest.raises(KeyError):
        store.delete("nope")
    with pytest.raises(ConfigurationError):
        store.compare([])


def test_scenario_compare_rows():
    store = ScenarioStore()
    a = store.save("A", SimulationParams(num_agents=10), STATS)
    b = store.save("B", SimulationParams(num_agents=14, enable_dynamic_traffic=True), STATS)
    rows = store.compare([b.scenario_id, a.scenario_id])
    assert len(rows) == 11
    by_metric = {r["metric"]: r for r in rows}
    assert by_metric["Agents"]["values"] == ["14", "10"]
    assert by_metric["Dynamic Traffic"]["values"] == ["Yes", "No"]
    assert by_metric["Avg. Delivery Time (min)"]["values"] == ["18.5", "18.5"]
    assert by_metric["Generated Orders"]["section"] == "Statistics"

    store.delete(a.scenario_id)
    assert store.list() == [b]
    store.clear()
    assert store.list() == []


def test_order_export_rows():
    delivered = make_order("O1", (30.7333, 76.7794), time_placed=5.0)
    delivered.status = OrderStatus.DELIVERED
    delivered.assigned_agent_id = "A3"
    delivered.store_arrival_time = 10.0
    delivered.customer_arrival_time = 20.0
    delivered.delivery_time = 15.0
    pending = make_order("O2", (30.7, 76.8), time_placed=10.0)

    rows = order_rows([delivered, pending])
    assert tuple(rows[0]) == ORDER_FIELDS
    assert rows[0]["DeliveryTimeMinutes"] == "15.0"
    assert rows[0]["OrderLat"] == "30.733300"
    assert rows[1]["AssignedAgentID"] == "N/A"
    assert rows[1]["StoreArrivalTime"] == "N/A"
    assert rows[1]["Status"] == "pending"


def test_optimization_export_rows():
    row = OptimizationIterationResult(5, 10.0, 12.0, 15.0, 75.0, 20.0, 80.0, 83.333, float("inf"))
    out = optimization_rows([row])[0]
    assert out["NumAgents"] == 5
    assert out["CompletionRatePercent"] == "83.3"
    assert out["AvgCostPerOrderINR"] == "N/A"

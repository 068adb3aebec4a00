# ==========================================
# IN-MEMORY SCENARIO STORE
# ------------------------------------------
# Volatile: scenarios are lost when the
# service restarts. Durable storage goes
# through scenario_to_record /
# scenario_from_record.
# ==========================================

import threading
import uuid
from dataclasses import replace
from datetime import datetime
from typing import Dict, List, Sequence

from qcommerce.sim.domain.errors import ConfigurationError
from qcommerce.sim.domain.models import Scenario, SimulationParams, SimulationStats

PARAM_ROWS = (
    ("num_agents", "Agents"),
    ("agent_speed_kmph", "Agent Speed (km/h)"),
    ("profile_id", "Order Profile"),
    ("base_traffic_factor", "Base Traffic Factor"),
    ("enable_dynamic_traffic", "Dynamic Traffic"),
)
STAT_ROWS = (
    ("simulation_duration_min", "Sim Duration (min)"),
    ("total_orders_generated", "Generated Orders"),
    ("total_orders_delivered", "Delivered Orders"),
    ("average_delivery_time_min", "Avg. Delivery Time (min)"),
    ("total_agent_travel_distance_km", "Total Agent Distance (km)"),
    ("average_agent_utilization_percent", "Avg. Agent Utilization (%)"),
)


def snapshot_stats(stats: SimulationStats) -> SimulationStats:
    """Scenario snapshots keep one decimal, as shown in comparisons."""
    return replace(
        stats,
        average_delivery_time_min=round(stats.average_delivery_time_min, 1),
        total_agent_travel_distance_km=round(stats.total_agent_travel_distance_km, 1),
        average_agent_utilization_percent=round(stats.average_agent_utilization_percent, 1),
    )


class ScenarioStore:
    def __init__(self):
        self._lock = threading.Lock()
        self._scenarios: Dict[str, Scenario] = {}

    def save(self, name: str, params: SimulationParams, stats: SimulationStats) -> Scenario:
        name = name.strip()
        if not name:
            raise ConfigurationError("scenario name must not be empty")
        scenario = Scenario(
            scenario_id=f"scenario_{uuid.uuid4().hex[:12]}",
            name=name,
            timestamp=datetime.now().isoformat(timespec="seconds"),
            parameters=params,
            statistics=snapshot_stats(stats),
        )
        with self._lock:
            self._scenarios[scenario.scenario_id] = scenario
        return scenario

    def get(self, scenario_id: str) -> Scenario:
        with self._lock:
            return self._scenarios[scenario_id]

    def list(self) -> List[Scenario]:
        with self._lock:
            return list(self._scenarios.values())

    def delete(self, scenario_id: str) -> None:
        with self._lock:
            del self._scenarios[scenario_id]

    def clear(self) -> None:
        with self._lock:
            self._scenarios.clear()

    def compare(self, scenario_ids: Sequence[str]) -> List[dict]:
        """
        One row per metric: {"section", "metric", "values": [...]} with values in the order of
        scenario_ids. Booleans become Yes/No, floats one decimal.
        """
        if not scenario_ids:
            raise ConfigurationError("select at least one scenario")
        scenarios = [self.get(sid) for sid in scenario_ids]
        rows: List[dict] = []
        for attr, label in PARAM_ROWS:
            rows.append(
                {
                    "section": "Parameters",
                    "metric": label,
                    "values": [_display(getattr(s.parameters, attr)) for s in scenarios],
                }
            )
        for attr, label in STAT_ROWS:
            rows.append(
                {
                    "section": "Statistics",
                    "metric": label,
                    "values": [_display(getattr(s.statistics, attr)) for s in scenarios],
                }
            )
        return rows


def _display(value) -> str:
    if isinstance(value, bool):
        return "Yes" if value else "No"
    if isinstance(value, float):
        return f"{value:.1f}"
    if value is None:
        return "N/A"
    return str(value)

"""
Simulation domain models. Dataclasses only. No FastAPI, no external deps beyond dataclasses/typing.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple

LatLng = Tuple[float, float]


class AgentStatus(str, Enum):
    AVAILABLE = "available"
    TO_STORE = "to_store"
    AT_STORE = "at_store"
    TO_CUSTOMER = "to_customer"


class OrderStatus(str, Enum):
    PENDING = "pending"
    ASSIGNED = "assigned"
    PICKED_UP = "picked_up"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class RunStatus(str, Enum):
    STOPPED = "stopped"
    RUNNING = "running"
    PAUSED = "paused"


class ZoneType(str, Enum):
    UNIFORM = "uniform"
    HOTSPOT = "hotspot"
    SECTOR = "sector"
    ROUTE = "route"


class Fidelity(str, Enum):
    """FULL: interactive simulation. REDUCED: headless workforce sweep."""
    FULL = "full"
    REDUCED = "reduced"


@dataclass(frozen=True)
class ServiceRegion:
    """Polygon ring of (lat, lng) vertices and the point used when sampling gives up."""
    ring: Tuple[LatLng, ...]
    fallback_point: LatLng


@dataclass(frozen=True)
class Sector:
    name: str
    coords: LatLng


@dataclass
class DarkStore:
    name: str
    lat: float
    lng: float
    # Filled by placement; 0 / empty for hand-configured stores.
    assigned_orders: int = 0
    points: List[LatLng] = field(default_factory=list)

    @property
    def coords(self) -> LatLng:
        return (self.lat, self.lng)


@dataclass(frozen=True)
class DemandZone:
    """
    One zone of a demand profile. zone_type is the discriminant; only the fields
    of that variant are meaningful (center/radius_km for hotspot, sectors for
    sector, route_path/buffer_km for route).
    """
    zone_id: str
    zone_type: ZoneType
    min_orders: float  # orders per hour
    max_orders: float
    start_hour: float  # 0-24
    end_hour: float
    description: str = ""
    center: Optional[LatLng] = None
    radius_km: Optional[float] = None
    sectors: Tuple[str, ...] = ()
    route_path: Tuple[LatLng, ...] = ()
    buffer_km: Optional[float] = None


@dataclass(frozen=True)
class DemandProfile:
    profile_id: str
    name: str
    zones: Tuple[DemandZone, ...] = ()
    # Built-in profiles only: flat rate, placed over the region or around the primary store.
    base_orders_per_hour: Optional[float] = None
    focus_radius_km: Optional[float] = None

    @property
    def is_builtin(self) -> bool:
        return self.base_orders_per_hour is not None


@dataclass
class Agent:
    agent_id: str
    lat: float
    lng: float
    status: AgentStatus = AgentStatus.AVAILABLE
    current_order: Optional[str] = None
    route_path: List[LatLng] = field(default_factory=list)
    current_leg_index: int = 0
    # Fraction of the current leg; while at_store, minutes spent at the store.
    leg_progress: float = 0.0
    fatigue_factor: float = 1.0
    consecutive_deliveries_since_rest: int = 0
    time_continuously_active: float = 0.0
    total_distance_km: float = 0.0
    deliveries_completed: int = 0
    time_idle_min: float = 0.0
    time_delivering_min: float = 0.0
    time_at_store_min: float = 0.0
    idle_streak_min: float = 0.0
    serving_store: Optional[int] = None
    available_since: float = 0.0

    @property
    def coords(self) -> LatLng:
        return (self.lat, self.lng)

    @property
    def active_time_min(self) -> float:
        return self.time_delivering_min + self.time_at_store_min


@dataclass
class Order:
    order_id: str
    lat: float
    lng: float
    time_placed: float
    status: OrderStatus = OrderStatus.PENDING
    assigned_agent_id: Optional[str] = None
    store_arrival_time: Optional[float] = None
    customer_arrival_time: Optional[float] = None
    delivery_time: Optional[float] = None

    @property
    def coords(self) -> LatLng:
        return (self.lat, self.lng)


@dataclass
class HeatmapCell:
    lat: float
    lng: float
    count: int = 1


@dataclass(frozen=True)
class TickSample:
    """Per-tick series point for live charts."""
    clock_min: float
    pending_orders: int
    active_agents: int


@dataclass
class SimulationState:
    agents: List[Agent]
    dark_stores: List[DarkStore]
    orders: List[Order] = field(default_factory=list)
    clock_min: float = 0.0
    tick_index: int = 0
    order_id_counter: int = 0
    total_orders_generated: int = 0
    total_orders_delivered: int = 0
    total_delivery_time: float = 0.0
    total_distance_km: float = 0.0
    traffic_factor: float = 1.0
    status: RunStatus = RunStatus.STOPPED
    heatmap: dict[Tuple[float, float], HeatmapCell] = field(default_factory=dict)
    heatmap_max: int = 0
    history: List[TickSample] = field(default_factory=list)

    def order_by_id(self, order_id: str) -> Optional[Order]:
        for o in self.orders:
            if o.order_id == order_id:
                return o
        return None

    def agent_by_id(self, agent_id: str) -> Optional[Agent]:
        for a in self.agents:
            if a.agent_id == agent_id:
                return a
        return None


@dataclass
class StepReport:
    """What one tick changed. Used for KPI aggregation and tests."""
    clock_min: float
    new_orders: List[Order] = field(default_factory=list)
    assigned_order_ids: List[str] = field(default_factory=list)
    delivered_orders: List[Order] = field(default_factory=list)
    distance_by_agent: dict[str, float] = field(default_factory=dict)
    traffic_refreshed: bool = False
    stalled_agent_ids: List[str] = field(default_factory=list)

    @property
    def delivery_time_sum(self) -> float:
        return sum(o.delivery_time or 0.0 for o in self.delivered_orders)

    @property
    def distance_km(self) -> float:
        return sum(self.distance_by_agent.values())


@dataclass(frozen=True)
class SimulationParams:
    num_agents: int = 15
    agent_speed_kmph: float = 25.0
    profile_id: str = "default_uniform_ccr"
    base_traffic_factor: float = 1.0
    enable_dynamic_traffic: bool = False
    enable_heatmap: bool = False
    day_start_hour: float = 0.0


@dataclass(frozen=True)
class SimulationStats:
    total_orders_generated: int
    total_orders_delivered: int
    average_delivery_time_min: float
    total_agent_travel_distance_km: float
    average_agent_utilization_percent: float
    simulation_duration_min: float = 0.0


@dataclass
class Scenario:
    scenario_id: str
    name: str
    timestamp: str
    parameters: SimulationParams
    statistics: SimulationStats


# --- Workforce sweep ---


@dataclass(frozen=True)
class SweepRunStats:
    """One reduced-fidelity repetition."""
    delivered_orders: int
    generated_orders: int
    total_delivery_time: float
    orders_meeting_sla: int
    utilization_percent: float
    total_distance_km: float


@dataclass
class OptimizationIterationResult:
    num_agents: int
    avg_delivered_orders: float
    avg_generated_orders: float
    avg_delivery_time: float
    avg_agent_utilization: float
    avg_travel_distance_km: float
    percentage_meeting_sla: float
    completion_rate: float
    avg_cost_per_order: float  # math.inf when nothing was delivered


@dataclass
class SweepRecommendation:
    best: Optional[OptimizationIterationResult]
    text: str
    candidates_rule: str  # "targets" | "relaxed_completion" | "all" | "none"


# --- Placement ---


@dataclass
class PlacementResult:
    dark_stores: List[DarkStore]
    demand_points: List[LatLng]
    avg_distance_by_store: List[float]
    std_distance_by_store: List[float]
    overall_avg_distance_km: float

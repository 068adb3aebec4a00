"""
Simulation API request/response schemas. Pydantic only in api layer.
"""

from pydantic import BaseModel, ConfigDict, Field

from qcommerce.sim.domain.models import AgentStatus, OrderStatus


class _FromDomain(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class SimulationParamsSchema(_FromDomain):
    num_agents: int = 15
    agent_speed_kmph: float = 25.0
    profile_id: str = "default_uniform_ccr"
    base_traffic_factor: float = 1.0
    enable_dynamic_traffic: bool = False
    enable_heatmap: bool = False
    day_start_hour: float = 0.0


class DarkStoreSchema(_FromDomain):
    name: str
    lat: float
    lng: float
    assigned_orders: int = 0


class ConfigureRequest(BaseModel):
    params: SimulationParamsSchema = Field(default_factory=SimulationParamsSchema)
    dark_stores: list[DarkStoreSchema] | None = None
    use_placed_stores: bool = False  # use stores from the last placement run
    seed: int | None = None


class AgentSchema(_FromDomain):
    agent_id: str
    lat: float
    lng: float
    status: AgentStatus
    current_order: str | None
    fatigue_factor: float
    deliveries_completed: int
    total_distance_km: float
    serving_store: int | None


class OrderSchema(_FromDomain):
    order_id: str
    lat: float
    lng: float
    time_placed: float
    status: OrderStatus
    assigned_agent_id: str | None
    store_arrival_time: float | None
    customer_arrival_time: float | None
    delivery_time: float | None


class SimulationStatsSchema(_FromDomain):
    total_orders_generated: int
    total_orders_delivered: int
    average_delivery_time_min: float
    total_agent_travel_distance_km: float
    average_agent_utilization_percent: float
    simulation_duration_min: float = 0.0


class TickSampleSchema(_FromDomain):
    clock_min: float
    pending_orders: int
    active_agents: int


class HeatmapCellSchema(_FromDomain):
    lat: float
    lng: float
    count: int


class SimulationStateSchema(BaseModel):
    status: str
    clock_min: float
    tick_index: int
    traffic_factor: float
    stats: SimulationStatsSchema
    agents: list[AgentSchema]
    pending_orders: int
    dark_stores: list[DarkStoreSchema]
    history: list[TickSampleSchema]
    heatmap: list[HeatmapCellSchema]
    heatmap_max: int


class StepReportSchema(BaseModel):
    clock_min: float
    new_order_ids: list[str]
    assigned_order_ids: list[str]
    delivered_order_ids: list[str]
    distance_km: float
    traffic_refreshed: bool
    stalled_agent_ids: list[str]


class StatusSchema(BaseModel):
    status: str


class ZoneSchema(BaseModel):
    id: str
    type: str
    minOrders: float
    maxOrders: float
    startTime: float
    endTime: float
    description: str = ""
    center: tuple[float, float] | None = None
    radius: float | None = None
    sectors: list[str] | None = None
    routePath: list[tuple[float, float]] | None = None
    bufferKm: float | None = None


class ProfileSchema(BaseModel):
    """Same camelCase shape as stored profile records."""
    id: str
    name: str
    zones: list[ZoneSchema] = []
    builtin: bool = False


class ScenarioSaveRequest(BaseModel):
    name: str


class ScenarioCompareRequest(BaseModel):
    scenario_ids: list[str]


class ComparisonRowSchema(BaseModel):
    section: str
    metric: str
    values: list[str]


class PlacementRequest(BaseModel):
    num_stores: int = 5
    num_background: int = 700
    num_hotspot: int = 300
    seed: int | None = None


class PlacedStoreSchema(DarkStoreSchema):
    avg_distance_km: float
    std_distance_km: float


class PlacementSchema(BaseModel):
    dark_stores: list[PlacedStoreSchema]
    total_points: int
    overall_avg_distance_km: float


class SweepRequest(BaseModel):
    store_index: int = 0
    profile_id: str = "default_opt_uniform_ccr"
    min_agents: int = 5
    max_agents: int = 15
    runs_per_count: int = 3
    horizon_min: float = 120.0
    target_avg_delivery_time: float = 25.0
    seed: int | None = None


class SweepRowSchema(_FromDomain):
    num_agents: int
    avg_delivered_orders: float
    avg_generated_orders: float
    avg_delivery_time: float
    avg_agent_utilization: float
    avg_travel_distance_km: float
    percentage_meeting_sla: float
    completion_rate: float
    avg_cost_per_order: float | None  # None when nothing was delivered


class SweepResponse(BaseModel):
    store: DarkStoreSchema
    profile_id: str
    results: list[SweepRowSchema]
    recommended_agents: int | None
    recommendation: str
    candidates_rule: str


class AdvisoryRequest(BaseModel):
    kind: str  # "analysis" | "event" | "sweep_explanation"


class AdvisoryNoticeSchema(_FromDomain):
    kind: str
    status: str
    text: str = ""
    error: str | None = None

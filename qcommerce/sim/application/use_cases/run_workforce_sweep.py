"""
Workforce sweep use case. Orchestrates the optimization engine. No FastAPI.
"""

from dataclasses import dataclass
from typing import List, Mapping, Optional, Sequence

from qcommerce.sim.application.config import (
    CCR_REGION,
    DEFAULT_SWEEP_TARGETS,
    MINUTES_PER_SIMULATION_STEP,
    SECTOR_COORDS,
    SWEEP_AGENT_SPEED_KMPH,
    SWEEP_DEMAND_RADIUS_KM,
    SWEEP_HORIZON_MIN,
)
from qcommerce.sim.core.optimization_engine.workforce_sweep import ProgressCallback, recommend, run_sweep
from qcommerce.sim.domain.constraints import SweepTargets
from qcommerce.sim.domain.errors import ConfigurationError
from qcommerce.sim.domain.models import (
    DarkStore,
    DemandProfile,
    LatLng,
    OptimizationIterationResult,
    ServiceRegion,
    SweepRecommendation,
)


@dataclass
class WorkforceSweepOutcome:
    store: DarkStore
    profile_id: str
    results: List[OptimizationIterationResult]
    recommendation: SweepRecommendation
    targets: SweepTargets


def run_workforce_sweep(
    dark_stores: Sequence[DarkStore],
    store_index: int,
    profile: DemandProfile,
    min_agents: int,
    max_agents: int,
    runs_per_count: int,
    horizon_min: float = SWEEP_HORIZON_MIN,
    targets: Optional[SweepTargets] = None,
    seed: Optional[int] = None,
    region: ServiceRegion = CCR_REGION,
    sector_coords: Mapping[str, LatLng] = SECTOR_COORDS,
    yield_seconds: float = 0.0,
    on_progress: Optional[ProgressCallback] = None,
) -> WorkforceSweepOutcome:
    """
    Flow: pick store -> run_sweep (reduced fidelity) -> recommend.
    """
    if not dark_stores:
        raise ConfigurationError("no dark stores; run placement or configure a store first")
    if not 0 <= store_index < len(dark_stores):
        raise ConfigurationError(f"store index {store_index} out of range (0..{len(dark_stores) - 1})")
    if targets is None:
        targets = DEFAULT_SWEEP_TARGETS

    store = dark_stores[store_index]
    results = run_sweep(
        store,
        profile,
        region,
        min_agents,
        max_agents,
        runs_per_count,
        sector_coords,
        targets=targets,
        horizon_min=horizon_min,
        step_minutes=MINUTES_PER_SIMULATION_STEP,
        speed_kmph=SWEEP_AGENT_SPEED_KMPH,
        demand_radius_km=SWEEP_DEMAND_RADIUS_KM,
        seed=seed,
        yield_seconds=yield_seconds,
        on_progress=on_progress,
    )
    return WorkforceSweepOutcome(
        store=store,
        profile_id=profile.profile_id,
        results=results,
        recommendation=recommend(results, targets),
        targets=targets,
    )

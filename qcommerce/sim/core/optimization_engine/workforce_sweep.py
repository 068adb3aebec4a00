"""
Workforce sweep. For each agent count in a range, run N reduced-fidelity simulations
around one dark store, aggregate KPIs and cost, then pick a recommended count.
"""

import logging
import math
import time
from typing import Callable, List, Mapping, Optional, Sequence

import numpy as np

from qcommerce.sim.core.simulation_engine.stepper import create_initial_state, run_step
from qcommerce.sim.domain.constraints import EngineConfig, SweepTargets
from qcommerce.sim.domain.models import (
    DarkStore,
    DemandProfile,
    Fidelity,
    LatLng,
    OptimizationIterationResult,
    ServiceRegion,
    SweepRecommendation,
    SweepRunStats,
)
from qcommerce.sim.domain.validation import validate_sweep_range

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int, int], None]  # (num_agents, run_index, runs)


def reduced_engine_config(step_minutes: float, speed_kmph: float, demand_radius_km: float) -> EngineConfig:
    return EngineConfig(
        step_minutes=step_minutes,
        agent_speed_kmph=speed_kmph,
        base_traffic_factor=1.0,
        enable_dynamic_traffic=False,
        enable_heatmap=False,
        fidelity=Fidelity.REDUCED,
        reduced_demand_radius_km=demand_radius_km,
    )


def run_single(
    num_agents: int,
    store: DarkStore,
    profile: DemandProfile,
    region: ServiceRegion,
    rng: np.random.Generator,
    config: EngineConfig,
    horizon_min: float,
    target_delivery_time: float,
    sector_coords: Mapping[str, LatLng],
) -> SweepRunStats:
    state = create_initial_state(num_agents, [store], rng, traffic_factor=1.0)
    meeting_sla = 0
    while state.clock_min + config.step_minutes <= horizon_min:
        report = run_step(state, profile, region, rng, config, sector_coords)
        meeting_sla += sum(1 for o in report.delivered_orders if o.delivery_time <= target_delivery_time)
    # Ticks stop at the last whole step; idle time up to the horizon still counts.
    active_min = sum(a.active_time_min for a in state.agents)
    return SweepRunStats(
        delivered_orders=state.total_orders_delivered,
        generated_orders=state.total_orders_generated,
        total_delivery_time=state.total_delivery_time,
        orders_meeting_sla=meeting_sla,
        utilization_percent=active_min / (num_agents * horizon_min) * 100.0,
        total_distance_km=state.total_distance_km,
    )


def aggregate_runs(
    num_agents: int,
    runs: Sequence[SweepRunStats],
    horizon_min: float,
    targets: SweepTargets,
) -> OptimizationIterationResult:
    n = len(runs)
    delivered = sum(r.delivered_orders for r in runs)
    generated = sum(r.generated_orders for r in runs)
    distance = sum(r.total_distance_km for r in runs)

    agent_hours = num_agents * (horizon_min / 60.0) * n
    cost = agent_hours * targets.agent_cost_per_hour + distance * targets.cost_per_km
    return OptimizationIterationResult(
        num_agents=num_agents,
        avg_delivered_orders=delivered / n,
        avg_generated_orders=generated / n,
        avg_delivery_time=sum(r.total_delivery_time for r in runs) / delivered if delivered else 0.0,
        avg_agent_utilization=sum(r.utilization_percent for r in runs) / n,
        avg_travel_distance_km=distance / n,
        percentage_meeting_sla=sum(r.orders_meeting_sla for r in runs) / delivered * 100.0 if delivered else 0.0,
        completion_rate=delivered / generated * 100.0 if generated else 0.0,
        avg_cost_per_order=cost / delivered if delivered else math.inf,
    )


def run_sweep(
    store: DarkStore,
    profile: DemandProfile,
    region: ServiceRegion,
    min_agents: int,
    max_agents: int,
    runs_per_count: int,
    sector_coords: Mapping[str, LatLng],
    targets: SweepTargets = SweepTargets(),
    horizon_min: float = 120.0,
    step_minutes: float = 5.0,
    speed_kmph: float = 20.0,
    demand_radius_km: float = 5.0,
    seed: Optional[int] = None,
    yield_seconds: float = 0.0,
    on_progress: Optional[ProgressCallback] = None,
) -> List[OptimizationIterationResult]:
    """
    One row per agent count, in ascending order. Each repetition gets its own child seed
    from a single SeedSequence, so a seeded sweep is reproducible.
    yield_seconds > 0 sleeps between repetitions to keep a shared host responsive.
    """
    validate_sweep_range(min_agents, max_agents, runs_per_count, horizon_min, step_minutes)
    config = reduced_engine_config(step_minutes, speed_kmph, demand_radius_km)
    counts = list(range(min_agents, max_agents + 1))
    children = iter(np.random.SeedSequence(seed).spawn(len(counts) * runs_per_count))

    results: List[OptimizationIterationResult] = []
    for num_agents in counts:
        logger.info("Sweep: %d agents, %d runs", num_agents, runs_per_count)
        run_stats: List[SweepRunStats] = []
        for run_idx in range(runs_per_count):
            if on_progress is not None:
                on_progress(num_agents, run_idx, runs_per_count)
            rng = np.random.default_rng(next(children))
            run_stats.append(
                run_single(
                    num_agents,
                    store,
                    profile,
                    region,
                    rng,
                    config,
                    horizon_min,
                    targets.target_avg_delivery_time,
                    sector_coords,
                )
            )
            if yield_seconds > 0:
                time.sleep(yield_seconds)
        results.append(aggregate_runs(num_agents, run_stats, horizon_min, targets))
    logger.info("Sweep complete: %d agent counts", len(results))
    return results


def _in_ideal_band(r: OptimizationIterationResult, targets: SweepTargets) -> bool:
    return targets.ideal_util_min_percent <= r.avg_agent_utilization <= targets.ideal_util_max_percent


def select_recommendation(
    results: Sequence[OptimizationIterationResult],
    targets: SweepTargets,
) -> tuple[Optional[OptimizationIterationResult], str]:
    """(best, rule) where rule is which candidate filter produced it."""
    if not results:
        return None, "none"
    rule = "targets"
    candidates = [
        r
        for r in results
        if r.completion_rate >= targets.min_completion_rate * 100
        and r.percentage_meeting_sla >= targets.min_sla_fraction * 100
        and r.avg_delivery_time <= targets.target_avg_delivery_time
    ]
    if not candidates:
        rule = "relaxed_completion"
        relaxed = targets.min_completion_rate * targets.relaxed_completion_factor * 100
        candidates = [r for r in results if r.completion_rate >= relaxed]
    if not candidates:
        rule = "all"
        candidates = list(results)

    mid = targets.ideal_util_mid_percent
    candidates.sort(
        key=lambda r: (
            r.avg_cost_per_order,
            0 if _in_ideal_band(r, targets) else 1,
            abs(r.avg_agent_utilization - mid),
        )
    )
    return candidates[0], rule


def recommendation_text(best: Optional[OptimizationIterationResult], targets: SweepTargets) -> str:
    if best is None:
        return "Could not determine a clear optimal number of agents. Review the table and adjust parameters."
    cost = f"INR {best.avg_cost_per_order:.2f}" if math.isfinite(best.avg_cost_per_order) else "N/A"
    lines = [
        f"Based on the analysis for CCR, employing **{best.num_agents} agents** appears to be the most balanced option.",
        f"- Avg. Delivery Time: **{best.avg_delivery_time:.1f} min** (Target: {targets.target_avg_delivery_time:g} min)",
        f"- Orders Meeting SLA: **{best.percentage_meeting_sla:.1f}%** (Goal: {targets.min_sla_fraction * 100:g}%)",
        f"- Order Completion Rate: **{best.completion_rate:.1f}%** (Goal: {targets.min_completion_rate * 100:g}%)",
        f"- Avg. Agent Utilization: **{best.avg_agent_utilization:.1f}%** "
        f"(Ideal: {targets.ideal_util_min_percent:g}-{targets.ideal_util_max_percent:g}%)",
        f"- Avg. Cost Per Order: **{cost}**",
        "",
        "*Rationale: This configuration aims to balance service level and operational cost-efficiency for CCR.*",
    ]
    if best.avg_delivery_time > targets.target_avg_delivery_time:
        lines.append("*Note: Avg. delivery time is above target. Consider if this is acceptable for CCR.*")
    if best.percentage_meeting_sla < targets.min_sla_fraction * 100:
        lines.append("*Note: SLA adherence is below target. This might impact customer satisfaction.*")
    return "\n".join(lines)


def recommend(results: Sequence[OptimizationIterationResult], targets: SweepTargets) -> SweepRecommendation:
    best, rule = select_recommendation(results, targets)
    return SweepRecommendation(best=best, text=recommendation_text(best, targets), candidates_rule=rule)

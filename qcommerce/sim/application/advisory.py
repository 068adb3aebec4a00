"""
Advisory desk. Builds prompts from simulation and sweep data, sends them to a text
completion service on a single background worker, and keeps the latest notice per kind.
Per-kind cooldowns reject requests that come too soon; nothing here touches simulation state.
"""

import json
import logging
import math
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, Dict, Mapping, Optional, Protocol, Sequence

from qcommerce.sim.application.config import (
    AI_ANALYSIS_COOLDOWN_S,
    AI_EVENT_COOLDOWN_S,
    AI_EXPLAIN_COOLDOWN_S,
)
from qcommerce.sim.core.simulation_engine.stepper import compute_stats, count_active, count_pending
from qcommerce.sim.domain.constraints import SweepTargets
from qcommerce.sim.domain.errors import AdvisoryCooldownError, SimulationStateError
from qcommerce.sim.domain.models import (
    OptimizationIterationResult,
    OrderStatus,
    SimulationParams,
    SimulationState,
)

logger = logging.getLogger(__name__)

ANALYSIS = "analysis"
EVENT = "event"
SWEEP_EXPLANATION = "sweep_explanation"

DEFAULT_COOLDOWNS = {
    ANALYSIS: AI_ANALYSIS_COOLDOWN_S,
    EVENT: AI_EVENT_COOLDOWN_S,
    SWEEP_EXPLANATION: AI_EXPLAIN_COOLDOWN_S,
}

MIN_ORDERS_FOR_ANALYSIS = 5
MIN_MINUTES_FOR_ANALYSIS = 30.0


class TextCompletionService(Protocol):
    def complete(self, prompt: str) -> str:
        ...


@dataclass
class AdvisoryNotice:
    kind: str
    status: str  # "pending" | "ok" | "error"
    text: str = ""
    error: Optional[str] = None
    requested_at: float = 0.0
    completed_at: Optional[float] = None


def format_sim_time(total_minutes: float) -> str:
    if total_minutes < 0:
        return "00:00"
    minutes = int(total_minutes)
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


# --- prompts ---


def analysis_prompt(state: SimulationState, params: SimulationParams, profile_name: str) -> str:
    stats = compute_stats(state)
    payload = {
        "simulationParameters": {
            "numAgents": params.num_agents,
            "agentSpeedKmph": params.agent_speed_kmph,
            "orderGenerationProfile": profile_name,
            "baseTrafficFactor": params.base_traffic_factor,
            "enableDynamicTraffic": params.enable_dynamic_traffic,
            "currentDynamicTrafficFactor": round(state.traffic_factor, 2),
        },
        "keyPerformanceIndicators": {
            "totalOrdersGenerated": stats.total_orders_generated,
            "totalOrdersDelivered": stats.total_orders_delivered,
            "averageDeliveryTimeMin": round(stats.average_delivery_time_min, 1),
            "averageAgentUtilizationPercent": round(stats.average_agent_utilization_percent, 1),
            "pendingOrders": count_pending(state),
        },
        "agentSummarySample": [
            {
                "id": a.agent_id,
                "status": a.status.value,
                "deliveries": a.deliveries_completed,
                "fatigue": round(a.fatigue_factor, 2),
            }
            for a in state.agents[:5]
        ],
        "recentDeliveredOrdersSample": [
            {"id": o.order_id, "time": round(o.delivery_time or 0.0)}
            for o in [o for o in state.orders if o.status == OrderStatus.DELIVERED][-3:]
        ],
        "currentTime": format_sim_time(state.clock_min),
    }
    return (
        "Analyze this Q-Commerce simulation data for Chandigarh Capital Region (CCR). "
        "Provide insights, bottlenecks, and actionable suggestions. Focus on efficiency, "
        "delivery times, resource use. Be concise. Data: " + json.dumps(payload, indent=2)
    )


def event_prompt(state: SimulationState) -> str:
    return (
        f"For a Q-Commerce simulation in Chandigarh Capital Region (CCR), India at sim time "
        f"{format_sim_time(state.clock_min)}, with {count_pending(state)} pending orders and "
        f"{count_active(state)} active agents: Suggest ONE plausible, concise disruptive event. "
        'Examples: "Sudden heavy rainfall causing widespread traffic delays across Mohali.", '
        '"Major road closure on Himalayan Expressway." Event description only.'
    )


def sweep_prompt(
    results: Sequence[OptimizationIterationResult],
    recommendation: str,
    targets: SweepTargets,
    explain: bool = True,
) -> str:
    rows = [
        {
            "agents": r.num_agents,
            "avgDeliveryTime": round(r.avg_delivery_time, 1),
            "slaMetPercent": round(r.percentage_meeting_sla, 1),
            "utilizationPercent": round(r.avg_agent_utilization, 1),
            "costPerOrder": round(r.avg_cost_per_order, 2) if math.isfinite(r.avg_cost_per_order) else None,
            "deliveredOrders": round(r.avg_delivered_orders, 1),
        }
        for r in results
    ]
    if explain:
        notes = (
            "Explain the provided workforce optimization recommendation for Chandigarh Capital Region (CCR) "
            "based on the data. Discuss trends and trade-offs that lead to this recommendation. "
            "Be clear and easy to understand."
        )
    else:
        notes = (
            "Analyze workforce optimization results for Chandigarh Capital Region (CCR). Goal: optimal agent "
            "count balancing service & cost. Comment on trends, recommendation, and strategic considerations."
        )
    data = {
        "optimizationParameters": {
            "targetAvgDeliveryTime": targets.target_avg_delivery_time,
            "agentCostPerHour": targets.agent_cost_per_hour,
            "costPerKm": targets.cost_per_km,
        },
        "optimizationResultsTableSummary": rows,
        "currentRecommendation": recommendation,
    }
    return f"Data: {json.dumps(data, indent=2)}. Task: {notes}"


def has_enough_data_for_analysis(state: SimulationState) -> bool:
    return (
        state.total_orders_generated >= MIN_ORDERS_FOR_ANALYSIS
        or state.clock_min >= MIN_MINUTES_FOR_ANALYSIS
    )


class AdvisoryDesk:
    """
    One request in flight at a time per desk (single worker). The cooldown window for a
    kind starts when a request is accepted, so failed calls still count.
    """

    def __init__(
        self,
        service: Optional[TextCompletionService],
        cooldowns: Optional[Mapping[str, float]] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.service = service
        self.cooldowns = dict(DEFAULT_COOLDOWNS if cooldowns is None else cooldowns)
        self._clock = clock
        self._lock = threading.Lock()
        self._last_request: Dict[str, float] = {}
        self._notices: Dict[str, AdvisoryNotice] = {}
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="advisory")

    def notice(self, kind: str) -> Optional[AdvisoryNotice]:
        with self._lock:
            return self._notices.get(kind)

    def remaining_cooldown(self, kind: str) -> float:
        with self._lock:
            return self._remaining(kind)

    def _remaining(self, kind: str) -> float:
        last = self._last_request.get(kind)
        if last is None:
            return 0.0
        return max(0.0, self.cooldowns.get(kind, 0.0) - (self._clock() - last))

    def submit(self, kind: str, prompt: str) -> Future:
        if self.service is None:
            raise SimulationStateError("no advisory service configured")
        with self._lock:
            remaining = self._remaining(kind)
            if remaining > 0:
                raise AdvisoryCooldownError(kind, remaining)
            now = self._clock()
            self._last_request[kind] = now
            self._notices[kind] = AdvisoryNotice(kind=kind, status="pending", requested_at=now)
        logger.info("Advisory %s requested", kind)
        return self._executor.submit(self._run, kind, prompt, now)

    def _run(self, kind: str, prompt: str, requested_at: float) -> AdvisoryNotice:
        try:
            text = self.service.complete(prompt)
            notice = AdvisoryNotice(
                kind=kind,
                status="ok",
                text=text.strip(),
                requested_at=requested_at,
                completed_at=self._clock(),
            )
        except Exception as e:
            logger.exception("Advisory %s failed", kind)
            notice = AdvisoryNotice(
                kind=kind,
                status="error",
                error=str(e),
                requested_at=requested_at,
                completed_at=self._clock(),
            )
        with self._lock:
            self._notices[kind] = notice
        return notice

    def request_analysis(self, state: SimulationState, params: SimulationParams, profile_name: str) -> Future:
        if not has_enough_data_for_analysis(state):
            raise SimulationStateError(
                f"run the simulation longer (at least {MIN_ORDERS_FOR_ANALYSIS} orders "
                f"or {MIN_MINUTES_FOR_ANALYSIS:.0f} sim minutes) for analysis"
            )
        return self.submit(ANALYSIS, analysis_prompt(state, params, profile_name))

    def request_event(self, state: SimulationState) -> Future:
        return self.submit(EVENT, event_prompt(state))

    def request_sweep_explanation(
        self,
        results: Sequence[OptimizationIterationResult],
        recommendation: str,
        targets: SweepTargets,
    ) -> Future:
        if not results:
            raise SimulationStateError("run a workforce sweep before asking for an explanation")
        return self.submit(SWEEP_EXPLANATION, sweep_prompt(results, recommendation, targets))

    def shutdown(self) -> None:
        self._executor.shutdown(wait=False)

"""
Simulation API router. Calls application only. No business logic.
"""

import math

from fastapi import APIRouter, Depends, HTTPException, Request

from qcommerce.sim.api.schemas import (
    AdvisoryNoticeSchema,
    AdvisoryRequest,
    AgentSchema,
    ComparisonRowSchema,
    ConfigureRequest,
    DarkStoreSchema,
    HeatmapCellSchema,
    OrderSchema,
    PlacedStoreSchema,
    PlacementRequest,
    PlacementSchema,
    ProfileSchema,
    ScenarioCompareRequest,
    ScenarioSaveRequest,
    SimulationStateSchema,
    SimulationStatsSchema,
    StatusSchema,
    StepReportSchema,
    SweepRequest,
    SweepResponse,
    SweepRowSchema,
    TickSampleSchema,
)
from qcommerce.sim.application import advisory as advisory_kinds
from qcommerce.sim.application.services import SimulationServices
from qcommerce.sim.application.use_cases.place_dark_stores import plan_dark_stores
from qcommerce.sim.application.use_cases.run_workforce_sweep import run_workforce_sweep
from qcommerce.sim.core.simulation_engine.stepper import count_pending
from qcommerce.sim.domain.constraints import SweepTargets
from qcommerce.sim.domain.errors import AdvisoryCooldownError, SimulationStateError
from qcommerce.sim.domain.models import DarkStore, SimulationParams, StepReport
from qcommerce.sim.infrastructure.export_rows import optimization_rows, order_rows
from qcommerce.sim.infrastructure.profile_loader import (
    profile_from_record,
    profile_to_record,
    profiles_to_records,
    scenario_to_record,
)

router = APIRouter()


def get_services(request: Request) -> SimulationServices:
    return request.app.state.services


def _to_http(e: Exception) -> HTTPException:
    if isinstance(e, KeyError):
        return HTTPException(status_code=404, detail=f"not found: {e.args[0] if e.args else ''}")
    if isinstance(e, (SimulationStateError, AdvisoryCooldownError)):
        return HTTPException(status_code=409, detail=str(e))
    if isinstance(e, ValueError):
        return HTTPException(status_code=400, detail=str(e))
    return HTTPException(status_code=500, detail=str(e))


def _state_schema(services: SimulationServices) -> SimulationStateSchema:
    controller = services.controller
    state = controller.state
    return SimulationStateSchema(
        status=state.status.value,
        clock_min=state.clock_min,
        tick_index=state.tick_index,
        traffic_factor=state.traffic_factor,
        stats=SimulationStatsSchema.model_validate(controller.stats()),
        agents=[AgentSchema.model_validate(a) for a in state.agents],
        pending_orders=count_pending(state),
        dark_stores=[DarkStoreSchema.model_validate(s) for s in state.dark_stores],
        history=[TickSampleSchema.model_validate(h) for h in state.history],
        heatmap=[HeatmapCellSchema.model_validate(c) for c in state.heatmap.values()],
        heatmap_max=state.heatmap_max,
    )


def _report_schema(report: StepReport) -> StepReportSchema:
    return StepReportSchema(
        clock_min=report.clock_min,
        new_order_ids=[o.order_id for o in report.new_orders],
        assigned_order_ids=report.assigned_order_ids,
        delivered_order_ids=[o.order_id for o in report.delivered_orders],
        distance_km=report.distance_km,
        traffic_refreshed=report.traffic_refreshed,
        stalled_agent_ids=report.stalled_agent_ids,
    )


# --- simulation ---


@router.get("/state", response_model=SimulationStateSchema)
def get_state(services: SimulationServices = Depends(get_services)):
    try:
        with services.controller.lock:
            return _state_schema(services)
    except Exception as e:
        raise _to_http(e)


@router.get("/orders", response_model=list[OrderSchema])
def get_orders(status: str | None = None, services: SimulationServices = Depends(get_services)):
    with services.controller.lock:
        orders = services.controller.state.orders
        if status:
            orders = [o for o in orders if o.status.value == status]
        return [OrderSchema.model_validate(o) for o in orders]


@router.post("/configure", response_model=StatusSchema)
def post_configure(request: ConfigureRequest, services: SimulationServices = Depends(get_services)):
    """
    POST /sim/configure
    Replaces parameters (and optionally stores) and re-initializes. 409 while running.
    """
    try:
        params = SimulationParams(**request.params.model_dump())
        stores = None
        if request.use_placed_stores:
            if services.placement is None:
                raise ValueError("no placement result; run /placement first")
            stores = services.placement.dark_stores
        elif request.dark_stores is not None:
            stores = [DarkStore(name=s.name, lat=s.lat, lng=s.lng) for s in request.dark_stores]
        services.controller.configure(params=params, dark_stores=stores, seed=request.seed)
        return StatusSchema(status=services.controller.status.value)
    except Exception as e:
        raise _to_http(e)


@router.post("/start", response_model=StatusSchema)
def post_start(services: SimulationServices = Depends(get_services)):
    try:
        status = services.controller.start()
        return StatusSchema(status=status.value)
    except Exception as e:
        raise _to_http(e)


@router.post("/pause", response_model=StatusSchema)
def post_pause(services: SimulationServices = Depends(get_services)):
    try:
        status = services.controller.pause()
        return StatusSchema(status=status.value)
    except Exception as e:
        raise _to_http(e)


@router.post("/reset", response_model=StatusSchema)
def post_reset(services: SimulationServices = Depends(get_services)):
    try:
        status = services.controller.reset()
        return StatusSchema(status=status.value)
    except Exception as e:
        raise _to_http(e)


@router.post("/tick", response_model=StepReportSchema)
def post_tick(services: SimulationServices = Depends(get_services)):
    """Manual single step, independent of the wall-clock driver."""
    try:
        return _report_schema(services.controller.step())
    except Exception as e:
        raise _to_http(e)


@router.post("/orders/{order_id}/cancel", response_model=OrderSchema)
def post_cancel_order(order_id: str, services: SimulationServices = Depends(get_services)):
    try:
        return OrderSchema.model_validate(services.controller.cancel_order(order_id))
    except Exception as e:
        raise _to_http(e)


@router.get("/export/orders")
def get_export_orders(services: SimulationServices = Depends(get_services)) -> list[dict]:
    with services.controller.lock:
        return order_rows(services.controller.state.orders)


# --- profiles ---


@router.get("/profiles", response_model=list[ProfileSchema])
def get_profiles(services: SimulationServices = Depends(get_services)):
    return [
        ProfileSchema(**profile_to_record(p), builtin=p.is_builtin)
        for p in services.controller.profiles()
    ]


@router.get("/export/profiles")
def get_export_profiles(services: SimulationServices = Depends(get_services)) -> list[dict]:
    """Custom profiles as storable records."""
    return profiles_to_records(services.controller.profiles())


@router.post("/profiles", response_model=ProfileSchema)
def post_profile(request: ProfileSchema, services: SimulationServices = Depends(get_services)):
    try:
        raw = request.model_dump(exclude={"builtin"})
        profile = services.controller.save_profile(profile_from_record(raw))
        return ProfileSchema(**profile_to_record(profile))
    except Exception as e:
        raise _to_http(e)


@router.delete("/profiles/{profile_id}", response_model=StatusSchema)
def delete_profile(profile_id: str, services: SimulationServices = Depends(get_services)):
    try:
        services.controller.delete_profile(profile_id)
        return StatusSchema(status="deleted")
    except Exception as e:
        raise _to_http(e)


# --- scenarios ---


@router.post("/scenarios")
def post_scenario(request: ScenarioSaveRequest, services: SimulationServices = Depends(get_services)) -> dict:
    try:
        controller = services.controller
        scenario = services.scenarios.save(request.name, controller.params, controller.stats())
        return scenario_to_record(scenario)
    except Exception as e:
        raise _to_http(e)


@router.get("/scenarios")
def get_scenarios(services: SimulationServices = Depends(get_services)) -> list[dict]:
    return [scenario_to_record(s) for s in services.scenarios.list()]


@router.delete("/scenarios/{scenario_id}", response_model=StatusSchema)
def delete_scenario(scenario_id: str, services: SimulationServices = Depends(get_services)):
    try:
        services.scenarios.delete(scenario_id)
        return StatusSchema(status="deleted")
    except Exception as e:
        raise _to_http(e)


@router.post("/scenarios/compare", response_model=list[ComparisonRowSchema])
def post_compare(request: ScenarioCompareRequest, services: SimulationServices = Depends(get_services)):
    try:
        return [ComparisonRowSchema(**row) for row in services.scenarios.compare(request.scenario_ids)]
    except Exception as e:
        raise _to_http(e)


# --- placement and sweep ---


@router.post("/placement", response_model=PlacementSchema)
def post_placement(request: PlacementRequest, services: SimulationServices = Depends(get_services)):
    """
    POST /sim/placement
    Synthetic CCR demand + KMeans. The result is kept for /configure and /sweep.
    """
    try:
        result = plan_dark_stores(
            request.num_stores,
            num_background=request.num_background,
            num_hotspot=request.num_hotspot,
            seed=request.seed,
        )
        services.placement = result
        stores = [
            PlacedStoreSchema(
                name=s.name,
                lat=s.lat,
                lng=s.lng,
                assigned_orders=s.assigned_orders,
                avg_distance_km=result.avg_distance_by_store[i],
                std_distance_km=result.std_distance_by_store[i],
            )
            for i, s in enumerate(result.dark_stores)
        ]
        return PlacementSchema(
            dark_stores=stores,
            total_points=len(result.demand_points),
            overall_avg_distance_km=result.overall_avg_distance_km,
        )
    except Exception as e:
        raise _to_http(e)


@router.post("/sweep", response_model=SweepResponse)
def post_sweep(request: SweepRequest, services: SimulationServices = Depends(get_services)):
    try:
        profile = services.controller.get_profile(request.profile_id)
        outcome = run_workforce_sweep(
            services.sweep_stores(),
            request.store_index,
            profile,
            request.min_agents,
            request.max_agents,
            request.runs_per_count,
            horizon_min=request.horizon_min,
            targets=SweepTargets(target_avg_delivery_time=request.target_avg_delivery_time),
            seed=request.seed,
        )
        services.last_sweep = outcome
        rows = []
        for r in outcome.results:
            row = SweepRowSchema.model_validate(r)
            if not math.isfinite(r.avg_cost_per_order):
                row.avg_cost_per_order = None
            rows.append(row)
        best = outcome.recommendation.best
        return SweepResponse(
            store=DarkStoreSchema.model_validate(outcome.store),
            profile_id=outcome.profile_id,
            results=rows,
            recommended_agents=best.num_agents if best else None,
            recommendation=outcome.recommendation.text,
            candidates_rule=outcome.recommendation.candidates_rule,
        )
    except Exception as e:
        raise _to_http(e)


@router.get("/export/sweep")
def get_export_sweep(services: SimulationServices = Depends(get_services)) -> list[dict]:
    if services.last_sweep is None:
        return []
    return optimization_rows(services.last_sweep.results)


# --- advisory ---


@router.post("/advisory", response_model=AdvisoryNoticeSchema)
def post_advisory(request: AdvisoryRequest, services: SimulationServices = Depends(get_services)):
    """
    POST /sim/advisory
    Queues a request and returns the pending notice. Poll GET /sim/advisory/{kind}.
    """
    try:
        desk = services.advisory
        controller = services.controller
        if request.kind == advisory_kinds.ANALYSIS:
            profile = controller.get_profile(controller.params.profile_id)
            with controller.lock:
                desk.request_analysis(controller.state, controller.params, profile.name)
        elif request.kind == advisory_kinds.EVENT:
            with controller.lock:
                desk.request_event(controller.state)
        elif request.kind == advisory_kinds.SWEEP_EXPLANATION:
            sweep = services.last_sweep
            desk.request_sweep_explanation(
                sweep.results if sweep else [],
                sweep.recommendation.text if sweep else "",
                sweep.targets if sweep else SweepTargets(),
            )
        else:
            raise ValueError(f"unknown advisory kind '{request.kind}'")
        return AdvisoryNoticeSchema.model_validate(desk.notice(request.kind))
    except Exception as e:
        raise _to_http(e)


@router.get("/advisory/{kind}", response_model=AdvisoryNoticeSchema)
def get_advisory(kind: str, services: SimulationServices = Depends(get_services)):
    notice = services.advisory.notice(kind)
    if notice is None:
        raise HTTPException(status_code=404, detail=f"no {kind} notice yet")
    return AdvisoryNoticeSchema.model_validate(notice)

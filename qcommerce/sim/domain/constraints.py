"""
Simulation policies. Dataclasses only. No FastAPI, no external deps beyond dataclasses/typing.
"""

from dataclasses import dataclass

from qcommerce.sim.domain.models import Fidelity


@dataclass(frozen=True)
class FatiguePolicy:
    floor: float = 0.5
    ceiling: float = 1.0
    deliveries_threshold: int = 5
    active_minutes_threshold: float = 180.0
    recovery_idle_minutes: float = 30.0
    decrement: float = 0.15
    recovery_increment: float = 0.25


@dataclass(frozen=True)
class DispatchPolicy:
    handling_time_min: float = 5.0
    waypoints_per_segment: int = 2
    # Agents slower than this are skipped when ranking ETAs.
    min_assign_speed_kmph: float = 0.1
    # Below this effective speed an agent does not move during the tick.
    min_move_speed_kmph: float = 0.01
    # Legs shorter than this are treated as already travelled.
    min_leg_km: float = 0.001


@dataclass(frozen=True)
class TrafficPolicy:
    update_interval_ticks: int = 12
    min_factor: float = 0.6
    max_factor: float = 1.4


@dataclass(frozen=True)
class SweepTargets:
    target_avg_delivery_time: float = 25.0
    min_completion_rate: float = 0.90
    min_sla_fraction: float = 0.85
    relaxed_completion_factor: float = 0.8
    ideal_util_min_percent: float = 65.0
    ideal_util_max_percent: float = 85.0
    agent_cost_per_hour: float = 150.0  # INR
    cost_per_km: float = 5.0  # INR

    @property
    def ideal_util_mid_percent(self) -> float:
        return (self.ideal_util_min_percent + self.ideal_util_max_percent) / 2.0


@dataclass(frozen=True)
class EngineConfig:
    """
    Everything run_step needs besides state and rng. The sweep and the interactive
    simulation are two configurations of the same stepper.
    """
    step_minutes: float = 5.0
    agent_speed_kmph: float = 25.0
    base_traffic_factor: float = 1.0
    enable_dynamic_traffic: bool = False
    enable_heatmap: bool = False
    day_start_hour: float = 0.0
    fidelity: Fidelity = Fidelity.FULL
    # REDUCED only: orders are placed within this radius of the single store.
    reduced_demand_radius_km: float = 5.0
    fatigue: FatiguePolicy = FatiguePolicy()
    dispatch: DispatchPolicy = DispatchPolicy()
    traffic: TrafficPolicy = TrafficPolicy()

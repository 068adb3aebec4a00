"""
Simulation controller. Owns the live state, the run status machine
(stopped -> running <-> paused, reset to stopped) and the demand profile catalog.
All mutations go through one lock so a TickDriver thread and API calls never interleave.
"""

import logging
import threading
from typing import Dict, List, Optional, Sequence

import numpy as np

from qcommerce.sim.application.config import (
    AGENT_START_JITTER_DEG,
    BUILTIN_PROFILES,
    CCR_REGION,
    DEFAULT_DARK_STORE_LAT,
    DEFAULT_DARK_STORE_LNG,
    MINUTES_PER_SIMULATION_STEP,
    SECTOR_COORDS,
)
from qcommerce.sim.core.simulation_engine.movement import release_agent
from qcommerce.sim.core.simulation_engine.stepper import compute_stats, create_initial_state, run_step
from qcommerce.sim.domain.constraints import EngineConfig
from qcommerce.sim.domain.errors import ConfigurationError, SimulationStateError
from qcommerce.sim.domain.models import (
    DarkStore,
    DemandProfile,
    Order,
    OrderStatus,
    RunStatus,
    ServiceRegion,
    SimulationParams,
    SimulationState,
    SimulationStats,
    StepReport,
)
from qcommerce.sim.domain.validation import validate_params, validate_profile

logger = logging.getLogger(__name__)


def default_dark_stores() -> List[DarkStore]:
    return [DarkStore(name="Central Store", lat=DEFAULT_DARK_STORE_LAT, lng=DEFAULT_DARK_STORE_LNG)]


class SimulationController:
    def __init__(
        self,
        region: ServiceRegion = CCR_REGION,
        sector_coords: Optional[Dict] = None,
        dark_stores: Optional[Sequence[DarkStore]] = None,
        params: Optional[SimulationParams] = None,
        seed: Optional[int] = None,
        step_minutes: float = MINUTES_PER_SIMULATION_STEP,
    ):
        self._lock = threading.RLock()
        self.region = region
        self.sector_coords = dict(SECTOR_COORDS if sector_coords is None else sector_coords)
        self.step_minutes = step_minutes
        self._custom_profiles: Dict[str, DemandProfile] = {}
        self._seed = seed
        self._params = params or SimulationParams()
        self._dark_stores = list(dark_stores) if dark_stores else default_dark_stores()
        self._validate(self._params, self._dark_stores)
        self._initialize()

    @property
    def lock(self) -> threading.RLock:
        """Hold while reading state that must not change mid-tick."""
        return self._lock

    # --- profiles ---

    def profiles(self) -> List[DemandProfile]:
        with self._lock:
            return [*BUILTIN_PROFILES.values(), *self._custom_profiles.values()]

    def get_profile(self, profile_id: str) -> DemandProfile:
        with self._lock:
            profile = BUILTIN_PROFILES.get(profile_id) or self._custom_profiles.get(profile_id)
        if profile is None:
            raise ConfigurationError(f"unknown demand profile '{profile_id}'")
        return profile

    def save_profile(self, profile: DemandProfile) -> DemandProfile:
        if profile.profile_id in BUILTIN_PROFILES:
            raise ConfigurationError(f"'{profile.profile_id}' is a built-in profile")
        validate_profile(profile, self.sector_coords)
        with self._lock:
            if profile.profile_id == self._params.profile_id and self.state.status == RunStatus.RUNNING:
                raise SimulationStateError(
                    f"profile '{profile.profile_id}' is in use by the running simulation; pause first"
                )
            self._custom_profiles[profile.profile_id] = profile
        logger.info("Saved demand profile %s (%d zones)", profile.profile_id, len(profile.zones))
        return profile

    def delete_profile(self, profile_id: str) -> None:
        with self._lock:
            if profile_id in BUILTIN_PROFILES:
                raise ConfigurationError(f"'{profile_id}' is a built-in profile")
            if profile_id == self._params.profile_id and self.state.status == RunStatus.RUNNING:
                raise SimulationStateError(f"profile '{profile_id}' is in use by the running simulation")
            if profile_id not in self._custom_profiles:
                raise KeyError(profile_id)
            del self._custom_profiles[profile_id]

    # --- configuration ---

    @property
    def params(self) -> SimulationParams:
        return self._params

    @property
    def dark_stores(self) -> List[DarkStore]:
        return list(self._dark_stores)

    def _validate(self, params: SimulationParams, dark_stores: Sequence[DarkStore]) -> None:
        validate_params(params, dark_stores)
        validate_profile(self.get_profile(params.profile_id), self.sector_coords)

    def _engine_config(self) -> EngineConfig:
        p = self._params
        return EngineConfig(
            step_minutes=self.step_minutes,
            agent_speed_kmph=p.agent_speed_kmph,
            base_traffic_factor=p.base_traffic_factor,
            enable_dynamic_traffic=p.enable_dynamic_traffic,
            enable_heatmap=p.enable_heatmap,
            day_start_hour=p.day_start_hour,
        )

    def _initialize(self) -> None:
        self._rng = np.random.default_rng(self._seed)
        self._config = self._engine_config()
        self.state: SimulationState = create_initial_state(
            self._params.num_agents,
            self._dark_stores,
            self._rng,
            jitter_deg=AGENT_START_JITTER_DEG,
            traffic_factor=self._params.base_traffic_factor,
        )

    def configure(
        self,
        params: Optional[SimulationParams] = None,
        dark_stores: Optional[Sequence[DarkStore]] = None,
        seed: Optional[int] = None,
    ) -> None:
        """Replace parameters and/or stores and re-initialize. Not allowed while running."""
        with self._lock:
            if self.state.status == RunStatus.RUNNING:
                raise SimulationStateError("pause or reset the simulation before changing its configuration")
            new_params = params or self._params
            new_stores = list(dark_stores) if dark_stores is not None else self._dark_stores
            self._validate(new_params, new_stores)
            self._params = new_params
            self._dark_stores = new_stores
            if seed is not None:
                self._seed = seed
            self._initialize()
        logger.info(
            "Configured: %d agents, %d stores, profile %s",
            new_params.num_agents,
            len(new_stores),
            new_params.profile_id,
        )

    # --- run status ---

    @property
    def status(self) -> RunStatus:
        return self.state.status

    def start(self) -> RunStatus:
        with self._lock:
            if self.state.status != RunStatus.RUNNING:
                # Profile may have been edited since configure.
                validate_profile(self.get_profile(self._params.profile_id), self.sector_coords)
                self.state.status = RunStatus.RUNNING
                logger.info("Simulation running at t=%.0f", self.state.clock_min)
            return self.state.status

    def pause(self) -> RunStatus:
        with self._lock:
            if self.state.status != RunStatus.RUNNING:
                raise SimulationStateError(f"cannot pause a {self.state.status.value} simulation")
            self.state.status = RunStatus.PAUSED
            logger.info("Simulation paused at t=%.0f", self.state.clock_min)
            return self.state.status

    def reset(self) -> RunStatus:
        with self._lock:
            self._initialize()
            logger.info("Simulation reset")
            return self.state.status

    # --- stepping ---

    def step(self) -> StepReport:
        """Advance one step regardless of run status."""
        with self._lock:
            profile = self.get_profile(self._params.profile_id)
            return run_step(self.state, profile, self.region, self._rng, self._config, self.sector_coords)

    def tick(self) -> Optional[StepReport]:
        """Advance one step if running; None otherwise. Called by TickDriver."""
        with self._lock:
            if self.state.status != RunStatus.RUNNING:
                return None
            return self.step()

    def cancel_order(self, order_id: str) -> Order:
        with self._lock:
            order = self.state.order_by_id(order_id)
            if order is None:
                raise KeyError(order_id)
            if order.status == OrderStatus.DELIVERED:
                raise SimulationStateError(f"order {order_id} is already delivered")
            if order.status == OrderStatus.CANCELLED:
                return order
            order.status = OrderStatus.CANCELLED
            if order.assigned_agent_id:
                agent = self.state.agent_by_id(order.assigned_agent_id)
                if agent is not None and agent.current_order == order_id:
                    release_agent(agent, self.state.clock_min)
            logger.info("Order %s cancelled", order_id)
            return order

    def stats(self) -> SimulationStats:
        with self._lock:
            return compute_stats(self.state)

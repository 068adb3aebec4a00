"""
Service container for one simulation host (API process or CLI). Explicit object, no globals.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from qcommerce.sim.application.advisory import AdvisoryDesk
from qcommerce.sim.application.config import ADVISORY_API_KEY, ADVISORY_MODEL
from qcommerce.sim.application.simulation_controller import SimulationController
from qcommerce.sim.application.tick_driver import TickDriver
from qcommerce.sim.application.use_cases.run_workforce_sweep import WorkforceSweepOutcome
from qcommerce.sim.domain.models import DarkStore, PlacementResult
from qcommerce.sim.infrastructure.advisory_client import GeminiTextClient
from qcommerce.sim.infrastructure.scenario_store import ScenarioStore

logger = logging.getLogger(__name__)


@dataclass
class SimulationServices:
    controller: SimulationController
    scenarios: ScenarioStore
    advisory: AdvisoryDesk
    placement: Optional[PlacementResult] = None
    last_sweep: Optional[WorkforceSweepOutcome] = None
    driver: Optional[TickDriver] = field(default=None, repr=False)

    def sweep_stores(self) -> List[DarkStore]:
        """Placed stores when available, otherwise the simulation's own stores."""
        if self.placement is not None:
            return self.placement.dark_stores
        return self.controller.dark_stores

    def start_driver(self) -> TickDriver:
        if self.driver is None or not self.driver.is_alive():
            self.driver = TickDriver(self.controller)
            self.driver.start()
        return self.driver

    def shutdown(self) -> None:
        if self.driver is not None:
            self.driver.stop()
        self.advisory.shutdown()


def build_services(api_key: str = ADVISORY_API_KEY, seed: Optional[int] = None) -> SimulationServices:
    service = GeminiTextClient(api_key, model=ADVISORY_MODEL) if api_key else None
    if service is None:
        logger.info("No advisory API key set; advisory requests are disabled")
    return SimulationServices(
        controller=SimulationController(seed=seed),
        scenarios=ScenarioStore(),
        advisory=AdvisoryDesk(service),
    )

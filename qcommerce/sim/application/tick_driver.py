"""
Wall-clock driver: one controller.tick() per interval on a daemon thread.
"""

import logging
import threading
from typing import Optional

from qcommerce.sim.application.config import SIMULATION_STEP_INTERVAL_MS
from qcommerce.sim.application.simulation_controller import SimulationController

logger = logging.getLogger(__name__)


class TickDriver(threading.Thread):
    def __init__(self, controller: SimulationController, interval_ms: int = SIMULATION_STEP_INTERVAL_MS):
        super().__init__(daemon=True, name="tick-driver")
        self._controller = controller
        self._interval_s = interval_ms / 1000.0
        self._stop_event = threading.Event()
        self.ticks = 0

    def run(self) -> None:
        logger.info("Tick driver started (%.0f ms)", self._interval_s * 1000)
        while not self._stop_event.wait(self._interval_s):
            try:
                if self._controller.tick() is not None:
                    self.ticks += 1
            except Exception:
                logger.exception("Tick failed, pausing simulation")
                try:
                    self._controller.pause()
                except Exception:
                    logger.exception("Could not pause after failed tick")
        logger.info("Tick driver stopped after %d ticks", self.ticks)

    def stop(self, timeout: Optional[float] = 5.0) -> None:
        self._stop_event.set()
        if self.is_alive():
            self.join(timeout=timeout)

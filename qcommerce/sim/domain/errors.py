"""
Simulation error types.
"""


class ConfigurationError(ValueError):
    """Invalid run/profile/sweep configuration. The simulation refuses to start."""


class SimulationStateError(RuntimeError):
    """Operation not allowed in the current run status (e.g. reconfigure while running)."""


class AdvisoryError(RuntimeError):
    """The advisory text service failed or returned nothing usable."""


class AdvisoryCooldownError(RuntimeError):
    def __init__(self, kind: str, remaining_s: float):
        self.kind = kind
        self.remaining_s = remaining_s
        super().__init__(f"{kind} advisory on cooldown, retry in {int(remaining_s + 0.999)}s")

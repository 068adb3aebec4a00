"""
Default configuration for the CCR (Chandigarh Capital Region) simulation.
One place for region data and tunables so API, runners and engines share values.
"""

import os

from qcommerce.sim.domain.constraints import SweepTargets
from qcommerce.sim.domain.models import DemandProfile, Sector, ServiceRegion

# Simplified CCR bounding polygon, (lat, lng), closed ring.
CCR_RING = (
    (30.8500, 76.6500),
    (30.8500, 76.9000),
    (30.6000, 76.9000),
    (30.6000, 76.6500),
    (30.8500, 76.6500),
)

# Central Chandigarh
DEFAULT_DARK_STORE_LAT = 30.7333
DEFAULT_DARK_STORE_LNG = 76.7794

CCR_REGION = ServiceRegion(
    ring=CCR_RING,
    fallback_point=(DEFAULT_DARK_STORE_LAT, DEFAULT_DARK_STORE_LNG),
)

CCR_SECTORS = (
    Sector("Sector 1", (30.7497, 76.7939)),
    Sector("Sector 7", (30.7452, 76.7852)),
    Sector("Sector 8", (30.742, 76.7805)),
    Sector("Sector 9", (30.7387, 76.7758)),
    Sector("Sector 10", (30.7355, 76.7711)),
    Sector("Sector 11", (30.7322, 76.7664)),
    Sector("Sector 17 (City Center)", (30.74, 76.778)),
    Sector("Sector 22 (ISBT)", (30.735, 76.77)),
    Sector("Sector 26 (Grain Mkt)", (30.737, 76.8)),
    Sector("Sector 32 (GMCH)", (30.715, 76.775)),
    Sector("Sector 34 (Comp. Mkt)", (30.729, 76.781)),
    Sector("Sector 35", (30.736, 76.784)),
    Sector("Sector 43 (ISBT)", (30.725, 76.76)),
    Sector("Industrial Area Ph 1", (30.715, 76.815)),
    Sector("Manimajra", (30.73, 76.83)),
    Sector("Mohali Phase 3B2", (30.708, 76.720)),
    Sector("Mohali Phase 7", (30.705, 76.715)),
    Sector("Mohali Sector 70", (30.702, 76.730)),
    Sector("Mohali IT Park (Sec 66/82)", (30.685, 76.735)),
    Sector("Panchkula Sector 5", (30.692, 76.855)),
    Sector("Panchkula Sector 11", (30.705, 76.850)),
    Sector("Panchkula Ind. Area Ph 1", (30.715, 76.860)),
    Sector("Zirakpur VIP Road", (30.647, 76.825)),
    Sector("Zirakpur Patiala Chowk", (30.630, 76.815)),
    Sector("New Chandigarh/Mullanpur", (30.790, 76.700)),
)
SECTOR_COORDS = {s.name: s.coords for s in CCR_SECTORS}

HOTSPOT_CENTERS = (
    (30.7400, 76.7780),  # Sector 17, Chd
    (30.705, 76.715),  # Mohali Phase 7
    (30.692, 76.855),  # Panchkula Sector 5
    (30.647, 76.825),  # Zirakpur VIP Road
    (30.715, 76.815),  # Chd Ind. Area
)
HOTSPOT_PLACEMENT_RADIUS_KM = 2.5

# Clock
MINUTES_PER_SIMULATION_STEP = 5.0
SIMULATION_STEP_INTERVAL_MS = int(os.environ.get("QCOM_TICK_INTERVAL_MS", "800"))

# Agents start scattered this many degrees (+/- half) around the primary store.
AGENT_START_JITTER_DEG = 0.002

# Built-in profiles. 1.8 orders/h = 0.15 per 5-minute step.
BUILTIN_PROFILES = {
    p.profile_id: p
    for p in (
        DemandProfile("default_uniform_ccr", "Default Uniform (CCR)", base_orders_per_hour=1.8),
        DemandProfile(
            "default_focused_ccr",
            "Default Focused (Central CCR)",
            base_orders_per_hour=1.8,
            focus_radius_km=5.0,
        ),
        DemandProfile("default_opt_uniform_ccr", "Optimization Uniform (CCR)", base_orders_per_hour=15.0),
        DemandProfile("default_opt_peak_ccr", "Optimization Peak (CCR)", base_orders_per_hour=36.0),
    )
}

# Workforce sweep
SWEEP_AGENT_SPEED_KMPH = 20.0
SWEEP_DEMAND_RADIUS_KM = 5.0
SWEEP_HORIZON_MIN = 120.0
DEFAULT_SWEEP_TARGETS = SweepTargets()

# Advisory service
AI_ANALYSIS_COOLDOWN_S = 60.0
AI_EVENT_COOLDOWN_S = 90.0
AI_EXPLAIN_COOLDOWN_S = 60.0
ADVISORY_API_KEY = os.environ.get("QCOM_ADVISORY_API_KEY", "")
ADVISORY_MODEL = os.environ.get("QCOM_ADVISORY_MODEL", "gemini-1.5-flash-latest")

LOG_LEVEL = os.environ.get("QCOM_LOG_LEVEL", "INFO")

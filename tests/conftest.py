import numpy as np
import pytest

from qcommerce.sim.application.config import CCR_REGION, DEFAULT_DARK_STORE_LAT, DEFAULT_DARK_STORE_LNG
from qcommerce.sim.domain.models import (
    DarkStore,
    DemandProfile,
    DemandZone,
    ZoneType,
)


@pytest.fixture
def rng():
    return np.random.default_rng(1234)


@pytest.fixture
def region():
    return CCR_REGION


@pytest.fixture
def store():
    return DarkStore(name="Central Store", lat=DEFAULT_DARK_STORE_LAT, lng=DEFAULT_DARK_STORE_LNG)


@pytest.fixture
def busy_uniform_profile():
    """All-day uniform demand, 20-40 orders/h: at least 1 order per 5-minute step."""
    return DemandProfile(
        profile_id="all_day_uniform",
        name="All day uniform",
        zones=(
            DemandZone(
                zone_id="z1",
                zone_type=ZoneType.UNIFORM,
                min_orders=20,
                max_orders=40,
                start_hour=0,
                end_hour=24,
            ),
        ),
    )


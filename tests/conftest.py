import pandas as pd
import pytest

from meterratelogic import catalog as mcat
from meterratelogic.types import DayFilter, RuleSet, TimeWindow

TZ = "Europe/London"


@pytest.fixture
def demo():
    return mcat.demo_catalog()


@pytest.fixture
def tou_tariff(demo):
    return demo.tariff("tou_elec_v1")


@pytest.fixture
def uk_profile(demo):
    return demo.carbon_profile("uk_grid_profile_v1")


@pytest.fixture
def halfhour_rng():
    # Tue 2025-09-16 00:00Z, one day at 30-min cadence
    return pd.date_range("2025-09-16", periods=48, freq="30min", tz="UTC", name="ts")


@pytest.fixture
def reading_df(halfhour_rng):
    return pd.DataFrame(
        {"meter_id": "m_e_001", "value": 1.0, "unit": "kWh"}, index=halfhour_rng
    )


@pytest.fixture
def gappy_rule_set():
    # Covers 00:00-12:00 only; the last window is the fallback
    return RuleSet(
        id="gappy",
        name="Gappy",
        windows=(
            TimeWindow(0, 360, 1.0, DayFilter.ALL, "early"),
            TimeWindow(360, 720, 2.0, DayFilter.WEEKDAYS, "late"),
        ),
    )

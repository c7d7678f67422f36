from __future__ import annotations
from typing import Final, Dict

INDEX_NAME: Final[str] = "ts"
REQUIRED_COLS: Final[list[str]] = ["meter_id", "value", "unit"]
DERIVED_COLS: Final[list[str]] = [
    "meter_id",
    "value",
    "unit_rate",
    "cost_amount",
    "carbon_intensity",
    "carbon_grams",
]
DEFAULT_TZ: Final[str] = "Europe/London"
DEFAULT_TARIFF_ID: Final[str] = "tou_elec_v1"
DEFAULT_CARBON_PROFILE_ID: Final[str] = "uk_grid_profile_v1"
DEFAULT_UNIT: Final[str] = "kWh"
COMMON_TIMESTAMP_NAMES = ("ts", "t_start", "timestamp", "time", "datetime", "date")
COMMON_VALUE_NAMES = ("value", "kwh", "energy", "consumption")
COMMON_METER_NAMES = ("meter_id", "meterid", "meter", "nmi")

MINUTES_PER_DAY: Final[int] = 1440
HH_STEP_MIN: Final[int] = 30
DAILY_STEP_MIN: Final[int] = 1440
HIGH_FREQUENCY_UTILITIES: Final[frozenset[str]] = frozenset({"electricity"})

# Request interval → bucket width in minutes
INTERVAL_MINUTES: Dict[str, int] = {
    "30m": 30,
    "1h": 60,
    "1d": 1440,
}

# Request metric → derived column
METRIC_COLUMNS: Dict[str, str] = {
    "value": "value",
    "cost": "cost_amount",
    "carbon": "carbon_grams",
}

DEFAULT_PAGE_SIZE: Final[int] = 500
MAX_PAGE_SIZE: Final[int] = 1000
NO_GROUP_KEY: Final[str] = "all"

from __future__ import annotations
import numpy as np
import pandas as pd
from typing import Tuple

from . import utils, windows
from .types import RuleSet, Tariff, CarbonProfile
from .utils import InstantLike


def resolve(instant: InstantLike, tz: str, rule_set: RuleSet) -> Tuple[float, str]:
    """(value, label) of the window that applies to `instant` in local time `tz`."""
    local = utils.resolve_local(instant, tz)
    return windows.match(local.minute_of_day, local.weekday, rule_set.windows)


def rate_for(instant: InstantLike, tz: str, rule_set: RuleSet) -> float:
    return resolve(instant, tz, rule_set)[0]


def unit_rate_for(instant: InstantLike, tz: str, tariff: Tariff) -> float:
    """Unit rate (£/kWh) for a timestamp under a tariff."""
    return rate_for(instant, tz, tariff)


def carbon_for(instant: InstantLike, tz: str, profile: CarbonProfile) -> float:
    """Carbon intensity (gCO2e/kWh) for a timestamp under a profile."""
    return rate_for(instant, tz, profile)


def rates_for_index(
    idx: pd.DatetimeIndex, tz: str, rule_set: RuleSet
) -> Tuple[np.ndarray, np.ndarray]:
    """Vectorised rate_for: (values, labels) aligned with idx."""
    minutes, weekday = utils.local_fields(idx, tz)
    return windows.match_array(minutes, weekday, rule_set.windows)

from __future__ import annotations
from typing import Literal, List, Optional, Tuple
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

import pandas as pd

Utility = Literal["electricity", "gas", "water", "submeter"]
MeterStatus = Literal["online", "offline", "commissioning"]
Interval = Literal["30m", "1h", "1d"]
AggregateFn = Literal["sum", "avg", "min", "max"]
GroupBy = Literal["none", "meter", "site", "utility"]
Metric = Literal["value", "cost", "carbon"]
RuleKind = Literal["tariff", "carbon"]


# Reading DataFrame
class ReadingFrame(pd.DataFrame):
    """
    Strongly-typed reading dataframe.

    Expected:
      - DatetimeIndex named 'ts', tz-aware UTC
      - Columns: ['meter_id', 'value', 'unit']
      - After derivation also: ['unit_rate', 'cost_amount',
        'carbon_intensity', 'carbon_grams']
    """

    @property
    def _constructor(self):
        return ReadingFrame

    @property
    def meter_id(self) -> pd.Series:
        return self["meter_id"]

    @property
    def value(self) -> pd.Series:
        return self["value"]


@dataclass(frozen=True)
class LocalTime:
    """Wall-clock fields of an instant in a given zone. weekday: 0 = Sunday."""

    year: int
    month: int
    day: int
    hour: int
    minute: int
    weekday: int

    @property
    def minute_of_day(self) -> int:
        return self.hour * 60 + self.minute


class DayFilter(Enum):
    ALL = "all"
    WEEKDAYS = "weekdays"
    WEEKENDS = "weekends"

    def matches(self, weekday: int) -> bool:
        """weekday uses 0 = Sunday .. 6 = Saturday."""
        if self is DayFilter.ALL:
            return True
        is_weekend = weekday in (0, 6)
        return is_weekend if self is DayFilter.WEEKENDS else not is_weekend


## Rule sets
@dataclass(frozen=True)
class TimeWindow:
    start_min: int  # [0, 1440)
    end_min: int  # [0, 1440]; < start_min wraps past midnight
    value: float  # unit rate or carbon intensity
    day_filter: DayFilter = DayFilter.ALL
    label: str = ""

    @property
    def wraps(self) -> bool:
        return self.start_min > self.end_min

    def contains(self, minute_of_day: int) -> bool:
        if self.start_min <= self.end_min:
            return self.start_min <= minute_of_day < self.end_min
        return minute_of_day >= self.start_min or minute_of_day < self.end_min


@dataclass(frozen=True)
class RuleSet:
    id: str
    name: str
    windows: Tuple[TimeWindow, ...]
    daily_charge: Optional[float] = None
    kind: RuleKind = "tariff"


@dataclass(frozen=True)
class Tariff(RuleSet):
    """Pricing rule set; window values are £/kWh, daily_charge is £/day."""

    utility: Utility = "electricity"
    kind: RuleKind = "tariff"


@dataclass(frozen=True)
class CarbonProfile(RuleSet):
    """Carbon rule set; window values are g CO2e per kWh."""

    kind: RuleKind = "carbon"


## Catalog entities
@dataclass(frozen=True)
class Site:
    id: str
    name: str
    postcode: str = ""
    region: Optional[str] = None


@dataclass(frozen=True)
class Meter:
    id: str
    site_id: str
    utility: Utility
    serial: str = ""
    hh: bool = True
    status: MeterStatus = "online"
    mpan: Optional[str] = None
    mprn: Optional[str] = None


## Time series records
@dataclass(frozen=True)
class Reading:
    meter_id: str
    ts: datetime  # tz-aware UTC
    value: float
    unit: str = "kWh"


@dataclass(frozen=True)
class DerivedRecord:
    meter_id: str
    ts: datetime
    value: float
    unit_rate: float
    cost_amount: float
    carbon_intensity: float
    carbon_grams: float


@dataclass(frozen=True)
class AggregateBucket:
    bucket_start: datetime
    group_key: str
    aggregate: float
    sample_count: int


@dataclass
class AggregateResult:
    buckets: List[AggregateBucket]
    total_groups: int
    total_pages: int
    page: int
    page_size: int
    excluded_count: int = 0
    standing_charge_per_day: Optional[float] = None
    meta: dict = field(default_factory=dict)

from __future__ import annotations
from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from . import canon, utils
from .types import (
    AggregateFn,
    CarbonProfile,
    DayFilter,
    GroupBy,
    Interval,
    Meter,
    MeterStatus,
    Site,
    Tariff,
    TimeWindow,
    Utility,
)

DayType = Literal["all", "weekdays", "weekends"]


class _WindowBase(BaseModel):
    """A local time-of-day window as authored: 'HH:MM' bounds, end may be '24:00'."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    from_hhmm: str = Field(alias="fromHHmm")
    to_hhmm: str = Field(alias="toHHmm")
    days: DayType = "all"
    label: Optional[str] = None

    @field_validator("from_hhmm", "to_hhmm")
    @classmethod
    def _check_hhmm(cls, v: str) -> str:
        utils.parse_hhmm_minutes(v)
        return v

    @model_validator(mode="after")
    def _check_bounds(self):
        start = utils.parse_hhmm_minutes(self.from_hhmm)
        end = utils.parse_hhmm_minutes(self.to_hhmm)
        if start == canon.MINUTES_PER_DAY:
            raise ValueError("Window start cannot be '24:00'")
        if start == end:
            raise ValueError(
                f"Window '{self.label or self.from_hhmm}' start==end not allowed"
            )
        return self

    def _to_window(self, value: float) -> TimeWindow:
        return TimeWindow(
            start_min=utils.parse_hhmm_minutes(self.from_hhmm),
            end_min=utils.parse_hhmm_minutes(self.to_hhmm),
            value=float(value),
            day_filter=DayFilter(self.days),
            label=self.label or f"{self.from_hhmm}-{self.to_hhmm}",
        )


class TariffWindowModel(_WindowBase):
    unit_rate: float = Field(alias="unitRateGBPPerKWh", ge=0)

    def to_window(self) -> TimeWindow:
        return self._to_window(self.unit_rate)


class CarbonRuleModel(_WindowBase):
    g_co2_per_kwh: float = Field(alias="gCO2PerKWh", ge=0)

    def to_window(self) -> TimeWindow:
        return self._to_window(self.g_co2_per_kwh)


class TariffModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str
    name: str
    utility: Literal["electricity", "gas"] = "electricity"
    standing_charge: float = Field(default=0.0, alias="standingChargeGBPPerDay", ge=0)
    windows: list[TariffWindowModel] = Field(min_length=1)  # order matters

    def to_tariff(self) -> Tariff:
        return Tariff(
            id=self.id,
            name=self.name,
            windows=tuple(w.to_window() for w in self.windows),
            daily_charge=self.standing_charge,
            utility=self.utility,
        )


class CarbonProfileModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str
    name: str
    rules: list[CarbonRuleModel] = Field(min_length=1)

    def to_profile(self) -> CarbonProfile:
        return CarbonProfile(
            id=self.id,
            name=self.name,
            windows=tuple(r.to_window() for r in self.rules),
        )


class SiteModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str
    name: str
    postcode: str = ""
    region: Optional[str] = None

    def to_site(self) -> Site:
        return Site(id=self.id, name=self.name, postcode=self.postcode, region=self.region)


class MeterModel(BaseModel):
    """A meter as listed in fixture data; accepts 'siteId' or 'site_id'."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str
    site_id: str = Field(alias="siteId")
    utility: Utility
    serial: str = ""
    hh: bool = True
    status: MeterStatus = "online"
    mpan: Optional[str] = None
    mprn: Optional[str] = None

    def to_meter(self) -> Meter:
        return Meter(
            id=self.id,
            site_id=self.site_id,
            utility=self.utility,
            serial=self.serial,
            hh=self.hh,
            status=self.status,
            mpan=self.mpan,
            mprn=self.mprn,
        )


class AggregationRequest(BaseModel):
    """
    Query contract for a cost/carbon aggregation.

    Field aliases follow the camelCase query-string names, so a parsed
    query dict can be passed straight to model_validate().
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    meter_id: Optional[str] = Field(default=None, alias="meterId")  # CSV of ids
    site_id: Optional[str] = Field(default=None, alias="siteId")
    utility: Optional[Utility] = None
    from_: Optional[datetime] = Field(default=None, alias="from")
    to: Optional[datetime] = None
    interval: Interval = "30m"
    aggregate: AggregateFn = "sum"
    group_by: GroupBy = Field(default="none", alias="groupBy")
    page: int = Field(default=1, ge=1)
    page_size: int = Field(
        default=canon.DEFAULT_PAGE_SIZE, alias="pageSize", ge=1, le=canon.MAX_PAGE_SIZE
    )
    tz: str = canon.DEFAULT_TZ
    tariff_id: str = Field(default=canon.DEFAULT_TARIFF_ID, alias="tariffId")
    carbon_profile_id: str = Field(
        default=canon.DEFAULT_CARBON_PROFILE_ID, alias="carbonProfileId"
    )

    @property
    def meter_ids(self) -> list[str]:
        if not self.meter_id:
            return []
        return [m.strip() for m in self.meter_id.split(",") if m.strip()]

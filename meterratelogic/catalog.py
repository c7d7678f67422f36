"""
Immutable fixture catalog: sites, meters, tariffs and carbon profiles.

A Catalog is built once and passed explicitly into the engine; lookups
never fall back to module-level data.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Iterable, Mapping, Optional, Sequence

from . import exceptions, validate
from .schema import CarbonProfileModel, MeterModel, SiteModel, TariffModel
from .types import CarbonProfile, Meter, Site, Tariff


def _index(items: Iterable[Any], kind: str) -> Mapping[str, Any]:
    out: dict[str, Any] = {}
    for item in items:
        if item.id in out:
            raise ValueError(f"Duplicate {kind} id {item.id!r}")
        out[item.id] = item
    return MappingProxyType(out)


@dataclass(frozen=True)
class Catalog:
    sites: tuple[Site, ...] = ()
    meters: tuple[Meter, ...] = ()
    tariffs: tuple[Tariff, ...] = ()
    carbon_profiles: tuple[CarbonProfile, ...] = ()

    _sites: Mapping[str, Site] = field(init=False, repr=False, compare=False)
    _meters: Mapping[str, Meter] = field(init=False, repr=False, compare=False)
    _tariffs: Mapping[str, Tariff] = field(init=False, repr=False, compare=False)
    _profiles: Mapping[str, CarbonProfile] = field(
        init=False, repr=False, compare=False
    )

    def __post_init__(self):
        object.__setattr__(self, "sites", tuple(self.sites))
        object.__setattr__(self, "meters", tuple(self.meters))
        object.__setattr__(self, "tariffs", tuple(self.tariffs))
        object.__setattr__(self, "carbon_profiles", tuple(self.carbon_profiles))
        object.__setattr__(self, "_sites", _index(self.sites, "site"))
        object.__setattr__(self, "_meters", _index(self.meters, "meter"))
        object.__setattr__(self, "_tariffs", _index(self.tariffs, "tariff"))
        object.__setattr__(
            self, "_profiles", _index(self.carbon_profiles, "carbon profile")
        )
        for rs in (*self.tariffs, *self.carbon_profiles):
            validate.validate_rule_set(rs, require_coverage=False)

    # Rule sets: unknown ids are fatal
    def tariff(self, tariff_id: str) -> Tariff:
        try:
            return self._tariffs[tariff_id]
        except KeyError:
            raise exceptions.UnknownRuleSetId(
                f"Unknown tariff id {tariff_id!r}. Available: {', '.join(self._tariffs)}"
            ) from None

    def carbon_profile(self, profile_id: str) -> CarbonProfile:
        try:
            return self._profiles[profile_id]
        except KeyError:
            raise exceptions.UnknownRuleSetId(
                f"Unknown carbon profile id {profile_id!r}. "
                f"Available: {', '.join(self._profiles)}"
            ) from None

    # Sites/meters: unknown ids resolve to None
    def meter(self, meter_id: str) -> Optional[Meter]:
        return self._meters.get(meter_id)

    def site(self, site_id: str) -> Optional[Site]:
        return self._sites.get(site_id)

    def site_for_meter(self, meter_id: str) -> Optional[Site]:
        m = self.meter(meter_id)
        return self.site(m.site_id) if m is not None else None

    def select_meters(
        self,
        meter_ids: Sequence[str] = (),
        site_id: Optional[str] = None,
        utility: Optional[str] = None,
    ) -> list[Meter]:
        """Meters matching every given filter; unknown meter ids are ignored."""
        if meter_ids:
            wanted = set(meter_ids)
            meters = [m for m in self.meters if m.id in wanted]
        else:
            meters = list(self.meters)
        if site_id is not None:
            meters = [m for m in meters if m.site_id == site_id]
        if utility is not None:
            meters = [m for m in meters if m.utility == utility]
        return meters

    def search_sites(self, term: str) -> list[Site]:
        """Sites whose name contains `term`, case-insensitively."""
        t = term.strip().lower()
        return [s for s in self.sites if t in s.name.lower()]

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Catalog":
        """
        Build from plain data: {'sites': [...], 'meters': [...],
        'tariffs': [...], 'carbonProfiles': [...]}. Rule sets use the
        authored 'HH:MM' shape; every entry is validated via pydantic.
        """
        return cls(
            sites=tuple(
                SiteModel.model_validate(s).to_site() for s in data.get("sites", [])
            ),
            meters=tuple(
                MeterModel.model_validate(m).to_meter() for m in data.get("meters", [])
            ),
            tariffs=tuple(
                TariffModel.model_validate(t).to_tariff()
                for t in data.get("tariffs", [])
            ),
            carbon_profiles=tuple(
                CarbonProfileModel.model_validate(p).to_profile()
                for p in data.get("carbonProfiles", data.get("carbon_profiles", []))
            ),
        )


def demo_data() -> dict[str, Any]:
    """Plain demo fixture data in the from_dict shape; a new dict on every call."""
    return {
        "sites": [
            {"id": "s_001", "name": "Head Office", "postcode": "W1A 1AA", "region": "UK-South"},
            {"id": "s_002", "name": "Warehouse North", "postcode": "M1 2AB", "region": "UK-North"},
        ],
        "meters": [
            {
                "id": "m_e_001",
                "siteId": "s_001",
                "utility": "electricity",
                "serial": "ELEC-0001",
                "hh": True,
                "mpan": "2000012345678",
                "status": "online",
            },
            {
                "id": "m_e_002",
                "siteId": "s_002",
                "utility": "electricity",
                "serial": "ELEC-0002",
                "hh": True,
                "mpan": "2000087654321",
                "status": "online",
            },
            {
                "id": "m_g_001",
                "siteId": "s_001",
                "utility": "gas",
                "serial": "GAS-1001",
                "hh": False,
                "mprn": "1234567890",
                "status": "offline",
            },
        ],
        "tariffs": [
            {
                "id": "tou_elec_v1",
                "name": "TOU Electricity V1",
                "utility": "electricity",
                "standingChargeGBPPerDay": 0.40,
                "windows": [
                    {"fromHHmm": "07:00", "toHHmm": "19:00", "days": "weekdays", "unitRateGBPPerKWh": 0.28, "label": "Peak (WD)"},
                    {"fromHHmm": "19:00", "toHHmm": "22:00", "days": "all", "unitRateGBPPerKWh": 0.24, "label": "Shoulder"},
                    {"fromHHmm": "22:00", "toHHmm": "07:00", "days": "all", "unitRateGBPPerKWh": 0.18, "label": "Off-peak"},
                    {"fromHHmm": "07:00", "toHHmm": "19:00", "days": "weekends", "unitRateGBPPerKWh": 0.22, "label": "Peak (WE)"},
                ],
            },
            {
                "id": "flat_gas_v1",
                "name": "Flat Gas V1",
                "utility": "gas",
                "standingChargeGBPPerDay": 0.25,
                "windows": [
                    {"fromHHmm": "00:00", "toHHmm": "24:00", "days": "all", "unitRateGBPPerKWh": 0.07, "label": "Flat"},
                ],
            },
        ],
        "carbonProfiles": [
            {
                "id": "uk_grid_profile_v1",
                "name": "UK Grid Profile (Demo)",
                "rules": [
                    {"fromHHmm": "00:00", "toHHmm": "06:00", "days": "all", "gCO2PerKWh": 180, "label": "Overnight"},
                    {"fromHHmm": "06:00", "toHHmm": "09:00", "days": "weekdays", "gCO2PerKWh": 320, "label": "WD AM Peak"},
                    {"fromHHmm": "09:00", "toHHmm": "16:00", "days": "weekdays", "gCO2PerKWh": 280, "label": "WD Day"},
                    {"fromHHmm": "16:00", "toHHmm": "19:00", "days": "weekdays", "gCO2PerKWh": 350, "label": "WD PM Peak"},
                    {"fromHHmm": "19:00", "toHHmm": "23:00", "days": "weekdays", "gCO2PerKWh": 240, "label": "WD Evening"},
                    {"fromHHmm": "06:00", "toHHmm": "23:00", "days": "weekends", "gCO2PerKWh": 220, "label": "WE Day"},
                    {"fromHHmm": "23:00", "toHHmm": "24:00", "days": "all", "gCO2PerKWh": 190, "label": "Late Night"},
                ],
            }
        ],
    }


def demo_catalog() -> Catalog:
    """A fresh catalog with the demo sites, meters, tariffs and UK grid profile."""
    return Catalog.from_dict(demo_data())

"""Rate and carbon resolution against the demo rule sets."""

import pandas as pd
import pytest

from meterratelogic import exceptions, rates

TZ = "Europe/London"


def test_weekday_peak_in_bst(tou_tariff):
    """12:00Z Tuesday is 13:00 BST → Peak (WD)."""
    assert rates.resolve("2025-09-16T12:00:00Z", TZ, tou_tariff) == (0.28, "Peak (WD)")
    assert rates.unit_rate_for("2025-09-16T12:00:00Z", TZ, tou_tariff) == 0.28


def test_saturday_night_is_sunday_off_peak(tou_tariff):
    """23:30Z Saturday is 00:30 Sunday BST → Off-peak (wraps midnight)."""
    assert rates.resolve("2025-09-20T23:30:00Z", TZ, tou_tariff) == (0.18, "Off-peak")


def test_weekend_daytime_rate(tou_tariff):
    assert rates.unit_rate_for("2025-09-20T10:00:00Z", TZ, tou_tariff) == 0.22


def test_shoulder_uses_local_not_utc(tou_tariff):
    # 18:30Z is 19:30 BST (Shoulder) but would be Peak in UTC
    assert rates.unit_rate_for("2025-09-16T18:30:00Z", TZ, tou_tariff) == 0.24
    assert rates.unit_rate_for("2025-09-16T18:30:00Z", "UTC", tou_tariff) == 0.28


def test_carbon_for(uk_profile):
    assert rates.carbon_for("2025-09-16T12:00:00Z", TZ, uk_profile) == 280
    assert rates.carbon_for("2025-09-20T12:00:00Z", TZ, uk_profile) == 220
    # 23:30 local falls in the '23:00'-'24:00' window
    assert rates.carbon_for("2025-09-16T22:30:00Z", TZ, uk_profile) == 190


def test_flat_tariff_covers_whole_day(demo):
    gas = demo.tariff("flat_gas_v1")
    idx = pd.date_range("2025-01-01", periods=48 * 7, freq="30min", tz="UTC")
    values, labels = rates.rates_for_index(idx, TZ, gas)
    assert (values == 0.07).all()
    assert set(labels) == {"Flat"}


def test_deterministic(tou_tariff):
    ts = "2025-09-16T06:59:00Z"
    assert rates.rate_for(ts, TZ, tou_tariff) == rates.rate_for(ts, TZ, tou_tariff)


def test_invalid_timezone(tou_tariff):
    with pytest.raises(exceptions.InvalidTimezone):
        rates.rate_for("2025-09-16T12:00:00Z", "Not/AZone", tou_tariff)

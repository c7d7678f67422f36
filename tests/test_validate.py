"""Rule-set validation and reading-frame invariants."""

import pandas as pd
import pytest

from meterratelogic import exceptions, validate
from meterratelogic.types import DayFilter, RuleSet, TimeWindow


def test_demo_rule_sets_cover_every_minute(tou_tariff, uk_profile, demo):
    for rs in (tou_tariff, uk_profile, demo.tariff("flat_gas_v1")):
        assert validate.coverage_gaps(rs) == {}
        validate.validate_rule_set(rs)


def test_coverage_gaps_reported(gappy_rule_set):
    gaps = validate.coverage_gaps(gappy_rule_set)
    assert set(gaps) == set(range(7))
    assert gaps[0][0] == 360  # weekends lose the weekday-only window too
    assert gaps[2][0] == 720
    with pytest.raises(exceptions.RuleSetError):
        validate.validate_rule_set(gappy_rule_set)
    validate.validate_rule_set(gappy_rule_set, require_coverage=False)


@pytest.mark.parametrize(
    "window",
    [
        TimeWindow(600, 600, 1.0, DayFilter.ALL, "empty"),
        TimeWindow(1440, 60, 1.0, DayFilter.ALL, "late start"),
        TimeWindow(0, 1500, 1.0, DayFilter.ALL, "late end"),
    ],
)
def test_bad_windows_rejected(window):
    rs = RuleSet("bad", "Bad", (window,))
    with pytest.raises(exceptions.RuleSetError):
        validate.validate_rule_set(rs, require_coverage=False)


def test_empty_rule_set_rejected():
    with pytest.raises(exceptions.RuleSetError):
        validate.validate_rule_set(RuleSet("none", "None", ()))


def test_assert_readings(reading_df):
    validate.assert_readings(reading_df)

    naive = reading_df.copy()
    naive.index = naive.index.tz_localize(None)
    with pytest.raises(exceptions.IngestError):
        validate.assert_readings(naive)

    with pytest.raises(exceptions.IngestError):
        validate.assert_readings(reading_df.drop(columns=["value"]))

    negative = reading_df.assign(value=-1.0)
    with pytest.raises(exceptions.IngestError):
        validate.assert_readings(negative)

    missing = reading_df.copy()
    missing.iloc[0, missing.columns.get_loc("value")] = float("nan")
    with pytest.raises(exceptions.IngestError):
        validate.assert_readings(missing)

    renamed = reading_df.rename_axis("t_start")
    with pytest.raises(exceptions.IngestError):
        validate.assert_readings(renamed)

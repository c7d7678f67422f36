"""Aggregator: bucketing, grouping, reduction, pagination, partial merges.

- test_avg_same_bucket: three readings 1, 2, 3 in one 30m bucket average to 2.0.
- test_partials_merge_like_whole: split/merge of accumulators equals whole-set result.
- test_groupby_*: meter / site / utility keys, unresolved joins excluded and counted.
- test_pagination_*: ordering, slicing, bounds.
"""

from datetime import datetime, timezone

import numpy as np
import pandas as pd
import pytest

from meterratelogic import exceptions, pricing, transform
from meterratelogic.types import DerivedRecord

TZ = "Europe/London"


def _rec(meter, ts, value, rate=0.2, intensity=100.0):
    return DerivedRecord(
        meter_id=meter,
        ts=pd.Timestamp(ts).to_pydatetime(),
        value=value,
        unit_rate=rate,
        cost_amount=value * rate,
        carbon_intensity=intensity,
        carbon_grams=value * intensity,
    )


def _frame(n=200, seed=0):
    rng = np.random.default_rng(seed)
    idx = pd.date_range("2025-09-15", periods=n, freq="15min", tz="UTC", name="ts")
    meters = rng.choice(["m_e_001", "m_e_002", "m_g_001"], size=n)
    value = rng.random(n) * 5
    return pd.DataFrame(
        {
            "meter_id": meters,
            "value": value,
            "unit_rate": 0.2,
            "cost_amount": value * 0.2,
            "carbon_intensity": 100.0,
            "carbon_grams": value * 100.0,
        },
        index=idx,
    )


def test_avg_same_bucket():
    recs = [
        _rec("m_e_001", "2025-09-16T10:00Z", 1.0),
        _rec("m_e_001", "2025-09-16T10:10Z", 2.0),
        _rec("m_e_001", "2025-09-16T10:29Z", 3.0),
    ]
    res = transform.aggregate(recs, "30m", "avg")
    assert res.total_groups == 1
    b = res.buckets[0]
    assert b.aggregate == 2.0
    assert b.sample_count == 3
    assert b.group_key == "all"
    assert b.bucket_start == datetime(2025, 9, 16, 10, 0, tzinfo=timezone.utc)


@pytest.mark.parametrize(
    "fn,expected", [("sum", 6.0), ("min", 1.0), ("max", 3.0), ("avg", 2.0)]
)
def test_aggregate_functions(fn, expected):
    recs = [_rec("m", f"2025-09-16T10:{m:02d}Z", v) for m, v in ((0, 3.0), (5, 1.0), (9, 2.0))]
    assert transform.aggregate(recs, "1h", fn).buckets[0].aggregate == expected


def test_metric_selection():
    recs = [_rec("m", "2025-09-16T10:00Z", 2.0, rate=0.25, intensity=300.0)]
    assert transform.aggregate(recs, metric="cost").buckets[0].aggregate == 0.5
    assert transform.aggregate(recs, metric="carbon").buckets[0].aggregate == 600.0
    with pytest.raises(ValueError):
        transform.aggregate(recs, metric="watts")


def test_buckets_are_utc_aligned():
    # 23:30Z is the next local day in London but stays in the UTC day bucket
    recs = [_rec("m", "2025-09-16T00:00Z", 1.0), _rec("m", "2025-09-16T23:30Z", 1.0)]
    res = transform.aggregate(recs, "1d", "sum")
    assert res.total_groups == 1 and res.buckets[0].aggregate == 2.0


@pytest.mark.parametrize("fn", ["sum", "min", "max", "avg"])
def test_partials_merge_like_whole(fn):
    df = _frame()
    mask = np.random.default_rng(1).random(len(df)) < 0.4
    whole, _ = transform.partial_aggregate(df, "1h")
    a, _ = transform.partial_aggregate(df[mask], "1h")
    b, _ = transform.partial_aggregate(df[~mask], "1h")
    merged = transform.merge_partials(a, b)

    left = transform.finalize(whole, fn)
    right = transform.finalize(merged, fn)
    pd.testing.assert_frame_equal(left, right, check_exact=False, rtol=1e-12)
    assert (right["sample_count"] == left["sample_count"]).all()


def test_merge_partials_order_independent():
    df = _frame()
    half = len(df) // 2
    a, _ = transform.partial_aggregate(df.iloc[:half], "30m")
    b, _ = transform.partial_aggregate(df.iloc[half:], "30m")
    pd.testing.assert_frame_equal(
        transform.merge_partials(a, b), transform.merge_partials(b, a)
    )


def test_groupby_meter_site_utility(demo):
    df = _frame()
    by_meter = transform.aggregate(df, "1d", "sum", "meter", page_size=1000, catalog=demo)
    by_site = transform.aggregate(df, "1d", "sum", "site", page_size=1000, catalog=demo)
    by_util = transform.aggregate(df, "1d", "sum", "utility", page_size=1000, catalog=demo)
    assert {b.group_key for b in by_meter.buckets} == {"m_e_001", "m_e_002", "m_g_001"}
    assert {b.group_key for b in by_site.buckets} == {"s_001", "s_002"}
    assert {b.group_key for b in by_util.buckets} == {"electricity", "gas"}

    total = df["value"].sum()
    for res in (by_meter, by_site, by_util):
        assert res.excluded_count == 0
        assert sum(b.aggregate for b in res.buckets) == pytest.approx(total)
        assert sum(b.sample_count for b in res.buckets) == len(df)


def test_unresolved_join_excluded_and_counted(demo):
    recs = [
        _rec("m_e_001", "2025-09-16T10:00Z", 1.0),
        _rec("m_unknown", "2025-09-16T10:00Z", 5.0),
        _rec("m_unknown", "2025-09-16T11:00Z", 5.0),
    ]
    res = transform.aggregate(recs, "1h", "sum", "site", catalog=demo)
    assert res.excluded_count == 2
    assert [(b.group_key, b.aggregate) for b in res.buckets] == [("s_001", 1.0)]
    # no lookup needed without grouping
    assert transform.aggregate(recs, "1h", "sum", "none").excluded_count == 0


def test_groupby_requires_catalog():
    with pytest.raises(ValueError):
        transform.aggregate([_rec("m", "2025-09-16T10:00Z", 1.0)], group_by="site")


def test_pagination_ordering_and_slices(demo):
    df = _frame(n=96)
    full = transform.aggregate(df, "1h", "sum", "meter", 1, 1000, catalog=demo)
    keys = [(b.bucket_start, b.group_key) for b in full.buckets]
    assert keys == sorted(keys)

    page2 = transform.aggregate(df, "1h", "sum", "meter", 2, 10, catalog=demo)
    assert page2.total_groups == full.total_groups
    assert page2.total_pages == -(-full.total_groups // 10)
    assert page2.buckets == full.buckets[10:20]

    beyond = transform.aggregate(df, "1h", "sum", "meter", 99, 10, catalog=demo)
    assert beyond.buckets == [] and beyond.total_groups == full.total_groups


@pytest.mark.parametrize("page,size", [(0, 10), (1, 0), (-1, 5), (1, 1001)])
def test_invalid_pagination(page, size):
    with pytest.raises(exceptions.InvalidPagination):
        transform.aggregate([_rec("m", "2025-09-16T10:00Z", 1.0)], page=page, page_size=size)


def test_empty_records():
    res = transform.aggregate([], "30m", "avg")
    assert res.buckets == [] and res.total_groups == 0 and res.total_pages == 0


def test_deterministic_output(demo):
    df = _frame()
    a = transform.aggregate(df, "30m", "avg", "site", catalog=demo, page_size=1000)
    b = transform.aggregate(df.copy(), "30m", "avg", "site", catalog=demo, page_size=1000)
    assert a.buckets == b.buckets


def test_accepts_derived_frame(reading_df, tou_tariff, uk_profile):
    derived = pricing.derive_frame(reading_df, tou_tariff, uk_profile, TZ)
    res = transform.aggregate(derived, "1d", "sum", metric="cost")
    # Tue 2025-09-16, 1 kWh per half hour; local BST day split across rates
    expected = derived["cost_amount"].sum()
    assert res.buckets[0].aggregate == pytest.approx(expected)
    assert res.buckets[0].sample_count == 48

"""Payload shaping and derived-frame summaries."""

import pytest

from meterratelogic import engine, formats, pricing, summary
from meterratelogic.exceptions import InvalidRange

DAY = {"from": "2025-09-16T00:00:00Z", "to": "2025-09-16T23:30:00Z"}


def test_to_payload(demo):
    res = engine.run({**DAY, "groupBy": "meter", "pageSize": 5, "page": 2}, demo, seed=1)
    body = formats.to_payload(res)
    assert body["success"] is True
    assert body["pagination"] == {
        "page": 2,
        "pageSize": 5,
        "totalItems": res.total_groups,
        "totalPages": res.total_pages,
    }
    assert len(body["data"]) == 5
    first = body["data"][0]
    assert set(first) == {"bucketStart", "groupKey", "aggregate", "sampleCount"}
    assert first["bucketStart"].endswith("+00:00")
    assert body["standingChargePerDay"] == 0.40


def test_error_payload():
    body = formats.error_payload(InvalidRange("to before from"))
    assert body == {
        "success": False,
        "data": [],
        "error": "to before from",
        "errorType": "InvalidRange",
    }


def test_summarise(reading_df, tou_tariff, uk_profile, demo):
    derived = pricing.derive_frame(reading_df, tou_tariff, uk_profile, "Europe/London")
    s = summary.summarise(derived, demo)
    assert s["records"] == 48
    assert s["meters"] == ["m_e_001"]
    assert s["total_value"] == 48.0
    assert s["total_cost"] == pytest.approx(derived["cost_amount"].sum())
    assert 0.18 <= s["avg_unit_rate"] <= 0.28
    assert set(s["by_utility"]) == {"electricity"}
    assert s["start"].startswith("2025-09-16T00:00")


def test_summarise_empty():
    import pandas as pd

    empty = pricing.records_to_frame([])
    s = summary.summarise(empty)
    assert s["records"] == 0 and s["total_cost"] == 0.0 and s["start"] == ""
    assert isinstance(empty, pd.DataFrame)

from __future__ import annotations
from concurrent.futures import ThreadPoolExecutor
from typing import Iterable, Optional, Sequence

import pandas as pd
from loguru import logger

from . import canon, rates, utils, validate
from .types import CarbonProfile, DerivedRecord, Reading, ReadingFrame, Tariff

log = logger.bind(component="pricing")


def derive(
    reading: Reading, tariff: Tariff, carbon_profile: CarbonProfile, tz: str
) -> DerivedRecord:
    """Cost (value × unit rate) and emissions (value × intensity) for one reading."""
    unit_rate = rates.unit_rate_for(reading.ts, tz, tariff)
    intensity = rates.carbon_for(reading.ts, tz, carbon_profile)
    return DerivedRecord(
        meter_id=reading.meter_id,
        ts=reading.ts,
        value=reading.value,
        unit_rate=unit_rate,
        cost_amount=reading.value * unit_rate,
        carbon_intensity=intensity,
        carbon_grams=reading.value * intensity,
    )


def _derive_chunk(
    chunk: Sequence[Reading], tariff: Tariff, carbon_profile: CarbonProfile, tz: str
) -> list[DerivedRecord]:
    return [derive(r, tariff, carbon_profile, tz) for r in chunk]


def derive_many(
    readings: Iterable[Reading],
    tariff: Tariff,
    carbon_profile: CarbonProfile,
    tz: str,
    *,
    max_workers: Optional[int] = None,
    chunk_size: int = 2048,
) -> list[DerivedRecord]:
    """
    Derive every reading, preserving input order.

    With max_workers > 1 the readings are split into chunks and fanned out
    across a thread pool; results are gathered back in order.
    """
    rows = list(readings)
    utils.get_zone(tz)  # fail fast before any fan-out
    if not max_workers or max_workers <= 1 or len(rows) <= chunk_size:
        return _derive_chunk(rows, tariff, carbon_profile, tz)

    chunks = [rows[i : i + chunk_size] for i in range(0, len(rows), chunk_size)]
    log.debug("Deriving {} readings in {} chunks ({} workers)", len(rows), len(chunks), max_workers)
    out: list[DerivedRecord] = []
    with ThreadPoolExecutor(max_workers=max_workers) as pool:
        for part in pool.map(
            lambda c: _derive_chunk(c, tariff, carbon_profile, tz), chunks
        ):
            out.extend(part)
    return out


def derive_frame(
    df: pd.DataFrame, tariff: Tariff, carbon_profile: CarbonProfile, tz: str
) -> ReadingFrame:
    """
    Vectorised derive over a ReadingFrame.

    Adds: unit_rate, rate_label, cost_amount, carbon_intensity,
    carbon_label, carbon_grams.
    """
    validate.assert_readings(df)
    idx = pd.DatetimeIndex(df.index)
    unit_rate, rate_label = rates.rates_for_index(idx, tz, tariff)
    intensity, carbon_label = rates.rates_for_index(idx, tz, carbon_profile)

    value = df["value"].astype(float)
    out = df.assign(
        unit_rate=unit_rate,
        rate_label=rate_label,
        cost_amount=value.to_numpy() * unit_rate,
        carbon_intensity=intensity,
        carbon_label=carbon_label,
        carbon_grams=value.to_numpy() * intensity,
    )
    out.__class__ = ReadingFrame
    return out


def records_to_frame(records: Iterable[DerivedRecord]) -> pd.DataFrame:
    """DerivedRecords to a UTC 'ts'-indexed frame with the derived columns."""
    rows = list(records)
    cols = canon.DERIVED_COLS
    if not rows:
        idx = pd.DatetimeIndex([], tz="UTC", name=canon.INDEX_NAME)
        return pd.DataFrame({c: pd.Series(dtype=object if c == "meter_id" else float) for c in cols}, index=idx)
    idx = utils.to_utc_index(pd.DatetimeIndex([r.ts for r in rows])).rename(canon.INDEX_NAME)
    return pd.DataFrame(
        {c: [getattr(r, c) for r in rows] for c in cols},
        index=idx,
    )

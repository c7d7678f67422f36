from __future__ import annotations
import pandas as pd
from typing import Iterable

from . import canon, exceptions, utils, validate
from .catalog import Catalog
from .types import Reading, ReadingFrame


def _as_reading_frame(df: pd.DataFrame) -> ReadingFrame:
    df.__class__ = ReadingFrame
    return df


def empty_reading_frame() -> ReadingFrame:
    idx = pd.DatetimeIndex([], tz="UTC", name=canon.INDEX_NAME)
    out = pd.DataFrame(
        {"meter_id": pd.Series(dtype=object), "value": pd.Series(dtype=float), "unit": pd.Series(dtype=object)},
        index=idx,
    )
    return _as_reading_frame(out)


def from_readings(readings: Iterable[Reading]) -> ReadingFrame:
    """Reading records to a UTC-indexed ReadingFrame (stable sort by ts)."""
    rows = list(readings)
    if not rows:
        return empty_reading_frame()
    idx = utils.to_utc_index(pd.DatetimeIndex([r.ts for r in rows]))
    df = pd.DataFrame(
        {
            "meter_id": [r.meter_id for r in rows],
            "value": [float(r.value) for r in rows],
            "unit": [r.unit for r in rows],
        },
        index=idx.rename(canon.INDEX_NAME),
    )
    df = df.sort_index(kind="stable")
    validate.assert_readings(df)
    return _as_reading_frame(df)


def to_readings(df: pd.DataFrame) -> list[Reading]:
    return [
        Reading(meter_id=str(m), ts=ts.to_pydatetime(), value=float(v), unit=str(u))
        for ts, m, v, u in zip(df.index, df["meter_id"], df["value"], df["unit"])
    ]


def _auto_rename(df: pd.DataFrame) -> pd.DataFrame:
    new = df.copy()

    # 1) Datetime index → ts; otherwise promote a timestamp column
    if isinstance(new.index, pd.DatetimeIndex):
        new.index.name = canon.INDEX_NAME
    else:
        cols = {c.lower(): c for c in new.columns}
        tcol = next((cols[k] for k in canon.COMMON_TIMESTAMP_NAMES if k in cols), None)
        if tcol is None:
            raise exceptions.IngestError(
                "No timestamp column found and index is not datetime. "
                f"Expected one of: {', '.join(canon.COMMON_TIMESTAMP_NAMES)}."
            )
        new = new.rename(columns={tcol: canon.INDEX_NAME})
        new[canon.INDEX_NAME] = pd.to_datetime(new[canon.INDEX_NAME], utc=True)
        new = new.set_index(canon.INDEX_NAME)

    # 2) Standardise value / meter column names
    lower = {c.lower(): c for c in new.columns}
    if "value" not in new.columns:
        vcol = next((lower[k] for k in canon.COMMON_VALUE_NAMES if k in lower), None)
        if vcol is not None:
            new = new.rename(columns={vcol: "value"})
    if "meter_id" not in new.columns:
        mcol = next((lower[k] for k in canon.COMMON_METER_NAMES if k in lower), None)
        if mcol is not None:
            new = new.rename(columns={mcol: "meter_id"})
    return new


def from_dataframe(df: pd.DataFrame, *, unit: str = canon.DEFAULT_UNIT) -> ReadingFrame:
    """
    Normalise an external reading table:
      - index: UTC 'ts' (naive timestamps are taken as UTC)
      - columns: meter_id, value (float, non-negative), unit
    """
    df = _auto_rename(df)
    for col in ("meter_id", "value"):
        if col not in df.columns:
            raise exceptions.IngestError(f"Missing required column: {col}")
    if "unit" not in df.columns:
        df = df.assign(unit=unit)

    df.index = utils.to_utc_index(pd.DatetimeIndex(df.index)).rename(canon.INDEX_NAME)
    df = df.assign(value=df["value"].astype(float))
    df = df[canon.REQUIRED_COLS].sort_index(kind="stable")
    validate.assert_readings(df)
    return _as_reading_frame(df.copy())


def enrich(df: pd.DataFrame, catalog: Catalog) -> pd.DataFrame:
    """
    Join each row to its meter and site.

    Adds 'site_id', 'utility', 'meter_status', 'site_name', 'region';
    rows whose meter or site is unknown get <NA> in the missing fields.
    """
    meter_ids = df["meter_id"].astype(str)
    meters = meter_ids.map(lambda m: catalog.meter(m))
    sites = meters.map(lambda m: catalog.site(m.site_id) if m is not None else None)

    def _attr(s: pd.Series, name: str) -> pd.Series:
        return s.map(lambda x: getattr(x, name) if x is not None else pd.NA).astype(
            "string"
        )

    return df.assign(
        site_id=_attr(sites, "id"),
        utility=_attr(meters, "utility"),
        meter_status=_attr(meters, "status"),
        site_name=_attr(sites, "name"),
        region=_attr(sites, "region"),
    )


def filter_by_site_name(df: pd.DataFrame, term: str) -> pd.DataFrame:
    """Keep enriched rows whose site name contains term (case-insensitive)."""
    if not term:
        return df
    mask = df["site_name"].str.lower().str.contains(term.strip().lower(), regex=False)
    return df[mask.fillna(False).astype(bool)]

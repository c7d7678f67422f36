from __future__ import annotations
from typing import Optional

import numpy as np
import pandas as pd
from loguru import logger

from . import canon, exceptions, utils
from .types import Reading, ReadingFrame
from .utils import InstantLike

log = logger.bind(component="profiles")


def step_minutes(
    utility: str, high_frequency: frozenset[str] = canon.HIGH_FREQUENCY_UTILITIES
) -> int:
    """30-minute cadence for half-hourly utilities, daily otherwise."""
    return canon.HH_STEP_MIN if utility in high_frequency else canon.DAILY_STEP_MIN


def step_index(
    start: InstantLike, end: InstantLike, step_min: int
) -> pd.DatetimeIndex:
    """UTC step boundaries from start through end, both inclusive."""
    s = utils.to_utc(start)
    e = utils.to_utc(end)
    if e < s:
        raise exceptions.InvalidRange(f"Range end {e} is before start {s}")
    return pd.date_range(s, e, freq=f"{step_min}min", name=canon.INDEX_NAME)


def electricity_shape(idx: pd.DatetimeIndex) -> np.ndarray:
    """
    Half-hourly kWh shape: base load with a slow sine cycle plus a
    daytime bump between 07:00 and 19:00 UTC.
    """
    i = np.arange(len(idx), dtype=float)
    hour = idx.hour.to_numpy()
    daytime = (hour >= 7) & (hour < 19)
    return 2.2 + np.sin(i / 5.0) * 0.6 + np.where(daytime, 0.8, 0.0)


def daily_shape(idx: pd.DatetimeIndex) -> np.ndarray:
    """Daily kWh with a weekly bump on Mondays."""
    monday = idx.dayofweek.to_numpy() == 0
    return 100.0 + np.where(monday, 15.0, 0.0)


def generate_frame(
    meter_id: str,
    utility: str,
    start: InstantLike,
    end: InstantLike,
    *,
    seed: Optional[int] = None,
    rng: Optional[np.random.Generator] = None,
    noise: float = 0.1,
    high_frequency: frozenset[str] = canon.HIGH_FREQUENCY_UTILITIES,
) -> ReadingFrame:
    """
    Synthesise a reading series as a ReadingFrame.

    Values carry a uniform jitter in [0, noise * base). Pass `seed` (or an
    explicit `rng`) for reproducible output; omit both for natural variation.
    """
    step = step_minutes(utility, high_frequency)
    idx = step_index(start, end, step)

    base = electricity_shape(idx) if step == canon.HH_STEP_MIN else daily_shape(idx)
    gen = rng if rng is not None else np.random.default_rng(seed)
    jitter = gen.random(len(idx)) * noise * base if noise > 0 else 0.0
    values = np.maximum(base + jitter, 0.0)

    log.debug(
        "Generated {} readings for {} ({}, step={}min)", len(idx), meter_id, utility, step
    )
    df = pd.DataFrame(
        {
            "meter_id": meter_id,
            "value": np.asarray(values, dtype=float),
            "unit": canon.DEFAULT_UNIT,
        },
        index=idx,
    )
    df.__class__ = ReadingFrame
    return df


def generate(
    meter_id: str,
    utility: str,
    start: InstantLike,
    end: InstantLike,
    *,
    seed: Optional[int] = None,
    rng: Optional[np.random.Generator] = None,
    noise: float = 0.1,
) -> list[Reading]:
    """Synthesise readings from start through end inclusive at the utility's step."""
    df = generate_frame(meter_id, utility, start, end, seed=seed, rng=rng, noise=noise)
    return [
        Reading(meter_id=meter_id, ts=ts.to_pydatetime(), value=float(v), unit=u)
        for ts, v, u in zip(df.index, df["value"], df["unit"])
    ]

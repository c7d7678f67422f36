# meterratelogic/utils.py
from __future__ import annotations
import functools
import numpy as np
import pandas as pd
from datetime import datetime
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError
from typing import Tuple

from . import canon, exceptions
from .types import LocalTime

InstantLike = str | datetime | pd.Timestamp


@functools.lru_cache(maxsize=64)
def get_zone(tz: str) -> ZoneInfo:
    """Return the ZoneInfo for an IANA id or raise InvalidTimezone."""
    if not isinstance(tz, str) or not tz.strip():
        raise exceptions.InvalidTimezone(f"Invalid timezone: {tz!r}")
    try:
        return ZoneInfo(tz)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise exceptions.InvalidTimezone(f"Unknown timezone: {tz!r}") from e


def to_utc(instant: InstantLike) -> pd.Timestamp:
    """Normalise an instant to a tz-aware UTC Timestamp. Naive input is taken as UTC."""
    ts = pd.Timestamp(instant)
    if pd.isna(ts):
        raise ValueError(f"Not a valid instant: {instant!r}")
    return ts.tz_localize("UTC") if ts.tz is None else ts.tz_convert("UTC")


def to_utc_index(idx: pd.DatetimeIndex) -> pd.DatetimeIndex:
    idx = pd.DatetimeIndex(idx)
    return idx.tz_localize("UTC") if idx.tz is None else idx.tz_convert("UTC")


def isoformat_utc(instant: InstantLike) -> str:
    return to_utc(instant).isoformat()


def sunday_first_weekday(monday_first: int | np.ndarray):
    """Map Mon=0..Sun=6 to Sun=0..Sat=6."""
    return (monday_first + 1) % 7


def resolve_local(instant: InstantLike, tz: str) -> LocalTime:
    """Wall-clock fields of `instant` in zone `tz`; weekday from the local date."""
    local = to_utc(instant).tz_convert(get_zone(tz))
    return LocalTime(
        year=local.year,
        month=local.month,
        day=local.day,
        hour=local.hour,
        minute=local.minute,
        weekday=int(sunday_first_weekday(local.dayofweek)),
    )


def local_fields(idx: pd.DatetimeIndex, tz: str) -> Tuple[np.ndarray, np.ndarray]:
    """
    Vectorised resolve_local for a DatetimeIndex.

    Returns (minute_of_day, weekday) arrays; weekday 0 = Sunday.
    """
    local = to_utc_index(idx).tz_convert(get_zone(tz))
    minutes = local.hour.to_numpy(dtype=int) * 60 + local.minute.to_numpy(dtype=int)
    weekday = sunday_first_weekday(local.dayofweek.to_numpy(dtype=int))
    return minutes, weekday


def parse_hhmm_minutes(tstr: str) -> int:
    """'HH:MM' to minute of day; '24:00' is allowed and maps to 1440."""
    s = tstr.strip()
    try:
        hh, mm = s.split(":")
        h, m = int(hh), int(mm)
    except ValueError as e:
        raise ValueError(f"Expected 'HH:MM', got {tstr!r}") from e
    if not (0 <= m < 60) or not (0 <= h <= 24) or (h == 24 and m != 0):
        raise ValueError(f"Time of day out of range: {tstr!r}")
    return h * 60 + m


def interval_freq(interval: str) -> str:
    try:
        return f"{canon.INTERVAL_MINUTES[interval]}min"
    except KeyError as e:
        raise ValueError(
            f"Unknown interval {interval!r}; expected one of {sorted(canon.INTERVAL_MINUTES)}"
        ) from e


def floor_to_interval(idx: pd.DatetimeIndex, interval: str) -> pd.DatetimeIndex:
    """Floor each timestamp to its UTC-aligned bucket start."""
    return to_utc_index(idx).floor(interval_freq(interval))


def page_count(total: int, page_size: int) -> int:
    return -(-total // page_size) if total else 0

"""First-match-wins evaluation of time-of-day windows."""

from __future__ import annotations
import numpy as np
from typing import Sequence, Tuple

from loguru import logger

from . import exceptions
from .types import DayFilter, TimeWindow

log = logger.bind(component="windows")


def day_mask(weekday: np.ndarray, day_filter: DayFilter) -> np.ndarray:
    """
    Boolean mask of weekdays (0 = Sunday) passing the filter:
      - ALL: every day
      - WEEKDAYS: Monday–Friday
      - WEEKENDS: Saturday and Sunday
    """
    weekday = np.asarray(weekday)
    if day_filter is DayFilter.ALL:
        return np.ones(weekday.shape, dtype=bool)
    is_weekend = (weekday == 0) | (weekday == 6)
    return is_weekend if day_filter is DayFilter.WEEKENDS else ~is_weekend


def time_mask(minutes: np.ndarray, start: int, end: int) -> np.ndarray:
    """Mask of minutes within [start, end). Handles wrap-around."""
    minutes = np.asarray(minutes)
    if start <= end:
        return (minutes >= start) & (minutes < end)
    # e.g. 22:00 → 07:00 next day
    return (minutes >= start) | (minutes < end)


def match(
    minute_of_day: int, weekday: int, windows: Sequence[TimeWindow]
) -> Tuple[float, str]:
    """
    Return (value, label) of the first window whose day filter and time range
    both admit the given local minute and weekday.

    Never raises for incomplete coverage: falls back to the last window.
    """
    if not windows:
        raise exceptions.RuleSetError("Rule set has no windows.")
    for w in windows:
        if w.day_filter.matches(weekday) and w.contains(minute_of_day):
            return w.value, w.label
    last = windows[-1]
    log.debug(
        "No window covers minute={} weekday={}; falling back to {!r}",
        minute_of_day,
        weekday,
        last.label,
    )
    return last.value, last.label


def match_array(
    minutes: np.ndarray,
    weekday: np.ndarray,
    windows: Sequence[TimeWindow],
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Vectorised match over aligned minute/weekday arrays.

    np.select picks the first true condition, which is exactly
    first-match-wins; the default is the last window (fallback).
    """
    if not windows:
        raise exceptions.RuleSetError("Rule set has no windows.")
    minutes = np.asarray(minutes)
    weekday = np.asarray(weekday)

    conds = [
        day_mask(weekday, w.day_filter) & time_mask(minutes, w.start_min, w.end_min)
        for w in windows
    ]
    values = np.select(
        conds, [w.value for w in windows], default=windows[-1].value
    ).astype(float)
    labels = np.select(
        conds,
        [np.array(w.label, dtype=object) for w in windows],
        default=np.array(windows[-1].label, dtype=object),
    )

    unmatched = int((~np.logical_or.reduce(conds)).sum()) if len(minutes) else 0
    if unmatched:
        log.debug("{} timestamps fell back to window {!r}", unmatched, windows[-1].label)
    return values, labels

from __future__ import annotations
import numpy as np
import pandas as pd
from typing import cast

from . import canon, exceptions, windows
from .types import RuleSet


def coverage_gaps(rule_set: RuleSet) -> dict[int, list[int]]:
    """
    Minutes of day left uncovered, per weekday (0 = Sunday).

    Only weekdays with gaps appear in the result.
    """
    minutes = np.arange(canon.MINUTES_PER_DAY)
    gaps: dict[int, list[int]] = {}
    for wd in range(7):
        weekday = np.full(minutes.shape, wd)
        covered = np.zeros(minutes.shape, dtype=bool)
        for w in rule_set.windows:
            covered |= windows.day_mask(weekday, w.day_filter) & windows.time_mask(
                minutes, w.start_min, w.end_min
            )
        if not covered.all():
            gaps[wd] = minutes[~covered].tolist()
    return gaps


def validate_rule_set(rule_set: RuleSet, *, require_coverage: bool = True) -> None:
    """Raise RuleSetError for empty, degenerate, out-of-range or incomplete rule sets."""
    if not rule_set.windows:
        raise exceptions.RuleSetError(f"Rule set '{rule_set.id}' has no windows")
    for w in rule_set.windows:
        if not (0 <= w.start_min < canon.MINUTES_PER_DAY):
            raise exceptions.RuleSetError(
                f"Window '{w.label}' start {w.start_min} outside [0, 1440)"
            )
        if not (0 <= w.end_min <= canon.MINUTES_PER_DAY):
            raise exceptions.RuleSetError(
                f"Window '{w.label}' end {w.end_min} outside [0, 1440]"
            )
        if w.start_min == w.end_min:
            raise exceptions.RuleSetError(f"Window '{w.label}' start==end not allowed")
    if require_coverage:
        gaps = coverage_gaps(rule_set)
        if gaps:
            days = ", ".join(str(d) for d in sorted(gaps))
            raise exceptions.RuleSetError(
                f"Rule set '{rule_set.id}' leaves minutes uncovered on weekdays: {days}"
            )


def assert_readings(df: pd.DataFrame) -> None:
    if df.index.name != canon.INDEX_NAME:
        raise exceptions.IngestError(f"Index must be '{canon.INDEX_NAME}'.")
    tz_index = cast(pd.DatetimeIndex, df.index)
    if not isinstance(tz_index, pd.DatetimeIndex) or tz_index.tz is None:
        raise exceptions.IngestError("Index must be a tz-aware DatetimeIndex.")
    for col in canon.REQUIRED_COLS:
        if col not in df.columns:
            raise exceptions.IngestError(f"Missing required column '{col}'.")
    if not (df["value"] >= 0).all():
        raise exceptions.IngestError(
            "Negative or missing values detected; readings should be non-negative numbers."
        )

from __future__ import annotations
import pandas as pd
from typing import Iterable, Optional, Tuple

from loguru import logger

from . import canon, exceptions, utils
from .catalog import Catalog
from .pricing import records_to_frame
from .types import (
    AggregateBucket,
    AggregateFn,
    AggregateResult,
    DerivedRecord,
    GroupBy,
    Interval,
    Metric,
)

log = logger.bind(component="transform")

PARTIAL_COLS = ["bucket_start", "group_key", "count", "sum", "min", "max"]
RESULT_COLS = ["bucket_start", "group_key", "aggregate", "sample_count"]
AGGREGATE_FNS = ("sum", "avg", "min", "max")
GROUP_BYS = ("none", "meter", "site", "utility")


def _as_frame(records: pd.DataFrame | Iterable[DerivedRecord]) -> pd.DataFrame:
    if isinstance(records, pd.DataFrame):
        return records
    return records_to_frame(records)


def check_pagination(
    page: int, page_size: int, max_page_size: int = canon.MAX_PAGE_SIZE
) -> None:
    if page < 1:
        raise exceptions.InvalidPagination(f"page must be >= 1, got {page}")
    if page_size < 1 or page_size > max_page_size:
        raise exceptions.InvalidPagination(
            f"page_size must be in [1, {max_page_size}], got {page_size}"
        )


def group_keys(
    df: pd.DataFrame, group_by: GroupBy, catalog: Optional[Catalog] = None
) -> pd.Series:
    """
    Group key per row for the requested dimension.

    'none' maps every row to the constant key. 'meter', 'site' and 'utility'
    resolve through the catalog; unresolved rows get <NA>.
    """
    if group_by not in GROUP_BYS:
        raise ValueError(f"Unknown group_by {group_by!r}; expected one of {GROUP_BYS}")
    if group_by == "none":
        return pd.Series(canon.NO_GROUP_KEY, index=df.index, dtype="string")
    if catalog is None:
        raise ValueError(f"group_by={group_by!r} requires a catalog")

    def _key(meter_id: str):
        m = catalog.meter(meter_id)
        if m is None:
            return pd.NA
        if group_by == "meter":
            return m.id
        if group_by == "utility":
            return m.utility
        site = catalog.site(m.site_id)
        return site.id if site is not None else pd.NA

    keys = df["meter_id"].astype(str).map(_key)
    return keys.astype("string")


def partial_aggregate(
    records: pd.DataFrame | Iterable[DerivedRecord],
    interval: Interval = "30m",
    group_by: GroupBy = "none",
    *,
    metric: Metric = "value",
    catalog: Optional[Catalog] = None,
) -> Tuple[pd.DataFrame, int]:
    """
    Reduce records to mergeable per-group accumulators.

    Returns (partials, excluded_count). partials has one row per
    (bucket_start, group_key) with count, sum, min and max of the metric.
    Rows whose group key cannot be resolved are dropped and counted.
    """
    try:
        col = canon.METRIC_COLUMNS[metric]
    except KeyError as e:
        raise ValueError(
            f"Unknown metric {metric!r}; expected one of {sorted(canon.METRIC_COLUMNS)}"
        ) from e

    df = _as_frame(records)
    if col not in df.columns:
        raise ValueError(f"Records have no '{col}' column; derive them first.")

    keys = group_keys(df, group_by, catalog)
    unresolved = keys.isna().to_numpy()
    excluded = int(unresolved.sum())
    if excluded:
        log.debug("Excluding {} records with unresolved {} join", excluded, group_by)

    s = pd.DataFrame(
        {
            "bucket_start": utils.floor_to_interval(pd.DatetimeIndex(df.index), interval),
            "group_key": keys.to_numpy(),
            "metric": df[col].astype(float).to_numpy(),
        }
    )[~unresolved]

    if s.empty:
        return _empty_partials(), excluded

    out = (
        s.groupby(["bucket_start", "group_key"], sort=True, observed=True)["metric"]
        .agg(["count", "sum", "min", "max"])
        .reset_index()
    )
    out["group_key"] = out["group_key"].astype(str)
    return out[PARTIAL_COLS], excluded


def _empty_partials() -> pd.DataFrame:
    return pd.DataFrame(
        {
            "bucket_start": pd.DatetimeIndex([], tz="UTC"),
            "group_key": pd.Series(dtype=str),
            "count": pd.Series(dtype="int64"),
            "sum": pd.Series(dtype=float),
            "min": pd.Series(dtype=float),
            "max": pd.Series(dtype=float),
        }
    )


def merge_partials(*partials: pd.DataFrame) -> pd.DataFrame:
    """Combine accumulators from disjoint record sets; associative and commutative."""
    frames = [p for p in partials if not p.empty]
    if not frames:
        return _empty_partials()
    d = pd.concat(frames, ignore_index=True)
    out = (
        d.groupby(["bucket_start", "group_key"], sort=True)
        .agg(count=("count", "sum"), sum=("sum", "sum"), min=("min", "min"), max=("max", "max"))
        .reset_index()
    )
    return out[PARTIAL_COLS]


def finalize(partials: pd.DataFrame, aggregate_fn: AggregateFn = "sum") -> pd.DataFrame:
    """
    Turn accumulators into (bucket_start, group_key, aggregate, sample_count),
    fully ordered by bucket start then group key.

    avg is always sum / count of the merged accumulators.
    """
    if aggregate_fn not in AGGREGATE_FNS:
        raise ValueError(
            f"Unknown aggregate {aggregate_fn!r}; expected one of {AGGREGATE_FNS}"
        )
    p = partials.copy()
    if aggregate_fn == "avg":
        p["aggregate"] = p["sum"] / p["count"]
    else:
        p["aggregate"] = p[aggregate_fn]
    p["sample_count"] = p["count"].astype(int)
    p = p.sort_values(["bucket_start", "group_key"], kind="mergesort")
    return p[RESULT_COLS].reset_index(drop=True)


def paginate(df: pd.DataFrame, page: int, page_size: int) -> pd.DataFrame:
    check_pagination(page, page_size)
    start = (page - 1) * page_size
    return df.iloc[start : start + page_size]


def to_buckets(df: pd.DataFrame) -> list[AggregateBucket]:
    return [
        AggregateBucket(
            bucket_start=pd.Timestamp(b).to_pydatetime(),
            group_key=str(k),
            aggregate=float(a),
            sample_count=int(n),
        )
        for b, k, a, n in zip(
            df["bucket_start"], df["group_key"], df["aggregate"], df["sample_count"]
        )
    ]


def aggregate(
    records: pd.DataFrame | Iterable[DerivedRecord],
    interval: Interval = "30m",
    aggregate_fn: AggregateFn = "sum",
    group_by: GroupBy = "none",
    page: int = 1,
    page_size: int = canon.DEFAULT_PAGE_SIZE,
    *,
    metric: Metric = "value",
    catalog: Optional[Catalog] = None,
) -> AggregateResult:
    """
    Bucket records by UTC interval, group by the requested dimension and
    reduce each group, then return the requested page.

    Example:
        res = aggregate(derived, "1h", "avg", "site", metric="cost", catalog=cat)
        res.total_groups, res.buckets[0].aggregate
    """
    check_pagination(page, page_size)
    utils.interval_freq(interval)
    partials, excluded = partial_aggregate(
        records, interval, group_by, metric=metric, catalog=catalog
    )
    grouped = finalize(partials, aggregate_fn)
    total = len(grouped)
    return AggregateResult(
        buckets=to_buckets(paginate(grouped, page, page_size)),
        total_groups=total,
        total_pages=utils.page_count(total, page_size),
        page=page,
        page_size=page_size,
        excluded_count=excluded,
        meta={
            "interval": interval,
            "aggregate": aggregate_fn,
            "group_by": group_by,
            "metric": metric,
        },
    )

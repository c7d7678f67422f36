from __future__ import annotations
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from typing import Any, Iterable, Mapping, Optional, Tuple

import numpy as np
import pandas as pd
from loguru import logger

from . import exceptions, ingest, pricing, profiles, transform, utils
from .catalog import Catalog
from .config import EngineConfig, default_config
from .schema import AggregationRequest
from .types import AggregateResult, CarbonProfile, Meter, Metric, Reading, Tariff

log = logger.bind(component="engine")


def parse_request(query: Mapping[str, Any] | AggregationRequest) -> AggregationRequest:
    if isinstance(query, AggregationRequest):
        return query
    return AggregationRequest.model_validate(dict(query))


def resolve_range(
    req: AggregationRequest,
    config: EngineConfig,
    now: Optional[datetime] = None,
) -> Tuple[pd.Timestamp, pd.Timestamp]:
    """
    Requested [from, to] in UTC. A missing 'to' is `now` floored to the
    half hour; a missing 'from' is 'to' minus config.default_window.
    """
    if req.to is not None:
        end = utils.to_utc(req.to)
    else:
        end = utils.to_utc(now or datetime.now(timezone.utc)).floor("30min")
    start = utils.to_utc(req.from_) if req.from_ is not None else end - config.default_window
    if end < start:
        raise exceptions.InvalidRange(f"'to' ({end}) is before 'from' ({start})")
    return start, end


def synthesize(
    meters: Iterable[Meter],
    start: pd.Timestamp,
    end: pd.Timestamp,
    *,
    seed: Optional[int] = None,
    config: Optional[EngineConfig] = None,
) -> pd.DataFrame:
    """One synthetic series per meter, concatenated and sorted by ts."""
    cfg = config or default_config()
    rng = np.random.default_rng(seed)
    frames = [
        profiles.generate_frame(
            m.id,
            m.utility,
            start,
            end,
            rng=rng,
            noise=cfg.noise,
            high_frequency=cfg.high_frequency_utilities,
        )
        for m in meters
    ]
    if not frames:
        return ingest.empty_reading_frame()
    return pd.concat(frames).sort_index(kind="stable")


def _select_readings(
    readings: pd.DataFrame | Iterable[Reading],
    req: AggregationRequest,
    meters: list[Meter],
    start: pd.Timestamp,
    end: pd.Timestamp,
) -> pd.DataFrame:
    df = (
        ingest.from_dataframe(readings)
        if isinstance(readings, pd.DataFrame)
        else ingest.from_readings(readings)
    )
    df = df.loc[(df.index >= start) & (df.index <= end)]
    if req.meter_ids or req.site_id or req.utility:
        df = df[df["meter_id"].isin([m.id for m in meters])]
    return df


def derive_frame(
    df: pd.DataFrame,
    tariff: Tariff,
    carbon_profile: CarbonProfile,
    tz: str,
    config: Optional[EngineConfig] = None,
) -> pd.DataFrame:
    """pricing.derive_frame, fanned out over row chunks when max_workers > 1."""
    cfg = config or default_config()
    workers = cfg.max_workers or 1
    if workers <= 1 or len(df) <= cfg.chunk_size:
        return pricing.derive_frame(df, tariff, carbon_profile, tz)

    chunks = [df.iloc[i : i + cfg.chunk_size] for i in range(0, len(df), cfg.chunk_size)]
    log.debug("Deriving {} rows in {} chunks ({} workers)", len(df), len(chunks), workers)
    with ThreadPoolExecutor(max_workers=workers) as pool:
        parts = list(
            pool.map(
                lambda c: pricing.derive_frame(c, tariff, carbon_profile, tz), chunks
            )
        )
    return pd.concat(parts)


def run(
    query: Mapping[str, Any] | AggregationRequest,
    catalog: Catalog,
    *,
    readings: pd.DataFrame | Iterable[Reading] | None = None,
    metric: Metric = "cost",
    seed: Optional[int] = None,
    now: Optional[datetime] = None,
    config: Optional[EngineConfig] = None,
) -> AggregateResult:
    """
    Answer an aggregation request against a catalog.

    Readings come from `readings` when given, otherwise they are synthesised
    for the selected meters over the requested range. All validation
    happens before any computation, so a failure returns nothing partial.
    """
    cfg = config or default_config()
    req = parse_request(query)

    utils.get_zone(req.tz)
    tariff = catalog.tariff(req.tariff_id)
    profile = catalog.carbon_profile(req.carbon_profile_id)
    transform.check_pagination(req.page, req.page_size, cfg.max_page_size)
    start, end = resolve_range(req, cfg, now)

    meters = catalog.select_meters(req.meter_ids, req.site_id, req.utility)
    if readings is None:
        df = synthesize(meters, start, end, seed=seed, config=cfg)
    else:
        df = _select_readings(readings, req, meters, start, end)

    derived = derive_frame(df, tariff, profile, req.tz, cfg)
    result = transform.aggregate(
        derived,
        req.interval,
        req.aggregate,
        req.group_by,
        req.page,
        req.page_size,
        metric=metric,
        catalog=catalog,
    )
    result.standing_charge_per_day = tariff.daily_charge
    result.meta.update(
        {
            "from": start.isoformat(),
            "to": end.isoformat(),
            "tz": req.tz,
            "tariff_id": tariff.id,
            "carbon_profile_id": profile.id,
            "meters": [m.id for m in meters],
            "records": int(len(derived)),
        }
    )
    log.info(
        "Aggregated {} records from {} meters into {} groups (page {}/{})",
        len(derived),
        len(meters),
        result.total_groups,
        req.page,
        result.total_pages,
    )
    return result

from __future__ import annotations
import pandas as pd
from typing import Optional, TypedDict, List

from .catalog import Catalog
from . import ingest


class DerivedSummary(TypedDict):
    records: int
    meters: List[str]
    start: str
    end: str
    total_value: float
    total_cost: float
    total_carbon_grams: float
    avg_unit_rate: float
    avg_carbon_intensity: float
    by_utility: dict[str, dict[str, float]]


def summarise(df: pd.DataFrame, catalog: Optional[Catalog] = None) -> DerivedSummary:
    """
    Totals over a derived frame.

    avg_unit_rate and avg_carbon_intensity are consumption-weighted
    (total cost / total value, total grams / total value).
    by_utility is filled only when a catalog is given; unknown meters land
    under 'unknown'.
    """
    idx = df.index
    total_value = float(df["value"].sum()) if len(df) else 0.0
    total_cost = float(df["cost_amount"].sum()) if len(df) else 0.0
    total_carbon = float(df["carbon_grams"].sum()) if len(df) else 0.0

    by_utility: dict[str, dict[str, float]] = {}
    if catalog is not None and len(df):
        enriched = ingest.enrich(df, catalog)
        g = enriched.assign(utility=enriched["utility"].fillna("unknown")).groupby(
            "utility"
        )[["value", "cost_amount", "carbon_grams"]].sum()
        by_utility = {
            str(u): {k: float(v) for k, v in row.items()} for u, row in g.iterrows()
        }

    return {
        "records": int(len(df)),
        "meters": sorted(df["meter_id"].astype(str).unique().tolist()),
        "start": idx.min().isoformat() if len(df) else "",
        "end": idx.max().isoformat() if len(df) else "",
        "total_value": total_value,
        "total_cost": total_cost,
        "total_carbon_grams": total_carbon,
        "avg_unit_rate": (total_cost / total_value) if total_value else 0.0,
        "avg_carbon_intensity": (total_carbon / total_value) if total_value else 0.0,
        "by_utility": by_utility,
    }

from __future__ import annotations

from typing import Any, Dict, List

from . import utils
from .types import AggregateBucket, AggregateResult


def bucket_to_record(b: AggregateBucket) -> Dict[str, Any]:
    return {
        "bucketStart": utils.isoformat_utc(b.bucket_start),
        "groupKey": b.group_key,
        "aggregate": b.aggregate,
        "sampleCount": b.sample_count,
    }


def buckets_to_records(buckets: List[AggregateBucket]) -> List[Dict[str, Any]]:
    return [bucket_to_record(b) for b in buckets]


def to_payload(result: AggregateResult) -> Dict[str, Any]:
    """
    Plain-data response body for an HTTP collaborator:

        {"success": True, "data": [...],
         "pagination": {"page", "pageSize", "totalItems", "totalPages"},
         "excluded": n, "standingChargePerDay": x | None, "meta": {...}}
    """
    return {
        "success": True,
        "data": buckets_to_records(result.buckets),
        "pagination": {
            "page": result.page,
            "pageSize": result.page_size,
            "totalItems": result.total_groups,
            "totalPages": result.total_pages,
        },
        "excluded": result.excluded_count,
        "standingChargePerDay": result.standing_charge_per_day,
        "meta": dict(result.meta),
    }


def error_payload(error: Exception) -> Dict[str, Any]:
    return {
        "success": False,
        "data": [],
        "error": str(error) or type(error).__name__,
        "errorType": type(error).__name__,
    }

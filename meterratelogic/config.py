from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from datetime import timedelta
from typing import Optional

from . import canon

ENV_PREFIX = "METERRATE_"


def env_str(name: str, default: str) -> str:
    val = os.getenv(ENV_PREFIX + name)
    if val is None or not val.strip():
        return default
    return val.strip()


def env_int(name: str, default: Optional[int]) -> Optional[int]:
    val = os.getenv(ENV_PREFIX + name)
    if val is None:
        return default
    try:
        return int(val.strip())
    except ValueError:
        return default


@dataclass(frozen=True)
class EngineConfig:
    # Request defaults
    default_tz: str = canon.DEFAULT_TZ
    default_tariff_id: str = canon.DEFAULT_TARIFF_ID
    default_carbon_profile_id: str = canon.DEFAULT_CARBON_PROFILE_ID
    default_page_size: int = canon.DEFAULT_PAGE_SIZE
    max_page_size: int = canon.MAX_PAGE_SIZE

    # Range used when a request omits from/to
    default_window: timedelta = timedelta(days=1)

    # Synthesis
    high_frequency_utilities: frozenset[str] = field(
        default_factory=lambda: frozenset(canon.HIGH_FREQUENCY_UTILITIES)
    )
    noise: float = 0.1

    # Derivation fan-out; None or 1 runs serially
    max_workers: Optional[int] = None
    chunk_size: int = 2048

    @classmethod
    def from_env(cls) -> "EngineConfig":
        """Defaults overridden by METERRATE_* environment variables."""
        base = cls()
        window_h = env_int("DEFAULT_WINDOW_HOURS", None)
        return replace(
            base,
            default_tz=env_str("DEFAULT_TZ", base.default_tz),
            default_tariff_id=env_str("DEFAULT_TARIFF_ID", base.default_tariff_id),
            default_carbon_profile_id=env_str(
                "DEFAULT_CARBON_PROFILE_ID", base.default_carbon_profile_id
            ),
            default_page_size=env_int("DEFAULT_PAGE_SIZE", base.default_page_size)
            or base.default_page_size,
            max_workers=env_int("MAX_WORKERS", base.max_workers),
            default_window=(
                timedelta(hours=window_h) if window_h and window_h > 0 else base.default_window
            ),
        )


def default_config() -> EngineConfig:
    return EngineConfig()

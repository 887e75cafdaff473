"""Pydantic models for endpoint configuration and API responses."""

from .endpoints import EndpointConfig, load_endpoints
from .rates import PairRateOut, RateRecordOut, RatesOut, ScrapeStatsOut, SnapshotOut
from .stats import BlockEventOut, DailyCalls, StatsOut, WeeklyCalls

__all__ = [
    "EndpointConfig",
    "load_endpoints",
    "PairRateOut",
    "RateRecordOut",
    "RatesOut",
    "ScrapeStatsOut",
    "SnapshotOut",
    "BlockEventOut",
    "DailyCalls",
    "StatsOut",
    "WeeklyCalls",
]

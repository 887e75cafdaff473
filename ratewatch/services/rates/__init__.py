"""Provider rate scraping: fee schedules, payload normalization and lookups."""

from .fees import (
    FeeSchedule,
    FeeTier,
    StandardFee,
    TieredFee,
    compute_fee,
    format_fee_text,
    parse_fee_schedule,
)
from .lookup import describe_popular_rates, find_rate, popular_rates
from .normalizer import ExchangeSnapshot, RateRecord, normalize
from .taptap import TapTapSendScraper

__all__ = [
    "FeeSchedule",
    "FeeTier",
    "StandardFee",
    "TieredFee",
    "compute_fee",
    "format_fee_text",
    "parse_fee_schedule",
    "describe_popular_rates",
    "find_rate",
    "popular_rates",
    "ExchangeSnapshot",
    "RateRecord",
    "normalize",
    "TapTapSendScraper",
]

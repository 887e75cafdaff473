"""Transfer fee schedules and fee computation.

Providers publish either a standard schedule (flat fee plus a percentage,
optionally capped) or a tiered one (fixed fee per amount bracket). Raw
schedules come straight from provider JSON, so every numeric field is coerced
leniently: anything that is not a number (or is NaN) is treated as absent.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from numbers import Real
from typing import Any, Optional, Tuple, Union


def to_number(value: Any) -> Optional[float]:
    """Coerce ints, floats and numeric strings to float; None for anything else."""
    if isinstance(value, bool):
        return None
    if not isinstance(value, (Real, str)):
        return None
    try:
        number = float(value.strip() if isinstance(value, str) else value)
    except (OverflowError, ValueError):
        return None
    if math.isnan(number):
        return None
    return number


@dataclass(frozen=True)
class StandardFee:
    flat_fee: float = 0.0
    fee_percent: float = 0.0
    max_fee: Optional[float] = None


@dataclass(frozen=True)
class FeeTier:
    min_value: float
    fee: float


@dataclass(frozen=True)
class TieredFee:
    tiers: Tuple[FeeTier, ...] = ()


FeeSchedule = Union[StandardFee, TieredFee]


def parse_fee_schedule(raw: Any) -> Optional[FeeSchedule]:
    """Build a FeeSchedule from a provider ``feeSchedule`` object.

    Unknown ``type`` values and non-object input yield None. Tiers without a
    numeric ``minValue`` and ``fee`` are dropped; the remaining tiers keep
    their published order.
    """
    if not isinstance(raw, dict):
        return None
    kind = raw.get("type")
    if kind == "standard":
        return StandardFee(
            flat_fee=to_number(raw.get("flatFee")) or 0.0,
            fee_percent=to_number(raw.get("feePercent")) or 0.0,
            max_fee=to_number(raw.get("maxFee")),
        )
    if kind == "tiered":
        tiers = raw.get("tiers")
        if not isinstance(tiers, list):
            return TieredFee()
        parsed = []
        for t in tiers:
            if not isinstance(t, dict):
                continue
            min_value = to_number(t.get("minValue"))
            fee = to_number(t.get("fee"))
            if min_value is None or fee is None:
                continue
            parsed.append(FeeTier(min_value=min_value, fee=fee))
        return TieredFee(tiers=tuple(parsed))
    return None


def compute_fee(amount: Any, schedule: Optional[FeeSchedule]) -> float:
    """Fee charged for sending ``amount`` under ``schedule``. Never raises; 0 on bad input."""
    value = to_number(amount)
    if schedule is None or value is None or value <= 0:
        return 0.0

    if isinstance(schedule, StandardFee):
        flat = to_number(schedule.flat_fee) or 0.0
        percent = to_number(schedule.fee_percent) or 0.0
        fee = flat + percent * 0.01 * value
        cap = to_number(schedule.max_fee)
        if cap is not None:
            fee = min(cap, fee)
    elif isinstance(schedule, TieredFee):
        valid = [
            t
            for t in schedule.tiers
            if to_number(t.min_value) is not None and to_number(t.fee) is not None
        ]
        # stable sort keeps published order among equal minValues
        valid.sort(key=lambda t: t.min_value, reverse=True)
        tier = next((t for t in valid if value >= t.min_value), None)
        fee = tier.fee if tier else 0.0
    else:
        return 0.0

    return 0.0 if math.isnan(fee) else fee


def format_fee_text(fee: Optional[float], currency: str) -> str:
    if fee is None or math.isnan(fee) or fee == 0:
        return "No transfer fees"
    return f"{currency} {fee:.2f} fee"

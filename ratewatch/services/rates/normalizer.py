from __future__ import annotations

"""Flatten TapTapSend's nested ``fxRates`` payload into directed rate records.

Payload shape (only the fields we read):

    {"availableCountries": [
        {"currency": "USD", "countryDisplayName": "United States",
         "corridors": [
            {"currency": "NGN", "countryDisplayName": "Nigeria",
             "fxRate": 1500.0,
             "govIncentive": {"effectiveFxRate": 1520.0, "footnote": "..."},
             "feeSchedule": {"type": "standard", "flatFee": 2, ...}},
            ...]},
        ...]}

One record is emitted per (origin country, corridor). Broken entries are
skipped; only a payload without an ``availableCountries`` list is rejected.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional, Tuple

from ratewatch.services.http_client import MalformedResponse
from .fees import compute_fee, format_fee_text, parse_fee_schedule, to_number

logger = logging.getLogger("ratewatch.rates")

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"
DEFAULT_SAMPLE_AMOUNT = 100.0


@dataclass(frozen=True)
class RateRecord:
    from_currency: str
    to_currency: str
    from_country: str
    to_country: str
    rate: float
    effective_rate: Optional[float]
    has_incentive: bool
    incentive_note: Optional[str]
    fee_text: str

    def best_rate(self) -> float:
        return self.effective_rate or self.rate

    def as_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "from": self.from_currency,
            "to": self.to_currency,
            "fromCountry": self.from_country,
            "toCountry": self.to_country,
            "rate": self.rate,
            "hasIncentive": self.has_incentive,
            "incentiveNote": self.incentive_note,
            "fee": self.fee_text,
        }
        if self.effective_rate is not None:
            data["effectiveRate"] = self.effective_rate
        return data


@dataclass(frozen=True)
class ExchangeSnapshot:
    timestamp: str
    rates: Tuple[RateRecord, ...]


def format_timestamp(moment: datetime) -> str:
    return moment.strftime(TIMESTAMP_FORMAT)


def effective_rate(corridor: Dict[str, Any]) -> float:
    """Incentive rate when present and non-zero, else the base rate (0 if unusable)."""
    incentive = corridor.get("govIncentive")
    if isinstance(incentive, dict):
        gov_rate = to_number(incentive.get("effectiveFxRate"))
        if gov_rate:
            return gov_rate
    return to_number(corridor.get("fxRate")) or 0.0


def _record_for(origin: Dict[str, Any], corridor: Dict[str, Any], sample_amount: float) -> RateRecord:
    rate = to_number(corridor.get("fxRate")) or 0.0
    eff = effective_rate(corridor)
    incentive = corridor.get("govIncentive")
    has_incentive = isinstance(incentive, (dict, list)) or bool(incentive)
    note = incentive.get("footnote") if isinstance(incentive, dict) else None
    fee = compute_fee(sample_amount, parse_fee_schedule(corridor.get("feeSchedule")))
    origin_currency = str(origin.get("currency") or "")
    return RateRecord(
        from_currency=origin_currency,
        to_currency=str(corridor.get("currency") or ""),
        from_country=str(origin.get("countryDisplayName") or ""),
        to_country=str(corridor.get("countryDisplayName") or ""),
        rate=rate,
        effective_rate=eff if eff != rate else None,
        has_incentive=has_incentive,
        incentive_note=note if isinstance(note, str) else None,
        fee_text=format_fee_text(fee, origin_currency),
    )


def normalize(
    raw: Any,
    *,
    timestamp: Optional[str] = None,
    sample_amount: float = DEFAULT_SAMPLE_AMOUNT,
) -> ExchangeSnapshot:
    """Turn a raw ``fxRates`` response into an ExchangeSnapshot.

    Raises MalformedResponse when the payload lacks an ``availableCountries``
    list. Countries without a corridor list and corridors that are not
    objects or carry no ``fxRate`` are skipped.
    """
    if not isinstance(raw, dict) or not isinstance(raw.get("availableCountries"), list):
        raise MalformedResponse("payload has no availableCountries list")

    ts = timestamp or format_timestamp(datetime.now())
    records = []
    for origin in raw["availableCountries"]:
        if not isinstance(origin, dict) or not isinstance(origin.get("corridors"), list):
            continue
        for corridor in origin["corridors"]:
            if not isinstance(corridor, dict) or "fxRate" not in corridor:
                continue
            records.append(_record_for(origin, corridor, sample_amount))

    logger.info("TapTapSend: Scraped %d exchange rate pairs at %s", len(records), ts)
    return ExchangeSnapshot(timestamp=ts, rates=tuple(records))

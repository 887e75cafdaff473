from __future__ import annotations
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_serializer


class RateRecordOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    from_currency: str = Field(..., alias="from")
    to_currency: str = Field(..., alias="to")
    from_country: str = Field(..., alias="fromCountry")
    to_country: str = Field(..., alias="toCountry")
    rate: float
    effective_rate: Optional[float] = Field(None, alias="effectiveRate")
    has_incentive: bool = Field(False, alias="hasIncentive")
    incentive_note: Optional[str] = Field(None, alias="incentiveNote")
    fee: str

    @model_serializer(mode="wrap")
    def _omit_missing_effective_rate(self, handler):  # type: ignore[no-untyped-def]
        data = handler(self)
        if self.effective_rate is None:
            data.pop("effectiveRate", None)
            data.pop("effective_rate", None)
        return data


class SnapshotOut(BaseModel):
    timestamp: str
    rates: List[RateRecordOut] = []


class ScrapeStatsOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    last_successful_scrape: Optional[str] = Field(None, alias="lastSuccessfulScrape")
    total_scrapes: int = Field(0, alias="totalScrapes")
    failed_scrapes: int = Field(0, alias="failedScrapes")
    last_rates_count: int = Field(0, alias="lastRatesCount")
    popular_rates: Optional[Dict[str, float]] = Field(None, alias="popularRates")


class RatesOut(BaseModel):
    stats: ScrapeStatsOut
    snapshot: Optional[SnapshotOut] = None


class PairRateOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    from_currency: str = Field(..., alias="from")
    to_currency: str = Field(..., alias="to")
    rate: float

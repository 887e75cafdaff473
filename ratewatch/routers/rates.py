from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request

from ratewatch.models.rates import (
    PairRateOut,
    RateRecordOut,
    RatesOut,
    ScrapeStatsOut,
    SnapshotOut,
)
from ratewatch.services.rates.lookup import find_rate
from ratewatch.services.scheduler import PollingScheduler

"""Rates router exposing the latest in-memory TapTapSend snapshot.

Endpoints:
    - GET /rate_tracker/rates              -> scrape stats + latest snapshot
    - GET /rate_tracker/rates/{from}/{to}  -> best rate for one pair

Snapshots are never persisted; a restart clears them until the next scrape.
"""

router = APIRouter(prefix="/rate_tracker/rates", tags=["rates"])


def get_scheduler(request: Request) -> PollingScheduler:
    return request.app.state.scheduler


@router.get("", response_model=RatesOut, summary="Latest scraped rate table")
async def list_rates(scheduler: PollingScheduler = Depends(get_scheduler)):
    stats = scheduler.scrape_stats()
    snapshot = scheduler.latest_snapshot
    out = RatesOut(
        stats=ScrapeStatsOut(
            last_successful_scrape=stats.last_successful_scrape,
            total_scrapes=stats.total_scrapes,
            failed_scrapes=stats.failed_scrapes,
            last_rates_count=stats.last_rates_count,
            popular_rates=stats.popular_rates,
        )
    )
    if snapshot is not None:
        out.snapshot = SnapshotOut(
            timestamp=snapshot.timestamp,
            rates=[RateRecordOut(**r.as_dict()) for r in snapshot.rates],
        )
    return out


@router.get(
    "/{from_currency}/{to_currency}",
    response_model=PairRateOut,
    summary="Best rate for a currency pair",
)
async def get_pair_rate(
    from_currency: str,
    to_currency: str,
    scheduler: PollingScheduler = Depends(get_scheduler),
):
    snapshot = scheduler.latest_snapshot
    if snapshot is None:
        raise HTTPException(status_code=404, detail="no rates scraped yet")
    rate = find_rate(snapshot, from_currency, to_currency)
    if rate is None:
        raise HTTPException(
            status_code=404,
            detail=f"no rate for {from_currency.upper()}→{to_currency.upper()}",
        )
    return PairRateOut(from_currency=from_currency.upper(), to_currency=to_currency.upper(), rate=rate)

from __future__ import annotations

"""Polling loop over the configured provider endpoints.

Each cycle:
    1. rolls the tracker's day/week buckets,
    2. calls every endpoint concurrently (one endpoint's failure never affects
       the others),
    3. scrapes and normalizes the TapTapSend rate table.

Successful calls bump the counters. Endpoint failures are always logged, but
only upstream answers with status >= 400 become block events; timeouts, DNS
and other transport errors stay in the log stream. A failed scrape is recorded
as a block with no status.
"""
import asyncio
import logging
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Callable, Dict, List, Optional, Sequence

from ratewatch.models.endpoints import EndpointConfig
from ratewatch.services.http_client import (
    AsyncHttpClient,
    DnsFailure,
    FetchError,
    HttpStatusError,
    MalformedResponse,
    NetworkTimeout,
    RateLimited,
)
from ratewatch.services.rates.lookup import (
    POPULAR_CURRENCIES,
    describe_popular_rates,
    popular_rates,
)
from ratewatch.services.rates.normalizer import ExchangeSnapshot, format_timestamp
from ratewatch.services.rates.taptap import TapTapSendScraper
from ratewatch.services.tracker import BlockReason, CallTracker

logger = logging.getLogger("ratewatch.scheduler")

SCRAPE_LABEL = "TapTapSend Exchange Rates"


def classify(error: FetchError) -> BlockReason:
    if isinstance(error, RateLimited):
        return BlockReason.RATE_LIMITED
    if isinstance(error, HttpStatusError):
        return BlockReason.HTTP_ERROR
    if isinstance(error, NetworkTimeout):
        return BlockReason.TIMEOUT
    if isinstance(error, DnsFailure):
        return BlockReason.NOT_FOUND
    if isinstance(error, MalformedResponse):
        return BlockReason.MALFORMED
    return BlockReason.UNKNOWN


@dataclass
class ScrapeStats:
    last_successful_scrape: Optional[str] = None
    total_scrapes: int = 0
    failed_scrapes: int = 0
    last_rates_count: int = 0
    popular_rates: Optional[Dict[str, float]] = None


class PollingScheduler:
    def __init__(
        self,
        endpoints: Sequence[EndpointConfig],
        client: AsyncHttpClient,
        scraper: TapTapSendScraper,
        tracker: CallTracker,
        *,
        interval_seconds: float = 180.0,
        popular_base: str = "USD",
        popular_currencies: Sequence[str] = POPULAR_CURRENCIES,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.endpoints: List[EndpointConfig] = list(endpoints)
        self._client = client
        self._scraper = scraper
        self.tracker = tracker
        self.interval_seconds = interval_seconds
        self.popular_base = popular_base
        self.popular_currencies = tuple(popular_currencies)
        self._clock = clock
        self._stats = ScrapeStats()
        self._latest: Optional[ExchangeSnapshot] = None
        self._task: Optional[asyncio.Task] = None

    # Endpoint sweep -------------------------------------------
    async def call_endpoint(self, endpoint: EndpointConfig) -> bool:
        try:
            response = await self._client.request(
                endpoint.method,
                endpoint.url,
                headers=endpoint.headers,
                payload=endpoint.payload,
            )
        except FetchError as e:
            self._record_failure(endpoint, e)
            return False
        except Exception as e:  # never abort the rest of the sweep
            logger.exception("Endpoint: %s, Error: %s", endpoint.label, e)
            return False
        logger.info("Endpoint: %s, Status: %s", endpoint.label, response.status_code)
        self.tracker.record_success()
        return True

    def _record_failure(self, endpoint: EndpointConfig, error: FetchError) -> None:
        message = f"Endpoint: {endpoint.label}, Error: {error.message}"
        if error.status is not None:
            message += f", Status: {error.status}"
        if isinstance(error, RateLimited) and error.retry_after:
            message += f", Retry-After: {error.retry_after}s"
        logger.warning(message)

        if error.status is not None and error.status >= 400:
            self.tracker.block(endpoint.label, classify(error), status=error.status)

    # Rate scrape ----------------------------------------------
    async def scrape_rates(self) -> Optional[ExchangeSnapshot]:
        self._stats.total_scrapes += 1
        try:
            snapshot = await self._scraper.scrape()
        except Exception as e:
            self._stats.failed_scrapes += 1
            logger.exception("TapTapSend scraping error: %s", e)
            self.tracker.block(SCRAPE_LABEL, BlockReason.SCRAPE_EXCEPTION)
            return None

        if snapshot is None:
            self._stats.failed_scrapes += 1
            self.tracker.block(SCRAPE_LABEL, BlockReason.SCRAPE_FAILED)
            return None

        self._latest = snapshot
        self._stats.last_successful_scrape = format_timestamp(self._clock())
        self._stats.last_rates_count = len(snapshot.rates)
        popular = popular_rates(snapshot, self.popular_base, self.popular_currencies)
        if popular:
            self._stats.popular_rates = popular
            logger.info("Popular TapTapSend rates: %s", describe_popular_rates(popular))
        self.tracker.record_success()
        return snapshot

    # Cycle / loop ---------------------------------------------
    async def run_cycle(self) -> None:
        self.tracker.roll_if_needed()
        await asyncio.gather(*(self.call_endpoint(ep) for ep in self.endpoints))
        await self.scrape_rates()

    async def run_forever(self) -> None:
        while True:
            try:
                await self.run_cycle()
            except Exception:
                logger.exception("polling cycle failed")
            await asyncio.sleep(self.interval_seconds)

    def start(self) -> asyncio.Task:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self.run_forever(), name="ratewatch-poller")
            logger.info(
                "polling %d endpoints every %ss", len(self.endpoints), self.interval_seconds
            )
        return self._task

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    # Read access ----------------------------------------------
    def scrape_stats(self) -> ScrapeStats:
        stats = replace(self._stats)
        if stats.popular_rates is not None:
            stats.popular_rates = dict(stats.popular_rates)
        return stats

    @property
    def latest_snapshot(self) -> Optional[ExchangeSnapshot]:
        return self._latest

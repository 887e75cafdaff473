"""Smoke script: run a single polling cycle against the live provider endpoints.

Prints the tracker stats and the scrape summary afterwards. Network access is
required; failures show up as block events / log lines, not exceptions.

NOTE: This is a lightweight diagnostic and not a formal test.
"""

import asyncio
import json
import logging

from ratewatch.core.config import get_settings
from ratewatch.core.logging import init_logging
from ratewatch.models.endpoints import load_endpoints
from ratewatch.services.http_client import AsyncHttpClient
from ratewatch.services.rates.taptap import TapTapSendScraper
from ratewatch.services.scheduler import PollingScheduler
from ratewatch.services.stats import StatsQuery
from ratewatch.services.tracker import CallTracker


async def run():
    settings = get_settings()
    client = AsyncHttpClient(timeout=settings.http_timeout_seconds)
    tracker = CallTracker()
    scheduler = PollingScheduler(
        load_endpoints(settings.endpoints_file),
        client,
        TapTapSendScraper(client, str(settings.rates_url)),
        tracker,
    )
    try:
        await scheduler.run_cycle()
    finally:
        await client.aclose()

    stats = scheduler.scrape_stats()
    print(json.dumps(StatsQuery(tracker).get_stats().model_dump(by_alias=True), indent=2))
    print(
        json.dumps(
            {
                "total_scrapes": stats.total_scrapes,
                "failed_scrapes": stats.failed_scrapes,
                "last_rates_count": stats.last_rates_count,
                "popular_rates": stats.popular_rates,
            },
            indent=2,
        )
    )


if __name__ == "__main__":
    init_logging(debug=False)
    logging.getLogger("ratewatch").setLevel(logging.INFO)
    asyncio.run(run())

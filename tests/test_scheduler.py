import asyncio
import logging
import socket

import httpx
import pytest

from ratewatch.models.endpoints import EndpointConfig
from ratewatch.services.http_client import (
    AsyncHttpClient,
    DnsFailure,
    HttpStatusError,
    MalformedResponse,
    NetworkTimeout,
    RateLimited,
    UnknownFetchError,
)
from ratewatch.services.rates.taptap import TapTapSendScraper
from ratewatch.services.scheduler import SCRAPE_LABEL, PollingScheduler, classify
from ratewatch.services.tracker import BlockReason, CallTracker

RATES_URL = "https://rates.test/api/fxRates"

ENDPOINTS = [
    EndpointConfig(name="Ok", url="https://ok.test/rates"),
    EndpointConfig(
        name="Form",
        url="https://form.test/rates",
        method="POST",
        headers={"Content-Type": "application/x-www-form-urlencoded"},
        payload={"from": "GBP", "to": "NGN"},
    ),
    EndpointConfig(name="Limited", url="https://limited.test/rates"),
    EndpointConfig(name="Broken", url="https://broken.test/rates"),
    EndpointConfig(name="Slow", url="https://slow.test/rates"),
    EndpointConfig(name="Nowhere", url="https://nowhere.test/rates"),
]


def make_handler(payload, rates_status=200):
    def handler(request):
        host = request.url.host
        if host in ("ok.test", "form.test"):
            return httpx.Response(200, json={"ok": True})
        if host == "limited.test":
            return httpx.Response(429, headers={"Retry-After": "30"})
        if host == "broken.test":
            return httpx.Response(500)
        if host == "slow.test":
            raise httpx.ReadTimeout("timed out", request=request)
        if host == "nowhere.test":
            raise httpx.ConnectError("dns", request=request) from socket.gaierror(-2, "unknown")
        if host == "explodes.test":
            raise RuntimeError("boom")
        if host == "rates.test":
            if rates_status != 200:
                return httpx.Response(rates_status)
            return httpx.Response(200, json=payload)
        return httpx.Response(404)

    return handler


def build(handler, clock, endpoints=ENDPOINTS):
    client = AsyncHttpClient(transport=httpx.MockTransport(handler))
    tracker = CallTracker(clock=clock)
    scraper = TapTapSendScraper(client, RATES_URL, clock=clock)
    scheduler = PollingScheduler(endpoints, client, scraper, tracker, clock=clock)
    return scheduler, client, tracker


def run_cycles(scheduler, client, n=1):
    async def go():
        try:
            for _ in range(n):
                await scheduler.run_cycle()
        finally:
            await client.aclose()

    asyncio.run(go())


def test_cycle_counts_successes_and_blocks_http_failures_only(clock, fxrates_payload):
    scheduler, client, tracker = build(make_handler(fxrates_payload), clock)
    run_cycles(scheduler, client)

    snap = tracker.snapshot()
    # Ok + Form + the rate scrape
    assert (snap.daily.count, snap.weekly.count) == (3, 3)
    blocks = {(b.endpoint, b.status, b.reason) for b in snap.blocks}
    assert blocks == {
        ("Limited (https://limited.test/rates)", 429, BlockReason.RATE_LIMITED),
        ("Broken (https://broken.test/rates)", 500, BlockReason.HTTP_ERROR),
    }
    assert all(b.timestamp == "2024-05-07 10:00:00" for b in snap.blocks)


def test_failures_are_logged_with_context(clock, fxrates_payload, caplog):
    caplog.set_level(logging.INFO, logger="ratewatch")
    scheduler, client, _ = build(make_handler(fxrates_payload), clock)
    run_cycles(scheduler, client)

    text = caplog.text
    assert "Endpoint: Ok (https://ok.test/rates), Status: 200" in text
    assert "Endpoint: Limited (https://limited.test/rates), Error:" in text
    assert "Status: 429, Retry-After: 30s" in text
    assert "Endpoint: Slow (https://slow.test/rates), Error: timeout" in text
    assert "Endpoint: Nowhere (https://nowhere.test/rates), Error: could not resolve host" in text
    assert "Popular TapTapSend rates: USD→NGN: 1520.00, USD→GHS: 12.50" in text


def test_scrape_success_updates_stats(clock, fxrates_payload):
    scheduler, client, _ = build(make_handler(fxrates_payload), clock, endpoints=[])
    run_cycles(scheduler, client)

    stats = scheduler.scrape_stats()
    assert stats.total_scrapes == 1
    assert stats.failed_scrapes == 0
    assert stats.last_rates_count == 3
    assert stats.last_successful_scrape == "2024-05-07 10:00:00"
    assert stats.popular_rates == {"USD_NGN": 1520.0, "USD_GHS": 12.5}
    assert len(scheduler.latest_snapshot.rates) == 3


def test_failed_scrape_is_a_block_without_status(clock, fxrates_payload):
    scheduler, client, tracker = build(
        make_handler(fxrates_payload, rates_status=503), clock, endpoints=[]
    )
    run_cycles(scheduler, client)

    snap = tracker.snapshot()
    assert snap.daily.count == 0
    (block,) = snap.blocks
    assert block.endpoint == SCRAPE_LABEL
    assert block.status is None
    assert block.reason is BlockReason.SCRAPE_FAILED
    stats = scheduler.scrape_stats()
    assert (stats.total_scrapes, stats.failed_scrapes) == (1, 1)
    assert scheduler.latest_snapshot is None


def test_malformed_scrape_payload_is_a_failed_scrape(clock):
    scheduler, client, tracker = build(make_handler({"unexpected": True}), clock, endpoints=[])
    run_cycles(scheduler, client)
    assert tracker.snapshot().blocks[0].reason is BlockReason.SCRAPE_FAILED


def test_empty_rate_table_is_still_a_success(clock):
    scheduler, client, tracker = build(make_handler({"availableCountries": []}), clock, endpoints=[])
    run_cycles(scheduler, client)
    assert tracker.snapshot().daily.count == 1
    assert scheduler.latest_snapshot.rates == ()
    assert scheduler.scrape_stats().popular_rates is None


def test_scraper_exception_is_recorded(clock):
    class ExplodingScraper:
        async def scrape(self):
            raise RuntimeError("parser crashed")

    client = AsyncHttpClient(transport=httpx.MockTransport(make_handler({})))
    tracker = CallTracker(clock=clock)
    scheduler = PollingScheduler([], client, ExplodingScraper(), tracker, clock=clock)
    run_cycles(scheduler, client)

    (block,) = tracker.snapshot().blocks
    assert block.reason is BlockReason.SCRAPE_EXCEPTION
    assert scheduler.scrape_stats().failed_scrapes == 1


def test_unexpected_endpoint_error_does_not_stop_the_sweep(clock, fxrates_payload):
    endpoints = [
        EndpointConfig(name="Explodes", url="https://explodes.test/rates"),
        EndpointConfig(name="Ok", url="https://ok.test/rates"),
    ]
    scheduler, client, tracker = build(make_handler(fxrates_payload), clock, endpoints)
    run_cycles(scheduler, client)

    snap = tracker.snapshot()
    assert snap.daily.count == 2  # Ok + scrape
    assert snap.blocks == ()


def test_cycles_roll_buckets(clock, fxrates_payload):
    endpoints = [EndpointConfig(name="Ok", url="https://ok.test/rates")]
    scheduler, client, tracker = build(make_handler(fxrates_payload), clock, endpoints)

    async def go():
        try:
            await scheduler.run_cycle()
            clock.advance(days=1)
            await scheduler.run_cycle()
        finally:
            await client.aclose()

    asyncio.run(go())
    snap = tracker.snapshot()
    assert snap.daily.key == "2024-05-08"
    assert snap.daily.count == 2
    assert snap.weekly.count == 4


def test_start_runs_first_cycle_immediately_and_stop_cancels(clock, fxrates_payload):
    scheduler, client, _ = build(make_handler(fxrates_payload), clock, endpoints=[])
    scheduler.interval_seconds = 3600

    async def go():
        scheduler.start()
        try:
            for _ in range(200):
                if scheduler.scrape_stats().total_scrapes:
                    break
                await asyncio.sleep(0.01)
            assert scheduler.running
        finally:
            await scheduler.stop()
            await client.aclose()

    asyncio.run(go())
    assert scheduler.scrape_stats().total_scrapes == 1
    assert not scheduler.running


@pytest.mark.parametrize(
    "error,reason",
    [
        (RateLimited("x"), BlockReason.RATE_LIMITED),
        (HttpStatusError("x", status=404), BlockReason.HTTP_ERROR),
        (NetworkTimeout("x"), BlockReason.TIMEOUT),
        (DnsFailure("x"), BlockReason.NOT_FOUND),
        (MalformedResponse("x"), BlockReason.MALFORMED),
        (UnknownFetchError("x"), BlockReason.UNKNOWN),
    ],
)
def test_classify(error, reason):
    assert classify(error) is reason

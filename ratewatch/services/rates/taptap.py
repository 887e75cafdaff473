from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Optional

from ratewatch.services.http_client import (
    AsyncHttpClient,
    DnsFailure,
    FetchError,
    HttpStatusError,
    MalformedResponse,
    NetworkTimeout,
)
from .normalizer import (
    DEFAULT_SAMPLE_AMOUNT,
    ExchangeSnapshot,
    format_timestamp,
    normalize,
)

"""TapTapSend fxRates scraper.

Fetches the public web pricing feed and hands the payload to ``normalize``.
Failures never escape ``scrape()``: they are logged with a short category and
reported to the caller as ``None`` (zero rates retrieved).
"""

logger = logging.getLogger("ratewatch.rates.taptap")

TAPTAP_FXRATES_URL = "https://api.taptapsend.com/api/fxRates"
TAPTAP_HEADERS = {
    "Appian-Version": "web/2022-05-03.0",
    "X-Device-Id": "web",
    "X-Device-Model": "web",
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36"
    ),
}


def describe_failure(error: FetchError) -> str:
    if isinstance(error, HttpStatusError):
        return f"HTTP {error.status}"
    if isinstance(error, NetworkTimeout):
        return "Request timeout"
    if isinstance(error, DnsFailure):
        return "DNS resolution failed"
    if isinstance(error, MalformedResponse):
        return f"Malformed response ({error.message})"
    return error.message


class TapTapSendScraper:
    def __init__(
        self,
        client: AsyncHttpClient,
        url: str = TAPTAP_FXRATES_URL,
        *,
        sample_amount: float = DEFAULT_SAMPLE_AMOUNT,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self._client = client
        self.url = url
        self.sample_amount = sample_amount
        self._clock = clock

    async def scrape(self) -> Optional[ExchangeSnapshot]:
        timestamp = format_timestamp(self._clock())
        try:
            payload = await self._client.get_json(self.url, headers=TAPTAP_HEADERS)
            return normalize(
                payload, timestamp=timestamp, sample_amount=self.sample_amount
            )
        except FetchError as e:
            logger.warning("TapTapSend scraping failed: %s", describe_failure(e))
            return None

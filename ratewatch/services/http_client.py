from __future__ import annotations

"""Async HTTP client used for polling provider endpoints.

Every failure surfaces as one of a closed set of ``FetchError`` subclasses so
callers can branch on the type instead of inspecting error strings:

    NetworkTimeout     connect/read timed out
    DnsFailure         host name could not be resolved
    HttpStatusError    upstream answered with status >= 400
    RateLimited        status 429 (subclass of HttpStatusError)
    MalformedResponse  body was not the JSON we expected
    UnknownFetchError  anything else on the transport
"""
import socket
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

import httpx

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"
DEFAULT_TIMEOUT_SECONDS = 10.0


class FetchError(Exception):
    status: Optional[int] = None

    def __init__(self, message: str, *, url: str = ""):
        super().__init__(message)
        self.message = message
        self.url = url


class NetworkTimeout(FetchError):
    pass


class DnsFailure(FetchError):
    pass


class HttpStatusError(FetchError):
    def __init__(
        self,
        message: str,
        *,
        url: str = "",
        status: int,
        headers: Optional[Mapping[str, str]] = None,
    ):
        super().__init__(message, url=url)
        self.status = status
        self.headers: Dict[str, str] = dict(headers or {})


class RateLimited(HttpStatusError):
    def __init__(
        self,
        message: str,
        *,
        url: str = "",
        headers: Optional[Mapping[str, str]] = None,
        retry_after: Optional[str] = None,
    ):
        super().__init__(message, url=url, status=429, headers=headers)
        self.retry_after = retry_after


class MalformedResponse(FetchError):
    pass


class UnknownFetchError(FetchError):
    pass


@dataclass(frozen=True)
class HttpResponse:
    status_code: int
    body: Any
    headers: Dict[str, str] = field(default_factory=dict)


def _is_dns_failure(exc: BaseException) -> bool:
    seen = set()
    cur: Optional[BaseException] = exc
    while cur is not None and id(cur) not in seen:
        if isinstance(cur, socket.gaierror):
            return True
        seen.add(id(cur))
        cur = cur.__cause__ or cur.__context__
    return False


def is_form_encoded(headers: Optional[Mapping[str, str]]) -> bool:
    for key, value in (headers or {}).items():
        if key.lower() == "content-type":
            return value.split(";")[0].strip().lower() == FORM_CONTENT_TYPE
    return False


def _body_kwargs(
    headers: Optional[Mapping[str, str]], payload: Optional[Mapping[str, Any]]
) -> Dict[str, Any]:
    if payload is None:
        return {}
    if is_form_encoded(headers):
        return {"data": {k: str(v) for k, v in payload.items()}}
    return {"json": payload}


def _decode_body(response: httpx.Response) -> Any:
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text


class AsyncHttpClient:
    """Thin wrapper over ``httpx.AsyncClient`` with a fixed per-call timeout."""

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.timeout = timeout
        self._client = httpx.AsyncClient(
            timeout=timeout, transport=transport, follow_redirects=True
        )

    async def request(
        self,
        method: str,
        url: str,
        *,
        headers: Optional[Mapping[str, str]] = None,
        payload: Optional[Mapping[str, Any]] = None,
    ) -> HttpResponse:
        try:
            response = await self._client.request(
                method.upper(),
                url,
                headers=dict(headers or {}),
                **_body_kwargs(headers, payload),
            )
        except httpx.TimeoutException as e:
            raise NetworkTimeout(f"timeout after {self.timeout}s", url=url) from e
        except httpx.HTTPError as e:
            if _is_dns_failure(e):
                raise DnsFailure(f"could not resolve host: {e}", url=url) from e
            raise UnknownFetchError(str(e) or e.__class__.__name__, url=url) from e

        if response.status_code == 429:
            raise RateLimited(
                f"Request failed with status code {response.status_code}",
                url=url,
                headers=response.headers,
                retry_after=response.headers.get("retry-after"),
            )
        if response.status_code >= 400:
            raise HttpStatusError(
                f"Request failed with status code {response.status_code}",
                url=url,
                status=response.status_code,
                headers=response.headers,
            )
        return HttpResponse(
            status_code=response.status_code,
            body=_decode_body(response),
            headers=dict(response.headers),
        )

    async def get_json(
        self, url: str, *, headers: Optional[Mapping[str, str]] = None
    ) -> Any:
        resp = await self.request("GET", url, headers=headers)
        if isinstance(resp.body, (dict, list)):
            return resp.body
        raise MalformedResponse("response body is not JSON", url=url)

    async def aclose(self) -> None:
        await self._client.aclose()


"""HTTP retrieval with per-request deadlines, retries and a shared slot pool.

``PageFetcher`` owns the aiohttp session and the run's ``ConcurrencyPool``.
Every request attempt holds one pool slot for its whole lifetime, so all
callers sharing a fetcher (link checks and whole-site audits alike) respect a
single in-flight ceiling.

Outcomes are values, not exceptions: a call returns either an ``HttpResponse``
or one of the ``FetchError`` variants. Completed responses are returned as
``HttpResponse`` whatever their status code; classification by status band is
left to the caller.
"""

from __future__ import annotations

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import AsyncIterator, Dict, Optional, Tuple, Union

import aiohttp

from .audit_config import DEFAULT_CONFIG, AuditConfig
from .url_utils import is_valid

logger = logging.getLogger(__name__)

HTTP_METHODS = ("GET", "HEAD", "POST")

# (status, reason, headers, body, final_url, redirected)
RawResponse = Tuple[int, str, Dict[str, str], str, str, bool]


@dataclass(frozen=True)
class HttpResponse:
    status: int
    status_text: str
    headers: Dict[str, str] = field(default_factory=dict)
    body: str = ""
    redirected: bool = False
    final_url: str = ""
    elapsed_ms: float = 0.0


@dataclass(frozen=True)
class FetchError:
    """Base of the closed set of fetch failures."""


@dataclass(frozen=True)
class Timeout(FetchError):
    pass


@dataclass(frozen=True)
class NetworkError(FetchError):
    message: str


@dataclass(frozen=True)
class InvalidUrl(FetchError):
    message: str


@dataclass(frozen=True)
class HttpError(FetchError):
    status: int
    message: str


FetchOutcome = Union[HttpResponse, Timeout, NetworkError, InvalidUrl, HttpError]


def is_retriable(error: FetchError) -> bool:
    """Transport failures are transient; bad input and HTTP errors are not."""

    if isinstance(error, (Timeout, NetworkError)):
        return True
    if isinstance(error, (InvalidUrl, HttpError)):
        return False
    raise TypeError(f"Unknown fetch error variant: {error!r}")


def describe_error(error: FetchError) -> str:
    if isinstance(error, Timeout):
        return "Request timed out"
    if isinstance(error, NetworkError):
        return f"Network error: {error.message}"
    if isinstance(error, InvalidUrl):
        return f"Invalid URL: {error.message}"
    if isinstance(error, HttpError):
        return f"HTTP {error.status}: {error.message}"
    raise TypeError(f"Unknown fetch error variant: {error!r}")


def is_success_status(status: int) -> bool:
    return 200 <= status <= 299


def is_redirect_status(status: int) -> bool:
    return 300 <= status <= 399


def is_client_error_status(status: int) -> bool:
    return 400 <= status <= 499


def is_server_error_status(status: int) -> bool:
    return 500 <= status <= 599


def get_content_type(response: HttpResponse) -> Optional[str]:
    raw = response.headers.get("content-type")
    if not raw:
        return None
    return raw.split(";")[0].strip().lower() or None


def is_html_content(response: HttpResponse) -> bool:
    content_type = get_content_type(response)
    return bool(content_type) and ("text/html" in content_type or "application/xhtml" in content_type)


def as_http_error(response: HttpResponse) -> Optional[HttpError]:
    """Surface a 4xx/5xx response as an ``HttpError`` for callers that want one."""

    if response.status >= 400:
        return HttpError(response.status, response.status_text or "HTTP error")
    return None


class ConcurrencyPool:
    """Bounded pool of request slots shared by everything in one run."""

    def __init__(self, limit: int) -> None:
        if limit < 1:
            raise ValueError("limit must be at least 1")
        self.limit = limit
        self._semaphore = asyncio.Semaphore(limit)
        self.in_flight = 0
        self.peak = 0

    @asynccontextmanager
    async def slot(self) -> AsyncIterator[None]:
        async with self._semaphore:
            self.in_flight += 1
            self.peak = max(self.peak, self.in_flight)
            try:
                yield
            finally:
                self.in_flight -= 1


class PageFetcher:
    """Async HTTP client for one run: one aiohttp session, one slot pool."""

    def __init__(
        self,
        config: AuditConfig = DEFAULT_CONFIG,
        *,
        session: Optional[aiohttp.ClientSession] = None,
        pool: Optional[ConcurrencyPool] = None,
    ) -> None:
        self.config = config
        self.pool = pool or ConcurrencyPool(config.max_concurrency)
        self._session = session
        self._owns_session = session is None

    async def __aenter__(self) -> "PageFetcher":
        await self.open()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def open(self) -> None:
        if self._session is not None:
            return
        connector = aiohttp.TCPConnector(limit=self.config.max_concurrency)
        headers = {
            "User-Agent": self.config.user_agent,
            "Accept-Encoding": "gzip, deflate",
        }
        self._session = aiohttp.ClientSession(
            connector=connector,
            headers=headers,
            timeout=aiohttp.ClientTimeout(total=self.config.timeout_seconds),
        )

    async def close(self) -> None:
        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None

    async def _send(self, method: str, url: str) -> RawResponse:
        if self._session is None:
            await self.open()
        assert self._session is not None
        async with self._session.request(method, url, allow_redirects=True) as resp:
            body = "" if method == "HEAD" else await resp.text(errors="replace")
            headers = {key: value for key, value in resp.headers.items()}
            return resp.status, resp.reason or "", headers, body, str(resp.url), bool(resp.history)

    async def fetch(self, url: str, method: str = "GET") -> FetchOutcome:
        """Issue exactly one request and classify the outcome."""

        method = method.upper()
        if method not in HTTP_METHODS:
            raise ValueError(f"Unsupported HTTP method: {method}")
        if not is_valid(url):
            return InvalidUrl(f"{url!r} is not an absolute http(s) URL")

        async with self.pool.slot():
            start = time.perf_counter()
            try:
                status, reason, raw_headers, body, final_url, redirected = await asyncio.wait_for(
                    self._send(method, url),
                    timeout=self.config.timeout_seconds,
                )
            except asyncio.TimeoutError:
                logger.debug("%s %s timed out after %dms", method, url, self.config.timeout_ms)
                return Timeout()
            except aiohttp.InvalidURL as exc:
                return InvalidUrl(str(exc) or url)
            except (aiohttp.ClientError, OSError) as exc:
                logger.debug("%s %s failed: %s", method, url, exc)
                return NetworkError(str(exc) or exc.__class__.__name__)
            except ValueError as exc:
                return InvalidUrl(str(exc) or url)
            elapsed_ms = (time.perf_counter() - start) * 1000.0

        headers: Dict[str, str] = {}
        for key, value in raw_headers.items():
            headers[key.lower()] = value
        return HttpResponse(
            status=status,
            status_text=reason,
            headers=headers,
            body=body,
            redirected=redirected,
            final_url=final_url or url,
            elapsed_ms=elapsed_ms,
        )

    async def fetch_with_retry(self, url: str, method: str = "GET") -> FetchOutcome:
        """Fetch with up to ``retry_attempts`` tries on transport failure.

        The constant ``retry_delay_ms`` pause happens outside the pool slot.
        The last error is returned once attempts are exhausted.
        """
        attempts = self.config.retry_attempts
        outcome: FetchOutcome = await self.fetch(url, method)
        attempt = 1
        while isinstance(outcome, FetchError) and is_retriable(outcome) and attempt < attempts:
            logger.info(
                "retrying %s %s (%s, attempt %d/%d)",
                method,
                url,
                describe_error(outcome),
                attempt + 1,
                attempts,
            )
            await asyncio.sleep(self.config.retry_delay_seconds)
            attempt += 1
            outcome = await self.fetch(url, method)
        return outcome


async def fetch(url: str, method: str = "GET", config: AuditConfig = DEFAULT_CONFIG) -> FetchOutcome:
    """One-shot fetch using a throwaway session."""

    async with PageFetcher(config) as fetcher:
        return await fetcher.fetch(url, method)


async def fetch_with_retry(url: str, config: AuditConfig = DEFAULT_CONFIG, method: str = "GET") -> FetchOutcome:
    async with PageFetcher(config) as fetcher:
        return await fetcher.fetch_with_retry(url, method)


__all__ = [
    "HTTP_METHODS",
    "HttpResponse",
    "FetchError",
    "Timeout",
    "NetworkError",
    "InvalidUrl",
    "HttpError",
    "FetchOutcome",
    "is_retriable",
    "describe_error",
    "is_success_status",
    "is_redirect_status",
    "is_client_error_status",
    "is_server_error_status",
    "get_content_type",
    "is_html_content",
    "as_http_error",
    "ConcurrencyPool",
    "PageFetcher",
    "fetch",
    "fetch_with_retry",
]

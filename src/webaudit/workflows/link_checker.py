"""Concurrent reachability checks for the links found on a page."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, Iterable, List, Optional, Sequence, Tuple, TypeVar

from .audit_config import DEFAULT_CONFIG, AuditConfig
from .http_fetch import (
    FetchError,
    HttpResponse,
    PageFetcher,
    describe_error,
    is_redirect_status,
)
from .url_utils import host_of, normalize

logger = logging.getLogger(__name__)

# Servers that refuse HEAD get a second chance with GET.
HEAD_REJECTED_STATUSES = {405, 501}

T = TypeVar("T")
R = TypeVar("R")


@dataclass(frozen=True)
class LinkStatus:
    url: str
    status: int
    status_text: str
    external: bool
    broken: bool
    redirect_url: Optional[str] = None
    response_time: float = 0.0
    error_message: Optional[str] = None

    @property
    def timed(self) -> bool:
        return self.error_message is None

    @property
    def redirected(self) -> bool:
        return self.redirect_url is not None or is_redirect_status(self.status)


@dataclass(frozen=True)
class LinkCheckResult:
    checked_links: Tuple[LinkStatus, ...]
    total_links: int
    broken_links: int
    external_links: int
    redirects: int
    average_response_time: float

    @classmethod
    def from_statuses(cls, statuses: Iterable[LinkStatus]) -> "LinkCheckResult":
        """Derive every aggregate from the per-link entries."""

        checked = tuple(statuses)
        timings = [s.response_time for s in checked if s.timed]
        return cls(
            checked_links=checked,
            total_links=len(checked),
            broken_links=sum(1 for s in checked if s.broken),
            external_links=sum(1 for s in checked if s.external),
            redirects=sum(1 for s in checked if s.redirected),
            average_response_time=(sum(timings) / len(timings)) if timings else 0.0,
        )

    @property
    def broken(self) -> List[LinkStatus]:
        return [s for s in self.checked_links if s.broken]

    @property
    def score(self) -> float:
        if self.total_links == 0:
            return 100.0
        return round(100.0 * (1 - self.broken_links / self.total_links), 1)


def dedupe_links(urls: Iterable[str]) -> List[str]:
    """Keep the first occurrence of every normalized URL, in order."""

    seen: Dict[str, str] = {}
    for url in urls:
        key = normalize(url)
        if key not in seen:
            seen[key] = url
    return list(seen.values())


async def run_indexed(items: Sequence[T], worker: Callable[[T], Awaitable[R]]) -> List[R]:
    """Run ``worker`` on every item concurrently; results keep input order."""

    slots: List[Optional[R]] = [None] * len(items)

    async def _run(index: int, item: T) -> None:
        slots[index] = await worker(item)

    await asyncio.gather(*(_run(idx, item) for idx, item in enumerate(items)))
    return slots  # type: ignore[return-value]


def _status_from_response(url: str, response: HttpResponse, external: bool) -> LinkStatus:
    redirect_url: Optional[str] = None
    if response.redirected or is_redirect_status(response.status):
        redirect_url = response.final_url or response.headers.get("location") or url
    return LinkStatus(
        url=url,
        status=response.status,
        status_text=response.status_text,
        external=external,
        broken=response.status >= 400,
        redirect_url=redirect_url,
        response_time=response.elapsed_ms,
    )


def _status_from_error(url: str, error: FetchError, external: bool) -> LinkStatus:
    return LinkStatus(
        url=url,
        status=0,
        status_text="",
        external=external,
        broken=True,
        error_message=describe_error(error),
    )


class LinkChecker:
    """Checks links through a shared ``PageFetcher`` (and its slot pool)."""

    def __init__(self, fetcher: PageFetcher) -> None:
        self.fetcher = fetcher

    async def check_link(self, url: str, base_url: str) -> LinkStatus:
        external = host_of(url) != host_of(base_url)
        outcome = await self.fetcher.fetch_with_retry(url, "HEAD")
        if isinstance(outcome, HttpResponse) and outcome.status in HEAD_REJECTED_STATUSES:
            logger.debug("HEAD rejected by %s (%d); retrying with GET", url, outcome.status)
            outcome = await self.fetcher.fetch_with_retry(url, "GET")
        if isinstance(outcome, HttpResponse):
            return _status_from_response(url, outcome, external)
        if isinstance(outcome, FetchError):
            return _status_from_error(url, outcome, external)
        raise TypeError(f"Unexpected fetch outcome: {outcome!r}")

    async def check_links(self, urls: Iterable[str], base_url: str) -> LinkCheckResult:
        unique = dedupe_links(urls)
        logger.info("checking %d link(s) for %s", len(unique), base_url)
        statuses = await run_indexed(unique, lambda link: self.check_link(link, base_url))
        result = LinkCheckResult.from_statuses(statuses)
        if result.broken_links:
            logger.info("%d broken link(s) on %s", result.broken_links, base_url)
        return result


async def check_link(url: str, base_url: str, config: AuditConfig = DEFAULT_CONFIG) -> LinkStatus:
    async with PageFetcher(config) as fetcher:
        return await LinkChecker(fetcher).check_link(url, base_url)


async def check_links(urls: Iterable[str], base_url: str, config: AuditConfig = DEFAULT_CONFIG) -> LinkCheckResult:
    """Check every link under the config's concurrency ceiling."""

    async with PageFetcher(config) as fetcher:
        return await LinkChecker(fetcher).check_links(urls, base_url)


__all__ = [
    "LinkStatus",
    "LinkCheckResult",
    "LinkChecker",
    "dedupe_links",
    "run_indexed",
    "check_link",
    "check_links",
]

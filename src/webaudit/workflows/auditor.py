"""Audit orchestration: one root fetch per URL, then every enabled check.

The root page is fetched once (with retries). When that fails the URL's
outcome is an error and no partial report exists. Otherwise the link check and
the analyzers run concurrently against the same body; a check that raises is
logged and left out of the report instead of failing the audit.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import asdict, dataclass, replace
from datetime import datetime, timezone
from typing import Any, Awaitable, Dict, List, Optional, Sequence

from ..core.keys import (
    K_ACCESSIBILITY,
    K_ERROR,
    K_EXECUTION_TIME,
    K_LINK_CHECK,
    K_OK,
    K_OVERALL_SCORE,
    K_PERFORMANCE,
    K_SCORE,
    K_SEO,
    K_TIMESTAMP,
    K_URL,
)
from .analyzers import accessibility, performance, seo
from .analyzers.accessibility import AccessibilityResult
from .analyzers.performance import PerformanceResult
from .analyzers.seo import SeoResult
from .audit_config import DEFAULT_CONFIG, AuditConfig
from .http_fetch import FetchError, PageFetcher, as_http_error, describe_error, is_html_content
from .link_checker import LinkChecker, LinkCheckResult, run_indexed
from .url_utils import extract_links

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuditOptions:
    config: AuditConfig = DEFAULT_CONFIG
    check_links: bool = True
    check_accessibility: bool = True
    check_performance: bool = True
    check_seo: bool = True


DEFAULT_OPTIONS = AuditOptions()


def make_options(
    config: AuditConfig = DEFAULT_CONFIG,
    *,
    check_links: bool = True,
    check_accessibility: Optional[bool] = None,
    check_performance: Optional[bool] = None,
    check_seo: Optional[bool] = None,
) -> AuditOptions:
    """Options for ``config``; analyzer toggles default to the config's own."""

    return AuditOptions(
        config=config,
        check_links=check_links,
        check_accessibility=config.check_accessibility if check_accessibility is None else check_accessibility,
        check_performance=config.check_performance if check_performance is None else check_performance,
        check_seo=config.check_seo if check_seo is None else check_seo,
    )


def _utc_timestamp() -> str:
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")


def _section(result: Any) -> Optional[Dict[str, Any]]:
    if result is None:
        return None
    payload = asdict(result)
    payload[K_SCORE] = result.score
    return payload


@dataclass(frozen=True)
class AuditReport:
    url: str
    timestamp: str
    link_check: Optional[LinkCheckResult] = None
    accessibility: Optional[AccessibilityResult] = None
    performance: Optional[PerformanceResult] = None
    seo: Optional[SeoResult] = None
    overall_score: float = 0.0
    execution_time: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            K_URL: self.url,
            K_TIMESTAMP: self.timestamp,
            K_OVERALL_SCORE: self.overall_score,
            K_EXECUTION_TIME: round(self.execution_time, 1),
            K_LINK_CHECK: _section(self.link_check),
            K_ACCESSIBILITY: _section(self.accessibility),
            K_PERFORMANCE: _section(self.performance),
            K_SEO: _section(self.seo),
        }


def calculate_overall_score(
    link_check: Optional[LinkCheckResult] = None,
    accessibility_result: Optional[AccessibilityResult] = None,
    performance_result: Optional[PerformanceResult] = None,
    seo_result: Optional[SeoResult] = None,
) -> float:
    """Mean of the present sub-scores; absent checks do not count at all."""

    present = [r.score for r in (link_check, accessibility_result, performance_result, seo_result) if r is not None]
    if not present:
        return 0.0
    return round(sum(present) / len(present), 1)


@dataclass(frozen=True)
class AuditOutcome:
    """Base of the per-URL result: exactly one of ``AuditOk`` or ``AuditError``."""

    url: str

    @property
    def ok(self) -> bool:
        return isinstance(self, AuditOk)


@dataclass(frozen=True)
class AuditOk(AuditOutcome):
    report: AuditReport

    def to_dict(self) -> Dict[str, Any]:
        return {K_OK: True, **self.report.to_dict()}


@dataclass(frozen=True)
class AuditError(AuditOutcome):
    error: str

    def to_dict(self) -> Dict[str, Any]:
        return {K_OK: False, K_URL: self.url, K_ERROR: self.error}


async def _run_check(name: str, url: str, pending: Awaitable[Any]) -> Any:
    try:
        return await pending
    except Exception as exc:
        logger.warning("%s check failed for %s: %s", name, url, exc)
        return None


class Auditor:
    """Runs audits through one ``PageFetcher`` so every request shares its pool."""

    def __init__(self, fetcher: PageFetcher) -> None:
        self.fetcher = fetcher
        self.link_checker = LinkChecker(fetcher)

    def _failed(self, url: str, error: FetchError) -> AuditOutcome:
        message = describe_error(error)
        logger.warning("audit of %s failed: %s", url, message)
        return AuditError(url=url, error=message)

    async def _check_links(self, html: str, base_url: str) -> LinkCheckResult:
        links = extract_links(html, base_url)
        return await self.link_checker.check_links(links, base_url)

    async def audit_website(self, url: str, options: AuditOptions = DEFAULT_OPTIONS) -> AuditOutcome:
        start = time.perf_counter()
        timestamp = _utc_timestamp()

        outcome = await self.fetcher.fetch_with_retry(url, "GET")
        if isinstance(outcome, FetchError):
            return self._failed(url, outcome)
        http_error = as_http_error(outcome)
        if http_error is not None:
            return self._failed(url, http_error)

        if not is_html_content(outcome):
            logger.warning("%s is not served as HTML (%s); auditing anyway", url, outcome.headers.get("content-type"))
        html = outcome.body
        base_url = outcome.final_url or url

        names: List[str] = []
        pending: List[Awaitable[Any]] = []
        if options.check_links:
            names.append(K_LINK_CHECK)
            pending.append(self._check_links(html, base_url))
        if options.check_accessibility:
            names.append(K_ACCESSIBILITY)
            pending.append(asyncio.to_thread(accessibility.check, html, base_url))
        if options.check_performance:
            names.append(K_PERFORMANCE)
            pending.append(asyncio.to_thread(performance.analyze, html, base_url))
        if options.check_seo:
            names.append(K_SEO)
            pending.append(asyncio.to_thread(seo.analyze, html, base_url))

        results = await asyncio.gather(*(_run_check(name, url, item) for name, item in zip(names, pending)))
        sections: Dict[str, Any] = dict(zip(names, results))

        report = AuditReport(
            url=url,
            timestamp=timestamp,
            link_check=sections.get(K_LINK_CHECK),
            accessibility=sections.get(K_ACCESSIBILITY),
            performance=sections.get(K_PERFORMANCE),
            seo=sections.get(K_SEO),
        )
        report = replace(
            report,
            overall_score=calculate_overall_score(report.link_check, report.accessibility, report.performance, report.seo),
            execution_time=(time.perf_counter() - start) * 1000.0,
        )
        logger.info("audited %s: score %.1f in %.0fms", url, report.overall_score, report.execution_time)
        return AuditOk(url=url, report=report)

    async def audit_multiple(self, urls: Sequence[str], options: AuditOptions = DEFAULT_OPTIONS) -> List[AuditOutcome]:
        """Audit every URL; outcomes keep input order and never affect each other."""

        return await run_indexed(list(urls), lambda target: self.audit_website(target, options))


async def audit_website(url: str, options: AuditOptions = DEFAULT_OPTIONS) -> AuditOutcome:
    async with PageFetcher(options.config) as fetcher:
        return await Auditor(fetcher).audit_website(url, options)


async def audit_multiple(urls: Sequence[str], options: AuditOptions = DEFAULT_OPTIONS) -> List[AuditOutcome]:
    """Audit ``urls`` through one fetcher so the whole batch shares one slot pool."""

    async with PageFetcher(options.config) as fetcher:
        return await Auditor(fetcher).audit_multiple(urls, options)


__all__ = [
    "AuditOptions",
    "AuditReport",
    "AuditOutcome",
    "AuditOk",
    "AuditError",
    "Auditor",
    "DEFAULT_OPTIONS",
    "make_options",
    "calculate_overall_score",
    "audit_website",
    "audit_multiple",
]

"""Performance estimates derived from static markup.

No rendering happens here: resource sizes and timings are heuristics based on
what the page references.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional

from bs4 import BeautifulSoup  # type: ignore

# (size, transfer size, duration ms) estimates per resource type
RESOURCE_ESTIMATES = {
    "script": (50_000, 20_000, 150.0),
    "stylesheet": (30_000, 10_000, 100.0),
    "image": (150_000, 150_000, 200.0),
}

HEAVY_PAGE_BYTES = 3_000_000
SLOW_LOAD_MS = 3_000.0
SLUGGISH_LOAD_MS = 2_000.0
MANY_REQUESTS = 50
BLOCKING_SCRIPT_LIMIT = 3


@dataclass(frozen=True)
class ResourceTiming:
    url: str
    resource_type: str
    size: int
    transfer_size: int
    duration: float


@dataclass(frozen=True)
class PerformanceMetrics:
    dom_content_loaded: float
    load_complete: float
    total_page_size: int
    total_transfer_size: int
    resource_count: int
    resources: List[ResourceTiming] = field(default_factory=list)
    score: float = 0.0
    first_contentful_paint: Optional[float] = None
    largest_contentful_paint: Optional[float] = None
    cumulative_layout_shift: Optional[float] = None
    first_input_delay: Optional[float] = None
    time_to_interactive: Optional[float] = None


@dataclass(frozen=True)
class PerformanceResult:
    metrics: PerformanceMetrics
    suggestions: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def score(self) -> float:
        return self.metrics.score


def calculate_score(metrics: PerformanceMetrics) -> float:
    score = 100.0 - metrics.total_page_size / 100_000
    if metrics.load_complete > SLOW_LOAD_MS:
        score -= 20
    elif metrics.load_complete > SLUGGISH_LOAD_MS:
        score -= 10
    if metrics.total_page_size > HEAVY_PAGE_BYTES:
        score -= 10
    return round(max(0.0, score), 1)


def get_resources_by_type(metrics: PerformanceMetrics) -> Dict[str, List[ResourceTiming]]:
    grouped: Dict[str, List[ResourceTiming]] = defaultdict(list)
    for resource in metrics.resources:
        grouped[resource.resource_type].append(resource)
    return dict(grouped)


def get_total_size_by_type(metrics: PerformanceMetrics) -> Dict[str, int]:
    totals: Dict[str, int] = defaultdict(int)
    for resource in metrics.resources:
        totals[resource.resource_type] += resource.size
    return dict(totals)


def format_bytes(size: float) -> str:
    kb = size / 1024
    mb = kb / 1024
    if mb >= 1:
        return f"{mb:.2f}MB"
    if kb >= 1:
        return f"{kb:.2f}KB"
    return f"{int(size)}B"


def _is_stylesheet(link) -> bool:
    rel = link.get("rel") or []
    if isinstance(rel, str):
        rel = rel.split()
    return "stylesheet" in [token.lower() for token in rel]


def _collect_resources(soup: BeautifulSoup) -> List[ResourceTiming]:
    resources: List[ResourceTiming] = []

    def add(url: str, kind: str) -> None:
        size, transfer, duration = RESOURCE_ESTIMATES[kind]
        resources.append(ResourceTiming(url=url, resource_type=kind, size=size, transfer_size=transfer, duration=duration))

    for script in soup.find_all("script", src=True):
        add(script["src"], "script")
    for link in soup.find_all("link", href=True):
        if _is_stylesheet(link):
            add(link["href"], "stylesheet")
    for img in soup.find_all("img", src=True):
        add(img["src"], "image")
    return resources


def analyze(html: str, url: str) -> PerformanceResult:
    """Estimate page weight and load timings for ``html``."""

    html = html or ""
    soup = BeautifulSoup(html, "lxml")
    resources = _collect_resources(soup)

    html_size = len(html.encode("utf-8"))
    total_size = html_size + sum(r.size for r in resources)
    total_transfer = html_size + sum(r.transfer_size for r in resources)
    resource_count = len(resources)
    load_estimate = 500 + resource_count * 50 + total_size / 50_000

    metrics = PerformanceMetrics(
        first_contentful_paint=800 + total_size / 100_000,
        largest_contentful_paint=1200 + total_size / 50_000,
        cumulative_layout_shift=round(0.05 + resource_count * 0.01, 3),
        time_to_interactive=load_estimate * 1.5,
        dom_content_loaded=load_estimate * 0.7,
        load_complete=load_estimate,
        total_page_size=total_size,
        total_transfer_size=total_transfer,
        resource_count=resource_count,
        resources=resources,
    )
    metrics = replace(metrics, score=calculate_score(metrics))

    suggestions: List[str] = []
    warnings: List[str] = []

    blocking = [
        s for s in soup.find_all("script", src=True)
        if not s.has_attr("async") and not s.has_attr("defer")
    ]
    if len(blocking) > BLOCKING_SCRIPT_LIMIT:
        suggestions.append(f"{len(blocking)} render-blocking scripts found; add async or defer")
    elif blocking:
        suggestions.append(f"{len(blocking)} script(s) without async/defer")

    eager_images = [img for img in soup.find_all("img") if (img.get("loading") or "").lower() != "lazy"]
    if len(eager_images) > 3:
        suggestions.append(f"Consider lazy loading: {len(eager_images)} images load eagerly")

    if resource_count > MANY_REQUESTS:
        suggestions.append(f"Reduce the number of requests ({resource_count} resources referenced)")

    if total_size > HEAVY_PAGE_BYTES:
        warnings.append(f"Estimated page weight is high: {format_bytes(total_size)}")
    if load_estimate > SLOW_LOAD_MS:
        warnings.append(f"Estimated load time is slow: {load_estimate:.0f}ms")

    return PerformanceResult(metrics=metrics, suggestions=suggestions, warnings=warnings)


__all__ = [
    "ResourceTiming",
    "PerformanceMetrics",
    "PerformanceResult",
    "analyze",
    "calculate_score",
    "get_resources_by_type",
    "get_total_size_by_type",
    "format_bytes",
]

"""Content analyzers: pure functions over an already-fetched HTML body."""

from . import accessibility, performance, seo
from .accessibility import AccessibilityIssue, AccessibilityResult
from .performance import PerformanceMetrics, PerformanceResult, ResourceTiming
from .seo import SeoData, SeoIssue, SeoResult

__all__ = [
    "accessibility",
    "performance",
    "seo",
    "AccessibilityIssue",
    "AccessibilityResult",
    "PerformanceMetrics",
    "PerformanceResult",
    "ResourceTiming",
    "SeoData",
    "SeoIssue",
    "SeoResult",
]

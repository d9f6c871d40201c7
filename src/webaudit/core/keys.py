"""Shared report keys to avoid magic strings across webaudit modules."""

from __future__ import annotations

# Report envelope keys
K_URL = "url"
K_TIMESTAMP = "timestamp"
K_OVERALL_SCORE = "overall_score"
K_EXECUTION_TIME = "execution_time_ms"
K_ERROR = "error"
K_OK = "ok"

# Per-check sections
K_LINK_CHECK = "link_check"
K_ACCESSIBILITY = "accessibility"
K_PERFORMANCE = "performance"
K_SEO = "seo"
K_SCORE = "score"

"""Audit defaults and the immutable per-run configuration.

Centralizes static defaults so the fetch and audit modules have no embedded
magic numbers. Callers build one ``AuditConfig`` per run (directly, through
``make_config`` or from the environment) and pass it to every operation.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields, replace
from enum import Enum
from typing import Any, Dict, Optional

# Defaults
DEFAULT_MAX_DEPTH = 3
DEFAULT_TIMEOUT_MS = 30_000
DEFAULT_USER_AGENT = "WebAudit/1.0 (+https://github.com/webaudit)"
DEFAULT_MAX_CONCURRENCY = 10
DEFAULT_RETRY_ATTEMPTS = 3
DEFAULT_RETRY_DELAY_MS = 1_000

# Environment variable names
ENV_PREFIX = "WEBAUDIT_"
ENV_MAX_DEPTH = "WEBAUDIT_MAX_DEPTH"
ENV_FOLLOW_EXTERNAL = "WEBAUDIT_FOLLOW_EXTERNAL"
ENV_TIMEOUT_MS = "WEBAUDIT_TIMEOUT_MS"
ENV_USER_AGENT = "WEBAUDIT_USER_AGENT"
ENV_MAX_CONCURRENCY = "WEBAUDIT_MAX_CONCURRENCY"
ENV_RETRY_ATTEMPTS = "WEBAUDIT_RETRY_ATTEMPTS"
ENV_RETRY_DELAY_MS = "WEBAUDIT_RETRY_DELAY_MS"
ENV_VERBOSE = "WEBAUDIT_VERBOSE"


class ReportFormat(str, Enum):
    CONSOLE = "console"
    JSON = "json"
    HTML = "html"
    MARKDOWN = "markdown"


def format_to_string(fmt: ReportFormat) -> str:
    return fmt.value


def format_from_string(value: Optional[str]) -> Optional[ReportFormat]:
    """Return the report format named by ``value`` (case-insensitive) or None."""

    token = (value or "").strip().lower()
    if token == "md":
        token = ReportFormat.MARKDOWN.value
    for fmt in ReportFormat:
        if fmt.value == token:
            return fmt
    return None


@dataclass(frozen=True, slots=True)
class AuditConfig:
    """Run-wide settings. Never mutated after construction."""

    max_depth: int = DEFAULT_MAX_DEPTH
    follow_external: bool = False
    timeout_ms: int = DEFAULT_TIMEOUT_MS
    user_agent: str = DEFAULT_USER_AGENT
    check_accessibility: bool = True
    check_performance: bool = True
    check_seo: bool = True
    report_format: ReportFormat = ReportFormat.CONSOLE
    verbose: bool = False
    max_concurrency: int = DEFAULT_MAX_CONCURRENCY
    retry_attempts: int = DEFAULT_RETRY_ATTEMPTS
    retry_delay_ms: int = DEFAULT_RETRY_DELAY_MS

    def __post_init__(self) -> None:
        _sanity_check_config(self)

    @property
    def timeout_seconds(self) -> float:
        return self.timeout_ms / 1000.0

    @property
    def retry_delay_seconds(self) -> float:
        return self.retry_delay_ms / 1000.0


def _sanity_check_config(config: AuditConfig) -> None:
    if config.timeout_ms <= 0:
        raise ValueError("timeout_ms must be positive")
    if config.max_concurrency < 1:
        raise ValueError("max_concurrency must be at least 1")
    if config.retry_attempts < 1:
        raise ValueError("retry_attempts must be at least 1")
    if config.retry_delay_ms < 0:
        raise ValueError("retry_delay_ms cannot be negative")
    if config.max_depth < 0:
        raise ValueError("max_depth cannot be negative")
    if not isinstance(config.report_format, ReportFormat):
        raise ValueError(f"Unsupported report format: {config.report_format!r}")


DEFAULT_CONFIG = AuditConfig()


def make_config(base: Optional[AuditConfig] = None, **overrides: Any) -> AuditConfig:
    """Build a config from ``base`` (or the defaults), ignoring ``None`` overrides."""

    known = {f.name for f in fields(AuditConfig)}
    unknown = sorted(set(overrides) - known)
    if unknown:
        raise ValueError(f"Unknown config option(s): {', '.join(unknown)}")
    changes = {key: value for key, value in overrides.items() if value is not None}
    return replace(base or DEFAULT_CONFIG, **changes)


def _env_int(name: str, default: int) -> int:
    try:
        raw = os.getenv(name, "")
        return int(raw) if raw.strip() else default
    except (TypeError, ValueError):
        return default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() not in {"0", "false", "no", "off"}


def env_overrides() -> Dict[str, Any]:
    """Collect config overrides from ``WEBAUDIT_*`` environment variables."""

    return {
        "max_depth": _env_int(ENV_MAX_DEPTH, DEFAULT_MAX_DEPTH),
        "follow_external": _env_bool(ENV_FOLLOW_EXTERNAL, False),
        "timeout_ms": _env_int(ENV_TIMEOUT_MS, DEFAULT_TIMEOUT_MS),
        "user_agent": (os.getenv(ENV_USER_AGENT) or "").strip() or DEFAULT_USER_AGENT,
        "max_concurrency": _env_int(ENV_MAX_CONCURRENCY, DEFAULT_MAX_CONCURRENCY),
        "retry_attempts": _env_int(ENV_RETRY_ATTEMPTS, DEFAULT_RETRY_ATTEMPTS),
        "retry_delay_ms": _env_int(ENV_RETRY_DELAY_MS, DEFAULT_RETRY_DELAY_MS),
        "verbose": _env_bool(ENV_VERBOSE, False),
    }


def config_from_env(**overrides: Any) -> AuditConfig:
    """Defaults, then environment, then explicit (non-None) overrides."""

    merged = env_overrides()
    merged.update({key: value for key, value in overrides.items() if value is not None})
    return make_config(**merged)

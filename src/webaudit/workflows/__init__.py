"""High-level exports for the webaudit workflows."""

from .audit_config import DEFAULT_CONFIG, AuditConfig, ReportFormat, config_from_env, make_config
from .auditor import AuditError, AuditOk, AuditOptions, AuditOutcome, AuditReport, Auditor, audit_multiple, audit_website, make_options
from .http_fetch import FetchError, HttpResponse, PageFetcher, fetch, fetch_with_retry, is_retriable
from .link_checker import LinkChecker, LinkCheckResult, LinkStatus, check_link, check_links
from .report import format_report, format_results, print_report, print_results

__all__ = [
    "DEFAULT_CONFIG",
    "AuditConfig",
    "ReportFormat",
    "config_from_env",
    "make_config",
    "AuditOptions",
    "AuditOutcome",
    "AuditOk",
    "AuditError",
    "AuditReport",
    "Auditor",
    "audit_multiple",
    "audit_website",
    "make_options",
    "FetchError",
    "HttpResponse",
    "PageFetcher",
    "fetch",
    "fetch_with_retry",
    "is_retriable",
    "LinkChecker",
    "LinkCheckResult",
    "LinkStatus",
    "check_link",
    "check_links",
    "format_report",
    "format_results",
    "print_report",
    "print_results",
]

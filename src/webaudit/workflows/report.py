"""Rendering of audit reports: console text, JSON, HTML and Markdown."""

from __future__ import annotations

import html
import json
import sys
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, TextIO

from .analyzers.accessibility import filter_by_critical
from .analyzers.performance import format_bytes
from .analyzers.seo import get_issue_count
from .audit_config import ReportFormat
from .auditor import AuditError, AuditOk, AuditOutcome, AuditReport

_RULE = "=" * 60
_BROKEN_LISTING_LIMIT = 10

_HTML_STYLE = """
    * { margin: 0; padding: 0; box-sizing: border-box; }
    body { font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; line-height: 1.6; color: #333; background: #f5f5f5; padding: 20px; }
    .container { max-width: 1200px; margin: 0 auto; background: white; padding: 40px; border-radius: 8px; box-shadow: 0 2px 4px rgba(0,0,0,0.1); }
    h1 { color: #2c3e50; margin-bottom: 10px; }
    h2 { color: #34495e; margin-top: 30px; margin-bottom: 15px; border-bottom: 2px solid #3498db; padding-bottom: 10px; }
    .meta { color: #7f8c8d; margin-bottom: 30px; }
    .score { font-size: 48px; font-weight: bold; text-align: center; padding: 30px; margin: 20px 0; border-radius: 8px; }
    .score-excellent { background: #d4edda; color: #155724; }
    .score-good { background: #d1ecf1; color: #0c5460; }
    .score-fair { background: #fff3cd; color: #856404; }
    .score-poor { background: #f8d7da; color: #721c24; }
    .metric { display: flex; justify-content: space-between; padding: 10px; border-bottom: 1px solid #eee; }
    .metric-label { font-weight: 500; }
    .metric-value { color: #555; }
    .issue { padding: 12px; margin: 8px 0; border-left: 4px solid; background: #f8f9fa; border-radius: 4px; }
    .issue-error { border-color: #dc3545; }
    .issue-warning { border-color: #ffc107; }
    .issue-info { border-color: #17a2b8; }
"""


def score_class(score: float) -> str:
    if score >= 90:
        return "score-excellent"
    if score >= 70:
        return "score-good"
    if score >= 50:
        return "score-fair"
    return "score-poor"


def _display_time(timestamp: str) -> str:
    try:
        return datetime.fromisoformat(timestamp.replace("Z", "+00:00")).strftime("%Y-%m-%d %H:%M:%S UTC")
    except ValueError:
        return timestamp


def format_console(report: AuditReport) -> str:
    lines: List[str] = [
        _RULE,
        f"Website Audit: {report.url}",
        _RULE,
        f"Generated: {_display_time(report.timestamp)}",
        f"Execution time: {report.execution_time / 1000:.2f}s",
        f"Overall score: {report.overall_score:.1f}/100",
    ]

    link_check = report.link_check
    if link_check is not None:
        lines += [
            "",
            "Link check",
            f"  total: {link_check.total_links}  broken: {link_check.broken_links}  "
            f"external: {link_check.external_links}  redirects: {link_check.redirects}",
            f"  average response time: {link_check.average_response_time:.0f}ms",
        ]
        for status in link_check.broken[:_BROKEN_LISTING_LIMIT]:
            reason = status.error_message or f"HTTP {status.status} {status.status_text}".rstrip()
            lines.append(f"  - {status.url} ({reason})")
        hidden = link_check.broken_links - _BROKEN_LISTING_LIMIT
        if hidden > 0:
            lines.append(f"  ... and {hidden} more")

    a11y = report.accessibility
    if a11y is not None:
        lines += [
            "",
            f"Accessibility: {a11y.score:.1f}/100 (WCAG {a11y.wcag_level})",
            f"  violations: {len(a11y.violations)} ({len(filter_by_critical(a11y.violations))} critical)  "
            f"warnings: {len(a11y.warnings)}  passes: {a11y.passes}",
        ]
        for issue in a11y.violations:
            lines.append(f"  - [{issue.impact}] {issue.rule}: {issue.message}")

    perf = report.performance
    if perf is not None:
        metrics = perf.metrics
        lines += [
            "",
            f"Performance: {perf.score:.1f}/100",
            f"  page size: {format_bytes(metrics.total_page_size)}  resources: {metrics.resource_count}  "
            f"estimated load: {metrics.load_complete:.0f}ms",
        ]
        lines += [f"  ! {warning}" for warning in perf.warnings]
        lines += [f"  * {suggestion}" for suggestion in perf.suggestions]

    seo_result = report.seo
    if seo_result is not None:
        counts = get_issue_count(seo_result.issues)
        lines += [
            "",
            f"SEO: {seo_result.score:.1f}/100",
            f"  title: {seo_result.data.title or '(missing)'}",
            f"  words: {seo_result.data.word_count}  issues: {counts['error']} error(s), "
            f"{counts['warning']} warning(s), {counts['info']} info",
        ]
        for issue in seo_result.issues:
            lines.append(f"  - [{issue.severity}] {issue.message}")

    return "\n".join(lines) + "\n"


def format_json(report: AuditReport) -> str:
    return json.dumps(report.to_dict(), ensure_ascii=False, indent=2)


def _metric(label: str, value: Any) -> str:
    return (
        '<div class="metric">'
        f'<span class="metric-label">{html.escape(label)}</span>'
        f'<span class="metric-value">{html.escape(str(value))}</span>'
        "</div>"
    )


def _issue(severity: str, message: str) -> str:
    return f'<div class="issue issue-{html.escape(severity)}">{html.escape(message)}</div>'


def _html_sections(report: AuditReport) -> List[str]:
    sections: List[str] = []
    if report.link_check is not None:
        lc = report.link_check
        body = [
            _metric("Total Links", lc.total_links),
            _metric("Broken Links", lc.broken_links),
            _metric("External Links", lc.external_links),
            _metric("Redirects", lc.redirects),
            _metric("Average Response Time", f"{lc.average_response_time:.0f}ms"),
        ]
        body += [_issue("error", f"{s.url}: {s.error_message or s.status}") for s in lc.broken]
        sections.append("<h2>Link Check</h2>" + "".join(body))
    if report.accessibility is not None:
        a11y = report.accessibility
        body = [
            _metric("Score", f"{a11y.score:.1f}/100"),
            _metric("Violations", len(a11y.violations)),
            _metric("Warnings", len(a11y.warnings)),
            _metric("Passes", a11y.passes),
        ]
        body += [_issue("error", f"{i.rule}: {i.message}") for i in a11y.violations]
        body += [_issue("warning", f"{i.rule}: {i.message}") for i in a11y.warnings]
        sections.append("<h2>Accessibility</h2>" + "".join(body))
    if report.performance is not None:
        perf = report.performance
        body = [
            _metric("Score", f"{perf.score:.1f}/100"),
            _metric("Page Size", format_bytes(perf.metrics.total_page_size)),
            _metric("Resources", perf.metrics.resource_count),
            _metric("Load Time", f"{perf.metrics.load_complete:.0f}ms"),
        ]
        body += [_issue("warning", w) for w in perf.warnings]
        body += [_issue("info", s) for s in perf.suggestions]
        sections.append("<h2>Performance</h2>" + "".join(body))
    if report.seo is not None:
        seo_result = report.seo
        body = [
            _metric("Score", f"{seo_result.score:.1f}/100"),
            _metric("Title", seo_result.data.title or "(missing)"),
            _metric("Word Count", seo_result.data.word_count),
        ]
        body += [_issue(i.severity, i.message) for i in seo_result.issues]
        sections.append("<h2>SEO</h2>" + "".join(body))
    return [f'<div class="section">{section}</div>' for section in sections]


def format_html(report: AuditReport) -> str:
    url = html.escape(report.url)
    sections = "\n    ".join(_html_sections(report))
    return f"""<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>Website Audit Report - {url}</title>
  <style>{_HTML_STYLE}  </style>
</head>
<body>
  <div class="container">
    <h1>Website Audit Report</h1>
    <div class="meta">
      <div><strong>URL:</strong> {url}</div>
      <div><strong>Generated:</strong> {html.escape(_display_time(report.timestamp))}</div>
      <div><strong>Execution Time:</strong> {report.execution_time / 1000:.2f}s</div>
    </div>
    <div class="score {score_class(report.overall_score)}">Overall Score: {report.overall_score:.1f}/100</div>
    {sections}
  </div>
</body>
</html>
"""


def format_markdown(report: AuditReport) -> str:
    lines: List[str] = [
        "# Website Audit Report",
        "",
        f"**URL:** {report.url}",
        f"**Generated:** {_display_time(report.timestamp)}",
        f"**Execution Time:** {report.execution_time / 1000:.2f}s",
        f"**Overall Score:** {report.overall_score:.1f}/100",
        "",
    ]
    if report.link_check is not None:
        lc = report.link_check
        lines += [
            "## Link Check",
            "",
            f"- **Total Links:** {lc.total_links}",
            f"- **Broken Links:** {lc.broken_links}",
            f"- **External Links:** {lc.external_links}",
            f"- **Redirects:** {lc.redirects}",
            f"- **Average Response Time:** {lc.average_response_time:.0f}ms",
            "",
        ]
    if report.accessibility is not None:
        a11y = report.accessibility
        lines += [
            "## Accessibility",
            "",
            f"- **Score:** {a11y.score:.1f}/100",
            f"- **Violations:** {len(a11y.violations)}",
            f"- **Warnings:** {len(a11y.warnings)}",
            f"- **Passes:** {a11y.passes}",
            "",
        ]
    if report.performance is not None:
        perf = report.performance
        lines += [
            "## Performance",
            "",
            f"- **Score:** {perf.score:.1f}/100",
            f"- **Page Size:** {format_bytes(perf.metrics.total_page_size)}",
            f"- **Resources:** {perf.metrics.resource_count}",
            f"- **Load Time:** {perf.metrics.load_complete:.0f}ms",
            "",
        ]
    if report.seo is not None:
        seo_result = report.seo
        lines += [
            "## SEO",
            "",
            f"- **Score:** {seo_result.score:.1f}/100",
            f"- **Title:** {seo_result.data.title or '(missing)'}",
            f"- **Word Count:** {seo_result.data.word_count}",
            f"- **Issues:** {len(seo_result.issues)}",
            "",
        ]
    return "\n".join(lines)


_FORMATTERS = {
    ReportFormat.CONSOLE: format_console,
    ReportFormat.JSON: format_json,
    ReportFormat.HTML: format_html,
    ReportFormat.MARKDOWN: format_markdown,
}


def format_report(report: AuditReport, fmt: ReportFormat) -> str:
    return _FORMATTERS[fmt](report)


def _format_error(url: str, message: Optional[str], fmt: ReportFormat) -> str:
    message = message or "unknown error"
    if fmt is ReportFormat.HTML:
        return f'<div class="issue issue-error"><strong>{html.escape(url)}</strong>: {html.escape(message)}</div>\n'
    if fmt is ReportFormat.MARKDOWN:
        return f"## Error: {url}\n\n{message}\n"
    return f"Error auditing {url}: {message}\n"


def format_results(outcomes: Sequence[AuditOutcome], fmt: ReportFormat) -> str:
    """Render a batch; failed URLs become error entries in place."""

    for outcome in outcomes:
        if not isinstance(outcome, (AuditOk, AuditError)):
            raise TypeError(f"Unknown audit outcome: {outcome!r}")
    if fmt is ReportFormat.JSON:
        payload: List[Dict[str, Any]] = [outcome.to_dict() for outcome in outcomes]
        return json.dumps(payload, ensure_ascii=False, indent=2) + "\n"
    chunks: List[str] = []
    for outcome in outcomes:
        if isinstance(outcome, AuditOk):
            chunks.append(format_report(outcome.report, fmt))
        else:
            chunks.append(_format_error(outcome.url, outcome.error, fmt))
    return "\n".join(chunks)


def print_report(report: AuditReport, fmt: ReportFormat, stream: Optional[TextIO] = None) -> None:
    out = stream or sys.stdout
    text = format_report(report, fmt)
    out.write(text if text.endswith("\n") else text + "\n")


def print_results(outcomes: Sequence[AuditOutcome], fmt: ReportFormat, stream: Optional[TextIO] = None) -> None:
    out = stream or sys.stdout
    text = format_results(outcomes, fmt)
    out.write(text if text.endswith("\n") else text + "\n")


__all__ = [
    "score_class",
    "format_console",
    "format_json",
    "format_html",
    "format_markdown",
    "format_report",
    "format_results",
    "print_report",
    "print_results",
]

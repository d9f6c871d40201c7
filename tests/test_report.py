import io
import json

import pytest

from webaudit.workflows.analyzers import accessibility, performance, seo
from webaudit.workflows.audit_config import ReportFormat
from webaudit.workflows.auditor import AuditError, AuditOk, AuditOutcome, AuditReport, calculate_overall_score
from webaudit.workflows.link_checker import LinkCheckResult, LinkStatus
from webaudit.workflows.report import (
    format_console,
    format_html,
    format_json,
    format_markdown,
    format_results,
    print_results,
    score_class,
)

URL = "https://example.com/?q=<script>"
HTML = "<html><head><title>Tom & Jerry</title></head><body><img src='a.png'><a href='/x'>Link</a></body></html>"


def _report() -> AuditReport:
    links = LinkCheckResult.from_statuses([
        LinkStatus(url="https://example.com/x", status=200, status_text="OK", external=False, broken=False, response_time=12.0),
        LinkStatus(url="https://example.com/gone", status=404, status_text="Not Found", external=False, broken=True, response_time=8.0),
    ])
    a11y = accessibility.check(HTML, URL)
    perf = performance.analyze(HTML, URL)
    seo_result = seo.analyze(HTML, URL)
    return AuditReport(
        url=URL,
        timestamp="2026-01-02T03:04:05Z",
        link_check=links,
        accessibility=a11y,
        performance=perf,
        seo=seo_result,
        overall_score=calculate_overall_score(links, a11y, perf, seo_result),
        execution_time=1234.0,
    )


def test_console_lists_sections_and_broken_links() -> None:
    text = format_console(_report())

    assert "Website Audit: https://example.com/" in text
    assert "Link check" in text
    assert "https://example.com/gone (HTTP 404 Not Found)" in text
    assert "Accessibility:" in text
    assert "Performance:" in text
    assert "SEO:" in text
    assert "Execution time: 1.23s" in text


def test_json_is_parseable_and_keyed() -> None:
    payload = json.loads(format_json(_report()))

    assert payload["url"] == URL
    assert payload["link_check"]["broken_links"] == 1
    assert payload["link_check"]["score"] == 50.0
    assert payload["seo"]["data"]["title"] == "Tom & Jerry"
    assert payload["performance"]["score"] == payload["performance"]["metrics"]["score"]


def test_html_escapes_content() -> None:
    document = format_html(_report())

    assert document.startswith("<!DOCTYPE html>")
    assert "<script>" not in document
    assert "&lt;script&gt;" in document
    assert "Tom &amp; Jerry" in document
    assert score_class(_report().overall_score) in document


def test_markdown_sections() -> None:
    text = format_markdown(_report())

    assert text.startswith("# Website Audit Report")
    for heading in ("## Link Check", "## Accessibility", "## Performance", "## SEO"):
        assert heading in text


def test_score_classes() -> None:
    assert score_class(95) == "score-excellent"
    assert score_class(75) == "score-good"
    assert score_class(55) == "score-fair"
    assert score_class(10) == "score-poor"


def test_results_render_errors_in_place() -> None:
    outcomes = [
        AuditOk(url=URL, report=_report()),
        AuditError(url="https://down.example/", error="Request timed out"),
    ]

    payload = json.loads(format_results(outcomes, ReportFormat.JSON))
    assert [entry["ok"] for entry in payload] == [True, False]
    assert payload[1]["error"] == "Request timed out"

    text = format_results(outcomes, ReportFormat.CONSOLE)
    assert text.index("Website Audit:") < text.index("Error auditing https://down.example/: Request timed out")

    stream = io.StringIO()
    print_results(outcomes, ReportFormat.MARKDOWN, stream=stream)
    assert "## Error: https://down.example/" in stream.getvalue()


def test_results_reject_bare_outcome() -> None:
    outcomes = [AuditOk(url=URL, report=_report()), AuditOutcome(url="https://odd.example/")]

    with pytest.raises(TypeError, match="Unknown audit outcome"):
        format_results(outcomes, ReportFormat.CONSOLE)
    with pytest.raises(TypeError):
        format_results(outcomes, ReportFormat.JSON)

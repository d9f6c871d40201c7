from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path
from typing import Iterable, List, Optional, TextIO

import typer
from dotenv import load_dotenv

from .workflows.audit_config import ReportFormat, config_from_env, format_from_string
from .workflows.auditor import AuditOptions, audit_multiple, make_options
from .workflows.doctor import build_doctor_report, format_doctor_report
from .workflows.report import format_results

__version__ = "1.0.0"

EXIT_OK = 0
EXIT_AUDIT_FAILED = 1
EXIT_BAD_INPUT = 2

app = typer.Typer(add_help_option=False, no_args_is_help=False)


def _minimal_help() -> str:
    return f"""webaudit {__version__}

Usage:
  webaudit audit <url> [options]
  webaudit audit-manifest <urls.txt|-> [options]
  webaudit doctor

Options:
  --format <FMT>          console, json, html, markdown (default: console).
  --output <FILE>         Write the report to FILE instead of stdout.
  --max-depth <N>         Maximum crawl depth (default: 3).
  --[no-]follow-external  Follow external links (overrides WEBAUDIT_FOLLOW_EXTERNAL).
  --timeout <MS>          Request timeout in milliseconds (default: 30000).
  --user-agent <UA>       Custom User-Agent header.
  --no-accessibility      Skip accessibility checks.
  --no-performance        Skip performance checks.
  --no-seo                Skip SEO checks.
  --no-links              Skip link checks.
  --max-concurrency <N>   Maximum simultaneous requests (default: 10).
  --retry-attempts <N>    Attempts per request (default: 3).
  --retry-delay <MS>      Delay between attempts (default: 1000).
  --[no-]verbose          Log progress to stderr (overrides WEBAUDIT_VERBOSE).

Discoverability:
  --version       Show version.
  --find <query>  Search commands, flags, env vars.
  --doctor        Run environment diagnostics and exit.

Exit codes: 0 all audits succeeded, 1 some URL failed, 2 invalid input.
"""


_FIND_INDEX = [
    ("command", "audit", "Audit a single URL."),
    ("command", "audit-manifest", "Audit URLs from a manifest file or stdin."),
    ("command", "doctor", "Print environment and dependency diagnostics."),
    ("flag", "--format", "Report format: console, json, html, markdown."),
    ("flag", "--output", "Write the report to a file."),
    ("flag", "--max-concurrency", "Maximum simultaneous requests."),
    ("flag", "--retry-attempts", "Attempts per request."),
    ("flag", "--retry-delay", "Delay between attempts in milliseconds."),
    ("flag", "--timeout", "Request timeout in milliseconds."),
    ("flag", "--no-links", "Skip link checks."),
    ("flag", "--follow-external", "Follow external links; --no-follow-external overrides the env default."),
    ("flag", "--verbose", "Log progress to stderr; --no-verbose overrides the env default."),
    ("env", "WEBAUDIT_TIMEOUT_MS", "Default request timeout."),
    ("env", "WEBAUDIT_MAX_CONCURRENCY", "Default concurrency ceiling."),
    ("env", "WEBAUDIT_RETRY_ATTEMPTS", "Default attempts per request."),
    ("env", "WEBAUDIT_RETRY_DELAY_MS", "Default delay between attempts."),
    ("env", "WEBAUDIT_USER_AGENT", "Default User-Agent header."),
    ("env", "WEBAUDIT_MAX_DEPTH", "Default crawl depth."),
    ("env", "WEBAUDIT_FOLLOW_EXTERNAL", "Follow external links by default."),
    ("env", "WEBAUDIT_VERBOSE", "Verbose logging by default."),
]


def _run_find(query: str) -> str:
    needle = (query or "").strip().lower()
    if not needle:
        return ""
    lines = []
    for category, name, desc in _FIND_INDEX:
        haystack = f"{category} {name} {desc}".lower()
        if needle in haystack:
            lines.append(f"{category} {name} - {desc}")
    return "\n".join(lines)


def parse_manifest_lines(lines: Iterable[str]) -> List[str]:
    urls: List[str] = []
    for raw_line in lines:
        line = raw_line.strip()
        if not line:
            continue
        if line.startswith("#"):
            continue
        if any(ch.isspace() for ch in line):
            raise ValueError(f"Invalid manifest line (one URL per line): {raw_line.rstrip()}")
        urls.append(line)
    return urls


def load_manifest(path_or_dash: str, *, stdin: Optional[TextIO] = None) -> List[str]:
    if path_or_dash == "-":
        stream = stdin or sys.stdin
        return parse_manifest_lines(stream.read().splitlines())
    path = Path(path_or_dash)
    if not path.exists():
        raise FileNotFoundError(f"Manifest not found: {path}")
    return parse_manifest_lines(path.read_text(encoding="utf-8").splitlines())


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(level=logging.INFO if verbose else logging.WARNING, format="%(message)s")


def _parse_format(value: str) -> ReportFormat:
    fmt = format_from_string(value)
    if fmt is None:
        typer.echo(f"error: invalid format {value!r}; use console, json, html or markdown", err=True)
        raise typer.Exit(code=EXIT_BAD_INPUT)
    return fmt


def _build_options(
    *,
    fmt: ReportFormat,
    max_depth: Optional[int],
    follow_external: Optional[bool],
    timeout: Optional[int],
    user_agent: Optional[str],
    no_accessibility: bool,
    no_performance: bool,
    no_seo: bool,
    no_links: bool,
    max_concurrency: Optional[int],
    retry_attempts: Optional[int],
    retry_delay: Optional[int],
    verbose: Optional[bool],
) -> AuditOptions:
    try:
        config = config_from_env(
            max_depth=max_depth,
            follow_external=follow_external,
            timeout_ms=timeout,
            user_agent=user_agent,
            check_accessibility=not no_accessibility,
            check_performance=not no_performance,
            check_seo=not no_seo,
            report_format=fmt,
            verbose=verbose,
            max_concurrency=max_concurrency,
            retry_attempts=retry_attempts,
            retry_delay_ms=retry_delay,
        )
    except ValueError as exc:
        typer.echo(f"error: {exc}", err=True)
        raise typer.Exit(code=EXIT_BAD_INPUT)
    return make_options(config, check_links=not no_links)


def _run(urls: List[str], options: AuditOptions, output: Optional[Path]) -> int:
    if not urls:
        typer.echo("error: no URLs to audit", err=True)
        return EXIT_BAD_INPUT
    _configure_logging(options.config.verbose)
    logging.getLogger(__name__).info("auditing %d URL(s)", len(urls))

    outcomes = asyncio.run(audit_multiple(urls, options))
    text = format_results(outcomes, options.config.report_format)
    if output is not None:
        output.write_text(text, encoding="utf-8")
    else:
        sys.stdout.write(text if text.endswith("\n") else text + "\n")
    return EXIT_OK if all(outcome.ok for outcome in outcomes) else EXIT_AUDIT_FAILED


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    help: bool = typer.Option(False, "--help", "-h", is_eager=True, help="Show minimal help."),
    version: bool = typer.Option(False, "--version", is_eager=True, help="Show version."),
    find: Optional[str] = typer.Option(None, "--find", is_eager=True, help="Search commands, flags, env vars."),
    doctor: bool = typer.Option(False, "--doctor", is_eager=True, help="Run environment diagnostics and exit."),
) -> None:
    load_dotenv()
    if version:
        typer.echo(f"webaudit {__version__}")
        raise typer.Exit(code=EXIT_OK)
    if find is not None:
        output = _run_find(find)
        if output:
            typer.echo(output)
        raise typer.Exit(code=EXIT_OK)
    if doctor:
        report = build_doctor_report()
        typer.echo(format_doctor_report(report))
        raise typer.Exit(code=EXIT_OK if report.get("ok", True) else EXIT_BAD_INPUT)
    if help or ctx.invoked_subcommand is None:
        typer.echo(_minimal_help())
        raise typer.Exit(code=EXIT_OK)


@app.command("doctor", add_help_option=True)
def doctor_cmd() -> None:
    """Print environment and dependency diagnostics."""
    report = build_doctor_report()
    typer.echo(format_doctor_report(report))
    raise typer.Exit(code=EXIT_OK if report.get("ok", True) else EXIT_BAD_INPUT)


@app.command("audit", add_help_option=True)
def audit_url(
    url: str = typer.Argument(..., help="URL to audit."),
    report_format: str = typer.Option("console", "--format", help="console, json, html or markdown."),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write the report to this file."),
    max_depth: Optional[int] = typer.Option(None, "--max-depth", help="Maximum crawl depth."),
    follow_external: Optional[bool] = typer.Option(None, "--follow-external/--no-follow-external", help="Follow external links."),
    timeout: Optional[int] = typer.Option(None, "--timeout", help="Request timeout in milliseconds."),
    user_agent: Optional[str] = typer.Option(None, "--user-agent", help="User-Agent header."),
    no_accessibility: bool = typer.Option(False, "--no-accessibility", help="Skip accessibility checks."),
    no_performance: bool = typer.Option(False, "--no-performance", help="Skip performance checks."),
    no_seo: bool = typer.Option(False, "--no-seo", help="Skip SEO checks."),
    no_links: bool = typer.Option(False, "--no-links", help="Skip link checks."),
    max_concurrency: Optional[int] = typer.Option(None, "--max-concurrency", help="Maximum simultaneous requests."),
    retry_attempts: Optional[int] = typer.Option(None, "--retry-attempts", help="Attempts per request."),
    retry_delay: Optional[int] = typer.Option(None, "--retry-delay", help="Delay between attempts in milliseconds."),
    verbose: Optional[bool] = typer.Option(None, "--verbose/--no-verbose", "-v", help="Log progress to stderr."),
) -> None:
    """Audit a single URL."""
    options = _build_options(
        fmt=_parse_format(report_format),
        max_depth=max_depth,
        follow_external=follow_external,
        timeout=timeout,
        user_agent=user_agent,
        no_accessibility=no_accessibility,
        no_performance=no_performance,
        no_seo=no_seo,
        no_links=no_links,
        max_concurrency=max_concurrency,
        retry_attempts=retry_attempts,
        retry_delay=retry_delay,
        verbose=verbose,
    )
    raise typer.Exit(code=_run([url], options, output))


@app.command("audit-manifest", add_help_option=True)
def audit_manifest(
    path_or_dash: str = typer.Argument(..., help="Path to a URL list or '-' for stdin."),
    report_format: str = typer.Option("console", "--format", help="console, json, html or markdown."),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write the report to this file."),
    max_depth: Optional[int] = typer.Option(None, "--max-depth", help="Maximum crawl depth."),
    follow_external: Optional[bool] = typer.Option(None, "--follow-external/--no-follow-external", help="Follow external links."),
    timeout: Optional[int] = typer.Option(None, "--timeout", help="Request timeout in milliseconds."),
    user_agent: Optional[str] = typer.Option(None, "--user-agent", help="User-Agent header."),
    no_accessibility: bool = typer.Option(False, "--no-accessibility", help="Skip accessibility checks."),
    no_performance: bool = typer.Option(False, "--no-performance", help="Skip performance checks."),
    no_seo: bool = typer.Option(False, "--no-seo", help="Skip SEO checks."),
    no_links: bool = typer.Option(False, "--no-links", help="Skip link checks."),
    max_concurrency: Optional[int] = typer.Option(None, "--max-concurrency", help="Maximum simultaneous requests."),
    retry_attempts: Optional[int] = typer.Option(None, "--retry-attempts", help="Attempts per request."),
    retry_delay: Optional[int] = typer.Option(None, "--retry-delay", help="Delay between attempts in milliseconds."),
    verbose: Optional[bool] = typer.Option(None, "--verbose/--no-verbose", "-v", help="Log progress to stderr."),
) -> None:
    """Audit every URL listed in a manifest (one per line, '#' comments allowed)."""
    fmt = _parse_format(report_format)
    try:
        urls = load_manifest(path_or_dash)
    except (OSError, ValueError) as exc:
        typer.echo(f"error: {exc}", err=True)
        raise typer.Exit(code=EXIT_BAD_INPUT)
    options = _build_options(
        fmt=fmt,
        max_depth=max_depth,
        follow_external=follow_external,
        timeout=timeout,
        user_agent=user_agent,
        no_accessibility=no_accessibility,
        no_performance=no_performance,
        no_seo=no_seo,
        no_links=no_links,
        max_concurrency=max_concurrency,
        retry_attempts=retry_attempts,
        retry_delay=retry_delay,
        verbose=verbose,
    )
    raise typer.Exit(code=_run(urls, options, output))

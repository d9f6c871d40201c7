from __future__ import annotations

import os
from dataclasses import fields
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from bs4 import BeautifulSoup, FeatureNotFound  # type: ignore

from .audit_config import (
    ENV_FOLLOW_EXTERNAL,
    ENV_MAX_CONCURRENCY,
    ENV_MAX_DEPTH,
    ENV_RETRY_ATTEMPTS,
    ENV_RETRY_DELAY_MS,
    ENV_TIMEOUT_MS,
    ENV_USER_AGENT,
    ENV_VERBOSE,
    AuditConfig,
    config_from_env,
)

_INT_SETTINGS = (ENV_MAX_DEPTH, ENV_TIMEOUT_MS, ENV_MAX_CONCURRENCY, ENV_RETRY_ATTEMPTS, ENV_RETRY_DELAY_MS)
_BOOL_SETTINGS = (ENV_FOLLOW_EXTERNAL, ENV_VERBOSE)
_BOOL_TOKENS = {"0", "1", "true", "false", "yes", "no", "on", "off"}


def _check_parser_available() -> bool:
    try:
        BeautifulSoup("<p></p>", "lxml")
        return True
    except FeatureNotFound:
        return False


def _parses(name: str, raw: str) -> bool:
    token = raw.strip().lower()
    if name in _BOOL_SETTINGS:
        return token in _BOOL_TOKENS
    if name in _INT_SETTINGS:
        try:
            int(token)
        except ValueError:
            return False
    return True


def build_doctor_report(*, env_path: Optional[Path] = None) -> Dict[str, Any]:
    report: Dict[str, Any] = {
        "generated_at": datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z"),
        "ok": True,
        "checks": [],
    }

    def add_check(
        name: str,
        status: bool,
        *,
        detail: Optional[str] = None,
        remedy: Optional[str] = None,
        level: str = "warn",
        value: Optional[str] = None,
    ) -> None:
        entry = {
            "name": name,
            "status": "ok" if status else "missing",
            "level": level,
            "detail": detail,
        }
        if remedy:
            entry["remedy"] = remedy
        if value is not None:
            entry["value"] = value
        report["checks"].append(entry)
        if not status and level == "warn":
            report["ok"] = False

    parser_ok = _check_parser_available()
    add_check(
        "lxml",
        parser_ok,
        detail="HTML parser available" if parser_ok else "lxml parser not found; analyzers cannot run",
        remedy="pip install lxml",
        level="warn",
    )

    for name in _INT_SETTINGS + _BOOL_SETTINGS + (ENV_USER_AGENT,):
        raw = os.getenv(name)
        if raw is None or not raw.strip():
            continue
        ok = _parses(name, raw)
        add_check(
            name,
            ok,
            detail="set" if ok else "unparseable; default used",
            remedy=None if ok else f"Fix or unset {name}.",
            level="warn",
            value=raw,
        )

    try:
        config: Optional[AuditConfig] = config_from_env()
    except ValueError as exc:
        config = None
        add_check("config", False, detail=str(exc), remedy="Adjust WEBAUDIT_* values.", level="warn")
    if config is not None:
        summary = ", ".join(f"{f.name}={getattr(config, f.name)}" for f in fields(AuditConfig) if f.name != "user_agent")
        add_check("config", True, detail=summary, level="info")

    dotenv = env_path or Path.cwd() / ".env"
    add_check(
        ".env",
        dotenv.exists(),
        detail=str(dotenv),
        level="info",
    )
    return report


def format_doctor_report(report: Dict[str, Any]) -> str:
    lines: List[str] = []
    lines.append("webaudit doctor")
    lines.append(f"Generated: {report.get('generated_at')}")
    lines.append("")
    for check in report.get("checks", []):
        name = check.get("name", "check")
        status = check.get("status", "unknown")
        level = check.get("level", "info")
        detail = check.get("detail")
        value = check.get("value")
        label = f"{name}: {status}"
        if value:
            label = f"{label} ({value})"
        lines.append(f"- [{level}] {label}")
        if detail:
            lines.append(f"  detail: {detail}")
        remedy = check.get("remedy")
        if remedy:
            lines.append(f"  remedy: {remedy}")
    return "\n".join(lines).rstrip() + "\n"

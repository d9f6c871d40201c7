"""Static WCAG checks over fetched markup."""

from __future__ import annotations

import re
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from bs4 import BeautifulSoup  # type: ignore

LEVEL_A = "A"
LEVEL_AA = "AA"
LEVEL_AAA = "AAA"
WCAG_LEVELS = (LEVEL_A, LEVEL_AA, LEVEL_AAA)

IMPACT_CRITICAL = "critical"
IMPACT_SERIOUS = "serious"
IMPACT_MODERATE = "moderate"
IMPACT_MINOR = "minor"

_SNIPPET_MAX = 100
_COLOR_STYLE_RE = re.compile(r"(?:^|[;\s\"'{])(?:color|background(?:-color)?)\s*:", re.IGNORECASE)


@dataclass(frozen=True)
class AccessibilityIssue:
    rule: str
    level: str
    message: str
    impact: str
    element: Optional[str] = None
    selector: Optional[str] = None


@dataclass(frozen=True)
class AccessibilityResult:
    score: float
    violations: List[AccessibilityIssue] = field(default_factory=list)
    warnings: List[AccessibilityIssue] = field(default_factory=list)
    passes: int = 0
    incomplete: int = 0
    wcag_level: str = LEVEL_AA


def level_from_string(value: Optional[str]) -> Optional[str]:
    token = (value or "").strip().upper()
    return token if token in WCAG_LEVELS else None


def filter_by_level(issues: List[AccessibilityIssue], level: str) -> List[AccessibilityIssue]:
    return [issue for issue in issues if issue.level == level]


def filter_by_critical(issues: List[AccessibilityIssue]) -> List[AccessibilityIssue]:
    return [issue for issue in issues if issue.impact == IMPACT_CRITICAL]


def group_by_rule(issues: List[AccessibilityIssue]) -> Dict[str, List[AccessibilityIssue]]:
    grouped: Dict[str, List[AccessibilityIssue]] = defaultdict(list)
    for issue in issues:
        grouped[issue.rule].append(issue)
    return dict(grouped)


def _score(violations: List[AccessibilityIssue], warnings: List[AccessibilityIssue]) -> float:
    critical = sum(1 for v in violations if v.impact == IMPACT_CRITICAL)
    serious = sum(1 for v in violations if v.impact == IMPACT_SERIOUS)
    return float(max(0, 100 - critical * 10 - serious * 5 - len(warnings) * 2))


def calculate_score(result: AccessibilityResult) -> float:
    return _score(result.violations, result.warnings)


def get_summary(result: AccessibilityResult) -> str:
    critical = len(filter_by_critical(result.violations))
    return (
        f"Score {result.score:.0f}/100 (WCAG {result.wcag_level}): "
        f"{len(result.violations)} violation(s), {critical} critical, "
        f"{len(result.warnings)} warning(s), {result.passes} pass(es)"
    )


def _snippet(tag) -> str:
    return str(tag)[:_SNIPPET_MAX]


def _selector(tag) -> str:
    tag_id = tag.get("id")
    if tag_id:
        return f"{tag.name}#{tag_id}"
    return tag.name


def _has_accessible_name(anchor) -> bool:
    if (anchor.get("aria-label") or "").strip() or (anchor.get("title") or "").strip():
        return True
    if len(anchor.get_text(" ", strip=True)) >= 2:
        return True
    for img in anchor.find_all("img"):
        if (img.get("alt") or "").strip():
            return True
    return False


def check(html: str, url: str) -> AccessibilityResult:
    """Run the static rule set over ``html``; ``url`` is informational only."""

    soup = BeautifulSoup(html or "", "lxml")
    violations: List[AccessibilityIssue] = []
    warnings: List[AccessibilityIssue] = []
    passes = 0

    for img in soup.find_all("img"):
        if img.get("alt") is None:
            violations.append(AccessibilityIssue(
                rule="image-alt",
                level=LEVEL_A,
                message="Image missing alt attribute",
                impact=IMPACT_CRITICAL,
                element=_snippet(img),
                selector=_selector(img),
            ))
        else:
            passes += 1

    html_tag = soup.find("html")
    if html_tag is None or not (html_tag.get("lang") or "").strip():
        violations.append(AccessibilityIssue(
            rule="html-has-lang",
            level=LEVEL_A,
            message="HTML element must have a lang attribute",
            impact=IMPACT_SERIOUS,
        ))
    else:
        passes += 1

    if soup.find("title") is None:
        violations.append(AccessibilityIssue(
            rule="document-title",
            level=LEVEL_A,
            message="Document must have a title element",
            impact=IMPACT_SERIOUS,
        ))
    else:
        passes += 1

    if soup.find("meta", attrs={"name": re.compile(r"^viewport$", re.IGNORECASE)}) is None:
        warnings.append(AccessibilityIssue(
            rule="meta-viewport",
            level=LEVEL_AA,
            message="Viewport meta tag missing for mobile responsiveness",
            impact=IMPACT_MODERATE,
        ))
    else:
        passes += 1

    h1_count = len(soup.find_all("h1"))
    if h1_count == 0:
        violations.append(AccessibilityIssue(
            rule="page-has-heading-one",
            level=LEVEL_AA,
            message="Page must have at least one h1 heading",
            impact=IMPACT_MODERATE,
        ))
    elif h1_count > 1:
        warnings.append(AccessibilityIssue(
            rule="page-has-heading-one",
            level=LEVEL_AA,
            message="Page should have only one h1 heading",
            impact=IMPACT_MINOR,
        ))
    else:
        passes += 1

    labelled_ids = {label.get("for") for label in soup.find_all("label") if label.get("for")}
    for field_tag in soup.find_all(["input", "select", "textarea"]):
        input_type = (field_tag.get("type") or "text").lower()
        if input_type in {"hidden", "submit", "button", "reset", "image"}:
            continue
        field_id = field_tag.get("id")
        labelled = (
            (field_id and field_id in labelled_ids)
            or bool((field_tag.get("aria-label") or "").strip())
            or bool(field_tag.get("aria-labelledby"))
            or field_tag.find_parent("label") is not None
        )
        if labelled:
            passes += 1
            continue
        name = f'id="{field_id}"' if field_id else f"<{field_tag.name}>"
        violations.append(AccessibilityIssue(
            rule="label",
            level=LEVEL_A,
            message=f"Form input with {name} is missing a label",
            impact=IMPACT_CRITICAL,
            element=_snippet(field_tag),
            selector=_selector(field_tag),
        ))

    # Contrast needs rendering; flag pages that set colors for a manual review.
    styled = any(_COLOR_STYLE_RE.search(style.get_text() or "") for style in soup.find_all("style")) or any(
        _COLOR_STYLE_RE.search(tag.get("style") or "") for tag in soup.find_all(style=True)
    )
    if styled:
        warnings.append(AccessibilityIssue(
            rule="color-contrast",
            level=LEVEL_AA,
            message="Manual check required: Ensure text has sufficient color contrast",
            impact=IMPACT_SERIOUS,
        ))

    for anchor in soup.find_all("a", href=True):
        if _has_accessible_name(anchor):
            passes += 1
        else:
            violations.append(AccessibilityIssue(
                rule="link-name",
                level=LEVEL_A,
                message="Links must have discernible text",
                impact=IMPACT_SERIOUS,
                element=_snippet(anchor),
                selector=_selector(anchor),
            ))

    return AccessibilityResult(
        score=_score(violations, warnings),
        violations=violations,
        warnings=warnings,
        passes=passes,
        incomplete=0,
        wcag_level=LEVEL_AA,
    )


__all__ = [
    "AccessibilityIssue",
    "AccessibilityResult",
    "check",
    "level_from_string",
    "filter_by_level",
    "filter_by_critical",
    "group_by_rule",
    "calculate_score",
    "get_summary",
]

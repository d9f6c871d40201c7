"""On-page SEO extraction and scoring."""

from __future__ import annotations

import re
from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from bs4 import BeautifulSoup  # type: ignore

from ..url_utils import host_of, make_absolute

SEVERITY_ERROR = "error"
SEVERITY_WARNING = "warning"
SEVERITY_INFO = "info"
SEVERITY_PENALTIES = {SEVERITY_ERROR: 15, SEVERITY_WARNING: 7, SEVERITY_INFO: 2}

TITLE_MIN_LENGTH = 30
TITLE_MAX_LENGTH = 60
DESCRIPTION_MIN_LENGTH = 120
DESCRIPTION_MAX_LENGTH = 160
THIN_CONTENT_WORDS = 300
REQUIRED_OG_TAGS = ("title", "description", "image", "url")
HEADING_LEVELS = ("h1", "h2", "h3", "h4", "h5", "h6")


@dataclass(frozen=True)
class MetaTag:
    name: str
    content: str


@dataclass(frozen=True)
class SeoIssue:
    severity: str
    message: str
    element: Optional[str] = None


@dataclass(frozen=True)
class SeoData:
    title: Optional[str] = None
    description: Optional[str] = None
    keywords: Optional[str] = None
    canonical: Optional[str] = None
    og_tags: Dict[str, str] = field(default_factory=dict)
    twitter_tags: Dict[str, str] = field(default_factory=dict)
    meta_tags: List[MetaTag] = field(default_factory=list)
    headings: Dict[str, List[str]] = field(default_factory=dict)
    images: int = 0
    images_with_alt: int = 0
    links: int = 0
    internal_links: int = 0
    external_links: int = 0
    word_count: int = 0
    lang: Optional[str] = None
    viewport: Optional[str] = None
    robots: Optional[str] = None
    structured_data: bool = False


@dataclass(frozen=True)
class SeoResult:
    data: SeoData
    issues: List[SeoIssue] = field(default_factory=list)
    score: float = 100.0


def filter_issues_by_severity(issues: List[SeoIssue], severity: str) -> List[SeoIssue]:
    return [issue for issue in issues if issue.severity == severity]


def get_issue_count(issues: List[SeoIssue]) -> Dict[str, int]:
    counts = Counter(issue.severity for issue in issues)
    return {severity: counts.get(severity, 0) for severity in SEVERITY_PENALTIES}


def _meta_content(soup: BeautifulSoup, name: str) -> Optional[str]:
    tag = soup.find("meta", attrs={"name": re.compile(rf"^{re.escape(name)}$", re.IGNORECASE)})
    if tag is None:
        return None
    content = (tag.get("content") or "").strip()
    return content or None


def _rel_tokens(tag) -> List[str]:
    rel = tag.get("rel") or []
    if isinstance(rel, str):
        rel = rel.split()
    return [token.lower() for token in rel]


def _prefixed_meta(soup: BeautifulSoup, attr: str, prefix: str) -> Dict[str, str]:
    tags: Dict[str, str] = {}
    for tag in soup.find_all("meta", attrs={attr: True}):
        key = (tag.get(attr) or "").strip()
        if key.lower().startswith(prefix):
            content = (tag.get("content") or "").strip()
            if content:
                tags[key[len(prefix):]] = content
    return tags


def extract(html: str, url: str) -> SeoData:
    soup = BeautifulSoup(html or "", "lxml")

    title_tag = soup.find("title")
    title = title_tag.get_text(strip=True) if title_tag else ""

    canonical = ""
    for link in soup.find_all("link", href=True):
        if "canonical" in _rel_tokens(link):
            canonical = (link.get("href") or "").strip()
            break

    meta_tags = [
        MetaTag(name=tag["name"], content=tag["content"])
        for tag in soup.find_all("meta", attrs={"name": True, "content": True})
    ]
    headings = {
        level: [h.get_text(" ", strip=True) for h in soup.find_all(level)]
        for level in HEADING_LEVELS
    }

    images = soup.find_all("img")
    page_host = host_of(url)
    internal = external = 0
    anchors = soup.find_all("a", href=True)
    for anchor in anchors:
        absolute = make_absolute(anchor["href"], url)
        if absolute is None:
            continue
        if host_of(absolute) == page_host:
            internal += 1
        else:
            external += 1

    structured = bool(soup.find("script", attrs={"type": "application/ld+json"})) or "schema.org" in (html or "")

    body = soup.find("body") or soup
    for tag in body.find_all(["script", "style", "noscript"]):
        tag.decompose()
    words = body.get_text(" ", strip=True).split()

    html_tag = soup.find("html")
    lang = (html_tag.get("lang") or "").strip() if html_tag else ""

    return SeoData(
        title=title or None,
        description=_meta_content(soup, "description"),
        keywords=_meta_content(soup, "keywords"),
        canonical=canonical or None,
        og_tags=_prefixed_meta(soup, "property", "og:"),
        twitter_tags=_prefixed_meta(soup, "name", "twitter:"),
        meta_tags=meta_tags,
        headings=headings,
        images=len(images),
        images_with_alt=sum(1 for img in images if img.get("alt") is not None),
        links=len(anchors),
        internal_links=internal,
        external_links=external,
        word_count=len(words),
        lang=lang or None,
        viewport=_meta_content(soup, "viewport"),
        robots=_meta_content(soup, "robots"),
        structured_data=structured,
    )


def _issues_for(data: SeoData) -> List[SeoIssue]:
    issues: List[SeoIssue] = []

    if not data.title:
        issues.append(SeoIssue(SEVERITY_ERROR, "Missing <title> tag", "title"))
    elif len(data.title) < TITLE_MIN_LENGTH:
        issues.append(SeoIssue(SEVERITY_WARNING, f"Title too short ({len(data.title)} chars, recommended {TITLE_MIN_LENGTH}-{TITLE_MAX_LENGTH})", "title"))
    elif len(data.title) > TITLE_MAX_LENGTH:
        issues.append(SeoIssue(SEVERITY_WARNING, f"Title too long ({len(data.title)} chars, recommended {TITLE_MIN_LENGTH}-{TITLE_MAX_LENGTH})", "title"))

    if not data.description:
        issues.append(SeoIssue(SEVERITY_ERROR, "Missing meta description", "meta[name=description]"))
    elif len(data.description) < DESCRIPTION_MIN_LENGTH:
        issues.append(SeoIssue(SEVERITY_WARNING, f"Meta description too short ({len(data.description)} chars)", "meta[name=description]"))
    elif len(data.description) > DESCRIPTION_MAX_LENGTH:
        issues.append(SeoIssue(SEVERITY_WARNING, f"Meta description too long ({len(data.description)} chars)", "meta[name=description]"))

    h1_count = len(data.headings.get("h1", []))
    if h1_count == 0:
        issues.append(SeoIssue(SEVERITY_ERROR, "Missing <h1> heading", "h1"))
    elif h1_count > 1:
        issues.append(SeoIssue(SEVERITY_WARNING, f"Multiple <h1> headings ({h1_count})", "h1"))

    if not data.canonical:
        issues.append(SeoIssue(SEVERITY_WARNING, "Missing canonical URL", "link[rel=canonical]"))

    missing_og = [tag for tag in REQUIRED_OG_TAGS if tag not in data.og_tags]
    if missing_og:
        issues.append(SeoIssue(SEVERITY_INFO, f"Missing Open Graph tags: {', '.join('og:' + t for t in missing_og)}"))
    if not data.twitter_tags:
        issues.append(SeoIssue(SEVERITY_INFO, "No Twitter Card meta tags found"))

    if not data.lang:
        issues.append(SeoIssue(SEVERITY_WARNING, "Missing lang attribute on <html>", "html"))
    if not data.viewport:
        issues.append(SeoIssue(SEVERITY_WARNING, "Missing viewport meta tag", "meta[name=viewport]"))
    if data.robots and "noindex" in data.robots.lower():
        issues.append(SeoIssue(SEVERITY_ERROR, "Page is excluded from indexing (robots noindex)", "meta[name=robots]"))

    missing_alt = data.images - data.images_with_alt
    if missing_alt > 0:
        issues.append(SeoIssue(SEVERITY_WARNING, f"{missing_alt}/{data.images} images missing alt attribute", "img"))
    if data.word_count < THIN_CONTENT_WORDS:
        issues.append(SeoIssue(SEVERITY_INFO, f"Thin content: {data.word_count} words"))
    if not data.structured_data:
        issues.append(SeoIssue(SEVERITY_INFO, "No structured data found"))
    return issues


def analyze(html: str, url: str) -> SeoResult:
    data = extract(html, url)
    issues = _issues_for(data)
    penalty = sum(SEVERITY_PENALTIES.get(issue.severity, 0) for issue in issues)
    return SeoResult(data=data, issues=issues, score=float(max(0, 100 - penalty)))


__all__ = [
    "MetaTag",
    "SeoIssue",
    "SeoData",
    "SeoResult",
    "extract",
    "analyze",
    "filter_issues_by_severity",
    "get_issue_count",
]

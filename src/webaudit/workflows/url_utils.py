"""URL parsing, normalization and link extraction helpers.

Everything here is pure: no I/O, and malformed input never raises.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Set
from urllib.parse import parse_qsl, urlencode, urljoin, urlsplit, urlunsplit

from bs4 import BeautifulSoup  # type: ignore

_WEB_SCHEMES = {"http", "https"}
_DEFAULT_PORTS = {"http": 80, "https": 443}
_SKIPPED_PREFIXES = ("javascript:", "mailto:", "tel:", "#")
_LINK_ATTRIBUTES = ("href", "src")


@dataclass(frozen=True)
class ParsedUrl:
    href: str
    protocol: str
    hostname: str
    pathname: str
    search: str
    hash: str
    origin: str


class UrlType(str, Enum):
    INTERNAL = "internal"
    EXTERNAL = "external"
    RELATIVE = "relative"
    INVALID = "invalid"


def idna_normalize(host: str) -> str:
    """Return a lowercase, IDNA-normalized host name."""

    h = (host or "").strip().rstrip(".").lower()
    if not h:
        return ""
    try:
        h = h.encode("idna").decode("ascii")
    except UnicodeError:
        pass
    return h


def parse(url: str) -> Optional[ParsedUrl]:
    """Parse an absolute URL; return None when it is malformed."""

    raw = (url or "").strip()
    if not raw:
        return None
    try:
        parts = urlsplit(raw)
        port = parts.port
    except ValueError:
        return None
    scheme = (parts.scheme or "").lower()
    hostname = parts.hostname or ""
    if not scheme or not hostname:
        return None
    netloc = hostname if port is None else f"{hostname}:{port}"
    search = f"?{parts.query}" if parts.query else ""
    fragment = f"#{parts.fragment}" if parts.fragment else ""
    return ParsedUrl(
        href=raw,
        protocol=f"{scheme}:",
        hostname=hostname,
        pathname=parts.path or "/",
        search=search,
        hash=fragment,
        origin=f"{scheme}://{netloc}",
    )


def is_valid(url: str) -> bool:
    parsed = parse(url)
    return parsed is not None and parsed.protocol[:-1] in _WEB_SCHEMES


def normalize(url: str) -> str:
    """Canonical form used for deduplication.

    - Lower-case scheme and host, drop default ports
    - Strip trailing slashes from non-root paths (empty path becomes ``/``)
    - Sort query parameters by key
    - Drop the fragment

    Unparseable input is returned unchanged.
    """
    raw = (url or "").strip()
    try:
        parts = urlsplit(raw)
        port = parts.port
    except ValueError:
        return raw
    scheme = (parts.scheme or "").lower()
    host = (parts.hostname or "").lower()
    if not scheme or not host:
        return raw
    netloc = host
    if ":" in host:
        netloc = f"[{host}]"
    if port is not None and _DEFAULT_PORTS.get(scheme) != port:
        netloc = f"{netloc}:{port}"
    if parts.username:
        userinfo = parts.username if parts.password is None else f"{parts.username}:{parts.password}"
        netloc = f"{userinfo}@{netloc}"
    path = parts.path.rstrip("/") or "/"
    pairs = parse_qsl(parts.query, keep_blank_values=True)
    pairs.sort(key=lambda pair: pair[0])
    query = urlencode(pairs)
    return urlunsplit((scheme, netloc, path, query, ""))


def host_of(url: str) -> str:
    """Normalized host of ``url`` ('' when it has none)."""

    try:
        return idna_normalize(urlsplit((url or "").strip()).hostname or "")
    except ValueError:
        return ""


def is_same_domain(url1: str, url2: str) -> bool:
    host = host_of(url1)
    return bool(host) and host == host_of(url2)


def make_absolute(url: str, base_url: str) -> Optional[str]:
    """Resolve ``url`` against ``base_url``; None unless the result is http(s)."""

    raw = (url or "").strip()
    if not raw:
        return None
    try:
        absolute = urljoin(base_url, raw)
    except ValueError:
        return None
    return absolute if is_valid(absolute) else None


def get_url_type(url: str, base_url: str) -> UrlType:
    raw = (url or "").strip()
    if not raw or raw.lower().startswith(_SKIPPED_PREFIXES):
        return UrlType.INVALID
    parsed = parse(raw)
    if parsed is None:
        return UrlType.RELATIVE if make_absolute(raw, base_url) else UrlType.INVALID
    if parsed.protocol[:-1] not in _WEB_SCHEMES:
        return UrlType.INVALID
    return UrlType.INTERNAL if is_same_domain(raw, base_url) else UrlType.EXTERNAL


def extract_links(html: str, base_url: str) -> List[str]:
    """Return the absolute http(s) URLs referenced by ``href``/``src`` attributes.

    Document order is preserved and duplicates are collapsed. ``javascript:``,
    ``mailto:``, ``tel:`` and pure-fragment references are skipped.
    """
    if not html:
        return []
    soup = BeautifulSoup(html, "lxml")
    links: List[str] = []
    seen: Set[str] = set()
    for tag in soup.find_all(True):
        for attr in _LINK_ATTRIBUTES:
            value = tag.get(attr)
            if not isinstance(value, str):
                continue
            ref = value.strip()
            if not ref or ref.lower().startswith(_SKIPPED_PREFIXES):
                continue
            absolute = make_absolute(ref, base_url)
            if absolute is None or absolute in seen:
                continue
            seen.add(absolute)
            links.append(absolute)
    return links


__all__ = [
    "ParsedUrl",
    "UrlType",
    "idna_normalize",
    "parse",
    "is_valid",
    "normalize",
    "host_of",
    "is_same_domain",
    "make_absolute",
    "get_url_type",
    "extract_links",
]

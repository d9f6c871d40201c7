from webaudit.workflows.url_utils import (
    UrlType,
    extract_links,
    get_url_type,
    is_same_domain,
    is_valid,
    make_absolute,
    normalize,
    parse,
)


def test_normalize_example() -> None:
    assert normalize("https://example.com/a/?b=2&a=1#frag") == "https://example.com/a?a=1&b=2"


def test_normalize_equivalent_forms_collapse() -> None:
    variants = [
        "https://example.com/docs?x=1&y=2",
        "https://example.com/docs/?y=2&x=1",
        "https://example.com/docs?x=1&y=2#section",
        "HTTPS://Example.COM:443/docs/?y=2&x=1#top",
    ]
    assert len({normalize(url) for url in variants}) == 1


def test_normalize_is_idempotent() -> None:
    samples = [
        "https://example.com/a/?b=2&a=1#frag",
        "http://example.com",
        "http://example.com:8080/x/y/?q=&a=%20b",
        "https://[::1]:8443/path/",
        "https://example.com/a//",
        "https://example.com///",
        "not a url",
    ]
    for url in samples:
        once = normalize(url)
        assert normalize(once) == once


def test_normalize_keeps_root_slash_and_returns_garbage_unchanged() -> None:
    assert normalize("https://example.com/") == "https://example.com/"
    assert normalize("https://example.com") == "https://example.com/"
    assert normalize("::nope::") == "::nope::"


def test_parse_fails_softly() -> None:
    assert parse("") is None
    assert parse("/relative/path") is None
    assert parse("http://example.com:99999/") is None

    parsed = parse("https://example.com/a?b=1#c")
    assert parsed is not None
    assert parsed.protocol == "https:"
    assert parsed.hostname == "example.com"
    assert parsed.pathname == "/a"
    assert parsed.search == "?b=1"
    assert parsed.hash == "#c"
    assert parsed.origin == "https://example.com"


def test_is_valid_accepts_only_web_schemes() -> None:
    assert is_valid("https://example.com")
    assert is_valid("http://example.com/x")
    assert not is_valid("ftp://example.com/file")
    assert not is_valid("example.com")


def test_make_absolute_and_url_types() -> None:
    base = "https://example.com/dir/page.html"
    assert make_absolute("other.html", base) == "https://example.com/dir/other.html"
    assert make_absolute("mailto:a@b.c", base) is None
    assert get_url_type("https://example.com/x", base) is UrlType.INTERNAL
    assert get_url_type("https://other.org/x", base) is UrlType.EXTERNAL
    assert get_url_type("../up", base) is UrlType.RELATIVE
    assert get_url_type("javascript:void(0)", base) is UrlType.INVALID
    assert is_same_domain("https://EXAMPLE.com/a", "http://example.com/b")


def test_extract_links_filters_and_resolves() -> None:
    html = """
    <html><head><link rel="stylesheet" href="/style.css"></head>
    <body>
      <a href="/about">About</a>
      <a href="javascript:void(0)">JS</a>
      <a href="mailto:team@example.com">Mail</a>
      <a href="TEL:+123">Call</a>
      <a href="#top">Top</a>
      <a href="">Empty</a>
      <img src="img/logo.png">
      <a href="https://other.org/page">Other</a>
      <a href="/about">About again</a>
      <a href="ftp://files.example.com/x">FTP</a>
    </body></html>
    """
    links = extract_links(html, "https://example.com/index.html")

    assert links == [
        "https://example.com/style.css",
        "https://example.com/about",
        "https://example.com/img/logo.png",
        "https://other.org/page",
    ]
    assert all(is_valid(link) for link in links)


def test_extract_links_empty_document() -> None:
    assert extract_links("", "https://example.com") == []


def test_normalize_collapses_repeated_trailing_slashes() -> None:
    assert normalize("https://example.com/a//") == "https://example.com/a"
    assert normalize("https://example.com/a///?b=1") == normalize("https://example.com/a?b=1")
    assert normalize("https://example.com///") == "https://example.com/"

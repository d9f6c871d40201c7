from webaudit.workflows.analyzers import accessibility, performance, seo

URL = "https://example.com/"

GOOD_PAGE = """<!DOCTYPE html>
<html lang="en">
<head>
  <title>A reasonably descriptive page title for tests</title>
  <meta name="viewport" content="width=device-width, initial-scale=1">
  <meta name="description" content="{description}">
  <link rel="canonical" href="https://example.com/">
  <meta property="og:title" content="Title">
  <meta name="twitter:card" content="summary">
</head>
<body>
  <h1>Welcome</h1>
  <form><label for="email">Email</label><input id="email" type="email"></form>
  <a href="/about">About us</a>
  <a href="https://other.org/">Partner site</a>
  <img src="a.png" alt="A">
</body>
</html>
""".format(description="d" * 140)


def test_single_missing_alt_is_one_violation() -> None:
    html = '<html lang="en"><head><title>t</title></head><body><h1>x</h1><img src="a.png" alt="a"><img src="b.png"></body></html>'

    result = accessibility.check(html, URL)

    image_alt = [v for v in result.violations if v.rule == "image-alt"]
    assert len(image_alt) == 1
    assert image_alt[0].impact == accessibility.IMPACT_CRITICAL
    assert len(result.violations) == 1


def test_accessibility_score_and_helpers() -> None:
    html = "<html><body><input type='text' id='q'><a href='/x'></a></body></html>"

    result = accessibility.check(html, URL)
    rules = accessibility.group_by_rule(result.violations)

    assert set(rules) >= {"html-has-lang", "document-title", "page-has-heading-one", "label", "link-name"}
    critical = len(accessibility.filter_by_critical(result.violations))
    serious = sum(1 for v in result.violations if v.impact == accessibility.IMPACT_SERIOUS)
    expected = max(0, 100 - critical * 10 - serious * 5 - len(result.warnings) * 2)
    assert result.score == expected == accessibility.calculate_score(result)
    assert accessibility.level_from_string("aa") == "AA"
    assert accessibility.level_from_string("B") is None
    assert "violation" in accessibility.get_summary(result)


def test_clean_page_passes_accessibility() -> None:
    result = accessibility.check(GOOD_PAGE, URL)

    assert result.violations == []
    assert result.score == 100.0
    assert result.passes > 0


def test_performance_estimates_from_markup() -> None:
    html = """
    <html><head>
      <link rel="stylesheet" href="/a.css">
      <script src="/a.js"></script>
      <script src="/b.js" defer></script>
    </head><body><img src="/x.png"></body></html>
    """

    result = performance.analyze(html, URL)
    metrics = result.metrics

    assert metrics.resource_count == 4
    assert performance.get_total_size_by_type(metrics) == {"stylesheet": 30_000, "script": 100_000, "image": 150_000}
    assert metrics.total_page_size == len(html.encode("utf-8")) + 280_000
    assert metrics.load_complete == 500 + 4 * 50 + metrics.total_page_size / 50_000
    assert result.score == performance.calculate_score(metrics)
    assert any("async" in s for s in result.suggestions)
    assert result.warnings == []


def test_performance_flags_heavy_pages() -> None:
    html = "<html><body>" + "".join(f'<img src="/{i}.png">' for i in range(30)) + "</body></html>"

    result = performance.analyze(html, URL)

    assert result.metrics.total_page_size > performance.HEAVY_PAGE_BYTES
    assert result.warnings
    assert any("lazy" in s.lower() for s in result.suggestions)


def test_format_bytes() -> None:
    assert performance.format_bytes(512) == "512B"
    assert performance.format_bytes(2048) == "2.00KB"
    assert performance.format_bytes(3 * 1024 * 1024) == "3.00MB"


def test_seo_extraction() -> None:
    data = seo.extract(GOOD_PAGE, URL)

    assert data.title == "A reasonably descriptive page title for tests"
    assert data.description == "d" * 140
    assert data.canonical == "https://example.com/"
    assert data.og_tags == {"title": "Title"}
    assert data.twitter_tags == {"card": "summary"}
    assert data.headings["h1"] == ["Welcome"]
    assert data.images == 1 and data.images_with_alt == 1
    assert data.links == 2
    assert data.internal_links == 1
    assert data.external_links == 1
    assert data.lang == "en"
    assert data.viewport is not None


def test_seo_issues_and_score() -> None:
    result = seo.analyze("<html><head><meta name='robots' content='noindex'></head><body></body></html>", URL)

    counts = seo.get_issue_count(result.issues)
    errors = seo.filter_issues_by_severity(result.issues, seo.SEVERITY_ERROR)

    assert {issue.message for issue in errors} >= {"Missing <title> tag", "Missing meta description", "Missing <h1> heading"}
    assert counts["error"] == len(errors) == 4
    assert result.score == max(0, 100 - 15 * counts["error"] - 7 * counts["warning"] - 2 * counts["info"])


def test_grouping_helpers() -> None:
    a11y = accessibility.check("<html><body><img src='x.png'></body></html>", URL)
    level_a = accessibility.filter_by_level(a11y.violations, accessibility.LEVEL_A)
    assert level_a and all(issue.level == "A" for issue in level_a)

    perf = performance.analyze("<html><body><img src='a.png'><img src='b.png'></body></html>", URL)
    grouped = performance.get_resources_by_type(perf.metrics)
    assert [r.url for r in grouped["image"]] == ["a.png", "b.png"]

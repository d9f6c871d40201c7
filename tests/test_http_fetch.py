import asyncio

import aiohttp
import pytest

from webaudit.workflows.audit_config import make_config
from webaudit.workflows.http_fetch import (
    ConcurrencyPool,
    HttpError,
    HttpResponse,
    InvalidUrl,
    NetworkError,
    PageFetcher,
    Timeout,
    as_http_error,
    describe_error,
    get_content_type,
    is_html_content,
    is_retriable,
)


def _fast_config(**overrides):
    base = {"retry_delay_ms": 0, "timeout_ms": 1_000}
    base.update(overrides)
    return make_config(**base)


def test_is_retriable_policy() -> None:
    assert is_retriable(Timeout())
    assert is_retriable(NetworkError("connection reset"))
    assert not is_retriable(InvalidUrl("bad"))
    assert not is_retriable(HttpError(503, "Service Unavailable"))


def test_describe_error_messages() -> None:
    assert describe_error(Timeout()) == "Request timed out"
    assert describe_error(NetworkError("refused")) == "Network error: refused"
    assert describe_error(InvalidUrl("nope")) == "Invalid URL: nope"
    assert describe_error(HttpError(404, "Not Found")) == "HTTP 404: Not Found"


def test_invalid_url_never_hits_the_network(monkeypatch) -> None:
    calls = {"count": 0}

    async def fake_send(self, method, url):
        calls["count"] += 1
        return 200, "OK", {}, "", url, False

    monkeypatch.setattr(PageFetcher, "_send", fake_send, raising=False)

    async def run_once():
        async with PageFetcher(_fast_config()) as fetcher:
            return await fetcher.fetch_with_retry("not a url")

    outcome = asyncio.run(run_once())

    assert isinstance(outcome, InvalidUrl)
    assert calls["count"] == 0


def test_fetch_lowercases_headers_and_keeps_error_statuses(monkeypatch) -> None:
    async def fake_send(self, method, url):
        headers = {"Content-Type": "text/html; charset=utf-8", "X-Trace": "abc"}
        return 404, "Not Found", headers, "<html></html>", url + "/final", True

    monkeypatch.setattr(PageFetcher, "_send", fake_send, raising=False)

    async def run_once():
        async with PageFetcher(_fast_config()) as fetcher:
            return await fetcher.fetch("https://example.com/missing")

    outcome = asyncio.run(run_once())

    assert isinstance(outcome, HttpResponse)
    assert outcome.status == 404
    assert outcome.headers == {"content-type": "text/html; charset=utf-8", "x-trace": "abc"}
    assert outcome.redirected is True
    assert outcome.final_url == "https://example.com/missing/final"
    assert outcome.elapsed_ms >= 0
    assert get_content_type(outcome) == "text/html"
    assert is_html_content(outcome)
    assert as_http_error(outcome) == HttpError(404, "Not Found")


def test_hanging_transport_times_out(monkeypatch) -> None:
    async def fake_send(self, method, url):
        await asyncio.sleep(10)
        return 200, "OK", {}, "", url, False

    monkeypatch.setattr(PageFetcher, "_send", fake_send, raising=False)

    async def run_once():
        async with PageFetcher(_fast_config(timeout_ms=50, retry_attempts=1)) as fetcher:
            return await fetcher.fetch("https://example.com/slow")

    outcome = asyncio.run(asyncio.wait_for(run_once(), timeout=5))

    assert isinstance(outcome, Timeout)


def test_retry_exhausts_attempts_on_timeout(monkeypatch) -> None:
    calls = {"count": 0}

    async def fake_send(self, method, url):
        calls["count"] += 1
        raise asyncio.TimeoutError()

    monkeypatch.setattr(PageFetcher, "_send", fake_send, raising=False)

    async def run_once():
        async with PageFetcher(_fast_config(retry_attempts=3)) as fetcher:
            return await fetcher.fetch_with_retry("https://example.com/")

    outcome = asyncio.run(run_once())

    assert isinstance(outcome, Timeout)
    assert calls["count"] == 3


def test_retry_recovers_after_network_error(monkeypatch) -> None:
    calls = {"count": 0}

    async def fake_send(self, method, url):
        calls["count"] += 1
        if calls["count"] == 1:
            raise aiohttp.ClientConnectionError("connection reset")
        return 200, "OK", {}, "ok", url, False

    monkeypatch.setattr(PageFetcher, "_send", fake_send, raising=False)

    async def run_once():
        async with PageFetcher(_fast_config(retry_attempts=3)) as fetcher:
            return await fetcher.fetch_with_retry("https://example.com/")

    outcome = asyncio.run(run_once())

    assert isinstance(outcome, HttpResponse)
    assert outcome.status == 200
    assert calls["count"] == 2


def test_http_error_status_is_not_retried(monkeypatch) -> None:
    calls = {"count": 0}

    async def fake_send(self, method, url):
        calls["count"] += 1
        return 503, "Service Unavailable", {}, "", url, False

    monkeypatch.setattr(PageFetcher, "_send", fake_send, raising=False)

    async def run_once():
        async with PageFetcher(_fast_config(retry_attempts=3)) as fetcher:
            return await fetcher.fetch_with_retry("https://example.com/")

    outcome = asyncio.run(run_once())

    assert isinstance(outcome, HttpResponse)
    assert outcome.status == 503
    assert calls["count"] == 1


def test_os_error_maps_to_network_error(monkeypatch) -> None:
    async def fake_send(self, method, url):
        raise ConnectionRefusedError("refused")

    monkeypatch.setattr(PageFetcher, "_send", fake_send, raising=False)

    async def run_once():
        async with PageFetcher(_fast_config(retry_attempts=1)) as fetcher:
            return await fetcher.fetch("https://example.com/")

    outcome = asyncio.run(run_once())

    assert isinstance(outcome, NetworkError)
    assert "refused" in outcome.message


def test_unsupported_method_is_rejected() -> None:
    async def run_once():
        async with PageFetcher(_fast_config()) as fetcher:
            return await fetcher.fetch("https://example.com/", "DELETE")

    with pytest.raises(ValueError):
        asyncio.run(run_once())


def test_pool_releases_slot_on_every_exit_path(monkeypatch) -> None:
    async def fake_send(self, method, url):
        if url.endswith("boom"):
            raise aiohttp.ClientError("boom")
        return 200, "OK", {}, "", url, False

    monkeypatch.setattr(PageFetcher, "_send", fake_send, raising=False)
    pool = ConcurrencyPool(2)

    async def run_once():
        async with PageFetcher(_fast_config(retry_attempts=1), pool=pool) as fetcher:
            await fetcher.fetch("https://example.com/ok")
            await fetcher.fetch("https://example.com/boom")

    asyncio.run(run_once())

    assert pool.in_flight == 0
    assert pool.peak == 1


def test_pool_rejects_zero_limit() -> None:
    with pytest.raises(ValueError):
        ConcurrencyPool(0)


def test_status_bands() -> None:
    from webaudit.workflows.http_fetch import (
        is_client_error_status,
        is_redirect_status,
        is_server_error_status,
        is_success_status,
    )

    assert is_success_status(204) and not is_success_status(301)
    assert is_redirect_status(302) and not is_redirect_status(200)
    assert is_client_error_status(404) and not is_client_error_status(500)
    assert is_server_error_status(503) and not is_server_error_status(499)


def test_module_level_fetch_uses_a_throwaway_session(monkeypatch) -> None:
    from webaudit.workflows import http_fetch

    async def fake_send(self, method, url):
        return 200, "OK", {"Content-Type": "application/json"}, "{}", url, False

    monkeypatch.setattr(PageFetcher, "_send", fake_send, raising=False)

    outcome = asyncio.run(http_fetch.fetch_with_retry("https://example.com/api", _fast_config()))

    assert isinstance(outcome, HttpResponse)
    assert not is_html_content(outcome)

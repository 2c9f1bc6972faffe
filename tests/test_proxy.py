import logging
from datetime import datetime, timezone

import pytest

from web_scout.cache import ContentCache
from web_scout.errors import NetworkError, ValidationError
from web_scout.models import FetchResult
from web_scout.proxy import ProxyService


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


class FakeFetcher:
    def __init__(self, pages: dict) -> None:
        self.pages = pages
        self.calls: list[str] = []

    def fetch(self, url: str, timeout: float) -> FetchResult:
        self.calls.append(url)
        value = self.pages[url]
        if isinstance(value, Exception):
            raise value
        return FetchResult(url=url, status_ok=True, body=value, fetched_at=datetime.now(timezone.utc))


def _service(pages: dict, clock: FakeClock | None = None) -> tuple[ProxyService, FakeFetcher, FakeClock]:
    clock = clock or FakeClock()
    fetcher = FakeFetcher(pages)
    service = ProxyService(
        fetcher=fetcher,
        cache=ContentCache(300, clock=clock, name="proxy"),
        timeout=12.0,
        logger=logging.getLogger("test"),
    )
    return service, fetcher, clock


PAGE = '<html><head></head><body><a href="/contact">c</a></body></html>'


def test_render_fetches_transforms_and_caches() -> None:
    service, fetcher, _ = _service({"https://ex.com/": PAGE})
    first = service.render("https://ex.com/")
    assert first.status == 200
    assert first.from_cache is False
    assert '<base href="https://ex.com/">' in first.body
    assert "/proxy?url=https%3A%2F%2Fex.com%2Fcontact" in first.body
    assert first.etag.startswith('W/"')

    second = service.render("https://ex.com/")
    assert second.from_cache is True
    assert second.body == first.body
    assert second.etag == first.etag
    assert fetcher.calls == ["https://ex.com/"]


def test_matching_if_none_match_returns_not_modified() -> None:
    service, fetcher, _ = _service({"https://ex.com/": PAGE})
    etag = service.render("https://ex.com/").etag
    response = service.render("https://ex.com/", if_none_match=etag)
    assert response.status == 304
    assert response.body == ""
    assert len(fetcher.calls) == 1


def test_multi_value_and_wildcard_if_none_match_return_not_modified() -> None:
    service, fetcher, _ = _service({"https://ex.com/": PAGE})
    etag = service.render("https://ex.com/").etag
    assert service.render("https://ex.com/", if_none_match=f'W/"other", {etag}').status == 304
    assert service.render("https://ex.com/", if_none_match="*").status == 304
    assert service.render("https://ex.com/", if_none_match='W/"other"').status == 200
    assert len(fetcher.calls) == 1


def test_fast_mode_answers_not_modified_from_a_stale_entry() -> None:
    service, fetcher, clock = _service({"https://ex.com/": PAGE})
    etag = service.render("https://ex.com/").etag
    clock.now += 301
    response = service.render("https://ex.com/", fast=True, if_none_match=etag)
    assert response.status == 304
    assert response.from_cache is True
    assert len(fetcher.calls) == 1


def test_refetched_page_matching_client_etag_is_not_modified() -> None:
    service, fetcher, _ = _service({"https://ex.com/": PAGE})
    etag = service.render("https://ex.com/").etag
    service._cache.clear()
    response = service.render("https://ex.com/", if_none_match=etag)
    assert response.status == 304
    assert response.from_cache is False
    assert len(fetcher.calls) == 2


def test_stale_entries_refetch_unless_fast() -> None:
    service, fetcher, clock = _service({"https://ex.com/": PAGE})
    service.render("https://ex.com/")
    clock.now += 301

    fast = service.render("https://ex.com/", fast=True)
    assert fast.from_cache is True
    assert len(fetcher.calls) == 1

    slow = service.render("https://ex.com/")
    assert slow.from_cache is False
    assert len(fetcher.calls) == 2


def test_invalid_targets_are_rejected() -> None:
    service, fetcher, _ = _service({})
    with pytest.raises(ValidationError):
        service.render("not-a-url")
    assert fetcher.calls == []


def test_fetch_errors_propagate_and_are_not_cached() -> None:
    service, fetcher, _ = _service({"https://down.com/": NetworkError("refused", url="https://down.com/")})
    with pytest.raises(NetworkError):
        service.render("https://down.com/")
    with pytest.raises(NetworkError):
        service.render("https://down.com/")
    assert len(fetcher.calls) == 2

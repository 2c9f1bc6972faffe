"""Fetch, rewrite, and cache pages for the embedding proxy."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from .cache import CacheStatus, ContentCache, etag_matches, weak_etag
from .errors import ValidationError
from .models import Fetcher
from .transform import transform_html
from .validation import is_supported_url


@dataclass(frozen=True)
class ProxyResponse:
    status: int
    body: str
    etag: str
    from_cache: bool = False


class ProxyService:
    """Serve transformed HTML with a content-hash ETag.

    In fast mode any cached copy is served as-is, stale or not. Otherwise a
    fresh entry is served, or the page is refetched and the cache refreshed.
    A client whose If-None-Match names the served entry gets a bodiless 304.
    """

    def __init__(
        self,
        *,
        fetcher: Fetcher,
        cache: ContentCache,
        timeout: float,
        logger: logging.Logger,
        proxy_path: str = "/proxy",
    ) -> None:
        self._fetcher = fetcher
        self._cache = cache
        self._timeout = timeout
        self._logger = logger
        self._proxy_path = proxy_path

    def render(self, url: str, *, fast: bool = False, if_none_match: str | None = None) -> ProxyResponse:
        target = (url or "").strip()
        if not is_supported_url(target):
            raise ValidationError(f"Unsupported proxy target: {url!r}")

        looked_up = self._cache.lookup(target, if_none_match=if_none_match, fast=fast)
        if looked_up.status is CacheStatus.MISS:
            fetched = self._fetcher.fetch(target, self._timeout)
            entry = self._cache.put(target, transform_html(fetched.body, target, self._proxy_path))
            from_cache = False
            not_modified = etag_matches(if_none_match, entry.validator)
        else:
            entry = looked_up.entry
            from_cache = True
            not_modified = looked_up.status is CacheStatus.NOT_MODIFIED
            self._logger.debug(
                "Proxy cache %s for %s (fast=%s, stale=%s)", looked_up.status.value, target, fast, looked_up.stale
            )

        etag = weak_etag(entry.validator)
        if not_modified:
            return ProxyResponse(status=304, body="", etag=etag, from_cache=from_cache)
        return ProxyResponse(status=200, body=str(entry.value), etag=etag, from_cache=from_cache)

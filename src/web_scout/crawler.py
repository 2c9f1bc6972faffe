"""Seed-plus-subpages crawl for contact signals under a wall-clock budget."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from urllib.parse import urlparse

from .cache import ContentCache
from .config import ScoutConfig
from .errors import BudgetExceededError, FetchError, ValidationError
from .extraction import (
    domain_from_url,
    extract_emails,
    extract_socials,
    find_candidate_links,
    merge_socials,
)
from .models import (
    CrawlReport,
    EnrichmentResult,
    Fetcher,
    FetchResult,
    Outcome,
    ResultStatus,
    SocialLink,
)

Clock = Callable[[], float]


def cache_key(url: str) -> str:
    """Canonical cache key: lowercase scheme and host, no fragment or query, no trailing slash."""
    parsed = urlparse(url.strip())
    path = parsed.path.rstrip("/")
    return f"{parsed.scheme.lower()}://{parsed.netloc.lower()}{path}"


def build_result(domain: str, emails: list[str], socials: list[SocialLink]) -> EnrichmentResult:
    status = ResultStatus.FOUND if emails else ResultStatus.NONE
    return EnrichmentResult(domain=domain, emails=tuple(emails), socials=tuple(socials), status=status)


class Crawler:
    """Fetch a seed page, follow a few promising same-origin links, and merge what they show.

    The budget is checked once, after the seed fetch and link discovery. A slow
    candidate phase can still run past it; the check only stops a crawl that is
    already late from starting more fetches.
    """

    def __init__(
        self,
        *,
        fetcher: Fetcher,
        cache: ContentCache,
        config: ScoutConfig,
        logger: logging.Logger,
        clock: Clock = time.monotonic,
    ) -> None:
        self._fetcher = fetcher
        self._cache = cache
        self._config = config
        self._logger = logger
        self._clock = clock

    def crawl(self, url: str) -> CrawlReport:
        key = cache_key(url)
        domain = domain_from_url(url)
        cached = self._cache.get(key)
        if cached is not None:
            self._logger.debug("Enrichment cache hit for %s", key)
            return CrawlReport(result=cached.value, from_cache=True)

        started = self._clock()
        seed = self.attempt(url, self._config.seed_timeout)
        if not seed.ok or seed.value is None:
            self._logger.info("Seed fetch failed for %s (%s): %s", url, seed.error_kind, seed.detail)
            return CrawlReport(
                result=EnrichmentResult(domain=domain, status=ResultStatus.ERROR, error=seed.detail)
            )

        page = seed.value
        emails = extract_emails(page.body)
        socials = extract_socials(page.body)
        candidates = find_candidate_links(page.body, page.url, self._config.candidate_limit)

        elapsed = self._clock() - started
        if elapsed > self._config.crawl_budget:
            self._logger.info(
                "Crawl budget used up for %s after %.2fs; skipping %d candidates",
                url,
                elapsed,
                len(candidates),
            )
            return CrawlReport(
                result=build_result(domain, emails, socials),
                budget_exceeded=True,
                candidates=candidates,
            )

        to_fetch = candidates[: self._config.candidate_fetch_limit]
        outcomes = self._fetch_candidates(to_fetch)
        for outcome in outcomes:
            if not outcome.ok or outcome.value is None:
                continue
            emails.extend(address for address in extract_emails(outcome.value.body) if address not in emails)
            socials = merge_socials(socials, extract_socials(outcome.value.body))

        result = build_result(domain, emails, socials)
        if result.has_signals:
            self._cache.put(key, result)
        return CrawlReport(result=result, candidates=candidates, candidate_outcomes=outcomes)

    def enrich(self, url: str) -> EnrichmentResult:
        """Crawl and return the result, raising BudgetExceededError for a late crawl."""
        report = self.crawl(url)
        if report.budget_exceeded:
            raise BudgetExceededError("busy, retry", partial=report.result)
        return report.result

    def quick_scan(self, url: str) -> EnrichmentResult:
        """Single fetch with no subpages and no caching."""
        domain = domain_from_url(url) or url
        outcome = self.attempt(url, self._config.quick_scan_timeout)
        if not outcome.ok or outcome.value is None:
            return EnrichmentResult(domain=domain, status=ResultStatus.ERROR, error=outcome.detail)
        body = outcome.value.body
        return build_result(domain, extract_emails(body), extract_socials(body))

    def attempt(self, url: str, timeout: float) -> Outcome[FetchResult]:
        try:
            return Outcome.success(self._fetcher.fetch(url, timeout))
        except FetchError as exc:
            return Outcome.failure(exc.kind, str(exc))
        except ValidationError as exc:
            return Outcome.failure("validation", str(exc))

    def _fetch_candidates(self, urls: list[str]) -> list[Outcome[FetchResult]]:
        if not urls:
            return []
        with ThreadPoolExecutor(max_workers=len(urls)) as executor:
            outcomes = list(
                executor.map(lambda target: self.attempt(target, self._config.candidate_timeout), urls)
            )
        for target, outcome in zip(urls, outcomes):
            if not outcome.ok:
                self._logger.debug("Dropping candidate %s (%s): %s", target, outcome.error_kind, outcome.detail)
        return outcomes

"""Bounded-concurrency batch runs over many domains or emails."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Iterator
from concurrent.futures import ThreadPoolExecutor, as_completed
from urllib.parse import urlparse

from .config import ScoutConfig
from .errors import BudgetExceededError, ScoutError, ValidationError
from .extraction import derive_brand_name, looks_generic, pick_best_email
from .models import BatchItem, BatchMode, EnrichmentResult, ResultStatus
from .validation import clean_email, clean_token, is_valid_email, normalize_domain, to_origin

ScanFn = Callable[[str], EnrichmentResult]


def choose_email(
    emails: Iterable[str], *, prefer_personal: bool = True, exclude_generic: bool = False
) -> str | None:
    """Pick the contact address to show for a site."""
    candidates = [email for email in emails if is_valid_email(email)]
    if exclude_generic:
        candidates = [email for email in candidates if not looks_generic(email.split("@")[0])]
    if not candidates:
        return None
    if prefer_personal:
        return pick_best_email(candidates)
    return candidates[0]


def _host(url: str) -> str:
    return urlparse(url).hostname or url


class BatchOrchestrator:
    """Run a scan over many inputs with a fixed worker count, yielding items as they finish.

    Items keep their input index, so callers can place results by position even
    though completion order is arbitrary. A failure inside one item marks only
    that item as an error.
    """

    def __init__(self, *, scan: ScanFn, quick_scan: ScanFn, config: ScoutConfig, logger: logging.Logger) -> None:
        self._scan = scan
        self._quick_scan = quick_scan
        self._config = config
        self._logger = logger

    def prepare(self, inputs: Iterable[str], mode: BatchMode) -> list[BatchItem]:
        """Clean, dedupe, and validate raw inputs into pending batch items."""
        tokens: list[str] = []
        for raw in inputs:
            token = clean_token(raw)
            if token and token not in tokens:
                tokens.append(token)

        items: list[BatchItem] = []
        if mode is BatchMode.DOMAINS:
            seen: set[str] = set()
            for token in tokens:
                normalized = normalize_domain(token)
                if normalized is None:
                    self._logger.debug("Rejected domain input: %s", token)
                    continue
                if normalized in seen:
                    continue
                seen.add(normalized)
                items.append(BatchItem(index=len(items), input=token, normalized_url=normalized))
            if not items:
                raise ValidationError("Provide at least one valid domain (one per line).")
            if len(items) > self._config.max_batch_items:
                raise ValidationError(f"Limit is {self._config.max_batch_items} domains per run.")
            return items

        emails = [clean_email(token) for token in tokens]
        emails = [email for email in dict.fromkeys(emails) if is_valid_email(email)]
        if not emails:
            raise ValidationError("Provide valid email addresses (one per line).")
        for email in emails[: self._config.max_batch_items]:
            host = email.split("@", maxsplit=1)[1]
            items.append(BatchItem(index=len(items), input=email, normalized_url=normalize_domain(host)))
        return items

    def run(self, inputs: Iterable[str], mode: BatchMode) -> Iterator[BatchItem]:
        """Validate inputs now, then stream every item once it reaches a terminal state."""
        items = self.prepare(inputs, mode)
        self._logger.info("Scouting %d %s with %d workers", len(items), mode.value, self._config.workers)
        return self.run_items(items, mode)

    def run_items(self, items: list[BatchItem], mode: BatchMode) -> Iterator[BatchItem]:
        process = self._process_domain if mode is BatchMode.DOMAINS else self._process_email
        workers = min(self._config.workers, len(items)) or 1
        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = {executor.submit(process, item): item for item in items}
            for future in as_completed(futures):
                item = futures[future]
                try:
                    future.result()
                except Exception as exc:  # isolate per-item failures
                    self._logger.debug("Worker failed for %s: %s", item.input, exc)
                    if not item.done:
                        item.complete(
                            EnrichmentResult(
                                domain=_host(item.normalized_url or item.input),
                                status=ResultStatus.ERROR,
                                error=str(exc) or exc.__class__.__name__,
                            )
                        )
                yield item

    def scrape_batch(self, urls: list[str]) -> list[EnrichmentResult]:
        """Single-fetch scan of up to ``max_quick_batch`` URLs, results in input order."""
        if not urls:
            raise ValidationError("No urls provided")
        if len(urls) > self._config.max_quick_batch:
            raise ValidationError(f"Limit is {self._config.max_quick_batch} per run")
        origins = [to_origin(str(url)) for url in urls]
        results: list[EnrichmentResult | None] = [None] * len(origins)
        workers = min(self._config.quick_batch_workers, len(origins))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = {executor.submit(self._quick_scan, origin): index for index, origin in enumerate(origins)}
            for future in as_completed(futures):
                index = futures[future]
                try:
                    results[index] = future.result()
                except Exception as exc:  # isolate per-item failures
                    results[index] = EnrichmentResult(
                        domain=_host(origins[index]), status=ResultStatus.ERROR, error=str(exc)
                    )
        return [result for result in results if result is not None]

    def _scan_tolerant(self, url: str) -> EnrichmentResult:
        try:
            return self._scan(url)
        except BudgetExceededError as exc:
            if isinstance(exc.partial, EnrichmentResult):
                return exc.partial
            raise

    def _process_domain(self, item: BatchItem) -> None:
        url = item.normalized_url or item.input
        host = _host(url)
        brand = derive_brand_name(host)
        result = self._scan_tolerant(url)
        if result.status is ResultStatus.ERROR:
            item.complete(result)
            return
        chosen = choose_email(
            result.emails,
            prefer_personal=self._config.prefer_personal,
            exclude_generic=self._config.exclude_generic,
        )
        status = ResultStatus.FOUND if chosen else ResultStatus.NONE
        item.complete(
            EnrichmentResult(domain=host, emails=result.emails, socials=result.socials, status=status),
            email=chosen,
            first_name=brand,
        )

    def _process_email(self, item: BatchItem) -> None:
        email = item.input
        domain_part = email.split("@", maxsplit=1)[1]
        if item.normalized_url is None:
            item.complete(
                EnrichmentResult(domain=domain_part, emails=(email,), status=ResultStatus.FOUND),
                email=email,
                first_name=derive_brand_name(domain_part),
            )
            return
        host = _host(item.normalized_url)
        brand = derive_brand_name(host)
        try:
            result = self._scan_tolerant(item.normalized_url)
        except ScoutError as exc:
            result = EnrichmentResult(domain=host, status=ResultStatus.ERROR, error=str(exc))
        item.complete(
            EnrichmentResult(
                domain=host,
                emails=(email,),
                socials=result.socials,
                status=ResultStatus.FOUND,
                error=result.error,
            ),
            email=email,
            first_name=brand,
        )

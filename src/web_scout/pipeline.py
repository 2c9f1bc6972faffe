"""Service wiring and the batch run behind the CLI."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from tqdm import tqdm

from .cache import ContentCache
from .config import ScoutConfig
from .crawler import Crawler
from .fetchers import RequestsFetcher, make_session
from .io_csv import item_to_row, write_rows
from .models import BatchItem, BatchMode, Fetcher
from .orchestrator import BatchOrchestrator
from .previews import PreviewStore
from .proxy import ProxyService
from .validation import mx_check

MxCheckFn = Callable[[str], bool]


@dataclass
class Services:
    """Everything one process shares: the fetcher, both caches, and the components using them."""

    config: ScoutConfig
    fetcher: Fetcher
    proxy_cache: ContentCache
    enrichment_cache: ContentCache
    crawler: Crawler
    proxy: ProxyService
    orchestrator: BatchOrchestrator
    previews: PreviewStore


def build_services(
    config: ScoutConfig,
    *,
    logger: logging.Logger,
    fetcher: Fetcher | None = None,
) -> Services:
    """Construct the process-wide caches once and inject them into their consumers."""
    if fetcher is None:
        pool_size = max(config.workers * (config.candidate_fetch_limit + 1), config.quick_batch_workers)
        fetcher = RequestsFetcher(session=make_session(config.user_agent, pool_size), logger=logger)
    proxy_cache = ContentCache(config.proxy_ttl, name="proxy")
    enrichment_cache = ContentCache(config.enrichment_ttl, name="enrichment")
    crawler = Crawler(fetcher=fetcher, cache=enrichment_cache, config=config, logger=logger)
    proxy = ProxyService(
        fetcher=fetcher,
        cache=proxy_cache,
        timeout=config.proxy_timeout,
        logger=logger,
        proxy_path=config.proxy_path,
    )
    orchestrator = BatchOrchestrator(
        scan=crawler.enrich,
        quick_scan=crawler.quick_scan,
        config=config,
        logger=logger,
    )
    return Services(
        config=config,
        fetcher=fetcher,
        proxy_cache=proxy_cache,
        enrichment_cache=enrichment_cache,
        crawler=crawler,
        proxy=proxy,
        orchestrator=orchestrator,
        previews=PreviewStore(config.data_dir, logger=logger),
    )


def scout_items(
    orchestrator: BatchOrchestrator,
    inputs: Sequence[str],
    mode: BatchMode,
    *,
    show_progress: bool,
    logger: logging.Logger,
) -> list[BatchItem]:
    """Run a batch to completion and return items in input order."""
    items = orchestrator.prepare(inputs, mode)
    stream = orchestrator.run_items(items, mode)
    if show_progress:
        stream = tqdm(stream, total=len(items), desc=f"scouting {mode.value}")
    finished: list[BatchItem] = []
    for item in stream:
        finished.append(item)
        logger.debug("[%d] %s -> %s", item.index, item.input, item.status.value)
    finished.sort(key=lambda item: item.index)
    found = sum(1 for item in finished if item.email)
    logger.info("Scouted %d inputs, %d with an email", len(finished), found)
    return finished


def run_pipeline(
    config: ScoutConfig,
    inputs: Sequence[str],
    mode: BatchMode,
    output: str,
    *,
    logger: logging.Logger,
    services: Services | None = None,
    mx_checker: MxCheckFn = mx_check,
) -> str:
    """Build concrete dependencies, execute the batch, and write CSV output."""
    services = services or build_services(config, logger=logger)
    items = scout_items(
        services.orchestrator,
        inputs,
        mode,
        show_progress=config.show_progress,
        logger=logger,
    )
    checker = mx_checker if config.check_mx else None
    write_rows(output, [item_to_row(item, checker) for item in items])
    return output

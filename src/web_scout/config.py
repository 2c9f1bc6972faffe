"""Runtime configuration model."""

from __future__ import annotations

from dataclasses import dataclass

from .validation import validate_runtime_constraints

# Sites routinely reject default client agents, so present as a desktop browser.
DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0 Safari/537.36"
)
DEFAULT_SEED_TIMEOUT = 4.0
DEFAULT_CANDIDATE_TIMEOUT = 3.5
DEFAULT_QUICK_SCAN_TIMEOUT = 12.0
DEFAULT_PROXY_TIMEOUT = 12.0
DEFAULT_CRAWL_BUDGET = 6.0
DEFAULT_CANDIDATE_LIMIT = 10
DEFAULT_CANDIDATE_FETCH_LIMIT = 5
DEFAULT_WORKERS = 6
DEFAULT_QUICK_BATCH_WORKERS = 8
DEFAULT_MAX_BATCH_ITEMS = 500
DEFAULT_MAX_QUICK_BATCH = 50
DEFAULT_PROXY_TTL = 300.0
DEFAULT_ENRICHMENT_TTL = 600.0
DEFAULT_PROXY_PATH = "/proxy"
DEFAULT_DATA_DIR = "data"


@dataclass(frozen=True)
class ScoutConfig:
    """Validated configuration shared by the crawler, proxy, and batch runner."""

    user_agent: str = DEFAULT_USER_AGENT
    seed_timeout: float = DEFAULT_SEED_TIMEOUT
    candidate_timeout: float = DEFAULT_CANDIDATE_TIMEOUT
    quick_scan_timeout: float = DEFAULT_QUICK_SCAN_TIMEOUT
    proxy_timeout: float = DEFAULT_PROXY_TIMEOUT
    crawl_budget: float = DEFAULT_CRAWL_BUDGET
    candidate_limit: int = DEFAULT_CANDIDATE_LIMIT
    candidate_fetch_limit: int = DEFAULT_CANDIDATE_FETCH_LIMIT
    workers: int = DEFAULT_WORKERS
    quick_batch_workers: int = DEFAULT_QUICK_BATCH_WORKERS
    max_batch_items: int = DEFAULT_MAX_BATCH_ITEMS
    max_quick_batch: int = DEFAULT_MAX_QUICK_BATCH
    proxy_ttl: float = DEFAULT_PROXY_TTL
    enrichment_ttl: float = DEFAULT_ENRICHMENT_TTL
    proxy_path: str = DEFAULT_PROXY_PATH
    data_dir: str = DEFAULT_DATA_DIR
    prefer_personal: bool = True
    exclude_generic: bool = False
    check_mx: bool = False
    show_progress: bool = True

    def __post_init__(self) -> None:
        validate_runtime_constraints(
            workers=self.workers,
            quick_batch_workers=self.quick_batch_workers,
            candidate_limit=self.candidate_limit,
            candidate_fetch_limit=self.candidate_fetch_limit,
            max_batch_items=self.max_batch_items,
            max_quick_batch=self.max_quick_batch,
            timeouts={
                "seed_timeout": self.seed_timeout,
                "candidate_timeout": self.candidate_timeout,
                "quick_scan_timeout": self.quick_scan_timeout,
                "proxy_timeout": self.proxy_timeout,
                "crawl_budget": self.crawl_budget,
            },
            ttls={"proxy_ttl": self.proxy_ttl, "enrichment_ttl": self.enrichment_ttl},
        )

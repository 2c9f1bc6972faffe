import logging
import time
from threading import Lock

import pytest

from web_scout.config import ScoutConfig
from web_scout.errors import BudgetExceededError, ValidationError
from web_scout.models import BatchMode, EnrichmentResult, Platform, ResultStatus, SocialLink
from web_scout.orchestrator import BatchOrchestrator, choose_email


def _orchestrator(scan=None, quick_scan=None, **config_overrides) -> BatchOrchestrator:
    def unused(url: str) -> EnrichmentResult:
        raise AssertionError(f"unexpected scan of {url}")

    return BatchOrchestrator(
        scan=scan or unused,
        quick_scan=quick_scan or unused,
        config=ScoutConfig(show_progress=False, **config_overrides),
        logger=logging.getLogger("test"),
    )


def _found(url: str, *emails: str) -> EnrichmentResult:
    host = url.split("://", maxsplit=1)[-1]
    return EnrichmentResult(domain=host, emails=emails, status=ResultStatus.FOUND)


def test_prepare_domains_cleans_dedupes_and_rejects_bad_hosts() -> None:
    items = _orchestrator().prepare(
        ["shop.com", "https://shop.com/about", "10.0.0.1", "gmail.com", "  'brand.io' ", ""],
        BatchMode.DOMAINS,
    )
    assert [(item.index, item.input, item.normalized_url) for item in items] == [
        (0, "shop.com", "https://shop.com"),
        (1, "brand.io", "https://brand.io"),
    ]
    assert all(item.status is ResultStatus.PENDING for item in items)


def test_prepare_domains_rejects_empty_and_oversized_batches() -> None:
    orchestrator = _orchestrator(max_batch_items=3)
    with pytest.raises(ValidationError):
        orchestrator.prepare(["localhost", "10.0.0.1"], BatchMode.DOMAINS)
    with pytest.raises(ValidationError, match="Limit is 3"):
        orchestrator.prepare(["a.com", "b.com", "c.com", "d.com"], BatchMode.DOMAINS)


def test_prepare_emails_keeps_free_mail_without_a_site() -> None:
    items = _orchestrator().prepare(
        ["mailto:Jane@Shop.com", "bob@gmail.com", "not-an-email", "Jane@Shop.com"],
        BatchMode.EMAILS,
    )
    assert [(item.input, item.normalized_url) for item in items] == [
        ("Jane@Shop.com", "https://shop.com"),
        ("bob@gmail.com", None),
    ]


def test_prepare_emails_truncates_to_cap_and_rejects_empty() -> None:
    orchestrator = _orchestrator(max_batch_items=2)
    items = orchestrator.prepare(["a@a.com", "b@b.com", "c@c.com"], BatchMode.EMAILS)
    assert [item.input for item in items] == ["a@a.com", "b@b.com"]
    with pytest.raises(ValidationError):
        orchestrator.prepare(["nope", ""], BatchMode.EMAILS)


def test_run_completes_every_item_within_worker_bound() -> None:
    active = 0
    peak = 0
    lock = Lock()

    def scan(url: str) -> EnrichmentResult:
        nonlocal active, peak
        with lock:
            active += 1
            peak = max(peak, active)
        try:
            time.sleep(0.01)
            if "boom" in url:
                raise RuntimeError("parser exploded")
            if "down" in url:
                return EnrichmentResult(domain="down.com", status=ResultStatus.ERROR, error="refused")
            if "quiet" in url:
                return EnrichmentResult(domain="quiet.com")
            return _found(url, "info@" + url.split("://")[1], "jane@" + url.split("://")[1])
        finally:
            with lock:
                active -= 1

    domains = ["a.com", "b.com", "boom.com", "down.com", "quiet.com", "c.com", "d.com"]
    orchestrator = _orchestrator(scan=scan, workers=2)
    items = sorted(orchestrator.run(domains, BatchMode.DOMAINS), key=lambda item: item.index)

    assert len(items) == len(domains)
    assert all(item.done for item in items)
    assert peak <= 2
    by_input = {item.input: item for item in items}
    assert by_input["a.com"].status is ResultStatus.FOUND
    assert by_input["a.com"].email == "jane@a.com"
    assert by_input["a.com"].first_name == "A"
    assert by_input["boom.com"].status is ResultStatus.ERROR
    assert by_input["boom.com"].result.error == "parser exploded"
    assert by_input["down.com"].status is ResultStatus.ERROR
    assert by_input["quiet.com"].status is ResultStatus.NONE
    assert by_input["quiet.com"].email is None


def test_run_validates_before_streaming() -> None:
    with pytest.raises(ValidationError):
        _orchestrator().run(["not a domain"], BatchMode.DOMAINS)


def test_exclude_generic_can_leave_a_site_without_email() -> None:
    orchestrator = _orchestrator(scan=lambda url: _found(url, "info@shop.com"), exclude_generic=True)
    (item,) = list(orchestrator.run(["shop.com"], BatchMode.DOMAINS))
    assert item.status is ResultStatus.NONE
    assert item.email is None
    assert item.first_name == "Shop"


def test_budget_exceeded_partial_is_used() -> None:
    def scan(url: str) -> EnrichmentResult:
        raise BudgetExceededError("busy, retry", partial=_found(url, "owner@shop.com"))

    (item,) = list(_orchestrator(scan=scan).run(["shop.com"], BatchMode.DOMAINS))
    assert item.status is ResultStatus.FOUND
    assert item.email == "owner@shop.com"


def test_email_mode_scans_business_domains_only() -> None:
    scanned: list[str] = []
    social = SocialLink(Platform.INSTAGRAM, "https://instagram.com/shop")

    def scan(url: str) -> EnrichmentResult:
        scanned.append(url)
        return EnrichmentResult(domain="shop.com", emails=("info@shop.com",), socials=(social,))

    items = sorted(
        _orchestrator(scan=scan).run(["Jane@Shop.com", "bob@gmail.com"], BatchMode.EMAILS),
        key=lambda item: item.index,
    )
    assert scanned == ["https://shop.com"]
    shop, gmail = items
    assert shop.status is ResultStatus.FOUND
    assert shop.email == "Jane@Shop.com"
    assert shop.first_name == "Shop"
    assert shop.result.socials == (social,)
    assert gmail.status is ResultStatus.FOUND
    assert gmail.email == "bob@gmail.com"
    assert gmail.first_name == "Gmail"
    assert gmail.result.socials == ()


def test_email_mode_keeps_email_when_scan_fails() -> None:
    def scan(url: str) -> EnrichmentResult:
        return EnrichmentResult(domain="shop.com", status=ResultStatus.ERROR, error="refused")

    (item,) = list(_orchestrator(scan=scan).run(["jane@shop.com"], BatchMode.EMAILS))
    assert item.status is ResultStatus.FOUND
    assert item.email == "jane@shop.com"
    assert item.result.error == "refused"


def test_scrape_batch_limits() -> None:
    orchestrator = _orchestrator(quick_scan=lambda url: _found(url))
    with pytest.raises(ValidationError, match="No urls provided"):
        orchestrator.scrape_batch([])
    with pytest.raises(ValidationError, match="Limit is 50 per run"):
        orchestrator.scrape_batch([f"https://s{n}.com" for n in range(51)])


def test_scrape_batch_keeps_input_order_and_scans_origins() -> None:
    seen: list[str] = []
    lock = Lock()

    def quick_scan(url: str) -> EnrichmentResult:
        with lock:
            seen.append(url)
        if "b.com" in url:
            time.sleep(0.02)
        if "bad" in url:
            raise RuntimeError("boom")
        return _found(url, "hi@" + url.split("://")[1])

    urls = ["https://a.com/page?x=1", "https://b.com", "http://c.com/contact", "https://bad.com"]
    results = _orchestrator(quick_scan=quick_scan).scrape_batch(urls)

    assert [result.domain for result in results] == ["a.com", "b.com", "c.com", "bad.com"]
    assert sorted(seen) == ["http://c.com", "https://a.com", "https://b.com", "https://bad.com"]
    assert results[0].emails == ("hi@a.com",)
    assert results[3].status is ResultStatus.ERROR
    assert results[3].error == "boom"


def test_choose_email() -> None:
    emails = ["info@shop.com", "jane@shop.com"]
    assert choose_email(emails) == "jane@shop.com"
    assert choose_email(emails, prefer_personal=False) == "info@shop.com"
    assert choose_email(["info@shop.com"], exclude_generic=True) is None
    assert choose_email(["not-an-email"]) is None

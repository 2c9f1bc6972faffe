from web_scout.cache import CacheStatus, ContentCache, etag_matches, make_validator, weak_etag
from web_scout.models import EnrichmentResult, Platform, ResultStatus, SocialLink


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def test_put_then_get_returns_same_value_and_validator() -> None:
    cache = ContentCache(300, clock=FakeClock())
    stored = cache.put("https://shop.com", "<p>hi</p>")
    entry = cache.get("https://shop.com")
    assert entry is not None
    assert entry.value == "<p>hi</p>"
    assert entry.validator == stored.validator


def test_entries_expire_after_ttl_but_fast_path_serves_them() -> None:
    clock = FakeClock()
    cache = ContentCache(300, clock=clock)
    cache.put("k", "v")
    clock.advance(299)
    assert cache.get("k") is not None
    clock.advance(1)
    assert cache.get("k") is None
    stale = cache.get("k", fast=True)
    assert stale is not None and stale.value == "v"


def test_validator_tracks_value_content() -> None:
    cache = ContentCache(300, clock=FakeClock())
    first = cache.put("k", "same")
    again = cache.put("k", "same")
    changed = cache.put("k", "different")
    assert first.validator == again.validator
    assert changed.validator != first.validator


def test_validator_for_results_uses_canonical_form() -> None:
    social = SocialLink(Platform.INSTAGRAM, "https://instagram.com/shop")
    left = EnrichmentResult("shop.com", ("a@shop.com",), (social,), ResultStatus.FOUND)
    right = EnrichmentResult("shop.com", ("a@shop.com",), (social,), ResultStatus.FOUND)
    assert make_validator(left) == make_validator(right)
    assert make_validator(left) != make_validator(EnrichmentResult("shop.com"))


def test_lookup_reports_not_modified_for_current_validator() -> None:
    clock = FakeClock()
    cache = ContentCache(300, clock=clock)
    entry = cache.put("k", "v")

    assert cache.lookup("missing").status is CacheStatus.MISS
    assert cache.lookup("k").status is CacheStatus.HIT
    assert cache.lookup("k", validator="old").status is CacheStatus.HIT
    assert cache.lookup("k", validator=entry.validator).status is CacheStatus.NOT_MODIFIED

    clock.advance(301)
    assert cache.lookup("k", validator=entry.validator).status is CacheStatus.MISS
    stale = cache.lookup("k", validator=entry.validator, fast=True)
    assert stale.status is CacheStatus.NOT_MODIFIED
    assert stale.stale is True


def test_lookup_accepts_raw_if_none_match_header() -> None:
    cache = ContentCache(300, clock=FakeClock())
    entry = cache.put("k", "v")
    header = f'W/"zzz", {weak_etag(entry.validator)}'
    assert cache.lookup("k", if_none_match=header).status is CacheStatus.NOT_MODIFIED
    assert cache.lookup("k", if_none_match="*").status is CacheStatus.NOT_MODIFIED
    assert cache.lookup("k", if_none_match='W/"zzz"').status is CacheStatus.HIT


def test_retention_defaults_to_a_multiple_of_ttl() -> None:
    assert ContentCache(10, clock=FakeClock()).retention == 40
    assert ContentCache(10, clock=FakeClock(), retention=5).retention == 10


def test_stale_entries_within_retention_survive_purge() -> None:
    clock = FakeClock()
    cache = ContentCache(10, clock=clock, retention=30)
    cache.put("k", "v")
    clock.advance(25)
    cache.put("other", "w")
    assert cache.purge_expired() == 0
    assert cache.get("k") is None
    assert cache.get("k", fast=True).value == "v"


def test_put_sweeps_entries_past_retention() -> None:
    clock = FakeClock()
    cache = ContentCache(10, clock=clock, retention=20)
    for index in range(50):
        cache.put(f"page-{index}", index)
    clock.advance(25)
    cache.put("fresh", "x")
    assert len(cache) == 1
    assert "fresh" in cache
    assert cache.get("page-0", fast=True) is None


def test_put_sweeps_at_most_once_per_ttl() -> None:
    clock = FakeClock()
    cache = ContentCache(10, clock=clock, retention=10)
    cache.put("a", 1)
    clock.advance(5)
    cache.put("b", 2)
    clock.advance(5)
    cache.put("c", 3)
    assert "a" not in cache and "b" in cache
    clock.advance(6)
    # "b" is past retention but the last sweep was only 6s ago
    cache.put("d", 4)
    assert "b" in cache
    clock.advance(4)
    cache.put("e", 5)
    assert "b" not in cache and "d" in cache


def test_evict_purge_and_membership() -> None:
    clock = FakeClock()
    cache = ContentCache(10, clock=clock, name="proxy", retention=20)
    cache.put("old", 1)
    clock.advance(21)
    assert len(cache) == 1
    assert cache.purge_expired() == 1
    cache.put("new", 2)
    assert "old" not in cache and "new" in cache
    assert cache.evict("new") is True
    assert cache.evict("new") is False
    assert len(cache) == 0


def test_etag_matching() -> None:
    assert weak_etag("abc") == 'W/"abc"'
    assert etag_matches('W/"abc"', "abc")
    assert etag_matches('"abc"', "abc")
    assert etag_matches('W/"zzz", W/"abc"', "abc")
    assert etag_matches("*", "abc")
    assert not etag_matches('W/"zzz"', "abc")
    assert not etag_matches(None, "abc")

import pytest

from salesdash.reporting.cache import ReportCache


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


class TestReportCache:
    """测试报表缓存"""

    def test_key_format(self):
        assert ReportCache.make_key('quarterly', 2025, 1) == 'quarterly-2025-1'

    def test_hit_within_ttl(self, clock):
        cache = ReportCache(ttl_seconds=300, clock=clock)
        cache.set('quarterly-2025-1', {'unit': 'quarter'})

        clock.now += 299
        assert cache.get('quarterly-2025-1') == {'unit': 'quarter'}

    def test_expired_entry_is_evicted(self, clock):
        cache = ReportCache(ttl_seconds=300, clock=clock)
        cache.set('quarterly-2025-1', {'unit': 'quarter'})

        clock.now += 300
        assert cache.get('quarterly-2025-1') is None
        assert len(cache) == 0

    def test_miss(self, clock):
        assert ReportCache(clock=clock).get('quarterly-2025-2') is None

    def test_full_cache_evicts_oldest(self, clock):
        cache = ReportCache(max_entries=2, clock=clock)
        cache.set('a', 1)
        cache.set('b', 2)
        cache.set('c', 3)

        assert len(cache) == 2
        assert cache.get('a') is None
        assert cache.get('b') == 2
        assert cache.get('c') == 3

    def test_overwrite_does_not_evict_others(self, clock):
        cache = ReportCache(max_entries=2, clock=clock)
        cache.set('a', 1)
        cache.set('b', 2)
        cache.set('a', 10)

        assert cache.get('a') == 10
        assert cache.get('b') == 2

    def test_clear(self, clock):
        cache = ReportCache(clock=clock)
        cache.set('a', 1)
        cache.set('b', 2)

        assert cache.clear() == 2
        assert cache.get('a') is None
        assert len(cache) == 0

    def test_rejects_zero_capacity(self):
        with pytest.raises(ValueError):
            ReportCache(max_entries=0)

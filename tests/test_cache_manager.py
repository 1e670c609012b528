import pytest

from erp_query.search import CacheManager, BoundedCacheTier, JsonFileStorage
from erp_query.search.cache_manager import CAPACITY_THRESHOLD, STORAGE_TEST_KEY
from erp_query.utils import StorageQuotaExceededError


class BrokenStorage(JsonFileStorage):
    """書き込みが常に失敗するストレージ"""

    def probe(self):
        raise OSError('storage disabled')

    def set_item(self, key, value):
        raise OSError('storage disabled')


@pytest.fixture
def bounded(tmp_path, clock):
    storage = JsonFileStorage(tmp_path / 'bounded.json', max_bytes=10_000)
    return BoundedCacheTier(storage, clock=clock, max_bytes=1_000)


def test_bounded_round_trip(bounded):
    value = {'theme': 'dark', 'columns': ['fieldName', 'fileCode'], 'size': 3}

    assert bounded.save_sync('settings', value, expires_in=1000)
    assert bounded.load_sync('settings') == value


def test_bounded_entry_persists_to_file(tmp_path, clock):
    path = tmp_path / 'bounded.json'
    BoundedCacheTier(JsonFileStorage(path), clock=clock).save_sync('k', [1, 2])

    reopened = BoundedCacheTier(JsonFileStorage(path), clock=clock)
    assert reopened.load_sync('k') == [1, 2]


def test_bounded_expiry_removes_entry(bounded, clock):
    assert bounded.save_sync('k', 'v', expires_in=0)
    clock.advance(1)

    assert bounded.load_sync('k') is None
    assert not bounded.exists_sync('k')


def test_bounded_entry_without_expiry_never_expires(bounded, clock):
    bounded.save_sync('k', 'v')
    clock.advance(10 ** 12)

    assert bounded.load_sync('k') == 'v'


def test_capacity_refusal_keeps_existing_entries(bounded):
    assert bounded.save_sync('keep', 'x' * 100)
    assert bounded.save_sync('big', 'y' * 900)

    capacity = bounded.check_capacity()
    assert capacity['used'] >= bounded.max_bytes * CAPACITY_THRESHOLD
    assert not capacity['available']

    assert bounded.save_sync('more', 'z') is False
    assert bounded.load_sync('keep') == 'x' * 100
    assert bounded.load_sync('big') == 'y' * 900
    assert not bounded.exists_sync('more')


def test_storage_hard_limit_raises_before_mutating(tmp_path):
    storage = JsonFileStorage(tmp_path / 's.json', max_bytes=20)
    storage.set_item('a', '1')

    with pytest.raises(StorageQuotaExceededError):
        storage.set_item('b', 'x' * 50)
    assert storage.keys() == ['a']


def test_unavailable_storage_is_a_noop(tmp_path, clock):
    tier = BoundedCacheTier(BrokenStorage(tmp_path / 'b.json'), clock=clock)

    assert not tier.is_available()
    assert tier.save_sync('k', 'v') is False
    assert tier.load_sync('k') is None
    assert tier.remove_sync('k') is False
    assert tier.check_capacity() == {'used': 0, 'available': False}


def test_availability_check_leaves_store_untouched(bounded, tmp_path):
    bounded.save_sync('k', 'v')
    before = (tmp_path / 'bounded.json').stat().st_mtime_ns

    assert bounded.is_available()
    assert bounded.load_sync('k') == 'v'
    assert not bounded.exists_sync(STORAGE_TEST_KEY)
    assert (tmp_path / 'bounded.json').stat().st_mtime_ns == before
    assert sorted(p.name for p in tmp_path.iterdir()) == ['bounded.json']


@pytest.mark.asyncio
async def test_bounded_async_interface(bounded):
    assert await bounded.save('k', {'a': 1})
    assert await bounded.exists('k')
    assert await bounded.load('k') == {'a': 1}
    assert await bounded.remove('k')
    assert await bounded.load('k') is None


@pytest.mark.asyncio
async def test_clear_all_cache_with_prefix_keeps_fast_tier(cache_manager):
    cache_manager.save_bounded('erp-search-history', [1])
    cache_manager.save_bounded('erp-favorites', [2])
    cache_manager.save_bounded('other', [3])
    await cache_manager.save_fast('erp-data-cache', [4])

    await cache_manager.clear_all_cache('erp-')

    assert cache_manager.load_bounded('erp-search-history') is None
    assert cache_manager.load_bounded('erp-favorites') is None
    assert cache_manager.load_bounded('other') == [3]
    assert await cache_manager.load_fast('erp-data-cache') == [4]


@pytest.mark.asyncio
async def test_clear_all_cache_without_prefix_clears_both_tiers(cache_manager):
    cache_manager.save_bounded('a', 1)
    await cache_manager.save_fast('b', 2)

    await cache_manager.clear_all_cache()

    assert cache_manager.load_bounded('a') is None
    assert await cache_manager.load_fast('b') is None


@pytest.mark.asyncio
async def test_storage_info_and_quota_estimate(cache_manager):
    cache_manager.save_bounded('a', 'value')
    await cache_manager.save_fast('b', 'value')

    info = cache_manager.get_storage_info()
    assert info['used'] > 0
    assert info['available'] is True

    quota = cache_manager.get_quota_estimate()
    assert quota['usage'] > 0
    assert quota['quota'] >= quota['usage']


@pytest.mark.asyncio
async def test_storage_info_is_none_when_unavailable(tmp_path, clock):
    tier = BoundedCacheTier(BrokenStorage(tmp_path / 'b.json'), clock=clock)
    manager = CacheManager(tmp_path / 'cache', clock=clock, bounded_tier=tier)

    assert manager.get_storage_info() is None
    assert manager.save_bounded('k', 'v') is False
    await manager.shutdown()


def test_store_filled_near_hard_limit_stays_usable(tmp_path, clock):
    storage = JsonFileStorage(tmp_path / 'bounded.json', max_bytes=1_000)
    tier = BoundedCacheTier(storage, clock=clock, max_bytes=1_000)

    assert tier.save_sync('small', 'x' * 100)
    assert tier.save_sync('big', 'y' * 800)
    assert storage.usage() > 1_000 - 32

    assert tier.is_available()
    assert tier.check_capacity()['available'] is False
    assert tier.save_sync('more', 'z') is False
    assert tier.load_sync('small') == 'x' * 100
    assert tier.load_sync('big') == 'y' * 800

    assert tier.remove_sync('big')
    assert tier.save_sync('more', 'z')
    assert tier.clear_sync()
    assert tier.load_sync('small') is None

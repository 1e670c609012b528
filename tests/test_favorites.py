import pytest

from erp_query.search import BoundedCacheTier, CacheManager, JsonFileStorage
from erp_query.session import FavoritesManager


@pytest.mark.asyncio
async def test_add_remove_and_persist(cache_manager, sample_records):
    favorites = FavoritesManager(cache_manager)

    assert favorites.add_favorite(sample_records[0])
    assert not favorites.add_favorite(sample_records[0])
    assert favorites.add_favorite(sample_records[2])

    reloaded = FavoritesManager(cache_manager)
    assert [r.id for r in reloaded.favorites] == ['1', '3']
    assert reloaded.favorites[0] == sample_records[0]

    assert reloaded.remove_favorite('1')
    assert not reloaded.remove_favorite('1')
    assert reloaded.favorites_count == 1


@pytest.mark.asyncio
async def test_toggle_favorite(cache_manager, sample_records):
    favorites = FavoritesManager(cache_manager)

    assert favorites.toggle_favorite(sample_records[1]) is True
    assert favorites.is_favorite('2')
    assert favorites.toggle_favorite(sample_records[1]) is False
    assert not favorites.has_favorites


@pytest.mark.asyncio
async def test_batch_add_skips_existing(cache_manager, sample_records):
    favorites = FavoritesManager(cache_manager)
    favorites.add_favorite(sample_records[0])

    added = favorites.batch_add_favorites(sample_records[:3])

    assert added == 2
    assert [r.id for r in FavoritesManager(cache_manager).favorites] == ['1', '2', '3']


@pytest.mark.asyncio
async def test_clear_favorites(cache_manager, sample_records):
    favorites = FavoritesManager(cache_manager)
    favorites.batch_add_favorites(sample_records)

    favorites.clear_favorites()

    assert FavoritesManager(cache_manager).favorites == []


class BrokenStorage(JsonFileStorage):

    def probe(self):
        raise OSError('storage disabled')


@pytest.mark.asyncio
async def test_unsaved_changes_are_not_kept(tmp_path, clock, sample_records):
    tier = BoundedCacheTier(BrokenStorage(tmp_path / 'b.json'), clock=clock)
    manager = CacheManager(tmp_path / 'cache', clock=clock, bounded_tier=tier)
    favorites = FavoritesManager(manager)
    try:
        assert favorites.toggle_favorite(sample_records[0]) is False
        assert not favorites.is_favorite('1')
        assert favorites.add_favorite(sample_records[0]) is False
        assert favorites.batch_add_favorites(sample_records) == 0
        assert not favorites.has_favorites
    finally:
        await manager.shutdown()


@pytest.mark.asyncio
async def test_failed_removal_keeps_favorite(cache_manager, sample_records, monkeypatch):
    favorites = FavoritesManager(cache_manager)
    favorites.add_favorite(sample_records[0])
    monkeypatch.setattr(cache_manager, 'save_bounded', lambda *args, **kwargs: False)

    assert favorites.toggle_favorite(sample_records[0]) is True
    assert favorites.is_favorite('1')

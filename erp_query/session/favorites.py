#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
お気に入り管理
"""

from typing import Iterable, List

from ..search.models import FieldRecord
from ..search.cache_manager import CacheManager
from ..utils import setup_debug_logger

# デバッグロガー
debug_logger = setup_debug_logger('Favorites')

FAVORITES_STORAGE_KEY = 'erp-favorites'


class FavoritesManager:
    """お気に入りレコードの管理（容量制限層に保存）"""

    def __init__(self, cache_manager: CacheManager):
        self.cache_manager = cache_manager
        self.favorites: List[FieldRecord] = []

        stored = cache_manager.load_bounded(FAVORITES_STORAGE_KEY)
        if isinstance(stored, list):
            for data in stored:
                try:
                    self.favorites.append(FieldRecord.from_dict(data))
                except (TypeError, ValueError, AttributeError) as e:
                    debug_logger.warning(f"お気に入りの復元をスキップ: {e}")

    def _save(self) -> bool:
        saved = self.cache_manager.save_bounded(
            FAVORITES_STORAGE_KEY, [record.to_dict() for record in self.favorites]
        )
        if not saved:
            debug_logger.error("お気に入りの保存失敗: 容量制限層が満杯の可能性")
        return saved

    def is_favorite(self, record_id: str) -> bool:
        return any(fav.id == record_id for fav in self.favorites)

    def add_favorite(self, record: FieldRecord) -> bool:
        if self.is_favorite(record.id):
            debug_logger.warning(f"既にお気に入りに登録済み: {record.id}")
            return False
        self.favorites.append(record)
        if not self._save():
            # 保存できなければ登録を取り消す
            self.favorites.pop()
            return False
        return True

    def remove_favorite(self, record_id: str) -> bool:
        remaining = [fav for fav in self.favorites if fav.id != record_id]
        if len(remaining) == len(self.favorites):
            debug_logger.warning(f"お気に入りに存在しません: {record_id}")
            return False
        previous, self.favorites = self.favorites, remaining
        if not self._save():
            self.favorites = previous
            return False
        return True

    def toggle_favorite(self, record: FieldRecord) -> bool:
        """切り替え後にお気に入りなら True（保存失敗時は切り替えず現在の状態を返す）"""
        if self.is_favorite(record.id):
            self.remove_favorite(record.id)
        else:
            self.add_favorite(record)
        return self.is_favorite(record.id)

    def batch_add_favorites(self, records: Iterable[FieldRecord]) -> int:
        """未登録分をまとめて追加し、追加件数を返す（保存失敗時は 0）"""
        previous = list(self.favorites)
        added_count = 0
        for record in records:
            if not self.is_favorite(record.id):
                self.favorites.append(record)
                added_count += 1

        if added_count > 0 and not self._save():
            self.favorites = previous
            return 0
        return added_count

    def clear_favorites(self):
        self.favorites = []
        self.cache_manager.remove_bounded(FAVORITES_STORAGE_KEY)

    @property
    def favorites_count(self) -> int:
        return len(self.favorites)

    @property
    def has_favorites(self) -> bool:
        return bool(self.favorites)

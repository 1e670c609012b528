#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
キャッシュ管理
2層キャッシュ（高速層・容量制限層）の管理
"""

import os
import json
import threading
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

import psutil

from .cache_tier import CacheTier, CacheEntry
from .database_manager import FastCacheTier
from ..utils import (
    setup_debug_logger, now_ms, error_handler, ErrorType,
    CacheError, StorageQuotaExceededError
)

# デバッグロガー
debug_logger = setup_debug_logger('CacheManager')

BOUNDED_STORE_FILE = 'bounded_cache.json'
MAX_STORAGE_BYTES = 5 * 1024 * 1024
CAPACITY_THRESHOLD = 0.9
STORAGE_TEST_KEY = '__storage_test__'


class JsonFileStorage:
    """同期キー・値ストア（JSONファイルに全体を書き戻す、容量上限付き）"""

    def __init__(self, file_path: Union[str, Path], max_bytes: int = MAX_STORAGE_BYTES):
        self.file_path = Path(file_path)
        self.max_bytes = max_bytes
        self._lock = threading.RLock()
        self._items: Dict[str, str] = self._read_file()

    def _read_file(self) -> Dict[str, str]:
        if not self.file_path.exists():
            return {}
        try:
            with open(self.file_path, 'r', encoding='utf-8') as f:
                items = json.load(f)
            if isinstance(items, dict):
                return {str(k): str(v) for k, v in items.items()}
            debug_logger.warning(f"容量制限層ファイルの形式が不正なため破棄します: {self.file_path}")
        except (OSError, ValueError) as e:
            debug_logger.error(f"容量制限層ファイル読み込みエラー: {e}")
        return {}

    def _write_file(self, items: Dict[str, str]):
        self.file_path.parent.mkdir(parents=True, exist_ok=True)
        temp_path = self.file_path.with_name(self.file_path.name + '.tmp')
        with open(temp_path, 'w', encoding='utf-8') as f:
            json.dump(items, f, ensure_ascii=False)
        os.replace(temp_path, self.file_path)

    @staticmethod
    def _measure(items: Dict[str, str]) -> int:
        return sum(len(key) + len(value) for key, value in items.items())

    def get_item(self, key: str) -> Optional[str]:
        with self._lock:
            return self._items.get(key)

    def set_item(self, key: str, value: str):
        """書き込み。上限超過時は何も変更せず StorageQuotaExceededError"""
        with self._lock:
            updated = dict(self._items)
            updated[key] = value
            if self._measure(updated) > self.max_bytes:
                raise StorageQuotaExceededError(f"storage quota exceeded: {key}")
            self._write_file(updated)
            self._items = updated

    def remove_item(self, key: str):
        with self._lock:
            if key not in self._items:
                return
            updated = dict(self._items)
            del updated[key]
            self._write_file(updated)
            self._items = updated

    def keys(self) -> List[str]:
        with self._lock:
            return list(self._items)

    def clear(self):
        with self._lock:
            self._write_file({})
            self._items = {}

    def __len__(self) -> int:
        return len(self._items)

    def usage(self) -> int:
        """使用量（キー長＋値長の合計）"""
        with self._lock:
            return self._measure(self._items)

    def probe(self):
        """書き込み可否の確認（容量上限の対象外、本体ファイルは書き換えない）"""
        self.file_path.parent.mkdir(parents=True, exist_ok=True)
        probe_path = self.file_path.with_name(self.file_path.name + '.probe')
        with open(probe_path, 'w', encoding='utf-8') as f:
            f.write(STORAGE_TEST_KEY)
        os.remove(probe_path)


class BoundedCacheTier(CacheTier):
    """キャッシュ容量制限層（同期・約5MiB上限）"""

    name = 'bounded'

    def __init__(self, storage: JsonFileStorage, clock: Callable[[], int] = now_ms,
                 max_bytes: int = MAX_STORAGE_BYTES):
        self.storage = storage
        self.clock = clock
        self.max_bytes = max_bytes

    def is_available(self) -> bool:
        """試験書き込み・削除で利用可否を確認"""
        try:
            self.storage.probe()
            return True
        except OSError as e:
            debug_logger.warning(f"容量制限層が利用不可: {e}")
            return False

    def check_capacity(self) -> Dict[str, Any]:
        """使用量（キー長＋値長の合計）と書き込み可否"""
        if not self.is_available():
            return {'used': 0, 'available': False}
        return self.capacity_status()

    def capacity_status(self) -> Dict[str, Any]:
        """使用量と書き込み可否（利用可否の確認は行わない）"""
        used = self.storage.usage()
        return {
            'used': used,
            'available': used < self.max_bytes * CAPACITY_THRESHOLD,
        }

    def save_sync(self, key: str, data: Any, expires_in: Optional[int] = None) -> bool:
        if not self.is_available():
            debug_logger.warning("容量制限層が利用できないため保存をスキップ")
            return False

        capacity = self.capacity_status()
        if not capacity['available']:
            debug_logger.warning(f"容量制限層の容量不足: {capacity['used']} bytes")
            return False

        entry = CacheEntry.create(data, self.clock(), expires_in)
        try:
            self.storage.set_item(key, json.dumps(entry.to_dict(), ensure_ascii=False))
            return True
        except (TypeError, ValueError, OSError, CacheError) as e:
            app_error = error_handler.handle_error(e, ErrorType.STORAGE)
            debug_logger.error(f"容量制限層への保存失敗: {key}: {app_error.user_message}")
            if error_handler.is_quota_exceeded_error(e):
                debug_logger.warning("容量制限層が満杯です。一部データの削除を推奨します")
            return False

    def load_sync(self, key: str) -> Optional[Any]:
        if not self.is_available():
            return None

        item = self.storage.get_item(key)
        if item is None:
            return None

        try:
            entry = CacheEntry.from_dict(json.loads(item))
        except (TypeError, ValueError, KeyError) as e:
            app_error = error_handler.handle_error(e, ErrorType.STORAGE)
            debug_logger.error(f"容量制限層からの読み込み失敗: {key}: {app_error.user_message}")
            return None

        if entry.is_expired(self.clock()):
            try:
                self.storage.remove_item(key)
            except OSError as e:
                debug_logger.error(f"期限切れエントリの削除失敗: {key}: {e}")
            return None

        return entry.data

    def remove_sync(self, key: str) -> bool:
        if not self.is_available():
            return False
        try:
            self.storage.remove_item(key)
            return True
        except OSError as e:
            debug_logger.error(f"容量制限層からの削除失敗: {key}: {e}")
            return False

    def clear_sync(self, prefix: Optional[str] = None) -> bool:
        """全削除（prefix 指定時は該当キーのみ）"""
        if not self.is_available():
            return False
        try:
            if prefix:
                for key in [k for k in self.storage.keys() if k.startswith(prefix)]:
                    self.storage.remove_item(key)
            else:
                self.storage.clear()
            return True
        except OSError as e:
            debug_logger.error(f"容量制限層のクリア失敗: {e}")
            return False

    def exists_sync(self, key: str) -> bool:
        return self.storage.get_item(key) is not None

    # 非同期インターフェース（即時完了）
    async def save(self, key: str, data: Any, expires_in: Optional[int] = None) -> bool:
        return self.save_sync(key, data, expires_in)

    async def load(self, key: str) -> Optional[Any]:
        return self.load_sync(key)

    async def remove(self, key: str) -> bool:
        return self.remove_sync(key)

    async def clear(self) -> bool:
        return self.clear_sync()

    async def exists(self, key: str) -> bool:
        return self.exists_sync(key)


class CacheManager:
    """2層キャッシュ管理システム"""

    def __init__(self, cache_dir: Union[str, Path], clock: Callable[[], int] = now_ms,
                 bounded_max_bytes: int = MAX_STORAGE_BYTES,
                 fast_tier: Optional[FastCacheTier] = None,
                 bounded_tier: Optional[BoundedCacheTier] = None):
        self.cache_dir = Path(cache_dir)

        self.fast_tier = fast_tier or FastCacheTier(self.cache_dir, clock=clock)
        self.bounded_tier = bounded_tier or BoundedCacheTier(
            JsonFileStorage(self.cache_dir / BOUNDED_STORE_FILE, max_bytes=bounded_max_bytes),
            clock=clock,
            max_bytes=bounded_max_bytes,
        )

    async def save_fast(self, key: str, data: Any, expires_in: Optional[int] = None) -> bool:
        try:
            return await self.fast_tier.save(key, data, expires_in)
        except CacheError as e:
            app_error = error_handler.handle_error(e, ErrorType.STORAGE)
            debug_logger.error(f"高速層への保存失敗: {key}: {app_error.user_message}")
            return False

    async def load_fast(self, key: str) -> Optional[Any]:
        try:
            return await self.fast_tier.load(key)
        except CacheError as e:
            app_error = error_handler.handle_error(e, ErrorType.STORAGE)
            debug_logger.error(f"高速層からの読み込み失敗: {key}: {app_error.user_message}")
            return None

    async def remove_fast(self, key: str) -> bool:
        try:
            return await self.fast_tier.remove(key)
        except CacheError as e:
            debug_logger.error(f"高速層からの削除失敗: {key}: {e}")
            return False

    def save_bounded(self, key: str, data: Any, expires_in: Optional[int] = None) -> bool:
        return self.bounded_tier.save_sync(key, data, expires_in)

    def load_bounded(self, key: str) -> Optional[Any]:
        return self.bounded_tier.load_sync(key)

    def remove_bounded(self, key: str) -> bool:
        return self.bounded_tier.remove_sync(key)

    async def clear_all_cache(self, prefix: Optional[str] = None):
        """キャッシュクリア（prefix 指定時は容量制限層の該当キーのみ）"""
        self.bounded_tier.clear_sync(prefix)
        if not prefix:
            try:
                await self.fast_tier.clear()
            except CacheError as e:
                debug_logger.error(f"高速層のクリア失敗: {e}")
        debug_logger.info(f"キャッシュクリア完了 (prefix={prefix!r})")

    def get_storage_info(self) -> Optional[Dict[str, Any]]:
        """容量制限層の使用状況。利用不可なら None"""
        if not self.bounded_tier.is_available():
            return None
        capacity = self.bounded_tier.capacity_status()
        return {
            'used': capacity['used'],
            'used_mb': round(capacity['used'] / (1024 * 1024), 2),
            'available': capacity['available'],
        }

    def get_quota_estimate(self) -> Optional[Dict[str, int]]:
        """高速層の使用量とディスク容量の見積もり。取得不可なら None"""
        try:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
            disk = psutil.disk_usage(str(self.cache_dir))
            usage = self.fast_tier.get_database_size()
            return {
                'usage': usage,
                'quota': disk.free + usage,
            }
        except OSError as e:
            debug_logger.warning(f"ストレージ見積もり取得エラー: {e}")
            return None

    def get_cache_statistics(self) -> Dict[str, Any]:
        """キャッシュ統計情報取得"""
        return {
            "bounded_entries": len(self.bounded_tier.storage),
            "bounded_storage": self.get_storage_info(),
            "quota_estimate": self.get_quota_estimate(),
        }

    async def shutdown(self):
        """シャットダウン処理"""
        await self.fast_tier.close()
        debug_logger.info("キャッシュシャットダウン完了")

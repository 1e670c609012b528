#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
データストア
データセットの取得・キャッシュ復元・インデックス構築の統合
"""

import time
from typing import Any, Callable, Dict, List, Optional

from .data_loader import DataLoader
from ..search.models import FieldRecord
from ..search.search_index import SearchIndex
from ..search.cache_manager import CacheManager
from ..utils import setup_debug_logger, error_handler, ErrorType, ErpQueryError

# デバッグロガー
debug_logger = setup_debug_logger('DataStore')

CACHE_KEY = 'erp-data-cache'
CACHE_EXPIRY_MS = 7 * 24 * 60 * 60 * 1000


class DataStore:
    """データセット管理（ネットワーク取得とオフライン復元）"""

    def __init__(self, loader: DataLoader, cache_manager: CacheManager, search_index: SearchIndex,
                 is_online: Callable[[], bool] = lambda: True,
                 cache_expiry_ms: int = CACHE_EXPIRY_MS,
                 on_progress: Optional[Callable[[Dict[str, Any]], None]] = None):
        self.loader = loader
        self.cache_manager = cache_manager
        self.search_index = search_index
        self.is_online = is_online
        self.cache_expiry_ms = cache_expiry_ms
        self.on_progress = on_progress

        # 状態管理
        self.records: List[FieldRecord] = []
        self.loading = False
        self.error: Optional[str] = None
        self.load_progress = 0
        self.is_using_cache = False

    def _apply_records(self, records: List[FieldRecord], from_cache: bool):
        self.records = records
        self.load_progress = 100
        self.is_using_cache = from_cache
        self.search_index.build(records)

    def _on_progress(self, progress: Dict[str, Any]):
        self.load_progress = progress['percentage']
        if self.on_progress:
            self.on_progress(progress)

    async def load_data(self, force_refresh: bool = False):
        """
        データ読み込み

        オフライン時はキャッシュから復元。取得失敗時もキャッシュへフォールバックし、
        キャッシュも無ければ例外を再送出する。
        """
        self.loading = True
        self.error = None
        self.load_progress = 0
        self.is_using_cache = False
        start_time = time.time()

        try:
            if not force_refresh and not self.is_online():
                cached = await self.load_from_cache()
                if cached:
                    self._apply_records(cached, from_cache=True)
                    print(f"📦 オフライン: キャッシュから {len(cached):,}件を復元")
                    return

            loaded = await self.loader.load_all_files(self._on_progress)
            self._apply_records(loaded, from_cache=False)
            await self.save_to_cache(loaded)

            print(f"✅ データ読み込み完了: {len(loaded):,}件 ({time.time() - start_time:.2f}秒)")

        except ErpQueryError as e:
            app_error = error_handler.handle_error(e, ErrorType.DATA_LOAD)

            cached = await self.load_from_cache()
            if cached:
                self._apply_records(cached, from_cache=True)
                self.error = '最新データを読み込めないため、キャッシュデータを使用しています'
                debug_logger.warning(f"{self.error}: {e}")
                print(f"⚠️ {self.error}")
            else:
                self.error = app_error.user_message
                raise

        finally:
            self.loading = False

    async def load_from_cache(self) -> Optional[List[FieldRecord]]:
        """高速層→容量制限層の順でデータセットを復元"""
        records = self._decode_records(await self.cache_manager.load_fast(CACHE_KEY))
        if records:
            debug_logger.info(f"高速層キャッシュから読み込み: {len(records)}件")
            return records

        records = self._decode_records(self.cache_manager.load_bounded(CACHE_KEY))
        if records:
            debug_logger.info(f"容量制限層キャッシュから読み込み: {len(records)}件")
            return records

        return None

    @staticmethod
    def _decode_records(data: Any) -> Optional[List[FieldRecord]]:
        if not isinstance(data, list) or not data:
            return None
        try:
            return [FieldRecord.from_dict(item) for item in data]
        except (TypeError, ValueError, AttributeError) as e:
            debug_logger.error(f"キャッシュデータの復元に失敗: {e}")
            return None

    async def save_to_cache(self, records: List[FieldRecord]) -> bool:
        payload = [record.to_dict() for record in records]
        saved = await self.cache_manager.save_fast(CACHE_KEY, payload, expires_in=self.cache_expiry_ms)
        if saved:
            debug_logger.info(f"データを高速層キャッシュに保存: {len(records)}件")
        else:
            debug_logger.error("データのキャッシュ保存に失敗")
        return saved

    async def sync_data(self) -> bool:
        """オンライン時に強制再取得"""
        if not self.is_online():
            debug_logger.info("オフラインのため同期をスキップ")
            return False
        try:
            await self.load_data(force_refresh=True)
            return True
        except ErpQueryError as e:
            debug_logger.error(f"データ同期失敗: {e}")
            return False

    def clear_data(self):
        self.records = []
        self.error = None
        self.load_progress = 0
        self.search_index.clear()

    def clear_error(self):
        self.error = None

    def get_record_by_id(self, record_id: str) -> Optional[FieldRecord]:
        record = self.search_index.record_by_id(record_id)
        if record is not None:
            return record
        return next((r for r in self.records if r.id == record_id), None)

    @property
    def total_records(self) -> int:
        return len(self.records)

    @property
    def has_data(self) -> bool:
        return bool(self.records)

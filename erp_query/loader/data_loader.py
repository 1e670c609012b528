#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
データローダー
データファイル（JSONシャード）の取得・再試行・レコード正規化
"""

import asyncio
from typing import Any, Callable, Dict, List, Optional, Sequence

import httpx

from ..search.models import FieldRecord
from ..utils import (
    setup_debug_logger, ProgressTracker, error_handler, ErrorType,
    DataLoadError, NetworkError, DEFAULT_SETTINGS
)

# デバッグロガー
debug_logger = setup_debug_logger('DataLoader')

DEFAULT_DATA_FILES = tuple(DEFAULT_SETTINGS["data"]["files"])
MIN_CELL_COUNT = 9

ProgressCallback = Callable[[Dict[str, Any]], None]


class DataLoader:
    """データファイル一括ローダー"""

    def __init__(self, base_url: str = DEFAULT_SETTINGS["data"]["base_url"],
                 data_files: Sequence[str] = DEFAULT_DATA_FILES,
                 max_retries: int = 3, retry_delay: float = 1.0, timeout: float = 30.0,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = base_url or '/'
        self.data_files = list(data_files)
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.timeout = timeout
        self.transport = transport

    @classmethod
    def from_settings(cls, settings: Dict[str, Any],
                      transport: Optional[httpx.AsyncBaseTransport] = None) -> 'DataLoader':
        data = settings["data"]
        return cls(
            base_url=data["base_url"],
            data_files=data["files"],
            max_retries=data["max_retries"],
            retry_delay=data["retry_delay"],
            timeout=data["timeout"],
            transport=transport,
        )

    def get_full_path(self, filename: str) -> str:
        base = self.base_url if self.base_url.endswith('/') else f"{self.base_url}/"
        file = filename[1:] if filename.startswith('/') else filename
        return f"{base}{file}"

    async def load_all_files(self, on_progress: Optional[ProgressCallback] = None) -> List[FieldRecord]:
        """全データファイルを並行取得し、ファイル順に連結して返す"""
        tracker = ProgressTracker()
        tracker.set_total_files(len(self.data_files))

        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:

            async def load_one(filename: str) -> List[FieldRecord]:
                full_path = self.get_full_path(filename)
                records = await self._load_file_with_retry(client, full_path)
                tracker.update_progress(current_file=full_path, record_count=len(records))
                if on_progress:
                    on_progress(tracker.get_progress_info())
                return records

            tasks = [asyncio.ensure_future(load_one(f)) for f in self.data_files]
            try:
                results = await asyncio.gather(*tasks)
            except DataLoadError as e:
                # 残りの取得を止めてからクライアントを閉じる
                for task in tasks:
                    task.cancel()
                await asyncio.gather(*tasks, return_exceptions=True)
                app_error = error_handler.handle_error(e, ErrorType.DATA_LOAD)
                raise DataLoadError(app_error.user_message) from e

        all_records: List[FieldRecord] = []
        for records in results:
            all_records.extend(records)

        debug_logger.info(f"データ読み込み完了: {len(self.data_files)}ファイル, {len(all_records)}件")
        return all_records

    async def _load_file_with_retry(self, client: httpx.AsyncClient, url: str) -> List[FieldRecord]:
        last_error: Optional[Exception] = None

        for attempt in range(1, self.max_retries + 1):
            try:
                return await self._load_file(client, url)
            except (NetworkError, DataLoadError) as e:
                last_error = e
                debug_logger.warning(f"ファイル読み込み失敗 {url} (試行 {attempt}/{self.max_retries}): {e}")

                if attempt < self.max_retries:
                    await asyncio.sleep(self.retry_delay * attempt)

        app_error = error_handler.handle_error(last_error, ErrorType.DATA_LOAD)
        raise DataLoadError(
            f"ファイル {url} の読み込みに失敗しました（{self.max_retries}回再試行）: {app_error.user_message}"
        ) from last_error

    async def _load_file(self, client: httpx.AsyncClient, url: str) -> List[FieldRecord]:
        try:
            response = await client.get(url)
        except httpx.HTTPError as e:
            raise NetworkError(f"network error: {url}: {e}") from e

        if response.is_error:
            raise NetworkError(f"HTTP {response.status_code} {response.reason_phrase}: {url}")

        try:
            data = response.json()
        except ValueError as e:
            raise DataLoadError(f"JSON解析エラー: {url}: {e}") from e

        if not isinstance(data, dict) or not isinstance(data.get('rows'), list):
            raise DataLoadError(f"無効なJSON形式: rows 配列がありません: {url}")

        return self.parse_json_data(data)

    @staticmethod
    def parse_json_data(data: Dict[str, Any]) -> List[FieldRecord]:
        """シャードの rows をレコードへ変換（セル不足の行はスキップ）"""
        records = []
        for row in data.get('rows', []):
            cell = row.get('cell') if isinstance(row, dict) else None
            row_id = row.get('id') if isinstance(row, dict) else None

            if row_id is None or not isinstance(cell, (list, tuple)) or len(cell) < MIN_CELL_COUNT:
                debug_logger.warning(f"レコード {row_id} のセル形式不正・セル数不足のためスキップ")
                continue

            def cell_text(index: int) -> str:
                return str(cell[index] or '').strip()

            records.append(FieldRecord(
                id=str(row_id),
                field_number=cell_text(1),
                field_name=cell_text(2),
                field_description=cell_text(7),
                file_code=cell_text(3),
                file_name=cell_text(4),
                data_type=cell_text(5),
                length=cell_text(6),
                detailed_description=cell_text(7),
                remark=cell_text(8),
            ))
        return records

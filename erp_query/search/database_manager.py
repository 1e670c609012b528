#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
データベース管理
SQLite によるキャッシュ高速層（非同期・トランザクション・有効期限付き）
"""

import json
import asyncio
import sqlite3
import functools
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Any, Callable, Optional, Union

from .cache_tier import CacheTier, CacheEntry
from ..utils import setup_debug_logger, now_ms, CacheTransactionError

# デバッグロガー
debug_logger = setup_debug_logger('DatabaseManager')

DB_NAME = 'erp_query_cache.db'
DB_VERSION = 1
STORE_NAME = 'cache'


class FastCacheTier(CacheTier):
    """キャッシュ高速層（大容量・トランザクション対応）"""

    name = 'fast'

    def __init__(self, storage_dir: Union[str, Path], db_name: str = DB_NAME,
                 clock: Callable[[], int] = now_ms, database_timeout: float = 30.0):
        self.storage_dir = Path(storage_dir)
        self.db_path = self.storage_dir / db_name
        self.clock = clock
        self.database_timeout = database_timeout

        self._conn: Optional[sqlite3.Connection] = None
        self._init_task: Optional[asyncio.Future] = None
        # 全SQLiteアクセスを単一ワーカーで直列化
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix='fast-cache')

    async def _run(self, func: Callable, *args) -> Any:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._executor, functools.partial(func, *args))

    def _open_database(self) -> sqlite3.Connection:
        """データベースを開き、ストアを作成（ワーカースレッドで実行）"""
        try:
            self.storage_dir.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(str(self.db_path), timeout=self.database_timeout,
                                   check_same_thread=False)
            conn.execute("PRAGMA journal_mode=WAL")
            conn.execute("PRAGMA synchronous=NORMAL")
            conn.execute("PRAGMA temp_store=MEMORY")
            with conn:
                conn.execute(f'''
                    CREATE TABLE IF NOT EXISTS {STORE_NAME} (
                        key TEXT PRIMARY KEY,
                        value TEXT NOT NULL,
                        timestamp INTEGER NOT NULL,
                        expires_at INTEGER
                    )
                ''')
                conn.execute(f"PRAGMA user_version={DB_VERSION}")
            return conn
        except (OSError, sqlite3.Error) as e:
            raise CacheTransactionError(f"キャッシュデータベースを開けません: {self.db_path}: {e}") from e

    async def _init_db(self) -> sqlite3.Connection:
        """初期化（同時呼び出しは同じ初期化処理を共有）"""
        if self._conn is not None:
            return self._conn

        if self._init_task is None:
            self._init_task = asyncio.ensure_future(self._run(self._open_database))

        task = self._init_task
        try:
            conn = await asyncio.shield(task)
        except CacheTransactionError:
            # 失敗した初期化は保持しない（次回呼び出しで再試行）
            if self._init_task is task:
                self._init_task = None
            raise

        if self._conn is None:
            self._conn = conn
            debug_logger.info(f"キャッシュデータベース初期化完了: {self.db_path}")
        return self._conn

    def _transaction(self, conn: sqlite3.Connection, description: str, func: Callable) -> Any:
        try:
            with conn:
                return func(conn)
        except sqlite3.Error as e:
            raise CacheTransactionError(f"キャッシュ{description}失敗: {e}") from e

    async def save(self, key: str, data: Any, expires_in: Optional[int] = None) -> bool:
        conn = await self._init_db()
        entry = CacheEntry.create(data, self.clock(), expires_in)
        try:
            payload = json.dumps(entry.to_dict(), ensure_ascii=False)
        except (TypeError, ValueError) as e:
            raise CacheTransactionError(f"キャッシュデータをシリアライズできません: {key}: {e}") from e

        def write(c: sqlite3.Connection):
            c.execute(
                f"INSERT OR REPLACE INTO {STORE_NAME} (key, value, timestamp, expires_at) VALUES (?, ?, ?, ?)",
                (key, payload, entry.timestamp, entry.expires_at))

        await self._run(self._transaction, conn, '保存', write)
        debug_logger.debug(f"高速層保存: {key} ({len(payload)}文字)")
        return True

    async def load(self, key: str) -> Optional[Any]:
        conn = await self._init_db()

        def read(c: sqlite3.Connection):
            return c.execute(f"SELECT value FROM {STORE_NAME} WHERE key = ?", (key,)).fetchone()

        row = await self._run(self._transaction, conn, '読み込み', read)
        if row is None:
            return None

        try:
            entry = CacheEntry.from_dict(json.loads(row[0]))
        except (TypeError, ValueError, KeyError) as e:
            raise CacheTransactionError(f"キャッシュエントリが破損しています: {key}: {e}") from e

        if entry.is_expired(self.clock()):
            debug_logger.debug(f"高速層期限切れ: {key}")
            await self.remove(key)
            return None

        return entry.data

    async def remove(self, key: str) -> bool:
        conn = await self._init_db()

        def delete(c: sqlite3.Connection):
            c.execute(f"DELETE FROM {STORE_NAME} WHERE key = ?", (key,))

        await self._run(self._transaction, conn, '削除', delete)
        return True

    async def clear(self) -> bool:
        conn = await self._init_db()

        def delete_all(c: sqlite3.Connection):
            c.execute(f"DELETE FROM {STORE_NAME}")

        await self._run(self._transaction, conn, 'クリア', delete_all)
        debug_logger.info("高速層キャッシュをクリアしました")
        return True

    async def exists(self, key: str) -> bool:
        conn = await self._init_db()

        def check(c: sqlite3.Connection):
            return c.execute(f"SELECT 1 FROM {STORE_NAME} WHERE key = ?", (key,)).fetchone()

        return await self._run(self._transaction, conn, '存在確認', check) is not None

    def get_database_size(self) -> int:
        """データベースファイルサイズ（WAL含む）"""
        total = 0
        for suffix in ('', '-wal'):
            path = Path(str(self.db_path) + suffix)
            if path.exists():
                total += path.stat().st_size
        return total

    async def close(self):
        """接続を閉じてワーカーを停止"""
        conn, self._conn = self._conn, None
        self._init_task = None
        if conn is not None:
            await self._run(conn.close)
        self._executor.shutdown(wait=True)

#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
エラー処理
例外階層とユーザー向けエラーメッセージの変換
"""

import time
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional

from .system_utils import setup_debug_logger

# デバッグロガー
debug_logger = setup_debug_logger('ErrorHandler')


class ErpQueryError(Exception):
    """アプリケーション共通の基底例外"""


class NetworkError(ErpQueryError):
    """HTTP通信エラー"""


class DataLoadError(ErpQueryError):
    """データファイル読み込みエラー"""


class CacheError(ErpQueryError):
    """キャッシュ操作エラー"""


class CacheTransactionError(CacheError):
    """高速層のオープン・トランザクション失敗"""


class StorageQuotaExceededError(CacheError):
    """容量制限層の上限超過"""


class ErrorType(str, Enum):
    NETWORK = 'NETWORK'
    DATA_LOAD = 'DATA_LOAD'
    SEARCH = 'SEARCH'
    EXPORT = 'EXPORT'
    STORAGE = 'STORAGE'
    VALIDATION = 'VALIDATION'
    UNKNOWN = 'UNKNOWN'


@dataclass
class AppError:
    """処理済みエラー情報"""
    type: ErrorType
    message: str
    user_message: str
    can_retry: bool
    original_error: Optional[BaseException] = None
    timestamp: float = field(default_factory=time.time)


# 種別ごとの再試行可否
_RETRYABLE = {
    ErrorType.NETWORK: True,
    ErrorType.DATA_LOAD: True,
    ErrorType.SEARCH: False,
    ErrorType.EXPORT: True,
    ErrorType.STORAGE: False,
    ErrorType.VALIDATION: False,
    ErrorType.UNKNOWN: True,
}


class ErrorHandler:
    """例外をユーザー向けメッセージ付きのAppErrorへ変換"""

    def handle_error(self, error: object, error_type: ErrorType = ErrorType.UNKNOWN) -> AppError:
        original_error = None
        message = '不明なエラーが発生しました'

        if isinstance(error, BaseException):
            message = str(error) or error.__class__.__name__
            original_error = error
        elif isinstance(error, str):
            message = error

        builders = {
            ErrorType.NETWORK: self._network_message,
            ErrorType.DATA_LOAD: self._data_load_message,
            ErrorType.SEARCH: self._search_message,
            ErrorType.EXPORT: self._export_message,
            ErrorType.STORAGE: self._storage_message,
            ErrorType.VALIDATION: self._validation_message,
        }
        builder = builders.get(error_type)
        user_message = builder(message) if builder else '操作に失敗しました。しばらくしてから再試行してください'

        debug_logger.error(f"[{error_type.value}] {message}")

        return AppError(
            type=error_type,
            message=message,
            user_message=user_message,
            can_retry=_RETRYABLE.get(error_type, True),
            original_error=original_error,
        )

    def _network_message(self, message: str) -> str:
        lowered = message.lower()
        if 'connect' in lowered or 'network' in lowered:
            return 'ネットワーク接続に失敗しました。接続を確認してください'
        if 'timeout' in lowered or 'timed out' in lowered:
            return '接続がタイムアウトしました。しばらくしてから再試行してください'
        if '404' in message:
            return '要求されたリソースが見つかりません'
        if '500' in message or '502' in message or '503' in message:
            return 'サーバーが一時的に応答しません。しばらくしてから再試行してください'
        return 'ネットワーク要求に失敗しました。接続を確認して再試行してください'

    def _data_load_message(self, message: str) -> str:
        if 'JSON' in message:
            return 'データ形式が不正です。システム管理者に連絡してください'
        if 'HTTP' in message:
            return 'データファイルを読み込めません。しばらくしてから再試行してください'
        if '再試行' in message:
            return 'データ読み込みに失敗しました（複数回再試行済み）。接続を確認してください'
        return 'データ読み込みに失敗しました。再読み込みしてください'

    def _search_message(self, message: str) -> str:
        if 'criteria' in message or '条件' in message or 'field' in message:
            return '検索条件が無効です。入力内容を確認してください'
        if 'data' in message or 'データ' in message:
            return '検索データがまだ読み込まれていません'
        return '検索に失敗しました。検索条件を入力し直してください'

    def _export_message(self, message: str) -> str:
        if 'permission' in message.lower():
            return 'ファイルを書き込む権限がありません'
        return 'エクスポートに失敗しました。しばらくしてから再試行してください'

    def _storage_message(self, message: str) -> str:
        if 'quota' in message.lower() or '容量' in message:
            return '保存領域が一杯です。不要なデータを削除してから再試行してください'
        if 'not available' in message.lower() or '利用不可' in message:
            return 'ストレージが利用できません。一部の機能が制限されます'
        if 'sqlite' in message.lower() or 'database' in message.lower():
            return 'キャッシュデータベースの操作に失敗しました'
        return '保存に失敗しました。設定が保持されない可能性があります'

    def _validation_message(self, message: str) -> str:
        if 'required' in message or '必須' in message:
            return '必須項目を入力してください'
        if 'length' in message or '長さ' in message or '文字' in message:
            return '入力が長すぎます'
        return '入力内容の検証に失敗しました。確認してください'

    def is_network_error(self, error: object) -> bool:
        return isinstance(error, (NetworkError, ConnectionError, TimeoutError))

    def is_quota_exceeded_error(self, error: object) -> bool:
        if isinstance(error, StorageQuotaExceededError):
            return True
        return isinstance(error, BaseException) and 'quota' in str(error).lower()

    def get_error_summary(self, error: AppError) -> str:
        stamp = datetime.fromtimestamp(error.timestamp).strftime('%Y-%m-%d %H:%M:%S')
        return f"[{error.type.value}] {error.user_message} ({stamp})"

    def get_retry_advice(self, error: AppError) -> str:
        if not error.can_retry:
            return ''
        if error.type in (ErrorType.NETWORK, ErrorType.DATA_LOAD):
            return 'ネットワーク接続を確認してから再試行してください'
        if error.type == ErrorType.EXPORT:
            return '出力先を確認してから再試行してください'
        return 'しばらくしてから再試行してください'


error_handler = ErrorHandler()

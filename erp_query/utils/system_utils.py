#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
システムユーティリティ
ログ設定と時刻ヘルパー
"""

import os
import time
import logging
import threading
from typing import Optional

DEFAULT_LOG_FILE = 'erp_query.log'
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

# 全ロガーで共有するファイルハンドラー（上書きモードで一度だけ開く）
_shared_file_handler: Optional[logging.Handler] = None
_handler_lock = threading.Lock()


def _get_shared_file_handler() -> logging.Handler:
    global _shared_file_handler
    with _handler_lock:
        if _shared_file_handler is None:
            log_file = os.environ.get('ERP_QUERY_LOG_FILE', DEFAULT_LOG_FILE)
            handler = logging.FileHandler(log_file, mode='w', encoding='utf-8')
            handler.setLevel(logging.DEBUG)
            handler.setFormatter(logging.Formatter(LOG_FORMAT))
            _shared_file_handler = handler
        return _shared_file_handler


def setup_debug_logger(name: str = 'ErpQuery') -> logging.Logger:
    """デバッグログ設定（重複防止版）"""
    logger = logging.getLogger(name)

    # 既存のハンドラーをクリア（重複防止）
    if logger.handlers:
        logger.handlers.clear()

    logger.setLevel(logging.DEBUG)
    logger.addHandler(_get_shared_file_handler())

    # 親ロガーへの伝播を無効化（重複出力防止）
    logger.propagate = False

    return logger


def now_ms() -> int:
    """現在時刻（エポックミリ秒）"""
    return int(time.time() * 1000)

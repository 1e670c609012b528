#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
データ読み込みモジュール

データファイルの取得とデータセットの状態管理
"""

from .data_loader import DataLoader, DEFAULT_DATA_FILES, MIN_CELL_COUNT
from .data_store import DataStore, CACHE_KEY, CACHE_EXPIRY_MS

__all__ = [
    'DataLoader',
    'DEFAULT_DATA_FILES',
    'MIN_CELL_COUNT',
    'DataStore',
    'CACHE_KEY',
    'CACHE_EXPIRY_MS'
]

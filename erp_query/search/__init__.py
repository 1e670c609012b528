#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
検索システムモジュール

転置インデックス検索と2層キャッシュ（高速層・容量制限層）の管理
"""

from .models import (
    FieldRecord,
    SearchField,
    SearchCriteria,
    INDEXED_FIELDS,
    normalize_criteria,
    has_any_criteria
)
from .tokenizer import tokenize
from .search_index import SearchIndex
from .search_system import SearchEngine, build_criteria, parse_multiple_conditions
from .cache_tier import CacheEntry, CacheTier
from .database_manager import FastCacheTier
from .cache_manager import CacheManager, BoundedCacheTier, JsonFileStorage

__all__ = [
    'FieldRecord',
    'SearchField',
    'SearchCriteria',
    'INDEXED_FIELDS',
    'normalize_criteria',
    'has_any_criteria',
    'tokenize',
    'SearchIndex',
    'SearchEngine',
    'build_criteria',
    'parse_multiple_conditions',
    'CacheEntry',
    'CacheTier',
    'FastCacheTier',
    'CacheManager',
    'BoundedCacheTier',
    'JsonFileStorage'
]

#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
セッションモジュール

検索セッション（履歴・人気検索・テンプレート）とお気に入りの管理
"""

from .search_session import (
    SearchSession,
    SearchHistory,
    PopularSearch,
    SearchTemplate,
    MAX_HISTORY_ITEMS,
    MAX_POPULAR_SEARCHES,
    MAX_TEMPLATES
)
from .favorites import FavoritesManager

__all__ = [
    'SearchSession',
    'SearchHistory',
    'PopularSearch',
    'SearchTemplate',
    'MAX_HISTORY_ITEMS',
    'MAX_POPULAR_SEARCHES',
    'MAX_TEMPLATES',
    'FavoritesManager'
]

#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
ERP欄位検索 - コアパッケージ

転置インデックス検索・2層キャッシュ・データ読み込みを機能別にモジュール化
"""

from . import utils
from . import search
from . import loader
from . import session

__version__ = "1.0.0"
__author__ = "ERP Query Team"

__all__ = ['utils', 'search', 'loader', 'session']

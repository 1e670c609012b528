#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
アプリケーション設定
JSON設定ファイルの読み込みとデフォルト値の補完
"""

import os
import copy
import json
from pathlib import Path
from typing import Dict, Any, Optional, Union

from .system_utils import setup_debug_logger

# デバッグロガー
debug_logger = setup_debug_logger('Settings')

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent

DEFAULT_SETTINGS: Dict[str, Any] = {
    "data": {
        "base_url": "http://localhost:8000/",
        "files": [
            "data/1-10000.json",
            "data/10001-20000.json",
            "data/20001-30000.json",
            "data/30001-37834.json",
        ],
        "max_retries": 3,
        "retry_delay": 1.0,
        "timeout": 30.0,
    },
    "cache": {
        "directory": "cache",
        "expiry_days": 7,
        "bounded_max_bytes": 5 * 1024 * 1024,
    },
    "search": {
        "max_results_display": 50,
    },
}


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def get_settings_path() -> Path:
    """設定ファイルパス（環境変数 ERP_QUERY_SETTINGS で上書き可）"""
    env_path = os.environ.get('ERP_QUERY_SETTINGS')
    if env_path:
        return Path(env_path)
    return PROJECT_ROOT / "config" / "app_settings.json"


def load_app_settings(path: Optional[Union[str, Path]] = None) -> Dict[str, Any]:
    """設定を読み込み、不足キーはデフォルト値で補完"""
    settings_path = Path(path) if path else get_settings_path()
    try:
        if settings_path.exists():
            with open(settings_path, 'r', encoding='utf-8') as f:
                user_settings = json.load(f)
            if not isinstance(user_settings, dict):
                debug_logger.warning(f"設定ファイルの形式が不正です: {settings_path}")
                return copy.deepcopy(DEFAULT_SETTINGS)
            return _deep_merge(DEFAULT_SETTINGS, user_settings)
    except (OSError, ValueError) as e:
        debug_logger.warning(f"設定ファイル読み込みエラー: {e}")

    return copy.deepcopy(DEFAULT_SETTINGS)


def resolve_cache_directory(settings: Dict[str, Any]) -> Path:
    """キャッシュディレクトリ（相対パスはプロジェクトルート基準）"""
    directory = Path(settings["cache"]["directory"])
    if not directory.is_absolute():
        directory = PROJECT_ROOT / directory
    return directory

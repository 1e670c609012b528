#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
進捗トラッキング
データファイル読み込みの進捗管理
"""

import time
import threading
from typing import Dict, Any


class ProgressTracker:
    """データファイル読み込み進捗トラッキング"""

    def __init__(self):
        self._lock = threading.Lock()
        self.reset()

    def reset(self):
        """進捗をリセット"""
        with self._lock:
            self.total_files = 0
            self.loaded_files = 0
            self.failed_files = 0
            self.total_records = 0
            self.current_file = ""
            self.start_time = time.time()

    def set_total_files(self, total: int):
        """総ファイル数を設定"""
        with self._lock:
            self.total_files = total

    def update_progress(self, current_file: str = "", record_count: int = 0, success: bool = True):
        """1ファイル分の進捗を更新"""
        with self._lock:
            if success:
                self.loaded_files += 1
                self.total_records += record_count
            else:
                self.failed_files += 1
            if current_file:
                self.current_file = current_file

    @staticmethod
    def calculate_percentage(loaded: int, total: int) -> int:
        if total == 0:
            return 0
        return int(round(loaded / total * 100))

    def get_progress_info(self) -> Dict[str, Any]:
        """進捗情報を取得（コールバック通知用）"""
        with self._lock:
            return {
                'loaded': self.loaded_files,
                'total': self.total_files,
                'percentage': self.calculate_percentage(self.loaded_files, self.total_files),
                'current_file': self.current_file,
                'failed': self.failed_files,
                'total_records': self.total_records,
                'elapsed_time': time.time() - self.start_time,
            }

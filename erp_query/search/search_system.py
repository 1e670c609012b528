#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
検索システムコア
フィールド間AND・フィールド内ORの複数条件検索（インデックス検索／線形走査）
"""

import re
import time
from typing import Dict, Any, List, Mapping, Optional, Sequence, Set, Union

from .models import (
    FieldRecord, SearchField, SearchCriteria, normalize_criteria, has_any_criteria
)
from .search_index import SearchIndex
from ..utils import setup_debug_logger

# デバッグロガー
debug_logger = setup_debug_logger('SearchEngine')

CONDITION_SPLIT_PATTERN = re.compile(r'[\s,]+')


def parse_multiple_conditions(text: Optional[str]) -> List[str]:
    """入力文字列を空白・カンマ区切りで個別条件に分割"""
    if not text or not text.strip():
        return []
    conditions = (part.strip() for part in CONDITION_SPLIT_PATTERN.split(text))
    return [condition for condition in conditions if condition]


def build_criteria(inputs: Mapping[Union[SearchField, str], Optional[str]]) -> SearchCriteria:
    """フィールド別の入力文字列から検索条件を組み立てる"""
    criteria: SearchCriteria = {}
    for key, text in inputs.items():
        field = SearchField.coerce(key)
        conditions = parse_multiple_conditions(text)
        if conditions:
            criteria[field] = conditions
    return criteria


class SearchEngine:
    """複数条件・複数フィールド検索エンジン"""

    def __init__(self, search_index: Optional[SearchIndex] = None):
        self.search_index = search_index if search_index is not None else SearchIndex()

        # 統計情報
        self.stats = {
            "search_count": 0,
            "indexed_searches": 0,
            "scan_searches": 0,
            "empty_criteria_searches": 0,
            "total_search_time": 0.0,
            "avg_search_time": 0.0,
        }

    def match_record(self, record: FieldRecord, criteria: SearchCriteria) -> bool:
        """1レコードが全条件（フィールド間AND・フィールド内OR）を満たすか"""
        for field, conditions in criteria.items():
            if not conditions:
                continue

            value = field.value_of(record)
            if value is None:
                return False

            value_lower = str(value).lower()
            if not any(condition.strip().lower() in value_lower for condition in conditions):
                return False

        return True

    def search(self, criteria: Mapping[Union[SearchField, str], Sequence[str]],
               records: Sequence[FieldRecord]) -> List[FieldRecord]:
        """
        検索実行

        Args:
            criteria: フィールド → 条件リスト
            records: 全レコード（インデックス未構築時の走査対象）

        Returns:
            list: 一致レコード。条件が1つもなければ空リスト
        """
        start_time = time.time()
        normalized = normalize_criteria(criteria)

        if not has_any_criteria(normalized):
            self.stats["empty_criteria_searches"] += 1
            return []

        if self.search_index.is_built():
            results = self._search_with_index(normalized)
            self.stats["indexed_searches"] += 1
            path = "index"
        else:
            results = [record for record in records if self.match_record(record, normalized)]
            self.stats["scan_searches"] += 1
            path = "scan"

        search_time = time.time() - start_time
        self.stats["search_count"] += 1
        self.stats["total_search_time"] += search_time
        self._update_average_search_time()

        debug_logger.debug(f"検索完了[{path}]: {len(results)}件 ({search_time:.4f}秒)")
        return results

    def _search_with_index(self, criteria: SearchCriteria) -> List[FieldRecord]:
        result_ids: Optional[Set[str]] = None

        for field, conditions in criteria.items():
            if not conditions:
                continue

            field_match_ids: Set[str] = set()
            for condition in conditions:
                match_ids = self.search_index.lookup(field, condition.strip())
                if match_ids:
                    field_match_ids.update(match_ids)

            if result_ids is None:
                result_ids = field_match_ids
            else:
                result_ids &= field_match_ids

            # 空集合になった時点で打ち切り
            if not result_ids:
                return []

        if not result_ids:
            return []
        return self.search_index.records_by_ids(result_ids)

    def _update_average_search_time(self):
        """平均検索時間を更新"""
        if self.stats["search_count"] > 0:
            self.stats["avg_search_time"] = self.stats["total_search_time"] / self.stats["search_count"]

    def get_search_statistics(self) -> Dict[str, Any]:
        """検索統計情報取得"""
        return {
            "search_count": self.stats["search_count"],
            "indexed_searches": self.stats["indexed_searches"],
            "scan_searches": self.stats["scan_searches"],
            "empty_criteria_searches": self.stats["empty_criteria_searches"],
            "avg_search_time": self.stats["avg_search_time"],
            "index": self.search_index.get_index_stats(),
        }

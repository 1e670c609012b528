#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
検索インデックス
フィールド別転置インデックス（トークン → レコードID集合）の構築と参照
"""

import time
from typing import Dict, Iterable, List, NamedTuple, Optional, Sequence, Set

from .models import FieldRecord, SearchField, INDEXED_FIELDS
from .tokenizer import tokenize
from ..utils import setup_debug_logger

# デバッグロガー
debug_logger = setup_debug_logger('SearchIndex')

FieldIndex = Dict[str, Set[str]]


class _IndexSnapshot(NamedTuple):
    """一度に差し替えるインデックス状態"""
    field_indexes: Dict[SearchField, FieldIndex]
    records: Dict[str, FieldRecord]
    positions: Dict[str, int]


class SearchIndex:
    """メモリ内マルチフィールド転置インデックス"""

    def __init__(self, indexed_fields: Sequence[SearchField] = INDEXED_FIELDS):
        self.indexed_fields = tuple(indexed_fields)
        self._snapshot: Optional[_IndexSnapshot] = None

    def build(self, records: Iterable[FieldRecord]):
        """全レコードからインデックスを再構築（既存状態は破棄）"""
        start_time = time.time()

        record_map: Dict[str, FieldRecord] = {}
        positions: Dict[str, int] = {}
        for record in records:
            if record.id not in record_map:
                positions[record.id] = len(positions)
            record_map[record.id] = record

        field_indexes: Dict[SearchField, FieldIndex] = {}
        for field in self.indexed_fields:
            field_index: FieldIndex = {}
            for record in record_map.values():
                value = field.value_of(record)
                if not value:
                    continue
                for token in tokenize(str(value)):
                    field_index.setdefault(token, set()).add(record.id)
            field_indexes[field] = field_index

        # 単一代入で新旧を切り替え（参照側は常に完全な一方を見る）
        self._snapshot = _IndexSnapshot(field_indexes, record_map, positions)

        build_time = time.time() - start_time
        debug_logger.info(f"検索インデックス構築完了: {len(record_map)}件 ({build_time:.3f}秒)")

    def is_built(self) -> bool:
        return self._snapshot is not None

    def lookup(self, field: SearchField, term: str) -> Optional[Set[str]]:
        """
        フィールド内で term を含むトークンのレコードID集合を返す

        Returns:
            set | None: 一致ID集合。インデックス未構築・未索引フィールドは None
        """
        snapshot = self._snapshot
        if snapshot is None:
            return None

        field_index = snapshot.field_indexes.get(SearchField.coerce(field))
        if field_index is None:
            return None

        lower_term = term.lower()
        matched_ids: Set[str] = set()

        exact = field_index.get(lower_term)
        if exact:
            matched_ids.update(exact)

        # 部分文字列スイープ：n-gram にない長い語もキー包含で拾う
        for indexed_term, ids in field_index.items():
            if lower_term in indexed_term:
                matched_ids.update(ids)

        return matched_ids

    def record_by_id(self, record_id: str) -> Optional[FieldRecord]:
        snapshot = self._snapshot
        if snapshot is None:
            return None
        return snapshot.records.get(record_id)

    def records_by_ids(self, ids: Iterable[str]) -> List[FieldRecord]:
        """ID集合をレコードへ解決（存在しないIDは無視、データセット順）"""
        snapshot = self._snapshot
        if snapshot is None:
            return []
        known_ids = [record_id for record_id in ids if record_id in snapshot.records]
        known_ids.sort(key=snapshot.positions.__getitem__)
        return [snapshot.records[record_id] for record_id in known_ids]

    def clear(self):
        self._snapshot = None
        debug_logger.info("検索インデックスをクリアしました")

    def get_index_stats(self) -> Dict[str, int]:
        """診断用統計"""
        snapshot = self._snapshot
        if snapshot is None:
            return {'total_records': 0, 'indexed_fields': 0, 'total_index_entries': 0}
        return {
            'total_records': len(snapshot.records),
            'indexed_fields': len(snapshot.field_indexes),
            'total_index_entries': sum(len(index) for index in snapshot.field_indexes.values()),
        }

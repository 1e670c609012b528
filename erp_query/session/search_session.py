#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
検索セッション
検索条件・結果・選択・並べ替えと、履歴／人気検索／テンプレートの永続化
"""

import uuid
from dataclasses import dataclass
from functools import cmp_to_key
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Set, Union

from ..search.models import FieldRecord, SearchField, SearchCriteria, normalize_criteria, has_any_criteria
from ..search.search_system import SearchEngine
from ..search.cache_manager import CacheManager
from ..loader.data_store import DataStore
from ..utils import (
    setup_debug_logger, now_ms, error_handler, ErrorType, ErpQueryError,
    validate_template_name
)

# デバッグロガー
debug_logger = setup_debug_logger('SearchSession')

HISTORY_STORAGE_KEY = 'erp-search-history'
POPULAR_SEARCHES_STORAGE_KEY = 'erp-popular-searches'
TEMPLATES_STORAGE_KEY = 'erp-search-templates'
MAX_HISTORY_ITEMS = 20
MAX_POPULAR_SEARCHES = 10
MAX_TEMPLATES = 10


def _criteria_to_dict(criteria: SearchCriteria) -> Dict[str, List[str]]:
    return {field.value: list(conditions) for field, conditions in criteria.items() if conditions}


def _criteria_from_dict(data: Mapping[str, Sequence[str]]) -> SearchCriteria:
    return normalize_criteria(data)


def _generate_id(now: int) -> str:
    return f"{now}-{uuid.uuid4().hex[:9]}"


@dataclass
class SearchHistory:
    id: str
    criteria: SearchCriteria
    timestamp: int
    result_count: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'criteria': _criteria_to_dict(self.criteria),
            'timestamp': self.timestamp,
            'resultCount': self.result_count,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SearchHistory':
        return cls(id=data['id'], criteria=_criteria_from_dict(data['criteria']),
                   timestamp=data['timestamp'], result_count=data.get('resultCount', 0))


@dataclass
class PopularSearch:
    term: str
    field: SearchField
    count: int
    last_searched: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            'term': self.term,
            'field': self.field.value,
            'count': self.count,
            'lastSearched': self.last_searched,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'PopularSearch':
        return cls(term=data['term'], field=SearchField.coerce(data['field']),
                   count=data['count'], last_searched=data['lastSearched'])


@dataclass
class SearchTemplate:
    id: str
    name: str
    criteria: SearchCriteria
    created_at: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'criteria': _criteria_to_dict(self.criteria),
            'createdAt': self.created_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SearchTemplate':
        return cls(id=data['id'], name=data['name'],
                   criteria=_criteria_from_dict(data['criteria']), created_at=data['createdAt'])


def _sort_key_number(value: str) -> Optional[float]:
    try:
        return float(value)
    except ValueError:
        return None


@dataclass
class SortState:
    field: Optional[SearchField] = None
    order: str = 'asc'


class SearchSession:
    """検索状態と永続化された利用履歴の管理"""

    def __init__(self, engine: SearchEngine, data_store: DataStore, cache_manager: CacheManager,
                 clock: Callable[[], int] = now_ms):
        self.engine = engine
        self.data_store = data_store
        self.cache_manager = cache_manager
        self.clock = clock

        self.criteria: SearchCriteria = {}
        self.results: List[FieldRecord] = []
        self.selected_ids: Set[str] = set()
        self.search_error: Optional[str] = None
        self.sort = SortState()

        self.history: List[SearchHistory] = self._load_list(HISTORY_STORAGE_KEY, SearchHistory)
        self.popular_searches: List[PopularSearch] = self._load_list(POPULAR_SEARCHES_STORAGE_KEY, PopularSearch)
        self.templates: List[SearchTemplate] = self._load_list(TEMPLATES_STORAGE_KEY, SearchTemplate)

    def _load_list(self, key: str, item_type) -> list:
        stored = self.cache_manager.load_bounded(key)
        if not isinstance(stored, list):
            return []
        items = []
        for data in stored:
            try:
                items.append(item_type.from_dict(data))
            except (KeyError, TypeError, ValueError) as e:
                debug_logger.warning(f"保存データの復元をスキップ ({key}): {e}")
        return items

    def _save_list(self, key: str, items: list) -> bool:
        return self.cache_manager.save_bounded(key, [item.to_dict() for item in items])

    # ---- 検索 ----

    def search(self, criteria: Optional[Mapping[Union[SearchField, str], Sequence[str]]] = None) -> List[FieldRecord]:
        """検索実行（条件ありなら履歴・人気検索を更新）"""
        self.search_error = None

        try:
            if criteria is not None:
                self.criteria = normalize_criteria(criteria)

            if not self.data_store.has_data:
                self.results = []
                self.clear_selection()
                if self.data_store.loading:
                    print("⏳ データ読み込み中です。しばらくお待ちください")
                else:
                    print("⚠️ 先にデータを読み込んでください")
                return self.results

            self.results = self.engine.search(self.criteria, self.data_store.records)
            self.clear_selection()

            if self.has_criteria:
                self.save_history()
                self.update_popular_searches()

        except (ErpQueryError, ValueError) as e:
            app_error = error_handler.handle_error(e, ErrorType.SEARCH)
            self.search_error = app_error.user_message
            self.results = []

        return self.results

    def clear_criteria(self):
        self.criteria = {}
        self.results = []

    @property
    def has_criteria(self) -> bool:
        return has_any_criteria(self.criteria)

    @property
    def result_count(self) -> int:
        return len(self.results)

    # ---- 履歴 ----

    def save_history(self):
        if not self.has_criteria:
            return

        now = self.clock()
        item = SearchHistory(
            id=_generate_id(now),
            criteria={f: list(c) for f, c in self.criteria.items() if c},
            timestamp=now,
            result_count=len(self.results),
        )

        # 同一条件の古い履歴は置き換え
        self.history = [h for h in self.history if h.criteria != item.criteria]
        self.history.insert(0, item)
        self.history = self.history[:MAX_HISTORY_ITEMS]

        self._save_list(HISTORY_STORAGE_KEY, self.history)

    def load_history_item(self, history_id: str) -> Optional[List[FieldRecord]]:
        item = next((h for h in self.history if h.id == history_id), None)
        if item is None:
            return None
        return self.search({f: list(c) for f, c in item.criteria.items()})

    def delete_history_item(self, history_id: str) -> bool:
        remaining = [h for h in self.history if h.id != history_id]
        if len(remaining) == len(self.history):
            return False
        self.history = remaining
        return self._save_list(HISTORY_STORAGE_KEY, self.history)

    def clear_history(self):
        self.history = []
        self.cache_manager.remove_bounded(HISTORY_STORAGE_KEY)

    # ---- 人気検索 ----

    def update_popular_searches(self):
        now = self.clock()
        for field, terms in self.criteria.items():
            for term in terms:
                trimmed = term.strip()
                if not trimmed:
                    continue

                existing = next(
                    (p for p in self.popular_searches if p.term == trimmed and p.field == field), None
                )
                if existing:
                    existing.count += 1
                    existing.last_searched = now
                else:
                    self.popular_searches.append(
                        PopularSearch(term=trimmed, field=field, count=1, last_searched=now)
                    )

        self._save_list(POPULAR_SEARCHES_STORAGE_KEY, self.popular_searches)

    def top_popular_searches(self) -> List[PopularSearch]:
        ranked = sorted(self.popular_searches, key=lambda p: (p.count, p.last_searched), reverse=True)
        return ranked[:MAX_POPULAR_SEARCHES]

    def search_by_popular_tag(self, term: str, field: Union[SearchField, str]) -> List[FieldRecord]:
        return self.search({SearchField.coerce(field): [term]})

    def clear_popular_searches(self):
        self.popular_searches = []
        self.cache_manager.remove_bounded(POPULAR_SEARCHES_STORAGE_KEY)

    # ---- テンプレート ----

    def save_template(self, name: str) -> bool:
        trimmed = (name or '').strip()

        validation = validate_template_name(trimmed)
        if not validation.valid:
            debug_logger.warning(f"テンプレート名が不正: {validation.errors}")
            return False

        if not self.has_criteria:
            debug_logger.warning("検索条件が未設定のためテンプレートを保存できません")
            return False

        if self.is_templates_limit_reached:
            debug_logger.warning(f"テンプレートは最大 {MAX_TEMPLATES} 件まで")
            return False

        if any(t.name == trimmed for t in self.templates):
            debug_logger.warning(f"テンプレート名が重複: {trimmed}")
            return False

        now = self.clock()
        self.templates.append(SearchTemplate(
            id=_generate_id(now),
            name=trimmed,
            criteria={f: list(c) for f, c in self.criteria.items() if c},
            created_at=now,
        ))

        saved = self._save_list(TEMPLATES_STORAGE_KEY, self.templates)
        if not saved:
            debug_logger.error("テンプレートの保存に失敗（容量不足の可能性）")
        return saved

    def load_template(self, template_id: str) -> Optional[List[FieldRecord]]:
        template = next((t for t in self.templates if t.id == template_id), None)
        if template is None:
            return None
        return self.search({f: list(c) for f, c in template.criteria.items()})

    def delete_template(self, template_id: str) -> bool:
        remaining = [t for t in self.templates if t.id != template_id]
        if len(remaining) == len(self.templates):
            return False
        self.templates = remaining
        return self._save_list(TEMPLATES_STORAGE_KEY, self.templates)

    def rename_template(self, template_id: str, new_name: str) -> bool:
        trimmed = (new_name or '').strip()
        if not trimmed:
            return False

        if any(t.name == trimmed and t.id != template_id for t in self.templates):
            return False

        template = next((t for t in self.templates if t.id == template_id), None)
        if template is None:
            return False

        template.name = trimmed
        return self._save_list(TEMPLATES_STORAGE_KEY, self.templates)

    def clear_templates(self):
        self.templates = []
        self.cache_manager.remove_bounded(TEMPLATES_STORAGE_KEY)

    @property
    def is_templates_limit_reached(self) -> bool:
        return len(self.templates) >= MAX_TEMPLATES

    # ---- 選択 ----

    def toggle_selection(self, record_id: str):
        if record_id in self.selected_ids:
            self.selected_ids.discard(record_id)
        else:
            self.selected_ids.add(record_id)

    def toggle_select_all(self, select_all: bool):
        if select_all:
            self.selected_ids.update(record.id for record in self.results)
        else:
            self.selected_ids.clear()

    def clear_selection(self):
        self.selected_ids.clear()

    def get_selected_records(self) -> List[FieldRecord]:
        return [record for record in self.results if record.id in self.selected_ids]

    @property
    def is_all_selected(self) -> bool:
        return bool(self.results) and len(self.selected_ids) == len(self.results)

    # ---- 並べ替え ----

    def set_sorting(self, field: Union[SearchField, str]):
        """同じフィールドなら昇順／降順を切り替え"""
        field = SearchField.coerce(field)
        if self.sort.field == field:
            self.sort.order = 'desc' if self.sort.order == 'asc' else 'asc'
        else:
            self.sort = SortState(field=field, order='asc')

    def clear_sorting(self):
        self.sort = SortState()

    def sorted_results(self) -> List[FieldRecord]:
        """並べ替え済み結果（両方数値なら数値比較、それ以外は文字列比較）"""
        if self.sort.field is None:
            return list(self.results)

        field = self.sort.field

        def compare(a: FieldRecord, b: FieldRecord) -> int:
            a_value = str(field.value_of(a) or '')
            b_value = str(field.value_of(b) or '')
            a_num = _sort_key_number(a_value)
            b_num = _sort_key_number(b_value)
            if a_num is not None and b_num is not None:
                return (a_num > b_num) - (a_num < b_num)
            return (a_value > b_value) - (a_value < b_value)

        return sorted(self.results, key=cmp_to_key(compare), reverse=self.sort.order == 'desc')

#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
データモデル
ERP欄位レコードと検索対象フィールドの定義
"""

from dataclasses import dataclass, fields
from enum import Enum
from typing import Dict, List, Mapping, Optional, Sequence, Union


@dataclass(frozen=True)
class FieldRecord:
    """ERP欄位メタデータ1件（生成後は変更しない）"""
    id: str
    field_number: Optional[str] = None
    field_name: Optional[str] = None
    field_description: Optional[str] = None
    file_code: Optional[str] = None
    file_name: Optional[str] = None
    data_type: Optional[str] = None
    length: Optional[str] = None
    detailed_description: Optional[str] = None
    remark: Optional[str] = None

    def to_dict(self) -> Dict[str, Optional[str]]:
        """キャッシュ保存用の辞書（キーはcamelCase）"""
        return {_CAMEL_NAMES[f.name]: getattr(self, f.name) for f in fields(self)}

    @classmethod
    def from_dict(cls, data: Mapping[str, Optional[str]]) -> 'FieldRecord':
        """to_dict() の逆変換。snake_case キーも受け付ける"""
        values = {}
        for f in fields(cls):
            camel = _CAMEL_NAMES[f.name]
            if camel in data:
                values[f.name] = data[camel]
            elif f.name in data:
                values[f.name] = data[f.name]
        if 'id' not in values:
            raise ValueError("レコードに id がありません")
        values['id'] = str(values['id'])
        return cls(**values)


def _to_camel(name: str) -> str:
    head, *rest = name.split('_')
    return head + ''.join(part.capitalize() for part in rest)


_CAMEL_NAMES = {f.name: _to_camel(f.name) for f in fields(FieldRecord)}


class SearchField(str, Enum):
    """検索・索引対象のフィールド（値は画面・キャッシュ上のcamelCase名）"""
    FIELD_NUMBER = 'fieldNumber'
    FIELD_NAME = 'fieldName'
    FILE_CODE = 'fileCode'
    FILE_NAME = 'fileName'
    DATA_TYPE = 'dataType'
    LENGTH = 'length'
    FIELD_DESCRIPTION = 'fieldDescription'
    REMARK = 'remark'

    @property
    def attribute(self) -> str:
        """FieldRecord 上の属性名"""
        return _ATTRIBUTE_NAMES[self]

    def value_of(self, record: FieldRecord) -> Optional[str]:
        return getattr(record, self.attribute)

    @classmethod
    def coerce(cls, key: Union['SearchField', str]) -> 'SearchField':
        """文字列キーを SearchField に変換。未知の名前は ValueError"""
        if isinstance(key, cls):
            return key
        try:
            return cls(key)
        except ValueError:
            pass
        for member in cls:
            if member.attribute == key:
                return member
        raise ValueError(f"未知の検索フィールドです: {key!r}")


_ATTRIBUTE_NAMES = {
    member: next(name for name, camel in _CAMEL_NAMES.items() if camel == member.value)
    for member in SearchField
}

# 索引を構築するフィールド（8個）
INDEXED_FIELDS = tuple(SearchField)

SearchCriteria = Dict[SearchField, List[str]]


def normalize_criteria(criteria: Mapping[Union[SearchField, str], Sequence[str]]) -> SearchCriteria:
    """キーを SearchField に揃えた検索条件を返す（空白のみの条件は除外、順序は保持）"""
    normalized: SearchCriteria = {}
    for key, conditions in criteria.items():
        field = SearchField.coerce(key)
        kept = [condition for condition in (conditions or []) if condition and condition.strip()]
        normalized.setdefault(field, []).extend(kept)
    return normalized


def has_any_criteria(criteria: Mapping[object, Sequence[str]]) -> bool:
    return any(conditions for conditions in criteria.values())

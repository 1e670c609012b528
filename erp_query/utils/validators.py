#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
入力検証
検索条件・テンプレート名の検証
"""

import re
from dataclasses import dataclass, field
from typing import List, Mapping, Optional, Sequence

MAX_CONDITION_LENGTH = 100
MAX_CONDITIONS_PER_FIELD = 20
MAX_TEMPLATE_NAME_LENGTH = 50

_FORBIDDEN_VALUE_CHARS = re.compile(r'[<>{}]')
_FORBIDDEN_TEMPLATE_CHARS = re.compile(r'[<>:"/\\|?*]')


@dataclass
class ValidationResult:
    valid: bool
    errors: List[str] = field(default_factory=list)


def _field_label(key: object) -> str:
    return str(getattr(key, 'value', key))


def validate_search_criteria(criteria: Mapping[object, Sequence[str]]) -> ValidationResult:
    """検索条件全体の検証"""
    errors = []

    has_any = any(
        values and any(v.strip() for v in values)
        for values in criteria.values()
    )
    if not has_any:
        errors.append('検索条件を1つ以上入力してください')

    for key, values in criteria.items():
        if not values:
            continue
        label = _field_label(key)

        if any(not v or not v.strip() for v in values):
            errors.append(f'{label} に空の条件が含まれています')
        if any(len(v) > MAX_CONDITION_LENGTH for v in values):
            errors.append(f'{label} の条件が長すぎます（最大{MAX_CONDITION_LENGTH}文字）')
        if len(values) > MAX_CONDITIONS_PER_FIELD:
            errors.append(f'{label} の条件数が多すぎます（最大{MAX_CONDITIONS_PER_FIELD}個）')

    return ValidationResult(valid=not errors, errors=errors)


def validate_search_value(value: str, field_name: Optional[str] = None) -> ValidationResult:
    """単一の検索値の検証"""
    errors = []
    label = field_name or '検索条件'

    if not value or not value.strip():
        errors.append(f'{label}は必須です')
    if value and len(value) > MAX_CONDITION_LENGTH:
        errors.append(f'{label}が長すぎます（最大{MAX_CONDITION_LENGTH}文字）')
    if value and _FORBIDDEN_VALUE_CHARS.search(value):
        errors.append(f'{label}に使用できない文字が含まれています')

    return ValidationResult(valid=not errors, errors=errors)


def validate_template_name(name: str) -> ValidationResult:
    """検索テンプレート名の検証"""
    errors = []

    if not name or not name.strip():
        errors.append('テンプレート名は必須です')
    if name and len(name) > MAX_TEMPLATE_NAME_LENGTH:
        errors.append(f'テンプレート名が長すぎます（最大{MAX_TEMPLATE_NAME_LENGTH}文字）')
    if name and _FORBIDDEN_TEMPLATE_CHARS.search(name):
        errors.append('テンプレート名に使用できない文字が含まれています')

    return ValidationResult(valid=not errors, errors=errors)

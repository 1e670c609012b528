#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
キャッシュ層の共通定義
エントリ形式と層インターフェース
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass
class CacheEntry:
    """キャッシュエントリ {data, timestamp, expiresAt?}（時刻はエポックミリ秒）"""
    data: Any
    timestamp: int
    expires_at: Optional[int] = None

    @classmethod
    def create(cls, data: Any, now: int, expires_in: Optional[int] = None) -> 'CacheEntry':
        expires_at = now + expires_in if expires_in is not None else None
        return cls(data=data, timestamp=now, expires_at=expires_at)

    def is_expired(self, now: int) -> bool:
        return self.expires_at is not None and now > self.expires_at

    def to_dict(self) -> Dict[str, Any]:
        entry = {'data': self.data, 'timestamp': self.timestamp}
        if self.expires_at is not None:
            entry['expiresAt'] = self.expires_at
        return entry

    @classmethod
    def from_dict(cls, entry: Dict[str, Any]) -> 'CacheEntry':
        return cls(data=entry['data'], timestamp=entry['timestamp'],
                   expires_at=entry.get('expiresAt'))


class CacheTier(ABC):
    """キャッシュ層の共通インターフェース（呼び出し側は両層を同じように扱う）"""

    name = 'tier'

    @abstractmethod
    async def save(self, key: str, data: Any, expires_in: Optional[int] = None) -> bool:
        """保存。expires_in はミリ秒"""

    @abstractmethod
    async def load(self, key: str) -> Optional[Any]:
        """読み込み。期限切れは削除して None"""

    @abstractmethod
    async def remove(self, key: str) -> bool:
        """削除"""

    @abstractmethod
    async def clear(self) -> bool:
        """全削除"""

    @abstractmethod
    async def exists(self, key: str) -> bool:
        """期限を考慮しない生の存在確認"""

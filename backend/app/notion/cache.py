# backend/app/notion/cache.py

"""
Notion から取得した投稿リストのインメモリキャッシュ。

- キーは「トークン + データベース URL」
- TTL を過ぎたエントリは読み出し時に削除する（遅延削除）
- エントリ数に上限を設け、超えた場合は最も使われていないものから捨てる（LRU）
"""

from __future__ import annotations

import logging
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable, List, Optional

from .schemas import NotionPost

logger = logging.getLogger(__name__)


def build_cache_key(token: str, database_url: str) -> str:
    return f"{token}-{database_url}"


@dataclass(frozen=True)
class CacheEntry:
    data: List[NotionPost]
    timestamp: float


class PostCache:
    """
    TTL 付き LRU キャッシュ。

    ロックは持たない。asyncio の単一イベントループ上で使う前提。
    """

    def __init__(
        self,
        *,
        ttl_seconds: float = 300,
        max_entries: int = 256,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive.")
        if max_entries <= 0:
            raise ValueError("max_entries must be positive.")

        self._ttl = ttl_seconds
        self._max_entries = max_entries
        self._clock = clock
        self._entries: "OrderedDict[str, CacheEntry]" = OrderedDict()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def get(self, key: str) -> Optional[List[NotionPost]]:
        """
        新鮮なエントリがあればそのデータを返す。期限切れなら削除して None。
        """
        entry = self._entries.get(key)
        if entry is None:
            return None

        if self._clock() - entry.timestamp >= self._ttl:
            del self._entries[key]
            logger.debug("Cache entry expired; removed.")
            return None

        self._entries.move_to_end(key)
        return list(entry.data)

    def set(self, key: str, data: List[NotionPost]) -> None:
        """
        エントリを現在時刻で作成 / 上書きする。
        """
        self._entries[key] = CacheEntry(data=list(data), timestamp=self._clock())
        self._entries.move_to_end(key)

        while len(self._entries) > self._max_entries:
            self._entries.popitem(last=False)
            logger.debug("Cache is full; evicted least recently used entry.")

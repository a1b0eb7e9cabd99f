# backend/app/notion/config.py

"""
Notion 連携に必要な設定値をまとめるモジュール。

トークンはウィジェットごとに異なるため、ここでは扱わない。
"""

from dataclasses import dataclass
from functools import lru_cache

from app.utils.config import get_env, get_env_int

# データベース query 1 回あたりの取得件数
QUERY_PAGE_SIZE = 20
# ウィジェットのグリッドに表示する最大件数（3x3）
MAX_POSTS = 9


@dataclass(frozen=True)
class NotionConfig:
    """Notion API 用の設定値コンテナ。"""

    api_base_url: str = "https://api.notion.com/v1"
    api_version: str = "2022-06-28"
    timeout_seconds: int = 10
    cache_ttl_seconds: int = 300
    cache_max_entries: int = 256


@lru_cache()
def get_notion_config() -> NotionConfig:
    """
    環境変数から Notion 設定を読み込む。

    任意:
      - NOTION_API_BASE_URL      (デフォルト: https://api.notion.com/v1)
      - NOTION_API_VERSION       (デフォルト: 2022-06-28)
      - NOTION_TIMEOUT_SECONDS   (デフォルト: 10)
      - NOTION_CACHE_TTL_SECONDS (デフォルト: 300 = 5 分)
      - NOTION_CACHE_MAX_ENTRIES (デフォルト: 256)
    """
    defaults = NotionConfig()

    api_base_url = get_env(
        "NOTION_API_BASE_URL",
        default=defaults.api_base_url,
        required=False,
    )
    api_version = get_env(
        "NOTION_API_VERSION",
        default=defaults.api_version,
        required=False,
    )

    return NotionConfig(
        api_base_url=api_base_url.rstrip("/"),
        api_version=api_version,
        timeout_seconds=get_env_int("NOTION_TIMEOUT_SECONDS", defaults.timeout_seconds),
        cache_ttl_seconds=get_env_int("NOTION_CACHE_TTL_SECONDS", defaults.cache_ttl_seconds),
        cache_max_entries=get_env_int("NOTION_CACHE_MAX_ENTRIES", defaults.cache_max_entries),
    )

# backend/app/notion/service.py

"""
Notion クライアントと内部スキーマをつなぐサービス層。

- データベース URL からの ID 抽出
- Notion API レスポンス → NotionPost への変換（プロパティ名の揺れを吸収）
- 投稿リストの取得とキャッシュ
- トークン / データベースへのアクセス確認
"""

from __future__ import annotations

import asyncio
import logging
import re
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from .cache import PostCache, build_cache_key
from .client import NotionClient, NotionClientError
from .config import MAX_POSTS, QUERY_PAGE_SIZE, NotionConfig, get_notion_config
from .schemas import DatabaseInspection, NotionPost

logger = logging.getLogger(__name__)

ClientFactory = Callable[[str], NotionClient]

_DATABASE_ID_PATTERN = re.compile(r"([a-f0-9]{32})(?:[?#]|$)", re.IGNORECASE)

COVER_PHOTO_PROPERTIES = ("Cover Photo", "cover photo", "Cover", "Photo", "Image")
DATE_PROPERTIES = ("Date", "date", "Created", "Published")
TITLE_PROPERTIES = ("Name", "Title", "name", "title")
REQUIRED_PROPERTIES = ("Name", "Cover Photo")

DEFAULT_TITLE = "Untitled Post"

# カバー画像が設定されているページだけを query する
COVER_PHOTO_FILTER: Dict[str, Any] = {
    "property": "Cover Photo",
    "files": {"is_not_empty": True},
}


class ExtractionError(ValueError):
    """データベース URL から 32 桁の ID を取り出せなかった場合の例外。"""


def extract_database_id(database_url: str) -> str:
    """
    Notion のデータベース URL から 32 桁の 16 進 ID を取り出す。

    ID の直後は `?` / `#` / 文字列末尾のいずれかである必要がある。
    """
    match = _DATABASE_ID_PATTERN.search(database_url or "")
    if match is None:
        raise ExtractionError("Failed to extract database ID from URL")
    return match.group(1)


def _first_value(
    properties: Dict[str, Any],
    names: Sequence[str],
    extractor: Callable[[Dict[str, Any]], Optional[str]],
) -> Optional[str]:
    """
    names の順にプロパティを探し、extractor が値を返した最初のものを採用する。
    """
    for name in names:
        prop = properties.get(name)
        if not isinstance(prop, dict):
            continue
        value = extractor(prop)
        if value is not None:
            return value
    return None


def _extract_file_url(prop: Dict[str, Any]) -> Optional[str]:
    """
    Notion の files プロパティから先頭ファイルの URL を抽出する。
    アップロード画像（file）を外部リンク（external）より優先する。
    """
    files = prop.get("files")
    if not isinstance(files, list) or not files:
        return None

    first = files[0]
    if not isinstance(first, dict):
        return None

    for kind in ("file", "external"):
        source = first.get(kind)
        if isinstance(source, dict) and isinstance(source.get("url"), str) and source["url"]:
            return source["url"]
    return None


def _extract_date_text(prop: Dict[str, Any]) -> Optional[str]:
    """
    date プロパティの start を返す。無ければ created_time 型の値を使う。
    """
    date = prop.get("date")
    if isinstance(date, dict) and isinstance(date.get("start"), str) and date["start"]:
        return date["start"]

    created_time = prop.get("created_time")
    if isinstance(created_time, str) and created_time:
        return created_time
    return None


def _extract_title_text(prop: Dict[str, Any]) -> Optional[str]:
    """
    title / rich_text プロパティの先頭セグメントからプレーンテキストを抽出する。
    """
    for key in ("title", "rich_text"):
        segments = prop.get(key)
        if isinstance(segments, list) and segments:
            first = segments[0]
            if isinstance(first, dict):
                text = first.get("plain_text")
                if isinstance(text, str):
                    return text
    return None


def normalize_page(page: Dict[str, Any]) -> NotionPost:
    """
    Notion の生ページオブジェクト 1 件を NotionPost に変換する。
    """
    properties: Dict[str, Any] = page.get("properties", {}) or {}

    # 空文字のタイトルはそのまま使う
    title = _first_value(properties, TITLE_PROPERTIES, _extract_title_text)
    if title is None:
        title = DEFAULT_TITLE

    return NotionPost(
        id=page.get("id", ""),
        title=title,
        cover_photo=_first_value(properties, COVER_PHOTO_PROPERTIES, _extract_file_url),
        date=_first_value(properties, DATE_PROPERTIES, _extract_date_text),
        url=page.get("url", ""),
    )


def _parse_date(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    # 日付のみの値は UTC の 0 時として扱う
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _date_sort_key(post: NotionPost) -> Tuple[int, float]:
    parsed = _parse_date(post.date)
    if parsed is None:
        return (0, 0.0)
    return (1, parsed.timestamp())


def select_posts(pages: Sequence[Dict[str, Any]], limit: int = MAX_POSTS) -> List[NotionPost]:
    """
    生ページを正規化し、カバー画像のあるものだけを新しい順に limit 件返す。

    日付の無い投稿は日付のある投稿の後ろに並ぶ（日付なし同士は元の順序）。
    """
    posts = [normalize_page(page) for page in pages]
    posts = [post for post in posts if post.cover_photo]
    posts.sort(key=_date_sort_key, reverse=True)
    return posts[:limit]


class NotionService:
    """
    NotionClient を利用して、ウィジェット用の投稿リストを返すサービス。

    キャッシュはインスタンスが所有する。同じキーへの取得が進行中の場合、
    後から来た呼び出しはその結果を待つ（上流への重複リクエストを出さない）。
    """

    def __init__(
        self,
        *,
        config: Optional[NotionConfig] = None,
        cache: Optional[PostCache] = None,
        client_factory: Optional[ClientFactory] = None,
    ) -> None:
        self.config = config if config is not None else get_notion_config()
        # 空の PostCache は len() == 0 で偽になるため is None で判定する
        if cache is None:
            cache = PostCache(
                ttl_seconds=self.config.cache_ttl_seconds,
                max_entries=self.config.cache_max_entries,
            )
        self.cache = cache
        self._client_factory = client_factory if client_factory is not None else self._build_client
        self._inflight: Dict[str, "asyncio.Future[List[NotionPost]]"] = {}

    def _build_client(self, token: str) -> NotionClient:
        return NotionClient(token, self.config)

    async def fetch_content(
        self,
        token: str,
        database_url: str,
        bypass_cache: bool = False,
    ) -> List[NotionPost]:
        """
        データベースから最大 9 件の投稿を取得する。

        :raises ExtractionError: URL からデータベース ID を取り出せない場合
        :raises NotionClientError: Notion API 呼び出しが失敗した場合
        """
        cache_key = build_cache_key(token, database_url)

        if not bypass_cache:
            cached = self.cache.get(cache_key)
            if cached is not None:
                logger.debug("Returning %d cached posts.", len(cached))
                return cached

            inflight = self._inflight.get(cache_key)
            if inflight is not None:
                logger.debug("Waiting for in-flight fetch of the same database.")
                return list(await asyncio.shield(inflight))

        database_id = extract_database_id(database_url)

        task = asyncio.ensure_future(self._fetch_and_store(cache_key, token, database_id))
        self._inflight[cache_key] = task
        task.add_done_callback(lambda done: self._release_inflight(cache_key, done))

        # 呼び出し元がキャンセルされても、待っている他の呼び出しのために取得は続ける
        return list(await asyncio.shield(task))

    def _release_inflight(self, cache_key: str, task: "asyncio.Future[List[NotionPost]]") -> None:
        if self._inflight.get(cache_key) is task:
            del self._inflight[cache_key]

    async def _fetch_and_store(
        self,
        cache_key: str,
        token: str,
        database_id: str,
    ) -> List[NotionPost]:
        client = self._client_factory(token)

        try:
            database, pages = await asyncio.gather(
                client.retrieve_database(database_id),
                client.query_database(
                    database_id,
                    page_size=QUERY_PAGE_SIZE,
                    filter=COVER_PHOTO_FILTER,
                ),
            )
        except NotionClientError as exc:
            logger.error("Failed to get database pages: %s", exc)
            raise

        logger.info("Database properties: %s", list((database.get("properties") or {}).keys()))
        logger.info("Found %d pages in database", len(pages))

        posts = select_posts(pages)
        logger.info("Returning %d posts with cover photos", len(posts))

        self.cache.set(cache_key, posts)
        return posts

    async def verify_credential(self, token: str) -> bool:
        """
        トークンで /users/me を呼べるかを確認する。例外は投げず False を返す。
        """
        try:
            await self._client_factory(token).retrieve_me()
        except Exception as exc:  # noqa: BLE001
            logger.warning("Notion token validation failed: %s", exc)
            return False
        return True

    async def verify_source_access(self, token: str, database_url: str) -> bool:
        """
        トークンでデータベースのメタデータを取得できるかを確認する。

        URL 不正も Notion 側のエラーも False として扱う。
        """
        try:
            database_id = extract_database_id(database_url)
            await self._client_factory(token).retrieve_database(database_id)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Notion database validation failed: %s", exc)
            return False
        return True

    async def inspect_database(self, token: str, database_url: str) -> DatabaseInspection:
        """
        データベースのプロパティ名一覧と、推奨プロパティ（Name / Cover Photo）の有無を返す。

        :raises ExtractionError: URL からデータベース ID を取り出せない場合
        :raises NotionClientError: Notion API 呼び出しが失敗した場合
        """
        database_id = extract_database_id(database_url)
        database = await self._client_factory(token).retrieve_database(database_id)

        properties = list((database.get("properties") or {}).keys())
        return DatabaseInspection(
            properties=properties,
            has_required_properties=all(name in properties for name in REQUIRED_PROPERTIES),
        )

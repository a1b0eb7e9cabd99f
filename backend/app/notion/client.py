# backend/app/notion/client.py

"""
Notion API との通信を担当するクライアントモジュール。

トークンはウィジェットごとに異なるので、クライアントはトークン単位で生成する。
"""

from typing import Any, Dict, List, Optional

import httpx

from .config import NotionConfig, get_notion_config


class NotionClientError(RuntimeError):
    """Notion クライアント全般の例外（上流エラーの基底）。"""


class NotionAuthError(NotionClientError):
    """認証・権限関連のエラー。"""


class NotionNotFoundError(NotionClientError):
    """データベースが存在しない、またはインテグレーションに共有されていない。"""


class NotionRateLimitError(NotionClientError):
    """レート制限（429）。"""


class NotionAPIError(NotionClientError):
    """その他 Notion API 呼び出し時のエラー。"""


class NotionClient:
    """
    Notion API の薄い非同期ラッパークライアント。

    - ユーザー情報の取得（トークン検証用）
    - データベースのメタデータ取得
    - データベースの query
    """

    def __init__(
        self,
        token: str,
        config: Optional[NotionConfig] = None,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.config = config if config is not None else get_notion_config()
        self._token = token
        self._transport = transport

    def _build_headers(self) -> Dict[str, str]:
        """
        Notion API 呼び出しに必要なヘッダーを構築。
        """
        return {
            "Authorization": f"Bearer {self._token}",
            "Notion-Version": self.config.api_version,
            "Content-Type": "application/json",
        }

    def _raise_for_status(self, response: httpx.Response) -> None:
        """
        HTTP レスポンスコードに応じて適切な例外を投げる。
        """
        if response.status_code == 401:
            raise NotionAuthError("Unauthorized. Check the Notion integration token.")
        if response.status_code == 403:
            raise NotionAuthError("Forbidden. Check Notion integration permissions.")
        if response.status_code == 404:
            raise NotionNotFoundError(
                "Database not found. Make sure it is shared with the integration."
            )
        if response.status_code == 429:
            raise NotionRateLimitError("Rate limited by Notion API.")
        if response.status_code >= 400:
            raise NotionAPIError(
                f"Notion API error: {response.status_code} {response.text}"
            )

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        url = f"{self.config.api_base_url}{path}"

        try:
            async with httpx.AsyncClient(
                timeout=self.config.timeout_seconds,
                transport=self._transport,
            ) as client:
                response = await client.request(
                    method,
                    url,
                    headers=self._build_headers(),
                    json=json,
                )
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise NotionClientError(f"Failed to call Notion API: {exc}") from exc
        except UnicodeEncodeError as exc:
            # ヘッダー（トークン）に ASCII 以外の文字が含まれている
            raise NotionClientError(f"Invalid characters in Notion request: {exc}") from exc

        self._raise_for_status(response)

        try:
            data = response.json()
        except ValueError as exc:
            raise NotionAPIError("Notion API returned a non-JSON response.") from exc

        if not isinstance(data, dict):
            raise NotionAPIError("Unexpected Notion API response format: not an object.")
        return data

    async def retrieve_me(self) -> Dict[str, Any]:
        """
        トークンに紐づくボットユーザーを取得する（GET /users/me）。
        """
        return await self._request("GET", "/users/me")

    async def retrieve_database(self, database_id: str) -> Dict[str, Any]:
        """
        データベースのメタデータ（プロパティ定義など）を取得する。
        """
        return await self._request("GET", f"/databases/{database_id}")

    async def query_database(
        self,
        database_id: str,
        *,
        page_size: int,
        filter: Optional[Dict[str, Any]] = None,
    ) -> List[Dict[str, Any]]:
        """
        データベースを query し、生のページオブジェクトのリストを返す。

        上位レイヤー（service.py）で NotionPost に変換する。
        """
        payload: Dict[str, Any] = {"page_size": page_size}
        if filter is not None:
            payload["filter"] = filter

        data = await self._request(
            "POST",
            f"/databases/{database_id}/query",
            json=payload,
        )

        results = data.get("results", [])
        if not isinstance(results, list):
            raise NotionAPIError("Unexpected Notion API response format: 'results' is not a list.")

        return results

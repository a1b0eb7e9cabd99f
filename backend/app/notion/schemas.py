# backend/app/notion/schemas.py

"""
Notion から取得したデータを内部で扱うためのスキーマ定義と、
/notion 系エンドポイントのリクエスト / レスポンスモデル。
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

ALLOWED_TOKEN_PREFIXES = ("ntn_", "secret_")


class NotionPost(BaseModel):
    """
    ウィジェットのグリッド 1 マス分を表現する内部モデル。

    Notion 側のプロパティ名の揺れ（"Cover Photo" / "Image" など）は
    service.py で吸収し、ここでは正規化後の形だけを持つ。
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str = Field(..., description="Notion ページ ID")
    title: str = Field("Untitled Post", description="投稿タイトル")
    cover_photo: Optional[str] = Field(
        None,
        alias="coverPhoto",
        description="カバー画像の URL（アップロード画像を優先）",
    )
    date: Optional[str] = Field(
        None,
        description="投稿日（date.start または created_time の生文字列）",
    )
    url: str = Field(..., description="Notion ページの URL")


class DatabaseInspection(BaseModel):
    """データベースのプロパティ構成の確認結果。"""

    properties: List[str]
    has_required_properties: bool


def _check_token_prefix(value: str) -> str:
    if not value.startswith(ALLOWED_TOKEN_PREFIXES):
        raise ValueError("Token must start with 'ntn_' or 'secret_'")
    return value


class TokenValidationRequest(BaseModel):
    token: str = Field(..., min_length=1, description="Notion インテグレーショントークン")

    @field_validator("token")
    @classmethod
    def _token_prefix(cls, value: str) -> str:
        return _check_token_prefix(value)


class TokenValidationResponse(BaseModel):
    success: bool
    message: str


class DatabaseRequest(BaseModel):
    """データベース URL を伴うリクエストの共通部分。"""

    model_config = ConfigDict(populate_by_name=True)

    token: str = Field(..., min_length=1)
    database_url: str = Field(..., alias="databaseUrl", min_length=1)

    @field_validator("token")
    @classmethod
    def _token_prefix(cls, value: str) -> str:
        return _check_token_prefix(value)

    @field_validator("database_url")
    @classmethod
    def _notion_url(cls, value: str) -> str:
        if "notion.so" not in value:
            raise ValueError("Must be a Notion database URL")
        return value


class DatabaseValidationResponse(BaseModel):
    success: bool
    message: str
    properties: List[str] = Field(default_factory=list)


class PostsRequest(DatabaseRequest):
    refresh: bool = Field(False, description="True の場合はキャッシュを無視して取得し直す")


class PostsResponse(BaseModel):
    """
    /notion/posts のレスポンス。

    Notion 側のエラーでも success=True のまま posts を空にし、
    error にメッセージを入れて返す（ウィジェットは空のグリッドを表示する）。
    """

    success: bool = True
    posts: List[NotionPost]
    count: int
    error: Optional[str] = None

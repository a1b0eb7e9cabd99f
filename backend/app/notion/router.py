# backend/app/notion/router.py

"""
Notion 連携用の FastAPI ルーター定義。

- POST /notion/validate-token
- POST /notion/validate-database
- POST /notion/posts
"""

from functools import lru_cache

from fastapi import APIRouter, Depends, HTTPException, Response, status

from .client import NotionClientError
from .schemas import (
    DatabaseRequest,
    DatabaseValidationResponse,
    PostsRequest,
    PostsResponse,
    TokenValidationRequest,
    TokenValidationResponse,
)
from .service import ExtractionError, NotionService

router = APIRouter(prefix="/notion", tags=["notion"])


@lru_cache()
def get_notion_service() -> NotionService:
    """
    NotionService のシングルトンインスタンスを取得する。

    キャッシュはこのインスタンスが保持するため、プロセス内で 1 つだけ生成する。
    """
    return NotionService()


@router.post(
    "/validate-token",
    response_model=TokenValidationResponse,
    summary="Notion インテグレーショントークンの検証",
)
async def validate_token(
    body: TokenValidationRequest,
    service: NotionService = Depends(get_notion_service),
) -> TokenValidationResponse:
    if await service.verify_credential(body.token):
        return TokenValidationResponse(success=True, message="Token is valid")
    return TokenValidationResponse(success=False, message="Invalid Notion token")


@router.post(
    "/validate-database",
    response_model=DatabaseValidationResponse,
    summary="データベースへのアクセス可否とプロパティ構成の確認",
)
async def validate_database(
    body: DatabaseRequest,
    service: NotionService = Depends(get_notion_service),
) -> DatabaseValidationResponse:
    """
    データベースにアクセスできるかを確認し、プロパティ名一覧を返す。

    - URL から ID を取り出せない / Notion 側のエラーは success=False
    - 想定外の例外は 500
    """
    try:
        inspection = await service.inspect_database(body.token, body.database_url)
    except ExtractionError:
        return DatabaseValidationResponse(success=False, message="Invalid database URL format")
    except NotionClientError as exc:
        return DatabaseValidationResponse(
            success=False,
            message=str(exc) or "Cannot access database. Check permissions.",
        )
    except Exception as exc:  # noqa: BLE001
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to validate database.",
        ) from exc

    if inspection.has_required_properties:
        message = "Database is accessible and properly configured"
    else:
        message = "Database is accessible but may need 'Name' and 'Cover Photo' properties"

    return DatabaseValidationResponse(
        success=True,
        message=message,
        properties=inspection.properties,
    )


@router.post(
    "/posts",
    response_model=PostsResponse,
    summary="ウィジェット用の投稿（最大 9 件）を取得",
)
async def fetch_posts(
    body: PostsRequest,
    response: Response,
    service: NotionService = Depends(get_notion_service),
) -> PostsResponse:
    """
    Notion から投稿リストを取得する。

    Notion 側のエラーや URL 不正の場合も 200 を返し、posts を空にして error に理由を入れる。
    """
    try:
        posts = await service.fetch_content(
            body.token,
            body.database_url,
            bypass_cache=body.refresh,
        )
    except (ExtractionError, NotionClientError) as exc:
        return PostsResponse(
            posts=[],
            count=0,
            error=f"Failed to fetch content from Notion: {exc}",
        )
    except Exception as exc:  # noqa: BLE001
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch posts from Notion.",
        ) from exc

    response.headers["Cache-Control"] = "public, max-age=120"
    return PostsResponse(posts=posts, count=len(posts))

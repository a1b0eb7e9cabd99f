# backend/app/main.py

"""
バックエンドアプリケーションのエントリーポイント。

- /notion/* エンドポイント（トークン検証・データベース検証・投稿取得）
- /health
"""

from fastapi import FastAPI

from app.notion.router import router as notion_router


def create_app() -> FastAPI:
    """
    FastAPI アプリケーションファクトリ。
    """
    app = FastAPI(title="Notion Grid Widget Backend")

    app.include_router(notion_router)

    @app.get("/health", tags=["health"])
    def health_check() -> dict:
        """
        簡易ヘルスチェックエンドポイント。
        """
        return {"status": "ok"}

    return app


# uvicorn 実行時のエントリーポイント
app = create_app()

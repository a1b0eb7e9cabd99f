# backend/app/notion/__init__.py

"""
Notion 連携用モジュール群。

主な責務:
- Notion のコンテンツカレンダー（データベース）から投稿を読み取る
- プロパティ名の揺れを吸収して NotionPost に正規化する
- 取得結果を一定時間キャッシュし、Notion API への呼び出しを減らす
"""

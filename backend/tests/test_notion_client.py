# backend/tests/test_notion_client.py

import asyncio
import json

import httpx
import pytest

from app.notion.client import (
    NotionAPIError,
    NotionAuthError,
    NotionClient,
    NotionClientError,
    NotionNotFoundError,
    NotionRateLimitError,
)
from app.notion.config import NotionConfig

DATABASE_ID = "0123456789abcdef0123456789abcdef"


def _client_with(handler) -> NotionClient:
    return NotionClient(
        "ntn_dummy-token",
        NotionConfig(api_base_url="https://api.notion.test/v1"),
        transport=httpx.MockTransport(handler),
    )


def test_query_database_success():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["method"] = request.method
        seen["url"] = str(request.url)
        seen["headers"] = request.headers
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"results": [{"id": "page-1"}]})

    results = asyncio.run(
        _client_with(handler).query_database(
            DATABASE_ID,
            page_size=20,
            filter={"property": "Cover Photo", "files": {"is_not_empty": True}},
        )
    )

    assert results == [{"id": "page-1"}]
    assert seen["method"] == "POST"
    assert seen["url"] == f"https://api.notion.test/v1/databases/{DATABASE_ID}/query"
    assert seen["headers"]["Authorization"] == "Bearer ntn_dummy-token"
    assert seen["headers"]["Notion-Version"] == "2022-06-28"
    assert seen["body"] == {
        "page_size": 20,
        "filter": {"property": "Cover Photo", "files": {"is_not_empty": True}},
    }


def test_retrieve_database_and_me_use_get():
    paths = []

    def handler(request: httpx.Request) -> httpx.Response:
        paths.append((request.method, request.url.path))
        return httpx.Response(200, json={"object": "database", "properties": {}})

    client = _client_with(handler)
    asyncio.run(client.retrieve_database(DATABASE_ID))
    asyncio.run(client.retrieve_me())

    assert paths == [
        ("GET", f"/v1/databases/{DATABASE_ID}"),
        ("GET", "/v1/users/me"),
    ]


@pytest.mark.parametrize(
    "status_code, error_type",
    [
        (401, NotionAuthError),
        (403, NotionAuthError),
        (404, NotionNotFoundError),
        (429, NotionRateLimitError),
        (500, NotionAPIError),
    ],
)
def test_error_status_mapping(status_code, error_type):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status_code, json={"message": "nope"})

    with pytest.raises(error_type):
        asyncio.run(_client_with(handler).retrieve_database(DATABASE_ID))


def test_upstream_errors_share_base_class():
    for error_type in (NotionAuthError, NotionNotFoundError, NotionRateLimitError, NotionAPIError):
        assert issubclass(error_type, NotionClientError)


def test_network_error_is_wrapped():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("network error", request=request)

    with pytest.raises(NotionClientError) as exc_info:
        asyncio.run(_client_with(handler).retrieve_me())

    assert isinstance(exc_info.value.__cause__, httpx.ConnectError)


def test_query_database_rejects_non_list_results():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"results": {"id": "page-1"}})

    with pytest.raises(NotionAPIError):
        asyncio.run(_client_with(handler).query_database(DATABASE_ID, page_size=20))


def test_non_ascii_token_is_wrapped():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200, json={})

    client = NotionClient(
        "ntn_tøken",
        NotionConfig(api_base_url="https://api.notion.test/v1"),
        transport=httpx.MockTransport(handler),
    )

    with pytest.raises(NotionClientError) as exc_info:
        asyncio.run(client.retrieve_me())

    assert isinstance(exc_info.value.__cause__, UnicodeEncodeError)
    assert calls == []


def test_injected_config_is_kept():
    config = NotionConfig(api_base_url="https://api.notion.test/v1")

    assert NotionClient("ntn_abc", config).config is config

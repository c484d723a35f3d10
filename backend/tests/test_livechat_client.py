from datetime import datetime, timezone

import httpx
import pytest

from chatqc.core.exceptions import ConfigurationError, LiveChatAPIError
from chatqc.services.livechat_client import LiveChatClient

START = datetime(2024, 1, 1, 0, 0, tzinfo=timezone.utc)
END = datetime(2024, 1, 2, 0, 0, tzinfo=timezone.utc)


def _chats(page: int, count: int) -> list[dict]:
    return [{"id": f"P{page}-{i}"} for i in range(count)]


def _client(handler, **kwargs) -> LiveChatClient:
    return LiveChatClient(
        base_url="https://livechat.test",
        api_key="secret",
        page_delay=0,
        retry_delay=0,
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


@pytest.mark.asyncio
async def test_short_page_ends_pagination_without_metadata():
    sizes = {1: 100, 2: 100, 3: 37}
    requested_pages = []

    def handler(request):
        page = int(request.url.params["page"])
        requested_pages.append(page)
        return httpx.Response(200, json={"data": _chats(page, sizes.get(page, 0))})

    async with _client(handler) as client:
        chats = await client.fetch_chats(START, END)

    assert len(chats) == 237
    assert requested_pages == [1, 2, 3]
    assert chats[0]["id"] == "P1-0"
    assert chats[-1]["id"] == "P3-36"


@pytest.mark.asyncio
async def test_pagination_metadata_takes_precedence():
    requested_pages = []

    def handler(request):
        page = int(request.url.params["page"])
        requested_pages.append(page)
        # short pages, but the server says there are two
        return httpx.Response(
            200,
            json={
                "data": _chats(page, 10),
                "pagination": {"page": page, "total_pages": 2, "total": 20},
            },
        )

    async with _client(handler) as client:
        chats = await client.fetch_chats(START, END)

    assert requested_pages == [1, 2]
    assert len(chats) == 20


@pytest.mark.asyncio
async def test_empty_first_page_returns_nothing():
    def handler(request):
        return httpx.Response(200, json={"data": []})

    async with _client(handler) as client:
        assert await client.fetch_chats(START, END) == []


@pytest.mark.asyncio
async def test_request_carries_key_and_istanbul_shifted_window():
    seen = {}

    def handler(request):
        seen["headers"] = request.headers
        seen["params"] = request.url.params
        seen["path"] = request.url.path
        return httpx.Response(200, json={"data": []})

    async with _client(handler) as client:
        await client.fetch_chats(START, END)

    assert seen["path"] == "/api/v1/chats"
    assert seen["headers"]["X-API-Key"] == "secret"
    assert seen["params"]["start_date"] == "2024-01-01T03:00:00.000Z"
    assert seen["params"]["end_date"] == "2024-01-02T03:00:00.000Z"
    assert seen["params"]["per_page"] == "100"
    assert seen["params"]["sort_by"] == "created_at"
    assert seen["params"]["sort_order"] == "desc"


@pytest.mark.asyncio
async def test_client_error_on_later_page_aborts_fetch():
    def handler(request):
        page = int(request.url.params["page"])
        if page == 2:
            return httpx.Response(401, json={"error": "unauthorized"})
        return httpx.Response(200, json={"data": _chats(page, 100)})

    async with _client(handler) as client:
        with pytest.raises(LiveChatAPIError) as exc_info:
            await client.fetch_chats(START, END)

    assert exc_info.value.page == 2
    assert exc_info.value.status_code == 401


def test_missing_api_key_fails_before_any_request():
    with pytest.raises(ConfigurationError):
        LiveChatClient(base_url="https://livechat.test", api_key=None)

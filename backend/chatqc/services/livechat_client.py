"""LiveChat API client"""

import asyncio
import logging
from datetime import datetime
from typing import Any

import httpx

from chatqc.core.config import Settings
from chatqc.core.exceptions import ConfigurationError, LiveChatAPIError
from chatqc.core.timeutils import to_livechat_timestamp
from chatqc.services.http_retry import request_with_retry

logger = logging.getLogger(__name__)


class LiveChatClient:
    """LiveChat API client for the paged chat-list endpoint"""

    CHATS_ENDPOINT = "/api/v1/chats"

    def __init__(
        self,
        *,
        base_url: str,
        api_key: str | None,
        page_size: int = 100,
        page_delay: float = 0.1,
        max_attempts: int = 3,
        retry_delay: float = 1.0,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not api_key:
            raise ConfigurationError("LiveChat API key is not configured")

        self._page_size = page_size
        self._page_delay = page_delay
        self._max_attempts = max_attempts
        self._retry_delay = retry_delay
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            transport=transport,
            headers={
                "Accept": "application/json",
                "X-API-Key": api_key,
            },
        )

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> "LiveChatClient":
        return cls(
            base_url=settings.livechat_base_url,
            api_key=settings.livechat_api_key,
            page_size=settings.sync_page_size,
            page_delay=settings.sync_page_delay_seconds,
            max_attempts=settings.http_max_attempts,
            retry_delay=settings.http_retry_delay_seconds,
            timeout=settings.http_timeout_seconds,
            transport=transport,
        )

    async def fetch_chats(self, start_date: datetime, end_date: datetime) -> list[dict[str, Any]]:
        """
        Fetch every chat container created in ``[start_date, end_date)``.

        Pages are requested until the server reports the last page, or, when it
        sends no pagination block, until a page comes back shorter than the page
        size. There is no cap on the number of pages.

        Args:
            start_date: window start (UTC)
            end_date: window end (UTC)

        Returns:
            Containers in server order (newest first)

        Raises:
            LiveChatAPIError: a page answered with a non-success status
            RetryExhaustedError: a page kept failing with 5xx or transport errors
        """
        start_param = to_livechat_timestamp(start_date)
        end_param = to_livechat_timestamp(end_date)
        logger.info(f"Fetching LiveChat chats from {start_param} to {end_param} (Istanbul time)")

        all_chats: list[dict[str, Any]] = []
        page = 1

        while True:
            params = {
                "page": page,
                "per_page": self._page_size,
                "start_date": start_param,
                "end_date": end_param,
                "sort_by": "created_at",
                "sort_order": "desc",
            }
            response = await request_with_retry(
                self._client,
                "GET",
                self.CHATS_ENDPOINT,
                params=params,
                max_attempts=self._max_attempts,
                delay=self._retry_delay,
            )

            if not response.is_success:
                logger.error(f"LiveChat page {page} failed: {response.status_code} - {response.text}")
                raise LiveChatAPIError(page, response.status_code, response.reason_phrase)

            data = response.json()
            page_chats = data.get("data") or []

            if not page_chats:
                logger.info(f"Page {page}: no chats, stopping")
                break

            all_chats.extend(page_chats)
            logger.info(f"Page {page}: {len(page_chats)} chats (total so far: {len(all_chats)})")

            pagination = data.get("pagination")
            if pagination:
                current = pagination.get("page", page)
                total_pages = pagination.get("total_pages", current)
                has_more = current < total_pages
                if not has_more:
                    logger.info(f"Fetched all {pagination.get('total', len(all_chats))} chats from {total_pages} pages")
            else:
                has_more = len(page_chats) >= self._page_size
                if not has_more:
                    logger.info(f"Page {page} had fewer than {self._page_size} chats, assuming last page")

            if not has_more:
                break

            page += 1
            await asyncio.sleep(self._page_delay)

        return all_chats

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "LiveChatClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

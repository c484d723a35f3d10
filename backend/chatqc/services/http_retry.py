"""HTTP request helper with bounded retries"""

import asyncio
import logging
from typing import Any

import httpx

from chatqc.core.exceptions import RetryExhaustedError

logger = logging.getLogger(__name__)


async def request_with_retry(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    *,
    max_attempts: int = 3,
    delay: float = 1.0,
    **kwargs: Any,
) -> httpx.Response:
    """
    Send a request, retrying transport errors and 5xx responses.

    The wait before attempt ``n + 1`` is ``delay * n`` seconds. Any response
    below 500 (4xx included) is returned as is; callers check the status.

    Raises:
        RetryExhaustedError: every attempt failed. ``last_error`` holds the final
            transport exception or ``httpx.HTTPStatusError``.
    """
    last_error: BaseException | None = None

    for attempt in range(1, max_attempts + 1):
        try:
            logger.debug(f"{method} {url} (attempt {attempt}/{max_attempts})")
            response = await client.request(method, url, **kwargs)
            if response.status_code < 500:
                return response

            last_error = httpx.HTTPStatusError(
                f"Server error {response.status_code} from {url}",
                request=response.request,
                response=response,
            )
            logger.warning(f"{method} {url} returned {response.status_code} (attempt {attempt}/{max_attempts})")
        except httpx.RequestError as e:
            last_error = e
            logger.warning(f"{method} {url} failed: {e!r} (attempt {attempt}/{max_attempts})")

        if attempt < max_attempts:
            wait_time = delay * attempt
            logger.info(f"Retrying in {wait_time:.2f}s")
            await asyncio.sleep(wait_time)

    logger.error(f"{method} {url} failed after {max_attempts} attempts: {last_error}")
    raise RetryExhaustedError(url, max_attempts, last_error)

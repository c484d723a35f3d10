"""Derived metrics: first response time and missed-chat detection"""

import logging
import math
from collections.abc import Sequence
from typing import Any

from chatqc.core.timeutils import parse_iso
from chatqc.services.thread_normalizer import (
    STATUS_ARCHIVED,
    NormalizedMessage,
    NormalizedThread,
    is_auto_welcome_message,
)

logger = logging.getLogger(__name__)


def compute_first_response_time(messages: Sequence[NormalizedMessage]) -> int | None:
    """
    Seconds between the first customer message and the first real agent reply after it.

    Every agent message is checked against the welcome rule as if it were the
    first agent message, so any short greeting is skipped, not only the opening
    one. The normalizer tracks the real first agent message; this fallback does
    not.
    TODO: align with the normalizer once product confirms greetings later in a
    thread should count as replies.
    """
    first_customer = next(
        (m for m in messages if m.author_type == "customer" and not m.is_system),
        None,
    )
    if first_customer is None:
        return None

    customer_time = parse_iso(first_customer.created_at)
    if customer_time is None:
        return None

    for message in messages:
        if message.author_type != "agent" or message.is_system:
            continue
        agent_time = parse_iso(message.created_at)
        if agent_time is None or agent_time <= customer_time:
            continue
        if is_auto_welcome_message(message.text, True):
            continue
        elapsed = (agent_time - customer_time).total_seconds()
        # half-up, not banker's rounding
        return int(math.floor(elapsed + 0.5))

    return None


def resolve_first_response_time(
    raw_chat_data: dict[str, Any],
    messages: Sequence[NormalizedMessage],
) -> int | None:
    """Upstream value wins; otherwise compute it from the messages."""
    upstream = raw_chat_data.get("first_response_time_seconds")
    if upstream is not None:
        return upstream
    if not messages:
        return None

    computed = compute_first_response_time(messages)
    if computed is not None:
        logger.debug(f"Calculated first response time: {computed}s")
    return computed


def is_missed_chat(customer_message_count: int, agent_reply_count: int, status: str) -> bool:
    return customer_message_count > 0 and agent_reply_count == 0 and status == STATUS_ARCHIVED


def is_thread_missed(thread: NormalizedThread) -> bool:
    return is_missed_chat(thread.customer_message_count, thread.agent_reply_count, thread.status)

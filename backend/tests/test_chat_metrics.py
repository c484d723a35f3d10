import pytest

from chatqc.services.chat_metrics import (
    compute_first_response_time,
    is_missed_chat,
    resolve_first_response_time,
)
from chatqc.services.thread_normalizer import NormalizedMessage


def _msg(message_id, author_type, text, created_at, is_system=False):
    return NormalizedMessage(
        chat_id="T1",
        message_id=message_id,
        author_id="system" if is_system else ("agent@example.com" if author_type == "agent" else "visitor"),
        author_type=author_type,
        text=text,
        created_at=created_at,
        is_system=is_system,
    )


def test_first_response_skips_welcome_message():
    messages = [
        _msg("m1", "customer", "Kargom gelmedi", "2024-01-01T10:00:00Z"),
        _msg("m2", "agent", "Merhaba, hoş geldiniz", "2024-01-01T10:00:05Z"),
        _msg("m3", "agent", "Kargo numaranızı iletir misiniz?", "2024-01-01T10:00:40Z"),
    ]

    assert compute_first_response_time(messages) == 40


def test_first_response_ignores_agent_messages_before_customer():
    messages = [
        _msg("m1", "agent", "Kampanyamız başladı", "2024-01-01T09:59:00Z"),
        _msg("m2", "customer", "Detay?", "2024-01-01T10:00:00Z"),
        _msg("m3", "agent", "Tabii, anlatayım", "2024-01-01T10:01:30Z"),
    ]

    assert compute_first_response_time(messages) == 90


def test_first_response_rounds_half_up():
    messages = [
        _msg("m1", "customer", "Soru", "2024-01-01T10:00:00Z"),
        _msg("m2", "agent", "Cevap", "2024-01-01T10:00:02.500Z"),
    ]

    assert compute_first_response_time(messages) == 3


@pytest.mark.parametrize(
    "messages",
    [
        [],
        [_msg("m1", "agent", "Bilgi", "2024-01-01T10:00:00Z")],
        [_msg("m1", "customer", "Soru", "2024-01-01T10:00:00Z")],
        [
            _msg("m1", "customer", "Soru", "2024-01-01T10:00:00Z"),
            _msg("m2", "agent", "Merhaba, size nasıl yardımcı olabilirim?", "2024-01-01T10:00:30Z"),
        ],
    ],
)
def test_first_response_is_none_without_real_reply(messages):
    assert compute_first_response_time(messages) is None


def test_any_short_greeting_is_treated_as_welcome():
    # every agent message is checked as if it were the first one
    messages = [
        _msg("m1", "customer", "Soru", "2024-01-01T10:00:00Z"),
        _msg("m2", "agent", "Merhaba, bakıyorum", "2024-01-01T10:00:10Z"),
        _msg("m3", "agent", "Siparişiniz yolda", "2024-01-01T10:00:50Z"),
    ]

    assert compute_first_response_time(messages) == 50


def test_upstream_first_response_time_wins():
    messages = [
        _msg("m1", "customer", "Soru", "2024-01-01T10:00:00Z"),
        _msg("m2", "agent", "Cevap", "2024-01-01T10:00:10Z"),
    ]

    assert resolve_first_response_time({"first_response_time_seconds": 7}, messages) == 7
    assert resolve_first_response_time({}, messages) == 10
    assert resolve_first_response_time({}, []) is None


@pytest.mark.parametrize(
    "customer_count, agent_count, status, expected",
    [
        (1, 0, "archived", True),
        (1, 0, "active", False),
        (1, 1, "archived", False),
        (0, 0, "archived", False),
    ],
)
def test_missed_chat_flag(customer_count, agent_count, status, expected):
    assert is_missed_chat(customer_count, agent_count, status) is expected

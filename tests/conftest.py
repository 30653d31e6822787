"""Shared fixtures."""

import pytest

from niche_bot.config import Config
from tests.helpers import FakeNotifier, FakeStore


@pytest.fixture
def config():
    """Config with every credential set and no email pacing."""
    return Config(
        supabase_url="https://project.supabase.co",
        supabase_service_key="service_key",
        openai_api_key="sk-test",
        openai_model="gpt-5.1",
        resend_api_key="re_test",
        email_from="news@test.com",
        email_send_delay=0,
        telegram_bot_token="123:abc",
        telegram_chat_id="42",
    )


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def notifier():
    return FakeNotifier()

"""Pytest configuration and shared fixtures."""

import asyncio

import pytest

from docqa_chat.config import Settings
from docqa_chat.domain.session import ConversationSession
from docqa_chat.repositories.memory import InMemoryHistoryRepository
from docqa_chat.services.backend import CallableBackend


@pytest.fixture
def session():
    """Return a freshly seeded session."""
    return ConversationSession()


@pytest.fixture
def repository():
    """Return an empty in-memory history repository."""
    return InMemoryHistoryRepository()


@pytest.fixture
def settings():
    """Return settings suitable for tests."""
    return Settings(reply_timeout=1.0, bridge_available=True, log_level="debug")


@pytest.fixture
def echo_backend():
    """Return a factory for backends that answer with the question echoed."""

    def make(delay: float = 0.0) -> CallableBackend:
        async def ask(question, context):
            if delay:
                await asyncio.sleep(delay)
            return f"answer to {question}"

        return CallableBackend(ask, name="echo")

    return make

"""Shared fixtures."""

import pytest

from console_ai.config import AgentSettings
from console_ai.services.agent import build_agent_loop
from console_ai.services.conversation_store import InMemoryConversationStore
from console_ai.services.platform import InMemoryPlatformStore
from fakes import FakeModelClient


@pytest.fixture
def platform_store():
    return InMemoryPlatformStore()


@pytest.fixture
def conversation_store():
    return InMemoryConversationStore()


@pytest.fixture
def make_agent(platform_store, conversation_store):
    """Factory building an agent loop around a scripted model client."""

    def _make(responses=None, settings: AgentSettings | None = None, summary: str = "Short summary."):
        client = FakeModelClient(responses, summary=summary)
        agent = build_agent_loop(client, settings, store=conversation_store, platform=platform_store)
        return agent, client

    return _make

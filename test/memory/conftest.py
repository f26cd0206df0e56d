"""
Fixtures for memory tests.
"""

import pytest

from reagent.memory import ConversationStore


@pytest.fixture
def store():
    return ConversationStore()


@pytest.fixture
def populated_store():
    store = ConversationStore(system_prompt="You are a helpful assistant")
    store.add_user("Hello")
    store.add_assistant("Hi there")
    return store

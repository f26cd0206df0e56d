"""
Memory module holding the conversation history.
"""

from .conversation import ConversationStore

__all__ = ["ConversationStore"]

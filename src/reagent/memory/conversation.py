# pylint: disable=C0301
"""Module wrap conversation history and orchestration state"""
import logging
import threading
from typing import Optional

from ..core.model import AgentState, Message, Role, ToolCall

logger = logging.getLogger(__name__)


class ConversationStore:
    """
    Ordered message history plus the advisory orchestration state.

    Invariants:
    - messages are only appended; ``clear`` resets the history wholesale
    - at most one system message exists and it always sits at index 0
    - ``rollback`` only drops messages appended after a ``checkpoint``

    The store is owned by a single agent; its own lock only protects the list
    against readers taking snapshots from other threads.
    """
    def __init__(self, system_prompt: Optional[str] = None):
        self._lock = threading.Lock()
        self._messages: list[Message] = []
        self._chars = 0
        self._tokens: Optional[int] = None
        self.state = AgentState.IDLE
        if system_prompt:
            self.set_system_prompt(system_prompt)

    def __len__(self) -> int:
        with self._lock:
            return len(self._messages)

    @property
    def messages(self) -> list[Message]:
        """A snapshot of the history"""
        with self._lock:
            return list(self._messages)

    @property
    def char_count(self) -> int:
        """Total characters of message contents"""
        return self._chars

    @property
    def token_count(self) -> Optional[int]:
        """Last token count reported by the engine, None when unknown"""
        return self._tokens

    @token_count.setter
    def token_count(self, value: Optional[int]):
        self._tokens = value

    def has_system_prompt(self) -> bool:
        with self._lock:
            return bool(self._messages) and self._messages[0].role == Role.SYSTEM

    def get_system_prompt(self) -> Optional[str]:
        """Get the system prompt"""
        with self._lock:
            if self._messages and self._messages[0].role == Role.SYSTEM:
                return self._messages[0].content
            return None

    def set_system_prompt(self, content: str):
        """Insert the system message at index 0, replacing the current one"""
        message = Message(role=Role.SYSTEM, content=content)
        with self._lock:
            if self._messages and self._messages[0].role == Role.SYSTEM:
                self._chars -= len(self._messages[0].content)
                self._messages[0] = message
            else:
                self._messages.insert(0, message)
            self._chars += len(content)

    def record(self, message: Message | dict | str) -> Message:
        """
        Append a message to the history.

        Args:
            message (Message|dict|str): Message to record. Can be a Message, a dict with 'role'
                               and 'content' or a string (treated as user message)

        Returns:
            Message: the recorded message

        Raises:
            ValueError: for system messages, which must go through ``set_system_prompt``
        """
        if isinstance(message, str):
            message = Message(role=Role.USER, content=message)
        elif isinstance(message, dict):
            message = Message.model_validate(message)
        if message.role == Role.SYSTEM:
            raise ValueError("system messages are set with set_system_prompt")
        with self._lock:
            self._messages.append(message)
            self._chars += len(message.content)
        return message

    def add_user(self, content: str) -> Message:
        return self.record(Message(role=Role.USER, content=content))

    def add_assistant(self, content: str, tool_calls: Optional[list[ToolCall]] = None) -> Message:
        return self.record(Message(role=Role.ASSISTANT, content=content, tool_calls=tool_calls or None))

    def add_tool(self, content: str, tool_call_id: Optional[str] = None) -> Message:
        return self.record(Message(role=Role.TOOL, content=content, tool_call_id=tool_call_id))

    def checkpoint(self) -> int:
        """Position to roll back to if the next step fails"""
        with self._lock:
            return len(self._messages)

    def rollback(self, checkpoint: int):
        """Drop every message appended after ``checkpoint``"""
        with self._lock:
            dropped = self._messages[checkpoint:]
            del self._messages[checkpoint:]
            self._chars -= sum(len(message.content) for message in dropped)
        if dropped:
            logger.info("Rolled back %d message(s)", len(dropped))

    def transition(self, state: AgentState):
        if state != self.state:
            logger.debug("Agent state %s -> %s", self.state.value, state.value)
        self.state = state

    def clear(self):
        """Reset the history, keeping the system message, and the accounting"""
        with self._lock:
            system = [m for m in self._messages[:1] if m.role == Role.SYSTEM]
            self._messages = system
            self._chars = sum(len(m.content) for m in system)
            self._tokens = None
        self.state = AgentState.IDLE

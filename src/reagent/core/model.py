# pylint: disable=C0301
"""Module defining the data types shared by the agent, the parser and the tool servers"""
import re
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_RESULT_MAX_CHARS = 2000

_TRUNCATION_NOTICE = "\n...[truncated, original length: {length} characters]"
_TRUNCATION_PATTERN = re.compile(r"\n\.\.\.\[truncated, original length: \d+ characters\]\Z")


class Role(str, Enum):
    """Author of a conversation message"""
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


class AgentState(str, Enum):
    """Advisory orchestration state, exposed for status reporting only"""
    IDLE = "idle"
    PLANNING = "planning"
    EXECUTING = "executing"
    OBSERVING = "observing"
    FINISHED = "finished"
    ERROR = "error"


class ToolCall(BaseModel):
    """A tool invocation requested by the model"""
    name: str
    arguments: Any = Field(default_factory=dict)
    id: Optional[str] = None


class Message(BaseModel):
    """A single entry of the conversation history"""
    role: Role
    content: str
    tool_calls: Optional[list[ToolCall]] = None
    tool_call_id: Optional[str] = None


class ToolResult(BaseModel):
    """Outcome of a tool invocation, errors included"""
    tool_name: str
    result: str
    is_error: bool = False


class ToolDescriptor(BaseModel):
    """Catalog entry advertised by a tool server"""
    model_config = ConfigDict(populate_by_name=True)

    name: str
    description: str = ""
    input_schema: dict = Field(default_factory=dict, alias="inputSchema")

    @field_validator("description", "input_schema", mode="before")
    @classmethod
    def _none_as_empty(cls, value, info):
        if value is None:
            return "" if info.field_name == "description" else {}
        return value


class CatalogEntry(BaseModel):
    """A descriptor registered in the agent catalog, with the server that owns it"""
    descriptor: ToolDescriptor
    owner: Optional[str] = None


class ServerConfig(BaseModel):
    """How to launch a tool server. Frozen once built."""
    model_config = ConfigDict(frozen=True, extra="ignore")

    command: str
    args: list[str] = Field(default_factory=list)
    env: dict[str, str] = Field(default_factory=dict)
    timeout_seconds: Optional[float] = None


class ContextUsage(BaseModel):
    """Size of the current prompt compared to the engine capacity"""
    tokens: int
    chars: int
    context_length: int


class AgentError(Exception):
    """Base class of every error raised by the agent"""
    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ModelLoadError(AgentError):
    """The inference engine could not be initialized"""


class InferenceError(AgentError):
    """A single generation or tokenization call failed"""


class ToolConnectionError(AgentError):
    """A tool server could not be spawned, or the handshake failed"""
    def __init__(self, message: str, server: Optional[str] = None):
        super().__init__(message)
        self.server = server


class ToolError(AgentError):
    """A tool call failed or the server flagged an error"""
    def __init__(self, message: str, tool_name: Optional[str] = None, tool_input: Any = None):
        super().__init__(message)
        self.tool_name = tool_name
        self.tool_input = tool_input


ToolExecutionError = ToolError


class ToolNotFound(ToolError):
    """The requested tool is not served"""
    def __init__(self, tool_name: str, server: Optional[str] = None):
        where = f" on server {server}" if server else ""
        super().__init__(f"tool {tool_name} not found{where}", tool_name=tool_name)


class ParseError(AgentError):
    """A malformed line from a tool server or malformed tool-call JSON"""
    def __init__(self, message: str, raw: Optional[str] = None):
        super().__init__(message)
        self.raw = raw


def split_tool_name(name: str) -> tuple[Optional[str], str]:
    """Split ``"<server>.<tool>"`` into its namespace and local name.

    Everything up to the last dot is the namespace; a name without dots has none.
    """
    namespace, sep, local = name.rpartition(".")
    if not sep:
        return None, name
    return namespace, local


def resolve_local_name(name: str) -> str:
    """Return the server-local tool identifier of a possibly namespaced name"""
    return split_tool_name(name)[1]


def namespaced(namespace: Optional[str], tool: str) -> str:
    """Format a namespaced tool name"""
    if not namespace:
        return tool
    return f"{namespace}.{tool}"


def truncate_result(text: str, max_chars: int = DEFAULT_RESULT_MAX_CHARS) -> str:
    """
    Cap a tool result to ``max_chars`` characters and append a notice with the original length.

    The function is idempotent: a text that already ends with the notice and whose
    body fits the limit is returned as is.

    Args:
        text (str): tool output
        max_chars (int): maximum number of characters kept

    Returns:
        str: the original text, or its head followed by the truncation notice
    """
    if len(text) <= max_chars:
        return text
    notice = _TRUNCATION_PATTERN.search(text)
    if notice and notice.start() <= max_chars:
        return text
    return text[:max_chars] + _TRUNCATION_NOTICE.format(length=len(text))


def not_found_result(name: str) -> ToolResult:
    """Result returned when a tool name cannot be resolved"""
    return ToolResult(tool_name=name, result=f"tool {name} not found", is_error=True)

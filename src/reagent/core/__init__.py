"""
Core module containing the agent loop and its data model.
"""

from .agent_core import AgentConfiguration, AgentCore, LoadReport
from .model import (
    AgentError, AgentState, InferenceError, Message, ModelLoadError, ParseError, Role,
    ToolCall, ToolConnectionError, ToolDescriptor, ToolError, ToolExecutionError, ToolNotFound, ToolResult,
)
from .parser import ToolCallParser, parse_tool_calls
from .prompt import PromptStyle

__all__ = [
    "AgentConfiguration",
    "AgentCore",
    "LoadReport",
    "AgentError",
    "AgentState",
    "InferenceError",
    "Message",
    "ModelLoadError",
    "ParseError",
    "Role",
    "ToolCall",
    "ToolConnectionError",
    "ToolDescriptor",
    "ToolError",
    "ToolExecutionError",
    "ToolNotFound",
    "ToolResult",
    "ToolCallParser",
    "parse_tool_calls",
    "PromptStyle",
]

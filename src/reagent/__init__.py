"""
Reagent - a local ReAct agent that calls tools served over stdio JSON-RPC.

This package provides:
- An orchestration loop interleaving generation and tool calls
- A tolerant parser for the tool-call formats models actually emit
- A client for MCP-style tool servers running as subprocesses
- Ollama and OpenAI-compatible completion engines
"""
__version__ = "0.1.0"

# Import core components for easy access
from .core import AgentConfiguration, AgentCore
from .memory import ConversationStore
from .config import Configuration, ConfigManager
from .app import build_agent

__all__ = [
    "AgentConfiguration",
    "AgentCore",
    "ConversationStore",
    "Configuration",
    "ConfigManager",
    "build_agent",
]

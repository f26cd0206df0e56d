"""
Tool server module: stdio JSON-RPC client, in-process servers and the registry.
"""

from .client import PROTOCOL_VERSION, ToolProtocolClient
from .local import FunctionToolServer, echo
from .registry import ToolServerRegistry
from .servers import describe_server, load_server_configs, redact_env

__all__ = [
    "PROTOCOL_VERSION",
    "ToolProtocolClient",
    "FunctionToolServer",
    "echo",
    "ToolServerRegistry",
    "describe_server",
    "load_server_configs",
    "redact_env",
]

# pylint: disable=C0301
"""Module managing the set of connected tool servers"""
import logging
import threading
from typing import Any, Optional, Protocol

from ..core.model import (
    ServerConfig, ToolConnectionError, ToolDescriptor, ToolExecutionError, ToolResult,
    namespaced, not_found_result, split_tool_name,
)
from .client import DEFAULT_TIMEOUT_SECONDS, ToolProtocolClient

logger = logging.getLogger(__name__)


class ToolServer(Protocol):
    """Surface shared by subprocess clients and in-process tool servers"""
    name: str

    @property
    def tools(self) -> list[ToolDescriptor]: ...

    def connect(self): ...

    def refresh_tools(self) -> list[ToolDescriptor]: ...

    def call_tool(self, name: str, arguments: Any) -> ToolResult: ...

    def disconnect(self): ...


class ToolServerRegistry:
    """
    Named collection of tool servers.

    The registry lock only guards the server map; it is never held while a
    server performs I/O, each client serializes its own traffic.
    """
    def __init__(self, default_timeout: float = DEFAULT_TIMEOUT_SECONDS):
        self.default_timeout = default_timeout
        self._lock = threading.Lock()
        self._servers: dict[str, ToolServer] = {}

    def __contains__(self, name: str) -> bool:
        with self._lock:
            return name in self._servers

    def names(self) -> list[str]:
        """Server names in registration order"""
        with self._lock:
            return list(self._servers)

    def get_client(self, name: str) -> Optional[ToolServer]:
        with self._lock:
            return self._servers.get(name)

    def add_server(self, name: str, config: ServerConfig) -> ToolProtocolClient:
        """
        Spawn and connect a tool server, then register it under ``name``.

        Args:
            name (str): server name, also the namespace of its tools
            config (ServerConfig): launch configuration

        Returns:
            ToolProtocolClient: the connected client

        Raises:
            ToolConnectionError: if the server cannot be started; the registry is left unchanged
        """
        client = ToolProtocolClient(config, name=name, default_timeout=self.default_timeout)
        client.connect()
        self.add_client(name, client)
        return client

    def add_client(self, name: str, client: ToolServer):
        """Register an already connected server, replacing any server with the same name"""
        with self._lock:
            previous = self._servers.pop(name, None)
            self._servers[name] = client
        if previous is not None and previous is not client:
            logger.info("Replacing tool server %s", name)
            previous.disconnect()

    def remove_server(self, name: str) -> bool:
        """Disconnect and drop a server. Returns False if it was not registered."""
        with self._lock:
            client = self._servers.pop(name, None)
        if client is None:
            return False
        client.disconnect()
        return True

    def server_tools(self, name: str) -> list[ToolDescriptor]:
        client = self.get_client(name)
        return client.tools if client is not None else []

    def all_tools(self, namespace: bool = False) -> list[ToolDescriptor]:
        """
        Every cached tool, in server registration order then catalog order.

        Args:
            namespace (bool): rename each tool to ``"<server>.<tool>"``
        """
        with self._lock:
            servers = list(self._servers.items())
        tools = []
        for server_name, client in servers:
            for tool in client.tools:
                if namespace:
                    tool = tool.model_copy(update={"name": namespaced(server_name, tool.name)})
                tools.append(tool)
        return tools

    def resolve(self, tool_call_name: str) -> Optional[tuple[str, ToolServer, str]]:
        """
        Find the server able to run a tool.

        The namespace of a qualified name is tried first; otherwise every server is
        scanned in registration order for the local name.

        Returns:
            tuple[str, ToolServer, str] | None: server name, server, local tool name
        """
        prefix, local = split_tool_name(tool_call_name)
        with self._lock:
            servers = list(self._servers.items())
        if prefix is not None:
            for server_name, client in servers:
                if server_name == prefix and any(tool.name == local for tool in client.tools):
                    return server_name, client, local
        for server_name, client in servers:
            if any(tool.name == local for tool in client.tools):
                return server_name, client, local
        return None

    def execute(self, tool_call_name: str, arguments: Any) -> ToolResult:
        """
        Run a tool call, converting every failure into an error result.

        Args:
            tool_call_name (str): possibly namespaced tool name
            arguments (Any): JSON arguments

        Returns:
            ToolResult: the tool output, or an ``is_error`` result
        """
        resolved = self.resolve(tool_call_name)
        if resolved is None:
            logger.warning("Tool %s not found", tool_call_name)
            return not_found_result(tool_call_name)
        server_name, client, local = resolved
        try:
            result = client.call_tool(local, arguments)
        except (ToolExecutionError, ToolConnectionError) as e:
            logger.warning("Tool %s on server %s failed: %s", local, server_name, e.message)
            return ToolResult(tool_name=tool_call_name, result=e.message, is_error=True)
        return result.model_copy(update={"tool_name": tool_call_name})

    def shutdown(self):
        """Disconnect every server"""
        with self._lock:
            servers = list(self._servers.items())
            self._servers.clear()
        for name, client in servers:
            try:
                client.disconnect()
            except OSError as e:
                logger.warning("Failed to stop tool server %s: %s", name, e)

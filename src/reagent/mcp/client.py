# pylint: disable=C0301
"""
Client side of the tool-server protocol.

A tool server is a subprocess speaking newline-delimited JSON-RPC 2.0 over its
standard input and output. Every request is one JSON line written to stdin;
every response is one JSON line read from stdout.
"""
import json
import logging
import os
import queue
import subprocess
import threading
import time
from typing import Any, Optional

from pydantic import BaseModel, Field, ValidationError

from .. import __version__
from ..core.model import ParseError, ServerConfig, ToolConnectionError, ToolDescriptor, ToolExecutionError, ToolResult

logger = logging.getLogger(__name__)

PROTOCOL_VERSION = "2024-11-05"
CLIENT_NAME = "reagent"
DEFAULT_TIMEOUT_SECONDS = 30.0

_EOF = object()


class JsonRpcError(BaseModel):
    code: int
    message: str
    data: Optional[Any] = None


class JsonRpcResponse(BaseModel):
    jsonrpc: str = "2.0"
    id: Optional[int] = None
    result: Optional[Any] = None
    error: Optional[JsonRpcError] = None


class ContentItem(BaseModel):
    type: str
    text: Optional[str] = None


class CallToolResponse(BaseModel):
    content: list[ContentItem] = Field(default_factory=list)
    is_error: bool = Field(default=False, alias="isError")


class ListToolsResponse(BaseModel):
    tools: list[ToolDescriptor]


class ToolProtocolClient:
    """
    Owns one tool-server subprocess.

    Only one request is in flight at a time. Responses are matched to their
    request by ``id``; notifications, stale responses and malformed lines read
    in between are logged and skipped.
    """
    def __init__(self, config: ServerConfig, name: Optional[str] = None, default_timeout: float = DEFAULT_TIMEOUT_SECONDS):
        self.config = config
        self.name = name or os.path.basename(config.command)
        self.timeout = config.timeout_seconds or default_timeout
        self._process: Optional[subprocess.Popen] = None
        self._lines: queue.Queue = queue.Queue()
        self._request_lock = threading.Lock()
        self._lock = threading.Lock()
        self._request_id = 0
        self._tools: list[ToolDescriptor] = []

    @property
    def connected(self) -> bool:
        with self._lock:
            return self._process is not None and self._process.poll() is None

    @property
    def tools(self) -> list[ToolDescriptor]:
        """Cached catalog of the server"""
        with self._lock:
            return list(self._tools)

    @property
    def last_request_id(self) -> int:
        return self._request_id

    def connect(self):
        """
        Spawn the server, perform the handshake and fetch the tool list.

        Raises:
            ToolConnectionError: if the process cannot be started or the handshake fails
        """
        if self.connected:
            return
        env = dict(os.environ)
        env.update(self.config.env)
        try:
            process = subprocess.Popen(
                [self.config.command, *self.config.args],
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                env=env,
                text=True,
                encoding="utf-8",
                errors="replace",
                bufsize=1)
        except OSError as e:
            logger.error("Failed to start tool server %s: %s", self.name, e)
            raise ToolConnectionError(f"failed to start tool server {self.name}: {e}", server=self.name) from e

        self._lines = queue.Queue()
        with self._lock:
            self._process = process
            self._request_id = 0
        threading.Thread(target=self._read_stdout, args=(process, self._lines), name=f"{self.name}-stdout", daemon=True).start()
        threading.Thread(target=self._read_stderr, args=(process,), name=f"{self.name}-stderr", daemon=True).start()

        try:
            self._initialize()
            self.refresh_tools()
        except (ToolConnectionError, ToolExecutionError) as e:
            self.disconnect()
            raise ToolConnectionError(f"handshake with tool server {self.name} failed: {e.message}", server=self.name) from e
        logger.info("Connected to tool server %s (%d tools)", self.name, len(self._tools))

    def _read_stdout(self, process: subprocess.Popen, lines: queue.Queue):
        try:
            for line in process.stdout:
                lines.put(line)
        except (OSError, ValueError) as e:
            logger.debug("Tool server %s stdout closed: %s", self.name, e)
        finally:
            lines.put(_EOF)

    def _read_stderr(self, process: subprocess.Popen):
        try:
            for line in process.stderr:
                logger.debug("[%s] %s", self.name, line.rstrip())
        except (OSError, ValueError):
            pass

    def _initialize(self):
        params = {
            "protocolVersion": PROTOCOL_VERSION,
            "capabilities": {"tools": {}},
            "clientInfo": {"name": CLIENT_NAME, "version": __version__},
        }
        self._send_request("initialize", params)
        self._send_notification("notifications/initialized")

    def _write(self, payload: dict):
        with self._lock:
            process = self._process
        if process is None or process.poll() is not None:
            raise ToolConnectionError(f"tool server {self.name} is not connected", server=self.name)
        line = json.dumps(payload, ensure_ascii=False)
        logger.debug("-> %s %s", self.name, line)
        try:
            process.stdin.write(line + "\n")
            process.stdin.flush()
        except (OSError, ValueError) as e:
            self._mark_disconnected()
            raise ToolConnectionError(f"failed to write to tool server {self.name}: {e}", server=self.name) from e

    def _send_notification(self, method: str, params: Any = None):
        payload = {"jsonrpc": "2.0", "method": method}
        if params is not None:
            payload["params"] = params
        self._write(payload)

    def _send_request(self, method: str, params: Any = None) -> Any:
        """
        Send a request and wait for the matching response.

        Args:
            method (str): JSON-RPC method
            params (Any, optional): request parameters, omitted when None

        Returns:
            Any: the ``result`` member of the response

        Raises:
            ToolConnectionError: if the server is gone
            ToolExecutionError: on JSON-RPC errors, missing results or timeouts
        """
        with self._request_lock:
            with self._lock:
                self._request_id += 1
                request_id = self._request_id
            payload = {"jsonrpc": "2.0", "id": request_id, "method": method}
            if params is not None:
                payload["params"] = params
            self._write(payload)
            response = self._read_response(request_id, method)

        if response.error is not None:
            raise ToolExecutionError(f"MCP error [{response.error.code}]: {response.error.message}", tool_name=method, tool_input=params)
        if response.result is None:
            raise ToolExecutionError(f"response to {method} has no result", tool_name=method, tool_input=params)
        return response.result

    def _read_response(self, request_id: int, method: str) -> JsonRpcResponse:
        deadline = time.monotonic() + self.timeout
        while True:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise ToolExecutionError(f"{method} timed out after {self.timeout}s on tool server {self.name}", tool_name=method)
            try:
                line = self._lines.get(timeout=remaining)
            except queue.Empty:
                continue
            if line is _EOF:
                self._mark_disconnected()
                raise ToolConnectionError(f"tool server {self.name} closed its output", server=self.name)
            line = line.strip()
            if not line:
                continue
            logger.debug("<- %s %s", self.name, line)
            try:
                response = self._parse_line(line)
            except ParseError as e:
                logger.warning("Skipping malformed line from tool server %s: %s", self.name, e.message)
                continue
            if response.id is None:
                logger.debug("Skipping notification from tool server %s", self.name)
                continue
            if response.id != request_id:
                logger.warning("Skipping response %s from tool server %s while waiting for %s", response.id, self.name, request_id)
                continue
            return response

    @staticmethod
    def _parse_line(line: str) -> JsonRpcResponse:
        try:
            data = json.loads(line)
        except json.JSONDecodeError as e:
            raise ParseError(f"invalid JSON: {e}", raw=line) from e
        if not isinstance(data, dict):
            raise ParseError("response is not a JSON object", raw=line)
        if "method" in data and "id" in data and "result" not in data and "error" not in data:
            # server-to-client request, not an answer to ours
            return JsonRpcResponse(id=None)
        try:
            return JsonRpcResponse.model_validate(data)
        except ValidationError as e:
            raise ParseError(f"invalid response: {e}", raw=line) from e

    def refresh_tools(self) -> list[ToolDescriptor]:
        """Fetch ``tools/list`` and replace the cached catalog"""
        result = self._send_request("tools/list")
        try:
            tools = ListToolsResponse.model_validate(result).tools
        except ValidationError as e:
            raise ToolExecutionError(f"invalid tools/list response: {e}", tool_name="tools/list") from e
        with self._lock:
            self._tools = tools
        return list(tools)

    def call_tool(self, name: str, arguments: Any) -> ToolResult:
        """
        Invoke a tool on the server.

        Args:
            name (str): server-local tool name
            arguments (Any): JSON arguments

        Returns:
            ToolResult: text content joined by newlines, with the server error flag
        """
        result = self._send_request("tools/call", {"name": name, "arguments": arguments})
        try:
            response = CallToolResponse.model_validate(result)
        except ValidationError as e:
            raise ToolExecutionError(f"invalid tools/call response: {e}", tool_name=name, tool_input=arguments) from e
        text = "\n".join(item.text for item in response.content if item.type == "text" and item.text is not None)
        return ToolResult(tool_name=name, result=text, is_error=response.is_error)

    def _mark_disconnected(self):
        with self._lock:
            process, self._process = self._process, None
        if process is not None and process.poll() is None:
            process.kill()

    def disconnect(self):
        """Terminate the subprocess. Safe to call several times."""
        with self._lock:
            process, self._process = self._process, None
        if process is None:
            return
        try:
            process.stdin.close()
        except OSError:
            pass
        if process.poll() is None:
            process.terminate()
            try:
                process.wait(timeout=2)
            except subprocess.TimeoutExpired:
                process.kill()
                process.wait()
        logger.info("Disconnected from tool server %s", self.name)

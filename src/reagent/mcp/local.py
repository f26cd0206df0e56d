# pylint: disable=C0301
"""Module exposing Python callables as an in-process tool server"""
import asyncio
import inspect
import json
import logging
from typing import Any, Callable, Optional

from ..core.model import ToolDescriptor, ToolExecutionError, ToolNotFound, ToolResult
from ..utils.doc_string_parser import parse_google_docstring

logger = logging.getLogger(__name__)


def echo(message: str) -> str:
    """Echo the given content back.

    Args:
        message (str): The message to echo.

    Returns:
        str: The echoed message.
    """
    return f"Echo: {message}"


def describe_function(function: Callable) -> ToolDescriptor:
    """Tool descriptor of a callable, from its Google-style docstring"""
    name = function.__name__
    parsed = parse_google_docstring(inspect.getdoc(function), func_name=name, include_returns=False)
    if not parsed:
        return ToolDescriptor(name=name, input_schema={"type": "object", "properties": {}})
    return ToolDescriptor(name=name, description=parsed["description"], input_schema=parsed["parameters"])


class FunctionToolServer:
    """
    Serves plain Python functions through the same surface as ``ToolProtocolClient``.

    Functions may be sync or async; arguments must be a JSON object whose keys
    match the parameter names. Exceptions raised by a function are reported as
    error results.
    """
    def __init__(self, name: str, functions: Optional[list[Callable]] = None):
        self.name = name
        self._functions: dict[str, Callable] = {}
        self._tools: list[ToolDescriptor] = []
        self._connected = False
        for function in functions or []:
            self.add_function(function)

    @classmethod
    def builtin(cls, name: str = "builtin") -> "FunctionToolServer":
        """Server holding the built-in ``echo`` tool"""
        return cls(name, [echo])

    def add_function(self, function: Callable):
        if not callable(function):
            raise TypeError(f"tool {function!r} is not callable")
        descriptor = describe_function(function)
        self._functions[descriptor.name] = function
        self._tools = [tool for tool in self._tools if tool.name != descriptor.name] + [descriptor]

    @property
    def connected(self) -> bool:
        return self._connected

    @property
    def tools(self) -> list[ToolDescriptor]:
        return list(self._tools)

    def connect(self):
        self._connected = True

    def refresh_tools(self) -> list[ToolDescriptor]:
        return self.tools

    def call_tool(self, name: str, arguments: Any) -> ToolResult:
        """
        Run a registered function.

        Raises:
            ToolExecutionError: if the server is disconnected
            ToolNotFound: if the tool is unknown
        """
        if not self._connected:
            raise ToolExecutionError(f"tool server {self.name} is not connected", tool_name=name, tool_input=arguments)
        function = self._functions.get(name)
        if function is None:
            raise ToolNotFound(name, server=self.name)
        kwargs = arguments if isinstance(arguments, dict) else {}
        try:
            output = function(**kwargs)
            if inspect.isawaitable(output):
                output = asyncio.run(output)
        except Exception as e:  # pylint: disable=broad-except
            logger.warning("Tool %s raised %s", name, e)
            return ToolResult(tool_name=name, result=f"{type(e).__name__}: {e}", is_error=True)
        if output is None:
            text = ""
        elif isinstance(output, str):
            text = output
        else:
            text = json.dumps(output, ensure_ascii=False, default=str)
        return ToolResult(tool_name=name, result=text, is_error=False)

    def disconnect(self):
        self._connected = False

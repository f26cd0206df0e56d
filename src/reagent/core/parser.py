"""
Tool-call extraction from raw model output.

Models prompted with ReAct or function-calling templates do not agree on one
output format, so the parser runs an ordered list of strategies and keeps the
calls of the first strategy that yields at least one well formed call.
"""
import json
import logging
import re
from abc import ABC, abstractmethod
from typing import Any, Optional

from .model import ToolCall

logger = logging.getLogger(__name__)

_DECODER = json.JSONDecoder()


def _decode_object_at(text: str, pos: int) -> tuple[Optional[Any], int]:
    """Decode the JSON value starting at ``pos``.

    Returns the value (None on failure) and the index right after it.
    """
    try:
        value, end = _DECODER.raw_decode(text, pos)
    except json.JSONDecodeError:
        return None, pos
    return value, end


class ParseStrategy(ABC):
    """A single tool-call output format"""
    name = "strategy"

    @abstractmethod
    def parse(self, text: str) -> Optional[list[ToolCall]]:
        """
        Collect every call written in this format.

        Args:
            text (str): model output

        Returns:
            list[ToolCall] | None: parsed calls, None when nothing usable was found
        """
        return


class BracketStrategy(ParseStrategy):
    """``行动：server.tool[{"a": 1}]`` and its ``Action:`` spelling"""
    name = "bracket"
    pattern = re.compile(r"(?:行动|Action)[：:]\s*([\w\-]+(?:\.[\w\-]+)*)\s*\[\s*(?=\{)")

    def parse(self, text: str) -> Optional[list[ToolCall]]:
        calls = []
        for match in self.pattern.finditer(text):
            arguments, end = _decode_object_at(text, match.end())
            if not isinstance(arguments, dict):
                logger.debug("Dropping bracket call %s: arguments are not a JSON object", match.group(1))
                continue
            if not re.match(r"\s*\]", text[end:]):
                logger.debug("Dropping bracket call %s: missing closing bracket", match.group(1))
                continue
            calls.append(ToolCall(name=match.group(1), arguments=arguments))
        return calls or None


class LinePairStrategy(ParseStrategy):
    """A ``<Label>: name`` line immediately followed by a ``<Label> Input: {...}`` line"""
    name = "line_pair"
    label_pairs = (
        ("Action", "Action Input"),
        ("Tool", "Tool Input"),
        ("✿FUNCTION✿", "✿ARGS✿"),
    )

    def __init__(self):
        self.patterns = [
            re.compile(
                rf"^[ \t]*{re.escape(label)}[ \t]*[：:][ \t]*([^\n\[]+?)[ \t]*\r?\n"
                rf"[ \t]*{re.escape(input_label)}[ \t]*[：:][ \t]*(?=\{{)",
                re.MULTILINE,
            )
            for label, input_label in self.label_pairs
        ]

    def parse(self, text: str) -> Optional[list[ToolCall]]:
        found = []
        for pattern in self.patterns:
            for match in pattern.finditer(text):
                arguments, _ = _decode_object_at(text, match.end())
                if not isinstance(arguments, dict):
                    logger.debug("Dropping call %s: invalid JSON input", match.group(1))
                    continue
                found.append((match.start(), ToolCall(name=match.group(1).strip(), arguments=arguments)))
        found.sort(key=lambda item: item[0])
        return [call for _, call in found] or None


def _call_from_object(obj: Any) -> Optional[ToolCall]:
    if not isinstance(obj, dict) or not isinstance(obj.get("name"), str):
        return None
    arguments = obj.get("arguments", {})
    if isinstance(arguments, str):
        try:
            arguments = json.loads(arguments)
        except json.JSONDecodeError:
            logger.debug("Dropping call %s: arguments string is not JSON", obj["name"])
            return None
    return ToolCall(name=obj["name"], arguments=arguments)


class TaggedStrategy(ParseStrategy):
    """``<tool_call>{"name": ..., "arguments": ...}</tool_call>``"""
    name = "tagged"
    pattern = re.compile(r"<tool_call>(.*?)</tool_call>", re.DOTALL)

    def parse(self, text: str) -> Optional[list[ToolCall]]:
        calls = []
        for match in self.pattern.finditer(text):
            try:
                obj = json.loads(match.group(1).strip())
            except json.JSONDecodeError:
                logger.debug("Dropping tagged call: body is not JSON")
                continue
            call = _call_from_object(obj)
            if call is not None:
                calls.append(call)
        return calls or None


class BareJsonStrategy(ParseStrategy):
    """``{"name": "...", "arguments": {...}}`` anywhere in the text"""
    name = "bare_json"

    def parse(self, text: str) -> Optional[list[ToolCall]]:
        calls = []
        pos = text.find("{")
        while pos != -1:
            obj, end = _decode_object_at(text, pos)
            if isinstance(obj, dict) and "arguments" in obj:
                call = _call_from_object(obj)
                if call is not None:
                    calls.append(call)
            # skip the whole object when it decoded, so nested objects are not re-read
            pos = text.find("{", end if end > pos else pos + 1)
        return calls or None


DEFAULT_STRATEGIES = (BracketStrategy, LinePairStrategy, TaggedStrategy, BareJsonStrategy)


class ToolCallParser:
    """Runs strategies in priority order and stops at the first one with results"""

    def __init__(self, strategies: Optional[list[ParseStrategy]] = None):
        if strategies is None:
            strategies = [strategy() for strategy in DEFAULT_STRATEGIES]
        self.strategies = list(strategies)

    def parse(self, text: str) -> list[ToolCall]:
        """
        Extract tool calls from model output.

        Args:
            text (str): model output

        Returns:
            list[ToolCall]: calls of the first matching strategy, empty for a final answer
        """
        if not text:
            return []
        for strategy in self.strategies:
            calls = strategy.parse(text)
            if calls:
                logger.debug("Parsed %d tool call(s) with %s strategy", len(calls), strategy.name)
                return calls
        return []


_default_parser = ToolCallParser()


def parse_tool_calls(text: str) -> list[ToolCall]:
    """Parse with the default strategy order"""
    return _default_parser.parse(text)

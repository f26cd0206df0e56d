# pylint: disable=C0301
"""Module converting Google-style docstrings into JSON schema tool descriptions"""
import logging
import re
from typing import Optional

from docstring_parser import Docstring, parse

logger = logging.getLogger(__name__)

_TYPE_MAP = {
    "int": "integer",
    "integer": "integer",
    "float": "number",
    "number": "number",
    "bool": "boolean",
    "boolean": "boolean",
    "list": "array",
    "array": "array",
    "dict": "object",
    "object": "object",
    "str": "string",
    "string": "string",
}

_CONSTRAINT_PATTERN = re.compile(r"\b(Minimum|Maximum|Default)\s*:\s*(-?\d+(?:\.\d+)?)", re.IGNORECASE)
_NESTED_PARAM_PATTERN = re.compile(r"^\s*(\w+)\s*\(([^)]*)\)\s*:\s*(.*)$")


def _convert_type(type_name: Optional[str]) -> str:
    """Map a Python type name to a JSON schema type, defaulting to string"""
    if not type_name:
        return "string"
    base = type_name.split(",")[0].strip().lower()
    base = base.split("[")[0]
    return _TYPE_MAP.get(base, "string")


def _build_description(docstring: Docstring) -> str:
    parts = [part.strip() for part in (docstring.short_description, docstring.long_description) if part]
    return "\n\n".join(parts)


def _extract_constraints(description: Optional[str]) -> dict:
    """Pull ``Minimum: n``, ``Maximum: n`` and ``Default: n`` out of a description"""
    if not description:
        return {}
    constraints = {}
    for key, raw in _CONSTRAINT_PATTERN.findall(description):
        value = float(raw) if "." in raw else int(raw)
        constraints[key.lower()] = value
    return constraints


def _detect_format(description: Optional[str]) -> Optional[str]:
    if not description:
        return None
    lowered = description.lower()
    if "uuid" in lowered:
        return "uuid"
    if "iso format" in lowered or "iso 8601" in lowered or "timestamp" in lowered:
        return "date-time"
    return None


def _parse_nested_parameters(description: Optional[str]) -> Optional[dict]:
    """
    Parse ``name (type): text`` lines nested in a parameter description.

    Only one level of nesting is read; deeper lines are treated as fields of the
    first level.

    Returns:
        dict | None: an object schema, or None when there are no nested lines
    """
    if not description:
        return None
    properties = {}
    required = []
    for line in description.splitlines():
        match = _NESTED_PARAM_PATTERN.match(line)
        if not match:
            continue
        name, type_spec, text = match.groups()
        properties[name] = {"type": _convert_type(type_spec), "description": text.strip()}
        if "optional" not in type_spec.lower():
            required.append(name)
    if not properties:
        return None
    return {"type": "object", "properties": properties, "required": required}


def parse_google_docstring(docstring: Optional[str], func_name: str, include_returns: bool = True) -> dict:
    """
    Build a tool description from a Google-style docstring.

    Args:
        docstring (str): the docstring text
        func_name (str): name given to the tool
        include_returns (bool): add a ``returns`` schema. Defaults to True.

    Returns:
        dict: ``{"name", "description", "parameters"[, "returns"]}``, empty for an empty docstring
    """
    if not docstring or not docstring.strip():
        return {}
    parsed = parse(docstring)

    properties = {}
    required = []
    for param in parsed.params:
        description = (param.description or "").strip()
        first_line = description.splitlines()[0] if description else ""
        schema = {"type": _convert_type(param.type_name), "description": first_line}
        nested = _parse_nested_parameters(description) if schema["type"] == "object" else None
        if nested:
            schema.update(nested)
        schema.update(_extract_constraints(first_line))
        fmt = _detect_format(first_line) if schema["type"] == "string" else None
        if fmt:
            schema["format"] = fmt
        properties[param.arg_name] = schema
        if not param.is_optional:
            required.append(param.arg_name)

    result = {
        "name": func_name,
        "description": _build_description(parsed),
        "parameters": {"type": "object", "properties": properties, "required": required},
    }
    if include_returns and parsed.returns:
        returns = {"type": _convert_type(parsed.returns.type_name), "description": (parsed.returns.description or "").strip()}
        if returns["type"] == "array":
            returns["items"] = {"type": "string"}
        result["returns"] = returns
    return result

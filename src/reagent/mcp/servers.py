# pylint: disable=C0301
"""Module reading persisted tool-server definitions"""
import json
import logging
import os
from typing import Any

from pydantic import ValidationError

from ..core.model import ServerConfig

logger = logging.getLogger(__name__)

SECRET_MARKERS = ("PASSWORD", "SECRET", "KEY", "TOKEN")
REDACTED = "******"


def load_server_configs(source: str | os.PathLike | dict) -> dict[str, ServerConfig]:
    """
    Read tool-server definitions.

    The document maps server names to ``{command, args, env}`` under a top-level
    ``mcpServers`` (or ``servers``) key. Invalid entries are skipped.

    Args:
        source (str|PathLike|dict): path of a JSON file, or the already decoded document

    Returns:
        dict[str, ServerConfig]: server configurations in document order

    Raises:
        FileNotFoundError: if the file does not exist
        json.JSONDecodeError: if the file is not valid JSON
    """
    if isinstance(source, dict):
        document = source
    else:
        with open(source, "r", encoding="utf-8") as f:
            document = json.load(f)

    entries: Any = document.get("mcpServers", document.get("servers", {})) if isinstance(document, dict) else {}
    if not isinstance(entries, dict):
        logger.warning("Ignoring server configuration: expected an object of servers")
        return {}

    configs = {}
    for name, entry in entries.items():
        try:
            configs[name] = ServerConfig.model_validate(entry)
        except ValidationError as e:
            logger.warning("Skipping invalid configuration of server %s: %s", name, e)
    return configs


def is_secret(key: str) -> bool:
    upper = key.upper()
    return any(marker in upper for marker in SECRET_MARKERS)


def redact_env(env: dict[str, str]) -> dict[str, str]:
    """Copy of ``env`` with secret-looking values masked"""
    return {key: REDACTED if is_secret(key) else value for key, value in env.items()}


def describe_server(name: str, config: ServerConfig) -> str:
    """Human-readable disclosure of a server's environment, for the system prompt context"""
    if not config.env:
        return f"Tool server {name} has no extra environment variables."
    variables = ", ".join(f"{key}={value}" for key, value in redact_env(config.env).items())
    return f"Tool server {name} runs with environment variables: {variables}"

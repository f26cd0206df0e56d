# pylint: disable=C0301
"""Module assembling an agent from the configuration"""
import logging
import os
from typing import Optional

from .config.configuration import Configuration, ConfigManager
from .core.agent_core import AgentConfiguration, AgentCore
from .mcp.local import echo
from .mcp.registry import ToolServerRegistry
from .provider.engine import InferenceEngine, Provider
from .provider.ollama import OllamaEngine
from .provider.openai import OpenAiEngine

logger = logging.getLogger(__name__)


def create_engine(config: Configuration) -> InferenceEngine:
    """Instantiate the engine named by the [engine] section"""
    provider = Provider[config.engine.provider.upper()]
    if provider == Provider.OLLAMA:
        return OllamaEngine(model=config.engine.model, options=config.engine.options, engine_config=config.engine)
    return OpenAiEngine(model=config.engine.model, options=config.engine.options, engine_config=config.engine)


def build_agent(config: Optional[Configuration] = None, with_builtin_tools: bool = False) -> AgentCore:
    """
    Build a ready-to-use agent.

    The configured tool servers are started; servers that fail to start are
    skipped and reported in the log.

    Args:
        config (Configuration, optional): configuration to use, installed as the process-wide one. Defaults to ``ConfigManager.get()``.
        with_builtin_tools (bool): also serve the built-in ``echo`` tool. Defaults to False.

    Returns:
        AgentCore: the agent

    Raises:
        ModelLoadError: if the engine cannot be created
    """
    if config is None:
        config = ConfigManager.get()
    else:
        ConfigManager.set(config)

    engine = create_engine(config)
    agent = AgentCore(
        engine,
        config=AgentConfiguration(
            name=config.agent.name,
            prompt_style=config.agent.prompt_style,
            max_iterations=config.agent.max_iterations,
            result_max_chars=config.agent.result_max_chars,
            namespace_tools=config.servers.namespace_tools,
            context=config.agent.context,
        ),
        registry=ToolServerRegistry(default_timeout=config.servers.default_timeout))

    if with_builtin_tools:
        agent.add_local_server("builtin", [echo])
    if config.servers.config_path:
        if os.path.isfile(config.servers.config_path):
            agent.load_servers(config.servers.config_path)
        else:
            logger.warning("Tool server configuration %s not found", config.servers.config_path)
    return agent

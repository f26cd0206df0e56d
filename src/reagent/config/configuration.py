# pylint: disable=C0301
"""Module loading reagent configuration from TOML files"""
import logging
import os
import threading
import tomllib
from pathlib import Path
from typing import ClassVar, Literal, Optional

from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)

DEFAULT_API_KEY = "api-key"


class GenerationOptions(BaseModel):
    """Sampling parameters forwarded untouched to the engine"""
    temperature: float = 0.2
    top_k: int = 20
    top_p: float = 0.85
    min_p: float = 0.0
    presence_penalty: float = 1.0
    repeat_penalty: float = 1.1
    seed: int = 1234
    context_length: int = 32768
    max_tokens: int = 4096


class EngineConfig(BaseModel):
    """[engine] section: which inference backend to use and how to reach it"""
    provider: Literal["ollama", "openai"] = "ollama"
    model: str = "qwen3:4b"
    base_url: Optional[str] = None
    api_key: Optional[str] = DEFAULT_API_KEY
    timeout: float = 120
    options: GenerationOptions = Field(default_factory=GenerationOptions)

    @field_validator("api_key")
    @classmethod
    def _default_api_key(cls, value: Optional[str]) -> str:
        # local OpenAI-compatible servers ignore the key but the client requires one
        return value or DEFAULT_API_KEY


class AgentSettings(BaseModel):
    """[agent] section"""
    name: str = "agent"
    prompt_style: Literal["react", "function"] = "react"
    max_iterations: int = Field(default=5, ge=1)
    result_max_chars: int = Field(default=2000, ge=1)
    context: str = ""


class ServersConfig(BaseModel):
    """[servers] section: tool servers launched at startup"""
    config_path: Optional[str] = None
    default_timeout: float = Field(default=30, gt=0)
    namespace_tools: bool = True


class Configuration(BaseModel):
    """Whole configuration file"""
    engine: EngineConfig = Field(default_factory=EngineConfig)
    agent: AgentSettings = Field(default_factory=AgentSettings)
    servers: ServersConfig = Field(default_factory=ServersConfig)

    @classmethod
    def from_file(cls, path: str | os.PathLike) -> "Configuration":
        """
        Load a configuration from a TOML file.

        Args:
            path (str|PathLike): path of the TOML file

        Returns:
            Configuration: the parsed configuration

        Raises:
            FileNotFoundError: if the file does not exist
            tomllib.TOMLDecodeError: if the file is not valid TOML
        """
        with open(path, "rb") as f:
            data = tomllib.load(f)
        config = cls.model_validate(data)
        if config.engine.provider == "openai":
            os.environ["OPENAI_API_KEY"] = config.engine.api_key
        return config


class ConfigManager:
    """Process-wide access to the loaded configuration"""
    _config: ClassVar[Optional[Configuration]] = None
    _config_path: ClassVar[Optional[str]] = None
    _lock: ClassVar[threading.Lock] = threading.Lock()
    _default_config_paths: ClassVar[list[str]] = [
        "config.toml",
        "reagent.toml",
        str(Path.home() / ".config" / "reagent" / "config.toml"),
    ]

    @classmethod
    def initialize(cls, path: str | os.PathLike):
        """Load the configuration from ``path``"""
        with cls._lock:
            cls._config = Configuration.from_file(path)
            cls._config_path = str(path)
        logger.info("Configuration loaded from %s", path)

    @classmethod
    def get(cls, path: Optional[str | os.PathLike] = None) -> Configuration:
        """
        Return the configuration, loading it on first use.

        Args:
            path (str|PathLike, optional): explicit file to load when not initialized yet

        Raises:
            RuntimeError: if no configuration file can be found
        """
        if cls._config is not None:
            return cls._config
        if path is not None:
            cls.initialize(path)
            return cls._config
        for candidate in cls._default_config_paths:
            if os.path.isfile(candidate):
                cls.initialize(candidate)
                return cls._config
        raise RuntimeError(
            "ConfigManager not initialized and no configuration file found. "
            f"Searched: {', '.join(cls._default_config_paths)}")

    @classmethod
    def set(cls, config: Configuration):
        """Install an already built configuration"""
        with cls._lock:
            cls._config = config
            cls._config_path = None

    @classmethod
    def reload(cls) -> Configuration:
        """Read the configuration file again"""
        if cls._config_path is None:
            raise RuntimeError("ConfigManager has no configuration file to reload")
        cls.initialize(cls._config_path)
        return cls._config

    @classmethod
    def is_initialized(cls) -> bool:
        return cls._config is not None

    @classmethod
    def reset(cls):
        with cls._lock:
            cls._config = None
            cls._config_path = None

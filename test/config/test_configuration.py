# pylint: disable=C0114
# pylint: disable=C0115
# pylint: disable=C0303
import os
import tomllib
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from reagent.config.configuration import (
    AgentSettings, ConfigManager, Configuration, EngineConfig, GenerationOptions, ServersConfig,
)


class TestConfiguration:
    def test_from_file_loads_valid_config(self, temp_config_file):
        """Test that Configuration.from_file correctly loads a valid config file."""
        with patch.dict(os.environ, {}, clear=False):
            config = Configuration.from_file(temp_config_file)

        assert isinstance(config.engine, EngineConfig)
        assert isinstance(config.agent, AgentSettings)
        assert isinstance(config.servers, ServersConfig)

        assert config.engine.provider == "openai"
        assert config.engine.model == "qwen2.5-7b-instruct"
        assert config.engine.timeout == 60
        assert config.engine.options.temperature == 0.1
        assert config.engine.options.context_length == 16384
        # unspecified options keep their defaults
        assert config.engine.options.top_k == 20
        assert config.agent.prompt_style == "function"
        assert config.agent.max_iterations == 8
        assert config.servers.default_timeout == 15
        assert not config.servers.namespace_tools

    def test_from_file_sets_openai_env_var(self, temp_config_file):
        """Test that an openai engine exports OPENAI_API_KEY."""
        with patch.dict(os.environ, {}, clear=False):
            os.environ.pop("OPENAI_API_KEY", None)
            Configuration.from_file(temp_config_file)
            assert os.environ.get("OPENAI_API_KEY") == "openai-test-key"

    def test_empty_file_uses_defaults(self, temp_empty_config_file):
        config = Configuration.from_file(temp_empty_config_file)
        assert config.engine.provider == "ollama"
        assert config.engine.api_key == "api-key"
        assert config.agent.max_iterations == 5
        assert config.agent.result_max_chars == 2000
        assert config.servers.config_path is None
        assert config.servers.default_timeout == 30

    def test_from_file_with_invalid_path(self):
        with pytest.raises(FileNotFoundError):
            Configuration.from_file("/nonexistent/config.toml")

    def test_from_file_with_invalid_toml(self, temp_invalid_config_file):
        with pytest.raises(tomllib.TOMLDecodeError):
            Configuration.from_file(temp_invalid_config_file)

    def test_unknown_provider_rejected(self):
        with pytest.raises(ValidationError):
            Configuration.model_validate({"engine": {"provider": "groq"}})

    def test_empty_api_key_defaults(self):
        assert EngineConfig(api_key="").api_key == "api-key"

    def test_generation_defaults(self):
        options = GenerationOptions()
        assert (options.temperature, options.top_k, options.top_p, options.min_p) == (0.2, 20, 0.85, 0.0)
        assert (options.presence_penalty, options.repeat_penalty, options.seed) == (1.0, 1.1, 1234)
        assert (options.context_length, options.max_tokens) == (32768, 4096)


class TestConfigManager:
    def test_initialize_and_get(self, temp_config_file):
        ConfigManager.initialize(temp_config_file)
        assert ConfigManager.is_initialized()
        assert ConfigManager.get().agent.name == "assistant"

    def test_get_with_explicit_path(self, temp_config_file):
        assert ConfigManager.get(temp_config_file).engine.model == "qwen2.5-7b-instruct"

    def test_get_searches_default_paths(self, temp_dir_with_config, monkeypatch):
        monkeypatch.chdir(temp_dir_with_config)
        assert ConfigManager.get().agent.name == "assistant"

    def test_get_without_any_file(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        with patch.object(ConfigManager, "_default_config_paths", ["missing.toml"]):
            with pytest.raises(RuntimeError) as exc_info:
                ConfigManager.get()
        assert "ConfigManager not initialized" in str(exc_info.value)
        assert "missing.toml" in str(exc_info.value)

    def test_set(self):
        config = Configuration()
        ConfigManager.set(config)
        assert ConfigManager.get() is config
        with pytest.raises(RuntimeError):
            ConfigManager.reload()

    def test_reload(self, temp_config_file):
        ConfigManager.initialize(temp_config_file)
        first = ConfigManager.get()
        assert ConfigManager.reload() is not first

    def test_reset(self, temp_config_file):
        ConfigManager.initialize(temp_config_file)
        ConfigManager.reset()
        assert not ConfigManager.is_initialized()

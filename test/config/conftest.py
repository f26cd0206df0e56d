import os
import tempfile
from pathlib import Path

import pytest

from reagent.config.configuration import ConfigManager

VALID_TOML = b"""
[engine]
provider = "openai"
model = "qwen2.5-7b-instruct"
base_url = "http://localhost:8080/v1"
api_key = "openai-test-key"
timeout = 60

[engine.options]
temperature = 0.1
context_length = 16384

[agent]
name = "assistant"
prompt_style = "function"
max_iterations = 8
context = "The user works in Europe/Rome."

[servers]
config_path = "mcp_servers.json"
default_timeout = 15
namespace_tools = false
"""


@pytest.fixture(autouse=True)
def reset_config_manager():
    """Every test starts with an uninitialized ConfigManager."""
    ConfigManager.reset()
    yield
    ConfigManager.reset()


@pytest.fixture
def temp_config_file():
    """Create a temporary config file with valid TOML content."""
    with tempfile.NamedTemporaryFile(mode="wb", suffix=".toml", delete=False) as temp:
        temp.write(VALID_TOML)
        temp_path = temp.name
    
    yield temp_path
    
    os.unlink(temp_path)


@pytest.fixture
def temp_empty_config_file():
    """Create a temporary empty config file."""
    with tempfile.NamedTemporaryFile(mode="wb", suffix=".toml", delete=False) as temp:
        temp_path = temp.name
    
    yield temp_path
    
    os.unlink(temp_path)


@pytest.fixture
def temp_invalid_config_file():
    """Create a temporary config file with invalid TOML content."""
    with tempfile.NamedTemporaryFile(mode="wb", suffix=".toml", delete=False) as temp:
        temp.write(b"""
[engine]
provider = "ollama"
this is not valid TOML
""")
        temp_path = temp.name
    
    yield temp_path
    
    os.unlink(temp_path)


@pytest.fixture
def temp_dir_with_config(tmp_path):
    """Create a temporary directory holding a config.toml."""
    config_path = Path(tmp_path) / "config.toml"
    config_path.write_bytes(VALID_TOML)
    return tmp_path

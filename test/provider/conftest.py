"""
Fixtures for provider tests.
"""

import threading

import pytest
from unittest.mock import MagicMock, patch

from reagent.config.configuration import GenerationOptions
from reagent.provider import OllamaEngine, OpenAiEngine
from reagent.provider.engine import InferenceEngine


@pytest.fixture
def mock_config_manager():
    """Mock for the ConfigManager."""
    with patch('reagent.provider.openai.ConfigManager') as mock_openai_cm, \
         patch('reagent.provider.ollama.ConfigManager') as mock_ollama_cm:

        engine_config = MagicMock()
        engine_config.base_url = "http://localhost:8080/v1"
        engine_config.api_key = "test-api-key"
        engine_config.timeout = 30
        mock_openai_cm.get.return_value.engine = engine_config
        mock_ollama_cm.get.return_value.engine = engine_config

        yield {
            "openai": mock_openai_cm,
            "ollama": mock_ollama_cm,
            "engine": engine_config,
        }


@pytest.fixture
def options():
    return GenerationOptions(context_length=8192, max_tokens=256)


@pytest.fixture
def mock_ollama_engine(mock_config_manager, options):
    """Ollama engine over a mocked client."""
    with patch('reagent.provider.ollama.Client') as mock_client:
        engine = OllamaEngine(model="qwen3:4b", options=options)
        yield engine, mock_client.return_value


@pytest.fixture
def mock_openai_engine(mock_config_manager, options):
    """OpenAI-compatible engine over a mocked client."""
    with patch('reagent.provider.openai.OpenAI') as mock_openai:
        engine = OpenAiEngine(model="local-model", options=options)
        yield engine, mock_openai.return_value


class ListEngine(InferenceEngine):
    """Engine streaming a fixed list of fragments."""
    def __init__(self, fragments):
        self.fragments = fragments
        self.threads = []

    def generate(self, prompt, stop_markers, on_token):
        self.threads.append(threading.current_thread().name)
        for fragment in self.fragments:
            if on_token(fragment) is False:
                break
        return "".join(self.fragments)

    def context_length(self):
        return 1024


@pytest.fixture
def list_engine():
    return ListEngine(["Hello", " world"])


def ollama_chunk(text, done=False, prompt_eval_count=None):
    chunk = {"response": text, "done": done}
    if prompt_eval_count is not None:
        chunk["prompt_eval_count"] = prompt_eval_count
    return chunk


def openai_chunk(text):
    chunk = MagicMock()
    chunk.choices = [MagicMock(text=text)]
    return chunk


@pytest.fixture
def make_ollama_chunk():
    return ollama_chunk


@pytest.fixture
def make_openai_chunk():
    return openai_chunk

# pylint: disable=C0301
"""Module wrap Ollama raw completion"""
import logging
from typing import Optional

from ollama import Client

from ..config.configuration import ConfigManager, EngineConfig
from ..core.model import ModelLoadError
from .engine import GenerationOptions, InferenceEngine, TokenCallback

logger = logging.getLogger(__name__)


class OllamaEngine(InferenceEngine):
    """Defining Ollama integration"""
    def __init__(self, model: str, options: Optional[GenerationOptions] = None, engine_config: Optional[EngineConfig] = None):
        self.model = model
        self.options = options or GenerationOptions()
        engine_config = engine_config or ConfigManager.get().engine
        try:
            self.client = Client(host=engine_config.base_url, timeout=engine_config.timeout)
        except Exception as e:
            logger.error("Error creating Ollama client: %s", e)
            raise ModelLoadError(f"cannot create Ollama client: {e}") from e
        self._last_prompt: Optional[str] = None
        self._last_prompt_tokens: Optional[int] = None

    def _build_options(self, stop_markers: list[str]) -> dict:
        return {
            "temperature": self.options.temperature,
            "top_k": self.options.top_k,
            "top_p": self.options.top_p,
            "min_p": self.options.min_p,
            "presence_penalty": self.options.presence_penalty,
            "repeat_penalty": self.options.repeat_penalty,
            "seed": self.options.seed,
            "num_ctx": self.options.context_length,
            "num_predict": self.options.max_tokens,
            "stop": stop_markers,
        }

    def generate(self, prompt: str, stop_markers: list[str], on_token: TokenCallback) -> str:
        """Stream a raw completion, the prompt is already templated.

        Args:
            prompt (str): full prompt text
            stop_markers (list[str]): forwarded to Ollama as stop sequences
            on_token (TokenCallback): fragment callback, returning False stops the stream

        Returns:
            str: generated text
        """
        output = []
        try:
            response = self.client.generate(
                model=self.model,
                prompt=prompt,
                raw=True,
                stream=True,
                options=self._build_options(stop_markers))
            for chunk in response:
                fragment = chunk.get("response") or ""
                if chunk.get("done"):
                    self._last_prompt = prompt
                    self._last_prompt_tokens = chunk.get("prompt_eval_count")
                if not fragment:
                    continue
                output.append(fragment)
                if on_token(fragment) is False:
                    break
        except Exception as e:
            logger.error("Error in Ollama generation: %s", str(e))
            raise
        return "".join(output)

    def token_count(self, prompt: str) -> int:
        """Ollama exposes no tokenizer; the count of the last evaluated prompt is reused when possible"""
        if prompt == self._last_prompt and self._last_prompt_tokens:
            return self._last_prompt_tokens
        return super().token_count(prompt)

    def context_length(self) -> int:
        return self.options.context_length

# pylint: disable=C0301
"""Module wrap OpenAI-compatible completion servers (llama.cpp server, vLLM, ...)"""
import logging
from typing import Optional

import tiktoken
from openai import OpenAI

from ..config.configuration import ConfigManager, EngineConfig
from ..core.model import ModelLoadError
from .engine import GenerationOptions, InferenceEngine, TokenCallback

logger = logging.getLogger(__name__)

# the completions endpoint accepts at most four stop sequences
_MAX_STOP_SEQUENCES = 4


class OpenAiEngine(InferenceEngine):
    """Defining OpenAI-compatible integration"""
    def __init__(self, model: str, options: Optional[GenerationOptions] = None, encoding: str = "cl100k_base",
                 engine_config: Optional[EngineConfig] = None):
        self.model = model
        self.options = options or GenerationOptions()
        self.encoding_name = encoding
        self._encoding = None
        engine_config = engine_config or ConfigManager.get().engine
        try:
            self.client = OpenAI(
                api_key=engine_config.api_key,
                base_url=engine_config.base_url,
                timeout=engine_config.timeout)
        except Exception as e:
            logger.error("Error creating OpenAI client: %s", e)
            raise ModelLoadError(f"cannot create OpenAI client: {e}") from e

    def generate(self, prompt: str, stop_markers: list[str], on_token: TokenCallback) -> str:
        """Stream a completion from the legacy completions endpoint.

        Args:
            prompt (str): full prompt text
            stop_markers (list[str]): stop sequences, the first four are forwarded
            on_token (TokenCallback): fragment callback, returning False closes the stream

        Returns:
            str: generated text
        """
        output = []
        try:
            stream = self.client.completions.create(
                model=self.model,
                prompt=prompt,
                stream=True,
                temperature=self.options.temperature,
                top_p=self.options.top_p,
                presence_penalty=self.options.presence_penalty,
                seed=self.options.seed,
                max_tokens=self.options.max_tokens,
                stop=stop_markers[:_MAX_STOP_SEQUENCES] or None,
                extra_body={
                    "top_k": self.options.top_k,
                    "min_p": self.options.min_p,
                    "repeat_penalty": self.options.repeat_penalty,
                })
            try:
                for chunk in stream:
                    fragment = self._extract_stream_content(chunk)
                    if not fragment:
                        continue
                    output.append(fragment)
                    if on_token(fragment) is False:
                        break
            finally:
                stream.close()
        except Exception as e:
            logger.error("Error in OpenAI generation: %s", str(e))
            raise
        return "".join(output)

    def _extract_stream_content(self, chunk) -> str | None:
        if hasattr(chunk, "choices") and len(chunk.choices) > 0:
            return chunk.choices[0].text
        return None

    def token_count(self, prompt: str) -> int:
        if self._encoding is None:
            self._encoding = tiktoken.get_encoding(self.encoding_name)
        return len(self._encoding.encode(prompt, disallowed_special=()))

    def context_length(self) -> int:
        return self.options.context_length

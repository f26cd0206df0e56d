"""
Provider module containing inference engine implementations.
"""

from .engine import EngineWorker, InferenceEngine, Provider, StopWordGuard
from .ollama import OllamaEngine
from .openai import OpenAiEngine


__all__ = [
    "EngineWorker",
    "InferenceEngine",
    "Provider",
    "StopWordGuard",
    "OllamaEngine",
    "OpenAiEngine",
]

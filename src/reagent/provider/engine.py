# pylint: disable=C0301
"""Module wrap interface of the inference engine and the worker that owns it"""
import logging
import queue
import threading
from abc import ABC, abstractmethod
from concurrent.futures import Future
from enum import Enum
from typing import Callable, Optional

from ..config.configuration import GenerationOptions

logger = logging.getLogger(__name__)

TokenCallback = Callable[[str], Optional[bool]]


class Provider(Enum):
    """Enum defining usable inference backends"""
    OLLAMA = 1
    OPENAI = 2


class InferenceEngine(ABC):
    """Interface for a text completion engine"""
    @abstractmethod
    def generate(self, prompt: str, stop_markers: list[str], on_token: TokenCallback) -> str:
        """
        Generate a completion for a raw prompt.

        Args:
            prompt: The full prompt text
            stop_markers: Literal strings after which generation should halt
            on_token: Called once per emitted text fragment, in order. Returning False
                asks the engine to stop as soon as possible.

        Returns:
            The generated text
        """
        return

    def token_count(self, prompt: str) -> int:
        """Number of tokens of a prompt. Engines without a tokenizer estimate it."""
        return (len(prompt) + 3) // 4

    def char_count(self, prompt: str) -> int:
        return len(prompt)

    @abstractmethod
    def context_length(self) -> int:
        """Static capacity of the engine context, in tokens"""
        return

    def reset(self):
        """Drop any reusable state (KV cache) between unrelated generations"""


class StopWordGuard:
    """
    Applies the stop-word policy to a stream of fragments.

    Output is accumulated until one of the stop markers appears; the marker and
    everything after it are discarded. Text that could still turn out to be the
    beginning of a marker is held back from the consumer until it is disambiguated.
    """
    def __init__(self, stop_markers: list[str], on_token: Optional[Callable[[str], None]] = None):
        self.stop_markers = [marker for marker in stop_markers if marker]
        self.on_token = on_token
        self.stopped = False
        self._text = ""
        self._emitted = 0

    @property
    def text(self) -> str:
        return self._text

    def _held_back(self) -> int:
        """Length of the longest tail that is a proper prefix of a marker"""
        longest = 0
        for marker in self.stop_markers:
            for size in range(min(len(marker) - 1, len(self._text)), longest, -1):
                if self._text.endswith(marker[:size]):
                    longest = size
                    break
        return longest

    def _emit(self, end: int):
        if end > self._emitted:
            chunk = self._text[self._emitted:end]
            self._emitted = end
            if self.on_token:
                self.on_token(chunk)

    def feed(self, fragment: str) -> bool:
        """
        Consume a fragment.

        Returns:
            bool: False once a stop marker has been seen, True otherwise
        """
        if self.stopped:
            return False
        # a marker may straddle the previous fragment, so search from the held-back tail
        search_from = max(0, len(self._text) - max((len(m) for m in self.stop_markers), default=0))
        self._text += fragment
        cut = -1
        for marker in self.stop_markers:
            index = self._text.find(marker, search_from)
            if index != -1 and (cut == -1 or index < cut):
                cut = index
        if cut != -1:
            self._text = self._text[:cut]
            self.stopped = True
            self._emit(len(self._text))
            return False
        self._emit(len(self._text) - self._held_back())
        return True

    def finish(self) -> str:
        """Flush anything held back and return the final text"""
        self._emit(len(self._text))
        return self._text


class _Job:
    def __init__(self, fn: Callable, args: tuple):
        self.fn = fn
        self.args = args
        self.future: Future = Future()


class EngineWorker:
    """
    Single owner of an inference engine.

    Engines are not reentrant, so one daemon thread runs every call against the
    engine; callers hand jobs over through a queue and wait on a future. Token
    callbacks therefore fire on the worker thread, in emission order.
    """
    _STOP = object()

    def __init__(self, engine: InferenceEngine, name: str = "engine-worker"):
        self.engine = engine
        self._queue: queue.Queue = queue.Queue()
        self._thread = threading.Thread(target=self._loop, name=name, daemon=True)
        self._closed = False
        self._thread.start()

    def _loop(self):
        while True:
            job = self._queue.get()
            if job is self._STOP:
                break
            if not job.future.set_running_or_notify_cancel():
                continue
            try:
                job.future.set_result(job.fn(*job.args))
            except Exception as e:  # pylint: disable=broad-except
                job.future.set_exception(e)

    def submit(self, fn: Callable, *args) -> Future:
        if self._closed:
            raise RuntimeError("engine worker is closed")
        job = _Job(fn, args)
        self._queue.put(job)
        return job.future

    def start_generation(self, prompt: str, stop_markers: list[str], on_token: TokenCallback) -> Future:
        """Queue a generation and return without waiting for it"""
        return self.submit(self.engine.generate, prompt, stop_markers, on_token)

    def generate(self, prompt: str, stop_markers: list[str], on_token: TokenCallback) -> str:
        return self.start_generation(prompt, stop_markers, on_token).result()

    def token_count(self, prompt: str) -> int:
        return self.submit(self.engine.token_count, prompt).result()

    def char_count(self, prompt: str) -> int:
        return self.engine.char_count(prompt)

    def context_length(self) -> int:
        return self.engine.context_length()

    def reset(self):
        self.submit(self.engine.reset).result()

    def close(self, timeout: Optional[float] = 5.0):
        """Stop the worker thread once pending jobs are done"""
        if self._closed:
            return
        self._closed = True
        self._queue.put(self._STOP)
        if threading.current_thread() is not self._thread:
            self._thread.join(timeout)

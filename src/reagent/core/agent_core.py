# pylint: disable=C0301
"""Module driving the ReAct loop: generation, tool-call parsing and tool execution"""
import asyncio
import functools
import itertools
import logging
import queue
import threading
from typing import Callable, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..mcp.local import FunctionToolServer
from ..mcp.registry import ToolServerRegistry
from ..mcp.servers import describe_server, load_server_configs
from ..memory.conversation import ConversationStore
from ..provider.engine import EngineWorker, InferenceEngine, StopWordGuard
from .model import (
    DEFAULT_RESULT_MAX_CHARS, AgentState, CatalogEntry, ContextUsage, InferenceError, Message,
    ServerConfig, ToolCall, ToolConnectionError, ToolDescriptor, ToolResult,
    namespaced, not_found_result, resolve_local_name, truncate_result,
)
from .parser import ToolCallParser
from .prompt import RESUM, PromptStyle, build_system_prompt, extract_final_answer, observation, render_transcript, style_defaults

logger = logging.getLogger(__name__)

TokenHandler = Callable[[str], None]
ToolResultHandler = Callable[[str, str, bool], None]
ContextUsageHandler = Callable[[ContextUsage], None]

_RELAY_POLL_SECONDS = 0.05


def _relay(future, fragments: queue.Queue, on_token: TokenHandler):
    """Hand fragments produced on the engine thread to ``on_token`` on the calling thread until the job ends"""
    while not future.done():
        try:
            fragment = fragments.get(timeout=_RELAY_POLL_SECONDS)
        except queue.Empty:
            continue
        on_token(fragment)


def _drain(fragments: queue.Queue, on_token: TokenHandler):
    while not fragments.empty():
        on_token(fragments.get_nowait())


class AgentConfiguration(BaseModel):
    """Behaviour of an AgentCore. Unknown parameters are rejected."""
    model_config = ConfigDict(extra="forbid")

    name: str = "agent"
    prompt_style: PromptStyle = PromptStyle.REACT
    max_iterations: int = Field(default=5, ge=1)
    result_max_chars: int = Field(default=DEFAULT_RESULT_MAX_CHARS, ge=1)
    system_prompt_template: Optional[str] = None
    stop_markers: Optional[list[str]] = None
    completion_markers: Optional[list[str]] = None
    namespace_tools: bool = True
    context: str = ""


class LoadReport(BaseModel):
    """Outcome of starting the configured tool servers"""
    loaded: list[str] = Field(default_factory=list)
    failed: dict[str, str] = Field(default_factory=dict)

    @property
    def loaded_count(self) -> int:
        return len(self.loaded)

    @property
    def failed_count(self) -> int:
        return len(self.failed)


class AgentCore:
    """
    Orchestrates one conversation between the model and the tool servers.

    Every public entry point is serialized through a single re-entrant lock, so
    only one generation is ever in flight. The engine itself lives on an
    ``EngineWorker`` thread; fragments are relayed back so token callbacks run
    on the calling thread, in emission order, and may use the agent freely.
    """
    def __init__(self, engine: InferenceEngine | EngineWorker, config: Optional[AgentConfiguration] = None,
                 registry: Optional[ToolServerRegistry] = None, parser: Optional[ToolCallParser] = None, **kwargs):
        if config is None:
            config = AgentConfiguration(**kwargs)
        elif kwargs:
            raise TypeError(f"unexpected arguments with an explicit configuration: {', '.join(kwargs)}")
        self.config = config
        self.name = config.name
        self.worker = engine if isinstance(engine, EngineWorker) else EngineWorker(engine, name=f"{config.name}-engine")
        self.registry = registry if registry is not None else ToolServerRegistry()
        self.parser = parser or ToolCallParser()
        self.memory = ConversationStore()

        defaults = style_defaults(config.prompt_style)
        self.template = config.system_prompt_template or defaults["template"]
        self.stop_markers = config.stop_markers if config.stop_markers is not None else list(defaults["stop_markers"])
        self.completion_markers = config.completion_markers if config.completion_markers is not None else list(defaults["completion_markers"])

        self._lock = threading.RLock()
        self._catalog: dict[str, CatalogEntry] = {}
        self._context = config.context
        self._system_prompt_generated = False
        self._system_prompt_stale = False
        self._call_ids = itertools.count(1)

    @property
    def state(self) -> AgentState:
        return self.memory.state

    @property
    def context(self) -> str:
        return self._context

    def history(self) -> list[Message]:
        return self.memory.messages

    def tools(self) -> list[ToolDescriptor]:
        """The advertised catalog"""
        with self._lock:
            return [entry.descriptor for entry in self._catalog.values()]

    # -- catalog -------------------------------------------------------------

    def register_tool(self, descriptor: ToolDescriptor, namespace: Optional[str] = None, owner: Optional[str] = None) -> ToolDescriptor:
        """
        Add a tool to the catalog.

        Args:
            descriptor (ToolDescriptor): tool as advertised by its server
            namespace (str, optional): prefix the name with ``"<namespace>."``
            owner (str, optional): server the entry belongs to, used to retract it

        Returns:
            ToolDescriptor: the registered descriptor, name rewritten
        """
        registered = descriptor.model_copy(update={"name": namespaced(namespace, descriptor.name)})
        with self._lock:
            self._catalog[registered.name] = CatalogEntry(descriptor=registered, owner=owner)
            self._system_prompt_stale = True
        return registered

    def unregister_server_tools(self, server: str) -> int:
        """Drop every catalog entry owned by ``server``. Returns how many were removed."""
        with self._lock:
            names = [name for name, entry in self._catalog.items() if entry.owner == server]
            for name in names:
                del self._catalog[name]
            if names:
                self._system_prompt_stale = True
        return len(names)

    def _register_server_tools(self, name: str, tools: list[ToolDescriptor]):
        namespace = name if self.config.namespace_tools else None
        for tool in tools:
            self.register_tool(tool, namespace=namespace, owner=name)

    # -- tool servers --------------------------------------------------------

    def add_server(self, name: str, config: ServerConfig):
        """
        Start a tool server and advertise its tools.

        Raises:
            ToolConnectionError: if the server cannot be started; the catalog is left unchanged
        """
        client = self.registry.add_server(name, config)
        with self._lock:
            self.unregister_server_tools(name)
            self._register_server_tools(name, client.tools)
        return client

    def add_local_server(self, name: str, functions: list[Callable]) -> FunctionToolServer:
        """Serve Python functions as tools under ``name``"""
        server = FunctionToolServer(name, functions)
        server.connect()
        self.registry.add_client(name, server)
        with self._lock:
            self.unregister_server_tools(name)
            self._register_server_tools(name, server.tools)
        return server

    def remove_server(self, name: str) -> bool:
        """Stop a tool server and retract its catalog entries"""
        removed = self.registry.remove_server(name)
        self.unregister_server_tools(name)
        return removed

    def load_servers(self, source) -> LoadReport:
        """
        Start every server of a persisted configuration, skipping those that fail.

        Args:
            source (str|PathLike|dict): JSON file path or decoded document

        Returns:
            LoadReport: names of the started servers and errors of the failed ones
        """
        report = LoadReport()
        for name, server_config in load_server_configs(source).items():
            try:
                self.add_server(name, server_config)
            except ToolConnectionError as e:
                logger.warning("Skipping tool server %s: %s", name, e.message)
                report.failed[name] = e.message
                continue
            report.loaded.append(name)
            disclosure = describe_server(name, server_config)
            if disclosure not in self._context.split("\n"):
                self.append_context(disclosure)
        logger.info("Started %d tool server(s), %d failed", report.loaded_count, report.failed_count)
        return report

    # -- context and system prompt ------------------------------------------

    def set_context(self, text: str):
        with self._lock:
            self._context = text
            self._system_prompt_stale = True

    def append_context(self, text: str):
        with self._lock:
            self._context = f"{self._context}\n{text}" if self._context else text
            self._system_prompt_stale = True

    def set_system_prompt(self, content: str):
        """Install a caller-provided system prompt, used as is"""
        with self._lock:
            self.memory.set_system_prompt(content)
            self._system_prompt_generated = False
            self._system_prompt_stale = False

    def build_system_prompt(self) -> str:
        with self._lock:
            return build_system_prompt(self.template, self.tools(), self._context)

    def refresh_system_prompt(self):
        """Regenerate the system prompt from the current catalog and context"""
        with self._lock:
            self.memory.set_system_prompt(self.build_system_prompt())
            self._system_prompt_generated = True
            self._system_prompt_stale = False

    def prepare_chat(self, user_input: str):
        """Make sure a system prompt exists, then append the user message"""
        with self._lock:
            if not self.memory.has_system_prompt() or (self._system_prompt_generated and self._system_prompt_stale):
                self.refresh_system_prompt()
            self.memory.add_user(user_input)

    def build_prompt(self) -> str:
        return render_transcript(self.memory.messages, self.config.prompt_style)

    # -- generation ----------------------------------------------------------

    def generate_step(self, on_token: Optional[TokenHandler] = None, parse: bool = True) -> tuple[str, list[ToolCall]]:
        """
        Run one generation over the current history.

        Args:
            on_token (Callable, optional): receives text fragments as they are generated
            parse (bool): look for tool calls in the output. Defaults to True.

        Returns:
            tuple[str, list[ToolCall]]: generated text, stop marker removed, and its tool calls

        Raises:
            InferenceError: if the engine or the token callback fails
        """
        with self._lock:
            self.memory.transition(AgentState.PLANNING)
            prompt = self.build_prompt()
            fragments: queue.Queue = queue.Queue()
            guard = StopWordGuard(self.stop_markers, fragments.put if on_token is not None else None)
            abandoned = threading.Event()
            try:
                future = self.worker.start_generation(
                    prompt, self.stop_markers, lambda fragment: guard.feed(fragment) and not abandoned.is_set())
                if on_token is not None:
                    _relay(future, fragments, on_token)
                future.result()
                text = guard.finish()
                if on_token is not None:
                    _drain(fragments, on_token)
            except Exception as e:
                abandoned.set()
                self.memory.transition(AgentState.ERROR)
                logger.error("Generation failed: %s", e)
                raise InferenceError(f"generation failed: {e}") from e
            if guard.stopped:
                logger.debug("Generation halted on a stop marker")

            if not parse or not self._catalog:
                return text, []
            if any(marker in text for marker in self.completion_markers):
                return text, []
            calls = [call.model_copy(update={"id": f"call_{next(self._call_ids)}"}) for call in self.parser.parse(text)]
            return text, calls

    def execute_tool(self, call: ToolCall) -> ToolResult:
        """
        Dispatch a tool call to its server.

        The name is looked up in the catalog first, by full name and then by local
        name; anything else is reported as not found without reaching a server.
        """
        with self._lock:
            entry = self._catalog.get(call.name)
            if entry is None:
                local = resolve_local_name(call.name)
                entry = next((e for e in self._catalog.values() if resolve_local_name(e.descriptor.name) == local), None)
        if entry is None:
            logger.warning("Model requested unknown tool %s", call.name)
            return not_found_result(call.name)
        target = entry.descriptor.name
        if entry.owner is not None:
            target = namespaced(entry.owner, resolve_local_name(target))
        result = self.registry.execute(target, call.arguments)
        return result.model_copy(update={"tool_name": call.name, "result": truncate_result(result.result, self.config.result_max_chars)})

    def context_usage(self) -> ContextUsage:
        """
        Size of the prompt the next step would send.

        Raises:
            InferenceError: if the engine fails to count tokens
        """
        with self._lock:
            prompt = self.build_prompt()
            try:
                tokens = self.worker.token_count(prompt)
            except Exception as e:
                logger.error("Token counting failed: %s", e)
                raise InferenceError(f"token counting failed: {e}") from e
            self.memory.token_count = tokens
            return ContextUsage(tokens=tokens, chars=self.worker.char_count(prompt), context_length=self.worker.context_length())

    def run(self, user_input: str, max_iterations: Optional[int] = None, on_token: Optional[TokenHandler] = None,
            on_tool_result: Optional[ToolResultHandler] = None, on_context_usage: Optional[ContextUsageHandler] = None) -> str:
        """
        Answer a user message, calling tools until the model gives a final answer.

        Args:
            user_input (str): the user message
            max_iterations (int, optional): generation steps allowed. Defaults to the configured value.
            on_token (Callable, optional): streamed text fragments
            on_tool_result (Callable, optional): ``(tool_name, result, is_error)`` after each tool call
            on_context_usage (Callable, optional): receives a ContextUsage after each step

        Returns:
            str: the final answer, or the last generated text when the iteration limit is hit

        Raises:
            ValueError: if ``max_iterations`` is below 1
            InferenceError: if generation fails; the messages of the failed step are rolled back, completed steps are kept
        """
        if max_iterations is None:
            max_iterations = self.config.max_iterations
        elif max_iterations < 1:
            raise ValueError(f"max_iterations must be at least 1, got {max_iterations}")
        with self._lock:
            self.prepare_chat(user_input)
            text = ""
            for iteration in range(max_iterations):
                checkpoint = self.memory.checkpoint()
                try:
                    text, calls = self.generate_step(on_token)
                    if on_context_usage is not None:
                        on_context_usage(self.context_usage())
                except InferenceError:
                    self.memory.rollback(checkpoint)
                    self.memory.transition(AgentState.ERROR)
                    raise
                if not calls:
                    self.memory.add_assistant(text)
                    self.memory.transition(AgentState.FINISHED)
                    return extract_final_answer(text)

                self.memory.add_assistant(text, calls)
                self.memory.transition(AgentState.EXECUTING)
                for call in calls:
                    logger.info("Step %d: calling %s", iteration + 1, call.name)
                    result = self.execute_tool(call)
                    if on_tool_result is not None:
                        on_tool_result(result.tool_name, result.result, result.is_error)
                    self.memory.add_tool(observation(result.result), tool_call_id=call.id)
                self.memory.transition(AgentState.OBSERVING)
            logger.info("Stopped after %d iteration(s) without a final answer", max_iterations)
            return text

    async def arun(self, user_input: str, **kwargs) -> str:
        """Run on a worker thread so the event loop is never blocked"""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, functools.partial(self.run, user_input, **kwargs))

    def summarize(self, on_token: Optional[TokenHandler] = None) -> str:
        """Ask the model to summarize the conversation so far"""
        with self._lock:
            checkpoint = self.memory.checkpoint()
            self.memory.add_user(RESUM)
            try:
                text, _ = self.generate_step(on_token, parse=False)
            except InferenceError:
                self.memory.rollback(checkpoint)
                raise
            self.memory.add_assistant(text)
            self.memory.transition(AgentState.FINISHED)
            return extract_final_answer(text)

    def clear_history(self):
        """Forget the conversation, keeping the system prompt"""
        with self._lock:
            self.memory.clear()
            self.worker.reset()

    def shutdown(self):
        """Stop every tool server and the engine worker"""
        with self._lock:
            self.registry.shutdown()
            self.worker.close()

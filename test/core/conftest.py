"""
Fixtures for core tests.
"""

import os
import sys

import pytest

from reagent.core import AgentConfiguration, AgentCore
from reagent.core.model import ServerConfig
from reagent.provider.engine import InferenceEngine

FAKE_SERVER = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "mcp", "fake_server.py")


class ScriptedEngine(InferenceEngine):
    """Engine replaying scripted generations.

    Each script entry is a string, a list of fragments, or an exception to raise.
    """
    def __init__(self, script=None, repeat_last=False):
        self.script = list(script or [])
        self.repeat_last = repeat_last
        self.prompts = []
        self.consumed = []
        self.resets = 0

    def generate(self, prompt, stop_markers, on_token):
        self.prompts.append(prompt)
        if not self.script:
            raise RuntimeError("script exhausted")
        step = self.script[0] if self.repeat_last and len(self.script) == 1 else self.script.pop(0)
        if isinstance(step, Exception):
            raise step
        fragments = [step] if isinstance(step, str) else step
        output = []
        for fragment in fragments:
            self.consumed.append(fragment)
            output.append(fragment)
            if on_token(fragment) is False:
                break
        return "".join(output)

    def context_length(self):
        return 4096

    def reset(self):
        self.resets += 1


@pytest.fixture
def engine():
    return ScriptedEngine()


@pytest.fixture
def make_agent():
    """Factory building agents over a scripted engine, shut down after the test."""
    agents = []

    def factory(script=None, repeat_last=False, **kwargs):
        engine = ScriptedEngine(script, repeat_last=repeat_last)
        agent = AgentCore(engine, **kwargs)
        agents.append(agent)
        return agent, engine

    yield factory
    for agent in agents:
        agent.shutdown()


@pytest.fixture
def fake_server_entry():
    """Persisted configuration entry of the fake stdio tool server."""
    return {"command": sys.executable, "args": [FAKE_SERVER], "env": {"FAKE_API_KEY": "s3cret", "FAKE_REGION": "eu"}}


@pytest.fixture
def agent_config():
    return AgentConfiguration(name="test_agent", max_iterations=3)


@pytest.fixture
def recording_echo():
    """An ``echo`` tool remembering its calls."""
    calls = []

    def echo(message: str) -> str:
        """Echo the given content back.

        Args:
            message (str): The message to echo.
        """
        calls.append(message)
        return f"Echo: {message}"

    echo.calls = calls
    return echo


@pytest.fixture
def missing_server_config():
    """A tool server command that cannot be spawned."""
    return ServerConfig(command="/nonexistent/reagent-mathsrv")

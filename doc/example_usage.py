"""
Example usage of the Reagent agent.

Starts the tool servers listed in ``mcp_servers.json`` and answers one question
with a local Ollama model, streaming tokens and tool results to the terminal.
"""

import logging

from reagent import ConfigManager, build_agent
from reagent.core.model import ContextUsage


def main():
    """Ask one question, printing progress as it happens."""
    logging.basicConfig(level=logging.INFO)

    # reads config.toml, reagent.toml or ~/.config/reagent/config.toml
    config = ConfigManager.get()
    agent = build_agent(config, with_builtin_tools=True)

    def on_tool_result(name: str, result: str, is_error: bool):
        status = "error" if is_error else "ok"
        print(f"\n[{name} -> {status}] {result}")

    def on_context_usage(usage: ContextUsage):
        print(f"\n[context {usage.tokens}/{usage.context_length} tokens]")

    try:
        answer = agent.run(
            "Echo the word 'hello' back to me.",
            on_token=lambda fragment: print(fragment, end="", flush=True),
            on_tool_result=on_tool_result,
            on_context_usage=on_context_usage)
        print(f"\nAgent response: {answer}")
    finally:
        agent.shutdown()


if __name__ == "__main__":
    main()

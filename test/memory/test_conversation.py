# pylint: disable=C0114
# pylint: disable=C0115
# pylint: disable=C0116
# pylint: disable=C0303
import threading

import pytest

from reagent.core.model import AgentState, Message, Role, ToolCall


def test_new_store_is_empty(store):
    assert len(store) == 0
    assert store.messages == []
    assert not store.has_system_prompt()
    assert store.get_system_prompt() is None
    assert store.state == AgentState.IDLE


def test_system_prompt_sits_at_index_zero(store):
    store.add_user("first")
    store.set_system_prompt("SYS")
    assert store.messages[0] == Message(role=Role.SYSTEM, content="SYS")
    store.set_system_prompt("SYS2")
    assert [m.role for m in store.messages] == [Role.SYSTEM, Role.USER]
    assert store.get_system_prompt() == "SYS2"


def test_record_accepts_several_shapes(store):
    store.record("plain text")
    store.record({"role": "assistant", "content": "dict"})
    store.record(Message(role=Role.TOOL, content="Observation: x", tool_call_id="call_1"))
    assert [m.role for m in store.messages] == [Role.USER, Role.ASSISTANT, Role.TOOL]


def test_record_rejects_system_messages(store):
    with pytest.raises(ValueError):
        store.record({"role": "system", "content": "sneaky"})


def test_assistant_tool_calls(store):
    calls = [ToolCall(name="echo", arguments={"message": "hi"}, id="call_1")]
    message = store.add_assistant("Action: echo", calls)
    assert message.tool_calls == calls
    assert store.add_assistant("done").tool_calls is None


def test_char_count(populated_store):
    assert populated_store.char_count == len("You are a helpful assistant") + len("Hello") + len("Hi there")
    populated_store.set_system_prompt("S")
    assert populated_store.char_count == 1 + len("Hello") + len("Hi there")


def test_checkpoint_and_rollback(populated_store):
    checkpoint = populated_store.checkpoint()
    populated_store.add_user("again")
    populated_store.add_tool("Observation: 1")
    populated_store.rollback(checkpoint)
    assert len(populated_store) == 3
    assert populated_store.messages[-1].content == "Hi there"


def test_messages_is_a_snapshot(populated_store):
    snapshot = populated_store.messages
    populated_store.add_user("later")
    assert len(snapshot) == 3


def test_clear_keeps_system_message(populated_store):
    populated_store.token_count = 42
    populated_store.transition(AgentState.FINISHED)
    populated_store.clear()
    assert [m.role for m in populated_store.messages] == [Role.SYSTEM]
    assert populated_store.char_count == len("You are a helpful assistant")
    assert populated_store.token_count is None
    assert populated_store.state == AgentState.IDLE


def test_clear_without_system_message(store):
    store.add_user("hello")
    store.clear()
    assert store.messages == []
    assert store.char_count == 0


def test_transition(store):
    store.transition(AgentState.PLANNING)
    assert store.state == AgentState.PLANNING


def test_concurrent_appends(store):
    def worker(n):
        for i in range(50):
            store.add_user(f"{n}-{i}")

    threads = [threading.Thread(target=worker, args=(n,)) for n in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    assert len(store) == 200

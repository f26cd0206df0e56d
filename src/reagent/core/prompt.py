"""Prompt templates and rendering of the conversation into a raw completion prompt"""
import json
from enum import Enum

from .model import Message, Role, ToolDescriptor

TOOLS_PLACEHOLDER = "{{TOOLS}}"
TOOL_NAMES_PLACEHOLDER = "{{TOOL_NAMES}}"
CONTEXT_PLACEHOLDER = "{{CONTEXT}}"

FINAL_ANSWER_MARKER = "Final Answer:"
OBSERVATION_PREFIX = "Observation: "


class PromptStyle(str, Enum):
    """Output convention the model is asked to follow"""
    REACT = "react"
    FUNCTION = "function"


REACT = """Answer the following questions as best you can. You have access to the following tools:

{{TOOLS}}

Use the following format strictly:

Question: the input question you must answer
Thought: you should always think about what to do next
Action: the action to take, must be one of [{{TOOL_NAMES}}]
Action Input: the input to the action, as a JSON object
Observation: the result of the action (provided by the system, never write it yourself)
... (this Thought/Action/Action Input/Observation can repeat N times)
Thought: I now know the final answer
Final Answer: the final answer to the original input question

Rules:
- Call a tool by writing Action and Action Input, then stop and wait for the Observation.
- Observation is only ever provided by the system. Never invent one.
- The Final Answer must only use data that appeared in an Observation.
- If an Observation reports success but lacks the data you need, call another tool.

Context:
{{CONTEXT}}

Begin!
"""

FUNCTION = """You are a helpful assistant with access to the following functions:

{{TOOLS}}

To call a function, reply with:
✿FUNCTION✿: the function name, one of [{{TOOL_NAMES}}]
✿ARGS✿: the arguments as a JSON object
The system answers with a line starting with "Observation:" holding the function output. Never write it yourself.
When you have everything you need, reply with "Final Answer:" followed by the answer.

Context:
{{CONTEXT}}
"""

RESUM = "Summarize the conversation above and give a concise, clear reply."

_STYLE_DEFAULTS = {
    PromptStyle.REACT: {
        "template": REACT,
        "stop_markers": ["\nObservation:", "\nObservation"],
        "completion_markers": [FINAL_ANSWER_MARKER, "总结：", "Summary:"],
        "question": "Question: {content}\n",
        "cue": "Thought:",
    },
    PromptStyle.FUNCTION: {
        "template": FUNCTION,
        "stop_markers": ["\nObservation:", "✿RESULT✿", "Result:"],
        "completion_markers": [FINAL_ANSWER_MARKER, "Summary:"],
        "question": "User: {content}\n",
        "cue": "Assistant:",
    },
}


def style_defaults(style: PromptStyle) -> dict:
    """Stop markers, completion markers and template of a prompt style"""
    return _STYLE_DEFAULTS[PromptStyle(style)]


def format_tool(descriptor: ToolDescriptor) -> str:
    """One bullet of the tool list"""
    schema = json.dumps(descriptor.input_schema, ensure_ascii=False)
    return f"- {descriptor.name}: {descriptor.description}\n  Input schema: {schema}"


def build_system_prompt(template: str, tools: list[ToolDescriptor], context: str) -> str:
    """
    Fill a system prompt template.

    Substitution is plain string replacement in the order TOOL_NAMES, TOOLS, CONTEXT,
    so placeholder text inside a tool description is replaced by the later steps.

    Args:
        template (str): template text with placeholders
        tools (list[ToolDescriptor]): catalog to advertise
        context (str): free contextual information

    Returns:
        str: the system prompt
    """
    bullets = "\n".join(format_tool(tool) for tool in tools) if tools else "(no tools available)"
    names = ", ".join(tool.name for tool in tools)
    prompt = template.replace(TOOL_NAMES_PLACEHOLDER, names)
    prompt = prompt.replace(TOOLS_PLACEHOLDER, bullets)
    return prompt.replace(CONTEXT_PLACEHOLDER, context or "(none)")


def observation(content: str) -> str:
    """Content of a tool message"""
    return OBSERVATION_PREFIX + content


def render_transcript(messages: list[Message], style: PromptStyle = PromptStyle.REACT) -> str:
    """Render the history into the raw prompt handed to the engine"""
    defaults = style_defaults(style)
    parts = []
    for message in messages:
        if message.role == Role.SYSTEM:
            parts.append(message.content.rstrip() + "\n\n")
        elif message.role == Role.USER:
            parts.append(defaults["question"].format(content=message.content))
        elif message.role == Role.ASSISTANT:
            parts.append(defaults["cue"] + message.content.rstrip("\n") + "\n")
        else:
            parts.append(message.content + "\n")
    if not messages or messages[-1].role != Role.ASSISTANT:
        parts.append(defaults["cue"])
    return "".join(parts)


def extract_final_answer(text: str) -> str:
    """Text following the last "Final Answer:" marker, or the raw text when there is none"""
    _, sep, answer = text.rpartition(FINAL_ANSWER_MARKER)
    if not sep:
        return text
    return answer.strip()

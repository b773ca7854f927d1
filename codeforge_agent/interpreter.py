"""Response interpreter: split assistant text into an answer or a tool call."""

import json
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Union

TOOL_CALL_OPEN = "<tool_call>"
TOOL_CALL_CLOSE = "</tool_call>"

_TOOL_CALL_RE = re.compile(
    re.escape(TOOL_CALL_OPEN) + r"(.*?)" + re.escape(TOOL_CALL_CLOSE),
    flags=re.DOTALL,
)


@dataclass(frozen=True)
class PlainAnswer:
    text: str


@dataclass(frozen=True)
class ToolInvocation:
    name: str
    input: Dict[str, Any] = field(default_factory=dict)
    preceding_text: str = ""
    raw_text: str = ""


Interpretation = Union[PlainAnswer, ToolInvocation]


def interpret_response(text: str) -> Interpretation:
    """Return the first well-formed tool call in ``text``, else a plain answer.

    Only the first ``<tool_call>`` block is considered. A block whose body
    is not a JSON object with a string ``name`` makes the whole text a
    plain answer.
    """
    text = text or ""
    m = _TOOL_CALL_RE.search(text)
    if not m:
        return PlainAnswer(text)
    try:
        payload = json.loads(m.group(1).strip())
    except json.JSONDecodeError:
        return PlainAnswer(text)
    if not isinstance(payload, dict):
        return PlainAnswer(text)
    name = payload.get("name")
    if not isinstance(name, str) or not name.strip():
        return PlainAnswer(text)
    tool_input = payload.get("input")
    if tool_input is None:
        tool_input = {}
    return ToolInvocation(
        name=name.strip(),
        input=tool_input,
        preceding_text=text[:m.start()].strip(),
        raw_text=text,
    )


def format_tool_call(name: str, tool_input: Dict[str, Any]) -> str:
    """Render a directive in the wire format the model is asked to emit."""
    return f"{TOOL_CALL_OPEN}{json.dumps({'name': name, 'input': tool_input})}{TOOL_CALL_CLOSE}"

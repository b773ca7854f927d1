"""Agent orchestrator: model call → tool call → tool result → model call, bounded."""

import enum
import threading
from contextlib import nullcontext
from dataclasses import dataclass
from typing import Any, Dict, Optional

from rich.console import Console
from rich.markdown import Markdown
from rich.markup import escape
from rich.panel import Panel
from rich.text import Text

from . import theme
from .config import find_model
from .conversation import ASSISTANT, USER, Conversation, Message
from .credentials import CredentialStore
from .errors import (
    AgentBusyError, CompletionError, EmptyPromptError,
    MissingCredentialError, MissingModelError,
)
from .interpreter import PlainAnswer, ToolInvocation, interpret_response
from .llm import LLMAdapter, build_system_prompt
from .logger import get_logger
from .tools import ToolRegistry, ToolResult

_log = get_logger(__name__)
console = Console()
_default_console = console

__all__ = ["Agent", "AgentState", "AgentRunState"]

TOOL_RESULT_PREFIX = "Tool result:\n"
RECURSION_LIMIT_MESSAGE = "⚠️ Tool call recursion limit reached. Please provide a new request."
DEFAULT_KEY_HINT = " (Using default API key - set your own key for unlimited usage)"
ERROR_PREFIX = "Error: "
TOOL_ID_SUFFIX = "-tool"


class AgentState(str, enum.Enum):
    IDLE = "idle"
    AWAITING_MODEL = "awaiting_model"
    TOOL_PENDING = "tool_pending"
    FAILED = "failed"


@dataclass
class AgentRunState:
    model: Optional[str]
    consecutive_tool_calls: int = 0
    max_tool_calls: int = 10


class Agent:
    def __init__(self, llm: LLMAdapter, tools: ToolRegistry, credentials: CredentialStore,
                 model: Optional[str] = None, max_tool_calls: int = 10,
                 temperature: float = 0.7, duplicate_window: float = 1.0,
                 console: Optional[Console] = None, quiet: bool = False,
                 render_tool_results: bool = True):
        self.llm = llm
        self.credentials = credentials
        self.temperature = temperature
        self.duplicate_window = duplicate_window
        self.run_state = AgentRunState(model=model, max_tool_calls=max(1, int(max_tool_calls)))
        self.conversation = Conversation(build_system_prompt())
        self.console = console if console is not None else _default_console
        self.quiet = quiet
        self.render_tool_results = render_tool_results
        self.total_tool_calls = 0
        self._state = AgentState.IDLE
        self._busy = threading.Lock()
        self.tools = tools
        self.register_tools(tools)

    # ── State ──

    @property
    def state(self) -> AgentState:
        return self._state

    @property
    def model(self) -> Optional[str]:
        return self.run_state.model

    @property
    def busy(self) -> bool:
        return self._busy.locked()

    def register_tools(self, tools: ToolRegistry):
        """Swap the tool set and rewrite the system message to describe it."""
        self.tools = tools
        self.conversation.set_system_content(build_system_prompt(tools.describe()))

    def set_model(self, model_id: str) -> bool:
        if find_model(model_id) is None:
            return False
        self.run_state.model = model_id
        self.credentials.set_current_model(model_id)
        return True

    def clear(self):
        self.conversation.clear()
        self.run_state.consecutive_tool_calls = 0
        if self._state is AgentState.FAILED:
            self._state = AgentState.IDLE

    def get_stats(self) -> Dict[str, Any]:
        messages = self.conversation.snapshot()
        user_msgs = sum(1 for m in messages if m.role == USER and not m.id.endswith(TOOL_ID_SUFFIX))
        return {
            "messages": len(messages),
            "user_messages": user_msgs,
            "assistant_messages": sum(1 for m in messages if m.role == ASSISTANT),
            "tool_calls": self.total_tool_calls,
            "model": self.run_state.model or "(none)",
            "max_tool_calls": self.run_state.max_tool_calls,
            "temperature": self.temperature,
            "state": self._state.value,
        }

    # ── Turn ──

    def send_message(self, text: str) -> Message:
        """Run one user turn and return the final message it appended.

        Validation problems raise before anything is sent or recorded.
        Remote failures and the tool-call ceiling end the turn with an
        assistant message instead of an exception.
        """
        if not text or not text.strip():
            raise EmptyPromptError()
        if not self.run_state.model:
            raise MissingModelError()
        if not self.credentials.has_api_key():
            raise MissingCredentialError()
        if not self._busy.acquire(blocking=False):
            _log.warning("rejected concurrent submission while a turn is running")
            raise AgentBusyError()
        try:
            if self.conversation.is_duplicate_submission(text, window=self.duplicate_window):
                _log.warning("ignored duplicate submission: %.60s", text)
                last = self.conversation.last(ASSISTANT) or self.conversation.last()
                return last
            return self._run_turn(text)
        finally:
            self._busy.release()

    def _run_turn(self, text: str) -> Message:
        rs = self.run_state
        rs.consecutive_tool_calls = 0
        _log.info("turn start: model=%s chars=%d", rs.model, len(text))
        self.conversation.add(USER, text)

        while True:
            if rs.consecutive_tool_calls >= rs.max_tool_calls:
                _log.warning("tool call ceiling reached (%d)", rs.max_tool_calls)
                rs.consecutive_tool_calls = 0
                self._state = AgentState.IDLE
                msg = self.conversation.add(ASSISTANT, RECURSION_LIMIT_MESSAGE)
                self._render_warning(RECURSION_LIMIT_MESSAGE)
                return msg

            self._state = AgentState.AWAITING_MODEL
            try:
                with self._spinner("thinking…"):
                    reply = self.llm.complete(
                        self.conversation.to_wire(), rs.model,
                        self.temperature, self.credentials.api_key,
                    )
            except CompletionError as e:
                return self._fail(e)
            except Exception as e:
                _log.exception("unexpected completion failure")
                return self._fail(CompletionError(f"{type(e).__name__}: {e}"))

            interpretation = interpret_response(reply)
            if isinstance(interpretation, PlainAnswer) or interpretation.name not in self.tools:
                if isinstance(interpretation, ToolInvocation):
                    _log.info("unknown tool %r; treating reply as final answer", interpretation.name)
                rs.consecutive_tool_calls = 0
                self._state = AgentState.IDLE
                msg = self.conversation.add(ASSISTANT, reply)
                self._render_assistant_message(reply)
                return msg

            self._run_tool(interpretation)

    def _run_tool(self, call: ToolInvocation):
        assistant_msg = self.conversation.add(ASSISTANT, call.raw_text)
        if call.preceding_text:
            self._render_assistant_message(call.preceding_text)

        self._state = AgentState.TOOL_PENDING
        args = call.input if isinstance(call.input, dict) else {}
        self._render_tool_call(call.name, args)
        result = self.tools.execute(call.name, call.input)
        self.total_tool_calls += 1
        self._render_result(result)

        content = self._inject_error_hint(call.name, args, result)
        self.conversation.add(USER, f"{TOOL_RESULT_PREFIX}{content}",
                              message_id=f"{assistant_msg.id}{TOOL_ID_SUFFIX}")
        self.run_state.consecutive_tool_calls += 1

    def _fail(self, error: CompletionError) -> Message:
        message = error.message
        lowered = message.lower()
        if self.credentials.is_default_key and (
                error.rate_limited or "rate limit" in lowered or "quota" in lowered):
            message += DEFAULT_KEY_HINT
        _log.error("completion failed: %s", error.message)
        self.run_state.consecutive_tool_calls = 0
        self._state = AgentState.FAILED
        self._render_error(message)
        return self.conversation.add(ASSISTANT, f"{ERROR_PREFIX}{message}")

    def _inject_error_hint(self, tool_name: str, arguments: dict, result: ToolResult) -> str:
        """Append recovery hints to failed tool results."""
        rendered = result.render()
        if result.ok:
            return rendered

        if tool_name == "read_file" and "not found" in rendered.lower():
            return (rendered + "\n\nHINT: Use list_files to see which files exist, "
                    "then retry read_file with one of the listed paths.")

        if tool_name == "list_files" and "not a directory" in rendered.lower():
            path = arguments.get("path", "")
            return (rendered + f"\n\nHINT: '{path}' is a file. Use read_file to see its content.")

        return rendered

    # ── Rendering ──

    def _spinner(self, label: str):
        if self.quiet:
            return nullcontext()
        return self.console.status(f"  [{theme.DIM}]{label}[/{theme.DIM}]",
                                   spinner="dots", spinner_style=theme.ACCENT)

    def _render_assistant_message(self, content: str):
        if self.quiet:
            return
        self.console.print()
        if content.strip():
            self.console.print(Markdown(content))
        else:
            self.console.print(content)

    def _render_warning(self, message: str):
        if self.quiet:
            return
        self.console.print(f"\n  [{theme.WARN}]{message}[/{theme.WARN}]")

    def _render_error(self, message: str):
        if self.quiet:
            return
        panel = Panel(
            Text(message, style=theme.ERROR),
            title=f"[bold {theme.ERROR}]Error[/bold {theme.ERROR}]",
            title_align="left",
            border_style=theme.ERROR,
            padding=(0, 2),
        )
        self.console.print()
        self.console.print(panel)

    def _render_tool_call(self, name: str, args: dict):
        if self.quiet:
            return
        icons = {"read_file": "▸", "list_files": "≡", "edit_file": "✎", "create_file": "◆"}
        icon = icons.get(name, "·")

        match name:
            case "create_file":
                n = str(args.get("content", "")).count("\n") + 1
                detail = f"{args.get('path', '')} ({n} lines)"
            case "list_files":
                detail = args.get("path", ".")
            case _:
                detail = args.get("path", "")

        self.console.print(f"\n  [{theme.ACCENT}]{icon}[/{theme.ACCENT}] "
                           f"[bold {theme.TEXT}]{name}[/bold {theme.TEXT}] "
                           f"[{theme.DIM}]{escape(str(detail))}[/{theme.DIM}]")

    def _render_result(self, result: ToolResult):
        if self.quiet or not self.render_tool_results:
            return
        lines = result.render().splitlines() or [""]
        if not result.ok:
            preview = lines if len(lines) <= 5 else lines[:5] + [f"... ({len(lines) - 5} more)"]
            for line in preview:
                self.console.print(f"     {line}", style=theme.ERROR, markup=False, highlight=False)
        elif lines[0].startswith("✅"):
            self.console.print(f"     {lines[0]}", style=theme.SUCCESS, markup=False, highlight=False)
        else:
            preview = lines if len(lines) <= 20 else lines[:15] + [f"... ({len(lines) - 15} more lines)"]
            for line in preview:
                self.console.print(f"     {line}", style=theme.DIM, markup=False, highlight=False)

"""Remote completion endpoint via litellm, plus system prompt construction."""

from typing import Any, Dict, List, Optional

import litellm
litellm.suppress_debug_info = True

from .errors import CompletionError
from .interpreter import format_tool_call
from .logger import get_logger

_log = get_logger(__name__)

DEFAULT_PROVIDER = "groq"

SYSTEM_PROMPT = """\
You are the CodeForge coding assistant. You have access to filesystem tools, and your only \
job is to help users with code-related tasks inside the editor.

## Rules:
1. Call the tools that help answer the query. You may read, list, edit and create files \
without asking the user for confirmation.
2. Make reasonable assumptions to fulfil the request, but ALWAYS verify the file structure \
before suggesting project-breaking changes.
3. You have these tools to choose from: [list_files, read_file, edit_file, create_file]

## Tools workflow:
- Use list_files to check the file structure before operating on files.
- Use read_file to check file contents before editing.
- Use edit_file only for existing files; when it fails, re-read the file and retry with the exact text.
- Use create_file to create new files.

## Project structure:
- Root: project/
- Source code: project/src/
- Config: project/package.json

## Response behavior:
- For greetings, introduce yourself as the CodeForge code assistant and ask what file or \
feature the user wants to work on.
- For non-code or roleplay prompts, reply that you are the CodeForge code assistant, here to \
help with code inside the editor.
- Call ONE tool at a time, and only after explaining why.
"""

_TOOL_CALL_EXAMPLES = (
    ("list_files", {"path": "./"}),
    ("read_file", {"path": "./src/App.jsx"}),
    ("edit_file", {"path": "./src/App.jsx", "old_str": "Hello", "new_str": "Hello World"}),
    ("create_file", {"path": "./src/NewFile.js", "content": "console.log('Hello World');"}),
)


def build_system_prompt(tool_descriptions: Optional[str] = None) -> str:
    """System prompt, optionally extended with tool descriptions and call examples."""
    if not tool_descriptions:
        return SYSTEM_PROMPT.strip()
    examples = "\n\n".join(format_tool_call(name, args) for name, args in _TOOL_CALL_EXAMPLES)
    return (
        f"{SYSTEM_PROMPT}\n"
        "You are working on a React project; write clean, maintainable code following "
        "standard practices.\n\n"
        "## Available tools:\n"
        f"{tool_descriptions}\n\n"
        "To call a tool, reply with exactly one block of the form:\n"
        '<tool_call>{"name": "<tool name>", "input": {...}}</tool_call>\n\n'
        f"Examples:\n{examples}"
    ).strip()


def _is_rate_limit_text(text: str) -> bool:
    lowered = (text or "").lower()
    return "rate limit" in lowered or "quota" in lowered


class LLMAdapter:
    """Single-shot chat completion. Passes api_key/api_base directly to litellm,
    avoiding env-var pollution when the key changes at runtime."""

    def __init__(self, provider: str = DEFAULT_PROVIDER, api_base: Optional[str] = None,
                 timeout: Optional[float] = None):
        self.provider = provider
        self.api_base = api_base
        self.timeout = timeout

    def model_string(self, model: str) -> str:
        if model.startswith(f"{self.provider}/"):
            return model
        return f"{self.provider}/{model}"

    def complete(self, messages: List[Dict[str, str]], model: str,
                 temperature: float, api_key: Optional[str]) -> str:
        """Return the assistant text for ``messages``; raises CompletionError."""
        kwargs: Dict[str, Any] = {
            "model": self.model_string(model), "messages": messages,
            "temperature": temperature,
        }
        if self.api_base:
            kwargs["api_base"] = self.api_base
        if api_key:
            kwargs["api_key"] = api_key
        if self.timeout:
            kwargs["timeout"] = self.timeout

        try:
            response = litellm.completion(**kwargs)
        except litellm.exceptions.RateLimitError as e:
            raise CompletionError(f"Rate limit exceeded: {e}", rate_limited=True)
        except litellm.exceptions.AuthenticationError as e:
            raise CompletionError(f"Auth failed. Check API key.\n{e}")
        except litellm.exceptions.APIConnectionError as e:
            raise CompletionError(
                f"Cannot connect: model={kwargs['model']}, base={self.api_base or 'default'}\n{e}")
        except Exception as e:
            text = f"{type(e).__name__}: {e}"
            raise CompletionError(text, rate_limited=_is_rate_limit_text(text))

        choices = getattr(response, "choices", None) or []
        if not choices:
            _log.error("completion returned no choices (model=%s)", kwargs["model"])
            raise CompletionError("No response from API")
        content = getattr(choices[0].message, "content", None)
        if content is None:
            raise CompletionError("No response from API")
        return content

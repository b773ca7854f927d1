"""Tool registry: name -> definition dispatch over the virtual workspace."""
import json
from typing import Any, Callable, Dict, List, Optional

from ..errors import ToolError
from ..logger import get_logger
from ..workspace import Workspace
from . import file_tools
from .results import ToolResult

_log = get_logger(__name__)

Handler = Callable[..., ToolResult]


class ToolDefinition:
    """Single tool registration: handler + schema used for the prompt."""
    __slots__ = ("name", "description", "input_schema", "handler")

    def __init__(self, name: str, description: str, input_schema: dict, handler: Handler):
        self.name = name
        self.description = description
        self.input_schema = input_schema
        self.handler = handler

    def run(self, arguments: Any) -> ToolResult:
        """Execute with the model-supplied arguments; never raises."""
        if arguments is None:
            arguments = {}
        if not isinstance(arguments, dict):
            return ToolResult.failure(f"Invalid input for {self.name}: expected an object, "
                                      f"got {type(arguments).__name__}")
        try:
            return self.handler(**arguments)
        except ToolError as e:
            return ToolResult.failure(e.message)
        except KeyError as e:
            return ToolResult.failure(f"Missing argument: {e}")
        except TypeError as e:
            return ToolResult.failure(f"Invalid arguments for {self.name}: {e}")
        except Exception as e:
            _log.exception("tool %s crashed", self.name)
            return ToolResult.failure(f"{self.name} error: {type(e).__name__}: {e}")

    def invoke(self, arguments: Any) -> str:
        return self.run(arguments).render()

    def describe(self) -> str:
        return (f"- {self.name}: {self.description}\n"
                f"  Input schema: {json.dumps(self.input_schema)}")


def _schema(properties: dict, required: list) -> dict:
    """Build a JSON-schema object for the prompt."""
    return {"type": "object", "properties": properties, "required": required}


# Shorthand helper for property definitions
_S = lambda desc, **kw: {"type": "string", "description": desc, **kw}


class ToolRegistry:
    def __init__(self, workspace: Workspace):
        self.workspace = workspace
        self._tools: Dict[str, ToolDefinition] = {}
        self._register_tools()

    def _register_tools(self):
        """Register all tools — single source of truth for schema + handler."""
        ws = self.workspace
        T = ToolDefinition
        S = _schema

        self.register(T(
            "read_file",
            "Read the contents of a given file path. Use this when you want to see "
            "what's inside a file. Do not use this with directory names.",
            S({"path": _S("The relative path of a file in the working directory.")},
              ["path"]),
            lambda **a: file_tools.read_file(ws, a["path"]),
        ))
        self.register(T(
            "list_files",
            "List files and directories at a given path. If no path is provided, "
            "lists files in the project root. Directories end with '/'.",
            S({"path": _S("Optional relative path to list files from. "
                          "Defaults to the project root.", default=".")},
              []),
            lambda **a: file_tools.list_files(ws, a.get("path", ".")),
        ))
        self.register(T(
            "edit_file",
            "Make edits to a text file. Replaces ALL occurrences of 'old_str' with "
            "'new_str' in the given file. 'old_str' and 'new_str' MUST be different. "
            "If the file doesn't exist and 'old_str' is empty, it will be created.",
            S({"path": _S("The path to the file"),
               "old_str": _S("Text to search for - must match exactly"),
               "new_str": _S("Text to replace old_str with")},
              ["path", "old_str", "new_str"]),
            lambda **a: file_tools.edit_file(ws, a["path"], a["old_str"], a["new_str"]),
        ))
        self.register(T(
            "create_file",
            "Create a new file with the given content, or overwrite an existing file. "
            "The parent directory must already exist.",
            S({"path": _S("The path of the file to create"),
               "content": _S("Full file content")},
              ["path", "content"]),
            lambda **a: file_tools.create_file(ws, a["path"], a["content"]),
        ))

    # ── Public API ──

    def register(self, definition: ToolDefinition):
        self._tools[definition.name] = definition

    def get(self, name: str) -> Optional[ToolDefinition]:
        return self._tools.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    @property
    def names(self) -> List[str]:
        return list(self._tools)

    @property
    def definitions(self) -> List[ToolDefinition]:
        return list(self._tools.values())

    def describe(self) -> str:
        """Tool list as injected into the system prompt."""
        return "\n\n".join(d.describe() for d in self._tools.values())

    def execute(self, tool_name: str, arguments: Any) -> ToolResult:
        """Dispatch a tool call by name; unknown names fail, nothing raises."""
        definition = self._tools.get(tool_name)
        if definition is None:
            return ToolResult.failure(f"Unknown tool: {tool_name}")
        _log.info("tool %s args=%s", tool_name, arguments)
        return definition.run(arguments)

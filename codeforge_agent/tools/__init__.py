from .registry import ToolDefinition, ToolRegistry
from .results import FAILURE_MARKER, SUCCESS_MARKER, ToolResult
__all__ = ["ToolDefinition", "ToolRegistry", "ToolResult", "FAILURE_MARKER", "SUCCESS_MARKER"]

"""Structured tool outcome, rendered to text only when sent to the model."""

from dataclasses import dataclass

FAILURE_MARKER = "❌"
SUCCESS_MARKER = "✅"


@dataclass(frozen=True)
class ToolResult:
    ok: bool
    message: str

    @classmethod
    def success(cls, message: str) -> "ToolResult":
        return cls(True, message)

    @classmethod
    def failure(cls, message: str) -> "ToolResult":
        return cls(False, message)

    def render(self) -> str:
        if self.ok:
            return self.message
        return f"{FAILURE_MARKER} {self.message}"

    def __str__(self) -> str:
        return self.render()

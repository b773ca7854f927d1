"""Conversation transcript: ordered, role-tagged messages.

The first message is always the system prompt. Messages are immutable
once appended; only the system message's content may be rewritten (when
the tool set is registered).
"""

import time
import uuid
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Iterable, List, Optional, Tuple

SYSTEM = "system"
USER = "user"
ASSISTANT = "assistant"
ROLES = (SYSTEM, USER, ASSISTANT)


def _gen_id() -> str:
    return uuid.uuid4().hex[:12]


@dataclass(frozen=True)
class Message:
    role: str
    content: str
    id: str = field(default_factory=_gen_id)
    timestamp: float = field(default_factory=time.time)

    def to_wire(self) -> Dict[str, str]:
        return {"role": self.role, "content": self.content}

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "role": self.role, "content": self.content,
                "timestamp": self.timestamp}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Message":
        role = data.get("role")
        if role not in ROLES:
            raise ValueError(f"Unknown message role: {role!r}")
        return cls(
            role=role,
            content=str(data.get("content", "")),
            id=str(data.get("id") or _gen_id()),
            timestamp=float(data.get("timestamp") or time.time()),
        )


class Conversation:
    def __init__(self, system_prompt: str = ""):
        self._messages: List[Message] = [Message(SYSTEM, system_prompt, id="system")]

    @property
    def system_message(self) -> Message:
        return self._messages[0]

    @property
    def messages(self) -> Tuple[Message, ...]:
        return self.snapshot()

    def snapshot(self) -> Tuple[Message, ...]:
        return tuple(self._messages)

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self):
        return iter(self._messages)

    def last(self, role: Optional[str] = None) -> Optional[Message]:
        for msg in reversed(self._messages):
            if role is None or msg.role == role:
                return msg
        return None

    # ── Mutation ──

    def append(self, message: Message) -> Message:
        if message.role == SYSTEM:
            raise ValueError("Only the first message may be a system message")
        self._messages.append(message)
        return message

    def add(self, role: str, content: str, message_id: Optional[str] = None) -> Message:
        msg = Message(role, content) if message_id is None else Message(role, content, id=message_id)
        return self.append(msg)

    def replace_all(self, messages: Iterable[Message]):
        messages = list(messages)
        if not messages or messages[0].role != SYSTEM:
            raise ValueError("Transcript must start with a system message")
        if any(m.role == SYSTEM for m in messages[1:]):
            raise ValueError("Only the first message may be a system message")
        self._messages = messages

    def set_system_content(self, content: str):
        self._messages[0] = replace(self._messages[0], content=content)

    def clear(self):
        """Drop everything but the system message."""
        self._messages = self._messages[:1]

    # ── Queries ──

    def to_wire(self) -> List[Dict[str, str]]:
        return [m.to_wire() for m in self._messages]

    def is_duplicate_submission(self, text: str, at: Optional[float] = None,
                                window: float = 1.0) -> bool:
        """True if ``text`` repeats the latest user prompt within ``window`` seconds.

        Tool-result feedback messages are not prompts and are skipped.
        """
        if window <= 0:
            return False
        at = time.time() if at is None else at
        for msg in reversed(self._messages):
            if msg.role != USER or msg.id.endswith("-tool"):
                continue
            return msg.content == text and (at - msg.timestamp) < window
        return False

    def to_dicts(self) -> List[Dict[str, Any]]:
        return [m.to_dict() for m in self._messages]

    @classmethod
    def from_dicts(cls, items: List[Dict[str, Any]]) -> "Conversation":
        conv = cls()
        conv.replace_all([Message.from_dict(item) for item in items])
        return conv

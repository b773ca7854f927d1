"""Session persistence: save and load the transcript together with the file tree."""

import json
import time
from typing import Any, Dict, List, Optional, Tuple

from . import vfs
from .config import CONFIG_DIR
from .conversation import Conversation
from .logger import get_logger
from .vfs import Tree
from .workspace import Workspace

_log = get_logger(__name__)

SESSIONS_DIR = CONFIG_DIR / "sessions"
AUTOSAVE_NAME = "autosave"


def _ensure_sessions_dir():
    SESSIONS_DIR.mkdir(parents=True, exist_ok=True)


def _safe_name(name: str) -> str:
    return "".join(c if c.isalnum() or c in "-_" else "_" for c in name)


def save_session(
    conversation: Conversation,
    workspace: Workspace,
    name: Optional[str] = None,
    metadata: Optional[Dict] = None,
) -> str:
    """Save the transcript and the current file tree to a session file.

    Args:
        conversation: Transcript to persist (system message included)
        workspace: Workspace whose tree is persisted
        name: Optional session name (auto-generated if not provided)
        metadata: Optional metadata (model, active file, ...)

    Returns:
        Session filename
    """
    _ensure_sessions_dir()

    if not name:
        name = f"session_{int(time.time())}"
    filename = f"{_safe_name(name)}.json"
    filepath = SESSIONS_DIR / filename

    data = {
        "name": name,
        "created_at": time.strftime("%Y-%m-%d %H:%M:%S"),
        "metadata": dict(metadata or {}),
        "conversation": conversation.to_dicts(),
        "file_system": vfs.tree_to_dicts(workspace.tree),
    }

    with open(filepath, "w", encoding="utf-8") as f:
        json.dump(data, f, ensure_ascii=False, indent=2)
    _log.info("saved session %s (%d messages)", filename, len(conversation))
    return filename


def _find_session_file(name: str):
    filepath = SESSIONS_DIR / name
    if not filepath.exists():
        filepath = SESSIONS_DIR / f"{name}.json"
    if not filepath.exists():
        filepath = SESSIONS_DIR / f"{_safe_name(name)}.json"
    if not filepath.exists():
        # Search by name prefix
        for f in sorted(SESSIONS_DIR.glob("*.json")):
            if f.stem.startswith(name):
                return f
        return None
    return filepath


def load_session(name: str) -> Optional[Dict[str, Any]]:
    """Load a session by name, filename or name prefix.

    Returns:
        Session data dict or None if not found or unreadable
    """
    _ensure_sessions_dir()
    filepath = _find_session_file(name)
    if filepath is None:
        return None
    try:
        with open(filepath, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (json.JSONDecodeError, IOError) as e:
        _log.warning("unreadable session %s: %s", filepath, e)
        return None
    return data if isinstance(data, dict) else None


def restore_session(data: Dict[str, Any]) -> Tuple[Conversation, Tree]:
    """Rebuild the transcript and tree from loaded session data.

    Raises ValueError if the data is not a valid session.
    """
    try:
        conversation = Conversation.from_dicts(data["conversation"])
        tree = vfs.tree_from_dicts(data["file_system"])
    except (KeyError, TypeError, AttributeError) as e:
        raise ValueError(f"Malformed session data: {e}") from e
    return conversation, tree


def list_sessions(limit: int = 10) -> List[Dict[str, Any]]:
    """List recent sessions, newest first.

    Returns:
        List of session summaries (filename, name, created_at, messages, files)
    """
    _ensure_sessions_dir()

    sessions = []
    for filepath in sorted(SESSIONS_DIR.glob("*.json"),
                           key=lambda p: p.stat().st_mtime,
                           reverse=True)[:limit]:
        try:
            with open(filepath, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, IOError):
            continue
        if not isinstance(data, dict):
            continue
        file_count = sum(1 for n in vfs.iter_nodes(_safe_tree(data)) if n.is_file)
        sessions.append({
            "filename": filepath.name,
            "name": data.get("name", filepath.stem),
            "created_at": data.get("created_at", "unknown"),
            "messages": len(data.get("conversation", [])),
            "files": file_count,
        })
    return sessions


def _safe_tree(data: Dict[str, Any]) -> Tree:
    try:
        return vfs.tree_from_dicts(data.get("file_system", []))
    except (KeyError, TypeError, ValueError, AttributeError):
        return ()


def delete_session(name: str) -> bool:
    """Delete a session by name or filename."""
    _ensure_sessions_dir()

    filepath = SESSIONS_DIR / name
    if not filepath.exists():
        filepath = SESSIONS_DIR / f"{_safe_name(name)}.json"

    if filepath.exists():
        filepath.unlink()
        return True
    return False

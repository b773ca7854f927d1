"""Locally stored API key and model selection."""

import json
import os
from pathlib import Path
from typing import Optional, Union

from .config import CONFIG_DIR, find_model
from .logger import get_logger

_log = get_logger(__name__)

CREDENTIALS_FILE = CONFIG_DIR / "credentials.json"
API_KEY_FIELD = "groq_api_key"
MODEL_FIELD = "current_model_id"
DEFAULT_KEY_ENV = "FORGE_DEFAULT_GROQ_API_KEY"


class CredentialStore:
    """Bearer token for the completion endpoint.

    A key saved by the user always wins. Without one, the shared key from
    ``FORGE_DEFAULT_GROQ_API_KEY`` is used and ``is_default_key`` is set,
    which only changes how rate-limit errors are reported.
    """

    def __init__(self, path: Union[str, Path, None] = None):
        self.path = Path(path) if path else CREDENTIALS_FILE
        self.api_key: Optional[str] = None
        self.current_model_id: Optional[str] = None
        self.is_default_key = False

    def load(self) -> "CredentialStore":
        data = self._read()
        stored_key = data.get(API_KEY_FIELD)
        self.api_key = stored_key.strip() if isinstance(stored_key, str) and stored_key.strip() else None

        model_id = data.get(MODEL_FIELD)
        self.current_model_id = model_id if find_model(model_id) else None

        self.is_default_key = False
        if not self.api_key:
            shared = os.environ.get(DEFAULT_KEY_ENV, "").strip()
            if shared:
                self.api_key = shared
                self.is_default_key = True
        return self

    def has_api_key(self) -> bool:
        return bool(self.api_key)

    def set_api_key(self, key: str):
        key = (key or "").strip()
        if not key:
            raise ValueError("API key must not be empty")
        self.api_key = key
        self.is_default_key = False
        self._write({API_KEY_FIELD: key})

    def set_current_model(self, model_id: str):
        self.current_model_id = model_id
        self._write({MODEL_FIELD: model_id})

    def masked_key(self) -> str:
        if not self.api_key:
            return "(not set)"
        tail = self.api_key[-4:] if len(self.api_key) > 8 else ""
        label = "shared default" if self.is_default_key else "stored"
        return f"****{tail} ({label})"

    # ── Storage ──

    def _read(self) -> dict:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            _log.warning("ignoring unreadable credentials file %s: %s", self.path, e)
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, updates: dict):
        data = self._read()
        data.update(updates)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(self.path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(json.dumps(data, indent=2))
        # O_CREAT mode only applies to new files
        try:
            os.chmod(self.path, 0o600)
        except OSError as e:
            _log.info("could not restrict permissions on %s: %s", self.path, e)

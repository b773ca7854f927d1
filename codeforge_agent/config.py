"""
Configuration — validated field registry plus the Groq model catalog.

Loading priority:
  1. Project dir .forge.conf.yml
  2. Global ~/.codeforge-agent/config.yml

``.env`` files in the config dir and the project dir are loaded first and
never override variables already set in the environment.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import yaml
from dotenv import load_dotenv

from .logger import get_logger

_log = get_logger(__name__)

CONFIG_DIR = Path.home() / ".codeforge-agent"
CONFIG_FILE = CONFIG_DIR / "config.yml"
HISTORY_FILE = CONFIG_DIR / "history.txt"
PROJECT_CONFIG_NAME = ".forge.conf.yml"


# ── Model catalog ──


@dataclass(frozen=True)
class ModelOption:
    id: str
    name: str
    provider: str
    description: str = ""

    @property
    def litellm_model(self) -> str:
        return f"{self.provider}/{self.id}"


MODELS: List[ModelOption] = [
    ModelOption("llama3-70b-8192", "Llama 3 70B", "groq",
                "Meta Llama 3 70B, 8k context"),
    ModelOption("meta-llama/llama-4-maverick-17b-128e-instruct", "Llama 4 Maverick", "groq",
                "Llama 4 Maverick 17B, 128 experts"),
    ModelOption("meta-llama/llama-4-scout-17b-16e-instruct", "Llama 4 Scout", "groq",
                "Llama 4 Scout 17B, 16 experts"),
    ModelOption("mistral-saba-24b", "Mistral Saba 24B", "groq",
                "Mistral Saba 24B"),
    ModelOption("deepseek-r1-distill-llama-70b", "DeepSeek R1 Distill 70B", "groq",
                "DeepSeek R1 distilled into Llama 70B"),
]
DEFAULT_MODEL = MODELS[0].id


def find_model(model_id: Optional[str]) -> Optional[ModelOption]:
    return next((m for m in MODELS if m.id == model_id), None)


# ── Configuration metadata and validation ──


@dataclass
class ConfigFieldSpec:
    """Configuration field specification with validation rules."""
    key: str
    field_name: str
    description: str
    value_type: str  # "str", "int", "float", "bool"
    default: Any
    validator: Optional[Callable[[Any], tuple[bool, Any, str]]] = None  # (valid, coerced_value, error_msg)


def _validate_int_range(value: Any, min_val: int, max_val: int) -> tuple[bool, int, str]:
    if isinstance(value, bool):
        return False, 0, "Must be an integer"
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        return False, 0, "Must be an integer"
    if parsed < min_val or parsed > max_val:
        return False, max(min_val, min(max_val, parsed)), f"Must be between {min_val} and {max_val}"
    return True, parsed, ""


def _validate_float_range(value: Any, min_val: float, max_val: float) -> tuple[bool, float, str]:
    if isinstance(value, bool):
        return False, 0.0, "Must be a number"
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        return False, 0.0, "Must be a number"
    if parsed < min_val or parsed > max_val:
        return False, max(min_val, min(max_val, parsed)), f"Must be between {min_val} and {max_val}"
    return True, parsed, ""


def _validate_bool(value: Any) -> tuple[bool, bool, str]:
    if isinstance(value, bool):
        return True, value, ""
    if isinstance(value, str):
        val_lower = value.strip().lower()
        if val_lower in ("1", "true", "yes", "on"):
            return True, True, ""
        if val_lower in ("0", "false", "no", "off"):
            return True, False, ""
    return False, False, "Must be true/false, yes/no, on/off, or 1/0"


def _validate_model(value: Any) -> tuple[bool, str, str]:
    model_id = str(value or "").strip()
    if find_model(model_id) is None:
        return False, DEFAULT_MODEL, f"Unknown model '{model_id}'. Use `forge models` to list models."
    return True, model_id, ""


def _validate_optional_str(value: Any) -> tuple[bool, Optional[str], str]:
    text = str(value).strip() if value is not None else ""
    return True, text or None, ""


CONFIG_FIELDS: Dict[str, ConfigFieldSpec] = {
    "active-model": ConfigFieldSpec(
        key="active-model",
        field_name="active_model",
        description="Model id used for completions",
        value_type="str",
        default=DEFAULT_MODEL,
        validator=_validate_model,
    ),
    "max-tool-calls": ConfigFieldSpec(
        key="max-tool-calls",
        field_name="max_tool_calls",
        description="Consecutive tool calls allowed before the loop is cut off",
        value_type="int",
        default=10,
        validator=lambda v: _validate_int_range(v, 1, 100),
    ),
    "temperature": ConfigFieldSpec(
        key="temperature",
        field_name="temperature",
        description="Sampling temperature sent with every request",
        value_type="float",
        default=0.7,
        validator=lambda v: _validate_float_range(v, 0.0, 2.0),
    ),
    "duplicate-window": ConfigFieldSpec(
        key="duplicate-window",
        field_name="duplicate_window",
        description="Seconds within which an identical prompt is ignored (0 disables)",
        value_type="float",
        default=1.0,
        validator=lambda v: _validate_float_range(v, 0.0, 60.0),
    ),
    "api-base": ConfigFieldSpec(
        key="api-base",
        field_name="api_base",
        description="Override the completion endpoint base URL",
        value_type="str",
        default=None,
        validator=_validate_optional_str,
    ),
    "persist-session": ConfigFieldSpec(
        key="persist-session",
        field_name="persist_session",
        description="Save the transcript and file tree on exit",
        value_type="bool",
        default=True,
        validator=_validate_bool,
    ),
    "verbose": ConfigFieldSpec(
        key="verbose",
        field_name="verbose",
        description="Enable verbose debug output",
        value_type="bool",
        default=False,
        validator=_validate_bool,
    ),
    "render-tool-results": ConfigFieldSpec(
        key="render-tool-results",
        field_name="render_tool_results",
        description="Show tool results in the terminal as they arrive",
        value_type="bool",
        default=True,
        validator=_validate_bool,
    ),
}


def validate_config_value(key: str, value: Any) -> tuple[bool, Any, str]:
    """
    Validate a configuration value.

    Returns:
        (is_valid, coerced_value, error_message)
    """
    if key not in CONFIG_FIELDS:
        return False, value, f"Unknown configuration key: {key}"
    spec = CONFIG_FIELDS[key]
    if spec.validator:
        return spec.validator(value)
    return True, value, ""


@dataclass
class Config:
    active_model: str = DEFAULT_MODEL
    max_tool_calls: int = 10
    temperature: float = 0.7
    duplicate_window: float = 1.0
    api_base: Optional[str] = None
    persist_session: bool = True
    verbose: bool = False
    render_tool_results: bool = True
    project_root: Optional[str] = None
    _config_source: str = ""

    @classmethod
    def load(cls, project_dir: str = ".") -> "Config":
        config = cls()
        CONFIG_DIR.mkdir(parents=True, exist_ok=True)
        project_path = Path(project_dir).resolve()

        for env_path in [CONFIG_DIR / ".env", project_path / ".env"]:
            if env_path.exists():
                load_dotenv(env_path, override=False)

        config_loaded = False
        for candidate in [project_path / PROJECT_CONFIG_NAME, CONFIG_FILE]:
            if candidate.exists():
                config._load_yaml(candidate)
                config._config_source = str(candidate)
                config_loaded = True
                break

        if not config_loaded:
            config._config_source = str(CONFIG_FILE)
            config.save()

        config._apply_env()
        config.project_root = str(project_path)
        return config

    def _load_yaml(self, filepath: Path):
        try:
            with open(filepath) as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            _log.warning("ignoring unreadable config %s: %s", filepath, e)
            return
        if not isinstance(data, dict):
            _log.warning("ignoring config %s: expected a mapping", filepath)
            return

        for key, spec in CONFIG_FIELDS.items():
            if key not in data:
                continue
            ok, coerced, error = validate_config_value(key, data[key])
            if ok:
                setattr(self, spec.field_name, coerced)
            else:
                _log.warning("config %s: %s (%s); using default", key, error, data[key])

    def _apply_env(self):
        env_map = {
            "FORGE_MODEL": "active-model",
            "FORGE_VERBOSE": "verbose",
            "FORGE_MAX_TOOL_CALLS": "max-tool-calls",
            "FORGE_TEMPERATURE": "temperature",
        }
        for env_var, key in env_map.items():
            val = os.environ.get(env_var)
            if not val:
                continue
            ok, coerced, error = validate_config_value(key, val)
            if ok:
                setattr(self, CONFIG_FIELDS[key].field_name, coerced)
            else:
                _log.warning("%s ignored: %s", env_var, error)

    def save(self, filepath: Optional[str] = None):
        target = Path(filepath) if filepath else (
            Path(self._config_source) if self._config_source else CONFIG_FILE
        )
        target.parent.mkdir(parents=True, exist_ok=True)

        data = {key: getattr(self, spec.field_name) for key, spec in CONFIG_FIELDS.items()}
        with open(target, "w") as f:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False, allow_unicode=True)
        self._config_source = str(target)

    @property
    def model_option(self) -> ModelOption:
        return find_model(self.active_model) or MODELS[0]

    def set_active_model(self, model_id: str) -> bool:
        if find_model(model_id) is None:
            return False
        self.active_model = model_id
        self.save()
        return True

    def summary(self) -> dict:
        m = self.model_option
        return {
            "Active model": f"{m.name} ({m.id})",
            "Provider": m.provider,
            "API base": self.api_base or "(provider default)",
            "Max tool calls": self.max_tool_calls,
            "Temperature": self.temperature,
            "Duplicate window": f"{self.duplicate_window:g}s",
            "Persist session": "ON" if self.persist_session else "OFF",
            "Tool results": "shown" if self.render_tool_results else "hidden",
            "Project": self.project_root,
            "Config": self._config_source or "(defaults)",
        }

    def get_config_value(self, key: str) -> Any:
        if key not in CONFIG_FIELDS:
            return None
        spec = CONFIG_FIELDS[key]
        return getattr(self, spec.field_name, spec.default)

    def set_config_value(self, key: str, value: Any) -> tuple[bool, str]:
        """
        Set configuration value with validation.

        Returns:
            (success, error_message)
        """
        is_valid, coerced_value, error_msg = validate_config_value(key, value)
        if not is_valid:
            return False, error_msg
        setattr(self, CONFIG_FIELDS[key].field_name, coerced_value)
        self.save()
        return True, ""

    def reset_config_value(self, key: str) -> tuple[bool, str]:
        if key not in CONFIG_FIELDS:
            return False, f"Unknown configuration key: {key}"
        spec = CONFIG_FIELDS[key]
        setattr(self, spec.field_name, spec.default)
        self.save()
        return True, ""

    def get_config_diff(self) -> Dict[str, Dict[str, Any]]:
        """Split fields into those changed from their default and the rest."""
        result: Dict[str, Dict[str, Any]] = {"modified": {}, "default": {}}
        for key, spec in CONFIG_FIELDS.items():
            current_value = getattr(self, spec.field_name, spec.default)
            bucket = "default" if current_value == spec.default else "modified"
            result[bucket][key] = {
                "current": current_value,
                "default": spec.default,
                "type": spec.value_type,
                "description": spec.description,
            }
        return result

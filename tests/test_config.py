"""Tests for configuration loading, validation and serialization."""

import pytest
import yaml

from codeforge_agent.config import (
    CONFIG_FIELDS,
    DEFAULT_MODEL,
    Config,
    _validate_bool,
    _validate_float_range,
    _validate_int_range,
    find_model,
    validate_config_value,
)


class TestConfigLoad:
    """Config.load() from YAML files."""

    def test_load_from_project_yaml(self, config_home, config_yaml_file):
        config = Config.load(str(config_yaml_file.parent))
        assert config.active_model == "mistral-saba-24b"
        assert config.max_tool_calls == 5
        assert config.temperature == 0.2
        assert config.duplicate_window == 0
        assert config.persist_session is False
        assert config._config_source == str(config_yaml_file)

    def test_defaults_written_when_no_config(self, config_home, tmp_dir):
        config = Config.load(str(tmp_dir))
        assert config.active_model == DEFAULT_MODEL
        assert config.max_tool_calls == 10
        assert config.temperature == 0.7
        saved = yaml.safe_load((config_home / "config.yml").read_text())
        assert saved["max-tool-calls"] == 10

    def test_invalid_values_fall_back(self, config_home, tmp_dir):
        (tmp_dir / ".forge.conf.yml").write_text(
            yaml.dump({"max-tool-calls": 0, "temperature": "hot", "active-model": "gpt-99"}))
        config = Config.load(str(tmp_dir))
        assert config.max_tool_calls == 10
        assert config.temperature == 0.7
        assert config.active_model == DEFAULT_MODEL

    def test_non_mapping_yaml_ignored(self, config_home, tmp_dir):
        (tmp_dir / ".forge.conf.yml").write_text("- just\n- a list\n")
        assert Config.load(str(tmp_dir)).max_tool_calls == 10

    def test_env_overrides(self, config_home, tmp_dir, monkeypatch):
        monkeypatch.setenv("FORGE_MAX_TOOL_CALLS", "4")
        monkeypatch.setenv("FORGE_TEMPERATURE", "1.5")
        monkeypatch.setenv("FORGE_VERBOSE", "yes")
        config = Config.load(str(tmp_dir))
        assert config.max_tool_calls == 4
        assert config.temperature == 1.5
        assert config.verbose is True

    def test_bad_env_ignored(self, config_home, tmp_dir, monkeypatch):
        monkeypatch.setenv("FORGE_MODEL", "not-a-model")
        assert Config.load(str(tmp_dir)).active_model == DEFAULT_MODEL


class TestConfigMutation:
    def test_set_and_reset(self, config_home, tmp_dir):
        config = Config.load(str(tmp_dir))
        ok, err = config.set_config_value("temperature", "0.3")
        assert ok and err == ""
        assert config.temperature == 0.3
        assert Config.load(str(tmp_dir)).temperature == 0.3

        config.reset_config_value("temperature")
        assert config.temperature == 0.7

    def test_set_rejects_bad_value(self, config_home, tmp_dir):
        config = Config.load(str(tmp_dir))
        ok, err = config.set_config_value("max-tool-calls", "1000")
        assert not ok and "between" in err
        assert config.max_tool_calls == 10

    def test_unknown_key(self, config_home, tmp_dir):
        config = Config.load(str(tmp_dir))
        assert config.set_config_value("shell-timeout", 3)[0] is False
        assert config.reset_config_value("shell-timeout")[0] is False
        assert config.get_config_value("shell-timeout") is None

    def test_config_diff(self, config_home, tmp_dir):
        config = Config.load(str(tmp_dir))
        config.set_config_value("max-tool-calls", 3)
        diff = config.get_config_diff()
        assert diff["modified"]["max-tool-calls"]["current"] == 3
        assert "temperature" in diff["default"]

    def test_set_active_model(self, config_home, tmp_dir):
        config = Config.load(str(tmp_dir))
        assert config.set_active_model("mistral-saba-24b")
        assert config.model_option.name == "Mistral Saba 24B"
        assert not config.set_active_model("nope")


class TestValidators:
    @pytest.mark.parametrize("raw,expected", [
        (True, True), ("on", True), ("1", True), ("false", False), ("off", False),
    ])
    def test_bool(self, raw, expected):
        assert _validate_bool(raw) == (True, expected, "")

    def test_bool_rejects_garbage(self):
        assert _validate_bool("maybe")[0] is False

    def test_int_range(self):
        assert _validate_int_range("7", 1, 10)[:2] == (True, 7)
        assert _validate_int_range(11, 1, 10)[0] is False
        assert _validate_int_range("x", 1, 10)[0] is False

    def test_float_range(self):
        assert _validate_float_range("0.5", 0.0, 2.0)[:2] == (True, 0.5)
        assert _validate_float_range(-1, 0.0, 2.0)[0] is False

    def test_every_field_default_validates(self):
        for key, spec in CONFIG_FIELDS.items():
            ok, coerced, _ = validate_config_value(key, spec.default)
            assert ok, key
            assert coerced == spec.default

    def test_find_model(self):
        assert find_model(DEFAULT_MODEL).id == DEFAULT_MODEL
        assert find_model(None) is None

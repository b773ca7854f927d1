"""Shared fixtures for codeforge-agent tests."""

import os
from typing import List, Union
from unittest.mock import MagicMock

import pytest
import yaml

from codeforge_agent import config as config_module
from codeforge_agent import session as session_module
from codeforge_agent.credentials import CredentialStore
from codeforge_agent.tools import ToolRegistry
from codeforge_agent.workspace import Workspace


@pytest.fixture
def tmp_dir(tmp_path):
    """Provide a temporary directory and cd into it."""
    orig = os.getcwd()
    os.chdir(tmp_path)
    yield tmp_path
    os.chdir(orig)


@pytest.fixture
def config_home(tmp_path, monkeypatch):
    """Redirect the global config/session directories into tmp_path."""
    home = tmp_path / "home"
    monkeypatch.setattr(config_module, "CONFIG_DIR", home)
    monkeypatch.setattr(config_module, "CONFIG_FILE", home / "config.yml")
    monkeypatch.setattr(session_module, "SESSIONS_DIR", home / "sessions")
    for var in ("FORGE_MODEL", "FORGE_VERBOSE", "FORGE_MAX_TOOL_CALLS",
                "FORGE_TEMPERATURE", "FORGE_DEFAULT_GROQ_API_KEY"):
        monkeypatch.delenv(var, raising=False)
    return home


@pytest.fixture
def sample_config_data():
    """Minimal .forge.conf.yml data dict."""
    return {
        "active-model": "mistral-saba-24b",
        "max-tool-calls": 5,
        "temperature": 0.2,
        "duplicate-window": 0,
        "persist-session": False,
        "verbose": False,
    }


@pytest.fixture
def config_yaml_file(tmp_dir, sample_config_data):
    """Write a project config YAML to tmp_dir and return its Path."""
    path = tmp_dir / ".forge.conf.yml"
    with open(path, "w") as f:
        yaml.dump(sample_config_data, f, default_flow_style=False)
    return path


@pytest.fixture
def workspace():
    return Workspace()


@pytest.fixture
def registry(workspace):
    return ToolRegistry(workspace)


@pytest.fixture
def credentials(tmp_path):
    store = CredentialStore(tmp_path / "credentials.json")
    store.set_api_key("gsk-test-key-1234")
    return store


@pytest.fixture
def mock_console():
    """A mock Rich Console that silently accepts all print calls."""
    c = MagicMock()
    c.print = MagicMock()
    return c


class FakeLLM:
    """LLM stub that returns a sequence of pre-set replies.

    An entry that is an exception instance is raised instead of returned.
    The last entry repeats once the script runs out.
    """

    def __init__(self, replies: List[Union[str, Exception]]):
        self._replies = list(replies)
        self._call_count = 0
        self.calls = []
        self.api_base = None

    def complete(self, messages, model, temperature, api_key):
        self.calls.append({"messages": list(messages), "model": model,
                           "temperature": temperature, "api_key": api_key})
        idx = min(self._call_count, len(self._replies) - 1)
        self._call_count += 1
        reply = self._replies[idx]
        if isinstance(reply, Exception):
            raise reply
        return reply


@pytest.fixture
def make_agent(registry, credentials):
    """Factory for a quiet Agent wired to a FakeLLM."""
    from codeforge_agent.agent import Agent

    def _make(replies, **kwargs):
        kwargs.setdefault("model", "llama3-70b-8192")
        kwargs.setdefault("duplicate_window", 0)
        return Agent(llm=FakeLLM(replies), tools=registry, credentials=credentials,
                     quiet=True, **kwargs)

    return _make


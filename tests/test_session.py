"""Tests for session save/load of transcript plus file tree."""

import pytest

from codeforge_agent import session as session_module
from codeforge_agent.conversation import ASSISTANT, USER, Conversation
from codeforge_agent.session import (
    delete_session, list_sessions, load_session, restore_session, save_session,
)


@pytest.fixture
def conversation():
    conv = Conversation("sys")
    conv.add(USER, "make a file")
    conv.add(ASSISTANT, "done")
    return conv


def test_save_and_restore(config_home, conversation, workspace):
    workspace.add_file("src", "App.tsx", "export {}")
    filename = save_session(conversation, workspace, "my work", {"model": "m"})
    assert filename == "my_work.json"

    data = load_session("my work")
    assert data["metadata"] == {"model": "m"}
    conv, tree = restore_session(data)
    assert conv.snapshot() == conversation.snapshot()
    assert tree == workspace.tree


def test_load_by_prefix(config_home, conversation, workspace):
    save_session(conversation, workspace, "refactor-header")
    assert load_session("refactor")["name"] == "refactor-header"
    assert load_session("missing") is None


def test_unreadable_session(config_home):
    session_module.SESSIONS_DIR.mkdir(parents=True)
    (session_module.SESSIONS_DIR / "broken.json").write_text("{oops")
    assert load_session("broken") is None
    assert list_sessions() == []


def test_restore_rejects_malformed(config_home):
    with pytest.raises(ValueError):
        restore_session({"conversation": []})
    with pytest.raises(ValueError):
        restore_session({"conversation": [{"role": "user", "content": "x"}], "file_system": []})


def test_list_sessions_summary(config_home, conversation, workspace):
    save_session(conversation, workspace, "one")
    sessions = list_sessions()
    assert len(sessions) == 1
    assert sessions[0]["messages"] == 3
    assert sessions[0]["files"] == 3


def test_delete_session(config_home, conversation, workspace):
    save_session(conversation, workspace, "gone")
    assert delete_session("gone")
    assert not delete_session("gone")
    assert not any(s["name"] == "gone" for s in list_sessions())

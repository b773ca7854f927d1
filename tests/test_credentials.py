"""Tests for the local credential store."""

import json
import os
import stat

import pytest

from codeforge_agent.credentials import API_KEY_FIELD, DEFAULT_KEY_ENV, MODEL_FIELD, CredentialStore


@pytest.fixture
def store_path(tmp_path, monkeypatch):
    monkeypatch.delenv(DEFAULT_KEY_ENV, raising=False)
    return tmp_path / "credentials.json"


def test_empty_store(store_path):
    store = CredentialStore(store_path).load()
    assert not store.has_api_key()
    assert store.current_model_id is None
    assert store.masked_key() == "(not set)"


def test_set_key_persists_with_private_mode(store_path):
    CredentialStore(store_path).set_api_key("  gsk-abcdefgh1234  ")
    data = json.loads(store_path.read_text())
    assert data[API_KEY_FIELD] == "gsk-abcdefgh1234"
    if os.name == "posix":
        assert stat.S_IMODE(store_path.stat().st_mode) == 0o600
    reloaded = CredentialStore(store_path).load()
    assert reloaded.api_key == "gsk-abcdefgh1234"
    assert reloaded.masked_key() == "****1234 (stored)"


@pytest.mark.skipif(os.name != "posix", reason="POSIX file modes")
def test_new_file_created_private_under_permissive_umask(store_path):
    old_umask = os.umask(0)
    try:
        CredentialStore(store_path).set_api_key("gsk-abcdefgh1234")
    finally:
        os.umask(old_umask)
    assert stat.S_IMODE(store_path.stat().st_mode) == 0o600


@pytest.mark.skipif(os.name != "posix", reason="POSIX file modes")
def test_existing_loose_file_is_tightened(store_path):
    store_path.write_text("{}")
    os.chmod(store_path, 0o644)
    CredentialStore(store_path).set_api_key("k1")
    assert stat.S_IMODE(store_path.stat().st_mode) == 0o600


def test_empty_key_rejected(store_path):
    with pytest.raises(ValueError):
        CredentialStore(store_path).set_api_key("   ")


def test_model_and_key_merge(store_path):
    store = CredentialStore(store_path)
    store.set_api_key("k1")
    store.set_current_model("mistral-saba-24b")
    data = json.loads(store_path.read_text())
    assert data == {API_KEY_FIELD: "k1", MODEL_FIELD: "mistral-saba-24b"}


def test_unknown_stored_model_ignored(store_path):
    store_path.write_text(json.dumps({MODEL_FIELD: "gpt-99"}))
    assert CredentialStore(store_path).load().current_model_id is None


def test_shared_default_key(store_path, monkeypatch):
    monkeypatch.setenv(DEFAULT_KEY_ENV, "shared-key-5678")
    store = CredentialStore(store_path).load()
    assert store.has_api_key()
    assert store.is_default_key
    assert store.masked_key() == "****5678 (shared default)"

    store.set_api_key("mine")
    assert not store.is_default_key


def test_stored_key_beats_shared_default(store_path, monkeypatch):
    monkeypatch.setenv(DEFAULT_KEY_ENV, "shared")
    CredentialStore(store_path).set_api_key("mine")
    store = CredentialStore(store_path).load()
    assert store.api_key == "mine" and not store.is_default_key


def test_corrupt_file_treated_as_empty(store_path):
    store_path.write_text("{not json")
    assert not CredentialStore(store_path).load().has_api_key()

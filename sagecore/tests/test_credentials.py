import json
import os
import stat

import pytest

from sagecore.config.settings import settings
from sagecore.credentials import (
    EnvCredentialStore,
    FileCredentialStore,
    MemoryCredentialStore,
    create_credential_store,
)


def test_memory_store_round_trip():
    store = MemoryCredentialStore()
    assert store.get() is None
    store.set("sk-1")
    assert store.get() == "sk-1"
    assert store.delete() is True
    assert store.get() is None


def test_env_store_reads_and_writes_environment(monkeypatch):
    monkeypatch.delenv("SAGE_TEST_KEY", raising=False)
    store = EnvCredentialStore("SAGE_TEST_KEY")
    assert store.get() is None
    monkeypatch.setenv("SAGE_TEST_KEY", "  sk-env  ")
    assert store.get() == "sk-env"
    store.set("sk-other")
    assert os.environ["SAGE_TEST_KEY"] == "sk-other"
    assert store.delete() is True
    assert "SAGE_TEST_KEY" not in os.environ


def test_file_store_persists_with_owner_only_permissions(tmp_path):
    path = tmp_path / "nested" / "credentials.json"
    store = FileCredentialStore(path, key_name="anthropic_api_key")
    assert store.get() is None

    store.set("sk-file")
    assert store.get() == "sk-file"
    assert json.loads(path.read_text(encoding="utf-8")) == {"anthropic_api_key": "sk-file"}
    if os.name == "posix":
        assert stat.S_IMODE(path.stat().st_mode) == 0o600

    reopened = FileCredentialStore(path, key_name="anthropic_api_key")
    assert reopened.get() == "sk-file"


def test_file_store_delete_keeps_other_keys(tmp_path):
    path = tmp_path / "credentials.json"
    path.write_text(json.dumps({"anthropic_api_key": "sk-1", "other": "x"}), encoding="utf-8")
    store = FileCredentialStore(path, key_name="anthropic_api_key")
    assert store.delete() is True
    assert store.get() is None
    assert json.loads(path.read_text(encoding="utf-8")) == {"other": "x"}
    assert store.delete() is True


def test_file_store_rejects_non_mapping(tmp_path):
    path = tmp_path / "credentials.json"
    path.write_text("[1, 2]", encoding="utf-8")
    store = FileCredentialStore(path)
    with pytest.raises(ValueError):
        store.get()
    assert store.delete() is False


@pytest.mark.parametrize(
    ("backend", "expected"),
    [("memory", MemoryCredentialStore), ("env", EnvCredentialStore), ("file", FileCredentialStore), ("bogus", EnvCredentialStore)],
)
def test_create_credential_store_follows_settings(monkeypatch, backend, expected):
    monkeypatch.setattr(settings, "credential_backend", backend)
    assert isinstance(create_credential_store(), expected)

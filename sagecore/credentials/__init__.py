"""Credential backend selection helpers."""

from __future__ import annotations

from sagecore.config.settings import settings
from sagecore.credentials.base import CredentialStore
from sagecore.credentials.env_store import EnvCredentialStore
from sagecore.credentials.file_store import FileCredentialStore
from sagecore.credentials.memory_store import MemoryCredentialStore


def create_credential_store() -> CredentialStore:
    backend = settings.credential_backend.strip().lower()
    if backend == "file":
        return FileCredentialStore()
    if backend == "memory":
        return MemoryCredentialStore()
    return EnvCredentialStore()


__all__ = [
    "CredentialStore",
    "EnvCredentialStore",
    "FileCredentialStore",
    "MemoryCredentialStore",
    "create_credential_store",
]

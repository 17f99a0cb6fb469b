from __future__ import annotations

from threading import Lock

from sagecore.credentials.base import CredentialStore


class MemoryCredentialStore(CredentialStore):
    def __init__(self, secret: str | None = None) -> None:
        self._secret = secret
        self._lock = Lock()

    def get(self) -> str | None:
        with self._lock:
            return self._secret

    def set(self, secret: str) -> None:
        with self._lock:
            self._secret = secret

    def delete(self) -> bool:
        with self._lock:
            self._secret = None
        return True

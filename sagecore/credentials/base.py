"""Credential store abstraction for the API key."""

from __future__ import annotations

from abc import ABC, abstractmethod


class CredentialStore(ABC):
    @abstractmethod
    def get(self) -> str | None:
        pass

    @abstractmethod
    def set(self, secret: str) -> None:
        pass

    @abstractmethod
    def delete(self) -> bool:
        """Remove the secret. Returns True when nothing is stored afterwards."""
        pass

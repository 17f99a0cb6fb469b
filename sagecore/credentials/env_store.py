"""Credential read from the process environment."""

from __future__ import annotations

import os

from sagecore.config.settings import settings
from sagecore.credentials.base import CredentialStore


class EnvCredentialStore(CredentialStore):
    def __init__(self, var_name: str | None = None) -> None:
        self.var_name = var_name or settings.credential_env_var

    def get(self) -> str | None:
        value = os.environ.get(self.var_name)
        return value.strip() if value else None

    def set(self, secret: str) -> None:
        os.environ[self.var_name] = secret

    def delete(self) -> bool:
        os.environ.pop(self.var_name, None)
        return True

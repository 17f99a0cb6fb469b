"""JSON file credential store, created owner-readable only."""

from __future__ import annotations

import json
import os
from pathlib import Path
from threading import Lock

from sagecore.config.settings import settings
from sagecore.credentials.base import CredentialStore
from sagecore.util.logger import get_logger

logger = get_logger("credentials")


class FileCredentialStore(CredentialStore):
    def __init__(self, path: str | Path | None = None, key_name: str | None = None) -> None:
        self.path = Path(path or settings.credential_file_path).expanduser()
        self.key_name = key_name or settings.credential_key_name
        self._lock = Lock()

    def _read_all(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        raw = json.loads(self.path.read_text(encoding="utf-8") or "{}")
        if not isinstance(raw, dict):
            raise ValueError(f"credential file must hold a mapping: {self.path}")
        return {str(k): str(v) for k, v in raw.items()}

    def _write_all(self, values: dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        fd = os.open(tmp_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            json.dump(values, handle, ensure_ascii=False)
        os.replace(tmp_path, self.path)

    def get(self) -> str | None:
        with self._lock:
            return self._read_all().get(self.key_name)

    def set(self, secret: str) -> None:
        with self._lock:
            values = self._read_all()
            values[self.key_name] = secret
            self._write_all(values)
        logger.info("credential stored path=%s key=%s", self.path, self.key_name)

    def delete(self) -> bool:
        with self._lock:
            try:
                values = self._read_all()
                if self.key_name in values:
                    values.pop(self.key_name)
                    self._write_all(values)
            except (OSError, ValueError) as exc:
                logger.warning("credential delete failed path=%s error=%s", self.path, exc)
                return False
        return True

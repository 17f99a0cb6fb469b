"""Project logging: one root logger per app, named children per component.

Components log through ``get_logger("<component>")`` so records read
``sagecore.client``, ``sagecore.transport`` and so on. The environment name
is stamped on every line; in the ``test`` environment nothing is written to
disk.
"""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from sagecore.config.settings import Settings, settings


MAX_BYTES = 5 * 1024 * 1024
BACKUP_COUNT = 5
_FILELESS_ENVS = {"test"}
_LEVELS = {
    "critical": logging.CRITICAL,
    "error": logging.ERROR,
    "warning": logging.WARNING,
    "info": logging.INFO,
    "debug": logging.DEBUG,
}


def log_file_name(app_settings: Settings) -> str:
    if app_settings.env == "prod":
        return f"{app_settings.app_name}.log"
    return f"{app_settings.app_name}-{app_settings.env}.log"


def build_logger(app_settings: Settings) -> logging.Logger:
    app_logger = logging.getLogger(app_settings.app_name)
    if app_logger.handlers:
        return app_logger

    level = _LEVELS.get(str(app_settings.log_level).strip().lower(), logging.INFO)
    app_logger.setLevel(level)
    formatter = logging.Formatter(
        f"%(asctime)s | %(levelname)s | {app_settings.env} | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if app_settings.env not in _FILELESS_ENVS:
        log_dir = Path(app_settings.log_dir)
        try:
            log_dir.mkdir(parents=True, exist_ok=True)
            handlers.append(
                RotatingFileHandler(
                    log_dir / log_file_name(app_settings),
                    maxBytes=MAX_BYTES,
                    backupCount=BACKUP_COUNT,
                    encoding="utf-8",
                )
            )
        except OSError:
            # read-only working directory: stderr only
            pass

    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        app_logger.addHandler(handler)

    app_logger.propagate = False
    return app_logger


logger = build_logger(settings)


def get_logger(name: str) -> logging.Logger:
    return logger.getChild(name)


def mask_secret(secret: str | None) -> str:
    if not secret:
        return "<none>"
    tail = secret[-4:] if len(secret) > 8 else ""
    return f"***{tail}"

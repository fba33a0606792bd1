# confsh - Embeddable Router-Style Configuration Shell
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
Configuration and filesystem locations for confsh.

Handles:
- Data root resolution (CONFSH_DATA_HOME, ~/.local/share)
- Log locations (<data_root>/confsh/logs)
- Packaged YAML defaults loading (confsh.defaults/*.yaml)
- Logger setup (rotating file + stderr)
"""

from __future__ import annotations

import logging
import os
from importlib import resources as importlib_resources
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

import yaml

LOGGER_NAME = "confsh"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


# -----------------------
# Config model wrapper
# -----------------------


class YAMLConfig:
    """Read-only wrapper around a loaded YAML mapping."""

    def __init__(self, config_dict: dict[str, Any]):
        self._config = config_dict

    @property
    def session(self) -> dict[str, Any]:
        section = self._config.get("session", {})
        return section if isinstance(section, dict) else {}

    @property
    def server(self) -> dict[str, Any]:
        section = self._config.get("server", {})
        return section if isinstance(section, dict) else {}

    @property
    def logging(self) -> dict[str, Any]:
        section = self._config.get("logging", {})
        return section if isinstance(section, dict) else {}

    def get(self, key: str, default: Any = None) -> Any:
        return self._config.get(key, default)

    def get_path(self, path: str, default: Any = None) -> Any:
        """
        Nested lookup using dot-separated path.
        Example: get_path("server.port", 2323) -> configured port
        """
        if not path:
            return default

        cur: Any = self._config
        for part in path.split("."):
            if not isinstance(cur, dict):
                return default
            if part not in cur:
                return default
            cur = cur[part]
        return cur


# -----------------------
# Data root + logs
# -----------------------


def get_data_root() -> Path:
    """Get the data root directory for confsh.

    Resolution order:
    1. CONFSH_DATA_HOME environment variable (if set)
    2. ~/.local/share (default, XDG_DATA_HOME is ignored)
    """
    data_home = os.getenv("CONFSH_DATA_HOME")
    if data_home:
        root = Path(data_home)
    else:
        root = Path.home() / ".local" / "share"

    root.mkdir(parents=True, exist_ok=True)
    return root


def logs_dir(data_root: Path) -> Path:
    """<data_root>/confsh/logs"""
    return data_root / "confsh" / "logs"


def setup_logger(
    path: Path,
    level: str | int = "WARNING",
    max_bytes: int = 2_000_000,
    backups: int = 3,
) -> logging.Logger:
    """Attach a rotating file handler and a stderr handler to the confsh logger.

    Calling it again only updates the level.
    """
    logger = logging.getLogger(LOGGER_NAME)
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            raise ValueError(f"Unknown log level: {level}")
    logger.setLevel(level)
    if logger.handlers:
        for h in logger.handlers:
            if not isinstance(h, RotatingFileHandler):
                h.setLevel(level)
        return logger

    path.parent.mkdir(parents=True, exist_ok=True)
    fmt = logging.Formatter(LOG_FORMAT)

    fh = RotatingFileHandler(
        path, encoding="utf-8", maxBytes=max_bytes, backupCount=backups
    )
    fh.setFormatter(fmt)
    logger.addHandler(fh)

    sh = logging.StreamHandler()
    sh.setLevel(level)
    sh.setFormatter(fmt)
    logger.addHandler(sh)
    return logger


# -----------------------
# Packaged defaults loading
# -----------------------


def _defaults_dir() -> Path:
    """Return the installed path to the packaged defaults directory."""
    return Path(
        importlib_resources.files("confsh.defaults")
    )  # type: ignore[arg-type]


def load_defaults_yaml(filename: str) -> dict[str, Any]:
    """
    Load a YAML file from confsh/defaults/.
    """
    defaults_dir = _defaults_dir()
    path = defaults_dir / filename
    if not path.exists():
        raise FileNotFoundError(
            f"Missing defaults YAML: {filename} "
            f"(looked in {defaults_dir})"
        )

    with path.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        raise ValueError(
            f"Defaults YAML {filename} must load to a mapping/dict."
        )
    return data


def load_system_config() -> YAMLConfig:
    """
    Load system.yaml from packaged defaults and return a YAMLConfig wrapper.
    """
    return YAMLConfig(load_defaults_yaml("system.yaml"))

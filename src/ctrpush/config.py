"""User configuration for ctrpush.

Defaults can be overridden in ``~/.config/ctrpush/config.yaml``::

    ssh_user: ubuntu
    ssh_key: ~/.ssh/id_ed25519
    namespace: k8s.io
    connect_timeout: 10
    command_timeout: 1800
    staging_dir: /tmp
    workers: 4

Command-line flags take precedence over the file.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from ctrpush.utils import load_yaml

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_DIR = Path.home() / ".config" / "ctrpush"
CONFIG_FILE_NAME = "config.yaml"

DEFAULT_NAMESPACE = "k8s.io"
DEFAULT_CONNECT_TIMEOUT = 10
DEFAULT_COMMAND_TIMEOUT = 1800
DEFAULT_STAGING_DIR = "/tmp"
DEFAULT_WORKERS = 1


def default_config_path() -> Path:
    return DEFAULT_CONFIG_DIR / CONFIG_FILE_NAME


class CtrpushConfig:
    """Settings read from the YAML config file, with built-in defaults."""

    def __init__(self, data: dict | None = None, path: Path | None = None):
        self._data = data or {}
        self.path = path

    @classmethod
    def load(cls, path: str | os.PathLike | None = None) -> "CtrpushConfig":
        """Load the config file, or return defaults when there is none.

        An explicitly given *path* must exist; the default location is
        optional.
        """
        explicit = path is not None
        cfg_path = Path(path).expanduser() if explicit else default_config_path()
        if not cfg_path.is_file():
            if explicit:
                raise FileNotFoundError("Config file not found: %s" % cfg_path)
            return cls()
        logger.debug("Loading config from %s", cfg_path)
        return cls(load_yaml(cfg_path), path=cfg_path)

    def _int(self, key: str, default: int) -> int:
        value = self._data.get(key)
        if value is None:
            return default
        try:
            return int(value)
        except (TypeError, ValueError):
            logger.warning("Ignoring invalid %s=%r in config", key, value)
            return default

    @property
    def ssh_user(self) -> str | None:
        return self._data.get("ssh_user") or None

    @property
    def ssh_key(self) -> str | None:
        key = self._data.get("ssh_key")
        return os.path.expanduser(str(key)) if key else None

    @property
    def namespace(self) -> str:
        return str(self._data.get("namespace") or DEFAULT_NAMESPACE)

    @property
    def connect_timeout(self) -> int:
        return self._int("connect_timeout", DEFAULT_CONNECT_TIMEOUT)

    @property
    def command_timeout(self) -> int:
        return self._int("command_timeout", DEFAULT_COMMAND_TIMEOUT)

    @property
    def staging_dir(self) -> str:
        return str(self._data.get("staging_dir") or DEFAULT_STAGING_DIR)

    @property
    def workers(self) -> int:
        return max(1, self._int("workers", DEFAULT_WORKERS))

"""Configuration store, logging bootstrap and id helpers shared by the gateway modules."""

import logging
import os
import random
import secrets
import time
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

logger = logging.getLogger("aigateway")

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


class ConfigStore:
    """Dotted-key view over the merged YAML files of a config directory."""

    def __init__(self):
        self._data: Dict[str, Any] = {}
        self.config_dir: Optional[Path] = None

    def load(self, config_dir: Union[str, Path]) -> None:
        """Load and merge every ``*.yaml`` file in ``config_dir`` (name order).

        Args:
            config_dir: Directory holding the YAML files
        """
        self.config_dir = Path(config_dir)
        merged: Dict[str, Any] = {}
        if self.config_dir.is_dir():
            for path in sorted(self.config_dir.glob("*.yaml")):
                with open(path) as f:
                    data = yaml.safe_load(f) or {}
                if not isinstance(data, dict):
                    logger.warning(f"Ignoring non-mapping config file: {path}")
                    continue
                _deep_merge(merged, data)
        self._data = merged

    def get(self, key: str, default: Any = None) -> Any:
        """Look up a dotted key such as ``server.port``."""
        node: Any = self._data
        for part in key.split("."):
            if not isinstance(node, dict) or part not in node:
                return default
            node = node[part]
        return node

    def as_dict(self) -> Dict[str, Any]:
        return dict(self._data)


def _deep_merge(target: Dict[str, Any], source: Dict[str, Any]) -> None:
    for key, value in source.items():
        if isinstance(value, dict) and isinstance(target.get(key), dict):
            _deep_merge(target[key], value)
        else:
            target[key] = value


config = ConfigStore()


def setup_logging(level: str = "INFO") -> None:
    """Configure root logging once for the process."""
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)
    logging.getLogger().setLevel(level.upper())


def init_utils(config_dir: Union[str, Path, None] = None) -> ConfigStore:
    """Load configuration and set up logging.

    Args:
        config_dir: Config directory (defaults to ``CONFIG_DIR`` or ``config``)

    Returns:
        The shared ConfigStore
    """
    config.load(config_dir or os.environ.get("CONFIG_DIR", "config"))
    setup_logging(str(config.get("logging.level", "INFO")))
    return config


BASE36_ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyz"


def random_base36(length: int, rng: Optional[random.Random] = None) -> str:
    chooser = rng.choice if rng else secrets.choice
    return "".join(chooser(BASE36_ALPHABET) for _ in range(length))


def generate_id(prefix: str) -> str:
    """``<prefix>_<epoch ms>_<9 base36 chars>``, e.g. ``api_1704880200000_k3j9x2m1q``."""
    return f"{prefix}_{int(time.time() * 1000)}_{random_base36(9)}"

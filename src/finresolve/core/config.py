"""
Layered configuration for finresolve.

Sources, lowest to highest precedence:
    1. Built-in defaults (data/cache/log directories, sync window, logging)
    2. A YAML or JSON file
    3. Environment variables: FINRESOLVE_SECTION__KEY

Env values are parsed as YAML scalars, so FINRESOLVE_SYNC__DEBOUNCE_MS=250
yields the int 250 and FINRESOLVE_LOGGING__LEVEL=debug the string "debug".
FINRESOLVE_CONFIG names the config file and is not itself a setting.

Usage:
    config = Config(config_file="finresolve.yaml")

    config.get("sync.debounce_ms")
    config.get_cache_dir()
"""

import json
import os
from typing import Any

import yaml

from finresolve.core.exceptions import ConfigurationError

ENV_PREFIX = "FINRESOLVE_"
CONFIG_FILE_ENV_VAR = f"{ENV_PREFIX}CONFIG"
DEFAULT_DATA_DIR = os.path.join("~", ".finresolve-data")
DEFAULT_DEBOUNCE_MS = 1000


def deep_merge(target: dict, source: dict) -> dict:
    """Merge *source* into *target* in place, recursing into nested dicts."""
    for key, value in source.items():
        current = target.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            deep_merge(current, value)
        else:
            target[key] = value
    return target


def read_config_file(path: str) -> dict[str, Any]:
    """Parse a ``.yaml``/``.yml`` or ``.json`` file into a dict.

    Raises:
        ConfigurationError: the file is missing, unparseable, has an
            unsupported extension, or does not hold a mapping.
    """
    ext = os.path.splitext(path)[1].lower()
    if ext not in (".yaml", ".yml", ".json"):
        raise ConfigurationError(f"Unsupported config file type: {path}")
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f) if ext == ".json" else yaml.safe_load(f)
    except FileNotFoundError as e:
        raise ConfigurationError(f"Config file not found: {path}") from e
    except (yaml.YAMLError, json.JSONDecodeError) as e:
        raise ConfigurationError(f"Invalid config file {path}: {e}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file {path} must contain a mapping")
    return data


class Config:
    """
    Merged view of defaults, config file and environment.

    Args:
        config_file: Optional YAML or JSON file. Must exist when given.
        env_prefix: Prefix for environment overrides; empty disables them.
        data_dir: Base directory for cache and logs. Defaults to ~/.finresolve-data.
        defaults: Extra defaults merged over the built-in ones.
    """

    def __init__(
        self,
        config_file: str | None = None,
        env_prefix: str = ENV_PREFIX,
        data_dir: str | None = None,
        defaults: dict[str, Any] | None = None,
    ):
        self.config_file = config_file
        self.env_prefix = env_prefix or ""
        self.data_dir = os.path.expanduser(data_dir or DEFAULT_DATA_DIR)

        self.config_data: dict[str, Any] = self._defaults()
        deep_merge(self.config_data, defaults or {})
        if config_file:
            deep_merge(self.config_data, read_config_file(config_file))
        deep_merge(self.config_data, self._from_env())

    def _defaults(self) -> dict[str, Any]:
        return {
            "paths": {
                "data_dir": self.data_dir,
                "cache_dir": os.path.join(self.data_dir, "cache"),
                "log_dir": os.path.join(self.data_dir, "logs"),
            },
            "sync": {"debounce_ms": DEFAULT_DEBOUNCE_MS},
            "logging": {"level": "WARNING", "file": ""},
        }

    def _from_env(self) -> dict[str, Any]:
        overrides: dict[str, Any] = {}
        if not self.env_prefix:
            return overrides
        for env_key, raw in os.environ.items():
            if not env_key.startswith(self.env_prefix) or env_key == CONFIG_FILE_ENV_VAR:
                continue
            parts = env_key[len(self.env_prefix) :].lower().split("__")
            node = overrides
            for part in parts[:-1]:
                node = node.setdefault(part, {})
            try:
                node[parts[-1]] = yaml.safe_load(raw) if raw else raw
            except yaml.YAMLError:
                node[parts[-1]] = raw
        return overrides

    def get(self, key_path: str, default: Any = None) -> Any:
        """Look up a dot path such as ``"sync.debounce_ms"``; *default* if absent."""
        node: Any = self.config_data
        for part in key_path.split("."):
            if not isinstance(node, dict) or part not in node:
                return default
            node = node[part]
        return node

    def set(self, key_path: str, value: Any) -> None:
        *parents, leaf = key_path.split(".")
        node = self.config_data
        for part in parents:
            node = node.setdefault(part, {})
        node[leaf] = value

    def get_cache_dir(self) -> str:
        """Directory holding the per-identity profile cache."""
        return os.path.expanduser(self.get("paths.cache_dir") or os.path.join(self.data_dir, "cache"))

    def get_debounce_seconds(self) -> float:
        """Flush quiescence window in seconds, from ``sync.debounce_ms``."""
        raw = self.get("sync.debounce_ms", DEFAULT_DEBOUNCE_MS)
        if isinstance(raw, bool):
            raise ConfigurationError(f"sync.debounce_ms must be a number, got {raw!r}")
        try:
            ms = float(raw)
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"sync.debounce_ms must be a number, got {raw!r}") from e
        if ms < 0:
            raise ConfigurationError(f"sync.debounce_ms must be >= 0, got {ms}")
        return ms / 1000.0

    def ensure_directories(self) -> None:
        """Create every configured ``paths.*`` directory."""
        for path_value in self.get("paths", {}).values():
            if isinstance(path_value, str):
                os.makedirs(os.path.expanduser(path_value), exist_ok=True)


_config_instance: Config | None = None


def get_config(
    config_file: str | None = None,
    env_prefix: str = ENV_PREFIX,
    data_dir: str | None = None,
) -> Config:
    """Return the process-wide Config, creating it on first use."""
    global _config_instance
    if _config_instance is None:
        _config_instance = Config(config_file=config_file, env_prefix=env_prefix, data_dir=data_dir)
    return _config_instance


def reset_config() -> None:
    """Forget the process-wide Config (tests)."""
    global _config_instance
    _config_instance = None

# === NAVMAP v1 ===
# {
#   "module": "LlmsDotTxt.ManifestWatch.config.loader",
#   "purpose": "Configuration Loading with File/Env/CLI Precedence.",
#   "sections": [
#     {
#       "id": "read-file",
#       "name": "_read_file",
#       "anchor": "function-read-file",
#       "kind": "function"
#     },
#     {
#       "id": "assign-nested",
#       "name": "_assign_nested",
#       "anchor": "function-assign-nested",
#       "kind": "function"
#     },
#     {
#       "id": "coerce-env-value",
#       "name": "_coerce_env_value",
#       "anchor": "function-coerce-env-value",
#       "kind": "function"
#     },
#     {
#       "id": "merge-env-overrides",
#       "name": "_merge_env_overrides",
#       "anchor": "function-merge-env-overrides",
#       "kind": "function"
#     },
#     {
#       "id": "merge-cli-overrides",
#       "name": "_merge_cli_overrides",
#       "anchor": "function-merge-cli-overrides",
#       "kind": "function"
#     },
#     {
#       "id": "load-config",
#       "name": "load_config",
#       "anchor": "function-load-config",
#       "kind": "function"
#     },
#     {
#       "id": "export-config-schema",
#       "name": "export_config_schema",
#       "anchor": "function-export-config-schema",
#       "kind": "function"
#     }
#   ]
# }
# === /NAVMAP ===

"""Watcher configuration from a file, the environment and CLI overrides.

Later layers win: file < ``LLMSTXT_*`` environment < CLI. Nested keys use a
double underscore in variable names, so ``LLMSTXT_HTTP__TIMEOUT_S=5`` sets
``http.timeout_s``. Environment values are read as JSON when they parse.
"""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml

from .models import WatcherConfig

_LOGGER = logging.getLogger(__name__)

DEFAULT_ENV_PREFIX = "LLMSTXT_"


def _read_file(path: str) -> dict[str, Any]:
    """Parse a ``.yaml``/``.yml`` or ``.json`` file; any failure is a ``ValueError``."""
    p = Path(path)
    if not p.exists():
        raise ValueError(f"Config file not found: {path}")

    try:
        text = p.read_text(encoding="utf-8")
    except OSError as e:
        raise ValueError(f"Cannot read config file {path}: {e}") from e

    suffix = p.suffix.lower()
    if suffix in (".yaml", ".yml"):
        try:
            loaded = yaml.safe_load(text) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in {path}: {e}") from e
    elif suffix == ".json":
        try:
            loaded = json.loads(text)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in {path}: {e}") from e
    else:
        raise ValueError(f"Unsupported file format: {suffix}. Use .yaml or .json")

    if not isinstance(loaded, dict):
        raise ValueError(f"Config file {path} must contain a mapping at the top level")
    return loaded


def _assign_nested(data: dict[str, Any], dotted_key: str, value: Any) -> None:
    *parents, leaf = dotted_key.split(".")
    current = data
    for key in parents:
        if not isinstance(current.get(key), dict):
            current[key] = {}
        current = current[key]
    current[leaf] = value


def _coerce_env_value(value: str) -> Any:
    try:
        return json.loads(value)
    except ValueError:
        pass
    if value.lower() in ("true", "false"):
        return value.lower() == "true"
    return value


def _merge_env_overrides(data: dict[str, Any], env_prefix: str = DEFAULT_ENV_PREFIX) -> dict[str, Any]:
    for env_key, env_value in sorted(os.environ.items()):
        if not env_key.startswith(env_prefix):
            continue
        relative_key = env_key[len(env_prefix) :].lower()
        if not relative_key:
            continue
        dotted_key = relative_key.replace("__", ".")
        coerced_value = _coerce_env_value(env_value)
        _assign_nested(data, dotted_key, coerced_value)
        _LOGGER.debug("Environment override: %s -> %s = %r", env_key, dotted_key, coerced_value)
    return data


def _merge_cli_overrides(data: dict[str, Any], cli_overrides: Mapping[str, Any] | None) -> dict[str, Any]:
    """Deep-merge ``cli_overrides`` into ``data``; nested mappings merge key by key."""
    if not cli_overrides:
        return data
    for key, value in cli_overrides.items():
        if isinstance(value, Mapping) and isinstance(data.get(key), dict):
            data[key] = _merge_cli_overrides(data[key], value)
        else:
            data[key] = dict(value) if isinstance(value, Mapping) else value
        _LOGGER.debug("CLI override: %s = %r", key, value)
    return data


def load_config(
    path: str | None = None,
    env_prefix: str = DEFAULT_ENV_PREFIX,
    cli_overrides: Mapping[str, Any] | None = None,
) -> WatcherConfig:
    """Build a validated :class:`WatcherConfig`.

    Raises ``ValueError`` (pydantic's ``ValidationError`` included) when the
    file is missing or malformed or the merged values do not validate.
    """
    data: dict[str, Any] = {}
    if path:
        try:
            data = _read_file(path)
        except ValueError as e:
            _LOGGER.error("Failed to load config: %s", e)
            raise
        _LOGGER.info("Loaded config from %s", path)

    data = _merge_env_overrides(data, env_prefix)
    data = _merge_cli_overrides(data, cli_overrides)

    try:
        config = WatcherConfig.model_validate(data)
    except ValueError as e:
        _LOGGER.error("Configuration validation failed: %s", e)
        raise
    _LOGGER.debug("Configuration validated (hash %s...)", config.config_hash()[:8])
    return config


def export_config_schema() -> dict[str, Any]:
    return WatcherConfig.model_json_schema()


__all__ = ["DEFAULT_ENV_PREFIX", "load_config", "export_config_schema"]

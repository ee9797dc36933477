"""Configuration models and loader for ManifestWatch."""

from __future__ import annotations

from .loader import DEFAULT_ENV_PREFIX, export_config_schema, load_config
from .models import HttpClientConfig, LoggingConfig, StorageConfig, WatcherConfig

__all__ = [
    "DEFAULT_ENV_PREFIX",
    "HttpClientConfig",
    "LoggingConfig",
    "StorageConfig",
    "WatcherConfig",
    "export_config_schema",
    "load_config",
]

"""
Pydantic v2 Configuration Models for ManifestWatch

Provides strict, typed configuration for the watcher subsystems:
- HTTP probe settings (timeouts, size cap, TLS)
- Storage location of the durable store
- Logging level and sinks
- Top-level WatcherConfig as single source of truth

All models use extra="forbid" for strict validation. Environment variables
and CLI overrides follow: file < env < CLI precedence.
"""

from __future__ import annotations

from typing import ClassVar, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

# ============================================================================
# Subsystem Models
# ============================================================================


class HttpClientConfig(BaseModel):
    """Configuration for the manifest probe client."""

    model_config: ClassVar[ConfigDict] = ConfigDict(extra="forbid")

    user_agent: str = Field(
        default="llmsdottxt/ManifestWatch", description="User-Agent string"
    )
    timeout_s: float = Field(
        default=10.0, description="Overall deadline for one probe (connect + body) in seconds"
    )
    connect_timeout_s: float = Field(default=5.0, description="Connection timeout in seconds")
    max_bytes: Optional[int] = Field(
        default=5 * 1024 * 1024, description="Maximum manifest size (None = unlimited)"
    )
    verify_tls: bool = Field(default=True, description="Verify TLS certificates")
    follow_redirects: bool = Field(default=True, description="Follow 3xx hops to the manifest")

    @field_validator("timeout_s", "connect_timeout_s")
    @classmethod
    def validate_timeouts(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("Timeouts must be > 0")
        return v

    @field_validator("max_bytes")
    @classmethod
    def validate_max_bytes(cls, v: Optional[int]) -> Optional[int]:
        if v is not None and v <= 0:
            raise ValueError("max_bytes must be > 0 or None")
        return v


class StorageConfig(BaseModel):
    """Configuration for the durable store."""

    model_config: ClassVar[ConfigDict] = ConfigDict(extra="forbid")

    durable_path: str = Field(
        default="~/.local/state/llmsdottxt/store.sqlite",
        description="SQLite file holding history and settings (':memory:' for ephemeral)",
    )


class LoggingConfig(BaseModel):
    """Configuration for log output."""

    model_config: ClassVar[ConfigDict] = ConfigDict(extra="forbid")

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO", description="Log level for the LlmsDotTxt logger"
    )
    json_output: bool = Field(default=False, description="Emit JSON lines on the console")
    log_dir: Optional[str] = Field(
        default=None, description="Directory for rotating JSONL log files (None = console only)"
    )

    @field_validator("level", mode="before")
    @classmethod
    def normalize_level(cls, v: object) -> object:
        return v.upper() if isinstance(v, str) else v


# ============================================================================
# Top-level Config
# ============================================================================


class WatcherConfig(BaseModel):
    """
    Single source of truth for ManifestWatch configuration.

    Loaded from file (YAML/JSON), overlaid with environment variables,
    and finally overridden by CLI arguments. Precedence: file < env < CLI.
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(extra="forbid", validate_assignment=True)

    http: HttpClientConfig = Field(
        default_factory=HttpClientConfig, description="HTTP probe configuration"
    )
    storage: StorageConfig = Field(
        default_factory=StorageConfig, description="Durable storage configuration"
    )
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig, description="Logging configuration"
    )

    def config_hash(self) -> str:
        """
        Compute deterministic SHA256 hash of config for reproducibility.

        Returns:
            Hex-encoded SHA256 hash of normalized config JSON.
        """
        import hashlib
        import json

        normalized = json.dumps(self.model_dump(mode="json"), sort_keys=True, separators=(",", ":"))
        return hashlib.sha256(normalized.encode()).hexdigest()


__all__ = ["HttpClientConfig", "StorageConfig", "LoggingConfig", "WatcherConfig"]

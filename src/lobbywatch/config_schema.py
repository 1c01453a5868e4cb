"""Pydantic schema for configuration validation.

All config values are validated at startup. Typos and invalid values
fail fast with clear error messages.

Usage:
    from lobbywatch.config_schema import load_validated_config, AppConfig
    config = load_validated_config("config/config.yaml")
    # config is now a validated AppConfig instance
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator


# =============================================================================
# BASE MODEL WITH STRICT VALIDATION
# =============================================================================

class StrictModel(BaseModel):
    """Base model that rejects unknown fields (catches typos)."""

    model_config = ConfigDict(extra="forbid")


# =============================================================================
# DISCOVERY MODEL
# =============================================================================

class DiscoveryConfig(StrictModel):
    """Where bot logs live and how often to look for new ones."""

    pattern: str = Field(
        default="testlogs/ghost*/ghost.log",
        description="Glob pattern matching bot log files"
    )
    scan_interval: float = Field(
        default=5.0,
        gt=0,
        description="Seconds between discovery scans"
    )
    max_age_seconds: float = Field(
        default=24 * 3600,
        gt=0,
        description="Logs not modified for longer than this are not watched"
    )


# =============================================================================
# TAILER MODEL
# =============================================================================

class TailerConfig(StrictModel):
    """Incremental log reading."""

    poll_interval: float = Field(
        default=0.5,
        gt=0,
        description="Seconds between size checks when no change was signalled"
    )
    use_watchdog: bool = Field(
        default=True,
        description="Wake tailers on filesystem events instead of polling only"
    )
    encoding: str = Field(
        default="utf-8",
        description="Log file encoding (undecodable bytes are replaced)"
    )
    start_at_end: bool = Field(
        default=True,
        description="Start reading at the current end of file"
    )


# =============================================================================
# TRACKER MODEL
# =============================================================================

class TrackerConfig(StrictModel):
    """Game state reconstruction."""

    create_grace_seconds: float = Field(
        default=10.0,
        ge=0,
        description="A repeated create line younger than this is a duplicate, older is a bot restart"
    )
    forget_after_seconds: float = Field(
        default=12 * 3600,
        gt=0,
        description="Games unseen for longer than this are dropped from memory"
    )
    default_slots: int = Field(
        default=10,
        gt=0,
        description="Lobby size assumed for ordinary games"
    )
    six_v_six_slots: int = Field(
        default=12,
        gt=0,
        description="Lobby size assumed for games named '6 v 6'"
    )
    timestamps: Literal["wall", "log"] = Field(
        default="wall",
        description="Use the wall clock or the log line timestamp as event time"
    )
    bot_prefix: str = Field(
        default="ghost",
        description="Directory prefix of bot installs (ghost12 -> bot 12)"
    )
    bot_display_prefix: str = Field(
        default="ghostgraz",
        description="Display prefix replacing bot_prefix in bot names"
    )


# =============================================================================
# REPORTER MODEL
# =============================================================================

class ReporterConfig(StrictModel):
    """Snapshot generation."""

    refresh_interval: float = Field(
        default=5.0,
        gt=0,
        description="Seconds between unsolicited snapshot refreshes"
    )
    obsolete_after_seconds: float = Field(
        default=12 * 3600,
        gt=0,
        description="A current game unseen for longer than this is not reported"
    )
    output_file: str | None = Field(
        default="currentgames.json",
        description="JSON snapshot output path (null disables the file sink)"
    )
    clamp_need: bool = Field(
        default=True,
        description="Report negative need estimates as 0"
    )
    stats_placeholder: str = Field(
        default="",
        description="Value reported as statsdota when no stats are known"
    )


# =============================================================================
# LEAVERS MODEL
# =============================================================================

class LeaversConfig(StrictModel):
    """Recent leaver index."""

    retention_seconds: float = Field(
        default=24 * 3600,
        gt=0,
        description="How long leaver records are kept"
    )


# =============================================================================
# TIMEOUTS MODEL
# =============================================================================

class TimeoutsConfig(StrictModel):
    """Shutdown timeouts."""

    worker_stop: float = Field(
        default=2.0,
        gt=0,
        description="Seconds a worker gets to stop before it is cancelled"
    )
    supervisor_stop: float = Field(
        default=10.0,
        gt=0,
        description="Seconds the supervisor gets to stop all workers"
    )


# =============================================================================
# SERVER MODEL
# =============================================================================

class ServerConfig(StrictModel):
    """Read-only HTTP status API."""

    enabled: bool = Field(
        default=False,
        description="Serve snapshots over HTTP"
    )
    host: str = Field(
        default="127.0.0.1",
        description="Host to bind (0.0.0.0 for all interfaces)"
    )
    port: int = Field(
        default=8080,
        gt=0,
        lt=65536,
        description="Port number"
    )
    cors_origins: list[str] = Field(
        default_factory=lambda: ["*"],
        description="Allowed CORS origins"
    )


# =============================================================================
# LOGGING MODEL
# =============================================================================

class LoggingConfig(StrictModel):
    """Logging configuration."""

    level: str = Field(
        default="INFO",
        description="Root log level"
    )
    format: str = Field(
        default="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        description="logging.Formatter format string"
    )
    debug_lines: bool = Field(
        default=False,
        description="Log every need change and every unrecognized line at DEBUG"
    )

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        """Only accept standard logging level names."""
        level = v.upper()
        if level not in {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}:
            raise ValueError(f"Unknown log level: {v}")
        return level


# =============================================================================
# ROOT CONFIG MODEL
# =============================================================================

class AppConfig(StrictModel):
    """Root configuration model for the entire application.

    All fields have sensible defaults, so an empty config file is valid.
    """

    discovery: DiscoveryConfig = Field(default_factory=DiscoveryConfig)
    tailer: TailerConfig = Field(default_factory=TailerConfig)
    tracker: TrackerConfig = Field(default_factory=TrackerConfig)
    reporter: ReporterConfig = Field(default_factory=ReporterConfig)
    leavers: LeaversConfig = Field(default_factory=LeaversConfig)
    timeouts: TimeoutsConfig = Field(default_factory=TimeoutsConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


# =============================================================================
# LOADING FUNCTIONS
# =============================================================================

def load_validated_config(config_path: str | Path = "config/config.yaml") -> AppConfig:
    """Load and validate configuration from YAML file.

    Args:
        config_path: Path to config YAML file.

    Returns:
        Validated AppConfig instance.

    Raises:
        FileNotFoundError: If config file doesn't exist.
        pydantic.ValidationError: If config is invalid (with detailed error message).
    """
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path) as f:
        raw_config = yaml.safe_load(f) or {}

    return AppConfig.model_validate(raw_config)


def validate_config_dict(config_dict: dict[str, Any]) -> AppConfig:
    """Validate a configuration dictionary.

    Args:
        config_dict: Configuration as a dictionary.

    Returns:
        Validated AppConfig instance.

    Raises:
        pydantic.ValidationError: If config is invalid.
    """
    return AppConfig.model_validate(config_dict)


# =============================================================================
# EXPORTS
# =============================================================================

__all__ = [
    "StrictModel",
    "DiscoveryConfig",
    "TailerConfig",
    "TrackerConfig",
    "ReporterConfig",
    "LeaversConfig",
    "TimeoutsConfig",
    "ServerConfig",
    "LoggingConfig",
    "AppConfig",
    "load_validated_config",
    "validate_config_dict",
]

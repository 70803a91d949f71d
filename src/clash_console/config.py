"""
clash-console Configuration
===========================

This module handles configuration loading for the control client.

Configuration Sources (in order of precedence):
    1. Environment variables (highest priority)
    2. clash-console.yaml file
    3. Default values (lowest priority)

Environment Variable Mapping:
    CLASH_CONTROLLER_HOST      -> controller.hostname
    CLASH_CONTROLLER_PORT      -> controller.port
    CLASH_SECRET               -> controller.secret
    CLASH_CONTROLLER_PROTOCOL  -> controller.protocol
    CLASH_EXTERNAL_CONTROLLER  -> controller.external_controller
    CLASH_BUFFER_LENGTH        -> stream.buffer_length
    CLASH_PREFER_WEBSOCKET     -> stream.prefer_websocket
    CLASH_RECONNECT_BACKOFF_MS -> stream.reconnect_backoff_ms
    CLASH_CONSOLE_LOG_LEVEL    -> logging.level

Example:
    from clash_console.config import settings

    print(settings.controller.hostname)
    print(settings.stream.buffer_length)
"""

import os
import logging
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field


logger = logging.getLogger(__name__)


# =============================================================================
# Configuration Models
# =============================================================================

class ControllerConfig(BaseModel):
    """
    Control-plane address configuration.

    Every field is optional; unset fields fall back to the
    external controller URL and then to built-in defaults.
    """

    hostname: Optional[str] = Field(default=None, description="Controller host")
    port: Optional[int] = Field(default=None, ge=1, le=65535, description="Controller port")
    secret: Optional[str] = Field(default=None, description="Bearer secret")
    protocol: Optional[str] = Field(
        default=None,
        description="Controller protocol: 'http:' or 'https:'",
    )
    external_controller: Optional[str] = Field(
        default=None,
        description="Controller URL, e.g. http://secret@127.0.0.1:9090",
    )


class StreamSettings(BaseModel):
    """Real-time feed configuration."""

    buffer_length: int = Field(
        default=200,
        ge=1,
        description="Records kept per feed",
    )
    prefer_websocket: bool = Field(
        default=True,
        description="Use WebSocket transport instead of HTTP streaming",
    )
    reconnect_backoff_ms: int = Field(
        default=1000,
        ge=0,
        description="Delay in milliseconds between reconnect attempts",
    )
    ping_interval_seconds: float = Field(
        default=20.0,
        gt=0,
        description="WebSocket keepalive ping interval",
    )


class HttpConfig(BaseModel):
    """REST client configuration."""

    timeout_seconds: float = Field(default=10.0, gt=0, description="Request timeout")


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default="INFO", description="Log level")
    format: str = Field(default="text", description="Log format: json or text")


class Settings(BaseModel):
    """
    Main settings class for clash-console.

    Loads configuration from YAML file and environment variables.
    Environment variables take precedence over file values.
    """

    controller: ControllerConfig = Field(default_factory=ControllerConfig)
    stream: StreamSettings = Field(default_factory=StreamSettings)
    http: HttpConfig = Field(default_factory=HttpConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


# =============================================================================
# Configuration Loading
# =============================================================================

def load_config(config_path: Optional[str] = None) -> Settings:
    """
    Load configuration from YAML file and environment variables.

    Priority (highest to lowest):
        1. Environment variables
        2. YAML config file
        3. Default values

    Args:
        config_path: Path to clash-console.yaml. If None, searches common locations.

    Returns:
        Settings: Loaded configuration

    Raises:
        pydantic.ValidationError: If a file or environment value is invalid
    """
    if config_path is None:
        search_paths = [
            Path("clash-console.yaml"),
            Path("clash-console.yml"),
            Path.home() / ".config" / "clash-console" / "config.yaml",
        ]
        for path in search_paths:
            if path.exists():
                config_path = str(path)
                break

    config_data = {}
    if config_path and Path(config_path).exists():
        logger.info(f"Loading config from: {config_path}")
        with open(config_path, "r") as f:
            config_data = yaml.safe_load(f) or {}
    else:
        logger.debug("No config file found, using defaults and environment variables")

    _apply_env_overrides(config_data)

    return Settings.model_validate(config_data)


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


def _apply_env_overrides(config_data: dict) -> None:
    """
    Apply environment variable overrides to config data.

    Numeric values stay strings; Settings validation converts them and names
    the offending field when one is malformed.
    """

    # Controller address
    if env_host := os.environ.get("CLASH_CONTROLLER_HOST"):
        config_data.setdefault("controller", {})["hostname"] = env_host
    if env_port := os.environ.get("CLASH_CONTROLLER_PORT"):
        config_data.setdefault("controller", {})["port"] = env_port
    if (env_secret := os.environ.get("CLASH_SECRET")) is not None:
        config_data.setdefault("controller", {})["secret"] = env_secret
    if env_protocol := os.environ.get("CLASH_CONTROLLER_PROTOCOL"):
        config_data.setdefault("controller", {})["protocol"] = env_protocol
    if env_url := os.environ.get("CLASH_EXTERNAL_CONTROLLER"):
        config_data.setdefault("controller", {})["external_controller"] = env_url

    # Stream settings
    if env_buffer := os.environ.get("CLASH_BUFFER_LENGTH"):
        config_data.setdefault("stream", {})["buffer_length"] = env_buffer
    if env_ws := os.environ.get("CLASH_PREFER_WEBSOCKET"):
        config_data.setdefault("stream", {})["prefer_websocket"] = _parse_bool(env_ws)
    if env_backoff := os.environ.get("CLASH_RECONNECT_BACKOFF_MS"):
        config_data.setdefault("stream", {})["reconnect_backoff_ms"] = env_backoff

    # Logging settings
    if env_log := os.environ.get("CLASH_CONSOLE_LOG_LEVEL"):
        config_data.setdefault("logging", {})["level"] = env_log


def setup_logging(settings: Settings) -> None:
    """Configure logging based on settings."""
    log_level = getattr(logging, settings.logging.level.upper(), logging.INFO)

    if settings.logging.format == "json":
        log_format = '{"time": "%(asctime)s", "level": "%(levelname)s", "module": "%(name)s", "message": "%(message)s"}'
    else:
        log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    logging.basicConfig(
        level=log_level,
        format=log_format,
        datefmt="%Y-%m-%dT%H:%M:%S",
    )


# =============================================================================
# Global Settings Instance
# =============================================================================

# Global settings instance - loaded on import
settings = load_config()

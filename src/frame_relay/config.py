"""
Frame Relay Configuration
=========================

This module handles configuration loading for the frame relay.

Configuration Sources (in order of precedence):
    1. Environment variables (highest priority)
    2. config.yaml file
    3. Default values (lowest priority)

A .env file in the working directory is read first and only fills in
variables that are not already set in the environment.

Environment Variable Mapping:
    FRAME_SAVE_PATH            -> storage.frame_save_path
    RELAY_RESUME_SEQUENCE      -> storage.resume_sequence
    RELAY_POLL_INTERVAL_MS     -> stream.poll_interval_ms
    RELAY_FIRST_FRAME_TIMEOUT  -> stream.first_frame_timeout_seconds
    RELAY_STORE_SHARDS         -> store.shards
    RELAY_HOST                 -> server.host
    PORT / RELAY_PORT          -> server.port
    RELAY_LOG_LEVEL            -> logging.level
    RELAY_LOG_FORMAT           -> logging.format

Example:
    from frame_relay.config import settings

    print(settings.storage.frame_save_path)
    print(settings.server.port)
"""

import os
import logging
from pathlib import Path
from typing import Optional

import yaml
from dotenv import find_dotenv, load_dotenv
from pydantic import BaseModel, Field


logger = logging.getLogger(__name__)


# =============================================================================
# Configuration Models
# =============================================================================

class ServiceConfig(BaseModel):
    """Service identification."""

    name: str = Field(default="frame-relay", description="Service name")
    version: str = Field(default="v0.1.0", description="Service version")


class StorageConfig(BaseModel):
    """Saved-frame storage configuration."""

    frame_save_path: str = Field(
        default="./frames",
        description="Base directory for saved frames",
    )
    resume_sequence: bool = Field(
        default=False,
        description="Seed per-stream indices from files already on disk",
    )


class StreamConfig(BaseModel):
    """MJPEG output configuration."""

    poll_interval_ms: float = Field(
        default=1.0,
        ge=0,
        description="Delay before each store read in the streaming loop",
    )
    first_frame_timeout_seconds: float = Field(
        default=0.0,
        ge=0,
        description="How long a consumer waits for a stream's first frame (0 = fail at once)",
    )
    boundary: str = Field(
        default="--FRAME",
        min_length=1,
        description="Multipart boundary token",
    )

    @property
    def poll_interval_seconds(self) -> float:
        return self.poll_interval_ms / 1000.0


class StoreConfig(BaseModel):
    """In-memory table configuration."""

    shards: int = Field(
        default=16,
        ge=1,
        le=1024,
        description="Lock shards per table",
    )


class ServerConfig(BaseModel):
    """Server configuration."""

    host: str = Field(default="0.0.0.0", description="Bind host")
    port: int = Field(default=8080, ge=1, le=65535, description="Bind port")


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default="INFO", description="Log level")
    format: str = Field(default="text", description="Log format: json or text")


class Settings(BaseModel):
    """
    Main settings class for the frame relay.

    Loads configuration from YAML file and environment variables.
    Environment variables take precedence over file values.
    """

    service: ServiceConfig = Field(default_factory=ServiceConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    stream: StreamConfig = Field(default_factory=StreamConfig)
    store: StoreConfig = Field(default_factory=StoreConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


# =============================================================================
# Configuration Loading
# =============================================================================

CONFIG_FILENAMES = ("config.yaml", "config.yml")


def _find_config_file() -> Optional[Path]:
    """First config file in the working directory, then the project root."""
    project_root = Path(__file__).resolve().parents[2]
    for directory in (Path.cwd(), project_root):
        for filename in CONFIG_FILENAMES:
            candidate = directory / filename
            if candidate.is_file():
                return candidate
    return None


def load_config(config_path: Optional[str] = None) -> Settings:
    """
    Build Settings from .env, an optional YAML file and the environment.

    Args:
        config_path: Explicit YAML file. When omitted, config.yaml or
            config.yml is looked up in the working directory and then in
            the project root.
    """
    load_dotenv(find_dotenv(usecwd=True), override=False)

    path = Path(config_path) if config_path else _find_config_file()

    config_data: dict = {}
    if path is not None and path.is_file():
        logger.info(f"Relay config file: {path}")
        config_data = yaml.safe_load(path.read_text()) or {}
    else:
        logger.debug("Relay config: defaults + environment only")

    _apply_env_overrides(config_data)
    return Settings.model_validate(config_data)


def _env_flag(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


def _apply_env_overrides(config_data: dict) -> None:
    """Apply environment variable overrides to config data."""

    # Storage settings
    if env_path := os.environ.get("FRAME_SAVE_PATH"):
        config_data.setdefault("storage", {})["frame_save_path"] = env_path
    if env_resume := os.environ.get("RELAY_RESUME_SEQUENCE"):
        config_data.setdefault("storage", {})["resume_sequence"] = _env_flag(env_resume)

    # Stream settings
    if env_poll := os.environ.get("RELAY_POLL_INTERVAL_MS"):
        config_data.setdefault("stream", {})["poll_interval_ms"] = float(env_poll)
    if env_wait := os.environ.get("RELAY_FIRST_FRAME_TIMEOUT"):
        config_data.setdefault("stream", {})["first_frame_timeout_seconds"] = float(env_wait)

    # Store settings
    if env_shards := os.environ.get("RELAY_STORE_SHARDS"):
        config_data.setdefault("store", {})["shards"] = int(env_shards)

    # Server settings (PORT kept for plain dotenv deployments)
    if env_host := os.environ.get("RELAY_HOST"):
        config_data.setdefault("server", {})["host"] = env_host
    if env_port := os.environ.get("PORT"):
        config_data.setdefault("server", {})["port"] = int(env_port)
    elif env_port := os.environ.get("RELAY_PORT"):
        config_data.setdefault("server", {})["port"] = int(env_port)

    # Logging settings
    if env_log := os.environ.get("RELAY_LOG_LEVEL"):
        config_data.setdefault("logging", {})["level"] = env_log
    if env_fmt := os.environ.get("RELAY_LOG_FORMAT"):
        config_data.setdefault("logging", {})["format"] = env_fmt


LOG_FORMATS = {
    "json": '{"time": "%(asctime)s", "level": "%(levelname)s", "logger": "%(name)s", "message": "%(message)s"}',
    "text": "%(asctime)s %(levelname)-7s [%(name)s] %(message)s",
}


def setup_logging(settings: Settings) -> None:
    """Configure root logging from settings.logging (unknown values fall back to INFO/text)."""
    level = logging.getLevelName(settings.logging.level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    logging.basicConfig(
        level=level,
        format=LOG_FORMATS.get(settings.logging.format, LOG_FORMATS["text"]),
        datefmt="%Y-%m-%dT%H:%M:%S",
    )


# =============================================================================
# Global Settings Instance
# =============================================================================

# Global settings instance - loaded on import
settings = load_config()
setup_logging(settings)

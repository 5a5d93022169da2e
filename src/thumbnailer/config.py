"""
Thumbnailer Configuration
=========================

This module handles configuration loading for the thumbnail service.

Configuration Sources (in order of precedence):
    1. Environment variables (highest priority)
    2. config.yaml file
    3. Default values (lowest priority)

Environment Variable Mapping:
    PORT                          -> server.port
    THUMBNAILER_PORT              -> server.port
    THUMBNAILER_CACHE_ENABLED     -> cache.enabled
    THUMBNAILER_CACHE_BACKEND     -> cache.backend
    THUMBNAILER_CACHE_TTL         -> cache.ttl_seconds
    THUMBNAILER_REDIS_URL         -> cache.redis_url
    THUMBNAILER_CACHE_FAIL_OPEN   -> cache.fail_open
    THUMBNAILER_WORKERS           -> dispatcher.workers
    THUMBNAILER_MAX_QUEUE_DEPTH   -> dispatcher.max_queue_depth
    THUMBNAILER_OUTPUT_WIDTH      -> output.width
    THUMBNAILER_OUTPUT_HEIGHT     -> output.height
    THUMBNAILER_JPEG_QUALITY      -> output.jpeg_quality
    THUMBNAILER_MEDIA_BACKEND     -> media.backend
    THUMBNAILER_SEEK_SECONDS      -> media.seek_seconds
    THUMBNAILER_LOG_LEVEL         -> logging.level

Example:
    from thumbnailer.config import load_config

    settings = load_config()
    print(settings.cache.ttl_seconds)
    print(settings.output.width, settings.output.height)
"""

import logging
import os
from pathlib import Path
from typing import List, Literal, Optional

import yaml
from pydantic import BaseModel, Field

from thumbnailer.models.frame import OutputSpec


logger = logging.getLogger(__name__)


# =============================================================================
# Configuration Models
# =============================================================================

class ServiceInfoConfig(BaseModel):
    """Service identification configuration."""

    name: str = Field(default="video-thumbnailer", description="Service name")
    version: str = Field(default="0.1.0", description="Service version")


class ServerConfig(BaseModel):
    """Server configuration."""

    host: str = Field(default="0.0.0.0", description="Bind host")
    port: int = Field(default=3000, ge=1, le=65535, description="Bind port")


class CacheConfig(BaseModel):
    """Thumbnail cache configuration."""

    enabled: bool = Field(default=True, description="Enable caching globally")
    backend: Literal["memory", "redis"] = Field(
        default="memory",
        description="Cache backend: 'memory' or 'redis'",
    )
    ttl_seconds: int = Field(
        default=60,
        ge=1,
        description="Lifetime of a cached thumbnail in seconds",
    )
    redis_url: str = Field(
        default="redis://localhost:6379/0",
        description="Redis connection URL",
    )
    fail_open: bool = Field(
        default=True,
        description="Keep serving without cache when the backend is unreachable",
    )


class DispatcherConfig(BaseModel):
    """Worker pool configuration."""

    workers: int = Field(
        default_factory=lambda: os.cpu_count() or 1,
        ge=1,
        description="Concurrent generation tasks (defaults to CPU count)",
    )
    max_queue_depth: int = Field(
        default=256,
        ge=0,
        description="Maximum queued tasks before rejecting (0 = unbounded)",
    )


class OutputConfig(BaseModel):
    """Output thumbnail geometry."""

    width: int = Field(default=640, ge=16, le=3840, description="Output width")
    height: int = Field(default=360, ge=16, le=2160, description="Output height")
    jpeg_quality: int = Field(default=90, ge=1, le=100, description="JPEG quality")
    aspect_tolerance: float = Field(
        default=1e-3,
        ge=0,
        lt=0.5,
        description="Relative tolerance for the resize-vs-letterbox decision",
    )

    def to_spec(self) -> OutputSpec:
        """Build the immutable OutputSpec used by the compositor."""
        return OutputSpec(
            width=self.width,
            height=self.height,
            jpeg_quality=self.jpeg_quality,
            aspect_tolerance=self.aspect_tolerance,
        )


class MediaConfig(BaseModel):
    """Frame extraction configuration."""

    backend: Literal["opencv", "synthetic"] = Field(
        default="opencv",
        description="Extractor backend: 'opencv' or 'synthetic'",
    )
    seek_seconds: float = Field(
        default=1.0,
        ge=0,
        description="Offset of the representative frame in seconds",
    )


class CorsConfig(BaseModel):
    """CORS configuration."""

    allow_origins: List[str] = Field(default_factory=lambda: ["*"])


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default="INFO", description="Log level")
    format: str = Field(default="text", description="Log format: json or text")


class Settings(BaseModel):
    """
    Main settings class for the thumbnail service.

    Loads configuration from YAML file and environment variables.
    Environment variables take precedence over file values.
    """

    service: ServiceInfoConfig = Field(default_factory=ServiceInfoConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    dispatcher: DispatcherConfig = Field(default_factory=DispatcherConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
    media: MediaConfig = Field(default_factory=MediaConfig)
    cors: CorsConfig = Field(default_factory=CorsConfig)
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
        config_path: Path to config.yaml. If None, searches common locations.

    Returns:
        Settings: Loaded configuration
    """
    if config_path is None:
        search_paths = [
            Path("config.yaml"),
            Path("config.yml"),
            Path("/app/config.yaml"),
            Path(__file__).parent.parent.parent / "config.yaml",
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
        logger.warning("No config file found, using defaults and environment variables")

    _apply_env_overrides(config_data)

    return Settings.model_validate(config_data)


def _env_flag(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


def _apply_env_overrides(config_data: dict) -> None:
    """Apply environment variable overrides to config data."""

    # Server settings (PORT wins, as on most PaaS platforms)
    if env_port := os.environ.get("PORT"):
        config_data.setdefault("server", {})["port"] = int(env_port)
    elif env_port := os.environ.get("THUMBNAILER_PORT"):
        config_data.setdefault("server", {})["port"] = int(env_port)

    # Cache settings
    if env_enabled := os.environ.get("THUMBNAILER_CACHE_ENABLED"):
        config_data.setdefault("cache", {})["enabled"] = _env_flag(env_enabled)
    if env_backend := os.environ.get("THUMBNAILER_CACHE_BACKEND"):
        config_data.setdefault("cache", {})["backend"] = env_backend
    if env_ttl := os.environ.get("THUMBNAILER_CACHE_TTL"):
        config_data.setdefault("cache", {})["ttl_seconds"] = int(env_ttl)
    if env_redis := os.environ.get("THUMBNAILER_REDIS_URL"):
        config_data.setdefault("cache", {})["redis_url"] = env_redis
    if env_fail_open := os.environ.get("THUMBNAILER_CACHE_FAIL_OPEN"):
        config_data.setdefault("cache", {})["fail_open"] = _env_flag(env_fail_open)

    # Dispatcher settings
    if env_workers := os.environ.get("THUMBNAILER_WORKERS"):
        config_data.setdefault("dispatcher", {})["workers"] = int(env_workers)
    if env_depth := os.environ.get("THUMBNAILER_MAX_QUEUE_DEPTH"):
        config_data.setdefault("dispatcher", {})["max_queue_depth"] = int(env_depth)

    # Output settings
    if env_width := os.environ.get("THUMBNAILER_OUTPUT_WIDTH"):
        config_data.setdefault("output", {})["width"] = int(env_width)
    if env_height := os.environ.get("THUMBNAILER_OUTPUT_HEIGHT"):
        config_data.setdefault("output", {})["height"] = int(env_height)
    if env_quality := os.environ.get("THUMBNAILER_JPEG_QUALITY"):
        config_data.setdefault("output", {})["jpeg_quality"] = int(env_quality)

    # Media settings
    if env_media := os.environ.get("THUMBNAILER_MEDIA_BACKEND"):
        config_data.setdefault("media", {})["backend"] = env_media
    if env_seek := os.environ.get("THUMBNAILER_SEEK_SECONDS"):
        config_data.setdefault("media", {})["seek_seconds"] = float(env_seek)

    # Logging settings
    if env_log := os.environ.get("THUMBNAILER_LOG_LEVEL"):
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

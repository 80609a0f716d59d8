"""
video2doc Configuration
=======================

Configuration Sources (in order of precedence):
    1. Environment variables (highest priority)
    2. config.yaml file
    3. Default values (lowest priority)

Environment Variable Mapping:
    VIDEO2DOC_FFMPEG          -> engine.ffmpeg_path
    VIDEO2DOC_PROBE_TIMEOUT   -> engine.probe_timeout_seconds
    VIDEO2DOC_INTERVAL        -> sampling.interval_seconds
    VIDEO2DOC_THRESHOLD       -> sampling.discard_threshold
    VIDEO2DOC_FETCH_TIMEOUT   -> fetch.timeout_seconds
    VIDEO2DOC_HOSTED_ENDPOINT -> fetch.hosted_endpoint
    VIDEO2DOC_LOG_LEVEL       -> logging.level

Example:
    from video2doc.config import load_config

    settings = load_config("config.yaml")
    print(settings.sampling.interval_seconds)
"""

import os
import logging
from pathlib import Path
from typing import Literal, Optional

import yaml
from pydantic import BaseModel, Field


log = logging.getLogger(__name__)


# ════════════════════════════════════════════════════════════════════════════
#  CONFIGURATION MODELS
# ════════════════════════════════════════════════════════════════════════════

class EngineConfig(BaseModel):
    """Codec engine (ffmpeg) configuration."""

    ffmpeg_path: Optional[str] = Field(
        default=None,
        description="ffmpeg binary; None uses the imageio-ffmpeg bundle",
    )
    probe_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Upper bound on the duration probe",
    )
    probe_marker: str = Field(
        default="At least one output file must be specified",
        description="Log text ffmpeg prints when run with an input only",
    )


class SamplingConfig(BaseModel):
    """Frame sampling and de-duplication configuration."""

    interval_seconds: float = Field(default=10.0, gt=0)
    discard_threshold: float = Field(
        default=5.0,
        ge=0,
        description="RMS difference (0-255) below which a frame is a duplicate",
    )
    frame_pattern: str = Field(default="output_%04d.png")
    on_unknown_duration: Literal["report", "error"] = Field(
        default="report",
        description="'report' returns a DURATION_UNKNOWN result, 'error' raises",
    )


class FetchConfig(BaseModel):
    """Remote download configuration."""

    timeout_seconds: float = Field(default=30.0, gt=0)
    chunk_size: int = Field(default=256 * 1024, ge=1024)
    hosted_endpoint: str = Field(
        default="https://ytdlp.online/stream",
        description="Streaming endpoint that resolves hosted-video links",
    )


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default="INFO")
    format: Literal["text", "json"] = Field(default="text")


class Settings(BaseModel):
    engine: EngineConfig = Field(default_factory=EngineConfig)
    sampling: SamplingConfig = Field(default_factory=SamplingConfig)
    fetch: FetchConfig = Field(default_factory=FetchConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


# ════════════════════════════════════════════════════════════════════════════
#  LOADING
# ════════════════════════════════════════════════════════════════════════════

def load_config(config_path: Optional[str] = None) -> Settings:
    """
    Load configuration from a YAML file and environment variables.

    When config_path is None, ./video2doc.yaml and ./config.yaml are tried.
    """
    if config_path is None:
        for path in (Path("video2doc.yaml"), Path("config.yaml")):
            if path.exists():
                config_path = str(path)
                break

    config_data = {}
    if config_path:
        if not Path(config_path).exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")
        log.info(f"Loading config from: {config_path}")
        with open(config_path, "r") as f:
            config_data = yaml.safe_load(f) or {}
    else:
        log.debug("No config file found, using defaults and environment variables")

    _apply_env_overrides(config_data)
    return Settings.model_validate(config_data)


def _apply_env_overrides(config_data: dict) -> None:
    if env_ffmpeg := os.environ.get("VIDEO2DOC_FFMPEG"):
        config_data.setdefault("engine", {})["ffmpeg_path"] = env_ffmpeg
    if env_probe := os.environ.get("VIDEO2DOC_PROBE_TIMEOUT"):
        config_data.setdefault("engine", {})["probe_timeout_seconds"] = float(env_probe)

    if env_interval := os.environ.get("VIDEO2DOC_INTERVAL"):
        config_data.setdefault("sampling", {})["interval_seconds"] = float(env_interval)
    if env_threshold := os.environ.get("VIDEO2DOC_THRESHOLD"):
        config_data.setdefault("sampling", {})["discard_threshold"] = float(env_threshold)

    if env_fetch := os.environ.get("VIDEO2DOC_FETCH_TIMEOUT"):
        config_data.setdefault("fetch", {})["timeout_seconds"] = float(env_fetch)
    if env_endpoint := os.environ.get("VIDEO2DOC_HOSTED_ENDPOINT"):
        config_data.setdefault("fetch", {})["hosted_endpoint"] = env_endpoint

    if env_log := os.environ.get("VIDEO2DOC_LOG_LEVEL"):
        config_data.setdefault("logging", {})["level"] = env_log


def setup_logging(settings: Settings) -> None:
    """Configure the root logger from settings. Called by entry points only."""
    level = getattr(logging, settings.logging.level.upper(), logging.INFO)

    if settings.logging.format == "json":
        fmt = ('{"time": "%(asctime)s", "level": "%(levelname)s", '
               '"module": "%(name)s", "message": "%(message)s"}')
    else:
        fmt = "[%(levelname)s] %(message)s"

    logging.basicConfig(level=level, format=fmt, datefmt="%Y-%m-%dT%H:%M:%S")

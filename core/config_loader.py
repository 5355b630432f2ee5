"""Configuration loader for the event bus and the demo container."""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional

import yaml
from dotenv import load_dotenv

from core.filters import PatternMode

BASE_PATH = Path(__file__).resolve().parents[1]

_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class BusConfig:
    """Dispatch and filter matching behaviour of a single bus."""

    pattern_mode: PatternMode = PatternMode.MATCH
    pattern_cache_size: int = 256
    allow_reentrant_emit: bool = True

    def __post_init__(self) -> None:
        self.pattern_mode = PatternMode(self.pattern_mode)
        if self.pattern_cache_size < 0:
            raise ValueError("pattern_cache_size must not be negative")

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, object]]) -> "BusConfig":
        if not data:
            return cls()
        return cls(**data)


@dataclass
class ContainerConfig:
    """Reference container settings."""

    token_prefix: str = "container-"

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, object]]) -> "ContainerConfig":
        if not data:
            return cls()
        return cls(**data)


@dataclass
class LoggingConfig:
    """Logging level with optional environment indirection."""

    level: str = "INFO"
    level_env: Optional[str] = "APPBUS_LOG_LEVEL"

    def __post_init__(self) -> None:
        self.level = str(self.level).upper()
        if self.level not in _LEVELS:
            raise ValueError(f"unknown log level: {self.level}")

    @property
    def effective_level(self) -> str:
        override = os.getenv(self.level_env) if self.level_env else None
        if override and override.upper() in _LEVELS:
            return override.upper()
        return self.level

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, object]]) -> "LoggingConfig":
        if not data:
            return cls()
        return cls(**data)


@dataclass
class AppConfig:
    """Top level configuration model."""

    bus: BusConfig = field(default_factory=BusConfig)
    container: ContainerConfig = field(default_factory=ContainerConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, object]]) -> "AppConfig":
        data = data or {}
        if not isinstance(data, dict):
            raise ValueError("configuration root must be a mapping")
        return cls(
            bus=BusConfig.from_dict(data.get("bus")),
            container=ContainerConfig.from_dict(data.get("container")),
            logging=LoggingConfig.from_dict(data.get("logging")),
        )


def load_config(
    config_path: Optional[Path] = None,
    env_path: Optional[Path] = None,
) -> AppConfig:
    """Load configuration from YAML and environment variables."""

    if config_path is None:
        config_path = BASE_PATH / "config.yaml"
    if env_path is None:
        default_env = BASE_PATH / ".env"
        if default_env.exists():
            env_path = default_env

    if env_path is not None:
        load_dotenv(dotenv_path=env_path, override=False)

    with open(config_path, "r", encoding="utf-8") as fp:
        data = yaml.safe_load(fp) or {}

    return AppConfig.from_dict(data)


def configure_logging(config: LoggingConfig) -> None:
    logging.basicConfig(
        level=getattr(logging, config.effective_level),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


__all__ = [
    "AppConfig",
    "BusConfig",
    "ContainerConfig",
    "LoggingConfig",
    "configure_logging",
    "load_config",
]

"""
bootstrap/config.py - Engine configuration

Provides configuration loading from environment variables and defaults.
"""

from __future__ import annotations
from typing import Any, Dict
import logging
import os

from pydantic import BaseModel, field_validator

from colorrouter.core.enums import UpdateMode

logger = logging.getLogger(__name__)

PACKAGE_LOGGER = "colorrouter"


class EngineConfig(BaseModel):
    """Settings for a ResolutionEngine."""

    mode: UpdateMode = UpdateMode.AUTO
    key_delimiter: str = "."
    max_history: int = 100
    log_level: str = "WARNING"

    @field_validator("key_delimiter")
    @classmethod
    def validate_delimiter(cls, v):
        if not v or any(ch.isspace() for ch in v):
            raise ValueError("key_delimiter must be a non-empty string without whitespace")
        return v

    @field_validator("max_history")
    @classmethod
    def validate_history(cls, v):
        if v < 0:
            raise ValueError("max_history must be >= 0")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        level = str(v).upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {v}")
        return level

    @classmethod
    def from_env(cls) -> "EngineConfig":
        return cls(
            mode=os.getenv("COLORROUTER_MODE", "auto").lower(),
            key_delimiter=os.getenv("COLORROUTER_KEY_DELIMITER", "."),
            max_history=int(os.getenv("COLORROUTER_MAX_HISTORY", "100")),
            log_level=os.getenv("COLORROUTER_LOG_LEVEL", "WARNING"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json")


def configure_logging(config: EngineConfig) -> logging.Logger:
    """Apply `config.log_level` to the package logger."""
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    package_logger.setLevel(config.log_level)
    logger.debug(f"Package log level set to {config.log_level}")
    return package_logger

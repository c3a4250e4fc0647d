"""
bootstrap/ - Configuration
"""

from .config import EngineConfig, configure_logging

__all__ = [
    "EngineConfig",
    "configure_logging",
]

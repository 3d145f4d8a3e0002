"""Configuration module for the impact engine."""

from impact_engine.config.logging import configure_logging, get_logger
from impact_engine.config.settings import Settings, get_settings

__all__ = ["Settings", "configure_logging", "get_logger", "get_settings"]

"""Configuration management package for the Drive stream backend."""

from .config_manager import ConfigManager, ConfigValidationError

__all__ = ['ConfigManager', 'ConfigValidationError']

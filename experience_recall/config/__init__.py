"""
Configuration module for the recall engine.

Provides centralized configuration management with support for:
- YAML configuration files
- Environment variable overrides
- .env files
"""

from .config import Config, load_config

__all__ = ['Config', 'load_config']

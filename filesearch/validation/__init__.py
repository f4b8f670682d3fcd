"""
file-search validation module.

This module provides configuration loading and schema enforcement.
"""

from filesearch.validation.config import Config, ConfigError

__all__ = ["Config", "ConfigError"]

"""
file-search Configuration - Configuration loading and validation.

This module provides the Config class for managing file-search settings
from a global (~/.file-search.yaml) file, a local (.file-search.yaml) file
found by walking up from the working directory, and environment variables.
"""

import os
import re
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from filesearch.constants import (
    CONFIG_FILE_NAME,
    DEFAULT_CACHE_TTL,
    DEFAULT_COMPLETION_WAIT,
    DEFAULT_REQUEST_TIMEOUT,
)


class ConfigError(Exception):
    """Raised when there's a configuration error."""

    pass


MCP_TOOL_GROUPS = ["query", "list", "import", "upload", "manage"]
DEFAULT_MCP_TOOLS = ["query"]

# Environment variables that override config file keys
ENV_OVERRIDES = {
    "mcp_tools": "MCP_TOOLS",
    "completion_enabled": "COMPLETION_ENABLED",
    "completion_cache_ttl": "COMPLETION_CACHE_TTL",
}
API_KEY_ENV_VARS = ("GOOGLE_API_KEY", "GEMINI_API_KEY")

_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)(ms|h|m|s)")
_DURATION_UNITS = {"h": 3600.0, "m": 60.0, "s": 1.0, "ms": 0.001}


def parse_duration(value: Any) -> float:
    """
    Parse a duration into seconds.

    Accepts numbers (seconds) and strings such as "300", "300s", "10m",
    "1h" or "1m30s".
    """
    if isinstance(value, bool):
        raise ValueError(f"invalid duration: {value!r}")
    if isinstance(value, (int, float)):
        return float(value)

    text = str(value).strip().lower()
    if not text:
        return 0.0
    try:
        return float(text)
    except ValueError:
        pass

    negative = text.startswith("-")
    if negative:
        text = text[1:]
    pos = 0
    total = 0.0
    for match in _DURATION_PART.finditer(text):
        if match.start() != pos:
            break
        total += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        pos = match.end()
    if pos != len(text) or pos == 0:
        raise ValueError(f"invalid duration: {value!r}")
    return -total if negative else total


def parse_mcp_tools(value: Any) -> List[str]:
    """
    Parse the MCP tool selection.

    Comma-separated string or list. Blank entries are dropped; an empty
    selection means the default (query only); "all" enables every group.
    """
    if value is None:
        return list(DEFAULT_MCP_TOOLS)
    parts = value if isinstance(value, (list, tuple)) else str(value).split(",")
    tools = [str(p).strip() for p in parts if str(p).strip()]
    if not tools:
        return list(DEFAULT_MCP_TOOLS)
    if "all" in tools:
        return list(MCP_TOOL_GROUPS)
    return tools


class FileSearchConfig(BaseModel):
    """Complete file-search configuration schema."""

    api_key: Optional[str] = None
    api_key_env: Optional[str] = None
    completion_enabled: bool = True
    completion_cache_ttl: float = DEFAULT_CACHE_TTL
    completion_wait: float = DEFAULT_COMPLETION_WAIT
    resolve_stale_on_error: bool = True
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    mcp_tools: List[str] = Field(default_factory=lambda: list(MCP_TOOL_GROUPS))

    @field_validator("completion_cache_ttl", mode="before")
    @classmethod
    def _parse_ttl(cls, value: Any) -> float:
        if value is None:
            return DEFAULT_CACHE_TTL
        seconds = parse_duration(value)
        if seconds < 0:
            raise ValueError("completion_cache_ttl must be non-negative")
        # Zero means "use the default", never "always stale" or "never stale"
        return seconds or DEFAULT_CACHE_TTL

    @field_validator("completion_wait", mode="before")
    @classmethod
    def _parse_seconds(cls, value: Any) -> float:
        seconds = parse_duration(value)
        if seconds < 0:
            raise ValueError("must be non-negative")
        return seconds

    @field_validator("request_timeout", mode="before")
    @classmethod
    def _parse_timeout(cls, value: Any) -> float:
        if value is None:
            return DEFAULT_REQUEST_TIMEOUT
        seconds = parse_duration(value)
        if seconds < 0:
            raise ValueError("request_timeout must be non-negative")
        # Zero means "use the default"; lookups always have a bound
        return seconds or DEFAULT_REQUEST_TIMEOUT

    @field_validator("mcp_tools", mode="before")
    @classmethod
    def _parse_tools(cls, value: Any) -> List[str]:
        return parse_mcp_tools(value)


class Config:
    """
    file-search configuration manager.

    Handles loading, merging, and validating configuration from:
    - Global: ~/.file-search.yaml
    - Local: .file-search.yaml (nearest to the working directory)
    - Explicit: --config PATH (replaces the local file)
    - Environment: MCP_TOOLS, COMPLETION_ENABLED, COMPLETION_CACHE_TTL

    Later sources override earlier ones.

    Example:
        >>> config = Config.load()
        >>> config.merged.completion_cache_ttl
        300.0
        >>> config.get_api_key()
    """

    GLOBAL_CONFIG_FILE = Path.home() / CONFIG_FILE_NAME

    def __init__(
        self,
        global_config: Optional[Dict[str, Any]] = None,
        local_config: Optional[Dict[str, Any]] = None,
        environ: Optional[Mapping[str, str]] = None,
        overrides: Optional[Dict[str, Any]] = None,
    ):
        """
        Initialize Config.

        Args:
            global_config: Global configuration dictionary.
            local_config: Local (project) configuration dictionary.
            environ: Environment mapping. Defaults to os.environ.
            overrides: Values from command-line flags.
        """
        self._global_config = global_config or {}
        self._local_config = local_config or {}
        self._environ = os.environ if environ is None else environ
        self._overrides = {k: v for k, v in (overrides or {}).items() if v is not None}
        self._merged: Optional[FileSearchConfig] = None

    @classmethod
    def load(
        cls,
        config_file: Optional[Path] = None,
        overrides: Optional[Dict[str, Any]] = None,
    ) -> "Config":
        """
        Load configuration from default locations.

        Args:
            config_file: Explicit config file, used instead of the local one.
            overrides: Values from command-line flags.

        Returns:
            Config instance with loaded configuration.
        """
        global_config = cls._load_yaml(cls.GLOBAL_CONFIG_FILE)
        if config_file is not None:
            config_file = Path(config_file)
            if not config_file.exists():
                raise ConfigError(f"Config file not found: {config_file}")
            local_config = cls._load_yaml(config_file)
        else:
            local_config = cls._load_yaml(cls._find_local_config())

        return cls(global_config=global_config, local_config=local_config, overrides=overrides)

    @classmethod
    def _load_yaml(cls, path: Optional[Path]) -> Dict[str, Any]:
        """Load YAML file if it exists."""
        if path is None or not path.exists():
            return {}

        try:
            with open(path) as f:
                data = yaml.safe_load(f)
        except Exception as e:
            raise ConfigError(f"Failed to load config from {path}: {e}")

        if data and not isinstance(data, dict):
            raise ConfigError(f"Config file {path} must contain a mapping")
        return data or {}

    @classmethod
    def _find_local_config(cls) -> Optional[Path]:
        """Find the local config file by walking up the directory tree."""
        current = Path.cwd()
        while current != current.parent:
            config_path = current / CONFIG_FILE_NAME
            if config_path.exists() and config_path != cls.GLOBAL_CONFIG_FILE:
                return config_path
            current = current.parent
        return None

    def get_merged_config(self) -> Dict[str, Any]:
        """Get the merged configuration as a dictionary."""
        merged = self._deep_merge(self._global_config.copy(), self._local_config)
        for key, env_var in ENV_OVERRIDES.items():
            value = self._environ.get(env_var)
            if value:
                merged[key] = value
        merged.update(self._overrides)
        return merged

    @property
    def merged(self) -> FileSearchConfig:
        """Get the validated merged configuration."""
        if self._merged is None:
            try:
                self._merged = FileSearchConfig(**self.get_merged_config())
            except ValidationError as e:
                raise ConfigError(f"Invalid configuration: {e}")
        return self._merged

    def get_api_key(self) -> Optional[str]:
        """
        Get the Gemini API key.

        Priority: --api-key flag, the variable named by --api-key-env (or
        api_key_env in config), config api_key, GOOGLE_API_KEY,
        GEMINI_API_KEY.
        """
        flag_key = self._overrides.get("api_key")
        if flag_key:
            return flag_key

        env_name = self.merged.api_key_env
        if env_name and self._environ.get(env_name):
            return self._environ[env_name]

        file_key = self._deep_merge(self._global_config, self._local_config).get("api_key")
        if file_key:
            return file_key

        for env_var in API_KEY_ENV_VARS:
            if self._environ.get(env_var):
                return self._environ[env_var]

        return None

    def _deep_merge(self, base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        """Deep merge two dictionaries, with override taking precedence."""
        result = base.copy()

        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._deep_merge(result[key], value)
            else:
                result[key] = value

        return result

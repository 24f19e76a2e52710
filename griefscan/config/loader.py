"""
Configuration loading with precedence support.
"""
import json
import logging
import os
import tomllib
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from pydantic import ValidationError

from ..core.errors import ConfigurationError
from ..core.util.hash import compute_config_hash as _hash_config
from .settings import Settings

logger = logging.getLogger(__name__)


class ConfigLoader:
    """Handles configuration loading with proper precedence."""

    ENV_PREFIX = "GRIEFSCAN_"
    DEFAULT_CONFIG_FILES = [
        "griefscan.toml",
        ".griefscan.toml",
        "pyproject.toml",  # Look for [tool.griefscan] section
    ]

    def __init__(self, search_dir: Optional[Path] = None):
        self.search_dir = Path(search_dir) if search_dir else Path.cwd()
        self.warnings: List[str] = []

    def load_config(self, explicit_path: Optional[Path] = None) -> Tuple[Settings, List[str]]:
        """
        Load configuration with precedence: Env > TOML > defaults.

        Args:
            explicit_path: Explicit config file path; it must exist

        Returns:
            Tuple of (settings, warnings)

        Raises:
            ConfigurationError: if the explicit file is unreadable or the merged
                configuration does not validate
        """
        self.warnings = []
        data: Dict[str, Any] = {}

        toml_config = self._load_toml_config(explicit_path)
        if toml_config:
            data = self._deep_merge(data, toml_config)

        env_config = self._load_env_config()
        if env_config:
            data = self._deep_merge(data, env_config)

        try:
            settings = Settings.model_validate(data)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration: {e}") from e

        for warning in self.warnings:
            logger.warning(warning)
        return settings, self.warnings

    def _load_toml_config(self, explicit_path: Optional[Path] = None) -> Optional[Dict[str, Any]]:
        """Load configuration from a TOML file."""
        if explicit_path:
            path = Path(explicit_path)
            if not path.exists():
                raise ConfigurationError(f"Configuration file not found: {path}")
            try:
                return self._read_toml(path)
            except (OSError, tomllib.TOMLDecodeError) as e:
                raise ConfigurationError(f"Failed to load config from {path}: {e}") from e

        for name in self.DEFAULT_CONFIG_FILES:
            config_file = self.search_dir / name
            if not config_file.exists():
                continue
            try:
                data = self._read_toml(config_file)
            except (OSError, tomllib.TOMLDecodeError) as e:
                self.warnings.append(f"Failed to load config from {config_file}: {e}")
                continue
            if data:
                logger.debug(f"Loaded configuration from {config_file}")
                return data
        return None

    def _read_toml(self, path: Path) -> Dict[str, Any]:
        with open(path, "rb") as f:
            data = tomllib.load(f)
        if path.name == "pyproject.toml":
            data = data.get("tool", {}).get("griefscan", {})
        return data

    def _load_env_config(self) -> Optional[Dict[str, Any]]:
        """Load configuration from environment variables."""
        env_config: Dict[str, Any] = {}

        env_mappings = {
            f"{self.ENV_PREFIX}RULES_ENABLED": ("rules.enabled", self._parse_list),
            f"{self.ENV_PREFIX}RULES_DISABLED": ("rules.disabled", self._parse_list),
            f"{self.ENV_PREFIX}SEVERITY_OVERRIDES": ("rules.severity_overrides", self._parse_mapping),
            f"{self.ENV_PREFIX}MINIMUM_AMOUNT_FLOOR": ("extraction.minimum_amount_floor", int),
            f"{self.ENV_PREFIX}MAX_CONSTANT_LOOP_BOUND": ("extraction.max_constant_loop_bound", int),
            f"{self.ENV_PREFIX}REWARD_VARIABLE_PATTERN": ("extraction.reward_variable_pattern", str),
            f"{self.ENV_PREFIX}MAX_WORKERS": ("engine.max_workers", int),
        }

        for env_var, (config_path, parser) in env_mappings.items():
            value = os.getenv(env_var)
            if value is None:
                continue
            try:
                self._set_nested_value(env_config, config_path, parser(value))
            except (ValueError, TypeError) as e:
                self.warnings.append(f"Invalid environment variable {env_var}={value}: {e}")

        return env_config or None

    def _parse_list(self, value: str) -> List[str]:
        """Parse list from comma-separated string."""
        return [item.strip() for item in value.split(",") if item.strip()]

    def _parse_mapping(self, value: str) -> Dict[str, str]:
        """Parse ``rule=SEVERITY,rule2=SEVERITY`` pairs."""
        result = {}
        for item in self._parse_list(value):
            key, sep, severity = item.partition("=")
            if not sep or not key.strip():
                raise ValueError(f"expected rule=severity, got {item!r}")
            result[key.strip()] = severity.strip()
        return result

    def _set_nested_value(self, config: Dict[str, Any], path: str, value: Any) -> None:
        """Set a nested configuration value using dot notation."""
        keys = path.split(".")
        current = config
        for key in keys[:-1]:
            current = current.setdefault(key, {})
        current[keys[-1]] = value

    def _deep_merge(self, base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        """Deep merge two dictionaries."""
        result = base.copy()
        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._deep_merge(result[key], value)
            else:
                result[key] = value
        return result


def load_config(explicit_path: Optional[Path] = None) -> Tuple[Settings, List[str]]:
    """Load configuration with default loader."""
    return ConfigLoader().load_config(explicit_path)


def dump_config(settings: Settings) -> str:
    """Dump configuration as JSON."""
    return json.dumps(settings.model_dump(), indent=2, default=str)


def compute_config_hash(settings: Settings) -> str:
    """Compute stable hash of configuration."""
    return _hash_config(settings)

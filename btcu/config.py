"""
BTCU Configuration System

Unified configuration management with YAML files, environment variables,
validation, and runtime updates.

Configuration Sources (in order of precedence):
    1. Environment variables (BTCU_*)
    2. Runtime overrides
    3. User config file (~/.btcu/config.yaml)
    4. Project config file (./btcu.yaml or ./config/btcu.yaml)
    5. Default values

Contracts never read the manager directly; they are handed a ``BtcuConfig``
at construction so every test can build an isolated instance.

Copyright (c) 2026 BTC University. All rights reserved.
"""

from __future__ import annotations

import copy
import os
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Generic, List, Optional, TypeVar, Union

import yaml

T = TypeVar("T")

AUTHORIZED_MINTERS = ("instructor-set", "single-owner")


class ConfigError(Exception):
    """Configuration error."""
    pass


class ConfigValidationError(ConfigError):
    """Configuration validation error."""
    pass


@dataclass
class ConfigValue(Generic[T]):
    """
    A single configuration value with metadata.

    Supports default values, environment variable binding,
    validation, and change callbacks.
    """
    default: T
    env_var: Optional[str] = None
    description: str = ""
    validator: Optional[Callable[[T], bool]] = None
    _value: Optional[T] = field(default=None, repr=False)
    _callbacks: List[Callable[[T, T], None]] = field(default_factory=list, repr=False)

    def get(self) -> T:
        """Get the current value."""
        # Check environment variable first
        if self.env_var and self.env_var in os.environ:
            env_value = os.environ[self.env_var]
            return self._coerce(env_value)

        # Return set value or default
        return self._value if self._value is not None else self.default

    def set(self, value: T) -> None:
        """Set the value with validation."""
        if self.validator and not self.validator(value):
            raise ConfigValidationError(f"Invalid value for config: {value!r}")

        old_value = self._value
        self._value = value

        # Notify callbacks
        for callback in self._callbacks:
            callback(old_value, value)

    def _coerce(self, value: str) -> T:
        """Coerce string value to target type."""
        target_type = type(self.default)

        if target_type == bool:
            return value.lower() in ("true", "1", "yes", "on")  # type: ignore
        elif target_type == int:
            return int(value)  # type: ignore
        elif target_type == list:
            return value.split(",")  # type: ignore
        else:
            return value  # type: ignore

    def on_change(self, callback: Callable[[T, T], None]) -> None:
        """Register a change callback."""
        self._callbacks.append(callback)


@dataclass
class RegistryConfig:
    """Configuration for the certificate registry."""
    unique_per_recipient: ConfigValue[bool] = field(default_factory=lambda: ConfigValue(
        default=True,
        env_var="BTCU_REGISTRY_UNIQUE",
        description="Allow at most one certificate per recipient",
        validator=lambda x: isinstance(x, bool),
    ))
    authorized_minters: ConfigValue[str] = field(default_factory=lambda: ConfigValue(
        default="instructor-set",
        env_var="BTCU_REGISTRY_MINTERS",
        description="Who may mint: instructor-set or single-owner",
        validator=lambda x: x in AUTHORIZED_MINTERS,
    ))


@dataclass
class LedgerConfig:
    """Configuration for the course ledger."""
    min_sbtc_balance: ConfigValue[int] = field(default_factory=lambda: ConfigValue(
        default=100000,
        env_var="BTCU_LEDGER_MIN_SBTC",
        description="Minimum sBTC balance (base units) for whitelist self-enrollment",
        validator=lambda x: isinstance(x, int) and x >= 0,
    ))
    all_courses_window: ConfigValue[int] = field(default_factory=lambda: ConfigValue(
        default=20,
        env_var="BTCU_LEDGER_WINDOW",
        description="Number of slots returned by get-all-courses",
        validator=lambda x: isinstance(x, int) and x > 0,
    ))
    name_max_length: ConfigValue[int] = field(default_factory=lambda: ConfigValue(
        default=100,
        env_var="BTCU_LEDGER_NAME_MAX",
        description="Maximum course name length",
        validator=lambda x: isinstance(x, int) and x > 0,
    ))
    details_max_length: ConfigValue[int] = field(default_factory=lambda: ConfigValue(
        default=256,
        env_var="BTCU_LEDGER_DETAILS_MAX",
        description="Maximum course details length",
        validator=lambda x: isinstance(x, int) and x > 0,
    ))


@dataclass
class ObservabilityConfig:
    """Configuration for Observability."""
    log_level: ConfigValue[str] = field(default_factory=lambda: ConfigValue(
        default="warning",
        env_var="BTCU_LOG_LEVEL",
        description="Log level (debug, info, warning, error)",
        validator=lambda x: x in ("debug", "info", "warning", "error", "critical"),
    ))
    log_format: ConfigValue[str] = field(default_factory=lambda: ConfigValue(
        default="json",
        env_var="BTCU_LOG_FORMAT",
        description="Log format (json, text)",
        validator=lambda x: x in ("json", "text"),
    ))


@dataclass
class BtcuConfig:
    """
    Root configuration for BTCU.

    Aggregates all component configurations and provides
    loading/saving functionality.
    """
    registry: RegistryConfig = field(default_factory=RegistryConfig)
    ledger: LedgerConfig = field(default_factory=LedgerConfig)
    observability: ObservabilityConfig = field(default_factory=ObservabilityConfig)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        def extract_values(obj: Any) -> Any:
            if isinstance(obj, ConfigValue):
                return obj.get()
            elif hasattr(obj, "__dataclass_fields__"):
                return {k: extract_values(getattr(obj, k)) for k in obj.__dataclass_fields__}
            return obj

        return extract_values(self)

    def to_yaml(self) -> str:
        """Convert to YAML string."""
        return yaml.dump(self.to_dict(), default_flow_style=False)

    def apply(self, data: Dict[str, Any]) -> "BtcuConfig":
        """Apply a nested mapping of overrides in place and return self."""
        _apply_to_config(self, data)
        return self

    def copy(self) -> "BtcuConfig":
        """Deep copy, so overrides on the copy never leak back."""
        return copy.deepcopy(self)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]] = None) -> "BtcuConfig":
        config = cls()
        if data:
            config.apply(data)
        return config


def _apply_to_config(config_obj: Any, values: Dict[str, Any], path: str = "") -> None:
    for key, value in values.items():
        key_path = f"{path}.{key}" if path else key
        if not hasattr(config_obj, key):
            raise ConfigError(f"Unknown config key: {key_path}")
        attr = getattr(config_obj, key)
        if isinstance(attr, ConfigValue):
            attr.set(value)
        elif hasattr(attr, "__dataclass_fields__") and isinstance(value, dict):
            _apply_to_config(attr, value, key_path)
        else:
            raise ConfigError(f"Invalid config section: {key_path}")


class ConfigManager:
    """
    Configuration manager with file loading and environment binding.

    Thread-safe singleton that manages configuration lifecycle.
    """

    _instance: Optional["ConfigManager"] = None
    _lock = threading.Lock()

    def __new__(cls) -> "ConfigManager":
        with cls._lock:
            if cls._instance is None:
                cls._instance = super().__new__(cls)
                cls._instance._initialized = False
            return cls._instance

    def __init__(self):
        if self._initialized:
            return

        self._config = BtcuConfig()
        self._config_paths: List[Path] = []
        self._watchers: List[Callable[[BtcuConfig], None]] = []
        self._initialized = True

    @classmethod
    def reset(cls) -> None:
        """Drop the singleton so the next access starts from defaults."""
        with cls._lock:
            cls._instance = None

    @property
    def config(self) -> BtcuConfig:
        """Get the current configuration."""
        return self._config

    def load_from_file(self, path: Union[str, Path]) -> None:
        """Load configuration from a YAML file."""
        path = Path(path)
        if not path.exists():
            raise ConfigError(f"Configuration file not found: {path}")

        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)

        if data:
            if not isinstance(data, dict):
                raise ConfigError(f"Configuration file must be a mapping: {path}")
            self._config.apply(data)
            if path not in self._config_paths:
                self._config_paths.append(path)

    def load_defaults(self) -> None:
        """Load default configuration files if they exist."""
        default_paths = [
            Path("btcu.yaml"),
            Path("config/btcu.yaml"),
            Path.home() / ".btcu" / "config.yaml",
        ]

        for path in default_paths:
            if path.exists():
                self.load_from_file(path)

    def set(self, path: str, value: Any) -> None:
        """
        Set a configuration value by path.

        Example: config.set("ledger.min_sbtc_balance", 250000)
        """
        parts = path.split(".")
        obj = self._config

        for part in parts[:-1]:
            obj = getattr(obj, part, None)
            if obj is None:
                raise ConfigError(f"Invalid config path: {path}")

        attr = getattr(obj, parts[-1], None)
        if isinstance(attr, ConfigValue):
            attr.set(value)
        else:
            raise ConfigError(f"Invalid config path: {path}")

    def get(self, path: str) -> Any:
        """
        Get a configuration value by path.

        Example: config.get("ledger.min_sbtc_balance")
        """
        obj: Any = self._config

        for part in path.split("."):
            if not hasattr(obj, part):
                raise ConfigError(f"Invalid config path: {path}")
            obj = getattr(obj, part)

        if isinstance(obj, ConfigValue):
            return obj.get()
        return obj

    def watch(self, callback: Callable[[BtcuConfig], None]) -> None:
        """Register a callback for configuration changes."""
        self._watchers.append(callback)

    def reload(self) -> None:
        """Reload configuration from all loaded files."""
        for path in self._config_paths:
            if path.exists():
                self.load_from_file(path)

        for watcher in self._watchers:
            watcher(self._config)

    def validate(self) -> List[str]:
        """
        Validate all configuration values.

        Returns list of validation errors.
        """
        errors: List[str] = []

        def validate_config(obj: Any, path: str = "") -> None:
            if isinstance(obj, ConfigValue):
                try:
                    value = obj.get()
                    if obj.validator and not obj.validator(value):
                        errors.append(f"{path}: validation failed for value {value}")
                except ValueError as e:
                    errors.append(f"{path}: {e}")
            elif hasattr(obj, "__dataclass_fields__"):
                for field_name in obj.__dataclass_fields__:
                    field_path = f"{path}.{field_name}" if path else field_name
                    validate_config(getattr(obj, field_name), field_path)

        validate_config(self._config)
        return errors

    def export_schema(self) -> Dict[str, Any]:
        """Export configuration schema for documentation."""
        schema: Dict[str, Any] = {"properties": {}}

        def extract_schema(obj: Any, properties: Dict[str, Any]) -> None:
            if isinstance(obj, ConfigValue):
                properties["type"] = type(obj.default).__name__
                properties["default"] = str(obj.default)
                properties["description"] = obj.description
                if obj.env_var:
                    properties["env_var"] = obj.env_var
            elif hasattr(obj, "__dataclass_fields__"):
                for field_name in obj.__dataclass_fields__:
                    properties[field_name] = {}
                    extract_schema(getattr(obj, field_name), properties[field_name])

        extract_schema(self._config, schema["properties"])
        return schema


def get_config() -> BtcuConfig:
    """Get the current BTCU configuration."""
    return ConfigManager().config


def get_config_manager() -> ConfigManager:
    """Get the configuration manager instance."""
    return ConfigManager()

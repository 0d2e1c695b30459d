"""
Configuration system for store presets.

Load store configurations from JSON or YAML files so validation
behaviour can be tuned without modifying code.
"""
from __future__ import annotations

import os
import json
import logging
from dataclasses import dataclass, asdict, replace
from typing import Dict, List, Optional, Any

import yaml

logger = logging.getLogger(__name__)

VALIDATORS = ("strict", "random")


class ConfigError(ValueError):
    """Raised when a configuration is invalid or unreadable."""


@dataclass
class StoreConfig:
    """
    Configuration for one store instance.

    Attributes:
        validator: "strict" (parse only) or "random" (unreliable remote check)
        validation_latency: Simulated validation latency in seconds
        success_rate: Pass probability for the random validator
        random_seed: Seed for the random validator, None for a fresh seed
        allow_overdraft: Whether withdrawals may take the balance below zero
        max_in_flight: Max dispatches running at once before new ones are dropped
        tracking: Whether the tracking effect is installed
        initial_balance: Starting balance
    """
    validator: str = "strict"
    validation_latency: float = 1.0
    success_rate: float = 0.5
    random_seed: Optional[int] = None
    allow_overdraft: bool = False
    max_in_flight: int = 64
    tracking: bool = True
    initial_balance: int = 0

    def __post_init__(self):
        self.validate()

    def validate(self) -> None:
        if self.validator not in VALIDATORS:
            raise ConfigError(
                f"Unknown validator {self.validator!r}, expected one of {VALIDATORS}"
            )
        if self.validation_latency < 0:
            raise ConfigError("validation_latency must be >= 0")
        if not 0.0 <= self.success_rate <= 1.0:
            raise ConfigError("success_rate must be between 0 and 1")
        if self.max_in_flight < 1:
            raise ConfigError("max_in_flight must be at least 1")

    def with_overrides(self, **overrides: Any) -> "StoreConfig":
        """Copy with some fields replaced; None values are ignored."""
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StoreConfig":
        """Create from dictionary, ignoring unknown keys."""
        try:
            return cls(**{k: v for k, v in data.items() if k in cls.__dataclass_fields__})
        except TypeError as e:
            raise ConfigError(str(e)) from e

    def save(self, path: str) -> None:
        """Save config to a JSON or YAML file, chosen by extension."""
        os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            if path.endswith((".yaml", ".yml")):
                yaml.safe_dump(self.to_dict(), f, sort_keys=False)
            else:
                json.dump(self.to_dict(), f, indent=2)

    @classmethod
    def load(cls, path: str) -> Optional["StoreConfig"]:
        """
        Load config from a JSON or YAML file.

        Returns:
            The config, or None if the file does not exist

        Raises:
            ConfigError: If the file cannot be parsed or holds bad values
        """
        if not os.path.exists(path):
            return None

        with open(path, "r", encoding="utf-8") as f:
            content = f.read()

        try:
            if path.endswith((".yaml", ".yml")):
                data = yaml.safe_load(content) or {}
            else:
                data = json.loads(content)
        except (yaml.YAMLError, json.JSONDecodeError) as e:
            raise ConfigError(f"Failed to parse config {path}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigError(f"Config {path} must contain a mapping")
        return cls.from_dict(data)


# Built-in presets
PRESETS: Dict[str, StoreConfig] = {
    "default": StoreConfig(),
    "instant": StoreConfig(validation_latency=0.0),
    "unreliable": StoreConfig(
        validator="random",
        validation_latency=8.0,
        success_rate=0.5,
    ),
    "overdraft": StoreConfig(allow_overdraft=True),
}


def get_preset(name: str) -> Optional[StoreConfig]:
    """Get a copy of a built-in preset by name."""
    preset = PRESETS.get(name.lower())
    return replace(preset) if preset else None


def list_presets() -> List[str]:
    """List available preset names."""
    return list(PRESETS.keys())


class ConfigManager:
    """
    Resolves store configs from a directory, falling back to presets.

    Example:
        >>> manager = ConfigManager("./atm_configs")
        >>> config = manager.get("instant")  # Built-in preset
        >>> config = manager.get("branch")   # Loads ./atm_configs/branch.yaml
    """

    def __init__(self, config_dir: str = "./atm_configs"):
        self.config_dir = config_dir
        self._cache: Dict[str, StoreConfig] = {}

    def get(self, name: str) -> Optional[StoreConfig]:
        """
        Get a config by name.

        Checks in order:
        1. Cache
        2. Custom file (config_dir/name.json, .yaml or .yml)
        3. Built-in presets
        """
        name_lower = name.lower()

        if name_lower in self._cache:
            return self._cache[name_lower]

        for ext in [".json", ".yaml", ".yml"]:
            path = os.path.join(self.config_dir, f"{name_lower}{ext}")
            config = StoreConfig.load(path)
            if config:
                self._cache[name_lower] = config
                return config

        preset = get_preset(name_lower)
        if preset:
            self._cache[name_lower] = preset
            return preset

        return None

    def save(self, config: StoreConfig, name: str) -> str:
        """Save a config under a name and return its path."""
        os.makedirs(self.config_dir, exist_ok=True)
        path = os.path.join(self.config_dir, f"{name.lower()}.json")
        config.save(path)
        self._cache[name.lower()] = config
        return path

    def list_available(self) -> List[str]:
        """List all available configs (presets + custom files)."""
        available = set(list_presets())

        if os.path.exists(self.config_dir):
            for f in os.listdir(self.config_dir):
                if f.endswith((".json", ".yaml", ".yml")):
                    available.add(os.path.splitext(f)[0])

        return sorted(available)


def resolve_config(source: Optional[str] = None) -> StoreConfig:
    """
    Resolve a config from a file path or a preset name.

    Raises:
        ConfigError: If nothing matches
    """
    if not source:
        return StoreConfig()
    if os.path.sep in source or source.endswith((".json", ".yaml", ".yml")):
        config = StoreConfig.load(source)
        if config is None:
            raise ConfigError(f"Config file not found: {source}")
        return config
    preset = get_preset(source)
    if preset is None:
        raise ConfigError(
            f"Unknown preset {source!r}, available: {', '.join(list_presets())}"
        )
    return preset

"""Configuration management for jumpbridge."""

from pathlib import Path
from typing import List, Literal, Optional, Union

import yaml
from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import ConfigurationError


ResultCap = Union[int, Literal["no_limit"]]


class QueryConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    max_results: ResultCap = 100
    syntax: Literal["extended", "fuzzy"] = "extended"
    case_sensitivity: Literal["default", "sensitive", "insensitive"] = "default"
    home_tilde: bool = True
    relative: bool = False

    @field_validator('max_results')
    @classmethod
    def validate_max_results(cls, v: ResultCap) -> ResultCap:
        if v != "no_limit" and v < 1:
            raise ValueError("max_results must be a positive integer or 'no_limit'")
        return v


class WeightsConfig(BaseModel):
    """
    Weight per usage event kind.

    A kind set to null is unmapped; it is only usable when ``fallback``
    is configured.
    """
    model_config = ConfigDict(frozen=True)

    open: Optional[float] = 1.0
    manual_save: Optional[float] = 1.0
    auto_save: Optional[float] = 0.3
    active_focus: Optional[float] = 0.2
    directory_visit: Optional[float] = 1.0
    fallback: Optional[float] = None

    @field_validator('open', 'manual_save', 'auto_save', 'active_focus',
                     'directory_visit', 'fallback')
    @classmethod
    def validate_weight(cls, v: Optional[float]) -> Optional[float]:
        if v is not None and v < 0:
            raise ValueError("weights must be non-negative")
        return v


class TrackingConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    debounce_ms: int = 500
    exclude_patterns: List[str] = Field(default_factory=lambda: [
        "/.git/",
        "/.svn/",
        "/.hg/",
        "*/node_modules/*",
    ])

    @field_validator('debounce_ms')
    @classmethod
    def validate_debounce(cls, v: int) -> int:
        if v < 0:
            raise ValueError("debounce_ms must be >= 0")
        return v


class ApiConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    host: str = "127.0.0.1"
    port: int = 8766


class Config(BaseModel):
    """
    Configuration snapshot for one activation.

    Instances are frozen; components receive the snapshot in their
    constructor and never re-read configuration mid-operation.
    """
    model_config = ConfigDict(frozen=True)

    binary: str = "jumper"
    open_in_new_tab: bool = True
    query: QueryConfig = Field(default_factory=QueryConfig)
    weights: WeightsConfig = Field(default_factory=WeightsConfig)
    tracking: TrackingConfig = Field(default_factory=TrackingConfig)
    api: ApiConfig = Field(default_factory=ApiConfig)

    @classmethod
    def default_locations(cls) -> List[Path]:
        return [
            Path("jumpbridge.yaml"),
            Path.home() / ".config" / "jumpbridge" / "config.yaml",
            Path("/etc/jumpbridge/config.yaml"),
        ]

    @classmethod
    def load(cls, config_path: Optional[Path] = None) -> "Config":
        """Load configuration from YAML, falling back to defaults."""
        if config_path is None:
            for candidate in cls.default_locations():
                if candidate.exists():
                    config_path = candidate
                    break
            else:
                logger.debug("No config file found, using defaults")
                return cls()

        logger.info(f"Loading config from: {config_path}")
        try:
            with open(config_path, 'r') as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationError(f"Cannot read config {config_path}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigurationError(f"Config {config_path} must be a mapping")

        try:
            return cls(**data)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid config {config_path}: {e}") from e

    def save(self, config_path: Path) -> None:
        """Save configuration to YAML file."""
        config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(config_path, 'w') as f:
            yaml.safe_dump(self.model_dump(), f, default_flow_style=False)

"""Configuration management for the device attestation verifier.

Provides centralized configuration for:
- Trust anchor store selection
- Verification policy knobs
- Logging settings
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from dac_common.exceptions import ConfigurationError

TRUST_STORE_TYPES = ("test", "file")


class TrustStoreConfig(BaseModel):
    """Trust anchor store configuration."""

    type: str = Field("test", description="Trust anchor store implementation (test/file)")
    path: str | None = Field(None, description="Directory of PAA certificates for the file store")

    @field_validator("type")
    @classmethod
    def validate_type(cls, v: str) -> str:
        v = v.lower()
        if v not in TRUST_STORE_TYPES:
            msg = f"Trust store type must be one of: {list(TRUST_STORE_TYPES)}"
            raise ValueError(msg)
        return v


class VerifierConfig(BaseModel):
    """Verification policy configuration."""

    max_vendor_reserved: int = Field(
        2, ge=0, le=16, description="Maximum vendor-reserved elements in a payload"
    )
    check_certificate_validity: bool = Field(
        True, description="Reject certificates outside their validity period"
    )


class LoggingConfig(BaseModel):
    """Logging configuration."""

    service_name: str = Field("device-attestation", description="Service name in log records")
    level: str = Field("INFO", description="Log level")
    format: str = Field("text", description="Log format (json/text)")

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL", "OFF"]
        if v.upper() not in valid_levels:
            msg = f"Log level must be one of: {valid_levels}"
            raise ValueError(msg)
        return v.upper()


class AttestationConfig(BaseModel):
    """Complete verifier configuration."""

    trust_store: TrustStoreConfig = Field(default_factory=TrustStoreConfig)
    verifier: VerifierConfig = Field(default_factory=VerifierConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> AttestationConfig:
        try:
            return cls(**_expand_env_vars(data or {}))
        except ValidationError as exc:
            raise ConfigurationError(f"Invalid configuration: {exc}") from exc

    @classmethod
    def from_file(cls, config_path: Path | str) -> AttestationConfig:
        """Load configuration from YAML file."""
        config_path = Path(config_path)

        if not config_path.exists():
            raise ConfigurationError(f"Configuration file not found: {config_path}")

        try:
            with open(config_path) as f:
                config_data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Error parsing YAML configuration file {config_path}: {e}")
        except OSError as e:
            raise ConfigurationError(f"Error reading configuration file {config_path}: {e}")

        if config_data is not None and not isinstance(config_data, dict):
            raise ConfigurationError(f"Configuration file {config_path} must contain a mapping")

        return cls.from_dict(config_data)

    @classmethod
    def from_env(cls) -> AttestationConfig:
        """Load configuration from environment variables."""
        return cls.from_dict(
            {
                "trust_store": {
                    "type": os.getenv("DAC_TRUST_STORE_TYPE", "test"),
                    "path": os.getenv("DAC_TRUST_STORE_PATH"),
                },
                "verifier": {
                    # pydantic coerces the string values
                    "max_vendor_reserved": os.getenv("DAC_MAX_VENDOR_RESERVED", "2"),
                    "check_certificate_validity": os.getenv(
                        "DAC_CHECK_CERTIFICATE_VALIDITY", "true"
                    ),
                },
                "logging": {
                    "level": os.getenv("LOG_LEVEL", "INFO"),
                    "format": os.getenv("LOG_FORMAT", "text"),
                },
            }
        )


def get_environment() -> str:
    """Current environment from DAC_ENV, defaulting to 'development'."""
    return os.environ.get("DAC_ENV", "development").lower()


def get_config() -> AttestationConfig:
    """Get configuration from file or environment.

    Priority:
    1. DAC_CONFIG_FILE environment variable
    2. ./config/{DAC_ENV}.yaml
    3. Environment variables (fallback)
    """
    config_file = os.getenv("DAC_CONFIG_FILE")

    if config_file:
        return AttestationConfig.from_file(config_file)

    config_path = Path("config") / f"{get_environment()}.yaml"
    if config_path.exists():
        return AttestationConfig.from_file(config_path)

    return AttestationConfig.from_env()


def _expand_env_vars(obj: Any) -> Any:
    """
    Recursively expand environment variables in configuration values.

    Supports format: ${VAR_NAME:-default_value}
    """
    if isinstance(obj, dict):
        return {key: _expand_env_vars(value) for key, value in obj.items()}
    if isinstance(obj, list):
        return [_expand_env_vars(item) for item in obj]
    if isinstance(obj, str):
        return _expand_env_var_string(obj)
    return obj


_ENV_VAR_PATTERN = re.compile(r"\$\{([^}]+)\}")


def _expand_env_var_string(value: str) -> str:
    def replace_var(match: re.Match[str]) -> str:
        var_expr = match.group(1)
        if ":-" in var_expr:
            var_name, default_value = var_expr.split(":-", 1)
            return os.environ.get(var_name, default_value)
        return os.environ.get(var_expr, "")

    return _ENV_VAR_PATTERN.sub(replace_var, value)

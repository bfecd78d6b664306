"""
Configuration loading and management for the index rebalancer.

This module handles loading engine configuration from YAML files,
environment overrides, and validation of configuration parameters.
"""

import os
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Optional

import yaml
from dotenv import dotenv_values

from index_rebalancer.exceptions import ConfigurationError
from index_rebalancer.models import MissingPricePolicy, RebalanceConfig


# Default paths for configuration files
PROJECT_ROOT = Path(__file__).parent.parent.parent
DEFAULT_ENV_FILE = PROJECT_ROOT / ".env"

# Environment variable -> config field
ENV_OVERRIDES = {
    "REBALANCE_PERCENTILE": "percentile",
    "REBALANCE_PRECISION": "precision",
    "REBALANCE_OUTPUT_DIR": "output_dir",
    "REBALANCE_DATA_DIR": "data_dir",
}


def load_config(config_path: str | Path) -> RebalanceConfig:
    """
    Load engine configuration from a YAML file.

    Args:
        config_path: Path to the YAML configuration file

    Returns:
        RebalanceConfig object with validated settings

    Raises:
        ConfigurationError: If the file cannot be loaded or is invalid
    """
    config_path = Path(config_path)

    if not config_path.exists():
        raise ConfigurationError(f"Configuration file not found: {config_path}")

    try:
        with open(config_path, "r") as f:
            raw_config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in configuration file: {e}")

    if raw_config is None:
        raw_config = {}
    if not isinstance(raw_config, dict):
        raise ConfigurationError("Configuration file must contain a mapping")

    return _parse_config(raw_config)


def _parse_config(raw: dict[str, Any]) -> RebalanceConfig:
    """
    Parse and validate raw configuration dictionary into RebalanceConfig.

    All fields are optional; missing fields take their defaults.

    Args:
        raw: Dictionary loaded from YAML

    Returns:
        Validated RebalanceConfig

    Raises:
        ConfigurationError: If a field is invalid
    """
    defaults = RebalanceConfig()

    precision = _parse_int(raw.get("precision", defaults.precision), "precision", min_val=0)

    percentile = _parse_decimal(
        raw.get("percentile", defaults.percentile),
        "percentile",
        min_val=Decimal("0"),
        max_val=Decimal("1"),
    )
    if percentile == Decimal("0"):
        raise ConfigurationError("percentile must be > 0")

    value_scale = _parse_decimal(
        raw.get("value_scale", defaults.value_scale),
        "value_scale",
        min_val=Decimal("0"),
    )
    if value_scale == Decimal("0"):
        raise ConfigurationError("value_scale must be > 0")

    initial_allocation_amount = None
    if raw.get("initial_allocation_amount") is not None:
        initial_allocation_amount = _parse_decimal(
            raw["initial_allocation_amount"],
            "initial_allocation_amount",
            min_val=Decimal("0"),
        )
        if initial_allocation_amount == Decimal("0"):
            raise ConfigurationError("initial_allocation_amount must be positive")

    policy_value = raw.get("missing_price_policy", defaults.missing_price_policy.value)
    try:
        missing_price_policy = MissingPricePolicy(str(policy_value))
    except ValueError:
        allowed = [p.value for p in MissingPricePolicy]
        raise ConfigurationError(
            f"Invalid missing_price_policy: {policy_value}. Expected one of {allowed}"
        )

    return RebalanceConfig(
        precision=precision,
        percentile=percentile,
        value_scale=value_scale,
        initial_allocation_amount=initial_allocation_amount,
        missing_price_policy=missing_price_policy,
        output_dir=str(raw.get("output_dir", defaults.output_dir)),
        data_dir=str(raw.get("data_dir", defaults.data_dir)),
        date_format=str(raw.get("date_format", defaults.date_format)),
    )


def apply_env_overrides(
    config: RebalanceConfig,
    env_file: Optional[str | Path] = None,
) -> RebalanceConfig:
    """
    Overlay environment settings onto a configuration.

    Sources are checked in this order (later sources override earlier):
    1. .env file in project root (or the given env_file)
    2. Environment variables

    Args:
        config: Base configuration
        env_file: Path to .env file (defaults to project root .env)

    Returns:
        New RebalanceConfig with overrides applied

    Raises:
        ConfigurationError: If an override value is invalid
    """
    overrides: dict[str, str] = {}

    env_path = Path(env_file) if env_file else DEFAULT_ENV_FILE
    if env_path.exists():
        for key, value in dotenv_values(env_path).items():
            if key in ENV_OVERRIDES and value:
                overrides[ENV_OVERRIDES[key]] = value

    for key, field_name in ENV_OVERRIDES.items():
        if os.environ.get(key):
            overrides[field_name] = os.environ[key]

    if not overrides:
        return config

    raw = config_to_dict(config)
    raw.update(overrides)
    return _parse_config(raw)


def _parse_int(value: Any, field_name: str, min_val: Optional[int] = None) -> int:
    """Parse an integer value with optional lower bound."""
    try:
        int_value = int(str(value))
    except ValueError:
        raise ConfigurationError(f"Invalid integer value for {field_name}: {value}")

    if min_val is not None and int_value < min_val:
        raise ConfigurationError(f"{field_name} must be >= {min_val}, got {int_value}")

    return int_value


def _parse_decimal(
    value: Any,
    field_name: str,
    min_val: Decimal | None = None,
    max_val: Decimal | None = None,
) -> Decimal:
    """
    Parse a decimal value with optional range validation.

    Args:
        value: The value to parse
        field_name: Name of the field for error messages
        min_val: Minimum allowed value (inclusive)
        max_val: Maximum allowed value (inclusive)

    Returns:
        Parsed Decimal

    Raises:
        ConfigurationError: If the value is invalid or out of range
    """
    try:
        decimal_value = Decimal(str(value))
    except InvalidOperation:
        raise ConfigurationError(f"Invalid decimal value for {field_name}: {value}")

    if not decimal_value.is_finite():
        raise ConfigurationError(f"{field_name} must be finite, got {decimal_value}")

    if min_val is not None and decimal_value < min_val:
        raise ConfigurationError(
            f"{field_name} must be >= {min_val}, got {decimal_value}"
        )

    if max_val is not None and decimal_value > max_val:
        raise ConfigurationError(
            f"{field_name} must be <= {max_val}, got {decimal_value}"
        )

    return decimal_value


def config_to_dict(config: RebalanceConfig) -> dict[str, Any]:
    """Convert a RebalanceConfig to a plain YAML-serializable dictionary."""
    return {
        "precision": config.precision,
        "percentile": str(config.percentile),
        "value_scale": str(config.value_scale),
        "initial_allocation_amount": (
            str(config.initial_allocation_amount)
            if config.initial_allocation_amount is not None
            else None
        ),
        "missing_price_policy": config.missing_price_policy.value,
        "output_dir": config.output_dir,
        "data_dir": config.data_dir,
        "date_format": config.date_format,
    }


def write_config(config: RebalanceConfig, output_path: str | Path) -> None:
    """
    Write a RebalanceConfig to a YAML file.

    Args:
        config: The configuration to write
        output_path: Path to write the YAML file
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    with open(output_path, "w") as f:
        yaml.dump(config_to_dict(config), f, default_flow_style=False, sort_keys=False)

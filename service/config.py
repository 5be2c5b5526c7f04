"""Service configuration with YAML and environment support."""

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path

import yaml
from pydantic import Field

from poll_core.coverage import COVERAGE_BITS
from poll_core.schemas import BaseSchema, DataSourceConfig


class ServiceConfig(BaseSchema):
    """Runtime configuration for the poll service."""

    data_source: DataSourceConfig = Field(default_factory=DataSourceConfig)

    # Tally persistence
    save_file: str = "president_votes_state.data"
    save_interval_s: float = Field(default=300.0, gt=0)

    # Session coverage bitset width
    coverage_bits: int = Field(default=COVERAGE_BITS, ge=COVERAGE_BITS)

    # HTTP
    session_secret: str | None = None
    host: str = "0.0.0.0"
    port: int = Field(default=8080, ge=1, le=65535)


# Environment variable names used by existing deployments.
_ENV_DATA_SOURCE = {
    "DATA_LOAD_URI": "data_load_uri",
    "API_KEY": "api_key",
}
_ENV_SERVICE = {
    "SAVE_FILE": "save_file",
    "HOTPOLLS_SESSION_SECRET": "session_secret",
}


def apply_env(config: ServiceConfig, environ: Mapping[str, str] | None = None) -> ServiceConfig:
    """Return a copy of ``config`` with non-empty environment overrides applied."""
    environ = os.environ if environ is None else environ
    source_updates = {
        field: environ[name] for name, field in _ENV_DATA_SOURCE.items() if environ.get(name)
    }
    service_updates: dict[str, object] = {
        field: environ[name] for name, field in _ENV_SERVICE.items() if environ.get(name)
    }
    if source_updates:
        service_updates["data_source"] = config.data_source.model_copy(update=source_updates)
    return config.model_copy(update=service_updates)


def load_config(yaml_path: str | Path) -> ServiceConfig:
    """Load service configuration from a YAML file.

    Args:
        yaml_path: Path to YAML configuration file

    Returns:
        ServiceConfig instance

    Raises:
        FileNotFoundError: If YAML file doesn't exist
        ValueError: If YAML is invalid or has invalid fields
    """
    yaml_path = Path(yaml_path)

    if not yaml_path.exists():
        raise FileNotFoundError(f"Config file not found: {yaml_path}")

    with open(yaml_path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f)

    if not data:
        raise ValueError(f"Empty or invalid YAML file: {yaml_path}")

    try:
        return ServiceConfig.from_dict(data)
    except Exception as e:
        raise ValueError(f"Invalid configuration in {yaml_path}: {e}") from e

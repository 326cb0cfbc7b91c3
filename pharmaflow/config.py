from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import BaseModel, Field, field_validator

from .constants import ANALYTICS_PERIODS, DEFAULT_COMPLETION_DELAY


class ExecutionConfig(BaseModel):
    """Settings for asynchronous step execution."""

    completion_delay: float = Field(default=DEFAULT_COMPLETION_DELAY, ge=0)


class AnalyticsConfig(BaseModel):
    """Thresholds for workflow analytics."""

    default_period: str = "30d"
    bottleneck_delay_threshold_hours: float = Field(default=1.0, gt=0)
    bottleneck_min_frequency: int = Field(default=0, ge=0)

    @field_validator("default_period")
    @classmethod
    def _known_period(cls, v: str) -> str:
        if v not in ANALYTICS_PERIODS:
            raise ValueError(f"Unsupported analytics period: {v}")
        return v


class PharmaflowConfig(BaseModel):
    """Top-level configuration model."""

    database_url: Optional[str] = None
    log_level: str = "INFO"
    execution: ExecutionConfig = ExecutionConfig()
    analytics: AnalyticsConfig = AnalyticsConfig()


CONFIG_PATH_ENV = "PHARMAFLOW_CONFIG"
# Checked in order; the first one set wins over the file.
DATABASE_URL_ENVS = ("PHARMAFLOW_DATABASE_URL", "DATABASE_URL")


def _read_yaml(path: Path) -> Dict[str, Any]:
    if not path.is_file():
        return {}
    with path.open() as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Config file {path} must contain a mapping")
    return data


def load_config(path: Optional[str] = None) -> PharmaflowConfig:
    """Load configuration from a YAML file and the environment.

    Args:
        path: Optional path to config file. Falls back to PHARMAFLOW_CONFIG env
            variable or 'config.yaml' in the current directory. A missing file
            yields the defaults.
    """
    data = _read_yaml(Path(path or os.getenv(CONFIG_PATH_ENV, "config.yaml")))
    database_url = next(
        (os.environ[name] for name in DATABASE_URL_ENVS if os.getenv(name)), None
    )
    if database_url:
        data["database_url"] = database_url
    return PharmaflowConfig.model_validate(data)
